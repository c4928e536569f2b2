"""
Headless Boids Runner
=====================

Steps the simulation without a window, for timing and for checking the
parallel kernels against the sequential ones.

Usage:
    python -m tools.headless                         # 16k boids, grid, parallel
    python -m tools.headless -n 100k --backend quadtree --stats
    python -m tools.headless -n 20k --validate       # parallel vs sequential
"""

import argparse
import time

import numpy as np

from boids import ExecutionMode, Flock, FlockSettings, SpatialBackend


def parse_number(value: str) -> int:
    """Parse number with optional suffix (k, m, K, M)."""
    value = value.strip().lower()
    multipliers = {'k': 1_000, 'm': 1_000_000}

    for suffix, mult in multipliers.items():
        if value.endswith(suffix):
            return int(float(value[:-1]) * mult)

    return int(value)


def run(flock: Flock, frames: int, dt: float) -> float:
    """Step frames times and return mean milliseconds per frame."""
    start = time.perf_counter()
    for _ in range(frames):
        flock.update(dt)
    return (time.perf_counter() - start) * 1000.0 / max(frames, 1)


def validate(num_boids: int, frames: int, dt: float, backend: SpatialBackend,
             seed: int, settings: FlockSettings) -> float:
    """Step a parallel and a sequential flock from the same seed; return max position gap."""
    par = Flock(num_boids, settings, seed=seed, backend=backend, mode=ExecutionMode.PARALLEL)
    seq = Flock(num_boids, settings, seed=seed, backend=backend, mode=ExecutionMode.SEQUENTIAL)

    worst = 0.0
    for frame in range(frames):
        par.update(dt)
        seq.update(dt)
        gap = float(np.abs(par.positions - seq.positions).max())
        worst = max(worst, gap)
        if gap > 1e-6:
            print(f"[headless] frame {frame}: max position difference {gap:.3e}")
    return worst


def main():
    parser = argparse.ArgumentParser(description="Headless 2D boids runner")
    parser.add_argument("--boids", "-n", type=str, default="16k", help="Boid count (e.g. 5000, 50k, 1m)")
    parser.add_argument("--frames", "-f", type=int, default=300, help="Frames to simulate")
    parser.add_argument("--backend", choices=[b.value for b in SpatialBackend], default="grid")
    parser.add_argument("--mode", choices=[m.value for m in ExecutionMode], default="parallel")
    parser.add_argument("--seed", type=int, default=0)
    parser.add_argument("--dt", type=float, default=1.0 / 60.0, help="Time step")
    parser.add_argument("--lod", action="store_true", help="Enable level of detail with a view around the origin")
    parser.add_argument("--validate", action="store_true", help="Compare parallel and sequential results")
    parser.add_argument("--stats", action="store_true", help="Print index occupancy at the end")
    args = parser.parse_args()

    num_boids = parse_number(args.boids)
    backend = SpatialBackend(args.backend)
    settings = FlockSettings.from_config()

    if args.validate:
        worst = validate(num_boids, args.frames, args.dt, backend, args.seed, settings)
        status = "OK" if worst <= 1e-6 else "MISMATCH"
        print(f"[headless] {status}: max parallel/sequential position difference {worst:.3e}")
        return

    flock = Flock(num_boids, settings, seed=args.seed, backend=backend,
                  mode=ExecutionMode(args.mode))
    if args.lod:
        flock.set_lod_enabled(True)
        flock.set_view((0.0, 0.0), settings.x_bound, settings.y_bound)

    ms = run(flock, args.frames, args.dt)
    print(f"[headless] {num_boids:,} boids, {args.frames} frames: {ms:.2f} ms/frame "
          f"({1000.0 / ms if ms > 0 else 0:.0f} steps/s)")

    if args.stats:
        flock.print_diagnostics()


if __name__ == "__main__":
    main()
