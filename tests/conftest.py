"""Shared fixtures for the boids tests."""

import sys
from pathlib import Path

import numpy as np
import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from boids import ExecutionMode, Flock, FlockSettings, SpatialBackend  # noqa: E402


def build_flock(positions, velocities=None, teams=None, backend=SpatialBackend.GRID,
                mode=ExecutionMode.PARALLEL, obstacles=(), **overrides) -> Flock:
    """Flock whose front buffer holds exactly the given state."""
    positions = np.asarray(positions, dtype=np.float64)
    n = len(positions)
    settings = FlockSettings.from_config(**overrides)
    flock = Flock(n, settings, obstacles=list(obstacles), seed=0, backend=backend,
                  mode=mode, warmup=False, verbose=False)
    front = flock.store.front
    front.positions[:] = positions
    front.velocities[:] = 0.0 if velocities is None else np.asarray(velocities, dtype=np.float64)
    front.teams[:] = 0 if teams is None else np.asarray(teams, dtype=np.int32)
    flock.store.back.copy_from(front)
    return flock


@pytest.fixture
def make_flock():
    return build_flock


@pytest.fixture
def rng():
    return np.random.default_rng(1234)
