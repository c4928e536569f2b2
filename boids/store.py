"""Double-buffered structure-of-arrays storage for boid state."""

import numpy as np

from .boid import pack_records, unpack_records


class BoidBuffer:
    """One generation of boid state (positions, velocities, teams)."""

    def __init__(self, num_boids: int):
        self.positions = np.zeros((num_boids, 2), dtype=np.float64)
        self.velocities = np.zeros((num_boids, 2), dtype=np.float64)
        self.teams = np.zeros(num_boids, dtype=np.int32)

    def copy_from(self, other: "BoidBuffer"):
        np.copyto(self.positions, other.positions)
        np.copyto(self.velocities, other.velocities)
        np.copyto(self.teams, other.teams)


class EntityStore:
    """
    Front/back boid buffers plus per-boid payload that is not double-buffered.

    The force pass reads `front` and writes `back`; `swap()` flips them.
    Array index is the boid's identity and never changes between frames.
    """

    def __init__(self, num_boids: int):
        self.num_boids = num_boids
        self._buffers = (BoidBuffer(num_boids), BoidBuffer(num_boids))
        self._current = 0

        # Payload shared by both generations
        self.targets = np.zeros((num_boids, 2), dtype=np.float64)
        self.groups = np.full(num_boids, -1, dtype=np.int32)
        self.status = np.zeros(num_boids, dtype=np.uint8)

    @property
    def front(self) -> BoidBuffer:
        return self._buffers[self._current]

    @property
    def back(self) -> BoidBuffer:
        return self._buffers[1 - self._current]

    @property
    def current_index(self) -> int:
        return self._current

    def swap(self):
        """Make the freshly written back buffer current."""
        self._current = 1 - self._current

    def seed_random(self, rng: np.random.Generator, x_bound: float, y_bound: float,
                    max_speed: float, team_ratio: float = 0.5, num_teams: int = 2):
        """
        Fill the front buffer with random boids.

        Positions are uniform inside the bounds, velocity components uniform in
        [-max_speed, max_speed]. The first N * team_ratio boids join team 0;
        with more than two teams the rest are dealt round-robin to teams 1..T-1.
        """
        n = self.num_boids
        buf = self.front
        buf.positions[:, 0] = rng.uniform(-x_bound, x_bound, n)
        buf.positions[:, 1] = rng.uniform(-y_bound, y_bound, n)
        buf.velocities[:] = rng.uniform(-max_speed, max_speed, (n, 2))

        split = int(n * team_ratio)
        buf.teams[:split] = 0
        if num_teams <= 2:
            buf.teams[split:] = 1 if num_teams == 2 else 0
        else:
            buf.teams[split:] = 1 + np.arange(n - split) % (num_teams - 1)

        self.back.copy_from(buf)
        self.status.fill(0)

    def load_records(self, records: np.ndarray):
        """Replace the front buffer with an external record buffer of the same length."""
        if len(records) != self.num_boids:
            raise ValueError(f"Expected {self.num_boids} records, got {len(records)}")
        positions, velocities, teams = unpack_records(records)
        buf = self.front
        buf.positions[:] = positions
        buf.velocities[:] = velocities
        buf.teams[:] = teams
        self.back.copy_from(buf)

    def records(self) -> np.ndarray:
        """Front buffer as a fixed-stride record array."""
        buf = self.front
        return pack_records(buf.positions, buf.velocities, buf.teams)
