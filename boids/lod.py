"""Level-of-detail aggregation of off-screen boids into meta-boids."""

import math
import numpy as np
from numba import njit, prange

from .forces import limit_speed
from .sorting import CountingSort, BLOCK_SIZE


INDIVIDUAL = 0
MERGED = 1


# ============================================================================
# NUMBA JIT-COMPILED LOD FUNCTIONS
# ============================================================================

@njit(parallel=True, cache=True)
def classify_boids(
    positions: np.ndarray,
    teams: np.ndarray,
    status: np.ndarray,
    keys: np.ndarray,
    min_x: float,
    min_y: float,
    max_x: float,
    max_y: float,
    merge_margin: float,
    split_margin: float,
    meta_cell: float,
    dim_x: int,
    dim_y: int,
    num_teams: int,
    discard_key: int,
    num_boids: int
):
    """
    Update merge state with hysteresis and compute each boid's meta key.

    Individuals merge once outside the view grown by merge_margin; merged
    boids split once back inside the view grown by split_margin.
    """
    for i in prange(num_boids):
        px = positions[i, 0]
        py = positions[i, 1]

        if status[i] == INDIVIDUAL:
            if (px < min_x - merge_margin or px > max_x + merge_margin or
                    py < min_y - merge_margin or py > max_y + merge_margin):
                status[i] = MERGED
        else:
            if (px >= min_x - split_margin and px <= max_x + split_margin and
                    py >= min_y - split_margin and py <= max_y + split_margin):
                status[i] = INDIVIDUAL

        if status[i] == MERGED:
            gx = int(math.floor(px / meta_cell)) + dim_x // 2
            gy = int(math.floor(py / meta_cell)) + dim_y // 2
            gx = max(0, min(gx, dim_x - 1))
            gy = max(0, min(gy, dim_y - 1))
            team = max(0, min(teams[i], num_teams - 1))
            keys[i] = (dim_x * gy + gx) * num_teams + team
        else:
            keys[i] = discard_key


classify_boids_sequential = njit(classify_boids.py_func)


@njit(cache=True)
def build_meta_boids(
    sorted_indices: np.ndarray,
    offsets: np.ndarray,
    positions: np.ndarray,
    velocities: np.ndarray,
    num_teams: int,
    num_meta_keys: int,
    meta_positions: np.ndarray,
    meta_velocities: np.ndarray,
    meta_counts: np.ndarray,
    meta_teams: np.ndarray,
    key_slots: np.ndarray,
    state: np.ndarray
):
    """Average every non-empty (cell, team) key into a meta-boid slot."""
    capacity = meta_counts.shape[0]
    num_meta = 0
    overflow = 0
    for k in range(num_meta_keys):
        key_slots[k] = -1
        start = offsets[k]
        end = offsets[k + 1]
        count = end - start
        if count == 0:
            continue
        if num_meta >= capacity:
            overflow += 1
            continue

        sx, sy, svx, svy = 0.0, 0.0, 0.0, 0.0
        for s in range(start, end):
            j = sorted_indices[s]
            sx += positions[j, 0]
            sy += positions[j, 1]
            svx += velocities[j, 0]
            svy += velocities[j, 1]

        meta_positions[num_meta, 0] = sx / count
        meta_positions[num_meta, 1] = sy / count
        meta_velocities[num_meta, 0] = svx / count
        meta_velocities[num_meta, 1] = svy / count
        meta_counts[num_meta] = count
        meta_teams[num_meta] = k % num_teams
        key_slots[k] = num_meta
        num_meta += 1

    state[0] = num_meta
    state[1] = overflow


@njit(parallel=True, cache=True)
def follow_meta_boids(keys, status, key_slots, meta_velocities, velocities, discard_key: int,
                      min_speed: float, max_speed: float, num_boids: int):
    """Merged boids adopt their meta-boid's mean velocity, clamped to the speed limits."""
    for i in prange(num_boids):
        if status[i] != MERGED:
            continue
        k = keys[i]
        if k == discard_key:
            continue
        slot = key_slots[k]
        if slot >= 0:
            vx, vy = limit_speed(meta_velocities[slot, 0], meta_velocities[slot, 1],
                                 min_speed, max_speed)
            velocities[i, 0] = vx
            velocities[i, 1] = vy


follow_meta_boids_sequential = njit(follow_meta_boids.py_func)


# ============================================================================
# LOD AGGREGATOR
# ============================================================================

class LODAggregator:
    """Merges boids outside the view into per-cell, per-team meta-boids."""

    def __init__(self, num_boids: int, base_cell: float, x_bound: float, y_bound: float,
                 num_teams: int = 2, cell_multiplier: int = 4, padding: int = 10,
                 margin_cells: float = 3.0, min_meta_boids: int = 1000,
                 meta_boid_divisor: int = 20, block_size: int = BLOCK_SIZE,
                 min_speed: float = 0.0, max_speed: float = 1.0e9):
        self.num_boids = num_boids
        self.min_speed = float(min_speed)
        self.max_speed = float(max_speed)
        self.num_teams = max(1, num_teams)
        self.meta_cell = float(base_cell * cell_multiplier)
        self.dim_x = int(math.floor(2.0 * x_bound / self.meta_cell)) + padding
        self.dim_y = int(math.floor(2.0 * y_bound / self.meta_cell)) + padding
        self.num_meta_keys = self.dim_x * self.dim_y * self.num_teams
        self.discard_key = self.num_meta_keys

        self.merge_margin = float(margin_cells * base_cell)
        self.split_margin = self.merge_margin * 0.5

        self.capacity = max(num_boids // meta_boid_divisor, min_meta_boids)
        self.meta_positions = np.zeros((self.capacity, 2), dtype=np.float64)
        self.meta_velocities = np.zeros((self.capacity, 2), dtype=np.float64)
        self.meta_counts = np.zeros(self.capacity, dtype=np.int32)
        self.meta_teams = np.zeros(self.capacity, dtype=np.int32)

        self.keys = np.zeros(num_boids, dtype=np.int32)
        self._key_slots = np.full(self.num_meta_keys, -1, dtype=np.int32)
        self._state = np.zeros(2, dtype=np.int64)
        self.sorter = CountingSort(num_boids, self.num_meta_keys + 1, block_size)

        self.num_meta = 0
        self.overflow = 0

    def update(self, positions: np.ndarray, velocities: np.ndarray, teams: np.ndarray,
               status: np.ndarray, view, parallel: bool = True) -> int:
        """
        Refresh merge state and meta-boids for a view rectangle.

        Args:
            view: (min_x, min_y, max_x, max_y) of the visible region
            velocities: Written in place for merged boids

        Returns:
            Number of meta-boids
        """
        min_x, min_y, max_x, max_y = (float(v) for v in view)
        classify = classify_boids if parallel else classify_boids_sequential
        follow = follow_meta_boids if parallel else follow_meta_boids_sequential

        classify(positions, teams, status, self.keys, min_x, min_y, max_x, max_y,
                 self.merge_margin, self.split_margin, self.meta_cell, self.dim_x, self.dim_y,
                 self.num_teams, self.discard_key, self.num_boids)
        self.sorter.sort(self.keys, parallel)

        build_meta_boids(
            self.sorter.sorted_indices, self.sorter.offsets, positions, velocities,
            self.num_teams, self.num_meta_keys, self.meta_positions, self.meta_velocities,
            self.meta_counts, self.meta_teams, self._key_slots, self._state
        )
        self.num_meta = int(self._state[0])
        self.overflow = int(self._state[1])

        follow(self.keys, status, self._key_slots, self.meta_velocities, velocities,
               self.discard_key, self.min_speed, self.max_speed, self.num_boids)
        return self.num_meta

    def reset(self, status: np.ndarray):
        status.fill(INDIVIDUAL)
        self.num_meta = 0
        self.overflow = 0

    def meta_boids(self):
        """Views of the live meta-boid arrays (positions, velocities, counts, teams)."""
        k = self.num_meta
        return (self.meta_positions[:k], self.meta_velocities[:k],
                self.meta_counts[:k], self.meta_teams[:k])
