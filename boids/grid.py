"""Uniform grid spatial index built with the shared counting sort."""

import math
import numpy as np
from numba import njit, prange

from .sorting import CountingSort, BLOCK_SIZE


# ============================================================================
# NUMBA JIT-COMPILED SPATIAL GRID FUNCTIONS
# ============================================================================

@njit(cache=True)
def cell_coords(x: float, y: float, cell_size: float, dim_x: int, dim_y: int):
    """Convert a 2D position to clamped integer cell coordinates."""
    gx = int(math.floor(x / cell_size)) + dim_x // 2
    gy = int(math.floor(y / cell_size)) + dim_y // 2

    # Keep one cell of margin so the 3x3 stencil never leaves the table
    gx = max(1, min(gx, dim_x - 2))
    gy = max(1, min(gy, dim_y - 2))
    return gx, gy


@njit(cache=True)
def cell_id(x: float, y: float, cell_size: float, dim_x: int, dim_y: int) -> int:
    gx, gy = cell_coords(x, y, cell_size, dim_x, dim_y)
    return dim_x * gy + gx


@njit(parallel=True, cache=True)
def assign_cells(positions: np.ndarray, cell_ids: np.ndarray, cell_size: float,
                 dim_x: int, dim_y: int, num_boids: int):
    """Assign each boid to a cell."""
    for i in prange(num_boids):
        cell_ids[i] = cell_id(positions[i, 0], positions[i, 1], cell_size, dim_x, dim_y)


assign_cells_sequential = njit(assign_cells.py_func)


@njit(cache=True)
def grid_query(positions: np.ndarray, sorted_indices: np.ndarray, offsets: np.ndarray,
               px: float, py: float, radius: float, cell_size: float,
               dim_x: int, dim_y: int, out: np.ndarray) -> int:
    """
    Collect indices of boids strictly within radius of (px, py).

    Returns:
        Number of indices written to out
    """
    reach = max(1, int(math.ceil(radius / cell_size)))
    gx, gy = cell_coords(px, py, cell_size, dim_x, dim_y)
    x0 = max(0, gx - reach)
    x1 = min(dim_x - 1, gx + reach)
    y0 = max(0, gy - reach)
    y1 = min(dim_y - 1, gy + reach)
    r_sq = radius * radius

    found = 0
    for row in range(y0, y1 + 1):
        first = offsets[row * dim_x + x0]
        last = offsets[row * dim_x + x1 + 1]
        for s in range(first, last):
            j = sorted_indices[s]
            dx = positions[j, 0] - px
            dy = positions[j, 1] - py
            if dx * dx + dy * dy < r_sq and found < out.shape[0]:
                out[found] = j
                found += 1
    return found


# ============================================================================
# UNIFORM GRID
# ============================================================================

class UniformGrid:
    """
    Square cells the size of the interaction radius over the padded bounds.

    After build(), boids of cell c occupy sorted_indices[offsets[c]:offsets[c + 1]],
    so a row of three neighbouring cells is a single contiguous range.
    """

    def __init__(self, num_boids: int, cell_size: float, x_bound: float, y_bound: float,
                 padding: int = 30, block_size: int = BLOCK_SIZE):
        self.num_boids = num_boids
        self.cell_size = float(cell_size)
        self.dim_x = int(math.floor(2.0 * x_bound / cell_size)) + padding
        self.dim_y = int(math.floor(2.0 * y_bound / cell_size)) + padding
        self.total_cells = self.dim_x * self.dim_y

        self.cell_ids = np.zeros(num_boids, dtype=np.int32)
        self.sorter = CountingSort(num_boids, self.total_cells, block_size)

    @property
    def offsets(self) -> np.ndarray:
        return self.sorter.offsets

    @property
    def sorted_indices(self) -> np.ndarray:
        return self.sorter.sorted_indices

    def build(self, positions: np.ndarray, parallel: bool = True):
        """Rebuild cell assignment, offsets and the sorted index array."""
        assign = assign_cells if parallel else assign_cells_sequential
        assign(positions, self.cell_ids, self.cell_size, self.dim_x, self.dim_y, self.num_boids)
        self.sorter.sort(self.cell_ids, parallel)

    def cell_of(self, x: float, y: float) -> int:
        return int(cell_id(float(x), float(y), self.cell_size, self.dim_x, self.dim_y))

    def cell_counts(self) -> np.ndarray:
        return np.diff(self.offsets)

    def cell_members(self, cell: int) -> np.ndarray:
        start, end = self.sorter.key_range(cell)
        return self.sorted_indices[start:end]

    def query(self, positions: np.ndarray, point, radius: float) -> np.ndarray:
        """Indices of boids strictly within radius of point (sorted ascending)."""
        out = np.empty(self.num_boids, dtype=np.int32)
        found = grid_query(
            positions, self.sorted_indices, self.offsets,
            float(point[0]), float(point[1]), float(radius), self.cell_size,
            self.dim_x, self.dim_y, out
        )
        return np.sort(out[:found])
