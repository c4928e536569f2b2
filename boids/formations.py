"""Groups of boids steered toward per-boid formation targets."""

import numpy as np
from dataclasses import dataclass
from enum import Enum
from typing import List, Tuple


class Formation(Enum):
    SQUARE = "square"
    LINE = "line"
    COLUMN = "column"
    WEDGE = "wedge"
    SCATTERED = "scattered"


@dataclass
class Group:
    """A contiguous range of boids that moves to a target as one formation."""
    group_id: int
    start: int
    count: int
    target: Tuple[float, float] = (0.0, 0.0)
    formation: Formation = Formation.SQUARE
    size: Tuple[float, float] = (2.0, 2.0)

    @property
    def stop(self) -> int:
        return self.start + self.count


def make_groups(num_boids: int, group_size: int, max_groups: int, rng: np.random.Generator,
                formation: Formation = Formation.SQUARE,
                size: Tuple[float, float] = (2.0, 2.0),
                target_extent: float = 5.0) -> List[Group]:
    """Split the first boids into up to max_groups groups with random targets."""
    groups = []
    for g in range(max_groups):
        start = g * group_size
        count = min(group_size, num_boids - start)
        if count <= 0:
            break
        target = tuple(rng.uniform(-target_extent, target_extent, 2))
        groups.append(Group(g, start, count, target, formation, tuple(size)))
    return groups


def wedge_rows(local: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Row and width of each slot when rows hold 1, 2, 3, ... slots."""
    row = np.floor((np.sqrt(8.0 * local + 1.0) - 1.0) / 2.0).astype(np.int64)
    # Floating point can land one row off either way
    row[row * (row + 1) // 2 > local] -= 1
    row[(row + 1) * (row + 2) // 2 <= local] += 1
    return row, row + 1


def formation_offsets(formation: Formation, count: int, spread: float,
                      size: Tuple[float, float], group_id: int = 0, start: int = 0) -> np.ndarray:
    """
    Offsets from the group target for each of count boids.

    Args:
        formation: Layout to use
        count: Number of boids in the group
        spread: Spacing between neighbouring slots (scaled by size)
        size: Per-axis formation scale
        group_id: Group id, seeds the scattered layout
        start: Index of the group's first boid, seeds the scattered layout

    Returns:
        (count, 2) float64 offsets
    """
    local = np.arange(count, dtype=np.int64)
    sx, sy = size
    offsets = np.zeros((count, 2), dtype=np.float64)
    if count == 0:
        return offsets

    if formation == Formation.SQUARE:
        cols = int(np.ceil(np.sqrt(count)))
        rows = int(np.ceil(count / cols))
        row, col = local // cols, local % cols
        offsets[:, 0] = (col - cols // 2) * spread * sx
        offsets[:, 1] = (row - rows // 2) * spread * sy
    elif formation == Formation.LINE:
        offsets[:, 0] = (local - count / 2.0) * spread * sx
    elif formation == Formation.COLUMN:
        offsets[:, 1] = (local - count / 2.0) * spread * sy
    elif formation == Formation.WEDGE:
        row, width = wedge_rows(local)
        pos_in_row = local - row * (row + 1) // 2
        offsets[:, 0] = (pos_in_row - width / 2.0) * spread * sx
        offsets[:, 1] = -row * spread * sy
    elif formation == Formation.SCATTERED:
        for k in range(count):
            rng = np.random.default_rng(start + k + group_id * 1000)
            u = rng.random(2)
            offsets[k, 0] = (u[0] - 0.5) * sx
            offsets[k, 1] = (u[1] - 0.5) * sy
    else:
        raise ValueError(f"Unknown formation: {formation}")

    return offsets


def formation_targets(group: Group, spread: float) -> np.ndarray:
    """Absolute target position for every boid of the group."""
    offsets = formation_offsets(group.formation, group.count, spread, group.size,
                                group.group_id, group.start)
    return offsets + np.asarray(group.target, dtype=np.float64)


def assign_group(targets: np.ndarray, groups: np.ndarray, group: Group, spread: float):
    """Write a group's targets and membership into the shared payload arrays."""
    targets[group.start:group.stop] = formation_targets(group, spread)
    groups[group.start:group.stop] = group.group_id
