"""Static circular obstacles packed into a fixed-capacity array."""

import numpy as np
from dataclasses import dataclass
from typing import Iterable, List, Tuple


@dataclass
class Obstacle:
    """A repelling disc. Boids inside radius are pushed out, harder near the center."""
    position: Tuple[float, float]
    radius: float = 1.0
    strength: float = 1.0


def obstacles_from_config(entries: Iterable) -> List[Obstacle]:
    """Build obstacles from (x, y, radius, strength) tuples."""
    return [Obstacle((float(x), float(y)), float(r), float(s)) for x, y, r, s in entries]


def pack_obstacles(obstacles: Iterable[Obstacle], max_obstacles: int) -> Tuple[np.ndarray, int]:
    """
    Pack obstacles as rows of (x, y, radius, strength).

    Obstacles past max_obstacles are dropped, as are ones with a non-positive
    radius. Returns the (max_obstacles, 4) array and the number of live rows.
    """
    packed = np.zeros((max(max_obstacles, 1), 4), dtype=np.float64)
    count = 0
    for ob in obstacles:
        if count >= max_obstacles:
            print(f"[Obstacles] Capacity {max_obstacles} reached, ignoring the rest")
            break
        if ob.radius <= 0:
            continue
        packed[count] = (ob.position[0], ob.position[1], ob.radius, ob.strength)
        count += 1
    return packed, count
