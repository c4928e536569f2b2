"""Boid record layout shared with external entity buffers."""

import numpy as np
from typing import Tuple


# Fixed-stride record: 4 floats + 1 uint = 20 bytes
BOID_DTYPE = np.dtype([
    ("pos_x", np.float32),
    ("pos_y", np.float32),
    ("vel_x", np.float32),
    ("vel_y", np.float32),
    ("team", np.uint32),
])


def pack_records(positions: np.ndarray, velocities: np.ndarray, teams: np.ndarray) -> np.ndarray:
    """Convert SoA arrays into a BOID_DTYPE record buffer."""
    records = np.empty(len(positions), dtype=BOID_DTYPE)
    records["pos_x"] = positions[:, 0]
    records["pos_y"] = positions[:, 1]
    records["vel_x"] = velocities[:, 0]
    records["vel_y"] = velocities[:, 1]
    records["team"] = teams
    return records


def unpack_records(records: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Convert a BOID_DTYPE record buffer into (positions, velocities, teams)."""
    if records.dtype != BOID_DTYPE:
        raise ValueError(f"Expected record dtype {BOID_DTYPE}, got {records.dtype}")
    n = len(records)
    positions = np.empty((n, 2), dtype=np.float64)
    velocities = np.empty((n, 2), dtype=np.float64)
    positions[:, 0] = records["pos_x"]
    positions[:, 1] = records["pos_y"]
    velocities[:, 0] = records["vel_x"]
    velocities[:, 1] = records["vel_y"]
    teams = records["team"].astype(np.int32)
    return positions, velocities, teams
