import numpy as np
import pytest

from boids import BOID_DTYPE
from boids.boid import pack_records, unpack_records
from boids.store import EntityStore


def test_record_layout():
    assert BOID_DTYPE.itemsize == 20
    assert BOID_DTYPE.names == ("pos_x", "pos_y", "vel_x", "vel_y", "team")


def test_records_carry_state_through_float32():
    positions = np.array([[1.0, -2.0], [0.1, 3.5]])
    velocities = np.array([[0.5, 0.25], [-1.0, 0.0]])
    teams = np.array([1, 0], dtype=np.int32)

    pos, vel, back_teams = unpack_records(pack_records(positions, velocities, teams))

    assert pos.dtype == np.float64
    np.testing.assert_allclose(pos, positions, rtol=1e-6)
    np.testing.assert_allclose(vel, velocities, rtol=1e-6)
    assert back_teams.tolist() == [1, 0]


def test_unpack_rejects_foreign_dtype():
    with pytest.raises(ValueError):
        unpack_records(np.zeros(3, dtype=np.float32))


def test_pack_records_keeps_teams():
    positions = np.zeros((3, 2))
    teams = np.array([0, 1, 2], dtype=np.int32)
    records = pack_records(positions, positions, teams)
    assert records["team"].tolist() == [0, 1, 2]


def test_store_swap_and_seed():
    store = EntityStore(8)
    store.seed_random(np.random.default_rng(0), 5.0, 3.0, 2.0, team_ratio=0.5, num_teams=3)

    assert store.front.teams.tolist() == [0, 0, 0, 0, 1, 2, 1, 2]
    np.testing.assert_array_equal(store.front.positions, store.back.positions)

    front = store.front
    store.swap()
    assert store.back is front
    assert store.current_index == 1
