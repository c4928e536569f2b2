import numpy as np
import pytest

from boids.lod import INDIVIDUAL, MERGED, LODAggregator

VIEW = (-1.0, -1.0, 1.0, 1.0)


def aggregator(n, **kwargs):
    kwargs.setdefault("min_meta_boids", 16)
    return LODAggregator(n, 0.5, 10.0, 10.0, **kwargs)


@pytest.mark.parametrize("parallel", [True, False])
def test_merge_split_hysteresis(parallel):
    lod = aggregator(3)
    positions = np.array([[0.0, 0.0], [5.0, 0.0], [2.0, 0.0]])
    velocities = np.zeros((3, 2))
    teams = np.zeros(3, dtype=np.int32)
    status = np.zeros(3, dtype=np.uint8)

    lod.update(positions, velocities, teams, status, VIEW, parallel)
    # Inside the view, far outside, and inside the merge margin
    assert status.tolist() == [INDIVIDUAL, MERGED, INDIVIDUAL]

    # A merged boid in the band between split and merge margins stays merged
    status[2] = MERGED
    lod.update(positions, velocities, teams, status, VIEW, parallel)
    assert status[2] == MERGED

    # Within the split margin it becomes individual again
    positions[1] = [1.5, 0.0]
    lod.update(positions, velocities, teams, status, VIEW, parallel)
    assert status[1] == INDIVIDUAL


@pytest.mark.parametrize("parallel", [True, False])
def test_meta_boids_average_each_team(parallel, rng):
    n = 10
    positions = rng.uniform(10.2, 11.8, (n, 2))
    velocities = rng.uniform(-2.0, 2.0, (n, 2))
    teams = np.array([0] * 6 + [1] * 4, dtype=np.int32)
    status = np.zeros(n, dtype=np.uint8)
    original = velocities.copy()
    lod = aggregator(n)

    num_meta = lod.update(positions, velocities, teams, status, VIEW, parallel)
    meta_pos, meta_vel, meta_counts, meta_teams = lod.meta_boids()

    assert num_meta == 2
    assert np.all(status == MERGED)
    assert meta_counts.tolist() == [6, 4]
    assert meta_teams.tolist() == [0, 1]
    np.testing.assert_allclose(meta_pos[0], positions[:6].mean(axis=0))
    np.testing.assert_allclose(meta_pos[1], positions[6:].mean(axis=0))
    np.testing.assert_allclose(meta_vel[1], original[6:].mean(axis=0))
    # Merged boids follow their meta-boid
    np.testing.assert_allclose(velocities[:6], np.tile(meta_vel[0], (6, 1)))
    np.testing.assert_allclose(velocities[6:], np.tile(meta_vel[1], (4, 1)))


def test_meta_capacity_overflow_is_counted():
    positions = np.array([[8.0, 8.0], [-8.0, -8.0], [8.0, -8.0]])
    lod = aggregator(3, min_meta_boids=2)

    lod.update(positions, np.zeros((3, 2)), np.zeros(3, dtype=np.int32),
               np.zeros(3, dtype=np.uint8), VIEW)

    assert lod.num_meta == 2
    assert lod.overflow == 1


def test_capacity_scales_with_population():
    assert aggregator(100, min_meta_boids=1000).capacity == 1000
    assert aggregator(100000, min_meta_boids=1000).capacity == 5000


def test_reset_restores_individuals():
    lod = aggregator(4)
    status = np.ones(4, dtype=np.uint8)

    lod.reset(status)

    assert np.all(status == INDIVIDUAL)
    assert lod.num_meta == 0


def test_flock_merges_offscreen_boids(make_flock, rng):
    n = 500
    flock = make_flock(rng.uniform(-9.0, 9.0, (n, 2)), rng.uniform(-2.0, 2.0, (n, 2)),
                       rng.integers(0, 2, n))
    flock.set_lod_enabled(True)
    flock.set_view((0.0, 0.0), 2.0, 2.0)

    flock.update(0.02)
    state = flock.render_state()

    merged = int(np.count_nonzero(flock.status))
    assert merged > 0
    assert len(state[4]) == flock.lod.num_meta > 0
    assert int(state[6].sum()) == merged

    flock.set_lod_enabled(False)
    assert np.count_nonzero(flock.status) == 0


@pytest.mark.parametrize("parallel", [True, False])
def test_followed_velocity_respects_speed_limits(parallel):
    """Opposing merged boids average to zero; they still leave at min_speed."""
    positions = np.array([[8.0, 8.0], [8.1, 8.0], [-8.0, 8.0]])
    velocities = np.array([[1.8, 0.0], [-1.8, 0.0], [40.0, 0.0]])
    status = np.zeros(3, dtype=np.uint8)
    lod = aggregator(3, min_speed=1.5, max_speed=2.0)

    lod.update(positions, velocities, np.zeros(3, dtype=np.int32), status, VIEW, parallel)

    assert np.all(status == MERGED)
    np.testing.assert_allclose(velocities[0], [1.5, 0.0])
    np.testing.assert_allclose(velocities[1], [1.5, 0.0])
    np.testing.assert_allclose(velocities[2], [2.0, 0.0])


def test_flock_speed_clamp_holds_with_lod(make_flock):
    flock = make_flock([[8.0, 8.0], [8.1, 8.0]], [[1.8, 0.0], [-1.8, 0.0]])
    flock.set_lod_enabled(True)
    flock.set_view((0.0, 0.0), 2.0, 2.0)
    s = flock.settings

    flock.update(0.02)

    v = np.hypot(flock.velocities[:, 0], flock.velocities[:, 1])
    assert np.all(flock.status == MERGED)
    assert np.all(v >= s.min_speed - 1e-9)
    assert np.all(v <= s.max_speed + 1e-9)
