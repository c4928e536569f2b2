import numpy as np
import pytest

from boids import ExecutionMode, Obstacle, SpatialBackend
from boids.forces import limit_speed

BACKENDS = [SpatialBackend.GRID, SpatialBackend.QUADTREE]
MODES = [ExecutionMode.PARALLEL, ExecutionMode.SEQUENTIAL]


def speeds(velocities):
    return np.hypot(velocities[:, 0], velocities[:, 1])


@pytest.mark.parametrize("backend", BACKENDS)
def test_zero_dt_keeps_positions(backend, make_flock, rng):
    positions = rng.uniform(-8.0, 8.0, (200, 2))
    velocities = rng.uniform(-2.0, 2.0, (200, 2))
    flock = make_flock(positions, velocities, rng.integers(0, 2, 200), backend=backend)

    flock.update(0.0)

    assert np.array_equal(flock.positions, positions)


@pytest.mark.parametrize("backend", BACKENDS)
@pytest.mark.parametrize("mode", MODES)
def test_speed_is_clamped_for_interior_boids(backend, mode, make_flock, rng):
    n = 300
    flock = make_flock(rng.uniform(-5.0, 5.0, (n, 2)), rng.uniform(-3.0, 3.0, (n, 2)),
                       rng.integers(0, 2, n), backend=backend, mode=mode)
    s = flock.settings

    flock.update(0.02)

    v = speeds(flock.velocities)
    assert np.all(v >= s.min_speed - 1e-9)
    assert np.all(v <= s.max_speed + 1e-9)


def test_limit_speed_stalled_boid_heads_along_x():
    assert limit_speed(0.0, 0.0, 1.5, 2.0) == (1.5, 0.0)


def test_stalled_boid_without_neighbors(make_flock):
    flock = make_flock([[0.0, 0.0]], [[0.0, 0.0]])

    flock.update(0.02)

    assert flock.velocities[0] == pytest.approx([flock.settings.min_speed, 0.0])
    assert flock.positions[0] == pytest.approx([flock.settings.min_speed * 0.02, 0.0])


@pytest.mark.parametrize("backend", BACKENDS)
def test_boundary_steers_back(backend, make_flock):
    flock = make_flock([[0.0, 0.0], [0.0, 0.0]], backend=backend)
    s = flock.settings
    flock.store.front.positions[:] = [[s.x_bound + 0.01, 0.0], [0.0, -(s.y_bound + 0.01)]]
    flock.store.front.velocities[:] = [[1.8, 0.0], [0.0, -1.8]]

    flock.update(0.02)

    assert flock.velocities[0, 0] == pytest.approx(1.8 - 0.02 * s.turn_speed)
    assert flock.velocities[1, 1] == pytest.approx(-1.8 + 0.02 * s.turn_speed)


@pytest.mark.parametrize("backend", BACKENDS)
def test_cohesion_pulls_toward_centroid(backend, make_flock):
    corners = np.array([[0.0, 0.0], [1.0, 0.0], [0.0, 1.0], [1.0, 1.0]])
    flock = make_flock(corners, backend=backend, visual_range=2.0,
                       cohesion=1.0, separation=0.0, alignment=0.0)

    flock.update(0.02)

    for i, p in enumerate(corners):
        v = flock.velocities[i]
        to_center = np.array([0.5, 0.5]) - p
        assert v[0] * to_center[1] - v[1] * to_center[0] == pytest.approx(0.0, abs=1e-9)
        assert np.dot(v, to_center) > 0


@pytest.mark.parametrize("backend", BACKENDS)
def test_other_team_separation_is_scaled(backend, make_flock):
    def push(teams):
        flock = make_flock([[0.0, 0.0], [0.075, 0.0]], teams=teams, backend=backend,
                           cohesion=0.0, alignment=0.0, separation=1.0,
                           min_speed=0.0, max_speed=1000.0, inter_team_repulsion=2.0)
        flock.update(0.01)
        return flock.velocities[0].copy()

    same = push([0, 0])
    other = push([0, 1])

    assert same[0] < 0
    assert same[1] == pytest.approx(0.0)
    assert other[0] == pytest.approx(2.0 * same[0], rel=1e-6)


def test_obstacle_pushes_boid_out(make_flock):
    flock = make_flock([[0.5, 0.0]], [[0.0, 1.5]],
                       obstacles=[Obstacle((0.0, 0.0), radius=1.0, strength=1.0)])
    weight = flock.settings.obstacle_avoidance_weight

    flock.update(0.02)

    assert flock.velocities[0, 0] == pytest.approx(0.5 * weight * 0.02, rel=1e-3)


def test_obstacle_outside_radius_is_ignored(make_flock):
    flock = make_flock([[3.0, 0.0]], [[0.0, 1.5]],
                       obstacles=[Obstacle((0.0, 0.0), radius=1.0, strength=1.0)])

    flock.update(0.02)

    assert flock.velocities[0] == pytest.approx([0.0, 1.5])


def test_merged_boid_skips_neighbors(make_flock):
    flock = make_flock([[0.0, 0.0], [0.05, 0.0]], [[1.6, 0.0], [0.0, 1.6]])
    flock.store.status[0] = 1

    flock.update(0.02)

    assert flock.velocities[0] == pytest.approx([1.6, 0.0])
    assert flock.velocities[1, 0] != pytest.approx(0.0)


def test_neighbor_sets_agree_across_backends(make_flock):
    rng = np.random.default_rng(42)
    n = 50
    positions = rng.uniform(-1.0, 1.0, (n, 2))
    teams = rng.integers(0, 2, n)
    flock = make_flock(positions, teams=teams, max_boids_per_node=4, collapse_threshold=2)
    r = flock.settings.visual_range

    grid_sets = [flock.neighbors_of(i) for i in range(n)]
    flock.set_backend(SpatialBackend.QUADTREE)
    tree_sets = [flock.neighbors_of(i) for i in range(n)]

    for i in range(n):
        d = np.hypot(*(positions - positions[i]).T)
        expected = set(np.flatnonzero((d > 0) & (d < r) & (teams == teams[i])).tolist())
        assert grid_sets[i] == expected
        assert tree_sets[i] == expected


def test_backends_produce_the_same_step(make_flock, rng):
    n = 400
    positions = rng.uniform(-3.0, 3.0, (n, 2))
    velocities = rng.uniform(-2.0, 2.0, (n, 2))
    teams = rng.integers(0, 2, n)

    grid = make_flock(positions, velocities, teams, backend=SpatialBackend.GRID)
    tree = make_flock(positions, velocities, teams, backend=SpatialBackend.QUADTREE,
                      max_boids_per_node=8, collapse_threshold=4)
    grid.update(0.02)
    tree.update(0.02)

    np.testing.assert_allclose(grid.positions, tree.positions, atol=1e-9)
    np.testing.assert_allclose(grid.velocities, tree.velocities, atol=1e-7)


@pytest.mark.parametrize("backend", BACKENDS)
def test_parallel_matches_sequential(backend, make_flock, rng):
    n = 400
    positions = rng.uniform(-3.0, 3.0, (n, 2))
    velocities = rng.uniform(-2.0, 2.0, (n, 2))
    teams = rng.integers(0, 2, n)

    par = make_flock(positions, velocities, teams, backend=backend, mode=ExecutionMode.PARALLEL)
    seq = make_flock(positions, velocities, teams, backend=backend, mode=ExecutionMode.SEQUENTIAL)
    for _ in range(3):
        par.update(0.02)
        seq.update(0.02)

    np.testing.assert_allclose(par.positions, seq.positions, atol=1e-7)
