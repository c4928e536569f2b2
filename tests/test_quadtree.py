import numpy as np
import pytest

from boids.quadtree import QuadTree, get_quadrant, get_quadrant_center


def brute_force(positions, point, radius):
    d = np.hypot(positions[:, 0] - point[0], positions[:, 1] - point[1])
    return np.flatnonzero(d < radius)


def test_quadrant_convention():
    assert get_quadrant(-1.0, -1.0, 0.0, 0.0) == 0
    assert get_quadrant(1.0, -1.0, 0.0, 0.0) == 1
    assert get_quadrant(-1.0, 1.0, 0.0, 0.0) == 2
    assert get_quadrant(1.0, 1.0, 0.0, 0.0) == 3
    # Points on the dividing lines go to the positive side
    assert get_quadrant(0.0, 0.0, 0.0, 0.0) == 3
    assert get_quadrant_center(1, 0.0, 0.0, 4.0) == (2.0, -2.0)
    assert get_quadrant_center(2, 0.0, 0.0, 4.0) == (-2.0, 2.0)


def test_rejects_bad_thresholds():
    with pytest.raises(ValueError):
        QuadTree(10, 5.0, max_boids_per_node=8, collapse_threshold=8)
    with pytest.raises(ValueError):
        QuadTree(10, 5.0, max_nodes=4)


@pytest.mark.parametrize("parallel", [True, False])
def test_full_build_invariants(parallel, rng):
    n = 2000
    positions = rng.uniform(-9.0, 9.0, (n, 2))
    tree = QuadTree(n, 10.0, max_depth=6, max_boids_per_node=16, collapse_threshold=8)

    tree.build(positions, parallel)

    assert tree.check_invariants(positions) == []
    assert tree.last_update == "full"
    for node in range(tree.node_count):
        if tree.is_leaf(node) and tree.depths[node] < 6:
            assert tree.counts[node] <= 16


def test_depth_cap_leaves_full_leaf():
    positions = np.full((100, 2), 1.0)
    tree = QuadTree(100, 8.0, max_depth=3, max_boids_per_node=8, collapse_threshold=4)

    tree.build(positions)

    leaf = tree.leaf_of(0)
    assert tree.depths[leaf] == 3
    assert tree.counts[leaf] == 100
    assert tree.occupancy_stats()["max_depth"] == 3
    assert tree.check_invariants(positions) == []


def test_pool_exhaustion_refuses_split(rng):
    positions = rng.uniform(1.0, 2.0, (200, 2))
    tree = QuadTree(200, 8.0, max_depth=6, max_boids_per_node=8, collapse_threshold=4, max_nodes=5)

    tree.build(positions)

    assert tree.node_count == 5
    assert tree.refusals >= 1
    assert tree.counts[tree.leaf_of(0)] == 200
    assert tree.check_invariants(positions) == []


def test_min_half_size_stops_subdivision():
    positions = np.full((50, 2), 0.3)
    tree = QuadTree(50, 8.0, max_depth=10, max_boids_per_node=8, collapse_threshold=4,
                    min_half_size=2.0)

    tree.build(positions)

    assert tree.half_sizes[tree.leaf_of(0)] >= 1.0
    assert tree.check_invariants(positions) == []


@pytest.mark.parametrize("parallel", [True, False])
def test_incremental_update_stays_consistent(parallel, rng):
    n = 1500
    positions = rng.uniform(-8.0, 8.0, (n, 2))
    tree = QuadTree(n, 10.0, max_depth=6, max_boids_per_node=16, collapse_threshold=8)
    tree.build(positions, parallel)

    for _ in range(5):
        positions = positions + rng.normal(0.0, 0.2, (n, 2))
        jumpers = rng.choice(n, 50, replace=False)
        positions[jumpers] = rng.uniform(-8.0, 8.0, (50, 2))
        tree.update_incremental(positions, parallel)

        assert tree.last_update == "incremental"
        assert tree.check_invariants(positions) == []

    for point in rng.uniform(-8.0, 8.0, (10, 2)):
        assert np.array_equal(tree.query(positions, point, 0.7), brute_force(positions, point, 0.7))


def test_collapse_uses_hysteresis():
    positions = np.array([
        [3.0, 3.0], [5.0, 3.0], [3.0, 5.0], [5.0, 5.0], [3.5, 3.5],
        [4.5, 4.5], [3.2, 4.8], [4.8, 3.2], [4.1, 4.1],
    ])
    tree = QuadTree(9, 8.0, max_depth=2, max_boids_per_node=8, collapse_threshold=4)
    tree.build(positions)
    upper_right = tree.first_child[0] + 3

    assert tree.node_count == 9
    assert not tree.is_leaf(upper_right)

    # Five boids left: below the split threshold but not below the collapse one
    positions = positions.copy()
    positions[:4] = [[-4.0, -4.0], [-4.5, -4.0], [-4.0, -4.5], [-3.5, -3.5]]
    tree.update_incremental(positions)
    assert not tree.is_leaf(upper_right)
    assert tree.last_collapses == 0

    positions[4:6] = [[-5.0, -5.0], [-3.0, -3.0]]
    tree.update_incremental(positions)
    assert tree.is_leaf(upper_right)
    assert tree.last_collapses == 1
    assert tree.counts[upper_right] == 3
    assert tree.counts[0] == 9
    assert tree.check_invariants(positions) == []


def test_update_cadence():
    positions = np.random.default_rng(7).uniform(-4.0, 4.0, (300, 2))
    tree = QuadTree(300, 5.0, max_boids_per_node=16, collapse_threshold=8, rebuild_interval=3)

    modes = [tree.update(positions) for _ in range(4)]

    assert modes == ["full", "incremental", "incremental", "full"]


def test_incremental_disabled_always_rebuilds():
    positions = np.random.default_rng(7).uniform(-4.0, 4.0, (300, 2))
    tree = QuadTree(300, 5.0, max_boids_per_node=16, collapse_threshold=8, incremental=False)

    assert [tree.update(positions) for _ in range(3)] == ["full"] * 3


@pytest.mark.parametrize("radius", [0.1, 0.5, 2.0])
def test_query_matches_brute_force(radius, rng):
    n = 2000
    positions = rng.uniform(-6.0, 6.0, (n, 2))
    tree = QuadTree(n, 7.5, max_depth=8, max_boids_per_node=8, collapse_threshold=4)
    tree.build(positions)

    for i in rng.choice(n, 20, replace=False):
        expected = brute_force(positions, positions[i], radius)
        assert np.array_equal(tree.query(positions, positions[i], radius), expected)
        own = tree.leaf_of(i)
        assert np.array_equal(tree.query(positions, positions[i], radius, own), expected)


def test_positions_outside_root_are_clamped():
    positions = np.array([[100.0, 0.0], [-100.0, -100.0], [0.0, 0.0]])
    tree = QuadTree(3, 4.0, max_boids_per_node=2, collapse_threshold=1)

    tree.build(positions)

    assert tree.check_invariants(positions) == []
    assert tree.counts[0] == 3


def test_occupancy_stats_histogram(rng):
    positions = rng.uniform(-4.0, 4.0, (500, 2))
    tree = QuadTree(500, 5.0, max_boids_per_node=16, collapse_threshold=8)
    tree.build(positions)

    stats = tree.occupancy_stats()

    assert sum(stats["histogram"].values()) == stats["leaves"]
    assert stats["max_leaf_count"] <= 16
    assert stats["allocated"] == tree.node_count
    assert stats["last_update"] == "full"


@pytest.mark.parametrize("parallel", [True, False])
def test_boid_on_upper_leaf_edge_moves_to_neighbor(parallel):
    """Incremental relocation puts edge boids where a fresh build would."""
    positions = np.array([[-1.0, -1.0], [1.0, 1.0], [-1.0, 1.0], [1.0, -1.0]])
    tree = QuadTree(4, 8.0, max_depth=1, max_boids_per_node=3, collapse_threshold=1)
    tree.build(positions, parallel)
    lower_left = tree.first_child[0]
    assert tree.leaf_of(0) == lower_left

    positions = positions.copy()
    positions[0] = [0.0, -1.0]
    tree.update_incremental(positions, parallel)

    fresh = QuadTree(4, 8.0, max_depth=1, max_boids_per_node=3, collapse_threshold=1)
    fresh.build(positions, parallel)
    assert tree.leaf_of(0) == lower_left + 1
    assert tree.leaf_of(0) == fresh.leaf_of(0)
    assert tree.check_invariants(positions) == []


def test_boid_on_root_upper_edge_stays_put():
    positions = np.array([[-1.0, -1.0], [1.0, 1.0], [-1.0, 1.0], [7.0, 7.0]])
    tree = QuadTree(4, 8.0, max_depth=1, max_boids_per_node=3, collapse_threshold=1)
    tree.build(positions)
    corner = tree.leaf_of(3)

    positions = positions.copy()
    positions[3] = [8.0, 8.0]
    tree.update_incremental(positions)

    assert tree.leaf_of(3) == corner
    assert tree.last_moved == 0
    assert tree.check_invariants(positions) == []
