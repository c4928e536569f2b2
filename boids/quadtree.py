"""
Adaptive quadtree over boid positions - flattened node pool.

Node structure (stored in flat arrays of fixed capacity):
- center_x, center_y: node center
- half_size: half the width of the node
- first_child: base index of four contiguous child slots (-1 for leaves)
- start, count: range of the node's boids in the sorted index array (leaves)
- flags: LEAF and ACTIVE bits; leaf-ness is never inferred from first_child
- depth, parent

Quadrant q of a node is (x >= cx) | (y >= cy) << 1, so child q sits at
center + (+/- half/2) with bit 1 selecting +x and bit 2 selecting +y.

Full builds run as a sequence of passes: locate every boid in the root,
count, subdivide over-threshold leaves, redistribute their boids, recount,
repeat up to max_depth, then re-locate everyone from the root, aggregate
counts bottom-up and counting-sort the boids by leaf. Between full rebuilds
the tree is maintained incrementally: only boids that left their leaf are
re-located, then leaves are split or merged to restore occupancy bounds.
"""

import numpy as np
from numba import njit, prange

from .sorting import CountingSort, BLOCK_SIZE


LEAF = 1
ACTIVE = 2
LIVE_LEAF = LEAF | ACTIVE

STACK_SIZE = 128

# Pool state slots
NODE_COUNT = 0
REFUSALS = 1


# ============================================================================
# NODE HELPERS
# ============================================================================

@njit(cache=True)
def get_quadrant(px: float, py: float, cx: float, cy: float) -> int:
    """Determine which quadrant a point falls into relative to center."""
    quadrant = 0
    if px >= cx:
        quadrant |= 1
    if py >= cy:
        quadrant |= 2
    return quadrant


@njit(cache=True)
def get_quadrant_center(quadrant: int, cx: float, cy: float, half_size: float):
    """Get the center of a child quadrant."""
    quarter = half_size * 0.5
    new_cx = cx + quarter if (quadrant & 1) else cx - quarter
    new_cy = cy + quarter if (quadrant & 2) else cy - quarter
    return new_cx, new_cy


@njit(cache=True)
def clamp_to_root(px: float, py: float, centers: np.ndarray, half_sizes: np.ndarray):
    h = half_sizes[0]
    cx = centers[0, 0]
    cy = centers[0, 1]
    return min(max(px, cx - h), cx + h), min(max(py, cy - h), cy + h)


@njit(cache=True)
def descend_from(node: int, px: float, py: float, centers: np.ndarray,
                 first_child: np.ndarray, flags: np.ndarray) -> int:
    """Walk down from node to the leaf containing the point."""
    while (flags[node] & LEAF) == 0:
        q = get_quadrant(px, py, centers[node, 0], centers[node, 1])
        node = first_child[node] + q
    return node


@njit(cache=True)
def init_root(centers, half_sizes, first_child, starts, counts, flags, depths, parents,
              occupancy, pool_state, half_size: float):
    """Reset the pool to a single empty root leaf at the origin."""
    centers[0, 0] = 0.0
    centers[0, 1] = 0.0
    half_sizes[0] = half_size
    first_child[0] = -1
    starts[0] = 0
    counts[0] = 0
    flags[0] = LIVE_LEAF
    depths[0] = 0
    parents[0] = -1
    occupancy[0] = 0
    pool_state[NODE_COUNT] = 1
    pool_state[REFUSALS] = 0


# ============================================================================
# PER-BOID PASSES
# ============================================================================

@njit(parallel=True, cache=True)
def locate_all(positions, boid_nodes, centers, half_sizes, first_child, flags, num_boids: int):
    """Descend every boid from the root to its leaf."""
    for i in prange(num_boids):
        px, py = clamp_to_root(positions[i, 0], positions[i, 1], centers, half_sizes)
        boid_nodes[i] = descend_from(0, px, py, centers, first_child, flags)


@njit(parallel=True, cache=True)
def redistribute(positions, boid_nodes, old_nodes, moved, centers, half_sizes,
                 first_child, flags, num_boids: int):
    """Push boids whose node was just subdivided down into the new children."""
    for i in prange(num_boids):
        node = boid_nodes[i]
        if flags[node] & LEAF:
            moved[i] = 0
        else:
            px, py = clamp_to_root(positions[i, 0], positions[i, 1], centers, half_sizes)
            old_nodes[i] = node
            boid_nodes[i] = descend_from(node, px, py, centers, first_child, flags)
            moved[i] = 1


@njit(parallel=True, cache=True)
def track_moved(positions, prev_positions, boid_nodes, old_nodes, moved, centers,
                half_sizes, first_child, flags, num_boids: int):
    """
    Re-locate only the boids that left the bounds of their stored leaf.

    A leaf owns [c - h, c + h) on each axis, matching the >= quadrant test;
    its upper edge is closed only where it lies on the root's upper edge.
    """
    root_x1 = centers[0, 0] + half_sizes[0]
    root_y1 = centers[0, 1] + half_sizes[0]
    for i in prange(num_boids):
        x = positions[i, 0]
        y = positions[i, 1]
        node = boid_nodes[i]
        stale = (flags[node] & LIVE_LEAF) != LIVE_LEAF

        if not stale and x == prev_positions[i, 0] and y == prev_positions[i, 1]:
            moved[i] = 0
            continue

        px, py = clamp_to_root(x, y, centers, half_sizes)
        if not stale:
            h = half_sizes[node]
            cx = centers[node, 0]
            cy = centers[node, 1]
            x1 = cx + h
            y1 = cy + h
            stale = (px < cx - h or py < cy - h or px > x1 or py > y1
                     or (px == x1 and x1 < root_x1) or (py == y1 and y1 < root_y1))

        if stale:
            old_nodes[i] = node
            boid_nodes[i] = descend_from(0, px, py, centers, first_child, flags)
            moved[i] = 1
        else:
            moved[i] = 0


@njit(parallel=True, cache=True)
def reassign_collapsed(boid_nodes, flags, parents, num_boids: int):
    """Move boids of retired nodes up to the nearest live ancestor."""
    for i in prange(num_boids):
        node = boid_nodes[i]
        while (flags[node] & ACTIVE) == 0:
            node = parents[node]
        boid_nodes[i] = node


@njit(cache=True)
def apply_moves(moved, old_nodes, boid_nodes, occupancy, num_boids: int):
    """Shift occupancy from old to new leaf for every relocated boid."""
    for i in range(num_boids):
        if moved[i]:
            occupancy[old_nodes[i]] -= 1
            occupancy[boid_nodes[i]] += 1


locate_all_sequential = njit(locate_all.py_func)
redistribute_sequential = njit(redistribute.py_func)
track_moved_sequential = njit(track_moved.py_func)
reassign_collapsed_sequential = njit(reassign_collapsed.py_func)


# ============================================================================
# STRUCTURAL PASSES (single-threaded)
# ============================================================================

@njit(cache=True)
def select_splits(occupancy, flags, depths, half_sizes, node_count: int, threshold: int,
                  max_depth: int, min_half_size: float, active) -> int:
    """Fill active with live leaves that are over threshold and allowed to split."""
    num_active = 0
    for node in range(node_count):
        if (flags[node] & LIVE_LEAF) != LIVE_LEAF:
            continue
        if occupancy[node] <= threshold:
            continue
        if depths[node] >= max_depth or half_sizes[node] < min_half_size:
            continue
        active[num_active] = node
        num_active += 1
    return num_active


@njit(cache=True)
def allocate_children(active, num_active: int, centers, half_sizes, first_child, starts,
                      counts, flags, depths, parents, occupancy, pool_state, capacity: int) -> int:
    """
    Give every active node four children from the bump allocator.

    A node that does not fit in the pool stays an over-full leaf and the
    refusal is counted.
    """
    num_split = 0
    for a in range(num_active):
        node = active[a]
        base = pool_state[NODE_COUNT]
        if base + 4 > capacity:
            pool_state[REFUSALS] += 1
            continue
        pool_state[NODE_COUNT] = base + 4

        cx = centers[node, 0]
        cy = centers[node, 1]
        hs = half_sizes[node]
        for q in range(4):
            child = base + q
            new_cx, new_cy = get_quadrant_center(q, cx, cy, hs)
            centers[child, 0] = new_cx
            centers[child, 1] = new_cy
            half_sizes[child] = hs * 0.5
            first_child[child] = -1
            starts[child] = -1
            counts[child] = 0
            flags[child] = LIVE_LEAF
            depths[child] = depths[node] + 1
            parents[child] = node
            occupancy[child] = 0

        first_child[node] = base
        flags[node] = ACTIVE
        num_split += 1
    return num_split


@njit(cache=True)
def collapse_sparse(occupancy, flags, first_child, node_count: int, collapse_threshold: int) -> int:
    """
    Merge internal nodes whose four children are leaves holding fewer than
    collapse_threshold boids in total. Children are visited before parents,
    so collapses cascade upward within one pass. Retired slots are not reused.
    """
    num_collapsed = 0
    for node in range(node_count - 1, -1, -1):
        f = flags[node]
        if (f & ACTIVE) == 0 or (f & LEAF):
            continue
        base = first_child[node]
        total = 0
        all_leaves = True
        for q in range(4):
            if (flags[base + q] & LEAF) == 0:
                all_leaves = False
                break
            total += occupancy[base + q]
        if not all_leaves or total >= collapse_threshold:
            continue

        for q in range(4):
            flags[base + q] = 0
            occupancy[base + q] = 0
        flags[node] = LIVE_LEAF
        first_child[node] = -1
        occupancy[node] = total
        num_collapsed += 1
    return num_collapsed


@njit(cache=True)
def aggregate_counts(occupancy, counts, flags, first_child, node_count: int):
    """Leaf counts from occupancy, internal counts as the sum of their children."""
    for node in range(node_count - 1, -1, -1):
        f = flags[node]
        if (f & ACTIVE) == 0:
            counts[node] = 0
        elif f & LEAF:
            counts[node] = occupancy[node]
        else:
            base = first_child[node]
            counts[node] = counts[base] + counts[base + 1] + counts[base + 2] + counts[base + 3]


@njit(cache=True)
def assign_leaf_ranges(offsets, starts, flags, node_count: int):
    for node in range(node_count):
        if (flags[node] & LIVE_LEAF) == LIVE_LEAF:
            starts[node] = offsets[node]
        else:
            starts[node] = -1


# ============================================================================
# QUERY
# ============================================================================

@njit(cache=True)
def scan_leaf(positions, sorted_indices, starts, counts, node: int, px: float, py: float,
              r_sq: float, out, found: int) -> int:
    start = starts[node]
    for s in range(start, start + counts[node]):
        j = sorted_indices[s]
        dx = positions[j, 0] - px
        dy = positions[j, 1] - py
        if dx * dx + dy * dy < r_sq and found < out.shape[0]:
            out[found] = j
            found += 1
    return found


@njit(cache=True)
def quadtree_query(positions, sorted_indices, centers, half_sizes, first_child, starts, counts,
                   flags, own_leaf: int, px: float, py: float, radius: float, out) -> int:
    """
    Collect boids strictly within radius of (px, py).

    The caller's own leaf is scanned first, then a stack traversal from the
    root visits everything else, skipping that leaf. A subtree is pruned when
    its center is farther than radius + 2 * half_size from the point.

    Returns:
        Number of indices written to out
    """
    r_sq = radius * radius
    found = 0

    if own_leaf >= 0 and (flags[own_leaf] & LIVE_LEAF) == LIVE_LEAF:
        found = scan_leaf(positions, sorted_indices, starts, counts, own_leaf, px, py, r_sq, out, found)

    stack = np.zeros(STACK_SIZE, dtype=np.int32)
    stack[0] = 0
    stack_ptr = 1

    while stack_ptr > 0:
        stack_ptr -= 1
        node = stack[stack_ptr]

        if node < 0 or node == own_leaf:
            continue
        f = flags[node]
        if (f & ACTIVE) == 0 or counts[node] == 0:
            continue

        dx = centers[node, 0] - px
        dy = centers[node, 1] - py
        reach = radius + 2.0 * half_sizes[node]
        if dx * dx + dy * dy > reach * reach:
            continue

        if f & LEAF:
            found = scan_leaf(positions, sorted_indices, starts, counts, node, px, py, r_sq, out, found)
        else:
            base = first_child[node]
            for q in range(4):
                if stack_ptr < STACK_SIZE:
                    stack[stack_ptr] = base + q
                    stack_ptr += 1

    return found


# ============================================================================
# QUADTREE
# ============================================================================

class QuadTree:
    """
    Quadtree index with fixed node capacity and boid order sorted by leaf.

    After build() or update(), the boids of leaf L occupy
    sorted_indices[starts[L]:starts[L] + counts[L]].
    """

    def __init__(
        self,
        num_boids: int,
        initial_half_size: float,
        max_depth: int = 8,
        max_boids_per_node: int = 32,
        collapse_threshold: int = 16,
        min_half_size: float = 0.0,
        max_nodes: int = 65536,
        incremental: bool = True,
        rebuild_interval: int = 120,
        block_size: int = BLOCK_SIZE,
    ):
        if collapse_threshold >= max_boids_per_node:
            raise ValueError("collapse_threshold must be below max_boids_per_node")
        if max_nodes < 5:
            raise ValueError("max_nodes must hold the root and one subdivision")

        self.num_boids = num_boids
        self.initial_half_size = float(initial_half_size)
        self.max_depth = max_depth
        self.max_boids_per_node = max_boids_per_node
        self.collapse_threshold = collapse_threshold
        self.min_half_size = float(min_half_size)
        self.capacity = max_nodes
        self.incremental = incremental
        self.rebuild_interval = max(1, rebuild_interval)

        # Node pool
        self.centers = np.zeros((max_nodes, 2), dtype=np.float64)
        self.half_sizes = np.zeros(max_nodes, dtype=np.float64)
        self.first_child = np.full(max_nodes, -1, dtype=np.int32)
        self.starts = np.full(max_nodes, -1, dtype=np.int32)
        self.counts = np.zeros(max_nodes, dtype=np.int32)
        self.flags = np.zeros(max_nodes, dtype=np.uint8)
        self.depths = np.zeros(max_nodes, dtype=np.int32)
        self.parents = np.full(max_nodes, -1, dtype=np.int32)
        self._pool_state = np.zeros(2, dtype=np.int64)

        # Pass-scoped scratch
        self._occupancy = np.zeros(max_nodes, dtype=np.int32)
        self._active = np.zeros(max_nodes, dtype=np.int32)

        # Per-boid history
        self.boid_nodes = np.zeros(num_boids, dtype=np.int32)
        self._old_nodes = np.zeros(num_boids, dtype=np.int32)
        self._moved = np.zeros(num_boids, dtype=np.uint8)
        self._prev_positions = np.full((num_boids, 2), np.nan, dtype=np.float64)

        self.sorter = CountingSort(num_boids, max_nodes, block_size)

        self._frames_since_rebuild = 0
        self._built = False
        self.last_update = None
        self.last_moved = 0
        self.last_splits = 0
        self.last_collapses = 0

    @classmethod
    def from_settings(cls, num_boids: int, settings) -> "QuadTree":
        return cls(
            num_boids,
            initial_half_size=settings.initial_half_size,
            max_depth=settings.max_depth,
            max_boids_per_node=settings.max_boids_per_node,
            collapse_threshold=settings.collapse_threshold,
            min_half_size=settings.min_half_size,
            max_nodes=settings.max_nodes,
            incremental=settings.incremental,
            rebuild_interval=settings.rebuild_interval_for(num_boids),
            block_size=settings.block_size,
        )

    # ------------------------------------------------------------------
    # Pool accessors
    # ------------------------------------------------------------------

    @property
    def node_count(self) -> int:
        return int(self._pool_state[NODE_COUNT])

    @property
    def refusals(self) -> int:
        """Subdivisions refused because the pool was full (since the last full build)."""
        return int(self._pool_state[REFUSALS])

    @property
    def sorted_indices(self) -> np.ndarray:
        return self.sorter.sorted_indices

    def is_leaf(self, node: int) -> bool:
        return (int(self.flags[node]) & LIVE_LEAF) == LIVE_LEAF

    def _node_arrays(self):
        return (self.centers, self.half_sizes, self.first_child, self.starts,
                self.counts, self.flags, self.depths, self.parents)

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    def update(self, positions: np.ndarray, parallel: bool = True) -> str:
        """
        Bring the tree up to date with positions.

        Runs a full build on the first call, every rebuild_interval calls and
        whenever incremental maintenance is off; otherwise maintains the tree
        incrementally. Returns "full" or "incremental".
        """
        due = self._frames_since_rebuild >= self.rebuild_interval
        if not self._built or not self.incremental or due:
            self.build(positions, parallel)
        else:
            self.update_incremental(positions, parallel)
            self._frames_since_rebuild += 1
        return self.last_update

    def build(self, positions: np.ndarray, parallel: bool = True):
        """Rebuild the tree from scratch with the multi-pass pipeline."""
        n = self.num_boids
        locate = locate_all if parallel else locate_all_sequential
        spread = redistribute if parallel else redistribute_sequential

        init_root(*self._node_arrays(), self._occupancy, self._pool_state, self.initial_half_size)

        # Insert: every boid lands in the root
        locate(positions, self.boid_nodes, self.centers, self.half_sizes,
               self.first_child, self.flags, n)
        self._recount(parallel)

        total_splits = 0
        for _ in range(self.max_depth):
            num_active = select_splits(
                self._occupancy, self.flags, self.depths, self.half_sizes, self.node_count,
                self.max_boids_per_node, self.max_depth, self.min_half_size, self._active
            )
            if num_active == 0:
                break
            num_split = allocate_children(
                self._active, num_active, *self._node_arrays(),
                self._occupancy, self._pool_state, self.capacity
            )
            if num_split == 0:
                break
            total_splits += num_split
            spread(positions, self.boid_nodes, self._old_nodes, self._moved, self.centers,
                   self.half_sizes, self.first_child, self.flags, n)
            self._recount(parallel)

        # Final forced redistribution from the root
        locate(positions, self.boid_nodes, self.centers, self.half_sizes,
               self.first_child, self.flags, n)
        self._recount(parallel)
        self._finalize(positions, parallel)

        self._built = True
        self._frames_since_rebuild = 1
        self.last_update = "full"
        self.last_moved = n
        self.last_splits = total_splits
        self.last_collapses = 0

    def update_incremental(self, positions: np.ndarray, parallel: bool = True):
        """Re-locate moved boids, then split and merge leaves to restore bounds."""
        if not self._built:
            self.build(positions, parallel)
            return

        n = self.num_boids
        track = track_moved if parallel else track_moved_sequential
        spread = redistribute if parallel else redistribute_sequential
        lift = reassign_collapsed if parallel else reassign_collapsed_sequential

        track(positions, self._prev_positions, self.boid_nodes, self._old_nodes, self._moved,
              self.centers, self.half_sizes, self.first_child, self.flags, n)
        self.last_moved = int(np.count_nonzero(self._moved))
        apply_moves(self._moved, self._old_nodes, self.boid_nodes, self._occupancy, n)

        # Split over-full leaves
        total_splits = 0
        for _ in range(self.max_depth):
            num_active = select_splits(
                self._occupancy, self.flags, self.depths, self.half_sizes, self.node_count,
                self.max_boids_per_node, self.max_depth, self.min_half_size, self._active
            )
            if num_active == 0:
                break
            num_split = allocate_children(
                self._active, num_active, *self._node_arrays(),
                self._occupancy, self._pool_state, self.capacity
            )
            if num_split == 0:
                break
            total_splits += num_split
            spread(positions, self.boid_nodes, self._old_nodes, self._moved, self.centers,
                   self.half_sizes, self.first_child, self.flags, n)
            apply_moves(self._moved, self._old_nodes, self.boid_nodes, self._occupancy, n)

        # Merge sparse siblings
        num_collapsed = collapse_sparse(
            self._occupancy, self.flags, self.first_child, self.node_count, self.collapse_threshold
        )
        if num_collapsed:
            lift(self.boid_nodes, self.flags, self.parents, n)

        self._finalize(positions, parallel)
        self.last_update = "incremental"
        self.last_splits = total_splits
        self.last_collapses = num_collapsed

    def invalidate(self):
        """Force a full build on the next update()."""
        self._built = False

    def _recount(self, parallel: bool):
        node_count = self.node_count
        counts = self.sorter.count(self.boid_nodes, parallel, node_count)
        self._occupancy[:node_count] = counts

    def _finalize(self, positions: np.ndarray, parallel: bool):
        """Aggregate counts, sort boids by leaf and record history."""
        node_count = self.node_count
        self.sorter.sort(self.boid_nodes, parallel, node_count)
        self._occupancy[:node_count] = self.sorter.counts[:node_count]
        aggregate_counts(self._occupancy, self.counts, self.flags, self.first_child, node_count)
        assign_leaf_ranges(self.sorter.offsets, self.starts, self.flags, node_count)
        np.copyto(self._prev_positions, positions)

    # ------------------------------------------------------------------
    # Queries and diagnostics (read-only)
    # ------------------------------------------------------------------

    def leaf_of(self, i: int) -> int:
        return int(self.boid_nodes[i])

    def leaf_members(self, node: int) -> np.ndarray:
        if not self.is_leaf(node):
            return np.empty(0, dtype=np.int32)
        start = int(self.starts[node])
        return self.sorted_indices[start:start + int(self.counts[node])]

    def query(self, positions: np.ndarray, point, radius: float, own_leaf: int = -1) -> np.ndarray:
        """Indices of boids strictly within radius of point (sorted ascending)."""
        out = np.empty(self.num_boids, dtype=np.int32)
        found = quadtree_query(
            positions, self.sorted_indices, self.centers, self.half_sizes, self.first_child,
            self.starts, self.counts, self.flags, own_leaf,
            float(point[0]), float(point[1]), float(radius), out
        )
        return np.sort(out[:found])

    def snapshot(self) -> dict:
        """Copies of the live node arrays for drawing or inspection."""
        k = self.node_count
        return {
            "centers": self.centers[:k].copy(),
            "half_sizes": self.half_sizes[:k].copy(),
            "first_child": self.first_child[:k].copy(),
            "starts": self.starts[:k].copy(),
            "counts": self.counts[:k].copy(),
            "flags": self.flags[:k].copy(),
            "depths": self.depths[:k].copy(),
            "parents": self.parents[:k].copy(),
        }

    def occupancy_stats(self) -> dict:
        """Summary of the live tree, with a histogram of leaf occupancy."""
        k = self.node_count
        flags = self.flags[:k]
        live = (flags & ACTIVE) != 0
        leaves = (flags & LIVE_LEAF) == LIVE_LEAF
        leaf_counts = self.counts[:k][leaves]

        bucket_edges = [0, 1, 6, 11, 21, 51]
        labels = ["0", "1-5", "6-10", "11-20", "21-50", ">50"]
        bucket = np.searchsorted(bucket_edges, leaf_counts, side="right") - 1
        histogram = {label: int(np.count_nonzero(bucket == b)) for b, label in enumerate(labels)}

        return {
            "allocated": k,
            "capacity": self.capacity,
            "live_nodes": int(np.count_nonzero(live)),
            "leaves": int(np.count_nonzero(leaves)),
            "max_depth": int(self.depths[:k][live].max()) if k else 0,
            "max_leaf_count": int(leaf_counts.max()) if len(leaf_counts) else 0,
            "mean_leaf_count": float(leaf_counts.mean()) if len(leaf_counts) else 0.0,
            "refusals": self.refusals,
            "histogram": histogram,
            "last_update": self.last_update,
            "last_moved": self.last_moved,
        }

    def check_invariants(self, positions: np.ndarray) -> list:
        """
        Verify structural invariants against positions.

        Returns:
            List of human-readable violations (empty when consistent)
        """
        problems = []
        k = self.node_count
        flags = self.flags[:k]

        for node in range(k):
            f = int(flags[node])
            if not f & ACTIVE or f & LEAF:
                continue
            base = int(self.first_child[node])
            child_sum = int(self.counts[base:base + 4].sum())
            if child_sum != int(self.counts[node]):
                problems.append(f"node {node}: count {self.counts[node]} != children {child_sum}")

        seen = np.zeros(self.num_boids, dtype=np.int32)
        root_c = self.centers[0]
        root_h = self.half_sizes[0]
        for node in range(k):
            if not self.is_leaf(node):
                continue
            members = self.leaf_members(node)
            seen[members] += 1
            c, h = self.centers[node], self.half_sizes[node]
            pts = np.clip(positions[members], root_c - root_h, root_c + root_h)
            outside = np.any(np.abs(pts - c) > h + 1e-12, axis=1)
            if np.any(outside):
                problems.append(f"leaf {node}: {int(outside.sum())} boids outside bounds")
            if np.any(self.boid_nodes[members] != node):
                problems.append(f"leaf {node}: members disagree with boid_nodes")

        if np.any(seen != 1):
            problems.append(f"{int(np.count_nonzero(seen != 1))} boids not owned by exactly one leaf")
        if int(self.counts[0]) != self.num_boids:
            problems.append(f"root count {self.counts[0]} != {self.num_boids}")
        return problems
