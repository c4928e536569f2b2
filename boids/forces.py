"""
Neighbor queries and the flocking force model.

Every kernel reads the front buffer and writes the back buffer; a boid's new
state depends only on the previous frame, so boids can be processed in any
order. Parallel kernels use prange; the *_sequential variants are the same
Python functions compiled without threading.
"""

import math
import numpy as np
from numba import njit, prange

from .grid import cell_coords
from .quadtree import LEAF, ACTIVE, STACK_SIZE


# Accumulator slots
CLOSE_X = 0
CLOSE_Y = 1
SUM_PX = 2
SUM_PY = 3
SUM_VX = 4
SUM_VY = 5
SAME_COUNT = 6
OTHER_COUNT = 7
ACC_SIZE = 8


# ============================================================================
# PER-BOID HELPERS
# ============================================================================

@njit(fastmath=True, cache=True)
def accumulate_neighbor(j: int, px: float, py: float, team: int, positions, velocities, teams,
                        visual_range_sq: float, min_distance_sq: float,
                        inter_team_repulsion: float, acc):
    """Fold boid j into the accumulator if it is within visual range."""
    dx = px - positions[j, 0]
    dy = py - positions[j, 1]
    dist_sq = dx * dx + dy * dy
    if dist_sq <= 0.0 or dist_sq >= visual_range_sq:
        return

    same_team = teams[j] == team
    if dist_sq < min_distance_sq:
        weight = 1.0 if same_team else inter_team_repulsion
        acc[CLOSE_X] += dx / dist_sq * weight
        acc[CLOSE_Y] += dy / dist_sq * weight

    if same_team:
        acc[SUM_PX] += positions[j, 0]
        acc[SUM_PY] += positions[j, 1]
        acc[SUM_VX] += velocities[j, 0]
        acc[SUM_VY] += velocities[j, 1]
        acc[SAME_COUNT] += 1.0
    else:
        acc[OTHER_COUNT] += 1.0


@njit(fastmath=True, cache=True)
def apply_flocking(px: float, py: float, vx: float, vy: float, acc,
                   cohesion: float, separation: float, alignment: float,
                   intra_team_cohesion: float, dt: float):
    """Cohesion and alignment toward same-team neighbours, then separation."""
    same = acc[SAME_COUNT]
    if same > 0:
        center_x = acc[SUM_PX] / same
        center_y = acc[SUM_PY] / same
        avg_vx = acc[SUM_VX] / same
        avg_vy = acc[SUM_VY] / same

        vx += (center_x - px) * cohesion * intra_team_cohesion * dt
        vy += (center_y - py) * cohesion * intra_team_cohesion * dt
        vx += (avg_vx - vx) * alignment * dt
        vy += (avg_vy - vy) * alignment * dt

    vx += acc[CLOSE_X] * separation * dt
    vy += acc[CLOSE_Y] * separation * dt
    return vx, vy


@njit(fastmath=True, cache=True)
def avoid_obstacles(px: float, py: float, obstacles, num_obstacles: int):
    """Summed push away from every obstacle whose radius contains the point."""
    fx, fy = 0.0, 0.0
    for k in range(num_obstacles):
        dx = px - obstacles[k, 0]
        dy = py - obstacles[k, 1]
        radius = obstacles[k, 2]
        dist = math.sqrt(dx * dx + dy * dy)
        if dist >= radius:
            continue
        if dist > 0.0:
            dir_x, dir_y = dx / dist, dy / dist
        else:
            dir_x, dir_y = 1.0, 0.0
        push = obstacles[k, 3] * (1.0 - dist / radius)
        fx += dir_x * push
        fy += dir_y * push
    return fx, fy


@njit(fastmath=True, cache=True)
def seek_target(px: float, py: float, tx: float, ty: float, target_factor: float,
                arrive_distance: float, dt: float):
    dx = tx - px
    dy = ty - py
    dist = math.sqrt(dx * dx + dy * dy)
    if dist <= arrive_distance:
        return 0.0, 0.0
    return dx / dist * target_factor * dt, dy / dist * target_factor * dt


@njit(fastmath=True, cache=True)
def limit_speed(vx: float, vy: float, min_speed: float, max_speed: float):
    """Clamp speed into [min_speed, max_speed]; a stalled boid heads along +x."""
    speed = math.sqrt(vx * vx + vy * vy)
    if speed <= 0.0:
        return min_speed, 0.0
    clamped = min(max(speed, min_speed), max_speed)
    scale = clamped / speed
    return vx * scale, vy * scale


@njit(fastmath=True, cache=True)
def keep_in_bounds(px: float, py: float, vx: float, vy: float, x_bound: float, y_bound: float,
                   turn_speed: float, dt: float):
    if abs(px) > x_bound:
        vx -= math.copysign(1.0, px) * dt * turn_speed
    if abs(py) > y_bound:
        vy -= math.copysign(1.0, py) * dt * turn_speed
    return vx, vy


@njit(fastmath=True, cache=True)
def finish_boid(i: int, px: float, py: float, vx: float, vy: float, individual: bool,
                targets, groups, obstacles, num_obstacles: int, obstacle_weight: float,
                target_factor: float, arrive_distance: float, min_speed: float, max_speed: float,
                turn_speed: float, x_bound: float, y_bound: float, dt: float, pos_out, vel_out):
    """Obstacles, formation target, speed clamp, edge steering and integration."""
    if individual:
        fx, fy = avoid_obstacles(px, py, obstacles, num_obstacles)
        vx += fx * obstacle_weight * dt
        vy += fy * obstacle_weight * dt

        if groups[i] >= 0 and target_factor > 0.0:
            tx, ty = seek_target(px, py, targets[i, 0], targets[i, 1],
                                 target_factor, arrive_distance, dt)
            vx += tx
            vy += ty

    vx, vy = limit_speed(vx, vy, min_speed, max_speed)
    vx, vy = keep_in_bounds(px, py, vx, vy, x_bound, y_bound, turn_speed, dt)

    pos_out[i, 0] = px + vx * dt
    pos_out[i, 1] = py + vy * dt
    vel_out[i, 0] = vx
    vel_out[i, 1] = vy


# ============================================================================
# GRID-BACKED KERNEL
# ============================================================================

@njit(parallel=True, fastmath=True, cache=True)
def flock_grid(
    positions: np.ndarray,
    velocities: np.ndarray,
    teams: np.ndarray,
    pos_out: np.ndarray,
    vel_out: np.ndarray,
    sorted_indices: np.ndarray,
    offsets: np.ndarray,
    cell_size: float,
    dim_x: int,
    dim_y: int,
    status: np.ndarray,
    targets: np.ndarray,
    groups: np.ndarray,
    obstacles: np.ndarray,
    num_obstacles: int,
    visual_range: float,
    min_distance: float,
    cohesion: float,
    separation: float,
    alignment: float,
    intra_team_cohesion: float,
    inter_team_repulsion: float,
    obstacle_weight: float,
    target_factor: float,
    arrive_distance: float,
    min_speed: float,
    max_speed: float,
    turn_speed: float,
    x_bound: float,
    y_bound: float,
    dt: float,
    num_boids: int
):
    """One flocking step; neighbours come from the 3x3 cell stencil."""
    visual_range_sq = visual_range * visual_range
    min_distance_sq = min_distance * min_distance

    for i in prange(num_boids):
        px = positions[i, 0]
        py = positions[i, 1]
        vx = velocities[i, 0]
        vy = velocities[i, 1]
        individual = status[i] == 0

        if individual:
            acc = np.zeros(ACC_SIZE, dtype=np.float64)
            team = teams[i]
            gx, gy = cell_coords(px, py, cell_size, dim_x, dim_y)

            # Three contiguous cells per row
            for row in range(gy - 1, gy + 2):
                cid = row * dim_x + gx
                for s in range(offsets[cid - 1], offsets[cid + 2]):
                    accumulate_neighbor(
                        sorted_indices[s], px, py, team, positions, velocities, teams,
                        visual_range_sq, min_distance_sq, inter_team_repulsion, acc
                    )

            vx, vy = apply_flocking(px, py, vx, vy, acc, cohesion, separation, alignment,
                                    intra_team_cohesion, dt)

        finish_boid(i, px, py, vx, vy, individual, targets, groups, obstacles, num_obstacles,
                    obstacle_weight, target_factor, arrive_distance, min_speed, max_speed,
                    turn_speed, x_bound, y_bound, dt, pos_out, vel_out)


# ============================================================================
# QUADTREE-BACKED KERNEL
# ============================================================================

@njit(parallel=True, fastmath=True, cache=True)
def flock_quadtree(
    positions: np.ndarray,
    velocities: np.ndarray,
    teams: np.ndarray,
    pos_out: np.ndarray,
    vel_out: np.ndarray,
    sorted_indices: np.ndarray,
    boid_nodes: np.ndarray,
    node_centers: np.ndarray,
    node_half_sizes: np.ndarray,
    node_first_child: np.ndarray,
    node_starts: np.ndarray,
    node_counts: np.ndarray,
    node_flags: np.ndarray,
    status: np.ndarray,
    targets: np.ndarray,
    groups: np.ndarray,
    obstacles: np.ndarray,
    num_obstacles: int,
    visual_range: float,
    min_distance: float,
    cohesion: float,
    separation: float,
    alignment: float,
    intra_team_cohesion: float,
    inter_team_repulsion: float,
    obstacle_weight: float,
    target_factor: float,
    arrive_distance: float,
    min_speed: float,
    max_speed: float,
    turn_speed: float,
    x_bound: float,
    y_bound: float,
    dt: float,
    num_boids: int
):
    """
    One flocking step; neighbours come from a stack traversal of the tree.
    The boid's own leaf is scanned first and skipped during the root descent.
    """
    visual_range_sq = visual_range * visual_range
    min_distance_sq = min_distance * min_distance

    for i in prange(num_boids):
        px = positions[i, 0]
        py = positions[i, 1]
        vx = velocities[i, 0]
        vy = velocities[i, 1]
        individual = status[i] == 0

        if individual:
            acc = np.zeros(ACC_SIZE, dtype=np.float64)
            team = teams[i]

            own = boid_nodes[i]
            if node_flags[own] & LEAF:
                start = node_starts[own]
                for s in range(start, start + node_counts[own]):
                    accumulate_neighbor(
                        sorted_indices[s], px, py, team, positions, velocities, teams,
                        visual_range_sq, min_distance_sq, inter_team_repulsion, acc
                    )
            else:
                own = -1

            # Stack-based tree traversal (fixed-size stack)
            stack = np.zeros(STACK_SIZE, dtype=np.int32)
            stack[0] = 0
            stack_ptr = 1

            while stack_ptr > 0:
                stack_ptr -= 1
                node = stack[stack_ptr]

                if node < 0 or node == own:
                    continue
                flags = node_flags[node]
                if (flags & ACTIVE) == 0 or node_counts[node] == 0:
                    continue

                dx = node_centers[node, 0] - px
                dy = node_centers[node, 1] - py
                reach = visual_range + 2.0 * node_half_sizes[node]
                if dx * dx + dy * dy > reach * reach:
                    continue

                if flags & LEAF:
                    start = node_starts[node]
                    for s in range(start, start + node_counts[node]):
                        accumulate_neighbor(
                            sorted_indices[s], px, py, team, positions, velocities, teams,
                            visual_range_sq, min_distance_sq, inter_team_repulsion, acc
                        )
                else:
                    base = node_first_child[node]
                    for q in range(4):
                        if stack_ptr < STACK_SIZE:
                            stack[stack_ptr] = base + q
                            stack_ptr += 1

            vx, vy = apply_flocking(px, py, vx, vy, acc, cohesion, separation, alignment,
                                    intra_team_cohesion, dt)

        finish_boid(i, px, py, vx, vy, individual, targets, groups, obstacles, num_obstacles,
                    obstacle_weight, target_factor, arrive_distance, min_speed, max_speed,
                    turn_speed, x_bound, y_bound, dt, pos_out, vel_out)


flock_grid_sequential = njit(flock_grid.py_func, fastmath=True)
flock_quadtree_sequential = njit(flock_quadtree.py_func, fastmath=True)


# ============================================================================
# REFERENCE NEIGHBOR SETS
# ============================================================================

def same_team_neighbors(positions: np.ndarray, teams: np.ndarray, i: int, candidates: np.ndarray,
                        visual_range: float) -> set:
    """Same-team boids among candidates with 0 < distance < visual_range."""
    d = positions[candidates] - positions[i]
    dist_sq = np.einsum("ij,ij->i", d, d)
    keep = (dist_sq > 0) & (dist_sq < visual_range * visual_range) & (teams[candidates] == teams[i])
    return set(int(j) for j in candidates[keep])
