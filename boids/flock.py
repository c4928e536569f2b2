"""Flock driver - spatial index, force pass, buffer swap and level of detail per frame."""

from dataclasses import dataclass
from typing import Callable, Iterable, Optional

import numpy as np

from config import boids as config
from .forces import (
    flock_grid, flock_grid_sequential, flock_quadtree, flock_quadtree_sequential,
    same_team_neighbors,
)
from .formations import Formation, assign_group, make_groups
from .grid import UniformGrid
from .lod import LODAggregator
from .obstacles import Obstacle, obstacles_from_config, pack_obstacles
from .quadtree import QuadTree
from .settings import ConfigurationError, ExecutionMode, FlockSettings, SpatialBackend
from .store import EntityStore


@dataclass(frozen=True)
class StageKernels:
    """Compiled stages for one execution mode."""
    parallel: bool
    flock_grid: Callable
    flock_quadtree: Callable


KERNELS = {
    ExecutionMode.PARALLEL: StageKernels(True, flock_grid, flock_quadtree),
    ExecutionMode.SEQUENTIAL: StageKernels(False, flock_grid_sequential, flock_quadtree_sequential),
}


class Flock:
    """
    Team boids over a uniform grid or an adaptive quadtree.

    Each update() builds the active spatial index from the front buffer, runs
    the force pass into the back buffer, swaps, then refreshes level of detail
    when a view is set.
    """

    def __init__(
        self,
        num_boids: Optional[int] = None,
        settings: Optional[FlockSettings] = None,
        obstacles: Optional[Iterable[Obstacle]] = None,
        seed: Optional[int] = None,
        backend: Optional[SpatialBackend] = None,
        mode: Optional[ExecutionMode] = None,
        warmup: bool = True,
        verbose: bool = True,
    ):
        self.settings = settings if settings is not None else FlockSettings.from_config()
        self.backend = backend or SpatialBackend(config.EXECUTION["backend"])
        self.mode = mode or ExecutionMode(config.EXECUTION["mode"])
        self.verbose = verbose

        if num_boids is None:
            num_boids = config.BOIDS["count"]
        self.settings.validate(num_boids, self.mode)

        self._seed = seed if seed is not None else config.EXECUTION["seed"]
        self._rng = np.random.default_rng(self._seed)

        if obstacles is None:
            obstacles = obstacles_from_config(config.OBSTACLES["default"])
        self._obstacle_list = list(obstacles)
        self._obstacles, self._num_obstacles = pack_obstacles(
            self._obstacle_list, self.settings.max_obstacles
        )

        self.lod_enabled = self.settings.lod_enabled
        self._view = None
        self.frame = 0

        self._allocate(num_boids)

        if warmup:
            self._warmup_numba()

        self._log(f"Initialized {num_boids:,} boids ({self.backend.value}, {self.mode.value})")

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------

    def _allocate(self, num_boids: int):
        s = self.settings
        self.num_boids = num_boids
        self._kernels = KERNELS[self.mode]

        self.store = EntityStore(num_boids)
        self.store.seed_random(self._rng, s.x_bound, s.y_bound, s.max_speed,
                               s.team_ratio, s.num_teams)

        self.grid = UniformGrid(num_boids, s.visual_range, s.x_bound, s.y_bound,
                                s.grid_padding, s.block_size)
        self.quadtree = QuadTree.from_settings(num_boids, s)
        self.lod = LODAggregator(
            num_boids, s.visual_range, s.x_bound, s.y_bound, s.num_teams,
            s.meta_cell_multiplier, s.meta_padding, s.frustum_margin_cells,
            s.min_meta_boids, s.meta_boid_divisor, s.block_size,
            min_speed=s.min_speed, max_speed=s.max_speed
        )

        self.groups = []
        if s.formations_enabled:
            formation = Formation(config.FORMATIONS["default"])
            self.groups = make_groups(num_boids, s.group_size, s.max_groups, self._rng,
                                      formation, s.formation_size)
            for group in self.groups:
                assign_group(self.store.targets, self.store.groups, group, s.formation_spread)

    def _warmup_numba(self):
        """Pre-compile Numba functions on a tiny flock."""
        small = Flock(
            64, self.settings.with_overrides(debug=False), obstacles=self._obstacle_list,
            seed=0, warmup=False, verbose=False
        )
        small.set_view((0.0, 0.0), 1.0, 1.0)
        small.set_lod_enabled(True)
        for mode in ExecutionMode:
            small.set_execution_mode(mode)
            for backend in SpatialBackend:
                small.set_backend(backend)
                small.update(0.016)
                small.update(0.016)

    def _log(self, message: str):
        if self.verbose:
            print(f"[Flock] {message}")

    # ------------------------------------------------------------------
    # Simulation step
    # ------------------------------------------------------------------

    def update(self, dt: float):
        """Advance the simulation by dt seconds (capped at max_dt)."""
        s = self.settings
        dt = min(max(float(dt), 0.0), s.max_dt)
        kernels = self._kernels
        front, back = self.store.front, self.store.back
        params = self._force_params(dt)

        if self.backend == SpatialBackend.GRID:
            grid = self.grid
            grid.build(front.positions, kernels.parallel)
            kernels.flock_grid(
                front.positions, front.velocities, front.teams,
                back.positions, back.velocities,
                grid.sorted_indices, grid.offsets, grid.cell_size, grid.dim_x, grid.dim_y,
                self.store.status, self.store.targets, self.store.groups,
                self._obstacles, self._num_obstacles,
                *params, self.num_boids
            )
        else:
            tree = self.quadtree
            tree.update(front.positions, kernels.parallel)
            kernels.flock_quadtree(
                front.positions, front.velocities, front.teams,
                back.positions, back.velocities,
                tree.sorted_indices, tree.boid_nodes,
                tree.centers, tree.half_sizes, tree.first_child,
                tree.starts, tree.counts, tree.flags,
                self.store.status, self.store.targets, self.store.groups,
                self._obstacles, self._num_obstacles,
                *params, self.num_boids
            )

        self.store.swap()

        if self.lod_enabled and self._view is not None:
            front = self.store.front
            self.lod.update(front.positions, front.velocities, front.teams,
                            self.store.status, self._view, kernels.parallel)

        self.frame += 1
        if s.debug and self.frame % s.debug_interval == 0:
            self.print_diagnostics()

    def _force_params(self, dt: float) -> tuple:
        s = self.settings
        target_factor = s.target_factor if self.groups else 0.0
        return (
            s.visual_range, s.min_distance,
            s.cohesion, s.separation, s.alignment,
            s.intra_team_cohesion, s.inter_team_repulsion,
            s.obstacle_avoidance_weight, target_factor, s.arrive_distance,
            s.min_speed, s.max_speed, s.turn_speed,
            s.x_bound, s.y_bound, dt,
        )

    # ------------------------------------------------------------------
    # Runtime controls
    # ------------------------------------------------------------------

    def set_backend(self, backend: SpatialBackend):
        if backend == self.backend:
            return
        self.backend = backend
        if backend == SpatialBackend.QUADTREE:
            self.quadtree.invalidate()
        self._log(f"Spatial backend: {backend.value}")

    def set_execution_mode(self, mode: ExecutionMode):
        """
        Switch between parallel and sequential kernels.

        The front buffer is copied into the back buffer before the other path
        runs. When the population exceeds the new mode's limit the flock is
        restarted at the limit.
        """
        if mode == self.mode:
            return
        limit = self.settings.limit_for(mode)
        self.mode = mode
        self._kernels = KERNELS[mode]

        if self.num_boids > limit:
            self._log(f"{self.num_boids:,} boids exceeds {mode.value} limit, restarting with {limit:,}")
            self.restart(limit)
            return

        self.store.back.copy_from(self.store.front)
        self.quadtree.invalidate()
        self._log(f"Execution mode: {mode.value}")

    def restart(self, num_boids: Optional[int] = None):
        """Tear down and reinitialize, clamping the count to the current mode limit."""
        if num_boids is None:
            num_boids = self.num_boids
        limit = self.settings.limit_for(self.mode)
        num_boids = max(1, min(int(num_boids), limit))
        self._allocate(num_boids)
        self.frame = 0
        self._log(f"Restarted with {num_boids:,} boids")

    def set_obstacles(self, obstacles: Iterable[Obstacle]):
        self._obstacle_list = list(obstacles)
        self._obstacles, self._num_obstacles = pack_obstacles(
            self._obstacle_list, self.settings.max_obstacles
        )

    @property
    def obstacles(self) -> list:
        return list(self._obstacle_list[:self._num_obstacles])

    def set_view(self, center, width: float, height: float):
        """Visible rectangle used for level of detail."""
        cx, cy = float(center[0]), float(center[1])
        hw, hh = 0.5 * float(width), 0.5 * float(height)
        self._view = (cx - hw, cy - hh, cx + hw, cy + hh)

    def clear_view(self):
        self._view = None

    def set_lod_enabled(self, enabled: bool):
        self.lod_enabled = bool(enabled)
        if not self.lod_enabled:
            self.lod.reset(self.store.status)

    def move_group(self, group_id: int, target):
        group = self._group(group_id)
        group.target = (float(target[0]), float(target[1]))
        assign_group(self.store.targets, self.store.groups, group, self.settings.formation_spread)

    def set_formation(self, group_id: int, formation: Formation):
        group = self._group(group_id)
        group.formation = formation
        assign_group(self.store.targets, self.store.groups, group, self.settings.formation_spread)

    def _group(self, group_id: int):
        for group in self.groups:
            if group.group_id == group_id:
                return group
        raise ConfigurationError(f"No formation group with id {group_id}")

    # ------------------------------------------------------------------
    # State access
    # ------------------------------------------------------------------

    @property
    def positions(self) -> np.ndarray:
        return self.store.front.positions

    @property
    def velocities(self) -> np.ndarray:
        return self.store.front.velocities

    @property
    def teams(self) -> np.ndarray:
        return self.store.front.teams

    @property
    def status(self) -> np.ndarray:
        return self.store.status

    def render_state(self) -> tuple:
        """Read-only views of everything a renderer needs for this frame."""
        views = [self.positions, self.velocities, self.teams, self.status]
        if self.lod_enabled and self._view is not None:
            views.extend(self.lod.meta_boids())
        else:
            views.extend([
                np.empty((0, 2)), np.empty((0, 2)),
                np.empty(0, dtype=np.int32), np.empty(0, dtype=np.int32),
            ])
        result = []
        for arr in views:
            view = arr.view()
            view.flags.writeable = False
            result.append(view)
        return tuple(result)

    def records(self) -> np.ndarray:
        return self.store.records()

    def load_records(self, records: np.ndarray):
        self.store.load_records(records)
        self.quadtree.invalidate()

    def refresh_index(self):
        """Rebuild the active spatial index from the current front buffer."""
        parallel = self._kernels.parallel
        if self.backend == SpatialBackend.GRID:
            self.grid.build(self.positions, parallel)
        else:
            self.quadtree.build(self.positions, parallel)

    def neighbors_of(self, i: int) -> set:
        """Same-team boids within visual range of boid i, found through the active index."""
        self.refresh_index()
        point = self.positions[i]
        radius = self.settings.visual_range
        if self.backend == SpatialBackend.GRID:
            candidates = self.grid.query(self.positions, point, radius)
        else:
            candidates = self.quadtree.query(self.positions, point, radius,
                                             own_leaf=self.quadtree.leaf_of(i))
        return same_team_neighbors(self.positions, self.teams, i, candidates, radius)

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    def occupancy_stats(self) -> dict:
        """Occupancy summary of the active spatial index."""
        if self.backend == SpatialBackend.QUADTREE:
            return self.quadtree.occupancy_stats()
        counts = self.grid.cell_counts()
        occupied = counts[counts > 0]
        return {
            "cells": self.grid.total_cells,
            "occupied": int(len(occupied)),
            "max_cell_count": int(occupied.max()) if len(occupied) else 0,
            "mean_cell_count": float(occupied.mean()) if len(occupied) else 0.0,
        }

    def quadtree_snapshot(self) -> dict:
        return self.quadtree.snapshot()

    def print_diagnostics(self):
        if self.backend == SpatialBackend.QUADTREE:
            st = self.quadtree.occupancy_stats()
            print(f"[QuadTree] frame {self.frame}: {st['live_nodes']:,} live nodes "
                  f"({st['allocated']:,}/{st['capacity']:,} allocated), {st['leaves']:,} leaves, "
                  f"depth {st['max_depth']}, max leaf {st['max_leaf_count']}, "
                  f"refusals {st['refusals']}, {st['last_update']} update, "
                  f"{st['last_moved']:,} moved")
            print(f"[QuadTree] leaf occupancy: "
                  + "  ".join(f"{k}: {v}" for k, v in st["histogram"].items()))
        else:
            st = self.occupancy_stats()
            print(f"[Grid] frame {self.frame}: {st['occupied']:,}/{st['cells']:,} cells occupied, "
                  f"max {st['max_cell_count']}, mean {st['mean_cell_count']:.1f}")
        if self.lod_enabled:
            print(f"[LOD] {self.lod.num_meta:,} meta-boids, "
                  f"{int(np.count_nonzero(self.status)):,} merged, {self.lod.overflow} dropped")
