"""Simulation settings, execution enums and configuration validation."""

from dataclasses import dataclass, fields, replace
from enum import Enum
from typing import Optional, Tuple

from config import boids as config


class ConfigurationError(ValueError):
    """Raised when settings are inconsistent or a boid count exceeds a mode limit."""


class SpatialBackend(Enum):
    GRID = "grid"
    QUADTREE = "quadtree"


class ExecutionMode(Enum):
    PARALLEL = "parallel"
    SEQUENTIAL = "sequential"


@dataclass
class FlockSettings:
    """
    Every tunable of the flocking model and its spatial indices.

    Derived values (min_speed, turn_speed, bounds, quadtree root size) are
    filled in by __post_init__ when left as None.
    """
    # Motion
    max_speed: float = 2.0
    min_speed: Optional[float] = None
    turn_speed: Optional[float] = None
    x_bound: Optional[float] = None
    y_bound: Optional[float] = None
    world_half_width: float = 17.8
    world_half_height: float = 10.0
    edge_margin: float = 0.5
    max_dt: float = 0.05

    # Flocking
    visual_range: float = 0.5
    min_distance: float = 0.15
    cohesion: float = 2.0
    separation: float = 1.0
    alignment: float = 5.0

    # Teams
    num_teams: int = 2
    team_ratio: float = 0.5
    intra_team_cohesion: float = 2.5
    inter_team_repulsion: float = 2.5

    # Obstacles
    obstacle_avoidance_weight: float = 5.0
    max_obstacles: int = 10

    # Grid / counting sort
    grid_padding: int = 30
    block_size: int = 256

    # Quadtree
    max_depth: int = 8
    max_boids_per_node: int = 32
    collapse_threshold: int = 16
    initial_half_size: Optional[float] = None
    min_half_size: float = 0.05
    max_nodes: int = 65536
    incremental: bool = True
    rebuild_interval: int = 120
    high_count_rebuild_interval: int = 180
    high_count_threshold: int = 25000
    debug: bool = False
    debug_interval: int = 300

    # Level of detail
    lod_enabled: bool = False
    meta_cell_multiplier: int = 4
    meta_padding: int = 10
    frustum_margin_cells: float = 3.0
    min_meta_boids: int = 1000
    meta_boid_divisor: int = 20

    # Formations
    formations_enabled: bool = False
    group_size: int = 1000
    max_groups: int = 5
    formation_spread: float = 0.1
    formation_size: Tuple[float, float] = (2.0, 2.0)
    target_factor: float = 3.0
    arrive_distance: float = 0.1

    # Execution limits
    sequential_limit: int = 1 << 16
    parallel_limit: int = 256 * 65535

    def __post_init__(self):
        if self.min_speed is None:
            self.min_speed = 0.75 * self.max_speed
        if self.turn_speed is None:
            self.turn_speed = 3.0 * self.max_speed
        if self.x_bound is None:
            self.x_bound = self.world_half_width - self.edge_margin
        if self.y_bound is None:
            self.y_bound = self.world_half_height - self.edge_margin
        if self.initial_half_size is None:
            self.initial_half_size = 1.25 * max(self.x_bound, self.y_bound)
        self.formation_size = tuple(self.formation_size)

    @classmethod
    def from_config(cls, **overrides) -> "FlockSettings":
        """Build settings from config/boids.py, then apply keyword overrides."""
        b, t, o = config.BOIDS, config.TEAMS, config.OBSTACLES
        q, lod, f, ex = config.QUADTREE, config.LOD, config.FORMATIONS, config.EXECUTION
        values = dict(
            max_speed=b["max_speed"],
            min_speed=b["min_speed"],
            turn_speed=b["turn_speed"],
            world_half_width=b["world_half_width"],
            world_half_height=b["world_half_height"],
            edge_margin=b["edge_margin"],
            max_dt=b["max_dt"],
            visual_range=b["visual_range"],
            min_distance=b["min_distance"],
            cohesion=b["cohesion_factor"],
            separation=b["separation_factor"],
            alignment=b["alignment_factor"],
            num_teams=t["count"],
            team_ratio=t["ratio"],
            intra_team_cohesion=t["intra_team_cohesion"],
            inter_team_repulsion=t["inter_team_repulsion"],
            obstacle_avoidance_weight=o["avoidance_weight"],
            max_obstacles=o["max_count"],
            grid_padding=config.GRID["padding_cells"],
            block_size=ex["block_size"],
            max_depth=q["max_depth"],
            max_boids_per_node=q["max_boids_per_node"],
            collapse_threshold=q["collapse_threshold"],
            initial_half_size=q["initial_half_size"],
            min_half_size=q["min_half_size"],
            max_nodes=q["max_nodes"],
            incremental=q["incremental"],
            rebuild_interval=q["rebuild_interval"],
            high_count_rebuild_interval=q["high_count_rebuild_interval"],
            high_count_threshold=q["high_count_threshold"],
            debug=q["debug"],
            debug_interval=q["debug_interval"],
            lod_enabled=lod["enabled"],
            meta_cell_multiplier=lod["meta_cell_multiplier"],
            meta_padding=lod["meta_padding_cells"],
            frustum_margin_cells=lod["frustum_margin_cells"],
            min_meta_boids=lod["min_meta_boids"],
            meta_boid_divisor=lod["meta_boid_divisor"],
            formations_enabled=f["enabled"],
            group_size=f["group_size"],
            max_groups=f["max_groups"],
            formation_spread=f["spread"],
            formation_size=f["size"],
            target_factor=f["target_factor"],
            arrive_distance=f["arrive_distance"],
            sequential_limit=ex["sequential_limit"],
            parallel_limit=ex["parallel_limit"],
        )
        known = {fl.name for fl in fields(cls)}
        unknown = set(overrides) - known
        if unknown:
            raise ConfigurationError(f"Unknown settings: {', '.join(sorted(unknown))}")
        values.update(overrides)
        return cls(**values)

    def with_overrides(self, **overrides) -> "FlockSettings":
        return replace(self, **overrides)

    def limit_for(self, mode: ExecutionMode) -> int:
        """Maximum boid count supported by an execution mode."""
        if mode == ExecutionMode.SEQUENTIAL:
            return self.sequential_limit
        return self.parallel_limit

    def rebuild_interval_for(self, num_boids: int) -> int:
        """Frames between full quadtree rebuilds for a given population."""
        if num_boids > self.high_count_threshold:
            return self.high_count_rebuild_interval
        return self.rebuild_interval

    def validate(self, num_boids: Optional[int] = None, mode: Optional[ExecutionMode] = None):
        """
        Check the settings for inconsistencies.

        Args:
            num_boids: Optional population to check against the mode limit
            mode: Execution mode whose limit applies (parallel when omitted)

        Raises:
            ConfigurationError: On the first inconsistency found
        """
        checks = [
            (self.max_speed > 0, "max_speed must be positive"),
            (0 <= self.min_speed <= self.max_speed, "min_speed must lie in [0, max_speed]"),
            (self.turn_speed >= 0, "turn_speed must be non-negative"),
            (self.x_bound > 0 and self.y_bound > 0, "bounds must be positive"),
            (self.visual_range > 0, "visual_range must be positive"),
            (self.min_distance >= 0, "min_distance must be non-negative"),
            (self.num_teams >= 1, "num_teams must be at least 1"),
            (0.0 <= self.team_ratio <= 1.0, "team_ratio must lie in [0, 1]"),
            (self.inter_team_repulsion >= 1.0, "inter_team_repulsion must be at least 1"),
            (self.max_obstacles >= 0, "max_obstacles must be non-negative"),
            (self.grid_padding >= 3, "grid_padding must be at least 3 cells"),
            (self.block_size >= 1, "block_size must be positive"),
            (1 <= self.max_depth <= 16, "max_depth must lie in [1, 16]"),
            (self.max_boids_per_node >= 1, "max_boids_per_node must be positive"),
            (0 <= self.collapse_threshold < self.max_boids_per_node,
             "collapse_threshold must be below max_boids_per_node"),
            (self.initial_half_size > 0, "initial_half_size must be positive"),
            (self.min_half_size >= 0, "min_half_size must be non-negative"),
            (self.max_nodes >= 5, "max_nodes must hold the root and one subdivision"),
            (self.rebuild_interval >= 1 and self.high_count_rebuild_interval >= 1,
             "rebuild intervals must be at least 1"),
            (self.meta_cell_multiplier >= 1, "meta_cell_multiplier must be at least 1"),
            (self.meta_boid_divisor >= 1, "meta_boid_divisor must be at least 1"),
            (self.group_size >= 1 and self.max_groups >= 0, "invalid formation group sizes"),
            (self.sequential_limit >= 1 and self.parallel_limit >= 1, "mode limits must be positive"),
            (self.max_dt > 0, "max_dt must be positive"),
        ]
        for ok, message in checks:
            if not ok:
                raise ConfigurationError(message)

        if num_boids is not None:
            if num_boids < 1:
                raise ConfigurationError("num_boids must be at least 1")
            mode = mode or ExecutionMode.PARALLEL
            limit = self.limit_for(mode)
            if num_boids > limit:
                raise ConfigurationError(
                    f"{num_boids:,} boids exceeds the {mode.value} limit of {limit:,}"
                )
