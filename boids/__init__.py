"""2D team boids with uniform-grid and quadtree neighbor search."""

from .boid import BOID_DTYPE
from .flock import Flock
from .formations import Formation
from .obstacles import Obstacle
from .settings import ConfigurationError, ExecutionMode, FlockSettings, SpatialBackend

__all__ = [
    "BOID_DTYPE",
    "Flock",
    "Formation",
    "Obstacle",
    "ConfigurationError",
    "ExecutionMode",
    "FlockSettings",
    "SpatialBackend",
]
