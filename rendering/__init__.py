"""Rendering components for the 2D boids simulation."""

from .boids import BoidRenderer
from .grid import Grid
from .text import TextRenderer

__all__ = ["BoidRenderer", "Grid", "TextRenderer"]
