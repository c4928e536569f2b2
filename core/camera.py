"""Camera system for 2D navigation."""

import numpy as np
from OpenGL.GL import *
from config import boids as config


class Camera:
    """Orthographic pan/zoom camera with smooth zoom."""

    def __init__(self, aspect: float = None):
        if aspect is None:
            aspect = config.WINDOW["width"] / config.WINDOW["height"]
        self.aspect = aspect
        self.base_half_height = config.BOIDS["world_half_height"]
        self.zoom = config.CAMERA["initial_zoom"]
        self.target_zoom = self.zoom
        self.center = np.array([0.0, 0.0])
        self.zoom_smoothing = 8.0

    @property
    def half_height(self) -> float:
        return self.base_half_height / self.zoom

    @property
    def half_width(self) -> float:
        return self.half_height * self.aspect

    def view_rect(self) -> tuple:
        """Visible region as (center, width, height) in world units."""
        return (float(self.center[0]), float(self.center[1])), 2 * self.half_width, 2 * self.half_height

    def pan(self, dx: float, dy: float):
        """Move by a fraction of the visible half-height."""
        self.center[0] += dx * self.half_height
        self.center[1] += dy * self.half_height

    def _clamp_zoom(self, zoom: float) -> float:
        return max(config.CAMERA["min_zoom"], min(config.CAMERA["max_zoom"], zoom))

    def zoom_by(self, factor: float):
        """Immediately multiply the zoom."""
        self.zoom = self._clamp_zoom(self.zoom * factor)
        self.target_zoom = self.zoom

    def zoom_smooth(self, factor: float):
        """Smoothly multiply the zoom."""
        self.target_zoom = self._clamp_zoom(self.target_zoom * factor)

    def update(self, dt: float):
        """Update camera state (called each frame)."""
        self.zoom += (self.target_zoom - self.zoom) * min(1.0, self.zoom_smoothing * dt)
        self.zoom = self._clamp_zoom(self.zoom)

    def screen_to_world(self, x: int, y: int, screen_size: tuple) -> tuple:
        """Convert a pixel position (origin top-left) to world coordinates."""
        u = x / screen_size[0] * 2.0 - 1.0
        v = 1.0 - y / screen_size[1] * 2.0
        return (self.center[0] + u * self.half_width, self.center[1] + v * self.half_height)

    def apply(self):
        """Load the orthographic projection for the current view."""
        glMatrixMode(GL_PROJECTION)
        glLoadIdentity()
        glOrtho(
            self.center[0] - self.half_width, self.center[0] + self.half_width,
            self.center[1] - self.half_height, self.center[1] + self.half_height,
            -1.0, 1.0
        )
        glMatrixMode(GL_MODELVIEW)
        glLoadIdentity()
