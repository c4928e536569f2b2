"""World overlays: bounds, obstacles and quadtree leaves."""

import math
import numpy as np
from OpenGL.GL import *
from config import boids as config


class Grid:
    """Draws the steering bounds, obstacle discs and, optionally, quadtree leaves."""

    def __init__(self, circle_segments: int = 48):
        self.bounds_color = config.COLORS["bounds"]
        self.obstacle_color = config.COLORS["obstacle"]
        self.tree_color = config.QUADTREE["color"]
        angles = np.linspace(0.0, 2.0 * math.pi, circle_segments, endpoint=False)
        self._unit_circle = np.stack([np.cos(angles), np.sin(angles)], axis=1)

    def draw_bounds(self, x_bound: float, y_bound: float):
        glColor3f(*self.bounds_color)
        glBegin(GL_LINE_LOOP)
        glVertex2f(-x_bound, -y_bound)
        glVertex2f(x_bound, -y_bound)
        glVertex2f(x_bound, y_bound)
        glVertex2f(-x_bound, y_bound)
        glEnd()

    def draw_obstacles(self, obstacles):
        """
        Draw each obstacle as a circle outline.

        Args:
            obstacles: Iterable of Obstacle
        """
        glColor3f(*self.obstacle_color)
        for ob in obstacles:
            ring = self._unit_circle * ob.radius + np.asarray(ob.position)
            glBegin(GL_LINE_LOOP)
            for x, y in ring:
                glVertex2f(x, y)
            glEnd()

    def draw_quadtree(self, snapshot: dict):
        """Outline every live leaf of a quadtree snapshot."""
        flags = snapshot["flags"]
        leaves = (flags & 3) == 3
        centers = snapshot["centers"][leaves]
        halves = snapshot["half_sizes"][leaves]
        if len(centers) == 0:
            return

        glColor3f(*self.tree_color)
        glBegin(GL_LINES)
        for (cx, cy), h in zip(centers, halves):
            x0, x1, y0, y1 = cx - h, cx + h, cy - h, cy + h
            glVertex2f(x0, y0); glVertex2f(x1, y0)
            glVertex2f(x1, y0); glVertex2f(x1, y1)
            glVertex2f(x1, y1); glVertex2f(x0, y1)
            glVertex2f(x0, y1); glVertex2f(x0, y0)
        glEnd()
