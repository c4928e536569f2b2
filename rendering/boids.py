"""Boid rendering - Numba-built triangle vertices streamed through VBOs."""

import math
import numpy as np
from numba import njit, prange
from OpenGL.GL import *
from OpenGL.arrays import vbo

from config import boids as config


# ============================================================================
# NUMBA JIT-COMPILED VERTEX FUNCTIONS
# ============================================================================

@njit(parallel=True, cache=True)
def compute_visibility_2d(positions: np.ndarray, min_x: float, min_y: float, max_x: float,
                          max_y: float, margin: float, visible_mask: np.ndarray, num_boids: int):
    """Rectangle culling against the camera view."""
    for i in prange(num_boids):
        px = positions[i, 0]
        py = positions[i, 1]
        visible_mask[i] = (min_x - margin <= px <= max_x + margin and
                           min_y - margin <= py <= max_y + margin)


@njit(parallel=True, fastmath=True, cache=True)
def build_triangles(
    positions: np.ndarray,
    velocities: np.ndarray,
    colors: np.ndarray,
    indices: np.ndarray,
    vertices: np.ndarray,
    vert_colors: np.ndarray,
    length: float,
    width: float,
    count: int
):
    """One triangle per boid pointing along its velocity."""
    for idx in prange(count):
        i = indices[idx]
        px, py = positions[i, 0], positions[i, 1]
        vx, vy = velocities[i, 0], velocities[i, 1]

        speed = math.sqrt(vx * vx + vy * vy)
        if speed < 0.0001:
            fx, fy = 1.0, 0.0
        else:
            fx, fy = vx / speed, vy / speed
        # Perpendicular
        rx, ry = fy, -fx

        base = idx * 3
        vertices[base, 0] = px + fx * length * 0.6
        vertices[base, 1] = py + fy * length * 0.6
        vertices[base + 1, 0] = px - fx * length * 0.4 + rx * width
        vertices[base + 1, 1] = py - fy * length * 0.4 + ry * width
        vertices[base + 2, 0] = px - fx * length * 0.4 - rx * width
        vertices[base + 2, 1] = py - fy * length * 0.4 - ry * width

        for v in range(3):
            vert_colors[base + v, 0] = colors[idx, 0]
            vert_colors[base + v, 1] = colors[idx, 1]
            vert_colors[base + v, 2] = colors[idx, 2]


# ============================================================================
# BOID RENDERER
# ============================================================================

class BoidRenderer:
    """Draws boids as team-colored triangles; merged boids are dimmed."""

    def __init__(self, num_boids: int):
        self.size = float(config.BOIDS["size"])
        self.team_colors = np.array(config.COLORS["teams"], dtype=np.float32)
        self.merged_color = np.array(config.COLORS["merged"], dtype=np.float32)
        self._vbo_vertices = None
        self._vbo_colors = None
        self._vbos_initialized = False
        self.visible_count = 0
        self._allocate(num_boids)
        self._warmup_numba()

    def _allocate(self, num_boids: int):
        self.capacity = num_boids
        self._visible_mask = np.ones(num_boids, dtype=np.bool_)
        self._vertices = np.zeros((num_boids * 3, 2), dtype=np.float32)
        self._vert_colors = np.zeros((num_boids * 3, 3), dtype=np.float32)
        self._vbos_initialized = False

    def _init_vbos(self):
        """Initialize VBOs for fast GPU rendering."""
        if self._vbos_initialized:
            return

        try:
            self._vbo_vertices = vbo.VBO(self._vertices, usage=GL_DYNAMIC_DRAW)
            self._vbo_colors = vbo.VBO(self._vert_colors, usage=GL_DYNAMIC_DRAW)
            self._vbos_initialized = True
        except Exception as e:
            print(f"[Render] VBO init failed, using client arrays: {e}")
            self._vbos_initialized = False

    def _warmup_numba(self):
        """Pre-compile Numba functions."""
        n = 16
        pos = np.random.rand(n, 2)
        vel = np.random.rand(n, 2)
        mask = np.ones(n, dtype=np.bool_)
        compute_visibility_2d(pos, -1.0, -1.0, 1.0, 1.0, 0.1, mask, n)
        idx = np.arange(n, dtype=np.int32)
        cols = np.ones((n, 3), dtype=np.float32)
        build_triangles(pos, vel, cols, idx, np.zeros((n * 3, 2), dtype=np.float32),
                        np.zeros((n * 3, 3), dtype=np.float32), 1.0, 0.3, n)

    def _colors_for(self, indices: np.ndarray, teams: np.ndarray, status: np.ndarray) -> np.ndarray:
        team_ids = np.minimum(teams[indices], len(self.team_colors) - 1)
        colors = self.team_colors[team_ids]
        merged = status[indices] != 0
        colors[merged] = self.merged_color
        return colors

    def draw(self, render_state: tuple, view: tuple):
        """
        Render visible boids and meta-boids.

        Args:
            render_state: Tuple returned by Flock.render_state()
            view: (center, width, height) of the camera
        """
        positions, velocities, teams, status, meta_pos, meta_vel, meta_counts, meta_teams = render_state
        n = len(positions)
        if n > self.capacity:
            self._allocate(n)

        (cx, cy), w, h = view
        compute_visibility_2d(positions, cx - w / 2, cy - h / 2, cx + w / 2, cy + h / 2,
                              self.size, self._visible_mask[:n], n)
        indices = np.flatnonzero(self._visible_mask[:n]).astype(np.int32)
        self.visible_count = len(indices)

        if self.visible_count:
            colors = self._colors_for(indices, teams, status)
            build_triangles(positions, velocities, colors, indices, self._vertices,
                            self._vert_colors, self.size, self.size * 0.35, self.visible_count)
            self._submit(self.visible_count * 3)

        if len(meta_pos):
            self._draw_meta(meta_pos, meta_vel, meta_counts, meta_teams)

    def _draw_meta(self, meta_pos, meta_vel, meta_counts, meta_teams):
        """Meta-boids as larger triangles scaled by member count."""
        k = len(meta_pos)
        idx = np.arange(k, dtype=np.int32)
        team_ids = np.minimum(meta_teams, len(self.team_colors) - 1)
        colors = self.team_colors[team_ids] * 0.7
        verts = np.zeros((k * 3, 2), dtype=np.float32)
        vcols = np.zeros((k * 3, 3), dtype=np.float32)
        scale = self.size * (1.0 + np.log2(max(1, int(meta_counts.max()))))
        build_triangles(meta_pos, meta_vel, colors, idx, verts, vcols, scale, scale * 0.35, k)

        glEnableClientState(GL_VERTEX_ARRAY)
        glEnableClientState(GL_COLOR_ARRAY)
        glVertexPointer(2, GL_FLOAT, 0, verts)
        glColorPointer(3, GL_FLOAT, 0, vcols)
        glDrawArrays(GL_TRIANGLES, 0, k * 3)
        glDisableClientState(GL_VERTEX_ARRAY)
        glDisableClientState(GL_COLOR_ARRAY)

    def _submit(self, total_verts: int):
        if not self._vbos_initialized:
            self._init_vbos()

        if self._vbos_initialized and self._vbo_vertices is not None:
            # VBO rendering path (faster)
            self._vbo_vertices.set_array(self._vertices[:total_verts])
            self._vbo_colors.set_array(self._vert_colors[:total_verts])

            self._vbo_vertices.bind()
            glEnableClientState(GL_VERTEX_ARRAY)
            glVertexPointer(2, GL_FLOAT, 0, None)

            self._vbo_colors.bind()
            glEnableClientState(GL_COLOR_ARRAY)
            glColorPointer(3, GL_FLOAT, 0, None)

            glDrawArrays(GL_TRIANGLES, 0, total_verts)

            self._vbo_vertices.unbind()
            self._vbo_colors.unbind()
            glDisableClientState(GL_VERTEX_ARRAY)
            glDisableClientState(GL_COLOR_ARRAY)
        else:
            glEnableClientState(GL_VERTEX_ARRAY)
            glEnableClientState(GL_COLOR_ARRAY)
            glVertexPointer(2, GL_FLOAT, 0, self._vertices[:total_verts])
            glColorPointer(3, GL_FLOAT, 0, self._vert_colors[:total_verts])
            glDrawArrays(GL_TRIANGLES, 0, total_verts)
            glDisableClientState(GL_VERTEX_ARRAY)
            glDisableClientState(GL_COLOR_ARRAY)
