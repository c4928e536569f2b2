"""Text rendering for HUD elements."""

import pygame
from OpenGL.GL import *
from config import boids as config


class TextRenderer:
    """Renders HUD lines using pygame fonts and OpenGL pixel blits."""

    def __init__(self, font_name: str = "monospace", font_size: int = 16, line_spacing: int = 22):
        pygame.font.init()
        self.font = pygame.font.SysFont(font_name, font_size)
        self.line_spacing = line_spacing
        self.color = tuple(int(c * 255) for c in config.COLORS["text"])
        self._cache = {}

    def _rasterize(self, text: str):
        """Render text to RGBA bytes, reusing the last result for unchanged lines."""
        cached = self._cache.get(text)
        if cached is None:
            surface = self.font.render(text, True, self.color)
            cached = (pygame.image.tostring(surface, "RGBA", True), surface.get_size())
            if len(self._cache) > 256:
                self._cache.clear()
            self._cache[text] = cached
        return cached

    def draw_lines(self, lines, x: int, y: int, screen_size: tuple):
        """
        Draw a block of lines starting at the given screen position.

        Args:
            lines: Strings to render, top to bottom
            x: X position from left edge
            y: Y position of the first line from top edge
            screen_size: (width, height) of the screen
        """
        # Switch to pixel-space orthographic projection
        glMatrixMode(GL_PROJECTION)
        glPushMatrix()
        glLoadIdentity()
        glOrtho(0, screen_size[0], 0, screen_size[1], -1, 1)
        glMatrixMode(GL_MODELVIEW)
        glPushMatrix()
        glLoadIdentity()

        glEnable(GL_BLEND)
        glBlendFunc(GL_SRC_ALPHA, GL_ONE_MINUS_SRC_ALPHA)
        for k, text in enumerate(lines):
            data, (w, h) = self._rasterize(text)
            glRasterPos2f(x, screen_size[1] - (y + k * self.line_spacing) - h)
            glDrawPixels(w, h, GL_RGBA, GL_UNSIGNED_BYTE, data)
        glDisable(GL_BLEND)

        glPopMatrix()
        glMatrixMode(GL_PROJECTION)
        glPopMatrix()
        glMatrixMode(GL_MODELVIEW)
