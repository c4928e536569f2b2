"""Main application class that ties everything together."""

import pygame
from pygame.locals import *
from OpenGL.GL import *

from config import boids as config
from .camera import Camera
from .input_handler import InputHandler
from rendering import BoidRenderer, Grid, TextRenderer
from boids import Flock, SpatialBackend


class Application:
    """Main application managing the game loop and rendering."""

    def __init__(self, num_boids: int = None):
        pygame.init()
        self.screen_size = (config.WINDOW["width"], config.WINDOW["height"])
        pygame.display.set_mode(self.screen_size, DOUBLEBUF | OPENGL)
        pygame.display.set_caption(config.WINDOW["title"])

        # Simulation
        self.flock = Flock(num_boids=num_boids)

        # Core components
        self.camera = Camera()
        self.input_handler = InputHandler(self.camera, self.flock)

        # Rendering components
        self.grid = Grid()
        self.boid_renderer = BoidRenderer(self.flock.num_boids)
        self.text_renderer = TextRenderer()

        # State
        self.clock = pygame.time.Clock()
        self.running = True
        self.fps = 0
        self.sim_ms = 0.0

        self._setup_gl()
        print(f"[App] Window {self.screen_size[0]}x{self.screen_size[1]}, "
              f"G backend, M mode, L LOD, T tree, SPACE pause")

    def _setup_gl(self):
        """Initialize OpenGL settings."""
        glClearColor(*config.COLORS["background"])
        glDisable(GL_DEPTH_TEST)
        glEnable(GL_LINE_SMOOTH)

    def _handle_events(self):
        """Process all pending pygame events."""
        for event in pygame.event.get():
            if not self.input_handler.handle_event(event):
                self.running = False

    def _update(self, dt: float):
        """Update game state."""
        self.input_handler.handle_continuous_input(dt)
        self.camera.update(dt)

        center, width, height = self.camera.view_rect()
        self.flock.set_view(center, width, height)

        if not self.input_handler.paused:
            start = pygame.time.get_ticks()
            self.flock.update(dt)
            self.sim_ms = pygame.time.get_ticks() - start

    def _render(self):
        """Render the scene."""
        glClear(GL_COLOR_BUFFER_BIT)
        self.camera.apply()

        s = self.flock.settings
        self.grid.draw_bounds(s.x_bound, s.y_bound)
        self.grid.draw_obstacles(self.flock.obstacles)
        if self.input_handler.show_tree and self.flock.backend == SpatialBackend.QUADTREE:
            self.grid.draw_quadtree(self.flock.quadtree_snapshot())

        self.boid_renderer.draw(self.flock.render_state(), self.camera.view_rect())

        self.text_renderer.draw_lines(self._hud_lines(), 10, 10, self.screen_size)
        pygame.display.flip()

    def _hud_lines(self) -> list:
        flock = self.flock
        lines = [
            f"Boids: {self.boid_renderer.visible_count:,}/{flock.num_boids:,}  |  "
            f"FPS: {self.fps:.0f}  |  Sim: {self.sim_ms:.0f} ms"
            + ("  |  PAUSED" if self.input_handler.paused else ""),
            f"Index: {flock.backend.value}  |  Mode: {flock.mode.value}  |  "
            f"Zoom: {self.camera.zoom:.2f}",
        ]
        if flock.backend == SpatialBackend.QUADTREE:
            st = flock.quadtree.occupancy_stats()
            lines.append(f"Tree: {st['leaves']:,} leaves  depth {st['max_depth']}  "
                         f"max leaf {st['max_leaf_count']}  refusals {st['refusals']}")
        if flock.lod_enabled:
            merged = int((flock.status != 0).sum())
            lines.append(f"LOD: {flock.lod.num_meta:,} meta-boids  {merged:,} merged")
        return lines

    def run(self):
        """Main application loop."""
        while self.running:
            dt = self.clock.tick() / 1000.0  # Uncapped FPS
            self.fps = self.clock.get_fps()

            self._handle_events()
            self._update(dt)
            self._render()

        pygame.quit()
