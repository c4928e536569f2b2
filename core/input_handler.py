"""Input handling for keyboard and mouse events."""

import pygame
from pygame.locals import *
from config import boids as config

from boids import ExecutionMode, Formation, SpatialBackend
from .camera import Camera


FORMATION_KEYS = {
    K_1: Formation.SQUARE,
    K_2: Formation.LINE,
    K_3: Formation.COLUMN,
    K_4: Formation.WEDGE,
    K_5: Formation.SCATTERED,
}


class InputHandler:
    """Handles camera navigation and simulation hotkeys."""

    def __init__(self, camera: Camera, flock):
        self.camera = camera
        self.flock = flock
        self.paused = False
        self.show_tree = False
        self.mouse_dragging = False
        self.last_mouse_pos = (0, 0)

    def handle_event(self, event: pygame.event.Event) -> bool:
        """
        Handle a single pygame event.
        Returns False if the application should quit, True otherwise.
        """
        if event.type == QUIT:
            return False
        elif event.type == KEYDOWN:
            if event.key == K_ESCAPE:
                return False
            self._handle_key(event.key)
        elif event.type == MOUSEBUTTONDOWN:
            if event.button == 1:
                self.mouse_dragging = True
                self.last_mouse_pos = pygame.mouse.get_pos()
            elif event.button == 3:
                self._move_groups(pygame.mouse.get_pos())
        elif event.type == MOUSEBUTTONUP:
            if event.button == 1:
                self.mouse_dragging = False
        elif event.type == MOUSEWHEEL:
            step = config.CAMERA["mouse_zoom_step"]
            self.camera.zoom_smooth(step if event.y > 0 else 1.0 / step)

        return True

    def _handle_key(self, key: int):
        flock = self.flock
        if key == K_SPACE:
            self.paused = not self.paused
        elif key == K_g:
            backend = (SpatialBackend.QUADTREE if flock.backend == SpatialBackend.GRID
                       else SpatialBackend.GRID)
            flock.set_backend(backend)
        elif key == K_m:
            mode = (ExecutionMode.SEQUENTIAL if flock.mode == ExecutionMode.PARALLEL
                    else ExecutionMode.PARALLEL)
            flock.set_execution_mode(mode)
        elif key == K_l:
            flock.set_lod_enabled(not flock.lod_enabled)
            print(f"[App] Level of detail {'on' if flock.lod_enabled else 'off'}")
        elif key == K_t:
            self.show_tree = not self.show_tree
        elif key == K_r:
            flock.restart()
        elif key == K_UP:
            flock.restart(flock.num_boids * 2)
        elif key == K_DOWN:
            flock.restart(max(1, flock.num_boids // 2))
        elif key in FORMATION_KEYS:
            for group in flock.groups:
                flock.set_formation(group.group_id, FORMATION_KEYS[key])

    def _move_groups(self, mouse_pos: tuple):
        """Send every formation group to the clicked point, side by side."""
        groups = self.flock.groups
        if not groups:
            return
        screen_size = (config.WINDOW["width"], config.WINDOW["height"])
        x, y = self.camera.screen_to_world(mouse_pos[0], mouse_pos[1], screen_size)
        spacing = config.FORMATIONS["size"][0] * 2.0
        for k, group in enumerate(groups):
            self.flock.move_group(group.group_id, (x + (k - (len(groups) - 1) / 2.0) * spacing, y))

    def handle_continuous_input(self, dt: float):
        """Handle continuous keyboard input (called each frame)."""
        keys = pygame.key.get_pressed()
        pan_speed = config.CAMERA["keyboard_pan_speed"] * dt
        zoom_rate = config.CAMERA["keyboard_zoom_speed"] ** dt

        # Keyboard pan
        if keys[K_a]:
            self.camera.pan(-pan_speed, 0)
        if keys[K_d]:
            self.camera.pan(pan_speed, 0)
        if keys[K_w]:
            self.camera.pan(0, pan_speed)
        if keys[K_s]:
            self.camera.pan(0, -pan_speed)

        # Keyboard zoom
        if keys[K_q]:
            self.camera.zoom_by(1.0 / zoom_rate)
        if keys[K_e]:
            self.camera.zoom_by(zoom_rate)

        # Mouse drag pan
        if self.mouse_dragging:
            current_pos = pygame.mouse.get_pos()
            dx = current_pos[0] - self.last_mouse_pos[0]
            dy = current_pos[1] - self.last_mouse_pos[1]
            scale = 2.0 / config.WINDOW["height"]
            self.camera.pan(-dx * scale, dy * scale)
            self.last_mouse_pos = current_pos
