"""
2D Team Boids
=============

Two teams of boids flocking around obstacles, with uniform-grid and
quadtree neighbor search.

Controls:
    - W/A/S/D or mouse drag: Pan
    - Q/E or mouse wheel: Zoom out/in
    - G: Toggle grid / quadtree index
    - M: Toggle parallel / sequential execution
    - L: Toggle level of detail
    - T: Show quadtree leaves
    - 1-5: Formation (square, line, column, wedge, scattered)
    - Right click: Move formation groups
    - UP/DOWN: Double / halve the boid count
    - R: Restart
    - SPACE: Pause
    - ESC: Quit
"""

import sys

from core import Application


def main():
    num_boids = int(sys.argv[1]) if len(sys.argv) > 1 else None
    app = Application(num_boids)
    app.run()


if __name__ == "__main__":
    main()
