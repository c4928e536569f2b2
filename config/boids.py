"""Configuration for the 2D team boids simulation."""

WINDOW = {
    "width": 1280,
    "height": 720,
    "title": "2D Team Boids"
}

CAMERA = {
    "initial_zoom": 1.0,
    "min_zoom": 0.05,
    "max_zoom": 20.0,
    "keyboard_pan_speed": 1.0,   # Fraction of the visible half-height per second
    "keyboard_zoom_speed": 1.5,  # Zoom factor change per second
    "mouse_zoom_step": 1.1,
}

BOIDS = {
    "count": 16384,
    "world_half_width": 17.8,    # Visible area at zoom 1 (16:9)
    "world_half_height": 10.0,
    "edge_margin": 0.5,          # Bounds = world half extent minus margin
    "max_speed": 2.0,
    "min_speed": None,           # None -> 0.75 * max_speed
    "turn_speed": None,          # None -> 3 * max_speed
    "size": 0.06,                # Triangle length for rendering
    "max_dt": 0.05,

    # Flocking behavior
    "visual_range": 0.5,
    "min_distance": 0.15,
    "cohesion_factor": 2.0,
    "separation_factor": 1.0,
    "alignment_factor": 5.0,
}

TEAMS = {
    "count": 2,
    "ratio": 0.5,                      # Fraction of boids on team 0
    "intra_team_cohesion": 2.5,
    "inter_team_repulsion": 2.5,
}

OBSTACLES = {
    "max_count": 10,
    "avoidance_weight": 5.0,
    # (x, y, radius, strength)
    "default": [
        (-6.0, 2.0, 1.5, 4.0),
        (5.0, -3.0, 2.0, 4.0),
    ],
}

GRID = {
    "padding_cells": 30,
    "color": (0.2, 0.2, 0.25)
}

QUADTREE = {
    "max_depth": 8,
    "max_boids_per_node": 32,
    "collapse_threshold": 16,          # Must stay below max_boids_per_node
    "initial_half_size": None,         # None -> 1.25 * largest bound
    "min_half_size": 0.05,
    "max_nodes": 65536,
    "incremental": True,
    "rebuild_interval": 120,
    "high_count_rebuild_interval": 180,
    "high_count_threshold": 25000,
    "debug": False,
    "debug_interval": 300,
    "color": (0.25, 0.4, 0.3)
}

LOD = {
    "enabled": False,
    "meta_cell_multiplier": 4,
    "meta_padding_cells": 10,
    "frustum_margin_cells": 3,
    "min_meta_boids": 1000,
    "meta_boid_divisor": 20,
}

FORMATIONS = {
    "enabled": False,
    "group_size": 1000,
    "max_groups": 5,
    "spread": 0.1,
    "size": (2.0, 2.0),
    "target_factor": 3.0,
    "arrive_distance": 0.1,
    "default": "square",
}

EXECUTION = {
    "mode": "parallel",                # "parallel" or "sequential"
    "backend": "grid",                 # "grid" or "quadtree"
    "block_size": 256,
    "sequential_limit": 1 << 16,
    "parallel_limit": 256 * 65535,
    "seed": None,
}

COLORS = {
    "background": (0.01, 0.01, 0.02, 1.0),
    "text": (0.9, 0.9, 0.9),
    "teams": [
        (0.95, 0.45, 0.25),
        (0.3, 0.65, 1.0),
        (0.6, 0.9, 0.4),
        (0.9, 0.85, 0.3),
    ],
    "merged": (0.5, 0.5, 0.55),
    "obstacle": (0.8, 0.25, 0.3),
    "bounds": (0.2, 0.2, 0.25),
}
