# autoflow/draw.py
"""
Off-screen field preview: grid, dense path, waypoint markers and heading
chevrons drawn onto a plain pygame.Surface (no display window needed).
"""
from __future__ import annotations

import math
from typing import Optional, Sequence

import pygame

from .config import (
    ARROW_COLOR, BG_COLOR, FIELD_SIZE_IN, GRID_COLOR, PATH_COLOR, ROBOT_COLOR,
    TILE_IN, WAYPOINT_COLOR, default_config, preview_flat,
)
from .waypoints import as_pose, derive_waypoints, preview_path


def to_px(x_in: float, y_in: float, ppi: float):
    """Field inches -> surface pixels (origin top-left, +Y down)."""
    return (int(round(x_in * ppi)), int(round(y_in * ppi)))


def draw_grid(surface, grid_size_px):
    """Draw field tile lines."""
    w, h = surface.get_width(), surface.get_height()
    step = max(1, int(grid_size_px))
    for x in range(0, w, step):
        pygame.draw.line(surface, GRID_COLOR, (x, 0), (x, h))
    for y in range(0, h, step):
        pygame.draw.line(surface, GRID_COLOR, (0, y), (w, y))


def draw_path(surface, path: Sequence[Sequence[float]], ppi: float, width: int = 2):
    if len(path) < 2:
        return
    pygame.draw.lines(surface, PATH_COLOR, False, [to_px(p[0], p[1], ppi) for p in path], width)


def draw_chevron(surface, pos, heading_deg, length=20, offset=45, arm=10):
    """Directional chevron; screen +Y is down so positive headings turn clockwise."""
    rad = math.radians(heading_deg)
    tip = (pos[0] + length * math.cos(rad), pos[1] + length * math.sin(rad))
    l = math.radians(heading_deg - offset)
    r = math.radians(heading_deg + offset)
    left = (tip[0] - arm * math.cos(l), tip[1] - arm * math.sin(l))
    right = (tip[0] - arm * math.cos(r), tip[1] - arm * math.sin(r))
    pygame.draw.line(surface, ARROW_COLOR, tip, left, 3)
    pygame.draw.line(surface, ARROW_COLOR, tip, right, 3)


def draw_waypoints(surface, waypoints, ppi: float, radius: int = 6):
    for i, w in enumerate(waypoints):
        pos = to_px(w[0], w[1], ppi)
        color = ROBOT_COLOR if i == 0 else WAYPOINT_COLOR
        pygame.draw.circle(surface, color, pos, radius + (2 if i == 0 else 0))
        draw_chevron(surface, pos, w[2] if len(w) > 2 else 0.0)


def render_preview(waypoints, path: Optional[Sequence] = None, ppi: float = 4.0):
    """Surface with the field, the dense path (if given) and all waypoints."""
    size = int(round(FIELD_SIZE_IN * ppi))
    surface = pygame.Surface((size, size))
    surface.fill(BG_COLOR)
    draw_grid(surface, TILE_IN * ppi)
    if path:
        draw_path(surface, path, ppi)
    draw_waypoints(surface, waypoints, ppi)
    return surface


def render_graph(graph, initial_pose=None, cfg: Optional[dict] = None):
    """Derive waypoints and the preview path for a graph, then render them."""
    prev = preview_flat(cfg or default_config())
    waypoints = derive_waypoints(graph, as_pose(initial_pose))
    path = preview_path(waypoints, bool(prev["use_curves"]),
                        int(prev["spline_steps"]), int(prev["linear_steps"]))
    return render_preview(waypoints, path, float(prev["pixels_per_in"]))


def save_preview(surface, filename: str) -> str:
    pygame.image.save(surface, filename)
    return filename
