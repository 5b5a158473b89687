"""Painting strokes onto the active layer of a project."""

from __future__ import annotations

import math
import sys
import uuid
from typing import Any, Optional

from brushpaint.color import hsv_to_oklab
from brushpaint.editor_state import BrushEditorState
from brushpaint.project import BrushProject

Point = tuple[float, float]


def screen_to_canvas(
    project: BrushProject,
    point: Point,
    screen: Point,
    pan: Point,
    zoom: float,
    rotation: float,
) -> Point:
    """Map a point in widget coordinates to canvas pixel coordinates.

    The view centres the canvas in the screen, offset by ``pan``, rotated by
    ``rotation`` radians and scaled by ``zoom``; this applies its inverse.
    """
    if zoom == 0:
        raise ValueError("zoom must not be zero")
    x, y = point
    sw, sh = screen
    px, py = pan

    tx = x - (sw / 2.0 + px)
    ty = y - (sh / 2.0 + py)
    cos_r = math.cos(rotation)
    sin_r = math.sin(rotation)
    rx = cos_r * tx + sin_r * ty
    ry = -sin_r * tx + cos_r * ty

    return (rx / zoom + project.width / 2.0, ry / zoom + project.height / 2.0)


def interpolate_stroke(
    new_pos: Point,
    last_pos: Point,
    brush_radius: float,
    new_pressure: float,
    last_pressure: float,
    spacing_ratio: float,
) -> list[tuple[float, float, float]]:
    """Return evenly spaced (x, y, pressure) dabs from last_pos towards new_pos.

    Dabs are ``2 * brush_radius * spacing_ratio`` apart and the end point itself
    is not included, unless both points coincide.
    """
    dx = new_pos[0] - last_pos[0]
    dy = new_pos[1] - last_pos[1]
    distance = math.hypot(dx, dy)

    if distance < sys.float_info.epsilon:
        return [(new_pos[0], new_pos[1], new_pressure)]

    step = brush_radius * 2.0 * spacing_ratio
    if step <= 0:
        raise ValueError("brush radius and spacing must be positive")

    points = []
    traveled = 0.0
    while traveled < distance:
        t = traveled / distance
        points.append(
            (
                last_pos[0] + dx * t,
                last_pos[1] + dy * t,
                last_pressure + (new_pressure - last_pressure) * t,
            )
        )
        traveled += step
    return points


def draw_stroke(
    project: BrushProject,
    active_id: Optional[uuid.UUID],
    state: BrushEditorState,
    mask: Any,
    current_pressure: float,
    last_pressure: float,
    current_point: Point,
    last_point: Point,
    screen: Point,
    pan: Point,
    zoom: float,
    rotation: float,
) -> None:
    """Paint (or erase) a stroke segment onto the active layer.

    Nothing happens when there is no active layer, or when it is locked or
    hidden. ``mask`` marks pixels already touched during the stroke.
    """
    base_size = state.brush_size
    opacity = state.brush_opacity
    lab = hsv_to_oklab(state.primary_color)
    color = (lab[0], lab[1], lab[2], opacity)

    cp = screen_to_canvas(project, current_point, screen, pan, zoom, rotation)
    lp = screen_to_canvas(project, last_point, screen, pan, zoom, rotation)

    if last_pressure < 0.3:
        factor = min(max(0.1 * (3.0 * last_pressure), 0.05), 0.1)
    else:
        factor = 0.1

    if active_id is None or project.is_layer_in_lock(active_id):
        return
    layer = project.find_layer(active_id)
    if layer is None:
        return

    points = interpolate_stroke(
        cp, lp, float(base_size), current_pressure, last_pressure, factor
    )
    many = len(points) > 10
    for x, y, pressure in points:
        size = min(max(base_size * pressure, 1.0), 1000.0)
        layer.draw_brush_dab(
            mask,
            (int(x), int(y)),
            int(size),
            color,
            state.erase_mode,
            size > 150.0 or many,
        )