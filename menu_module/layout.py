"""Ring geometry for radial menus."""

from __future__ import annotations

import math
from dataclasses import dataclass

from gesture_module.geometry import Point, Viewport, clamp

ROOT_RADIUS = 74
SUB_RADIUS = 120
EDGE_MARGIN = 20
BUTTON_HALF = 20
SIMPLE_ICON_RADIUS = 94
SIMPLE_LABEL_RADIUS = 140


@dataclass(frozen=True)
class RingPlacement:
    origin: Point
    rotation: float
    radius: float


def rotation_for(center: Point, viewport: Viewport, pad: float) -> float:
    """Rotate the ring away from whichever viewport edges ``center`` is near."""
    near_left = center.x < pad
    near_right = center.x > viewport.width - pad
    near_top = center.y < pad
    near_bottom = center.y > viewport.height - pad

    if near_left and near_top:
        return 135
    if near_left and near_bottom:
        return 45
    if near_right and near_top:
        return -135
    if near_right and near_bottom:
        return -45
    if near_left:
        return 90
    if near_right:
        return -90
    if near_top:
        return 180
    return 0


def place_ring(center: Point, viewport: Viewport, radius: float) -> RingPlacement:
    pad = radius + EDGE_MARGIN
    origin = Point(
        clamp(center.x, pad, viewport.width - pad),
        clamp(center.y, pad, viewport.height - pad),
    )
    return RingPlacement(origin=origin, rotation=rotation_for(center, viewport, pad), radius=radius)


def angle_for(index: int, count: int, rotation: float = 0) -> float:
    return (360 / count) * index - 90 + rotation


def item_offset(index: int, count: int, radius: float, rotation: float = 0) -> Point:
    """Top-left offset of a ring button relative to the ring origin."""
    rad = math.radians(angle_for(index, count, rotation))
    return Point(radius * math.cos(rad) - BUTTON_HALF, radius * math.sin(rad) - BUTTON_HALF)


def item_center(index: int, count: int, radius: float, rotation: float = 0) -> Point:
    rad = math.radians(angle_for(index, count, rotation))
    return Point(radius * math.cos(rad), radius * math.sin(rad))
