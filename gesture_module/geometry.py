"""Points, viewport bounds and clamping for the orb widget."""

from __future__ import annotations

import math
from dataclasses import dataclass

from gesture_module.constants import ORB_MARGIN, ORB_SIZE


@dataclass(frozen=True)
class Point:
    x: float
    y: float

    def __sub__(self, other: "Point") -> "Point":
        return Point(self.x - other.x, self.y - other.y)

    def distance_to(self, other: "Point") -> float:
        return math.hypot(self.x - other.x, self.y - other.y)


@dataclass(frozen=True)
class Viewport:
    width: float
    height: float


def clamp(n: float, lo: float, hi: float) -> float:
    return min(hi, max(lo, n))


def clamp_position(pos: Point, viewport: Viewport) -> Point:
    """Keep the widget's top-left corner inside the viewport minus a margin."""
    max_x = max(ORB_MARGIN, viewport.width - ORB_SIZE - ORB_MARGIN)
    max_y = max(ORB_MARGIN, viewport.height - ORB_SIZE - ORB_MARGIN)
    return Point(clamp(pos.x, ORB_MARGIN, max_x), clamp(pos.y, ORB_MARGIN, max_y))


def default_position(viewport: Viewport) -> Point:
    return clamp_position(
        Point(viewport.width - ORB_SIZE - ORB_MARGIN, viewport.height - ORB_SIZE - ORB_MARGIN),
        viewport,
    )


def widget_center(pos: Point) -> Point:
    return Point(pos.x + ORB_SIZE / 2, pos.y + ORB_SIZE / 2)
