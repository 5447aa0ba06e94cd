"""Persist the orb's committed position under a versioned key."""

from __future__ import annotations

from gesture_module.constants import STORAGE_KEY
from gesture_module.geometry import Point, Viewport, clamp_position, default_position
from utils.local_store import LocalStore
from utils.log_utils import log


class PositionStore:
    def __init__(self, store: LocalStore, key: str = STORAGE_KEY) -> None:
        self.store = store
        self.key = key

    def load(self, viewport: Viewport) -> Point:
        """Return the saved position re-clamped to ``viewport``, or the default corner."""
        raw = self.store.load(self.key)
        if isinstance(raw, dict):
            try:
                saved = Point(float(raw["x"]), float(raw["y"]))
            except (KeyError, TypeError, ValueError):
                log("ORB", f"Ignoring malformed saved position {raw!r}", "WARN")
            else:
                return clamp_position(saved, viewport)
        return default_position(viewport)

    def save(self, pos: Point) -> None:
        self.store.save(self.key, {"x": pos.x, "y": pos.y})
