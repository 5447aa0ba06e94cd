"""Tests for widget clamping, drag threshold and position persistence."""

import pytest

from gesture_module.constants import STORAGE_KEY, drag_threshold
from gesture_module.geometry import Point, Viewport, clamp_position, default_position
from gesture_module.position_store import PositionStore


class TestClamp:
    @pytest.mark.parametrize(
        "pos",
        [Point(-50, -50), Point(5000, 5000), Point(300, 200), Point(12, 712), Point(-1, 9999)],
    )
    def test_clamp_is_idempotent(self, pos):
        viewport = Viewport(1280, 800)
        once = clamp_position(pos, viewport)
        assert clamp_position(once, viewport) == once

    def test_clamp_keeps_margin(self):
        viewport = Viewport(1280, 800)
        assert clamp_position(Point(-50, 5000), viewport) == Point(12, 712)

    def test_tiny_viewport_pins_to_margin(self):
        assert clamp_position(Point(50, 50), Viewport(60, 60)) == Point(12, 12)

    def test_default_position_is_bottom_right(self):
        assert default_position(Viewport(1280, 800)) == Point(1192, 712)


class TestDragThreshold:
    def test_floor_on_narrow_viewports(self):
        assert drag_threshold(320) == 4.0

    def test_scales_with_width(self):
        assert drag_threshold(2000) == pytest.approx(10.0)


class TestPositionStore:
    def test_missing_position_uses_default(self, store):
        assert PositionStore(store).load(Viewport(1280, 800)) == Point(1192, 712)

    def test_saved_position_is_reclamped(self, store):
        positions = PositionStore(store)
        positions.save(Point(1100, 700))

        assert positions.load(Viewport(640, 480)) == Point(552, 392)
        assert store.load(STORAGE_KEY) == {"x": 1100, "y": 700}

    def test_malformed_position_falls_back(self, store):
        store.save(STORAGE_KEY, {"x": "left"})
        assert PositionStore(store).load(Viewport(1280, 800)) == Point(1192, 712)
