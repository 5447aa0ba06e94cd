"""Orb sizing and gesture tolerances."""

HOLD_MS = 280
ORB_SIZE = 76
ORB_MARGIN = 12
STORAGE_KEY = "assistantOrbPos.v6"

# Drag threshold tracks viewport width (about half a vw) with a 4px floor.
DRAG_THRESHOLD_MIN = 4.0
DRAG_THRESHOLD_VW = 0.005

LINK_TOAST_MS = 1100
REACT_TOAST_MS = 900


def drag_threshold(viewport_width: float) -> float:
    return max(DRAG_THRESHOLD_MIN, viewport_width * DRAG_THRESHOLD_VW)
