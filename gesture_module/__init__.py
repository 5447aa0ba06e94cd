from gesture_module.controller import GestureController
from gesture_module.gesture_state import Intent


def __getattr__(name):
    if name == "OrbWorkflow":
        from gesture_module.workflow import OrbWorkflow

        return OrbWorkflow
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

__all__ = [
    "GestureController",
    "Intent",
    "OrbWorkflow",
]
