"""Pointer gesture state machine for the orb.

Each transition is a pure function ``(phase, input) -> (phase, effects)``.
The controller owns timers, voice and persistence and carries out the
returned effects; nothing here touches the outside world.

Phases::

    Idle --press--> Pressed --hold elapsed--> Holding
                       |                         |
                       +--moved past threshold--> Dragging
    Pressed/Holding/Dragging --release--> Releasing --click--> Idle
    Pressed/Holding/Dragging --cancel---> Idle

``Releasing`` is the single click gate: the synthetic click that follows a
pointer-up is swallowed after a hold or drag and toggles the menu after a
plain tap.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Union

from gesture_module.geometry import Point


class Intent(str, Enum):
    TAP = "tap"
    HOLD = "hold"
    DRAG = "drag"


class Effect(str, Enum):
    START_HOLD_TIMER = "start_hold_timer"
    CANCEL_HOLD_TIMER = "cancel_hold_timer"
    START_VOICE = "start_voice"
    STOP_VOICE = "stop_voice"
    CLOSE_MENU = "close_menu"
    TOGGLE_MENU = "toggle_menu"
    COMMIT_POSITION = "commit_position"
    BIND_CONTEXT = "bind_context"


@dataclass(frozen=True)
class PointerSession:
    pointer_id: int
    origin: Point
    offset: Point
    last: Point


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class Pressed:
    session: PointerSession


@dataclass(frozen=True)
class Holding:
    session: PointerSession
    started_voice: bool


@dataclass(frozen=True)
class Dragging:
    session: PointerSession
    started_voice: bool


@dataclass(frozen=True)
class Releasing:
    intent: Intent
    suppress_click: bool


Phase = Union[Idle, Pressed, Holding, Dragging, Releasing]
Transition = tuple[Phase, tuple[Effect, ...]]

ACTIVE = (Pressed, Holding, Dragging)


def is_active(phase: Phase) -> bool:
    return isinstance(phase, ACTIVE)


def press(phase: Phase, pointer_id: int, point: Point, widget_pos: Point) -> Transition:
    if is_active(phase):
        return phase, ()
    session = PointerSession(
        pointer_id=pointer_id,
        origin=point,
        offset=point - widget_pos,
        last=point,
    )
    return Pressed(session), (Effect.CLOSE_MENU, Effect.START_HOLD_TIMER)


def move(phase: Phase, point: Point, threshold: float, listening: bool) -> Transition:
    if not is_active(phase):
        return phase, ()
    session = replace(phase.session, last=point)
    if isinstance(phase, Pressed) and session.origin.distance_to(point) > threshold:
        effects = [Effect.CANCEL_HOLD_TIMER]
        if not listening:
            effects.append(Effect.START_VOICE)
        return Dragging(session, started_voice=not listening), tuple(effects)
    return replace(phase, session=session), ()


def hold_elapsed(phase: Phase, listening: bool) -> Transition:
    if not isinstance(phase, Pressed):
        return phase, ()
    effects = () if listening else (Effect.START_VOICE,)
    return Holding(phase.session, started_voice=not listening), effects


def release(phase: Phase, *, cancelled: bool = False) -> Transition:
    """End the pointer session on pointer-up, cancel or lost capture."""
    if isinstance(phase, Pressed):
        intent = Intent.TAP
        effects = [Effect.CANCEL_HOLD_TIMER, Effect.COMMIT_POSITION]
    elif isinstance(phase, Holding):
        intent = Intent.HOLD
        effects = [Effect.COMMIT_POSITION]
        if phase.started_voice:
            effects.append(Effect.STOP_VOICE)
    elif isinstance(phase, Dragging):
        intent = Intent.DRAG
        effects = [Effect.COMMIT_POSITION]
        if phase.started_voice:
            effects.append(Effect.STOP_VOICE)
        effects.append(Effect.BIND_CONTEXT)
    else:
        return phase, ()
    # No click follows a cancel, so there is nothing left to gate.
    if cancelled:
        return Idle(), tuple(effects)
    return Releasing(intent, suppress_click=intent is not Intent.TAP), tuple(effects)


def click(phase: Phase) -> Transition:
    if isinstance(phase, Releasing):
        if phase.suppress_click:
            return Idle(), ()
        return Idle(), (Effect.TOGGLE_MENU,)
    if isinstance(phase, Idle):
        return phase, (Effect.TOGGLE_MENU,)
    return phase, ()


def intent_of(phase: Phase) -> Intent | None:
    """Classify an active or releasing phase; None when idle."""
    if isinstance(phase, Pressed):
        return Intent.TAP
    if isinstance(phase, Holding):
        return Intent.HOLD
    if isinstance(phase, Dragging):
        return Intent.DRAG
    if isinstance(phase, Releasing):
        return phase.intent
    return None
