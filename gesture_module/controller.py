"""Event-driven pointer/keyboard controller for the assistant orb.

The host forwards raw pointer, click and key events; the controller runs
them through the gesture state machine and carries out the resulting
effects: hold timer, voice start/stop, menu toggling, position commits and
drag-to-post context binding.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Protocol

from gesture_module import gesture_state
from gesture_module.constants import HOLD_MS, LINK_TOAST_MS, drag_threshold
from gesture_module.geometry import Point, Viewport, clamp_position, widget_center
from gesture_module.gesture_state import Effect, Idle, Intent, Phase, is_active
from gesture_module.position_store import PositionStore
from utils.event_bus import EventBus, PostRef, Topic
from utils.log_utils import log
from utils.notify import Toast
from utils.settings_store import deep_log
from utils.timers import Scheduler, TimerGroup

HitTest = Callable[[Point], "str | None"]


class VoiceControl(Protocol):
    listening: bool

    def start(self) -> bool: ...

    def stop(self) -> None: ...

    def toggle(self) -> bool: ...


def _noop() -> None:
    return None


class GestureController:
    def __init__(
        self,
        *,
        scheduler: Scheduler,
        viewport: Viewport,
        positions: PositionStore,
        voice: VoiceControl,
        bus: EventBus,
        toast: Toast,
        hit_test: HitTest | None = None,
        on_toggle_menu: Callable[[], None] = _noop,
        on_close_menu: Callable[[], None] = _noop,
        on_escape: Callable[[], None] = _noop,
        on_context_bound: Callable[[str], None] | None = None,
    ) -> None:
        self.timers = TimerGroup(scheduler)
        self.viewport = viewport
        self.positions = positions
        self.voice = voice
        self.bus = bus
        self.toast = toast
        self.hit_test = hit_test
        self.on_toggle_menu = on_toggle_menu
        self.on_close_menu = on_close_menu
        self.on_escape = on_escape
        self.on_context_bound = on_context_bound

        self.position = positions.load(viewport)
        self.live_position = self.position
        self.phase: Phase = Idle()
        self.hover_id: str | None = None
        self.pointer_events_enabled = True
        self.focused = False
        self.last_intent: Intent | None = None
        self._pending_point: Point | None = None
        self._last_point: Point | None = None
        self._release_point: Point | None = None

    @property
    def threshold(self) -> float:
        return drag_threshold(self.viewport.width)

    @property
    def active(self) -> bool:
        return is_active(self.phase)

    # pointer input

    def pointer_down(self, pointer_id: int, x: float, y: float) -> bool:
        """Start a session; a second pointer while one is active is ignored."""
        if self.active:
            return False
        self.phase, effects = gesture_state.press(
            self.phase, pointer_id, Point(x, y), self.position
        )
        self.live_position = self.position
        self.pointer_events_enabled = False
        self._pending_point = None
        self._last_point = None
        self._run(effects)
        return True

    def pointer_move(self, pointer_id: int, x: float, y: float) -> None:
        if not self._owns(pointer_id):
            return
        point = Point(x, y)
        self._pending_point = point
        self._last_point = point
        self.timers.frame("move", self._on_frame)

    def pointer_up(self, pointer_id: int, x: float, y: float) -> None:
        if self._owns(pointer_id):
            self._finish(Point(x, y), cancelled=False)

    def pointer_cancel(self, pointer_id: int, x: float, y: float) -> None:
        if self._owns(pointer_id):
            self._finish(Point(x, y), cancelled=True)

    def lost_pointer_capture(self) -> None:
        if not self.active:
            return
        point = self._last_point or widget_center(self.live_position)
        self._finish(point, cancelled=True)

    def click(self) -> None:
        self.phase, effects = gesture_state.click(self.phase)
        self._run(effects)

    def double_click(self) -> None:
        self.voice.toggle()

    # keyboard

    def key_down(self, key: str) -> bool:
        """Handle orb keys; return False for keys the caller should handle."""
        if key in ("Enter", " "):
            self.on_toggle_menu()
            return True
        if key.lower() == "v" and len(key) == 1:
            self.voice.toggle()
            return True
        if key == "Escape":
            self.on_escape()
            self.voice.stop()
            self.focus()
            return True
        return False

    def focus(self) -> None:
        self.focused = True

    def blur(self) -> None:
        self.focused = False

    # viewport

    def resize(self, viewport: Viewport) -> None:
        self.viewport = viewport
        self.position = clamp_position(self.position, viewport)
        self.live_position = clamp_position(self.live_position, viewport)

    def teardown(self) -> None:
        self.timers.cancel_all()
        self.phase = Idle()
        self._pending_point = None
        self._last_point = None
        self.pointer_events_enabled = True
        self._set_hover(None)

    # internals

    def _owns(self, pointer_id: int) -> bool:
        return self.active and self.phase.session.pointer_id == pointer_id

    def _on_frame(self) -> None:
        point = self._pending_point
        self._pending_point = None
        if point is not None and self.active:
            self._apply_move(point)

    def _on_hold(self) -> None:
        self.phase, effects = gesture_state.hold_elapsed(self.phase, self.voice.listening)
        deep_log(f"[DEEP][ORB] hold elapsed phase={type(self.phase).__name__}")
        self._run(effects)

    def _apply_move(self, point: Point) -> None:
        self.phase, effects = gesture_state.move(
            self.phase, point, self.threshold, self.voice.listening
        )
        self._run(effects)
        offset = self.phase.session.offset
        self.live_position = clamp_position(
            Point(point.x - offset.x, point.y - offset.y), self.viewport
        )
        self._update_hover(point)

    def _finish(self, point: Point, *, cancelled: bool) -> None:
        # Flush the coalesced move so a fast flick still classifies as a drag.
        if self.timers.cancel("move") and self._pending_point is not None:
            self._apply_move(self._pending_point)
        self._pending_point = None
        self.timers.cancel("hold")

        intent = gesture_state.intent_of(self.phase)
        self._release_point = point
        self.phase, effects = gesture_state.release(self.phase, cancelled=cancelled)
        self._run(effects)

        self.last_intent = intent
        self._set_hover(None)
        self._last_point = None
        self.pointer_events_enabled = True
        log("ORB", f"gesture ended intent={intent.value if intent else None} cancelled={cancelled}")

    def _run(self, effects: tuple[Effect, ...]) -> None:
        for effect in effects:
            if effect is Effect.START_HOLD_TIMER:
                self.timers.schedule("hold", HOLD_MS, self._on_hold)
            elif effect is Effect.CANCEL_HOLD_TIMER:
                self.timers.cancel("hold")
            elif effect is Effect.START_VOICE:
                self.voice.start()
            elif effect is Effect.STOP_VOICE:
                self.voice.stop()
            elif effect is Effect.CLOSE_MENU:
                self.on_close_menu()
            elif effect is Effect.TOGGLE_MENU:
                self.on_toggle_menu()
            elif effect is Effect.COMMIT_POSITION:
                self.position = self.live_position
                self.positions.save(self.position)
            elif effect is Effect.BIND_CONTEXT:
                self._bind_context()

    def _bind_context(self) -> None:
        if self.hit_test is None or self._release_point is None:
            return
        post_id = self.hit_test(self._release_point)
        if not post_id:
            return
        self.bus.publish(Topic.POST_FOCUS, PostRef(post_id))
        self.toast.show(f"🎯 linked to {post_id}", LINK_TOAST_MS)
        if self.on_context_bound is not None:
            self.on_context_bound(post_id)

    def _update_hover(self, point: Point) -> None:
        post_id = self.hit_test(point) if self.hit_test else None
        if post_id != self.hover_id:
            self._set_hover(post_id)
            if post_id:
                self.bus.publish(Topic.FEED_SELECT_ID, PostRef(post_id))

    def _set_hover(self, post_id: str | None) -> None:
        self.hover_id = post_id
