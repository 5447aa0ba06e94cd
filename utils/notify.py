"""Transient toasts next to the orb."""

from __future__ import annotations

from collections.abc import Callable

from utils.timers import Scheduler, TimerGroup


class Toast:
    """Single transient message slot next to the orb.

    ``show`` replaces the current text; with ``duration_ms`` it clears itself
    unless another toast replaced it first.
    """

    def __init__(self, scheduler: Scheduler) -> None:
        self._timers = TimerGroup(scheduler)
        self.text = ""
        self._listeners: list[Callable[[str], None]] = []

    def subscribe(self, listener: Callable[[str], None]) -> Callable[[], None]:
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def show(self, text: str, duration_ms: float | None = None) -> None:
        self._timers.cancel("clear")
        self._set(text)
        if duration_ms is not None:
            self._timers.schedule("clear", duration_ms, self.clear)

    def clear(self) -> None:
        self._timers.cancel("clear")
        self._set("")

    def teardown(self) -> None:
        self._timers.cancel_all()

    def _set(self, text: str) -> None:
        self.text = text
        for listener in list(self._listeners):
            listener(text)
