"""Cancellable timers and frame requests for the single UI loop."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Protocol

FRAME_MS = 16.0


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> TimerHandle: ...

    def request_frame(self, callback: Callable[[], None]) -> TimerHandle: ...


class LoopScheduler:
    """Scheduler backed by an asyncio event loop."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> TimerHandle:
        return self.loop.call_later(max(0.0, delay_ms) / 1000.0, callback)

    def request_frame(self, callback: Callable[[], None]) -> TimerHandle:
        return self.call_later(FRAME_MS, callback)


class TimerGroup:
    """Named timers owned by one component.

    Scheduling a name that is already pending cancels the old handle first,
    and ``cancel_all`` is the single teardown path.
    """

    def __init__(self, scheduler: Scheduler) -> None:
        self.scheduler = scheduler
        self._handles: dict[str, TimerHandle] = {}

    def schedule(self, name: str, delay_ms: float, callback: Callable[[], None]) -> None:
        self.cancel(name)

        def _fire() -> None:
            self._handles.pop(name, None)
            callback()

        self._handles[name] = self.scheduler.call_later(delay_ms, _fire)

    def frame(self, name: str, callback: Callable[[], None]) -> bool:
        """Request a frame unless one is already pending; return True if requested."""
        if name in self._handles:
            return False

        def _fire() -> None:
            self._handles.pop(name, None)
            callback()

        self._handles[name] = self.scheduler.request_frame(_fire)
        return True

    def cancel(self, name: str) -> bool:
        handle = self._handles.pop(name, None)
        if handle is None:
            return False
        handle.cancel()
        return True

    def pending(self, name: str) -> bool:
        return name in self._handles

    def cancel_all(self) -> None:
        for name in list(self._handles):
            self.cancel(name)

    def __len__(self) -> int:
        return len(self._handles)
