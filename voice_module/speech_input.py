"""Speech-input engine interface used by the voice session."""

from __future__ import annotations

from collections.abc import Callable

ResultHook = Callable[[str, list[str]], None]


class SpeechInput:
    """Base class for continuous speech recognisers.

    Engines report lifecycle through the bound hooks: ``on_start`` once audio
    capture is live, ``on_result(interim, finals)`` for each batch of
    recognised text, ``on_error(message)`` on failure and ``on_end`` when
    capture stops for any reason.
    """

    def __init__(self) -> None:
        self.on_start: Callable[[], None] | None = None
        self.on_end: Callable[[], None] | None = None
        self.on_error: Callable[[str], None] | None = None
        self.on_result: ResultHook | None = None

    def bind(
        self,
        *,
        on_start: Callable[[], None],
        on_end: Callable[[], None],
        on_error: Callable[[str], None],
        on_result: ResultHook,
    ) -> None:
        self.on_start = on_start
        self.on_end = on_end
        self.on_error = on_error
        self.on_result = on_result

    def start(self) -> None:
        raise NotImplementedError

    def stop(self) -> None:
        raise NotImplementedError

    def _emit_start(self) -> None:
        if self.on_start:
            self.on_start()

    def _emit_end(self) -> None:
        if self.on_end:
            self.on_end()

    def _emit_error(self, message: str) -> None:
        if self.on_error:
            self.on_error(message)

    def _emit_result(self, interim: str, finals: list[str]) -> None:
        if self.on_result:
            self.on_result(interim, finals)
