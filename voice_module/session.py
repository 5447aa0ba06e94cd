"""Voice session lifecycle: listening flag, interim transcript, restarts."""

from __future__ import annotations

from collections.abc import Callable

from command_controller.errors import InputUnsupported
from utils.log_utils import log, warn_once
from utils.notify import Toast
from voice_module.speech_input import SpeechInput

LISTENING_TEXT = "Listening…"
UNSUPPORTED_TEXT = "Voice not supported"
MIC_ERROR_TEXT = "Mic error"


class VoiceSession:
    """Owns one speech engine and turns its callbacks into orb state.

    When no engine is available the session still works as a stub: every
    start attempt shows a transient "Voice not supported" notice and the rest
    of the orb keeps running text-only.
    """

    def __init__(
        self,
        speech: SpeechInput | None,
        toast: Toast,
        on_utterance: Callable[[str], None],
    ) -> None:
        self.speech = speech
        self.toast = toast
        self.on_utterance = on_utterance
        self.listening = False
        self.interim = ""
        self._restart = False
        if speech is not None:
            speech.bind(
                on_start=self._handle_start,
                on_end=self._handle_end,
                on_error=self._handle_error,
                on_result=self._handle_result,
            )

    @property
    def supported(self) -> bool:
        return self.speech is not None

    def start(self) -> bool:
        """Begin listening; return False when voice could not start."""
        if self.listening:
            return True
        if self.speech is None:
            self._unsupported()
            return False
        self._restart = True
        try:
            self.speech.start()
        except InputUnsupported as exc:
            self._restart = False
            self._unsupported(str(exc))
            return False
        except Exception as exc:
            self._restart = False
            log("VOICE", f"Speech start failed: {exc}", "ERROR")
            self.listening = False
            self.toast.show(MIC_ERROR_TEXT)
            return False
        return True

    def stop(self) -> None:
        self._restart = False
        if self.speech is not None:
            try:
                self.speech.stop()
            except Exception as exc:
                log("VOICE", f"Speech stop failed: {exc}", "ERROR")
        self.listening = False
        self.interim = ""

    def toggle(self) -> bool:
        if self.listening:
            self.stop()
            return False
        return self.start()

    def _unsupported(self, detail: str = "") -> None:
        warn_once("voice-unsupported", "VOICE", detail or "Speech input unavailable; text only")
        self.toast.show(UNSUPPORTED_TEXT)

    def _handle_start(self) -> None:
        self.listening = True
        self.toast.show(LISTENING_TEXT)

    def _handle_end(self) -> None:
        self.listening = False
        if self.toast.text == LISTENING_TEXT:
            self.toast.clear()
        if self._restart and self.speech is not None:
            try:
                self.speech.start()
            except Exception as exc:
                self._restart = False
                log("VOICE", f"Speech restart failed: {exc}", "ERROR")

    def _handle_error(self, message: str) -> None:
        log("VOICE", f"Speech error: {message}", "ERROR")
        self._restart = False
        self.listening = False
        self.toast.show(MIC_ERROR_TEXT)

    def _handle_result(self, interim: str, finals: list[str]) -> None:
        self.interim = interim.strip()
        final = " ".join(part.strip() for part in finals if part.strip())
        if final:
            self.interim = ""
            self.on_utterance(final)
