"""Shared fixtures: a deterministic scheduler, a scriptable speech engine, stores."""

from __future__ import annotations

import pytest

from utils.event_bus import EventBus
from utils.local_store import LocalStore
from utils.log_utils import reset_warnings
from utils.notify import Toast
from utils.timers import FRAME_MS
from voice_module.speech_input import SpeechInput


class _ManualHandle:
    def __init__(self) -> None:
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Virtual clock; callbacks run only when a test advances time."""

    def __init__(self) -> None:
        self.now = 0.0
        self._seq = 0
        self._entries: list[tuple[float, int, _ManualHandle, object]] = []

    def call_later(self, delay_ms, callback):
        handle = _ManualHandle()
        self._seq += 1
        self._entries.append((self.now + max(0.0, delay_ms), self._seq, handle, callback))
        return handle

    def request_frame(self, callback):
        return self.call_later(FRAME_MS, callback)

    def advance(self, ms: float) -> None:
        target = self.now + ms
        while True:
            due = sorted(
                (e for e in self._entries if not e[2].cancelled and e[0] <= target),
                key=lambda e: (e[0], e[1]),
            )
            if not due:
                break
            entry = due[0]
            self._entries.remove(entry)
            self.now = entry[0]
            entry[2].cancelled = True
            entry[3]()
        self.now = target

    @property
    def pending(self) -> int:
        return sum(1 for e in self._entries if not e[2].cancelled)


class FakeSpeech(SpeechInput):
    """Speech engine that starts and stops synchronously."""

    def __init__(self, fail_with: Exception | None = None) -> None:
        super().__init__()
        self.fail_with = fail_with
        self.starts = 0
        self.stops = 0
        self.running = False

    def start(self) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        self.starts += 1
        self.running = True
        self._emit_start()

    def stop(self) -> None:
        self.stops += 1
        if self.running:
            self.running = False
            self._emit_end()

    def say(self, text: str) -> None:
        self._emit_result("", [text])


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch, tmp_path):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.delenv("VERCEL", raising=False)
    monkeypatch.delenv("APP_ENV", raising=False)
    monkeypatch.setenv("ORB_STORE_PATH", str(tmp_path / "store.json"))
    monkeypatch.setenv("ORB_SETTINGS_PATH", str(tmp_path / "app_settings.json"))
    reset_warnings()
    yield
    reset_warnings()


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def store(tmp_path):
    return LocalStore(tmp_path / "local_store.json")


@pytest.fixture
def bus():
    return EventBus()


@pytest.fixture
def toast(scheduler):
    return Toast(scheduler)


@pytest.fixture
def speech():
    return FakeSpeech()
