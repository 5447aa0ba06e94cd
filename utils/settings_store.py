"""App settings cache and user preferences."""

from __future__ import annotations

import os
import threading
from collections.abc import Callable
from typing import Any

from utils.file_utils import load_json
from utils.local_store import LocalStore
from utils.log_utils import tprint

_lock = threading.Lock()
_settings_cache: dict[str, Any] = {}

THEME_KEY = "sn.theme"
ACCENT_KEY = "sn.accent"
MODEL_KEY = "sn.model.openai"
THEMES = ("dark", "light")
DEFAULT_ACCENT = "#0a84ff"


def _settings_path() -> str:
    return os.getenv("ORB_SETTINGS_PATH", "config/app_settings.json")


def refresh_settings() -> dict[str, Any]:
    """Reload settings from disk and replace the cache."""
    data = load_json(_settings_path())
    with _lock:
        _settings_cache.clear()
        _settings_cache.update(data)
        return dict(_settings_cache)


def get_settings() -> dict[str, Any]:
    """Return a copy of the cached settings."""
    with _lock:
        cached = dict(_settings_cache)
    if not cached:
        cached = refresh_settings()
    return cached


def is_deep_logging() -> bool:
    """Return True when log_level requests deep tracing."""
    level = str(get_settings().get("log_level", "")).upper()
    return level in {"DEEP"}


def deep_log(message: str) -> None:
    if is_deep_logging():
        tprint(message)


class Preferences:
    """Theme, accent colour and model choice persisted in the local store."""

    def __init__(self, store: LocalStore) -> None:
        self.store = store
        self._listeners: list[Callable[[str, Any], None]] = []

    def subscribe(self, listener: Callable[[str, Any], None]) -> Callable[[], None]:
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    @property
    def theme(self) -> str:
        value = self.store.load(THEME_KEY, "dark")
        return value if value in THEMES else "dark"

    def set_theme(self, theme: str) -> None:
        if theme not in THEMES:
            raise ValueError(f"Unknown theme '{theme}'")
        self._set(THEME_KEY, theme)

    @property
    def accent(self) -> str:
        value = self.store.load(ACCENT_KEY, DEFAULT_ACCENT)
        return value if isinstance(value, str) and value else DEFAULT_ACCENT

    def set_accent(self, color: str) -> None:
        self._set(ACCENT_KEY, color.strip() or DEFAULT_ACCENT)

    @property
    def model(self) -> str | None:
        value = self.store.load(MODEL_KEY)
        if value is None:
            return None
        text = str(value).strip()
        return text or None

    def set_model(self, model: str | None) -> None:
        if model is None or not model.strip():
            self.store.remove(MODEL_KEY)
            self._notify(MODEL_KEY, None)
            return
        self._set(MODEL_KEY, model.strip())

    def _set(self, key: str, value: Any) -> None:
        self.store.save(key, value)
        self._notify(key, value)

    def _notify(self, key: str, value: Any) -> None:
        for listener in list(self._listeners):
            listener(key, value)
