"""JSON-file key/value store standing in for per-browser local storage."""

from __future__ import annotations

import os
import threading
from pathlib import Path
from typing import Any

from utils.file_utils import load_json, save_json
from utils.log_utils import log

DEFAULT_STORE_PATH = "config/local_store.json"


class LocalStore:
    """Small persistent map of string keys to JSON values.

    Every write is flushed to disk immediately. Read or write failures are
    logged and swallowed so callers fall back to defaults, the same way a
    browser page keeps working when storage is unavailable.
    """

    def __init__(self, path: str | Path | None = None) -> None:
        self.path = Path(path or os.getenv("ORB_STORE_PATH", DEFAULT_STORE_PATH))
        self._lock = threading.Lock()
        self._data: dict[str, Any] | None = None

    def _ensure_loaded(self) -> dict[str, Any]:
        if self._data is None:
            try:
                self._data = load_json(self.path)
            except OSError as exc:
                log("STORE", f"Failed to read {self.path}: {exc}", "WARN")
                self._data = {}
        return self._data

    def load(self, key: str, fallback: Any = None) -> Any:
        with self._lock:
            data = self._ensure_loaded()
            return data.get(key, fallback)

    def save(self, key: str, value: Any) -> None:
        with self._lock:
            data = self._ensure_loaded()
            data[key] = value
            self._flush(data)

    def remove(self, key: str) -> None:
        with self._lock:
            data = self._ensure_loaded()
            if data.pop(key, None) is not None:
                self._flush(data)

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._ensure_loaded())

    def _flush(self, data: dict[str, Any]) -> None:
        try:
            save_json(self.path, data)
        except OSError as exc:
            log("STORE", f"Failed to write {self.path}: {exc}", "WARN")
