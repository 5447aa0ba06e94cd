"""Timestamped logging helpers shared by the orb, voice and API layers."""

from __future__ import annotations

import builtins
import threading
import time
from typing import Any


_LEVELS = {"DEEP", "DEBUG", "INFO", "WARN", "ERROR"}
_warned: set[str] = set()
_warned_lock = threading.Lock()


def _split_tags(message: str) -> tuple[list[str], str]:
    tags: list[str] = []
    remaining = message.lstrip()
    while remaining.startswith("["):
        end = remaining.find("]")
        if end == -1:
            break
        tag = remaining[1:end].strip()
        if not tag:
            break
        tags.append(tag)
        remaining = remaining[end + 1 :].lstrip()
    return tags, remaining


def _format_message(message: str) -> str:
    tags, remaining = _split_tags(message)
    system = "ORB"
    variant = None
    extra_tags: list[str] = []
    if tags:
        if tags[0].upper() in _LEVELS:
            variant = tags[0].upper()
            system = tags[1] if len(tags) > 1 else "ORB"
            extra_tags = tags[2:]
        else:
            system = tags[0]
            variant = tags[1] if len(tags) > 1 else None
            extra_tags = tags[2:]
    extra = f" [{' '.join(extra_tags)}]" if extra_tags else ""
    suffix = f" {remaining}" if remaining else ""
    if variant:
        return f"[{system}][{variant}]{extra}{suffix}"
    return f"[{system}]{extra}{suffix}"


def tprint(*args: Any, **kwargs: Any) -> None:
    """Print with a timestamp prefix and normalized tag order."""
    timestamp = time.strftime("%Y-%m-%d %H:%M:%S")
    message = " ".join(str(arg) for arg in args)
    builtins.print(f"[{timestamp}]{_format_message(message)}", **kwargs)


def log(system: str, message: str, variant: str | None = None) -> None:
    """Log with explicit system and optional variant."""
    if variant:
        tprint(f"[{system}][{variant}] {message}")
    else:
        tprint(f"[{system}] {message}")


def warn_once(key: str, system: str, message: str) -> bool:
    """Log a warning the first time ``key`` is seen; return True when logged."""
    with _warned_lock:
        if key in _warned:
            return False
        _warned.add(key)
    log(system, message, "WARN")
    return True


def reset_warnings() -> None:
    with _warned_lock:
        _warned.clear()
