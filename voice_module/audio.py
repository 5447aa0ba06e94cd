"""Playable audio clips for voice replies.

Reply audio arrives as bytes; ``AudioClips`` writes each clip to a private
temp directory and hands out a ``file://`` URL, which plays the role a
browser object URL would. Every URL must be revoked when it is no longer
playing, which deletes the file.
"""

from __future__ import annotations

import tempfile
import uuid
from collections.abc import Callable
from pathlib import Path

from utils.log_utils import log

_EXTENSIONS = {
    "audio/mpeg": ".mp3",
    "audio/mp3": ".mp3",
    "audio/wav": ".wav",
    "audio/x-wav": ".wav",
    "audio/ogg": ".ogg",
    "audio/webm": ".webm",
}


class AudioClips:
    def __init__(self, directory: str | Path | None = None) -> None:
        self._directory = Path(directory) if directory else None
        self._live: dict[str, Path] = {}

    @property
    def directory(self) -> Path:
        if self._directory is None:
            self._directory = Path(tempfile.mkdtemp(prefix="orb-audio-"))
        self._directory.mkdir(parents=True, exist_ok=True)
        return self._directory

    def create_url(self, data: bytes, mime: str = "audio/mpeg") -> str:
        suffix = _EXTENSIONS.get(mime.split(";")[0].strip().lower(), ".bin")
        path = self.directory / f"{uuid.uuid4().hex}{suffix}"
        path.write_bytes(data)
        url = path.as_uri()
        self._live[url] = path
        return url

    def revoke(self, url: str) -> None:
        path = self._live.pop(url, None)
        if path is None:
            return
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            log("AUDIO", f"Failed to remove {path}: {exc}", "WARN")

    def revoke_all(self) -> None:
        for url in list(self._live):
            self.revoke(url)

    def is_live(self, url: str) -> bool:
        return url in self._live

    def __len__(self) -> int:
        return len(self._live)


class AudioPlayback:
    """At most one playing clip; replacing it revokes the previous URL first."""

    def __init__(self, clips: AudioClips, player: Callable[[str], None] | None = None) -> None:
        self.clips = clips
        self.player = player
        self.current_url: str | None = None

    def play(self, url: str) -> None:
        if self.current_url and self.current_url != url:
            self.clips.revoke(self.current_url)
        self.current_url = url
        if self.player is not None:
            self.player(url)
        else:
            log("AUDIO", f"No audio sink; clip ready at {url}")

    def stop(self) -> None:
        if self.current_url:
            self.clips.revoke(self.current_url)
        self.current_url = None
