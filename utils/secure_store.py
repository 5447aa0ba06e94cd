"""Obscured API-key storage on top of the local store.

Keys are XOR-ed with a fixed secret and base64 encoded. This only keeps them
from being readable at a glance; it is not encryption.
"""

from __future__ import annotations

import base64
import binascii

from utils.local_store import LocalStore

PREFIX = "sn.secure."
SECRET = "nova"


def encode(value: str) -> str:
    xored = "".join(
        chr(ord(ch) ^ ord(SECRET[i % len(SECRET)])) for i, ch in enumerate(value)
    )
    return base64.b64encode(xored.encode("utf-8")).decode("ascii")


def decode(value: str) -> str:
    try:
        raw = base64.b64decode(value.encode("ascii"), validate=True).decode("utf-8")
    except (binascii.Error, UnicodeError, ValueError):
        return ""
    return "".join(
        chr(ord(ch) ^ ord(SECRET[i % len(SECRET)])) for i, ch in enumerate(raw)
    )


class KeyStore:
    def __init__(self, store: LocalStore) -> None:
        self.store = store

    def get_key(self, name: str) -> str:
        raw = self.store.load(PREFIX + name)
        return decode(raw) if isinstance(raw, str) and raw else ""

    def set_key(self, name: str, value: str) -> None:
        self.store.save(PREFIX + name, encode(value))

    def remove_key(self, name: str) -> None:
        self.store.remove(PREFIX + name)

    def clear_all(self) -> None:
        for key in self.store.keys():
            if key.startswith(PREFIX):
                self.store.remove(key)
