"""Chat messages shown in the orb's panel."""

from __future__ import annotations

import time
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

USER = "user"
ASSISTANT = "assistant"

Retry = Callable[[], Awaitable[object]]


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class Message:
    role: str
    text: str
    post_id: str | None = None
    retry: Retry | None = None
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    ts: int = field(default_factory=_now_ms)


class MessageLog:
    """Ordered message list with change listeners."""

    def __init__(self) -> None:
        self._messages: list[Message] = []
        self._listeners: list[Callable[[list[Message]], None]] = []

    def __iter__(self):
        return iter(list(self._messages))

    def __len__(self) -> int:
        return len(self._messages)

    @property
    def messages(self) -> list[Message]:
        return list(self._messages)

    @property
    def last(self) -> Message | None:
        return self._messages[-1] if self._messages else None

    def subscribe(self, listener: Callable[[list[Message]], None]) -> Callable[[], None]:
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def append(
        self,
        role: str,
        text: str,
        *,
        post_id: str | None = None,
        retry: Retry | None = None,
    ) -> Message:
        message = Message(role=role, text=text, post_id=post_id, retry=retry)
        self._messages.append(message)
        self._emit()
        return message

    def discard(self, message_id: str) -> bool:
        for index, message in enumerate(self._messages):
            if message.id == message_id:
                del self._messages[index]
                self._emit()
                return True
        return False

    def _emit(self) -> None:
        snapshot = list(self._messages)
        for listener in list(self._listeners):
            listener(snapshot)
