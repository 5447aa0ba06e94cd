"""Typed event bus for inter-module communication.

Topics form a closed enum and each topic carries exactly one payload
dataclass, so publishers and subscribers cannot drift apart on names or
payload shapes.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from utils.log_utils import log

if TYPE_CHECKING:
    from feed_module.models import Post


PostId = str


class Topic(str, Enum):
    FEED_SELECT_ID = "feed:select-id"
    FEED_SELECT = "feed:select"
    FEED_HOVER = "feed:hover"
    POST_REACT = "post:react"
    POST_COMMENT = "post:comment"
    POST_REMIX = "post:remix"
    POST_FOCUS = "post:focus"
    POST_VOTE = "post:vote"
    SIDEBAR_OPEN = "sidebar:open"
    PROFILE_OPEN = "profile:open"
    ORB_PORTAL = "orb:portal"
    NOTIFY = "notify"
    ERROR = "__error__"


@dataclass(frozen=True)
class PostRef:
    id: PostId


@dataclass(frozen=True)
class PostSelected:
    post: "Post"


@dataclass(frozen=True)
class Reaction:
    id: PostId
    emoji: str


@dataclass(frozen=True)
class Comment:
    id: PostId
    body: str


@dataclass(frozen=True)
class Vote:
    id: PostId
    option_index: int


@dataclass(frozen=True)
class ProfileRef:
    author: str | None


@dataclass(frozen=True)
class PortalOpen:
    x: float
    y: float
    post_id: PostId | None = None


@dataclass(frozen=True)
class Notice:
    message: str


@dataclass(frozen=True)
class Empty:
    pass


@dataclass(frozen=True)
class HandlerFailure:
    topic: Topic
    payload: Any
    error: BaseException


PAYLOAD_TYPES: dict[Topic, type] = {
    Topic.FEED_SELECT_ID: PostRef,
    Topic.FEED_SELECT: PostSelected,
    Topic.FEED_HOVER: PostSelected,
    Topic.POST_REACT: Reaction,
    Topic.POST_COMMENT: Comment,
    Topic.POST_REMIX: PostRef,
    Topic.POST_FOCUS: PostRef,
    Topic.POST_VOTE: Vote,
    Topic.SIDEBAR_OPEN: Empty,
    Topic.PROFILE_OPEN: ProfileRef,
    Topic.ORB_PORTAL: PortalOpen,
    Topic.NOTIFY: Notice,
    Topic.ERROR: HandlerFailure,
}

Handler = Callable[[Any], None]


class EventBus:
    def __init__(self) -> None:
        self._subscribers: dict[Topic, list[Handler]] = defaultdict(list)

    def subscribe(self, topic: Topic, handler: Handler) -> Callable[[], None]:
        """Register ``handler`` and return a callable that unsubscribes it."""
        self._subscribers[topic].append(handler)
        return lambda: self.unsubscribe(topic, handler)

    def unsubscribe(self, topic: Topic, handler: Handler) -> None:
        handlers = self._subscribers.get(topic)
        if not handlers:
            return
        if handler in handlers:
            handlers.remove(handler)
        if not handlers:
            del self._subscribers[topic]

    def publish(self, topic: Topic, payload: Any = None) -> None:
        expected = PAYLOAD_TYPES[topic]
        if payload is None and expected is Empty:
            payload = Empty()
        if not isinstance(payload, expected):
            raise TypeError(
                f"{topic.value} expects {expected.__name__}, got {type(payload).__name__}"
            )
        for handler in list(self._subscribers.get(topic, [])):
            try:
                handler(payload)
            except Exception as exc:
                log("BUS", f"handler for {topic.value} failed: {exc}", "ERROR")
                if topic is not Topic.ERROR:
                    self.publish(Topic.ERROR, HandlerFailure(topic, payload, exc))

    def subscriber_count(self, topic: Topic) -> int:
        return len(self._subscribers.get(topic, []))
