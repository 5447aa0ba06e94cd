"""Slash commands typed or spoken into the orb, then free text to the assistant."""

from __future__ import annotations

from collections.abc import Callable

from command_controller.assistant import AssistantSession, ContextBundle
from command_controller.errors import NoContextBound
from command_controller.logger import CommandLogger
from command_controller.messages import ASSISTANT, USER, Message, MessageLog
from gesture_module.geometry import Point
from utils.event_bus import Comment, EventBus, PortalOpen, PostRef, Reaction, Topic

DEFAULT_REACTION = "❤️"

REACT_WARNING = "⚠️ Drag the orb over a post first."
COMMENT_WARNING = "⚠️ Drag onto a post to comment."
REMIX_WARNING = "⚠️ Drag onto a post to remix."
WORLD_WARNING = "⚠️ Drag onto a post to enter its world."
WORLD_TEXT = "🌀 Entering world…"


def _no_context() -> ContextBundle | None:
    return None


def _origin() -> Point:
    return Point(0.0, 0.0)


class CommandRouter:
    """Routes ``/react``, ``/comment``, ``/remix`` and ``/world`` to the bus.

    Every slash command needs a bound post; without one the user gets a
    warning message and nothing is published. Anything else goes to the
    assistant with the bound post as context.
    """

    def __init__(
        self,
        bus: EventBus,
        messages: MessageLog,
        session: AssistantSession,
        *,
        context: Callable[[], ContextBundle | None] = _no_context,
        position: Callable[[], Point] = _origin,
        logger: CommandLogger | None = None,
    ) -> None:
        self.bus = bus
        self.messages = messages
        self.session = session
        self.context = context
        self.position = position
        self.logger = logger or CommandLogger("ROUTER")

    async def handle(self, text: str) -> Message | None:
        """Run one submitted line and return the message it produced."""
        line = text.strip()
        if not line:
            return None
        ctx = self.context()
        post_id = ctx.post_id if ctx else None
        self.messages.append(USER, line, post_id=post_id)
        try:
            reply = self.run_slash(line, post_id)
        except NoContextBound as exc:
            self.logger.info(f"Ignored '{line.split()[0]}' without a bound post")
            return self.messages.append(ASSISTANT, exc.message)
        if reply is not None:
            return reply
        return await self.session.ask(line, ctx)

    def run_slash(self, line: str, post_id: str | None) -> Message | None:
        """Handle a slash command; None when ``line`` is not one."""
        lower = line.lower()
        if lower.startswith("/react"):
            emoji = line[len("/react"):].strip() or DEFAULT_REACTION
            bound = self._require(post_id, REACT_WARNING)
            self.bus.publish(Topic.POST_REACT, Reaction(bound, emoji))
            return self._confirm(f"✨ Reacted {emoji} on {bound}", bound)
        if lower.startswith("/comment "):
            body = line[len("/comment "):].strip()
            bound = self._require(post_id, COMMENT_WARNING)
            self.bus.publish(Topic.POST_COMMENT, Comment(bound, body))
            return self._confirm(f"💬 Commented: {body}", bound)
        if lower.startswith("/world"):
            bound = self._require(post_id, WORLD_WARNING)
            origin = self.position()
            self.bus.publish(Topic.ORB_PORTAL, PortalOpen(origin.x, origin.y, bound))
            return self._confirm(WORLD_TEXT, bound)
        if lower.startswith("/remix"):
            bound = self._require(post_id, REMIX_WARNING)
            self.bus.publish(Topic.POST_REMIX, PostRef(bound))
            return self._confirm(f"🎬 Remixing {bound}", bound)
        return None

    def _require(self, post_id: str | None, warning: str) -> str:
        if not post_id:
            raise NoContextBound(warning)
        return post_id

    def _confirm(self, text: str, post_id: str) -> Message:
        self.logger.info(text)
        return self.messages.append(ASSISTANT, text, post_id=post_id)
