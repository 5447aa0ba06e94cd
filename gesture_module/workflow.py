"""Wires the orb's collaborators into one widget.

``OrbWorkflow`` owns the bus subscriptions, toast, voice session, assistant
session, command router, radial menus and the gesture controller, and keeps
the small bits of widget state (chat panel, petal, bound post) that tie them
together. Host shells forward input to ``controller`` and ``key_down`` and
read state back from here.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Sequence

from command_controller.assistant import AssistantBridge, AssistantSession, ContextBundle
from command_controller.logger import CommandLogger
from command_controller.messages import MessageLog
from command_controller.router import CommandRouter
from feed_module.models import Post
from feed_module.store import FeedStore
from gesture_module.constants import LINK_TOAST_MS, ORB_MARGIN, REACT_TOAST_MS
from gesture_module.controller import GestureController, HitTest
from gesture_module.geometry import Point, Viewport, clamp_position, widget_center
from gesture_module.position_store import PositionStore
from menu_module.radial_menu import (
    MenuCallbacks,
    MenuItem,
    RadialMenu,
    SimpleRadialMenu,
    full_menu,
    simple_menu,
)
from utils.event_bus import Comment, EventBus, PostRef, PostSelected, ProfileRef, Reaction, Topic
from utils.local_store import LocalStore
from utils.notify import Toast
from utils.secure_store import KeyStore
from utils.settings_store import Preferences
from utils.timers import Scheduler
from voice_module.audio import AudioClips
from voice_module.session import VoiceSession
from voice_module.speech_input import SpeechInput

DEFAULT_EMOJIS = ("🤗", "😂", "🤣", "😅", "🙂", "😉", "😍", "😎")
PETALS = ("comment", "remix", "share")
PETAL_KEYS = {"c": "comment", "m": "remix", "s": "share"}
NO_POST_TOAST = "Hover a post first"
LINK_COPIED_TOAST = "Link copied"


class OrbWorkflow:
    def __init__(
        self,
        *,
        scheduler: Scheduler,
        viewport: Viewport,
        store: LocalStore,
        bus: EventBus | None = None,
        feed: FeedStore | None = None,
        speech: SpeechInput | None = None,
        bridge: AssistantBridge | None = None,
        hit_test: HitTest | None = None,
        emojis: Sequence[str] = DEFAULT_EMOJIS,
        clipboard: Callable[[str], None] | None = None,
    ) -> None:
        self.bus = bus or EventBus()
        self.feed = feed or FeedStore(bus=self.bus)
        self.toast = Toast(scheduler)
        self.messages = MessageLog()
        self.keys = KeyStore(store)
        self.preferences = Preferences(store)
        self.emojis = tuple(emojis)
        self.clipboard = clipboard
        self.logger = CommandLogger("ORB")

        self.bridge = bridge or AssistantBridge(keys=self.keys, clips=AudioClips())
        self.session = AssistantSession(
            self.bridge,
            self.messages,
            toast=self.toast,
            model=lambda: self.preferences.model,
        )
        self.voice = VoiceSession(speech, self.toast, on_utterance=self.submit)
        self.controller = GestureController(
            scheduler=scheduler,
            viewport=viewport,
            positions=PositionStore(store),
            voice=self.voice,
            bus=self.bus,
            toast=self.toast,
            hit_test=hit_test,
            on_toggle_menu=self.toggle_menu,
            on_close_menu=self._close_menu_on_press,
            on_escape=self.close_all,
            on_context_bound=self.bind_post,
        )
        self.router = CommandRouter(
            self.bus,
            self.messages,
            self.session,
            context=self.context_bundle,
            position=lambda: self.controller.position,
        )

        self.menu: RadialMenu | None = None
        self.portal_menu: SimpleRadialMenu | None = None
        self.panel_open = False
        self.petal: str | None = None
        self.context_post: Post | None = None
        self._press_closed_menu = False
        self._tasks: set[asyncio.Task] = set()
        self._unsubscribers = [
            self.bus.subscribe(Topic.FEED_HOVER, self._on_feed_post),
            self.bus.subscribe(Topic.FEED_SELECT, self._on_feed_post),
        ]

    # context

    def bind_post(self, post_id: str) -> None:
        post = self.feed.get(post_id)
        if post is not None:
            self.context_post = post

    def context_bundle(self) -> ContextBundle | None:
        post = self.context_post
        if post is None:
            return None
        return ContextBundle.build(post.id, post.title, post.text, images=post.images)

    def _on_feed_post(self, payload: PostSelected) -> None:
        self.context_post = payload.post

    # menu

    @property
    def menu_open(self) -> bool:
        return self.menu is not None

    def toggle_menu(self) -> None:
        # A tap on the orb closes an open menu at press time; its click must not reopen it.
        if self._press_closed_menu:
            self._press_closed_menu = False
            return
        if self.menu is not None:
            self.close_menu()
        else:
            self.open_menu()

    def open_menu(self) -> RadialMenu:
        if self.menu is None:
            post = self.context_post
            avatar = str(post.extra.get("authorAvatar", "")) if post else ""
            self.menu = full_menu(
                widget_center(self.controller.position),
                self.controller.viewport,
                self.emojis,
                MenuCallbacks(
                    on_close=self._on_menu_closed,
                    on_chat=self.toggle_panel,
                    on_react=self.react,
                    on_comment=lambda: self.open_petal("comment"),
                    on_remix=lambda: self.open_petal("remix"),
                    on_share=lambda: self.open_petal("share"),
                    on_profile=self.open_profile,
                ),
                avatar_url=avatar,
            )
        return self.menu

    def close_menu(self) -> None:
        if self.menu is not None:
            self.menu.close()

    def _close_menu_on_press(self) -> None:
        self._press_closed_menu = self.menu is not None
        self.close_menu()

    def pointer_down_outside(self) -> None:
        if self.menu is not None:
            self.menu.outside_pointer_down()
        self.petal = None

    def _on_menu_closed(self) -> None:
        self.menu = None
        self.controller.focus()

    # portal menu

    def open_portal_menu(self) -> SimpleRadialMenu:
        if self.portal_menu is None:
            self.portal_menu = simple_menu(
                widget_center(self.controller.position),
                [
                    MenuItem("chat", "Chat", "💬", action=self._portal(self.toggle_panel)),
                    MenuItem("settings", "Settings", "⚙️", action=self._portal(self.open_settings)),
                    MenuItem("recenter", "Recenter", "🎯", action=self._portal(self.recenter)),
                    MenuItem("close", "Close", "✖️", action=self.close_portal_menu),
                ],
                on_close=self._on_portal_closed,
            )
        return self.portal_menu

    def close_portal_menu(self) -> None:
        if self.portal_menu is not None:
            self.portal_menu.close()

    def _portal(self, action: Callable[[], None]) -> Callable[[], None]:
        def run() -> None:
            action()
            self.close_portal_menu()

        return run

    def _on_portal_closed(self) -> None:
        self.portal_menu = None

    # actions

    def toggle_panel(self) -> None:
        self.panel_open = not self.panel_open
        self.petal = None

    def open_petal(self, kind: str) -> None:
        if kind not in PETALS:
            raise ValueError(f"Unknown petal '{kind}'")
        self.petal = kind
        self.close_menu()

    def close_petal(self) -> None:
        self.petal = None

    def react(self, emoji: str) -> bool:
        if self.context_post is None:
            self.toast.show(NO_POST_TOAST)
            return False
        self.bus.publish(Topic.POST_REACT, Reaction(self.context_post.id, emoji))
        self.toast.show(f"Reacted {emoji}", REACT_TOAST_MS)
        return True

    def comment(self, body: str) -> bool:
        text = body.strip()
        if not text or self.context_post is None:
            return False
        self.bus.publish(Topic.POST_COMMENT, Comment(self.context_post.id, text))
        self.petal = None
        return True

    def remix(self) -> bool:
        if self.context_post is None:
            return False
        self.bus.publish(Topic.POST_REMIX, PostRef(self.context_post.id))
        self.petal = None
        return True

    def share(self, origin: str = "") -> str | None:
        """Copy the bound post's link; return it, or None without a post."""
        if self.context_post is None:
            return None
        url = f"{origin}#post-{self.context_post.id}"
        if self.clipboard is not None:
            try:
                self.clipboard(url)
            except OSError as exc:
                self.logger.error(f"Clipboard write failed: {exc}")
            else:
                self.toast.show(LINK_COPIED_TOAST, LINK_TOAST_MS)
        self.petal = None
        return url

    def open_profile(self) -> None:
        if self.context_post is not None:
            self.bus.publish(Topic.PROFILE_OPEN, ProfileRef(self.context_post.author))

    def open_settings(self) -> None:
        self.bus.publish(Topic.SIDEBAR_OPEN)

    def recenter(self) -> None:
        viewport = self.controller.viewport
        target = clamp_position(Point(ORB_MARGIN, ORB_MARGIN), viewport)
        self.controller.position = target
        self.controller.live_position = target
        self.controller.positions.save(target)

    def close_all(self) -> None:
        self.panel_open = False
        self.petal = None
        self.close_menu()
        self.close_portal_menu()

    # keyboard

    def key_down(self, key: str, *, shift: bool = False) -> bool:
        """Route a key to the open menu first, then to the orb.

        Escape always stops voice. A menu that closed from its root ring also
        takes the panel and petal down with it; a submenu only steps back.
        """
        if self.portal_menu is not None and self.portal_menu.key_down(key, shift=shift):
            handled = True
        elif self.menu is not None and self.menu.key_down(key):
            handled = True
        else:
            handled = False
        if handled:
            if key == "Escape":
                self.voice.stop()
                if self.menu is None and self.portal_menu is None:
                    self.close_all()
                    self.controller.focus()
            return True
        self._press_closed_menu = False
        lower = key.lower() if len(key) == 1 else ""
        if lower == "r":
            self.open_menu()
            return True
        if lower in PETAL_KEYS:
            self.open_petal(PETAL_KEYS[lower])
            return True
        return self.controller.key_down(key)

    # commands

    def submit(self, text: str) -> asyncio.Task | None:
        """Run ``text`` through the router on the running loop."""
        if not text.strip():
            return None
        task = asyncio.get_running_loop().create_task(self.router.handle(text))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def teardown(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []
        for task in list(self._tasks):
            task.cancel()
        self.voice.stop()
        self.controller.teardown()
        self.toast.teardown()
        self.session.teardown()
        self.bridge.clips.revoke_all()
        self.menu = None
        self.portal_menu = None
