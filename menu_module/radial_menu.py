"""Radial menus opened from the orbs.

Two variants share the ring geometry but not their behaviour, so each has
its own class and factory: ``full_menu`` for the assistant orb (root ring
with react/create submenus and a center close/back control) and
``simple_menu`` for the portal orb (one flat ring of actions).
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass

from gesture_module.geometry import Point, Viewport
from menu_module.layout import (
    ROOT_RADIUS,
    SIMPLE_ICON_RADIUS,
    SIMPLE_LABEL_RADIUS,
    SUB_RADIUS,
    RingPlacement,
    item_center,
    item_offset,
    place_ring,
)

ROOT = "root"
REACT = "react"
CREATE = "create"

NEXT_KEYS = {"ArrowRight", "ArrowDown"}
PREV_KEYS = {"ArrowLeft", "ArrowUp"}
ACTIVATE_KEYS = {"Enter", " "}


@dataclass(frozen=True)
class MenuItem:
    id: str
    label: str
    icon: str
    action: Callable[[], None] | None = None
    next: str | None = None


@dataclass
class MenuCallbacks:
    on_close: Callable[[], None]
    on_chat: Callable[[], None]
    on_react: Callable[[str], None]
    on_comment: Callable[[], None]
    on_remix: Callable[[], None]
    on_share: Callable[[], None]
    on_profile: Callable[[], None]


class RadialMenu:
    """Assistant-orb menu: root ring, react/create submenus, center control.

    The focus index ranges over ``len(ring_items) + 1``; the last slot is the
    center control (``close`` at root, ``back`` in a submenu).
    """

    ID_PREFIX = "assistant-menu-item-"

    def __init__(
        self,
        center: Point,
        viewport: Viewport,
        emojis: Sequence[str],
        callbacks: MenuCallbacks,
        avatar_url: str = "",
    ) -> None:
        self.center = center
        self.viewport = viewport
        self.emojis = list(emojis)
        self.callbacks = callbacks
        self.avatar_url = avatar_url
        self.ring = ROOT
        self.index = 0
        self.closed = False

    @property
    def ring_items(self) -> list[MenuItem]:
        cb = self.callbacks
        if self.ring == REACT:
            return [
                MenuItem(f"emoji-{i}", f"React {e}", e, action=lambda e=e: cb.on_react(e))
                for i, e in enumerate(self.emojis)
            ]
        if self.ring == CREATE:
            return [
                MenuItem("comment", "Comment", "✍️", action=cb.on_comment),
                MenuItem("remix", "Remix", "🎬", action=cb.on_remix),
                MenuItem("share", "Share", "↗️", action=cb.on_share),
            ]
        return [
            MenuItem("chat", "Chat", "💬", action=cb.on_chat),
            MenuItem("react", "React", "👏", next=REACT),
            MenuItem("create", "Create", "✍️", next=CREATE),
            MenuItem("profile", "Profile", self.avatar_url or "👤", action=cb.on_profile),
        ]

    @property
    def center_item(self) -> MenuItem:
        if self.ring == ROOT:
            return MenuItem("close", "Close menu", "✖️", action=self.close)
        return MenuItem("back", "Go back", "⬅️", action=self.back)

    @property
    def item_count(self) -> int:
        return len(self.ring_items)

    @property
    def active_id(self) -> str:
        items = self.ring_items
        if self.index == len(items):
            return self.center_item.id
        return items[self.index].id

    @property
    def active_descendant(self) -> str:
        return f"{self.ID_PREFIX}{self.active_id}"

    @property
    def placement(self) -> RingPlacement:
        radius = ROOT_RADIUS if self.ring == ROOT else SUB_RADIUS
        return place_ring(self.center, self.viewport, radius)

    def item_offsets(self) -> list[tuple[MenuItem, Point]]:
        placement = self.placement
        items = self.ring_items
        return [
            (item, item_offset(i, len(items), placement.radius, placement.rotation))
            for i, item in enumerate(items)
        ]

    def key_down(self, key: str) -> bool:
        if self.closed:
            return False
        total = self.item_count + 1
        if key in NEXT_KEYS:
            self.index = (self.index + 1) % total
        elif key in PREV_KEYS:
            self.index = (self.index - 1 + total) % total
        elif key in ACTIVATE_KEYS:
            self.activate(self.index)
        elif key == "Escape":
            if self.ring != ROOT:
                self.back()
            else:
                self.close()
        else:
            return False
        return True

    def activate(self, index: int) -> None:
        """Run the ring item or center control at ``index``."""
        if self.closed:
            return
        items = self.ring_items
        if index == len(items):
            self.center_item.action()
            return
        self._run(items[index])

    def select(self, item_id: str) -> bool:
        """Pointer activation of an item by id; False if it is not on screen."""
        if self.closed:
            return False
        if item_id == self.center_item.id:
            self.center_item.action()
            return True
        for item in self.ring_items:
            if item.id == item_id:
                self._run(item)
                return True
        return False

    def back(self) -> None:
        self.ring = ROOT
        self.index = 0

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self.callbacks.on_close()

    def outside_pointer_down(self) -> None:
        self.close()

    def _run(self, item: MenuItem) -> None:
        if item.next:
            self.ring = item.next
            self.index = 0
            return
        if item.action is not None:
            item.action()
        self.close()


class SimpleRadialMenu:
    """Flat ring of actions; items close the menu themselves if they need to."""

    ID_PREFIX = "simple-radial-item-"

    def __init__(self, center: Point, items: Sequence[MenuItem], on_close: Callable[[], None]) -> None:
        if not items:
            raise ValueError("simple radial menu needs at least one item")
        self.center = center
        self.items = list(items)
        self.on_close = on_close
        self.index = 0
        self.closed = False

    @property
    def active_descendant(self) -> str:
        return f"{self.ID_PREFIX}{self.items[self.index].id}"

    def layout(self) -> list[tuple[MenuItem, Point, Point]]:
        """(item, icon offset, label position) for each ring slot."""
        count = len(self.items)
        return [
            (
                item,
                item_offset(i, count, SIMPLE_ICON_RADIUS),
                item_center(i, count, SIMPLE_LABEL_RADIUS),
            )
            for i, item in enumerate(self.items)
        ]

    def key_down(self, key: str, *, shift: bool = False) -> bool:
        if self.closed:
            return False
        count = len(self.items)
        if key in NEXT_KEYS or (key == "Tab" and not shift):
            self.index = (self.index + 1) % count
        elif key in PREV_KEYS or (key == "Tab" and shift):
            self.index = (self.index - 1 + count) % count
        elif key == "Escape":
            self.close()
        elif key in ACTIVATE_KEYS:
            action = self.items[self.index].action
            if action is not None:
                action()
        else:
            return False
        return True

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self.on_close()


def full_menu(
    center: Point,
    viewport: Viewport,
    emojis: Sequence[str],
    callbacks: MenuCallbacks,
    avatar_url: str = "",
) -> RadialMenu:
    return RadialMenu(center, viewport, emojis, callbacks, avatar_url)


def simple_menu(center: Point, items: Sequence[MenuItem], on_close: Callable[[], None]) -> SimpleRadialMenu:
    return SimpleRadialMenu(center, items, on_close)
