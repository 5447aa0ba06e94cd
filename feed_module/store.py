"""Observable, ordered list of feed posts."""

from __future__ import annotations

import threading
from dataclasses import replace
from collections.abc import Callable, Iterable

from feed_module.models import Post
from feed_module.placeholders import demo_posts
from utils.event_bus import EventBus, PostRef, PostSelected, Topic, Vote

Listener = Callable[[list[Post]], None]


class FeedStore:
    def __init__(self, posts: Iterable[Post] | None = None, bus: EventBus | None = None) -> None:
        self._lock = threading.Lock()
        self._posts: list[Post] = list(posts) if posts is not None else demo_posts()
        self._listeners: list[Listener] = []
        self._unsubscribers: list[Callable[[], None]] = []
        if bus is not None:
            self.attach(bus)

    def attach(self, bus: EventBus) -> None:
        """Handle votes and resolve bare post ids into full selections."""
        self._unsubscribers.append(
            bus.subscribe(Topic.POST_VOTE, lambda vote: self.vote(vote.id, vote.option_index))
        )

        def _select(ref: PostRef) -> None:
            post = self.get(ref.id)
            if post is not None:
                bus.publish(Topic.FEED_SELECT, PostSelected(post))

        self._unsubscribers.append(bus.subscribe(Topic.FEED_SELECT_ID, _select))

    def detach(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()

    @property
    def posts(self) -> list[Post]:
        with self._lock:
            return list(self._posts)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def get(self, post_id: str) -> Post | None:
        key = str(post_id)
        with self._lock:
            for post in self._posts:
                if str(post.id) == key:
                    return post
        return None

    def set_posts(self, posts: Iterable[Post]) -> None:
        with self._lock:
            self._posts = list(posts)
        self._emit()

    def add_post(self, post: Post) -> None:
        with self._lock:
            self._posts.insert(0, post)
        self._emit()

    def vote(self, post_id: str, option_index: int) -> bool:
        key = str(post_id)
        changed = False
        with self._lock:
            for i, post in enumerate(self._posts):
                if str(post.id) != key or post.poll is None:
                    continue
                poll = post.poll.with_vote(option_index)
                if poll is not post.poll:
                    self._posts[i] = replace(post, poll=poll)
                    changed = True
                break
        if changed:
            self._emit()
        return changed

    def paginate(self, page: int, page_size: int) -> list[Post]:
        p = max(1, int(page))
        size = max(1, int(page_size))
        start = (p - 1) * size
        with self._lock:
            if start >= len(self._posts):
                return []
            return self._posts[start : start + size]

    def _emit(self) -> None:
        snapshot = self.posts
        for listener in list(self._listeners):
            listener(snapshot)
