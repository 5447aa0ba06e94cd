"""Feed posts and the observable store the orb reads context from."""

from feed_module.models import Poll, PollOption, Post
from feed_module.store import FeedStore

__all__ = ["FeedStore", "Poll", "PollOption", "Post"]
