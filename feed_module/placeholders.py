"""Demo feed content used when no posts are injected."""

from __future__ import annotations

from feed_module.models import Poll, Post

PLAYERS = [
    {"id": "alice", "name": "Alice", "color": "#7dd3fc"},
    {"id": "bob", "name": "Bob", "color": "#5eead4"},
    {"id": "cairo", "name": "Cairo", "color": "#a7f3d0"},
    {"id": "dara", "name": "Dara", "color": "#fde68a"},
    {"id": "eon", "name": "Eon", "color": "#93c5fd"},
]


def _picsum(seed: str) -> str:
    return f"https://picsum.photos/seed/{seed}/960/540"


def demo_posts(count: int = 12) -> list[Post]:
    posts: list[Post] = []
    for i in range(1, count + 1):
        player = PLAYERS[(i - 1) % len(PLAYERS)]
        poll = None
        if i % 5 == 0:
            poll = Poll.from_raw("Which world next?", ["Neon city", "Deep forest", "Orbit"])
        posts.append(
            Post(
                id=f"post-{i}",
                author=player["name"],
                title=f"Frame {i:02d}",
                text=f"{player['name']} shared frame {i} from the superNova feed.",
                images=(_picsum(f"sn-{i}"),),
                poll=poll,
            )
        )
    return posts
