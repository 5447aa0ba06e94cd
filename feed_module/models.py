"""Feed data shapes."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, replace
from typing import Any


@dataclass(frozen=True)
class PollOption:
    text: str
    votes: int = 0


@dataclass(frozen=True)
class Poll:
    question: str
    options: tuple[PollOption, ...] = ()

    @classmethod
    def from_raw(cls, question: str, options: list[Any]) -> "Poll":
        cleaned: list[PollOption] = []
        for opt in options:
            if isinstance(opt, str):
                cleaned.append(PollOption(opt))
            elif isinstance(opt, dict):
                try:
                    votes = int(opt.get("votes") or 0)
                except (TypeError, ValueError):
                    votes = 0
                cleaned.append(PollOption(str(opt.get("text", "")), votes))
        return cls(question=question, options=tuple(cleaned))

    def with_vote(self, index: int) -> "Poll":
        if not 0 <= index < len(self.options):
            return self
        options = list(self.options)
        options[index] = replace(options[index], votes=options[index].votes + 1)
        return replace(self, options=tuple(options))


@dataclass(frozen=True)
class Post:
    id: str
    author: str | None = None
    title: str | None = None
    text: str = ""
    images: tuple[str, ...] = ()
    poll: Poll | None = None
    extra: dict[str, Any] = field(default_factory=dict, compare=False)

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["images"] = list(self.images)
        return payload
