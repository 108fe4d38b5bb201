from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

# Loosely-typed provider record before normalization.
RawRecord = Mapping[str, Any]


@dataclass(frozen=True)
class Post:
    """A stable, minimal post record served to callers."""

    title: str
    caption: str = ""
    hashtags: tuple[str, ...] = ()
    url: str | None = None
    timestamp: int = 0
    id: str | None = None

    short_code: str | None = None
    # True when the provider gave no timestamp and processing time was used.
    timestamp_estimated: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "caption": self.caption,
            "hashtags": list(self.hashtags),
            "url": self.url,
            "timestamp": self.timestamp,
        }
