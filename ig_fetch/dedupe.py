from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Mapping

from .normalize import post_from_raw_record
from .post import Post, RawRecord


def dedupe_key(post: Post) -> str:
    if post.id:
        return f"id:{post.id}"
    if post.short_code:
        return f"shortcode:{post.short_code}"
    if not post.timestamp_estimated:
        return f"ts:{post.timestamp}"
    return f"title:{post.title}"


@dataclass
class SeenKeys:
    keys: set[str] = field(default_factory=set)

    def has(self, key: str) -> bool:
        return key in self.keys

    def add(self, key: str) -> None:
        self.keys.add(key)

    def add_post(self, post: Post) -> bool:
        """Record the post's key; False when it was already seen."""
        key = dedupe_key(post)
        if key in self.keys:
            return False
        self.keys.add(key)
        return True


def dedupe_posts(
    items: Iterable[Post | RawRecord],
    *,
    limit: int,
    now_ms: int | None = None,
) -> list[Post]:
    """
    Reduce records to unique posts in first-seen order, capped at limit.

    Raw records are normalized lazily; the input is not consumed past the item that
    fills the cap.
    """
    if limit <= 0:
        return []

    seen = SeenKeys()
    out: list[Post] = []

    for item in items:
        if isinstance(item, Post):
            post: Post | None = item
        elif isinstance(item, Mapping):
            post = post_from_raw_record(item, now_ms=now_ms)
        else:
            post = None

        if post is None:
            continue
        if not seen.add_post(post):
            continue

        out.append(post)
        if len(out) >= limit:
            break

    return out
