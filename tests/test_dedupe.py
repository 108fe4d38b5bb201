# tests/test_dedupe.py
from __future__ import annotations

import unittest
from typing import Any, Iterator

from ig_fetch.dedupe import dedupe_key, dedupe_posts
from ig_fetch.post import Post


class TestDedupeKey(unittest.TestCase):
    def test_prefers_id(self) -> None:
        post = Post(title="t", id="123", short_code="abc", timestamp=5)
        self.assertEqual(dedupe_key(post), "id:123")

    def test_uses_shortcode(self) -> None:
        post = Post(title="t", short_code="abc", timestamp=5)
        self.assertEqual(dedupe_key(post), "shortcode:abc")

    def test_uses_provider_timestamp(self) -> None:
        post = Post(title="t", timestamp=5)
        self.assertEqual(dedupe_key(post), "ts:5")

    def test_estimated_timestamp_falls_back_to_title(self) -> None:
        post = Post(title="t", timestamp=5, timestamp_estimated=True)
        self.assertEqual(dedupe_key(post), "title:t")


class TestDedupePosts(unittest.TestCase):
    def test_keeps_first_occurrence_in_order(self) -> None:
        items = [
            {"id": "1", "caption": "first"},
            {"id": "2", "caption": "second"},
            {"id": "1", "caption": "first again"},
            {"id": "3", "caption": "third"},
        ]
        posts = dedupe_posts(items, limit=10, now_ms=1)

        self.assertEqual([p.id for p in posts], ["1", "2", "3"])
        self.assertEqual(posts[0].caption, "first")

    def test_caps_at_limit(self) -> None:
        items = [{"id": str(i), "caption": "c"} for i in range(20)]
        self.assertEqual(len(dedupe_posts(items, limit=5, now_ms=1)), 5)

    def test_non_positive_limit_is_empty(self) -> None:
        self.assertEqual(dedupe_posts([{"id": "1", "caption": "c"}], limit=0), [])

    def test_skips_non_post_records(self) -> None:
        items: list[Any] = [
            {"error": "no_items"},
            {"type": "Profile", "username": "nasa"},
            "junk",
            {"id": "7", "caption": "ok"},
        ]
        posts = dedupe_posts(items, limit=10, now_ms=1)
        self.assertEqual([p.id for p in posts], ["7"])

    def test_does_not_consume_past_the_cap(self) -> None:
        consumed: list[int] = []

        def gen() -> Iterator[dict[str, Any]]:
            for i in range(10):
                consumed.append(i)
                yield {"id": str(i), "caption": "c"}

        dedupe_posts(gen(), limit=3, now_ms=1)
        self.assertEqual(consumed, [0, 1, 2])

    def test_accepts_already_normalized_posts(self) -> None:
        a = Post(title="a", id="1")
        b = Post(title="b", id="1")
        self.assertEqual(dedupe_posts([a, b], limit=5), [a])

    def test_untimed_records_dedupe_by_title(self) -> None:
        items = [{"caption": "Same caption"}, {"caption": "Same caption"}, {"caption": "Other"}]
        posts = dedupe_posts(items, limit=10, now_ms=1)
        self.assertEqual([p.title for p in posts], ["Same caption", "Other"])


if __name__ == "__main__":
    unittest.main()
