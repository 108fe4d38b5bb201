# tests/test_normalize.py
from __future__ import annotations

import unittest

from ig_fetch.normalize import coerce_timestamp_ms, is_post_record, post_from_raw_record
from ig_fetch.title import UNTITLED_POST

_NOW_MS = 1_700_000_000_000


class TestIsPostRecord(unittest.TestCase):
    def test_accepts_tagged_posts(self) -> None:
        for tag in ("Image", "Video", "Sidecar", "GraphImage", "SocialMediaPosting", "Reel"):
            self.assertTrue(is_post_record({"type": tag, "caption": "x"}), msg=tag)

    def test_rejects_other_content_types(self) -> None:
        self.assertFalse(is_post_record({"type": "Profile", "username": "nasa"}))
        self.assertFalse(is_post_record({"@type": "Person", "url": "https://x"}))
        self.assertFalse(is_post_record({"__typename": "GraphUser", "id": "1"}))

    def test_rejects_error_rows_and_non_mappings(self) -> None:
        self.assertFalse(is_post_record({"error": "not_found", "url": "https://x"}))
        self.assertFalse(is_post_record(["caption"]))
        self.assertFalse(is_post_record(None))

    def test_untagged_records_need_a_post_field(self) -> None:
        self.assertTrue(is_post_record({"caption": "hello"}))
        self.assertFalse(is_post_record({"followers": 10}))


class TestPostFromRawRecord(unittest.TestCase):
    def test_extracts_common_actor_fields(self) -> None:
        item = {
            "id": "1",
            "shortCode": "AbC",
            "url": "https://www.instagram.com/p/AbC/",
            "type": "Image",
            "caption": "Hello world. More text #ignored",
            "hashtags": ["#One", "two", "TWO"],
            "timestamp": "2025-11-07T20:56:47.000Z",
        }

        post = post_from_raw_record(item, now_ms=_NOW_MS)
        self.assertIsNotNone(post)
        assert post is not None

        self.assertEqual(post.id, "1")
        self.assertEqual(post.short_code, "AbC")
        self.assertEqual(post.url, "https://www.instagram.com/p/AbC/")
        self.assertEqual(post.title, "Hello world")
        self.assertEqual(post.hashtags, ("one", "two"))
        self.assertEqual(post.timestamp, 1762549007000)
        self.assertFalse(post.timestamp_estimated)

    def test_provider_title_wins_over_derived(self) -> None:
        post = post_from_raw_record({"caption": "Caption text", "title": "Given"}, now_ms=_NOW_MS)
        assert post is not None
        self.assertEqual(post.title, "Given")

    def test_blank_provider_title_falls_back_to_caption(self) -> None:
        post = post_from_raw_record({"caption": "Caption text", "title": "  "}, now_ms=_NOW_MS)
        assert post is not None
        self.assertEqual(post.title, "Caption text")

    def test_hashtags_derived_when_provider_list_missing(self) -> None:
        post = post_from_raw_record({"caption": "Go #Moon #moon #Mars"}, now_ms=_NOW_MS)
        assert post is not None
        self.assertEqual(post.hashtags, ("moon", "mars"))

    def test_hashtags_derived_when_provider_value_is_not_a_list(self) -> None:
        post = post_from_raw_record(
            {"caption": "Go #Moon", "hashtags": "moon,mars"}, now_ms=_NOW_MS
        )
        assert post is not None
        self.assertEqual(post.hashtags, ("moon",))

    def test_defaults_when_fields_missing(self) -> None:
        post = post_from_raw_record({"id": 42}, now_ms=_NOW_MS)
        assert post is not None

        self.assertEqual(post.id, "42")
        self.assertEqual(post.title, UNTITLED_POST)
        self.assertEqual(post.caption, "")
        self.assertEqual(post.hashtags, ())
        self.assertIsNone(post.url)
        self.assertEqual(post.timestamp, _NOW_MS)
        self.assertTrue(post.timestamp_estimated)

    def test_builds_url_from_shortcode(self) -> None:
        post = post_from_raw_record({"shortcode": "XyZ", "caption": "c"}, now_ms=_NOW_MS)
        assert post is not None
        self.assertEqual(post.url, "https://www.instagram.com/p/XyZ/")

    def test_bright_data_field_names(self) -> None:
        item = {
            "post_id": "99",
            "shortcode": "BD1",
            "description": "Night launch\nfull story below",
            "content_type": "Reel",
            "date_posted": "2024-05-01T12:00:00.000Z",
        }
        post = post_from_raw_record(item, now_ms=_NOW_MS)
        assert post is not None
        self.assertEqual(post.id, "99")
        self.assertEqual(post.title, "Night launch")
        self.assertEqual(post.caption, "Night launch\nfull story below")

    def test_drops_non_post_records(self) -> None:
        self.assertIsNone(post_from_raw_record({"type": "Profile", "id": "1"}))


class TestCoerceTimestamp(unittest.TestCase):
    def test_seconds_and_millis(self) -> None:
        self.assertEqual(coerce_timestamp_ms(1_700_000_000), 1_700_000_000_000)
        self.assertEqual(coerce_timestamp_ms(1_700_000_000_123), 1_700_000_000_123)
        self.assertEqual(coerce_timestamp_ms("1700000000"), 1_700_000_000_000)

    def test_iso_strings(self) -> None:
        self.assertEqual(coerce_timestamp_ms("1970-01-01T00:00:01Z"), 1000)
        self.assertEqual(coerce_timestamp_ms("1970-01-01T00:00:01"), 1000)

    def test_rejects_garbage(self) -> None:
        self.assertIsNone(coerce_timestamp_ms(None))
        self.assertIsNone(coerce_timestamp_ms(True))
        self.assertIsNone(coerce_timestamp_ms("yesterday"))
        self.assertIsNone(coerce_timestamp_ms(0))


if __name__ == "__main__":
    unittest.main()
