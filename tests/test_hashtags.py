from __future__ import annotations

import unittest

from ig_fetch.hashtags import extract_hashtags, unique_tags


class TestExtractHashtags(unittest.TestCase):
    def test_empty_and_missing_text(self) -> None:
        self.assertEqual(extract_hashtags(""), ())
        self.assertEqual(extract_hashtags(None), ())
        self.assertEqual(extract_hashtags("no tags here"), ())

    def test_lowercases_and_dedupes_in_first_seen_order(self) -> None:
        text = "Launch day! #NASA #space #Nasa #SPACE #mars_2020"
        self.assertEqual(extract_hashtags(text), ("nasa", "space", "mars_2020"))

    def test_supports_unicode_letters(self) -> None:
        text = "#Café #café #東京 #Ünïcödé"
        self.assertEqual(extract_hashtags(text), ("café", "東京", "ünïcödé"))

    def test_stops_at_non_word_characters(self) -> None:
        self.assertEqual(extract_hashtags("#rocket-launch #a.b"), ("rocket", "a"))

    def test_output_has_no_case_insensitive_duplicates(self) -> None:
        captions = [
            "#A #a #B #b #A",
            "#Straße #STRASSE #strasse",
            "#x1 #X1 #x_1 #X_1",
        ]
        for caption in captions:
            tags = extract_hashtags(caption)
            folded = [t.casefold() for t in tags]
            self.assertEqual(len(folded), len(set(folded)), msg=caption)


class TestUniqueTags(unittest.TestCase):
    def test_strips_hash_prefix_and_blanks(self) -> None:
        self.assertEqual(unique_tags(["#One", "two", "TWO", "  ", "#"]), ("one", "two"))


if __name__ == "__main__":
    unittest.main()
