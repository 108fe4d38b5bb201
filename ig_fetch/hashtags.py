from __future__ import annotations

import re
from typing import Iterable

# \w is Unicode-aware on str patterns: letters and digits of any script plus "_".
_HASHTAG_RE = re.compile(r"#(\w+)")


def normalize_tag(value: str) -> str:
    tag = (value or "").strip()
    if tag.startswith("#"):
        tag = tag[1:].strip()
    return tag.lower()


def unique_tags(values: Iterable[str]) -> tuple[str, ...]:
    """Lower-case tags and drop case-insensitive repeats, keeping first-seen order."""
    out: list[str] = []
    seen: set[str] = set()
    for item in values:
        tag = normalize_tag(item)
        if not tag:
            continue
        key = tag.casefold()
        if key in seen:
            continue
        seen.add(key)
        out.append(tag)
    return tuple(out)


def extract_hashtags(text: str | None) -> tuple[str, ...]:
    if not text:
        return ()
    return unique_tags(_HASHTAG_RE.findall(text))
