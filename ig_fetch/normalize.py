from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Any, Mapping

from .hashtags import extract_hashtags, unique_tags
from .post import Post, RawRecord
from .title import UNTITLED_POST, derive_title

# Type tags that mark a record as a post (compared case-insensitively).
POST_TYPE_TAGS = frozenset(
    {
        "post",
        "image",
        "photo",
        "video",
        "sidecar",
        "carousel",
        "carousel_album",
        "clips",
        "reel",
        "graphimage",
        "graphvideo",
        "graphsidecar",
        "xdtgraphimage",
        "xdtgraphvideo",
        "xdtgraphsidecar",
        "socialmediaposting",
    }
)

_TYPE_TAG_KEYS = ("type", "__typename", "@type", "content_type", "postType")

# Numbers above this are already epoch milliseconds.
_EPOCH_MS_THRESHOLD = 10**11


def _coerce_str(value: Any) -> str | None:
    if isinstance(value, str):
        s = value.strip()
        return s if s else None
    return None


def _coerce_id(value: Any) -> str | None:
    if isinstance(value, str):
        v = value.strip()
        return v if v else None
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return None


def _first_str(item: Mapping[str, Any], *keys: str) -> str | None:
    for key in keys:
        value = _coerce_str(item.get(key))
        if value is not None:
            return value
    return None


def _first_id(item: Mapping[str, Any], *keys: str) -> str | None:
    for key in keys:
        value = _coerce_id(item.get(key))
        if value is not None:
            return value
    return None


def _coerce_str_list(value: Any) -> list[str] | None:
    if not isinstance(value, list):
        return None
    return [item for item in value if isinstance(item, str)]


def coerce_timestamp_ms(value: Any) -> int | None:
    """
    Convert epoch seconds, epoch millis, numeric strings, or ISO-8601 strings to epoch millis.
    """
    if isinstance(value, bool) or value is None:
        return None

    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        s = value.strip()
        if not s:
            return None
        try:
            number = float(s)
        except ValueError:
            return _iso_to_ms(s)
    else:
        return None

    if number <= 0:
        return None
    if number < _EPOCH_MS_THRESHOLD:
        number *= 1000
    return int(number)


def _iso_to_ms(value: str) -> int | None:
    s = value.strip()
    if s.endswith(("Z", "z")):
        s = s[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(s)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return int(parsed.timestamp() * 1000)


def instagram_post_url(short_code: str) -> str:
    return f"https://www.instagram.com/p/{short_code}/"


def is_post_record(item: Any) -> bool:
    """
    Type-tag check: True only for records that represent a post.

    Provider error rows and non-post content (profiles, hashtags, places) are rejected.
    Untagged records pass when they carry at least one post-shaped field.
    """
    if not isinstance(item, Mapping):
        return False

    if item.get("error") or item.get("errorDescription"):
        return False

    for key in _TYPE_TAG_KEYS:
        tag = item.get(key)
        if isinstance(tag, str) and tag.strip():
            return tag.strip().casefold() in POST_TYPE_TAGS
        if isinstance(tag, list) and tag:
            # JSON-LD allows multiple types.
            return any(
                isinstance(t, str) and t.strip().casefold() in POST_TYPE_TAGS for t in tag
            )

    return any(
        _first_str(item, key) is not None or _first_id(item, key) is not None
        for key in ("caption", "id", "shortCode", "shortcode", "url", "text")
    )


def _now_ms() -> int:
    return int(time.time() * 1000)


def post_from_raw_record(item: RawRecord, *, now_ms: int | None = None) -> Post | None:
    """
    Best-effort mapping of one provider record to a Post.

    Every field that a provider can supply is taken from the provider when present and
    derived from the caption (or processing time) otherwise. Records that fail the post
    type-tag check return None.
    """
    if not is_post_record(item):
        return None

    post_id = _first_id(item, "id", "postId", "post_id", "pk", "identifier")
    short_code = _first_str(item, "shortCode", "shortcode", "short_code", "code")

    caption = (
        _first_str(item, "caption", "captionText", "caption_text", "description", "articleBody")
        or _first_str(item, "text")
        or ""
    )

    title = (
        _first_str(item, "title", "headline")
        or derive_title(caption)
        or UNTITLED_POST
    )

    tags = _coerce_str_list(item.get("hashtags"))
    if tags is None:
        tags = _coerce_str_list(item.get("hashTags"))
    hashtags = unique_tags(tags) if tags is not None else extract_hashtags(caption)

    url = _first_str(item, "url", "postUrl", "post_url", "permalink")
    if url is None and short_code is not None:
        url = instagram_post_url(short_code)

    timestamp: int | None = None
    for key in ("timestamp", "takenAt", "taken_at", "taken_at_timestamp", "date_posted", "datePublished"):
        timestamp = coerce_timestamp_ms(item.get(key))
        if timestamp is not None:
            break

    estimated = timestamp is None
    if timestamp is None:
        timestamp = now_ms if now_ms is not None else _now_ms()

    return Post(
        id=post_id,
        title=title,
        caption=caption,
        hashtags=hashtags,
        url=url,
        timestamp=int(timestamp),
        short_code=short_code,
        timestamp_estimated=estimated,
    )
