from __future__ import annotations

import json
import re
from typing import Any, Iterator

from .errors import ParseError
from .event_log import EventLog
from .normalize import instagram_post_url

_SHARED_DATA_RE = re.compile(
    r"window\._sharedData\s*=\s*(\{.*?\})\s*;?\s*</script>",
    re.DOTALL,
)
_JSON_SCRIPT_RE = re.compile(
    r"<script[^>]*type=[\"']?application/json[\"']?(?=[\s>])[^>]*>(.*?)</script>",
    re.DOTALL | re.IGNORECASE,
)
_LD_JSON_RE = re.compile(
    r"<script[^>]*type=[\"']?application/ld\+json[\"']?(?=[\s>])[^>]*>(.*?)</script>",
    re.DOTALL | re.IGNORECASE,
)

_TIMELINE_KEY = "edge_owner_to_timeline_media"
_POSTING_TYPE = "socialmediaposting"


def _loads(blob: str, *, source: str, problems: list[str]) -> Any:
    try:
        return json.loads(blob)
    except ValueError as e:
        problems.append(f"{source}: malformed JSON ({e})")
        return None


def _find_key(obj: Any, key: str) -> Iterator[Any]:
    stack = [obj]
    while stack:
        cur = stack.pop()
        if isinstance(cur, dict):
            for k, v in cur.items():
                if k == key:
                    yield v
                else:
                    stack.append(v)
        elif isinstance(cur, list):
            stack.extend(reversed(cur))


def _caption_from_node(node: dict[str, Any]) -> str | None:
    media = node.get("edge_media_to_caption")
    edges = media.get("edges") if isinstance(media, dict) else None
    if not isinstance(edges, list):
        return None
    for edge in edges:
        inner = edge.get("node") if isinstance(edge, dict) else None
        text = inner.get("text") if isinstance(inner, dict) else None
        if isinstance(text, str) and text.strip():
            return text
    return None


def _record_from_timeline_node(node: dict[str, Any]) -> dict[str, Any]:
    record: dict[str, Any] = {}
    for key in ("id", "shortcode", "taken_at_timestamp", "__typename"):
        if node.get(key) is not None:
            record[key] = node[key]

    caption = _caption_from_node(node)
    if caption is not None:
        record["caption"] = caption

    shortcode = node.get("shortcode")
    if isinstance(shortcode, str) and shortcode.strip():
        record["url"] = instagram_post_url(shortcode.strip())
    return record


def _shared_data_blobs(html: str) -> Iterator[tuple[str, str]]:
    for m in _SHARED_DATA_RE.finditer(html):
        yield "shared_data", m.group(1)
    for m in _JSON_SCRIPT_RE.finditer(html):
        blob = m.group(1)
        if _TIMELINE_KEY in blob:
            yield "json_script", blob


def _from_timeline_media(html: str, problems: list[str]) -> list[dict[str, Any]]:
    records: list[dict[str, Any]] = []
    for source, blob in _shared_data_blobs(html):
        data = _loads(blob, source=source, problems=problems)
        if data is None:
            continue
        for media in _find_key(data, _TIMELINE_KEY):
            edges = media.get("edges") if isinstance(media, dict) else None
            if not isinstance(edges, list):
                problems.append(f"{source}: {_TIMELINE_KEY} has no edge list")
                continue
            for edge in edges:
                node = edge.get("node") if isinstance(edge, dict) else None
                if isinstance(node, dict):
                    records.append(_record_from_timeline_node(node))
        if records:
            break
    return records


def _is_posting(obj: Any) -> bool:
    if not isinstance(obj, dict):
        return False
    tag = obj.get("@type")
    if isinstance(tag, str):
        return tag.strip().casefold() == _POSTING_TYPE
    if isinstance(tag, list):
        return any(isinstance(t, str) and t.strip().casefold() == _POSTING_TYPE for t in tag)
    return False


def _ld_candidates(data: Any) -> Iterator[Any]:
    items = data if isinstance(data, list) else [data]
    for item in items:
        yield item
        if isinstance(item, dict) and isinstance(item.get("@graph"), list):
            yield from item["@graph"]


def _from_linked_data(html: str, problems: list[str]) -> list[dict[str, Any]]:
    records: list[dict[str, Any]] = []
    for m in _LD_JSON_RE.finditer(html):
        data = _loads(m.group(1).strip(), source="ld_json", problems=problems)
        if data is None:
            continue
        for obj in _ld_candidates(data):
            if _is_posting(obj):
                records.append(dict(obj))
    return records


def _has_value(record: dict[str, Any], keys: tuple[str, ...]) -> bool:
    return any(
        isinstance(record.get(k), (str, int)) and str(record.get(k)).strip() for k in keys
    )


def _label_positions(records: list[dict[str, Any]]) -> None:
    # Only records with nothing to title or key them by fall back to their position.
    for n, record in enumerate(records, start=1):
        if _has_value(record, ("url", "id", "identifier", "shortcode")):
            continue
        if _has_value(record, ("headline", "caption", "articleBody", "description", "text")):
            continue
        record["title"] = f"Post {n}"


def parse_post_records(html: str, *, problems: list[str] | None = None) -> tuple[str, list[dict[str, Any]]]:
    """
    Return (pattern, records) for the first embedding pattern that yields posts.

    Raises ParseError when neither pattern matches.
    """
    notes = problems if problems is not None else []

    records = _from_timeline_media(html, notes)
    if records:
        return "timeline_media", records

    records = _from_linked_data(html, notes)
    if records:
        return "ld_json", records

    detail = f": {notes[0]}" if notes else ""
    raise ParseError(f"No recognizable embedded post data in HTML document{detail}")


def extract_raw_records(html: str | None, *, logger: EventLog | None = None) -> list[dict[str, Any]]:
    """
    Locate embedded post data in a profile HTML document.

    The legacy timeline-media state object is tried first; linked-data
    SocialMediaPosting blocks are the fallback. Nothing here raises: an unrecognized
    or malformed document yields an empty list and a html_parse_failed event, since
    the provider itself answered successfully.
    """
    doc = html or ""
    problems: list[str] = []

    try:
        source, records = parse_post_records(doc, problems=problems)
    except ParseError as e:
        if logger is not None:
            logger.warning(
                "html_parse_failed",
                kind=e.kind.value,
                message=e.message,
                problems=problems[:5],
                html_chars=len(doc),
            )
        return []

    _label_positions(records)
    if logger is not None:
        logger.debug("html_records_extracted", source=source, count=len(records))
    return records
