from __future__ import annotations

import re

UNTITLED_POST = "Untitled Post"
MAX_TITLE_LENGTH = 100

_ELLIPSIS = "…"
# A line break, ASCII punctuation that ends a sentence, or a CJK full stop.
_SENTENCE_END_RE = re.compile(r"[\r\n]|[.!?…](?=\s|$)|[。！？]")


def derive_title(caption: str | None, *, max_length: int = MAX_TITLE_LENGTH) -> str:
    """
    Build a short title from a caption.

    Takes the caption up to its first line break or sentence terminator. When
    that is longer than max_length, it is cut back to the last whole word and
    an ellipsis is appended, so the result never exceeds max_length.
    """
    if max_length <= 0:
        raise ValueError("max_length must be positive")

    text = (caption or "").strip()
    if not text:
        return ""

    match = _SENTENCE_END_RE.search(text)
    head = (text[: match.start()] if match else text).strip()
    if not head:
        head = text.splitlines()[0].strip()

    if len(head) <= max_length:
        return head

    budget = max_length - len(_ELLIPSIS)
    if budget <= 0:
        return head[:max_length]

    cut = head[:budget]
    if not head[budget].isspace() and not cut[-1].isspace():
        # Mid-word: back off to the previous space.
        boundary = cut.rfind(" ")
        if boundary > 0:
            cut = cut[:boundary]
    return cut.rstrip() + _ELLIPSIS
