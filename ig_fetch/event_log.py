from __future__ import annotations

import json
import sys
import traceback
import uuid
from datetime import datetime, timezone
from pathlib import Path
from threading import Lock
from typing import Any, TextIO

_LEVEL_RANK = {"DEBUG": 0, "INFO": 1, "WARN": 2, "WARNING": 2, "ERROR": 3}


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _truncate(text: str, *, limit: int) -> str:
    s = str(text or "")
    if limit <= 0:
        return ""
    if len(s) <= limit:
        return s
    return s[: max(0, limit - 1)] + "…"


class EventLog:
    """
    JSONL event logger shared by the fetch path.

    Each line is a single JSON object: ts, level, event, session_id, optional handle,
    and a free-form data object. Writes are serialized so concurrent fetches never
    interleave partial lines.
    """

    def __init__(
        self,
        stream: TextIO,
        *,
        session_id: str | None = None,
        owns_stream: bool = False,
        min_level: str = "DEBUG",
    ) -> None:
        self._fp: TextIO | None = stream
        self._owns_stream = bool(owns_stream)
        self._session_id = (session_id or "").strip() or uuid.uuid4().hex
        self._min_rank = _LEVEL_RANK.get(min_level.strip().upper(), 0)
        self._lock = Lock()

    @classmethod
    def open(
        cls,
        path: str | Path,
        *,
        overwrite: bool = False,
        session_id: str | None = None,
        min_level: str = "DEBUG",
    ) -> "EventLog":
        p = Path(path)
        p.parent.mkdir(parents=True, exist_ok=True)
        fp = p.open("w" if overwrite else "a", encoding="utf-8", newline="\n")
        return cls(fp, session_id=session_id, owns_stream=True, min_level=min_level)

    @classmethod
    def stderr(cls, *, session_id: str | None = None, min_level: str = "INFO") -> "EventLog":
        return cls(sys.stderr, session_id=session_id, min_level=min_level)

    @property
    def session_id(self) -> str:
        return self._session_id

    def close(self) -> None:
        with self._lock:
            if self._fp is None:
                return
            try:
                self._fp.flush()
            finally:
                if self._owns_stream:
                    self._fp.close()
            self._fp = None

    def __enter__(self) -> "EventLog":
        return self

    def __exit__(self, exc_type: object, exc: object, tb: object) -> None:
        self.close()

    def debug(self, event: str, *, handle: str | None = None, **data: Any) -> None:
        self.log("DEBUG", event, handle=handle, **data)

    def info(self, event: str, *, handle: str | None = None, **data: Any) -> None:
        self.log("INFO", event, handle=handle, **data)

    def warning(self, event: str, *, handle: str | None = None, **data: Any) -> None:
        self.log("WARN", event, handle=handle, **data)

    def error(self, event: str, *, handle: str | None = None, **data: Any) -> None:
        self.log("ERROR", event, handle=handle, **data)

    def exception(
        self,
        event: str,
        *,
        exc: BaseException,
        handle: str | None = None,
        **data: Any,
    ) -> None:
        err = {
            "type": type(exc).__name__,
            "message": _truncate(str(exc), limit=2000),
            "traceback": _truncate(
                "".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
                limit=12000,
            ),
        }
        kind = getattr(exc, "kind", None)
        if kind is not None:
            err["kind"] = str(getattr(kind, "value", kind))
        self.log("ERROR", event, handle=handle, error=err, **data)

    def log(self, level: str, event: str, *, handle: str | None = None, **data: Any) -> None:
        lvl = (level or "").strip().upper() or "INFO"
        if _LEVEL_RANK.get(lvl, 1) < self._min_rank:
            return

        record: dict[str, Any] = {
            "ts": _utc_now_iso(),
            "level": lvl,
            "event": (event or "").strip() or "event",
            "session_id": self._session_id,
        }

        h = (handle or "").strip()
        if h:
            record["handle"] = h

        if data:
            record["data"] = data

        self._write(record)

    def _write(self, record: dict[str, Any]) -> None:
        payload = json.dumps(
            record,
            ensure_ascii=False,
            sort_keys=True,
            separators=(",", ":"),
            default=str,
        )

        with self._lock:
            if self._fp is None:
                return
            self._fp.write(payload + "\n")
            self._fp.flush()

