from __future__ import annotations

import re
import time
from typing import Any

from .cache import PostCache, cache_key
from .config import RuntimeSecrets
from .config_schema import AppConfig, FetchConfig
from .errors import FetchError, InvalidRequestError, RateLimitError
from .event_log import EventLog
from .orchestrator import JobOrchestrator
from .post import Post
from .providers import Provider, build_provider
from .rate_limit import TokenBucket

_HANDLE_RE = re.compile(r"^[a-z0-9._]+$")


def normalize_handle(handle: Any, *, max_length: int = 30) -> str:
    """
    Trim, drop one leading "@", and lower-case an account handle.

    Raises InvalidRequestError for empty, over-long, or oddly shaped handles.
    """
    if not isinstance(handle, str):
        raise InvalidRequestError("Username is required")

    value = handle.strip()
    if value.startswith("@"):
        value = value[1:].strip()
    if not value:
        raise InvalidRequestError("Username is required")
    if len(value) > max_length:
        raise InvalidRequestError(f"Username must be at most {max_length} characters")

    value = value.lower()
    if not _HANDLE_RE.fullmatch(value):
        raise InvalidRequestError(
            "Username may only contain letters, digits, periods, and underscores"
        )
    return value


def validate_limit(limit: Any, *, max_limit: int) -> int:
    if isinstance(limit, bool) or not isinstance(limit, int):
        raise InvalidRequestError("limit must be an integer")
    if limit <= 0:
        raise InvalidRequestError("limit must be a positive integer")
    if limit > max_limit:
        raise InvalidRequestError(f"limit must be <= {max_limit}")
    return limit


class FetchService:
    """
    Cached, rate-limited entry point for fetching a handle's posts.

    Cache hits are served without consuming a rate-limit token. Failed fetches and
    empty results are never cached.
    """

    def __init__(
        self,
        orchestrator: JobOrchestrator,
        *,
        cache: PostCache,
        rate_limiter: TokenBucket,
        settings: FetchConfig | None = None,
        logger: EventLog | None = None,
    ) -> None:
        self._orchestrator = orchestrator
        self._cache = cache
        self._limiter = rate_limiter
        self._settings = settings or FetchConfig()
        self._log = logger

    @property
    def cache(self) -> PostCache:
        return self._cache

    @property
    def rate_limiter(self) -> TokenBucket:
        return self._limiter

    async def fetch_posts(self, handle: str, limit: int) -> list[Post]:
        try:
            username = normalize_handle(handle, max_length=int(self._settings.max_handle_length))
            count = validate_limit(limit, max_limit=int(self._settings.max_limit))
        except InvalidRequestError as e:
            self._event("warning", "fetch_rejected", kind=e.kind.value, message=e.message)
            raise

        key = cache_key(username, count)
        cached = self._cache.get(key)
        if cached is not None:
            self._event("info", "cache_hit", handle=username, key=key, posts=len(cached))
            return list(cached)

        if not self._limiter.try_consume(1):
            err = RateLimitError("Rate limit exceeded; retry after the current window resets")
            self._event("warning", "rate_limited", handle=username, kind=err.kind.value)
            raise err

        started = time.monotonic()
        try:
            posts = await self._orchestrator.run(username, count)
        except FetchError as e:
            if self._log is not None:
                self._log.exception("fetch_failed", exc=e, handle=username, key=key)
            raise

        stored = self._cache.set(key, posts)
        self._event(
            "info",
            "fetch_completed",
            handle=username,
            key=key,
            posts=len(posts),
            cached=stored,
            elapsed_ms=int((time.monotonic() - started) * 1000),
        )
        return posts

    def invalidate_cache(self, handle: str | None = None) -> int:
        if handle is None:
            removed = self._cache.invalidate_all()
            self._event("info", "cache_invalidated", scope="all", removed=removed)
            return removed

        username = normalize_handle(handle, max_length=int(self._settings.max_handle_length))
        removed = self._cache.invalidate(username)
        self._event("info", "cache_invalidated", handle=username, scope="handle", removed=removed)
        return removed

    def rate_limiter_status(self) -> int:
        return self._limiter.tokens_remaining

    async def aclose(self) -> None:
        await self._orchestrator.provider.aclose()

    def _event(self, level: str, event: str, **data: Any) -> None:
        if self._log is None:
            return
        getattr(self._log, level)(event, **data)


def build_fetch_service(
    config: AppConfig,
    secrets: RuntimeSecrets,
    *,
    provider: Provider | None = None,
    logger: EventLog | None = None,
) -> FetchService:
    """Wire the provider, cache, and rate limiter once per process."""
    orchestrator = JobOrchestrator(
        provider or build_provider(config, secrets),
        settings=config.fetch,
        logger=logger,
    )
    return FetchService(
        orchestrator,
        cache=PostCache(default_ttl_seconds=float(config.cache.ttl_seconds)),
        rate_limiter=TokenBucket(
            int(config.rate_limit.capacity),
            window_seconds=float(config.rate_limit.window_seconds),
        ),
        settings=config.fetch,
        logger=logger,
    )
