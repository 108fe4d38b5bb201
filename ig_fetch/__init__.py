from __future__ import annotations

from .cache import PostCache, cache_key
from .config import load_config, resolve_runtime_secrets
from .config_schema import AppConfig
from .errors import (
    ConfigError,
    ErrorKind,
    FetchError,
    FetchTimeoutError,
    InvalidRequestError,
    ParseError,
    ProviderError,
    RateLimitError,
)
from .orchestrator import JobOrchestrator
from .post import Post
from .rate_limit import TokenBucket
from .service import FetchService, build_fetch_service

__all__ = [
    "AppConfig",
    "ConfigError",
    "ErrorKind",
    "FetchError",
    "FetchService",
    "FetchTimeoutError",
    "InvalidRequestError",
    "JobOrchestrator",
    "ParseError",
    "Post",
    "PostCache",
    "ProviderError",
    "RateLimitError",
    "TokenBucket",
    "build_fetch_service",
    "cache_key",
    "load_config",
    "resolve_runtime_secrets",
]
