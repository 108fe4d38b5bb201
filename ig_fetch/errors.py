from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    VALIDATION = "VALIDATION"
    RATE_LIMIT = "RATE_LIMIT"
    TIMEOUT = "TIMEOUT"
    PROVIDER_ERROR = "PROVIDER_ERROR"
    PARSE_ERROR = "PARSE_ERROR"


class ConfigError(RuntimeError):
    """Raised when configuration is missing or invalid."""


class FetchError(RuntimeError):
    """Base class for failures surfaced by a post fetch."""

    kind: ErrorKind = ErrorKind.PROVIDER_ERROR

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, str]:
        return {"kind": self.kind.value, "message": self.message}


class InvalidRequestError(FetchError):
    """Raised when the handle or limit is malformed."""

    kind = ErrorKind.VALIDATION


class RateLimitError(FetchError):
    """Raised when the process-wide request bucket is exhausted."""

    kind = ErrorKind.RATE_LIMIT


class FetchTimeoutError(FetchError):
    """Raised when the polling budget or a per-call guard is exceeded."""

    kind = ErrorKind.TIMEOUT


class ProviderError(FetchError):
    """Raised when a provider rejects a call or a job ends unsuccessfully."""

    kind = ErrorKind.PROVIDER_ERROR

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        transient: bool = False,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.transient = transient


class ParseError(FetchError):
    """Raised internally when an HTML document has no recognizable post data."""

    kind = ErrorKind.PARSE_ERROR
