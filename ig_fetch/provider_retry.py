from __future__ import annotations

from .errors import FetchTimeoutError, ProviderError


def extract_status_code(exc: BaseException) -> int | None:
    for attr in ("status_code", "statusCode", "status", "http_status", "httpStatusCode"):
        val = getattr(exc, attr, None)
        if val is None or isinstance(val, bool):
            continue
        try:
            return int(val)
        except (TypeError, ValueError):
            continue

    response = getattr(exc, "response", None)
    code = getattr(response, "status_code", None)
    if isinstance(code, int):
        return code
    return None


def looks_like_timeout_or_connection(exc: BaseException) -> bool:
    # Name-based heuristics so apify_client and httpx exceptions classify alike.
    name = type(exc).__name__.casefold()
    mod = type(exc).__module__.casefold()

    if "timeout" in name or "connect" in name:
        return True
    if "connection" in mod or "connect" in mod:
        return True
    return False


def is_transient_status(code: int | None) -> bool:
    return code == 429 or (isinstance(code, int) and code >= 500)


def is_transient_provider_error(exc: BaseException) -> tuple[bool, str | None]:
    """
    Classify a submit failure as worth one more attempt.

    Transient: HTTP 429/5xx, network-level failures, and ProviderErrors flagged
    transient by the provider. Local per-call timeouts are never retried, so a slow
    submission is not duplicated.
    """
    if isinstance(exc, FetchTimeoutError):
        return False, "local_timeout"

    if isinstance(exc, ProviderError):
        code = exc.status_code
        if exc.transient or is_transient_status(code):
            return True, f"http_{code}" if code is not None else "transient"
        cause = exc.__cause__
        if cause is not None and looks_like_timeout_or_connection(cause):
            return True, "network_error"
        return False, f"http_{code}" if code is not None else None

    if isinstance(exc, ConnectionError):
        return True, "network_error"

    if is_transient_status(extract_status_code(exc)):
        return True, "http_status"

    if looks_like_timeout_or_connection(exc):
        return True, "network_error"

    return False, None
