from __future__ import annotations

from ..config import RuntimeSecrets
from ..config_schema import AppConfig
from ..errors import ConfigError
from .base import (
    HtmlResult,
    Job,
    JobStatus,
    JobStatusReport,
    Provider,
    RetrievedResult,
    StructuredResult,
    profile_url,
)


def build_provider(config: AppConfig, secrets: RuntimeSecrets) -> Provider:
    """Construct the provider named by config.provider."""
    name = config.provider
    timeout = float(config.fetch.request_timeout_seconds)

    if name == "apify":
        from .apify import ApifyProvider

        return ApifyProvider(secrets.token, apify=config.apify)
    if name == "zyte":
        from .zyte import ZyteProvider

        # Extraction is guarded by the retrieve timeout, so let the socket wait that long.
        return ZyteProvider(
            secrets.token,
            zyte=config.zyte,
            timeout_seconds=float(config.fetch.retrieve_timeout_seconds),
        )
    if name == "brightdata":
        from .brightdata import BrightDataProvider

        return BrightDataProvider(
            secrets.token,
            brightdata=config.brightdata,
            timeout_seconds=timeout,
        )
    if name == "offline":
        from .offline import OfflineProvider

        return OfflineProvider()

    raise ConfigError(f"Unknown provider: {name}")


__all__ = [
    "HtmlResult",
    "Job",
    "JobStatus",
    "JobStatusReport",
    "Provider",
    "RetrievedResult",
    "StructuredResult",
    "build_provider",
    "profile_url",
]
