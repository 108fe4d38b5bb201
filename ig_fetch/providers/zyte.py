from __future__ import annotations

import base64
import binascii
from typing import Any, Mapping

import httpx

from ..config_schema import ZyteConfig
from ..errors import FetchTimeoutError, ProviderError
from ..provider_retry import is_transient_status
from .base import HtmlResult, Job, JobStatus, JobStatusReport, RetrievedResult, StructuredResult


class ZyteProvider:
    """
    Zyte API extraction as a provider.

    Zyte has no job queue: submission completes immediately and both the job id and
    the handle are the target URL. The real work happens in retrieve(), which is why
    the orchestrator guards that call with its own timeout. Automatic extraction is
    requested alongside the rendered HTML, so structured posts are used when Zyte
    returns them and the HTML is the fallback.
    """

    name = "zyte"

    def __init__(
        self,
        api_key: str,
        *,
        zyte: ZyteConfig | None = None,
        http_client: httpx.AsyncClient | None = None,
        timeout_seconds: float = 60.0,
    ) -> None:
        self._cfg = zyte or ZyteConfig()
        self._api_key = api_key
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=timeout_seconds)

    async def submit(
        self,
        target_url: str,
        result_limit: int,
        options: Mapping[str, Any] | None = None,
    ) -> Job:
        url = (target_url or "").strip()
        if not url:
            raise ProviderError("Zyte extraction requires a target URL")
        if not self._api_key:
            raise ProviderError("Zyte API key is not set")

        return Job(id=url, status=JobStatus.SUCCEEDED, provider=self.name, result_handle=url)

    async def poll_status(self, job_id: str) -> JobStatusReport:
        url = (job_id or "").strip()
        if not url:
            raise ProviderError("Zyte job id must be a non-empty URL")
        return JobStatusReport(status=JobStatus.SUCCEEDED, result_handle=url)

    async def retrieve(self, result_handle: str, limit: int) -> RetrievedResult:
        body: dict[str, Any] = {"url": result_handle}
        if self._cfg.auto_extract:
            body["autoExtract"] = True
        if self._cfg.browser_html:
            body["browserHtml"] = True

        try:
            response = await self._client.post(
                f"{self._cfg.base_url}/extract",
                json=body,
                auth=(self._api_key, ""),
            )
            response.raise_for_status()
            data = response.json()
        except httpx.TimeoutException as e:
            raise FetchTimeoutError(f"Zyte extract timed out for {result_handle}") from e
        except httpx.HTTPStatusError as e:
            code = e.response.status_code
            raise ProviderError(
                f"Zyte extract HTTP {code}: {e.response.text[:500]}",
                status_code=code,
                transient=is_transient_status(code),
            ) from e
        except httpx.RequestError as e:
            raise ProviderError(f"Zyte extract connection error: {e}", transient=True) from e
        except ValueError as e:
            raise ProviderError(f"Zyte extract returned invalid JSON: {e}") from e

        if not isinstance(data, dict):
            raise ProviderError("Zyte extract returned an unexpected payload")

        extracted = data.get("extracted")
        posts = extracted.get("posts") if isinstance(extracted, dict) else None
        if isinstance(posts, list):
            return StructuredResult(records=[p for p in posts if isinstance(p, dict)][: max(0, limit)])

        html = data.get("browserHtml")
        if isinstance(html, str):
            return HtmlResult(html=html, source_url=result_handle)

        encoded = data.get("httpResponseBody")
        if isinstance(encoded, str):
            try:
                decoded = base64.b64decode(encoded).decode("utf-8", errors="replace")
            except (binascii.Error, ValueError) as e:
                raise ProviderError(f"Zyte httpResponseBody is not valid base64: {e}") from e
            return HtmlResult(html=decoded, source_url=result_handle)

        raise ProviderError("Zyte extract response has neither extracted posts nor HTML")

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
