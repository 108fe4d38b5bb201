from __future__ import annotations

from typing import Any, Mapping

import httpx

from ..config_schema import BrightDataConfig
from ..errors import FetchTimeoutError, ProviderError
from ..provider_retry import is_transient_status
from .base import Job, JobStatus, JobStatusReport, StructuredResult

_PROGRESS_STATUS = {
    "starting": JobStatus.SUBMITTED,
    "running": JobStatus.RUNNING,
    "building": JobStatus.RUNNING,
    "ready": JobStatus.SUCCEEDED,
    "failed": JobStatus.FAILED,
    "error": JobStatus.FAILED,
    "canceled": JobStatus.ABORTED,
    "cancelled": JobStatus.ABORTED,
}


def map_brightdata_status(value: Any) -> JobStatus:
    status = _PROGRESS_STATUS.get(str(value or "").strip().casefold())
    if status is None:
        raise ProviderError(f"Bright Data reported an unknown snapshot status: {value!r}")
    return status


class BrightDataProvider:
    """
    Bright Data Datasets API: trigger a collection, poll its progress, download the snapshot.

    The snapshot id serves as both the job id and the result handle.
    """

    name = "brightdata"

    def __init__(
        self,
        api_token: str,
        *,
        brightdata: BrightDataConfig | None = None,
        http_client: httpx.AsyncClient | None = None,
        timeout_seconds: float = 60.0,
    ) -> None:
        self._cfg = brightdata or BrightDataConfig()
        self._api_token = api_token
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=timeout_seconds)

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._api_token}"}

    async def _request(self, method: str, url: str, what: str, **kwargs: Any) -> Any:
        try:
            response = await self._client.request(method, url, headers=self._headers(), **kwargs)
            response.raise_for_status()
            return response.json()
        except httpx.TimeoutException as e:
            raise FetchTimeoutError(f"Bright Data {what} timed out") from e
        except httpx.HTTPStatusError as e:
            code = e.response.status_code
            raise ProviderError(
                f"Bright Data {what} HTTP {code}",
                status_code=code,
                transient=is_transient_status(code),
            ) from e
        except httpx.RequestError as e:
            raise ProviderError(f"Bright Data {what} connection error: {e}", transient=True) from e
        except ValueError as e:
            raise ProviderError(f"Bright Data {what} returned invalid JSON: {e}") from e

    async def submit(
        self,
        target_url: str,
        result_limit: int,
        options: Mapping[str, Any] | None = None,
    ) -> Job:
        url = (target_url or "").strip()
        if not url:
            raise ProviderError("Bright Data trigger requires a target URL")

        entry: dict[str, Any] = {"url": url, "num_of_posts": int(result_limit)}
        if options:
            entry.update(dict(options))

        data = await self._request(
            "POST",
            f"{self._cfg.base_url}/trigger",
            "trigger",
            params={
                "dataset_id": self._cfg.dataset_id,
                "include_errors": "true",
                "type": "discover_new",
                "discover_by": "url",
            },
            json=[entry],
        )

        snapshot_id = data.get("snapshot_id") if isinstance(data, dict) else None
        if not isinstance(snapshot_id, str) or not snapshot_id.strip():
            raise ProviderError("Bright Data trigger returned no snapshot_id")

        sid = snapshot_id.strip()
        return Job(id=sid, status=JobStatus.SUBMITTED, provider=self.name, result_handle=sid)

    async def poll_status(self, job_id: str) -> JobStatusReport:
        data = await self._request("GET", f"{self._cfg.base_url}/progress/{job_id}", "progress")
        if not isinstance(data, dict):
            raise ProviderError("Bright Data progress returned an unexpected payload")

        return JobStatusReport(
            status=map_brightdata_status(data.get("status")),
            result_handle=job_id,
            detail=data.get("error") if isinstance(data.get("error"), str) else None,
        )

    async def retrieve(self, result_handle: str, limit: int) -> StructuredResult:
        data = await self._request(
            "GET",
            f"{self._cfg.base_url}/snapshot/{result_handle}",
            "snapshot download",
            params={"format": "json"},
        )

        if isinstance(data, dict):
            data = data.get("data", [])
        if not isinstance(data, list):
            raise ProviderError("Bright Data snapshot is not a list of records")

        records = [item for item in data if isinstance(item, dict)]
        return StructuredResult(records=records[: max(0, limit)])

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
