from __future__ import annotations

from typing import Any, Mapping

from apify_client import ApifyClientAsync
from apify_client.errors import ApifyApiError

from ..config_schema import ApifyConfig
from ..errors import ProviderError
from ..provider_retry import extract_status_code, is_transient_status
from .base import Job, JobStatus, JobStatusReport, StructuredResult

_APIFY_STATUS = {
    "READY": JobStatus.SUBMITTED,
    "RUNNING": JobStatus.RUNNING,
    "SUCCEEDED": JobStatus.SUCCEEDED,
    "FAILED": JobStatus.FAILED,
    "ABORTING": JobStatus.ABORTED,
    "ABORTED": JobStatus.ABORTED,
    "TIMING-OUT": JobStatus.TIMED_OUT,
    "TIMED-OUT": JobStatus.TIMED_OUT,
}


def map_apify_status(value: Any) -> JobStatus:
    status = _APIFY_STATUS.get(str(value or "").strip().upper())
    if status is None:
        raise ProviderError(f"Apify reported an unknown run status: {value!r}")
    return status


def _wrap(exc: Exception, what: str) -> ProviderError:
    code = extract_status_code(exc)
    if isinstance(exc, ApifyApiError):
        return ProviderError(
            f"Apify {what} failed: {exc}",
            status_code=code,
            transient=is_transient_status(code),
        )
    return ProviderError(f"Unexpected error during Apify {what}: {exc}", status_code=code)


class ApifyProvider:
    """
    Runs Apify's Instagram Scraper Actor against a profile URL.

    The Actor run is the job; its default dataset is the result handle. Client-level
    retries are disabled so the orchestrator's single submit retry is the only one.
    """

    name = "apify"

    def __init__(
        self,
        token: str,
        *,
        apify: ApifyConfig | None = None,
        client: ApifyClientAsync | None = None,
    ) -> None:
        self._cfg = apify or ApifyConfig()
        if client is not None:
            self._client = client
        else:
            self._client = ApifyClientAsync(token=token, max_retries=0)

    async def submit(
        self,
        target_url: str,
        result_limit: int,
        options: Mapping[str, Any] | None = None,
    ) -> Job:
        url = (target_url or "").strip()
        if not url:
            raise ProviderError("Apify submission requires a target URL")

        run_input: dict[str, Any] = {
            "directUrls": [url],
            "resultsType": self._cfg.results_type,
            "resultsLimit": int(result_limit),
        }
        if options:
            run_input.update(dict(options))

        try:
            run = await self._client.actor(self._cfg.actor).start(run_input=run_input)
        except Exception as e:
            raise _wrap(e, f"Actor start ({self._cfg.actor})") from e

        if not run:
            raise ProviderError(f"Apify Actor start returned no run ({self._cfg.actor})")

        run_id = (run.get("id") or "").strip()
        if not run_id:
            raise ProviderError(f"Apify Actor run response missing run id: {run}")

        return Job(
            id=run_id,
            status=map_apify_status(run.get("status") or "READY"),
            provider=self.name,
            result_handle=(run.get("defaultDatasetId") or "").strip() or None,
        )

    async def poll_status(self, job_id: str) -> JobStatusReport:
        try:
            run = await self._client.run(job_id).get()
        except Exception as e:
            raise _wrap(e, f"run status ({job_id})") from e

        if run is None:
            raise ProviderError(f"Apify run not found: {job_id}")

        return JobStatusReport(
            status=map_apify_status(run.get("status")),
            result_handle=(run.get("defaultDatasetId") or "").strip() or None,
            detail=run.get("statusMessage"),
        )

    async def retrieve(self, result_handle: str, limit: int) -> StructuredResult:
        ds = (result_handle or "").strip()
        if not ds:
            raise ProviderError("Apify dataset id must be a non-empty string")

        try:
            page = await self._client.dataset(ds).list_items(limit=int(limit), clean=True)
        except Exception as e:
            raise _wrap(e, f"dataset read ({ds})") from e

        return StructuredResult(records=list(page.items))

    async def aclose(self) -> None:
        # ApifyClientAsync keeps no long-lived connection to release.
        return None
