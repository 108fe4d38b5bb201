from __future__ import annotations

import asyncio
import time
from typing import Any, Awaitable, Callable, Mapping, TypeVar

from .config_schema import FetchConfig
from .dedupe import dedupe_posts
from .errors import FetchError, FetchTimeoutError, ProviderError
from .event_log import EventLog
from .html_extract import extract_raw_records
from .post import Post
from .provider_retry import is_transient_provider_error
from .providers.base import (
    HtmlResult,
    Job,
    JobStatus,
    JobStatusReport,
    Provider,
    RetrievedResult,
    StructuredResult,
    profile_url,
)
from .retry import RetryConfig, RetryEvent, call_with_retries

T = TypeVar("T")


class JobOrchestrator:
    """
    Drives one provider job per request: SUBMIT -> POLL* -> terminal -> RETRIEVE.

    Two independent timeout scopes apply. Every provider call is bounded by
    request_timeout_seconds (retrieval by retrieve_timeout_seconds), and the polling
    loop as a whole races poll_budget_seconds. When a timeout fires the awaiting task
    is cancelled and a FetchTimeoutError is raised; the remote job is left alone.
    """

    def __init__(
        self,
        provider: Provider,
        *,
        settings: FetchConfig | None = None,
        logger: EventLog | None = None,
        submit_retry: RetryConfig | None = None,
        options: Mapping[str, Any] | None = None,
    ) -> None:
        self._provider = provider
        self._settings = settings or FetchConfig()
        self._log = logger
        self._options = dict(options or {})
        self._submit_retry = submit_retry or RetryConfig(
            max_attempts=int(self._settings.submit_retry_attempts),
            base_delay_seconds=1.0,
            max_delay_seconds=1.0,
        )

    @property
    def provider(self) -> Provider:
        return self._provider

    async def run(self, handle: str, limit: int) -> list[Post]:
        started = time.monotonic()
        target_url = profile_url(handle)

        job = await self._submit(target_url, limit, handle=handle)

        if job.status.is_terminal:
            report = JobStatusReport(status=job.status, result_handle=job.result_handle)
        else:
            report = await self._wait_for_terminal(job, handle=handle)

        self._raise_for_outcome(job, report, handle=handle)

        result_handle = report.result_handle or job.result_handle
        if not result_handle:
            raise ProviderError(
                f"{self._provider.name} job {job.id} succeeded without a result handle"
            )

        result = await self._retrieve(result_handle, limit, handle=handle)
        posts = self._to_posts(result, limit, handle=handle)

        self._info(
            "job_succeeded",
            handle=handle,
            job_id=job.id,
            posts=len(posts),
            elapsed_ms=int((time.monotonic() - started) * 1000),
        )
        return posts

    async def _guarded(
        self,
        call: Callable[[], Awaitable[T]],
        *,
        timeout: float,
        what: str,
    ) -> T:
        try:
            return await asyncio.wait_for(call(), timeout=timeout)
        except asyncio.TimeoutError as e:
            raise FetchTimeoutError(
                f"{self._provider.name} {what} call exceeded {timeout:g}s"
            ) from e
        except FetchError:
            raise
        except Exception as e:
            raise ProviderError(
                f"Unexpected error during {self._provider.name} {what}: {e}"
            ) from e

    async def _submit(self, target_url: str, limit: int, *, handle: str) -> Job:
        def _on_retry(event: RetryEvent) -> None:
            self._warning(
                "job_submit_retry",
                handle=handle,
                attempt=event.next_attempt,
                max_attempts=event.max_attempts,
                reason=event.reason,
                error=event.error_message,
            )

        job = await call_with_retries(
            lambda: self._guarded(
                lambda: self._provider.submit(target_url, int(limit), self._options),
                timeout=float(self._settings.request_timeout_seconds),
                what="submit",
            ),
            cfg=self._submit_retry,
            is_retryable=is_transient_provider_error,
            operation=f"{self._provider.name}.submit",
            on_retry=_on_retry,
        )

        self._info(
            "job_submitted",
            handle=handle,
            provider=self._provider.name,
            job_id=job.id,
            status=job.status.value,
            target_url=target_url,
            limit=int(limit),
        )
        return job

    async def _poll_until_terminal(self, job: Job, *, handle: str) -> JobStatusReport:
        interval = float(self._settings.poll_interval_seconds)
        attempt = 0
        while True:
            attempt += 1
            report = await self._guarded(
                lambda: self._provider.poll_status(job.id),
                timeout=float(self._settings.request_timeout_seconds),
                what="poll",
            )
            self._debug(
                "job_status",
                handle=handle,
                job_id=job.id,
                status=report.status.value,
                attempt=attempt,
            )
            if report.status.is_terminal:
                return report
            await asyncio.sleep(interval)

    async def _wait_for_terminal(self, job: Job, *, handle: str) -> JobStatusReport:
        budget = float(self._settings.poll_budget_seconds)
        try:
            return await asyncio.wait_for(
                self._poll_until_terminal(job, handle=handle),
                timeout=budget,
            )
        except asyncio.TimeoutError as e:
            self._warning("job_timed_out", handle=handle, job_id=job.id, budget_seconds=budget)
            raise FetchTimeoutError(
                f"Polling budget of {budget:g}s exhausted before "
                f"{self._provider.name} job {job.id} finished"
            ) from e

    def _raise_for_outcome(self, job: Job, report: JobStatusReport, *, handle: str) -> None:
        status = report.status
        if status is JobStatus.SUCCEEDED:
            return

        detail = f": {report.detail}" if report.detail else ""
        self._warning("job_failed", handle=handle, job_id=job.id, status=status.value)

        if status is JobStatus.TIMED_OUT:
            raise FetchTimeoutError(
                f"{self._provider.name} job {job.id} timed out on the provider side{detail}"
            )
        raise ProviderError(
            f"{self._provider.name} job {job.id} ended with status {status.value}{detail}"
        )

    async def _retrieve(self, result_handle: str, limit: int, *, handle: str) -> RetrievedResult:
        result = await self._guarded(
            lambda: self._provider.retrieve(result_handle, int(limit)),
            timeout=float(self._settings.retrieve_timeout_seconds),
            what="retrieve",
        )
        if isinstance(result, StructuredResult):
            self._info("results_retrieved", handle=handle, shape="structured", records=len(result.records))
        elif isinstance(result, HtmlResult):
            self._info("results_retrieved", handle=handle, shape="html", html_chars=len(result.html))
        return result

    def _to_posts(self, result: RetrievedResult, limit: int, *, handle: str) -> list[Post]:
        now_ms = int(time.time() * 1000)

        if isinstance(result, StructuredResult):
            return dedupe_posts(result.records, limit=limit, now_ms=now_ms)
        if isinstance(result, HtmlResult):
            records = extract_raw_records(result.html, logger=self._log)
            return dedupe_posts(records, limit=limit, now_ms=now_ms)

        raise ProviderError(
            f"{self._provider.name} returned an unsupported result type: {type(result).__name__}"
        )

    def _debug(self, event: str, **data: Any) -> None:
        if self._log is not None:
            self._log.debug(event, **data)

    def _info(self, event: str, **data: Any) -> None:
        if self._log is not None:
            self._log.info(event, **data)

    def _warning(self, event: str, **data: Any) -> None:
        if self._log is not None:
            self._log.warning(event, **data)
