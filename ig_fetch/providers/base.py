"""Provider contract shared by the scraping backends.

A provider turns a profile URL into an asynchronous job, reports that job's status,
and hands back its results in one of two shapes: post-shaped records, or a single
raw HTML document that still needs extraction.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Protocol, Sequence, Union, runtime_checkable


class JobStatus(str, Enum):
    SUBMITTED = "SUBMITTED"
    RUNNING = "RUNNING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    ABORTED = "ABORTED"
    TIMED_OUT = "TIMED_OUT"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL


_TERMINAL = frozenset(
    {JobStatus.SUCCEEDED, JobStatus.FAILED, JobStatus.ABORTED, JobStatus.TIMED_OUT}
)


@dataclass(frozen=True)
class Job:
    id: str
    status: JobStatus
    provider: str
    result_handle: str | None = None


@dataclass(frozen=True)
class JobStatusReport:
    status: JobStatus
    result_handle: str | None = None
    detail: str | None = None


@dataclass(frozen=True)
class StructuredResult:
    """Records that are already post-shaped."""

    records: Sequence[Mapping[str, Any]] = field(default_factory=tuple)


@dataclass(frozen=True)
class HtmlResult:
    """A raw HTML document that must go through HTML extraction first."""

    html: str
    source_url: str | None = None


RetrievedResult = Union[StructuredResult, HtmlResult]


@runtime_checkable
class Provider(Protocol):
    name: str

    async def submit(
        self,
        target_url: str,
        result_limit: int,
        options: Mapping[str, Any] | None = None,
    ) -> Job:
        """Start a scrape job. Raises ProviderError when the submission is rejected."""
        ...

    async def poll_status(self, job_id: str) -> JobStatusReport:
        """Report the job's current status. Raises ProviderError on network failure."""
        ...

    async def retrieve(self, result_handle: str, limit: int) -> RetrievedResult:
        """Fetch up to limit results. Raises ProviderError."""
        ...

    async def aclose(self) -> None:
        ...


def profile_url(handle: str) -> str:
    return f"https://www.instagram.com/{handle}/"
