from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence

from ..errors import ProviderError
from .base import HtmlResult, Job, JobStatus, JobStatusReport, RetrievedResult, StructuredResult

_OFFLINE_CAPTION_1 = (
    "Golden hour over the launch pad. Countdown starts tonight! "
    "#space #launch #nasa"
)
_OFFLINE_CAPTION_2 = (
    "A new mosaic of the Pillars of Creation\nProcessed from fresh infrared data. "
    "#jwst #astronomy"
)
_OFFLINE_CAPTION_3 = "Suiting up for the spacewalk. #ISS #Space"

_DEFAULT_OFFLINE_ITEMS: list[dict[str, Any]] = [
    {
        "id": "3100000000000000001",
        "shortCode": "OFFL1",
        "url": "https://www.instagram.com/p/OFFL1/",
        "caption": _OFFLINE_CAPTION_1,
        "hashtags": ["space", "launch", "nasa"],
        "type": "Image",
        "timestamp": "2025-01-01T00:00:00.000Z",
    },
    {
        "id": "3100000000000000002",
        "shortCode": "OFFL2",
        "url": "https://www.instagram.com/p/OFFL2/",
        "caption": _OFFLINE_CAPTION_2,
        "hashtags": ["jwst", "astronomy"],
        "type": "Sidecar",
        "timestamp": "2025-01-02T00:00:00.000Z",
    },
    {
        "id": "3100000000000000003",
        "shortCode": "OFFL3",
        "url": "https://www.instagram.com/p/OFFL3/",
        "caption": _OFFLINE_CAPTION_3,
        "type": "Video",
        "timestamp": "2025-01-03T00:00:00.000Z",
    },
    {
        # Same post again, as actors sometimes emit; dropped by deduplication.
        "id": "3100000000000000001",
        "shortCode": "OFFL1",
        "url": "https://www.instagram.com/p/OFFL1/",
        "caption": _OFFLINE_CAPTION_1,
        "type": "Image",
        "timestamp": "2025-01-01T00:00:00.000Z",
    },
    {
        "error": "not_found",
        "errorDescription": "Offline stub error row",
    },
]


@dataclass
class OfflineProvider:
    """
    Network-free provider for smoke runs and tests.

    Walks through `statuses` on successive polls (the last one repeats) and serves
    either `html` as a raw document or `items` as structured records.
    """

    items: Sequence[Mapping[str, Any]] = tuple(_DEFAULT_OFFLINE_ITEMS)
    html: str | None = None
    statuses: Sequence[JobStatus] = (JobStatus.SUCCEEDED,)
    initial_status: JobStatus = JobStatus.SUBMITTED
    name: str = "offline"

    submissions: list[dict[str, Any]] = field(default_factory=list)
    polls: int = 0
    retrievals: int = 0

    async def submit(
        self,
        target_url: str,
        result_limit: int,
        options: Mapping[str, Any] | None = None,
    ) -> Job:
        self.submissions.append(
            {"target_url": target_url, "result_limit": result_limit, "options": dict(options or {})}
        )
        return Job(
            id=f"offline_run_{len(self.submissions)}",
            status=self.initial_status,
            provider=self.name,
            result_handle="offline_dataset",
        )

    async def poll_status(self, job_id: str) -> JobStatusReport:
        if not self.statuses:
            raise ProviderError("Offline provider has no statuses configured")
        idx = min(self.polls, len(self.statuses) - 1)
        self.polls += 1
        return JobStatusReport(status=self.statuses[idx], result_handle="offline_dataset")

    async def retrieve(self, result_handle: str, limit: int) -> RetrievedResult:
        self.retrievals += 1
        if self.html is not None:
            return HtmlResult(html=self.html, source_url=None)
        return StructuredResult(records=[dict(item) for item in list(self.items)[: max(0, limit)]])

    async def aclose(self) -> None:
        return None
