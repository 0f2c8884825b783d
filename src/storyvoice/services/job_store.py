from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable

from storyvoice.models import Job, JobStatus

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 30 * 60
DEFAULT_SWEEP_INTERVAL_SECONDS = 5 * 60


class JobStore:
    """In-memory job table keyed by story id.

    Only the task driving a story's generation writes its entry; status queries
    read. Everything runs on one event loop, so no locking is needed.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self._jobs: dict[str, Job] = {}

    def now(self) -> float:
        return self.clock()

    def get(self, job_id: str) -> Job | None:
        return self._jobs.get(job_id)

    def put(self, job: Job) -> Job:
        self._jobs[job.id] = job
        return job

    def __contains__(self, job_id: object) -> bool:
        return job_id in self._jobs

    def __len__(self) -> int:
        return len(self._jobs)

    @staticmethod
    def _expiry_reference(job: Job) -> float | None:
        if job.completed_at is not None:
            return job.completed_at
        # A swept preview is rebuilt from its draft on the next status query.
        if job.status is JobStatus.PREVIEW:
            return job.started_at
        return None

    def sweep(self) -> list[str]:
        """Drop finished jobs and abandoned previews older than the TTL."""
        now = self.now()
        expired = []
        for job_id, job in self._jobs.items():
            reference = self._expiry_reference(job)
            if reference is not None and now - reference > self.ttl_seconds:
                expired.append(job_id)
        for job_id in expired:
            del self._jobs[job_id]
        if expired:
            logger.info(f"Swept {len(expired)} expired job(s)")
        return expired

    async def run_sweeper(self, interval_seconds: float = DEFAULT_SWEEP_INTERVAL_SECONDS) -> None:
        """Sweep periodically until cancelled."""
        while True:
            await asyncio.sleep(interval_seconds)
            self.sweep()
