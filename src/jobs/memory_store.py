# src/jobs/memory_store.py — v1
"""In-process job store (default JOB_STORE_BACKEND=memory).

Jobs are copied on the way in and out, so a subscriber never holds the
object the running conversion keeps mutating.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from cfconvert.jobs.base_job_store import BaseJobStore
from cfconvert.jobs.models import Job

logger = logging.getLogger(__name__)


class MemoryJobStore(BaseJobStore):
    """Dict-backed job store.

    Args:
        ttl_s: Finished jobs older than this are evicted lazily. None keeps
            them until overwritten or deleted.
    """

    def __init__(self, ttl_s: float | None = None) -> None:
        self._jobs: dict[str, Job] = {}
        self._ttl = timedelta(seconds=ttl_s) if ttl_s else None

    async def get(self, project_id: str) -> Job | None:
        self._evict_expired()
        job = self._jobs.get(project_id)
        return job.model_copy(deep=True) if job is not None else None

    async def set(self, project_id: str, job: Job) -> None:
        self._jobs[project_id] = job.model_copy(deep=True)

    async def delete(self, project_id: str) -> None:
        self._jobs.pop(project_id, None)

    async def list_ids(self) -> list[str]:
        self._evict_expired()
        return sorted(self._jobs)

    def _evict_expired(self) -> None:
        if self._ttl is None:
            return
        cutoff = datetime.now(timezone.utc) - self._ttl
        expired = [
            pid for pid, job in self._jobs.items()
            if job.status.is_terminal and job.updated_at < cutoff
        ]
        for pid in expired:
            logger.debug("Evicting finished job for %s", pid)
            del self._jobs[pid]
