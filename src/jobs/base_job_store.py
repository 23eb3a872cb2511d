# src/jobs/base_job_store.py — v1
"""Abstract job store interface keyed by project identity."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator

from cfconvert.jobs.models import Job, JobSnapshot


class BaseJobStore(ABC):
    """Unified interface for job storage backends.

    Writers replace the whole Job on every change; readers get a copy and
    may see a state between two writes of the same run.
    """

    @abstractmethod
    async def get(self, project_id: str) -> Job | None:
        """Return the job for a project, or None."""

    @abstractmethod
    async def set(self, project_id: str, job: Job) -> None:
        """Store (replace) the job for a project."""

    @abstractmethod
    async def delete(self, project_id: str) -> None:
        """Forget a project's job."""

    @abstractmethod
    async def list_ids(self) -> list[str]:
        """Project identities with a stored job."""

    def subscribe(
        self, project_id: str, poll_interval_s: float = 1.0,
    ) -> AsyncIterator[JobSnapshot]:
        """Snapshots for ``project_id`` until the job reaches a terminal status."""
        from cfconvert.jobs.status_feed import follow_status

        return follow_status(self, project_id, poll_interval_s)
