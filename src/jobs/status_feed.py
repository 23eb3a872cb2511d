# src/jobs/status_feed.py — v1
"""Status feed — poll a job store and stream snapshots until a terminal state.

A subscriber may connect before the job exists (the start request and the
subscription race), so a missing job yields a "waiting" placeholder instead
of an error.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from typing import TYPE_CHECKING

from cfconvert.jobs.models import JobSnapshot

if TYPE_CHECKING:
    from cfconvert.jobs.base_job_store import BaseJobStore


async def current_snapshot(store: BaseJobStore, project_id: str) -> JobSnapshot:
    job = await store.get(project_id)
    return job.snapshot() if job is not None else JobSnapshot.waiting()


async def follow_status(
    store: BaseJobStore,
    project_id: str,
    poll_interval_s: float = 1.0,
) -> AsyncIterator[JobSnapshot]:
    """Yield the current snapshot now, then once per interval until terminal."""
    while True:
        snapshot = await current_snapshot(store, project_id)
        yield snapshot
        if snapshot.status.is_terminal:
            return
        await asyncio.sleep(poll_interval_s)


def format_event(snapshot: JobSnapshot) -> str:
    """Encode a snapshot as one server-sent event frame."""
    return f"data: {snapshot.model_dump_json()}\n\n"
