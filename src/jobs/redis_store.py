# src/jobs/redis_store.py — v1
"""Redis-based job store (JOB_STORE_BACKEND=redis).

Requires 'redis' package: pip install redis.
Lets the status feed run in a different process from the conversion worker.
"""

from __future__ import annotations

import logging
import math

from cfconvert.jobs.base_job_store import BaseJobStore
from cfconvert.jobs.models import Job

logger = logging.getLogger(__name__)

_KEY_PREFIX = "cfconvert:job:"
_INDEX_KEY = "cfconvert:job:__index__"


class RedisJobStore(BaseJobStore):
    """Redis-backed job store; finished jobs expire after ``ttl_s``."""

    def __init__(self, redis_url: str, ttl_s: float | None = None) -> None:
        try:
            import redis
        except ImportError as e:
            raise ImportError(
                "redis package required: pip install redis"
            ) from e

        self._client = redis.Redis.from_url(redis_url, decode_responses=True)
        # Redis EX takes whole seconds and rejects 0.
        self._ttl_s = max(1, math.ceil(ttl_s)) if ttl_s else None

    async def get(self, project_id: str) -> Job | None:
        data = self._client.get(f"{_KEY_PREFIX}{project_id}")
        if data is None:
            return None
        try:
            return Job.model_validate_json(data)
        except ValueError as e:
            logger.warning("Failed to deserialize job %s: %s", project_id, e)
            return None

    async def set(self, project_id: str, job: Job) -> None:
        ex = self._ttl_s if job.status.is_terminal else None
        self._client.set(f"{_KEY_PREFIX}{project_id}", job.model_dump_json(), ex=ex)
        self._client.sadd(_INDEX_KEY, project_id)

    async def delete(self, project_id: str) -> None:
        self._client.delete(f"{_KEY_PREFIX}{project_id}")
        self._client.srem(_INDEX_KEY, project_id)

    async def list_ids(self) -> list[str]:
        ids = []
        for project_id in self._client.smembers(_INDEX_KEY):
            if self._client.exists(f"{_KEY_PREFIX}{project_id}"):
                ids.append(project_id)
            else:
                self._client.srem(_INDEX_KEY, project_id)
        return sorted(ids)

    def close(self) -> None:
        """Close the Redis connection."""
        self._client.close()
