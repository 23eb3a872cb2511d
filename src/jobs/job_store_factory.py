# src/jobs/job_store_factory.py — v1
"""Factory for job store instantiation."""

from __future__ import annotations

from cfconvert.config.settings import Settings
from cfconvert.jobs.base_job_store import BaseJobStore


def create_job_store(settings: Settings | None = None) -> BaseJobStore:
    """Instantiate the configured job store backend.

    Args:
        settings: Application settings. Defaults to the in-memory backend.

    Returns:
        A fresh BaseJobStore; callers own its lifetime.
    """
    backend = "memory" if settings is None else settings.job_store_backend
    ttl_s = None if settings is None else settings.job_ttl_s

    if backend == "memory":
        from cfconvert.jobs.memory_store import MemoryJobStore
        return MemoryJobStore(ttl_s=ttl_s)

    if backend == "redis":
        from cfconvert.jobs.redis_store import RedisJobStore
        if settings is None or not settings.job_redis_url:
            raise ValueError("JOB_REDIS_URL must be set when JOB_STORE_BACKEND=redis")
        return RedisJobStore(redis_url=settings.job_redis_url, ttl_s=ttl_s)

    raise ValueError(f"Unsupported job store backend: {backend!r}")
