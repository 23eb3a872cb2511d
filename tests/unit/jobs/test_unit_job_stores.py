# tests/unit/jobs/test_unit_job_stores.py — v1
"""Tests for jobs stores: memory store, mocked Redis store, factory."""

from __future__ import annotations

import sys
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, patch

import pytest

from cfconvert.config.settings import Settings
from cfconvert.jobs.job_store_factory import create_job_store
from cfconvert.jobs.memory_store import MemoryJobStore
from cfconvert.jobs.models import Job, JobStatus


def _job(pid: str = "prj_1", status: JobStatus = JobStatus.CLONING, **kw) -> Job:
    return Job(project_id=pid, status=status, **kw)


class TestMemoryJobStore:
    @pytest.mark.asyncio
    async def test_set_get(self):
        store = MemoryJobStore()
        await store.set("prj_1", _job(logs=["a"]))
        job = await store.get("prj_1")
        assert job is not None and job.logs == ["a"]

    @pytest.mark.asyncio
    async def test_missing(self):
        assert await MemoryJobStore().get("nope") is None

    @pytest.mark.asyncio
    async def test_copies_in_and_out(self):
        store = MemoryJobStore()
        job = _job()
        await store.set("prj_1", job)
        job.append_log("after set")
        fetched = await store.get("prj_1")
        fetched.append_log("after get")
        assert (await store.get("prj_1")).logs == []

    @pytest.mark.asyncio
    async def test_overwrite_delete_list(self):
        store = MemoryJobStore()
        await store.set("b", _job("b"))
        await store.set("a", _job("a"))
        await store.set("a", _job("a", logs=["new run"]))
        assert await store.list_ids() == ["a", "b"]
        assert (await store.get("a")).logs == ["new run"]
        await store.delete("a")
        await store.delete("a")
        assert await store.list_ids() == ["b"]

    @pytest.mark.asyncio
    async def test_ttl_evicts_only_finished(self):
        store = MemoryJobStore(ttl_s=60)
        old = datetime.now(timezone.utc) - timedelta(seconds=120)
        done = _job("done", JobStatus.SUCCESS, updated_at=old)
        running = _job("running", JobStatus.CONVERTING, updated_at=old)
        fresh = _job("fresh", JobStatus.FAILED)
        for job in (done, running, fresh):
            await store.set(job.project_id, job)

        assert await store.list_ids() == ["fresh", "running"]
        assert await store.get("done") is None

    @pytest.mark.asyncio
    async def test_no_ttl_keeps_everything(self):
        store = MemoryJobStore()
        old = datetime.now(timezone.utc) - timedelta(days=30)
        await store.set("done", _job("done", JobStatus.SUCCESS, updated_at=old))
        assert await store.get("done") is not None


def _mock_redis_store():
    storage: dict[str, str] = {}
    index: set[str] = set()
    expiries: dict[str, int | None] = {}

    mock_redis = MagicMock()
    mock_redis.get = lambda k: storage.get(k)

    def _set(k, v, ex=None):
        storage[k] = v
        expiries[k] = ex

    mock_redis.set = _set
    mock_redis.delete = lambda k: storage.pop(k, None)
    mock_redis.exists = lambda k: int(k in storage)
    mock_redis.sadd = lambda k, v: index.add(v)
    mock_redis.srem = lambda k, v: index.discard(v)
    mock_redis.smembers = lambda k: index.copy()

    with patch("cfconvert.jobs.redis_store.RedisJobStore.__init__", return_value=None):
        from cfconvert.jobs.redis_store import RedisJobStore
        store = RedisJobStore.__new__(RedisJobStore)
        store._client = mock_redis
        store._ttl_s = 300
    return store, storage, expiries


class TestRedisJobStore:
    def test_sub_second_ttl_rounds_up(self):
        fake_redis = MagicMock()
        with patch.dict(sys.modules, {"redis": fake_redis}):
            from cfconvert.jobs.redis_store import RedisJobStore
            assert RedisJobStore("redis://localhost", ttl_s=0.5)._ttl_s == 1
            assert RedisJobStore("redis://localhost", ttl_s=90.2)._ttl_s == 91
            assert RedisJobStore("redis://localhost")._ttl_s is None
        fake_redis.Redis.from_url.assert_called_with("redis://localhost", decode_responses=True)

    def test_import_error_without_redis(self):
        """Clear ImportError when redis is not available."""
        redis_mod = sys.modules.get("redis")
        sys.modules["redis"] = None  # type: ignore[assignment]
        try:
            from cfconvert.jobs.redis_store import RedisJobStore
            with pytest.raises(ImportError, match="redis"):
                RedisJobStore(redis_url="redis://localhost")
        finally:
            if redis_mod is not None:
                sys.modules["redis"] = redis_mod
            else:
                sys.modules.pop("redis", None)

    @pytest.mark.asyncio
    async def test_set_get(self):
        store, storage, _ = _mock_redis_store()
        await store.set("prj_1", _job(logs=["x"]))
        assert "cfconvert:job:prj_1" in storage
        job = await store.get("prj_1")
        assert job.logs == ["x"]
        assert job.status is JobStatus.CLONING

    @pytest.mark.asyncio
    async def test_ttl_only_on_finished(self):
        store, _, expiries = _mock_redis_store()
        await store.set("prj_1", _job())
        assert expiries["cfconvert:job:prj_1"] is None
        await store.set("prj_1", _job(status=JobStatus.SUCCESS))
        assert expiries["cfconvert:job:prj_1"] == 300

    @pytest.mark.asyncio
    async def test_corrupt_payload(self):
        store, storage, _ = _mock_redis_store()
        storage["cfconvert:job:prj_1"] = "{not json"
        assert await store.get("prj_1") is None

    @pytest.mark.asyncio
    async def test_list_prunes_expired(self):
        store, storage, _ = _mock_redis_store()
        await store.set("a", _job("a"))
        await store.set("b", _job("b"))
        del storage["cfconvert:job:b"]
        assert await store.list_ids() == ["a"]

    @pytest.mark.asyncio
    async def test_delete(self):
        store, _, _ = _mock_redis_store()
        await store.set("a", _job("a"))
        await store.delete("a")
        assert await store.get("a") is None
        assert await store.list_ids() == []


class TestCreateJobStore:
    def test_default_memory(self):
        assert isinstance(create_job_store(), MemoryJobStore)

    def test_memory_from_settings(self):
        store = create_job_store(Settings(_env_file=None, job_ttl_s=10))
        assert isinstance(store, MemoryJobStore)
        assert store._ttl == timedelta(seconds=10)

    def test_redis_backend(self):
        settings = Settings(
            _env_file=None, job_store_backend="redis", job_redis_url="redis://localhost:6379/0",
        )
        fake_redis = MagicMock()
        with patch.dict(sys.modules, {"redis": fake_redis}):
            from cfconvert.jobs.redis_store import RedisJobStore
            store = create_job_store(settings)
        assert isinstance(store, RedisJobStore)
        fake_redis.Redis.from_url.assert_called_once_with(
            "redis://localhost:6379/0", decode_responses=True,
        )
