# tests/unit/config/test_unit_settings.py — v1
"""Tests for config/settings.py — typed Settings and validation rules."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from cfconvert.config.settings import ConfigurationError, Settings, load_settings


class TestSettingsDefaults:
    def test_default_storage_path(self):
        s = Settings(_env_file=None)
        assert s.local_storage_path == Path("./tmp/projects")

    def test_default_job_store(self):
        s = Settings(_env_file=None)
        assert s.job_store_backend == "memory"
        assert s.job_ttl_s is None

    def test_default_poll_interval(self):
        s = Settings(_env_file=None)
        assert s.status_poll_interval_s == 1.0

    def test_no_command_timeout_by_default(self):
        s = Settings(_env_file=None)
        assert s.command_timeout_s is None

    def test_env_var(self, monkeypatch):
        monkeypatch.setenv("LOCAL_STORAGE_PATH", "/srv/checkouts")
        s = Settings(_env_file=None)
        assert s.local_storage_path == Path("/srv/checkouts")


class TestSettingsValidation:
    def test_redis_backend_requires_url(self):
        with pytest.raises(ConfigurationError, match="JOB_REDIS_URL"):
            Settings(_env_file=None, job_store_backend="redis")

    def test_redis_backend_with_url(self):
        s = Settings(
            _env_file=None, job_store_backend="redis", job_redis_url="redis://localhost:6379/0",
        )
        assert s.job_redis_url.startswith("redis://")

    def test_negative_timeout(self):
        with pytest.raises(ConfigurationError, match="COMMAND_TIMEOUT_S"):
            Settings(_env_file=None, command_timeout_s=-1)

    def test_zero_poll_interval(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, status_poll_interval_s=0)

    def test_unknown_backend(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, job_store_backend="postgres")


class TestLoadSettings:
    def test_overrides(self):
        s = load_settings(_env_file=None, npm_executable="pnpm")
        assert s.npm_executable == "pnpm"
