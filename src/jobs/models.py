# src/jobs/models.py — v1
"""Job domain models: JobStatus, ConversionOptions, Job, JobSnapshot."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from cfconvert.pipeline.models import ConversionResult

WAITING_LINE = "Waiting for conversion to start..."


def _now() -> datetime:
    return datetime.now(timezone.utc)


class JobStatus(str, Enum):
    """idle -> cloning -> converting -> success | failed."""

    IDLE = "idle"
    CLONING = "cloning"
    CONVERTING = "converting"
    SUCCESS = "success"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.SUCCESS, JobStatus.FAILED)


class JobFinalizedError(RuntimeError):
    """Raised when a finished job is mutated."""


class ConversionOptions(BaseModel):
    """Caller options for one conversion run.

    Accepts both snake_case and the camelCase keys used by web clients
    (``enableCache``, ``cacheNamespaceId``, ...). The dashboard spellings
    ``enableKVCache`` and ``kvNamespaceId`` are accepted for the cache fields.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    enable_cache: bool = Field(
        default=False,
        validation_alias=AliasChoices("enableCache", "enableKVCache", "enable_cache"),
        serialization_alias="enableCache",
    )
    cache_namespace_id: str = Field(
        default="",
        validation_alias=AliasChoices("cacheNamespaceId", "kvNamespaceId", "cache_namespace_id"),
        serialization_alias="cacheNamespaceId",
    )
    create_branch: bool = False
    branch_name: str = ""
    commit_and_push: bool = False
    manifest_sub_path: str = ""


class JobSnapshot(BaseModel):
    """What a status feed subscriber sees."""

    status: JobStatus
    logs: list[str] = Field(default_factory=list)
    message: str | None = None

    @classmethod
    def waiting(cls) -> JobSnapshot:
        """Placeholder for a project whose job has not been stored yet."""
        return cls(status=JobStatus.CLONING, logs=[WAITING_LINE])


class Job(BaseModel):
    """Per-project record of an in-progress or finished conversion run.

    The log only grows, and nothing changes once the status is terminal.
    """

    project_id: str
    run_id: str = ""
    status: JobStatus = JobStatus.IDLE
    logs: list[str] = Field(default_factory=list)
    message: str | None = None
    error: str | None = None
    result: ConversionResult | None = None
    started_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)

    def _ensure_open(self) -> None:
        if self.status.is_terminal:
            raise JobFinalizedError(
                f"Job for {self.project_id} already finished ({self.status.value})"
            )

    def append_log(self, line: str) -> None:
        self._ensure_open()
        self.logs.append(line)
        self.updated_at = _now()

    def transition(self, status: JobStatus) -> None:
        """Move to a non-terminal status."""
        self._ensure_open()
        if status.is_terminal:
            raise ValueError("Use finish() to reach a terminal status")
        self.status = status
        self.updated_at = _now()

    def finish(
        self,
        status: JobStatus,
        message: str,
        error: str | None = None,
        result: ConversionResult | None = None,
        log_message: bool = False,
    ) -> None:
        """Record the terminal state. Optional log lines are added first."""
        self._ensure_open()
        if not status.is_terminal:
            raise ValueError(f"{status.value} is not a terminal status")
        if log_message:
            self.logs.append(message)
        if error is not None:
            self.logs.append(f"Error details: {error}")
        self.message = message
        self.error = error
        self.result = result
        self.status = status
        self.updated_at = _now()

    def snapshot(self) -> JobSnapshot:
        return JobSnapshot(status=self.status, logs=list(self.logs), message=self.message)
