# src/repository/models.py — v1
"""Repository domain models: ProjectCheckout, AcquireResult."""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import BaseModel


class CloneErrorKind(str, Enum):
    """Classification of an acquisition failure."""

    AUTH = "auth"
    NOT_FOUND = "not_found"
    PATH_CONFLICT = "path_conflict"
    PREPARE = "prepare"
    GENERIC = "generic"


class ProjectCheckout(BaseModel):
    """A local working copy of a project's repository."""

    project_id: str
    path: Path
    repo_url: str
    branch: str | None = None


class AcquireResult(BaseModel):
    """Outcome of acquire(): clone or refresh of a checkout."""

    success: bool
    local_path: Path
    message: str
    error: str | None = None
    error_kind: CloneErrorKind | None = None
    checkout: ProjectCheckout | None = None
