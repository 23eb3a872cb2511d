# src/source/base_client.py — v1
"""Abstract source-platform client interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from cfconvert.source.models import SourceProject


class SourcePlatformError(Exception):
    """The source platform rejected or failed a request."""

    def __init__(self, message: str, status_code: int | None = None, detail: Any = None):
        self.status_code = status_code
        self.detail = detail
        super().__init__(message)


class BaseSourceClient(ABC):
    """Read-only view of the platform the project is migrating away from."""

    @abstractmethod
    async def get_project(self, project_id: str) -> SourceProject:
        """Fetch one project by id or name."""

    @abstractmethod
    async def get_projects(self) -> list[SourceProject]:
        """List all projects visible to the configured credential."""

    @abstractmethod
    async def get_project_env_vars(self, project_id: str) -> list[dict[str, Any]]:
        """List the project's environment variable records."""

    async def aclose(self) -> None:
        """Release network resources. No-op by default."""
