# src/source/vercel_client.py — v1
"""Vercel REST API client implementing BaseSourceClient.

Uses httpx.AsyncClient. Requests are scoped to a team when a team id is
configured.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from cfconvert.config.settings import ConfigurationError, Settings
from cfconvert.source.base_client import BaseSourceClient, SourcePlatformError
from cfconvert.source.models import SourceProject

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.vercel.com"


class VercelClient(BaseSourceClient):
    """Vercel API adapter.

    Args:
        api_token: Bearer token for the Vercel API.
        team_id: Optional team scope, sent as the ``teamId`` query parameter.
        base_url: API root.
        timeout_s: Per-request timeout.
        transport: Optional httpx transport (tests use ``httpx.MockTransport``).
    """

    def __init__(
        self,
        api_token: str,
        team_id: str | None = None,
        base_url: str = DEFAULT_API_URL,
        timeout_s: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._team_id = team_id or None
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers={"Authorization": f"Bearer {api_token}"},
            timeout=timeout_s,
            transport=transport,
        )

    async def get_project(self, project_id: str) -> SourceProject:
        logger.info("Fetching project details for %s", project_id)
        data = await self._get(f"/v9/projects/{project_id}")
        return SourceProject.model_validate(data)

    async def get_projects(self) -> list[SourceProject]:
        logger.info("Fetching projects list (team=%s)", self._team_id or "-")
        data = await self._get("/v9/projects")
        projects = [SourceProject.model_validate(p) for p in data.get("projects") or []]
        logger.info("Fetched %d projects", len(projects))
        return projects

    async def get_project_env_vars(self, project_id: str) -> list[dict[str, Any]]:
        logger.info("Fetching environment variables for %s", project_id)
        data = await self._get(f"/v9/projects/{project_id}/env")
        return list(data.get("envs") or [])

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _get(self, path: str) -> dict[str, Any]:
        params = {"teamId": self._team_id} if self._team_id else None
        try:
            response = await self._client.get(path, params=params)
        except httpx.HTTPError as exc:
            raise SourcePlatformError(f"Vercel API request failed: {exc}") from exc

        if response.is_error:
            try:
                detail: Any = response.json()
            except ValueError:
                detail = response.text
            logger.error(
                "Vercel API error %d on %s: %s", response.status_code, path, detail,
            )
            raise SourcePlatformError(
                f"Vercel API Error ({response.status_code}): {detail}",
                status_code=response.status_code,
                detail=detail,
            )
        return response.json()


def create_source_client(settings: Settings) -> VercelClient:
    """Build the Vercel client from settings.

    Raises:
        ConfigurationError: If no API token is configured.
    """
    if not settings.vercel_api_token:
        raise ConfigurationError("Missing VERCEL_API_TOKEN in environment variables")
    return VercelClient(
        api_token=settings.vercel_api_token,
        team_id=settings.vercel_team_id or None,
        base_url=settings.vercel_api_url,
        timeout_s=settings.vercel_timeout_s,
    )
