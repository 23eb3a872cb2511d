# src/source/models.py — v1
"""Source-platform domain models: SourceProject, GitRepository, ProviderLink.

Projects come back from the platform with many fields this package never
reads. The known ones are typed; everything else is kept verbatim in
``SourceProject.extra``.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

# Provider types whose repositories live on a well-known public host.
PROVIDER_HOSTS: dict[str, str] = {
    "github": "github.com",
    "gitlab": "gitlab.com",
    "bitbucket": "bitbucket.org",
}


class GitRepository(BaseModel):
    """Direct repository descriptor: ``{type, repo, url, defaultBranch}``."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    type: str
    repo: str = ""
    url: str = ""
    default_branch: str | None = Field(default=None, alias="defaultBranch")


class ProviderLink(BaseModel):
    """Provider-link descriptor: ``{type, org, repo, productionBranch}``."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    type: str
    org: str
    repo: str
    production_branch: str | None = Field(default=None, alias="productionBranch")

    def to_repository(self) -> GitRepository | None:
        """Normalize to the direct shape; None when the host is unknown."""
        host = PROVIDER_HOSTS.get(self.type)
        if host is None:
            return None
        return GitRepository(
            type=self.type,
            repo=f"{self.org}/{self.repo}",
            url=f"https://{host}/{self.org}/{self.repo}",
            default_branch=self.production_branch,
        )


class SourceProject(BaseModel):
    """A project as reported by the source platform."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    name: str
    framework: str | None = None
    git_repository: GitRepository | None = Field(default=None, alias="gitRepository")
    link: ProviderLink | None = None
    extra: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def collect_extra(cls, data: Any) -> Any:
        """Move unrecognised top-level attributes into ``extra``."""
        if not isinstance(data, dict):
            return data
        known: set[str] = {"extra"}
        for name, field in cls.model_fields.items():
            known.add(name)
            if field.alias:
                known.add(field.alias)
        extra = dict(data.get("extra") or {})
        extra.update({k: v for k, v in data.items() if k not in known})
        cleaned = {k: v for k, v in data.items() if k in known}
        cleaned["extra"] = extra
        return cleaned

    @property
    def repository_from_link(self) -> bool:
        """True when the repository is only known through the provider link."""
        return self.git_repository is None and self.repository() is not None

    def repository(self) -> GitRepository | None:
        """Return the direct repository descriptor, deriving it from ``link``."""
        if self.git_repository is not None:
            return self.git_repository
        if self.link is not None:
            return self.link.to_repository()
        return None


def is_nextjs_project(project: SourceProject) -> bool:
    """Whether the platform reports the project as a Next.js project."""
    framework = (project.framework or "").lower()
    return framework == "nextjs" or "next" in framework
