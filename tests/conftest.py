# tests/conftest.py — v1
"""Shared test fixtures for all unit and integration tests.

Provides Next.js project trees, a fake command runner, a fake source
platform client, and local git remotes built with GitPython in tmp_path.
No network access: npm is never executed and remotes are bare repos on disk.
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from pathlib import Path
from typing import Any

import git
import pytest

from cfconvert.pipeline.commands import CommandError, CommandResult
from cfconvert.source.base_client import BaseSourceClient, SourcePlatformError
from cfconvert.source.models import SourceProject

EDGE_PAGE = 'export const runtime = "edge";\n\nexport default function Page() {\n  return null;\n}\n'


# === Helpers ===


def write_nextjs_app(
    root: Path,
    dependencies: dict[str, str] | None = None,
    dev_dependencies: dict[str, str] | None = None,
    edge_page: bool = True,
    gitignore: str | None = "node_modules\n",
) -> Path:
    """Create a minimal Next.js app under ``root`` and return ``root``."""
    root.mkdir(parents=True, exist_ok=True)
    manifest: dict[str, Any] = {
        "name": "demo-app",
        "version": "0.1.0",
        "scripts": {"dev": "next dev", "build": "next build"},
        "dependencies": dependencies if dependencies is not None else {"next": "14.2.0", "react": "18.3.0"},
    }
    if dev_dependencies is not None:
        manifest["devDependencies"] = dev_dependencies
    (root / "package.json").write_text(json.dumps(manifest, indent=2) + "\n", encoding="utf-8")

    page_dir = root / "app" / "api" / "hello"
    page_dir.mkdir(parents=True, exist_ok=True)
    if edge_page:
        (page_dir / "route.ts").write_text(EDGE_PAGE, encoding="utf-8")
    (root / "app" / "page.tsx").write_text(
        "export default function Home() {\n  return <main />;\n}\n", encoding="utf-8",
    )
    if gitignore is not None:
        (root / ".gitignore").write_text(gitignore, encoding="utf-8")
    return root


def read_manifest(root: Path) -> dict[str, Any]:
    return json.loads((root / "package.json").read_text(encoding="utf-8"))


class FakeRunner:
    """CommandRunner stand-in that records calls instead of running npm."""

    def __init__(self, fail_with: str | None = None) -> None:
        self.calls: list[tuple[tuple[str, ...], Path]] = []
        self._fail_with = fail_with

    async def run(self, args: Sequence[str], cwd: Path) -> CommandResult:
        self.calls.append((tuple(args), Path(cwd)))
        if self._fail_with is not None:
            raise CommandError(args, 1, self._fail_with)
        return CommandResult(args=tuple(args), returncode=0, stdout="", stderr="")


class FakeSourceClient(BaseSourceClient):
    """In-memory source platform keyed by project id."""

    def __init__(self, projects: dict[str, dict[str, Any]] | None = None) -> None:
        self.projects = {
            pid: SourceProject.model_validate(data) for pid, data in (projects or {}).items()
        }

    async def get_project(self, project_id: str) -> SourceProject:
        if project_id not in self.projects:
            raise SourcePlatformError(f"Project {project_id} not found", status_code=404)
        return self.projects[project_id]

    async def get_projects(self) -> list[SourceProject]:
        return list(self.projects.values())

    async def get_project_env_vars(self, project_id: str) -> list[dict[str, Any]]:
        return []


# === FIXTURES: Project trees ===


@pytest.fixture
def nextjs_app(tmp_path: Path) -> Path:
    """A Next.js app with one edge runtime route and a .gitignore."""
    return write_nextjs_app(tmp_path / "checkout")


@pytest.fixture
def app_factory():
    """``write_nextjs_app`` for tests that need custom trees."""
    return write_nextjs_app


@pytest.fixture
def manifest_of():
    return read_manifest


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def failing_runner() -> FakeRunner:
    return FakeRunner(fail_with="npm ERR! code E404")


@pytest.fixture
def source_factory():
    """Build a FakeSourceClient from raw project payloads."""
    return FakeSourceClient


# === FIXTURES: Git ===


@pytest.fixture
def git_identity(monkeypatch: pytest.MonkeyPatch) -> None:
    """Commit identity for git subprocesses, independent of global config."""
    monkeypatch.setenv("GIT_AUTHOR_NAME", "Test Runner")
    monkeypatch.setenv("GIT_AUTHOR_EMAIL", "tests@example.com")
    monkeypatch.setenv("GIT_COMMITTER_NAME", "Test Runner")
    monkeypatch.setenv("GIT_COMMITTER_EMAIL", "tests@example.com")


def make_remote(base: Path, files_root_builder=write_nextjs_app) -> Path:
    """Create a bare remote whose ``main`` branch holds a Next.js app."""
    seed_path = base / "seed"
    seed = git.Repo.init(seed_path)
    files_root_builder(seed_path)
    seed.git.add(".")
    seed.git.commit("-m", "Initial commit")
    seed.git.branch("-M", "main")

    bare_path = base / "remote.git"
    bare = git.Repo.init(bare_path, bare=True)
    bare.git.symbolic_ref("HEAD", "refs/heads/main")
    seed.create_remote("origin", str(bare_path))
    seed.git.push("origin", "main")
    seed.close()
    bare.close()
    return bare_path


@pytest.fixture
def remote_repo(tmp_path: Path, git_identity: None) -> Path:
    """Path of a bare git remote with a Next.js app on ``main``."""
    return make_remote(tmp_path / "remotes")


@pytest.fixture
def storage_root(tmp_path: Path) -> Path:
    return tmp_path / "projects"


@pytest.fixture
def remote_factory(git_identity: None):
    """``make_remote(base, builder)`` for remotes holding a custom tree."""
    return make_remote
