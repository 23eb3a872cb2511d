# src/repository/acquisition.py — v1
"""Repository acquisition: clone or refresh a checkout, branch, commit, push.

Checkouts live at ``<storage_root>/<project_id>``. GitPython calls block,
so every public coroutine runs its git work in a worker thread with
``asyncio.to_thread``.

Expected git failures never raise out of this module: acquire() returns a
classified AcquireResult and the branch/commit helpers return False.
"""

from __future__ import annotations

import asyncio
import logging
import shutil
from pathlib import Path

import git

from cfconvert.repository.models import AcquireResult, CloneErrorKind, ProjectCheckout
from cfconvert.source.models import PROVIDER_HOSTS, GitRepository

logger = logging.getLogger(__name__)

MSG_PULLED = "Repository already exists locally. Pulled latest changes."
MSG_CLONED = "Repository cloned successfully."


def sanitize_repo_url(url: str) -> str:
    """Trim whitespace and drop any quote characters around or inside the URL."""
    return url.strip().replace('"', "").replace("'", "").strip()


def normalize_clone_url(repository: GitRepository) -> str:
    """Turn an ``org/repo`` shorthand into an HTTPS clone URL.

    Only applies when the descriptor type names a well-known host; full
    ``https://`` and ``git@`` URLs are returned untouched.
    """
    url = repository.url or ""
    host = PROVIDER_HOSTS.get(repository.type)
    if host is None or url.startswith(("https://", "git@")):
        return url
    slug = repository.repo or url
    return f"https://{host}/{slug.strip('/')}.git"


def classify_clone_error(error_text: str) -> tuple[CloneErrorKind, str]:
    """Map raw git output to an error kind and a human-readable message."""
    if "Authentication failed" in error_text:
        return (
            CloneErrorKind.AUTH,
            "Authentication failed. This may be a private repository that requires credentials.",
        )
    if "not found" in error_text:
        return (
            CloneErrorKind.NOT_FOUND,
            "Repository not found. Please verify the URL is correct.",
        )
    if "already exists" in error_text:
        return (
            CloneErrorKind.PATH_CONFLICT,
            "Directory already exists and is not empty.",
        )
    return CloneErrorKind.GENERIC, error_text


def project_dir(storage_root: Path, project_id: str) -> Path:
    """Deterministic checkout path for a project identity."""
    if not project_id or project_id in (".", "..") or "/" in project_id or "\\" in project_id:
        raise ValueError(f"Unsafe project id for a checkout path: {project_id!r}")
    return Path(storage_root) / project_id


def is_valid_repo(path: Path) -> bool:
    """Whether ``path`` is the top level of a usable git working tree."""
    try:
        repo = git.Repo(path)
    except (git.InvalidGitRepositoryError, git.NoSuchPathError):
        return False
    try:
        return not repo.bare and Path(repo.working_tree_dir).resolve() == path.resolve()
    finally:
        repo.close()


def _active_branch(repo: git.Repo) -> str | None:
    try:
        return repo.active_branch.name
    except TypeError:
        # detached HEAD
        return None


def _refresh(path: Path, branch: str | None) -> str | None:
    """Checkout ``branch`` when possible, then pull. Returns the active branch."""
    repo = git.Repo(path)
    try:
        if branch:
            try:
                repo.git.checkout(branch)
            except git.GitCommandError as exc:
                logger.warning(
                    "Could not checkout branch %s, staying on current branch: %s",
                    branch, exc,
                )
        repo.git.pull()
        return _active_branch(repo)
    finally:
        repo.close()


def _acquire_sync(
    repo_url: str,
    project_id: str,
    branch: str | None,
    storage_root: Path,
) -> AcquireResult:
    local_path = project_dir(storage_root, project_id)
    clean_url = sanitize_repo_url(repo_url)

    try:
        storage_root.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        logger.error("Failed to create storage directory %s: %s", storage_root, exc)
        return AcquireResult(
            success=False,
            local_path=local_path,
            message=f"Failed to create storage directory: {exc}",
            error=str(exc),
            error_kind=CloneErrorKind.PREPARE,
        )

    if local_path.exists():
        try:
            if is_valid_repo(local_path):
                active = _refresh(local_path, branch)
                logger.info("Refreshed existing checkout %s", local_path)
                return AcquireResult(
                    success=True,
                    local_path=local_path,
                    message=MSG_PULLED,
                    checkout=ProjectCheckout(
                        project_id=project_id,
                        path=local_path,
                        repo_url=clean_url,
                        branch=active,
                    ),
                )
            logger.info("%s is not a git repository, removing it", local_path)
        except (git.GitError, OSError) as exc:
            logger.error("Error updating existing repository %s: %s", local_path, exc)

        try:
            shutil.rmtree(local_path)
        except OSError as exc:
            logger.error("Failed to remove existing directory %s: %s", local_path, exc)
            return AcquireResult(
                success=False,
                local_path=local_path,
                message=f"Failed to prepare directory for cloning: {exc}",
                error=str(exc),
                error_kind=CloneErrorKind.PREPARE,
            )

    logger.info("Cloning repository from URL: %s to %s", clean_url, local_path)
    multi_options = ["--branch", branch] if branch else None
    try:
        repo = git.Repo.clone_from(clean_url, local_path, multi_options=multi_options)
    except (git.GitError, OSError) as exc:
        kind, message = classify_clone_error(str(exc))
        logger.error("Clone error for %s: %s", clean_url, exc)
        return AcquireResult(
            success=False,
            local_path=local_path,
            message=f"Failed to clone repository: {message}",
            error=str(exc),
            error_kind=kind,
        )

    try:
        active = _active_branch(repo)
    finally:
        repo.close()

    return AcquireResult(
        success=True,
        local_path=local_path,
        message=MSG_CLONED,
        checkout=ProjectCheckout(
            project_id=project_id, path=local_path, repo_url=clean_url, branch=active,
        ),
    )


async def acquire(
    repo_url: str,
    project_id: str,
    branch: str | None,
    storage_root: Path,
) -> AcquireResult:
    """Clone ``repo_url`` into ``storage_root/project_id`` or refresh it.

    Args:
        repo_url: Remote URL; surrounding whitespace and quotes are ignored.
        project_id: Source-platform project identity, used as directory name.
        branch: Branch to clone or check out. None means the remote default.
        storage_root: Parent directory for all checkouts, created if absent.

    Returns:
        AcquireResult. On failure ``message`` is human-readable and
        ``error_kind`` classifies the cause.
    """
    return await asyncio.to_thread(
        _acquire_sync, repo_url, project_id, branch, Path(storage_root),
    )


def _create_branch_sync(path: Path, name: str) -> bool:
    try:
        repo = git.Repo(path)
    except git.GitError as exc:
        logger.error("Error creating branch %s in %s: %s", name, path, exc)
        return False
    try:
        repo.git.checkout("-b", name)
        return True
    except git.GitCommandError as exc:
        logger.error("Error creating branch %s in %s: %s", name, path, exc)
        return False
    finally:
        repo.close()


async def create_branch(path: Path, name: str) -> bool:
    """Create and check out a new local branch. False on any git failure."""
    return await asyncio.to_thread(_create_branch_sync, Path(path), name)


def _commit_and_push_sync(path: Path, message: str) -> bool:
    try:
        repo = git.Repo(path)
    except git.GitError as exc:
        logger.error("Error committing and pushing changes in %s: %s", path, exc)
        return False
    try:
        repo.git.add(".")
        repo.git.commit("-m", message)
        repo.git.push("origin", "HEAD")
        return True
    except git.GitCommandError as exc:
        logger.error("Error committing and pushing changes in %s: %s", path, exc)
        return False
    finally:
        repo.close()


async def commit_and_push(path: Path, message: str) -> bool:
    """Stage everything, commit, and push HEAD to the same-named remote branch."""
    return await asyncio.to_thread(_commit_and_push_sync, Path(path), message)
