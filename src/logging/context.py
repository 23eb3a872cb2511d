# src/logging/context.py — v1
"""Contextual logging support — attach project_id, run_id, step to log records."""

from __future__ import annotations

import contextvars
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any

# Context variables for structured logging, set per conversion run.
# asyncio tasks copy the context at creation, so each run keeps its own values.
_project_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "project_id", default=None
)
_run_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "run_id", default=None
)
_step: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "step", default=None
)


@dataclass
class LogContext:
    """Immutable snapshot of current logging context."""

    project_id: str | None = None
    run_id: str | None = None
    step: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        project_id=_project_id.get(),
        run_id=_run_id.get(),
        step=_step.get(),
    )


def set_run_context(project_id: str, run_id: str) -> None:
    """Set run-level context (called once per conversion run)."""
    _project_id.set(project_id)
    _run_id.set(run_id)


@contextmanager
def step_context(step: str) -> Iterator[None]:
    """Mark log records inside the block with ``step``; restores the previous value."""
    token = _step.set(step)
    try:
        yield
    finally:
        _step.reset(token)


def clear_context() -> None:
    """Reset all context variables."""
    _project_id.set(None)
    _run_id.set(None)
    _step.set(None)
