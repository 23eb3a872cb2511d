# src/logging/logger.py — v1
"""Process logger setup with JSON and text formatters.

This is the operator-facing log. The user-facing job log lives on the Job
record; every job line is also emitted here at INFO, by the pipeline or by
the orchestrator.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from cfconvert.logging.context import get_context

if TYPE_CHECKING:
    from cfconvert.config.settings import Settings

ROOT_LOGGER = "cfconvert"

# Third-party loggers that are chatty at INFO.
_QUIET_LOGGERS = ("httpx", "httpcore", "git")


def _timestamp(record: logging.LogRecord) -> datetime:
    return datetime.fromtimestamp(record.created, tz=timezone.utc)


class JsonFormatter(logging.Formatter):
    """One JSON object per line; run context fields sit at the top level."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": _timestamp(record).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(get_context().as_dict())
        if record.exc_info and record.exc_info[1] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str, ensure_ascii=False)


class TextFormatter(logging.Formatter):
    """``time [LEVEL] logger [project] (step) - message``"""

    def format(self, record: logging.LogRecord) -> str:
        ctx = get_context()
        parts = [
            _timestamp(record).strftime("%Y-%m-%d %H:%M:%S"),
            f"[{record.levelname:8s}]",
            record.name,
        ]
        if ctx.project_id:
            parts.append(f"[{ctx.project_id}]")
        if ctx.step:
            parts.append(f"({ctx.step})")
        parts.append(f"- {record.getMessage()}")
        text = " ".join(parts)
        if record.exc_info and record.exc_info[1] is not None:
            text += "\n" + self.formatException(record.exc_info)
        return text


def get_logger(name: str) -> logging.Logger:
    """Logger under the package root, e.g. ``get_logger("jobs")``."""
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")


def setup_logging(
    level: str = "INFO",
    log_format: str = "text",
    log_file: str | None = None,
    rotation: str = "10MB",
    retention: int = 30,
) -> logging.Logger:
    """Attach handlers to the package root logger, replacing earlier ones.

    Args:
        level: DEBUG, INFO, WARNING or ERROR.
        log_format: "json" or "text".
        log_file: Optional rotating log file in addition to stderr.
        rotation: Max file size before rotation (e.g. "10MB").
        retention: Number of rotated files to keep.
    """
    root = logging.getLogger(ROOT_LOGGER)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    root.propagate = False
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    formatter: logging.Formatter = JsonFormatter() if log_format == "json" else TextFormatter()

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(formatter)
    root.addHandler(console)

    if log_file:
        from cfconvert.logging.handlers import create_rotating_handler

        file_handler = create_rotating_handler(log_file, rotation=rotation, retention=retention)
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    return root


def setup_logging_from_settings(settings: Settings, verbose: bool = False) -> logging.Logger:
    """Apply the LOG_* settings; ``verbose`` forces DEBUG."""
    return setup_logging(
        level="DEBUG" if verbose else settings.log_level,
        log_format=settings.log_format,
        log_file=str(settings.log_file) if settings.log_file else None,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
    )
