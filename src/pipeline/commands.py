# src/pipeline/commands.py — v1
"""Async runner for external commands (npm and friends).

Commands run as subprocesses without a shell. A cancelled or timed-out
command is killed before the error propagates, so no child outlives the
step that started it.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

# Keep error messages readable when npm dumps a full log to stderr.
_MAX_ERROR_CHARS = 2000


@dataclass(frozen=True)
class CommandResult:
    """Captured output of a finished command."""

    args: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str


class CommandError(Exception):
    """A command could not be started or exited non-zero."""

    def __init__(
        self,
        args: Sequence[str],
        returncode: int | None,
        output: str = "",
        message: str | None = None,
    ):
        self.command = tuple(args)
        self.returncode = returncode
        self.output = output
        if message is None:
            if returncode is None:
                message = f"Command failed to start: {' '.join(self.command)}"
            else:
                message = f"Command failed with exit code {returncode}: {' '.join(self.command)}"
        detail = output.strip()[-_MAX_ERROR_CHARS:]
        if detail:
            message = f"{message}\n{detail}"
        super().__init__(message)


class CommandTimeoutError(CommandError):
    """A command exceeded the configured timeout and was killed."""

    def __init__(self, args: Sequence[str], timeout_s: float):
        self.timeout_s = timeout_s
        super().__init__(
            args, None,
            message=f"Command timed out after {timeout_s:g}s: {' '.join(args)}",
        )


def _kill(proc: asyncio.subprocess.Process) -> None:
    try:
        proc.kill()
    except ProcessLookupError:
        pass


class CommandRunner:
    """Execute commands with an optional per-command timeout.

    Args:
        timeout_s: Wall-clock limit per command. None = wait indefinitely.
    """

    def __init__(self, timeout_s: float | None = None) -> None:
        self._timeout_s = timeout_s

    async def run(self, args: Sequence[str], cwd: Path) -> CommandResult:
        """Run ``args`` in ``cwd`` and return its output.

        Raises:
            CommandError: If the command cannot start or exits non-zero.
            CommandTimeoutError: If the timeout elapses.
        """
        logger.debug("Running %s in %s", " ".join(args), cwd)
        try:
            proc = await asyncio.create_subprocess_exec(
                *args,
                cwd=str(cwd),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise CommandError(args, None, str(exc)) from exc

        try:
            stdout_b, stderr_b = await asyncio.wait_for(
                proc.communicate(), timeout=self._timeout_s,
            )
        except asyncio.TimeoutError:
            _kill(proc)
            await proc.wait()
            raise CommandTimeoutError(args, self._timeout_s or 0.0) from None
        except asyncio.CancelledError:
            _kill(proc)
            await proc.wait()
            raise

        stdout = stdout_b.decode("utf-8", errors="replace")
        stderr = stderr_b.decode("utf-8", errors="replace")
        if proc.returncode != 0:
            raise CommandError(args, proc.returncode, stderr or stdout)
        return CommandResult(
            args=tuple(args), returncode=proc.returncode, stdout=stdout, stderr=stderr,
        )
