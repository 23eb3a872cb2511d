# src/pipeline/edge_runtime.py — v1
"""Find and neutralize ``export const runtime = "edge"`` declarations.

Cloudflare Workers via OpenNext runs the Node.js runtime only, so route
segment configs that opt into the edge runtime have to go. Files are read
and written as bytes through ``surrogateescape`` so undecodable content and
line endings survive untouched.
"""

from __future__ import annotations

import os
import re
from collections.abc import Iterator
from pathlib import Path

from cfconvert.pipeline.models import EdgeRuntimeScan, ScanOutcome

SOURCE_SUFFIXES = (".js", ".jsx", ".ts", ".tsx")
SKIP_DIRS = frozenset({"node_modules", ".git", ".next", ".open-next"})
REPLACEMENT = "// Removed edge runtime declaration"

EDGE_RUNTIME_PATTERN = re.compile(
    r"""^([ \t]*)export[ \t]+const[ \t]+runtime[ \t]*=[ \t]*(["'])edge\2[ \t]*;?""",
    re.MULTILINE,
)


def _raise(error: OSError) -> None:
    raise error


def iter_source_files(root: Path) -> Iterator[Path]:
    """Yield JS/TS source files under ``root``, skipping dependency and build dirs.

    Raises:
        OSError: If a directory cannot be listed.
    """
    for dirpath, dirnames, filenames in os.walk(root, onerror=_raise):
        dirnames[:] = sorted(d for d in dirnames if d not in SKIP_DIRS)
        for filename in sorted(filenames):
            if filename.endswith(SOURCE_SUFFIXES):
                yield Path(dirpath) / filename


def _read(path: Path) -> str:
    return path.read_bytes().decode("utf-8", errors="surrogateescape")


def scan_edge_runtime(root: Path) -> EdgeRuntimeScan:
    """Report which files declare the edge runtime.

    Never raises: filesystem problems come back as ``TOOLING_ERROR`` so the
    caller can tell "nothing found" apart from "could not look".
    """
    matches: list[str] = []
    try:
        for path in iter_source_files(root):
            if EDGE_RUNTIME_PATTERN.search(_read(path)):
                matches.append(path.relative_to(root).as_posix())
    except OSError as exc:
        return EdgeRuntimeScan(outcome=ScanOutcome.TOOLING_ERROR, files=matches, error=str(exc))

    if matches:
        return EdgeRuntimeScan(outcome=ScanOutcome.MATCHED, files=matches)
    return EdgeRuntimeScan(outcome=ScanOutcome.NO_MATCH)


def strip_edge_runtime(root: Path) -> list[str]:
    """Replace each edge runtime declaration with a comment marker.

    Returns:
        Relative paths of the files that were rewritten.

    Raises:
        OSError: If a file cannot be read or written.
    """
    changed: list[str] = []
    for path in iter_source_files(root):
        original = _read(path)
        updated, count = EDGE_RUNTIME_PATTERN.subn(rf"\g<1>{REPLACEMENT}", original)
        if count:
            path.write_bytes(updated.encode("utf-8", errors="surrogateescape"))
            changed.append(path.relative_to(root).as_posix())
    return changed
