# src/pipeline/models.py — v1
"""Pipeline domain models: PipelineConfig, StepResult, ConversionResult, scan outcomes."""

from __future__ import annotations

from enum import Enum
from pathlib import Path, PurePosixPath

from pydantic import BaseModel, ConfigDict, Field, field_validator

MANIFEST_FILENAME = "package.json"


class PipelineConfig(BaseModel):
    """Immutable input to one pipeline run."""

    model_config = ConfigDict(frozen=True)

    checkout_path: Path
    project_name: str
    manifest_sub_path: str = ""
    enable_kv_cache: bool = False
    kv_namespace_id: str = ""

    @field_validator("manifest_sub_path")
    @classmethod
    def validate_sub_path(cls, v: str) -> str:  # noqa: N805
        """Normalize to a relative directory inside the checkout."""
        raw = v.strip().replace("\\", "/")
        if raw.startswith("/"):
            raise ValueError("manifest_sub_path must be relative to the checkout")
        parts = [p for p in PurePosixPath(raw).parts if p not in ("", ".")]
        if ".." in parts:
            raise ValueError("manifest_sub_path must stay inside the checkout")
        if parts and parts[-1] == MANIFEST_FILENAME:
            parts = parts[:-1]
        return "/".join(parts)

    @property
    def project_dir(self) -> Path:
        """Directory holding the manifest; the app root for all generated files."""
        if not self.manifest_sub_path:
            return self.checkout_path
        return self.checkout_path.joinpath(*self.manifest_sub_path.split("/"))

    @property
    def manifest_path(self) -> Path:
        return self.project_dir / MANIFEST_FILENAME


class StepResult(BaseModel):
    """Outcome of a single pipeline step."""

    name: str
    success: bool
    logs: list[str] = Field(default_factory=list)


class ConversionResult(BaseModel):
    """Outcome of a full pipeline run."""

    model_config = ConfigDict(frozen=True)

    success: bool
    message: str
    logs: list[str] = Field(default_factory=list)
    steps: list[StepResult] = Field(default_factory=list)


class ScanOutcome(str, Enum):
    """Classified result of the edge runtime scan."""

    MATCHED = "matched"
    NO_MATCH = "no_match"
    TOOLING_ERROR = "tooling_error"


class EdgeRuntimeScan(BaseModel):
    """Files declaring the edge runtime, or why the scan could not tell."""

    outcome: ScanOutcome
    files: list[str] = Field(default_factory=list)
    error: str | None = None
