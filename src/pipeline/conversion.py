# src/pipeline/conversion.py — v1
"""Conversion pipeline — seven ordered steps applied to a project checkout.

Steps:
  1. verify        Manifest exists and depends on Next.js; scan for edge runtime
  2. install       npm install the OpenNext adapter and wrangler as dev deps
  3. adapter       Write open-next.config.ts
  4. deploy        Write wrangler.jsonc
  5. scripts       Set preview/deploy/cf-typegen in package.json
  6. cleanup       Drop @cloudflare/next-on-pages, strip edge runtime exports
  7. ignore        Add .open-next to .gitignore

The first failing step aborts the rest. Steps 3-5 and 7 are idempotent.
Every log line is user-facing plain text; lines are forwarded to ``on_log``
as they are produced so a job can show progress live.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any

from cfconvert.logging.context import step_context
from cfconvert.pipeline import templates
from cfconvert.pipeline.commands import CommandError, CommandRunner
from cfconvert.pipeline.edge_runtime import scan_edge_runtime, strip_edge_runtime
from cfconvert.pipeline.models import (
    ConversionResult,
    PipelineConfig,
    ScanOutcome,
    StepResult,
)

logger = logging.getLogger(__name__)

LogSink = Callable[[str], Awaitable[None]]

MSG_SUCCESS = "Project successfully converted to use @opennextjs/cloudflare"
LOG_SUCCESS = "Conversion completed successfully!"


class ConversionStepError(Exception):
    """A pipeline step failed; the run stops here."""

    def __init__(self, step: str, message: str):
        self.step = step
        super().__init__(message)


class PreconditionError(ConversionStepError):
    """The checkout is not something this pipeline can convert."""


class ConversionPipeline:
    """Convert one checkout from Vercel to Cloudflare Workers conventions.

    Args:
        config: Immutable run configuration.
        runner: Command runner for npm. Defaults to an untimed CommandRunner.
        on_log: Optional coroutine called with each log line as it is added.
        npm_executable: Name or path of the npm binary.
    """

    def __init__(
        self,
        config: PipelineConfig,
        runner: CommandRunner | None = None,
        on_log: LogSink | None = None,
        npm_executable: str = "npm",
    ) -> None:
        self._config = config
        self._runner = runner or CommandRunner()
        self._on_log = on_log
        self._npm = npm_executable
        self._logs: list[str] = []

    @property
    def steps(self) -> list[tuple[str, Callable[[], Awaitable[None]]]]:
        return [
            ("verify", self.verify_project),
            ("install", self.install_dependencies),
            ("adapter", self.write_adapter_config),
            ("deploy", self.write_deploy_config),
            ("scripts", self.update_scripts),
            ("cleanup", self.remove_conflicting_references),
            ("ignore", self.update_ignore_file),
        ]

    async def run(self) -> ConversionResult:
        """Execute all steps in order and summarize the outcome."""
        self._logs = []
        step_results: list[StepResult] = []
        await self._log("Starting conversion pipeline...")

        for name, step in self.steps:
            mark = len(self._logs)
            with step_context(name):
                try:
                    await step()
                except ConversionStepError as exc:
                    return await self._fail(step_results, name, mark, str(exc))
                except Exception as exc:
                    logger.exception("Step '%s' raised unexpectedly", name)
                    return await self._fail(
                        step_results, name, mark, str(exc) or type(exc).__name__,
                    )
            step_results.append(StepResult(name=name, success=True, logs=self._logs[mark:]))

        await self._log(LOG_SUCCESS)
        return ConversionResult(
            success=True, message=MSG_SUCCESS, logs=list(self._logs), steps=step_results,
        )

    async def _fail(
        self, step_results: list[StepResult], name: str, mark: int, detail: str,
    ) -> ConversionResult:
        await self._log(f"Error during conversion: {detail}")
        step_results.append(StepResult(name=name, success=False, logs=self._logs[mark:]))
        return ConversionResult(
            success=False,
            message=f"Conversion failed: {detail}",
            logs=list(self._logs),
            steps=step_results,
        )

    async def _log(self, message: str) -> None:
        self._logs.append(message)
        logger.info(message)
        if self._on_log is not None:
            await self._on_log(message)

    # ------------------------------------------------------------------
    # Manifest helpers
    # ------------------------------------------------------------------

    def _read_manifest(self, step: str) -> dict[str, Any]:
        path = self._config.manifest_path
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise PreconditionError(step, f"Could not parse {path.name}: {exc}") from exc
        if not isinstance(data, dict):
            raise PreconditionError(step, f"{path.name} does not contain a JSON object")
        return data

    def _write_manifest(self, manifest: dict[str, Any]) -> None:
        self._config.manifest_path.write_text(
            templates.render_manifest(manifest), encoding="utf-8",
        )

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    async def verify_project(self) -> None:
        """Step 1: the manifest exists and declares Next.js."""
        await self._log("Verifying Next.js project...")

        if not self._config.manifest_path.is_file():
            where = self._config.manifest_sub_path or "the project directory"
            raise PreconditionError(
                "verify", f"Could not find package.json in {where}",
            )

        manifest = self._read_manifest("verify")
        groups = (manifest.get("dependencies"), manifest.get("devDependencies"))
        if not any(
            isinstance(group, dict) and templates.FRAMEWORK_PACKAGE in group
            for group in groups
        ):
            raise PreconditionError(
                "verify",
                "This project does not appear to be a Next.js project (next package not found)",
            )
        await self._log("Next.js project verified")

        await self._log("Checking for Edge Runtime usage...")
        scan = await asyncio.to_thread(scan_edge_runtime, self._config.project_dir)
        if scan.outcome is ScanOutcome.MATCHED:
            await self._log(
                f"WARNING: Edge Runtime usage detected in {len(scan.files)} file(s). "
                "These will be removed during conversion."
            )
            for filename in scan.files:
                await self._log(f"  - {filename}")
        elif scan.outcome is ScanOutcome.NO_MATCH:
            await self._log("No Edge Runtime usage detected")
        else:
            logger.warning("Edge runtime scan failed: %s", scan.error)
            await self._log(f"Note: Could not scan for Edge Runtime usage ({scan.error})")

    async def install_dependencies(self) -> None:
        """Step 2: add the adapter and deploy CLI as dev dependencies."""
        await self._log("Installing OpenNext dependencies...")
        args = [self._npm, "install", "--save-dev", *templates.DEV_DEPENDENCIES]
        try:
            await self._runner.run(args, cwd=self._config.project_dir)
        except CommandError as exc:
            raise ConversionStepError(
                "install", f"Failed to install dependencies: {exc}",
            ) from exc
        await self._log("Dependencies installed successfully")

    async def write_adapter_config(self) -> None:
        """Step 3: overwrite open-next.config.ts."""
        name = templates.ADAPTER_CONFIG_FILENAME
        await self._log(f"Creating or updating {name}...")
        content = templates.render_open_next_config(self._config.enable_kv_cache)
        (self._config.project_dir / name).write_text(content, encoding="utf-8")
        await self._log(f"{name} created/updated")

    async def write_deploy_config(self) -> None:
        """Step 4: overwrite wrangler.jsonc."""
        name = templates.DEPLOY_CONFIG_FILENAME
        await self._log(f"Creating or updating {name}...")
        if self._config.enable_kv_cache and not self._config.kv_namespace_id:
            await self._log(
                "Note: KV cache enabled without a namespace id; kv_namespaces left empty"
            )
        content = templates.render_wrangler_config(
            self._config.project_name,
            enable_kv_cache=self._config.enable_kv_cache,
            kv_namespace_id=self._config.kv_namespace_id,
        )
        (self._config.project_dir / name).write_text(content, encoding="utf-8")
        await self._log(f"{name} created/updated")

    async def update_scripts(self) -> None:
        """Step 5: point preview/deploy/typegen scripts at OpenNext and wrangler."""
        await self._log("Updating package.json scripts...")
        manifest = self._read_manifest("scripts")
        scripts = manifest.setdefault("scripts", {})
        if not isinstance(scripts, dict):
            raise ConversionStepError("scripts", 'package.json "scripts" is not an object')
        scripts.update(templates.SCRIPTS)
        self._write_manifest(manifest)
        await self._log("package.json scripts updated")

    async def remove_conflicting_references(self) -> None:
        """Step 6: drop the legacy adapter and edge runtime declarations."""
        await self._log("Removing conflicting references...")
        legacy = templates.LEGACY_ADAPTER_PACKAGE

        manifest = self._read_manifest("cleanup")
        changed = False
        for group in ("dependencies", "devDependencies"):
            deps = manifest.get(group)
            if isinstance(deps, dict) and legacy in deps:
                del deps[legacy]
                changed = True
                await self._log(f"Removed {legacy} from {group}")
        if changed:
            self._write_manifest(manifest)

        try:
            stripped = await asyncio.to_thread(strip_edge_runtime, self._config.project_dir)
        except OSError as exc:
            logger.warning("Edge runtime removal failed: %s", exc)
            await self._log(
                "Note: Could not automatically remove edge runtime declarations. "
                "You may need to remove these manually."
            )
        else:
            if stripped:
                await self._log(
                    f"Removed edge runtime declarations from {len(stripped)} file(s)"
                )

        await self._log("Conflicting references removed")

    def _ignore_file(self) -> Path:
        root_file = self._config.checkout_path / templates.IGNORE_FILENAME
        if root_file.exists() or not self._config.manifest_sub_path:
            return root_file
        local_file = self._config.project_dir / templates.IGNORE_FILENAME
        return local_file if local_file.exists() else root_file

    async def update_ignore_file(self) -> None:
        """Step 7: make sure the build output directory is ignored."""
        entry = templates.BUILD_OUTPUT_DIR
        await self._log("Updating .gitignore...")
        path = self._ignore_file()
        content = path.read_text(encoding="utf-8") if path.exists() else ""

        if any(templates.ignores_build_output(line) for line in content.splitlines()):
            await self._log(f"{entry} already in .gitignore")
            return

        if content and not content.endswith("\n"):
            content += "\n"
        if content:
            content += "\n"
        content += f"{templates.IGNORE_COMMENT}\n{entry}\n"
        path.write_text(content, encoding="utf-8")
        await self._log(f"Added {entry} to .gitignore")
