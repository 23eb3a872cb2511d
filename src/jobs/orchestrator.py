# src/jobs/orchestrator.py — v1
"""Conversion orchestrator — wire acquisition, pipeline and job state together.

start() records a ``cloning`` job and returns at once; the run continues
as an asyncio task:

  1. Resolve the repository from the source project (link shape normalized)
  2. Clone or refresh the checkout                      -> converting
  3. Optionally create a working branch (non-fatal)
  4. Run the conversion pipeline, streaming its log into the job
  5. Optionally commit and push (non-fatal)
  6. Finalize success | failed from the pipeline result

Only one run per project identity may be active at a time.
"""

from __future__ import annotations

import asyncio
import functools
import logging
import uuid
from datetime import datetime, timezone

from cfconvert.config.settings import Settings
from cfconvert.jobs.base_job_store import BaseJobStore
from cfconvert.jobs.models import ConversionOptions, Job, JobStatus
from cfconvert.logging.context import set_run_context
from cfconvert.pipeline.commands import CommandRunner
from cfconvert.pipeline.conversion import ConversionPipeline
from cfconvert.pipeline.models import ConversionResult, PipelineConfig
from cfconvert.repository import acquisition
from cfconvert.source.base_client import BaseSourceClient

logger = logging.getLogger(__name__)

INIT_LINE = "Initializing conversion process..."
MSG_NO_REPOSITORY = "No git repository found for this project"
MSG_CANCELLED = "Conversion cancelled"


class ConversionInProgressError(RuntimeError):
    """A conversion for this project identity is already running."""


def _generate_run_id() -> str:
    """Run ID: yyyymmdd_hhmmss_{uuid4_short}."""
    ts = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
    return f"{ts}_{uuid.uuid4().hex[:8]}"


class JobRecorder:
    """Single writer for one run's Job; every change is pushed to the store."""

    def __init__(self, store: BaseJobStore, job: Job) -> None:
        self._store = store
        self.job = job

    async def save(self) -> None:
        await self._store.set(self.job.project_id, self.job)

    async def load(self) -> Job | None:
        return await self._store.get(self.job.project_id)

    async def log(self, line: str, echo: bool = True) -> None:
        """Append a job log line; ``echo=False`` for lines the caller already logged."""
        self.job.append_log(line)
        logger.log(logging.INFO if echo else logging.DEBUG, "[job] %s", line)
        await self.save()

    async def transition(self, status: JobStatus) -> None:
        self.job.transition(status)
        await self.save()

    async def finish(
        self,
        status: JobStatus,
        message: str,
        error: str | None = None,
        result: ConversionResult | None = None,
        log_message: bool = False,
    ) -> None:
        self.job.finish(status, message, error=error, result=result, log_message=log_message)
        logger.info("Conversion %s: %s", status.value, message)
        await self.save()

    async def fail(self, message: str, error: str | None = None) -> None:
        await self.finish(JobStatus.FAILED, message, error=error, log_message=True)


class ConversionTask:
    """Handle to a running conversion."""

    def __init__(self, recorder: JobRecorder, task: asyncio.Task) -> None:
        self.project_id = recorder.job.project_id
        self.run_id = recorder.job.run_id
        self._recorder = recorder
        self._task = task

    def done(self) -> bool:
        return self._task.done()

    def cancel(self) -> bool:
        """Request cancellation; running npm commands are killed."""
        return self._task.cancel()

    async def wait(self) -> Job | None:
        """Wait for the run to end and return the final job."""
        await asyncio.wait({self._task})
        # A task cancelled before its first step never reached _run's handler.
        if self._task.cancelled() and not self._recorder.job.status.is_terminal:
            await self._recorder.fail(MSG_CANCELLED)
        return await self._recorder.load()


class ConversionOrchestrator:
    """Start and track conversions.

    Args:
        store: Job store shared with status feed readers.
        source_client: Source-platform client used to resolve projects.
        settings: Application settings. Loaded from .env if None.
        runner: Command runner handed to each pipeline.
    """

    def __init__(
        self,
        store: BaseJobStore,
        source_client: BaseSourceClient,
        settings: Settings | None = None,
        runner: CommandRunner | None = None,
    ) -> None:
        self._store = store
        self._source = source_client
        self._settings = settings or Settings()
        self._runner = runner or CommandRunner(timeout_s=self._settings.command_timeout_s)
        self._tasks: dict[str, ConversionTask] = {}

    def active_projects(self) -> list[str]:
        return sorted(pid for pid, t in self._tasks.items() if not t.done())

    async def start(
        self, project_id: str, options: ConversionOptions | None = None,
    ) -> ConversionTask:
        """Reset the project's job to ``cloning`` and run the conversion in the background.

        Raises:
            ValueError: If ``project_id`` is empty.
            ConversionInProgressError: If a run for this project is still active.
        """
        if not project_id:
            raise ValueError("Project ID is required")
        current = self._tasks.get(project_id)
        if current is not None and not current.done():
            raise ConversionInProgressError(
                f"A conversion for {project_id} is already running"
            )

        options = options or ConversionOptions()
        run_id = _generate_run_id()
        job = Job(
            project_id=project_id, run_id=run_id, status=JobStatus.CLONING, logs=[INIT_LINE],
        )
        recorder = JobRecorder(self._store, job)
        await recorder.save()

        task = asyncio.create_task(
            self._run(recorder, options), name=f"convert:{project_id}",
        )
        handle = ConversionTask(recorder, task)
        self._tasks[project_id] = handle
        logger.info("Conversion started: project_id=%s, run_id=%s", project_id, run_id)
        return handle

    async def _run(self, recorder: JobRecorder, options: ConversionOptions) -> None:
        job = recorder.job
        set_run_context(job.project_id, job.run_id)
        try:
            await self._convert(recorder, options)
        except asyncio.CancelledError:
            if not job.status.is_terminal:
                await recorder.fail(MSG_CANCELLED)
            raise
        except Exception as exc:
            logger.exception("Error during conversion of project %s", job.project_id)
            if not job.status.is_terminal:
                detail = str(exc) or type(exc).__name__
                await recorder.fail(
                    f"Conversion process failed unexpectedly: {detail}", error=detail,
                )

    async def _convert(self, recorder: JobRecorder, options: ConversionOptions) -> None:
        project_id = recorder.job.project_id
        project = await self._source.get_project(project_id)

        repository = project.repository()
        if repository is None:
            await recorder.fail(
                MSG_NO_REPOSITORY, error="Project doesn't have a connected Git repository",
            )
            return
        if project.repository_from_link:
            await recorder.log(f"Detected Git repository from link field: {repository.repo}")

        await recorder.log(f"Fetching project details for {project.name}...")
        await recorder.log(f"Repository: {repository.repo or repository.url}")

        repo_url = acquisition.normalize_clone_url(repository)
        if not repo_url:
            await recorder.fail(MSG_NO_REPOSITORY, error="Repository has no clone URL")
            return
        if repo_url != repository.url:
            await recorder.log(f"Using formatted {repository.type} URL: {repo_url}")

        # --- Acquisition ---
        await recorder.log(f"Cloning repository from {repo_url}...")
        acquired = await acquisition.acquire(
            repo_url, project_id, repository.default_branch,
            self._settings.local_storage_path,
        )
        if not acquired.success:
            await recorder.fail(acquired.message, error=acquired.error)
            return
        await recorder.log(acquired.message)
        await recorder.transition(JobStatus.CONVERTING)

        checkout_path = acquired.local_path
        if options.create_branch and options.branch_name:
            await recorder.log(f"Creating branch: {options.branch_name}...")
            if await acquisition.create_branch(checkout_path, options.branch_name):
                await recorder.log(f"Created branch: {options.branch_name}")
            else:
                await recorder.log(
                    f"Warning: Failed to create branch {options.branch_name}. "
                    "Continuing on current branch."
                )

        # --- Pipeline ---
        config = PipelineConfig(
            checkout_path=checkout_path,
            project_name=project.name,
            manifest_sub_path=options.manifest_sub_path,
            enable_kv_cache=options.enable_cache,
            kv_namespace_id=options.cache_namespace_id,
        )
        pipeline = ConversionPipeline(
            config,
            runner=self._runner,
            on_log=functools.partial(recorder.log, echo=False),
            npm_executable=self._settings.npm_executable,
        )
        result = await pipeline.run()

        # --- Publish ---
        if result.success and options.commit_and_push:
            await recorder.log("Committing and pushing changes...")
            if await acquisition.commit_and_push(checkout_path, self._settings.commit_message):
                await recorder.log("Changes committed and pushed successfully")
            else:
                await recorder.log("Warning: Failed to commit and push changes")

        await recorder.finish(
            JobStatus.SUCCESS if result.success else JobStatus.FAILED,
            result.message,
            result=result,
        )
