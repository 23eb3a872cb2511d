# src/main.py — v1
"""CLI entry point — projects, convert commands.

Usage:
    cfconvert projects
    cfconvert convert <project_id> [options]
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from cfconvert.version import __version__

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    from cfconvert.config.settings import ConfigurationError, load_settings

    try:
        settings = load_settings()
    except ConfigurationError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 1
    _setup_logging(settings, args.verbose)

    try:
        return asyncio.run(args.func(args, settings))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return 1


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="cfconvert",
        description=f"cfconvert v{__version__} — move Next.js projects from Vercel to Cloudflare",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- projects ---
    p_projects = subparsers.add_parser(
        "projects", help="List Next.js projects on the source platform",
    )
    p_projects.set_defaults(func=_cmd_projects)

    # --- convert ---
    p_convert = subparsers.add_parser(
        "convert", help="Convert one project and follow its progress",
    )
    p_convert.add_argument("project_id", help="Source-platform project id")
    p_convert.add_argument(
        "--enable-cache", action="store_true",
        help="Use Workers KV for the Next.js incremental cache",
    )
    p_convert.add_argument(
        "--namespace-id", default="",
        help="KV namespace id bound as the incremental cache",
    )
    p_convert.add_argument(
        "--branch", default="",
        help="Create this branch before converting",
    )
    p_convert.add_argument(
        "--commit-and-push", action="store_true",
        help="Commit the result and push it to origin",
    )
    p_convert.add_argument(
        "--manifest-path", default="",
        help="Sub-path of the app inside the repository (monorepos)",
    )
    p_convert.set_defaults(func=_cmd_convert)

    return parser


async def _cmd_projects(args: argparse.Namespace, settings) -> int:
    """List Next.js projects."""
    from cfconvert.source.models import is_nextjs_project
    from cfconvert.source.vercel_client import create_source_client

    client = create_source_client(settings)
    try:
        projects = await client.get_projects()
    finally:
        await client.aclose()

    nextjs = [p for p in projects if is_nextjs_project(p)]
    for project in nextjs:
        repository = project.repository()
        repo = repository.repo if repository else "-"
        print(f"{project.id}  {project.name}  ({project.framework})  {repo}")
    print(f"\n{len(nextjs)} Next.js project(s)")
    return 0


async def _cmd_convert(args: argparse.Namespace, settings) -> int:
    """Start a conversion and print job log lines as they arrive."""
    from cfconvert.jobs.job_store_factory import create_job_store
    from cfconvert.jobs.models import ConversionOptions, JobStatus
    from cfconvert.jobs.orchestrator import ConversionOrchestrator
    from cfconvert.source.vercel_client import create_source_client

    options = ConversionOptions(
        enable_cache=args.enable_cache,
        cache_namespace_id=args.namespace_id,
        create_branch=bool(args.branch),
        branch_name=args.branch,
        commit_and_push=args.commit_and_push,
        manifest_sub_path=args.manifest_path,
    )

    client = create_source_client(settings)
    store = create_job_store(settings)
    orchestrator = ConversionOrchestrator(store, client, settings)
    try:
        task = await orchestrator.start(args.project_id, options)
        printed = 0
        final = None
        async for snapshot in store.subscribe(
            args.project_id, settings.status_poll_interval_s,
        ):
            for line in snapshot.logs[printed:]:
                print(line)
            printed = len(snapshot.logs)
            final = snapshot
        await task.wait()
    finally:
        await client.aclose()

    if final is None or final.status is not JobStatus.SUCCESS:
        print(f"\nFailed: {final.message if final else 'no status'}", file=sys.stderr)
        return 1
    print(f"\n{final.message}")
    return 0


def _setup_logging(settings, verbose: bool) -> None:
    """Configure logging for CLI usage."""
    from cfconvert.logging.logger import setup_logging_from_settings

    setup_logging_from_settings(settings, verbose=verbose)


if __name__ == "__main__":
    sys.exit(main())
