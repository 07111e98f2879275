"""Command-line entry point: ``vite-workspace application|build|serve``."""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Any

from .config import Config
from .errors import ProjectNotFoundError, WorkspaceError
from .executors import TaskExecution, run_build, run_serve
from .generators import CreationOptions, scaffold
from .tasks import run_pending_tasks
from .tree import VirtualTree
from .utils import console, print_error, print_summary_table


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


async def _application(args: argparse.Namespace, config: Config) -> int:
    options = CreationOptions(
        name=args.name,
        directory=args.directory,
        tags=args.tags,
        unit_test_runner=args.unit_test_runner,
        e2e_test_runner=args.e2e_test_runner,
        skip_format=args.skip_format,
    )
    tasks = await scaffold(options, config, dry_run=args.dry_run, console=console)

    if args.dry_run or config.skip_install:
        print_summary_table(
            {task.name: " ".join(task.command) for task in tasks},
            title="Skipped tasks",
            out=console,
        )
        return 0

    await run_pending_tasks(tasks, cwd=config.workspace_root, console=console)
    return 0


def _target_options(config: Config, project: str, target: str) -> dict[str, Any]:
    registry = VirtualTree(config.workspace_root).registry
    entry = registry.get(project)
    if target not in entry.targets:
        raise ProjectNotFoundError(project, f"no '{target}' target")
    return dict(entry.targets[target].options)


async def _stream(execution: TaskExecution) -> int:
    """Print every status; returns the exit code for the last one."""
    exit_code = 0
    try:
        async for status in execution:
            console.print_json(data=status.to_host())
            exit_code = 0 if status.success else 1
    finally:
        await execution.aclose()
    return exit_code


async def _build(args: argparse.Namespace, config: Config) -> int:
    options = _target_options(config, args.project, "build")
    if args.watch:
        options["watch"] = True
    execution = run_build(
        options, config=config.bundler, cwd=config.workspace_root, console=console
    )
    return await _stream(execution)


async def _serve(args: argparse.Namespace, config: Config) -> int:
    options = _target_options(config, args.project, "serve")
    if args.port is not None:
        options["port"] = args.port
    execution = run_serve(
        options, config=config.bundler, cwd=config.workspace_root, console=console
    )
    return await _stream(execution)


_COMMANDS = {
    "application": _application,
    "build": _build,
    "serve": _serve,
}


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="vite-workspace",
        description="Vue 3 + Vite projects for monorepo workspaces",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  vite-workspace application my-app --directory web --tags scope:web\n"
            "  vite-workspace application admin --e2e-test-runner none --dry-run\n"
            "  vite-workspace build web_my-app\n"
            "  vite-workspace serve web_my-app --port 4200\n"
        ),
    )
    parser.add_argument(
        "--workspace", "-w",
        default=None,
        help="Workspace root (default: $VITE_WS_ROOT or the current directory)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    app = subparsers.add_parser("application", help="Generate a Vue 3 + Vite application")
    app.add_argument("name", help="Application name")
    app.add_argument("--directory", "-d", default=None, help="Directory under the apps folder")
    app.add_argument("--tags", "-t", default=None, help="Comma-separated project tags")
    app.add_argument(
        "--unit-test-runner",
        choices=["jest", "none"],
        default="jest",
        help="Unit test runner (default: jest)",
    )
    app.add_argument(
        "--e2e-test-runner",
        choices=["cypress", "none"],
        default="cypress",
        help="End-to-end test runner (default: cypress)",
    )
    app.add_argument("--skip-format", action="store_true", help="Do not format generated files")
    app.add_argument("--skip-install", action="store_true", help="Do not install packages")
    app.add_argument("--dry-run", action="store_true", help="Show changes without writing them")

    build = subparsers.add_parser("build", help="Build a project with vite")
    build.add_argument("project", help="Project name from workspace.json")
    build.add_argument("--watch", action="store_true", help="Rebuild on changes")

    serve = subparsers.add_parser("serve", help="Start the vite dev server for a project")
    serve.add_argument("project", help="Project name from workspace.json")
    serve.add_argument("--port", "-p", type=int, default=None, help="Port to listen on")

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for ``vite-workspace`` and ``python -m vite_workspace``."""
    args = build_parser().parse_args(argv)

    config = Config.from_env()
    if args.workspace:
        config.workspace_root = Path(args.workspace)
    if getattr(args, "skip_install", False):
        config.skip_install = True

    if not config.workspace_root.is_dir():
        print_error(f"Error: workspace not found: {config.workspace_root}", console)
        sys.exit(1)

    try:
        exit_code = asyncio.run(_COMMANDS[args.command](args, config))
    except WorkspaceError as exc:
        print_error(f"Error: {exc}", console)
        sys.exit(1)
    except KeyboardInterrupt:
        console.print("[dim]Interrupted[/dim]")
        exit_code = 130

    if exit_code:
        sys.exit(exit_code)


if __name__ == "__main__":
    main()
