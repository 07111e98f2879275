"""Deferred actions returned by the generators.

A :class:`PendingTask` never touches the virtual tree: it runs against the
workspace on disk, after the staged tree has been committed.  Tasks must run
in the order the generator returned them; :func:`run_pending_tasks` does that
serially and stops at the first failure.
"""

from __future__ import annotations

import time
from collections.abc import Iterable
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field
from rich.console import Console
from rich.markup import escape

from .errors import PendingTaskError
from .utils import console as default_console
from .utils import format_duration, run_command

_EXEC_PREFIX: dict[str, list[str]] = {
    "npm": ["npx"],
    "yarn": ["yarn"],
    "pnpm": ["pnpm", "exec"],
}


class PendingTask(BaseModel):
    """A command to run in the workspace root once changes are on disk."""

    model_config = ConfigDict(frozen=True)

    name: str
    description: str = ""
    command: list[str] = Field(..., min_length=1)
    timeout: int = Field(default=900, ge=1, description="Seconds before the command is killed")


def install_packages_task(package_manager: str = "npm") -> PendingTask:
    return PendingTask(
        name="install-packages",
        description="Install the dependencies added to package.json",
        command=[package_manager, "install"],
    )


def cypress_install_task(package_manager: str = "npm") -> PendingTask:
    """Download the Cypress binary; needs the ``cypress`` package installed first."""
    prefix = _EXEC_PREFIX.get(package_manager, ["npx"])
    return PendingTask(
        name="cypress-install",
        description="Download the Cypress test runner binary",
        command=[*prefix, "cypress", "install"],
    )


def dedupe_tasks(tasks: Iterable[PendingTask]) -> list[PendingTask]:
    """Drop repeated task names, keeping the first position of each."""
    seen: set[str] = set()
    result: list[PendingTask] = []
    for task in tasks:
        if task.name in seen:
            continue
        seen.add(task.name)
        result.append(task)
    return result


async def run_pending_tasks(
    tasks: Iterable[PendingTask],
    cwd: str | Path,
    console: Console | None = None,
) -> None:
    """Run *tasks* one after another in *cwd*.

    Raises:
        PendingTaskError: On the first task that exits with a non-zero code;
            later tasks are not started.
    """
    out = console or default_console
    for task in tasks:
        out.print(f"[cyan]Running[/cyan] [bold]{task.name}[/bold]: {' '.join(task.command)}")
        start = time.monotonic()
        returncode, _, stderr = await run_command(task.command, cwd=cwd, timeout=task.timeout)
        if returncode != 0:
            out.print(f"[red]{task.name} failed (exit {returncode})[/red]")
            if stderr:
                for line in stderr.splitlines()[:10]:
                    out.print(f"  [dim]{escape(line)}[/dim]")
            raise PendingTaskError(task.name, returncode, stderr)
        out.print(
            f"[green]Finished[/green] {task.name} in {format_duration(time.monotonic() - start)}"
        )
