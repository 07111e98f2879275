"""Executor state machine shared by one-shot and long-running tasks.

A :class:`TaskExecution` is consumed as an async iterator of
:class:`~vite_workspace.executors.status.TaskStatus`.  It produces exactly
one status.  One-shot executions then end; long-running executions suspend
forever on an event that nothing sets, which tells the host to keep the
process alive.  The only way out of that suspension is cancellation from
outside.

Any exception raised while starting is reported as a failed status instead
of propagating.  Once the status has been produced the execution makes no
further guarantees.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel

from ..utils import console as default_console
from .status import ExecutorState, TaskStatus


class TaskExecution(ABC):
    """Base class for executors.

    Subclasses implement :meth:`start`, returning the status to report once
    the task is ready, and may override :meth:`release` to free whatever
    :meth:`start` acquired.
    """

    name = "task"

    def __init__(self, *, long_running: bool = False, console: Console | None = None) -> None:
        self.long_running = long_running
        self.console = console or default_console
        self.state = ExecutorState.STARTING
        self._started = False
        self._never_set = asyncio.Event()

    @abstractmethod
    async def start(self) -> TaskStatus:
        """Run the task until it is ready and describe the outcome."""

    async def release(self) -> None:
        """Free resources held after readiness.  Only called by :meth:`aclose`."""

    # -- Iteration ---------------------------------------------------------

    def __aiter__(self) -> AsyncIterator[TaskStatus]:
        if self._started:
            raise RuntimeError(f"{self.name} execution has already been started")
        self._started = True
        return self._statuses()

    async def _statuses(self) -> AsyncIterator[TaskStatus]:
        try:
            status = await self.start()
        except Exception as exc:
            self.state = ExecutorState.FINISHED
            self._report_failure(exc)
            yield TaskStatus.failed(exc)
            return

        self.state = ExecutorState.READY
        self._report(status)
        if not (self.long_running and status.success):
            self.state = ExecutorState.FINISHED
            yield status
            return

        # The host sees SUSPENDED together with the readiness status.
        self.state = ExecutorState.SUSPENDED
        yield status
        await self._never_set.wait()

    async def aclose(self) -> None:
        """Release held resources; for callers shutting the process down."""
        await self.release()
        self.state = ExecutorState.FINISHED

    # -- Output ------------------------------------------------------------

    def _report(self, status: TaskStatus) -> None:
        if not status.success:
            message = status.error.message if status.error else "unknown error"
            self.console.print(Panel(escape(message), title=f"{self.name} failed", border_style="red"))
            return
        lines = [f"[green]{self.name} ready[/green]"]
        if status.base_url:
            lines.append(f"  URL: {status.base_url}")
        if self.long_running:
            lines.append("  [dim]Running until interrupted[/dim]")
        self.console.print(Panel("\n".join(lines), title=self.name, border_style="green"))

    def _report_failure(self, exc: Exception) -> None:
        self.console.print(
            Panel(
                f"[red]{type(exc).__name__}:[/red] {escape(str(exc))}",
                title=f"{self.name} failed",
                border_style="red",
            )
        )


class RejectedExecution(TaskExecution):
    """Stands in for an executor whose options failed validation.

    Its only status is the failure, so hosts see invalid options the same
    way they see any other startup error.
    """

    def __init__(self, name: str, error: Exception, console: Console | None = None) -> None:
        super().__init__(console=console)
        self.name = name
        self.error = error

    async def start(self) -> TaskStatus:
        raise self.error
