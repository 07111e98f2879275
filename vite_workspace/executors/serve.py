"""Serve executor: starts a dev server and keeps it alive."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import ValidationError
from rich.console import Console

from ..config import BundlerConfig
from .bundler import Bundler, DevServer, ViteBundler
from .execution import RejectedExecution, TaskExecution
from .options import ServeExecutorOptions
from .status import TaskStatus


class ServeExecution(TaskExecution):
    name = "serve"

    def __init__(
        self,
        options: ServeExecutorOptions,
        bundler: Bundler,
        console: Console | None = None,
    ) -> None:
        super().__init__(long_running=True, console=console)
        self.options = options
        self.bundler = bundler
        self._server: DevServer | None = None

    async def start(self) -> TaskStatus:
        self._server = await self.bundler.create_server(self.options)
        address = await self._server.listen()
        return TaskStatus(success=True, base_url=address.url)

    async def release(self) -> None:
        if self._server is not None:
            await self._server.close()
            self._server = None


def run_serve(
    options: ServeExecutorOptions | dict[str, Any],
    bundler: Bundler | None = None,
    *,
    config: BundlerConfig | None = None,
    cwd: str | Path | None = None,
    console: Console | None = None,
) -> TaskExecution:
    """Create a serve execution.

    Iterating it yields one status carrying ``baseUrl`` once the server
    answers, then never yields or finishes again.  Options that fail
    validation produce a single failed status.
    """
    if not isinstance(options, ServeExecutorOptions):
        try:
            options = ServeExecutorOptions.model_validate(options)
        except ValidationError as exc:
            return RejectedExecution(ServeExecution.name, exc, console=console)
    if bundler is None:
        bundler = ViteBundler(config, cwd=cwd, console=console)
    return ServeExecution(options, bundler, console=console)
