"""Build executor: a one-shot ``vite build``, or a long-running watcher."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import ValidationError
from rich.console import Console

from ..config import BundlerConfig
from .bundler import Bundler, Closeable, ViteBundler
from .execution import RejectedExecution, TaskExecution
from .options import BuildExecutorOptions
from .status import TaskStatus


class BuildExecution(TaskExecution):
    """Builds once, or with ``watch`` keeps the watcher alive after the first build."""

    name = "build"

    def __init__(
        self,
        options: BuildExecutorOptions,
        bundler: Bundler,
        console: Console | None = None,
    ) -> None:
        super().__init__(long_running=options.watch, console=console)
        self.options = options
        self.bundler = bundler
        self._watcher: Closeable | None = None

    async def start(self) -> TaskStatus:
        if self.options.watch:
            self._watcher = await self.bundler.watch(self.options)
        else:
            await self.bundler.build(self.options)
        return TaskStatus(success=True)

    async def release(self) -> None:
        if self._watcher is not None:
            await self._watcher.close()
            self._watcher = None


def run_build(
    options: BuildExecutorOptions | dict[str, Any],
    bundler: Bundler | None = None,
    *,
    config: BundlerConfig | None = None,
    cwd: str | Path | None = None,
    console: Console | None = None,
) -> TaskExecution:
    """Create a build execution; iterate it to run the build.

    Invalid options do not raise here.  The returned execution reports
    them as its failed status instead.

    Args:
        options: Target options, as a model or the raw camelCase mapping.
        bundler: Bundler to drive; defaults to a :class:`ViteBundler`.
        config: Bundler settings used for the default bundler.
        cwd: Workspace root used for the default bundler.
        console: Rich console for output.
    """
    if not isinstance(options, BuildExecutorOptions):
        try:
            options = BuildExecutorOptions.model_validate(options)
        except ValidationError as exc:
            return RejectedExecution(BuildExecution.name, exc, console=console)
    if bundler is None:
        bundler = ViteBundler(config, cwd=cwd, console=console)
    return BuildExecution(options, bundler, console=console)
