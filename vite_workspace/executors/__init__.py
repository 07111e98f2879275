"""vite-workspace executors -- run ``build`` and ``serve`` targets through Vite.

Every executor is an async iterator of :class:`TaskStatus`.  A one-shot build
yields one status and ends; a dev server (or a build in watch mode) yields
one status once it is ready and then stays suspended until cancelled.

Quick usage::

    from vite_workspace.executors import run_serve

    async for status in run_serve({"configFile": "apps/my-app/vite.config.ts"}):
        print(status.to_host())
"""

from vite_workspace.executors.build import BuildExecution, run_build
from vite_workspace.executors.bundler import (
    BoundAddress,
    BuildError,
    Bundler,
    ServeStartupError,
    ViteBundler,
    ViteServer,
)
from vite_workspace.executors.execution import RejectedExecution, TaskExecution
from vite_workspace.executors.options import (
    BuildExecutorOptions,
    ServeExecutorOptions,
    clean_options,
)
from vite_workspace.executors.serve import ServeExecution, run_serve
from vite_workspace.executors.status import ErrorInfo, ExecutorState, TaskStatus

__all__ = [
    "BoundAddress",
    "BuildError",
    "BuildExecution",
    "BuildExecutorOptions",
    "Bundler",
    "ErrorInfo",
    "ExecutorState",
    "RejectedExecution",
    "ServeExecution",
    "ServeExecutorOptions",
    "ServeStartupError",
    "TaskExecution",
    "TaskStatus",
    "ViteBundler",
    "ViteServer",
    "clean_options",
    "run_build",
    "run_serve",
]
