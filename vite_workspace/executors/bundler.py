"""Adapter around the Vite command-line interface.

Executors only depend on the small :class:`Bundler` interface, so tests can
swap in a fake.  :class:`ViteBundler` implements it by spawning the ``vite``
CLI: one-shot builds go through :func:`~vite_workspace.utils.run_command`,
watchers and dev servers are long-lived child processes whose output is
drained in the background.
"""

from __future__ import annotations

import asyncio
import time
from collections import deque
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol

from rich.console import Console
from rich.markup import escape

from ..config import BundlerConfig
from ..utils import check_port_available, format_duration, run_command, wait_for_health
from ..utils import console as default_console
from .options import (
    BuildExecutorOptions,
    ExecutorOptions,
    ServeExecutorOptions,
    Shape,
    clean_options,
)

BUILD_READY_MARKER = "built in"


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class BuildError(Exception):
    """Raised when a build or watcher fails before producing output."""

    def __init__(self, message: str, returncode: int | None = None, output: str = "") -> None:
        super().__init__(message)
        self.returncode = returncode
        self.output = output


class ServeStartupError(Exception):
    """Raised when a dev server cannot be bound or never answers."""


# ---------------------------------------------------------------------------
# Interface
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BoundAddress:
    host: str
    port: int
    base: str = ""

    @property
    def url(self) -> str:
        return f"http://{self.host}:{self.port}{self.base}"


class Closeable(Protocol):
    async def close(self) -> None: ...


class DevServer(Closeable, Protocol):
    async def listen(self) -> BoundAddress: ...


class Bundler(Protocol):
    """What the executors need from a bundler."""

    async def build(self, options: BuildExecutorOptions) -> None: ...

    async def watch(self, options: BuildExecutorOptions) -> Closeable: ...

    async def create_server(self, options: ServeExecutorOptions) -> DevServer: ...


# ---------------------------------------------------------------------------
# Child process handling
# ---------------------------------------------------------------------------


class BundlerProcess:
    """A running vite child process with its output drained in the background."""

    def __init__(self, process: asyncio.subprocess.Process, label: str, console: Console) -> None:
        self.process = process
        self.label = label
        self.console = console
        self.output: deque[str] = deque(maxlen=50)
        self._marker: str | None = None
        self._marker_seen = asyncio.Event()
        self._drain = asyncio.ensure_future(self._read_output())

    @classmethod
    async def spawn(
        cls,
        cmd: list[str],
        cwd: str | Path | None,
        label: str,
        console: Console,
    ) -> "BundlerProcess":
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
            cwd=str(cwd) if cwd else None,
        )
        return cls(process, label, console)

    @property
    def returncode(self) -> int | None:
        return self.process.returncode

    async def _read_output(self) -> None:
        stream = self.process.stdout
        while stream is not None:
            raw = await stream.readline()
            if not raw:
                break
            line = raw.decode("utf-8", errors="replace").rstrip()
            self.output.append(line)
            self.console.print(f"  [dim]{self.label}: {escape(line)}[/dim]")
            if self._marker is not None and self._marker in line:
                self._marker_seen.set()
        await self.process.wait()

    async def wait_for_marker(self, marker: str, timeout: float) -> bool:
        """Wait until a line containing *marker* is printed.

        Returns:
            ``True`` once the marker was seen, ``False`` if the process exited
            first or *timeout* expired.
        """
        self._marker = marker
        if any(marker in line for line in self.output):
            return True
        seen = asyncio.ensure_future(self._marker_seen.wait())
        try:
            await asyncio.wait(
                {seen, self._drain}, timeout=timeout, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            seen.cancel()
        return self._marker_seen.is_set()

    async def wait_until_exit(self) -> None:
        await asyncio.shield(self._drain)

    def tail(self, lines: int = 10) -> str:
        return "\n".join(list(self.output)[-lines:])

    async def close(self, grace: float = 5.0) -> None:
        """Terminate the process, killing it if it ignores the request."""
        if self.process.returncode is None:
            self.process.terminate()
            try:
                await asyncio.wait_for(self.process.wait(), timeout=grace)
            except asyncio.TimeoutError:
                self.process.kill()
                await self.process.wait()
        if not self._drain.done():
            self._drain.cancel()


# ---------------------------------------------------------------------------
# Vite adapter
# ---------------------------------------------------------------------------


class ViteServer:
    """Handle on a ``vite serve`` process; nothing runs until :meth:`listen`."""

    def __init__(
        self,
        cmd: list[str],
        address: BoundAddress,
        cwd: str | Path | None,
        config: BundlerConfig,
        console: Console,
    ) -> None:
        self.cmd = cmd
        self.address = address
        self.cwd = cwd
        self.config = config
        self.console = console
        self._process: BundlerProcess | None = None

    async def listen(self) -> BoundAddress:
        """Start the server and wait until it answers HTTP requests.

        Raises:
            ServeStartupError: If the port is taken, the process cannot be
                started, it exits early, or it never answers.
        """
        probe_host = self.address.host
        if probe_host in ("localhost", "0.0.0.0"):
            probe_host = "127.0.0.1"
        if not await check_port_available(self.address.port, probe_host):
            raise ServeStartupError(f"Port {self.address.port} is already in use")

        try:
            self._process = await BundlerProcess.spawn(self.cmd, self.cwd, "vite", self.console)
        except (FileNotFoundError, PermissionError) as exc:
            raise ServeStartupError(f"Cannot start '{self.cmd[0]}': {exc}") from exc

        health = asyncio.ensure_future(
            wait_for_health(
                self.address.url,
                timeout=self.config.startup_timeout,
                interval=self.config.poll_interval,
            )
        )
        exited = asyncio.ensure_future(self._process.wait_until_exit())
        try:
            await asyncio.wait({health, exited}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            exited.cancel()

        if health.done() and health.result():
            return self.address

        health.cancel()
        returncode = self._process.returncode
        tail = self._process.tail()
        await self.close()
        if returncode is not None:
            raise ServeStartupError(f"vite exited with code {returncode} before serving\n{tail}")
        raise ServeStartupError(
            f"{self.address.url} did not respond within {self.config.startup_timeout}s"
        )

    async def close(self) -> None:
        if self._process is not None:
            await self._process.close()
            self._process = None


class ViteBundler:
    """Runs the ``vite`` CLI for builds, watchers and dev servers.

    Args:
        config: Command prefix, timeouts and default host/port.
        cwd: Directory the CLI runs in (the workspace root); ``configFile``
            paths are relative to it.
        console: Rich console receiving the CLI's output.
    """

    def __init__(
        self,
        config: BundlerConfig | None = None,
        cwd: str | Path | None = None,
        console: Console | None = None,
    ) -> None:
        self.config = config or BundlerConfig()
        self.cwd = cwd
        self.console = console or default_console

    # -- Commands ----------------------------------------------------------

    def command(self, options: ExecutorOptions, shape: Shape, *extra: str) -> list[str]:
        """Build the full vite command line for *options*."""
        cmd = [*self.config.command, "build" if shape == "build" else "serve"]
        for key, value in (
            ("config", options.config_file),
            ("base", options.base),
            ("mode", options.mode),
            ("logLevel", options.log_level),
            ("clearScreen", options.clear_screen),
        ):
            cmd.extend(_flag(key, value))
        for key, value in clean_options(options, shape).items():
            cmd.extend(_flag(key, value))
        cmd.extend(extra)
        return cmd

    # -- Bundler interface -------------------------------------------------

    async def build(self, options: BuildExecutorOptions) -> None:
        """Run a one-shot production build.

        Raises:
            BuildError: If vite cannot be started or exits non-zero.
        """
        cmd = self.command(options, "build")
        self.console.print(f"[cyan]Building[/cyan] {' '.join(cmd)}")
        start = time.monotonic()
        try:
            returncode, stdout, stderr = await run_command(
                cmd, cwd=self.cwd, timeout=self.config.build_timeout
            )
        except (FileNotFoundError, PermissionError) as exc:
            raise BuildError(f"Cannot start '{cmd[0]}': {exc}") from exc
        if returncode != 0:
            output = "\n".join(part for part in (stdout, stderr) if part)
            raise BuildError(f"vite build failed (exit {returncode})", returncode, output)
        self.console.print(
            f"[green]Build finished[/green] in {format_duration(time.monotonic() - start)}"
        )

    async def watch(self, options: BuildExecutorOptions) -> BundlerProcess:
        """Start ``vite build --watch`` and wait for the first completed build.

        Raises:
            BuildError: If the watcher exits or times out before its first build.
        """
        cmd = self.command(options, "build", "--watch")
        self.console.print(f"[cyan]Watching[/cyan] {' '.join(cmd)}")
        try:
            process = await BundlerProcess.spawn(cmd, self.cwd, "vite", self.console)
        except (FileNotFoundError, PermissionError) as exc:
            raise BuildError(f"Cannot start '{cmd[0]}': {exc}") from exc

        if await process.wait_for_marker(BUILD_READY_MARKER, self.config.startup_timeout):
            return process

        returncode = process.returncode
        tail = process.tail()
        await process.close()
        if returncode is not None:
            raise BuildError(f"vite build --watch exited with code {returncode}", returncode, tail)
        raise BuildError(
            f"First build did not finish within {self.config.startup_timeout}s", None, tail
        )

    async def create_server(self, options: ServeExecutorOptions) -> ViteServer:
        host = options.host or self.config.default_host
        port = options.port or self.config.default_port
        address = BoundAddress(host=host, port=port, base=options.base or "")
        bound = options.model_copy(update={"host": host, "port": port})
        extra = () if options.strict_port is not None else ("--strictPort",)
        return ViteServer(
            self.command(bound, "serve", *extra), address, self.cwd, self.config, self.console
        )


def _flag(key: str, value: Any) -> list[str]:
    if value is None:
        return []
    if value is True:
        return [f"--{key}"]
    if value is False:
        return [f"--{key}=false"]
    if isinstance(value, (list, tuple)):
        return [f"--{key}={','.join(str(v) for v in value)}"]
    return [f"--{key}", str(value)]
