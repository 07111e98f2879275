"""Shared utility functions for vite-workspace.

Provides async command execution, name/case conversion helpers used by the
generators, Rich-based console output, port probing, and health-check
polling used by the dev-server executor.
"""

from __future__ import annotations

import asyncio
import os
import re
import socket
from pathlib import Path

import httpx
from rich.console import Console
from rich.table import Table

console = Console()

# ---------------------------------------------------------------------------
# Async command execution
# ---------------------------------------------------------------------------


async def run_command(
    cmd: str | list[str],
    cwd: str | Path | None = None,
    timeout: int = 120,
    capture: bool = True,
    env: dict[str, str] | None = None,
) -> tuple[int, str, str]:
    """Run a shell command asynchronously.

    Args:
        cmd: Shell command string or list of arguments.
        cwd: Working directory for the child process.
        timeout: Maximum wall-clock seconds before the process is killed.
        capture: Whether to capture stdout/stderr (if ``False`` they inherit
            the parent's streams).
        env: Optional extra environment variables merged on top of ``os.environ``.

    Returns:
        A ``(returncode, stdout, stderr)`` tuple.  If *capture* is ``False``
        the stdout/stderr strings will be empty.
    """
    merged_env: dict[str, str] | None = None
    if env:
        merged_env = {**os.environ, **env}

    stdout_pipe = asyncio.subprocess.PIPE if capture else None
    stderr_pipe = asyncio.subprocess.PIPE if capture else None

    if isinstance(cmd, list):
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=stdout_pipe,
            stderr=stderr_pipe,
            cwd=str(cwd) if cwd else None,
            env=merged_env,
        )
    else:
        process = await asyncio.create_subprocess_shell(
            cmd,
            stdout=stdout_pipe,
            stderr=stderr_pipe,
            cwd=str(cwd) if cwd else None,
            env=merged_env,
        )

    try:
        stdout_bytes, stderr_bytes = await asyncio.wait_for(
            process.communicate(), timeout=timeout
        )
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        return (
            -1,
            "",
            f"Command timed out after {timeout}s: {cmd if isinstance(cmd, str) else ' '.join(cmd)}",
        )

    stdout_str = (stdout_bytes or b"").decode("utf-8", errors="replace").strip()
    stderr_str = (stderr_bytes or b"").decode("utf-8", errors="replace").strip()
    return (process.returncode or 0, stdout_str, stderr_str)


# ---------------------------------------------------------------------------
# String / name helpers
# ---------------------------------------------------------------------------


def to_file_name(value: str) -> str:
    """Convert an arbitrary name to its kebab-cased, file-safe form.

    * Splits camelCase boundaries with a hyphen.
    * Lowercases the input.
    * Replaces spaces and underscores with hyphens.
    * Collapses consecutive hyphens and strips leading/trailing hyphens.

    Examples::

        to_file_name("myApp") -> "my-app"
        to_file_name("My_App  Two") -> "my-app-two"
    """
    result = re.sub(r"([a-z\d])([A-Z])", r"\1-\2", value.strip())
    result = re.sub(r"[\s_]+", "-", result.lower())
    result = re.sub(r"-+", "-", result)
    return result.strip("-")


def to_property_name(value: str) -> str:
    """Convert ``some-thing`` or ``some_thing`` to ``someThing``."""
    parts = [p for p in re.split(r"[-_\s]+", to_file_name(value)) if p]
    if not parts:
        return ""
    return parts[0] + "".join(p.capitalize() for p in parts[1:])


def to_class_name(value: str) -> str:
    """Convert ``some-thing`` or ``some_thing`` to ``SomeThing``."""
    prop = to_property_name(value)
    return prop[:1].upper() + prop[1:]


def to_constant_name(value: str) -> str:
    """Convert ``someThing`` or ``some-thing`` to ``SOME_THING``."""
    return to_file_name(value).replace("-", "_").upper()


def names(name: str) -> dict[str, str]:
    """Return the case variants of *name* used as template bindings."""
    return {
        "name": name,
        "className": to_class_name(name),
        "propertyName": to_property_name(name),
        "constantName": to_constant_name(name),
        "fileName": to_file_name(name),
    }


def offset_from_root(path: str) -> str:
    """Return the relative prefix leading from *path* back to the workspace root.

    Examples::

        offset_from_root("apps/my-app") -> "../../"
        offset_from_root("apps/web/my-app") -> "../../../"
    """
    parts = [p for p in path.replace("\\", "/").split("/") if p and p != "."]
    return "../" * len(parts)


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------


def format_duration(seconds: float) -> str:
    """Format a duration in seconds to a human-readable string.

    Examples::

        format_duration(3.7)    -> "3.7s"
        format_duration(65.2)   -> "1m 5s"
        format_duration(3661.0) -> "1h 1m 1s"
    """
    if seconds < 0:
        return "0.0s"

    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)
    secs = seconds % 60

    parts: list[str] = []
    if hours > 0:
        parts.append(f"{hours}h")
    if minutes > 0:
        parts.append(f"{minutes}m")

    if hours > 0 or minutes > 0:
        parts.append(f"{int(secs)}s")
    else:
        parts.append(f"{secs:.1f}s")

    return " ".join(parts)


# ---------------------------------------------------------------------------
# Rich output helpers
# ---------------------------------------------------------------------------


def print_summary_table(
    data: dict[str, str], title: str = "Summary", out: Console | None = None
) -> None:
    """Print a two-column key/value summary table."""
    out = out or console
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Item", style="dim", no_wrap=True)
    table.add_column("Value")

    for key, value in data.items():
        table.add_row(key, str(value))

    out.print(table)
    out.print()


def print_success(message: str, out: Console | None = None) -> None:
    """Print a green success message."""
    (out or console).print(f"[bold green]{message}[/bold green]")


def print_error(message: str, out: Console | None = None) -> None:
    """Print a red error message."""
    (out or console).print(f"[bold red]{message}[/bold red]")


def print_warning(message: str, out: Console | None = None) -> None:
    """Print a yellow warning message."""
    (out or console).print(f"[bold yellow]{message}[/bold yellow]")


# ---------------------------------------------------------------------------
# Port helpers
# ---------------------------------------------------------------------------


async def check_port_available(port: int, host: str = "127.0.0.1") -> bool:
    """Check whether a TCP port is available for binding.

    Attempts a ``connect`` to host:port. If the connection is *refused* the
    port is available; if it *succeeds* something is already listening.

    Returns:
        ``True`` if no service is listening on the port.
    """
    loop = asyncio.get_running_loop()

    def _probe() -> bool:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.settimeout(1)
        try:
            # connect_ex returns 0 on success (port in use), nonzero on failure (port free)
            return sock.connect_ex((host, port)) != 0
        finally:
            sock.close()

    return await loop.run_in_executor(None, _probe)


# ---------------------------------------------------------------------------
# Health-check polling
# ---------------------------------------------------------------------------


async def wait_for_health(
    url: str,
    timeout: float = 60,
    interval: float = 2,
) -> bool:
    """Poll *url* until it responds with HTTP 200 or the timeout expires.

    Args:
        url: Fully-qualified URL (e.g. ``http://localhost:3000/``).
        timeout: Maximum seconds to wait.
        interval: Seconds between probes.

    Returns:
        ``True`` if a 200 response was received within the timeout window,
        ``False`` otherwise.
    """
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout

    async with httpx.AsyncClient(timeout=httpx.Timeout(5.0, connect=3.0)) as client:
        while loop.time() < deadline:
            try:
                response = await client.get(url)
                if response.status_code == 200:
                    return True
            except httpx.HTTPError:
                pass

            remaining = deadline - loop.time()
            if remaining <= 0:
                break
            await asyncio.sleep(min(interval, remaining))

    return False
