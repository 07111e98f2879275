"""Shared pytest fixtures for the vite-workspace test suite.

Provides reusable fixtures for:
- Temporary workspaces with package.json, nx.json and workspace.json
- Virtual trees and template renderers over those workspaces
- A recording Rich console
- Mock subprocess helpers
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from rich.console import Console

from vite_workspace.config import Config
from vite_workspace.generators.templates import TemplateRenderer
from vite_workspace.tree import VirtualTree


# ---------------------------------------------------------------------------
# Workspaces
# ---------------------------------------------------------------------------

def _write_json(path: Path, data: Any) -> None:
    path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")


@pytest.fixture
def workspace_files() -> dict[str, Any]:
    """Contents of the files every test workspace starts with."""
    return {
        "package.json": {
            "name": "acme",
            "version": "0.0.0",
            "scripts": {"start": "nx serve"},
            "dependencies": {"tslib": "^2.0.0"},
            "devDependencies": {"typescript": "~4.0.0"},
        },
        "nx.json": {
            "npmScope": "acme",
            "workspaceLayout": {"appsDir": "apps", "libsDir": "libs"},
        },
        "workspace.json": {
            "version": 2,
            "projects": {
                "existing": {
                    "root": "apps/existing",
                    "sourceRoot": "apps/existing/src",
                    "projectType": "application",
                    "targets": {
                        "build": {
                            "executor": "vite-workspace:build",
                            "options": {"configFile": "apps/existing/vite.config.ts"},
                        },
                        "serve": {
                            "executor": "vite-workspace:serve",
                            "options": {"configFile": "apps/existing/vite.config.ts"},
                        },
                    },
                    "tags": ["scope:legacy"],
                }
            },
        },
    }


@pytest.fixture
def workspace(tmp_path: Path, workspace_files: dict[str, Any]) -> Path:
    """Temporary workspace root on disk (auto-cleanup)."""
    root = tmp_path / "workspace"
    root.mkdir()
    for name, data in workspace_files.items():
        _write_json(root / name, data)
    (root / "apps" / "existing").mkdir(parents=True)
    (root / "apps" / "existing" / "index.html").write_text("<html></html>\n", encoding="utf-8")
    yield root


def snapshot(root: Path) -> dict[str, bytes]:
    """Map of every file under *root* to its bytes."""
    return {
        p.relative_to(root).as_posix(): p.read_bytes()
        for p in sorted(root.rglob("*"))
        if p.is_file()
    }


@pytest.fixture
def disk_snapshot():
    """The :func:`snapshot` helper, as a fixture."""
    return snapshot


@pytest.fixture
def tree(workspace: Path) -> VirtualTree:
    """Virtual tree over the temporary workspace."""
    return VirtualTree(workspace)


@pytest.fixture
def config(workspace: Path) -> Config:
    return Config(workspace_root=workspace)


@pytest.fixture
def renderer() -> TemplateRenderer:
    return TemplateRenderer()


@pytest.fixture
def record_console() -> Console:
    """Rich console that records output instead of writing to the terminal."""
    return Console(record=True, width=200, force_terminal=False, color_system=None)


# ---------------------------------------------------------------------------
# Mock subprocess
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_subprocess():
    """Mock asyncio subprocess for testing command execution.

    Returns a factory that creates mock subprocess instances with configurable
    stdout, stderr, and return codes.

    Usage:
        def test_command(mock_subprocess):
            proc = mock_subprocess(stdout="output", returncode=0)
            with patch("asyncio.create_subprocess_exec", return_value=proc):
                ...
    """
    def factory(
        stdout: str = "",
        stderr: str = "",
        returncode: int = 0,
    ) -> AsyncMock:
        mock_proc = AsyncMock()
        mock_proc.communicate = AsyncMock(
            return_value=(stdout.encode("utf-8"), stderr.encode("utf-8"))
        )
        mock_proc.returncode = returncode
        mock_proc.pid = 99999
        mock_proc.kill = MagicMock()
        mock_proc.terminate = MagicMock()
        mock_proc.wait = AsyncMock(return_value=returncode)
        return mock_proc

    return factory
