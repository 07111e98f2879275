"""vite-workspace configuration.

Centralised, typed configuration for the generators, executors and CLI. All
settings use Pydantic v2 models so they can be validated at construction time
and built from environment variables without boiler-plate.
"""

from __future__ import annotations

import os
import shlex
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field


class WorkspaceLayout(BaseModel):
    """Where new projects are placed inside the workspace."""

    apps_dir: str = Field(default="apps", min_length=1)

    def merged_with(self, nx_settings: Any) -> "WorkspaceLayout":
        """Return this layout overridden by the ``workspaceLayout`` of a parsed ``nx.json``."""
        raw = nx_settings.get("workspaceLayout") if isinstance(nx_settings, dict) else None
        if not isinstance(raw, dict):
            return self
        return WorkspaceLayout(apps_dir=raw.get("appsDir") or self.apps_dir)


class BundlerConfig(BaseModel):
    """How the Vite CLI is invoked and how long it may take."""

    command: list[str] = Field(
        default_factory=lambda: ["npx", "vite"],
        min_length=1,
        description="Command prefix used to invoke the vite CLI",
    )
    build_timeout: int = Field(default=600, ge=1, description="One-shot build timeout in seconds")
    startup_timeout: int = Field(
        default=60, ge=1, description="Seconds to wait for a dev server or watcher to become ready"
    )
    poll_interval: float = Field(default=1.0, gt=0, description="Seconds between readiness probes")
    default_host: str = Field(default="localhost")
    default_port: int = Field(default=3000, ge=1, le=65535)


class Config(BaseModel):
    """Global vite-workspace configuration.

    Instances are typically created once by the CLI entry point (or by
    :meth:`from_env`) and then passed through the generators and executors.
    """

    workspace_root: Path = Field(default=Path("."))
    layout: WorkspaceLayout = Field(default_factory=WorkspaceLayout)
    bundler: BundlerConfig = Field(default_factory=BundlerConfig)
    package_manager: str = Field(default="npm")
    skip_install: bool = Field(default=False)

    @classmethod
    def from_env(cls) -> "Config":
        """Build a ``Config`` from environment variables.

        Recognised variables (all optional):
            VITE_WS_ROOT, VITE_WS_APPS_DIR, VITE_WS_PACKAGE_MANAGER,
            VITE_WS_SKIP_INSTALL, VITE_WS_BUILD_TIMEOUT,
            VITE_WS_STARTUP_TIMEOUT, VITE_WS_VITE_COMMAND.
        """
        layout_kwargs: dict[str, Any] = {}
        if os.environ.get("VITE_WS_APPS_DIR"):
            layout_kwargs["apps_dir"] = os.environ["VITE_WS_APPS_DIR"]

        bundler_kwargs: dict[str, Any] = {}
        if os.environ.get("VITE_WS_BUILD_TIMEOUT"):
            bundler_kwargs["build_timeout"] = int(os.environ["VITE_WS_BUILD_TIMEOUT"])
        if os.environ.get("VITE_WS_STARTUP_TIMEOUT"):
            bundler_kwargs["startup_timeout"] = int(os.environ["VITE_WS_STARTUP_TIMEOUT"])
        if os.environ.get("VITE_WS_VITE_COMMAND"):
            bundler_kwargs["command"] = shlex.split(os.environ["VITE_WS_VITE_COMMAND"])

        skip_install = os.environ.get("VITE_WS_SKIP_INSTALL", "").strip().lower() in (
            "1",
            "true",
            "yes",
        )

        return cls(
            workspace_root=Path(os.environ.get("VITE_WS_ROOT", ".")),
            layout=WorkspaceLayout(**layout_kwargs),
            bundler=BundlerConfig(**bundler_kwargs),
            package_manager=os.environ.get("VITE_WS_PACKAGE_MANAGER", "npm"),
            skip_install=skip_install,
        )
