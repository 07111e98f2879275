"""Executor option models and shape-specific option cleaning.

Options arrive as the flat camelCase mapping stored in a registry target.
The common keys configure the bundler itself; everything else is a build or
server sub-option and is forwarded untouched, except keys that only make
sense for the other shape.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

Shape = Literal["build", "serve"]

COMMON_KEYS: frozenset[str] = frozenset(
    {"configFile", "base", "mode", "logLevel", "clearScreen", "watch"}
)
SERVER_ONLY_KEYS: frozenset[str] = frozenset(
    {"port", "host", "open", "https", "strictPort", "cors"}
)
BUILD_ONLY_KEYS: frozenset[str] = frozenset(
    {"outDir", "assetsDir", "emptyOutDir", "minify", "sourcemap", "manifest", "ssrManifest"}
)


class ExecutorOptions(BaseModel):
    """Options shared by every executor shape.

    ``configFile`` is also accepted as ``config`` or ``viteConfig``.  Unknown
    keys are kept and forwarded to the bundler.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    config_file: str | None = Field(
        default=None,
        validation_alias=AliasChoices("configFile", "config", "viteConfig"),
        serialization_alias="configFile",
    )
    base: str | None = None
    mode: str | None = None
    log_level: Literal["info", "warn", "error", "silent"] | None = Field(
        default=None, alias="logLevel"
    )
    clear_screen: bool | None = Field(default=None, alias="clearScreen")
    watch: bool = False

    def to_flat(self) -> dict[str, Any]:
        """camelCase mapping of every set option, extras included."""
        return self.model_dump(by_alias=True, exclude_none=True)


class BuildExecutorOptions(ExecutorOptions):
    out_dir: str | None = Field(default=None, alias="outDir")
    assets_dir: str | None = Field(default=None, alias="assetsDir")
    empty_out_dir: bool | None = Field(default=None, alias="emptyOutDir")
    minify: bool | str | None = None
    sourcemap: bool | str | None = None
    manifest: bool | None = None
    ssr_manifest: bool | None = Field(default=None, alias="ssrManifest")


class ServeExecutorOptions(ExecutorOptions):
    port: int | None = Field(default=None, ge=1, le=65535)
    host: str | None = None
    open: bool | str | None = None
    https: bool | None = None
    strict_port: bool | None = Field(default=None, alias="strictPort")
    cors: bool | None = None


def clean_options(options: ExecutorOptions | dict[str, Any], shape: Shape) -> dict[str, Any]:
    """Return the sub-options to forward for *shape*.

    Drops the common keys, the keys meaningless for *shape* and ``None``
    values.  Everything else passes through as given.

    Args:
        options: A model instance or the raw camelCase mapping.
        shape: ``"build"`` or ``"serve"``.
    """
    if isinstance(options, ExecutorOptions):
        flat = options.to_flat()
    else:
        flat = {k: v for k, v in options.items() if v is not None}
        for alias in ("config", "viteConfig"):
            flat.pop(alias, None)

    excluded = COMMON_KEYS | (SERVER_ONLY_KEYS if shape == "build" else BUILD_ONLY_KEYS)
    return {key: value for key, value in flat.items() if key not in excluded}
