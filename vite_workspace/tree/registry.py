"""Project registry: the ``projects`` map of ``workspace.json``.

Entries are Pydantic v2 models serialised with the camelCase keys the host
orchestrator reads (``sourceRoot``, ``projectType``, ``implicitDependencies``).
Unknown keys on entries and targets are preserved so that entries written by
other plugins survive a round-trip.  Entries that were only loaded are
written back exactly as they were read, path-only strings included; only
projects added in the current transaction are serialised from the models.
"""

from __future__ import annotations

import copy
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from ..errors import DuplicateProjectError, ProjectNotFoundError


class TargetConfiguration(BaseModel):
    """A runnable target (``build``, ``serve``, ``lint`` ...) of a project."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    executor: str
    options: dict[str, Any] = Field(default_factory=dict)
    configurations: dict[str, dict[str, Any]] = Field(default_factory=dict)


class ProjectConfiguration(BaseModel):
    """A single registry entry."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    root: str
    source_root: str | None = Field(default=None, alias="sourceRoot")
    project_type: str = Field(default="application", alias="projectType")
    targets: dict[str, TargetConfiguration] = Field(default_factory=dict)
    tags: list[str] = Field(default_factory=list)
    implicit_dependencies: list[str] = Field(default_factory=list, alias="implicitDependencies")

    def to_json(self) -> dict[str, Any]:
        """Serialise with camelCase keys, omitting unset optional values."""
        data = self.model_dump(by_alias=True, exclude_none=True)
        if not data.get("implicitDependencies"):
            data.pop("implicitDependencies", None)
        for target in data.get("targets", {}).values():
            if not target.get("configurations"):
                target.pop("configurations", None)
        return data


class ProjectRegistry:
    """Mapping of project name to :class:`ProjectConfiguration`.

    Tracks which projects were added since the last commit, because merges
    are only allowed into projects added in the current transaction.
    """

    def __init__(
        self,
        projects: dict[str, ProjectConfiguration] | None = None,
        added: set[str] | None = None,
        raw: dict[str, Any] | None = None,
    ) -> None:
        self._projects: dict[str, ProjectConfiguration] = dict(projects or {})
        self._added: set[str] = set(added or ())
        # Durable entries as they appear in workspace.json.
        self._raw: dict[str, Any] = copy.deepcopy(raw or {})
        self._changed = bool(self._added)

    @classmethod
    def from_workspace_json(cls, data: dict[str, Any]) -> "ProjectRegistry":
        """Build a registry from a parsed ``workspace.json`` document."""
        raw = data.get("projects") or {}
        projects: dict[str, ProjectConfiguration] = {}
        for name, entry in raw.items():
            if isinstance(entry, str):
                # Path-only entries point at a project.json we do not manage.
                projects[name] = ProjectConfiguration(root=entry)
            else:
                projects[name] = ProjectConfiguration.model_validate(entry)
        return cls(projects, raw=raw)

    # -- Queries -------------------------------------------------------------

    def projects(self) -> set[str]:
        """Return every registered project name."""
        return set(self._projects)

    def __contains__(self, name: object) -> bool:
        return name in self._projects

    def get(self, name: str) -> ProjectConfiguration:
        """Return a deep copy of the entry for *name*."""
        if name not in self._projects:
            raise ProjectNotFoundError(name, "not registered in the workspace")
        return self._projects[name].model_copy(deep=True)

    @property
    def added(self) -> frozenset[str]:
        """Projects added since the last commit."""
        return frozenset(self._added)

    @property
    def changed(self) -> bool:
        """Whether the registry differs from its durable state."""
        return self._changed

    # -- Mutations -----------------------------------------------------------

    def add(self, name: str, entry: ProjectConfiguration) -> None:
        """Insert a new project; names are unique across the workspace."""
        if name in self._projects:
            raise DuplicateProjectError(name)
        self._projects[name] = entry.model_copy(deep=True)
        self._added.add(name)
        self._changed = True

    def merge(self, name: str, patch: dict[str, Any]) -> None:
        """Deep-merge *patch* (camelCase keys) into a project added in this transaction."""
        if name not in self._added:
            raise ProjectNotFoundError(name, "not added in this transaction")
        merged = _deep_merge(self._projects[name].to_json(), patch)
        self._projects[name] = ProjectConfiguration.model_validate(merged)
        self._changed = True

    def copy(self) -> "ProjectRegistry":
        """Return an independent copy (used by copy-on-write tree forks)."""
        clone = ProjectRegistry(
            {name: entry.model_copy(deep=True) for name, entry in self._projects.items()},
            set(self._added),
            self._raw,
        )
        clone._changed = self._changed
        return clone

    def mark_committed(self) -> None:
        """Fold pending additions into the durable state."""
        for name in self._added:
            self._raw[name] = self._projects[name].to_json()
        self._added.clear()
        self._changed = False

    def to_json(self) -> dict[str, Any]:
        """Serialise the registry in registration order.

        Loaded entries come back verbatim; entries added since the last
        commit are dumped from their models.
        """
        return {
            name: copy.deepcopy(self._raw[name]) if name in self._raw else entry.to_json()
            for name, entry in self._projects.items()
        }


def _deep_merge(base: dict[str, Any], patch: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge *patch* into a copy of *base*; non-dict values replace."""
    result = copy.deepcopy(base)
    for key, value in patch.items():
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = copy.deepcopy(value)
    return result
