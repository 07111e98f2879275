"""Mutation steps applied to a :class:`~vite_workspace.tree.VirtualTree`.

Every step is a small frozen dataclass carrying its parameters.  Applying a
step forks the input tree, mutates the fork, and returns it, so a step is a
pure function of ``(tree, descriptor)`` and a failing step leaves its input
untouched.  Steps are composed as an ordered list by the generators.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, ClassVar, Literal

from ..errors import MalformedConfigError, PathNotFoundError
from .registry import ProjectConfiguration
from .virtual_tree import VirtualTree, normalize_path

if TYPE_CHECKING:
    from ..generators.normalize import ProjectDescriptor
    from ..generators.templates import TemplateRenderer


class MutationStep(ABC):
    """Base class for all steps."""

    kind: ClassVar[str] = "step"

    @property
    def label(self) -> str:
        """Short human-readable description used in errors and logs."""
        return self.kind

    def apply(self, tree: VirtualTree, descriptor: ProjectDescriptor | None = None) -> VirtualTree:
        staged = tree.fork()
        self.mutate(staged, descriptor)
        return staged

    @abstractmethod
    def mutate(self, tree: VirtualTree, descriptor: ProjectDescriptor | None) -> None:
        """Apply the change in place to *tree* (always a private fork)."""


# ---------------------------------------------------------------------------
# File steps
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TemplateExpansion(MutationStep):
    """Render a template set under *dest_root*, overwriting existing files."""

    kind: ClassVar[str] = "template"

    template_set: str
    dest_root: str
    renderer: TemplateRenderer
    bindings: Mapping[str, Any] = field(default_factory=dict)

    @property
    def label(self) -> str:
        return f"template {self.template_set} -> {self.dest_root}"

    def mutate(self, tree: VirtualTree, descriptor: ProjectDescriptor | None) -> None:
        rendered = self.renderer.render_set(self.template_set, self.dest_root, dict(self.bindings))
        for path, content in rendered.items():
            tree.write(path, content)


@dataclass(frozen=True)
class Filter(MutationStep):
    """Drop staged files under *root* whose root-relative path matches *predicate*."""

    kind: ClassVar[str] = "filter"

    root: str
    predicate: Callable[[str], bool]
    description: str = ""

    @property
    def label(self) -> str:
        return f"filter {self.description or self.root}"

    def mutate(self, tree: VirtualTree, descriptor: ProjectDescriptor | None) -> None:
        root = normalize_path(self.root)
        for path in tree.staged_files(root):
            relative = path[len(root) + 1 :]
            if self.predicate(relative):
                tree.delete(path)


@dataclass(frozen=True)
class JsonPatch(MutationStep):
    """Parse the JSON file at *path*, transform it, and write it back.

    *transform* may mutate its argument in place; its return value is used
    when not ``None``.
    """

    kind: ClassVar[str] = "json"

    path: str
    transform: Callable[[Any], Any]
    must_exist: bool = True

    @property
    def label(self) -> str:
        return f"update {self.path}"

    def mutate(self, tree: VirtualTree, descriptor: ProjectDescriptor | None) -> None:
        if tree.read(self.path) is None and not self.must_exist:
            document: Any = {}
        else:
            document = tree.read_json(self.path)
        result = self.transform(document)
        if result is not None:
            document = result
        tree.write(self.path, json.dumps(document, indent=2) + "\n")


@dataclass(frozen=True)
class Rename(MutationStep):
    kind: ClassVar[str] = "rename"

    src: str
    dst: str

    @property
    def label(self) -> str:
        return f"rename {self.src} -> {self.dst}"

    def mutate(self, tree: VirtualTree, descriptor: ProjectDescriptor | None) -> None:
        tree.rename(self.src, self.dst)


@dataclass(frozen=True)
class Overwrite(MutationStep):
    """Replace an existing file; *content* may be a function of the current text."""

    kind: ClassVar[str] = "overwrite"

    path: str
    content: str | bytes | Callable[[str], str]

    @property
    def label(self) -> str:
        return f"overwrite {self.path}"

    def mutate(self, tree: VirtualTree, descriptor: ProjectDescriptor | None) -> None:
        current = tree.read_text(self.path)
        if current is None:
            raise PathNotFoundError(self.path)
        content = self.content(current) if callable(self.content) else self.content
        tree.overwrite(self.path, content)


# ---------------------------------------------------------------------------
# Registry and manifest steps
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RegistryUpdate(MutationStep):
    """Add a project to the registry, or merge into one added in this transaction."""

    kind: ClassVar[str] = "registry"

    project_name: str
    entry: ProjectConfiguration | dict[str, Any]
    mode: Literal["add", "merge"] = "add"

    @property
    def label(self) -> str:
        return f"registry {self.mode} {self.project_name}"

    def mutate(self, tree: VirtualTree, descriptor: ProjectDescriptor | None) -> None:
        if self.mode == "add":
            entry = (
                self.entry
                if isinstance(self.entry, ProjectConfiguration)
                else ProjectConfiguration.model_validate(self.entry)
            )
            tree.registry.add(self.project_name, entry)
        else:
            patch = self.entry.to_json() if isinstance(self.entry, ProjectConfiguration) else self.entry
            tree.registry.merge(self.project_name, patch)


@dataclass(frozen=True)
class DependencyMerge(MutationStep):
    """Merge version maps into the workspace manifest; the last writer wins per key."""

    kind: ClassVar[str] = "dependencies"

    dependencies: Mapping[str, str] = field(default_factory=dict)
    dev_dependencies: Mapping[str, str] = field(default_factory=dict)
    manifest: str = "package.json"

    @property
    def label(self) -> str:
        return f"dependencies -> {self.manifest}"

    def mutate(self, tree: VirtualTree, descriptor: ProjectDescriptor | None) -> None:
        document = tree.read_json(self.manifest)
        if not isinstance(document, dict):
            raise MalformedConfigError(self.manifest, "expected a JSON object")
        for key, versions in (
            ("dependencies", self.dependencies),
            ("devDependencies", self.dev_dependencies),
        ):
            if not versions:
                continue
            merged = {**(document.get(key) or {}), **versions}
            document[key] = dict(sorted(merged.items()))
        tree.write(self.manifest, json.dumps(document, indent=2) + "\n")


# ---------------------------------------------------------------------------
# Formatting
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FormatFiles(MutationStep):
    """Normalise staged files: 2-space JSON and a single trailing newline."""

    kind: ClassVar[str] = "format"

    def mutate(self, tree: VirtualTree, descriptor: ProjectDescriptor | None) -> None:
        for path in tree.staged_files():
            content = tree.read(path)
            try:
                text = content.decode("utf-8")
            except UnicodeDecodeError:
                continue
            formatted = _format_text(path, text)
            if formatted != text:
                tree.write(path, formatted)


def _format_text(path: str, text: str) -> str:
    if path.endswith(".json"):
        try:
            return json.dumps(json.loads(text), indent=2) + "\n"
        except json.JSONDecodeError:
            pass
    stripped = text.rstrip("\n")
    return f"{stripped}\n" if stripped else text
