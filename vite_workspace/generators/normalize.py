"""Normalisation of raw application options into a project descriptor.

``normalize_options`` is a pure function: it reads the registry to reject
duplicates but never writes anything, so it can run as a pre-flight check
before any mutation step.
"""

from __future__ import annotations

import re
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from ..errors import DuplicateProjectError, InvalidNameError
from ..tree.registry import ProjectRegistry
from ..utils import to_file_name

# Joins project-directory segments into a project name.  ``to_file_name``
# turns every underscore into a hyphen, so no file-safe segment contains it.
PROJECT_NAME_SEPARATOR = "_"

_ILLEGAL_SEGMENT_RE = re.compile(r'[/\\:*?"<>|\x00-\x1f]')


class CreationOptions(BaseModel):
    """Options accepted by the application generator."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    directory: str | None = None
    tags: str | None = None
    unit_test_runner: Literal["jest", "none"] = Field(default="jest", alias="unitTestRunner")
    e2e_test_runner: Literal["cypress", "none"] = Field(default="cypress", alias="e2eTestRunner")
    skip_format: bool = Field(default=False, alias="skipFormat")


class ProjectDescriptor(BaseModel):
    """Fully resolved identity and location of the project being generated."""

    model_config = ConfigDict(frozen=True)

    name: str
    directory: str | None
    project_name: str
    project_root: str
    project_directory: str
    parsed_tags: tuple[str, ...] = ()


def normalize_options(
    options: CreationOptions,
    registry: ProjectRegistry,
    apps_dir: str = "apps",
) -> ProjectDescriptor:
    """Resolve *options* into a :class:`ProjectDescriptor`.

    Distinct ``(directory, name)`` pairs of file-safe segments never share a
    project name.  Raw inputs are different: ``myApp``, ``my_app`` and
    ``my-app`` all become ``my-app``, so a second spelling of a registered
    project is caught by the duplicate check instead.

    Args:
        options: Raw generator options.
        registry: Current workspace registry, used for the uniqueness check.
        apps_dir: Workspace directory that holds applications.

    Returns:
        The canonical descriptor.

    Raises:
        InvalidNameError: If the name or directory cannot form path segments.
        DuplicateProjectError: If the derived project name is already registered.
    """
    name = _file_safe_segment(options.name, options.name)

    directory_segments: list[str] = []
    if options.directory:
        for raw in re.split(r"[/\\]", options.directory):
            if not raw.strip():
                continue
            directory_segments.append(_file_safe_segment(raw, options.directory))

    segments = [*directory_segments, name]
    project_directory = "/".join(segments)
    project_name = PROJECT_NAME_SEPARATOR.join(segments)

    if project_name in registry:
        raise DuplicateProjectError(project_name)

    return ProjectDescriptor(
        name=name,
        directory="/".join(directory_segments) or None,
        project_name=project_name,
        project_root=f"{apps_dir.strip('/')}/{project_directory}",
        project_directory=project_directory,
        parsed_tags=parse_tags(options.tags),
    )


def parse_tags(tags: str | None) -> tuple[str, ...]:
    """Split a comma-separated tag string, keeping order and duplicates.

    Blank entries are dropped, so ``""`` yields ``()`` and never ``("",)``.
    """
    if not tags:
        return ()
    return tuple(tag.strip() for tag in tags.split(",") if tag.strip())


def _file_safe_segment(raw: str, original: str) -> str:
    value = raw.strip()
    if not value:
        raise InvalidNameError(original, "name must not be empty")
    if _ILLEGAL_SEGMENT_RE.search(value):
        raise InvalidNameError(original, "contains characters that are not allowed in a path")
    if value in (".", ".."):
        raise InvalidNameError(original, "relative path segments are not allowed")
    segment = to_file_name(value)
    if not segment or segment.strip(".") == "":
        raise InvalidNameError(original, "does not contain any usable characters")
    if PROJECT_NAME_SEPARATOR in segment:
        raise InvalidNameError(
            original, f"'{PROJECT_NAME_SEPARATOR}' is reserved as the project name separator"
        )
    return segment
