"""Virtual workspace tree and the mutation steps that compose over it.

Key classes:
    VirtualTree       - Staged files + project registry, copy-on-write forks, atomic commit
    ProjectRegistry   - ``workspace.json`` project map
    MutationStep      - Base of TemplateExpansion, Filter, JsonPatch, Rename,
                        Overwrite, RegistryUpdate, DependencyMerge, FormatFiles
"""

from .engine import apply, apply_all, commit
from .registry import ProjectConfiguration, ProjectRegistry, TargetConfiguration
from .steps import (
    DependencyMerge,
    Filter,
    FormatFiles,
    JsonPatch,
    MutationStep,
    Overwrite,
    RegistryUpdate,
    Rename,
    TemplateExpansion,
)
from .virtual_tree import FileChange, VirtualTree, normalize_path

__all__ = [
    # Engine
    "apply",
    "apply_all",
    "commit",
    # Tree
    "VirtualTree",
    "FileChange",
    "normalize_path",
    # Registry
    "ProjectRegistry",
    "ProjectConfiguration",
    "TargetConfiguration",
    # Steps
    "MutationStep",
    "TemplateExpansion",
    "Filter",
    "JsonPatch",
    "Rename",
    "Overwrite",
    "RegistryUpdate",
    "DependencyMerge",
    "FormatFiles",
]
