"""vite-workspace generators -- scaffold Vue 3 + Vite projects into a workspace.

Every generator plans an ordered list of mutation steps over a virtual tree;
the whole result is committed in one transaction.

Quick usage::

    from vite_workspace.generators import CreationOptions, scaffold

    tasks = await scaffold(CreationOptions(name="my-app", directory="web"))
    await run_pending_tasks(tasks, cwd=".")
"""

from vite_workspace.generators.application import (
    ApplicationGenerator,
    ScaffoldResult,
    scaffold,
    validate_plan,
)
from vite_workspace.generators.cypress import CypressProjectGenerator
from vite_workspace.generators.normalize import (
    CreationOptions,
    ProjectDescriptor,
    normalize_options,
    parse_tags,
)
from vite_workspace.generators.templates import TemplateRenderer

__all__ = [
    "ApplicationGenerator",
    "CreationOptions",
    "CypressProjectGenerator",
    "ProjectDescriptor",
    "ScaffoldResult",
    "TemplateRenderer",
    "normalize_options",
    "parse_tags",
    "scaffold",
    "validate_plan",
]
