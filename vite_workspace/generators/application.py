"""Vue 3 + Vite application generator.

Composes the mutation steps that add an application project to a workspace
and threads a :class:`~vite_workspace.tree.VirtualTree` through them.  The
step order is fixed:

1. Registry entry with ``build`` / ``serve`` targets
2. Base application template set
3. Unit tests: Jest template set and ``test`` target, or removal of the
   example spec
4. ESLint configuration, ``tsconfig.spec.json`` clean-up and the root
   ``postinstall`` script
5. Cypress e2e companion project
6. Dependency merges (lint, jest, cypress, app)
7. Formatting

Nothing is written to disk until the resulting tree is committed, so a
failing step leaves the workspace exactly as it was.
"""

from __future__ import annotations

import json
import posixpath
from dataclasses import dataclass, field
from functools import partial
from typing import Any

from rich.console import Console

from ..config import Config
from ..errors import DuplicateProjectError, MalformedConfigError, ScaffoldError
from ..tasks import PendingTask, cypress_install_task, dedupe_tasks, install_packages_task
from ..tree import (
    DependencyMerge,
    FileChange,
    Filter,
    FormatFiles,
    JsonPatch,
    MutationStep,
    Overwrite,
    RegistryUpdate,
    Rename,
    TemplateExpansion,
    VirtualTree,
    commit,
    normalize_path,
)
from ..utils import console as default_console
from ..utils import names, offset_from_root, print_success, print_warning
from .cypress import CypressProjectGenerator
from .normalize import CreationOptions, ProjectDescriptor, normalize_options
from .templates import TemplateRenderer
from .versions import (
    JEST_DEV_DEPENDENCIES,
    LINT_DEV_DEPENDENCIES,
    VUE_DEPENDENCIES,
    VUE_DEV_DEPENDENCIES,
    VUE_POSTINSTALL,
)

BUILD_EXECUTOR = "vite-workspace:build"
SERVE_EXECUTOR = "vite-workspace:serve"
LINT_EXECUTOR = "@nrwl/linter:eslint"
JEST_EXECUTOR = "@nrwl/jest:jest"

ROOT_MANIFEST = "package.json"
NX_FILE = "nx.json"

_CHANGE_STYLES = {"CREATE": "green", "UPDATE": "yellow", "DELETE": "red"}


@dataclass
class ScaffoldResult:
    """Outcome of a successful (uncommitted) scaffold."""

    tree: VirtualTree
    tasks: list[PendingTask] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Generator
# ---------------------------------------------------------------------------


class ApplicationGenerator:
    """Plans and applies the steps that add a Vue application project.

    Args:
        config: Workspace configuration (layout fallback, package manager).
        renderer: Template renderer; defaults to the bundled template sets.
        console: Rich console for warnings and the change report.
    """

    def __init__(
        self,
        config: Config | None = None,
        renderer: TemplateRenderer | None = None,
        console: Console | None = None,
    ) -> None:
        self.config = config or Config()
        self.renderer = renderer or TemplateRenderer()
        self.console = console or default_console
        self.cypress = CypressProjectGenerator(self.renderer)

    # -- Public API --------------------------------------------------------

    def apps_dir(self, tree: VirtualTree) -> str:
        """Applications directory, from ``nx.json`` when it declares one."""
        layout = self.config.layout
        if tree.read(NX_FILE) is not None:
            layout = layout.merged_with(tree.read_json(NX_FILE))
        return layout.apps_dir

    def normalize(self, options: CreationOptions, tree: VirtualTree) -> ProjectDescriptor:
        """Resolve *options* against *tree* and reject an occupied project root.

        Raises:
            InvalidNameError: If the name or directory is unusable.
            DuplicateProjectError: If the project name is registered or its
                root directory already exists.
        """
        descriptor = normalize_options(options, tree.registry, self.apps_dir(tree))
        _ensure_root_free(tree, descriptor)
        return descriptor

    def plan(
        self,
        descriptor: ProjectDescriptor,
        options: CreationOptions,
        e2e: ProjectDescriptor | None = None,
    ) -> list[MutationStep]:
        """Return the ordered step list for *descriptor*.

        Args:
            descriptor: The normalised application project.
            options: The original generator options.
            e2e: The normalised Cypress project, required when
                ``options.e2e_test_runner == "cypress"``.
        """
        root = descriptor.project_root
        bindings = self._bindings(descriptor, options)
        use_jest = options.unit_test_runner == "jest"
        use_cypress = options.e2e_test_runner == "cypress"
        if use_cypress and e2e is None:
            raise ValueError("A Cypress project descriptor is required when e2e tests are enabled")

        # 1. Registry entry
        steps: list[MutationStep] = [
            RegistryUpdate(descriptor.project_name, self._registry_entry(descriptor)),
        ]

        # 2. Base application files
        steps.append(TemplateExpansion("app", root, self.renderer, bindings))

        # 3. Unit tests
        if use_jest:
            steps.append(TemplateExpansion("jest", root, self.renderer, bindings))
            steps.append(
                RegistryUpdate(
                    descriptor.project_name,
                    {
                        "targets": {
                            "test": {
                                "executor": JEST_EXECUTOR,
                                "options": {
                                    "jestConfig": f"{root}/jest.config.js",
                                    "passWithNoTests": True,
                                },
                            }
                        }
                    },
                    mode="merge",
                )
            )
            steps.append(JsonPatch(f"{root}/tsconfig.json", _reference_spec_config))
        else:
            steps.append(Filter(root, _is_example_spec, description="example unit spec"))

        # 4. Lint and test configuration
        eslintrc = f"{root}/.eslintrc"
        steps.extend(
            [
                TemplateExpansion("lint", root, self.renderer, bindings),
                RegistryUpdate(
                    descriptor.project_name,
                    {
                        "targets": {
                            "lint": {
                                "executor": LINT_EXECUTOR,
                                "options": {
                                    "lintFilePatterns": [f"{root}/**/*.{{ts,tsx,js,jsx,vue}}"]
                                },
                            }
                        }
                    },
                    mode="merge",
                ),
                JsonPatch(
                    f"{eslintrc}.json",
                    partial(_root_config_first, f"{bindings['offsetFromRoot']}.eslintrc.json"),
                ),
                Rename(f"{eslintrc}.json", f"{eslintrc}.js"),
                Overwrite(f"{eslintrc}.js", _as_commonjs_module),
            ]
        )
        if use_jest:
            steps.append(JsonPatch(f"{root}/tsconfig.spec.json", _drop_js_spec_patterns))
        steps.append(JsonPatch(ROOT_MANIFEST, _add_postinstall))

        # 5. End-to-end project
        if use_cypress:
            steps.extend(self.cypress.steps(e2e, descriptor))

        # 6. Dependencies
        steps.append(DependencyMerge(dev_dependencies=LINT_DEV_DEPENDENCIES))
        if use_jest:
            steps.append(DependencyMerge(dev_dependencies=JEST_DEV_DEPENDENCIES))
        if use_cypress:
            steps.append(self.cypress.dependencies())
        steps.append(
            DependencyMerge(dependencies=VUE_DEPENDENCIES, dev_dependencies=VUE_DEV_DEPENDENCIES)
        )

        # 7. Formatting
        if not options.skip_format:
            steps.append(FormatFiles())

        validate_plan(steps)
        return steps

    def pending_tasks(self, options: CreationOptions) -> list[PendingTask]:
        """Tasks to run once the scaffold is committed, in execution order."""
        tasks = [install_packages_task(self.config.package_manager)]
        if options.e2e_test_runner == "cypress":
            tasks.append(cypress_install_task(self.config.package_manager))
        return dedupe_tasks(tasks)

    def scaffold(
        self,
        tree: VirtualTree,
        descriptor: ProjectDescriptor,
        options: CreationOptions,
    ) -> ScaffoldResult:
        """Apply the full plan to *tree* without committing.

        The Cypress project is normalised before the first step runs.

        Returns:
            The transformed tree, the pending tasks and any warnings for
            the user.

        Raises:
            InvalidNameError: If the e2e project name is unusable.
            DuplicateProjectError: If the e2e project already exists.
            ScaffoldError: If a step fails; *tree* is left untouched.
        """
        e2e: ProjectDescriptor | None = None
        if options.e2e_test_runner == "cypress":
            e2e = self.cypress.normalize(options, tree.registry, self.apps_dir(tree))
            _ensure_root_free(tree, e2e)

        current = tree
        for index, step in enumerate(self.plan(descriptor, options, e2e), start=1):
            try:
                current = step.apply(current, descriptor)
            except Exception as exc:
                raise ScaffoldError(step.label, index, exc) from exc
        return ScaffoldResult(current, self.pending_tasks(options), _postinstall_warnings(tree))

    def report(
        self,
        changes: list[FileChange],
        dry_run: bool = False,
        warnings: list[str] | None = None,
    ) -> None:
        """Print one line per change, then any scaffold warnings."""
        for change in changes:
            style = _CHANGE_STYLES[change.kind]
            size = f" ({len(change.content)} bytes)" if change.content is not None else ""
            self.console.print(f"[{style}]{change.kind}[/{style}] {change.path}{size}")
        for warning in warnings or ():
            print_warning(warning, self.console)
        if dry_run:
            print_warning("Dry run: no changes were written to disk.", self.console)

    # -- Internal helpers --------------------------------------------------

    def _bindings(self, descriptor: ProjectDescriptor, options: CreationOptions) -> dict[str, Any]:
        return {
            **names(descriptor.name),
            "projectName": descriptor.project_name,
            "projectRoot": descriptor.project_root,
            "projectDirectory": descriptor.project_directory,
            "offsetFromRoot": offset_from_root(descriptor.project_root),
            "tags": list(descriptor.parsed_tags),
            "unitTestRunner": options.unit_test_runner,
            "e2eTestRunner": options.e2e_test_runner,
        }

    @staticmethod
    def _registry_entry(descriptor: ProjectDescriptor) -> dict[str, Any]:
        root = descriptor.project_root
        config_file = f"{root}/vite.config.ts"
        return {
            "root": root,
            "sourceRoot": f"{root}/src",
            "projectType": "application",
            "targets": {
                "build": {"executor": BUILD_EXECUTOR, "options": {"configFile": config_file}},
                "serve": {"executor": SERVE_EXECUTOR, "options": {"configFile": config_file}},
            },
            "tags": list(descriptor.parsed_tags),
        }
        scripts["postinstall"] = VUE_POSTINSTALL
        return manifest


# ---------------------------------------------------------------------------
# Plan checks and step callbacks
# ---------------------------------------------------------------------------


def validate_plan(steps: list[MutationStep]) -> None:
    """Reject a plan where a ``Filter`` has no earlier expansion into its root.

    Raises:
        ValueError: If the plan is malformed.
    """
    expanded: list[str] = []
    for step in steps:
        if isinstance(step, TemplateExpansion):
            expanded.append(normalize_path(step.dest_root))
        elif isinstance(step, Filter):
            root = normalize_path(step.root)
            if not any(root == dest or root.startswith(f"{dest}/") for dest in expanded):
                raise ValueError(
                    f"Filter on '{step.root}' is not preceded by a template expansion into it"
                )


def _ensure_root_free(tree: VirtualTree, descriptor: ProjectDescriptor) -> None:
    if tree.exists(descriptor.project_root):
        raise DuplicateProjectError(
            descriptor.project_name, f"{descriptor.project_root} already exists"
        )


def _is_example_spec(relative_path: str) -> bool:
    return posixpath.basename(relative_path).startswith("example.spec.")


def _add_postinstall(manifest: Any) -> Any:
    if not isinstance(manifest, dict):
        raise MalformedConfigError(ROOT_MANIFEST, "expected a JSON object")
    scripts = manifest.setdefault("scripts", {})
    if not scripts.get("postinstall"):
        scripts["postinstall"] = VUE_POSTINSTALL
    return manifest


def _postinstall_warnings(tree: VirtualTree) -> list[str]:
    """Warn when an unrelated ``postinstall`` script was kept in *tree*'s manifest."""
    if tree.read(ROOT_MANIFEST) is None:
        return []
    manifest = tree.read_json(ROOT_MANIFEST)
    scripts = manifest.get("scripts") if isinstance(manifest, dict) else None
    existing = scripts.get("postinstall") if isinstance(scripts, dict) else None
    if not existing or existing == VUE_POSTINSTALL:
        return []
    return [
        f"package.json already has a postinstall script ({existing!r}); "
        f"add '{VUE_POSTINSTALL}' to it manually."
    ]


def _root_config_first(root_config: str, config: Any) -> Any:
    extends = config.get("extends") if isinstance(config, dict) else None
    if isinstance(extends, list) and root_config in extends:
        config["extends"] = [root_config, *(e for e in extends if e != root_config)]
    return config


def _reference_spec_config(tsconfig: Any) -> Any:
    references = tsconfig.setdefault("references", [])
    if {"path": "./tsconfig.spec.json"} not in references:
        references.append({"path": "./tsconfig.spec.json"})
    return tsconfig


def _drop_js_spec_patterns(tsconfig: Any) -> Any:
    include = tsconfig.get("include") if isinstance(tsconfig, dict) else None
    if isinstance(include, list):
        tsconfig["include"] = [p for p in include if not p.endswith((".js", ".jsx"))]
    return tsconfig


def _as_commonjs_module(text: str) -> str:
    return f"module.exports = {json.dumps(json.loads(text), indent=2)};\n"


# ---------------------------------------------------------------------------
# Transaction entry point
# ---------------------------------------------------------------------------


async def scaffold(
    options: CreationOptions,
    config: Config | None = None,
    *,
    dry_run: bool = False,
    console: Console | None = None,
) -> list[PendingTask]:
    """Generate an application into the workspace and commit it in one go.

    Args:
        options: Generator options.
        config: Workspace configuration; defaults to the current directory.
        dry_run: Report the changes without writing them.
        console: Rich console for output.

    Returns:
        The pending tasks the caller should run, in order, after this
        returns.  Nothing is run here.
    """
    config = config or Config()
    generator = ApplicationGenerator(config, console=console)
    tree = VirtualTree(config.workspace_root)

    descriptor = generator.normalize(options, tree)
    result = generator.scaffold(tree, descriptor, options)

    if dry_run:
        generator.report(result.tree.list_changes(), dry_run=True, warnings=result.warnings)
        return result.tasks

    changes = await commit(result.tree)
    generator.report(changes, warnings=result.warnings)
    print_success(
        f"Generated {descriptor.project_name} in {descriptor.project_root}", generator.console
    )
    return result.tasks
