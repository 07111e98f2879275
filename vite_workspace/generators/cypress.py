"""Cypress end-to-end companion project.

The e2e project is a sibling of the application (``<name>-e2e`` in the same
directory).  It is generated as a nested sub-scaffold: its own normalisation
runs before any step of the parent plan, and its steps are spliced into the
parent's step list so both projects land in the same commit.
"""

from __future__ import annotations

from ..tree import DependencyMerge, MutationStep, Overwrite, RegistryUpdate, TemplateExpansion
from ..tree.registry import ProjectRegistry
from ..utils import names, offset_from_root
from .normalize import CreationOptions, ProjectDescriptor, normalize_options
from .templates import TemplateRenderer
from .versions import CYPRESS_DEV_DEPENDENCIES

E2E_SUFFIX = "-e2e"
SPEC_GREETING = "Hello Vue 3 + TypeScript + Vite"


class CypressProjectGenerator:
    """Plans the steps that add a Cypress project testing an application."""

    def __init__(self, renderer: TemplateRenderer) -> None:
        self.renderer = renderer

    def normalize(
        self,
        options: CreationOptions,
        registry: ProjectRegistry,
        apps_dir: str,
    ) -> ProjectDescriptor:
        """Resolve the e2e project descriptor for the application in *options*."""
        e2e_options = CreationOptions(
            name=f"{options.name.strip()}{E2E_SUFFIX}",
            directory=options.directory,
        )
        return normalize_options(e2e_options, registry, apps_dir)

    def steps(self, e2e: ProjectDescriptor, app: ProjectDescriptor) -> list[MutationStep]:
        """Registry entry, template files and greeting fix-up for *e2e*."""
        root = e2e.project_root
        bindings = {
            **names(e2e.name),
            "projectName": e2e.project_name,
            "projectRoot": root,
            "offsetFromRoot": offset_from_root(root),
            "appProjectName": app.project_name,
        }
        welcome = f"Welcome to {app.project_name}!"
        return [
            RegistryUpdate(e2e.project_name, self._registry_entry(e2e, app)),
            TemplateExpansion("cypress", root, self.renderer, bindings),
            Overwrite(
                f"{root}/src/integration/app.spec.ts",
                lambda text: text.replace(welcome, SPEC_GREETING),
            ),
        ]

    def dependencies(self) -> DependencyMerge:
        return DependencyMerge(dev_dependencies=CYPRESS_DEV_DEPENDENCIES)

    # -- Internal helpers --------------------------------------------------

    @staticmethod
    def _registry_entry(e2e: ProjectDescriptor, app: ProjectDescriptor) -> dict:
        root = e2e.project_root
        return {
            "root": root,
            "sourceRoot": f"{root}/src",
            "projectType": "application",
            "targets": {
                "e2e": {
                    "executor": "@nrwl/cypress:cypress",
                    "options": {
                        "cypressConfig": f"{root}/cypress.json",
                        "tsConfig": f"{root}/tsconfig.e2e.json",
                        "devServerTarget": f"{app.project_name}:serve",
                    },
                    "configurations": {
                        "production": {
                            "devServerTarget": f"{app.project_name}:serve:production",
                        },
                    },
                },
                "lint": {
                    "executor": "@nrwl/linter:eslint",
                    "options": {"lintFilePatterns": [f"{root}/**/*.{{js,ts}}"]},
                },
            },
            "tags": [],
            "implicitDependencies": [app.project_name],
        }
