"""Integration tests for the scaffold-then-commit flow.

These tests run the real generators against a workspace on disk, commit the
result, and verify that the generated projects contain valid, well-formed
configuration files and that the registry and manifest were updated.

No external services (node, npm, vite) are required.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from vite_workspace.config import Config
from vite_workspace.generators import CreationOptions, scaffold
from vite_workspace.tree import VirtualTree

pytestmark = pytest.mark.integration


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _read_json(path: Path) -> Any:
    return json.loads(path.read_text(encoding="utf-8"))


async def _scaffold(workspace: Path, record_console, **kwargs) -> Path:
    """Scaffold ``web/my-app`` into *workspace* and return the project root."""
    options = CreationOptions(name="my-app", directory="web", tags="scope:web", **kwargs)
    await scaffold(options, Config(workspace_root=workspace), console=record_console)
    return workspace / "apps" / "web" / "my-app"


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------

class TestFullScaffold:
    @pytest.mark.asyncio
    async def test_every_json_file_parses(self, workspace: Path, record_console):
        await _scaffold(workspace, record_console)
        for path in (workspace / "apps" / "web").rglob("*.json"):
            _read_json(path)

    @pytest.mark.asyncio
    async def test_application_files(self, workspace: Path, record_console):
        root = await _scaffold(workspace, record_console)

        expected = [
            "index.html",
            "vite.config.ts",
            "tsconfig.json",
            "tsconfig.app.json",
            "tsconfig.spec.json",
            "jest.config.js",
            ".eslintrc.js",
            "src/main.ts",
            "src/App.vue",
            "src/components/HelloWorld.vue",
            "src/shims-vue.d.ts",
            "tests/unit/example.spec.ts",
        ]
        for rel in expected:
            assert (root / rel).is_file(), rel
        assert not (root / ".eslintrc.json").exists()

        vite_config = (root / "vite.config.ts").read_text()
        assert "../../../dist/apps/web/my-app" in vite_config

    @pytest.mark.asyncio
    async def test_e2e_project(self, workspace: Path, record_console):
        await _scaffold(workspace, record_console)
        e2e = workspace / "apps" / "web" / "my-app-e2e"

        assert _read_json(e2e / "cypress.json")
        spec = (e2e / "src" / "integration" / "app.spec.ts").read_text()
        assert "Hello Vue 3 + TypeScript + Vite" in spec

    @pytest.mark.asyncio
    async def test_registry_on_disk(self, workspace: Path, record_console):
        await _scaffold(workspace, record_console)
        projects = _read_json(workspace / "workspace.json")["projects"]

        app = projects["web_my-app"]
        assert app["root"] == "apps/web/my-app"
        assert app["tags"] == ["scope:web"]
        assert set(app["targets"]) == {"build", "serve", "test", "lint"}
        assert projects["web_my-app-e2e"]["implicitDependencies"] == ["web_my-app"]
        assert projects["existing"]["tags"] == ["scope:legacy"]

        # A fresh tree sees the committed registry.
        assert "web_my-app" in VirtualTree(workspace).registry

    @pytest.mark.asyncio
    async def test_manifest_on_disk(self, workspace: Path, record_console):
        await _scaffold(workspace, record_console)
        manifest = _read_json(workspace / "package.json")

        assert manifest["name"] == "acme"
        assert "vue" in manifest["dependencies"]
        assert {"vite", "jest", "cypress", "eslint-plugin-vue"} <= set(manifest["devDependencies"])
        assert manifest["scripts"]["postinstall"].startswith("node ")

    @pytest.mark.asyncio
    async def test_minimal_application(self, workspace: Path, record_console):
        root = await _scaffold(
            workspace, record_console, unit_test_runner="none", e2e_test_runner="none"
        )

        assert (root / "src" / "main.ts").exists()
        assert not (root / "tests" / "unit" / "example.spec.ts").exists()
        assert not (root / "jest.config.js").exists()
        assert not (workspace / "apps" / "web" / "my-app-e2e").exists()

        manifest = _read_json(workspace / "package.json")
        assert "jest" not in manifest["devDependencies"]
        assert "cypress" not in manifest["devDependencies"]

    @pytest.mark.asyncio
    async def test_two_applications(self, workspace: Path, record_console):
        await _scaffold(workspace, record_console)
        await scaffold(
            CreationOptions(name="admin", e2e_test_runner="none"),
            Config(workspace_root=workspace),
            console=record_console,
        )
        projects = _read_json(workspace / "workspace.json")["projects"]
        assert {"existing", "web_my-app", "web_my-app-e2e", "admin"} <= set(projects)


class TestUntouchedProjects:
    @pytest.fixture
    def workspace_files(self, workspace_files: dict[str, Any]) -> dict[str, Any]:
        projects = workspace_files["workspace.json"]["projects"]
        projects["shared"] = "libs/shared"
        projects["legacy"] = {"root": "libs/legacy"}
        return workspace_files

    @pytest.mark.asyncio
    async def test_other_entries_unchanged(self, workspace: Path, record_console):
        before = _read_json(workspace / "workspace.json")["projects"]
        await scaffold(
            CreationOptions(name="web", unit_test_runner="none", e2e_test_runner="none"),
            Config(workspace_root=workspace),
            console=record_console,
        )
        projects = _read_json(workspace / "workspace.json")["projects"]

        assert projects["shared"] == "libs/shared"
        assert projects["legacy"] == {"root": "libs/legacy"}
        assert projects["existing"] == before["existing"]
        assert "web" in projects
