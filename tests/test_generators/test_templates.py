"""Tests for the Jinja2 template renderer and the bundled template sets."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from jinja2 import UndefinedError

from vite_workspace.generators.templates import TemplateRenderer, substitute_path

pytestmark = pytest.mark.unit


APP_BINDINGS = {
    "name": "my-app",
    "className": "MyApp",
    "projectName": "web_my-app",
    "projectRoot": "apps/web/my-app",
    "offsetFromRoot": "../../../",
    "unitTestRunner": "jest",
    "appProjectName": "web_my-app",
}


class TestSubstitutePath:
    def test_placeholders(self):
        assert substitute_path("src/__fileName__.ts", {"fileName": "my-app"}) == "src/my-app.ts"

    def test_dot(self):
        assert substitute_path("__dot__eslintrc.json", {}) == ".eslintrc.json"

    def test_unknown_placeholder_kept(self):
        assert substitute_path("__missing__.ts", {}) == "__missing__.ts"


class TestRenderer:
    def test_renders_set_with_placeholders(self, tmp_path: Path):
        (tmp_path / "demo" / "src").mkdir(parents=True)
        (tmp_path / "demo" / "src" / "__fileName__.ts.j2").write_text("export const {{ className }} = 1;\n")
        (tmp_path / "demo" / "__dot__babelrc.j2").write_text("{}\n")

        files = TemplateRenderer(tmp_path).render_set(
            "demo", "apps/my-app/", {"fileName": "my-app", "className": "MyApp"}
        )
        assert files == {
            "apps/my-app/.babelrc": "{}\n",
            "apps/my-app/src/my-app.ts": "export const MyApp = 1;\n",
        }

    def test_strict_undefined(self, tmp_path: Path):
        (tmp_path / "demo").mkdir()
        (tmp_path / "demo" / "a.txt.j2").write_text("{{ nope }}")
        with pytest.raises(UndefinedError):
            TemplateRenderer(tmp_path).render_set("demo", "", {})

    def test_missing_set(self, renderer: TemplateRenderer):
        with pytest.raises(FileNotFoundError):
            renderer.render_set("nope", "apps/x", {})


class TestBundledSets:
    def test_app_set(self, renderer: TemplateRenderer):
        files = renderer.render_set("app", "apps/web/my-app", APP_BINDINGS)
        assert "apps/web/my-app/index.html" in files
        assert "apps/web/my-app/src/App.vue" in files
        assert "apps/web/my-app/tests/unit/example.spec.ts" in files
        assert "dist/apps/web/my-app" in files["apps/web/my-app/vite.config.ts"]
        tsconfig = json.loads(files["apps/web/my-app/tsconfig.json"])
        assert tsconfig["extends"] == "../../../tsconfig.base.json"

    def test_hello_world_keeps_vue_interpolation(self, renderer: TemplateRenderer):
        files = renderer.render_set("app", "apps/my-app", APP_BINDINGS)
        assert "{{ msg }}" in files["apps/my-app/src/components/HelloWorld.vue"]

    @pytest.mark.parametrize("runner", ["jest", "none"])
    def test_lint_set_is_valid_json(self, renderer: TemplateRenderer, runner: str):
        files = renderer.render_set("lint", "apps/my-app", {**APP_BINDINGS, "unitTestRunner": runner})
        config = json.loads(files["apps/my-app/.eslintrc.json"])
        assert config["extends"][-1] == "../../../.eslintrc.json"
        assert ("overrides" in config) is (runner == "jest")

    def test_json_templates_render_valid_json(self, renderer: TemplateRenderer):
        for template_set in ("app", "jest", "lint", "cypress"):
            for path, content in renderer.render_set(template_set, "apps/x", APP_BINDINGS).items():
                if Path(path).suffix == ".json":
                    json.loads(content)

    def test_cypress_spec_mentions_app(self, renderer: TemplateRenderer):
        files = renderer.render_set("cypress", "apps/my-app-e2e", APP_BINDINGS)
        assert "Welcome to web_my-app!" in files["apps/my-app-e2e/src/integration/app.spec.ts"]
