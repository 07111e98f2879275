"""Tests for the mutation steps and the engine entry points.

Covers:
- Every step returns a new tree and leaves its input untouched
- TemplateExpansion, Filter, JsonPatch, Rename, Overwrite
- RegistryUpdate add / merge
- DependencyMerge last-writer-wins and key ordering
- FormatFiles normalisation and stability
- apply / apply_all
"""

from __future__ import annotations

import json

import pytest

from vite_workspace.errors import (
    DuplicateProjectError,
    MalformedConfigError,
    PathNotFoundError,
    ProjectNotFoundError,
)
from vite_workspace.generators.templates import TemplateRenderer
from vite_workspace.tree import (
    DependencyMerge,
    Filter,
    FormatFiles,
    JsonPatch,
    Overwrite,
    RegistryUpdate,
    Rename,
    TemplateExpansion,
    VirtualTree,
    apply,
    apply_all,
)

pytestmark = pytest.mark.unit


@pytest.fixture
def small_templates(tmp_path) -> TemplateRenderer:
    """A renderer over a tiny template set named ``demo``."""
    root = tmp_path / "templates" / "demo"
    (root / "src").mkdir(parents=True)
    (root / "src" / "__fileName__.ts.j2").write_text("export const name = '{{ name }}';\n")
    (root / "__dot__eslintrc.json.j2").write_text('{"root": true}\n')
    (root / "tests").mkdir()
    (root / "tests" / "example.spec.ts.j2").write_text("test('{{ name }}');\n")
    return TemplateRenderer(tmp_path / "templates")


def _expand(renderer: TemplateRenderer) -> TemplateExpansion:
    return TemplateExpansion(
        "demo", "apps/demo", renderer, {"name": "demo", "fileName": "demo-app"}
    )


# ---------------------------------------------------------------------------
# File steps
# ---------------------------------------------------------------------------


class TestTemplateExpansion:
    def test_renders_set_under_root(self, small_templates):
        result = apply(VirtualTree(), _expand(small_templates))
        assert result.staged_files() == [
            "apps/demo/.eslintrc.json",
            "apps/demo/src/demo-app.ts",
            "apps/demo/tests/example.spec.ts",
        ]
        assert result.read_text("apps/demo/src/demo-app.ts") == "export const name = 'demo';\n"

    def test_input_tree_untouched(self, small_templates):
        tree = VirtualTree()
        apply(tree, _expand(small_templates))
        assert tree.staged_files() == []

    def test_deterministic(self, small_templates):
        first = apply(VirtualTree(), _expand(small_templates))
        second = apply(VirtualTree(), _expand(small_templates))
        assert first.list_changes() == second.list_changes()

    def test_missing_set(self, small_templates):
        step = TemplateExpansion("nope", "apps/x", small_templates)
        with pytest.raises(FileNotFoundError):
            apply(VirtualTree(), step)


class TestFilter:
    def test_removes_matching_files(self, small_templates):
        tree = apply_all(
            VirtualTree(),
            [
                _expand(small_templates),
                Filter("apps/demo", lambda rel: rel.startswith("tests/")),
            ],
        )
        assert "apps/demo/tests/example.spec.ts" not in tree.staged_files()
        assert "apps/demo/src/demo-app.ts" in tree.staged_files()

    def test_only_looks_under_root(self, small_templates):
        tree = VirtualTree()
        tree.write("apps/other/tests/keep.ts", "x")
        result = apply_all(
            tree,
            [_expand(small_templates), Filter("apps/demo", lambda rel: True)],
        )
        assert result.staged_files() == ["apps/other/tests/keep.ts"]


class TestJsonPatch:
    def test_transform_in_place(self, tree: VirtualTree):
        def add_script(manifest):
            manifest["scripts"]["build"] = "nx build"

        result = apply(tree, JsonPatch("package.json", add_script))
        assert result.read_json("package.json")["scripts"]["build"] == "nx build"
        assert "build" not in tree.read_json("package.json")["scripts"]

    def test_written_with_two_space_indent(self, tree: VirtualTree):
        result = apply(tree, JsonPatch("nx.json", lambda data: {"a": [1]}))
        assert result.read_text("nx.json") == '{\n  "a": [\n    1\n  ]\n}\n'

    def test_missing_file(self, tree: VirtualTree):
        with pytest.raises(MalformedConfigError):
            apply(tree, JsonPatch("missing.json", lambda data: data))

    def test_missing_file_allowed(self, tree: VirtualTree):
        result = apply(tree, JsonPatch("new.json", lambda data: {"x": 1}, must_exist=False))
        assert result.read_json("new.json") == {"x": 1}

    def test_unparsable_file(self, tree: VirtualTree):
        tree.write("bad.json", "{,}")
        with pytest.raises(MalformedConfigError):
            apply(tree, JsonPatch("bad.json", lambda data: data))


class TestRenameAndOverwrite:
    def test_rename(self, tree: VirtualTree):
        tree.write("apps/x/.eslintrc.json", "{}")
        result = apply(tree, Rename("apps/x/.eslintrc.json", "apps/x/.eslintrc.js"))
        assert result.exists("apps/x/.eslintrc.js")
        assert not result.exists("apps/x/.eslintrc.json")
        assert tree.exists("apps/x/.eslintrc.json")

    def test_rename_missing(self, tree: VirtualTree):
        with pytest.raises(PathNotFoundError):
            apply(tree, Rename("apps/x/none", "apps/x/other"))

    def test_overwrite_with_text(self, tree: VirtualTree):
        result = apply(tree, Overwrite("apps/existing/index.html", "new\n"))
        assert result.read_text("apps/existing/index.html") == "new\n"

    def test_overwrite_with_callable(self, tree: VirtualTree):
        tree.write("spec.ts", "Welcome to app!")
        result = apply(tree, Overwrite("spec.ts", lambda text: text.replace("app", "vite")))
        assert result.read_text("spec.ts") == "Welcome to vite!"

    def test_overwrite_missing(self, tree: VirtualTree):
        with pytest.raises(PathNotFoundError):
            apply(tree, Overwrite("apps/x/none", "content"))


# ---------------------------------------------------------------------------
# Registry and manifest steps
# ---------------------------------------------------------------------------


class TestRegistryUpdate:
    def test_add(self, tree: VirtualTree):
        result = apply(tree, RegistryUpdate("new", {"root": "apps/new", "tags": ["a"]}))
        assert result.registry.get("new").tags == ["a"]
        assert "new" not in tree.registry

    def test_add_duplicate(self, tree: VirtualTree):
        with pytest.raises(DuplicateProjectError):
            apply(tree, RegistryUpdate("existing", {"root": "apps/existing"}))

    def test_merge_after_add(self, tree: VirtualTree):
        result = apply_all(
            tree,
            [
                RegistryUpdate("new", {"root": "apps/new"}),
                RegistryUpdate(
                    "new", {"targets": {"lint": {"executor": "x:lint"}}}, mode="merge"
                ),
            ],
        )
        assert "lint" in result.registry.get("new").targets

    def test_merge_into_durable_project(self, tree: VirtualTree):
        with pytest.raises(ProjectNotFoundError):
            apply(tree, RegistryUpdate("existing", {"tags": ["x"]}, mode="merge"))


class TestDependencyMerge:
    def test_merges_and_sorts(self, tree: VirtualTree):
        result = apply(
            tree,
            DependencyMerge(
                dependencies={"vue": "^3.0.5", "axios": "^1.0.0"},
                dev_dependencies={"vite": "^2.2.2"},
            ),
        )
        manifest = result.read_json("package.json")
        assert list(manifest["dependencies"]) == ["axios", "tslib", "vue"]
        assert list(manifest["devDependencies"]) == ["typescript", "vite"]

    def test_last_writer_wins(self, tree: VirtualTree):
        result = apply_all(
            tree,
            [
                DependencyMerge(dev_dependencies={"eslint-plugin-vue": "^7.0.0-0"}),
                DependencyMerge(dev_dependencies={"eslint-plugin-vue": "^7.8.0"}),
            ],
        )
        assert result.read_json("package.json")["devDependencies"]["eslint-plugin-vue"] == "^7.8.0"

    def test_overwrites_existing_version(self, tree: VirtualTree):
        result = apply(tree, DependencyMerge(dev_dependencies={"typescript": "^4.1.3"}))
        assert result.read_json("package.json")["devDependencies"]["typescript"] == "^4.1.3"

    def test_creates_missing_section(self):
        tree = VirtualTree()
        tree.write("package.json", '{"name": "bare"}')
        result = apply(tree, DependencyMerge(dependencies={"vue": "^3.0.5"}))
        manifest = result.read_json("package.json")
        assert manifest["dependencies"] == {"vue": "^3.0.5"}
        assert "devDependencies" not in manifest

    def test_missing_manifest(self):
        with pytest.raises(MalformedConfigError):
            apply(VirtualTree(), DependencyMerge(dependencies={"vue": "^3.0.5"}))

    def test_non_object_manifest(self):
        tree = VirtualTree()
        tree.write("package.json", "[]")
        with pytest.raises(MalformedConfigError):
            apply(tree, DependencyMerge(dependencies={"vue": "^3.0.5"}))


# ---------------------------------------------------------------------------
# Formatting
# ---------------------------------------------------------------------------


class TestFormatFiles:
    def test_formats_json_and_text(self):
        tree = VirtualTree()
        tree.write("a.json", '{"b":1,"c":[1,2]}')
        tree.write("main.ts", "console.log(1);\n\n\n")
        tree.write("bare.ts", "export {}")
        result = apply(tree, FormatFiles())

        assert result.read_text("a.json") == json.dumps({"b": 1, "c": [1, 2]}, indent=2) + "\n"
        assert result.read_text("main.ts") == "console.log(1);\n"
        assert result.read_text("bare.ts") == "export {}\n"

    def test_leaves_invalid_json_and_binary(self):
        tree = VirtualTree()
        tree.write("broken.json", "{oops")
        tree.write("logo.png", b"\x89PNG\xff\xfe")
        result = apply(tree, FormatFiles())
        assert result.read_text("broken.json") == "{oops\n"
        assert result.read("logo.png") == b"\x89PNG\xff\xfe"

    def test_stable(self):
        tree = VirtualTree()
        tree.write("a.json", '{"b":1}')
        tree.write("b.ts", "x")
        once = apply(tree, FormatFiles())
        twice = apply(once, FormatFiles())
        assert once.list_changes() == twice.list_changes()
