"""Jinja2 template rendering for project scaffolding.

Provides the TemplateRenderer class which loads Jinja2 templates from the
``vite_workspace/generators/files/`` directory and renders whole template
sets with project-specific bindings.  Rendering never touches the file
system: results are returned as ``{path: content}`` maps that the
``TemplateExpansion`` step stages into a virtual tree.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape


# ---------------------------------------------------------------------------
# Template directory discovery
# ---------------------------------------------------------------------------

_DEFAULT_TEMPLATE_DIR = Path(__file__).parent / "files"

# ``__fileName__`` style placeholders in template file names.
_PLACEHOLDER_RE = re.compile(r"__([A-Za-z][A-Za-z0-9]*)__")


# ---------------------------------------------------------------------------
# TemplateRenderer
# ---------------------------------------------------------------------------


class TemplateRenderer:
    """Renders Jinja2 template sets for project scaffolding.

    A template set is a sub-directory of the template root.  Every ``.j2``
    file inside it is rendered; its path relative to the set becomes the
    output path after placeholder substitution and ``.j2`` stripping.
    """

    def __init__(self, template_dir: str | Path | None = None) -> None:
        if template_dir is None:
            template_dir = _DEFAULT_TEMPLATE_DIR
        self.template_dir = Path(template_dir)
        self.env = Environment(
            loader=FileSystemLoader(str(self.template_dir)),
            autoescape=select_autoescape([]),
            keep_trailing_newline=True,
            trim_blocks=True,
            lstrip_blocks=True,
            undefined=StrictUndefined,
        )

    # -- Single template rendering -----------------------------------------

    def render(self, template_path: str, context: dict[str, Any]) -> str:
        """Render a single template (path relative to the template root)."""
        template = self.env.get_template(template_path)
        return template.render(**context)

    # -- Template sets -----------------------------------------------------

    def render_set(
        self,
        template_set: str,
        dest_root: str,
        bindings: dict[str, Any],
    ) -> dict[str, str]:
        """Render every ``*.j2`` file of *template_set* under *dest_root*.

        A template at ``app/src/__fileName__.ts.j2`` rendered with
        ``bindings={"fileName": "my-app"}`` and ``dest_root="apps/my-app"``
        lands at ``apps/my-app/src/my-app.ts``.  ``__dot__`` expands to ``.``
        so dotfiles can be shipped as package data.

        Args:
            template_set: Sub-directory of the template root.
            dest_root: Workspace-relative directory receiving the output.
            bindings: Variables substituted into file names and contents.

        Returns:
            Mapping of workspace-relative output path to rendered content,
            in sorted template order.

        Raises:
            FileNotFoundError: If the template set does not exist.
        """
        set_path = self.template_dir / template_set
        if not set_path.is_dir():
            raise FileNotFoundError(f"Template set not found: {set_path}")

        rendered: dict[str, str] = {}
        for template_file in sorted(set_path.rglob("*.j2")):
            rel = template_file.relative_to(set_path).as_posix()
            output_rel = substitute_path(rel[: -len(".j2")], bindings)
            template_key = f"{template_set}/{rel}"
            output_path = f"{dest_root.rstrip('/')}/{output_rel}" if dest_root else output_rel
            rendered[output_path] = self.render(template_key, bindings)
        return rendered


def substitute_path(path: str, bindings: dict[str, Any]) -> str:
    """Replace ``__key__`` placeholders in *path* with string bindings.

    Unknown placeholders are left untouched.
    """

    def _replace(match: re.Match[str]) -> str:
        key = match.group(1)
        if key == "dot":
            return "."
        value = bindings.get(key)
        return value if isinstance(value, str) else match.group(0)

    return _PLACEHOLDER_RE.sub(_replace, path)
