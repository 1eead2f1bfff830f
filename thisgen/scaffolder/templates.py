"""Jinja2 template rendering for project scaffolding.

Provides the TemplateRenderer class which loads Jinja2 templates from the
``thisgen/scaffolder/templates/`` directory and renders them with project or
entity context data.  Rendering only produces strings; writing them to disk
is the job of a ``FileWriter`` so that dry runs share the same code path.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape

from thisgen.naming import pluralize, to_camel_case, to_pascal_case, to_snake_case


# ---------------------------------------------------------------------------
# Template directory discovery
# ---------------------------------------------------------------------------

_DEFAULT_TEMPLATE_DIR = Path(__file__).parent / "templates"

# (template, output path relative to the project root)
PROJECT_TEMPLATES: list[tuple[str, str]] = [
    ("project/Cargo.toml.j2", "Cargo.toml"),
    ("project/main.rs.j2", "src/main.rs"),
    ("project/module.rs.j2", "src/module.rs"),
    ("project/stores.rs.j2", "src/stores.rs"),
    ("project/entities_mod.rs.j2", "src/entities/mod.rs"),
    ("project/links.yaml.j2", "config/links.yaml"),
]

WORKSPACE_TEMPLATE = "project/this.yaml.j2"

# (template, output file name inside src/entities/<name>/)
ENTITY_TEMPLATES: list[tuple[str, str]] = [
    ("entity/model.rs.j2", "model.rs"),
    ("entity/store.rs.j2", "store.rs"),
    ("entity/handlers.rs.j2", "handlers.rs"),
    ("entity/descriptor.rs.j2", "descriptor.rs"),
    ("entity/mod.rs.j2", "mod.rs"),
]

VALIDATED_MODEL_TEMPLATE = "entity/model_validated.rs.j2"

CLIENT_TEMPLATE = "client/api-client.ts.j2"

# (template, output path relative to the target directory), per target kind
TARGET_TEMPLATES: dict[str, list[tuple[str, str]]] = {
    "webapp": [
        ("webapp/package.json.j2", "package.json"),
        ("webapp/vite.config.ts.j2", "vite.config.ts"),
        ("webapp/tsconfig.json.j2", "tsconfig.json"),
        ("webapp/index.html.j2", "index.html"),
        ("webapp/main.tsx.j2", "src/main.tsx"),
        ("webapp/App.tsx.j2", "src/App.tsx"),
        ("webapp/App.css.j2", "src/App.css"),
    ],
    "desktop": [
        ("desktop/Cargo.toml.j2", "src-tauri/Cargo.toml"),
        ("desktop/tauri.conf.json.j2", "src-tauri/tauri.conf.json"),
        ("desktop/main.rs.j2", "src-tauri/src/main.rs"),
        ("desktop/build.rs.j2", "src-tauri/build.rs"),
        ("desktop/capabilities.json.j2", "src-tauri/capabilities/default.json"),
    ],
    "mobile": [
        ("mobile/package.json.j2", "package.json"),
        ("mobile/capacitor.config.ts.j2", "capacitor.config.ts"),
        ("mobile/gitignore.j2", ".gitignore"),
    ],
}


# ---------------------------------------------------------------------------
# TemplateRenderer
# ---------------------------------------------------------------------------


class TemplateRenderer:
    """Renders Jinja2 templates for project scaffolding.

    The renderer discovers ``.j2`` template files under a configurable
    template directory.  Undefined context variables raise instead of
    rendering as empty strings, so a missing key never produces a file that
    silently lacks an identifier.
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
        # Register custom filters
        self.env.filters["snake_case"] = to_snake_case
        self.env.filters["pascal_case"] = to_pascal_case
        self.env.filters["camel_case"] = to_camel_case
        self.env.filters["pluralize"] = pluralize

    # -- Single template rendering -----------------------------------------

    def render(self, template_path: str, context: dict[str, Any]) -> str:
        """Render a single template with the provided context.

        Args:
            template_path: Path relative to the template directory (e.g.
                ``"entity/model.rs.j2"``).
            context: Dictionary of variables available inside the template.

        Returns:
            The rendered template content as a string.
        """
        template = self.env.get_template(template_path)
        return template.render(**context)

    # -- Batch rendering ---------------------------------------------------

    def render_project(self, context: dict[str, Any]) -> dict[str, str]:
        """Render every project template.

        Returns:
            Mapping of output path (relative to the project root) to content,
            in a fixed order.
        """
        return {output: self.render(template, context) for template, output in PROJECT_TEMPLATES}

    def render_entity(self, context: dict[str, Any], *, validated: bool = False) -> dict[str, str]:
        """Render the five files of one entity directory.

        ``validated`` swaps the plain model for the variant that declares
        validators and filters.
        """
        files: dict[str, str] = {}
        for template, output in ENTITY_TEMPLATES:
            if validated and output == "model.rs":
                template = VALIDATED_MODEL_TEMPLATE
            files[output] = self.render(template, context)
        return files

    def render_target(self, kind: str, context: dict[str, Any]) -> dict[str, str]:
        """Render the files of a client target (``webapp``, ``desktop`` or ``mobile``).

        Returns:
            Mapping of output path (relative to the target directory) to
            content, in a fixed order.
        """
        return {output: self.render(template, context) for template, output in TARGET_TEMPLATES[kind]}
