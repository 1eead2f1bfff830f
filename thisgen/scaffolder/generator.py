"""Main scaffolding orchestrator.

``ProjectGenerator`` implements the file-producing commands of the CLI:
creating a project, adding an entity (files plus wiring), adding a link to
the relationship manifest, adding a client target to a workspace and
generating the typed client.  All filesystem writes go through the injected
``FileWriter`` so every command supports ``--dry-run``.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from thisgen.codegen import typescript
from thisgen.config import (
    ProjectLayout,
    TargetConfig,
    TargetType,
    dump_workspace_config,
    dump_yaml,
    load_workspace_config,
)
from thisgen.naming import pluralize, to_pascal_case, to_snake_case
from thisgen.parser.extractor import introspect, load_links_manifest
from thisgen.parser.models import AuthPolicy, EntityConfig, LinkDefinition, ValidationRule
from thisgen.parser.scanner import is_identifier
from thisgen.scaffolder.templates import WORKSPACE_TEMPLATE, TemplateRenderer
from thisgen.scaffolder.wiring import WiringReport, apply_entity_wiring, plan_entity_wiring
from thisgen.scaffolder.writer import FileWriter, RealWriter
from thisgen.utils import WORKSPACE_FILE, find_workspace_root


# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------

THIS_RS_VERSION = "0.0.6"
DEFAULT_PORT = 3000
DEFAULT_API_PATH = "api"

SUPPORTED_FIELD_TYPES: tuple[str, ...] = (
    "String", "f64", "f32", "i32", "i64", "u32", "u64", "bool", "Uuid",
)
_NUMERIC_TYPES = frozenset({"f64", "f32", "i32", "i64", "u32", "u64"})

SUPPORTED_CLIENT_LANGUAGES: tuple[str, ...] = ("typescript",)

SUPPORTED_TARGETS: tuple[TargetType, ...] = (
    TargetType.WEBAPP, TargetType.DESKTOP, TargetType.IOS, TargetType.ANDROID,
)
SUPPORTED_WEBAPP_FRAMEWORKS: tuple[str, ...] = ("react",)
DEFAULT_WEBAPP_FRAMEWORK = "react"

_DEFAULT_TARGET_DIRS: dict[TargetType, str] = {
    TargetType.WEBAPP: "front",
    TargetType.DESKTOP: "targets/desktop",
    TargetType.IOS: "targets/ios",
    TargetType.ANDROID: "targets/android",
}


class ScaffoldError(Exception):
    """Raised when a scaffolding command refuses to proceed."""


# ---------------------------------------------------------------------------
# Field specifications
# ---------------------------------------------------------------------------


class FieldSpec(BaseModel):
    """One ``name:Type`` pair given to ``add entity --fields``."""
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Field identifier")
    type_name: str = Field(..., description="Rust type as given, e.g. 'Option<String>'")
    is_optional: bool = Field(default=False, description="Whether the type is Option<...>")

    @property
    def base_type(self) -> str:
        """The type inside ``Option<...>``, or the type itself."""
        if self.is_optional:
            return self.type_name[len("Option<"):-1]
        return self.type_name

    @property
    def is_numeric(self) -> bool:
        return self.base_type in _NUMERIC_TYPES


def parse_field_specs(spec: str) -> list[FieldSpec]:
    """Parse ``"sku:String,price:f64,description:Option<String>"``.

    Empty segments are skipped and order is preserved.

    Raises:
        ScaffoldError: A segment is not ``name:Type``, the name is not an
            identifier, or the type is not supported.
    """
    fields: list[FieldSpec] = []
    for pair in spec.split(","):
        pair = pair.strip()
        if not pair:
            continue

        name, sep, type_name = pair.partition(":")
        if not sep:
            raise ScaffoldError(
                f"Invalid field format: '{pair}'. Expected 'name:Type' (e.g. 'sku:String')"
            )
        name = name.strip()
        type_name = type_name.strip()
        if not is_identifier(name):
            raise ScaffoldError(f"Invalid field name: '{name}' in '{pair}'")

        is_optional = type_name.startswith("Option<") and type_name.endswith(">")
        base_type = type_name[len("Option<"):-1] if is_optional else type_name
        if base_type not in SUPPORTED_FIELD_TYPES:
            raise ScaffoldError(
                f"Unsupported field type: '{base_type}'. "
                f"Supported types: {', '.join(SUPPORTED_FIELD_TYPES)}"
            )

        fields.append(FieldSpec(name=name, type_name=type_name, is_optional=is_optional))
    return fields


def parse_indexed_fields(spec: str) -> list[str]:
    """Split a comma list of indexed field names, dropping blanks."""
    return [item.strip() for item in spec.split(",") if item.strip()]


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


@dataclass
class InitResult:
    """Outcome of ``init``."""

    project_dir: Path
    api_dir: Path
    files_created: list[Path] = field(default_factory=list)
    workspace: bool = False


@dataclass
class AddEntityResult:
    """Outcome of ``add entity``: created files and the wiring report."""

    entity_name: str
    entity_pascal: str
    entity_plural: str
    entity_dir: Path
    files_created: list[Path] = field(default_factory=list)
    mod_updated: bool = False
    wiring: WiringReport = field(default_factory=WiringReport)


@dataclass
class AddLinkResult:
    """Outcome of ``add link``."""

    link: LinkDefinition
    source_plural: str
    target_plural: str
    entities_added: list[str] = field(default_factory=list)
    validation_rule_added: bool = False


@dataclass
class ClientResult:
    """Outcome of ``generate client``."""

    output_path: Path
    entity_count: int
    link_count: int


@dataclass
class AddTargetResult:
    """Outcome of ``add target``."""

    target: TargetConfig
    target_dir: Path
    files_created: list[Path] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Main generator
# ---------------------------------------------------------------------------


class ProjectGenerator:
    """Scaffolds this-rs projects and keeps their wiring in sync.

    Args:
        writer: Destination for every file operation (defaults to writing
            to disk).
        renderer: Template renderer (defaults to the bundled templates).
    """

    def __init__(
        self,
        writer: FileWriter | None = None,
        renderer: TemplateRenderer | None = None,
    ) -> None:
        self.writer = writer or RealWriter()
        self.renderer = renderer or TemplateRenderer()

    # -- init ----------------------------------------------------------------

    def init_project(
        self,
        name: str,
        path: str | Path = ".",
        *,
        port: int = DEFAULT_PORT,
        this_path: str | None = None,
        workspace: bool = False,
    ) -> InitResult:
        """Create a new API project (or workspace) named *name* under *path*.

        In workspace mode the API lives in ``<name>/api`` next to a
        ``this.yaml``; otherwise it is ``<name>`` itself.

        Raises:
            ScaffoldError: The name is empty or the target directory exists
                and is not empty.
        """
        if not name.strip():
            raise ScaffoldError("Project name must not be empty")

        project_dir = Path(path) / name
        if project_dir.exists() and (not project_dir.is_dir() or any(project_dir.iterdir())):
            raise ScaffoldError(
                f"Directory '{project_dir}' already exists. "
                "Choose a different name or remove it first."
            )

        api_dir = project_dir / DEFAULT_API_PATH if workspace else project_dir
        context = self._project_context(name, port, this_path)
        result = InitResult(project_dir=project_dir, api_dir=api_dir, workspace=workspace)

        layout = ProjectLayout(root=api_dir)
        for directory in (api_dir, layout.entities_dir, layout.links_path.parent):
            self.writer.create_dir_all(directory)

        for relative, content in self.renderer.render_project(context).items():
            target = api_dir / relative
            self.writer.write_file(target, content)
            result.files_created.append(target)

        if workspace:
            target = project_dir / WORKSPACE_FILE
            self.writer.write_file(target, self.renderer.render(WORKSPACE_TEMPLATE, context))
            result.files_created.append(target)

        return result

    @staticmethod
    def _project_context(name: str, port: int, this_path: str | None) -> dict[str, Any]:
        return {
            "project_name": name,
            "project_name_snake": to_snake_case(name),
            "project_pascal": to_pascal_case(to_snake_case(name)),
            "port": port,
            "this_path": this_path,
            "this_version": THIS_RS_VERSION,
            "api_path": DEFAULT_API_PATH,
        }

    # -- add entity ------------------------------------------------------------

    def add_entity(
        self,
        project_root: str | Path,
        name: str,
        *,
        fields: str | None = None,
        indexed: str = "name",
        validated: bool = False,
    ) -> AddEntityResult:
        """Scaffold entity *name* in the project at *project_root*.

        Renders the five entity files, declares the module in
        ``src/entities/mod.rs`` and wires the entity into ``stores.rs`` and
        ``module.rs``.  Wiring problems are reported in the result, not
        raised.

        Raises:
            ScaffoldError: The name is not usable, the field spec is invalid,
                or the entity directory already exists.
        """
        layout = ProjectLayout(root=Path(project_root))
        entity_name = to_snake_case(name)
        if not is_identifier(entity_name):
            raise ScaffoldError(f"Invalid entity name: '{name}'")
        entity_pascal = to_pascal_case(entity_name)
        entity_plural = pluralize(entity_name)

        entity_dir = layout.entity_dir(entity_name)
        if entity_dir.exists():
            raise ScaffoldError(f"Entity '{entity_name}' already exists at {entity_dir}")

        field_specs = parse_field_specs(fields) if fields else []
        context = {
            "entity_name": entity_name,
            "entity_pascal": entity_pascal,
            "entity_plural": entity_plural,
            "fields": field_specs,
            "indexed_fields": parse_indexed_fields(indexed),
            "validated": validated,
        }

        result = AddEntityResult(
            entity_name=entity_name,
            entity_pascal=entity_pascal,
            entity_plural=entity_plural,
            entity_dir=entity_dir,
        )

        self.writer.create_dir_all(entity_dir)
        for filename, content in self.renderer.render_entity(context, validated=validated).items():
            target = entity_dir / filename
            self.writer.write_file(target, content)
            result.files_created.append(target)

        result.mod_updated = self._declare_module(layout, entity_name)

        wirings = plan_entity_wiring(layout, entity_name, entity_pascal, entity_plural)
        result.wiring = apply_entity_wiring(wirings, self.writer)
        return result

    def _declare_module(self, layout: ProjectLayout, entity_name: str) -> bool:
        """Append ``pub mod <entity>;`` to ``src/entities/mod.rs`` if missing."""
        mod_path = layout.entities_mod_path
        declaration = f"pub mod {entity_name};"

        if not mod_path.is_file():
            self.writer.write_file(mod_path, f"{declaration}\n")
            return True

        original = mod_path.read_text(encoding="utf-8")
        if any(line.strip() == declaration for line in original.splitlines()):
            return False

        if original.strip():
            updated = f"{original.rstrip()}\n{declaration}\n"
        else:
            updated = f"{declaration}\n"
        self.writer.update_file(mod_path, original, updated)
        return True

    # -- add link ----------------------------------------------------------------

    def add_link(
        self,
        project_root: str | Path,
        source: str,
        target: str,
        *,
        link_type: str | None = None,
        forward: str | None = None,
        reverse: str | None = None,
        description: str | None = None,
        validation_rule: bool = True,
    ) -> AddLinkResult:
        """Declare a *source* -> *target* relationship in ``config/links.yaml``.

        Defaults: ``link_type`` is ``has_<target>``, the forward route is the
        target's plural and the reverse route is the source name.  Entities
        missing from the manifest's ``entities`` section are added with the
        default auth policy.

        Raises:
            ScaffoldError: The manifest is missing or the link already exists.
            ProjectParseError: The manifest is not valid.
        """
        layout = ProjectLayout(root=Path(project_root))
        links_path = layout.links_path
        if not links_path.is_file():
            raise ScaffoldError(
                f"config/links.yaml not found at {links_path}. "
                "Run 'this init' first or create it manually."
            )

        source = to_snake_case(source)
        target = to_snake_case(target)
        link_type = link_type or f"has_{target}"
        forward = forward or pluralize(target)
        reverse = reverse or source

        original = links_path.read_text(encoding="utf-8")
        manifest = load_links_manifest(links_path)

        if manifest.has_link(link_type, source, target):
            raise ScaffoldError(
                f"Link '{link_type}' from '{source}' to '{target}' already exists in links.yaml"
            )

        result = AddLinkResult(
            link=LinkDefinition(
                link_type=link_type,
                source_type=source,
                target_type=target,
                forward_route_name=forward,
                reverse_route_name=reverse,
                description=description
                or f"{to_pascal_case(source)} -> {to_pascal_case(target)} relationship",
                auth=AuthPolicy(),
            ),
            source_plural=pluralize(source),
            target_plural=pluralize(target),
        )

        for singular, plural in ((source, result.source_plural), (target, result.target_plural)):
            if not manifest.has_entity(singular):
                manifest.entities.append(EntityConfig(singular=singular, plural=plural))
                result.entities_added.append(singular)

        manifest.links.append(result.link)

        if validation_rule:
            manifest.validation_rules.setdefault(link_type, []).append(
                ValidationRule(source=source, targets=[target])
            )
            result.validation_rule_added = True

        updated = dump_yaml(manifest.model_dump(mode="json", exclude_none=True))
        self.writer.update_file(links_path, original, updated)
        return result

    # -- generate client ---------------------------------------------------------

    def generate_client(
        self,
        start: str | Path | None = None,
        *,
        lang: str = "typescript",
        output: str | Path | None = None,
    ) -> ClientResult:
        """Introspect the workspace's API and write a typed client.

        Raises:
            ScaffoldError: Unsupported language, no workspace, or no entities.
            IntrospectionError: The API project cannot be read or parsed.
        """
        if lang not in SUPPORTED_CLIENT_LANGUAGES:
            raise ScaffoldError(
                f"Unsupported language: '{lang}'. "
                f"Currently only {', '.join(SUPPORTED_CLIENT_LANGUAGES)} is supported."
            )

        workspace_root = find_workspace_root(start)
        if workspace_root is None:
            raise ScaffoldError(
                "Not inside a this-rs workspace. Run `this init <name> --workspace` first."
            )

        config = load_workspace_config(workspace_root / WORKSPACE_FILE)
        api_root = config.api_root(workspace_root)
        project = introspect(api_root)
        if not project.entities:
            raise ScaffoldError(
                f"No entities found in {ProjectLayout(root=api_root).entities_dir}. "
                "Add entities with `this add entity <name>` first."
            )

        content = typescript.generate(project, renderer=self.renderer)
        output_path = Path(output) if output else config.client_output_path(workspace_root)
        self.writer.create_dir_all(output_path.parent)
        self.writer.write_file(output_path, content)

        return ClientResult(
            output_path=output_path,
            entity_count=len(project.entities),
            link_count=len(project.links),
        )

    # -- add target --------------------------------------------------------------

    def add_target(
        self,
        target_type: TargetType | str,
        start: str | Path | None = None,
        *,
        framework: str = DEFAULT_WEBAPP_FRAMEWORK,
        name: str | None = None,
    ) -> AddTargetResult:
        """Scaffold a client target in the workspace enclosing *start*.

        A webapp is a Vite SPA; desktop (Tauri) and mobile (Capacitor)
        targets wrap it, so they require a webapp target first.  The new
        target is recorded in ``this.yaml``.

        Raises:
            ScaffoldError: Unsupported target type or framework, no
                workspace, missing webapp prerequisite, duplicate target, or
                an existing target directory.
            IntrospectionError: ``this.yaml`` cannot be read or parsed.
        """
        try:
            target_type = TargetType(target_type)
        except ValueError:
            raise ScaffoldError(f"Unknown target type: '{target_type}'") from None
        if target_type not in SUPPORTED_TARGETS:
            raise ScaffoldError(
                f"Target type '{target_type.value}' is not yet supported. "
                f"Currently supported: {', '.join(t.value for t in SUPPORTED_TARGETS)}."
            )

        workspace_root = find_workspace_root(start)
        if workspace_root is None:
            raise ScaffoldError(
                "Not a this-rs workspace. Run `this init <name> --workspace` first, "
                "or cd into a workspace directory."
            )
        config_path = workspace_root / WORKSPACE_FILE
        config = load_workspace_config(config_path)
        original = config_path.read_text(encoding="utf-8")

        webapp = config.target(TargetType.WEBAPP)
        if target_type == TargetType.WEBAPP:
            if framework not in SUPPORTED_WEBAPP_FRAMEWORKS:
                raise ScaffoldError(
                    f"Unsupported framework: '{framework}'. "
                    f"Supported: {', '.join(SUPPORTED_WEBAPP_FRAMEWORKS)}"
                )
        elif webapp is None:
            raise ScaffoldError(
                f"A webapp target is required before adding a {target_type.value} target. "
                "Run `this add target webapp` first."
            )

        if config.target(target_type) is not None:
            raise ScaffoldError(
                f"A {target_type.value} target already exists in this workspace. "
                "Remove it from this.yaml first if you want to recreate it."
            )

        dir_name = name or _DEFAULT_TARGET_DIRS[target_type]
        target_dir = workspace_root / dir_name
        if target_dir.exists():
            raise ScaffoldError(
                f"Directory '{dir_name}' already exists. "
                "Remove it or use --name to choose a different name."
            )

        context: dict[str, Any] = {
            "project_name": config.name,
            "project_name_snake": to_snake_case(config.name),
            "api_port": config.api.port,
            "framework": framework,
            "platform": target_type.value,
        }
        if target_type == TargetType.WEBAPP:
            kind = "webapp"
            target = TargetConfig(target_type=target_type, framework=framework, path=dir_name)
        else:
            front = workspace_root / webapp.path
            kind = "desktop" if target_type == TargetType.DESKTOP else "mobile"
            dist_base = target_dir / "src-tauri" if kind == "desktop" else target_dir
            context.update(
                front_dir=_relative(front, target_dir),
                frontend_dist=_relative(front / "dist", dist_base),
                api_manifest=_relative(
                    config.api_root(workspace_root) / "Cargo.toml", target_dir
                ),
            )
            runtime = "tauri" if kind == "desktop" else "capacitor"
            target = TargetConfig(target_type=target_type, runtime=runtime, path=dir_name)

        result = AddTargetResult(target=target, target_dir=target_dir)
        for relative, content in self.renderer.render_target(kind, context).items():
            path = target_dir / relative
            self.writer.create_dir_all(path.parent)
            self.writer.write_file(path, content)
            result.files_created.append(path)

        config.targets.append(target)
        self.writer.update_file(config_path, original, dump_workspace_config(config))
        return result


def _relative(path: Path, start: Path) -> str:
    """``path`` relative to ``start``, with forward slashes."""
    return Path(os.path.relpath(path, start)).as_posix()
