"""Project consistency diagnostics.

``run_checks`` inspects a project and returns one ``Diagnostic`` per finding.
Every check runs even when an earlier one failed, so a single pass reports
all problems.  Nothing here raises for semantic problems: a project in the
middle of an edit is expected to be inconsistent.
"""

from __future__ import annotations

import tomllib
from collections.abc import Iterable
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field
from rich.markup import escape

from thisgen.config import ProjectLayout
from thisgen.errors import IntrospectionError
from thisgen.naming import pluralize
from thisgen.parser.extractor import list_entity_dirs, load_links_manifest
from thisgen.parser.models import ProjectIntrospection
from thisgen.scaffolder.markers import has_line_after_marker
from thisgen.scaffolder.wiring import ENTITY_TYPES, STORE_FIELDS
from thisgen.utils import console


# ---------------------------------------------------------------------------
# Diagnostic model
# ---------------------------------------------------------------------------

class DiagnosticLevel(str, Enum):
    PASS = "pass"
    WARN = "warn"
    ERROR = "error"


class Diagnostic(BaseModel):
    """One finding of a consistency check."""

    level: DiagnosticLevel
    category: str = Field(..., description="Check name, e.g. 'Entities'")
    message: str

    @classmethod
    def passed(cls, category: str, message: str) -> "Diagnostic":
        return cls(level=DiagnosticLevel.PASS, category=category, message=message)

    @classmethod
    def warn(cls, category: str, message: str) -> "Diagnostic":
        return cls(level=DiagnosticLevel.WARN, category=category, message=message)

    @classmethod
    def error(cls, category: str, message: str) -> "Diagnostic":
        return cls(level=DiagnosticLevel.ERROR, category=category, message=message)


def has_errors(diagnostics: list[Diagnostic]) -> bool:
    return any(d.level == DiagnosticLevel.ERROR for d in diagnostics)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def declared_modules(mod_path: Path) -> list[str]:
    """Names declared as ``pub mod <name>;`` in an entities ``mod.rs``.

    A missing or unreadable file declares nothing.
    """
    try:
        content = mod_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        return []

    names = []
    for line in content.splitlines():
        stripped = line.strip()
        if stripped.startswith("pub mod "):
            names.append(stripped[len("pub mod "):].rstrip(";").strip())
    return names


def _contains_after(content: str, marker: str, needle: str) -> bool:
    """Needle after the marker, or anywhere when the marker is gone."""
    if marker in content:
        return has_line_after_marker(content, marker, needle)
    return needle in content


def is_registered(module_content: str, entity_name: str) -> bool:
    """Whether ``module.rs`` lists *entity_name* in its entity types."""
    return _contains_after(module_content, ENTITY_TYPES, f'"{entity_name}"')


def has_store(stores_content: str, entity_name: str) -> bool:
    """Whether ``stores.rs`` declares the ``<plural>_store`` field of *entity_name*."""
    return _contains_after(stores_content, STORE_FIELDS, f"pub {pluralize(entity_name)}_store:")


def describe_this_dependency(dep: object) -> str:
    """Human form of the ``this`` dependency entry of a Cargo.toml."""
    if isinstance(dep, str):
        return f"v{dep}"
    if isinstance(dep, dict) and "version" in dep:
        return f"v{dep['version']}"
    if isinstance(dep, dict) and "path" in dep:
        return f"path: {dep['path']}"
    return "unknown version"


# ---------------------------------------------------------------------------
# Checks
# ---------------------------------------------------------------------------

def check_cargo_toml(layout: ProjectLayout) -> Diagnostic:
    """The project must depend on this-rs under the name ``this``."""
    category = "Cargo.toml"
    path = layout.cargo_toml_path
    if not path.is_file():
        return Diagnostic.error(category, "File not found")

    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError) as exc:
        return Diagnostic.error(category, f"Cannot read: {exc}")
    except tomllib.TOMLDecodeError as exc:
        return Diagnostic.error(category, f"Invalid TOML: {exc}")

    deps = data.get("dependencies")
    if not isinstance(deps, dict):
        return Diagnostic.error(category, "No [dependencies] section")

    dep = deps.get("this")
    if dep is None:
        return Diagnostic.error(category, "No 'this' dependency found. Is this a this-rs project?")

    return Diagnostic.passed(category, f"this-rs {describe_this_dependency(dep)} detected")


def check_entities(layout: ProjectLayout) -> list[Diagnostic]:
    """Entity directories versus ``pub mod`` declarations.

    A directory nobody declares is an orphan (warning); a declaration
    without a directory breaks the build (error).
    """
    category = "Entities"
    if not layout.entities_dir.is_dir():
        return [Diagnostic.passed(category, "No src/entities/ directory (no entities yet)")]

    try:
        directories = [p.name for p in list_entity_dirs(layout.entities_dir)]
    except IntrospectionError:
        return [Diagnostic.error(category, "Cannot read src/entities/ directory")]

    if not directories:
        return [Diagnostic.passed(category, "No entity directories found")]

    declared = declared_modules(layout.entities_mod_path)
    results: list[Diagnostic] = []
    for name in directories:
        if name not in declared:
            results.append(
                Diagnostic.warn(
                    category, f"Directory src/entities/{name} exists but not declared in mod.rs"
                )
            )
    for name in declared:
        if name not in directories:
            results.append(
                Diagnostic.error(category, f"mod.rs declares 'pub mod {name}' but directory not found")
            )

    if not results:
        results.append(
            Diagnostic.passed(category, f"{len(directories)} entities found, all declared in mod.rs")
        )
    return results


def check_module_registration(layout: ProjectLayout) -> list[Diagnostic]:
    """Every declared entity must be listed in ``entity_types`` of module.rs."""
    category = "Module"
    if not layout.module_path.is_file():
        return [Diagnostic.warn(category, "src/module.rs not found")]

    names = declared_modules(layout.entities_mod_path)
    if not names:
        return [Diagnostic.passed(category, "No entities to register")]

    try:
        content = layout.module_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        return [Diagnostic.error(category, "Cannot read src/module.rs")]

    missing = [n for n in names if not is_registered(content, n)]
    if not missing:
        return [Diagnostic.passed(category, f"All {len(names)} entities registered")]
    return [
        Diagnostic.warn(category, f"Entity '{name}' not registered in module.rs entity_types")
        for name in missing
    ]


def check_stores(layout: ProjectLayout) -> list[Diagnostic]:
    """Every declared entity needs a ``<plural>_store`` field in stores.rs."""
    category = "Stores"
    if not layout.stores_path.is_file():
        return [Diagnostic.warn(category, "src/stores.rs not found")]

    names = declared_modules(layout.entities_mod_path)
    if not names:
        return [Diagnostic.passed(category, "No stores to configure")]

    try:
        content = layout.stores_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        return [Diagnostic.error(category, "Cannot read src/stores.rs")]

    missing = [n for n in names if not has_store(content, n)]
    if not missing:
        return [Diagnostic.passed(category, f"All {len(names)} stores configured")]
    return [Diagnostic.warn(category, f"No store configured for entity '{name}'") for name in missing]


def check_links(layout: ProjectLayout) -> list[Diagnostic]:
    """The manifest parses and every link names a known entity."""
    category = "Links"
    if not layout.links_path.is_file():
        return [Diagnostic.warn(category, "config/links.yaml not found")]

    try:
        manifest = load_links_manifest(layout.links_path)
    except IntrospectionError as exc:
        return [Diagnostic.error(category, f"Invalid config/links.yaml: {exc.reason}")]

    if not manifest.links:
        return [Diagnostic.passed(category, "No links configured (empty)")]

    try:
        known = {p.name for p in list_entity_dirs(layout.entities_dir)}
    except IntrospectionError:
        known = set()
    known.update(e.singular for e in manifest.entities)

    results = _unknown_link_entities(
        ((l.link_type, l.source_type, l.target_type) for l in manifest.links), known
    )
    if not results:
        results.append(
            Diagnostic.passed(category, f"Valid configuration ({len(manifest.links)} links)")
        )
    return results


def _unknown_link_entities(
    links: Iterable[tuple[str, str, str]], known: set[str]
) -> list[Diagnostic]:
    results = []
    for link_type, source, target in links:
        if source not in known:
            results.append(
                Diagnostic.warn("Links", f"'{link_type}' references unknown source entity '{source}'")
            )
        if target not in known:
            results.append(
                Diagnostic.warn("Links", f"'{link_type}' references unknown target entity '{target}'")
            )
    return results


def validate_introspection(project: ProjectIntrospection) -> list[Diagnostic]:
    """Warn about links whose source or target is not an introspected entity."""
    known = set(project.entity_names())
    return _unknown_link_entities(
        ((l.link_type, l.source, l.target) for l in project.links), known
    )


def run_checks(project_root: str | Path) -> list[Diagnostic]:
    """Run every check against the project at *project_root*."""
    layout = ProjectLayout(root=Path(project_root))
    results = [check_cargo_toml(layout)]
    results.extend(check_entities(layout))
    results.extend(check_module_registration(layout))
    results.extend(check_stores(layout))
    results.extend(check_links(layout))
    return results


# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------

_LEVEL_STYLE = {
    DiagnosticLevel.PASS: ("[green]PASS[/green]", "{}"),
    DiagnosticLevel.WARN: ("[yellow]WARN[/yellow]", "[yellow]{}[/yellow]"),
    DiagnosticLevel.ERROR: ("[red]FAIL[/red]", "[red]{}[/red]"),
}


def print_report(diagnostics: list[Diagnostic], project_name: str = "") -> None:
    """Print diagnostics and a one-line summary through the shared console."""
    console.print()
    if project_name:
        console.print(f"[bold]Checking project:[/bold] [bold cyan]{escape(project_name)}[/bold cyan]")
        console.print()

    for diagnostic in diagnostics:
        badge, style = _LEVEL_STYLE[diagnostic.level]
        message = style.format(escape(diagnostic.message))
        console.print(f"  {badge} [bold]{escape(diagnostic.category)}[/bold]: {message}")

    counts = {level: 0 for level in DiagnosticLevel}
    for diagnostic in diagnostics:
        counts[diagnostic.level] += 1

    summary = f"[green]{counts[DiagnosticLevel.PASS]} passed[/green]"
    if counts[DiagnosticLevel.WARN]:
        summary += f", [yellow]{counts[DiagnosticLevel.WARN]} warning(s)[/yellow]"
    if counts[DiagnosticLevel.ERROR]:
        summary += f", [red]{counts[DiagnosticLevel.ERROR]} error(s)[/red]"
    console.print()
    console.print(f"Summary: {summary}")
    console.print()


def detect_project_name(layout: ProjectLayout) -> str:
    """``[package].name`` from Cargo.toml, or ``"unknown"``."""
    try:
        data = tomllib.loads(layout.cargo_toml_path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, tomllib.TOMLDecodeError):
        return "unknown"
    name = data.get("package", {}).get("name")
    return name if isinstance(name, str) else "unknown"
