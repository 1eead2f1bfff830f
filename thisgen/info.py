"""Project summary for ``this info``.

``summarize_project`` introspects an API project and counts how much of it is
wired; ``print_project_info`` renders the summary through the shared console.
Wiring gaps are reported as counts here; ``this doctor`` names them one by one.
"""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from pathlib import Path

from rich.markup import escape

from thisgen.config import ProjectLayout
from thisgen.doctor import (
    describe_this_dependency,
    detect_project_name,
    has_store,
    is_registered,
    validate_introspection,
)
from thisgen.naming import pluralize
from thisgen.parser.extractor import MODEL_FILE, introspect
from thisgen.utils import console

VALIDATED_MACRO = "impl_data_entity_validated!"


@dataclass
class EntitySummary:
    name: str
    fields: list[str] = field(default_factory=list)
    validated: bool = False


@dataclass
class LinkSummary:
    link_type: str
    source: str
    target: str
    forward_path: str
    reverse_path: str


@dataclass
class ProjectSummary:
    """What ``this info`` reports about one API project."""

    name: str
    this_version: str
    entities: list[EntitySummary] = field(default_factory=list)
    links: list[LinkSummary] = field(default_factory=list)
    module_registered: int = 0
    stores_configured: int = 0
    link_issues: list[str] = field(default_factory=list)

    @property
    def entity_count(self) -> int:
        return len(self.entities)


def this_version(layout: ProjectLayout) -> str:
    """Version (or path) of the ``this`` dependency, ``"unknown"`` when absent."""
    try:
        data = tomllib.loads(layout.cargo_toml_path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, tomllib.TOMLDecodeError):
        return "unknown"
    deps = data.get("dependencies")
    if not isinstance(deps, dict) or "this" not in deps:
        return "unknown"
    return describe_this_dependency(deps["this"])


def _read_or_empty(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        return ""


def summarize_project(project_root: str | Path) -> ProjectSummary:
    """Introspect the project at *project_root* and summarise it.

    Raises:
        IntrospectionError: An entity file or the links manifest cannot be
            read or parsed.
    """
    layout = ProjectLayout(root=Path(project_root))
    project = introspect(layout.root)

    summary = ProjectSummary(name=detect_project_name(layout), this_version=this_version(layout))
    for entity in project.entities:
        model = _read_or_empty(layout.entity_dir(entity.canonical_name) / MODEL_FILE)
        summary.entities.append(
            EntitySummary(
                name=entity.canonical_name,
                fields=[f.name for f in entity.fields],
                validated=VALIDATED_MACRO in model,
            )
        )

    for link in project.links:
        source = project.entity(link.source)
        target = project.entity(link.target)
        source_plural = source.plural if source else pluralize(link.source)
        target_plural = target.plural if target else pluralize(link.target)
        summary.links.append(
            LinkSummary(
                link_type=link.link_type,
                source=link.source,
                target=link.target,
                forward_path=f"/{source_plural}/{{id}}/{link.forward_route}",
                reverse_path=f"/{target_plural}/{{id}}/{link.reverse_route}",
            )
        )

    module = _read_or_empty(layout.module_path)
    stores = _read_or_empty(layout.stores_path)
    names = project.entity_names()
    summary.module_registered = sum(1 for n in names if module and is_registered(module, n))
    summary.stores_configured = sum(1 for n in names if stores and has_store(stores, n))
    summary.link_issues = [d.message for d in validate_introspection(project)]
    return summary


def _status(done: int, total: int) -> str:
    return "[yellow]WARN[/yellow]" if done < total else "[green]OK[/green]"


def print_project_info(summary: ProjectSummary) -> None:
    """Print the project summary through the shared console."""
    console.print()
    console.print(f"[bold]Project:[/bold] [bold cyan]{escape(summary.name)}[/bold cyan]")
    console.print(f"  Framework: this-rs [dim]{escape(summary.this_version)}[/dim]")
    console.print()

    if not summary.entities:
        console.print("[bold]Entities:[/bold] [dim]none[/dim]")
    else:
        console.print(f"[bold]Entities ({summary.entity_count}):[/bold]")
        for entity in summary.entities:
            fields = escape(", ".join(entity.fields)) if entity.fields else "[dim]no fields[/dim]"
            tag = " [yellow]\\[validated][/yellow]" if entity.validated else ""
            console.print(f"  - [bold]{escape(entity.name)}[/bold] (fields: {fields}){tag}")
    console.print()

    if not summary.links:
        console.print("[bold]Links:[/bold] [dim]none[/dim]")
    else:
        console.print(f"[bold]Links ({len(summary.links)}):[/bold]")
        for link in summary.links:
            console.print(
                f"  - [bold]{escape(link.source)}[/bold] -> [bold]{escape(link.target)}[/bold]"
                f" [dim]({escape(link.link_type)})[/dim]"
            )
            console.print(f"      Forward: {escape(link.forward_path)}")
            console.print(f"      Reverse: {escape(link.reverse_path)}")
    console.print()

    total = summary.entity_count
    console.print("[bold]Status:[/bold]")
    if total == 0:
        console.print("  [green]OK[/green] Module: [dim]No entities to register[/dim]")
        console.print("  [green]OK[/green] Stores: [dim]No stores to configure[/dim]")
    else:
        console.print(
            f"  {_status(summary.module_registered, total)} Module: "
            f"{summary.module_registered}/{total} entities registered"
        )
        console.print(
            f"  {_status(summary.stores_configured, total)} Stores: "
            f"{summary.stores_configured}/{total} stores configured"
        )
    if not summary.link_issues:
        console.print("  [green]OK[/green] Links: Valid configuration")
    else:
        console.print("  [yellow]WARN[/yellow] Links: [yellow]Issues found[/yellow]")
        for issue in summary.link_issues:
            console.print(f"      -> {escape(issue)}")
    console.print()
