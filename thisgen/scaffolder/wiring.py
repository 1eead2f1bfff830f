"""Coordinated wiring updates for a newly added entity.

Adding an entity touches two hand-assembled files in seven places:

* ``src/stores.rs``: one import, then a store field, a constructor variable
  and a struct-literal field under three markers;
* ``src/module.rs``: one import, then the entity type name, the descriptor
  registration, the fetcher arm and the creator arm under four markers.

Every insertion is guarded by ``has_line_after_marker`` so re-running the
wiring for the same entity changes nothing.  A missing marker, or a missing
wiring file, skips that step with a warning; it never aborts the command.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from thisgen.config import ProjectLayout
from thisgen.scaffolder.markers import (
    MarkerNotFoundError,
    add_import,
    has_line_after_marker,
    insert_after_marker,
)
from thisgen.scaffolder.writer import FileWriter


# ---------------------------------------------------------------------------
# Markers
# ---------------------------------------------------------------------------

STORE_FIELDS = "[this:store_fields]"
STORE_INIT_VARS = "[this:store_init_vars]"
STORE_INIT_FIELDS = "[this:store_init_fields]"

ENTITY_TYPES = "[this:entity_types]"
REGISTER_ENTITIES = "[this:register_entities]"
ENTITY_FETCHERS = "[this:entity_fetchers]"
ENTITY_CREATORS = "[this:entity_creators]"


# ---------------------------------------------------------------------------
# Plan
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MarkerEdit:
    """Insert ``line`` after ``marker`` unless ``needle`` is already there."""

    marker: str
    line: str
    needle: str


@dataclass(frozen=True)
class FileWiring:
    """All edits to one wiring file."""

    path: Path
    label: str
    import_line: str
    edits: tuple[MarkerEdit, ...]


@dataclass
class WiringReport:
    """What the wiring pass did, step by step."""

    applied: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    modified_files: list[Path] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.warnings


def plan_entity_wiring(
    layout: ProjectLayout, entity_name: str, entity_pascal: str, entity_plural: str
) -> list[FileWiring]:
    """Build the edits that register one entity in ``stores.rs`` and ``module.rs``."""
    store_field = f"{entity_plural}_store"

    stores = FileWiring(
        path=layout.stores_path,
        label="src/stores.rs",
        import_line=(
            f"use crate::entities::{entity_name}::"
            f"{{InMemory{entity_pascal}Store, {entity_pascal}Store}};"
        ),
        edits=(
            MarkerEdit(
                STORE_FIELDS,
                f"pub {store_field}: Arc<dyn {entity_pascal}Store>,",
                f"pub {store_field}:",
            ),
            MarkerEdit(
                STORE_INIT_VARS,
                f"let {entity_plural} = Arc::new(InMemory{entity_pascal}Store::default());",
                f"let {entity_plural} =",
            ),
            MarkerEdit(
                STORE_INIT_FIELDS,
                f"{store_field}: {entity_plural}.clone(),",
                f"{store_field}: {entity_plural}",
            ),
        ),
    )

    store_ref = f"self.stores.{store_field}"
    module = FileWiring(
        path=layout.module_path,
        label="src/module.rs",
        import_line=f"use crate::entities::{entity_name}::{entity_pascal}Descriptor;",
        edits=(
            MarkerEdit(ENTITY_TYPES, f'"{entity_name}",', f'"{entity_name}"'),
            MarkerEdit(
                REGISTER_ENTITIES,
                f"registry.register(Box::new({entity_pascal}Descriptor::new_with_creator("
                f"{store_ref}.clone(), {store_ref}.clone())));",
                f"Box::new({entity_pascal}Descriptor::new_with_creator(",
            ),
            MarkerEdit(
                ENTITY_FETCHERS,
                f'"{entity_name}" => Some({store_ref}.clone() as Arc<dyn EntityFetcher>),',
                f'"{entity_name}" => Some({store_ref}.clone() as Arc<dyn EntityFetcher>)',
            ),
            MarkerEdit(
                ENTITY_CREATORS,
                f'"{entity_name}" => Some({store_ref}.clone() as Arc<dyn EntityCreator>),',
                f'"{entity_name}" => Some({store_ref}.clone() as Arc<dyn EntityCreator>)',
            ),
        ),
    )
    return [stores, module]


# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------


def apply_edits(content: str, wiring: FileWiring, report: WiringReport) -> str:
    """Apply ``wiring`` to ``content`` in memory, recording each step in ``report``."""
    inserted = 0
    for edit in wiring.edits:
        step = f"{wiring.label} {edit.marker}"
        if has_line_after_marker(content, edit.marker, edit.needle):
            report.skipped.append(f"{step} (already present)")
            continue
        try:
            content = insert_after_marker(content, edit.marker, edit.line)
        except MarkerNotFoundError as exc:
            report.warnings.append(str(MarkerNotFoundError(exc.marker, wiring.path)))
            report.skipped.append(f"{step} (marker missing)")
            continue
        report.applied.append(step)
        inserted += 1

    if inserted:
        updated = add_import(content, wiring.import_line)
        if updated != content:
            report.applied.append(f"{wiring.label} import")
        content = updated
    return content


def apply_entity_wiring(
    wirings: list[FileWiring], writer: FileWriter, report: WiringReport | None = None
) -> WiringReport:
    """Read, mutate and write back every wiring file of the plan."""
    report = report or WiringReport()
    for wiring in wirings:
        if not wiring.path.is_file():
            report.warnings.append(f"{wiring.label} not found, skipping its wiring")
            report.skipped.append(wiring.label)
            continue

        original = wiring.path.read_text(encoding="utf-8")
        updated = apply_edits(original, wiring, report)
        if updated != original:
            writer.update_file(wiring.path, original, updated)
            report.modified_files.append(wiring.path)
    return report
