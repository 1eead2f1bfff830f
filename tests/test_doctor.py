"""Tests for project diagnostics (thisgen.doctor).

Covers:
- Cargo.toml dependency detection
- Entity directories versus mod.rs declarations (orphans, missing dirs)
- module.rs and stores.rs registration
- Links manifest validation and unknown entity references
- validate_introspection on an in-memory project
- run_checks on scaffolded projects and the printed report
"""

from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from thisgen.config import ProjectLayout
from thisgen.doctor import (
    Diagnostic,
    DiagnosticLevel,
    check_cargo_toml,
    check_entities,
    check_links,
    check_module_registration,
    check_stores,
    declared_modules,
    detect_project_name,
    has_errors,
    print_report,
    run_checks,
    validate_introspection,
)
from thisgen.parser.models import EntityMeta, LinkMeta, ProjectIntrospection
from thisgen.scaffolder.generator import ProjectGenerator


pytestmark = pytest.mark.unit


def _layout(root: Path) -> ProjectLayout:
    return ProjectLayout(root=root)


def _levels(diagnostics: list[Diagnostic]) -> list[DiagnosticLevel]:
    return [d.level for d in diagnostics]


# ---------------------------------------------------------------------------
# Cargo.toml
# ---------------------------------------------------------------------------


class TestCheckCargoToml:
    def _write(self, root: Path, content: str) -> ProjectLayout:
        (root / "Cargo.toml").write_text(textwrap.dedent(content))
        return _layout(root)

    def test_versioned_dependency(self, tmp_path: Path):
        layout = self._write(tmp_path, """\
            [dependencies]
            this = { package = "this-rs", version = "0.0.6" }
        """)
        result = check_cargo_toml(layout)
        assert result.level == DiagnosticLevel.PASS
        assert result.message == "this-rs v0.0.6 detected"

    def test_plain_version_string(self, tmp_path: Path):
        layout = self._write(tmp_path, '[dependencies]\nthis = "0.1"\n')
        assert check_cargo_toml(layout).message == "this-rs v0.1 detected"

    def test_path_dependency(self, tmp_path: Path):
        layout = self._write(tmp_path, '[dependencies]\nthis = { path = "../this-rs" }\n')
        assert check_cargo_toml(layout).message == "this-rs path: ../this-rs detected"

    def test_missing_file(self, tmp_path: Path):
        result = check_cargo_toml(_layout(tmp_path))
        assert result.level == DiagnosticLevel.ERROR
        assert result.message == "File not found"

    def test_no_dependencies_section(self, tmp_path: Path):
        layout = self._write(tmp_path, '[package]\nname = "x"\n')
        assert check_cargo_toml(layout).message == "No [dependencies] section"

    def test_no_this_dependency(self, tmp_path: Path):
        layout = self._write(tmp_path, '[dependencies]\nserde = "1"\n')
        result = check_cargo_toml(layout)
        assert result.level == DiagnosticLevel.ERROR
        assert "No 'this' dependency" in result.message

    def test_invalid_toml(self, tmp_path: Path):
        layout = self._write(tmp_path, "[dependencies\n")
        result = check_cargo_toml(layout)
        assert result.level == DiagnosticLevel.ERROR
        assert result.message.startswith("Invalid TOML")


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------


class TestCheckEntities:
    def _entities(self, root: Path, dirs: list[str], declared: list[str]) -> ProjectLayout:
        entities = root / "src" / "entities"
        entities.mkdir(parents=True)
        for name in dirs:
            (entities / name).mkdir()
        (entities / "mod.rs").write_text("".join(f"pub mod {n};\n" for n in declared))
        return _layout(root)

    def test_consistent(self, tmp_path: Path):
        layout = self._entities(tmp_path, ["order", "product"], ["order", "product"])
        (result,) = check_entities(layout)
        assert result.level == DiagnosticLevel.PASS
        assert result.message == "2 entities found, all declared in mod.rs"

    def test_orphan_directory_is_a_warning(self, tmp_path: Path):
        layout = self._entities(tmp_path, ["order", "product"], ["product"])
        (result,) = check_entities(layout)
        assert result.level == DiagnosticLevel.WARN
        assert result.message == "Directory src/entities/order exists but not declared in mod.rs"

    def test_missing_directory_is_an_error(self, tmp_path: Path):
        layout = self._entities(tmp_path, ["product"], ["product", "ghost"])
        (result,) = check_entities(layout)
        assert result.level == DiagnosticLevel.ERROR
        assert result.message == "mod.rs declares 'pub mod ghost' but directory not found"

    def test_no_entities_directory(self, tmp_path: Path):
        (result,) = check_entities(_layout(tmp_path))
        assert result.level == DiagnosticLevel.PASS

    def test_empty_entities_directory(self, tmp_path: Path):
        layout = self._entities(tmp_path, [], [])
        assert check_entities(layout)[0].message == "No entity directories found"

    def test_declared_modules(self, tmp_path: Path):
        mod_path = tmp_path / "mod.rs"
        mod_path.write_text("// comment\npub mod order;\n  pub mod product ;\nmod private;\n")
        assert declared_modules(mod_path) == ["order", "product"]
        assert declared_modules(tmp_path / "missing.rs") == []


# ---------------------------------------------------------------------------
# module.rs / stores.rs
# ---------------------------------------------------------------------------


class TestRegistrationChecks:
    def test_wired_entity_passes(self, scaffolded_project: Path):
        ProjectGenerator().add_entity(scaffolded_project, "product")
        layout = _layout(scaffolded_project)

        assert _levels(check_module_registration(layout)) == [DiagnosticLevel.PASS]
        assert _levels(check_stores(layout)) == [DiagnosticLevel.PASS]

    def test_unwired_entity_warns(self, scaffolded_project: Path):
        layout = _layout(scaffolded_project)
        (layout.entities_dir / "category").mkdir()
        layout.entities_mod_path.write_text("pub mod category;\n")

        (module,) = check_module_registration(layout)
        (stores,) = check_stores(layout)
        assert module.level == DiagnosticLevel.WARN
        assert module.message == "Entity 'category' not registered in module.rs entity_types"
        assert stores.level == DiagnosticLevel.WARN
        assert "category" in stores.message

    def test_store_of_longer_name_does_not_count(self, scaffolded_project: Path):
        ProjectGenerator().add_entity(scaffolded_project, "order_item")
        layout = _layout(scaffolded_project)
        (layout.entities_dir / "item").mkdir()
        layout.entities_mod_path.write_text("pub mod order_item;\npub mod item;\n")

        (stores,) = check_stores(layout)
        assert stores.level == DiagnosticLevel.WARN
        assert stores.message == "No store configured for entity 'item'"

    def test_no_entities(self, scaffolded_project: Path):
        layout = _layout(scaffolded_project)
        assert _levels(check_module_registration(layout)) == [DiagnosticLevel.PASS]
        assert _levels(check_stores(layout)) == [DiagnosticLevel.PASS]

    def test_missing_files_warn(self, tmp_path: Path):
        layout = _layout(tmp_path)
        assert _levels(check_module_registration(layout)) == [DiagnosticLevel.WARN]
        assert _levels(check_stores(layout)) == [DiagnosticLevel.WARN]

    def test_hand_wired_module_without_marker(self, scaffolded_project: Path):
        layout = _layout(scaffolded_project)
        (layout.entities_dir / "product").mkdir()
        layout.entities_mod_path.write_text("pub mod product;\n")
        layout.module_path.write_text('fn entity_types() -> Vec<&str> { vec!["product"] }\n')

        assert _levels(check_module_registration(layout)) == [DiagnosticLevel.PASS]


# ---------------------------------------------------------------------------
# Links
# ---------------------------------------------------------------------------


class TestCheckLinks:
    def test_missing_manifest_warns(self, tmp_path: Path):
        (result,) = check_links(_layout(tmp_path))
        assert result.level == DiagnosticLevel.WARN
        assert result.message == "config/links.yaml not found"

    def test_empty_manifest(self, scaffolded_project: Path):
        (result,) = check_links(_layout(scaffolded_project))
        assert result.level == DiagnosticLevel.PASS
        assert "No links configured" in result.message

    def test_invalid_manifest_is_an_error(self, scaffolded_project: Path):
        layout = _layout(scaffolded_project)
        layout.links_path.write_text("links: [\n")
        (result,) = check_links(layout)
        assert result.level == DiagnosticLevel.ERROR
        assert result.message.startswith("Invalid config/links.yaml: invalid YAML")

    def test_manifest_entities_count_as_known(self, sample_project: Path):
        (result,) = check_links(_layout(sample_project))
        assert result.level == DiagnosticLevel.PASS
        assert result.message == "Valid configuration (1 links)"

    def test_unknown_entities_warn(self, scaffolded_project: Path):
        layout = _layout(scaffolded_project)
        layout.links_path.write_text(textwrap.dedent("""\
            links:
              - link_type: has_ghost
                source_type: order
                target_type: ghost
                forward_route_name: ghosts
                reverse_route_name: order
        """))
        (layout.entities_dir / "order").mkdir()

        results = check_links(layout)
        assert [d.message for d in results] == [
            "'has_ghost' references unknown target entity 'ghost'"
        ]
        assert _levels(results) == [DiagnosticLevel.WARN]


class TestValidateIntrospection:
    def test_unknown_link_endpoints(self):
        project = ProjectIntrospection(
            entities=(EntityMeta(type_name="Order", canonical_name="order", plural="orders"),),
            links=(
                LinkMeta(
                    link_type="has_invoice",
                    source="order",
                    target="invoice",
                    forward_route="invoices",
                    reverse_route="order",
                ),
            ),
        )
        (result,) = validate_introspection(project)
        assert result.level == DiagnosticLevel.WARN
        assert "unknown target entity 'invoice'" in result.message

    def test_consistent_project(self):
        assert validate_introspection(ProjectIntrospection()) == []


# ---------------------------------------------------------------------------
# run_checks / report
# ---------------------------------------------------------------------------


class TestRunChecks:
    def test_fresh_project_has_no_errors(self, scaffolded_project: Path):
        diagnostics = run_checks(scaffolded_project)
        assert not has_errors(diagnostics)
        assert all(d.level == DiagnosticLevel.PASS for d in diagnostics)

    def test_project_with_entities_and_link(self, scaffolded_project: Path):
        generator = ProjectGenerator()
        generator.add_entity(scaffolded_project, "order")
        generator.add_entity(scaffolded_project, "invoice")
        generator.add_link(scaffolded_project, "order", "invoice")

        diagnostics = run_checks(scaffolded_project)
        assert all(d.level == DiagnosticLevel.PASS for d in diagnostics), diagnostics

    def test_every_check_runs_after_a_failure(self, tmp_path: Path):
        diagnostics = run_checks(tmp_path)
        assert has_errors(diagnostics)
        assert {d.category for d in diagnostics} == {
            "Cargo.toml", "Entities", "Module", "Stores", "Links",
        }

    def test_print_report(self, capsys: pytest.CaptureFixture[str]):
        print_report(
            [
                Diagnostic.passed("Cargo.toml", "ok"),
                Diagnostic.warn("Links", "check [this:entity_types]"),
                Diagnostic.error("Entities", "broken"),
            ],
            "shop",
        )
        out = capsys.readouterr().out
        assert "Checking project: shop" in out
        assert "[this:entity_types]" in out
        assert "1 passed" in out
        assert "1 warning(s)" in out
        assert "1 error(s)" in out

    def test_detect_project_name(self, scaffolded_project: Path, tmp_path: Path):
        assert detect_project_name(_layout(scaffolded_project)) == "shop"
        assert detect_project_name(_layout(tmp_path / "nowhere")) == "unknown"
