"""Integration tests for the scaffold-then-introspect round trip.

These tests run the real generator, wiring, introspection, client generator
and doctor against a workspace in a temporary directory.  No Rust toolchain
is required: the generated sources are checked by parsing them back.
"""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from thisgen.config import ProjectLayout
from thisgen.doctor import DiagnosticLevel, run_checks, validate_introspection
from thisgen.parser.extractor import introspect
from thisgen.parser.models import HttpMethod
from thisgen.scaffolder.generator import ProjectGenerator
from thisgen.scaffolder.wiring import apply_entity_wiring, plan_entity_wiring
from thisgen.scaffolder.writer import RealWriter


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def shop_workspace(tmp_path: Path) -> Path:
    """A workspace with product, category and order entities and two links."""
    generator = ProjectGenerator()
    init = generator.init_project("shop", tmp_path, workspace=True)
    api = init.api_dir

    generator.add_entity(
        api,
        "product",
        fields="sku:String,price:f64,description:Option<String>",
        indexed="sku",
    )
    generator.add_entity(api, "category", fields="label:String", validated=True)
    generator.add_entity(api, "Order", fields="paid:bool,total:f64")
    generator.add_link(api, "category", "product")
    generator.add_link(api, "order", "product", link_type="contains", forward="items")
    return init.project_dir


# ---------------------------------------------------------------------------
# Round trip
# ---------------------------------------------------------------------------

@pytest.mark.integration
class TestScaffoldRoundTrip:
    def test_introspection_recovers_entities(self, shop_workspace: Path):
        project = introspect(shop_workspace / "api")

        assert project.entity_names() == ["category", "order", "product"]

        category = project.entity("category")
        assert category is not None
        assert category.type_name == "Category"
        assert category.plural == "categories"
        assert [f.name for f in category.fields] == ["label"]

        product = project.entity("product")
        assert product is not None
        assert product.indexed_fields == ("sku",)
        assert [(f.name, f.type_name) for f in product.fields] == [
            ("sku", "String"),
            ("price", "f64"),
            ("description", "Option<String>"),
        ]
        assert [(r.method, r.path) for r in product.routes] == [
            (HttpMethod.GET, "/products"),
            (HttpMethod.POST, "/products"),
            (HttpMethod.GET, "/products/{id}"),
            (HttpMethod.PUT, "/products/{id}"),
            (HttpMethod.DELETE, "/products/{id}"),
        ]

    def test_introspection_recovers_links(self, shop_workspace: Path):
        project = introspect(shop_workspace / "api")

        assert [(l.link_type, l.source, l.target, l.forward_route, l.reverse_route)
                for l in project.links] == [
            ("has_product", "category", "product", "products", "category"),
            ("contains", "order", "product", "items", "order"),
        ]
        assert validate_introspection(project) == []

    def test_introspection_is_deterministic(self, shop_workspace: Path):
        assert introspect(shop_workspace / "api") == introspect(shop_workspace / "api")

    def test_manifest_is_valid_yaml(self, shop_workspace: Path):
        data = yaml.safe_load((shop_workspace / "api" / "config" / "links.yaml").read_text())
        assert [e["singular"] for e in data["entities"]] == ["category", "product", "order"]
        assert set(data["validation_rules"]) == {"has_product", "contains"}

    def test_doctor_reports_no_problems(self, shop_workspace: Path):
        diagnostics = run_checks(shop_workspace / "api")
        assert all(d.level == DiagnosticLevel.PASS for d in diagnostics), diagnostics

    def test_rewiring_is_a_no_op(self, shop_workspace: Path):
        api = shop_workspace / "api"
        stores_before = (api / "src" / "stores.rs").read_text()

        plan = plan_entity_wiring(ProjectLayout(root=api), "product", "Product", "products")
        report = apply_entity_wiring(plan, RealWriter())

        assert report.applied == []
        assert (api / "src" / "stores.rs").read_text() == stores_before

    def test_every_entity_is_wired(self, shop_workspace: Path):
        api = shop_workspace / "api"
        stores = (api / "src" / "stores.rs").read_text()
        module = (api / "src" / "module.rs").read_text()
        for name, pascal, plural in (
            ("product", "Product", "products"),
            ("category", "Category", "categories"),
            ("order", "Order", "orders"),
        ):
            assert f"pub {plural}_store: Arc<dyn {pascal}Store>," in stores
            assert f"use crate::entities::{name}::{pascal}Descriptor;" in module
            assert f'"{name}" => Some(self.stores.{plural}_store.clone() as Arc<dyn EntityCreator>),' in module

    def test_generated_client(self, shop_workspace: Path):
        result = ProjectGenerator().generate_client(shop_workspace)
        client = result.output_path.read_text()

        assert result.entity_count == 3
        assert result.link_count == 2
        assert "export interface Category {" in client
        assert "listCategories(): Promise<Category[]>" in client
        assert "listCategoryProducts(id: string): Promise<Product[]>" in client
        assert "listOrderItems(id: string): Promise<Product[]>" in client
        assert "getProductOrder(id: string): Promise<Order[]>" in client
        assert "`/orders/${id}/items`" in client

        again = ProjectGenerator().generate_client(shop_workspace)
        assert again.output_path.read_text() == client
