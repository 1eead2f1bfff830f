"""Shared pytest fixtures for the thisgen test suite.

Provides reusable fixtures for:
- Sample entity model, descriptor and links manifest sources
- A hand-built project tree for introspection tests
- A freshly scaffolded project (``this init``) for wiring and doctor tests
"""

from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from thisgen.scaffolder.generator import ProjectGenerator
from thisgen.utils import console


# ---------------------------------------------------------------------------
# Console
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def wide_console(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep Rich from wrapping long temporary paths in captured output."""
    monkeypatch.setattr(console, "width", 200)


# ---------------------------------------------------------------------------
# Sample sources
# ---------------------------------------------------------------------------

@pytest.fixture
def product_model_text() -> str:
    """A ``model.rs`` declaring a Product with three fields."""
    return textwrap.dedent("""\
        use this::prelude::*;

        impl_data_entity!(
            Product,
            "product",
            ["name", "sku"],
            {
                sku: String,
                price: f64,
                description: Option<String>,
            }
        );
    """)


@pytest.fixture
def product_descriptor_text() -> str:
    """A ``descriptor.rs`` with the five standard CRUD routes."""
    return textwrap.dedent("""\
        use axum::routing::get;
        use axum::Router;
        use this::prelude::*;

        impl EntityDescriptor for ProductDescriptor {
            fn entity_type(&self) -> &str {
                "product"
            }

            fn plural(&self) -> &str {
                "products"
            }

            fn build_routes(&self) -> Router {
                Router::new()
                    .route(
                        "/products",
                        get(handlers::list_products).post(handlers::create_product),
                    )
                    .route(
                        "/products/{id}",
                        get(handlers::get_product)
                            .put(handlers::update_product)
                            .delete(handlers::delete_product),
                    )
                    .with_state(self.state.clone())
            }
        }
    """)


@pytest.fixture
def links_manifest_text() -> str:
    """A links manifest with one order -> invoice link."""
    return textwrap.dedent("""\
        entities:
          - singular: order
            plural: orders
          - singular: invoice
            plural: invoices
        links:
          - link_type: has_invoice
            source_type: order
            target_type: invoice
            forward_route_name: invoices
            reverse_route_name: order
            description: Order -> Invoice relationship
        validation_rules:
          has_invoice:
            - source: order
              targets: [invoice]
    """)


# ---------------------------------------------------------------------------
# Project trees
# ---------------------------------------------------------------------------

def write_entity(root: Path, name: str, model: str, descriptor: str | None = None) -> Path:
    """Create ``src/entities/<name>/`` with a model and an optional descriptor."""
    entity_dir = root / "src" / "entities" / name
    entity_dir.mkdir(parents=True, exist_ok=True)
    (entity_dir / "model.rs").write_text(model, encoding="utf-8")
    if descriptor is not None:
        (entity_dir / "descriptor.rs").write_text(descriptor, encoding="utf-8")
    return entity_dir


@pytest.fixture
def make_entity():
    """Factory fixture wrapping ``write_entity``."""
    return write_entity


@pytest.fixture
def sample_project(
    tmp_path: Path,
    product_model_text: str,
    product_descriptor_text: str,
    links_manifest_text: str,
) -> Path:
    """A minimal hand-written project tree with one entity and a manifest."""
    root = tmp_path / "shop"
    (root / "config").mkdir(parents=True)
    (root / "Cargo.toml").write_text(
        textwrap.dedent("""\
            [package]
            name = "shop"
            version = "0.1.0"

            [dependencies]
            this = { package = "this-rs", version = "0.0.6" }
        """),
        encoding="utf-8",
    )
    write_entity(root, "product", product_model_text, product_descriptor_text)
    (root / "config" / "links.yaml").write_text(links_manifest_text, encoding="utf-8")
    return root


@pytest.fixture
def scaffolded_project(tmp_path: Path) -> Path:
    """A project created by ``this init shop``; returns its root."""
    result = ProjectGenerator().init_project("shop", tmp_path)
    return result.api_dir
