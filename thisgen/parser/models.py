"""Pydantic v2 models for project introspection and the links manifest.

The introspection models (``FieldMeta`` .. ``ProjectIntrospection``) are frozen:
they are built once per introspection pass and never mutated afterwards.  The
manifest models describe ``config/links.yaml`` and are used both to validate it
on read and to write it back after ``add link``.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class HttpMethod(str, Enum):
    """HTTP methods recognised in descriptor route chains."""
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"


# ---------------------------------------------------------------------------
# Introspection Models
# ---------------------------------------------------------------------------

class FieldMeta(BaseModel):
    """A single declared entity attribute."""
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Field identifier, e.g. 'price'")
    type_name: str = Field(..., description="Type expression as written, e.g. 'Option<String>'")


class RouteMeta(BaseModel):
    """One HTTP method registered on one path pattern."""
    model_config = ConfigDict(frozen=True)

    method: HttpMethod = Field(..., description="HTTP method")
    path: str = Field(..., description="Path pattern, e.g. '/products/{id}'")


class EntityMeta(BaseModel):
    """Everything recovered about one entity directory."""
    model_config = ConfigDict(frozen=True)

    type_name: str = Field(..., description="PascalCase type name, e.g. 'Product'")
    canonical_name: str = Field(..., description="snake_case name, e.g. 'product'")
    plural: str = Field(..., description="Plural form used in routes and store names")
    indexed_fields: tuple[str, ...] = Field(default=(), description="Indexed field names")
    fields: tuple[FieldMeta, ...] = Field(default=(), description="Fields in declaration order")
    routes: tuple[RouteMeta, ...] = Field(default=(), description="Routes in source order")


class LinkMeta(BaseModel):
    """A typed relationship declared in the links manifest."""
    model_config = ConfigDict(frozen=True)

    link_type: str = Field(..., description="Link type, e.g. 'has_invoice'")
    source: str = Field(..., description="Source entity (snake_case)")
    target: str = Field(..., description="Target entity (snake_case)")
    forward_route: str = Field(..., description="Route name on the source, e.g. 'invoices'")
    reverse_route: str = Field(..., description="Route name on the target, e.g. 'order'")


class ProjectIntrospection(BaseModel):
    """Aggregate result of one introspection pass over a project tree."""
    model_config = ConfigDict(frozen=True)

    entities: tuple[EntityMeta, ...] = Field(
        default=(), description="Entities sorted by directory name"
    )
    links: tuple[LinkMeta, ...] = Field(default=(), description="Links in manifest order")

    def entity(self, canonical_name: str) -> Optional[EntityMeta]:
        """Return the entity with the given snake_case name, if any."""
        for entity in self.entities:
            if entity.canonical_name == canonical_name:
                return entity
        return None

    def entity_names(self) -> list[str]:
        """Return the canonical names of all entities, in introspection order."""
        return [e.canonical_name for e in self.entities]


# ---------------------------------------------------------------------------
# Links Manifest Models
# ---------------------------------------------------------------------------

_DEFAULT_AUTH = "authenticated"


class AuthPolicy(BaseModel):
    """Per-operation auth policy for an entity or a link."""
    list: str = Field(default=_DEFAULT_AUTH)
    get: str = Field(default=_DEFAULT_AUTH)
    create: str = Field(default=_DEFAULT_AUTH)
    update: str = Field(default=_DEFAULT_AUTH)
    delete: str = Field(default=_DEFAULT_AUTH)


class EntityConfig(BaseModel):
    """An entry of the manifest's ``entities`` section."""
    singular: str = Field(..., description="snake_case entity name")
    plural: str = Field(..., description="Plural route segment")
    auth: AuthPolicy = Field(default_factory=AuthPolicy)


class LinkDefinition(BaseModel):
    """An entry of the manifest's ``links`` section."""
    link_type: str
    source_type: str
    target_type: str
    forward_route_name: str
    reverse_route_name: str
    description: Optional[str] = Field(default=None)
    auth: Optional[AuthPolicy] = Field(default=None)

    def to_meta(self) -> LinkMeta:
        """Project the manifest entry onto the introspection model."""
        return LinkMeta(
            link_type=self.link_type,
            source=self.source_type,
            target=self.target_type,
            forward_route=self.forward_route_name,
            reverse_route=self.reverse_route_name,
        )


class ValidationRule(BaseModel):
    """Allowed targets for a link type from a given source."""
    source: str
    targets: list[str] = Field(default_factory=list)


class LinksManifest(BaseModel):
    """The whole ``config/links.yaml`` document.

    Unknown top-level keys are ignored; they belong to other tools.
    """
    entities: list[EntityConfig] = Field(default_factory=list)
    links: list[LinkDefinition] = Field(default_factory=list)
    validation_rules: dict[str, list[ValidationRule]] = Field(default_factory=dict)

    def has_entity(self, singular: str) -> bool:
        return any(e.singular == singular for e in self.entities)

    def has_link(self, link_type: str, source: str, target: str) -> bool:
        return any(
            l.link_type == link_type and l.source_type == source and l.target_type == target
            for l in self.links
        )
