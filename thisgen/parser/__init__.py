"""Project introspection.

Recovers entity, route and link metadata from a this-rs project tree.

Usage::

    from thisgen.parser import introspect

    project = introspect("path/to/api")
    for entity in project.entities:
        print(entity.canonical_name, [r.path for r in entity.routes])
"""

from thisgen.parser.models import (
    EntityMeta,
    FieldMeta,
    HttpMethod,
    LinkMeta,
    LinksManifest,
    ProjectIntrospection,
    RouteMeta,
)
from thisgen.parser.extractor import introspect, load_links_manifest

__all__ = [
    "introspect",
    "load_links_manifest",
    "EntityMeta",
    "FieldMeta",
    "HttpMethod",
    "LinkMeta",
    "LinksManifest",
    "ProjectIntrospection",
    "RouteMeta",
]
