"""Typed TypeScript client generation.

Turns a ``ProjectIntrospection`` into one self-contained ``api-client.ts``:
an interface and a create-input interface per entity, and an ``ApiClient``
class with one method per introspected route and two per link.  Output is a
pure function of the introspection, so unchanged projects regenerate
byte-identical clients.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, replace

from thisgen.naming import pluralize, to_camel_case, to_pascal_case
from thisgen.parser.models import EntityMeta, HttpMethod, LinkMeta, ProjectIntrospection
from thisgen.scaffolder.templates import CLIENT_TEMPLATE, TemplateRenderer

_OPTION = re.compile(r"^Option\s*<\s*(.+?)\s*>$")
_PATH_PARAM = re.compile(r"\{(\w+)\}")

_STRING_TYPES = frozenset({"String", "&str", "str", "Uuid", "uuid::Uuid"})
_NUMBER_TYPES = frozenset(
    {"f32", "f64", "i8", "i16", "i32", "i64", "u8", "u16", "u32", "u64", "usize", "isize"}
)


@dataclass(frozen=True)
class TsField:
    name: str
    ts_type: str
    optional: bool


@dataclass(frozen=True)
class TsInterface:
    name: str
    fields: tuple[TsField, ...]


@dataclass(frozen=True)
class TsMethod:
    name: str
    params: str
    returns: str
    http_method: str
    path: str
    body: str | None = None


# ---------------------------------------------------------------------------
# Type mapping
# ---------------------------------------------------------------------------


def ts_type(rust_type: str) -> tuple[str, bool]:
    """Map a Rust type expression to ``(typescript type, optional)``.

    ``Option<T>`` becomes ``T | null`` and marks the field optional; types
    with no direct equivalent map to ``unknown``.
    """
    match = _OPTION.match(rust_type.strip())
    if match:
        inner, _ = ts_type(match.group(1))
        return f"{inner} | null", True

    name = rust_type.strip()
    if name in _STRING_TYPES:
        return "string", False
    if name in _NUMBER_TYPES:
        return "number", False
    if name == "bool":
        return "boolean", False
    return "unknown", False


def _interfaces(entity: EntityMeta) -> list[TsInterface]:
    fields = []
    for meta in entity.fields:
        mapped, optional = ts_type(meta.type_name)
        fields.append(TsField(name=meta.name, ts_type=mapped, optional=optional))

    return [
        TsInterface(
            name=entity.type_name,
            fields=(TsField(name="id", ts_type="string", optional=False), *fields),
        ),
        TsInterface(name=f"Create{entity.type_name}Input", fields=tuple(fields)),
    ]


# ---------------------------------------------------------------------------
# Method derivation
# ---------------------------------------------------------------------------


def _template_path(path: str) -> tuple[str, list[str]]:
    """Turn ``/products/{id}`` into a template literal body and its params."""
    params = [to_camel_case(p) for p in _PATH_PARAM.findall(path)]
    literal = _PATH_PARAM.sub(lambda m: "${" + to_camel_case(m.group(1)) + "}", path)
    return literal, params


def _entity_methods(entity: EntityMeta) -> list[TsMethod]:
    pascal = entity.type_name
    collection = f"/{entity.plural}"
    item = f"/{entity.plural}/{{id}}"
    create_input = f"Create{pascal}Input"

    methods: list[TsMethod] = []
    for route in entity.routes:
        literal, params = _template_path(route.path)
        args = [f"{p}: string" for p in params]

        if route.path == collection and route.method == HttpMethod.GET:
            name, returns, body = f"list{to_pascal_case(entity.plural)}", f"{pascal}[]", None
        elif route.path == collection and route.method == HttpMethod.POST:
            name, returns, body = f"create{pascal}", pascal, "input"
            args.append(f"input: {create_input}")
        elif route.path == item and route.method == HttpMethod.GET:
            name, returns, body = f"get{pascal}", pascal, None
        elif route.path == item and route.method == HttpMethod.PUT:
            name, returns, body = f"update{pascal}", pascal, "input"
            args.append(f"input: Partial<{create_input}>")
        elif route.path == item and route.method == HttpMethod.DELETE:
            name, returns, body = f"delete{pascal}", "void", None
        else:
            name, returns, body = _custom_method_name(route.method, route.path), "unknown", None
            if route.method in (HttpMethod.POST, HttpMethod.PUT):
                body = "body"
                args.append("body: unknown")

        methods.append(
            TsMethod(
                name=name,
                params=", ".join(args),
                returns=returns,
                http_method=route.method.value,
                path=literal,
                body=body,
            )
        )
    return methods


def _custom_method_name(method: HttpMethod, path: str) -> str:
    segments = [s for s in path.strip("/").split("/") if s and not _PATH_PARAM.fullmatch(s)]
    words = "_".join(segments) or "root"
    return method.value.lower() + to_pascal_case(words.replace("-", "_"))


def _link_methods(link: LinkMeta, project: ProjectIntrospection) -> list[TsMethod]:
    source = project.entity(link.source)
    target = project.entity(link.target)
    source_plural = source.plural if source else pluralize(link.source)
    target_plural = target.plural if target else pluralize(link.target)

    return [
        TsMethod(
            name=f"list{to_pascal_case(link.source)}{to_pascal_case(link.forward_route)}",
            params="id: string",
            returns=f"{target.type_name}[]" if target else "unknown[]",
            http_method="GET",
            path=f"/{source_plural}/${{id}}/{link.forward_route}",
        ),
        TsMethod(
            name=f"get{to_pascal_case(link.target)}{to_pascal_case(link.reverse_route)}",
            params="id: string",
            returns=f"{source.type_name}[]" if source else "unknown[]",
            http_method="GET",
            path=f"/{target_plural}/${{id}}/{link.reverse_route}",
        ),
    ]


def _dedupe(methods: list[TsMethod]) -> list[TsMethod]:
    """Suffix repeated method names with 2, 3, ... in order of appearance.

    A suffixed name never takes a name that another method already has.
    """
    reserved = {method.name for method in methods}
    emitted: set[str] = set()
    unique: list[TsMethod] = []
    for method in methods:
        if method.name in emitted:
            count = 2
            while f"{method.name}{count}" in reserved or f"{method.name}{count}" in emitted:
                count += 1
            method = replace(method, name=f"{method.name}{count}")
        emitted.add(method.name)
        unique.append(method)
    return unique


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def generate(project: ProjectIntrospection, renderer: TemplateRenderer | None = None) -> str:
    """Render the TypeScript client for *project*."""
    interfaces: list[TsInterface] = []
    methods: list[TsMethod] = []
    for entity in project.entities:
        interfaces.extend(_interfaces(entity))
        methods.extend(_entity_methods(entity))
    for link in project.links:
        methods.extend(_link_methods(link, project))

    renderer = renderer or TemplateRenderer()
    return renderer.render(
        CLIENT_TEMPLATE,
        {
            "interfaces": interfaces,
            "methods": _dedupe(methods),
            "entity_count": len(project.entities),
            "link_count": len(project.links),
        },
    )
