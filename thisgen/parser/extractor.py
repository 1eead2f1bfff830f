"""Project introspection for this-rs API projects.

Recovers entity, route and link metadata from a project tree without a Rust
parser.  Three inputs are read:

* ``src/entities/<name>/model.rs``: one ``impl_data_entity!`` (or
  ``impl_data_entity_validated!``) invocation per entity;
* ``src/entities/<name>/descriptor.rs``: the plural form and the
  ``.route("path", get(..).post(..))`` table, both optional;
* ``config/links.yaml``: the relationship manifest, optional.

Missing optional files degrade to defaults.  A file that is present but does
not have the expected shape raises ``ProjectParseError``; guessing would let a
code generator emit a client that compiles but is wrong.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ValidationError

from thisgen.config import ProjectLayout, describe_validation_error
from thisgen.errors import ProjectIOError, ProjectParseError
from thisgen.parser.models import (
    EntityMeta,
    FieldMeta,
    HttpMethod,
    LinkMeta,
    LinksManifest,
    ProjectIntrospection,
    RouteMeta,
)
from thisgen.parser.scanner import (
    ScanError,
    Segment,
    context_at,
    find_closing,
    inner,
    is_identifier,
    line_of,
    mask_comments,
    split_chain,
    split_top_level,
    string_literal,
)


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

MODEL_FILE = "model.rs"
DESCRIPTOR_FILE = "descriptor.rs"

_ENTITY_MACRO_PATTERN = re.compile(r"\b(impl_data_entity(?:_validated)?)\s*!\s*\(")
_ENTITY_SHAPE = 'NAME, "canonical_name", ["index", ...], { field: Type, ... }'
_FIELD_PATTERN = re.compile(r"^([A-Za-z_][A-Za-z0-9_]*)\s*:\s*(\S.*)$", re.DOTALL)
_PLURAL_PATTERN = re.compile(
    r"fn\s+plural\s*\(\s*&\s*self\s*\)\s*->\s*&\s*(?:'static\s+)?str\s*\{\s*\"(\w+)\""
)
_ROUTE_CALL_PATTERN = re.compile(r"\.\s*route\s*\(")
_CHAIN_CALL_PATTERN = re.compile(r"^([A-Za-z_][A-Za-z0-9_:]*)\s*\(")
_METHOD_TOKENS = {m.value.lower(): m for m in HttpMethod}


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def introspect(project_root: str | Path) -> ProjectIntrospection:
    """Introspect the API project at ``project_root``.

    Entity directories are visited in byte-wise name order so repeated runs on
    unchanged input give identical results.  Directories without a
    ``model.rs`` are skipped.

    Raises:
        ProjectIOError: The root, the entities directory or a present file
            cannot be read.
        ProjectParseError: A present file does not have the expected shape.
    """
    layout = ProjectLayout(root=Path(project_root))
    if not layout.root.is_dir():
        raise ProjectIOError(layout.root, "project root is not a readable directory")

    entities: list[EntityMeta] = []
    for entity_dir in list_entity_dirs(layout.entities_dir):
        model_path = entity_dir / MODEL_FILE
        if not model_path.is_file():
            continue

        entity = parse_entity_model(model_path)

        descriptor_path = entity_dir / DESCRIPTOR_FILE
        if descriptor_path.is_file():
            plural, routes = parse_descriptor(descriptor_path)
            update: dict[str, Any] = {"routes": tuple(routes)}
            if plural:
                update["plural"] = plural
            entity = entity.model_copy(update=update)

        entities.append(entity)

    links: list[LinkMeta] = []
    if layout.links_path.is_file():
        links = parse_links(layout.links_path)

    return ProjectIntrospection(entities=tuple(entities), links=tuple(links))


def list_entity_dirs(entities_dir: Path) -> list[Path]:
    """Immediate sub-directories of ``entities_dir`` sorted by name bytes.

    A missing directory yields an empty list; an unreadable one raises
    ``ProjectIOError``.
    """
    if not entities_dir.is_dir():
        return []
    try:
        dirs = [p for p in entities_dir.iterdir() if p.is_dir()]
    except OSError as exc:
        raise ProjectIOError(entities_dir, f"cannot list directory: {exc}") from exc
    dirs.sort(key=lambda p: os.fsencode(p.name))
    return dirs


def parse_entity_model(path: Path) -> EntityMeta:
    """Parse the entity declaration in a ``model.rs`` file."""
    return parse_entity_model_content(_read_text(path), path)


def parse_descriptor(path: Path) -> tuple[str, list[RouteMeta]]:
    """Parse the plural form and route table of a ``descriptor.rs`` file."""
    return parse_descriptor_content(_read_text(path), path)


def parse_links(path: Path) -> list[LinkMeta]:
    """Parse the ``links`` section of a manifest file."""
    return parse_links_content(_read_text(path), path)


def load_links_manifest(path: Path) -> LinksManifest:
    """Parse a whole manifest file (entities, links and validation rules)."""
    return parse_links_manifest_content(_read_text(path), path)


# ---------------------------------------------------------------------------
# Entity model parser
# ---------------------------------------------------------------------------

def parse_entity_model_content(content: str, path: str | Path = "model.rs") -> EntityMeta:
    """Parse ``impl_data_entity!(Name, "name", [..], { .. })`` from ``content``.

    Exactly one invocation must be present.  The validated variant may carry
    further arguments after the field block (validators, filters); they are
    ignored here.
    """
    masked = _mask(content, path)
    matches = list(_ENTITY_MACRO_PATTERN.finditer(masked))
    if not matches:
        raise ProjectParseError(
            path, "no impl_data_entity! or impl_data_entity_validated! invocation found"
        )
    if len(matches) > 1:
        second = matches[1].start()
        raise ProjectParseError(
            path,
            f"expected exactly one entity declaration, found {len(matches)}",
            line=line_of(content, second),
            context=context_at(content, second),
        )

    match = matches[0]
    open_index = match.end() - 1
    close_index = _closing(masked, open_index, content, path)
    args = split_top_level(masked[open_index + 1:close_index], open_index + 1)
    if len(args) < 4:
        raise _shape_error(
            content, path, match.start(),
            f"{match.group(1)}! expects {_ENTITY_SHAPE}, got {len(args)} argument(s)",
        )

    name_arg, canonical_arg, index_arg, fields_arg = args[:4]

    if not is_identifier(name_arg.text):
        raise _shape_error(content, path, name_arg.offset, "entity type name must be an identifier")

    canonical_name = string_literal(canonical_arg.text)
    if not canonical_name or not is_identifier(canonical_name):
        raise _shape_error(
            content, path, canonical_arg.offset,
            'canonical name must be a quoted identifier, e.g. "product"',
        )

    return EntityMeta(
        type_name=name_arg.text,
        canonical_name=canonical_name,
        plural=f"{canonical_name}s",
        indexed_fields=_parse_index_list(index_arg, content, path),
        fields=_parse_field_block(fields_arg, content, path),
    )


def _parse_index_list(segment: Segment, content: str, path: str | Path) -> list[str]:
    body = inner(segment, "[")
    if body is None:
        raise _shape_error(content, path, segment.offset, 'index list must be ["field", ...]')

    names: list[str] = []
    for item in split_top_level(body.text, body.offset):
        value = string_literal(item.text)
        if value is None:
            raise _shape_error(content, path, item.offset, "index entries must be string literals")
        names.append(value)
    return names


def _parse_field_block(segment: Segment, content: str, path: str | Path) -> list[FieldMeta]:
    body = inner(segment, "{")
    if body is None:
        raise _shape_error(content, path, segment.offset, "field block must be { field: Type, ... }")

    fields: list[FieldMeta] = []
    for item in split_top_level(body.text, body.offset, angle_brackets=True):
        match = _FIELD_PATTERN.match(item.text)
        if match is None:
            raise _shape_error(content, path, item.offset, "expected `field: Type`")
        type_name = re.sub(r"\s+", " ", match.group(2).strip())
        fields.append(FieldMeta(name=match.group(1), type_name=type_name))
    return fields


# ---------------------------------------------------------------------------
# Descriptor parser
# ---------------------------------------------------------------------------

def parse_descriptor_content(
    content: str, path: str | Path = "descriptor.rs"
) -> tuple[str, list[RouteMeta]]:
    """Extract the declared plural and the route table from descriptor source.

    Returns ``("", [])`` parts when the plural or the routes are absent.
    Routes are reported in source order: one ``RouteMeta`` per HTTP method
    call in each ``.route(...)`` chain, in the order the calls appear.
    Repeated paths are kept as separate entries.
    """
    masked = _mask(content, path)

    plural_match = _PLURAL_PATTERN.search(masked)
    plural = plural_match.group(1) if plural_match else ""

    routes: list[RouteMeta] = []
    for match in _ROUTE_CALL_PATTERN.finditer(masked):
        open_index = match.end() - 1
        close_index = _closing(masked, open_index, content, path)
        args = split_top_level(masked[open_index + 1:close_index], open_index + 1)
        if len(args) != 2:
            raise _shape_error(
                content, path, match.start(),
                f'.route() expects ("path", method chain), got {len(args)} argument(s)',
            )

        path_arg, chain_arg = args
        route_path = string_literal(path_arg.text)
        if route_path is None:
            raise _shape_error(content, path, path_arg.offset, "route path must be a string literal")

        routes.extend(_parse_method_chain(route_path, chain_arg, content, path))

    return plural, routes


def _parse_method_chain(
    route_path: str, chain: Segment, content: str, path: str | Path
) -> list[RouteMeta]:
    routes: list[RouteMeta] = []
    for call in split_chain(chain.text, chain.offset):
        head = _CHAIN_CALL_PATTERN.match(call.text)
        if head is None:
            raise _shape_error(
                content, path, call.offset, "expected a method router call such as get(handler)"
            )
        token = head.group(1).rsplit("::", 1)[-1].lower()
        method = _METHOD_TOKENS.get(token)
        if method is not None:
            routes.append(RouteMeta(method=method, path=route_path))
    return routes


# ---------------------------------------------------------------------------
# Links manifest parser
# ---------------------------------------------------------------------------

class _LinkEntry(BaseModel):
    """The five keys introspection needs from each manifest link."""
    link_type: str
    source_type: str
    target_type: str
    forward_route_name: str
    reverse_route_name: str


def parse_links_content(content: str, path: str | Path = "links.yaml") -> list[LinkMeta]:
    """Parse the ``links`` sequence of a manifest document.

    Other top-level sections and extra keys on each link are ignored.  An
    empty document means no links.
    """
    data = _load_manifest_mapping(content, path)
    raw_links = data.get("links") or []
    if not isinstance(raw_links, list):
        raise ProjectParseError(path, "'links' must be a sequence")

    links: list[LinkMeta] = []
    for index, raw in enumerate(raw_links):
        try:
            entry = _LinkEntry.model_validate(raw)
        except ValidationError as exc:
            raise ProjectParseError(
                path, f"links[{index}]: {describe_validation_error(exc)}"
            ) from exc
        links.append(
            LinkMeta(
                link_type=entry.link_type,
                source=entry.source_type,
                target=entry.target_type,
                forward_route=entry.forward_route_name,
                reverse_route=entry.reverse_route_name,
            )
        )
    return links


def parse_links_manifest_content(content: str, path: str | Path = "links.yaml") -> LinksManifest:
    """Parse and validate every section of a manifest document."""
    data = _load_manifest_mapping(content, path)
    try:
        return LinksManifest.model_validate(data)
    except ValidationError as exc:
        raise ProjectParseError(path, f"invalid links manifest: {describe_validation_error(exc)}") from exc


def _load_manifest_mapping(content: str, path: str | Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as exc:
        mark = getattr(exc, "problem_mark", None)
        raise ProjectParseError(
            path,
            f"invalid YAML: {getattr(exc, 'problem', None) or exc}",
            line=mark.line + 1 if mark is not None else None,
        ) from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ProjectParseError(path, "manifest must be a mapping with a 'links' key")
    return data


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _read_text(path: Path) -> str:
    try:
        return Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ProjectIOError(path, f"cannot read file: {exc}") from exc


def _mask(content: str, path: str | Path) -> str:
    try:
        return mask_comments(content)
    except ScanError as exc:
        raise _shape_error(content, path, exc.offset, str(exc)) from exc


def _closing(masked: str, open_index: int, content: str, path: str | Path) -> int:
    try:
        return find_closing(masked, open_index)
    except ScanError as exc:
        raise _shape_error(content, path, exc.offset, str(exc)) from exc


def _shape_error(content: str, path: str | Path, offset: int, message: str) -> ProjectParseError:
    return ProjectParseError(
        path,
        message,
        line=line_of(content, offset),
        context=context_at(content, offset),
    )
