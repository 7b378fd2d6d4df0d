"""Typed interface-description schema (the JSON Schema subset tools advertise).

Upstreams describe tool arguments with an open, recursive JSON-Schema-like
document. ``parse_schema`` turns any JSON value into a closed ``InterfaceSchema``
tree. Parsing is total: anything it does not understand becomes an ``ANY``
node instead of an error.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping

# Nesting deeper than this is treated as unconstrained.
MAX_SCHEMA_DEPTH = 32


class SchemaKind(str, Enum):
    """Tag of an InterfaceSchema node."""

    STRING = "string"
    NUMBER = "number"
    INTEGER = "integer"
    BOOLEAN = "boolean"
    ARRAY = "array"
    OBJECT = "object"
    NULL = "null"
    UNION = "union"
    ANY = "any"


_WIRE_KINDS = {
    kind.value: kind
    for kind in SchemaKind
    if kind not in (SchemaKind.UNION, SchemaKind.ANY)
}

_EMPTY_PROPERTIES: Mapping[str, "InterfaceSchema"] = MappingProxyType({})


@dataclass(frozen=True)
class InterfaceSchema:
    """One node of a tool's argument description.

    Attributes:
        kind: Which shape this node describes.
        enum: Allowed string values, in listed order.
        items: Element schema for arrays; None means unconstrained.
        properties: Declared object properties, in declaration order.
        required: Names of required properties (always a subset of properties).
        nullable: Whether None is accepted in addition to the shape.
        members: Ordered union members (UNION only).
        description: Human-readable description, kept for rendering.
    """

    kind: SchemaKind
    enum: tuple[str, ...] | None = None
    items: InterfaceSchema | None = None
    properties: Mapping[str, InterfaceSchema] = field(
        default_factory=lambda: _EMPTY_PROPERTIES
    )
    required: frozenset[str] = frozenset()
    nullable: bool = False
    members: tuple[InterfaceSchema, ...] = ()
    description: str | None = None

    @classmethod
    def unconstrained(cls) -> InterfaceSchema:
        return cls(kind=SchemaKind.ANY)

    @property
    def is_open_object(self) -> bool:
        """True for an object node without declared properties."""
        return self.kind is SchemaKind.OBJECT and not self.properties

    def with_nullable(self, nullable: bool = True) -> InterfaceSchema:
        return replace(self, nullable=nullable)


def parse_schema(raw: Any, _depth: int = 0) -> InterfaceSchema:
    """Parse a JSON value into an InterfaceSchema. Never raises."""
    if not isinstance(raw, Mapping) or _depth > MAX_SCHEMA_DEPTH:
        return InterfaceSchema.unconstrained()

    description = raw.get("description")
    if not isinstance(description, str):
        description = None
    nullable = raw.get("nullable") is True

    declared = raw.get("type")
    if isinstance(declared, (list, tuple)):
        kinds = [k for k in declared if isinstance(k, str)]
        if len(kinds) == 1:
            declared = kinds[0]
        elif kinds:
            members = tuple(
                parse_schema({**raw, "type": k}, _depth + 1) for k in kinds
            )
            return InterfaceSchema(
                kind=SchemaKind.UNION,
                members=members,
                nullable=nullable,
                description=description,
            )
        else:
            return InterfaceSchema(
                kind=SchemaKind.ANY, nullable=nullable, description=description
            )

    if declared is None:
        alternatives = raw.get("anyOf", raw.get("oneOf"))
        if isinstance(alternatives, (list, tuple)) and alternatives:
            members = tuple(parse_schema(alt, _depth + 1) for alt in alternatives)
            return InterfaceSchema(
                kind=SchemaKind.UNION,
                members=members,
                nullable=nullable,
                description=description,
            )

    kind = _WIRE_KINDS.get(declared) if isinstance(declared, str) else None
    if kind is None:
        return InterfaceSchema(
            kind=SchemaKind.ANY, nullable=nullable, description=description
        )

    if kind is SchemaKind.STRING:
        return InterfaceSchema(
            kind=kind,
            enum=_parse_enum(raw.get("enum")),
            nullable=nullable,
            description=description,
        )

    if kind is SchemaKind.ARRAY:
        items = raw.get("items")
        return InterfaceSchema(
            kind=kind,
            items=parse_schema(items, _depth + 1) if items else None,
            nullable=nullable,
            description=description,
        )

    if kind is SchemaKind.OBJECT:
        properties: dict[str, InterfaceSchema] = {}
        declared_properties = raw.get("properties")
        if isinstance(declared_properties, Mapping):
            for name, prop in declared_properties.items():
                if isinstance(name, str):
                    properties[name] = parse_schema(prop, _depth + 1)
        required = raw.get("required")
        required_names = (
            frozenset(n for n in required if isinstance(n, str) and n in properties)
            if isinstance(required, (list, tuple))
            else frozenset()
        )
        return InterfaceSchema(
            kind=kind,
            properties=MappingProxyType(properties),
            required=required_names,
            nullable=nullable,
            description=description,
        )

    return InterfaceSchema(kind=kind, nullable=nullable, description=description)


def _parse_enum(values: Any) -> tuple[str, ...] | None:
    if not isinstance(values, (list, tuple)):
        return None
    literals: list[str] = []
    for value in values:
        # Non-string members can never match a string value; duplicates keep first position.
        if isinstance(value, str) and value not in literals:
            literals.append(value)
    return tuple(literals) or None
