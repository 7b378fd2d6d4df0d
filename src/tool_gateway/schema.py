"""Translation of interface-description schemas into runtime validators.

Every ``InterfaceSchema`` node is compiled into a pydantic-core schema and
wrapped in a ``Validator``. Translation is total: a node the translator
cannot handle degrades to a validator that accepts anything, so a single
odd upstream schema never blocks catalog construction.

Multi-kind unions are simplified: ``[X, "null"]`` becomes a nullable ``X``,
any other union is validated against its first member only.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any

from pydantic_core import SchemaValidator, ValidationError, core_schema

from tool_gateway.exceptions import ArgumentValidationError
from tool_gateway.models.schema import InterfaceSchema, SchemaKind, parse_schema

logger = logging.getLogger(__name__)

_EXPECTED_BY_ERROR_TYPE = {
    "string_type": "string",
    "number_type": "number",
    "float_type": "number",
    "int_type": "integer",
    "bool_type": "boolean",
    "none_required": "null",
    "list_type": "array",
    "dict_type": "object",
    "missing": "required field",
}


@dataclass(frozen=True)
class Violation:
    """A single reason a value failed validation.

    Attributes:
        path: Location of the offending value (keys and list indexes).
        expected: Expected kind, e.g. "string", "integer", "one of 'x' or 'y'".
        message: Human-readable explanation.
        actual: The offending value (None for missing fields).
    """

    path: tuple[str | int, ...]
    expected: str
    message: str
    actual: Any = None

    @classmethod
    def from_error(cls, error: dict[str, Any]) -> Violation:
        """Build from one entry of ``pydantic_core.ValidationError.errors()``."""
        error_type = error.get("type", "")
        if error_type == "literal_error":
            expected = f"one of {error.get('ctx', {}).get('expected', '')}".strip()
        else:
            expected = _EXPECTED_BY_ERROR_TYPE.get(error_type, error_type)
        actual = None if error_type == "missing" else error.get("input")
        return cls(
            path=tuple(error.get("loc", ())),
            expected=expected,
            message=error.get("msg", ""),
            actual=actual,
        )

    def describe(self) -> str:
        location = ".".join(str(part) for part in self.path) or "<value>"
        return f"{location}: {self.message}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": list(self.path),
            "expected": self.expected,
            "message": self.message,
            "actual": self.actual,
        }


@dataclass(frozen=True)
class ValidationOutcome:
    """Result of ``Validator.check``."""

    ok: bool
    value: Any = None
    violations: tuple[Violation, ...] = ()


class Validator:
    """Runtime counterpart of an InterfaceSchema node."""

    def __init__(self, schema: InterfaceSchema, compiled: core_schema.CoreSchema) -> None:
        self._schema = schema
        self._validator = SchemaValidator(compiled)

    @property
    def schema(self) -> InterfaceSchema:
        return self._schema

    def validate(self, value: Any) -> Any:
        """Return the normalized value.

        Raises:
            ArgumentValidationError: With one violation per failure.
        """
        try:
            return self._validator.validate_python(value)
        except ValidationError as exc:
            violations = tuple(Violation.from_error(e) for e in exc.errors())
            raise ArgumentValidationError(violations) from exc

    def check(self, value: Any) -> ValidationOutcome:
        """Validate without raising."""
        try:
            return ValidationOutcome(ok=True, value=self.validate(value))
        except ArgumentValidationError as exc:
            return ValidationOutcome(ok=False, violations=exc.violations)

    def json_schema(self) -> dict[str, Any]:
        """JSON Schema describing what this validator enforces."""
        return render_json_schema(self._schema)


def translate(schema: InterfaceSchema | Any) -> Validator:
    """Translate a schema (typed node or raw JSON value) into a Validator.

    Never raises.
    """
    node = schema if isinstance(schema, InterfaceSchema) else parse_schema(schema)
    try:
        return Validator(node, _compile(node))
    except Exception:
        logger.warning("Schema could not be compiled, accepting any value", exc_info=True)
        return Validator(InterfaceSchema.unconstrained(), core_schema.any_schema())


def translate_input_schema(schema: InterfaceSchema | Any) -> Validator:
    """Translate the argument schema of a whole tool.

    Tool arguments are always an object: a schema that is not an object, or
    declares no properties, yields an open object validator.
    """
    node = schema if isinstance(schema, InterfaceSchema) else parse_schema(schema)
    if node.kind is SchemaKind.OBJECT and node.properties:
        root = replace(node, nullable=False)
    else:
        root = InterfaceSchema(kind=SchemaKind.OBJECT, description=node.description)
    return translate(root)


def resolve_union(node: InterfaceSchema) -> InterfaceSchema:
    """Collapse a UNION node to the single node it is validated as."""
    if node.kind is not SchemaKind.UNION:
        return node
    if not node.members:
        return InterfaceSchema(kind=SchemaKind.ANY, description=node.description)

    non_null = [m for m in node.members if m.kind is not SchemaKind.NULL]
    if len(non_null) == 1 and len(non_null) < len(node.members):
        resolved = resolve_union(non_null[0]).with_nullable(True)
    else:
        resolved = resolve_union(node.members[0])
    if node.nullable:
        resolved = resolved.with_nullable(True)
    if resolved.description is None and node.description is not None:
        resolved = replace(resolved, description=node.description)
    return resolved


def _integral(value: Any) -> Any:
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def _compile(node: InterfaceSchema) -> core_schema.CoreSchema:
    node = resolve_union(node)
    kind = node.kind

    if kind is SchemaKind.STRING:
        if node.enum:
            compiled = core_schema.literal_schema(list(node.enum))
        else:
            compiled = core_schema.str_schema(strict=True)
    elif kind is SchemaKind.NUMBER:
        compiled = core_schema.union_schema(
            [
                core_schema.int_schema(strict=True),
                core_schema.float_schema(strict=True, allow_inf_nan=False),
            ],
            custom_error_type="number_type",
            custom_error_message="Input should be a valid number",
        )
    elif kind is SchemaKind.INTEGER:
        compiled = core_schema.no_info_before_validator_function(
            _integral, core_schema.int_schema(strict=True)
        )
    elif kind is SchemaKind.BOOLEAN:
        compiled = core_schema.bool_schema(strict=True)
    elif kind is SchemaKind.NULL:
        return core_schema.none_schema()
    elif kind is SchemaKind.ARRAY:
        items = _compile(node.items) if node.items is not None else core_schema.any_schema()
        compiled = core_schema.list_schema(items, strict=True)
    elif kind is SchemaKind.OBJECT:
        if node.properties:
            fields = {
                name: core_schema.typed_dict_field(
                    _compile(prop), required=name in node.required
                )
                for name, prop in node.properties.items()
            }
            compiled = core_schema.typed_dict_schema(fields, extra_behavior="ignore")
        else:
            compiled = core_schema.dict_schema(
                keys_schema=core_schema.str_schema(),
                values_schema=core_schema.any_schema(),
            )
    else:
        # ANY already accepts None
        return core_schema.any_schema()

    if node.nullable:
        compiled = core_schema.nullable_schema(compiled)
    return compiled


def render_json_schema(node: InterfaceSchema) -> dict[str, Any]:
    """Render the effective schema of a node back to JSON Schema."""
    node = resolve_union(node)
    kind = node.kind

    if kind is SchemaKind.ANY:
        rendered: dict[str, Any] = {}
    elif kind is SchemaKind.ARRAY:
        rendered = {
            "type": "array",
            "items": render_json_schema(node.items) if node.items is not None else {},
        }
    elif kind is SchemaKind.OBJECT:
        if node.properties:
            rendered = {
                "type": "object",
                "properties": {
                    name: render_json_schema(prop) for name, prop in node.properties.items()
                },
            }
            required = [name for name in node.properties if name in node.required]
            if required:
                rendered["required"] = required
        else:
            rendered = {"type": "object", "additionalProperties": {}}
    else:
        rendered = {"type": kind.value}
        if kind is SchemaKind.STRING and node.enum:
            rendered["enum"] = list(node.enum)

    if node.nullable and kind not in (SchemaKind.NULL, SchemaKind.ANY):
        if "enum" in rendered or kind in (SchemaKind.ARRAY, SchemaKind.OBJECT):
            rendered = {"anyOf": [rendered, {"type": "null"}]}
        else:
            rendered["type"] = [rendered["type"], "null"]

    if node.description:
        rendered["description"] = node.description
    return rendered
