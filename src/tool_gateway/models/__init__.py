"""Pydantic models and typed schema nodes - the contracts."""

from tool_gateway.models.schema import InterfaceSchema, SchemaKind, parse_schema
from tool_gateway.models.tool import ProxyToolEntry, ToolDescriptor, UpstreamEndpoint

__all__ = [
    "InterfaceSchema",
    "ProxyToolEntry",
    "SchemaKind",
    "ToolDescriptor",
    "UpstreamEndpoint",
    "parse_schema",
]
