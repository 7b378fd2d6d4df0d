"""Tool catalog models: upstream descriptors, advertised tools, proxy entries."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

if TYPE_CHECKING:
    from tool_gateway.schema import Validator
    from tool_gateway.upstream.client import UpstreamToolClient


class UpstreamEndpoint(BaseModel):
    """Configured upstream service the gateway aggregates."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    url: str = Field(min_length=1)


class ToolDescriptor(BaseModel):
    """A tool as advertised by an upstream's tools/list reply."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    name: str = Field(min_length=1)
    description: str = ""
    input_schema: dict[str, Any] = Field(default_factory=dict, alias="inputSchema")

    @field_validator("description", mode="before")
    @classmethod
    def _missing_description(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("input_schema", mode="before")
    @classmethod
    def _loose_input_schema(cls, value: Any) -> Any:
        # Malformed schemas degrade to an open argument object at translation time.
        return value if isinstance(value, dict) else {}


@dataclass(frozen=True)
class ProxyToolEntry:
    """Local proxy for one upstream tool.

    Attributes:
        name: Catalog name (unique within the registry).
        description: Description advertised by the upstream.
        validator: Compiled argument validator.
        owner: Client of the upstream that serves this tool (not owned).
        input_schema: The schema exactly as the upstream advertised it.
    """

    name: str
    description: str
    validator: Validator
    owner: UpstreamToolClient
    input_schema: dict[str, Any] = field(default_factory=dict)

    def describe(self) -> dict[str, Any]:
        """Catalog entry as published on the gateway's tools/list."""
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.validator.json_schema(),
        }
