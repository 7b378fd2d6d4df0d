"""Configuration and environment loading for the tool gateway."""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from tool_gateway.models.tool import UpstreamEndpoint


def _default_upstreams() -> list[UpstreamEndpoint]:
    return [
        UpstreamEndpoint(id="mcp-child-a-http", url="http://127.0.0.1:3031/mcp"),
        UpstreamEndpoint(id="mcp-child-b-http", url="http://127.0.0.1:3032/mcp"),
    ]


class GatewaySettings(BaseSettings):
    """Gateway settings loaded from GATEWAY_* environment variables.

    Passed explicitly into the application and registry; nothing reads a
    global settings object after startup.
    """

    model_config = SettingsConfigDict(
        env_prefix="GATEWAY_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    # Identity advertised in initialize replies (serverInfo)
    name: str = "mcp-parent-http"
    version: str = "1.0.0"

    # Server
    host: str = "127.0.0.1"
    port: int = 3030
    path: str = "/mcp"
    # Plain JSON replies instead of SSE streams
    json_response: bool = False
    debug: bool = False
    log_level: str = "INFO"

    # Upstreams, in priority order (later entries win name collisions)
    upstreams: list[UpstreamEndpoint] = Field(default_factory=_default_upstreams)
    collision_policy: Literal["last_wins", "error"] = "last_wins"

    # Timeouts (seconds)
    discovery_timeout: float = 10.0
    invocation_timeout: float | None = 60.0
    upstream_http_timeout: float = 30.0

    @field_validator("upstreams")
    @classmethod
    def _unique_upstream_ids(cls, upstreams: list[UpstreamEndpoint]) -> list[UpstreamEndpoint]:
        ids = [u.id for u in upstreams]
        duplicates = sorted({i for i in ids if ids.count(i) > 1})
        if duplicates:
            raise ValueError(f"Duplicate upstream ids: {duplicates}")
        return upstreams

    @field_validator("path")
    @classmethod
    def _leading_slash(cls, path: str) -> str:
        return path if path.startswith("/") else f"/{path}"


@lru_cache
def get_settings() -> GatewaySettings:
    """Get cached settings instance (process entry point only)."""
    return GatewaySettings()
