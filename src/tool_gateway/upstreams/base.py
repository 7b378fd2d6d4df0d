"""Shared setup for the example upstream tool servers, built on FastMCP."""

from __future__ import annotations

import logging
import os

from mcp.server.fastmcp import FastMCP
from pydantic import BaseModel, Field
from starlette.requests import Request
from starlette.responses import JSONResponse

logger = logging.getLogger(__name__)


class UpstreamServerConfig(BaseModel):
    """Configuration for an example upstream service."""

    name: str
    host: str = Field(default="127.0.0.1")
    port: int
    path: str = Field(default="/mcp")
    json_response: bool = Field(default=False)

    @classmethod
    def from_env(cls, prefix: str, name: str, port: int) -> UpstreamServerConfig:
        """Load configuration from ``{prefix}_NAME``, ``_HOST``, ``_PORT`` and ``_JSON_RESPONSE``."""
        return cls(
            name=os.getenv(f"{prefix}_NAME", name),
            host=os.getenv(f"{prefix}_HOST", "127.0.0.1"),
            port=int(os.getenv(f"{prefix}_PORT", str(port))),
            json_response=os.getenv(f"{prefix}_JSON_RESPONSE", "false").lower()
            in ("1", "true", "yes"),
        )


def create_tool_server(config: UpstreamServerConfig) -> FastMCP:
    """Create a stateless streamable-HTTP FastMCP server with a /health route."""
    server = FastMCP(
        config.name,
        host=config.host,
        port=config.port,
        streamable_http_path=config.path,
        stateless_http=True,
        json_response=config.json_response,
    )

    @server.custom_route("/health", methods=["GET"])
    async def health(request: Request) -> JSONResponse:
        tools = await server.list_tools()
        return JSONResponse({"status": "ok", "name": config.name, "tools": len(tools)})

    return server


def run_upstream(server: FastMCP, config: UpstreamServerConfig) -> None:
    """Serve an example upstream over streamable HTTP."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logger.info(f"{config.name} listening on http://{config.host}:{config.port}{config.path}")
    server.run(transport="streamable-http")
