"""Example upstream serving an age-prediction tool backed by agify.io."""

import logging
from typing import Any

import httpx
from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.exceptions import ToolError

from tool_gateway.upstreams.base import (
    UpstreamServerConfig,
    create_tool_server,
    run_upstream,
)

logger = logging.getLogger(__name__)

AGIFY_API_URL = "https://api.agify.io/"


def default_config() -> UpstreamServerConfig:
    return UpstreamServerConfig.from_env("AGIFY_UPSTREAM", name="mcp-child-b-http", port=3032)


async def fetch_age(name: str) -> Any:
    async with httpx.AsyncClient(timeout=10.0) as client:
        response = await client.get(AGIFY_API_URL, params={"name": name})
        response.raise_for_status()
        return response.json()


async def predict_age(name: str) -> str:
    """Predict the age for ``name``; the reply text is the age."""
    try:
        data = await fetch_age(name)
    except (httpx.HTTPError, ValueError) as e:
        logger.error(f"Error fetching age: {e}")
        raise ToolError(f"Error fetching age: {e}") from e

    if not isinstance(data, dict):
        logger.error(f"Unexpected agify response: {data!r}")
        raise ToolError(f"Error fetching age: unexpected response {str(data)[:200]}")

    return f"{data.get('age')}"


def build_server(config: UpstreamServerConfig | None = None) -> FastMCP:
    server = create_tool_server(config or default_config())
    server.add_tool(
        predict_age,
        name="name-age",
        description="Predict the age of a person given a name",
        structured_output=False,
    )
    return server


def main() -> None:
    config = default_config()
    run_upstream(build_server(config), config)


if __name__ == "__main__":
    main()
