"""Example upstream serving a random-joke tool."""

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

JOKE_API_URL = "https://official-joke-api.appspot.com/random_joke"


def default_config() -> UpstreamServerConfig:
    return UpstreamServerConfig.from_env("JOKE_UPSTREAM", name="mcp-child-a-http", port=3031)


async def fetch_joke() -> Any:
    async with httpx.AsyncClient(timeout=10.0) as client:
        response = await client.get(JOKE_API_URL)
        response.raise_for_status()
        return response.json()


async def random_joke() -> str:
    """Fetch a joke and return it as setup and punchline on two lines."""
    try:
        data = await fetch_joke()
    except (httpx.HTTPError, ValueError) as e:
        logger.error(f"Error fetching joke: {e}")
        raise ToolError(f"Error fetching joke: {e}") from e

    if not isinstance(data, dict):
        logger.error(f"Unexpected joke response: {data!r}")
        raise ToolError(f"Error fetching joke: unexpected response {str(data)[:200]}")

    return f"{data.get('setup', '')}\n{data.get('punchline', '')}"


def build_server(config: UpstreamServerConfig | None = None) -> FastMCP:
    server = create_tool_server(config or default_config())
    server.add_tool(
        random_joke,
        name="joke",
        description="Get a Random Joke",
        structured_output=False,
    )
    return server


def main() -> None:
    config = default_config()
    run_upstream(build_server(config), config)


if __name__ == "__main__":
    main()
