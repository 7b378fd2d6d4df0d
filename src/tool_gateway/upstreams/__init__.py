"""Example upstream tool servers (joke, name-age)."""

from tool_gateway.upstreams.base import (
    UpstreamServerConfig,
    create_tool_server,
    run_upstream,
)

__all__ = [
    "UpstreamServerConfig",
    "create_tool_server",
    "run_upstream",
]
