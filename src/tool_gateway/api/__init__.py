"""MCP endpoint for tool traffic."""

from tool_gateway.api.routes import create_router, mcp_sessions
from tool_gateway.api.server import ToolProvider, create_mcp_server, error_result

__all__ = [
    "ToolProvider",
    "create_mcp_server",
    "create_router",
    "error_result",
    "mcp_sessions",
]
