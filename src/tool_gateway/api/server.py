"""MCP server publishing the aggregated catalog.

Built on the SDK's low-level ``Server``: the tool list and every call go
straight to a ``ToolProvider`` (the dispatcher), which does its own argument
validation, so the SDK never validates input.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol, runtime_checkable

from mcp import types
from mcp.server.lowlevel import Server
from mcp.shared.exceptions import McpError

from tool_gateway.exceptions import (
    ArgumentValidationError,
    UnknownToolError,
    UpstreamError,
)

logger = logging.getLogger(__name__)


@runtime_checkable
class ToolProvider(Protocol):
    """Anything that can publish a tool list and execute calls."""

    def list_tools(self) -> list[dict[str, Any]]: ...

    async def call_tool(self, name: str, arguments: Any) -> Any: ...


def error_result(text: str) -> types.CallToolResult:
    """Tool result reporting a failed call."""
    return types.CallToolResult(
        content=[types.TextContent(type="text", text=text)],
        isError=True,
    )


def create_mcp_server(provider: ToolProvider, name: str, version: str) -> Server:
    """Build the MCP server answering tools/list and tools/call from ``provider``."""
    server: Server = Server(name, version=version)

    @server.list_tools()
    async def list_tools() -> list[types.Tool]:
        return [types.Tool.model_validate(tool) for tool in provider.list_tools()]

    async def call_tool(request: types.CallToolRequest) -> types.ServerResult:
        tool_name = request.params.name
        try:
            result = await provider.call_tool(tool_name, request.params.arguments)
            return types.ServerResult(types.CallToolResult.model_validate(result))
        except UnknownToolError as e:
            raise McpError(types.ErrorData(code=types.INVALID_PARAMS, message=str(e))) from e
        except ArgumentValidationError as e:
            raise McpError(
                types.ErrorData(
                    code=types.INVALID_PARAMS,
                    message=str(e),
                    data={"violations": [v.to_dict() for v in e.violations]},
                )
            ) from e
        except UpstreamError as e:
            return types.ServerResult(error_result(str(e)))
        except Exception as e:
            logger.exception(f"Error calling tool {tool_name}")
            raise McpError(
                types.ErrorData(code=types.INTERNAL_ERROR, message="Internal server error")
            ) from e

    # The call_tool() decorator reports every exception as an isError result;
    # unknown tools and bad arguments must come back as JSON-RPC errors.
    server.request_handlers[types.CallToolRequest] = call_tool

    return server
