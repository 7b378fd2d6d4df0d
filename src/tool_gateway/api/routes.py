"""HTTP endpoint for MCP tool traffic.

Stateless: every POST carries complete JSON-RPC messages and no session is
kept between requests. Framing, reply format and protocol negotiation are
handled by the SDK's ``StreamableHTTPSessionManager``; the application keeps
the running manager on ``app.state.mcp_sessions``.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import APIRouter, FastAPI
from mcp.server.lowlevel import Server
from mcp.server.streamable_http_manager import StreamableHTTPSessionManager
from starlette.types import Receive, Scope, Send

logger = logging.getLogger(__name__)


class McpEndpoint:
    """ASGI endpoint handing each request to the application's session manager."""

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        sessions: StreamableHTTPSessionManager = scope["app"].state.mcp_sessions
        await sessions.handle_request(scope, receive, send)


def create_router(path: str = "/mcp") -> APIRouter:
    """Build the router serving MCP on ``path``.

    Only POST is routed; with no sessions there is no server-initiated stream
    to GET and nothing to DELETE, so those get 405.
    """
    router = APIRouter()
    router.add_route(path, McpEndpoint(), methods=["POST"])
    return router


@asynccontextmanager
async def mcp_sessions(
    app: FastAPI, server: Server, json_response: bool = False
) -> AsyncIterator[StreamableHTTPSessionManager]:
    """Run a stateless session manager for ``server`` while the app is up.

    Args:
        app: Application whose state receives the manager
        server: The MCP server to expose
        json_response: Reply with plain JSON bodies instead of SSE streams
    """
    sessions = StreamableHTTPSessionManager(
        app=server,
        json_response=json_response,
        stateless=True,
    )
    async with sessions.run():
        app.state.mcp_sessions = sessions
        logger.info(
            f"MCP endpoint ready ({'JSON' if json_response else 'SSE'} replies)"
        )
        yield sessions
