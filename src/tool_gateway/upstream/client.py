"""MCP client for one upstream tool server.

Wraps an ``mcp.ClientSession`` over the SDK's streamable HTTP transport. The
transport and session are opened and closed inside one background task owned
by the client, since the SDK's anyio task groups must be exited by the task
that entered them while ``connect()`` and ``aclose()`` run on different tasks.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import timedelta
from typing import Any

import anyio
import httpx
from mcp import ClientSession, types
from mcp.client.streamable_http import streamablehttp_client
from mcp.shared.exceptions import McpError
from pydantic import ValidationError

from tool_gateway import __version__
from tool_gateway.exceptions import (
    DiscoveryError,
    InvocationError,
    UpstreamConnectionError,
)
from tool_gateway.models.tool import ToolDescriptor, UpstreamEndpoint

logger = logging.getLogger(__name__)

# Stop following tools/list cursors after this many pages.
MAX_DISCOVERY_PAGES = 100

# Failures of an established session that surface on a single request.
# The SDK reports protocol violations (e.g. bad structured content) as RuntimeError.
_REQUEST_ERRORS = (
    McpError,
    ValidationError,
    RuntimeError,
    httpx.HTTPError,
    anyio.ClosedResourceError,
    anyio.BrokenResourceError,
    anyio.EndOfStream,
)


class UpstreamToolClient:
    """Long-lived handle to one upstream tool server.

    One instance is created per configured upstream and shared by every
    dispatch that targets it. The session multiplexes concurrent requests by
    JSON-RPC id, so calls need no serialization. A session that ends after
    connecting is not reopened; later calls fail with ``InvocationError``.
    """

    def __init__(
        self,
        endpoint: UpstreamEndpoint,
        *,
        client_name: str = "tool-gateway",
        client_version: str = __version__,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            endpoint: Upstream id and URL
            client_name: Name sent as clientInfo during initialize
            client_version: Version sent as clientInfo during initialize
            timeout: Seconds to wait for the HTTP exchange and for each reply
            transport: Optional httpx transport (in-process apps, tests)
        """
        self._endpoint = endpoint
        self._client_info = types.Implementation(name=client_name, version=client_version)
        self._timeout = timeout
        self._transport = transport

        self._session: ClientSession | None = None
        self._init_result: types.InitializeResult | None = None
        self._runner: asyncio.Task[None] | None = None
        self._closing = asyncio.Event()
        self._connect_lock = asyncio.Lock()

    @property
    def id(self) -> str:
        return self._endpoint.id

    @property
    def url(self) -> str:
        return self._endpoint.url

    @property
    def connected(self) -> bool:
        return self._session is not None

    @property
    def server_info(self) -> dict[str, Any]:
        if self._init_result is None:
            return {}
        return self._init_result.serverInfo.model_dump(exclude_none=True)

    @property
    def protocol_version(self) -> str | None:
        if self._init_result is None:
            return None
        return str(self._init_result.protocolVersion)

    async def connect(self) -> None:
        """Open the session and perform the initialize handshake.

        Raises:
            UpstreamConnectionError: If the upstream is unreachable or rejects the handshake
        """
        async with self._connect_lock:
            if self.connected:
                return

            self._closing = asyncio.Event()
            ready: asyncio.Future[None] = asyncio.get_running_loop().create_future()
            self._runner = asyncio.create_task(
                self._run_session(ready, self._closing),
                name=f"upstream-session-{self.id}",
            )
            await asyncio.wait({ready, self._runner}, return_when=asyncio.FIRST_COMPLETED)

            if not ready.done():
                ready.cancel()
                raise UpstreamConnectionError(self.id, "session closed during initialize")
            try:
                ready.result()
            except Exception as e:
                raise UpstreamConnectionError(self.id, _describe(e)) from e

        logger.info(
            f"Connected to upstream {self.id} at {self.url} "
            f"(server={self.server_info.get('name', 'unknown')}, "
            f"protocol={self.protocol_version})"
        )

    async def list_tools(self) -> list[ToolDescriptor]:
        """Fetch the upstream's full tool catalog, following pagination.

        Raises:
            DiscoveryError: If the catalog cannot be fetched or is malformed
        """
        session = self._session
        if session is None:
            raise DiscoveryError(self.id, "client is not connected")

        tools: list[ToolDescriptor] = []
        cursor: str | None = None
        seen_cursors: set[str] = set()

        try:
            for _ in range(MAX_DISCOVERY_PAGES):
                if cursor:
                    result = await session.list_tools(cursor=cursor)
                else:
                    result = await session.list_tools()
                tools.extend(
                    ToolDescriptor.model_validate(tool.model_dump(by_alias=True, mode="json"))
                    for tool in result.tools
                )

                cursor = result.nextCursor
                if not cursor or cursor in seen_cursors:
                    break
                seen_cursors.add(cursor)
        except ValidationError as e:
            raise DiscoveryError(self.id, f"malformed tool list: {e}") from e
        except _REQUEST_ERRORS as e:
            raise DiscoveryError(self.id, _describe(e)) from e

        logger.info(f"Upstream {self.id} advertises tools: {[t.name for t in tools]}")
        return tools

    async def invoke(self, name: str, arguments: dict[str, Any]) -> types.CallToolResult:
        """Call a tool and return the upstream's result unchanged.

        Raises:
            InvocationError: On JSON-RPC errors, unreadable replies or lost connections
        """
        session = self._session
        if session is None:
            raise InvocationError(self.id, name, "client is not connected")
        try:
            return await session.call_tool(name, arguments)
        except _REQUEST_ERRORS as e:
            logger.warning(f"Upstream {self.id} failed calling {name}: {_describe(e)}")
            raise InvocationError(self.id, name, _describe(e)) from e

    async def aclose(self) -> None:
        """End the session (terminating it upstream if it has an id)."""
        runner, self._runner = self._runner, None
        if runner is None:
            return
        self._closing.set()
        if self._session is None:
            # still initializing
            runner.cancel()
        await asyncio.gather(runner, return_exceptions=True)
        self._session = None
        self._init_result = None

    async def _run_session(self, ready: asyncio.Future[None], closing: asyncio.Event) -> None:
        try:
            async with streamablehttp_client(
                self.url,
                timeout=timedelta(seconds=self._timeout),
                httpx_client_factory=self._http_client,
            ) as (read_stream, write_stream, _):
                async with ClientSession(
                    read_stream,
                    write_stream,
                    read_timeout_seconds=timedelta(seconds=self._timeout),
                    client_info=self._client_info,
                ) as session:
                    self._init_result = await session.initialize()
                    self._session = session
                    ready.set_result(None)
                    await closing.wait()
        except Exception as e:
            if not ready.done():
                ready.set_exception(e)
            else:
                logger.warning(f"Session with upstream {self.id} ended: {_describe(e)}")
        finally:
            self._session = None

    def _http_client(
        self,
        headers: dict[str, str] | None = None,
        timeout: httpx.Timeout | None = None,
        auth: httpx.Auth | None = None,
    ) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            headers=headers,
            timeout=timeout if timeout is not None else self._timeout,
            auth=auth,
            transport=self._transport,
            follow_redirects=True,
        )

    def __repr__(self) -> str:
        return f"UpstreamToolClient(id={self.id!r}, url={self.url!r}, connected={self.connected})"


def _describe(error: BaseException) -> str:
    if isinstance(error, BaseExceptionGroup) and error.exceptions:
        return _describe(error.exceptions[0])
    if isinstance(error, McpError):
        return f"JSON-RPC error {error.error.code}: {error.error.message}"
    if isinstance(error, httpx.HTTPStatusError):
        return f"HTTP {error.response.status_code}"
    if isinstance(error, httpx.TimeoutException):
        return "timed out"
    if isinstance(error, httpx.ConnectError):
        return f"connection error: {error}"
    return str(error) or type(error).__name__
