"""Dispatcher: routes inbound tool calls to the owning upstream."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from mcp import types

from tool_gateway.exceptions import (
    ArgumentValidationError,
    InvocationError,
    UnknownToolError,
    UpstreamError,
)
from tool_gateway.manager.registry import ToolRegistry

logger = logging.getLogger(__name__)


class Dispatcher:
    """Validates arguments and forwards calls to upstream clients.

    Holds no per-call state; one instance serves every request for the
    lifetime of the process.
    """

    def __init__(
        self,
        registry: ToolRegistry,
        invocation_timeout: float | None = None,
    ) -> None:
        """Initialize the dispatcher.

        Args:
            registry: The fully built tool registry
            invocation_timeout: Seconds allowed per upstream call (None = no limit)
        """
        self._registry = registry
        self._invocation_timeout = invocation_timeout

    @property
    def registry(self) -> ToolRegistry:
        return self._registry

    def list_tools(self) -> list[dict[str, Any]]:
        return self._registry.catalog()

    async def dispatch(self, tool_name: str, raw_arguments: Any) -> types.CallToolResult:
        """Validate arguments and call the tool on its upstream.

        Args:
            tool_name: Catalog name of the tool
            raw_arguments: Caller-supplied arguments (None is treated as {})

        Returns:
            The upstream's tool result, unmodified

        Raises:
            UnknownToolError: If no tool has this name
            ArgumentValidationError: If the arguments fail the tool's validator
            UpstreamError: If the upstream call fails or times out
        """
        entry = self._registry.get(tool_name)
        if entry is None:
            raise UnknownToolError(tool_name)

        try:
            arguments = entry.validator.validate(
                {} if raw_arguments is None else raw_arguments
            )
        except ArgumentValidationError as e:
            raise e.for_tool(tool_name) from e

        logger.debug(f"Dispatching {tool_name} to upstream {entry.owner.id}")
        try:
            return await asyncio.wait_for(
                entry.owner.invoke(tool_name, arguments),
                timeout=self._invocation_timeout,
            )
        except InvocationError as e:
            raise UpstreamError(tool_name, entry.owner.id, e.reason) from e
        except asyncio.TimeoutError as e:
            logger.warning(
                f"Call to {tool_name} on upstream {entry.owner.id} timed out "
                f"after {self._invocation_timeout}s"
            )
            raise UpstreamError(
                tool_name,
                entry.owner.id,
                f"timed out after {self._invocation_timeout}s",
            ) from e

    async def call_tool(self, name: str, arguments: Any) -> types.CallToolResult:
        return await self.dispatch(name, arguments)
