"""Custom exceptions for the tool gateway."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from tool_gateway.schema import Violation


class GatewayError(Exception):
    """Base class for all gateway errors."""


class StartupError(GatewayError):
    """Raised when the tool registry cannot be built.

    The original failure (connection, discovery, timeout) is chained
    as ``__cause__``.
    """

    def __init__(self, message: str, upstream_id: str | None = None) -> None:
        self.upstream_id = upstream_id
        super().__init__(message)


class ToolNameCollisionError(StartupError):
    """Raised when two upstreams advertise the same tool name under the error policy."""

    def __init__(self, tool_name: str, first_upstream: str, second_upstream: str) -> None:
        self.tool_name = tool_name
        self.first_upstream = first_upstream
        self.second_upstream = second_upstream
        super().__init__(
            f"Tool '{tool_name}' advertised by both '{first_upstream}' "
            f"and '{second_upstream}'",
            upstream_id=second_upstream,
        )


class UpstreamConnectionError(GatewayError):
    """Raised when an upstream is unreachable or rejects the handshake."""

    def __init__(self, upstream_id: str, reason: str) -> None:
        self.upstream_id = upstream_id
        self.reason = reason
        super().__init__(f"Cannot connect to upstream '{upstream_id}': {reason}")


class DiscoveryError(GatewayError):
    """Raised when an upstream's tool catalog cannot be fetched or parsed."""

    def __init__(self, upstream_id: str, reason: str) -> None:
        self.upstream_id = upstream_id
        self.reason = reason
        super().__init__(f"Tool discovery failed for upstream '{upstream_id}': {reason}")


class InvocationError(GatewayError):
    """Raised when an upstream tool call fails at the transport or protocol level."""

    def __init__(self, upstream_id: str, tool_name: str, reason: str) -> None:
        self.upstream_id = upstream_id
        self.tool_name = tool_name
        self.reason = reason
        super().__init__(
            f"Call to tool '{tool_name}' on upstream '{upstream_id}' failed: {reason}"
        )


class UnknownToolError(GatewayError):
    """Raised when a call names a tool that is not in the catalog."""

    def __init__(self, tool_name: str) -> None:
        self.tool_name = tool_name
        super().__init__(f"Tool {tool_name} not found")


class ArgumentValidationError(GatewayError):
    """Raised when caller-supplied arguments fail a validator."""

    def __init__(
        self,
        violations: tuple[Violation, ...],
        tool_name: str | None = None,
    ) -> None:
        self.violations = violations
        self.tool_name = tool_name
        details = "; ".join(v.describe() for v in violations) or "invalid value"
        if tool_name:
            message = f"Invalid arguments for tool {tool_name}: {details}"
        else:
            message = f"Invalid value: {details}"
        super().__init__(message)

    def for_tool(self, tool_name: str) -> ArgumentValidationError:
        """Return a copy of this error attributed to a tool."""
        return ArgumentValidationError(self.violations, tool_name=tool_name)


class UpstreamError(GatewayError):
    """Raised by the dispatcher when a forwarded call fails.

    The registry entry is unaffected and stays available for later calls.
    """

    def __init__(self, tool_name: str, upstream_id: str, reason: str) -> None:
        self.tool_name = tool_name
        self.upstream_id = upstream_id
        self.reason = reason
        super().__init__(f"Upstream '{upstream_id}' failed for tool {tool_name}: {reason}")
