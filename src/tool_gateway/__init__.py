"""Tool Gateway - one catalog for many upstream tool servers."""

__version__ = "0.1.0"

from tool_gateway.exceptions import (
    ArgumentValidationError,
    DiscoveryError,
    GatewayError,
    InvocationError,
    StartupError,
    ToolNameCollisionError,
    UnknownToolError,
    UpstreamConnectionError,
    UpstreamError,
)

__all__ = [
    "__version__",
    "ArgumentValidationError",
    "DiscoveryError",
    "GatewayError",
    "InvocationError",
    "StartupError",
    "ToolNameCollisionError",
    "UnknownToolError",
    "UpstreamConnectionError",
    "UpstreamError",
]
