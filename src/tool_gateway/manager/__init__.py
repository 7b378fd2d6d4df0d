"""Tool registry and dispatcher."""

from tool_gateway.manager.dispatcher import Dispatcher
from tool_gateway.manager.registry import ToolRegistry

__all__ = ["Dispatcher", "ToolRegistry"]
