"""Clients for upstream tool servers."""

from tool_gateway.upstream.client import UpstreamToolClient

__all__ = ["UpstreamToolClient"]
