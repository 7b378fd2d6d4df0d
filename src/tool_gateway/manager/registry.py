"""Tool registry: the aggregated catalog of upstream tools.

Built once at startup. Every configured upstream is connected and asked for
its tools concurrently; the results are then merged in configured order, so
name collisions resolve deterministically no matter which upstream answered
first.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterator, Mapping, Sequence
from typing import Any, Callable, Literal

from tool_gateway.exceptions import (
    DiscoveryError,
    StartupError,
    ToolNameCollisionError,
    UpstreamConnectionError,
)
from tool_gateway.models.tool import ProxyToolEntry, ToolDescriptor, UpstreamEndpoint
from tool_gateway.schema import translate_input_schema
from tool_gateway.upstream.client import UpstreamToolClient

logger = logging.getLogger(__name__)

CollisionPolicy = Literal["last_wins", "error"]
ClientFactory = Callable[[UpstreamEndpoint], UpstreamToolClient]


class ToolRegistry(Mapping[str, ProxyToolEntry]):
    """Read-only mapping of tool name to proxy entry.

    Owns the upstream clients its entries point at and closes them in
    ``aclose()``.
    """

    def __init__(
        self,
        entries: Mapping[str, ProxyToolEntry],
        clients: Sequence[UpstreamToolClient],
    ) -> None:
        self._entries: dict[str, ProxyToolEntry] = dict(entries)
        self._clients: tuple[UpstreamToolClient, ...] = tuple(clients)

    @classmethod
    async def build(
        cls,
        upstreams: Sequence[UpstreamEndpoint],
        *,
        client_factory: ClientFactory = UpstreamToolClient,
        collision_policy: CollisionPolicy = "last_wins",
        discovery_timeout: float | None = 10.0,
    ) -> ToolRegistry:
        """Discover every upstream's tools and build the catalog.

        Args:
            upstreams: Upstream endpoints, in priority order (later wins)
            client_factory: Creates the client for an endpoint
            collision_policy: "last_wins" overwrites, "error" fails startup
            discovery_timeout: Seconds allowed per upstream for connect + list

        Returns:
            The populated registry

        Raises:
            StartupError: If any upstream cannot be connected to or discovered,
                or on a name collision under the "error" policy
        """
        clients = [client_factory(endpoint) for endpoint in upstreams]

        outcomes = await asyncio.gather(
            *(_discover(client, discovery_timeout) for client in clients),
            return_exceptions=True,
        )

        try:
            for client, outcome in zip(clients, outcomes):
                if isinstance(outcome, BaseException):
                    raise _startup_error(client, outcome) from outcome

            entries: dict[str, ProxyToolEntry] = {}
            for client, descriptors in zip(clients, outcomes):
                for descriptor in descriptors:
                    _insert(entries, client, descriptor, collision_policy)
        except StartupError as e:
            logger.error(f"Tool registry build failed: {e}")
            await _close_all(clients)
            raise

        logger.info(
            f"Tool registry built: {len(entries)} tools from {len(clients)} upstreams"
        )
        return cls(entries, clients)

    def __getitem__(self, name: str) -> ProxyToolEntry:
        return self._entries[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def clients(self) -> tuple[UpstreamToolClient, ...]:
        return self._clients

    def catalog(self) -> list[dict[str, Any]]:
        """Tool list as published by the gateway, in registration order."""
        return [entry.describe() for entry in self._entries.values()]

    async def aclose(self) -> None:
        """Close every upstream client."""
        await _close_all(self._clients)


async def _discover(
    client: UpstreamToolClient, timeout: float | None
) -> list[ToolDescriptor]:
    async def connect_and_list() -> list[ToolDescriptor]:
        await client.connect()
        return await client.list_tools()

    return await asyncio.wait_for(connect_and_list(), timeout=timeout)


def _startup_error(client: UpstreamToolClient, error: BaseException) -> StartupError:
    if isinstance(error, (UpstreamConnectionError, DiscoveryError)):
        reason = str(error)
    elif isinstance(error, asyncio.TimeoutError):
        reason = f"Discovery of upstream '{client.id}' timed out"
    else:
        reason = f"Discovery of upstream '{client.id}' failed: {error!r}"
    return StartupError(reason, upstream_id=client.id)


def _insert(
    entries: dict[str, ProxyToolEntry],
    client: UpstreamToolClient,
    descriptor: ToolDescriptor,
    collision_policy: CollisionPolicy,
) -> None:
    existing = entries.get(descriptor.name)
    if existing is not None:
        if collision_policy == "error":
            raise ToolNameCollisionError(descriptor.name, existing.owner.id, client.id)
        logger.warning(
            f"Tool '{descriptor.name}' from upstream {client.id} replaces "
            f"the one from {existing.owner.id}"
        )

    entries[descriptor.name] = ProxyToolEntry(
        name=descriptor.name,
        description=descriptor.description,
        validator=translate_input_schema(descriptor.input_schema),
        owner=client,
        input_schema=descriptor.input_schema,
    )


async def _close_all(clients: Sequence[UpstreamToolClient]) -> None:
    results = await asyncio.gather(
        *(client.aclose() for client in clients), return_exceptions=True
    )
    for client, result in zip(clients, results):
        if isinstance(result, Exception):
            logger.warning(f"Closing upstream {client.id} failed: {result}")
