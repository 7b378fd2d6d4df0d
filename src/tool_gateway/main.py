"""FastAPI application entry point for the tool gateway."""

import logging
from contextlib import asynccontextmanager
from functools import partial

from fastapi import FastAPI, Request

from tool_gateway import __version__
from tool_gateway.api.routes import create_router, mcp_sessions
from tool_gateway.api.server import create_mcp_server
from tool_gateway.config import GatewaySettings, get_settings
from tool_gateway.manager.dispatcher import Dispatcher
from tool_gateway.manager.registry import ClientFactory, ToolRegistry
from tool_gateway.upstream.client import UpstreamToolClient

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def default_client_factory(settings: GatewaySettings) -> ClientFactory:
    """Upstream clients identified as this gateway."""
    return partial(
        UpstreamToolClient,
        client_name=settings.name,
        client_version=settings.version,
        timeout=settings.upstream_http_timeout,
    )


def create_app(
    settings: GatewaySettings,
    client_factory: ClientFactory | None = None,
) -> FastAPI:
    """Create and configure the gateway application.

    The tool registry is built in the lifespan hook, before the first request
    is served. If any upstream fails, startup fails.

    Args:
        settings: Gateway settings
        client_factory: Creates upstream clients (defaults to HTTP clients)
    """
    factory = client_factory or default_client_factory(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Starting tool gateway v{__version__} ({settings.name})")
        logger.info(f"Upstreams: {[u.id for u in settings.upstreams]}")

        registry = await ToolRegistry.build(
            settings.upstreams,
            client_factory=factory,
            collision_policy=settings.collision_policy,
            discovery_timeout=settings.discovery_timeout,
        )
        dispatcher = Dispatcher(registry, invocation_timeout=settings.invocation_timeout)
        app.state.registry = registry
        logger.info(f"Serving tools: {list(registry)}")

        server = create_mcp_server(dispatcher, settings.name, settings.version)
        try:
            async with mcp_sessions(app, server, json_response=settings.json_response):
                yield
        finally:
            logger.info("Shutting down tool gateway")
            await registry.aclose()

    app = FastAPI(
        title="Tool Gateway",
        description="Aggregates upstream tool servers behind one catalog",
        version=__version__,
        lifespan=lifespan,
        debug=settings.debug,
    )
    app.state.settings = settings

    app.include_router(create_router(settings.path))

    @app.get("/health")
    async def health(request: Request) -> dict:
        registry: ToolRegistry = request.app.state.registry
        return {
            "status": "ok",
            "version": __version__,
            "upstreams": [client.id for client in registry.clients],
            "tools": len(registry),
        }

    return app


def main() -> None:
    """Run the gateway with uvicorn."""
    import uvicorn

    settings = get_settings()
    logging.basicConfig(level=settings.log_level.upper(), format=LOG_FORMAT)

    logger.info(f"Listening on http://{settings.host}:{settings.port}{settings.path}")
    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
