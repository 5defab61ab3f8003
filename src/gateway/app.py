"""FastAPI application factory and lifespan management."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from gateway.commands import CommandRouter
from gateway.config import Settings
from gateway.connections import ConnectionRegistry
from gateway.events import BroadcastRelay
from gateway.middleware.logging import RequestLoggingMiddleware
from gateway.routes import channel
from gateway.watcher import ItemWatcher, WatcherFacade

logger = structlog.get_logger()

GOING_AWAY = 1001


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application lifecycle events.

    Builds the connection registry, command router and broadcast relay
    around the configured watcher on startup. On shutdown the relay is
    unsubscribed first so no broadcast races the closing connections.

    Args:
        app: FastAPI application instance.

    Yields:
        None during application runtime.
    """
    settings: Settings = app.state.settings
    watcher: WatcherFacade = app.state.watcher
    logger.info("gateway_startup", host=settings.host, port=settings.port)

    registry = ConnectionRegistry()
    command_router = CommandRouter(
        watcher,
        numeric_fields=settings.numeric_fields,
        await_submission=settings.await_item_submission,
    )
    relay = BroadcastRelay(watcher, registry)

    app.state.registry = registry
    app.state.command_router = command_router
    app.state.relay = relay

    try:
        yield
    finally:
        relay.close()
        await command_router.shutdown()
        await registry.close_all(code=GOING_AWAY)
        logger.info("gateway_shutdown")


def create_app(
    settings: Settings | None = None,
    watcher: WatcherFacade | None = None,
) -> FastAPI:
    """Factory function to create configured FastAPI application.

    Args:
        settings: Configuration instance. Creates default if None.
        watcher: Watcher to serve. Creates an in-memory one if None.

    Returns:
        Configured FastAPI application.
    """
    if settings is None:
        settings = Settings()
    if watcher is None:
        watcher = ItemWatcher()

    app = FastAPI(
        title="Watch Gateway",
        version="0.1.0",
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.settings = settings
    app.state.watcher = watcher

    app.add_middleware(RequestLoggingMiddleware)
    app.include_router(channel.router)

    return app
