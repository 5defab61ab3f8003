"""Entry point for the gateway server."""

import asyncio
import contextlib
import signal
import sys

import structlog

from gateway.config import Settings
from gateway.errors import ListenerStartupError
from gateway.lifecycle import GracefulShutdown
from gateway.logging import configure_logging
from gateway.server import GatewayServer

logger = structlog.get_logger()


async def serve(settings: Settings) -> None:
    """Run the gateway until a shutdown signal arrives.

    Handles SIGTERM/SIGINT for clean shutdown.

    Args:
        settings: Server configuration.

    Raises:
        ListenerStartupError: If the listener cannot be bound.
    """
    server = GatewayServer(settings)
    shutdown = GracefulShutdown(timeout=settings.shutdown_timeout)

    await server.start()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, shutdown.trigger)

    stop_requested = asyncio.create_task(shutdown.wait_for_trigger())
    server_done = asyncio.create_task(server.wait_closed())
    await asyncio.wait(
        {stop_requested, server_done},
        return_when=asyncio.FIRST_COMPLETED,
    )
    stop_requested.cancel()

    await shutdown.drain(server.stop())
    server_done.cancel()


def main() -> None:
    """Entry point for python -m gateway."""
    settings = Settings()
    configure_logging(debug=settings.debug)

    try:
        with contextlib.suppress(KeyboardInterrupt):
            asyncio.run(serve(settings))
    except ListenerStartupError as e:
        logger.error(
            "listener_startup_failed",
            host=e.host,
            port=e.port,
            error=str(e),
        )
        sys.exit(1)

    sys.exit(0)


if __name__ == "__main__":
    main()
