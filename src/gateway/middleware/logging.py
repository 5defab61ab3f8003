"""Logging for plain HTTP requests reaching the WebSocket listener."""
import time
from collections.abc import Awaitable, Callable

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = structlog.get_logger()


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs every plain HTTP request as a rejected connection attempt.

    The gateway only speaks WebSocket, so an HTTP request is usually a
    misconfigured client or a proxy that dropped the upgrade headers.
    The ``upgrade`` field records what the client asked for. WebSocket
    traffic bypasses this middleware.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000

        client = request.client
        logger.warning(
            "http_request_rejected",
            method=request.method,
            path=request.url.path,
            status=response.status_code,
            upgrade=request.headers.get("upgrade"),
            duration_ms=round(duration_ms, 2),
            client=f"{client.host}:{client.port}" if client else "unknown",
        )

        return response
