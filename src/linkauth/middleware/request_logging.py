"""Request logging middleware for the auth service."""

import logging
import time

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)


def _describe(request: Request) -> str:
    request_id = request.headers.get("x-request-id")
    user = getattr(request.state, "user", None)

    parts = [f"{request.method} {request.url.path}"]
    if user is not None:
        parts.append(f"user={user.id}")
    if request_id:
        parts.append(f"({request_id})")
    return " ".join(parts)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log every HTTP request with its status and duration.

    Enabled by ``LINKAUTH_DEBUG_REQUESTS=true``. Runs outside access control,
    so the user resolved there is included. Query strings are left out of the
    log line because verify links carry tokens in them.
    """

    async def dispatch(self, request: Request, call_next):
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as e:
            duration_ms = (time.perf_counter() - started) * 1000
            logger.error(f"✗ {_describe(request)} - ERROR ({duration_ms:.2f}ms)", exc_info=e)
            raise

        duration_ms = (time.perf_counter() - started) * 1000
        status_code = response.status_code

        if status_code < 400:
            symbol = "✓"
        elif status_code < 500:
            symbol = "⚠"
        else:
            symbol = "✗"

        logger.info(f"{symbol} {_describe(request)} - {status_code} ({duration_ms:.2f}ms)")
        return response
