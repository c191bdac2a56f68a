"""Request logging middleware."""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from anifunnel.utils.logger import get_logger

logger = get_logger(__name__)
stdlib_logger = logging.getLogger(__name__)

WEBHOOK_PATH = "/"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log Plex webhook requests and their outcome."""

    async def dispatch(self, request: Request, call_next):
        """Log request before processing and response after."""
        if request.method != "POST" or request.url.path != WEBHOOK_PATH:
            return await call_next(request)

        start_time = time.time()

        log_data = {
            "method": request.method,
            "path": request.url.path,
            "content_type": request.headers.get("content-type"),
            "content_length": request.headers.get("content-length"),
        }
        # Headers only at debug level; Plex includes its server token in some.
        if stdlib_logger.isEnabledFor(logging.DEBUG):
            log_data["headers"] = {
                k: v
                for k, v in request.headers.items()
                if k.lower() not in ("authorization", "x-plex-token", "cookie")
            }

        logger.info("Incoming webhook request", **log_data)

        response = await call_next(request)

        duration_ms = (time.time() - start_time) * 1000
        logger.info(
            "Webhook request completed",
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=round(duration_ms, 2),
        )

        return response
