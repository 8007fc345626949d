"""
Access log for API requests.
"""

import logging
import time
from typing import Callable

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger("streamvault.access")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log ``METHOD /path STATUS in Nms`` for every /api request.

    For streams the time is time-to-headers, not the length of the transfer.
    """

    async def dispatch(self, request: Request, call_next: Callable):
        if not request.url.path.startswith("/api"):
            return await call_next(request)

        start_time = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - start_time) * 1000

        logger.info(
            "%s %s %s in %.0fms",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
        )
        return response
