import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

logger = logging.getLogger("wii.access")


class LoggingMiddleware(BaseHTTPMiddleware):
    """Log one line per request with its status and duration."""

    async def dispatch(self, request: Request, call_next):
        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            logger.exception("%s %s failed after %.1fms", request.method, request.url.path,
                             (time.perf_counter() - start) * 1000)
            raise
        logger.info("%s %s %s %.1fms", request.method, request.url.path, response.status_code,
                    (time.perf_counter() - start) * 1000)
        return response
