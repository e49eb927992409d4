"""
Request tracing middleware.

Every request gets a short request id (taken from `X-Request-ID` when the
client supplies one) that is bound into the structlog context, echoed back in
the response headers, and attached to the start/finish log lines together with
the elapsed time.
"""

import time
import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from dayplay_feed.core.logging import bind_context, clear_context, get_logger


logger = get_logger(__name__)


class RequestTracingMiddleware(BaseHTTPMiddleware):
    """Bind request context, log timing, add the X-Request-ID header."""

    async def dispatch(
        self, request: Request, call_next: Callable
    ) -> Response:
        request_id = request.headers.get("X-Request-ID", uuid.uuid4().hex[:8])

        bind_context(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )

        # Feed calls identify the swiper through the query string
        user_id = request.query_params.get("user_id")
        if user_id:
            bind_context(user_id=user_id)

        start = time.perf_counter()
        logger.info("Request started")

        try:
            response = await call_next(request)

            logger.info(
                "Request completed",
                status_code=response.status_code,
                duration_ms=round((time.perf_counter() - start) * 1000, 2),
            )
            response.headers["X-Request-ID"] = request_id
            return response

        except Exception as e:
            logger.error(
                "Request failed",
                error=str(e),
                error_type=type(e).__name__,
                duration_ms=round((time.perf_counter() - start) * 1000, 2),
            )
            raise

        finally:
            clear_context()
