"""
Request logging middleware.

One line when a request arrives and one when it leaves, both carrying the
correlation ID set by RequestIDMiddleware. Failed requests are logged at
ERROR with the traceback and re-raised untouched.

Register it BEFORE RequestIDMiddleware with app.add_middleware() so it
runs inside it and sees request.state.request_id.
"""

import time
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from autocrud.core.logging_config import get_logger, log_with_context


logger = get_logger(__name__)


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 2)


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Log every request handled by the application.

    Example output (JSON):
        {"timestamp": "...", "level": "INFO", "message": "Request completed",
         "logger": "autocrud.middleware.logging", "request_id": "abc-123",
         "method": "PUT", "path": "/dummies/3", "status_code": 200,
         "latency_ms": 4.71}
    """

    async def dispatch(
        self, request: Request, call_next: Callable
    ) -> Response:
        context = {
            "request_id": getattr(request.state, "request_id", None),
            "method": request.method,
            "path": request.url.path,
        }

        log_with_context(
            logger,
            "info",
            "Request started",
            query_params=str(request.query_params) or None,
            **context,
        )

        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as exc:
            logger.error(
                f"Request failed: {exc}",
                extra={
                    **context,
                    "latency_ms": _elapsed_ms(start),
                    "exception_type": type(exc).__name__,
                },
                exc_info=True,
            )
            raise

        log_with_context(
            logger,
            "info",
            "Request completed",
            status_code=response.status_code,
            latency_ms=_elapsed_ms(start),
            **context,
        )
        return response
