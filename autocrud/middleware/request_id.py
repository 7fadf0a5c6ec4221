"""
Request ID middleware for correlation tracking.

Every request gets a correlation ID:
- Reads X-Request-ID header from the client (if provided)
- Generates a UUID4 if the header is missing
- Stores it in request.state.request_id for the logging middleware and
  the generated CRUD handlers
- Echoes it in the X-Request-ID response header
"""

import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware


REQUEST_ID_HEADER = "X-Request-ID"


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Middleware to add request ID correlation to all requests.

    Example:
        app.add_middleware(RequestIDMiddleware)

    Usage in routes:
        @app.get("/example")
        async def example(request: Request):
            return {"request_id": request.state.request_id}
    """

    async def dispatch(
        self, request: Request, call_next: Callable
    ) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER)

        if not request_id:
            request_id = str(uuid.uuid4())

        request.state.request_id = request_id

        response = await call_next(request)

        response.headers[REQUEST_ID_HEADER] = request_id

        return response
