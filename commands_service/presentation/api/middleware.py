"""
HTTP middleware components for request/response processing.
"""

import logging
from typing import Awaitable, Callable

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

GENERIC_ERROR_BODY = {"message": "Internal Server Error"}


def internal_error_response() -> JSONResponse:
    """Generic 500 response; the cause is only ever logged."""
    return JSONResponse(status_code=500, content=GENERIC_ERROR_BODY)


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Middleware for centralized error handling."""

    async def dispatch(self, request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        """Process request and turn any unhandled error into a generic 500."""
        try:
            return await call_next(request)
        except Exception as e:
            logger.exception(f"Unhandled error in {request.method} {request.url}: {e}")
            return internal_error_response()
