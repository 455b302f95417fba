"""
Global error handling middleware.

Turns exceptions that escape a route into logged 500 responses so a single bad
request never takes the server down.
"""

import time

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from wabridge.core.logging.logger import get_logger


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """
    Catches all unhandled exceptions and returns a structured error response
    without exposing internal details.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        """Process request with error handling."""
        try:
            return await call_next(request)

        except HTTPException as http_exc:
            # HTTP exceptions are handled by FastAPI, but we log them with context
            self._log_http_exception(request, http_exc)
            raise

        except Exception as exc:
            return self._handle_unexpected_exception(request, exc)

    def _log_http_exception(self, request: Request, exc: HTTPException) -> None:
        logger = get_logger(__name__)
        logger.warning(
            f"HTTP {exc.status_code} - {request.method} {request.url.path} - "
            f"Detail: {exc.detail}"
        )

    def _handle_unexpected_exception(
        self, request: Request, exc: Exception
    ) -> JSONResponse:
        logger = get_logger(__name__)
        logger.error(
            f"✗ Unhandled exception in {request.method} {request.url.path}: {exc}",
            exc_info=True,
        )

        if self._is_webhook_endpoint(request.url.path):
            content = {
                "status": "error",
                "message": "Webhook processing failed",
                "type": "webhook_error",
            }
        else:
            content = {
                "detail": "Internal server error",
                "type": "internal_error",
                "timestamp": time.time(),
            }
        return JSONResponse(status_code=500, content=content)

    def _is_webhook_endpoint(self, path: str) -> bool:
        return path.startswith("/api/webhooks/")
