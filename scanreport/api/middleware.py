"""
API middleware for ScanReport.

Provides:
- Rate limiting
- Request logging
- Error translation for export failures
"""

import time
from typing import Callable

from fastapi import Request, Response, HTTPException
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.util import get_remote_address
from starlette.middleware.base import BaseHTTPMiddleware

from scanreport.core.errors import ExportError, LayoutFailure, SourceUnavailable
from scanreport.utils.logger import get_logger

logger = get_logger("middleware")


# Rate limiter using client IP
limiter = Limiter(key_func=get_remote_address)

# Failures caused by the submitted input rather than the server
CLIENT_EXPORT_ERRORS = (SourceUnavailable, LayoutFailure)


def export_error_response(error: ExportError) -> JSONResponse:
    """Structured JSON response for an export failure."""
    status_code = 422 if isinstance(error, CLIENT_EXPORT_ERRORS) else 500
    return JSONResponse(
        status_code=status_code,
        content={
            "error": type(error).__name__,
            "message": error.message,
            "error_code": error.error_code
        }
    )


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware for request/response logging.

    Logs:
    - Request method and path
    - Response status code
    - Processing time
    """

    async def dispatch(
        self,
        request: Request,
        call_next: Callable
    ) -> Response:
        start_time = time.time()

        method = request.method
        path = request.url.path
        client_ip = get_remote_address(request)

        logger.info(
            "Request received",
            method=method,
            path=path,
            client_ip=client_ip
        )

        try:
            response = await call_next(request)

            process_time = time.time() - start_time

            logger.info(
                "Request completed",
                method=method,
                path=path,
                status_code=response.status_code,
                process_time_ms=int(process_time * 1000)
            )

            response.headers["X-Process-Time"] = f"{process_time:.4f}"

            return response

        except Exception as e:
            process_time = time.time() - start_time

            logger.error(
                "Request failed",
                method=method,
                path=path,
                error=str(e),
                process_time_ms=int(process_time * 1000)
            )
            raise


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """
    Global error handling middleware.

    Catches unhandled exceptions and returns safe error responses.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: Callable
    ) -> Response:
        try:
            return await call_next(request)

        except HTTPException:
            raise

        except ValueError as e:
            logger.warning("Validation error", error=str(e))
            return JSONResponse(
                status_code=400,
                content={
                    "error": "Validation Error",
                    "message": str(e),
                    "error_code": "VALIDATION_ERROR"
                }
            )

        except Exception as e:
            logger.error("Unhandled exception", error=str(e), exc_info=True)
            return JSONResponse(
                status_code=500,
                content={
                    "error": "Internal Server Error",
                    "message": "An unexpected error occurred. Please try again.",
                    "error_code": "INTERNAL_ERROR"
                }
            )


def setup_rate_limiting(app) -> None:
    """Setup rate limiting on the application."""
    app.state.limiter = limiter

    @app.exception_handler(429)
    async def rate_limit_handler(request: Request, exc: Exception):
        return JSONResponse(
            status_code=429,
            content={
                "error": "Rate Limit Exceeded",
                "message": "Too many requests. Please wait before trying again.",
                "error_code": "RATE_LIMIT_EXCEEDED"
            }
        )


def setup_error_handlers(app) -> None:
    """Map export failures raised by routes to structured responses."""

    @app.exception_handler(ExportError)
    async def export_error_handler(request: Request, exc: ExportError):
        logger.warning("Export error", error_code=exc.error_code, error=exc.message)
        return export_error_response(exc)
