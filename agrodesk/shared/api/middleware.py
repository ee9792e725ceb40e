"""
Shared API Middleware
======================

Common middleware and exception handlers for the FastAPI application.
"""

import time
import uuid
from datetime import datetime, timezone
from typing import Callable, Dict

from fastapi import Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from agrodesk.core import ApplicationException
from agrodesk.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


# Stable error kind -> HTTP status.
ERROR_STATUS_CODES: Dict[str, int] = {
    "validation_error": status.HTTP_422_UNPROCESSABLE_ENTITY,
    "not_found": status.HTTP_404_NOT_FOUND,
    "forbidden": status.HTTP_403_FORBIDDEN,
    "unauthorized": status.HTTP_401_UNAUTHORIZED,
    "invalid_status": status.HTTP_400_BAD_REQUEST,
    "invalid_outcome": status.HTTP_400_BAD_REQUEST,
    "invalid_assignment": status.HTTP_400_BAD_REQUEST,
    "domain_error": status.HTTP_400_BAD_REQUEST,
    "conflict": status.HTTP_409_CONFLICT,
}


def _error_body(request: Request, kind: str, message: str) -> dict:
    return {
        "error": {"kind": kind, "message": message},
        "correlation_id": getattr(request.state, "correlation_id", "unknown"),
    }


class CorrelationIDMiddleware(BaseHTTPMiddleware):
    """
    Adds correlation ID to requests for tracing.

    Correlation IDs link the logs of one request across layers.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        correlation_id = request.headers.get("X-Correlation-ID", str(uuid.uuid4()))

        # Store in request state for access in endpoints
        request.state.correlation_id = correlation_id

        response = await call_next(request)
        response.headers["X-Correlation-ID"] = correlation_id
        return response


class MetricsMiddleware(BaseHTTPMiddleware):
    """
    Tracks request timing.

    Adds the response time as a header for debugging.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.perf_counter()

        response = await call_next(request)

        response_time = time.perf_counter() - start_time
        response.headers["X-Response-Time"] = f"{response_time:.3f}s"
        return response


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Logs all requests and responses.

    Provides audit trail and debugging information.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        correlation_id = getattr(request.state, "correlation_id", "unknown")
        start_time = time.perf_counter()

        logger.info(
            "Request started",
            extra={
                "correlation_id": correlation_id,
                "method": request.method,
                "path": request.url.path,
                "client": request.client.host if request.client else None
            }
        )

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "Request failed",
                extra={
                    "correlation_id": correlation_id,
                    "method": request.method,
                    "path": request.url.path,
                    "error": str(e),
                    "response_time_ms": int((time.perf_counter() - start_time) * 1000)
                }
            )
            raise

        logger.info(
            "Request completed",
            extra={
                "correlation_id": correlation_id,
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "response_time_ms": int((time.perf_counter() - start_time) * 1000)
            }
        )
        return response


async def application_exception_handler(
    request: Request,
    exc: ApplicationException
) -> JSONResponse:
    """
    Render an ApplicationException by its kind.

    Internal kinds get an opaque message; their details are only logged.
    """
    status_code = ERROR_STATUS_CODES.get(exc.kind, status.HTTP_500_INTERNAL_SERVER_ERROR)
    correlation_id = getattr(request.state, "correlation_id", "unknown")

    if status_code >= 500:
        logger.error(
            "Application error",
            extra={
                "correlation_id": correlation_id,
                "path": request.url.path,
                "kind": exc.kind,
                "error_message": exc.message,
                "details": exc.details,
            }
        )
        message = "Internal server error"
    else:
        logger.info(
            "Request rejected",
            extra={
                "correlation_id": correlation_id,
                "path": request.url.path,
                "kind": exc.kind,
                "error_message": exc.message,
            }
        )
        message = exc.message

    return JSONResponse(
        status_code=status_code,
        content=_error_body(request, exc.kind, message),
    )


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError
) -> JSONResponse:
    """Request body/query validation failures share the validation_error kind."""
    fields = [".".join(str(p) for p in err.get("loc", ())) for err in exc.errors()]
    body = _error_body(request, "validation_error", f"Invalid request: {', '.join(fields)}")
    body["error"]["fields"] = fields
    return JSONResponse(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, content=body)


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Global exception handler for unhandled exceptions.

    Returns consistent error responses for all exceptions.
    """
    correlation_id = getattr(request.state, "correlation_id", "unknown")

    logger.error(
        "Unhandled exception",
        extra={
            "correlation_id": correlation_id,
            "path": request.url.path,
            "method": request.method,
            "error_type": type(exc).__name__,
            "error_message": str(exc)
        }
    )

    body = _error_body(request, "internal", "Internal server error")
    body["timestamp"] = datetime.now(timezone.utc).isoformat()
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=body)
