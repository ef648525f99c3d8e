"""
Shared API Middleware
======================

Common middleware and exception handlers for the FastAPI application.
"""

import time
import uuid
from typing import Callable
from datetime import datetime, timezone

from fastapi import Request, Response, status
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp
from fastapi.responses import JSONResponse

from eduticket.config import settings
from eduticket.core import (
    ApplicationException,
    AuthorizationException,
    ExternalServiceException,
    KnowledgeBaseException,
    RateLimitExceededException,
    ResourceNotFoundException,
    ValidationException,
)
from eduticket.shared.infrastructure.grafana import get_grafana_exporter
from eduticket.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)

KB_STATUS_CODES = {
    KnowledgeBaseException.ENTRY_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    KnowledgeBaseException.UNAUTHORIZED: status.HTTP_403_FORBIDDEN,
    KnowledgeBaseException.VALIDATION_FAILED: status.HTTP_422_UNPROCESSABLE_ENTITY,
    KnowledgeBaseException.INVALID_VISIBILITY: status.HTTP_422_UNPROCESSABLE_ENTITY,
    KnowledgeBaseException.DUPLICATE_FEEDBACK: status.HTTP_409_CONFLICT,
    KnowledgeBaseException.EMBEDDING_FAILED: status.HTTP_502_BAD_GATEWAY,
    KnowledgeBaseException.SEARCH_FAILED: status.HTTP_502_BAD_GATEWAY,
}


class CorrelationIDMiddleware(BaseHTTPMiddleware):
    """
    Adds correlation ID to requests for tracing.

    Correlation IDs link every log line of one request.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        correlation_id = request.headers.get("X-Correlation-ID", str(uuid.uuid4()))
        request.state.correlation_id = correlation_id

        response = await call_next(request)
        response.headers["X-Correlation-ID"] = correlation_id
        return response


class MetricsMiddleware(BaseHTTPMiddleware):
    """
    Tracks request metrics for monitoring.

    Records response times and pushes them to Grafana when configured.
    """

    def __init__(self, app: ASGIApp):
        super().__init__(app)
        self.request_count = 0
        self.total_response_time = 0.0

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.perf_counter()
        self.request_count += 1

        response = await call_next(request)

        response_time = time.perf_counter() - start_time
        self.total_response_time += response_time

        response.headers["X-Response-Time"] = f"{response_time:.3f}s"
        response.headers["X-Request-Count"] = str(self.request_count)

        exporter = get_grafana_exporter()
        if exporter and exporter.is_enabled():
            await exporter.export_request_latency(
                endpoint=request.url.path,
                status_code=response.status_code,
                latency_ms=int(response_time * 1000),
                method=request.method
            )

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
                "url": str(request.url),
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
                    "url": str(request.url),
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
                "url": str(request.url),
                "status_code": response.status_code,
                "response_time_ms": int((time.perf_counter() - start_time) * 1000)
            }
        )
        return response


def status_code_for(exc: ApplicationException) -> int:
    """Map an application exception onto an HTTP status code."""
    if isinstance(exc, KnowledgeBaseException):
        return KB_STATUS_CODES.get(exc.code, status.HTTP_500_INTERNAL_SERVER_ERROR)
    if isinstance(exc, ResourceNotFoundException):
        return status.HTTP_404_NOT_FOUND
    if isinstance(exc, ValidationException):
        return status.HTTP_422_UNPROCESSABLE_ENTITY
    if isinstance(exc, AuthorizationException):
        return status.HTTP_403_FORBIDDEN
    if isinstance(exc, RateLimitExceededException):
        return status.HTTP_429_TOO_MANY_REQUESTS
    if isinstance(exc, ExternalServiceException):
        return status.HTTP_502_BAD_GATEWAY
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def application_exception_handler(request: Request, exc: ApplicationException) -> JSONResponse:
    """Render application exceptions as JSON with a matching status code."""
    correlation_id = getattr(request.state, "correlation_id", "unknown")
    status_code = status_code_for(exc)

    logger.warning(
        "Application exception",
        extra={
            "correlation_id": correlation_id,
            "path": request.url.path,
            "error_type": type(exc).__name__,
            "error_message": exc.message,
            "status_code": status_code
        }
    )

    content = {"detail": exc.message, "correlation_id": correlation_id}
    if isinstance(exc, KnowledgeBaseException):
        content["code"] = exc.code
    return JSONResponse(status_code=status_code, content=content)


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

    # Don't expose internal details outside development
    is_dev = settings.environment == "development"

    return JSONResponse(
        status_code=500,
        content={
            "detail": "Internal server error",
            "correlation_id": correlation_id,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "debug_info": str(exc) if is_dev else None
        }
    )
