"""
Correlation ID Middleware for request tracing
Ensures every request has a correlation ID and echoes it back in the response
"""

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from otel_demo.core.config import config
from otel_demo.utils.correlation_id import (
    create_correlation_id,
    extract_correlation_id_from_headers,
    set_correlation_id,
)


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """
    Middleware to handle correlation IDs for request tracing

    - Extracts correlation ID from request headers (or generates a new one)
    - Stores it in context for use throughout the request lifecycle
    - Adds it to response headers
    """

    async def dispatch(self, request: Request, call_next):
        header_name = config.correlation_id_header
        correlation_id = (
            extract_correlation_id_from_headers(dict(request.headers), header_name)
            or create_correlation_id()
        )

        set_correlation_id(correlation_id)
        request.state.correlation_id = correlation_id

        response = await call_next(request)

        response.headers[header_name] = correlation_id
        return response
