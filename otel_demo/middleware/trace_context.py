"""
W3C Trace Context response middleware

The OpenTelemetry FastAPI instrumentation extracts the incoming traceparent and
opens the server span; this middleware echoes that span's context back to the
caller so a browser or CLI can look the trace up in Jaeger.
"""

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from otel_demo.core.telemetry import format_traceparent, get_current_trace_id


class TraceContextMiddleware(BaseHTTPMiddleware):
    """
    - Reads the active server span set by the OpenTelemetry instrumentation
    - Stores its trace ID in request state
    - Adds traceparent and X-Trace-ID response headers
    """

    async def dispatch(self, request: Request, call_next):
        traceparent = format_traceparent()
        trace_id = get_current_trace_id()
        request.state.trace_id = trace_id

        response = await call_next(request)

        if traceparent:
            response.headers["traceparent"] = traceparent
            response.headers["X-Trace-ID"] = trace_id

        return response
