"""
Middleware modules shared by the demo's HTTP services
"""

from .correlation_id import CorrelationIdMiddleware
from .trace_context import TraceContextMiddleware

__all__ = ["CorrelationIdMiddleware", "TraceContextMiddleware"]
