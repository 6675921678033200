"""
Correlation ID utilities
Shared across the producer API, the consumer worker and the frontend
"""

import uuid
from contextvars import ContextVar
from typing import Dict, Optional

# Context variable to store correlation ID across async operations
correlation_id_context: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)


def get_correlation_id() -> Optional[str]:
    """Get the correlation ID from the current context"""
    return correlation_id_context.get()


def set_correlation_id(correlation_id: Optional[str]) -> None:
    """Set the correlation ID in the current context"""
    correlation_id_context.set(correlation_id)


def create_correlation_id() -> str:
    """Create a new UUID-based correlation ID"""
    return str(uuid.uuid4())


def extract_correlation_id_from_headers(headers: Dict[str, str], header_name: str = "X-Correlation-ID") -> Optional[str]:
    """
    Extract a correlation ID from a header mapping (case-insensitive)

    Returns:
        The header value, or None when absent
    """
    wanted = header_name.lower()
    for key, value in headers.items():
        if key.lower() == wanted and value:
            return value
    return None
