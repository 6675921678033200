"""
Trace context propagation through message headers

The producer injects the active span context into the message's header table
and the consumer extracts it again, so the send and receive spans join the
same trace. Both sides go through the SDK's global propagator.
"""

from typing import Any, Dict, List, Mapping, Optional

from opentelemetry import propagate
from opentelemetry.context import Context
from opentelemetry.propagators.textmap import Getter

MESSAGING_SYSTEM_RABBITMQ = "rabbitmq"
MESSAGING_SYSTEM_IN_MEMORY = "in-memory"


def _header_to_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, (bytes, bytearray)):
        value = bytes(value).decode("utf-8", errors="replace")
    text = str(value)
    return text or None


class HeaderGetter(Getter[Mapping[str, Any]]):
    """Reads propagation fields from AMQP-style headers (values may be bytes)"""

    def get(self, carrier: Mapping[str, Any], key: str) -> Optional[List[str]]:
        if not carrier:
            return None
        value = _header_to_str(carrier.get(key))
        return [value] if value else None

    def keys(self, carrier: Mapping[str, Any]) -> List[str]:
        return list(carrier.keys()) if carrier else []


header_getter = HeaderGetter()


def inject_headers(headers: Optional[Dict[str, Any]] = None, context: Optional[Context] = None) -> Dict[str, Any]:
    """
    Write trace context into message headers

    Args:
        headers: Existing header table to extend (a new dict when None)
        context: Context to inject; defaults to the current one

    Returns:
        The header table carrying traceparent (and tracestate/baggage when present)
    """
    if headers is None:
        headers = {}
    propagate.inject(headers, context=context)
    return headers


def extract_context(headers: Optional[Mapping[str, Any]]) -> Context:
    """Read trace context from message headers; empty context when none is present"""
    return propagate.extract(headers or {}, getter=header_getter)


def messaging_attributes(
    system: str,
    destination: str,
    operation: str,
    message_id: Optional[str] = None,
) -> Dict[str, Any]:
    """Messaging semantic-convention attributes for a queue span"""
    attributes = {
        "messaging.system": system,
        "messaging.destination": destination,
        "messaging.destination_kind": "queue",
        "messaging.operation": operation,
    }
    if message_id:
        attributes["messaging.message_id"] = message_id
    return attributes


def send_span_name(destination: str) -> str:
    return f"{destination} send"


def receive_span_name(destination: str) -> str:
    return f"{destination} receive"
