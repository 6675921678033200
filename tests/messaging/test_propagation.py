"""Unit tests for trace context propagation through message headers"""
from opentelemetry import trace

from otel_demo.messaging.propagation import (
    HeaderGetter,
    extract_context,
    inject_headers,
    messaging_attributes,
    receive_span_name,
    send_span_name,
)


class TestInjectHeaders:
    """Test writing trace context"""

    def test_inject_inside_span(self, tracer):
        """Test traceparent carries the active span"""
        with tracer.start_as_current_span("orders send") as span:
            headers = inject_headers()

        span_context = span.get_span_context()
        assert headers["traceparent"] == (
            f"00-{format(span_context.trace_id, '032x')}-{format(span_context.span_id, '016x')}-01"
        )

    def test_inject_extends_existing_headers(self, tracer):
        """Test existing headers are kept"""
        headers = {"x-app": "demo"}

        with tracer.start_as_current_span("orders send"):
            result = inject_headers(headers)

        assert result is headers
        assert result["x-app"] == "demo"
        assert "traceparent" in result

    def test_inject_outside_span(self):
        """Test nothing is written without an active span"""
        assert "traceparent" not in inject_headers()


class TestExtractContext:
    """Test reading trace context"""

    def test_round_trip(self, tracer):
        """Test the extracted context points at the injecting span"""
        with tracer.start_as_current_span("orders send") as span:
            headers = inject_headers()

        parent = trace.get_current_span(extract_context(headers)).get_span_context()

        assert parent.trace_id == span.get_span_context().trace_id
        assert parent.span_id == span.get_span_context().span_id
        assert parent.is_remote

    def test_bytes_header_values(self, tracer):
        """Test AMQP header tables with byte values"""
        with tracer.start_as_current_span("orders send") as span:
            headers = {key: value.encode("utf-8") for key, value in inject_headers().items()}

        parent = trace.get_current_span(extract_context(headers)).get_span_context()

        assert parent.trace_id == span.get_span_context().trace_id

    def test_missing_headers(self):
        """Test empty and missing header tables give an invalid parent"""
        assert not trace.get_current_span(extract_context(None)).get_span_context().is_valid
        assert not trace.get_current_span(extract_context({})).get_span_context().is_valid

    def test_malformed_traceparent(self):
        """Test a garbage traceparent is ignored"""
        context = extract_context({"traceparent": "not-a-traceparent"})
        assert not trace.get_current_span(context).get_span_context().is_valid


class TestHeaderGetter:
    """Test the header getter"""

    def test_get_decodes_bytes(self):
        """Test byte values are decoded"""
        assert HeaderGetter().get({"traceparent": b"00-abc"}, "traceparent") == ["00-abc"]

    def test_get_missing_and_empty(self):
        """Test missing and empty values read as absent"""
        getter = HeaderGetter()
        assert getter.get({}, "traceparent") is None
        assert getter.get({"traceparent": ""}, "traceparent") is None
        assert getter.get(None, "traceparent") is None

    def test_keys(self):
        """Test header keys are listed"""
        assert HeaderGetter().keys({"a": 1, "b": 2}) == ["a", "b"]


class TestMessagingAttributes:
    """Test messaging span attributes"""

    def test_attributes(self):
        """Test semantic convention keys"""
        attributes = messaging_attributes("rabbitmq", "orders", "send", "m-1")

        assert attributes == {
            "messaging.system": "rabbitmq",
            "messaging.destination": "orders",
            "messaging.destination_kind": "queue",
            "messaging.operation": "send",
            "messaging.message_id": "m-1",
        }

    def test_attributes_without_message_id(self):
        """Test the message ID is optional"""
        assert "messaging.message_id" not in messaging_attributes("in-memory", "orders", "receive")

    def test_span_names(self):
        """Test span names follow '<queue> <operation>'"""
        assert send_span_name("orders") == "orders send"
        assert receive_span_name("orders") == "orders receive"
