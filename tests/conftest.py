"""Shared test fixtures"""
import os

# Read by the module-level config, so set before anything from otel_demo is imported
os.environ.setdefault("LOG_TO_CONSOLE", "false")
os.environ.setdefault("ENVIRONMENT", "test")

import pytest
from unittest.mock import AsyncMock, MagicMock
from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from otel_demo.core.config import Config

# One SDK provider for the whole session; init_telemetry reuses it instead of exporting over OTLP
_exporter = InMemorySpanExporter()
_provider = TracerProvider()
_provider.add_span_processor(SimpleSpanProcessor(_exporter))
trace.set_tracer_provider(_provider)


@pytest.fixture
def span_exporter():
    """In-memory exporter receiving every finished span, emptied per test"""
    _exporter.clear()
    yield _exporter
    _exporter.clear()


@pytest.fixture
def tracer():
    """Tracer for opening parent spans inside tests"""
    return trace.get_tracer("tests")


@pytest.fixture
def settings():
    """Settings with a dedicated queue and no simulated work"""
    return Config(
        queue_name="test-queue",
        processing_delay_ms=0,
        use_in_memory_queue=False,
        service_name="producer-api",
    )


@pytest.fixture
def mock_broker():
    """Broker double with the IMessageBroker surface"""
    broker = MagicMock()
    broker.system = "rabbitmq"
    broker.queue_name = "test-queue"
    broker.connect = AsyncMock()
    broker.disconnect = AsyncMock()
    broker.publish = AsyncMock()
    broker.consume = AsyncMock()
    broker.get_stats = AsyncMock(return_value={
        "broker": "rabbitmq",
        "queue": "test-queue",
        "message_count": 2,
        "consumer_count": 1,
        "connected": True,
    })
    broker.is_healthy.return_value = True
    return broker
