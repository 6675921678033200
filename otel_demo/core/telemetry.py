"""
OpenTelemetry setup shared by every service in the demo

Spans are exported over OTLP/gRPC to the collector, which forwards them to
Jaeger and (when AZURE_MONITOR_CONNECTION_STRING is set) to Azure Monitor.
Trace context propagation uses the SDK's global propagator (W3C traceparent,
tracestate and baggage).
"""

from typing import Optional

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
from opentelemetry.instrumentation.logging import LoggingInstrumentor
from opentelemetry.sdk.resources import DEPLOYMENT_ENVIRONMENT, SERVICE_NAME, SERVICE_VERSION, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from otel_demo.core.config import config
from otel_demo.core.logger import logger

# Provider created by init_telemetry in this process
_provider: Optional[TracerProvider] = None


def create_resource(service_name: str, service_version: str) -> Resource:
    """Resource attributes attached to every span from this process"""
    return Resource.create({
        SERVICE_NAME: service_name,
        SERVICE_VERSION: service_version,
        DEPLOYMENT_ENVIRONMENT: config.environment,
    })


def init_telemetry(service_name: str, service_version: Optional[str] = None) -> Optional[TracerProvider]:
    """
    Initialize OpenTelemetry tracing for one service process.

    Safe to call more than once: an SDK provider that is already installed
    globally is reused instead of replaced.

    Args:
        service_name: Value for the service.name resource attribute
        service_version: Value for service.version (defaults to SERVICE_VERSION)

    Returns:
        The active SDK TracerProvider, or None when tracing is disabled
    """
    global _provider

    logger.configure(service_name)

    if not config.enable_tracing:
        logger.info("Tracing disabled by configuration", metadata={"service": service_name})
        return None

    current = trace.get_tracer_provider()
    if isinstance(current, TracerProvider):
        # Installed by an earlier call or by the host process; it owns shutdown
        return current

    endpoint = config.otel_exporter_otlp_endpoint
    provider = TracerProvider(resource=create_resource(service_name, service_version or config.service_version))
    provider.add_span_processor(
        BatchSpanProcessor(OTLPSpanExporter(endpoint=endpoint, insecure=endpoint.startswith("http://")))
    )
    trace.set_tracer_provider(provider)
    _provider = provider

    LoggingInstrumentor().instrument(set_logging_format=False)

    logger.info(
        f"Tracing initialized for {service_name}",
        metadata={
            "endpoint": endpoint,
            "azureMonitor": bool(config.azure_monitor_connection_string),
        },
    )
    return provider


def instrument_app(app) -> None:
    """
    Instrument a FastAPI application and the HTTPX client.

    The FastAPI instrumentation extracts the incoming traceparent header and
    makes the server span current; the HTTPX instrumentation injects it into
    outgoing requests.
    """
    try:
        FastAPIInstrumentor.instrument_app(app)
        logger.info("FastAPI instrumented with OpenTelemetry")

        if not HTTPXClientInstrumentor().is_instrumented_by_opentelemetry:
            HTTPXClientInstrumentor().instrument()
            logger.info("HTTPX client instrumented with OpenTelemetry")
    except Exception as e:
        logger.error("Failed to instrument application", error=e)


def get_tracer(name: str) -> trace.Tracer:
    """Tracer for the given instrumentation scope"""
    return trace.get_tracer(name, config.service_version)


def get_current_trace_id() -> Optional[str]:
    """Get the current trace ID as a 32-char hex string"""
    span_context = trace.get_current_span().get_span_context()
    if span_context.is_valid:
        return format(span_context.trace_id, "032x")
    return None


def get_current_span_id() -> Optional[str]:
    """Get the current span ID as a 16-char hex string"""
    span_context = trace.get_current_span().get_span_context()
    if span_context.is_valid:
        return format(span_context.span_id, "016x")
    return None


def format_traceparent(span: Optional[trace.Span] = None) -> Optional[str]:
    """Render a span's context as a W3C traceparent value"""
    span = span or trace.get_current_span()
    span_context = span.get_span_context()
    if not span_context.is_valid:
        return None
    return (
        f"00-{format(span_context.trace_id, '032x')}"
        f"-{format(span_context.span_id, '016x')}"
        f"-{int(span_context.trace_flags):02x}"
    )


def shutdown_telemetry() -> None:
    """Flush pending spans and shut the provider down"""
    global _provider

    if _provider is None:
        return

    try:
        _provider.force_flush()
        _provider.shutdown()
        logger.info("Telemetry shut down")
    except Exception as e:
        logger.error("Failed to shut down telemetry", error=e)
    finally:
        _provider = None
