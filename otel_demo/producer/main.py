"""
FastAPI Application - Producer API
Accepts messages over HTTP and publishes them to the queue with trace context attached
"""

# Load environment variables from .env file FIRST before any other imports
from dotenv import load_dotenv
load_dotenv()

import asyncio
from contextlib import asynccontextmanager, suppress
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from otel_demo.consumer.worker import QueueProcessorWorker
from otel_demo.core.config import PRODUCER_SERVICE_NAME, Config, config as default_config, mask_secret
from otel_demo.core.errors import register_error_handlers
from otel_demo.core.logger import logger
from otel_demo.core.telemetry import init_telemetry, instrument_app, shutdown_telemetry
from otel_demo.messaging.i_message_broker import IMessageBroker
from otel_demo.messaging.message_broker_factory import MessageBrokerFactory
from otel_demo.middleware import CorrelationIdMiddleware, TraceContextMiddleware
from otel_demo.producer.api import health, messages


def create_app(settings: Optional[Config] = None, broker: Optional[IMessageBroker] = None) -> FastAPI:
    """
    Build the producer API

    Args:
        settings: Configuration (defaults to the process config bound to producer-api)
        broker: Broker to publish through; created from settings when omitted
    """
    settings = settings or default_config.for_service(PRODUCER_SERVICE_NAME)

    # Initialize OpenTelemetry tracing BEFORE creating FastAPI app
    init_telemetry(settings.service_name, settings.service_version)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan events"""
        logger.info("Starting Producer API...")

        app.state.broker = broker or MessageBrokerFactory.create(settings)
        await app.state.broker.connect()

        # The in-memory queue only exists in this process, so the consumer runs here too
        worker_task = None
        if settings.use_in_memory_queue:
            worker = QueueProcessorWorker(broker=app.state.broker, settings=settings)
            worker_task = asyncio.create_task(worker.start())
            logger.info("Consumer worker co-hosted with the in-memory queue")

        if settings.is_development:
            logger.debug(
                "Producer configuration",
                metadata={
                    "docker": settings.is_docker,
                    "queue": settings.queue_name,
                    "broker": app.state.broker.system,
                    "rabbitmq": mask_secret(settings.rabbitmq_url),
                    "otlpEndpoint": settings.otel_exporter_otlp_endpoint,
                    "azureMonitor": mask_secret(settings.azure_monitor_connection_string),
                },
            )

        logger.info(
            "Producer API started successfully",
            metadata={
                "service_name": settings.service_name,
                "version": settings.service_version,
                "environment": settings.environment,
                "port": settings.port,
            },
        )

        yield

        logger.info("Shutting down Producer API...")
        if worker_task is not None:
            worker_task.cancel()
            with suppress(asyncio.CancelledError):
                await worker_task
        await app.state.broker.disconnect()
        shutdown_telemetry()

    app = FastAPI(
        title="Producer API",
        description="Publishes messages to the queue with OpenTelemetry trace context",
        version=settings.service_version,
        lifespan=lifespan,
    )
    app.state.settings = settings

    # Instrument app with OpenTelemetry for automatic server spans
    instrument_app(app)

    register_error_handlers(app)

    app.add_middleware(TraceContextMiddleware)
    app.add_middleware(CorrelationIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["traceparent", "X-Trace-ID", settings.correlation_id_header],
    )

    app.include_router(health.router, tags=["health"])
    app.include_router(messages.router, prefix="/api/messages", tags=["messages"])

    return app


def run():
    """Console entry point"""
    import uvicorn

    settings = default_config.for_service(PRODUCER_SERVICE_NAME)
    logger.info(f"Starting {settings.service_name} on port {settings.port}")

    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
