"""
FastAPI Application - Web Frontend
Serves the demo page and forwards button clicks to the producer API,
propagating trace context over HTTP headers
"""

# Load environment variables from .env file FIRST before any other imports
from dotenv import load_dotenv
load_dotenv()

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse, JSONResponse
from opentelemetry.trace import SpanKind, Status, StatusCode

from otel_demo.core.config import FRONTEND_SERVICE_NAME, Config, config as default_config
from otel_demo.core.errors import register_error_handlers
from otel_demo.core.logger import logger
from otel_demo.core.telemetry import get_current_trace_id, get_tracer, init_telemetry, instrument_app, shutdown_telemetry
from otel_demo.messaging.propagation import inject_headers
from otel_demo.middleware import CorrelationIdMiddleware, TraceContextMiddleware
from otel_demo.frontend.page import render_index

tracer = get_tracer(FRONTEND_SERVICE_NAME)


def create_app(settings: Optional[Config] = None, http_client: Optional[httpx.AsyncClient] = None) -> FastAPI:
    """
    Build the frontend app

    Args:
        settings: Configuration (defaults to the process config bound to web-frontend)
        http_client: Client used to reach the producer API; created on startup when omitted
    """
    settings = settings or default_config.for_service(FRONTEND_SERVICE_NAME)
    init_telemetry(settings.service_name, settings.service_version)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.http_client = http_client or httpx.AsyncClient(base_url=settings.producer_url, timeout=10.0)
        logger.info("Web frontend started", metadata={"producerUrl": settings.producer_url})

        yield

        if http_client is None:
            await app.state.http_client.aclose()
        shutdown_telemetry()

    app = FastAPI(title="OpenTelemetry Demo Frontend", version=settings.service_version, lifespan=lifespan)

    instrument_app(app)
    register_error_handlers(app)
    app.add_middleware(TraceContextMiddleware)
    app.add_middleware(CorrelationIdMiddleware)

    @app.get("/", response_class=HTMLResponse)
    async def index():
        return render_index(settings.jaeger_ui_url)

    @app.post("/send")
    async def send_message(request: Request):
        """Send one message through the producer API inside a user-interaction span"""
        client: httpx.AsyncClient = request.app.state.http_client
        payload = {"message": f"Hello from frontend at {datetime.now(timezone.utc).isoformat()}"}

        with tracer.start_as_current_span("send message", kind=SpanKind.INTERNAL) as span:
            span.set_attribute("http.target_service", "producer-api")
            trace_id = get_current_trace_id()

            try:
                response = await client.post("/api/messages", json=payload, headers=inject_headers())
                response.raise_for_status()
            except httpx.HTTPStatusError as e:
                span.set_status(Status(StatusCode.ERROR, f"HTTP error! status: {e.response.status_code}"))
                logger.error(
                    "Producer API rejected the message",
                    metadata={"statusCode": e.response.status_code, "body": e.response.text},
                )
                return JSONResponse(
                    status_code=502,
                    content={"error": f"HTTP error! status: {e.response.status_code}", "traceId": trace_id},
                )
            except httpx.HTTPError as e:
                span.set_status(Status(StatusCode.ERROR, str(e)))
                span.record_exception(e)
                logger.error("Failed to send message", error=e)
                return JSONResponse(status_code=502, content={"error": str(e), "traceId": trace_id})

            data = response.json()
            span.set_attribute("message.id", data.get("messageId", ""))
            span.set_status(Status(StatusCode.OK))
            logger.info(f"Message sent! ID: {data.get('messageId', 'N/A')}")

            return {**data, "traceId": trace_id}

    return app


def run():
    """Console entry point"""
    import uvicorn

    settings = default_config.for_service(FRONTEND_SERVICE_NAME)
    uvicorn.run(create_app(settings), host=settings.host, port=settings.frontend_port)


if __name__ == "__main__":
    run()
