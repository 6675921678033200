"""
Consumer Worker - Queue processor
Receives messages from the queue and continues the producer's trace
"""

import asyncio
import signal
from typing import Optional

from dotenv import load_dotenv
from opentelemetry.trace import SpanKind, Status, StatusCode

from otel_demo.core.config import CONSUMER_SERVICE_NAME, Config, config as default_config
from otel_demo.core.errors import MessageDecodeError
from otel_demo.core.logger import logger
from otel_demo.core.telemetry import get_tracer, init_telemetry, shutdown_telemetry
from otel_demo.messaging.i_message_broker import IMessageBroker
from otel_demo.messaging.message_broker_factory import MessageBrokerFactory
from otel_demo.messaging.propagation import extract_context, messaging_attributes, receive_span_name
from otel_demo.models.message import MessageData, QueueMessage

tracer = get_tracer(CONSUMER_SERVICE_NAME)

DESERIALIZE_FAILED = "Failed to deserialize message"


class QueueProcessorWorker:
    """Worker process for consuming and processing queue messages"""

    def __init__(self, broker: Optional[IMessageBroker] = None, settings: Optional[Config] = None):
        """
        Args:
            broker: Broker to consume from; created from settings when omitted.
                A broker passed in is shared with its owner and left connected on stop.
            settings: Configuration (defaults to the process config)
        """
        self.settings = settings or default_config
        self.owns_broker = broker is None
        self.broker = broker or MessageBrokerFactory.create(self.settings)
        self.processing_delay = self.settings.processing_delay_ms / 1000
        self.is_running = False

    @property
    def queue_name(self) -> str:
        return self.broker.queue_name

    async def process_message(self, message: QueueMessage) -> bool:
        """
        Process one delivery inside a CONSUMER span parented on the producer's context

        Returns:
            True to acknowledge, False to requeue

        Raises:
            MessageDecodeError: the payload can never be processed
        """
        parent_context = extract_context(message.headers)

        with tracer.start_as_current_span(
            receive_span_name(self.queue_name),
            context=parent_context,
            kind=SpanKind.CONSUMER,
            record_exception=False,
            set_status_on_exception=False,
        ) as span:
            span.set_attributes(
                messaging_attributes(self.broker.system, self.queue_name, "receive", message.message_id)
            )

            try:
                message_data = MessageData.from_body(message.body)
                if message_data is None:
                    raise MessageDecodeError(DESERIALIZE_FAILED)
            except MessageDecodeError as e:
                span.set_status(Status(StatusCode.ERROR, DESERIALIZE_FAILED))
                span.set_attribute("error.type", type(e).__name__)
                span.set_attribute("error.message", str(e))
                logger.warning(DESERIALIZE_FAILED, metadata={"messageId": message.message_id, "reason": str(e)})
                raise

            try:
                span.set_attribute("messaging.message_id", message_data.message_id)
                span.set_attribute("message.id", message_data.message_id)
                span.set_attribute("message.text", message_data.message or "")
                span.set_attribute("message.timestamp", message_data.timestamp.isoformat())

                logger.info(
                    f"Processing message: {message_data.message_id}, Content: {message_data.message}",
                    metadata={"messageId": message_data.message_id, "deliveryCount": message.delivery_count},
                )

                # Simulate some work
                await asyncio.sleep(self.processing_delay)

                span.set_status(Status(StatusCode.OK))
                logger.info(f"Successfully processed message: {message_data.message_id}")
                return True

            except asyncio.CancelledError:
                raise
            except Exception as e:
                span.set_status(Status(StatusCode.ERROR, str(e)))
                span.set_attribute("error.type", type(e).__name__)
                span.set_attribute("error.message", str(e))
                span.record_exception(e)
                logger.error("Error processing message", error=e, metadata={"messageId": message_data.message_id})
                return False

    async def start(self):
        """Connect to the broker and consume until stopped"""
        try:
            logger.info(
                "Consumer service started. Waiting for messages...",
                metadata={"broker": self.broker.system, "queue": self.queue_name},
            )

            if self.owns_broker or not self.broker.is_healthy():
                await self.broker.connect()

            self.is_running = True
            await self.broker.consume(self.process_message)

        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error("Failed to start consumer", error=e)
            raise
        finally:
            self.is_running = False

    async def stop(self):
        """Gracefully stop the worker"""
        logger.info("Consumer service stopping...")
        self.is_running = False

        if self.owns_broker:
            try:
                await self.broker.disconnect()
                logger.info("Message broker disconnected")
            except Exception as e:
                logger.error("Error disconnecting broker", error=e)

        logger.info("Consumer service stopped")


async def main():
    """Main entry point for the consumer"""
    settings = default_config.for_service(CONSUMER_SERVICE_NAME)
    init_telemetry(settings.service_name, settings.service_version)

    worker = QueueProcessorWorker(settings=settings)

    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(signum, lambda s=signum: asyncio.create_task(_shutdown(worker, s)))
        except NotImplementedError:
            # Windows event loops have no signal handler support
            pass

    try:
        await worker.start()
    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received")
    finally:
        await worker.stop()
        shutdown_telemetry()


async def _shutdown(worker: QueueProcessorWorker, signum: int):
    logger.info(f"Received signal {signum}, initiating graceful shutdown...")
    await worker.stop()


def run():
    """Console entry point"""
    load_dotenv()
    asyncio.run(main())


if __name__ == "__main__":
    run()
