"""
Message publishing service for the producer API
Wraps each publish in a PRODUCER span and carries its context in the message headers
"""

import traceback
import uuid

from opentelemetry.trace import SpanKind, Status, StatusCode

from otel_demo.core.config import PRODUCER_SERVICE_NAME
from otel_demo.core.errors import ErrorResponse
from otel_demo.core.logger import logger
from otel_demo.core.telemetry import get_tracer
from otel_demo.messaging.i_message_broker import IMessageBroker
from otel_demo.messaging.propagation import inject_headers, messaging_attributes, send_span_name
from otel_demo.models.message import MessageData, MessageRequest, PublishResponse

tracer = get_tracer(PRODUCER_SERVICE_NAME)


class MessagePublisher:
    """Service layer for publishing messages to the queue"""

    def __init__(self, broker: IMessageBroker):
        self.broker = broker

    async def publish_message(self, request: MessageRequest) -> PublishResponse:
        """
        Publish one message with trace context in its headers

        Raises:
            ErrorResponse: 500 when the broker rejects the publish
        """
        message_id = str(uuid.uuid4())
        message_data = MessageData(message_id=message_id, message=request.message)
        queue_name = self.broker.queue_name

        with tracer.start_as_current_span(
            send_span_name(queue_name),
            kind=SpanKind.PRODUCER,
            record_exception=False,
            set_status_on_exception=False,
        ) as span:
            span.set_attributes(messaging_attributes(self.broker.system, queue_name, "send", message_id))
            span.set_attribute("message.text", request.message or "")
            span.set_attribute("message.length", len(request.message or ""))

            try:
                # Injected from the send span, so the consumer's span becomes its child
                headers = inject_headers()
                await self.broker.publish(message_data.to_body(), headers=headers, message_id=message_id)

                span.set_status(Status(StatusCode.OK))
                logger.info(
                    f"Message {message_id} published to '{queue_name}'",
                    metadata={"messageId": message_id, "queue": queue_name},
                )
                return PublishResponse(message_id=message_id)

            except Exception as e:
                span.set_status(Status(StatusCode.ERROR, str(e)))
                span.set_attribute("error.type", type(e).__name__)
                span.set_attribute("error.message", str(e))
                span.set_attribute("error.stack", traceback.format_exc())
                span.record_exception(e)

                logger.error(
                    f"Failed to publish message {message_id}",
                    error=e,
                    metadata={"messageId": message_id, "queue": queue_name},
                )
                raise ErrorResponse(str(e), status_code=500) from e
