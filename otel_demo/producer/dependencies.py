"""
Dependency injection for the producer API
"""

from fastapi import Depends, Request

from otel_demo.core.errors import ErrorResponse
from otel_demo.messaging.i_message_broker import IMessageBroker
from otel_demo.producer.services.message_publisher import MessagePublisher


async def get_broker(request: Request) -> IMessageBroker:
    """Broker connected during application startup"""
    broker = getattr(request.app.state, "broker", None)
    if broker is None:
        raise ErrorResponse("Message broker not initialized", status_code=503)
    return broker


async def get_message_publisher(broker: IMessageBroker = Depends(get_broker)) -> MessagePublisher:
    """Get message publisher instance"""
    return MessagePublisher(broker)
