"""
Message API endpoints
"""

from fastapi import APIRouter, Depends

from otel_demo.core.errors import ErrorResponseModel
from otel_demo.messaging.i_message_broker import IMessageBroker
from otel_demo.models.message import MessageRequest, PublishResponse
from otel_demo.producer.dependencies import get_broker, get_message_publisher
from otel_demo.producer.services.message_publisher import MessagePublisher

router = APIRouter()


@router.post(
    "",
    response_model=PublishResponse,
    response_model_by_alias=True,
    responses={500: {"model": ErrorResponseModel}},
)
async def post_message(
    request: MessageRequest,
    publisher: MessagePublisher = Depends(get_message_publisher),
):
    """
    Enqueue a message.

    The incoming HTTP server span (child of the caller's traceparent) becomes
    the parent of the "{queue} send" producer span.
    """
    return await publisher.publish_message(request)


@router.get("/stats", response_model=dict)
async def get_queue_stats(broker: IMessageBroker = Depends(get_broker)):
    """Queue statistics from the broker"""
    return await broker.get_stats()
