"""
Message Broker Interface
Defines the contract for all message broker implementations (RabbitMQ, in-memory)
so the producer and consumer stay independent of the transport.
"""

from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, Optional

from otel_demo.models.message import QueueMessage

# Returns True to acknowledge, False to negatively acknowledge and requeue.
# Raising MessageDecodeError drops the message; any other exception requeues it.
MessageHandler = Callable[[QueueMessage], Awaitable[bool]]


class IMessageBroker(ABC):
    """Abstract base class for message broker implementations"""

    #: value for the messaging.system span attribute
    system: str = "unknown"

    def __init__(self, queue_name: str):
        self.queue_name = queue_name

    @abstractmethod
    async def connect(self) -> None:
        """
        Establish connection to the message broker and declare the queue
        """

    @abstractmethod
    async def publish(self, body: bytes, headers: Optional[Dict[str, Any]] = None, message_id: Optional[str] = None) -> None:
        """
        Publish one message to the queue

        Args:
            body: Serialized payload
            headers: Message headers (trace context lives here)
            message_id: Broker-level message ID
        """

    @abstractmethod
    async def consume(self, handler: MessageHandler) -> None:
        """
        Consume messages until stopped, passing each to the handler

        Args:
            handler: Async callback deciding ack / requeue for each message
        """

    @abstractmethod
    async def disconnect(self) -> None:
        """
        Close connection to the message broker
        """

    @abstractmethod
    def is_healthy(self) -> bool:
        """
        Check if the broker connection is healthy
        """

    @abstractmethod
    async def get_stats(self) -> Dict[str, Any]:
        """
        Get queue statistics for monitoring
        """
