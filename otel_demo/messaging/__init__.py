"""
Messaging module: broker implementations and trace context propagation
"""

from .i_message_broker import IMessageBroker, MessageHandler
from .in_memory_broker import InMemoryBroker
from .message_broker_factory import MessageBrokerFactory
from .propagation import extract_context, inject_headers, messaging_attributes
from .rabbitmq_broker import RabbitMQBroker

__all__ = [
    "IMessageBroker",
    "MessageHandler",
    "InMemoryBroker",
    "MessageBrokerFactory",
    "RabbitMQBroker",
    "extract_context",
    "inject_headers",
    "messaging_attributes",
]
