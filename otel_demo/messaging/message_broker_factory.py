"""
Message Broker Factory
Creates the appropriate message broker instance based on configuration
"""

import logging
from typing import Optional

from otel_demo.core.config import Config, config as default_config, mask_secret
from otel_demo.messaging.i_message_broker import IMessageBroker
from otel_demo.messaging.in_memory_broker import InMemoryBroker
from otel_demo.messaging.rabbitmq_broker import RabbitMQBroker

logger = logging.getLogger(__name__)


class MessageBrokerFactory:
    """Factory for creating message broker instances"""

    @staticmethod
    def create(settings: Optional[Config] = None) -> IMessageBroker:
        """
        Create a message broker based on USE_IN_MEMORY_QUEUE

        Returns:
            InMemoryBroker when the in-memory queue is selected, RabbitMQBroker otherwise
        """
        settings = settings or default_config

        if settings.use_in_memory_queue:
            logger.info("Creating message broker: in-memory")
            return InMemoryBroker(settings.queue_name)

        logger.info(
            f"Creating message broker: rabbitmq ({mask_secret(settings.rabbitmq_url)})"
        )
        return RabbitMQBroker(
            settings.rabbitmq_url,
            settings.queue_name,
            prefetch_count=settings.rabbitmq_prefetch_count,
        )
