"""Unit tests for the message broker factory"""
from otel_demo.core.config import Config
from otel_demo.messaging.in_memory_broker import InMemoryBroker
from otel_demo.messaging.message_broker_factory import MessageBrokerFactory
from otel_demo.messaging.rabbitmq_broker import RabbitMQBroker


class TestMessageBrokerFactory:
    """Test broker selection"""

    def test_create_in_memory(self):
        """Test USE_IN_MEMORY_QUEUE selects the in-memory broker"""
        broker = MessageBrokerFactory.create(Config(use_in_memory_queue=True, queue_name="local-queue"))

        assert isinstance(broker, InMemoryBroker)
        assert broker.queue_name == "local-queue"
        assert broker.system == "in-memory"

    def test_create_rabbitmq(self):
        """Test RabbitMQ is the default broker"""
        settings = Config(
            use_in_memory_queue=False,
            queue_name="orders",
            rabbitmq_host="rabbit",
            rabbitmq_prefetch_count=3,
        )

        broker = MessageBrokerFactory.create(settings)

        assert isinstance(broker, RabbitMQBroker)
        assert broker.queue_name == "orders"
        assert broker.rabbitmq_url == settings.rabbitmq_url
        assert broker.prefetch_count == 3
        assert broker.system == "rabbitmq"
