"""
RabbitMQ Broker Implementation
Implements the IMessageBroker interface for RabbitMQ using aio-pika for async support
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import aio_pika
from aio_pika.abc import AbstractIncomingMessage

from otel_demo.core.errors import MessageDecodeError
from otel_demo.messaging.i_message_broker import IMessageBroker, MessageHandler
from otel_demo.messaging.propagation import MESSAGING_SYSTEM_RABBITMQ
from otel_demo.models.message import QueueMessage

logger = logging.getLogger(__name__)


class RabbitMQBroker(IMessageBroker):
    """RabbitMQ implementation of IMessageBroker with async support"""

    system = MESSAGING_SYSTEM_RABBITMQ

    def __init__(self, rabbitmq_url: str, queue_name: str, prefetch_count: int = 10):
        """
        Initialize RabbitMQ broker

        Args:
            rabbitmq_url: RabbitMQ connection URL
            queue_name: Name of the queue to publish to and consume from
            prefetch_count: Unacknowledged deliveries allowed per consumer
        """
        super().__init__(queue_name)
        self.rabbitmq_url = rabbitmq_url
        self.prefetch_count = prefetch_count
        self.connection: Optional[aio_pika.abc.AbstractRobustConnection] = None
        self.channel: Optional[aio_pika.abc.AbstractChannel] = None
        self.queue: Optional[aio_pika.abc.AbstractQueue] = None
        self._consumer_tag: Optional[str] = None
        self._stop_event = asyncio.Event()
        self._is_connected = False

    async def connect(self) -> None:
        """Connect to RabbitMQ and declare the queue"""
        try:
            logger.info("Connecting to RabbitMQ...")

            # connect_robust reconnects and restores channels/consumers on its own
            self.connection = await aio_pika.connect_robust(self.rabbitmq_url, heartbeat=600)
            self.channel = await self.connection.channel()
            await self.channel.set_qos(prefetch_count=self.prefetch_count)

            # Same declaration on both sides; first one wins, later ones are no-ops
            self.queue = await self.channel.declare_queue(
                self.queue_name,
                durable=False,
                exclusive=False,
                auto_delete=False,
            )

            self._is_connected = True
            logger.info(f"✅ RabbitMQ connected, queue '{self.queue_name}' declared")

        except Exception as e:
            logger.error(f"❌ Failed to connect to RabbitMQ: {e}")
            self._is_connected = False
            raise

    async def publish(self, body: bytes, headers: Optional[Dict[str, Any]] = None, message_id: Optional[str] = None) -> None:
        """Publish to the default exchange with the queue name as routing key"""
        if not self.channel:
            raise RuntimeError("Channel not initialized. Call connect() first.")

        message = aio_pika.Message(
            body=body,
            headers=headers or {},
            message_id=message_id,
            timestamp=datetime.now(timezone.utc),
            content_type="application/json",
            delivery_mode=aio_pika.DeliveryMode.PERSISTENT,
        )
        await self.channel.default_exchange.publish(message, routing_key=self.queue_name)
        logger.debug(f"📤 Published message {message_id} to '{self.queue_name}'")

    async def consume(self, handler: MessageHandler) -> None:
        """
        Start consuming messages from RabbitMQ with manual acknowledgement

        Blocks until disconnect() is called.
        """
        if not self.queue:
            raise RuntimeError("Queue not initialized. Call connect() first.")

        self._stop_event.clear()

        async def on_message(message: AbstractIncomingMessage) -> None:
            await self._handle_message(message, handler)

        self._consumer_tag = await self.queue.consume(on_message, no_ack=False)
        logger.info(f"🎯 Consumer registered for queue '{self.queue_name}'")

        await self._stop_event.wait()

    async def _handle_message(self, message: AbstractIncomingMessage, handler: MessageHandler) -> None:
        """Hand one delivery to the handler and settle it"""
        queue_message = QueueMessage(
            body=message.body,
            headers=dict(message.headers or {}),
            message_id=message.message_id,
            enqueued_at=message.timestamp or datetime.now(timezone.utc),
            delivery_count=2 if message.redelivered else 1,
        )

        try:
            processed = await handler(queue_message)
        except MessageDecodeError as e:
            logger.error(f"❌ Dropping undecodable message {message.message_id}: {e}")
            # Not requeued: it would never decode
            await message.reject(requeue=False)
            return
        except Exception as e:
            logger.error(f"❌ Error processing message {message.message_id}: {e}")
            await message.nack(requeue=True)
            return

        if processed:
            await message.ack()
        else:
            await message.nack(requeue=True)

    async def disconnect(self) -> None:
        """Stop consuming and close the RabbitMQ connection"""
        try:
            logger.info("🛑 Stopping RabbitMQ broker...")

            if self.queue and self._consumer_tag:
                await self.queue.cancel(self._consumer_tag)
                self._consumer_tag = None

            if self.channel and not self.channel.is_closed:
                await self.channel.close()

            if self.connection and not self.connection.is_closed:
                await self.connection.close()
                logger.info("🔌 RabbitMQ connection closed")

        except Exception as e:
            logger.error(f"❌ Error closing RabbitMQ connection: {e}")
            raise
        finally:
            self._is_connected = False
            self._stop_event.set()

    def is_healthy(self) -> bool:
        """Check if broker connection is healthy"""
        return (
            self._is_connected
            and self.connection is not None
            and not self.connection.is_closed
        )

    async def get_stats(self) -> Dict[str, Any]:
        """Get queue statistics using a passive declare"""
        if not self.channel:
            raise RuntimeError("Channel not initialized")

        try:
            queue = await self.channel.declare_queue(self.queue_name, passive=True)
            return {
                "broker": self.system,
                "queue": self.queue_name,
                "message_count": queue.declaration_result.message_count,
                "consumer_count": queue.declaration_result.consumer_count,
                "connected": self.is_healthy(),
            }
        except Exception as e:
            logger.error(f"❌ Error getting queue stats: {e}")
            return {
                "broker": self.system,
                "queue": self.queue_name,
                "error": str(e),
                "connected": self.is_healthy(),
            }
