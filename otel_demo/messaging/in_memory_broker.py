"""
In-memory broker for local development

Producer and consumer must share one process (the producer API hosts the
consumer worker as a background task when this broker is selected).
"""

import asyncio
import logging
from typing import Any, Dict, Optional

from otel_demo.core.errors import MessageDecodeError
from otel_demo.messaging.i_message_broker import IMessageBroker, MessageHandler
from otel_demo.messaging.propagation import MESSAGING_SYSTEM_IN_MEMORY
from otel_demo.models.message import QueueMessage

logger = logging.getLogger(__name__)


class InMemoryBroker(IMessageBroker):
    """asyncio.Queue-backed implementation of IMessageBroker"""

    system = MESSAGING_SYSTEM_IN_MEMORY

    def __init__(self, queue_name: str):
        super().__init__(queue_name)
        self._queue: Optional[asyncio.Queue] = None
        self._consuming = False
        self._is_connected = False

    async def connect(self) -> None:
        if self._queue is None:
            self._queue = asyncio.Queue()
        self._is_connected = True
        logger.info(f"Using in-memory queue '{self.queue_name}'")

    async def publish(self, body: bytes, headers: Optional[Dict[str, Any]] = None, message_id: Optional[str] = None) -> None:
        if self._queue is None:
            raise RuntimeError("Queue not initialized. Call connect() first.")

        await self._queue.put(QueueMessage(body=body, headers=dict(headers or {}), message_id=message_id))
        logger.debug(f"Enqueued message {message_id} to in-memory queue")

    async def receive(self) -> Optional[QueueMessage]:
        """Dequeue one message without waiting; None when the queue is empty"""
        if self._queue is None:
            return None
        try:
            return self._queue.get_nowait()
        except asyncio.QueueEmpty:
            return None

    async def consume(self, handler: MessageHandler) -> None:
        if self._queue is None:
            raise RuntimeError("Queue not initialized. Call connect() first.")

        self._consuming = True
        logger.info(f"Consumer registered for in-memory queue '{self.queue_name}'")

        while self._consuming:
            message = await self._queue.get()
            try:
                if message is None:
                    break
                await self._dispatch(message, handler)
            finally:
                self._queue.task_done()

    async def _dispatch(self, message: QueueMessage, handler: MessageHandler) -> None:
        try:
            processed = await handler(message)
        except MessageDecodeError as e:
            logger.error(f"Dropping undecodable message {message.message_id}: {e}")
            return
        except Exception as e:
            logger.error(f"Error processing message {message.message_id}: {e}")
            processed = False

        if not processed:
            requeued = message.model_copy(update={"delivery_count": message.delivery_count + 1})
            await self._queue.put(requeued)

    async def disconnect(self) -> None:
        if self._consuming and self._queue is not None:
            # Wakes a consumer blocked on an empty queue
            self._consuming = False
            await self._queue.put(None)
        self._is_connected = False
        logger.info("In-memory broker stopped")

    def is_healthy(self) -> bool:
        return self._is_connected

    @property
    def count(self) -> int:
        return self._queue.qsize() if self._queue is not None else 0

    async def get_stats(self) -> Dict[str, Any]:
        return {
            "broker": self.system,
            "queue": self.queue_name,
            "message_count": self.count,
            "connected": self._is_connected,
        }
