"""
Message models shared by the producer, the queue and the consumer
"""

import json
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from otel_demo.core.errors import MessageDecodeError


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class MessageRequest(BaseModel):
    """Body of POST /api/messages"""
    message: Optional[str] = None


class MessageData(BaseModel):
    """
    Payload carried on the queue.

    Serialized with PascalCase keys (MessageId, Message, Timestamp).
    """

    model_config = ConfigDict(populate_by_name=True)

    message_id: str = Field(default="", alias="MessageId")
    message: Optional[str] = Field(default=None, alias="Message")
    timestamp: datetime = Field(default_factory=utc_now, alias="Timestamp")

    def to_body(self) -> bytes:
        """UTF-8 JSON bytes for the queue"""
        return self.model_dump_json(by_alias=True).encode("utf-8")

    @classmethod
    def from_body(cls, body: bytes) -> Optional["MessageData"]:
        """
        Parse a queue payload

        Returns:
            The message, or None when the payload is JSON null

        Raises:
            MessageDecodeError: body is not UTF-8 JSON or not a message object
        """
        try:
            data = json.loads(body.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise MessageDecodeError(f"Invalid message payload: {e}") from e

        if data is None:
            return None

        if not isinstance(data, dict):
            raise MessageDecodeError("Message payload must be a JSON object")

        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise MessageDecodeError(f"Invalid message payload: {e.error_count()} validation error(s)") from e


class PublishResponse(BaseModel):
    """Response of POST /api/messages"""

    model_config = ConfigDict(populate_by_name=True)

    message_id: str = Field(alias="messageId")
    status: str = "enqueued"


class QueueMessage(BaseModel):
    """Transport-neutral envelope a broker hands to its consumer handler"""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    body: bytes
    headers: Dict[str, Any] = Field(default_factory=dict)
    message_id: Optional[str] = None
    enqueued_at: datetime = Field(default_factory=utc_now)
    delivery_count: int = 1
