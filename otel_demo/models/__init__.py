from .message import MessageData, MessageRequest, PublishResponse, QueueMessage

__all__ = ["MessageData", "MessageRequest", "PublishResponse", "QueueMessage"]
