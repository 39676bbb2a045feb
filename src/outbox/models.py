"""Outbox message models."""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class MessageType(Enum):
    """Kind of payload carried by a queued message."""

    TEXT = "text"
    IMAGE = "image"
    VIDEO = "video"


@dataclass
class QueuedMessage:
    """An outgoing message waiting for delivery.

    Attributes:
        id: Time-derived identifier assigned at enqueue.
        conversation_id: Target conversation or thread.
        content: Text payload.
        type: Payload kind.
        timestamp: Creation time as an ISO-8601 string.
        media_uri: Local reference to attached media, if any.
        retry_count: Failed automatic delivery attempts so far.
        max_retries: Ceiling after which the message is dropped.
    """

    id: str
    conversation_id: str
    content: str
    type: MessageType
    timestamp: str
    media_uri: Optional[str] = None
    retry_count: int = 0
    max_retries: int = 5

    def __post_init__(self) -> None:
        """Validate required fields."""
        if not self.id:
            raise ValueError("id cannot be empty")
        if not self.conversation_id:
            raise ValueError("conversation_id cannot be empty")
        if not isinstance(self.type, MessageType):
            self.type = MessageType(self.type)
        if self.max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        if not 0 <= self.retry_count <= self.max_retries:
            raise ValueError(
                f"retry_count must be between 0 and {self.max_retries}, "
                f"got {self.retry_count}"
            )

    @property
    def exhausted(self) -> bool:
        return self.retry_count >= self.max_retries

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the stored JSON shape (camelCase keys)."""
        data: dict[str, Any] = {
            "id": self.id,
            "conversationId": self.conversation_id,
            "content": self.content,
            "type": self.type.value,
            "timestamp": self.timestamp,
            "retryCount": self.retry_count,
            "maxRetries": self.max_retries,
        }
        if self.media_uri is not None:
            data["mediaUri"] = self.media_uri
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "QueuedMessage":
        """Build a message from its stored JSON shape.

        Raises:
            KeyError: If a required key is missing.
            ValueError: If a field holds an invalid value.
        """
        return cls(
            id=str(data["id"]),
            conversation_id=str(data["conversationId"]),
            content=data["content"],
            type=MessageType(data.get("type", "text")),
            timestamp=data["timestamp"],
            media_uri=data.get("mediaUri"),
            retry_count=int(data.get("retryCount", 0)),
            max_retries=int(data.get("maxRetries", 5)),
        )
