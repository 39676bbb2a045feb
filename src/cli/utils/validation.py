"""Input validation utilities for CLI commands."""

import re

from src.outbox.models import MessageType


def validate_conversation_id(conversation_id: str) -> str:
    """Validate and return conversation ID. Raises ValueError if invalid."""
    if not conversation_id or not conversation_id.strip():
        raise ValueError("Conversation ID cannot be empty")
    conversation_id = conversation_id.strip()
    if len(conversation_id) > 128:
        raise ValueError("Conversation ID cannot exceed 128 characters")
    if not re.match(r"^[a-zA-Z0-9_.:-]+$", conversation_id):
        raise ValueError(
            "Conversation ID can only contain letters, numbers, underscores, "
            "dots, colons, and hyphens"
        )
    return conversation_id


def validate_api_url(url: str) -> str:
    """Validate and return API base URL. Raises ValueError if invalid."""
    if not url or not url.strip():
        raise ValueError("API URL cannot be empty")
    url = url.strip()
    if not url.startswith(("http://", "https://")):
        raise ValueError("API URL must start with http:// or https://")
    if len(url) > 2048:
        raise ValueError("API URL cannot exceed 2048 characters")
    return url.rstrip("/")


def validate_message_type(value: str) -> MessageType:
    """Validate and return a message type. Raises ValueError if invalid."""
    try:
        return MessageType(value.strip().lower())
    except ValueError as e:
        choices = ", ".join(t.value for t in MessageType)
        raise ValueError(f"Message type must be one of: {choices}") from e


def validate_message_content(content: str) -> str:
    """Validate and return message content. Raises ValueError if invalid."""
    if not content:
        raise ValueError("Message content cannot be empty")
    if len(content) > 65536:
        raise ValueError("Message content cannot exceed 65536 characters")
    return content
