"""CLI utilities."""

from .config import ConfigError, ConfigManager
from .service import build_service, open_service
from .validation import (
    validate_api_url,
    validate_conversation_id,
    validate_message_content,
    validate_message_type,
)

__all__ = [
    "ConfigManager",
    "ConfigError",
    "build_service",
    "open_service",
    "validate_api_url",
    "validate_conversation_id",
    "validate_message_content",
    "validate_message_type",
]
