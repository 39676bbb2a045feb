"""Messaging API client used to deliver queued messages."""

from .exceptions import AuthenticationError, ClientError, MediaError, TransportError
from .models import ApiEnvelope, SentMessage, TokenResponse
from .sender import MessageApiSender

__all__ = [
    "MessageApiSender",
    "SentMessage", "ApiEnvelope", "TokenResponse",
    "ClientError", "TransportError", "AuthenticationError", "MediaError",
]
