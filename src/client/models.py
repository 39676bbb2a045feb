"""Response models for the messaging API."""
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict


class SentMessage(BaseModel):
    """Message record returned by the API after a successful send."""

    model_config = ConfigDict(extra="ignore")

    message_id: Union[int, str]
    conversation_id: Union[int, str, None] = None
    sender_id: Union[int, str, None] = None
    content: Optional[str] = None
    message_type: Optional[str] = None
    media_url: Optional[str] = None
    media_type: Optional[str] = None
    sent_at: Optional[str] = None


class ApiEnvelope(BaseModel):
    status: str
    data: Optional[Any] = None
    message: Optional[str] = None


class TokenResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    token: str
