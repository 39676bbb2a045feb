"""HTTP send callback delivering queued messages to the messaging API."""

import asyncio
import logging
import mimetypes
from pathlib import Path
from typing import Any, Optional
from urllib.parse import unquote, urlparse

import httpx
from pydantic import ValidationError

from src.outbox.models import MessageType, QueuedMessage

from .exceptions import AuthenticationError, MediaError, TransportError
from .models import ApiEnvelope, SentMessage, TokenResponse

logger = logging.getLogger(__name__)

SEND_PATH = "/messages/send"
MEDIA_PATH = "/messages/media"
REFRESH_PATH = "/auth/refresh-token"


def _conversation_ref(conversation_id: str) -> int | str:
    return int(conversation_id) if conversation_id.isdigit() else conversation_id


def _media_path(media_uri: str) -> Path:
    parsed = urlparse(media_uri)
    if parsed.scheme == "file":
        return Path(unquote(parsed.path))
    return Path(media_uri)


class MessageApiSender:
    """Posts queued messages to the REST messaging API.

    Usable directly as a ``NetworkService`` send callback. A 401 response
    triggers one token refresh and one retry of the same request.
    """

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        refresh_token: Optional[str] = None,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        if not base_url:
            raise ValueError("base_url required")
        self._base_url = base_url.rstrip("/")
        self._token = token
        self._refresh_token = refresh_token
        self._timeout = timeout
        self._client = client
        self._owns_client = client is None

    @property
    def token(self) -> Optional[str]:
        return self._token

    async def __aenter__(self) -> "MessageApiSender":
        self._get_client()
        return self

    async def __aexit__(self, exc_type: type | None, exc_val: Any, exc_tb: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __call__(self, message: QueuedMessage) -> Optional[SentMessage]:
        return await self.send(message)

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self._timeout),
                limits=httpx.Limits(max_connections=10, max_keepalive_connections=5))
        return self._client

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._token}"} if self._token else {}

    async def send(self, message: QueuedMessage) -> Optional[SentMessage]:
        """Deliver one message.

        Returns:
            The created message record, or None when the response body
            could not be parsed.

        Raises:
            TransportError: On network failure or a non-2xx status.
            MediaError: If the attached media cannot be read.
        """
        if message.type is MessageType.TEXT or not message.media_uri:
            build = self._text_request(message)
        else:
            build = await self._media_request(message)

        resp = await self._request(build)
        if resp.status_code == 401 and self._refresh_token:
            logger.info("Access token rejected, refreshing")
            await self._refresh()
            resp = await self._request(build)
        if resp.status_code == 401:
            raise AuthenticationError("Messaging API rejected credentials")
        if resp.status_code >= 400:
            raise TransportError(
                f"Messaging API returned {resp.status_code} for message {message.id}",
                status_code=resp.status_code,
            )
        logger.debug("Delivered message %s (%d)", message.id, resp.status_code)
        return self._parse(resp)

    def _text_request(self, message: QueuedMessage) -> dict[str, Any]:
        return {
            "url": self._base_url + SEND_PATH,
            "json": {
                "conversation_id": _conversation_ref(message.conversation_id),
                "content": message.content,
                "message_type": MessageType.TEXT.value,
            },
        }

    async def _media_request(self, message: QueuedMessage) -> dict[str, Any]:
        path = _media_path(message.media_uri)
        try:
            data = await asyncio.to_thread(path.read_bytes)
        except OSError as e:
            raise MediaError(f"Cannot read media {message.media_uri}: {e}", message.media_uri) from e
        content_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        return {
            "url": self._base_url + MEDIA_PATH,
            "data": {
                "conversation_id": str(message.conversation_id),
                "message_type": message.type.value,
                "caption": message.content,
            },
            "files": {"media": (path.name, data, content_type)},
        }

    async def _request(self, build: dict[str, Any]) -> httpx.Response:
        try:
            return await self._get_client().post(headers=self._headers(), **build)
        except (httpx.TimeoutException, httpx.RequestError) as e:
            raise TransportError(f"Request to {build['url']} failed: {e}") from e

    async def _refresh(self) -> None:
        try:
            resp = await self._get_client().post(
                self._base_url + REFRESH_PATH,
                json={"refreshToken": self._refresh_token},
            )
        except (httpx.TimeoutException, httpx.RequestError) as e:
            raise TransportError(f"Token refresh failed: {e}") from e
        if resp.status_code >= 400:
            raise AuthenticationError(f"Token refresh returned {resp.status_code}")
        try:
            self._token = TokenResponse.model_validate(resp.json()).token
        except (ValueError, ValidationError) as e:
            raise AuthenticationError(f"Invalid token refresh response: {e}") from e

    def _parse(self, resp: httpx.Response) -> Optional[SentMessage]:
        try:
            envelope = ApiEnvelope.model_validate(resp.json())
            return SentMessage.model_validate(envelope.data)
        except (ValueError, ValidationError) as e:
            logger.warning("Unparseable send response (%d): %s", resp.status_code, e)
            return None
