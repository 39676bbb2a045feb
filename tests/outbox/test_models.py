"""Tests for the QueuedMessage model."""
import pytest

from src.outbox.models import MessageType, QueuedMessage


def _msg(**kwargs) -> QueuedMessage:
    defaults = dict(
        id="1700000000000",
        conversation_id="conv-1",
        content="hello",
        type=MessageType.TEXT,
        timestamp="2026-01-15T12:00:00.000Z",
    )
    defaults.update(kwargs)
    return QueuedMessage(**defaults)


class TestQueuedMessage:
    def test_defaults(self) -> None:
        m = _msg()
        assert m.retry_count == 0
        assert m.max_retries == 5
        assert m.media_uri is None
        assert m.exhausted is False

    def test_empty_id_raises(self) -> None:
        with pytest.raises(ValueError, match="id"):
            _msg(id="")

    def test_empty_conversation_raises(self) -> None:
        with pytest.raises(ValueError, match="conversation_id"):
            _msg(conversation_id="")

    def test_type_coerced_from_string(self) -> None:
        assert _msg(type="video").type is MessageType.VIDEO

    def test_unknown_type_raises(self) -> None:
        with pytest.raises(ValueError):
            _msg(type="audio")

    def test_retry_count_above_ceiling_raises(self) -> None:
        with pytest.raises(ValueError, match="retry_count"):
            _msg(retry_count=6)

    def test_exhausted_at_ceiling(self) -> None:
        assert _msg(retry_count=5).exhausted is True


class TestSerialization:
    def test_to_dict_uses_stored_keys(self) -> None:
        data = _msg(media_uri="file:///tmp/a.jpg", type=MessageType.IMAGE).to_dict()
        assert data == {
            "id": "1700000000000",
            "conversationId": "conv-1",
            "content": "hello",
            "type": "image",
            "mediaUri": "file:///tmp/a.jpg",
            "timestamp": "2026-01-15T12:00:00.000Z",
            "retryCount": 0,
            "maxRetries": 5,
        }

    def test_to_dict_omits_missing_media(self) -> None:
        assert "mediaUri" not in _msg().to_dict()

    def test_from_dict_restores_all_fields(self) -> None:
        original = _msg(media_uri="/tmp/v.mp4", type=MessageType.VIDEO, retry_count=3)
        assert QueuedMessage.from_dict(original.to_dict()) == original

    def test_from_dict_missing_key_raises(self) -> None:
        with pytest.raises(KeyError):
            QueuedMessage.from_dict({"id": "1", "content": "x"})
