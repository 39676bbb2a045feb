"""Tests for outbox CLI commands."""

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from src.cli.main import app
from src.cli.utils.config import ConfigManager
from src.client.exceptions import TransportError
from src.outbox.connectivity import HttpConnectivityProbe
from src.state import DatabaseError, SqliteKeyValueStore

runner = CliRunner()


@pytest.fixture
def config_dir(monkeypatch, tmp_path: Path) -> Path:
    """Point the CLI at a temporary config directory."""
    path = tmp_path / "outbox"
    monkeypatch.setattr(ConfigManager, "DEFAULT_DIR", path)
    return path


@pytest.fixture
def initialized(config_dir: Path) -> Path:
    result = runner.invoke(app, ["init", "--api-url", "https://api.example.com"])
    assert result.exit_code == 0
    return config_dir


def _queue(conversation: str, message: str) -> str:
    result = runner.invoke(app, ["queue", "-c", conversation, "-m", message, "--json"])
    assert result.exit_code == 0
    return json.loads(result.stdout)["message_id"]


def _listed(*args: str) -> list[dict]:
    result = runner.invoke(app, ["list", "--json", *args])
    assert result.exit_code == 0
    return json.loads(result.stdout)["messages"]


class _FakeSender:
    """Stands in for MessageApiSender; fails for contents starting with 'fail'."""

    sent: list[str] = []

    def __init__(self, *args, **kwargs) -> None:
        pass

    async def __aenter__(self) -> "_FakeSender":
        return self

    async def __aexit__(self, *exc) -> None:
        pass

    async def __call__(self, message) -> None:
        if message.content.startswith("fail"):
            raise TransportError("boom", status_code=500)
        _FakeSender.sent.append(message.id)


@pytest.fixture
def fake_sender(monkeypatch):
    _FakeSender.sent = []
    monkeypatch.setattr("src.cli.commands.drain.MessageApiSender", _FakeSender)
    monkeypatch.setattr("src.cli.commands.retry.MessageApiSender", _FakeSender)
    return _FakeSender


def _set_reachable(monkeypatch, reachable: bool) -> None:
    async def check(self) -> bool:
        return reachable

    monkeypatch.setattr(HttpConnectivityProbe, "check", check)


def _break_storage(monkeypatch, *, reads: bool = False, writes: bool = False) -> None:
    async def fail(self, *args) -> None:
        raise DatabaseError("database is locked")

    if reads:
        monkeypatch.setattr(SqliteKeyValueStore, "get_item", fail)
    if writes:
        monkeypatch.setattr(SqliteKeyValueStore, "set_item", fail)


class TestInitCommand:
    def test_init_creates_config(self, config_dir: Path):
        result = runner.invoke(app, ["init", "--api-url", "https://api.example.com"])
        assert result.exit_code == 0
        assert "Outbox initialized" in result.stdout
        assert (config_dir / "config.yaml").exists()

    def test_init_json_output(self, config_dir: Path):
        result = runner.invoke(app, ["init", "-u", "http://localhost:5000", "--json"])
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["status"] == "initialized"
        assert data["api_url"] == "http://localhost:5000"

    def test_init_invalid_url_exits_2(self, config_dir: Path):
        result = runner.invoke(app, ["init", "--api-url", "ftp://example.com"])
        assert result.exit_code == 2

    def test_init_twice_requires_force(self, initialized: Path):
        result = runner.invoke(app, ["init", "--api-url", "https://other.example.com"])
        assert result.exit_code == 1
        assert "--force" in result.stdout

        result = runner.invoke(app, ["init", "-u", "https://other.example.com", "--force"])
        assert result.exit_code == 0


class TestQueueCommands:
    def test_commands_require_init(self, config_dir: Path):
        result = runner.invoke(app, ["list"])
        assert result.exit_code == 1
        assert "outbox init" in result.stdout

    def test_queue_and_list(self, initialized: Path):
        first = _queue("conv-1", "hello")
        second = _queue("conv-2", "there")

        messages = _listed()
        assert [m["id"] for m in messages] == [first, second]
        assert messages[0]["retryCount"] == 0
        assert (initialized / "outbox.db").exists()

    def test_list_filters_by_conversation(self, initialized: Path):
        _queue("conv-1", "a")
        _queue("conv-2", "b")
        messages = _listed("-c", "conv-2")
        assert [m["content"] for m in messages] == ["b"]

    def test_list_empty_table(self, initialized: Path):
        result = runner.invoke(app, ["list"])
        assert result.exit_code == 0
        assert "Outbox is empty" in result.stdout

    def test_queue_invalid_conversation_exits_2(self, initialized: Path):
        result = runner.invoke(app, ["queue", "-c", "bad id", "-m", "x"])
        assert result.exit_code == 2

    def test_media_type_requires_media(self, initialized: Path):
        result = runner.invoke(app, ["queue", "-c", "conv-1", "-m", "x", "--type", "image"])
        assert result.exit_code == 2
        assert "--media" in result.stdout

    def test_remove(self, initialized: Path):
        message_id = _queue("conv-1", "cancel me")
        result = runner.invoke(app, ["remove", message_id, "--json"])
        assert result.exit_code == 0
        assert json.loads(result.stdout) == {"message_id": message_id, "removed": True}
        assert _listed() == []

    def test_remove_unknown_warns(self, initialized: Path):
        result = runner.invoke(app, ["remove", "12345"])
        assert result.exit_code == 0
        assert "not queued" in result.stdout

    def test_status(self, initialized: Path):
        _queue("conv-1", "a")
        _queue("conv-1", "b")
        _queue("conv-2", "c")
        result = runner.invoke(app, ["status", "--json"])
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["queued"] == 3
        assert data["conversations"] == {"conv-1": 2, "conv-2": 1}
        assert data["storage_key"] == "offline_message_queue"


class TestDeliveryCommands:
    def test_drain_offline_exits_1(self, initialized: Path, monkeypatch):
        _set_reachable(monkeypatch, False)
        _queue("conv-1", "a")
        result = runner.invoke(app, ["drain"])
        assert result.exit_code == 1
        assert "unreachable" in result.stdout
        assert len(_listed()) == 1

    def test_drain_sends_and_counts_failures(self, initialized: Path, monkeypatch, fake_sender):
        _set_reachable(monkeypatch, True)
        ok = _queue("conv-1", "hello")
        failing = _queue("conv-1", "fail please")

        result = runner.invoke(app, ["drain", "--json"])
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["online"] is True
        assert data["before"] == 2
        assert data["sent"] == 1
        assert data["remaining"] == 1
        assert data["next_retry_ms"] == 2000
        assert fake_sender.sent == [ok]

        [left] = _listed()
        assert left["id"] == failing
        assert left["retryCount"] == 1

    def test_retry_success(self, initialized: Path, fake_sender):
        message_id = _queue("conv-1", "hello")
        result = runner.invoke(app, ["retry", message_id])
        assert result.exit_code == 0
        assert fake_sender.sent == [message_id]
        assert _listed() == []

    def test_retry_failure_keeps_message(self, initialized: Path, fake_sender):
        message_id = _queue("conv-1", "fail now")
        result = runner.invoke(app, ["retry", message_id])
        assert result.exit_code == 1
        assert "Retry failed" in result.stdout
        [left] = _listed()
        assert left["retryCount"] == 0

    def test_retry_unknown_exits_1(self, initialized: Path, fake_sender):
        result = runner.invoke(app, ["retry", "999"])
        assert result.exit_code == 1
        assert "not queued" in result.stdout


class TestStorageFailures:
    def test_queue_fails_when_write_fails(self, initialized: Path, monkeypatch):
        with monkeypatch.context() as m:
            _break_storage(m, writes=True)
            result = runner.invoke(app, ["queue", "-c", "conv-1", "-m", "hello"])
        assert result.exit_code == 1
        assert "Failed to queue message" in result.stdout
        assert "Queued message" not in result.stdout
        assert _listed() == []

    def test_remove_fails_when_read_fails(self, initialized: Path, monkeypatch):
        message_id = _queue("conv-1", "keep me")
        with monkeypatch.context() as m:
            _break_storage(m, reads=True)
            result = runner.invoke(app, ["remove", message_id])
        assert result.exit_code == 1
        assert "Failed to remove message" in result.stdout
        assert [msg["id"] for msg in _listed()] == [message_id]

    def test_drain_fails_when_write_fails(self, initialized: Path, monkeypatch, fake_sender):
        _set_reachable(monkeypatch, True)
        message_id = _queue("conv-1", "hello")
        with monkeypatch.context() as m:
            _break_storage(m, writes=True)
            result = runner.invoke(app, ["drain"])
        assert result.exit_code == 1
        assert "Drain failed" in result.stdout
        assert fake_sender.sent == [message_id]
        assert [msg["id"] for msg in _listed()] == [message_id]


class TestLogging:
    def test_uses_configured_level(self, initialized: Path, monkeypatch):
        levels: list[str] = []
        monkeypatch.setattr("src.cli.main.configure_logging", levels.append)
        monkeypatch.delenv("LOG_LEVEL", raising=False)

        config_path = initialized / "config.yaml"
        config_path.write_text(config_path.read_text().replace("WARNING", "ERROR"))
        runner.invoke(app, ["list"])
        runner.invoke(app, ["-v", "list"])
        monkeypatch.setenv("LOG_LEVEL", "INFO")
        runner.invoke(app, ["list"])

        assert levels == ["ERROR", "DEBUG", "INFO"]

    def test_defaults_to_warning_before_init(self, config_dir: Path, monkeypatch):
        levels: list[str] = []
        monkeypatch.setattr("src.cli.main.configure_logging", levels.append)
        monkeypatch.delenv("LOG_LEVEL", raising=False)
        runner.invoke(app, ["list"])
        assert levels == ["WARNING"]
