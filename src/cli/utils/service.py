"""Helpers that open a NetworkService over the configured database."""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from src.outbox.config import OutboxConfig
from src.outbox.connectivity import ConnectivitySource, StaticConnectivity
from src.outbox.service import NetworkService, SendCallback
from src.state import DatabaseManager, SqliteKeyValueStore


def build_service(
    config: OutboxConfig,
    connectivity: ConnectivitySource,
    send_callback: Optional[SendCallback] = None,
) -> NetworkService:
    """Build a NetworkService persisted in the configured SQLite database.

    Storage failures are raised so a command never reports work it could
    not save.
    """
    store = SqliteKeyValueStore(DatabaseManager(config.db_path))
    return NetworkService(
        store,
        connectivity,
        send_callback,
        storage_key=config.storage_key,
        max_retries=config.max_retries,
        retry_delays_ms=config.retry_delays_ms,
        send_timeout=config.send_timeout,
        fail_fast_unconfigured=config.fail_fast_unconfigured,
        strict_persistence=True,
    )


@asynccontextmanager
async def open_service(
    config: OutboxConfig,
    send_callback: Optional[SendCallback] = None,
    connected: bool = False,
) -> AsyncIterator[NetworkService]:
    """Yield a started service; pending retry timers are dropped on exit."""
    service = build_service(config, StaticConnectivity(connected), send_callback)
    async with service:
        yield service
