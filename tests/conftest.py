"""Pytest fixtures for outbox tests."""
import asyncio

import pytest
import pytest_asyncio

from src.outbox.connectivity import StaticConnectivity
from src.outbox.models import QueuedMessage
from src.outbox.service import NetworkService
from src.state.kv_store import MemoryKeyValueStore


class RecordingSender:
    """Send callback that fails a fixed number of times, then succeeds.

    ``failures=None`` fails forever.
    """

    def __init__(self, failures: int | None = 0, delay: float = 0.0) -> None:
        self.failures = failures
        self.delay = delay
        self.calls: list[QueuedMessage] = []
        self.delivered: list[str] = []

    async def __call__(self, message: QueuedMessage) -> None:
        self.calls.append(message)
        if self.delay:
            await asyncio.sleep(self.delay)
        attempts = sum(1 for m in self.calls if m.id == message.id)
        if self.failures is None or attempts <= self.failures:
            raise ConnectionError(f"send failed for {message.id}")
        self.delivered.append(message.id)


@pytest.fixture
def store() -> MemoryKeyValueStore:
    return MemoryKeyValueStore()


@pytest.fixture
def connectivity() -> StaticConnectivity:
    return StaticConnectivity(connected=False)


@pytest.fixture
def sender() -> RecordingSender:
    return RecordingSender()


@pytest_asyncio.fixture
async def service(store, connectivity, sender) -> NetworkService:
    """A started service, offline, with a succeeding sender."""
    svc = NetworkService(store, connectivity, sender)
    await svc.start()
    yield svc
    await svc.close()


@pytest.fixture
def make_sender():
    """Factory for RecordingSender instances."""
    return RecordingSender
