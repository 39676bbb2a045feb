"""Connectivity sources that report online/offline transitions."""
import asyncio
import logging
from typing import Callable, Optional, Protocol

import httpx

logger = logging.getLogger(__name__)

ConnectivityCallback = Callable[[bool], None]
Unsubscribe = Callable[[], None]


class ConnectivitySource(Protocol):
    """Subscription-based network status provider."""

    async def fetch(self) -> bool: ...

    def subscribe(self, callback: ConnectivityCallback) -> Unsubscribe: ...


class _Subscribers:
    """Callback registry shared by the connectivity sources."""

    def __init__(self) -> None:
        self._callbacks: list[ConnectivityCallback] = []

    def add(self, callback: ConnectivityCallback) -> Unsubscribe:
        self._callbacks.append(callback)

        def _unsubscribe() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return _unsubscribe

    def emit(self, connected: bool) -> None:
        for callback in list(self._callbacks):
            try:
                callback(connected)
            except Exception:
                logger.exception("Connectivity subscriber failed")

    def __len__(self) -> int:
        return len(self._callbacks)


class StaticConnectivity:
    """Connectivity whose state is set by the owning application.

    Every call to ``set_connected`` is delivered to subscribers, mirroring
    platform notifiers that repeat the current state.
    """

    def __init__(self, connected: bool = False) -> None:
        self._connected = connected
        self._subscribers = _Subscribers()

    @property
    def connected(self) -> bool:
        return self._connected

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    async def fetch(self) -> bool:
        return self._connected

    def subscribe(self, callback: ConnectivityCallback) -> Unsubscribe:
        return self._subscribers.add(callback)

    def set_connected(self, connected: bool) -> None:
        self._connected = connected
        self._subscribers.emit(connected)


class HttpConnectivityProbe:
    """Polls a URL and reports reachability changes.

    A response below 500 counts as connected; a 5xx or a failed request
    counts as disconnected. Subscribers are only notified on change.
    """

    def __init__(
        self,
        url: str,
        interval: float = 10.0,
        timeout: float = 5.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        if not url:
            raise ValueError("Probe URL required")
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval!r}")
        self._url = url
        self._interval = interval
        self._timeout = timeout
        self._client = client
        self._owns_client = client is None
        self._subscribers = _Subscribers()
        self._connected: Optional[bool] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def url(self) -> str:
        return self._url

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def __aenter__(self) -> "HttpConnectivityProbe":
        self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.stop()

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self._timeout))
        return self._client

    async def check(self) -> bool:
        """Probe once and return whether the URL answered without a server error."""
        try:
            resp = await self._get_client().head(self._url)
        except httpx.RequestError as e:
            logger.debug("Connectivity probe to %s failed: %s", self._url, e)
            return False
        if resp.status_code >= 500:
            logger.debug("Connectivity probe to %s returned %d", self._url, resp.status_code)
            return False
        return True

    async def fetch(self) -> bool:
        connected = await self.check()
        self._update(connected)
        return connected

    def subscribe(self, callback: ConnectivityCallback) -> Unsubscribe:
        return self._subscribers.add(callback)

    def start(self) -> None:
        """Start polling in the background."""
        if self.is_running:
            return
        self._task = asyncio.create_task(self._poll())

    async def stop(self) -> None:
        """Stop polling and release the HTTP client if owned."""
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _poll(self) -> None:
        while True:
            self._update(await self.check())
            await asyncio.sleep(self._interval)

    def _update(self, connected: bool) -> None:
        previous = self._connected
        self._connected = connected
        if previous is not None and previous != connected:
            logger.info(
                "Connectivity changed: %s", "online" if connected else "offline"
            )
            self._subscribers.emit(connected)
