"""Offline-resilient outbound message queue.

Buffers messages while the device is offline, persists the buffer through a
key-value store, and drains it with bounded exponential backoff once
connectivity returns. Actual transmission is delegated to a send callback.
"""
import asyncio
import json
import logging
import time
from dataclasses import replace
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional, Sequence, Union

from src.outbox.connectivity import ConnectivityCallback, ConnectivitySource, Unsubscribe
from src.outbox.exceptions import SendCallbackNotSetError, SendTimeoutError
from src.outbox.models import MessageType, QueuedMessage
from src.state.kv_store import KeyValueStore

logger = logging.getLogger(__name__)

STORAGE_KEY = "offline_message_queue"
MAX_RETRIES = 5
RETRY_DELAYS_MS: tuple[int, ...] = (1000, 2000, 5000, 10000, 30000)
DEFAULT_SEND_TIMEOUT = 30.0

SendCallback = Callable[[QueuedMessage], Awaitable[None]]
DropCallback = Callable[[QueuedMessage, Exception], None]


def retry_delay_ms(retry_count: int, delays: Sequence[int] = RETRY_DELAYS_MS) -> int:
    """Backoff delay for a failure count, clamped to the last step."""
    return delays[min(max(retry_count, 0), len(delays) - 1)]


def _iso_now() -> str:
    return (
        datetime.now(timezone.utc)
        .isoformat(timespec="milliseconds")
        .replace("+00:00", "Z")
    )


class NetworkService:
    """Queue of outbound messages that survives offline periods and restarts.

    All mutations happen on the running event loop. Drains are serialized;
    at most one retry timer is pending at a time.
    """

    def __init__(
        self,
        storage: KeyValueStore,
        connectivity: ConnectivitySource,
        send_callback: Optional[SendCallback] = None,
        *,
        storage_key: str = STORAGE_KEY,
        max_retries: int = MAX_RETRIES,
        retry_delays_ms: Sequence[int] = RETRY_DELAYS_MS,
        send_timeout: Optional[float] = DEFAULT_SEND_TIMEOUT,
        fail_fast_unconfigured: bool = False,
        strict_persistence: bool = False,
    ) -> None:
        if not storage_key:
            raise ValueError("storage_key cannot be empty")
        if max_retries < 1:
            raise ValueError(f"max_retries must be at least 1, got {max_retries!r}")
        if not retry_delays_ms:
            raise ValueError("retry_delays_ms cannot be empty")
        if send_timeout is not None and send_timeout <= 0:
            raise ValueError(f"send_timeout must be positive, got {send_timeout!r}")
        self._storage = storage
        self._connectivity = connectivity
        self._send_callback = send_callback
        self._storage_key = storage_key
        self._max_retries = max_retries
        self._retry_delays_ms = tuple(retry_delays_ms)
        self._send_timeout = send_timeout
        self._fail_fast_unconfigured = fail_fast_unconfigured
        self._strict_persistence = strict_persistence

        self._is_online = False
        self._queue: list[QueuedMessage] = []
        self._listeners: list[ConnectivityCallback] = []
        self._drop_listeners: list[DropCallback] = []
        self._retry_handle: Optional[asyncio.TimerHandle] = None
        self._retry_delay_ms: Optional[int] = None
        self._drain_lock = asyncio.Lock()
        self._drain_pending = False
        self._tasks: set[asyncio.Task] = set()
        self._unsubscribe: Optional[Unsubscribe] = None
        self._last_id = 0
        self._started = False
        self._persisted = True

    @property
    def storage_key(self) -> str:
        return self._storage_key

    @property
    def is_persisted(self) -> bool:
        """Whether the most recent storage write succeeded."""
        return self._persisted

    @property
    def retry_delay_ms(self) -> Optional[int]:
        """Delay of the most recently scheduled retry timer."""
        return self._retry_delay_ms

    @property
    def has_pending_retry(self) -> bool:
        return self._retry_handle is not None

    async def __aenter__(self) -> "NetworkService":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def start(self) -> None:
        """Load the stored queue, subscribe to connectivity, fetch the state.

        The service reports offline until the initial fetch resolves.
        Transitions reported during the fetch do not drain; a single drain
        starts afterwards if the service is online with messages queued.

        With ``strict_persistence`` a failing store read is re-raised instead
        of yielding an empty queue.
        """
        if self._started:
            return
        await self._load_queue()
        self._unsubscribe = self._connectivity.subscribe(self._handle_connectivity)
        try:
            self._is_online = bool(await self._connectivity.fetch())
        except Exception:
            logger.exception("Initial connectivity fetch failed, assuming offline")
            self._is_online = False
        self._started = True
        logger.info(
            "Network service started: %s, %d queued",
            "online" if self._is_online else "offline",
            len(self._queue),
        )
        if self._is_online and self._queue:
            self._spawn_drain()

    async def close(self) -> None:
        """Cancel the retry timer, unsubscribe, and wait for running drains."""
        self._cancel_retry()
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        await self.join()
        self._started = False

    async def join(self) -> None:
        """Wait until no background drain is running."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def set_send_callback(self, callback: SendCallback) -> None:
        self._send_callback = callback

    def on_network_change(self, callback: ConnectivityCallback) -> Unsubscribe:
        """Register a connectivity listener; returns its unsubscribe function."""
        self._listeners.append(callback)

        def _unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return _unsubscribe

    def on_message_dropped(self, callback: DropCallback) -> Unsubscribe:
        """Register a listener for messages dropped after exhausting retries."""
        self._drop_listeners.append(callback)

        def _unsubscribe() -> None:
            if callback in self._drop_listeners:
                self._drop_listeners.remove(callback)

        return _unsubscribe

    def is_network_available(self) -> bool:
        return self._is_online

    async def queue_message(
        self,
        conversation_id: str,
        content: str,
        type: Union[MessageType, str] = MessageType.TEXT,
        media_uri: Optional[str] = None,
    ) -> str:
        """Enqueue a message, persist the queue, and drain if online.

        Returns:
            The id assigned to the message.

        With ``strict_persistence`` a failed write is raised; the message
        stays in the in-memory queue.
        """
        message = QueuedMessage(
            id=self._next_id(),
            conversation_id=conversation_id,
            content=content,
            type=MessageType(type),
            timestamp=_iso_now(),
            media_uri=media_uri,
            retry_count=0,
            max_retries=self._max_retries,
        )
        self._queue.append(message)
        await self._save_queue()
        logger.info("Queued message %s for conversation %s", message.id, conversation_id)
        if self._is_online:
            self._spawn_drain()
        return message.id

    def get_queued_messages(self, conversation_id: Optional[str] = None) -> list[QueuedMessage]:
        """Return copies of queued messages in enqueue order."""
        return [
            replace(m)
            for m in self._queue
            if conversation_id is None or m.conversation_id == conversation_id
        ]

    def get_retry_count(self, message_id: str) -> int:
        message = self._find(message_id)
        return message.retry_count if message is not None else 0

    async def retry_message(self, message_id: str) -> None:
        """Send one message immediately, outside the scheduled drain.

        Failures propagate to the caller and do not touch the retry count.
        Unknown ids are ignored.
        """
        message = self._find(message_id)
        if message is None:
            return
        try:
            await self._send(message)
        except Exception as e:
            logger.error("Manual retry failed for message %s: %s", message_id, e)
            raise
        self._remove(message_id)
        await self._save_queue()

    async def remove_from_queue(self, message_id: str) -> None:
        """Remove a message regardless of its delivery state."""
        self._remove(message_id)
        await self._save_queue()

    async def process_queue(self) -> None:
        """Run one drain pass over the queued messages."""
        async with self._drain_lock:
            self._drain_pending = False
            if not self._is_online or not self._queue:
                return
            if self._send_callback is None and self._fail_fast_unconfigured:
                logger.warning(
                    "No send callback configured, leaving %d messages queued",
                    len(self._queue),
                )
                return

            logger.info("Processing %d queued messages", len(self._queue))
            snapshot = list(self._queue)
            for message in snapshot:
                if self._find(message.id) is None:
                    continue
                try:
                    await self._send(message)
                except Exception as e:
                    logger.error("Failed to send queued message %s: %s", message.id, e)
                    self._record_failure(message.id, e)
                else:
                    self._remove(message.id)

            await self._save_queue()

            if self._queue:
                self._schedule_retry()
            else:
                self._cancel_retry()

    def _handle_connectivity(self, connected: bool) -> None:
        was_online = self._is_online
        self._is_online = bool(connected)
        logger.info("Network status: %s", "online" if self._is_online else "offline")
        for listener in list(self._listeners):
            try:
                listener(self._is_online)
            except Exception:
                logger.exception("Network change listener failed")
        if self._started and not was_online and self._is_online:
            self._spawn_drain()

    def _spawn_drain(self) -> None:
        # one drain waits behind the lock at most; it sees every message queued so far
        if self._drain_pending:
            return
        self._drain_pending = True
        task = asyncio.create_task(self.process_queue())
        self._tasks.add(task)
        task.add_done_callback(self._on_drain_done)

    def _on_drain_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            self._drain_pending = False
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Drain pass crashed: %s", exc, exc_info=exc)

    async def _send(self, message: QueuedMessage) -> None:
        callback = self._send_callback
        if callback is None:
            raise SendCallbackNotSetError()
        try:
            await asyncio.wait_for(callback(message), timeout=self._send_timeout)
        except asyncio.TimeoutError as e:
            raise SendTimeoutError(message.id, self._send_timeout) from e

    def _record_failure(self, message_id: str, error: Exception) -> None:
        message = self._find(message_id)
        if message is None:
            return
        message.retry_count += 1
        if message.exhausted:
            logger.warning(
                "Max retries reached for message %s, removing from queue", message_id
            )
            self._remove(message_id)
            self._emit_dropped(message, error)

    def _emit_dropped(self, message: QueuedMessage, error: Exception) -> None:
        for listener in list(self._drop_listeners):
            try:
                listener(replace(message), error)
            except Exception:
                logger.exception("Dropped-message listener failed")

    def _schedule_retry(self) -> None:
        self._cancel_retry()
        min_retry_count = min(m.retry_count for m in self._queue)
        delay = retry_delay_ms(min_retry_count, self._retry_delays_ms)
        logger.info("Scheduling retry in %dms", delay)
        loop = asyncio.get_running_loop()
        self._retry_delay_ms = delay
        self._retry_handle = loop.call_later(delay / 1000, self._on_retry_timer)

    def _cancel_retry(self) -> None:
        if self._retry_handle is not None:
            self._retry_handle.cancel()
            self._retry_handle = None

    def _on_retry_timer(self) -> None:
        self._retry_handle = None
        self._spawn_drain()

    def _find(self, message_id: str) -> Optional[QueuedMessage]:
        for message in self._queue:
            if message.id == message_id:
                return message
        return None

    def _remove(self, message_id: str) -> None:
        self._queue = [m for m in self._queue if m.id != message_id]

    def _next_id(self) -> str:
        candidate = int(time.time() * 1000)
        if candidate <= self._last_id:
            candidate = self._last_id + 1
        self._last_id = candidate
        return str(candidate)

    async def _load_queue(self) -> None:
        try:
            raw = await self._storage.get_item(self._storage_key)
        except Exception:
            logger.exception("Error loading queue from storage")
            if self._strict_persistence:
                raise
            return
        if not raw:
            return
        try:
            entries = json.loads(raw)
            if not isinstance(entries, list):
                raise ValueError("stored queue is not a list")
            loaded = [QueuedMessage.from_dict(entry) for entry in entries]
        except (ValueError, KeyError, TypeError) as e:
            logger.error("Discarding unreadable queue under %s: %s", self._storage_key, e)
            return
        known = {m.id for m in self._queue}
        self._queue = [m for m in loaded if m.id not in known] + self._queue
        for message in self._queue:
            if message.id.isdigit():
                self._last_id = max(self._last_id, int(message.id))
        logger.info("Loaded %d queued messages from storage", len(loaded))

    async def _save_queue(self) -> None:
        payload = json.dumps([m.to_dict() for m in self._queue])
        try:
            await self._storage.set_item(self._storage_key, payload)
        except Exception:
            self._persisted = False
            logger.exception("Error saving queue to storage")
            if self._strict_persistence:
                raise
        else:
            self._persisted = True
