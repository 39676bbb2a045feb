"""Offline-resilient outbound message queue."""

from .config import ApiConfig, OutboxConfig, ProbeConfig, configure_logging, load_config_from_env, load_config_from_file
from .connectivity import ConnectivitySource, HttpConnectivityProbe, StaticConnectivity
from .exceptions import ConfigError, OutboxError, SendCallbackNotSetError, SendTimeoutError
from .models import MessageType, QueuedMessage
from .service import MAX_RETRIES, RETRY_DELAYS_MS, STORAGE_KEY, NetworkService, retry_delay_ms

__all__ = [
    "NetworkService", "QueuedMessage", "MessageType", "retry_delay_ms",
    "MAX_RETRIES", "RETRY_DELAYS_MS", "STORAGE_KEY",
    "ConnectivitySource", "StaticConnectivity", "HttpConnectivityProbe",
    "OutboxConfig", "ApiConfig", "ProbeConfig", "configure_logging", "load_config_from_env", "load_config_from_file",
    "OutboxError", "SendCallbackNotSetError", "SendTimeoutError", "ConfigError",
]
