"""Outbox configuration."""
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

from src.outbox.exceptions import ConfigError
from src.outbox.service import (
    DEFAULT_SEND_TIMEOUT,
    MAX_RETRIES,
    RETRY_DELAYS_MS,
    STORAGE_KEY,
)

logger = logging.getLogger(__name__)

_RECOGNISED_BOOL_VALUES = frozenset(
    ("1", "true", "yes", "0", "false", "no")
)
_LOG_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"


@dataclass(frozen=True)
class ApiConfig:
    """Messaging API used to deliver queued messages.

    ``token`` is sent as a bearer token and never logged; ``refresh_token``
    is exchanged for a new one when the API answers 401.
    """

    base_url: str = "http://localhost:5000"
    token: Optional[str] = None
    refresh_token: Optional[str] = None
    timeout: float = 30.0


@dataclass(frozen=True)
class ProbeConfig:
    """Connectivity probe settings. An empty ``url`` probes ``api.base_url``."""

    url: str = ""
    timeout: float = 5.0


@dataclass(frozen=True)
class OutboxConfig:
    db_path: Path = field(default_factory=lambda: Path("data/outbox.db"))
    storage_key: str = STORAGE_KEY
    max_retries: int = MAX_RETRIES
    send_timeout: float = DEFAULT_SEND_TIMEOUT
    retry_delays_ms: tuple[int, ...] = RETRY_DELAYS_MS
    fail_fast_unconfigured: bool = False
    log_level: str = "INFO"
    api: ApiConfig = field(default_factory=ApiConfig)
    probe: ProbeConfig = field(default_factory=ProbeConfig)

    @property
    def probe_url(self) -> str:
        return self.probe.url or self.api.base_url


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging with the outbox format."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=_LOG_FORMAT,
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)


def _parse_bool(value: str, default: bool) -> bool:
    """Parse a boolean environment variable with explicit default.

    Recognises ``true/1/yes`` and ``false/0/no`` (case-insensitive).
    Returns *default* when the value is empty or unset.
    Logs a warning and returns *default* for unrecognised values.
    """
    if not value:
        return default
    normalised = value.lower()
    if normalised not in _RECOGNISED_BOOL_VALUES:
        logger.warning(
            "Unrecognised boolean value %r, using default %s. "
            "Expected one of: true/1/yes or false/0/no.",
            value,
            default,
        )
        return default
    return normalised in ("1", "true", "yes")


def _parse_delays(value: str) -> tuple[int, ...]:
    try:
        delays = tuple(int(part) for part in value.split(",") if part.strip())
    except ValueError as e:
        raise ValueError(f"Invalid OUTBOX_RETRY_DELAYS_MS {value!r}: {e}") from e
    if not delays or any(d < 0 for d in delays):
        raise ValueError(f"Invalid OUTBOX_RETRY_DELAYS_MS {value!r}")
    return delays


def load_config_from_env() -> OutboxConfig:
    """Build the configuration from ``OUTBOX_*`` environment variables.

    Raises:
        ValueError: If a numeric variable cannot be parsed.
    """
    delays_raw = os.environ.get("OUTBOX_RETRY_DELAYS_MS")
    return OutboxConfig(
        db_path=Path(os.environ.get("OUTBOX_DB_PATH", "data/outbox.db")),
        storage_key=os.environ.get("OUTBOX_STORAGE_KEY", STORAGE_KEY),
        max_retries=int(os.environ.get("OUTBOX_MAX_RETRIES", str(MAX_RETRIES))),
        send_timeout=float(
            os.environ.get("OUTBOX_SEND_TIMEOUT", str(DEFAULT_SEND_TIMEOUT))
        ),
        retry_delays_ms=_parse_delays(delays_raw) if delays_raw else RETRY_DELAYS_MS,
        fail_fast_unconfigured=_parse_bool(
            os.environ.get("OUTBOX_FAIL_FAST_UNCONFIGURED", ""), default=False
        ),
        log_level=os.environ.get("LOG_LEVEL", "INFO"),
        api=ApiConfig(
            base_url=os.environ.get("OUTBOX_API_URL", "http://localhost:5000"),
            token=os.environ.get("OUTBOX_API_TOKEN") or None,
            refresh_token=os.environ.get("OUTBOX_API_REFRESH_TOKEN") or None,
            timeout=float(os.environ.get("OUTBOX_API_TIMEOUT", "30.0")),
        ),
        probe=ProbeConfig(
            url=os.environ.get("OUTBOX_PROBE_URL", ""),
            timeout=float(os.environ.get("OUTBOX_PROBE_TIMEOUT", "5.0")),
        ),
    )


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    value = data.get(name) or {}
    if not isinstance(value, dict):
        raise ConfigError(f"Invalid config: '{name}' must be a mapping")
    return value


def load_config_from_file(path: Path) -> OutboxConfig:
    """Load configuration from a YAML file.

    Keys mirror the ``OutboxConfig`` fields, with ``api`` and ``probe``
    as nested mappings. Missing keys take their defaults.

    Raises:
        ConfigError: If the file is missing or its content is invalid.
    """
    if not path.exists():
        raise ConfigError(f"Config not found at {path}")
    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid config in {path}: expected a mapping")

    api = _section(data, "api")
    probe = _section(data, "probe")
    defaults = OutboxConfig()
    try:
        delays = data.get("retry_delays_ms")
        return OutboxConfig(
            db_path=Path(data.get("db_path", defaults.db_path)).expanduser(),
            storage_key=str(data.get("storage_key", defaults.storage_key)),
            max_retries=int(data.get("max_retries", defaults.max_retries)),
            send_timeout=float(data.get("send_timeout", defaults.send_timeout)),
            retry_delays_ms=(
                tuple(int(d) for d in delays) if delays else defaults.retry_delays_ms
            ),
            fail_fast_unconfigured=bool(
                data.get("fail_fast_unconfigured", defaults.fail_fast_unconfigured)
            ),
            log_level=str(data.get("log_level", defaults.log_level)),
            api=ApiConfig(
                base_url=str(api.get("base_url", defaults.api.base_url)),
                token=api.get("token"),
                refresh_token=api.get("refresh_token"),
                timeout=float(api.get("timeout", defaults.api.timeout)),
            ),
            probe=ProbeConfig(
                url=str(probe.get("url", "")),
                timeout=float(probe.get("timeout", defaults.probe.timeout)),
            ),
        )
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid config in {path}: {e}") from e
