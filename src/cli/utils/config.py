"""Configuration file management for CLI."""

from pathlib import Path
from typing import Optional

import yaml

from src.outbox.config import OutboxConfig, load_config_from_file
from src.outbox.exceptions import ConfigError

__all__ = ["ConfigError", "ConfigManager"]


class ConfigManager:
    """Manages outbox configuration in ~/.outbox/config.yaml."""

    DEFAULT_DIR = Path.home() / ".outbox"
    CONFIG_FILE = "config.yaml"
    DB_FILE = "outbox.db"

    def __init__(self, config_dir: Optional[Path] = None) -> None:
        self._config_dir = config_dir or self.DEFAULT_DIR
        self._config_path = self._config_dir / self.CONFIG_FILE
        self._db_path = self._config_dir / self.DB_FILE

    @property
    def config_dir(self) -> Path:
        return self._config_dir

    @property
    def config_path(self) -> Path:
        return self._config_path

    @property
    def db_path(self) -> Path:
        return self._db_path

    def exists(self) -> bool:
        """Check if configuration exists."""
        return self._config_path.exists()

    def log_level(self, default: str = "WARNING") -> str:
        """Level configured in the file, or *default* when it cannot be read.

        Commands report an unreadable file themselves once they load it.
        """
        if not self.exists():
            return default
        try:
            return self.load().log_level
        except ConfigError:
            return default

    def load(self) -> OutboxConfig:
        """Load configuration from file. Raises ConfigError if not found."""
        if not self._config_path.exists():
            raise ConfigError(
                f"Config not found at {self._config_path}. Run 'outbox init' first."
            )
        return load_config_from_file(self._config_path)

    def save(
        self,
        api_url: str,
        token: Optional[str] = None,
        refresh_token: Optional[str] = None,
        probe_url: Optional[str] = None,
        log_level: str = "WARNING",
    ) -> None:
        """Save configuration to file."""
        self._config_dir.mkdir(parents=True, exist_ok=True)

        api: dict[str, str] = {"base_url": api_url}
        if token:
            api["token"] = token
        if refresh_token:
            api["refresh_token"] = refresh_token
        config_data: dict = {
            "db_path": str(self._db_path),
            "log_level": log_level,
            "api": api,
        }
        if probe_url:
            config_data["probe"] = {"url": probe_url}

        with open(self._config_path, "w") as f:
            yaml.safe_dump(config_data, f, default_flow_style=False)

        if token or refresh_token:
            self._config_path.chmod(0o600)
