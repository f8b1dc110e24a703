"""Configuration loader for FentAnalytics."""

import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv


# Environment variables that override individual YAML keys
ENV_OVERRIDES = {
    "DISCORD_TOKEN": "discord.token",
    "DISCORD_ANALYTICS_DB": "database.path",
    "DISCORD_ANALYTICS_PREFIX": "discord.command_prefix",
    "DISCORD_ANALYTICS_LOG_LEVEL": "logging.level",
}

TOKEN_PLACEHOLDER = "YOUR_BOT_TOKEN_HERE"


class Config:
    """Configuration manager for the FentAnalytics bot."""

    def __init__(self, config_path: str = "config/config.yaml", load_env: bool = True):
        """
        Initialize configuration from YAML file and environment.

        Args:
            config_path: Path to the configuration file
            load_env: Read a ``.env`` file into the environment first
        """
        self.config_path = Path(config_path)
        self._load_env = load_env
        self._config: Dict[str, Any] = {}
        self.load()

    def load(self) -> None:
        """Load configuration from YAML, then apply environment overrides."""
        if self._load_env:
            load_dotenv()

        if self.config_path.exists():
            with open(self.config_path, "r", encoding="utf-8") as f:
                self._config = yaml.safe_load(f) or {}
        elif not os.getenv("DISCORD_TOKEN"):
            raise FileNotFoundError(
                f"Configuration file not found: {self.config_path}\n"
                f"Copy config/config.example.yaml to config/config.yaml "
                f"or set DISCORD_TOKEN in the environment."
            )
        else:
            self._config = {}

        for env_name, key in ENV_OVERRIDES.items():
            value = os.getenv(env_name)
            if value:
                self.set(key, value)

    def reload(self) -> None:
        """Reload configuration from disk and environment."""
        self.load()

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value using dot notation.

        Args:
            key: Configuration key (e.g., 'discord.token')
            default: Default value if key not found

        Returns:
            Configuration value
        """
        value: Any = self._config

        for k in key.split("."):
            if isinstance(value, dict):
                value = value.get(k)
            else:
                return default

            if value is None:
                return default

        return value

    def set(self, key: str, value: Any) -> None:
        """Set a configuration value in memory using dot notation."""
        keys = key.split(".")
        node = self._config
        for k in keys[:-1]:
            child = node.get(k)
            if not isinstance(child, dict):
                child = {}
                node[k] = child
            node = child
        node[keys[-1]] = value

    @property
    def discord_token(self) -> str:
        """Get Discord bot token."""
        token = self.get("discord.token")
        if not token or token == TOKEN_PLACEHOLDER:
            raise ValueError("Discord token not configured (config.yaml or DISCORD_TOKEN)")
        return token

    @property
    def command_prefix(self) -> str:
        """Get the text command prefix."""
        return str(self.get("discord.command_prefix", "!"))

    @property
    def database_path(self) -> str:
        """Get path of the analytics SQLite file."""
        return str(self.get("database.path", "data/analytics.db"))

    @property
    def message_tracking_enabled(self) -> bool:
        return bool(self.get("tracking.messages", True))

    @property
    def voice_tracking_enabled(self) -> bool:
        return bool(self.get("tracking.voice", True))

    @property
    def presence_tracking_enabled(self) -> bool:
        return bool(self.get("tracking.presence", True))

    @property
    def leaderboard_limit(self) -> int:
        """Get number of rows shown per leaderboard."""
        return int(self.get("leaderboard.limit", 5))

    @property
    def log_level(self) -> str:
        """Get logging level."""
        return str(self.get("logging.level", "INFO"))

    @property
    def log_file(self) -> Optional[str]:
        """Get log file path."""
        return self.get("logging.file", "logs/fentanalytics.log")

    @property
    def log_format(self) -> str:
        """Get log format string."""
        return self.get(
            "logging.format",
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )
