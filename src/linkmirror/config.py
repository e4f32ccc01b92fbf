# SPDX-License-Identifier: MIT
"""Configuration management for link mirror."""

import copy
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field

from .constants import (
    DEFAULT_BASE_URL,
    DEFAULT_CATEGORY_FIELD,
    DEFAULT_ICON_FIELD,
    DEFAULT_INITIAL_DELAY_SECONDS,
    DEFAULT_NAME_FIELD,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_SORT_FIELD,
    DEFAULT_SYNC_INTERVAL_MINUTES,
    DEFAULT_URL_FIELD,
    MAX_RETRIES,
    PAGE_SIZE,
    RETRY_INTERVAL_SECONDS,
    SNAPSHOT_RETENTION_DAYS,
)
from .models import RemoteConfig


ENV_PREFIX = "LINK_MIRROR_"


class RemoteSettings(BaseModel):
    """Configuration for the remote Bitable API."""

    base_url: str = Field(DEFAULT_BASE_URL, description="Open API base URL")
    request_timeout: float = Field(
        DEFAULT_REQUEST_TIMEOUT, gt=0, description="Total timeout per request (s)"
    )
    page_size: int = Field(
        PAGE_SIZE, ge=1, le=PAGE_SIZE, description="Rows requested per fetch"
    )
    app_id: str = Field("", description="Fallback application ID")
    app_secret: str = Field("", description="Fallback application secret")
    app_token: str = Field("", description="Fallback Bitable app token")
    table_id: str = Field("", description="Fallback Bitable table ID")


class FieldMapping(BaseModel):
    """Remote column names mapped onto record attributes."""

    category: str = DEFAULT_CATEGORY_FIELD
    name: str = DEFAULT_NAME_FIELD
    url: str = DEFAULT_URL_FIELD
    sort: str = DEFAULT_SORT_FIELD
    icon: str = DEFAULT_ICON_FIELD


class SyncSettings(BaseModel):
    """Configuration for the sync scheduler."""

    interval_minutes: int = Field(DEFAULT_SYNC_INTERVAL_MINUTES, ge=1)
    initial_delay_seconds: float = Field(DEFAULT_INITIAL_DELAY_SECONDS, ge=0)
    retry_interval_seconds: float = Field(RETRY_INTERVAL_SECONDS, ge=0)
    max_retries: int = Field(MAX_RETRIES, ge=1)
    test_mode: bool = Field(False, description="Serve the fixed mock snapshot")


class CacheConfig(BaseModel):
    """Configuration for the persisted store."""

    db_path: str = Field(
        str(Path.cwd() / ".link-mirror" / "store.db"),
        description="SQLite database backing the key-value store",
    )
    retention_days: int = Field(
        SNAPSHOT_RETENTION_DAYS, ge=1, description="Snapshot usable for N days"
    )


class AppConfig(BaseModel):
    """Main application configuration."""

    remote: RemoteSettings = RemoteSettings()
    fields: FieldMapping = FieldMapping()
    sync: SyncSettings = SyncSettings()
    cache: CacheConfig = CacheConfig()

    def fallback_remote_config(self) -> RemoteConfig:
        """Remote config assembled from the config file, used when none is stored."""
        return RemoteConfig(
            app_id=self.remote.app_id,
            app_secret=self.remote.app_secret,
            app_token=self.remote.app_token,
            table_id=self.remote.table_id,
            sync_interval_minutes=self.sync.interval_minutes,
        )


class ConfigManager:
    """Manages application configuration from files and environment."""

    def __init__(self, config_path: Path | None = None):
        self.config_path = config_path or self._find_config_file()
        self._config: AppConfig | None = None

    def _find_config_file(self) -> Path | None:
        """Find configuration file in standard locations."""
        search_paths = [
            Path.cwd() / ".link-mirror" / "config.yaml",
            Path.cwd() / "config.yaml",
            Path.home() / ".config" / "link-mirror" / "config.yaml",
            Path("/etc/link-mirror/config.yaml"),
        ]

        for path in search_paths:
            if path.exists():
                return path

        return None

    def load_config(self) -> AppConfig:
        """Load configuration from file or create default."""
        if self._config is not None:
            return self._config

        default_config = self.get_default_config()

        if self.config_path and self.config_path.exists():
            with open(self.config_path, encoding="utf-8") as f:
                file_config = yaml.safe_load(f) or {}

            config_data = self._deep_merge_configs(default_config, file_config)
        else:
            config_data = default_config

        config_data = self._apply_env_overrides(config_data)

        self._config = AppConfig(**config_data)
        return self._config

    def _deep_merge_configs(
        self, default_config: dict[str, Any], override_config: dict[str, Any]
    ) -> dict[str, Any]:
        """Merge override config into default config one section deep.

        Args:
            default_config: Base configuration with all defaults
            override_config: User-provided overrides

        Returns:
            Merged configuration

        Example:
            Default: {"sync": {"interval_minutes": 30, "max_retries": 3}}
            Override: {"sync": {"interval_minutes": 10}}
            Result: {"sync": {"interval_minutes": 10, "max_retries": 3}}
        """
        result = copy.deepcopy(default_config)

        for key, value in override_config.items():
            if (
                key in result
                and isinstance(result[key], dict)
                and isinstance(value, dict)
            ):
                result[key].update(value)
            else:
                result[key] = value

        return result

    def _apply_env_overrides(self, config_data: dict[str, Any]) -> dict[str, Any]:
        """Apply environment variable overrides to config.

        Example: LINK_MIRROR_SYNC_TEST_MODE=true sets sync.test_mode.
        """
        for key, value in os.environ.items():
            if not key.startswith(ENV_PREFIX):
                continue

            section, _, option = key[len(ENV_PREFIX) :].lower().partition("_")
            if not option or section not in config_data:
                continue
            if not isinstance(config_data[section], dict):
                continue

            if value.lower() in ("true", "false"):
                config_data[section][option] = value.lower() == "true"
            else:
                config_data[section][option] = value

        return config_data

    def get_complete_config_dict(self) -> dict[str, Any]:
        """Get the complete configuration as a dictionary for display."""
        config = self.load_config()
        data = config.model_dump()
        if data["remote"].get("app_secret"):
            data["remote"]["app_secret"] = "********"
        return data

    def show_config(self) -> str:
        """Show the complete configuration in YAML format.

        Returns:
            YAML formatted configuration string
        """
        return yaml.dump(
            self.get_complete_config_dict(),
            default_flow_style=False,
            sort_keys=False,
            allow_unicode=True,
        )

    def get_default_config(self) -> dict[str, Any]:
        """Get default configuration as a plain dictionary."""
        return AppConfig().model_dump()

    def create_default_config(self, output_path: Path) -> None:
        """Create a default configuration file."""
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, "w", encoding="utf-8") as f:
            yaml.dump(
                self.get_default_config(),
                f,
                default_flow_style=False,
                sort_keys=False,
                allow_unicode=True,
            )


# Global config manager instance with factory pattern
_config_manager_instance: ConfigManager | None = None


def get_config_manager(config_path: Path | None = None) -> ConfigManager:
    """Get or create the global config manager instance.

    Args:
        config_path: Optional path to config file (only used on first call)

    Returns:
        The global ConfigManager instance
    """
    global _config_manager_instance
    if _config_manager_instance is None:
        _config_manager_instance = ConfigManager(config_path)
    return _config_manager_instance


def set_config_manager(manager: ConfigManager) -> None:
    """Set the config manager instance (primarily for testing)."""
    global _config_manager_instance
    _config_manager_instance = manager


def reset_config_manager() -> None:
    """Reset the config manager instance (primarily for testing)."""
    global _config_manager_instance
    _config_manager_instance = None
