"""
Configuration management for the personalization service.
Handles loading, validating, and providing access to application settings.

Precedence: built-in defaults, then ``personalization_config.json`` (merged
section by section), then environment variables.
"""

import os
import json
import logging
from pathlib import Path
from typing import Any, Callable, Dict, Optional
from dataclasses import dataclass

from personalization_service.config import (
    CacheConfig,
    DynamicRailsConfig,
    PersonalizationConfig,
    PersonalizedRailsConfig,
    ReorderConfig,
    SeenStoreConfig,
    ThumbsConfig,
    TrackingConfig,
)

logger = logging.getLogger(__name__)


@dataclass
class AppConfig:
    """Application configuration settings."""
    host: str
    port: int
    debug: bool


@dataclass
class PathsConfig:
    """Path configuration settings."""
    user_data_dir: str


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("true", "1", "yes", "on")


# env var -> (section, key, parser)
ENV_OVERRIDES: Dict[str, tuple] = {
    "APP_HOST": ("app", "host", str),
    "APP_PORT": ("app", "port", int),
    "APP_DEBUG": ("app", "debug", _parse_bool),
    "USER_DATA_DIR": ("paths", "user_data_dir", str),
    "FEATURE_TRACKING": ("tracking", "enabled", _parse_bool),
    "FEATURE_THUMBS": ("thumbs", "enabled", _parse_bool),
    "FEATURE_SEEN_STORE": ("seen", "enabled", _parse_bool),
    "SEEN_STORE_TTL_DAYS": ("seen", "ttl_days", int),
    "FEATURE_DYNAMIC_CATEGORIES": ("dynamic_rails", "enabled", _parse_bool),
    "DYNAMIC_CORE_LIMIT": ("dynamic_rails", "core_limit", int),
    "DYNAMIC_RAILS_LIMIT": ("dynamic_rails", "dynamic_limit", int),
    "DYNAMIC_SPAWN_THRESHOLD": ("dynamic_rails", "spawn_threshold", float),
    "DYNAMIC_SUNSET_DAYS": ("dynamic_rails", "sunset_days", int),
    "FEATURE_PERSONALIZED_RAILS": ("personalized_rails", "enabled", _parse_bool),
    "PERSONALIZED_RAILS_MAX": ("personalized_rails", "max_rails", int),
    "PERSONALIZED_RAILS_MIN_EVENTS": ("personalized_rails", "min_events", int),
    "PERSONALIZED_RAILS_MIN_INTERACTIONS": ("personalized_rails", "min_interactions", int),
    "PERSONALIZED_VETO_THRESHOLD": ("personalized_rails", "veto_threshold", int),
    "PERSONALIZED_DISCOVERY_FLOOR": ("reorder", "discovery_floor", float),
    "FEATURE_CACHED_EVENTS": ("cache", "enabled", _parse_bool),
    "CACHE_TTL_MINUTES": ("cache", "ttl_minutes", float),
    "CACHE_MAX_EVENTS": ("cache", "cap", int),
    "FEATURE_DAILY_SHUFFLE": ("cache", "daily_shuffle", _parse_bool),
    "DEFAULT_CITY": ("cache", "city", str),
}


class ConfigManager:
    """Manages application configuration loading and access."""

    def __init__(self, config_file: str = "personalization_config.json"):
        self.config_file = Path(config_file)
        self._config: Optional[Dict[str, Any]] = None
        self._load_config()

    def _load_config(self) -> None:
        """Load configuration from file and environment variables."""
        self._config = self._get_default_config()

        if self.config_file.exists():
            try:
                with open(self.config_file, 'r', encoding='utf-8') as f:
                    file_config = json.load(f)
                self._merge_config(file_config)
            except (json.JSONDecodeError, OSError) as e:
                logger.warning(f"Ignoring unreadable config file {self.config_file}: {e}")

        self._override_with_env()

    def _get_default_config(self) -> Dict[str, Any]:
        """Get default configuration."""
        return {
            "app": {
                "host": "0.0.0.0",
                "port": 22581,
                "debug": False,
            },
            "paths": {
                "user_data_dir": "user_data",
            },
            "tracking": {
                "enabled": True,
                "debounce_ms": 500,
                "max_events": 1000,
                "max_age_days": 90,
                "half_life_days": 30,
            },
            "thumbs": {
                "enabled": True,
            },
            "seen": {
                "enabled": True,
                "ttl_days": 14,
                "max_entries": 2000,
            },
            "reorder": {
                "discovery_floor": 0.25,
            },
            "dynamic_rails": {
                "enabled": True,
                "core_limit": 10,
                "dynamic_limit": 5,
                "spawn_threshold": 0.4,
                "sunset_days": 7,
                "min_events": 4,
            },
            "personalized_rails": {
                "enabled": True,
                "max_rails": 3,
                "min_events": 4,
                "min_interactions": 5,
                "veto_threshold": 2,
                "rail_size": 20,
            },
            "cache": {
                "enabled": True,
                "ttl_minutes": 30,
                "cap": 60,
                "daily_shuffle": True,
                "city": None,
            },
        }

    def _merge_config(self, file_config: Dict[str, Any]) -> None:
        """Merge file configuration with current config."""
        if not isinstance(file_config, dict):
            logger.warning(f"Config file {self.config_file} is not a JSON object, ignoring it")
            return
        for section, values in file_config.items():
            if section in self._config and isinstance(values, dict):
                self._config[section].update(values)
            else:
                self._config[section] = values

    def _override_with_env(self) -> None:
        """Override configuration with environment variables."""
        for env_name, (section, key, parser) in ENV_OVERRIDES.items():
            raw = os.getenv(env_name)
            if not raw:
                continue
            try:
                self._config[section][key] = parser(raw)
            except ValueError:
                logger.warning(f"Ignoring invalid value for {env_name}: {raw!r}")

    def _section(self, name: str, factory: Callable[..., Any]) -> Any:
        values = self._config.get(name, {})
        fields = factory.__dataclass_fields__
        return factory(**{k: v for k, v in values.items() if k in fields})

    def get_app_config(self) -> AppConfig:
        """Get application configuration."""
        app_config = self._config["app"]
        return AppConfig(
            host=app_config["host"],
            port=int(app_config["port"]),
            debug=bool(app_config["debug"]),
        )

    def get_paths_config(self) -> PathsConfig:
        """Get paths configuration."""
        return PathsConfig(user_data_dir=self._config["paths"]["user_data_dir"])

    def get_tracking_config(self) -> TrackingConfig:
        return self._section("tracking", TrackingConfig)

    def get_thumbs_config(self) -> ThumbsConfig:
        return self._section("thumbs", ThumbsConfig)

    def get_seen_config(self) -> SeenStoreConfig:
        return self._section("seen", SeenStoreConfig)

    def get_reorder_config(self) -> ReorderConfig:
        return self._section("reorder", ReorderConfig)

    def get_dynamic_rails_config(self) -> DynamicRailsConfig:
        return self._section("dynamic_rails", DynamicRailsConfig)

    def get_personalized_rails_config(self) -> PersonalizedRailsConfig:
        return self._section("personalized_rails", PersonalizedRailsConfig)

    def get_cache_config(self) -> CacheConfig:
        return self._section("cache", CacheConfig)

    def get_personalization_config(self) -> PersonalizationConfig:
        """All component sections bundled for the engine."""
        return PersonalizationConfig(
            tracking=self.get_tracking_config(),
            thumbs=self.get_thumbs_config(),
            seen=self.get_seen_config(),
            reorder=self.get_reorder_config(),
            dynamic_rails=self.get_dynamic_rails_config(),
            personalized_rails=self.get_personalized_rails_config(),
            cache=self.get_cache_config(),
        )

    def get_config(self) -> Dict[str, Any]:
        """Get raw configuration dictionary."""
        return self._config.copy()

    def reload(self) -> None:
        """Reload configuration from file."""
        self._load_config()

    def save_config(self) -> None:
        """Save current configuration to file."""
        with open(self.config_file, 'w', encoding='utf-8') as f:
            json.dump(self._config, f, indent=2, ensure_ascii=False)


# Global configuration instance
config_manager = ConfigManager()


def get_app_config() -> AppConfig:
    """Get application configuration."""
    return config_manager.get_app_config()


def get_paths_config() -> PathsConfig:
    """Get paths configuration."""
    return config_manager.get_paths_config()


def get_personalization_config() -> PersonalizationConfig:
    """Get the bundled personalization configuration."""
    return config_manager.get_personalization_config()


def reload_config() -> None:
    """Reload configuration."""
    config_manager.reload()


def save_config() -> None:
    """Save configuration to file."""
    config_manager.save_config()
