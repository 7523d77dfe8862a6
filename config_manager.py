"""
Configuration management for the UTM campaign tracker.
Handles loading, resolving, and providing access to tracker settings.
"""

import os
import json
from pathlib import Path
from typing import Dict, Any, Optional
from dataclasses import dataclass, fields


# Options that may be supplied as a zero-argument producer instead of a value
CALLABLE_OPTIONS = ("ip", "ipstack_access_key", "enabled", "file")

DEFAULT_IP_SALT = str(Path(__file__).resolve().parent)


@dataclass(frozen=True)
class UtmConfig:
    """Fully resolved tracker configuration."""
    enabled: bool = True
    file: str = "utm.sqlite"
    ip: Optional[str] = None
    ip_salt: str = DEFAULT_IP_SALT
    ipstack_access_key: str = ""
    ipstack_https: bool = True
    ipstack_expire: int = 60 * 24  # minutes
    ipstack_timeout: float = 5.0
    ratelimit_enabled: bool = True
    ratelimit_expire: int = 60  # minutes
    ratelimit_trials: int = 60
    stats_range: int = 30
    cache_dir: Optional[str] = None
    debug: bool = False

    @property
    def ipstack_scheme(self) -> str:
        return "https" if self.ipstack_https else "http"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UtmConfig":
        """Create UtmConfig from a dictionary, resolving callables first."""
        resolved = resolve_options(data)
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in resolved.items() if k in known})


@dataclass(frozen=True)
class AppConfig:
    """Web application configuration settings."""
    host: str
    port: int
    debug: bool


def resolve_options(options: Dict[str, Any]) -> Dict[str, Any]:
    """Call producer functions for the options that accept them.

    Args:
        options: Raw option mapping

    Returns:
        A new mapping where every callable in CALLABLE_OPTIONS is replaced
        by its return value
    """
    resolved = dict(options)
    for key in CALLABLE_OPTIONS:
        value = resolved.get(key)
        if not isinstance(value, str) and callable(value):
            resolved[key] = value()
    return resolved


def _env_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


class ConfigManager:
    """Manages tracker configuration loading and access."""

    def __init__(self, config_file: str = "utm_config.json"):
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
            except (json.JSONDecodeError, FileNotFoundError):
                # Keep default config if file is invalid or not found
                pass

        self._override_with_env()

    def _get_default_config(self) -> Dict[str, Any]:
        """Get default configuration."""
        defaults = UtmConfig()
        return {
            "utm": {f.name: getattr(defaults, f.name) for f in fields(UtmConfig)},
            "app": {
                "host": "0.0.0.0",
                "port": 22582,
                "debug": False,
            },
        }

    def _merge_config(self, file_config: Dict[str, Any]) -> None:
        """Merge file configuration with current config."""
        for section, values in file_config.items():
            if section in self._config and isinstance(values, dict):
                self._config[section].update(values)
            else:
                self._config[section] = values

    def _override_with_env(self) -> None:
        """Override configuration with environment variables."""
        utm = self._config["utm"]

        if os.getenv("UTM_ENABLED"):
            utm["enabled"] = _env_bool(os.getenv("UTM_ENABLED"))

        if os.getenv("UTM_FILE"):
            utm["file"] = os.getenv("UTM_FILE")

        if os.getenv("UTM_IP_SALT"):
            utm["ip_salt"] = os.getenv("UTM_IP_SALT")

        if os.getenv("IPSTACK_ACCESS_KEY"):
            utm["ipstack_access_key"] = os.getenv("IPSTACK_ACCESS_KEY")

        if os.getenv("IPSTACK_HTTPS"):
            utm["ipstack_https"] = _env_bool(os.getenv("IPSTACK_HTTPS"))

        if os.getenv("IPSTACK_EXPIRE"):
            utm["ipstack_expire"] = int(os.getenv("IPSTACK_EXPIRE"))

        if os.getenv("UTM_RATELIMIT_ENABLED"):
            utm["ratelimit_enabled"] = _env_bool(os.getenv("UTM_RATELIMIT_ENABLED"))

        if os.getenv("UTM_RATELIMIT_EXPIRE"):
            utm["ratelimit_expire"] = int(os.getenv("UTM_RATELIMIT_EXPIRE"))

        if os.getenv("UTM_RATELIMIT_TRIALS"):
            utm["ratelimit_trials"] = int(os.getenv("UTM_RATELIMIT_TRIALS"))

        if os.getenv("UTM_STATS_RANGE"):
            utm["stats_range"] = int(os.getenv("UTM_STATS_RANGE"))

        if os.getenv("UTM_CACHE_DIR"):
            utm["cache_dir"] = os.getenv("UTM_CACHE_DIR")

        # App settings
        if os.getenv("APP_HOST"):
            self._config["app"]["host"] = os.getenv("APP_HOST")

        if os.getenv("APP_PORT"):
            self._config["app"]["port"] = int(os.getenv("APP_PORT"))

        if os.getenv("APP_DEBUG"):
            self._config["app"]["debug"] = _env_bool(os.getenv("APP_DEBUG"))

    def get_utm_config(self, **overrides: Any) -> UtmConfig:
        """Get tracker configuration, applying explicit overrides last."""
        options = dict(self._config["utm"])
        options.update(overrides)
        return UtmConfig.from_dict(options)

    def get_app_config(self) -> AppConfig:
        """Get application configuration."""
        app_config = self._config["app"]
        return AppConfig(
            host=app_config["host"],
            port=app_config["port"],
            debug=app_config["debug"],
        )

    def save_config(self) -> None:
        """Save current configuration to file."""
        with open(self.config_file, 'w', encoding='utf-8') as f:
            json.dump(self._config, f, indent=2, ensure_ascii=False)
