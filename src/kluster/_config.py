"""Configuration management for Kluster SDK.

Supports:
- Environment variables (KLUSTER_TOKEN, KLUSTER_URL, etc.)
- Config file (~/.kluster/config.toml)
- Programmatic configuration
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib


DEFAULT_BASE_URL = "https://kubernikus.example.com"
DEFAULT_TIMEOUT = 60.0
# Transport errors are fatal on first occurrence unless retries are requested.
DEFAULT_MAX_RETRIES = 0

DEFAULT_DELAY = 1.0
DEFAULT_MIN_POLL_INTERVAL = 1.0
DEFAULT_POLL_INTERVAL = 10.0
DEFAULT_CREATE_TIMEOUT = 30 * 60.0
DEFAULT_UPDATE_TIMEOUT = 30 * 60.0
DEFAULT_DELETE_TIMEOUT = 10 * 60.0

CONFIG_DIR = Path.home() / ".kluster"
CONFIG_FILE = CONFIG_DIR / "config.toml"


@dataclass
class PollingConfig:
    """Convergence polling defaults (from [polling] section)."""

    delay: float = DEFAULT_DELAY
    min_poll_interval: float = DEFAULT_MIN_POLL_INTERVAL
    poll_interval: float = DEFAULT_POLL_INTERVAL
    create_timeout: float = DEFAULT_CREATE_TIMEOUT
    update_timeout: float = DEFAULT_UPDATE_TIMEOUT
    delete_timeout: float = DEFAULT_DELETE_TIMEOUT

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PollingConfig:
        return cls(
            delay=float(data.get("delay", DEFAULT_DELAY)),
            min_poll_interval=float(data.get("min_poll_interval", DEFAULT_MIN_POLL_INTERVAL)),
            poll_interval=float(data.get("poll_interval", DEFAULT_POLL_INTERVAL)),
            create_timeout=float(data.get("create_timeout", DEFAULT_CREATE_TIMEOUT)),
            update_timeout=float(data.get("update_timeout", DEFAULT_UPDATE_TIMEOUT)),
            delete_timeout=float(data.get("delete_timeout", DEFAULT_DELETE_TIMEOUT)),
        )


@dataclass
class KlusterConfig:
    """SDK configuration."""

    token: str | None = None
    base_url: str = DEFAULT_BASE_URL
    arc_url: str | None = None
    archer_url: str | None = None
    timeout: float = DEFAULT_TIMEOUT
    max_retries: int = DEFAULT_MAX_RETRIES

    # Additional settings
    debug: bool = False
    verify_ssl: bool = True

    polling: PollingConfig = field(default_factory=PollingConfig)

    @classmethod
    def from_env(cls) -> KlusterConfig:
        """Load configuration from environment variables only."""
        config = cls()
        _apply_env(config)
        return config

    @classmethod
    def from_file(cls, path: Path | None = None) -> KlusterConfig:
        """Load configuration from the TOML file, or defaults if it is missing."""
        data = _read_file(path or CONFIG_FILE)
        config = cls(polling=PollingConfig.from_dict(data.pop("polling", {})))
        for key, value in data.items():
            name = FILE_KEYS.get(key, key)
            if name in _FIELD_TYPES:
                setattr(config, name, _FIELD_TYPES[name](value))
        return config

    @classmethod
    def load(cls, path: Path | None = None) -> KlusterConfig:
        """Load configuration with precedence: env > file > defaults."""
        config = cls.from_file(path)
        _apply_env(config)
        return config


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


# Keys in the file that differ from the attribute name.
FILE_KEYS = {"url": "base_url"}

_FIELD_TYPES: dict[str, Any] = {
    "token": str,
    "base_url": str,
    "arc_url": str,
    "archer_url": str,
    "timeout": float,
    "max_retries": int,
    "debug": _as_bool,
    "verify_ssl": _as_bool,
}

# (environment variable, section or None, attribute)
ENV_VARS = [
    ("KLUSTER_TOKEN", None, "token"),
    ("KLUSTER_URL", None, "base_url"),
    ("KLUSTER_ARC_URL", None, "arc_url"),
    ("KLUSTER_ARCHER_URL", None, "archer_url"),
    ("KLUSTER_TIMEOUT", None, "timeout"),
    ("KLUSTER_MAX_RETRIES", None, "max_retries"),
    ("KLUSTER_DEBUG", None, "debug"),
    ("KLUSTER_VERIFY_SSL", None, "verify_ssl"),
    ("KLUSTER_POLL_INTERVAL", "polling", "poll_interval"),
    ("KLUSTER_MIN_POLL_INTERVAL", "polling", "min_poll_interval"),
]


def _apply_env(config: KlusterConfig) -> None:
    for var, section, name in ENV_VARS:
        raw = os.getenv(var)
        if not raw:
            continue
        if section == "polling":
            setattr(config.polling, name, float(raw))
        else:
            setattr(config, name, _FIELD_TYPES[name](raw))


def _read_file(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    with open(path, "rb") as f:
        return tomllib.load(f)


def save_config(config: dict[str, Any], path: Path | None = None) -> None:
    """Save configuration to TOML file.

    Sets restrictive file permissions (0o600) since config may contain a token.
    """
    import tomli_w

    config_path = path or CONFIG_FILE
    config_path.parent.mkdir(parents=True, exist_ok=True)

    with open(config_path, "wb") as f:
        tomli_w.dump(config, f)

    config_path.chmod(0o600)


def get_config_value(key: str, path: Path | None = None) -> Any:
    """Get a single effective config value.

    Dotted keys address the [polling] section, e.g. ``polling.poll_interval``.
    """
    config = KlusterConfig.load(path)
    section, _, name = key.rpartition(".")
    if section == "polling":
        return getattr(config.polling, name, None)
    return getattr(config, FILE_KEYS.get(key, key), None)


def set_config_value(key: str, value: Any, path: Path | None = None) -> None:
    """Set a single config value in the config file."""
    config_path = path or CONFIG_FILE
    data = _read_file(config_path)

    section, _, name = key.rpartition(".")
    if section:
        data.setdefault(section, {})[name] = value
    else:
        data[key] = value
    save_config(data, config_path)
