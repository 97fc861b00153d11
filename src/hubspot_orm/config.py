"""
Process-wide configuration.

Values come from ``configure()`` or, when it has not been called, from
HUBSPOT_* environment variables. The HTTP layer reads this lazily so a
token set after import is still honoured.
"""

import logging
import os
from dataclasses import dataclass, fields
from typing import Any

import httpx
import structlog

from hubspot_orm.exceptions import ArgumentError

logger = structlog.get_logger(__name__)

LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "fatal": logging.CRITICAL,
    "critical": logging.CRITICAL,
}

ENV_MAPPINGS = {
    "access_token": "HUBSPOT_ACCESS_TOKEN",
    "portal_id": "HUBSPOT_PORTAL_ID",
    "client_secret": "HUBSPOT_CLIENT_SECRET",
    "timeout": "HUBSPOT_TIMEOUT",
}


def parse_log_level(name: str | None) -> int:
    """Resolve a level name; unknown or missing names fall back to INFO."""
    if not name:
        return logging.INFO
    return LOG_LEVELS.get(name.strip().lower(), logging.INFO)


@dataclass
class HubspotConfig:
    """Credentials, timeouts and log level shared by every request."""

    access_token: str | None = None
    portal_id: str | None = None
    client_secret: str | None = None

    # Seconds; the phase-specific values override ``timeout`` when set
    timeout: float = 30.0
    open_timeout: float | None = None
    read_timeout: float | None = None
    write_timeout: float | None = None

    max_retries: int = 3
    log_level: int = logging.INFO

    @classmethod
    def from_env(cls) -> "HubspotConfig":
        """Build a config from HUBSPOT_* environment variables."""
        values: dict[str, Any] = {}
        for key, env_var in ENV_MAPPINGS.items():
            env_value = os.environ.get(env_var)
            if env_value:
                values[key] = float(env_value) if key == "timeout" else env_value

        values["log_level"] = parse_log_level(os.environ.get("HUBSPOT_LOG_LEVEL"))
        return cls(**values)

    @property
    def configured(self) -> bool:
        return bool(self.access_token)

    def httpx_timeout(self) -> httpx.Timeout:
        """Translate the timeout settings into an httpx.Timeout."""
        phases = {
            "connect": self.open_timeout,
            "read": self.read_timeout,
            "write": self.write_timeout,
        }
        overrides = {k: v for k, v in phases.items() if v is not None}
        return httpx.Timeout(self.timeout, **overrides)


_config: HubspotConfig | None = None
_version = 0


def get_config() -> HubspotConfig:
    """Return the active config, loading it from the environment on first use."""
    global _config
    if _config is None:
        _config = HubspotConfig.from_env()
        apply_log_level(_config.log_level)
    return _config


def config_version() -> int:
    """Counter bumped on every configuration change."""
    return _version


def configure(**options: Any) -> HubspotConfig:
    """
    Update the process-wide configuration.

    Example:
        hubspot_orm.configure(access_token="pat-na1-...", read_timeout=10)
    """
    global _version
    config = get_config()
    known = {f.name for f in fields(HubspotConfig)}

    for key, value in options.items():
        if key not in known:
            raise ArgumentError(f"Unknown configuration option: {key}")
        if key == "log_level" and isinstance(value, str):
            value = parse_log_level(value)
        setattr(config, key, value)

    apply_log_level(config.log_level)
    _version += 1

    logger.debug("Configuration updated", options=sorted(options))
    return config


def reset_config() -> None:
    """Forget all configuration (mainly for tests)."""
    global _config, _version
    _config = None
    _version += 1


def is_configured() -> bool:
    return get_config().configured


def apply_log_level(level: int) -> None:
    """Filter structlog output below ``level``."""
    structlog.configure(wrapper_class=structlog.make_filtering_bound_logger(level))
