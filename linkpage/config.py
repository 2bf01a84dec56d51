"""Configuration management for the link-page service.

Centralises environment variable loading and validation logic while keeping the
public API intentionally simple.
"""

from __future__ import annotations

import os
from typing import Any, Mapping, Optional, TypedDict

_TRUTHY_VALUES = {"1", "true", "yes", "on"}


class AppConfig(TypedDict):
    """Typed representation of the application's configuration."""

    FLASK_SECRET_KEY: Optional[str]
    FLASK_ENV: str
    FLASK_DEBUG: bool
    BDO_BACKEND: str
    BDO_BASE_URL: str
    BDO_HASH: str
    ADDIE_BACKEND: str
    ADDIE_BASE_URL: str
    HTTP_TIMEOUT: int
    MAPPINGS_FILE: str
    MAPPINGS_FLUSH_EVERY: int
    MAPPINGS_FLUSH_INTERVAL: int
    MAPPINGS_BACKUP_INTERVAL: int
    HANDOFF_TTL: int
    HANDOFF_GRACE: int
    HANDOFF_SWEEP_INTERVAL: int
    HANDOFF_SEQUENCE_LENGTH: int
    HANDOFF_MAX_ATTEMPTS: int
    HANDOFF_REQUIRE_APP_SIGNATURE: bool
    WEB_PRICE: int
    APP_PRICE: int
    CURRENCY: str
    SOCKETIO_CORS: str
    SOCKETIO_ASYNC_MODE: str
    RATE_LIMIT_ENABLED: bool
    RATE_LIMIT_DEFAULT: str
    RATELIMIT_STORAGE_URI: str
    FORCE_HTTPS: bool
    SECURE_COOKIES: bool
    SESSION_LIFETIME_DAYS: int
    LOG_LEVEL: str
    APP_NAME: str
    APP_VERSION: str
    APP_HOST: str
    APP_PORT: int


def _get_env_bool(name: str, default: bool) -> bool:
    """Return an environment variable as a boolean."""

    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in _TRUTHY_VALUES


def _get_env_int(name: str, default: int) -> int:
    """Return an environment variable as an integer, raising on invalid input."""

    raw_value = os.getenv(name)
    if raw_value is None or raw_value == "":
        return default

    try:
        return int(raw_value)
    except ValueError as exc:
        raise ValueError(f"Environment variable {name} must be an integer (got {raw_value!r})") from exc


def get_config() -> AppConfig:
    """Load application configuration from environment variables."""

    return {
        # Flask Configuration
        "FLASK_SECRET_KEY": os.getenv("FLASK_SECRET_KEY"),
        "FLASK_ENV": os.getenv("FLASK_ENV", "development"),
        "FLASK_DEBUG": _get_env_bool("FLASK_DEBUG", False),
        # Storage backend (documents and emojicodes)
        "BDO_BACKEND": os.getenv("BDO_BACKEND", "stub").lower(),
        "BDO_BASE_URL": os.getenv("BDO_BASE_URL", "https://dev.bdo.allyabase.com"),
        "BDO_HASH": os.getenv("BDO_HASH", "Linkitylink"),
        # Payment backend
        "ADDIE_BACKEND": os.getenv("ADDIE_BACKEND", "stub").lower(),
        "ADDIE_BASE_URL": os.getenv("ADDIE_BASE_URL", "https://dev.addie.allyabase.com"),
        "HTTP_TIMEOUT": _get_env_int("HTTP_TIMEOUT", 10),
        # Alphanumeric identifier index
        "MAPPINGS_FILE": os.getenv("MAPPINGS_FILE", "data/alphanumeric-mappings.json"),
        "MAPPINGS_FLUSH_EVERY": _get_env_int("MAPPINGS_FLUSH_EVERY", 10),
        "MAPPINGS_FLUSH_INTERVAL": _get_env_int("MAPPINGS_FLUSH_INTERVAL", 600),
        "MAPPINGS_BACKUP_INTERVAL": _get_env_int("MAPPINGS_BACKUP_INTERVAL", 3600),
        # App handoff
        "HANDOFF_TTL": _get_env_int("HANDOFF_TTL", 1800),
        "HANDOFF_GRACE": _get_env_int("HANDOFF_GRACE", 300),
        "HANDOFF_SWEEP_INTERVAL": _get_env_int("HANDOFF_SWEEP_INTERVAL", 300),
        "HANDOFF_SEQUENCE_LENGTH": _get_env_int("HANDOFF_SEQUENCE_LENGTH", 5),
        "HANDOFF_MAX_ATTEMPTS": _get_env_int("HANDOFF_MAX_ATTEMPTS", 5),
        "HANDOFF_REQUIRE_APP_SIGNATURE": _get_env_bool("HANDOFF_REQUIRE_APP_SIGNATURE", False),
        # Pricing (minor currency units)
        "WEB_PRICE": _get_env_int("WEB_PRICE", 2000),
        "APP_PRICE": _get_env_int("APP_PRICE", 1500),
        "CURRENCY": os.getenv("CURRENCY", "usd"),
        # CORS Configuration
        "SOCKETIO_CORS": os.getenv("SOCKETIO_CORS", "*"),
        "SOCKETIO_ASYNC_MODE": os.getenv("SOCKETIO_ASYNC_MODE", "eventlet"),
        # Rate Limiting
        "RATE_LIMIT_ENABLED": _get_env_bool("RATE_LIMIT_ENABLED", True),
        "RATE_LIMIT_DEFAULT": os.getenv("RATE_LIMIT_DEFAULT", "300/hour"),
        "RATELIMIT_STORAGE_URI": os.getenv("RATELIMIT_STORAGE_URI", "memory://"),
        "FORCE_HTTPS": _get_env_bool(
            "FORCE_HTTPS",
            os.getenv("FLASK_ENV", "development").lower() == "production",
        ),
        # Session Configuration
        "SECURE_COOKIES": _get_env_bool("SECURE_COOKIES", False),
        "SESSION_LIFETIME_DAYS": _get_env_int("SESSION_LIFETIME_DAYS", 365),
        # Logging
        "LOG_LEVEL": os.getenv("LOG_LEVEL", "INFO"),
        # Application Settings
        "APP_NAME": os.getenv("APP_NAME", "Linkitylink"),
        "APP_VERSION": os.getenv("APP_VERSION", "1.0.0"),
        "APP_HOST": os.getenv("APP_HOST", "0.0.0.0"),
        "APP_PORT": _get_env_int("APP_PORT", 3010),
    }


def validate_config(config: Mapping[str, Any]) -> bool:
    """Validate critical configuration values.

    Args:
        config: Configuration mapping to validate.

    Returns:
        True if configuration is valid, raises ValueError otherwise.
    """

    if config.get("APP_PRICE", 0) > config.get("WEB_PRICE", 0):
        raise ValueError("APP_PRICE must not exceed WEB_PRICE")

    if config.get("HANDOFF_SEQUENCE_LENGTH", 5) < 1:
        raise ValueError("HANDOFF_SEQUENCE_LENGTH must be at least 1")

    if config.get("FLASK_ENV") == "production":
        if not config.get("FLASK_SECRET_KEY"):
            raise ValueError("⚠️  FLASK_SECRET_KEY must be set for production!")

        for name in ("BDO_BACKEND", "ADDIE_BACKEND"):
            if config.get(name) == "stub":
                import warnings

                warnings.warn(f"⚠️  {name}=stub in production - nothing will be persisted!", stacklevel=2)

    return True
