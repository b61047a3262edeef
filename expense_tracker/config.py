"""Process-wide settings resolved once from the environment."""
from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import timedelta
from functools import cache
from pathlib import Path
from typing import Final

ENV_PREFIX: Final[str] = "EXPENSE_TRACKER_"
DEV_SECRET: Final[str] = "dev-only-signing-secret-change-me-in-production"
DEFAULT_ORIGINS: Final[tuple[str, ...]] = ("http://localhost:3000",)
DEFAULT_TOKEN_TTL_DAYS: Final[int] = 7


def _env(name: str, default: str | None = None) -> str | None:
    value = os.environ.get(f"{ENV_PREFIX}{name}")
    if value is None or not value.strip():
        return default
    return value.strip()


def _env_bool(name: str, default: bool = False) -> bool:
    """Interpret environment variable values as booleans."""

    value = _env(name)
    if value is None:
        return default
    return value.lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    value = _env(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError as exc:
        raise ValueError(f"{ENV_PREFIX}{name} must be an integer, got {value!r}") from exc


def _default_database_url() -> str:
    return f"sqlite:///{Path.cwd() / 'expenses.db'}"


@dataclass(frozen=True)
class Settings:
    """Immutable runtime configuration for the API server."""

    database_url: str
    jwt_secret: str
    token_ttl: timedelta
    allowed_origins: tuple[str, ...]
    host: str = "127.0.0.1"
    port: int = 8000
    dev_mode: bool = True

    @classmethod
    def from_env(cls) -> "Settings":
        dev_mode = _env_bool("DEV_MODE", default=True)
        secret = _env("JWT_SECRET", DEV_SECRET)
        if not dev_mode and secret == DEV_SECRET:
            raise ValueError(f"{ENV_PREFIX}JWT_SECRET must be set when dev mode is off.")
        ttl_days = _env_int("TOKEN_TTL_DAYS", DEFAULT_TOKEN_TTL_DAYS)
        if ttl_days < 1:
            raise ValueError(f"{ENV_PREFIX}TOKEN_TTL_DAYS must be at least 1")
        raw_origins = _env("ALLOWED_ORIGINS")
        origins = (
            tuple(item.strip() for item in raw_origins.split(",") if item.strip())
            if raw_origins
            else DEFAULT_ORIGINS
        )
        return cls(
            database_url=_env("DATABASE_URL", _default_database_url()),
            jwt_secret=secret,
            token_ttl=timedelta(days=ttl_days),
            allowed_origins=origins,
            host=_env("HOST", "127.0.0.1"),
            port=_env_int("PORT", 8000),
            dev_mode=dev_mode,
        )


@cache
def get_settings() -> Settings:
    """Return the settings for this process, reading the environment on first use."""

    return Settings.from_env()


__all__ = ["Settings", "get_settings"]
