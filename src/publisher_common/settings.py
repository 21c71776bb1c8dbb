"""Settings building blocks shared by the API, the CLI and the DB tooling."""

from __future__ import annotations

from collections.abc import Callable
from functools import cache
from typing import Protocol

from pydantic import Field, field_validator
from pydantic_settings import SettingsConfigDict

from .paths import DEFAULT_DATA_DIR, REPO_ROOT

ALLOWED_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})
ALLOWED_LOG_FORMATS = frozenset({"console", "json"})
DEFAULT_DATABASE_URL = f"sqlite:///{DEFAULT_DATA_DIR / 'publisher.sqlite'}"

# URL scheme (driver suffix stripped) -> canonical backend name
_BACKEND_ALIASES = {"sqlite": "sqlite", "postgresql": "postgresql", "postgres": "postgresql"}


def publisher_settings_config(
    *,
    enable_decoding: bool = True,
    populate_by_name: bool = False,
) -> SettingsConfigDict:
    """``PUBLISHER_*`` environment variables, optionally from ``<repo>/.env``."""

    return SettingsConfigDict(
        env_prefix="PUBLISHER_",
        env_file=str(REPO_ROOT / ".env"),
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        case_sensitive=False,
        extra="ignore",
        str_strip_whitespace=True,
        enable_decoding=enable_decoding,
        populate_by_name=populate_by_name,
    )


def create_settings_accessors[T](
    settings_type: type[T],
) -> tuple[Callable[[], T], Callable[[], T]]:
    """Return a cached ``get_settings`` and a ``reload_settings`` that drops the cache."""

    @cache
    def get_settings() -> T:
        return settings_type()

    def reload_settings() -> T:
        get_settings.cache_clear()
        return get_settings()

    return get_settings, reload_settings


def _pick(value: str, allowed: frozenset[str], env_var: str) -> str:
    if value not in allowed:
        raise ValueError(f"{env_var} must be one of: {', '.join(sorted(allowed))}.")
    return value


def normalize_log_format(value: str, *, env_var: str = "PUBLISHER_LOG_FORMAT") -> str:
    return _pick(value.strip().lower(), ALLOWED_LOG_FORMATS, env_var)


def normalize_log_level(value: str | None, *, env_var: str) -> str | None:
    if value is None:
        return None
    return _pick(value.strip().upper(), ALLOWED_LOG_LEVELS, env_var)


class DatabaseSettingsMixin:
    """Connection and pool options read by every process that opens the database."""

    database_url: str = Field(default=DEFAULT_DATABASE_URL, description="SQLite or Postgres URL.")
    database_echo: bool = False
    database_pool_size: int = Field(5, ge=1)
    database_max_overflow: int = Field(10, ge=0)
    database_pool_timeout: int = Field(30, gt=0)
    database_pool_recycle: int = Field(1800, ge=0)
    database_connect_timeout_seconds: int | None = Field(default=10, ge=0)
    database_statement_timeout_ms: int | None = Field(default=5_000, ge=0)
    database_auto_create: bool = False

    @field_validator("database_url", mode="before")
    @classmethod
    def _check_backend(cls, value: object) -> object:
        if value is None:
            return DEFAULT_DATABASE_URL
        url = str(value).strip()
        scheme = url.partition(":")[0].partition("+")[0].lower()
        if scheme not in _BACKEND_ALIASES:
            raise ValueError("PUBLISHER_DATABASE_URL must be a sqlite:// or postgresql:// URL.")
        return url


class DatabaseSettingsProtocol(Protocol):
    database_url: str
    database_echo: bool
    database_pool_size: int
    database_max_overflow: int
    database_pool_timeout: int
    database_pool_recycle: int
    database_connect_timeout_seconds: int | None
    database_statement_timeout_ms: int | None
    database_auto_create: bool


__all__ = [
    "ALLOWED_LOG_FORMATS",
    "ALLOWED_LOG_LEVELS",
    "DEFAULT_DATABASE_URL",
    "DatabaseSettingsMixin",
    "DatabaseSettingsProtocol",
    "create_settings_accessors",
    "normalize_log_format",
    "normalize_log_level",
    "publisher_settings_config",
]
