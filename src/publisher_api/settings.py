"""Publisher API settings (Pydantic v2 + pydantic-settings)."""

from __future__ import annotations

import json
from typing import Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings

from publisher_common.settings import (
    DatabaseSettingsMixin,
    create_settings_accessors,
    normalize_log_format,
    normalize_log_level,
    publisher_settings_config,
)

# ---- Defaults ---------------------------------------------------------------

DEFAULT_PRINCIPAL_HEADER = "X-Authenticated-User"
DEFAULT_DEV_EXTERNAL_ID = "debug@admin"
DEFAULT_DEV_ACCOUNT_TYPE = "dev-login"

AuthzMode = Literal["graph", "allow_all", "fixed_principal"]

# Optional per-logger level overrides.
_OPTIONAL_LOG_LEVELS = (
    "api_log_level",
    "request_log_level",
    "access_log_level",
    "database_log_level",
)


# ---- Settings ---------------------------------------------------------------


class Settings(DatabaseSettingsMixin, BaseSettings):
    """FastAPI settings loaded from PUBLISHER_* environment variables."""

    model_config = publisher_settings_config(enable_decoding=False, populate_by_name=True)

    # Core
    app_name: str = "Publisher Service API"
    app_version: str = "unknown"
    environment: Literal["development", "test", "production"] = "development"
    log_format: str = "console"
    log_level: str = "INFO"
    api_log_level: str | None = None
    request_log_level: str | None = None
    access_log_enabled: bool = True
    access_log_level: str | None = None

    # Server
    api_host: str = "127.0.0.1"
    api_port: int = Field(8001, ge=1, le=65535)
    server_cors_origins: list[str] = Field(default_factory=list)

    # Database
    database_log_level: str | None = None

    # Authorization
    authz_mode: AuthzMode = "graph"
    auth_principal_header: str = DEFAULT_PRINCIPAL_HEADER
    auth_disabled_user_external_id: str = DEFAULT_DEV_EXTERNAL_ID
    auth_disabled_user_account_type: str = DEFAULT_DEV_ACCOUNT_TYPE

    # ---- Validators ----

    @field_validator("server_cors_origins", mode="before")
    @classmethod
    def _split_origins(cls, value: object) -> object:
        """Accept a JSON list or a comma separated string from the environment."""

        if isinstance(value, tuple):
            return list(value)
        if not isinstance(value, str):
            return value
        text = value.strip()
        if text.startswith("["):
            try:
                return list(json.loads(text))
            except (json.JSONDecodeError, TypeError):
                pass
        return [origin.strip() for origin in text.split(",") if origin.strip()]

    @field_validator("authz_mode", mode="before")
    @classmethod
    def _normalize_authz_mode(cls, value: object) -> object:
        if value is None:
            return "graph"
        return str(value).strip().lower().replace("-", "_")

    @field_validator("auth_principal_header", mode="before")
    @classmethod
    def _normalize_principal_header(cls, value: object) -> object:
        if value is None:
            return DEFAULT_PRINCIPAL_HEADER
        header = str(value).strip()
        if not header:
            raise ValueError("PUBLISHER_AUTH_PRINCIPAL_HEADER must not be empty.")
        return header

    @model_validator(mode="after")
    def _finalize(self) -> Settings:
        self.log_format = normalize_log_format(self.log_format)
        level = normalize_log_level(self.log_level, env_var="PUBLISHER_LOG_LEVEL")
        if level is None:
            raise ValueError("PUBLISHER_LOG_LEVEL must not be empty.")
        self.log_level = level
        for field_name in _OPTIONAL_LOG_LEVELS:
            setattr(
                self,
                field_name,
                normalize_log_level(
                    getattr(self, field_name), env_var=f"PUBLISHER_{field_name.upper()}"
                ),
            )

        if self.environment == "production" and self.authz_mode != "graph":
            raise ValueError(
                "PUBLISHER_AUTHZ_MODE must be 'graph' when PUBLISHER_ENVIRONMENT=production."
            )
        return self

    # ---- Convenience ----

    @property
    def effective_api_log_level(self) -> str:
        return self.api_log_level or self.log_level

    @property
    def effective_request_log_level(self) -> str:
        return self.request_log_level or self.effective_api_log_level

    @property
    def effective_access_log_level(self) -> str:
        return self.access_log_level or self.effective_api_log_level

    @property
    def auth_bypassed(self) -> bool:
        return self.authz_mode != "graph"


get_settings, reload_settings = create_settings_accessors(Settings)


__all__ = [
    "AuthzMode",
    "DEFAULT_DEV_ACCOUNT_TYPE",
    "DEFAULT_DEV_EXTERNAL_ID",
    "DEFAULT_PRINCIPAL_HEADER",
    "Settings",
    "get_settings",
    "reload_settings",
]
