"""Database-only settings for schema creation and DB tooling."""

from __future__ import annotations

from pydantic_settings import BaseSettings

from publisher_common.settings import (
    DatabaseSettingsMixin,
    DatabaseSettingsProtocol,
    create_settings_accessors,
    publisher_settings_config,
)

DatabaseSettings = DatabaseSettingsProtocol


class Settings(DatabaseSettingsMixin, BaseSettings):
    """Settings required for the database engine and schema tooling."""

    model_config = publisher_settings_config()


get_settings, reload_settings = create_settings_accessors(Settings)


__all__ = ["DatabaseSettings", "Settings", "get_settings", "reload_settings"]
