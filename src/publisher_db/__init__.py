"""Shared database schema for publisher services."""

from .base import (
    NAMING_CONVENTION,
    Base,
    IntegerPrimaryKeyMixin,
    TimestampMixin,
    metadata,
    utc_now,
)
from .settings import Settings, get_settings, reload_settings
from .types import UTCDateTime

__all__ = [
    "Base",
    "IntegerPrimaryKeyMixin",
    "NAMING_CONVENTION",
    "Settings",
    "TimestampMixin",
    "UTCDateTime",
    "get_settings",
    "metadata",
    "reload_settings",
    "utc_now",
]
