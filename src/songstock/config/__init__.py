"""Configuration module for SongStock."""

from .settings import (
    ApiSettings,
    AuthSettings,
    DatabaseSettings,
    ObservabilitySettings,
    Settings,
    get_settings,
)

__all__ = [
    "ApiSettings",
    "AuthSettings",
    "DatabaseSettings",
    "ObservabilitySettings",
    "Settings",
    "get_settings",
]
