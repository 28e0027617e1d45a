"""Configuration module for MuShee."""

from .settings import (
    AuthSettings,
    DatabaseSettings,
    ObservabilitySettings,
    Settings,
    StorageSettings,
    UploadSettings,
    get_settings,
)

__all__ = [
    "AuthSettings",
    "DatabaseSettings",
    "ObservabilitySettings",
    "Settings",
    "StorageSettings",
    "UploadSettings",
    "get_settings",
]
