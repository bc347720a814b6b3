"""Configuration package."""

from genui_expenses.config.settings import (
    AppSettings,
    AudioSettings,
    GeminiSettings,
    LedgerSettings,
    Settings,
    SurfaceSettings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "AudioSettings",
    "GeminiSettings",
    "LedgerSettings",
    "Settings",
    "SurfaceSettings",
    "get_settings",
    "validate_all_settings",
]
