"""Background image generation."""

from genui_expenses.services.background.service import (
    BackgroundGenerationError,
    BackgroundService,
    extract_image,
    verify_image,
)

__all__ = [
    "BackgroundGenerationError",
    "BackgroundService",
    "extract_image",
    "verify_image",
]
