"""Services package."""

from genui_expenses.services.audio import (
    AudioFormat,
    PlaybackQueue,
    pcm_to_wav,
)
from genui_expenses.services.background import (
    BackgroundGenerationError,
    BackgroundService,
)
from genui_expenses.services.storage import (
    AuditStorageInterface,
    InMemoryAuditStorage,
    StorageError,
)

__all__ = [
    # Audio
    "AudioFormat",
    "PlaybackQueue",
    "pcm_to_wav",
    # Background
    "BackgroundGenerationError",
    "BackgroundService",
    # Storage
    "AuditStorageInterface",
    "InMemoryAuditStorage",
    "StorageError",
]
