"""Audit storage backends."""

from genui_expenses.services.storage.interface import (
    AuditStorageInterface,
    StorageError,
)
from genui_expenses.services.storage.memory import InMemoryAuditStorage

__all__ = [
    "AuditStorageInterface",
    "InMemoryAuditStorage",
    "StorageError",
]
