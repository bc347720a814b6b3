"""
Abstract Storage Interface

DESIGN DECISION: Audit persistence sits behind an abstract interface.
This allows us to:
1. Keep the audit trail in memory for the running session
2. Swap in a durable backend later without touching the audit logger
3. Use a deliberately failing storage in tests

Audit logs are append-only - the interface has no update or delete.
"""

from abc import ABC, abstractmethod
from uuid import UUID

from genui_expenses.models.audit import AuditEvent


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Any storage implementation must implement these methods.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Args:
            event: The audit event to log

        Returns:
            True if logged successfully

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (e.g., one user message).

        Returns:
            List of related events in chronological order
        """
        pass

    @abstractmethod
    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        """
        Get all events for a specific entity.

        Args:
            entity_type: Type of entity (e.g., 'expense', 'surface')
            entity_id: The entity's ID

        Returns:
            List of events in chronological order
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass
