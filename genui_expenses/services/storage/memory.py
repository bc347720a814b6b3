"""
In-memory audit storage.

Keeps the most recent events for the lifetime of the process. Nothing is
persisted across runs.
"""

from collections import deque
from uuid import UUID

from genui_expenses.models.audit import AuditEvent
from genui_expenses.services.storage.interface import (
    AuditStorageInterface,
    StorageError,
)


class InMemoryAuditStorage(AuditStorageInterface):
    """Bounded append-only event log. The oldest events fall off first."""

    def __init__(self, max_events: int = 1000):
        if max_events <= 0:
            raise StorageError("max_events must be positive")
        self._events: deque[AuditEvent] = deque(maxlen=max_events)

    def __len__(self) -> int:
        return len(self._events)

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        return [e for e in self._events if e.correlation_id == correlation_id]

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        return [
            e for e in self._events
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        return list(reversed(self._events))[:limit]
