"""
Audit Logger

DESIGN DECISION: Every tool call the model makes is logged, together with
what it changed. This provides:
1. A trace of what the agent did for each user message
2. Evidence of suppressed duplicates and rejected UI descriptions
3. A history the front end can show next to the chat

The audit logger:
- Is async so it fits the agent's tool loop
- Gracefully handles failures (never crashes a turn if logging fails)
- Supports correlation IDs to tie every tool call to its user message
"""

import logging
from typing import Optional
from uuid import UUID, uuid4

import structlog

from genui_expenses.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from genui_expenses.services.storage import AuditStorageInterface


def configure_logging(debug: bool = False) -> None:
    """Route structlog through stdlib logging and render JSON lines."""
    logging.basicConfig(
        format="%(message)s",
        level=logging.DEBUG if debug else logging.INFO,
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


configure_logging()


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage (for the in-app history), when one is configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger(__name__)

    @property
    def storage(self) -> Optional[AuditStorageInterface]:
        return self._storage

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity is AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        elif event.severity is AuditSeverity.DEBUG:
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def recent_events(self, limit: int = 50) -> list[AuditEvent]:
        """Newest first. Empty when no storage is configured."""
        if not self._storage:
            return []
        return await self._storage.get_recent_events(limit=limit)

    async def log_tool_called(
        self,
        tool_name: str,
        arguments: dict,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.tool_called(
            tool_name=tool_name,
            arguments=arguments,
            correlation_id=correlation_id,
        ))

    async def log_tool_rejected(
        self,
        tool_name: str,
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.tool_rejected(
            tool_name=tool_name,
            reason=reason,
            correlation_id=correlation_id,
        ))

    async def log_message_received(
        self,
        text: str,
        correlation_id: UUID,
    ) -> None:
        """Log an incoming user message."""
        await self.log(AuditEventBuilder.message_received(
            text=text,
            correlation_id=correlation_id,
        ))

    async def log_response_generated(
        self,
        tool_calls: list[str],
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.response_generated(
            tool_calls=tool_calls,
            correlation_id=correlation_id,
        ))

    async def log_dialog_answered(
        self,
        answer: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.dialog_answered(
            answer=answer,
            correlation_id=correlation_id,
        ))

    async def log_external_service_error(
        self,
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log external service error."""
        await self.log(AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this when a user message arrives. Pass it through every tool
    call made while answering it.
    """
    return uuid4()
