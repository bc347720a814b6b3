"""
Audit Models for the GenUI Expense Tracker

Every tool call the model makes, and every change it causes, is recorded.
This provides:
1. A trace of what the agent actually did for a user utterance
2. Evidence when the agent repeats itself (suppressed duplicates)
3. Debugging information when a UI description is malformed

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from genui_expenses.models.ledger import utc_now


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Ledger
    CATEGORY_ADDED = "category_added"
    CATEGORY_REUSED = "category_reused"
    CATEGORY_COLOR_UPDATED = "category_color_updated"
    EXPENSE_ADDED = "expense_added"
    EXPENSE_DUPLICATE_SUPPRESSED = "expense_duplicate_suppressed"

    # Tool boundary
    TOOL_CALLED = "tool_called"
    TOOL_REJECTED = "tool_rejected"

    # Surfaces
    SURFACE_RENDERED = "surface_rendered"
    SURFACE_REMOVED = "surface_removed"
    SURFACE_REJECTED = "surface_rejected"
    DIALOG_ANSWERED = "dialog_answered"

    # Background
    BACKGROUND_GENERATED = "background_generated"
    BACKGROUND_FALLBACK = "background_fallback"

    # Conversation
    MESSAGE_RECEIVED = "message_received"
    RESPONSE_GENERATED = "response_generated"

    # System events
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=utc_now,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'expense', 'category', 'surface')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., all tool calls for one message)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    error_code: Optional[str] = None
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered directly by the user?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.expense_added(expense_id, title, amount, category_id)
        event = AuditEventBuilder.tool_called("addExpense", args, correlation_id)
    """

    @staticmethod
    def category_added(
        category_id: str,
        name: str,
        color: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CATEGORY_ADDED,
            entity_type="category",
            entity_id=category_id,
            correlation_id=correlation_id,
            description=f"Category added: {name}",
            details={"name": name, "color": color},
        )

    @staticmethod
    def category_reused(
        category_id: str,
        name: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CATEGORY_REUSED,
            entity_type="category",
            entity_id=category_id,
            correlation_id=correlation_id,
            description=f"Existing category returned for: {name}",
            details={"name": name},
        )

    @staticmethod
    def category_color_updated(
        category_id: str,
        color: str,
        found: bool,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CATEGORY_COLOR_UPDATED,
            severity=AuditSeverity.INFO if found else AuditSeverity.WARNING,
            entity_type="category",
            entity_id=category_id,
            correlation_id=correlation_id,
            description=(
                f"Category color set to {color}"
                if found else
                "Color update ignored: unknown category"
            ),
            details={"color": color, "found": found},
        )

    @staticmethod
    def expense_added(
        expense_id: str,
        title: str,
        amount: str,
        category_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_ADDED,
            entity_type="expense",
            entity_id=expense_id,
            correlation_id=correlation_id,
            description=f"Expense added: {title} - {amount}",
            details={
                "title": title,
                "amount": amount,
                "category_id": category_id,
            },
        )

    @staticmethod
    def expense_duplicate_suppressed(
        expense_id: str,
        title: str,
        amount: str,
        category_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_DUPLICATE_SUPPRESSED,
            severity=AuditSeverity.WARNING,
            entity_type="expense",
            entity_id=expense_id,
            correlation_id=correlation_id,
            description=f"Repeated expense suppressed: {title} - {amount}",
            details={
                "title": title,
                "amount": amount,
                "category_id": category_id,
            },
        )

    @staticmethod
    def tool_called(
        tool_name: str,
        arguments: dict,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TOOL_CALLED,
            entity_type="tool",
            entity_id=tool_name,
            correlation_id=correlation_id,
            description=f"Tool called: {tool_name}",
            details={"arguments": arguments},
        )

    @staticmethod
    def tool_rejected(
        tool_name: str,
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TOOL_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="tool",
            entity_id=tool_name,
            correlation_id=correlation_id,
            description=f"Tool call rejected: {tool_name}",
            error_message=reason,
        )

    @staticmethod
    def surface_rendered(
        surface_id: str,
        root: str,
        component: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SURFACE_RENDERED,
            entity_type="surface",
            entity_id=surface_id,
            correlation_id=correlation_id,
            description=f"Surface {surface_id} rendered with {component}",
            details={"root": root, "component": component},
        )

    @staticmethod
    def surface_removed(
        surface_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SURFACE_REMOVED,
            entity_type="surface",
            entity_id=surface_id,
            correlation_id=correlation_id,
            description=f"Surface {surface_id} removed",
        )

    @staticmethod
    def surface_rejected(
        surface_id: str,
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SURFACE_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="surface",
            entity_id=surface_id,
            correlation_id=correlation_id,
            description=f"UI description for {surface_id} rejected",
            error_message=reason,
        )

    @staticmethod
    def dialog_answered(
        answer: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DIALOG_ANSWERED,
            entity_type="surface",
            entity_id="dialog",
            correlation_id=correlation_id,
            description=f"User answered dialog: {answer}",
            details={"answer": answer},
            is_user_action=True,
        )

    @staticmethod
    def background_generated(
        description: str,
        has_image: bool,
        image_size: Optional[tuple[int, int]] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=(
                AuditEventType.BACKGROUND_GENERATED
                if has_image else
                AuditEventType.BACKGROUND_FALLBACK
            ),
            severity=AuditSeverity.INFO if has_image else AuditSeverity.WARNING,
            entity_type="background",
            correlation_id=correlation_id,
            description=(
                f"Background generated: {description}"
                if has_image else
                f"Background fell back to gradient: {description}"
            ),
            details={
                "has_image": has_image,
                "image_size": list(image_size) if image_size else None,
            },
        )

    @staticmethod
    def message_received(
        text: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MESSAGE_RECEIVED,
            entity_type="message",
            correlation_id=correlation_id,
            description="User message received",
            details={"length": len(text)},
            is_user_action=True,
        )

    @staticmethod
    def response_generated(
        tool_calls: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RESPONSE_GENERATED,
            entity_type="message",
            correlation_id=correlation_id,
            description=f"Response generated after {len(tool_calls)} tool calls",
            details={"tool_calls": tool_calls},
        )

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"External service error: {service}",
            error_message=error_message,
            details={"service": service},
            correlation_id=correlation_id,
        )
