"""Audit logging package."""

from genui_expenses.audit.logger import (
    AuditLogger,
    configure_logging,
    create_correlation_id,
)

__all__ = ["AuditLogger", "configure_logging", "create_correlation_id"]
