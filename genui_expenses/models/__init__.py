"""
Data Models Package

This package contains all Pydantic models used in the GenUI Expense Tracker.
All data crossing a component seam must conform to these schemas.
"""

from genui_expenses.models.ledger import (
    Category,
    CategorySnapshot,
    CategoryTotal,
    Color,
    Expense,
    ExpenseSnapshot,
    LedgerSnapshot,
    utc_now,
)
from genui_expenses.models.chat import (
    AgentReply,
    BackgroundState,
    ChartDataPoint,
    ChatMessage,
    ToolInvocation,
    VoiceTurn,
)
from genui_expenses.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "Category",
    "CategorySnapshot",
    "CategoryTotal",
    "Color",
    "Expense",
    "ExpenseSnapshot",
    "LedgerSnapshot",
    "utc_now",
    # Chat models
    "AgentReply",
    "BackgroundState",
    "ChartDataPoint",
    "ChatMessage",
    "ToolInvocation",
    "VoiceTurn",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
