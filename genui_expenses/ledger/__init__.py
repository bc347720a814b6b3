"""Expense ledger package."""

from genui_expenses.ledger.colors import (
    DEFAULT_CATEGORY_COLORS,
    FALLBACK_COLOR,
    NAMED_COLORS,
    color_to_hex,
    resolve_color,
)
from genui_expenses.ledger.service import (
    DEFAULT_DEDUPE_WINDOW,
    ExpenseLedger,
    MonotonicIdFactory,
    normalize_title,
    round_to_cents,
)

__all__ = [
    "DEFAULT_CATEGORY_COLORS",
    "DEFAULT_DEDUPE_WINDOW",
    "ExpenseLedger",
    "FALLBACK_COLOR",
    "MonotonicIdFactory",
    "NAMED_COLORS",
    "color_to_hex",
    "normalize_title",
    "resolve_color",
    "round_to_cents",
]
