"""
Core Data Models for the Expense Ledger

These models define the shapes that flow between the ledger, the tool
boundary and the widget catalog.

DESIGN DECISION: Ledger records are frozen. A color update produces a new
Category that replaces the old one at the same position, so a record a
caller already holds never changes underneath it.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


# =============================================================================
# COLOR
# =============================================================================

class Color(BaseModel):
    """
    A 32-bit ARGB color.

    The byte order is alpha-red-green-blue, so 0xFF4CAF50 is an opaque green.
    """
    model_config = ConfigDict(frozen=True)

    value: int = Field(
        ...,
        ge=0,
        le=0xFFFFFFFF,
        description="ARGB value"
    )

    @property
    def alpha(self) -> int:
        return (self.value >> 24) & 0xFF

    @property
    def red(self) -> int:
        return (self.value >> 16) & 0xFF

    @property
    def green(self) -> int:
        return (self.value >> 8) & 0xFF

    @property
    def blue(self) -> int:
        return self.value & 0xFF

    def to_hex(self) -> str:
        """Serialize as "#RRGGBB" (uppercase, alpha dropped)."""
        return f"#{self.value & 0xFFFFFF:06X}"

    def __str__(self) -> str:
        return self.to_hex()


# =============================================================================
# LEDGER RECORDS
# =============================================================================

class Category(BaseModel):
    """
    An expense category.

    Names are not unique at the storage level; the ledger enforces
    one category per case-insensitive name when creating.
    """
    model_config = ConfigDict(frozen=True)

    id: str = Field(
        ...,
        min_length=1,
        description="Opaque unique identifier"
    )
    name: str = Field(
        ...,
        description="Free-form category name"
    )
    color: Color


class Expense(BaseModel):
    """
    A single expense.

    CRITICAL: category_id is NOT checked against existing categories.
    The agent is expected to create the category first, and an expense
    pointing at an unknown category is kept as-is.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: str = Field(
        ...,
        min_length=1,
        description="Opaque unique identifier"
    )
    title: str = Field(
        ...,
        description="What the money was spent on"
    )
    amount: Annotated[
        Decimal,
        Field(ge=0, description="Amount spent")
    ]
    category_id: str = Field(
        ...,
        description="ID of the category this expense belongs to"
    )
    date: datetime = Field(
        default_factory=utc_now,
        description="When the expense was recorded"
    )


# =============================================================================
# SNAPSHOTS (serialized ledger views)
# =============================================================================

class ExpenseSnapshot(BaseModel):
    """Expense as the model sees it in tool responses."""

    id: str
    title: str
    amount: float
    date: str = Field(
        ...,
        description="ISO 8601 timestamp"
    )

    @classmethod
    def from_expense(cls, expense: Expense) -> "ExpenseSnapshot":
        return cls(
            id=expense.id,
            title=expense.title,
            amount=float(expense.amount),
            date=expense.date.isoformat(),
        )


class CategorySnapshot(BaseModel):
    """Category with all of its expenses, as the model sees it."""

    id: str
    name: str
    color: str = Field(
        ...,
        pattern=r"^#[0-9A-F]{6}$",
        description="Hex color, #RRGGBB"
    )
    expenses: list[ExpenseSnapshot] = Field(default_factory=list)


class LedgerSnapshot(BaseModel):
    """The whole ledger: every category with its expenses plus the grand total."""

    categories: list[CategorySnapshot] = Field(default_factory=list)
    total: float = 0.0


class CategoryTotal(BaseModel):
    """Aggregate spending for one category."""

    category_id: str
    name: str
    color: Color
    total: Decimal
    expense_count: int = Field(ge=0)
