"""
Expense Ledger

The in-memory store of categories and expenses that the agent's tool
calls operate on.

CRITICAL: The ledger is FAIL-SOFT. Its only caller is an autonomous
model that cannot handle exceptions mid-conversation, so:
- unknown ids are silently ignored
- malformed colors resolve to grey
- creating an existing category returns the existing one
- repeating an expense inside the dedupe window returns the first one

DESIGN DECISION: Duplicate suppression exists because the model
sometimes issues the same addExpense call several times for a single
utterance. The key is (normalized title, amount in cents, category id).
"""

import time
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Callable, Optional, Union

import structlog

from genui_expenses.ledger.colors import color_to_hex, resolve_color
from genui_expenses.models.ledger import (
    Category,
    CategorySnapshot,
    CategoryTotal,
    Expense,
    ExpenseSnapshot,
    LedgerSnapshot,
    utc_now,
)
from genui_expenses.notifier import ChangeNotifier


Amount = Union[Decimal, float, int, str]
DedupeKey = tuple[str, Decimal, str]

DEFAULT_DEDUPE_WINDOW = timedelta(seconds=30)

_CENTS = Decimal("0.01")


class MonotonicIdFactory:
    """
    Issues ids from the wall clock in milliseconds.

    Two ids requested within the same millisecond would collide, so
    every id is forced to be strictly greater than the previous one.
    """

    def __init__(self, clock_ms: Callable[[], int] = lambda: time.time_ns() // 1_000_000):
        self._clock_ms = clock_ms
        self._last = 0

    def __call__(self) -> str:
        candidate = self._clock_ms()
        if candidate <= self._last:
            candidate = self._last + 1
        self._last = candidate
        return str(candidate)


def normalize_title(title: str) -> str:
    """Lowercase and collapse whitespace."""
    return " ".join(title.split()).lower()


def round_to_cents(amount: Amount) -> Decimal:
    value = to_decimal(amount)
    try:
        return value.quantize(_CENTS, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        # More digits than the decimal context holds; compare unrounded
        return value


def to_decimal(amount: Amount) -> Decimal:
    if isinstance(amount, Decimal):
        return amount
    # str() first so 0.1 stays 0.1 instead of its binary expansion
    return Decimal(str(amount))


class ExpenseLedger(ChangeNotifier):
    """
    Owns categories and expenses.

    All operations are synchronous and are expected to be called from a
    single thread of control; tool calls arrive one at a time.
    """

    def __init__(
        self,
        dedupe_window: timedelta = DEFAULT_DEDUPE_WINDOW,
        clock: Callable[[], datetime] = utc_now,
        id_factory: Optional[Callable[[], str]] = None,
    ):
        super().__init__()
        self._categories: list[Category] = []
        self._expenses: list[Expense] = []
        # dedupe key -> (time of insertion, expense id)
        self._recent_additions: dict[DedupeKey, tuple[datetime, str]] = {}
        self._dedupe_window = dedupe_window
        self._clock = clock
        self._next_id = id_factory or MonotonicIdFactory()
        self._logger = structlog.get_logger(__name__)

    # -------------------------------------------------------------------------
    # Read access
    # -------------------------------------------------------------------------

    @property
    def categories(self) -> tuple[Category, ...]:
        return tuple(self._categories)

    @property
    def expenses(self) -> tuple[Expense, ...]:
        return tuple(self._expenses)

    @property
    def dedupe_window(self) -> timedelta:
        return self._dedupe_window

    def get_category(self, category_id: str) -> Optional[Category]:
        for category in self._categories:
            if category.id == category_id:
                return category
        return None

    def get_expense(self, expense_id: str) -> Optional[Expense]:
        for expense in self._expenses:
            if expense.id == expense_id:
                return expense
        return None

    def expenses_for_category(self, category_id: str) -> list[Expense]:
        return [e for e in self._expenses if e.category_id == category_id]

    # -------------------------------------------------------------------------
    # Categories
    # -------------------------------------------------------------------------

    def find_category_by_name(self, name: str) -> Optional[Category]:
        """Case-insensitive exact match. Returns the first match or None."""
        wanted = name.lower()
        for category in self._categories:
            if category.name.lower() == wanted:
                return category
        return None

    def add_category(self, name: str, color_string: str) -> Category:
        """
        Create a category, or return the existing one with the same name.

        When a category already exists its color is left untouched; the
        color argument of the repeated call is ignored.
        """
        existing = self.find_category_by_name(name)
        if existing is not None:
            self._logger.info(
                "category_reused",
                category_id=existing.id,
                name=existing.name,
            )
            return existing

        category = Category(
            id=self._next_id(),
            name=name,
            color=resolve_color(color_string),
        )
        self._categories.append(category)
        self._logger.info(
            "category_added",
            category_id=category.id,
            name=category.name,
            color=color_to_hex(category.color),
        )
        self.notify_listeners()
        return category

    def update_category_color(self, category_id: str, color_string: str) -> None:
        """Replace a category's color. Unknown ids are ignored."""
        for index, category in enumerate(self._categories):
            if category.id == category_id:
                updated = category.model_copy(
                    update={"color": resolve_color(color_string)}
                )
                self._categories[index] = updated
                self._logger.info(
                    "category_color_updated",
                    category_id=category_id,
                    color=color_to_hex(updated.color),
                )
                self.notify_listeners()
                return

        self._logger.warning("category_color_update_ignored", category_id=category_id)

    # -------------------------------------------------------------------------
    # Expenses
    # -------------------------------------------------------------------------

    def add_expense(self, title: str, amount: Amount, category_id: str) -> Expense:
        """
        Add an expense, unless the same one was just added.

        Returns the earlier expense unchanged when an expense with the same
        dedupe key was added less than `dedupe_window` ago.
        """
        now = self._clock()
        key = self._dedupe_key(title, amount, category_id)
        self._prune_recent_additions(now)

        duplicate = self._find_recent_duplicate(key, now)
        if duplicate is not None:
            self._logger.warning(
                "expense_duplicate_suppressed",
                expense_id=duplicate.id,
                title=duplicate.title,
                amount=str(duplicate.amount),
                category_id=category_id,
            )
            return duplicate

        expense = Expense(
            id=self._next_id(),
            title=title.strip(),
            amount=to_decimal(amount),
            category_id=category_id,
            date=now,
        )
        self._expenses.append(expense)
        self._recent_additions[key] = (now, expense.id)
        self._logger.info(
            "expense_added",
            expense_id=expense.id,
            title=expense.title,
            amount=str(expense.amount),
            category_id=category_id,
        )
        self.notify_listeners()
        return expense

    def remove_expense(self, expense_id: str) -> None:
        """Remove by id. Listeners are notified only if something was removed."""
        before = len(self._expenses)
        self._expenses = [e for e in self._expenses if e.id != expense_id]
        if len(self._expenses) == before:
            return

        self._logger.info("expense_removed", expense_id=expense_id)
        self.notify_listeners()

    def clear_dedupe_cache(self) -> None:
        """Forget recent insertions. Stored expenses still guard against repeats."""
        self._recent_additions.clear()

    # -------------------------------------------------------------------------
    # Aggregates
    # -------------------------------------------------------------------------

    @property
    def total_expenses(self) -> Decimal:
        return sum((e.amount for e in self._expenses), Decimal("0"))

    def total_for_category(self, category_id: str) -> Decimal:
        return sum(
            (e.amount for e in self._expenses if e.category_id == category_id),
            Decimal("0"),
        )

    def category_totals(self) -> list[CategoryTotal]:
        """One entry per category, in category order."""
        return [
            CategoryTotal(
                category_id=category.id,
                name=category.name,
                color=category.color,
                total=self.total_for_category(category.id),
                expense_count=len(self.expenses_for_category(category.id)),
            )
            for category in self._categories
        ]

    def snapshot(self) -> LedgerSnapshot:
        """
        Every category with its expenses plus the grand total.

        Expenses whose category does not exist are counted in the total
        but do not appear under any category.
        """
        return LedgerSnapshot(
            categories=[
                CategorySnapshot(
                    id=category.id,
                    name=category.name,
                    color=color_to_hex(category.color),
                    expenses=[
                        ExpenseSnapshot.from_expense(e)
                        for e in self.expenses_for_category(category.id)
                    ],
                )
                for category in self._categories
            ],
            total=float(self.total_expenses),
        )

    # -------------------------------------------------------------------------
    # Dedupe helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def _dedupe_key(title: str, amount: Amount, category_id: str) -> DedupeKey:
        return (normalize_title(title), round_to_cents(amount), category_id)

    def _within_window(self, then: datetime, now: datetime) -> bool:
        return abs(now - then) < self._dedupe_window

    def _prune_recent_additions(self, now: datetime) -> None:
        expired = [
            key for key, (added_at, _) in self._recent_additions.items()
            if not self._within_window(added_at, now)
        ]
        for key in expired:
            del self._recent_additions[key]

    def _find_recent_duplicate(self, key: DedupeKey, now: datetime) -> Optional[Expense]:
        cached = self._recent_additions.get(key)
        if cached is not None:
            added_at, expense_id = cached
            existing = self.get_expense(expense_id)
            if existing is not None and self._within_window(added_at, now):
                return existing

        # The cache may have been cleared while the expense is still recent
        for expense in reversed(self._expenses):
            if (
                self._dedupe_key(expense.title, expense.amount, expense.category_id) == key
                and self._within_window(expense.date, now)
            ):
                return expense
        return None
