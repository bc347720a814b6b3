"""
Surface Registry

Holds what is currently shown in each named region of the screen.
The model refers to these regions by id when it describes UI.

DESIGN DECISION: Last write wins per slot, with no queuing. The front end
always shows the most recent intended state. The one exception is the
dialog slot: while a dialog is showing, a new dialog arriving within the
debounce interval is dropped, because the model tends to emit several
near-identical confirmation dialogs during rapid tool-call sequences.
"""

import time
from enum import Enum
from typing import Any, Callable, Optional

import structlog

from genui_expenses.notifier import ChangeNotifier


class SurfaceSlot(str, Enum):
    """The fixed set of surface ids the model may target."""
    BACKGROUND = "background"
    CHART = "chart"
    TOTAL = "total"
    CATEGORIES = "categories"
    DIALOG = "dialog"


DEFAULT_DIALOG_DEBOUNCE_SECONDS = 0.5


class SurfaceRegistry(ChangeNotifier):
    """
    Named-slot store with change notifications.

    Background, chart, total and dialog hold one value each. Categories
    hold one value per sub-slot id, so several category displays can be
    shown at the same time without overwriting each other.
    """

    def __init__(
        self,
        dialog_debounce_seconds: float = DEFAULT_DIALOG_DEBOUNCE_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        super().__init__()
        self._single_slots: dict[SurfaceSlot, Optional[Any]] = {
            SurfaceSlot.BACKGROUND: None,
            SurfaceSlot.CHART: None,
            SurfaceSlot.TOTAL: None,
        }
        self._category_slots: dict[str, Any] = {}
        self._dialog: Optional[Any] = None
        self._last_dialog_update: Optional[float] = None
        self._dialog_debounce = dialog_debounce_seconds
        self._clock = clock
        self._logger = structlog.get_logger(__name__)

    # -------------------------------------------------------------------------
    # Read access
    # -------------------------------------------------------------------------

    @property
    def background(self) -> Optional[Any]:
        return self._single_slots[SurfaceSlot.BACKGROUND]

    @property
    def chart(self) -> Optional[Any]:
        return self._single_slots[SurfaceSlot.CHART]

    @property
    def total(self) -> Optional[Any]:
        return self._single_slots[SurfaceSlot.TOTAL]

    @property
    def category_slots(self) -> dict[str, Any]:
        return dict(self._category_slots)

    @property
    def dialog(self) -> Optional[Any]:
        return self._dialog

    @property
    def is_dialog_showing(self) -> bool:
        return self._dialog is not None

    def get(self, slot: SurfaceSlot) -> Optional[Any]:
        """Current content of a slot. For categories, the sub-slot map."""
        slot = SurfaceSlot(slot)
        if slot is SurfaceSlot.CATEGORIES:
            return self.category_slots
        if slot is SurfaceSlot.DIALOG:
            return self._dialog
        return self._single_slots[slot]

    # -------------------------------------------------------------------------
    # Single-value slots
    # -------------------------------------------------------------------------

    def set(self, slot: SurfaceSlot, content: Optional[Any]) -> None:
        """
        Overwrite a slot and notify.

        The categories slot is written to its default sub-slot and the
        dialog slot goes through the debounce guard.
        """
        slot = SurfaceSlot(slot)
        if slot is SurfaceSlot.CATEGORIES:
            if content is None:
                self.clear_category_slot(SurfaceSlot.CATEGORIES.value)
            else:
                self.set_category_slot(SurfaceSlot.CATEGORIES.value, content)
            return
        if slot is SurfaceSlot.DIALOG:
            self.set_dialog(content)
            return

        self._single_slots[slot] = content
        self.notify_listeners()

    # -------------------------------------------------------------------------
    # Category sub-slots
    # -------------------------------------------------------------------------

    def set_category_slot(self, sub_id: str, content: Any) -> None:
        self._category_slots[sub_id] = content
        self.notify_listeners()

    def clear_category_slot(self, sub_id: str) -> None:
        self._category_slots.pop(sub_id, None)
        self.notify_listeners()

    def clear_all_category_slots(self) -> None:
        self._category_slots.clear()
        self.notify_listeners()

    def replace_category_slots(self, sub_id: str, content: Any) -> None:
        """Drop every sub-slot and set one, with a single notification."""
        self._category_slots = {sub_id: content}
        self.notify_listeners()

    # -------------------------------------------------------------------------
    # Dialog
    # -------------------------------------------------------------------------

    def set_dialog(self, content: Optional[Any]) -> bool:
        """
        Show a dialog, subject to the debounce guard.

        Returns False (and notifies nobody) when the update was dropped.
        """
        now = self._clock()
        if (
            self._dialog is not None
            and content is not None
            and self._last_dialog_update is not None
            and now - self._last_dialog_update < self._dialog_debounce
        ):
            self._logger.info(
                "dialog_update_debounced",
                elapsed_ms=round((now - self._last_dialog_update) * 1000),
            )
            return False

        self._dialog = content
        self._last_dialog_update = now
        self.notify_listeners()
        return True

    def clear_dialog(self) -> None:
        """Remove the dialog. The next dialog is not subject to stale timing."""
        self._dialog = None
        self._last_dialog_update = None
        self.notify_listeners()

    # -------------------------------------------------------------------------
    # Everything
    # -------------------------------------------------------------------------

    def clear_all(self) -> None:
        """Empty every slot with a single notification."""
        for slot in self._single_slots:
            self._single_slots[slot] = None
        self._category_slots.clear()
        self._dialog = None
        self._last_dialog_update = None
        self.notify_listeners()
