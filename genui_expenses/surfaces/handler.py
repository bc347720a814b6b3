"""
Surface Event Handler

Relays surface lifecycle events from the host into the registry.

Surface ids map to slots as follows:
- background / chart / total -> the slot of the same name
- dialog                     -> the dialog slot (debounced)
- categories                 -> the default category sub-slot
- categories_<key>           -> a category sub-slot keyed by the surface id
"""

from typing import Optional

import structlog

from genui_expenses.genui.host import SurfaceEvent, SurfaceEventType
from genui_expenses.surfaces.registry import SurfaceRegistry, SurfaceSlot


CATEGORY_SURFACE_PREFIX = f"{SurfaceSlot.CATEGORIES.value}_"


def slot_for_surface(surface_id: str) -> Optional[SurfaceSlot]:
    """The registry slot a surface id renders into, or None if unknown."""
    if surface_id.startswith(CATEGORY_SURFACE_PREFIX):
        return SurfaceSlot.CATEGORIES
    try:
        return SurfaceSlot(surface_id)
    except ValueError:
        return None


class SurfaceEventHandler:
    """Turns SurfaceAdded / SurfaceUpdated / SurfaceRemoved into registry writes."""

    def __init__(self, registry: SurfaceRegistry):
        self._registry = registry
        self._logger = structlog.get_logger(__name__)

    def __call__(self, event: SurfaceEvent) -> None:
        self.handle(event)

    def handle(self, event: SurfaceEvent) -> None:
        slot = slot_for_surface(event.surface_id)
        if slot is None:
            self._logger.warning("unknown_surface_ignored", surface_id=event.surface_id)
            return

        if slot is SurfaceSlot.CATEGORIES:
            self._handle_categories(event)
        elif slot is SurfaceSlot.DIALOG:
            self._handle_dialog(event)
        elif event.event_type is SurfaceEventType.REMOVED:
            self._registry.set(slot, None)
        else:
            self._registry.set(slot, event.surface)

    def _handle_categories(self, event: SurfaceEvent) -> None:
        sub_id = event.surface_id

        if event.event_type is SurfaceEventType.REMOVED:
            self._registry.clear_category_slot(sub_id)
            return

        # A freshly added container on the main surface carries every
        # category, so anything left over from earlier renders is stale
        if (
            event.event_type is SurfaceEventType.ADDED
            and sub_id == SurfaceSlot.CATEGORIES.value
        ):
            self._registry.replace_category_slots(sub_id, event.surface)
            return

        self._registry.set_category_slot(sub_id, event.surface)

    def _handle_dialog(self, event: SurfaceEvent) -> None:
        if event.event_type is SurfaceEventType.REMOVED:
            self._registry.clear_dialog()
            return

        if not self._registry.set_dialog(event.surface):
            self._logger.info("dialog_render_dropped", surface_id=event.surface_id)
