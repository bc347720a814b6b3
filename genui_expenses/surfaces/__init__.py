"""Surfaces package: the slot registry and the relay that feeds it."""

from genui_expenses.surfaces.registry import (
    DEFAULT_DIALOG_DEBOUNCE_SECONDS,
    SurfaceRegistry,
    SurfaceSlot,
)
from genui_expenses.surfaces.handler import (
    CATEGORY_SURFACE_PREFIX,
    SurfaceEventHandler,
    slot_for_surface,
)

__all__ = [
    "CATEGORY_SURFACE_PREFIX",
    "DEFAULT_DIALOG_DEBOUNCE_SECONDS",
    "SurfaceEventHandler",
    "SurfaceRegistry",
    "SurfaceSlot",
    "slot_for_surface",
]
