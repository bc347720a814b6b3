"""GenUI package: widget catalog and the surface protocol host."""

from genui_expenses.genui.catalog import (
    BackgroundImageData,
    Catalog,
    CatalogError,
    CatalogItem,
    CategoriesContainerData,
    CategoryColumnData,
    ChartWidgetData,
    ComponentData,
    ConfirmationDialogData,
    ExpenseCardData,
    GENERATED_IMAGE_MARKER,
    GenUIError,
    TotalWidgetData,
    create_catalog,
)
from genui_expenses.genui.host import (
    RenderedSurface,
    SurfaceEvent,
    SurfaceEventType,
    SurfaceHost,
    SurfaceProtocolError,
)

__all__ = [
    # Catalog
    "BackgroundImageData",
    "Catalog",
    "CatalogError",
    "CatalogItem",
    "CategoriesContainerData",
    "CategoryColumnData",
    "ChartWidgetData",
    "ComponentData",
    "ConfirmationDialogData",
    "ExpenseCardData",
    "GENERATED_IMAGE_MARKER",
    "GenUIError",
    "TotalWidgetData",
    "create_catalog",
    # Host
    "RenderedSurface",
    "SurfaceEvent",
    "SurfaceEventType",
    "SurfaceHost",
    "SurfaceProtocolError",
]
