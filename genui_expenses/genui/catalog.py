"""
Widget Catalog

The set of components the model is allowed to put on a surface, with a
pydantic schema for each component's data.

DESIGN DECISION: Colors inside component data stay strings and are
resolved on demand, so a bad color from the model turns grey instead of
failing the whole component. Everything else is validated strictly; an
invalid component is rejected and the surface keeps its previous content.
"""

from typing import Literal, Optional, Type

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from genui_expenses.ledger.colors import resolve_color
from genui_expenses.models.chat import ChartDataPoint
from genui_expenses.models.ledger import Color


class GenUIError(Exception):
    """Base exception for UI description errors."""
    pass


class CatalogError(GenUIError):
    """Component is unknown or its data does not match the schema."""

    def __init__(self, component: str, message: str):
        self.component = component
        super().__init__(f"{component}: {message}")


class ComponentData(BaseModel):
    """Base for component data. Accepts the model's camelCase keys."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


# =============================================================================
# EXPENSES
# =============================================================================

class ExpenseCardData(ComponentData):
    id: str
    title: str
    amount: float = Field(ge=0)
    date: Optional[str] = Field(
        default=None,
        description="ISO 8601 date string"
    )


class CategoryColumnData(ComponentData):
    id: str
    name: str
    color: str = Field(
        ...,
        description='Hex color ("#FF5733") or named color ("purple")'
    )
    expenses: list[ExpenseCardData] = Field(default_factory=list)

    @property
    def resolved_color(self) -> Color:
        return resolve_color(self.color)

    @property
    def total(self) -> float:
        return sum(e.amount for e in self.expenses)


class CategoriesContainerData(ComponentData):
    categories: list[CategoryColumnData] = Field(default_factory=list)


# =============================================================================
# SUMMARY
# =============================================================================

class ChartPointData(ComponentData):
    label: str
    value: float
    color: str


class ChartWidgetData(ComponentData):
    chart_type: Literal["pie", "bar", "line"] = Field(alias="chartType")
    data: list[ChartPointData] = Field(default_factory=list)

    def points(self) -> list[ChartDataPoint]:
        return [
            ChartDataPoint(
                label=point.label,
                value=point.value,
                color=resolve_color(point.color),
            )
            for point in self.data
        ]


class TotalWidgetData(ComponentData):
    amount: float
    label: str = Field(
        ...,
        description='Descriptive label ("this week", "November", "all time")'
    )


# =============================================================================
# DIALOG & BACKGROUND
# =============================================================================

class ConfirmationDialogData(ComponentData):
    message: str = Field(..., min_length=1)
    confirm_label: str = Field(default="Yes", alias="confirmLabel")
    cancel_label: str = Field(default="No", alias="cancelLabel")


GENERATED_IMAGE_MARKER = "generated"


class BackgroundImageData(ComponentData):
    image_url: Optional[str] = Field(default=None, alias="imageUrl")
    description: Optional[str] = None

    @property
    def uses_generated_image(self) -> bool:
        """The model asks for the image held by the background service."""
        return self.image_url == GENERATED_IMAGE_MARKER


# =============================================================================
# CATALOG
# =============================================================================

class CatalogItem:
    """A named component and the schema of its data."""

    def __init__(self, name: str, data_model: Type[ComponentData], description: str):
        self.name = name
        self.data_model = data_model
        self.description = description

    def parse(self, data: dict) -> ComponentData:
        try:
            return self.data_model.model_validate(data)
        except ValidationError as e:
            raise CatalogError(self.name, str(e)) from e


class Catalog:
    """Lookup of catalog items by component name."""

    def __init__(self, items: list[CatalogItem]):
        self._items = {item.name: item for item in items}

    @property
    def names(self) -> list[str]:
        return list(self._items)

    def __contains__(self, name: str) -> bool:
        return name in self._items

    def parse(self, name: str, data: Optional[dict]) -> ComponentData:
        item = self._items.get(name)
        if item is None:
            raise CatalogError(name, f"unknown component (available: {', '.join(self._items)})")
        if not isinstance(data, dict):
            raise CatalogError(name, "component data must be an object")
        return item.parse(data)

    def describe(self) -> str:
        """One line per component, for the system instruction."""
        return "\n".join(f"- {item.name}: {item.description}" for item in self._items.values())


def create_catalog() -> Catalog:
    """Creates the catalog with all available components."""
    return Catalog([
        CatalogItem(
            "CategoriesContainer",
            CategoriesContainerData,
            "Kanban columns for ALL categories, each with its expenses",
        ),
        CatalogItem(
            "CategoryColumn",
            CategoryColumnData,
            "A single category column with its expenses",
        ),
        CatalogItem(
            "ExpenseCard",
            ExpenseCardData,
            "A single expense",
        ),
        CatalogItem(
            "ChartWidget",
            ChartWidgetData,
            'Pie, bar or line chart; chartType plus data points {label, value, color}',
        ),
        CatalogItem(
            "TotalWidget",
            TotalWidgetData,
            "Total amount with a descriptive label",
        ),
        CatalogItem(
            "ConfirmationDialog",
            ConfirmationDialogData,
            "Yes/No question; message, optional confirmLabel and cancelLabel",
        ),
        CatalogItem(
            "BackgroundImage",
            BackgroundImageData,
            'Background; imageUrl "generated" or null, plus description',
        ),
    ])
