"""Tool-calling boundary between the model and local state."""

from genui_expenses.tools.adapter import (
    BACKGROUND_DECLARATIONS,
    LEDGER_DECLARATIONS,
    ToolAdapter,
    ToolUnavailableError,
    surface_declarations,
)
from genui_expenses.tools.schemas import (
    AddCategoryRequest,
    AddExpenseRequest,
    SurfaceUpdateRequest,
    ToolRequest,
    ToolResponse,
)

__all__ = [
    "AddCategoryRequest",
    "AddExpenseRequest",
    "BACKGROUND_DECLARATIONS",
    "LEDGER_DECLARATIONS",
    "SurfaceUpdateRequest",
    "ToolAdapter",
    "ToolRequest",
    "ToolResponse",
    "ToolUnavailableError",
    "surface_declarations",
]
