"""
Tool Request and Response Schemas

Every tool the model can call has a request model that validates and
coerces its arguments, and a response model that fixes the shape of what
goes back.

DESIGN DECISION: Arguments are coerced leniently. The model sometimes
sends an amount as "12.50" or an id as a number; both are accepted.
Arguments that still do not fit are rejected and the model receives an
{"error": ...} result instead of a half-applied change.
"""

import json
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from genui_expenses.models.ledger import CategorySnapshot


# =============================================================================
# REQUESTS
# =============================================================================

class ToolRequest(BaseModel):
    """Base request. Accepts the model's camelCase argument names."""
    model_config = ConfigDict(
        populate_by_name=True,
        extra="ignore",
        str_strip_whitespace=True,
    )


def _stringify_id(value: Any) -> Any:
    # Integral floats come back from JSON as 1.7e12; keep them integral
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


class AddCategoryRequest(ToolRequest):
    name: str = Field(..., min_length=1, description='The name of the category (e.g., "Food & Drink", "Travel")')
    color: Optional[str] = Field(
        default=None,
        description='Hex color code (e.g., "#FF5733") or named color (e.g., "purple")'
    )


class UpdateCategoryColorRequest(ToolRequest):
    category_id: str = Field(..., alias="categoryId", min_length=1)
    color: str

    @field_validator("category_id", mode="before")
    @classmethod
    def coerce_category_id(cls, v: Any) -> Any:
        return _stringify_id(v)


# Upper bound for a single expense
MAX_EXPENSE_AMOUNT = Decimal("1000000000")


class AddExpenseRequest(ToolRequest):
    title: str = Field(..., min_length=1)
    amount: Decimal = Field(..., ge=0, le=MAX_EXPENSE_AMOUNT)
    category_id: str = Field(..., alias="categoryId", min_length=1)

    @field_validator("category_id", mode="before")
    @classmethod
    def coerce_category_id(cls, v: Any) -> Any:
        return _stringify_id(v)

    @field_validator("amount", mode="before")
    @classmethod
    def parse_amount(cls, v: Any) -> Any:
        """Accept "12.50", "$12.50" and "1,200" as well as numbers."""
        if isinstance(v, bool):
            raise ValueError("amount must be a number")
        if isinstance(v, float):
            return Decimal(str(v))
        if isinstance(v, str):
            cleaned = v.strip().lstrip("$").replace(",", "").strip()
            if not cleaned:
                raise ValueError("amount is empty")
            return cleaned
        return v


class GetAllExpensesRequest(ToolRequest):
    pass


class FindCategoryByNameRequest(ToolRequest):
    name: str = Field(..., min_length=1)


class GenerateBackgroundRequest(ToolRequest):
    prompt: str = Field(..., min_length=1)


class SurfaceUpdateRequest(ToolRequest):
    surface_id: str = Field(..., alias="surfaceId", min_length=1)
    components: list[dict[str, Any]] = Field(..., min_length=1)

    @field_validator("components", mode="before")
    @classmethod
    def parse_components(cls, v: Any) -> Any:
        """Components may arrive as a JSON string."""
        if isinstance(v, str):
            try:
                v = json.loads(v)
            except json.JSONDecodeError as e:
                raise ValueError(f"components is not valid JSON: {e.msg}") from e
        if isinstance(v, dict):
            return [v]
        return v


class BeginRenderingRequest(ToolRequest):
    surface_id: str = Field(..., alias="surfaceId", min_length=1)
    root: str = Field(..., min_length=1)


class DeleteSurfaceRequest(ToolRequest):
    surface_id: str = Field(..., alias="surfaceId", min_length=1)


# =============================================================================
# RESPONSES
# =============================================================================

class ToolResponse(BaseModel):
    """Base response. Serialized with camelCase keys and no unset hints."""
    model_config = ConfigDict(populate_by_name=True)

    def to_result(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class ErrorResponse(ToolResponse):
    error: str


class AddCategoryResponse(ToolResponse):
    success: bool = True
    category_id: str = Field(..., alias="categoryId")
    category_name: str = Field(..., alias="categoryName")
    message: Optional[str] = None


class UpdateCategoryColorResponse(ToolResponse):
    success: bool = True
    category_id: str = Field(..., alias="categoryId")
    new_color: str = Field(..., alias="newColor")
    message: Optional[str] = None


class AddExpenseResponse(ToolResponse):
    success: bool = True
    expense_id: str = Field(..., alias="expenseId")
    all_categories: list[CategorySnapshot] = Field(..., alias="allCategories")
    total: float
    duplicate: bool = False
    message: Optional[str] = None


class GetAllExpensesResponse(ToolResponse):
    categories: list[CategorySnapshot]
    total: float


class FindCategoryByNameResponse(ToolResponse):
    found: bool
    category_id: Optional[str] = Field(default=None, alias="categoryId")
    category_name: Optional[str] = Field(default=None, alias="categoryName")
    color: Optional[str] = None


class GenerateBackgroundResponse(ToolResponse):
    success: bool = True
    has_image: bool = Field(..., alias="hasImage")
    description: str
    message: Optional[str] = None


class SurfaceResponse(ToolResponse):
    success: bool = True
    surface_id: str = Field(..., alias="surfaceId")
    component_count: Optional[int] = Field(default=None, alias="componentCount")
    message: Optional[str] = None
