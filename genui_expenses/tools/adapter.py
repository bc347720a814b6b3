"""
Tool Adapter

The boundary between the model's function calls and local state.

FLOW:
1. The agent receives a function call (name + loosely typed arguments)
2. invoke() validates the arguments against the tool's request model
3. The matching handler calls the ledger / background service / surface host
4. The response model is serialized to a plain dict and goes back to the model

CRITICAL: invoke() never raises for anything the model did wrong. Unknown
tools, bad arguments, missing services and malformed UI descriptions all
come back as {"error": "..."} so the model can correct itself on the next
turn. Every call is audited under the correlation id of the user message.
"""

from typing import Any, Awaitable, Callable, Optional
from uuid import UUID

import structlog
from pydantic import ValidationError

from genui_expenses.audit import AuditLogger
from genui_expenses.genui import GenUIError, SurfaceHost
from genui_expenses.ledger import ExpenseLedger, color_to_hex
from genui_expenses.models.audit import AuditEvent, AuditEventBuilder
from genui_expenses.tools.schemas import (
    AddCategoryRequest,
    AddCategoryResponse,
    AddExpenseRequest,
    AddExpenseResponse,
    BeginRenderingRequest,
    DeleteSurfaceRequest,
    ErrorResponse,
    FindCategoryByNameRequest,
    FindCategoryByNameResponse,
    GenerateBackgroundRequest,
    GenerateBackgroundResponse,
    GetAllExpensesRequest,
    GetAllExpensesResponse,
    SurfaceResponse,
    SurfaceUpdateRequest,
    ToolRequest,
    ToolResponse,
    UpdateCategoryColorRequest,
    UpdateCategoryColorResponse,
)


class ToolUnavailableError(Exception):
    """A tool was called but the service behind it is not wired in."""

    def __init__(self, service: str):
        self.service = service
        super().__init__(f"{service} not available")


Handler = Callable[[Any, Optional[UUID]], Awaitable[ToolResponse]]


# =============================================================================
# DECLARATIONS
# =============================================================================

def _string(description: str) -> dict:
    return {"type": "string", "description": description}


def _object(properties: dict, required: list[str]) -> dict:
    return {"type": "object", "properties": properties, "required": required}


LEDGER_DECLARATIONS: list[dict] = [
    {
        "name": "addExpense",
        "description": (
            "Adds a new expense to a category. This tool automatically returns ALL "
            "categories with ALL their expenses so you can immediately update the UI. "
            'Use the returned data to create CategoryColumn widgets on the "categories" surface.'
        ),
        "parameters": _object(
            {
                "title": _string("The title/description of the expense"),
                "amount": {"type": "number", "description": "The amount of the expense as a number"},
                "categoryId": _string("The ID of the category to add the expense to"),
            },
            ["title", "amount", "categoryId"],
        ),
    },
    {
        "name": "addCategory",
        "description": "Adds a new expense category. Use this when a category needs to be created.",
        "parameters": _object(
            {
                "name": _string('The name of the category (e.g., "Food & Drink", "Travel")'),
                "color": _string('Hex color code (e.g., "#FF5733") or named color (e.g., "purple")'),
            },
            ["name", "color"],
        ),
    },
    {
        "name": "updateCategoryColor",
        "description": (
            "Updates the color of an existing category. After calling this, you MUST "
            "call getAllExpenses and update the categories surface."
        ),
        "parameters": _object(
            {
                "categoryId": _string("The ID of the category to update"),
                "color": _string('New hex color code (e.g., "#FF5733") or named color (e.g., "red")'),
            },
            ["categoryId", "color"],
        ),
    },
    {
        "name": "getAllExpenses",
        "description": (
            "Gets all expenses organized by category. Use this to get current "
            "expense data for displaying in UI."
        ),
        "parameters": None,
    },
    {
        "name": "findCategoryByName",
        "description": "Finds a category by its name (case insensitive). Returns found: false if not found.",
        "parameters": _object(
            {"name": _string("The name of the category to find")},
            ["name"],
        ),
    },
]

BACKGROUND_DECLARATIONS: list[dict] = [
    {
        "name": "generateBackground",
        "description": (
            "Generates a background image based on a description. After calling this, "
            'you MUST update the "background" surface with a BackgroundImage widget.'
        ),
        "parameters": _object(
            {
                "prompt": _string(
                    'Description of the desired background (e.g., "ocean flowing", "beach sunset")'
                ),
            },
            ["prompt"],
        ),
    },
]


def surface_declarations(catalog_description: str) -> list[dict]:
    """Declarations of the UI protocol tools, listing the catalog components."""
    surface_id = _string(
        'Surface to target: "background", "chart", "total", "categories", '
        '"categories_<key>" or "dialog"'
    )
    return [
        {
            "name": "surfaceUpdate",
            "description": (
                "Defines or redefines components on a surface. Available components:\n"
                + catalog_description
            ),
            "parameters": _object(
                {
                    "surfaceId": surface_id,
                    "components": _string(
                        'JSON array of components, each {"id": "...", "component": '
                        '{"<ComponentName>": {...data}}}'
                    ),
                },
                ["surfaceId", "components"],
            ),
        },
        {
            "name": "beginRendering",
            "description": "Shows a component defined with surfaceUpdate as the root of a surface.",
            "parameters": _object(
                {
                    "surfaceId": surface_id,
                    "root": _string("ID of the component to show"),
                },
                ["surfaceId", "root"],
            ),
        },
        {
            "name": "deleteSurface",
            "description": "Removes a surface from the screen.",
            "parameters": _object({"surfaceId": surface_id}, ["surfaceId"]),
        },
    ]


def _summarize_validation_error(error: ValidationError) -> str:
    parts = []
    for detail in error.errors():
        location = ".".join(str(part) for part in detail["loc"]) or "arguments"
        parts.append(f"{location}: {detail['msg']}")
    return "; ".join(parts)


# =============================================================================
# ADAPTER
# =============================================================================

class ToolAdapter:
    """
    Dispatches tool calls by name.

    Every dependency is optional so the adapter can be wired with only the
    services a deployment has; calling a tool whose service is missing
    yields an error result rather than an exception.
    """

    def __init__(
        self,
        ledger: Optional[ExpenseLedger] = None,
        background: Optional[Any] = None,
        host: Optional[SurfaceHost] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._ledger = ledger
        self._background = background
        self._host = host
        self._audit_logger = audit_logger
        self._logger = structlog.get_logger(__name__)

        self._routes: dict[str, tuple[type[ToolRequest], Handler]] = {
            "addCategory": (AddCategoryRequest, self._add_category),
            "updateCategoryColor": (UpdateCategoryColorRequest, self._update_category_color),
            "addExpense": (AddExpenseRequest, self._add_expense),
            "getAllExpenses": (GetAllExpensesRequest, self._get_all_expenses),
            "findCategoryByName": (FindCategoryByNameRequest, self._find_category_by_name),
            "generateBackground": (GenerateBackgroundRequest, self._generate_background),
            "surfaceUpdate": (SurfaceUpdateRequest, self._surface_update),
            "beginRendering": (BeginRenderingRequest, self._begin_rendering),
            "deleteSurface": (DeleteSurfaceRequest, self._delete_surface),
        }

    @property
    def tool_names(self) -> list[str]:
        return list(self._routes)

    def declarations(self) -> list[dict]:
        """JSON-schema declarations of every tool, for the agent's model config."""
        declarations = LEDGER_DECLARATIONS + BACKGROUND_DECLARATIONS
        if self._host is not None:
            declarations = declarations + surface_declarations(self._host.catalog.describe())
        return [dict(d) for d in declarations]

    async def invoke(
        self,
        name: str,
        arguments: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> dict[str, Any]:
        """
        Run one tool call and return its JSON-compatible result.

        Never raises for unknown tools, invalid arguments or missing services.
        """
        arguments = dict(arguments or {})
        await self._audit(AuditEventBuilder.tool_called(name, arguments, correlation_id))

        route = self._routes.get(name)
        if route is None:
            return await self._reject(name, f"Unknown tool: {name}", correlation_id)

        request_model, handler = route
        try:
            request = request_model.model_validate(arguments)
        except ValidationError as e:
            return await self._reject(
                name,
                f"Invalid arguments for {name}: {_summarize_validation_error(e)}",
                correlation_id,
            )

        try:
            response = await handler(request, correlation_id)
        except ToolUnavailableError as e:
            return await self._reject(name, str(e), correlation_id)

        return response.to_result()

    # -------------------------------------------------------------------------
    # Ledger tools
    # -------------------------------------------------------------------------

    def _require_ledger(self) -> ExpenseLedger:
        if self._ledger is None:
            raise ToolUnavailableError("ExpenseLedger")
        return self._ledger

    async def _add_category(
        self,
        request: AddCategoryRequest,
        correlation_id: Optional[UUID],
    ) -> AddCategoryResponse:
        ledger = self._require_ledger()
        count_before = len(ledger.categories)
        category = ledger.add_category(request.name, request.color)

        if len(ledger.categories) > count_before:
            await self._audit(AuditEventBuilder.category_added(
                category.id, category.name, color_to_hex(category.color), correlation_id,
            ))
        else:
            await self._audit(AuditEventBuilder.category_reused(
                category.id, category.name, correlation_id,
            ))

        return AddCategoryResponse(
            category_id=category.id,
            category_name=category.name,
            message=(
                "Category ready. Call getAllExpenses and update the categories surface."
            ),
        )

    async def _update_category_color(
        self,
        request: UpdateCategoryColorRequest,
        correlation_id: Optional[UUID],
    ) -> UpdateCategoryColorResponse:
        ledger = self._require_ledger()
        ledger.update_category_color(request.category_id, request.color)

        found = ledger.get_category(request.category_id) is not None
        await self._audit(AuditEventBuilder.category_color_updated(
            request.category_id, request.color, found, correlation_id,
        ))

        return UpdateCategoryColorResponse(
            category_id=request.category_id,
            new_color=request.color,
            message=(
                "Category color updated. Call getAllExpenses and update the "
                "categories surface to reflect the change."
            ),
        )

    async def _add_expense(
        self,
        request: AddExpenseRequest,
        correlation_id: Optional[UUID],
    ) -> AddExpenseResponse:
        ledger = self._require_ledger()
        count_before = len(ledger.expenses)
        expense = ledger.add_expense(request.title, request.amount, request.category_id)
        duplicate = len(ledger.expenses) == count_before

        builder = (
            AuditEventBuilder.expense_duplicate_suppressed
            if duplicate else
            AuditEventBuilder.expense_added
        )
        await self._audit(builder(
            expense.id, expense.title, str(expense.amount), expense.category_id, correlation_id,
        ))

        snapshot = ledger.snapshot()
        return AddExpenseResponse(
            expense_id=expense.id,
            all_categories=snapshot.categories,
            total=snapshot.total,
            duplicate=duplicate,
            message=(
                "This expense was already recorded moments ago; it was not added again. "
                if duplicate else
                "Expense added. "
            ) + "Use the allCategories data to create CategoryColumn widgets for EVERY category.",
        )

    async def _get_all_expenses(
        self,
        request: GetAllExpensesRequest,
        correlation_id: Optional[UUID],
    ) -> GetAllExpensesResponse:
        snapshot = self._require_ledger().snapshot()
        return GetAllExpensesResponse(categories=snapshot.categories, total=snapshot.total)

    async def _find_category_by_name(
        self,
        request: FindCategoryByNameRequest,
        correlation_id: Optional[UUID],
    ) -> FindCategoryByNameResponse:
        category = self._require_ledger().find_category_by_name(request.name)
        if category is None:
            return FindCategoryByNameResponse(found=False)
        return FindCategoryByNameResponse(
            found=True,
            category_id=category.id,
            category_name=category.name,
            color=color_to_hex(category.color),
        )

    # -------------------------------------------------------------------------
    # Background
    # -------------------------------------------------------------------------

    async def _generate_background(
        self,
        request: GenerateBackgroundRequest,
        correlation_id: Optional[UUID],
    ) -> GenerateBackgroundResponse:
        if self._background is None:
            raise ToolUnavailableError("BackgroundService")

        state = await self._background.generate_background(request.prompt)
        description = state.description or request.prompt

        await self._audit(AuditEventBuilder.background_generated(
            description, state.has_image, state.image_size, correlation_id,
        ))

        image_url = '"generated"' if state.has_image else "null"
        return GenerateBackgroundResponse(
            has_image=state.has_image,
            description=description,
            message=(
                'You MUST now update the "background" surface with a BackgroundImage '
                f'widget containing imageUrl: {image_url} and description: "{description}".'
            ),
        )

    # -------------------------------------------------------------------------
    # Surfaces
    # -------------------------------------------------------------------------

    def _require_host(self) -> SurfaceHost:
        if self._host is None:
            raise ToolUnavailableError("SurfaceHost")
        return self._host

    async def _surface_update(
        self,
        request: SurfaceUpdateRequest,
        correlation_id: Optional[UUID],
    ) -> ToolResponse:
        host = self._require_host()
        try:
            count = host.surface_update(request.surface_id, request.components)
        except GenUIError as e:
            return await self._reject_surface(request.surface_id, str(e), correlation_id)

        return SurfaceResponse(
            surface_id=request.surface_id,
            component_count=count,
            message="Components defined. Call beginRendering to show one of them.",
        )

    async def _begin_rendering(
        self,
        request: BeginRenderingRequest,
        correlation_id: Optional[UUID],
    ) -> ToolResponse:
        host = self._require_host()
        try:
            surface = host.begin_rendering(request.surface_id, request.root)
        except GenUIError as e:
            return await self._reject_surface(request.surface_id, str(e), correlation_id)

        await self._audit(AuditEventBuilder.surface_rendered(
            surface.surface_id, surface.root_id, surface.component, correlation_id,
        ))
        return SurfaceResponse(surface_id=surface.surface_id)

    async def _delete_surface(
        self,
        request: DeleteSurfaceRequest,
        correlation_id: Optional[UUID],
    ) -> ToolResponse:
        host = self._require_host()
        if not host.delete_surface(request.surface_id):
            return await self._reject_surface(
                request.surface_id,
                f"Surface '{request.surface_id}' is not being shown",
                correlation_id,
            )

        await self._audit(AuditEventBuilder.surface_removed(request.surface_id, correlation_id))
        return SurfaceResponse(surface_id=request.surface_id)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    async def _audit(self, event: AuditEvent) -> None:
        if self._audit_logger is not None:
            await self._audit_logger.log(event)

    async def _reject(
        self,
        name: str,
        reason: str,
        correlation_id: Optional[UUID],
    ) -> dict[str, Any]:
        self._logger.warning("tool_rejected", tool=name, reason=reason)
        await self._audit(AuditEventBuilder.tool_rejected(name, reason, correlation_id))
        return ErrorResponse(error=reason).to_result()

    async def _reject_surface(
        self,
        surface_id: str,
        reason: str,
        correlation_id: Optional[UUID],
    ) -> ErrorResponse:
        self._logger.warning("surface_rejected", surface_id=surface_id, reason=reason)
        await self._audit(AuditEventBuilder.surface_rejected(surface_id, reason, correlation_id))
        return ErrorResponse(error=reason)
