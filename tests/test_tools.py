"""Tests for the tool adapter."""

import asyncio
import json
from uuid import uuid4

import pytest

from genui_expenses.audit import AuditLogger
from genui_expenses.models import AuditEventType, BackgroundState
from genui_expenses.services.storage import InMemoryAuditStorage
from genui_expenses.tools import ToolAdapter


def invoke(adapter, name, args=None, correlation_id=None):
    return asyncio.run(adapter.invoke(name, args, correlation_id))


class FakeBackground:
    """Stands in for BackgroundService."""

    def __init__(self, state: BackgroundState):
        self.state = state
        self.prompts = []

    async def generate_background(self, prompt):
        self.prompts.append(prompt)
        return self.state


@pytest.fixture
def storage():
    return InMemoryAuditStorage()


@pytest.fixture
def adapter(ledger, host, storage):
    return ToolAdapter(ledger=ledger, host=host, audit_logger=AuditLogger(storage))


class TestLedgerTools:
    """addCategory, updateCategoryColor, addExpense, getAllExpenses, findCategoryByName."""

    def test_add_category(self, adapter, ledger):
        result = invoke(adapter, "addCategory", {"name": "Food & Drink", "color": "#4CAF50"})

        assert result["success"] is True
        assert result["categoryName"] == "Food & Drink"
        assert result["categoryId"] == ledger.categories[0].id

    def test_add_category_twice_returns_same_id(self, adapter, ledger):
        first = invoke(adapter, "addCategory", {"name": "Travel", "color": "blue"})
        second = invoke(adapter, "addCategory", {"name": "travel", "color": "red"})
        assert first["categoryId"] == second["categoryId"]
        assert len(ledger.categories) == 1

    def test_add_category_without_color_is_grey(self, adapter, ledger):
        invoke(adapter, "addCategory", {"name": "Other"})
        assert ledger.categories[0].color.to_hex() == "#9E9E9E"

    def test_update_category_color(self, adapter, ledger):
        category = ledger.add_category("Travel", "blue")

        result = invoke(adapter, "updateCategoryColor", {"categoryId": category.id, "color": "red"})

        assert result["success"] is True
        assert result["newColor"] == "red"
        assert ledger.get_category(category.id).color.to_hex() == "#F44336"

    def test_update_color_of_unknown_category_still_succeeds(self, adapter):
        result = invoke(adapter, "updateCategoryColor", {"categoryId": "nope", "color": "red"})
        assert result["success"] is True

    def test_add_expense_returns_every_category(self, adapter, ledger):
        """Food & Drink scenario through the tool boundary."""
        category_id = invoke(adapter, "addCategory", {"name": "Food & Drink", "color": "#4CAF50"})["categoryId"]
        invoke(adapter, "addCategory", {"name": "Travel", "color": "#2196F3"})

        result = invoke(adapter, "addExpense", {"title": "Coffee", "amount": 5.0, "categoryId": category_id})

        assert result["success"] is True
        assert result["expenseId"] == ledger.expenses[0].id
        assert result["total"] == 5.0
        assert result["duplicate"] is False
        food, travel = result["allCategories"]
        assert food == {
            "id": category_id,
            "name": "Food & Drink",
            "color": "#4CAF50",
            "expenses": [{
                "id": result["expenseId"],
                "title": "Coffee",
                "amount": 5.0,
                "date": ledger.expenses[0].date.isoformat(),
            }],
        }
        assert travel["expenses"] == []

    def test_add_expense_result_is_json_serializable(self, adapter):
        result = invoke(adapter, "addExpense", {"title": "Coffee", "amount": 5, "categoryId": "c"})
        json.dumps(result)

    def test_repeated_add_expense_is_flagged_as_duplicate(self, adapter, ledger):
        args = {"title": "Coffee", "amount": 5, "categoryId": "c"}
        first = invoke(adapter, "addExpense", args)
        second = invoke(adapter, "addExpense", args)

        assert second["expenseId"] == first["expenseId"]
        assert second["duplicate"] is True
        assert len(ledger.expenses) == 1

    @pytest.mark.parametrize("amount", ["12.50", "$12.50", " 12.5 "])
    def test_amount_given_as_string_is_parsed(self, adapter, ledger, amount):
        result = invoke(adapter, "addExpense", {"title": "Lunch", "amount": amount, "categoryId": "c"})
        assert result["success"] is True
        assert float(ledger.expenses[0].amount) == 12.5

    def test_numeric_category_id_is_stringified(self, adapter, ledger):
        category = ledger.add_category("Food", "green")
        result = invoke(adapter, "addExpense", {
            "title": "Coffee", "amount": 5, "categoryId": int(category.id),
        })
        assert result["allCategories"][0]["expenses"][0]["title"] == "Coffee"

    def test_integral_float_category_id_is_stringified(self, adapter, ledger):
        invoke(adapter, "addExpense", {"title": "Coffee", "amount": 5, "categoryId": 1733911200000.0})
        assert ledger.expenses[0].category_id == "1733911200000"

    @pytest.mark.parametrize("args", [
        {"title": "Coffee", "amount": -5, "categoryId": "c"},
        {"title": "Yacht", "amount": 1e26, "categoryId": "c"},
        {"title": "Yacht", "amount": "10000000000", "categoryId": "c"},
        {"title": "Coffee", "amount": "five", "categoryId": "c"},
        {"title": "Coffee", "amount": True, "categoryId": "c"},
        {"title": "", "amount": 5, "categoryId": "c"},
        {"amount": 5, "categoryId": "c"},
        {"title": "Coffee", "amount": 5},
    ])
    def test_bad_expense_arguments_produce_error(self, adapter, ledger, args):
        result = invoke(adapter, "addExpense", args)
        assert set(result) == {"error"}
        assert result["error"].startswith("Invalid arguments for addExpense")
        assert ledger.expenses == ()

    def test_get_all_expenses(self, adapter, ledger):
        category = ledger.add_category("Food & Drink", "#4CAF50")
        ledger.add_expense("Coffee", 5, category.id)

        result = invoke(adapter, "getAllExpenses")

        assert result["total"] == 5.0
        assert result["categories"][0]["expenses"][0]["title"] == "Coffee"

    def test_find_category_by_name(self, adapter, ledger):
        category = ledger.add_category("food", "#4CAF50")

        assert invoke(adapter, "findCategoryByName", {"name": "FOOD"}) == {
            "found": True,
            "categoryId": category.id,
            "categoryName": "food",
            "color": "#4CAF50",
        }
        assert invoke(adapter, "findCategoryByName", {"name": "Travel"}) == {"found": False}


class TestBoundaryErrors:
    """Unknown tools and missing services."""

    def test_unknown_tool(self, adapter):
        assert invoke(adapter, "launchRocket", {}) == {"error": "Unknown tool: launchRocket"}

    @pytest.mark.parametrize("name,args", [
        ("addCategory", {"name": "Food", "color": "green"}),
        ("addExpense", {"title": "Coffee", "amount": 5, "categoryId": "c"}),
        ("getAllExpenses", {}),
        ("findCategoryByName", {"name": "Food"}),
    ])
    def test_missing_ledger(self, name, args):
        result = invoke(ToolAdapter(), name, args)
        assert result == {"error": "ExpenseLedger not available"}

    def test_missing_background_service(self):
        result = invoke(ToolAdapter(), "generateBackground", {"prompt": "beach"})
        assert result == {"error": "BackgroundService not available"}

    def test_missing_surface_host(self):
        result = invoke(ToolAdapter(), "deleteSurface", {"surfaceId": "chart"})
        assert result == {"error": "SurfaceHost not available"}


class TestBackgroundTool:

    def test_generated_image(self, ledger):
        background = FakeBackground(BackgroundState(
            description="beach sunset", image_bytes=b"png", image_size=(10, 10),
        ))
        adapter = ToolAdapter(ledger=ledger, background=background)

        result = invoke(adapter, "generateBackground", {"prompt": "beach sunset"})

        assert result["success"] is True
        assert result["hasImage"] is True
        assert result["description"] == "beach sunset"
        assert '"generated"' in result["message"]
        assert background.prompts == ["beach sunset"]

    def test_gradient_fallback(self):
        adapter = ToolAdapter(background=FakeBackground(BackgroundState()))

        result = invoke(adapter, "generateBackground", {"prompt": "ocean"})

        assert result["hasImage"] is False
        assert result["description"] == "ocean"
        assert "imageUrl: null" in result["message"]


class TestSurfaceTools:
    """surfaceUpdate, beginRendering and deleteSurface drive the registry."""

    TOTAL_COMPONENTS = [{"id": "total_root", "component": {"TotalWidget": {"amount": 5, "label": "all time"}}}]

    def test_render_total(self, adapter, registry):
        update = invoke(adapter, "surfaceUpdate", {"surfaceId": "total", "components": self.TOTAL_COMPONENTS})
        render = invoke(adapter, "beginRendering", {"surfaceId": "total", "root": "total_root"})

        assert update["success"] is True
        assert update["componentCount"] == 1
        assert render == {"success": True, "surfaceId": "total"}
        assert registry.total.data.label == "all time"

    def test_components_as_json_string(self, adapter, registry):
        invoke(adapter, "surfaceUpdate", {
            "surfaceId": "total", "components": json.dumps(self.TOTAL_COMPONENTS),
        })
        invoke(adapter, "beginRendering", {"surfaceId": "total", "root": "total_root"})
        assert registry.total.data.amount == 5.0

    def test_invalid_json_components(self, adapter):
        result = invoke(adapter, "surfaceUpdate", {"surfaceId": "total", "components": "[{"})
        assert "components is not valid JSON" in result["error"]

    def test_malformed_component_leaves_screen_untouched(self, adapter, registry, recorder):
        invoke(adapter, "surfaceUpdate", {"surfaceId": "total", "components": self.TOTAL_COMPONENTS})
        invoke(adapter, "beginRendering", {"surfaceId": "total", "root": "total_root"})
        registry.add_listener(recorder)

        result = invoke(adapter, "surfaceUpdate", {
            "surfaceId": "total",
            "components": [{"id": "x", "component": {"Carousel": {}}}],
        })

        assert "Carousel" in result["error"]
        assert recorder.count == 0
        assert registry.total.data.amount == 5.0

    def test_begin_rendering_unknown_root(self, adapter):
        result = invoke(adapter, "beginRendering", {"surfaceId": "chart", "root": "nope"})
        assert "Unknown root" in result["error"]

    def test_delete_surface(self, adapter, registry):
        invoke(adapter, "surfaceUpdate", {"surfaceId": "total", "components": self.TOTAL_COMPONENTS})
        invoke(adapter, "beginRendering", {"surfaceId": "total", "root": "total_root"})

        assert invoke(adapter, "deleteSurface", {"surfaceId": "total"}) == {"success": True, "surfaceId": "total"}
        assert registry.total is None
        assert "not being shown" in invoke(adapter, "deleteSurface", {"surfaceId": "total"})["error"]


class TestDeclarations:

    def test_every_routed_tool_is_declared(self, adapter):
        declared = {d["name"] for d in adapter.declarations()}
        assert declared == set(adapter.tool_names)

    def test_surface_tools_need_a_host(self):
        declared = {d["name"] for d in ToolAdapter().declarations()}
        assert "surfaceUpdate" not in declared
        assert "addExpense" in declared

    def test_surface_update_lists_catalog(self, adapter):
        surface_update = next(d for d in adapter.declarations() if d["name"] == "surfaceUpdate")
        assert "CategoriesContainer" in surface_update["description"]


class TestToolAuditing:
    """Every call is recorded under the caller's correlation id."""

    def test_calls_are_audited(self, adapter, storage):
        correlation_id = uuid4()
        category_id = invoke(adapter, "addCategory", {"name": "Food", "color": "green"}, correlation_id)["categoryId"]
        invoke(adapter, "addExpense", {"title": "Coffee", "amount": 5, "categoryId": category_id}, correlation_id)
        invoke(adapter, "addExpense", {"title": "Coffee", "amount": 5, "categoryId": category_id}, correlation_id)

        events = asyncio.run(storage.get_events_by_correlation_id(correlation_id))
        types = [e.event_type for e in events]

        assert types == [
            AuditEventType.TOOL_CALLED,
            AuditEventType.CATEGORY_ADDED,
            AuditEventType.TOOL_CALLED,
            AuditEventType.EXPENSE_ADDED,
            AuditEventType.TOOL_CALLED,
            AuditEventType.EXPENSE_DUPLICATE_SUPPRESSED,
        ]

    def test_rejections_are_audited(self, adapter, storage):
        invoke(adapter, "launchRocket", {})
        events = asyncio.run(storage.get_recent_events())
        assert events[0].event_type == AuditEventType.TOOL_REJECTED
        assert events[0].error_message == "Unknown tool: launchRocket"

    def test_rejected_surface_is_audited(self, adapter, storage):
        invoke(adapter, "beginRendering", {"surfaceId": "chart", "root": "nope"})
        events = asyncio.run(storage.get_events_by_entity("surface", "chart"))
        assert events[0].event_type == AuditEventType.SURFACE_REJECTED
