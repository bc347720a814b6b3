"""Tests for the widget catalog and the surface host."""

import pytest

from genui_expenses.genui import (
    BackgroundImageData,
    CatalogError,
    CategoriesContainerData,
    ChartWidgetData,
    ConfirmationDialogData,
    SurfaceEventType,
    SurfaceHost,
    SurfaceProtocolError,
    TotalWidgetData,
    create_catalog,
)
from genui_expenses.genui.host import split_component


CATEGORIES_CONTAINER = {
    "categories": [
        {
            "id": "123",
            "name": "Food & Drink",
            "color": "#4CAF50",
            "expenses": [
                {"id": "e1", "title": "coffee", "amount": 5, "date": "2024-12-11T10:00:00Z"},
                {"id": "e2", "title": "cake", "amount": 10},
            ],
        },
        {"id": "456", "name": "Travel", "color": "purple", "expenses": []},
    ]
}


class TestCatalog:
    """Component schemas."""

    def test_catalog_has_every_component(self):
        assert set(create_catalog().names) == {
            "CategoriesContainer",
            "CategoryColumn",
            "ExpenseCard",
            "ChartWidget",
            "TotalWidget",
            "ConfirmationDialog",
            "BackgroundImage",
        }

    def test_parse_categories_container(self):
        data = create_catalog().parse("CategoriesContainer", CATEGORIES_CONTAINER)

        assert isinstance(data, CategoriesContainerData)
        food, travel = data.categories
        assert food.total == 15
        assert food.resolved_color.to_hex() == "#4CAF50"
        assert travel.resolved_color.to_hex() == "#9C27B0"

    def test_bad_color_in_component_turns_grey(self):
        data = create_catalog().parse(
            "CategoryColumn", {"id": "1", "name": "Other", "color": "mauve-ish"}
        )
        assert data.resolved_color.to_hex() == "#9E9E9E"

    def test_chart_widget_accepts_camel_case(self):
        data = create_catalog().parse("ChartWidget", {
            "chartType": "pie",
            "data": [{"label": "Food & Drink", "value": 18, "color": "green"}],
        })
        assert isinstance(data, ChartWidgetData)
        assert data.chart_type == "pie"
        assert data.points()[0].to_dict() == {
            "label": "Food & Drink", "value": 18.0, "color": "#4CAF50",
        }

    def test_chart_widget_rejects_unknown_chart_type(self):
        with pytest.raises(CatalogError) as exc_info:
            create_catalog().parse("ChartWidget", {"chartType": "radar", "data": []})
        assert exc_info.value.component == "ChartWidget"

    def test_confirmation_dialog_default_labels(self):
        data = create_catalog().parse("ConfirmationDialog", {"message": "Delete coffee?"})
        assert isinstance(data, ConfirmationDialogData)
        assert (data.confirm_label, data.cancel_label) == ("Yes", "No")

    def test_background_image_generated_marker(self):
        generated = create_catalog().parse("BackgroundImage", {"imageUrl": "generated"})
        gradient = create_catalog().parse("BackgroundImage", {"imageUrl": None, "description": "beach"})
        assert isinstance(generated, BackgroundImageData)
        assert generated.uses_generated_image
        assert not gradient.uses_generated_image

    def test_unknown_component_is_rejected(self):
        with pytest.raises(CatalogError, match="unknown component"):
            create_catalog().parse("Carousel", {})

    def test_non_object_data_is_rejected(self):
        with pytest.raises(CatalogError):
            create_catalog().parse("TotalWidget", [1, 2])

    def test_negative_expense_amount_is_rejected(self):
        with pytest.raises(CatalogError):
            create_catalog().parse("ExpenseCard", {"id": "1", "title": "x", "amount": -1})

    def test_describe_lists_components(self):
        description = create_catalog().describe()
        assert "- TotalWidget:" in description
        assert len(description.splitlines()) == 7


class TestSplitComponent:

    def test_name_and_data_shape(self):
        assert split_component({
            "id": "t", "component": {"name": "TotalWidget", "data": {"amount": 1}},
        }) == ("t", "TotalWidget", {"amount": 1})

    def test_single_key_shape(self):
        assert split_component({
            "id": "t", "component": {"TotalWidget": {"amount": 1}},
        }) == ("t", "TotalWidget", {"amount": 1})

    @pytest.mark.parametrize("definition", [
        "TotalWidget",
        {"component": {"TotalWidget": {}}},
        {"id": "", "component": {"TotalWidget": {}}},
        {"id": "t"},
        {"id": "t", "component": {"A": {}, "B": {}}},
    ])
    def test_malformed_definitions(self, definition):
        with pytest.raises(SurfaceProtocolError):
            split_component(definition)


class TestSurfaceHost:
    """surfaceUpdate / beginRendering / deleteSurface."""

    def _total(self, component_id="total_root", amount=5.0):
        return {
            "id": component_id,
            "component": {"TotalWidget": {"amount": amount, "label": "all time"}},
        }

    def test_begin_rendering_emits_added_then_updated(self):
        host = SurfaceHost(create_catalog())
        events = []
        host.add_listener(events.append)

        host.surface_update("total", [self._total()])
        host.begin_rendering("total", "total_root")
        host.surface_update("total", [self._total(amount=7.5)])
        host.begin_rendering("total", "total_root")

        assert [e.event_type for e in events] == [SurfaceEventType.ADDED, SurfaceEventType.UPDATED]
        assert isinstance(events[1].surface.data, TotalWidgetData)
        assert events[1].surface.data.amount == 7.5

    def test_surface_update_alone_emits_nothing(self):
        host = SurfaceHost(create_catalog())
        events = []
        host.add_listener(events.append)

        assert host.surface_update("total", [self._total()]) == 1
        assert events == []

    def test_invalid_batch_is_not_applied(self):
        host = SurfaceHost(create_catalog())
        host.surface_update("total", [self._total()])

        with pytest.raises(CatalogError):
            host.surface_update("total", [
                self._total(amount=99),
                {"id": "bad", "component": {"TotalWidget": {"amount": "lots"}}},
            ])

        rendered = host.begin_rendering("total", "total_root")
        assert rendered.data.amount == 5.0

    def test_unknown_root_is_rejected(self):
        host = SurfaceHost(create_catalog())
        with pytest.raises(SurfaceProtocolError, match="Unknown root"):
            host.begin_rendering("total", "missing")

    def test_empty_components_are_rejected(self):
        with pytest.raises(SurfaceProtocolError):
            SurfaceHost(create_catalog()).surface_update("total", [])

    def test_delete_surface(self):
        host = SurfaceHost(create_catalog())
        events = []
        host.add_listener(events.append)
        host.surface_update("total", [self._total()])
        host.begin_rendering("total", "total_root")

        assert host.delete_surface("total") is True
        assert host.rendered("total") is None
        assert events[-1].event_type == SurfaceEventType.REMOVED
        assert host.delete_surface("total") is False

    def test_rendering_reaches_registry(self, host, registry):
        """Host events flow through the handler into the registry."""
        host.surface_update("categories", [{
            "id": "categories_root",
            "component": {"name": "CategoriesContainer", "data": CATEGORIES_CONTAINER},
        }])
        host.begin_rendering("categories", "categories_root")

        surface = registry.category_slots["categories"]
        assert surface.component == "CategoriesContainer"
        assert len(surface.data.categories) == 2

        host.delete_surface("categories")
        assert registry.category_slots == {}
