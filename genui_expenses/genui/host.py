"""
Surface Host

A minimal interpreter for the UI descriptions the model emits.

FLOW:
1. surfaceUpdate(surfaceId, components) - the model defines components
2. beginRendering(surfaceId, root)      - the model picks the root to show
3. deleteSurface(surfaceId)             - the model removes a surface

Each successful beginRendering emits SurfaceAdded the first time a surface
is shown and SurfaceUpdated afterwards; deleteSurface emits SurfaceRemoved.
Listeners (the surface event handler) turn those events into registry
writes.

CRITICAL: Every component is validated against the catalog when it is
defined. A malformed description raises, the tool boundary reports the
error back to the model, and nothing already on screen changes.
"""

from enum import Enum
from typing import Any, Callable, Optional

import structlog
from pydantic import BaseModel, ConfigDict

from genui_expenses.genui.catalog import Catalog, ComponentData, GenUIError


class SurfaceProtocolError(GenUIError):
    """The model used the surface protocol incorrectly."""
    pass


class SurfaceEventType(str, Enum):
    ADDED = "added"
    UPDATED = "updated"
    REMOVED = "removed"


class RenderedSurface(BaseModel):
    """The component currently rendered at the root of a surface."""
    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    surface_id: str
    root_id: str
    component: str
    data: ComponentData


class SurfaceEvent(BaseModel):
    """Lifecycle notification for one surface."""
    model_config = ConfigDict(frozen=True)

    event_type: SurfaceEventType
    surface_id: str
    surface: Optional[RenderedSurface] = None


SurfaceListener = Callable[[SurfaceEvent], None]


def split_component(definition: Any) -> tuple[str, str, Any]:
    """
    Extract (id, component name, data) from one component definition.

    Two shapes are accepted:
        {"id": "x", "component": {"name": "TotalWidget", "data": {...}}}
        {"id": "x", "component": {"TotalWidget": {...}}}
    """
    if not isinstance(definition, dict):
        raise SurfaceProtocolError("Each component must be an object")

    component_id = definition.get("id")
    if not isinstance(component_id, str) or not component_id:
        raise SurfaceProtocolError("Each component needs a non-empty string id")

    component = definition.get("component")
    if not isinstance(component, dict):
        raise SurfaceProtocolError(f"Component {component_id} has no component object")

    if "name" in component:
        return component_id, str(component["name"]), component.get("data", {})
    if len(component) == 1:
        name, data = next(iter(component.items()))
        return component_id, name, data

    raise SurfaceProtocolError(
        f"Component {component_id} must have a name and data"
    )


class SurfaceHost:
    """Keeps component definitions per surface and emits lifecycle events."""

    def __init__(self, catalog: Catalog):
        self._catalog = catalog
        self._definitions: dict[str, dict[str, tuple[str, ComponentData]]] = {}
        self._rendered: dict[str, RenderedSurface] = {}
        self._listeners: list[SurfaceListener] = []
        self._logger = structlog.get_logger(__name__)

    @property
    def catalog(self) -> Catalog:
        return self._catalog

    def add_listener(self, listener: SurfaceListener) -> None:
        self._listeners.append(listener)

    def rendered(self, surface_id: str) -> Optional[RenderedSurface]:
        return self._rendered.get(surface_id)

    def surface_update(self, surface_id: str, components: list) -> int:
        """
        Define or redefine components on a surface.

        All components are validated before any is stored, so a batch is
        applied completely or not at all. Returns the number of components.
        """
        if not surface_id:
            raise SurfaceProtocolError("surfaceId is required")
        if not isinstance(components, list) or not components:
            raise SurfaceProtocolError("components must be a non-empty list")

        parsed: dict[str, tuple[str, ComponentData]] = {}
        for definition in components:
            component_id, name, data = split_component(definition)
            parsed[component_id] = (name, self._catalog.parse(name, data))

        self._definitions.setdefault(surface_id, {}).update(parsed)
        self._logger.debug(
            "surface_components_defined",
            surface_id=surface_id,
            component_ids=list(parsed),
        )
        return len(parsed)

    def begin_rendering(self, surface_id: str, root: str) -> RenderedSurface:
        """Render `root` on the surface and notify listeners."""
        definitions = self._definitions.get(surface_id, {})
        if root not in definitions:
            raise SurfaceProtocolError(
                f"Unknown root '{root}' for surface '{surface_id}'. "
                "Call surfaceUpdate with that component first."
            )

        name, data = definitions[root]
        surface = RenderedSurface(
            surface_id=surface_id,
            root_id=root,
            component=name,
            data=data,
        )
        event_type = (
            SurfaceEventType.UPDATED
            if surface_id in self._rendered
            else SurfaceEventType.ADDED
        )
        self._rendered[surface_id] = surface
        self._logger.info(
            "surface_rendered",
            surface_id=surface_id,
            root=root,
            component=name,
            surface_event=event_type.value,
        )
        self._emit(SurfaceEvent(event_type=event_type, surface_id=surface_id, surface=surface))
        return surface

    def delete_surface(self, surface_id: str) -> bool:
        """Forget a surface. Returns False if it was never rendered."""
        self._definitions.pop(surface_id, None)
        if self._rendered.pop(surface_id, None) is None:
            return False

        self._logger.info("surface_removed", surface_id=surface_id)
        self._emit(SurfaceEvent(event_type=SurfaceEventType.REMOVED, surface_id=surface_id))
        return True

    def _emit(self, event: SurfaceEvent) -> None:
        for listener in list(self._listeners):
            listener(event)
