"""
portfolio_runtime.controllers.navigation

Keeps the navigation bar in sync with the router.

Responsibilities:
- Render the navigation view with the active path highlighted.
- Turn `navigation:clicked` events into router navigations.
- Re-render after each `router:navigated`.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from portfolio_runtime.controllers.base import Controller
from portfolio_runtime.core.events import ErrorSink, Event, EventBus, EventKind, NavigationRendered
from portfolio_runtime.core.lifecycle import InitContext
from portfolio_runtime.routing.router import Router
from portfolio_runtime.views.cache import RenderOutcome, ViewRenderCache
from portfolio_runtime.views.pages import NAVIGATION_ITEMS, NavItem


class NavigationController(Controller):
    name = "navigation_controller"

    def __init__(
        self,
        *,
        bus: EventBus,
        router: Router,
        views: ViewRenderCache,
        reporter: ErrorSink | None = None,
        items: Sequence[NavItem] = NAVIGATION_ITEMS,
        view: str = "navigation",
        container: str = "main-nav",
    ) -> None:
        super().__init__(bus=bus, reporter=reporter)
        self._router = router
        self._views = views
        self._items = tuple(items)
        self._view = view
        self._container = container

    @property
    def items(self) -> tuple[NavItem, ...]:
        return self._items

    def view_data(self, current_path: str | None) -> dict[str, Any]:
        return {
            "current_path": current_path or "/",
            "items": [{"path": item.path, "label": item.label} for item in self._items],
        }

    async def render(self, current_path: str | None = None) -> RenderOutcome:
        path = current_path or self._router.current_path
        outcome = await self._views.render_view(self._view, self.view_data(path), self._container)
        if outcome.ok:
            self._bus.publish(
                EventKind.NAVIGATION_RENDERED,
                NavigationRendered(current_path=path or "/", items=len(self._items)),
            )
        return outcome

    def _on_navigated(self, event: Event) -> None:
        self.spawn(self.render(event.payload.to_path), label="render")

    def _on_clicked(self, event: Event) -> None:
        self.spawn(self._router.navigate(event.payload.path), label="navigate")

    async def on_initialize(self, ctx: InitContext | None) -> dict[str, Any]:
        self._subs.subscribe(EventKind.ROUTER_NAVIGATED, self._on_navigated)
        self._subs.subscribe(EventKind.NAVIGATION_CLICKED, self._on_clicked)
        return {"items": len(self._items)}
