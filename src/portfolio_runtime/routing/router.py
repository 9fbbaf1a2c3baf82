"""
portfolio_runtime.routing.router

Path-to-view router with navigation history.

Responsibilities:
- Register routes (exact path match, first registration wins, duplicates rejected).
- Navigate: run the route handler, update history, publish navigation events.
- Publish `router:404` for unmatched paths.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from portfolio_runtime.core.events import EventBus, EventKind, Navigation, RouteNotFound
from portfolio_runtime.core.lifecycle import InitContext, LifecycleModule
from portfolio_runtime.errors import RegistrationError
from portfolio_runtime.observability.logging import get_logger

log = get_logger(__name__)

RouteHandler = Callable[["Route"], Awaitable[Any]]


@dataclass(frozen=True, slots=True)
class Route:
    path: str
    view: str
    handler: RouteHandler | None = None
    title: str | None = None


class Router(LifecycleModule):
    name = "router"

    def __init__(self, *, bus: EventBus, initial_path: str = "/", history_limit: int = 50) -> None:
        super().__init__()
        self._bus = bus
        self._initial_path = initial_path
        self._history_limit = history_limit
        self._routes: dict[str, Route] = {}
        self._history: list[str] = []
        self._current: Route | None = None

    def add_route(
        self,
        path: str,
        view: str,
        *,
        handler: RouteHandler | None = None,
        title: str | None = None,
    ) -> Route:
        if not isinstance(path, str) or not path.startswith("/"):
            raise RegistrationError(f"route path must start with '/': {path!r}", path=str(path))
        path = _normalize(path)
        if not view:
            raise RegistrationError(f"route {path!r} must name a view", path=path)
        if handler is not None and not callable(handler):
            raise RegistrationError(f"route {path!r} handler must be callable", path=path)
        if path in self._routes:
            raise RegistrationError(f"route already registered: {path!r}", path=path)
        route = Route(path=path, view=view, handler=handler, title=title)
        self._routes[path] = route
        return route

    @property
    def routes(self) -> tuple[Route, ...]:
        return tuple(self._routes.values())

    @property
    def history(self) -> tuple[str, ...]:
        return tuple(self._history)

    @property
    def current_route(self) -> Route | None:
        return self._current

    @property
    def current_path(self) -> str | None:
        return self._current.path if self._current else None

    def match(self, path: str) -> Route | None:
        return self._routes.get(_normalize(path))

    async def navigate(self, path: str, *, replace: bool = False, silent: bool = False) -> bool:
        """
        Returns False (after publishing `router:404` unless silent) when no route
        matches. Handler exceptions propagate to the caller.
        """

        target = _normalize(path)
        route = self._routes.get(target)
        if route is None:
            log.info("route_not_found", path=target)
            if not silent:
                self._bus.publish(EventKind.ROUTER_NOT_FOUND, RouteNotFound(path=target))
            return False

        previous = self.current_path
        if not silent:
            self._bus.publish(
                EventKind.ROUTER_BEFORE_NAVIGATE,
                Navigation(from_path=previous, to_path=target, view=route.view),
            )
        if route.handler is not None:
            await route.handler(route)
        self._current = route
        if not silent:
            self._record(target, replace=replace)
            self._bus.publish(
                EventKind.ROUTER_NAVIGATED,
                Navigation(from_path=previous, to_path=target, view=route.view),
            )
        log.debug("navigated", path=target, view=route.view, silent=silent)
        return True

    async def back(self) -> bool:
        if len(self._history) < 2:
            return False
        self._history.pop()
        return await self.navigate(self._history[-1], silent=True)

    def _record(self, path: str, *, replace: bool) -> None:
        if replace and self._history:
            self._history[-1] = path
        else:
            self._history.append(path)
        del self._history[: -self._history_limit]

    async def on_initialize(self, ctx: InitContext | None) -> dict[str, Any]:
        # Initial content is produced by the initial-render phase, so the
        # initial route is activated without invoking its handler.
        route = self.match(self._initial_path)
        if route is None:
            log.warning("initial_route_not_found", path=self._initial_path)
            self._bus.publish(EventKind.ROUTER_NOT_FOUND, RouteNotFound(path=_normalize(self._initial_path)))
        else:
            self._current = route
            self._history = [route.path]
        return {"routes": len(self._routes), "initial_path": self.current_path}

    def clear(self) -> None:
        """Forget every route and the navigation history."""
        self._routes.clear()
        self._history.clear()
        self._current = None

    async def on_destroy(self) -> None:
        self.clear()


def _normalize(path: str) -> str:
    path = path.split("?", 1)[0].split("#", 1)[0] or "/"
    if not path.startswith("/"):
        path = "/" + path
    if len(path) > 1:
        path = path.rstrip("/") or "/"
    return path


# --- Module Notes -----------------------------------------------------------
# Silent navigation runs the handler but leaves history untouched and
# publishes nothing; `back()` uses it to restore the previous route.
