"""
portfolio_runtime.core.events

Synchronous publish/subscribe hub with a closed, versioned set of event kinds.

Responsibilities:
- Define every event kind the runtime emits (`EventKind`) and its payload model.
- Deliver events synchronously to a snapshot of subscribers, in subscription order.
- Isolate handler failures: forward them to the error sink, never to the publisher.
- Hand out explicit cancellation tokens (`Subscription`) and owner groups.
"""

from __future__ import annotations

import enum
import inspect
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Literal, Protocol

from pydantic import BaseModel, ConfigDict

from portfolio_runtime.errors import EventPayloadError, RegistrationError
from portfolio_runtime.observability.logging import get_logger

log = get_logger(__name__)

EVENT_SCHEMA_VERSION = 1


class EventKind(enum.StrEnum):
    # Values are the wire-level names; subscribers must use the enum member.
    APP_BOOTSTRAPPING = "app:bootstrapping"
    APP_PHASE = "app:phase"
    APP_INITIALIZED = "app:initialized"
    APP_DEGRADED = "app:degraded"
    APP_ERROR = "app:error"
    APP_DESTROYED = "app:destroyed"
    APP_ONLINE = "app:online"
    APP_OFFLINE = "app:offline"
    MODULE_STATUS = "module:status"

    VIEW_RENDERED = "view:rendered"
    VIEW_RENDER_ERROR = "view:renderError"

    ROUTER_BEFORE_NAVIGATE = "router:beforeNavigate"
    ROUTER_NAVIGATED = "router:navigated"
    ROUTER_NOT_FOUND = "router:404"

    NAVIGATION_CLICKED = "navigation:clicked"
    NAVIGATION_RENDERED = "navigation:rendered"
    SECTION_ACTIVATE = "section:activate"
    SECTION_ACTIVATED = "section:activated"

    CONTENT_LOADED = "content:loaded"
    USER_LOADED = "user:loaded"

    THEME_CHANGE = "theme:change"
    THEME_TOGGLE = "theme:toggle"
    THEME_CHANGED = "theme:changed"

    FONT_INCREASE = "accessibility:increaseFont"
    FONT_DECREASE = "accessibility:decreaseFont"
    FONT_RESET = "accessibility:resetFont"
    FONT_SIZE_CHANGED = "accessibility:fontSizeChanged"

    ERROR_REPORTED = "error:reported"
    PERFORMANCE_METRIC = "performance:metric"


# --- Payload models ---------------------------------------------------------


class Payload(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)


class NoPayload(Payload):
    pass


class AppLifecycle(Payload):
    state: str
    degraded: bool = False
    failed_modules: tuple[str, ...] = ()
    duration: float | None = None
    error: str | None = None


class PhaseProgress(Payload):
    phase: str
    stage: Literal["started", "completed", "aborted"]
    duration: float | None = None


class ModuleStatusChanged(Payload):
    module: str
    phase: str
    status: str
    criticality: str
    error: str | None = None


class ConnectivityChanged(Payload):
    online: bool


class ViewRendered(Payload):
    view: str
    container: str
    from_cache: bool
    duration: float


class ViewRenderFailed(Payload):
    view: str
    container: str
    error: BaseException


class Navigation(Payload):
    from_path: str | None
    to_path: str
    view: str


class RouteNotFound(Payload):
    path: str


class NavigationClicked(Payload):
    path: str


class NavigationRendered(Payload):
    current_path: str
    items: int


class SectionRef(Payload):
    section_id: str


class ContentLoaded(Payload):
    section_count: int


class UserLoaded(Payload):
    user_name: str


class ThemeRequest(Payload):
    theme: str


class ThemeChanged(Payload):
    theme: str
    previous: str | None
    system: bool = False


class FontSizeChanged(Payload):
    size: int


class ErrorReported(Payload):
    report_id: str
    kind: str
    severity: str
    phase: str
    module: str | None = None


class PerformanceMetric(Payload):
    name: str
    value: float


PAYLOAD_TYPES: dict[EventKind, type[Payload]] = {
    EventKind.APP_BOOTSTRAPPING: AppLifecycle,
    EventKind.APP_PHASE: PhaseProgress,
    EventKind.APP_INITIALIZED: AppLifecycle,
    EventKind.APP_DEGRADED: AppLifecycle,
    EventKind.APP_ERROR: AppLifecycle,
    EventKind.APP_DESTROYED: AppLifecycle,
    EventKind.APP_ONLINE: ConnectivityChanged,
    EventKind.APP_OFFLINE: ConnectivityChanged,
    EventKind.MODULE_STATUS: ModuleStatusChanged,
    EventKind.VIEW_RENDERED: ViewRendered,
    EventKind.VIEW_RENDER_ERROR: ViewRenderFailed,
    EventKind.ROUTER_BEFORE_NAVIGATE: Navigation,
    EventKind.ROUTER_NAVIGATED: Navigation,
    EventKind.ROUTER_NOT_FOUND: RouteNotFound,
    EventKind.NAVIGATION_CLICKED: NavigationClicked,
    EventKind.NAVIGATION_RENDERED: NavigationRendered,
    EventKind.SECTION_ACTIVATE: SectionRef,
    EventKind.SECTION_ACTIVATED: SectionRef,
    EventKind.CONTENT_LOADED: ContentLoaded,
    EventKind.USER_LOADED: UserLoaded,
    EventKind.THEME_CHANGE: ThemeRequest,
    EventKind.THEME_TOGGLE: NoPayload,
    EventKind.THEME_CHANGED: ThemeChanged,
    EventKind.FONT_INCREASE: NoPayload,
    EventKind.FONT_DECREASE: NoPayload,
    EventKind.FONT_RESET: NoPayload,
    EventKind.FONT_SIZE_CHANGED: FontSizeChanged,
    EventKind.ERROR_REPORTED: ErrorReported,
    EventKind.PERFORMANCE_METRIC: PerformanceMetric,
}


# --- Bus --------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Event:
    kind: EventKind
    payload: Payload
    version: int = EVENT_SCHEMA_VERSION
    timestamp: float = 0.0


Handler = Callable[[Event], Any]


class ErrorSink(Protocol):
    def __call__(self, error: BaseException, *, phase: str, module: str | None = None, **context: Any) -> Any: ...


@dataclass(eq=False, slots=True)
class Subscription:
    """
    Cancellation handle for one handler registration. Identity-compared, so the
    same callable subscribed twice yields two independent tokens.
    """

    kind: EventKind
    handler: Handler
    bus: EventBus
    owner: str | None = None
    active: bool = True

    def cancel(self) -> bool:
        return self.bus.unsubscribe(self)


@dataclass(slots=True)
class SubscriptionGroup:
    """All subscriptions owned by one component; `cancel_all()` at destroy time."""

    bus: EventBus
    owner: str
    tokens: list[Subscription] = field(default_factory=list)

    def subscribe(self, kind: EventKind | str, handler: Handler) -> Subscription:
        token = self.bus.subscribe(kind, handler, owner=self.owner)
        self.tokens.append(token)
        return token

    def cancel_all(self) -> int:
        removed = sum(1 for token in self.tokens if token.cancel())
        self.tokens.clear()
        return removed

    def __len__(self) -> int:
        return sum(1 for token in self.tokens if token.active)


class EventBus:
    """
    Explicitly constructed (no module-level singleton) so every orchestrator and
    every test gets an isolated subscriber table.
    """

    def __init__(
        self,
        *,
        error_sink: ErrorSink | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._subscribers: dict[EventKind, list[Subscription]] = {}
        self._error_sink = error_sink
        self._clock = clock

    def set_error_sink(self, sink: ErrorSink | None) -> None:
        self._error_sink = sink

    def subscribe(self, kind: EventKind | str, handler: Handler, *, owner: str | None = None) -> Subscription:
        event_kind = _coerce_kind(kind)
        if not callable(handler):
            raise RegistrationError("event handler must be callable", event=event_kind.value)
        if inspect.iscoroutinefunction(handler) or inspect.iscoroutinefunction(getattr(handler, "__call__", None)):
            # Delivery is synchronous; a coroutine handler would never be awaited.
            raise RegistrationError("event handler must be synchronous", event=event_kind.value)
        token = Subscription(kind=event_kind, handler=handler, bus=self, owner=owner)
        # Copy-on-write keeps snapshots taken by in-flight publishes untouched.
        self._subscribers[event_kind] = [*self._subscribers.get(event_kind, []), token]
        return token

    def unsubscribe(self, token: Subscription) -> bool:
        if not token.active:
            return False
        current = self._subscribers.get(token.kind, [])
        remaining = [t for t in current if t is not token]
        token.active = False
        if len(remaining) == len(current):
            return False
        if remaining:
            self._subscribers[token.kind] = remaining
        else:
            self._subscribers.pop(token.kind, None)
        return True

    def group(self, owner: str) -> SubscriptionGroup:
        return SubscriptionGroup(bus=self, owner=owner)

    def publish(self, kind: EventKind | str, payload: Payload | None = None) -> int:
        """
        Deliver to the subscribers registered at call time; returns the number of
        handlers that completed without raising.
        """

        event_kind = _coerce_kind(kind)
        expected = PAYLOAD_TYPES[event_kind]
        if payload is None and expected is NoPayload:
            payload = NoPayload()
        if not isinstance(payload, expected):
            raise EventPayloadError(
                f"{event_kind.value} expects {expected.__name__}",
                event=event_kind.value,
                got=type(payload).__name__,
            )

        event = Event(kind=event_kind, payload=payload, timestamp=self._clock())
        snapshot = tuple(self._subscribers.get(event_kind, ()))
        delivered = 0
        for token in snapshot:
            try:
                token.handler(event)
                delivered += 1
            except Exception as exc:
                self._forward_handler_error(exc, event_kind, token)
        return delivered

    def subscriber_count(self, kind: EventKind | str | None = None) -> int:
        if kind is None:
            return sum(len(tokens) for tokens in self._subscribers.values())
        return len(self._subscribers.get(_coerce_kind(kind), ()))

    def clear(self) -> None:
        for tokens in self._subscribers.values():
            for token in tokens:
                token.active = False
        self._subscribers.clear()

    def _forward_handler_error(self, exc: Exception, kind: EventKind, token: Subscription) -> None:
        handler_name = getattr(token.handler, "__qualname__", repr(token.handler))
        if self._error_sink is None:
            log.error("event_handler_failed", event=kind.value, handler=handler_name, error=str(exc))
            return
        try:
            self._error_sink(exc, phase="event", module=token.owner, event=kind.value, handler=handler_name)
        except Exception as sink_exc:
            # The sink itself failing must not break delivery either.
            log.error("error_sink_failed", event=kind.value, error=str(sink_exc))


def _coerce_kind(kind: EventKind | str) -> EventKind:
    if isinstance(kind, EventKind):
        return kind
    try:
        return EventKind(kind)
    except ValueError:
        raise RegistrationError(f"unknown event kind: {kind!r}", event=str(kind)) from None


# --- Module Notes -----------------------------------------------------------
# Adding an event kind means adding both the enum member and its payload model;
# `PAYLOAD_TYPES` must stay total over `EventKind` (see tests/test_events.py).
