"""
portfolio_runtime.services.accessibility

Font scaling, screen-reader announcements and focus management.
"""

from __future__ import annotations

from typing import Any

from portfolio_runtime.core.events import Event, EventBus, EventKind, FontSizeChanged
from portfolio_runtime.core.lifecycle import InitContext, LifecycleModule
from portfolio_runtime.observability.logging import get_logger
from portfolio_runtime.services.preferences import PreferenceStore
from portfolio_runtime.views.document import Document

log = get_logger(__name__)

MIN_FONT_SIZE = 80
MAX_FONT_SIZE = 150
FONT_STEP = 10
DEFAULT_FONT_SIZE = 100
FONT_SIZE_KEY = "accessibility.font_size"

MAIN_CONTENT = "main-content"


def clamp_font_size(value: Any) -> int:
    try:
        size = int(value)
    except (TypeError, ValueError):
        return DEFAULT_FONT_SIZE
    return max(MIN_FONT_SIZE, min(MAX_FONT_SIZE, size))


class AccessibilityManager(LifecycleModule):
    name = "accessibility"

    def __init__(
        self,
        *,
        bus: EventBus,
        preferences: PreferenceStore,
        document: Document | None = None,
        announcement_limit: int = 50,
    ) -> None:
        super().__init__()
        self._bus = bus
        self._preferences = preferences
        self._document = document
        self._announcement_limit = announcement_limit
        self._font_size = DEFAULT_FONT_SIZE
        self._subs = bus.group(self.name)
        self.announcements: list[str] = []
        self.focused: str | None = None

    @property
    def font_size(self) -> int:
        return self._font_size

    @property
    def reduced_motion(self) -> bool:
        return bool(self._preferences.get("accessibility.reduced_motion", False))

    def increase_font_size(self) -> int:
        return self.set_font_size(self._font_size + FONT_STEP)

    def decrease_font_size(self) -> int:
        return self.set_font_size(self._font_size - FONT_STEP)

    def reset_font_size(self) -> int:
        return self.set_font_size(DEFAULT_FONT_SIZE)

    def set_font_size(self, size: int) -> int:
        clamped = clamp_font_size(size)
        if clamped == self._font_size and self._preferences.get(FONT_SIZE_KEY) == clamped:
            return clamped
        self._font_size = clamped
        self._preferences.set(FONT_SIZE_KEY, clamped)
        self._apply()
        self.announce(f"Font size changed to {clamped} percent")
        self._bus.publish(EventKind.FONT_SIZE_CHANGED, FontSizeChanged(size=clamped))
        return clamped

    def announce(self, message: str) -> None:
        self.announcements.append(message)
        del self.announcements[: -self._announcement_limit]
        log.debug("announcement", message=message)

    def focus(self, container: str) -> bool:
        if self._document is not None and container not in self._document.containers:
            return False
        self.focused = container
        return True

    def _apply(self) -> None:
        if self._document is not None:
            self._document.root_style["font-size"] = f"{self._font_size}%"

    def _on_navigated(self, event: Event) -> None:
        self.focus(MAIN_CONTENT)
        self.announce(f"Navigated to {event.payload.to_path}")

    async def on_initialize(self, ctx: InitContext | None) -> dict[str, Any]:
        self._font_size = clamp_font_size(self._preferences.get(FONT_SIZE_KEY, DEFAULT_FONT_SIZE))
        self._apply()
        self._subs.subscribe(EventKind.FONT_INCREASE, lambda _: self.increase_font_size())
        self._subs.subscribe(EventKind.FONT_DECREASE, lambda _: self.decrease_font_size())
        self._subs.subscribe(EventKind.FONT_RESET, lambda _: self.reset_font_size())
        self._subs.subscribe(EventKind.ROUTER_NAVIGATED, self._on_navigated)
        self.announce("Portfolio website loaded successfully")
        return {"font_size": self._font_size, "reduced_motion": self.reduced_motion}

    async def on_destroy(self) -> None:
        self._subs.cancel_all()
        self.announcements.clear()
        self.focused = None
        self._font_size = DEFAULT_FONT_SIZE
