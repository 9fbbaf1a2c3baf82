"""
portfolio_runtime.services.theme

Light/dark theme management.

Responsibilities:
- Resolve the active theme from the stored choice, else the system preference.
- React to `theme:change` / `theme:toggle` requests; announce `theme:changed`.
- Apply the theme to the document root and persist explicit choices.
"""

from __future__ import annotations

from typing import Any

from portfolio_runtime.core.events import Event, EventBus, EventKind, ThemeChanged
from portfolio_runtime.core.lifecycle import InitContext, LifecycleModule
from portfolio_runtime.observability.logging import get_logger
from portfolio_runtime.services.preferences import PreferenceStore
from portfolio_runtime.views.document import Document

log = get_logger(__name__)

THEMES = ("light", "dark")
THEME_COLORS = {"light": "#ffffff", "dark": "#1a1a1a"}
CHOICE_KEY = "theme.choice"


class ThemeManager(LifecycleModule):
    name = "theme"

    def __init__(
        self,
        *,
        bus: EventBus,
        preferences: PreferenceStore,
        document: Document | None = None,
        system_preference: str = "light",
    ) -> None:
        super().__init__()
        self._bus = bus
        self._preferences = preferences
        self._document = document
        self._system = system_preference if system_preference in THEMES else "light"
        self._current: str | None = None
        self._subs = bus.group(self.name)

    @property
    def current(self) -> str:
        return self._current or self._system

    @property
    def system_preference(self) -> str:
        return self._system

    @property
    def is_manual(self) -> bool:
        return self._preferences.get(CHOICE_KEY) in THEMES

    @property
    def is_dark(self) -> bool:
        return self.current == "dark"

    def info(self) -> dict[str, Any]:
        return {
            "current": self.current,
            "system": self._system,
            "manual": self.is_manual,
            "available": list(THEMES),
        }

    def set_theme(self, theme: str, *, system: bool = False) -> bool:
        if theme not in THEMES:
            log.warning("invalid_theme", theme=theme)
            return False
        previous = self._current
        self._current = theme
        if system:
            self._preferences.delete(CHOICE_KEY)
        else:
            self._preferences.set(CHOICE_KEY, theme)
        self._apply(theme)
        log.info("theme_changed", theme=theme, previous=previous, system=system)
        self._bus.publish(EventKind.THEME_CHANGED, ThemeChanged(theme=theme, previous=previous, system=system))
        return True

    def toggle(self) -> str:
        self.set_theme("light" if self.is_dark else "dark")
        return self.current

    def reset_to_system(self) -> str:
        self.set_theme(self._system, system=True)
        return self.current

    def set_system_preference(self, theme: str) -> None:
        if theme not in THEMES:
            return
        self._system = theme
        # An explicit choice wins over the system until reset.
        if not self.is_manual:
            self.set_theme(theme, system=True)

    def _apply(self, theme: str) -> None:
        if self._document is None:
            return
        self._document.root_attributes["data-theme"] = theme
        self._document.meta["theme-color"] = THEME_COLORS[theme]

    def _on_change(self, event: Event) -> None:
        self.set_theme(event.payload.theme)

    def _on_toggle(self, event: Event) -> None:
        self.toggle()

    async def on_initialize(self, ctx: InitContext | None) -> dict[str, Any]:
        stored = self._preferences.get(CHOICE_KEY)
        self._current = stored if stored in THEMES else self._system
        self._apply(self._current)
        self._subs.subscribe(EventKind.THEME_CHANGE, self._on_change)
        self._subs.subscribe(EventKind.THEME_TOGGLE, self._on_toggle)
        log.info("theme_ready", theme=self._current, manual=self.is_manual)
        return self.info()

    async def on_destroy(self) -> None:
        self._subs.cancel_all()
        self._current = None
