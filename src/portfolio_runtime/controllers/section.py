"""
portfolio_runtime.controllers.section

Renders portfolio sections into the main content area.

Responsibilities:
- Show all sections, or one active section, through the `section` view.
- Track per-section view counts.
- Serve `section:activate` requests and announce `section:activated`.
"""

from __future__ import annotations

from collections import Counter
from typing import Any

from portfolio_runtime.controllers.base import Controller
from portfolio_runtime.core.events import ErrorSink, Event, EventBus, EventKind, SectionRef
from portfolio_runtime.core.lifecycle import InitContext
from portfolio_runtime.models.content import ContentModel, ContentSnapshot, Section, search_sections
from portfolio_runtime.views.cache import RenderOutcome, ViewRenderCache


class SectionController(Controller):
    name = "section_controller"

    def __init__(
        self,
        *,
        bus: EventBus,
        content: ContentModel,
        views: ViewRenderCache,
        reporter: ErrorSink | None = None,
        view: str = "section",
        container: str = "main-content",
    ) -> None:
        super().__init__(bus=bus, reporter=reporter)
        self._content = content
        self._views = views
        self._view = view
        self._container = container
        self._snapshot = ContentSnapshot()
        self._view_counts: Counter[str] = Counter()
        self.active: str | None = None

    @property
    def snapshot(self) -> ContentSnapshot:
        return self._snapshot

    def view_count(self, section_id: str) -> int:
        return self._view_counts[section_id]

    def view_data(self, section_id: str | None = None) -> dict[str, Any]:
        section = self._snapshot.get(section_id) if section_id else None
        chosen = (section,) if section is not None else self._snapshot.sections
        return {
            "sections": [s.model_dump(mode="json") for s in chosen],
            "active": section.id if section is not None else None,
        }

    async def show(self, section_id: str | None = None) -> RenderOutcome:
        data = self.view_data(section_id)
        outcome = await self._views.render_view(self._view, data, self._container)
        self.active = data["active"]
        if outcome.ok and self.active is not None:
            self._view_counts[self.active] += 1
            self._bus.publish(EventKind.SECTION_ACTIVATED, SectionRef(section_id=self.active))
        return outcome

    def search(self, term: str, *, limit: int = 10) -> list[Section]:
        return search_sections(self._snapshot.sections, term, limit=limit)

    def _on_activate(self, event: Event) -> None:
        self.spawn(self.show(event.payload.section_id), label="activate")

    async def on_initialize(self, ctx: InitContext | None) -> dict[str, Any]:
        snapshot = ctx.result(self._content.name) if ctx is not None else None
        self._snapshot = snapshot if isinstance(snapshot, ContentSnapshot) else self._content.snapshot
        self._subs.subscribe(EventKind.SECTION_ACTIVATE, self._on_activate)
        return {"sections": len(self._snapshot.sections), "fallback": self._snapshot.is_fallback}

    async def on_destroy(self) -> None:
        await super().on_destroy()
        self._view_counts.clear()
        self.active = None
