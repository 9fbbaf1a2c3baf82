"""
portfolio_runtime.models.content

Portfolio content model.

Responsibilities:
- Validate raw section records into typed `Section` models.
- Expose lookup, filtering and search over the loaded sections.
- Provide the fallback snapshot substituted when loading fails.
"""

from __future__ import annotations

import enum
from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from portfolio_runtime.core.events import ContentLoaded, EventBus, EventKind
from portfolio_runtime.core.lifecycle import InitContext, LifecycleModule
from portfolio_runtime.data.portfolio import SECTIONS
from portfolio_runtime.errors import InitializationError
from portfolio_runtime.observability.logging import get_logger

log = get_logger(__name__)


class ContentType(enum.StrEnum):
    TIMELINE = "timeline"
    CARDS = "cards"
    GALLERY = "gallery"
    SKILLS = "skills"


class Section(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(pattern=r"^[a-z-]+$")
    type: ContentType
    title: str = Field(min_length=1, max_length=100)
    subtitle: str | None = Field(default=None, max_length=200)
    content: tuple[dict[str, Any], ...] = ()


class ContentSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    sections: tuple[Section, ...] = ()
    is_fallback: bool = False

    def get(self, section_id: str) -> Section | None:
        return next((s for s in self.sections if s.id == section_id), None)


FALLBACK_CONTENT = ContentSnapshot(
    sections=(
        Section(
            id="about",
            type=ContentType.CARDS,
            title="About",
            subtitle="Content is temporarily unavailable.",
            content=({"title": "Please check back soon", "description": "The portfolio content could not be loaded."},),
        ),
    ),
    is_fallback=True,
)


def validate_sections(raw: Iterable[Mapping[str, Any]]) -> tuple[Section, ...]:
    sections = tuple(Section.model_validate(dict(item)) for item in raw)
    seen: set[str] = set()
    for section in sections:
        if section.id in seen:
            raise ValueError(f"duplicate section id: {section.id!r}")
        seen.add(section.id)
    return sections


def search_sections(sections: Iterable[Section], term: str, *, limit: int = 10) -> list[Section]:
    needle = term.strip().lower()
    if not needle:
        return []
    hits = []
    for section in sections:
        haystack = " ".join([section.title, section.subtitle or "", *(_text(item) for item in section.content)])
        if needle in haystack.lower():
            hits.append(section)
            if len(hits) >= limit:
                break
    return hits


def _text(item: Mapping[str, Any]) -> str:
    parts: list[str] = []
    for value in item.values():
        if isinstance(value, str):
            parts.append(value)
        elif isinstance(value, (list, tuple)):
            parts.extend(v for v in value if isinstance(v, str))
    return " ".join(parts)


class ContentModel(LifecycleModule):
    name = "content"

    def __init__(self, *, bus: EventBus, source: Iterable[Mapping[str, Any]] | None = None) -> None:
        super().__init__()
        self._bus = bus
        self._source = list(source) if source is not None else SECTIONS
        self._snapshot = ContentSnapshot()

    @property
    def snapshot(self) -> ContentSnapshot:
        return self._snapshot

    def sections(self, content_type: ContentType | str | None = None) -> tuple[Section, ...]:
        if content_type is None:
            return self._snapshot.sections
        return tuple(s for s in self._snapshot.sections if s.type == content_type)

    def section(self, section_id: str) -> Section | None:
        return self._snapshot.get(section_id)

    def search(self, term: str, *, limit: int = 10) -> list[Section]:
        return search_sections(self._snapshot.sections, term, limit=limit)

    async def on_initialize(self, ctx: InitContext | None) -> ContentSnapshot:
        try:
            sections = validate_sections(self._source)
        except (ValidationError, ValueError) as exc:
            raise InitializationError(self.name, f"invalid content: {exc}") from exc
        self._snapshot = ContentSnapshot(sections=sections)
        log.info("content_loaded", sections=len(sections))
        self._bus.publish(EventKind.CONTENT_LOADED, ContentLoaded(section_count=len(sections)))
        return self._snapshot

    async def on_destroy(self) -> None:
        self._snapshot = ContentSnapshot()
