"""
tests.test_models

Content and user models: validation, lookup and search.
"""

from __future__ import annotations

import pytest

from portfolio_runtime.core.events import Event, EventBus, EventKind
from portfolio_runtime.data.portfolio import SECTIONS
from portfolio_runtime.errors import InitializationError
from portfolio_runtime.models.content import ContentModel, ContentType, validate_sections
from portfolio_runtime.models.user import UserModel


@pytest.mark.asyncio
async def test_content_loads_bundled_sections(bus: EventBus) -> None:
    loaded: list[Event] = []
    bus.subscribe(EventKind.CONTENT_LOADED, loaded.append)
    model = ContentModel(bus=bus)

    snapshot = await model.initialize()

    assert [s.id for s in snapshot.sections] == [s["id"] for s in SECTIONS]
    assert not snapshot.is_fallback
    assert loaded[0].payload.section_count == len(SECTIONS)
    assert [s.id for s in model.sections(ContentType.TIMELINE)] == ["experience"]
    assert model.section("skills") is not None
    assert model.section("missing") is None


@pytest.mark.asyncio
async def test_search_matches_nested_content(bus: EventBus) -> None:
    model = ContentModel(bus=bus)
    await model.initialize()

    assert [s.id for s in model.search("event-driven")] == ["experience"]
    assert model.search("   ") == []
    assert len(model.search("e", limit=2)) == 2


def test_duplicate_section_ids_are_rejected() -> None:
    raw = [{"id": "about", "type": "cards", "title": "A"}, {"id": "about", "type": "cards", "title": "B"}]
    with pytest.raises(ValueError, match="duplicate"):
        validate_sections(raw)


@pytest.mark.parametrize(
    "record",
    [
        {"id": "About", "type": "cards", "title": "x"},
        {"id": "about", "type": "carousel", "title": "x"},
        {"id": "about", "type": "cards", "title": ""},
        {"id": "about", "type": "cards", "title": "x", "subtitle": "s" * 201},
    ],
)
@pytest.mark.asyncio
async def test_invalid_content_fails_initialization(bus: EventBus, record: dict) -> None:
    model = ContentModel(bus=bus, source=[record])

    with pytest.raises(InitializationError) as info:
        await model.initialize()

    assert info.value.module == "content"
    assert not model.is_initialized


@pytest.mark.asyncio
async def test_user_model_validates_profile(bus: EventBus) -> None:
    names: list[str] = []
    bus.subscribe(EventKind.USER_LOADED, lambda e: names.append(e.payload.user_name))

    profile = await UserModel(bus=bus, source={"name": "Sam", "links": [{"label": "Site", "url": "https://x.test"}]}).initialize()

    assert profile.links[0].label == "Site"
    assert names == ["Sam"]

    with pytest.raises(InitializationError):
        await UserModel(bus=bus, source={"title": "no name"}).initialize()
