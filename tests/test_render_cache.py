"""
tests.test_render_cache

ViewRenderCache: memoization, eviction, expiry, serialization and failure handling.
"""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from portfolio_runtime.core.events import Event, EventBus, EventKind
from portfolio_runtime.errors import RegistrationError
from portfolio_runtime.services.error_reporter import ErrorReporter
from portfolio_runtime.views.base import BaseView
from portfolio_runtime.views.cache import TRANSITION_CLASS, ViewRenderCache, stable_serialize
from portfolio_runtime.views.document import Document


class CountingView(BaseView):
    name = "hero"

    def __init__(self) -> None:
        self.renders = 0
        self.inits: list[Any] = []

    def render(self, data: Any) -> str:
        self.renders += 1
        return f"<h1>{data['name']}</h1>"

    async def init(self, data: Any) -> None:
        self.inits.append(data)


class BrokenView(BaseView):
    name = "broken"

    def render(self, data: Any) -> str:
        raise ValueError("missing field")


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def make_cache(bus: EventBus, reporter: ErrorReporter | None = None, **kwargs: Any) -> ViewRenderCache:
    kwargs.setdefault("transition", 0)
    return ViewRenderCache(
        bus=bus, document=Document(), reporter=reporter.capture if reporter else None, **kwargs
    )


@pytest.mark.asyncio
async def test_second_render_is_served_from_cache(bus: EventBus) -> None:
    cache = make_cache(bus)
    view = CountingView()
    cache.register_view("hero", view)
    rendered: list[Event] = []
    bus.subscribe(EventKind.VIEW_RENDERED, rendered.append)

    first = await cache.render_view("hero", {"name": "A"}, "hero-section")
    second = await cache.render_view("hero", {"name": "A"}, "hero-section")

    assert view.renders == 1
    assert first.html == second.html == "<h1>A</h1>"
    assert not first.from_cache
    assert second.from_cache
    assert [e.payload.from_cache for e in rendered] == [False, True]
    assert view.inits == [{"name": "A"}, {"name": "A"}]
    assert cache.stats()["hits"] == 1


@pytest.mark.asyncio
async def test_cache_key_ignores_key_order(bus: EventBus) -> None:
    cache = make_cache(bus)
    view = CountingView()
    cache.register_view("hero", view)

    await cache.render_view("hero", {"name": "A", "title": "x"}, "hero-section")
    await cache.render_view("hero", {"title": "x", "name": "A"}, "hero-section")

    assert view.renders == 1


def test_stable_serialize_is_canonical() -> None:
    assert stable_serialize({"b": 1, "a": [1, {"d": 2, "c": 3}]}) == '{"a":[1,{"c":3,"d":2}],"b":1}'
    assert stable_serialize({"s": {3, 1, 2}}) == '{"s":[1,2,3]}'
    with pytest.raises(TypeError):
        stable_serialize({"x": object()})


@pytest.mark.asyncio
async def test_oldest_entry_is_evicted(bus: EventBus) -> None:
    cache = make_cache(bus, max_entries=2)
    view = CountingView()
    cache.register_view("hero", view)

    for name in ("A", "B", "C"):
        await cache.render_view("hero", {"name": name}, "hero-section")
    await cache.render_view("hero", {"name": "A"}, "hero-section")

    assert view.renders == 4
    assert cache.evictions == 2
    assert len(cache) == 2


@pytest.mark.asyncio
async def test_expired_entries_are_rerendered(bus: EventBus) -> None:
    clock = FakeClock()
    cache = make_cache(bus, ttl=10, clock=clock)
    view = CountingView()
    cache.register_view("hero", view)

    await cache.render_view("hero", {"name": "A"}, "hero-section")
    clock.now = 5
    await cache.render_view("hero", {"name": "A"}, "hero-section")
    clock.now = 10
    await cache.render_view("hero", {"name": "A"}, "hero-section")

    assert view.renders == 2


@pytest.mark.asyncio
async def test_disabled_cache_always_renders(bus: EventBus) -> None:
    cache = make_cache(bus, enabled=False)
    view = CountingView()
    cache.register_view("hero", view)

    await cache.render_view("hero", {"name": "A"}, "hero-section")
    await cache.render_view("hero", {"name": "A"}, "hero-section")

    assert view.renders == 2
    assert len(cache) == 0


@pytest.mark.asyncio
async def test_reregistering_a_view_invalidates_its_entries(bus: EventBus) -> None:
    cache = make_cache(bus)
    cache.register_view("hero", CountingView())
    await cache.render_view("hero", {"name": "A"}, "hero-section")

    replacement = CountingView()
    cache.register_view("hero", replacement)
    await cache.render_view("hero", {"name": "A"}, "hero-section")

    assert replacement.renders == 1


@pytest.mark.asyncio
async def test_render_failure_writes_inline_fallback(bus: EventBus, reporter: ErrorReporter) -> None:
    document = Document()
    cache = ViewRenderCache(bus=bus, document=document, reporter=reporter.capture, transition=0)
    cache.register_view("broken", BrokenView())
    failures: list[Event] = []
    bus.subscribe(EventKind.VIEW_RENDER_ERROR, failures.append)

    outcome = await cache.render_view("broken", {}, "main-content")

    assert not outcome.ok
    assert "content-error-state" in document.surface("main-content").html
    assert failures[0].payload.view == "broken"
    assert reporter.reports[-1].kind == "render_error"
    assert reporter.reports[-1].phase == "render"
    assert len(cache) == 0


@pytest.mark.asyncio
async def test_non_string_render_is_a_render_error(bus: EventBus) -> None:
    class NumberView(BaseView):
        def render(self, data: Any) -> str:
            return 42  # type: ignore[return-value]

    cache = make_cache(bus)
    cache.register_view("number", NumberView())

    outcome = await cache.render_view("number", None, "main-content")

    assert outcome.error is not None
    assert "must return str" in str(outcome.error)


@pytest.mark.asyncio
async def test_unknown_view_and_container_are_rejected(bus: EventBus) -> None:
    cache = make_cache(bus)
    with pytest.raises(RegistrationError):
        await cache.render_view("missing", {}, "main-content")

    cache.register_view("hero", CountingView())
    with pytest.raises(RegistrationError):
        await cache.render_view("hero", {"name": "A"}, "sidebar")


@pytest.mark.asyncio
async def test_renders_into_one_container_are_serialized(bus: EventBus) -> None:
    document = Document()
    cache = ViewRenderCache(bus=bus, document=document, transition=0.02, enabled=False)
    order: list[str] = []

    class SlowInitView(BaseView):
        def render(self, data: Any) -> str:
            order.append(f"render:{data}")
            return str(data)

        async def init(self, data: Any) -> None:
            await asyncio.sleep(0.01)
            order.append(f"init:{data}")

    cache.register_view("slow", SlowInitView())

    await asyncio.gather(
        cache.render_view("slow", "one", "main-content"),
        cache.render_view("slow", "two", "main-content"),
    )

    assert order == ["render:one", "init:one", "render:two", "init:two"]
    assert document.surface("main-content").html == "two"
    assert TRANSITION_CLASS not in document.surface("main-content").classes


@pytest.mark.asyncio
async def test_destroy_calls_view_destroy_and_clears(bus: EventBus) -> None:
    destroyed: list[str] = []

    class TrackedView(CountingView):
        def destroy(self) -> None:
            destroyed.append("hero")

    cache = make_cache(bus)
    await cache.initialize()
    cache.register_view("hero", TrackedView())
    await cache.render_view("hero", {"name": "A"}, "hero-section")

    await cache.destroy()

    assert destroyed == ["hero"]
    assert cache.views == ()
    assert len(cache) == 0


@pytest.mark.asyncio
async def test_invalidate_and_clear(bus: EventBus) -> None:
    cache = make_cache(bus)
    cache.register_view("hero", CountingView())
    cache.register_view("other", CountingView())
    await cache.render_view("hero", {"name": "A"}, "hero-section")
    await cache.render_view("hero", {"name": "B"}, "hero-section")
    await cache.render_view("other", {"name": "A"}, "main-content")

    assert cache.invalidate("hero") == 2
    assert len(cache) == 1

    cache.clear_cache()
    assert len(cache) == 0
    assert cache.stats()["renders"] == {"hero": 2, "other": 1}
