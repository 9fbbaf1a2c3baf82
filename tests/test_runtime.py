"""
tests.test_runtime

End-to-end bootstrap of the composed portfolio runtime.
"""

from __future__ import annotations

import asyncio
import datetime as dt

import pytest

from portfolio_runtime.core.events import EventKind, NavigationClicked, SectionRef
from portfolio_runtime.orchestrator.descriptors import InitStatus
from portfolio_runtime.orchestrator.plan import build_runtime
from portfolio_runtime.orchestrator.status import AppState
from portfolio_runtime.services.preferences import MemoryBackend
from portfolio_runtime.settings import Settings


@pytest.mark.asyncio
async def test_start_renders_every_container(settings: Settings) -> None:
    rt = build_runtime(settings)

    assert await rt.start() is AppState.RUNNING

    assert not rt.orchestrator.is_degraded
    doc = rt.document
    assert 'href="/" class="nav__link nav__link--active"' in doc.surface("main-nav").html
    assert "Alex Moreira" in doc.surface("hero-section").html
    main = doc.surface("main-content").html
    for section_id in ("about", "experience", "projects", "skills", "gallery"):
        assert f'id="{section_id}"' in main
    assert str(dt.datetime.now(dt.UTC).year) in doc.surface("main-footer").html
    assert 'data-theme="light"' in rt.render_document()
    assert rt.accessibility.announcements[0] == "Portfolio website loaded successfully"

    await rt.stop()


@pytest.mark.asyncio
async def test_navigation_rerenders_content_and_nav(settings: Settings) -> None:
    rt = build_runtime(settings)
    await rt.start()

    assert await rt.navigate("/projects")

    main = rt.document.surface("main-content").html
    assert 'id="projects" class="section section--active"' in main
    assert 'id="about"' not in main
    assert 'href="/projects" class="nav__link nav__link--active"' in rt.document.surface("main-nav").html
    assert rt.sections.view_count("projects") == 1
    assert rt.accessibility.focused == "main-content"
    assert rt.performance.counter("navigation.count") == 1
    assert rt.router.history == ("/", "/projects")

    await rt.stop()


@pytest.mark.asyncio
async def test_bus_driven_navigation_and_section_activation(settings: Settings) -> None:
    rt = build_runtime(settings)
    await rt.start()

    rt.bus.publish(EventKind.NAVIGATION_CLICKED, NavigationClicked(path="/skills"))
    await rt.settle()
    assert rt.router.current_path == "/skills"
    assert "nav__link--active" in rt.document.surface("main-nav").html

    rt.bus.publish(EventKind.SECTION_ACTIVATE, SectionRef(section_id="gallery"))
    await rt.settle()
    assert rt.sections.active == "gallery"

    await rt.stop()


@pytest.mark.asyncio
async def test_unknown_path_counts_not_found(settings: Settings) -> None:
    rt = build_runtime(settings)
    await rt.start()

    assert not await rt.navigate("/nowhere")

    assert rt.orchestrator.status_report().counters["not_found"] == 1
    assert rt.router.current_path == "/"

    await rt.stop()


@pytest.mark.asyncio
async def test_invalid_content_degrades_to_fallback(settings: Settings) -> None:
    rt = build_runtime(settings, content_source=[{"id": "Not Valid", "type": "cards", "title": "x"}])

    assert await rt.start() is AppState.RUNNING

    assert rt.orchestrator.is_degraded
    assert rt.orchestrator.failed_modules == ["content"]
    assert rt.orchestrator.status_of("content") is InitStatus.FAILED
    assert rt.sections.snapshot.is_fallback
    assert "Content is temporarily unavailable." in rt.document.surface("main-content").html
    report = rt.reporter.reports[-1]
    assert (report.module, report.kind) == ("content", "initialization_error")

    await rt.stop()


@pytest.mark.asyncio
async def test_invalid_user_falls_back_to_placeholder_profile(settings: Settings) -> None:
    rt = build_runtime(settings, user_source={"name": ""})

    await rt.start()

    assert rt.orchestrator.failed_modules == ["user"]
    assert "Content temporarily unavailable" in rt.document.surface("hero-section").html

    await rt.stop()


@pytest.mark.asyncio
async def test_stored_preferences_apply_on_start(settings: Settings) -> None:
    backend = MemoryBackend({"app-theme": "dark", "app-font-size": "120"})
    rt = build_runtime(settings, preferences_backend=backend)

    await rt.start()

    html = rt.render_document()
    assert 'data-theme="dark"' in html
    assert "font-size: 120%" in html
    assert rt.preferences.migrated

    rt.bus.publish(EventKind.THEME_TOGGLE)
    assert backend.load()["portfolio"]["theme"]["choice"] == "light"

    await rt.stop()


@pytest.mark.asyncio
async def test_initial_path_selects_section(settings: Settings) -> None:
    rt = build_runtime(settings.model_copy(update={"initial_path": "/experience"}))

    await rt.start()

    assert rt.router.current_path == "/experience"
    assert rt.sections.active == "experience"

    await rt.stop()


@pytest.mark.asyncio
async def test_stop_and_restart_rebuilds_the_page(settings: Settings) -> None:
    rt = build_runtime(settings)
    await rt.start()
    first = rt.render_document()

    await rt.stop()
    assert rt.state is AppState.PENDING
    assert rt.document.surface("main-content").html == ""
    assert rt.bus.subscriber_count() == 0

    assert await rt.start() is AppState.RUNNING
    assert rt.render_document() == first
    assert [r.path for r in rt.router.routes] == ["/", "/about", "/experience", "/projects", "/skills", "/gallery"]

    await rt.stop()


@pytest.mark.asyncio
async def test_status_report_lists_every_module(settings: Settings) -> None:
    rt = build_runtime(settings)
    await rt.start()

    report = rt.orchestrator.status_report()

    assert report.state is AppState.RUNNING
    names = [m.name for m in report.modules]
    assert names[:3] == ["preferences", "content", "user"]
    assert names[-1] == "initial_render"
    assert all(m.status == "success" for m in report.modules)
    assert "phase.models" in report.metrics["metrics"]

    await rt.stop()


@pytest.mark.asyncio
async def test_router_failure_leaves_no_routes_for_restart(settings: Settings, monkeypatch) -> None:
    rt = build_runtime(settings)
    original = rt.router.on_initialize

    async def failing_once(ctx):
        monkeypatch.setattr(rt.router, "on_initialize", original)
        raise RuntimeError("history backend unavailable")

    monkeypatch.setattr(rt.router, "on_initialize", failing_once)

    assert await rt.start() is AppState.ERROR
    assert rt.orchestrator.status_of("router") is InitStatus.FAILED
    assert rt.router.routes == ()

    await rt.stop()
    assert await rt.start() is AppState.RUNNING
    assert len(rt.router.routes) == 6

    await rt.stop()


@pytest.mark.asyncio
async def test_concurrent_page_renders_do_not_mix_sections(settings: Settings) -> None:
    rt = build_runtime(settings)
    await rt.start()

    (about_found, about), (projects_found, projects), (missing_found, missing) = await asyncio.gather(
        rt.render_page("/about"),
        rt.render_page("/projects"),
        rt.render_page("/nowhere"),
    )

    assert about_found and projects_found
    assert 'id="about" class="section section--active"' in about
    assert 'id="projects"' not in about
    assert 'id="projects" class="section section--active"' in projects
    assert 'id="about"' not in projects
    assert (missing_found, missing) == (False, "")
    assert rt.router.current_path == "/projects"

    await rt.stop()
