"""
tests.test_services

Theme, accessibility, performance and error reporting services.
"""

from __future__ import annotations

from collections.abc import Sequence

import pytest

from portfolio_runtime.core.events import (
    Event,
    EventBus,
    EventKind,
    Navigation,
    ThemeRequest,
    ViewRendered,
)
from portfolio_runtime.errors import (
    InitializationError,
    NetworkStatusError,
    OperationTimeout,
    RenderError,
)
from portfolio_runtime.services.accessibility import AccessibilityManager, clamp_font_size
from portfolio_runtime.services.error_reporter import ErrorReport, ErrorReporter, Severity, classify
from portfolio_runtime.services.performance import PerformanceMonitor
from portfolio_runtime.services.preferences import MemoryBackend, PreferenceStore
from portfolio_runtime.services.theme import ThemeManager
from portfolio_runtime.views.document import Document


def stored(**sections: dict) -> PreferenceStore:
    return PreferenceStore(MemoryBackend({"portfolio": {"version": 2, **sections}}))


# --- theme -------------------------------------------------------------------


@pytest.mark.asyncio
async def test_theme_follows_system_until_chosen(bus: EventBus) -> None:
    document = Document()
    prefs = PreferenceStore()
    theme = ThemeManager(bus=bus, preferences=prefs, document=document, system_preference="light")
    changes: list[Event] = []
    bus.subscribe(EventKind.THEME_CHANGED, changes.append)

    await theme.initialize()
    assert theme.current == "light"
    assert not theme.is_manual
    assert document.root_attributes["data-theme"] == "light"

    bus.publish(EventKind.THEME_TOGGLE)

    assert theme.current == "dark"
    assert theme.is_manual
    assert prefs.get("theme.choice") == "dark"
    assert document.meta["theme-color"] == "#1a1a1a"
    assert changes[-1].payload.previous == "light"

    theme.set_system_preference("light")
    assert theme.current == "dark"

    assert theme.reset_to_system() == "light"
    assert not theme.is_manual
    assert prefs.get("theme.choice") is None


@pytest.mark.asyncio
async def test_stored_theme_wins_over_system(bus: EventBus) -> None:
    theme = ThemeManager(bus=bus, preferences=stored(theme={"choice": "dark"}), system_preference="light")

    await theme.initialize()

    assert theme.is_dark
    assert theme.info() == {"current": "dark", "system": "light", "manual": True, "available": ["light", "dark"]}


@pytest.mark.asyncio
async def test_unknown_theme_request_is_ignored(bus: EventBus) -> None:
    theme = ThemeManager(bus=bus, preferences=PreferenceStore())
    await theme.initialize()
    changes: list[Event] = []
    bus.subscribe(EventKind.THEME_CHANGED, changes.append)

    bus.publish(EventKind.THEME_CHANGE, ThemeRequest(theme="purple"))

    assert theme.current == "light"
    assert changes == []


@pytest.mark.asyncio
async def test_theme_destroy_drops_subscriptions(bus: EventBus) -> None:
    theme = ThemeManager(bus=bus, preferences=PreferenceStore())
    await theme.initialize()
    await theme.destroy()

    assert bus.subscriber_count(EventKind.THEME_TOGGLE) == 0


# --- accessibility -----------------------------------------------------------


@pytest.mark.parametrize(
    ("value", "expected"),
    [(50, 80), (80, 80), (120, 120), (150, 150), (400, 150), ("110", 110), ("big", 100), (None, 100)],
)
def test_clamp_font_size(value: object, expected: int) -> None:
    assert clamp_font_size(value) == expected


@pytest.mark.asyncio
async def test_font_size_steps_and_clamps(bus: EventBus) -> None:
    document = Document()
    prefs = PreferenceStore()
    a11y = AccessibilityManager(bus=bus, preferences=prefs, document=document)
    sizes: list[int] = []
    bus.subscribe(EventKind.FONT_SIZE_CHANGED, lambda e: sizes.append(e.payload.size))
    await a11y.initialize()

    for _ in range(7):
        bus.publish(EventKind.FONT_INCREASE)

    assert sizes == [110, 120, 130, 140, 150]
    assert a11y.font_size == 150
    assert document.root_style["font-size"] == "150%"
    assert prefs.get("accessibility.font_size") == 150

    bus.publish(EventKind.FONT_RESET)
    assert a11y.font_size == 100
    assert a11y.announcements[-1] == "Font size changed to 100 percent"


@pytest.mark.asyncio
async def test_stored_font_size_is_clamped_on_load(bus: EventBus) -> None:
    a11y = AccessibilityManager(bus=bus, preferences=stored(accessibility={"font_size": 300}))

    result = await a11y.initialize()

    assert result == {"font_size": 150, "reduced_motion": False}
    assert a11y.decrease_font_size() == 140


@pytest.mark.asyncio
async def test_navigation_moves_focus_and_announces(bus: EventBus) -> None:
    a11y = AccessibilityManager(bus=bus, preferences=PreferenceStore(), document=Document())
    await a11y.initialize()

    bus.publish(EventKind.ROUTER_NAVIGATED, Navigation(from_path="/", to_path="/skills", view="section"))

    assert a11y.focused == "main-content"
    assert a11y.announcements == ["Portfolio website loaded successfully", "Navigated to /skills"]
    assert a11y.focus("sidebar") is False


# --- performance -------------------------------------------------------------


class StepClock:
    def __init__(self, step: float) -> None:
        self.now = 0.0
        self.step = step

    def __call__(self) -> float:
        self.now += self.step
        return self.now


@pytest.mark.asyncio
async def test_performance_tracks_renders_and_navigation(bus: EventBus) -> None:
    monitor = PerformanceMonitor(bus=bus)
    await monitor.initialize()

    bus.publish(EventKind.VIEW_RENDERED, ViewRendered(view="hero", container="hero-section", from_cache=False, duration=0.5))
    bus.publish(EventKind.VIEW_RENDERED, ViewRendered(view="hero", container="hero-section", from_cache=True, duration=0.1))
    bus.publish(EventKind.ROUTER_NAVIGATED, Navigation(from_path=None, to_path="/", view="section"))

    summary = monitor.summary()
    assert summary["counters"] == {"render.cache_misses": 1, "render.cache_hits": 1, "navigation.count": 1}
    assert summary["metrics"]["render.hero"]["count"] == 2
    assert summary["metrics"]["render.hero"]["max"] == 0.5


def test_measure_records_elapsed_time(bus: EventBus) -> None:
    monitor = PerformanceMonitor(bus=bus, clock=StepClock(0.25), sample_limit=2)
    metrics: list[str] = []
    bus.subscribe(EventKind.PERFORMANCE_METRIC, lambda e: metrics.append(e.payload.name))

    for _ in range(3):
        with monitor.measure("phase.models"):
            pass

    assert monitor.samples("phase.models") == (0.25, 0.25)
    assert metrics == ["phase.models"] * 3


@pytest.mark.asyncio
async def test_destroy_resets_metrics(bus: EventBus) -> None:
    monitor = PerformanceMonitor(bus=bus)
    monitor.record("phase.models", 0.2)
    await monitor.initialize()
    bus.publish(EventKind.ROUTER_NAVIGATED, Navigation(from_path=None, to_path="/", view="section"))
    assert monitor.counter("navigation.count") == 1

    await monitor.destroy()

    assert monitor.summary() == {"metrics": {}, "counters": {}}
    assert monitor.samples("phase.models") == ()
    bus.publish(EventKind.ROUTER_NAVIGATED, Navigation(from_path="/", to_path="/about", view="section"))
    assert monitor.counter("navigation.count") == 0


# --- error reporter ----------------------------------------------------------


@pytest.mark.parametrize(
    ("error", "critical", "severity"),
    [
        (RuntimeError("x"), True, Severity.CRITICAL),
        (OperationTimeout("content", 1.0), False, Severity.HIGH),
        (InitializationError("content", "boom"), False, Severity.HIGH),
        (NetworkStatusError("offline"), False, Severity.LOW),
        (RenderError("hero", "bad"), False, Severity.MEDIUM),
        (ValueError("x"), False, Severity.MEDIUM),
    ],
)
def test_classify(error: BaseException, critical: bool, severity: Severity) -> None:
    assert classify(error, critical=critical) is severity


def test_capture_normalizes_strings_and_mappings(bus: EventBus) -> None:
    reporter = ErrorReporter(bus=bus, application={"service": "portfolio"})
    announced: list[Event] = []
    bus.subscribe(EventKind.ERROR_REPORTED, announced.append)

    text = reporter.capture("plain failure", phase="runtime")
    mapped = reporter.capture({"message": "from map", "code": 7}, phase="event", module="theme")
    typed = reporter.capture(RenderError("hero", "bad markup"), phase="render", container="hero-section")

    assert text.kind == "portfolio_error"
    assert text.message == "plain failure"
    assert mapped.context == {"code": 7}
    assert mapped.module == "theme"
    assert typed.context == {"view": "hero", "container": "hero-section"}
    assert typed.to_dict()["application"] == {"service": "portfolio"}
    assert [e.payload.report_id for e in announced] == [text.id, mapped.id, typed.id]


@pytest.mark.asyncio
async def test_reports_flush_in_batches_after_initialize(bus: EventBus) -> None:
    batches: list[list[str]] = []

    def sink(batch: Sequence[ErrorReport]) -> None:
        batches.append([r.message for r in batch])

    reporter = ErrorReporter(bus=bus, sink=sink, max_queue_size=2)
    for n in range(3):
        reporter.capture(f"early {n}", phase="bootstrap")
    assert batches == []

    await reporter.initialize()
    assert batches == [["early 0", "early 1", "early 2"]]

    reporter.capture("late 0", phase="runtime")
    reporter.capture("late 1", phase="runtime")
    assert batches[-1] == ["late 0", "late 1"]
    assert reporter.pending == 0
    assert len(reporter.reports) == 5


@pytest.mark.asyncio
async def test_failed_flush_requeues_bounded(bus: EventBus) -> None:
    def sink(batch: Sequence[ErrorReport]) -> None:
        raise ConnectionError("collector down")

    reporter = ErrorReporter(bus=bus, sink=sink, max_queue_size=2)
    await reporter.initialize()

    for n in range(5):
        reporter.capture(f"e{n}", phase="runtime")

    assert reporter.pending == 4
    assert reporter.flush() == 0


def test_failing_report_subscriber_does_not_loop(bus: EventBus, reporter: ErrorReporter) -> None:
    def broken(event: Event) -> None:
        raise RuntimeError("subscriber failed")

    bus.subscribe(EventKind.ERROR_REPORTED, broken)

    reporter.capture("first", phase="runtime")

    assert [r.message for r in reporter.reports] == ["first", "subscriber failed"]
