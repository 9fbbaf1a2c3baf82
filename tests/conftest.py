"""
tests.conftest

Shared fixtures: an isolated bus, a reporter wired as its error sink, and
settings tuned for fast tests.
"""

from __future__ import annotations

import pytest

from portfolio_runtime.core.events import EventBus
from portfolio_runtime.services.error_reporter import ErrorReporter
from portfolio_runtime.settings import Settings


@pytest.fixture
def bus() -> EventBus:
    return EventBus()


@pytest.fixture
def reporter(bus: EventBus) -> ErrorReporter:
    reporter = ErrorReporter(bus=bus)
    bus.set_error_sink(reporter.capture)
    return reporter


@pytest.fixture
def settings() -> Settings:
    return Settings(env="test", view_transition_seconds=0, module_timeout_seconds=2.0)
