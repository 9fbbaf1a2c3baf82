"""
portfolio_runtime.services.performance

Runtime timing metrics.

Responsibilities:
- Record named samples (phase durations, render durations, navigation counts).
- Summarize samples for the status endpoint.
- Announce each sample as `performance:metric`.
"""

from __future__ import annotations

import time
from collections import defaultdict
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any

from portfolio_runtime.core.events import Event, EventBus, EventKind, PerformanceMetric
from portfolio_runtime.core.lifecycle import InitContext, LifecycleModule


class PerformanceMonitor(LifecycleModule):
    name = "performance"

    def __init__(self, *, bus: EventBus, clock: Callable[[], float] = time.perf_counter, sample_limit: int = 100) -> None:
        super().__init__()
        self._bus = bus
        self._clock = clock
        self._sample_limit = sample_limit
        self._samples: dict[str, list[float]] = defaultdict(list)
        self._counters: dict[str, int] = defaultdict(int)
        self._subs = bus.group(self.name)

    def record(self, name: str, value: float) -> None:
        samples = self._samples[name]
        samples.append(value)
        del samples[: -self._sample_limit]
        self._bus.publish(EventKind.PERFORMANCE_METRIC, PerformanceMetric(name=name, value=value))

    def increment(self, name: str) -> int:
        self._counters[name] += 1
        return self._counters[name]

    @contextmanager
    def measure(self, name: str) -> Iterator[None]:
        started = self._clock()
        try:
            yield
        finally:
            self.record(name, self._clock() - started)

    def samples(self, name: str) -> tuple[float, ...]:
        return tuple(self._samples.get(name, ()))

    def counter(self, name: str) -> int:
        return self._counters.get(name, 0)

    def summary(self) -> dict[str, Any]:
        metrics = {
            name: {
                "count": len(values),
                "last": values[-1],
                "mean": sum(values) / len(values),
                "max": max(values),
            }
            for name, values in self._samples.items()
            if values
        }
        return {"metrics": metrics, "counters": dict(self._counters)}

    def _on_rendered(self, event: Event) -> None:
        payload = event.payload
        self.increment("render.cache_hits" if payload.from_cache else "render.cache_misses")
        self.record(f"render.{payload.view}", payload.duration)

    async def on_initialize(self, ctx: InitContext | None) -> dict[str, Any]:
        self._subs.subscribe(EventKind.VIEW_RENDERED, self._on_rendered)
        self._subs.subscribe(EventKind.ROUTER_NAVIGATED, lambda _: self.increment("navigation.count"))
        self._subs.subscribe(EventKind.ROUTER_NOT_FOUND, lambda _: self.increment("navigation.not_found"))
        return self.summary()

    async def on_destroy(self) -> None:
        self._subs.cancel_all()
        self._samples.clear()
        self._counters.clear()


# --- Module Notes -----------------------------------------------------------
# Samples recorded before `initialize` (bootstrap phase timings) are kept;
# only the event subscriptions wait for initialization. `destroy` drops all
# samples and counters so a restarted runtime reports from zero.
