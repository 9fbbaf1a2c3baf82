"""
portfolio_runtime.controllers.base

Shared controller plumbing.

Responsibilities:
- Bridge synchronous event handlers to async work via tracked background tasks.
- Report background failures instead of leaving them unobserved.
- Let callers await pending work (`settle`) and cancel it at destroy time.
"""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from typing import Any

from portfolio_runtime.core.events import ErrorSink, EventBus
from portfolio_runtime.core.lifecycle import LifecycleModule
from portfolio_runtime.observability.logging import get_logger

log = get_logger(__name__)


class Controller(LifecycleModule):
    def __init__(self, *, bus: EventBus, reporter: ErrorSink | None = None) -> None:
        super().__init__()
        self._bus = bus
        self._reporter = reporter
        self._subs = bus.group(self.name)
        self._tasks: set[asyncio.Task[Any]] = set()

    def spawn(self, coro: Coroutine[Any, Any, Any], *, label: str) -> asyncio.Task[Any]:
        task = asyncio.get_running_loop().create_task(coro, name=f"{self.name}:{label}")
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def settle(self) -> None:
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _task_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is None:
            return
        log.error("controller_task_failed", controller=self.name, task=task.get_name(), error=str(exc))
        if self._reporter is not None:
            self._reporter(exc, phase="runtime", module=self.name, task=task.get_name())

    async def on_destroy(self) -> None:
        self._subs.cancel_all()
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()
