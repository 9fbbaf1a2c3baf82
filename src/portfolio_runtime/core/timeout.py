"""
portfolio_runtime.core.timeout

Deadline guard for lifecycle work.

Responsibilities:
- Race an awaitable against a deadline (`with_timeout`).
- Actively abort overrun work: signal the `CancellationToken` and cancel the task.
- Discard the outcome of work that refuses to stop, without leaking warnings.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from typing import TypeVar

from portfolio_runtime.errors import OperationCancelled, OperationTimeout
from portfolio_runtime.observability.logging import get_logger

log = get_logger(__name__)

T = TypeVar("T")


class CancellationToken:
    """
    Cooperative cancellation signal threaded into every initializer.

    Initializers that loop or await external work should call
    `raise_if_cancelled()` between steps; the guard also cancels the task, so
    a plain `await` is interrupted as well.
    """

    def __init__(self, *, deadline: float | None = None) -> None:
        self._cancelled = False
        self._reason: str | None = None
        self._deadline = deadline
        self._event = asyncio.Event()

    @classmethod
    def with_budget(cls, seconds: float) -> CancellationToken:
        return cls(deadline=asyncio.get_running_loop().time() + seconds)

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def reason(self) -> str | None:
        return self._reason

    @property
    def deadline(self) -> float | None:
        return self._deadline

    def remaining(self) -> float | None:
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - asyncio.get_running_loop().time())

    def cancel(self, reason: str = "cancelled") -> None:
        if self._cancelled:
            return
        self._cancelled = True
        self._reason = reason
        self._event.set()

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise asyncio.CancelledError(self._reason)

    async def wait(self) -> str | None:
        await self._event.wait()
        return self._reason


async def with_timeout(
    awaitable: Awaitable[T],
    duration: float,
    label: str,
    *,
    token: CancellationToken | None = None,
) -> T:
    """
    Return (or raise) the inner outcome if it settles within `duration` seconds,
    otherwise raise `OperationTimeout(label)` after aborting the inner work.
    """

    task = asyncio.ensure_future(awaitable)
    try:
        done, _ = await asyncio.wait({task}, timeout=duration)
    except asyncio.CancelledError:
        # Caller went away: the inner work has no one left to report to.
        if token is not None:
            token.cancel(f"{label}: caller cancelled")
        task.cancel()
        task.add_done_callback(_discard_outcome)
        raise

    if task in done:
        if task.cancelled():
            # Cancelled from inside (an awaited sub-task was cancelled), not by the guard or caller.
            raise OperationCancelled(label)
        return task.result()

    if token is not None:
        token.cancel(f"{label}: deadline of {duration:.3f}s exceeded")
    task.cancel()
    task.add_done_callback(_discard_outcome)
    log.warning("operation_timed_out", label=label, duration=duration)
    raise OperationTimeout(label, duration)


def _discard_outcome(task: asyncio.Future) -> None:
    # Retrieve the late result so asyncio does not log "exception was never retrieved".
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        log.debug("late_outcome_discarded", error=str(exc))


# --- Module Notes -----------------------------------------------------------
# The guard never awaits the cancelled task: an initializer that swallows
# CancelledError would otherwise stall the whole bootstrap past its deadline.
