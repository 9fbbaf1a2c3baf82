"""
portfolio_runtime.services.error_reporter

Central error sink.

Responsibilities:
- Normalize any caught exception into an `ErrorReport` with phase, module and timestamp.
- Classify severity from the error kind.
- Queue reports (bounded) and flush them in batches to a pluggable sink.
- Announce each report on the bus as `error:reported`.
"""

from __future__ import annotations

import enum
import uuid
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from portfolio_runtime.core.events import ErrorReported, EventBus, EventKind
from portfolio_runtime.core.lifecycle import InitContext, LifecycleModule
from portfolio_runtime.errors import (
    InitializationError,
    NetworkStatusError,
    OperationTimeout,
    PortfolioError,
)
from portfolio_runtime.observability.logging import get_logger

log = get_logger(__name__)


class Severity(enum.StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass(frozen=True, slots=True)
class ErrorReport:
    id: str
    kind: str
    message: str
    severity: Severity
    phase: str
    module: str | None
    timestamp: datetime
    error_type: str
    context: dict[str, Any] = field(default_factory=dict)
    application: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind,
            "message": self.message,
            "severity": self.severity.value,
            "phase": self.phase,
            "module": self.module,
            "timestamp": self.timestamp.isoformat(),
            "error_type": self.error_type,
            "context": self.context,
            "application": self.application,
        }


ReportSink = Callable[[Sequence[ErrorReport]], None]


def log_sink(batch: Sequence[ErrorReport]) -> None:
    for report in batch:
        log.warning("error_report_flushed", **report.to_dict())


def classify(error: BaseException, *, critical: bool = False) -> Severity:
    if critical:
        return Severity.CRITICAL
    if isinstance(error, (OperationTimeout, InitializationError)):
        return Severity.HIGH
    if isinstance(error, NetworkStatusError):
        return Severity.LOW
    return Severity.MEDIUM


class ErrorReporter(LifecycleModule):
    """
    Constructed before the bootstrap starts (the bus and orchestrator report
    into it from the first phase); `initialize` only opens the flush path.
    """

    name = "error_reporter"

    def __init__(
        self,
        *,
        bus: EventBus | None = None,
        sink: ReportSink = log_sink,
        max_queue_size: int = 10,
        history_limit: int = 200,
        application: dict[str, Any] | None = None,
        clock: Callable[[], datetime] = lambda: datetime.now(UTC),
    ) -> None:
        super().__init__()
        self._bus = bus
        self._sink = sink
        self._max_queue_size = max_queue_size
        self._history_limit = history_limit
        self._application = dict(application or {})
        self._clock = clock
        self._queue: list[ErrorReport] = []
        self._history: list[ErrorReport] = []
        self._announcing = False

    @property
    def reports(self) -> tuple[ErrorReport, ...]:
        return tuple(self._history)

    @property
    def pending(self) -> int:
        return len(self._queue)

    def capture(
        self,
        error: BaseException | str | Mapping[str, Any],
        *,
        phase: str,
        module: str | None = None,
        critical: bool = False,
        **context: Any,
    ) -> ErrorReport:
        error = _as_exception(error)
        if isinstance(error, PortfolioError):
            kind = error.kind
            message = error.message
            context = {**error.context, **context}
        else:
            kind = "runtime_error"
            message = str(error) or type(error).__name__
        report = ErrorReport(
            id=uuid.uuid4().hex,
            kind=kind,
            message=message,
            severity=classify(error, critical=critical),
            phase=phase,
            module=module,
            timestamp=self._clock(),
            error_type=type(error).__name__,
            context={k: _jsonable(v) for k, v in context.items()},
            application=self._application,
        )
        log.error(
            "error_captured",
            report_id=report.id,
            kind=kind,
            severity=report.severity.value,
            phase=phase,
            module=module,
            error=message,
        )

        self._history.append(report)
        del self._history[: -self._history_limit]
        self._queue.append(report)
        if self.is_initialized and len(self._queue) >= self._max_queue_size:
            self.flush()
        self._announce(report)
        return report

    def flush(self) -> int:
        if not self._queue:
            return 0
        batch, self._queue = self._queue, []
        try:
            self._sink(batch)
        except Exception as exc:
            # Keep the batch for the next flush, bounded so a dead sink cannot grow memory.
            self._queue = [*batch, *self._queue][-self._max_queue_size * 2 :]
            log.warning("error_flush_failed", error=str(exc), requeued=len(self._queue))
            return 0
        return len(batch)

    def _announce(self, report: ErrorReport) -> None:
        # A failing `error:reported` handler is itself reported; do not loop.
        if self._bus is None or self._announcing:
            return
        self._announcing = True
        try:
            self._bus.publish(
                EventKind.ERROR_REPORTED,
                ErrorReported(
                    report_id=report.id,
                    kind=report.kind,
                    severity=report.severity.value,
                    phase=report.phase,
                    module=report.module,
                ),
            )
        finally:
            self._announcing = False

    async def on_initialize(self, ctx: InitContext | None) -> dict[str, Any]:
        log.info("error_reporter_ready", queued=len(self._queue))
        if len(self._queue) >= self._max_queue_size:
            self.flush()
        return {"queued": len(self._queue)}

    async def on_destroy(self) -> None:
        self.flush()


def _as_exception(error: BaseException | str | Mapping[str, Any]) -> BaseException:
    if isinstance(error, BaseException):
        return error
    if isinstance(error, Mapping):
        fields = {str(k): v for k, v in error.items() if k != "message"}
        return PortfolioError(str(error.get("message") or "unknown error"), **fields)
    return PortfolioError(str(error))


def _jsonable(value: Any) -> Any:
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    return str(value)


# --- Module Notes -----------------------------------------------------------
# Reports captured before `initialize` stay queued; the first flush after
# initialization delivers them.
