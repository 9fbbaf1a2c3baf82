"""
portfolio_runtime.orchestrator.app

ModuleOrchestrator: the application lifecycle state machine.

Responsibilities:
- Accept module registrations and validate the plan before anything starts.
- Start modules phase by phase (parallel waves or one at a time), each under
  the timeout guard, each at most once per init cycle.
- Apply the failure policy: DEGRADABLE failures substitute a fallback and the
  bootstrap continues; a CRITICAL failure aborts the remaining phases.
- Verify the outcome, publish lifecycle events, and render the full-page
  fallback when the application ends in ERROR.
- Tear everything down in reverse start order on `destroy()`.
"""

from __future__ import annotations

import asyncio
import inspect
import time
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from types import MappingProxyType
from typing import Any

from portfolio_runtime.core.events import (
    AppLifecycle,
    ConnectivityChanged,
    Event,
    EventBus,
    EventKind,
    Handler,
    ModuleStatusChanged,
    PhaseProgress,
    Subscription,
)
from portfolio_runtime.core.lifecycle import InitContext
from portfolio_runtime.core.timeout import CancellationToken, with_timeout
from portfolio_runtime.errors import (
    InitializationError,
    NetworkStatusError,
    OperationTimeout,
    PortfolioError,
    RegistrationError,
)
from portfolio_runtime.observability.logging import get_logger, lifecycle_context
from portfolio_runtime.orchestrator.descriptors import InitStatus, ModuleDescriptor, Phase
from portfolio_runtime.orchestrator.graph import DependencyGraph
from portfolio_runtime.orchestrator.status import AppState, ModuleReport, StatusReport
from portfolio_runtime.services.error_reporter import ErrorReporter
from portfolio_runtime.services.performance import PerformanceMonitor
from portfolio_runtime.views.document import Document
from portfolio_runtime.views.fallback import critical_error_page

log = get_logger(__name__)


@dataclass(slots=True)
class ModuleRecord:
    descriptor: ModuleDescriptor
    status: InitStatus = InitStatus.PENDING
    result: Any = None
    error: BaseException | None = None
    report_id: str | None = None
    started_at: float | None = None
    finished_at: float | None = None

    @property
    def duration(self) -> float | None:
        if self.started_at is None or self.finished_at is None:
            return None
        return self.finished_at - self.started_at

    def reset(self) -> None:
        self.status = InitStatus.PENDING
        self.result = None
        self.error = None
        self.report_id = None
        self.started_at = None
        self.finished_at = None


class ModuleOrchestrator:
    """
    Single owner of application state. Not reentrant: concurrent `init()`
    calls after the first return the current state without doing anything.
    """

    name = "orchestrator"

    def __init__(
        self,
        *,
        bus: EventBus,
        reporter: ErrorReporter,
        document: Document | None = None,
        performance: PerformanceMonitor | None = None,
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        self._bus = bus
        self._reporter = reporter
        self._document = document
        self._performance = performance
        self._clock = clock

        self._descriptors: dict[str, ModuleDescriptor] = {}
        self._records: dict[str, ModuleRecord] = {}
        self._results: dict[str, Any] = {}
        self._started: list[str] = []
        self._graph: DependencyGraph | None = None
        self._subs = bus.group(self.name)

        self._state = AppState.PENDING
        self._degraded = False
        self._online = True
        self._error: BaseException | None = None
        self._started_at: datetime | None = None
        self._finished_at: datetime | None = None
        self._duration: float | None = None
        self._counters: dict[str, int] = {"render_errors": 0, "not_found": 0}

    # --- registration --------------------------------------------------------

    def register(self, descriptor: ModuleDescriptor) -> None:
        if not isinstance(descriptor, ModuleDescriptor):
            raise RegistrationError("register() expects a ModuleDescriptor", got=type(descriptor).__name__)
        if self._state is not AppState.PENDING:
            raise RegistrationError(
                f"cannot register {descriptor.name!r} while {self._state.value}", module=descriptor.name
            )
        if descriptor.name in self._descriptors:
            raise RegistrationError(f"duplicate module name: {descriptor.name!r}", module=descriptor.name)
        self._descriptors[descriptor.name] = descriptor
        self._records[descriptor.name] = ModuleRecord(descriptor)
        self._graph = None

    def register_all(self, descriptors: Iterable[ModuleDescriptor]) -> None:
        for descriptor in descriptors:
            self.register(descriptor)

    def subscribe(self, kind: EventKind | str, handler: Handler) -> Subscription:
        """Subscription owned by the orchestrator; cancelled by `destroy()`."""
        return self._subs.subscribe(kind, handler)

    # --- inspection ----------------------------------------------------------

    @property
    def state(self) -> AppState:
        return self._state

    @property
    def is_degraded(self) -> bool:
        return self._degraded

    @property
    def is_online(self) -> bool:
        return self._online

    @property
    def error(self) -> BaseException | None:
        return self._error

    @property
    def results(self) -> Mapping[str, Any]:
        return MappingProxyType(self._results)

    def result(self, name: str, default: Any = None) -> Any:
        return self._results.get(name, default)

    def record(self, name: str) -> ModuleRecord:
        return self._records[name]

    def status_of(self, name: str) -> InitStatus:
        return self._records[name].status

    @property
    def failed_modules(self) -> list[str]:
        return [name for name, rec in self._records.items() if rec.status.failed]

    def status_report(self) -> StatusReport:
        return StatusReport(
            state=self._state,
            degraded=self._degraded,
            online=self._online,
            started_at=self._started_at,
            finished_at=self._finished_at,
            duration=self._duration,
            error=str(self._error) if self._error is not None else None,
            modules=[
                ModuleReport(
                    name=name,
                    phase=rec.descriptor.phase.phase_id,
                    criticality=rec.descriptor.criticality.value,
                    status=rec.status.value,
                    duration=rec.duration,
                    error=str(rec.error) if rec.error is not None else None,
                )
                for name, rec in self._records.items()
            ],
            failed_modules=self.failed_modules,
            counters=dict(self._counters),
            metrics=self._performance.summary() if self._performance is not None else {},
        )

    # --- lifecycle -----------------------------------------------------------

    async def init(self) -> AppState:
        if self._state is not AppState.PENDING:
            log.warning("init_ignored", state=self._state.value)
            return self._state

        graph = self._plan()
        self._state = AppState.BOOTSTRAPPING
        self._started_at = datetime.now(UTC)
        started = self._clock()
        self._wire()
        log.info("bootstrap_started", modules=len(self._descriptors))
        self._bus.publish(EventKind.APP_BOOTSTRAPPING, AppLifecycle(state=self._state.value))

        aborted_by: ModuleRecord | None = None
        try:
            for phase in Phase.ordered():
                names = [n for n, d in self._descriptors.items() if d.phase is phase]
                if not names:
                    continue
                aborted_by = await self._run_phase(graph, phase, names)
                if aborted_by is not None:
                    break
        except Exception as exc:
            # Orchestrator bug rather than a module failure; still end in a defined state.
            log.exception("bootstrap_crashed", error=str(exc))
            report = self._reporter.capture(exc, phase="bootstrap", module=None, critical=True)
            self._finish(started)
            return self._enter_error(exc, module=None, report_id=report.id)

        self._finish(started)
        return self._verify(aborted_by)

    async def destroy(self) -> None:
        if self._state is AppState.BOOTSTRAPPING:
            raise RuntimeError("cannot destroy while bootstrapping")
        self._subs.cancel_all()
        for name in reversed(self._started):
            finalizer = self._descriptors[name].finalizer
            if finalizer is None:
                continue
            try:
                outcome = finalizer()
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception as exc:
                log.error("module_destroy_failed", module=name, error=str(exc))
                self._reporter.capture(exc, phase="destroy", module=name)
        previous = self._state
        self._reset()
        log.info("orchestrator_destroyed", previous_state=previous.value)
        self._bus.publish(EventKind.APP_DESTROYED, AppLifecycle(state=previous.value))

    def set_connectivity(self, online: bool) -> None:
        if online == self._online:
            return
        self._online = online
        if online:
            log.info("connectivity_restored")
            self._bus.publish(EventKind.APP_ONLINE, ConnectivityChanged(online=True))
            return
        log.warning("connectivity_lost")
        self._reporter.capture(NetworkStatusError("network connection lost"), phase="runtime")
        self._bus.publish(EventKind.APP_OFFLINE, ConnectivityChanged(online=False))

    # --- phases --------------------------------------------------------------

    def _plan(self) -> DependencyGraph:
        if self._graph is None:
            graph = DependencyGraph(self._descriptors.values())
            graph.validate()
            self._graph = graph
        return self._graph

    async def _run_phase(self, graph: DependencyGraph, phase: Phase, names: list[str]) -> ModuleRecord | None:
        self._bus.publish(EventKind.APP_PHASE, PhaseProgress(phase=phase.phase_id, stage="started"))
        started = self._clock()
        critical: ModuleRecord | None = None
        with lifecycle_context(phase=phase.phase_id):
            log.info("phase_started", modules=names, parallel=phase.parallel)
            if phase.parallel:
                for wave in graph.waves(names):
                    records = await asyncio.gather(*(self._start_module(name) for name in wave))
                    critical = next((r for r in records if r.status.failed and r.descriptor.is_critical), None)
                    if critical is not None:
                        break
            else:
                for name in graph.start_order(names):
                    record = await self._start_module(name)
                    if record.status.failed and record.descriptor.is_critical:
                        critical = record
                        break
            duration = self._clock() - started
            stage = "aborted" if critical is not None else "completed"
            log.info(f"phase_{stage}", duration=round(duration, 4))
        if self._performance is not None:
            self._performance.record(f"phase.{phase.phase_id}", duration)
        self._bus.publish(EventKind.APP_PHASE, PhaseProgress(phase=phase.phase_id, stage=stage, duration=duration))
        return critical

    async def _start_module(self, name: str) -> ModuleRecord:
        record = self._records[name]
        descriptor = record.descriptor
        if record.status is not InitStatus.PENDING:
            return record

        unmet = sorted(d for d in descriptor.dependencies if self._records[d].status is not InitStatus.SUCCESS)
        if unmet:
            error = InitializationError(name, f"dependencies not satisfied: {', '.join(unmet)}", unmet=unmet)
            self._settle_failure(record, InitStatus.FAILED, error)
            return record

        ctx = InitContext(
            module=name,
            phase=descriptor.phase.phase_id,
            token=CancellationToken.with_budget(descriptor.timeout),
            results=MappingProxyType(self._results),
        )
        self._set_status(record, InitStatus.RUNNING)
        record.started_at = self._clock()
        try:
            with lifecycle_context(module=name):
                value = await with_timeout(
                    _invoke(descriptor, ctx), descriptor.timeout, f"{descriptor.phase.phase_id}:{name}", token=ctx.token
                )
        except OperationTimeout as exc:
            self._settle_failure(record, InitStatus.TIMED_OUT, exc)
        except Exception as exc:
            self._settle_failure(record, InitStatus.FAILED, _as_init_error(name, exc))
        else:
            record.finished_at = self._clock()
            record.result = value
            self._results[name] = value
            self._started.append(name)
            self._set_status(record, InitStatus.SUCCESS)
        return record

    def _settle_failure(self, record: ModuleRecord, status: InitStatus, error: BaseException) -> None:
        descriptor = record.descriptor
        record.finished_at = self._clock()
        record.error = error
        if not descriptor.is_critical:
            record.result = descriptor.fallback
            self._results[descriptor.name] = descriptor.fallback
        report = self._reporter.capture(
            error,
            phase=descriptor.phase.phase_id,
            module=descriptor.name,
            criticality=descriptor.criticality.value,
            status=status.value,
        )
        record.report_id = report.id
        log.warning(
            "module_failed",
            module=descriptor.name,
            status=status.value,
            criticality=descriptor.criticality.value,
            error=str(error),
        )
        self._set_status(record, status)

    def _set_status(self, record: ModuleRecord, status: InitStatus) -> None:
        record.status = status
        descriptor = record.descriptor
        self._bus.publish(
            EventKind.MODULE_STATUS,
            ModuleStatusChanged(
                module=descriptor.name,
                phase=descriptor.phase.phase_id,
                status=status.value,
                criticality=descriptor.criticality.value,
                error=str(record.error) if record.error is not None else None,
            ),
        )

    # --- verification --------------------------------------------------------

    def _verify(self, aborted_by: ModuleRecord | None) -> AppState:
        failed = [rec for rec in self._records.values() if rec.status.failed]
        critical = [rec for rec in failed if rec.descriptor.is_critical]
        if aborted_by is not None or critical:
            primary = aborted_by or critical[0]
            error = primary.error or InitializationError(primary.descriptor.name, "critical module failed")
            return self._enter_error(error, module=primary.descriptor.name, report_id=primary.report_id)

        self._state = AppState.RUNNING
        self._degraded = bool(failed)
        payload = AppLifecycle(
            state=self._state.value,
            degraded=self._degraded,
            failed_modules=tuple(rec.descriptor.name for rec in failed),
            duration=self._duration,
        )
        if self._degraded:
            log.warning("bootstrap_degraded", failed_modules=list(payload.failed_modules))
            self._bus.publish(EventKind.APP_DEGRADED, payload)
        log.info("bootstrap_completed", duration=self._duration, degraded=self._degraded)
        self._bus.publish(EventKind.APP_INITIALIZED, payload)
        return self._state

    def _enter_error(self, error: BaseException, *, module: str | None, report_id: str | None) -> AppState:
        self._state = AppState.ERROR
        self._error = error
        if self._document is not None:
            self._document.show_fallback_page(critical_error_page(error, module=module, report_id=report_id))
        log.error("bootstrap_failed", module=module, error=str(error))
        self._bus.publish(
            EventKind.APP_ERROR,
            AppLifecycle(
                state=self._state.value,
                failed_modules=tuple(self.failed_modules),
                duration=self._duration,
                error=str(error),
            ),
        )
        return self._state

    def _finish(self, started: float) -> None:
        self._duration = self._clock() - started
        self._finished_at = datetime.now(UTC)

    # --- wiring --------------------------------------------------------------

    def _wire(self) -> None:
        self._subs.subscribe(EventKind.VIEW_RENDER_ERROR, self._on_render_error)
        self._subs.subscribe(EventKind.ROUTER_NOT_FOUND, self._on_not_found)

    def _on_render_error(self, event: Event) -> None:
        self._counters["render_errors"] += 1

    def _on_not_found(self, event: Event) -> None:
        self._counters["not_found"] += 1
        log.info("page_not_found", path=event.payload.path)

    def _reset(self) -> None:
        for record in self._records.values():
            record.reset()
        self._results.clear()
        self._started.clear()
        self._state = AppState.PENDING
        self._degraded = False
        self._online = True
        self._error = None
        self._started_at = None
        self._finished_at = None
        self._duration = None
        self._counters = {"render_errors": 0, "not_found": 0}
        if self._document is not None:
            self._document.reset()


async def _invoke(descriptor: ModuleDescriptor, ctx: InitContext) -> Any:
    return await descriptor.initializer(ctx)


def _as_init_error(name: str, exc: Exception) -> PortfolioError:
    if isinstance(exc, PortfolioError):
        return exc
    error = InitializationError(name, str(exc) or type(exc).__name__, cause=type(exc).__name__)
    error.__cause__ = exc
    return error


# --- Module Notes -----------------------------------------------------------
# Results of DEGRADABLE modules that failed hold their fallback value, so
# downstream `inputs` always find something. Hard `dependencies` ignore
# fallbacks: a failed dependency blocks its dependents.
