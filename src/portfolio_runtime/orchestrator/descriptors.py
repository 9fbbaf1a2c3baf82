"""
portfolio_runtime.orchestrator.descriptors

Registration types for the bootstrap plan.

Responsibilities:
- `Phase`: the ordered bootstrap phases and how each one schedules its modules.
- `Criticality` / `InitStatus`: failure policy and per-module progress.
- `ModuleDescriptor`: one module's initializer, dependencies, policy and timeout.
"""

from __future__ import annotations

import enum
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from typing import Any

from portfolio_runtime.core.lifecycle import InitContext, LifecycleModule
from portfolio_runtime.errors import RegistrationError

Initializer = Callable[[InitContext], Awaitable[Any]]
Finalizer = Callable[[], Awaitable[None] | None]

DEFAULT_TIMEOUT = 10.0


class Criticality(enum.StrEnum):
    CRITICAL = "critical"
    DEGRADABLE = "degradable"


class InitStatus(enum.StrEnum):
    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"
    TIMED_OUT = "timed_out"

    @property
    def failed(self) -> bool:
        return self in (InitStatus.FAILED, InitStatus.TIMED_OUT)


class Phase(enum.Enum):
    """(order, phase_id, parallel, default criticality)"""

    MODELS = (1, "models", True, Criticality.DEGRADABLE)
    INFRASTRUCTURE = (2, "infrastructure", True, Criticality.DEGRADABLE)
    VIEWS = (3, "views", False, Criticality.CRITICAL)
    ROUTER = (4, "router", False, Criticality.CRITICAL)
    CONTROLLERS = (5, "controllers", False, Criticality.CRITICAL)
    INITIAL_RENDER = (6, "initial_render", False, Criticality.CRITICAL)

    def __init__(self, order: int, phase_id: str, parallel: bool, default_criticality: Criticality) -> None:
        self.order = order
        self.phase_id = phase_id
        self.parallel = parallel
        self.default_criticality = default_criticality

    @classmethod
    def ordered(cls) -> list[Phase]:
        return sorted(cls, key=lambda p: p.order)


@dataclass(frozen=True, slots=True)
class ModuleDescriptor:
    """
    - `dependencies`: hard; the module never starts unless each one reached SUCCESS
    - `inputs`: soft; read from `InitContext.results` when present (fallbacks included)
    - `fallback`: substituted as the module's result when a DEGRADABLE module fails
    """

    name: str
    initializer: Initializer
    phase: Phase
    dependencies: frozenset[str] = field(default_factory=frozenset)
    inputs: frozenset[str] = field(default_factory=frozenset)
    criticality: Criticality | None = None
    timeout: float = DEFAULT_TIMEOUT
    finalizer: Finalizer | None = None
    fallback: Any = None

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name:
            raise RegistrationError("module name must be a non-empty string")
        if not callable(self.initializer):
            raise RegistrationError(f"module {self.name!r} initializer must be callable", module=self.name)
        if not isinstance(self.phase, Phase):
            raise RegistrationError(f"module {self.name!r} has no valid phase", module=self.name)
        if not self.timeout > 0:
            raise RegistrationError(f"module {self.name!r} timeout must be > 0", module=self.name, timeout=self.timeout)
        if self.finalizer is not None and not callable(self.finalizer):
            raise RegistrationError(f"module {self.name!r} finalizer must be callable", module=self.name)
        object.__setattr__(self, "dependencies", frozenset(self.dependencies))
        object.__setattr__(self, "inputs", frozenset(self.inputs))
        if self.name in self.dependencies:
            raise RegistrationError(f"module {self.name!r} depends on itself", module=self.name)
        if self.criticality is None:
            object.__setattr__(self, "criticality", self.phase.default_criticality)

    @property
    def is_critical(self) -> bool:
        return self.criticality is Criticality.CRITICAL

    @classmethod
    def for_module(
        cls,
        module: LifecycleModule,
        *,
        phase: Phase,
        dependencies: Iterable[str] = (),
        inputs: Iterable[str] = (),
        criticality: Criticality | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        fallback: Any = None,
    ) -> ModuleDescriptor:
        return cls(
            name=module.name,
            initializer=module.initialize,
            phase=phase,
            dependencies=frozenset(dependencies),
            inputs=frozenset(inputs),
            criticality=criticality,
            timeout=timeout,
            finalizer=module.destroy,
            fallback=fallback,
        )


# --- Module Notes -----------------------------------------------------------
# Verification is the implicit seventh phase; it has no modules of its own.
