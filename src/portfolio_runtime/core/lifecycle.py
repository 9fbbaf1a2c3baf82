"""
portfolio_runtime.core.lifecycle

Module contract consumed by the orchestrator.

Responsibilities:
- Define `LifecycleModule`: explicit initialize/destroy hooks with no-op defaults,
  so the orchestrator never probes objects for optional capabilities.
- Define `InitContext`, the per-module view of an in-progress bootstrap.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from portfolio_runtime.core.timeout import CancellationToken
from portfolio_runtime.observability.logging import get_logger

log = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class InitContext:
    """
    - `token`: cancelled by the timeout guard when the module overruns
    - `results`: results of modules settled so far (fallback values included)
    """

    module: str
    phase: str
    token: CancellationToken
    results: Mapping[str, Any] = field(default_factory=dict)

    def result(self, name: str, default: Any = None) -> Any:
        return self.results.get(name, default)


class LifecycleModule:
    """
    Base class for data models, infrastructure services, the router and
    controllers. Subclasses override `on_initialize` / `on_destroy`.
    """

    name = "module"

    def __init__(self) -> None:
        self._initialized = False

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    async def initialize(self, ctx: InitContext | None = None) -> Any:
        if self._initialized:
            log.warning("module_already_initialized", module=self.name)
            return None
        result = await self.on_initialize(ctx)
        self._initialized = True
        return result

    async def destroy(self) -> None:
        if not self._initialized:
            return
        try:
            await self.on_destroy()
        finally:
            self._initialized = False

    async def on_initialize(self, ctx: InitContext | None) -> Any:
        return None

    async def on_destroy(self) -> None:
        return None


# --- Module Notes -----------------------------------------------------------
# `ctx` is optional so modules can be exercised standalone in tests; the
# orchestrator always passes one.
