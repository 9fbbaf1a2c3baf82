"""
portfolio_runtime.api.deps

FastAPI dependency wiring for the API layer.

Responsibilities:
- Provide dependency functions for the runtime and its orchestrator.
- Encapsulate app.state access patterns.
"""

from __future__ import annotations

from fastapi import Depends, Request

from portfolio_runtime.orchestrator.app import ModuleOrchestrator
from portfolio_runtime.orchestrator.plan import PortfolioRuntime


def runtime_dep(request: Request) -> PortfolioRuntime:
    # Built in `portfolio_runtime.api.app.create_app`.
    return request.app.state.runtime  # type: ignore[attr-defined]


def orchestrator_dep(runtime: PortfolioRuntime = Depends(runtime_dep)) -> ModuleOrchestrator:
    return runtime.orchestrator


# --- Module Notes -----------------------------------------------------------
# Routers depend on `runtime_dep` rather than importing a global runtime, so
# tests can mount a freshly built runtime per app instance.
