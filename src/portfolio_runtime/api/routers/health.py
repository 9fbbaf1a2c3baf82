"""
portfolio_runtime.api.routers.health

Health, readiness and status endpoints.

Responsibilities:
- Provide liveness probe (`/healthz`).
- Provide readiness probe (`/readyz`) gated on the orchestrator reaching RUNNING.
- Expose the orchestrator status report (`/status`).
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from starlette.status import HTTP_503_SERVICE_UNAVAILABLE

from portfolio_runtime.api.deps import orchestrator_dep, runtime_dep
from portfolio_runtime.orchestrator.app import ModuleOrchestrator
from portfolio_runtime.orchestrator.plan import PortfolioRuntime
from portfolio_runtime.orchestrator.status import AppState

router = APIRouter()


@router.get("/healthz")
async def healthz() -> dict[str, str]:
    # Liveness: process is up and serving HTTP.
    return {"status": "ok"}


@router.get("/readyz")
async def readyz(orchestrator: ModuleOrchestrator = Depends(orchestrator_dep)) -> dict[str, Any]:
    if orchestrator.state is not AppState.RUNNING:
        raise HTTPException(status_code=HTTP_503_SERVICE_UNAVAILABLE, detail=f"state: {orchestrator.state.value}")
    return {"status": "ready", "degraded": orchestrator.is_degraded}


@router.get("/status")
async def status(runtime: PortfolioRuntime = Depends(runtime_dep)) -> dict[str, Any]:
    report = runtime.orchestrator.status_report().model_dump(mode="json")
    report["errors"] = [r.to_dict() for r in runtime.reporter.reports]
    report["view_cache"] = runtime.views.stats()
    return report


# --- Module Notes -----------------------------------------------------------
# A degraded runtime is still ready: it serves pages with fallback content.
