"""
portfolio_runtime.api.routers.preferences

Preference endpoints. Requests are published on the event bus so the theme
and accessibility services handle them exactly as in-page controls would.
"""

from __future__ import annotations

from typing import Any, Literal

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from starlette.status import HTTP_503_SERVICE_UNAVAILABLE

from portfolio_runtime.api.deps import runtime_dep
from portfolio_runtime.core.events import EventKind, ThemeRequest
from portfolio_runtime.orchestrator.plan import PortfolioRuntime
from portfolio_runtime.orchestrator.status import AppState

router = APIRouter(prefix="/preferences", tags=["preferences"])

_FONT_EVENTS = {
    "increase": EventKind.FONT_INCREASE,
    "decrease": EventKind.FONT_DECREASE,
    "reset": EventKind.FONT_RESET,
}


class ThemeUpdate(BaseModel):
    theme: Literal["light", "dark", "toggle", "system"]


class FontSizeUpdate(BaseModel):
    action: Literal["increase", "decrease", "reset"]


def _require_running(runtime: PortfolioRuntime) -> None:
    if runtime.state is not AppState.RUNNING:
        raise HTTPException(status_code=HTTP_503_SERVICE_UNAVAILABLE, detail=f"state: {runtime.state.value}")


@router.post("/theme")
async def update_theme(body: ThemeUpdate, runtime: PortfolioRuntime = Depends(runtime_dep)) -> dict[str, Any]:
    _require_running(runtime)
    if body.theme == "toggle":
        runtime.bus.publish(EventKind.THEME_TOGGLE)
    elif body.theme == "system":
        runtime.theme.reset_to_system()
    else:
        runtime.bus.publish(EventKind.THEME_CHANGE, ThemeRequest(theme=body.theme))
    return runtime.theme.info()


@router.post("/font-size")
async def update_font_size(body: FontSizeUpdate, runtime: PortfolioRuntime = Depends(runtime_dep)) -> dict[str, Any]:
    _require_running(runtime)
    runtime.bus.publish(_FONT_EVENTS[body.action])
    return {"font_size": runtime.accessibility.font_size}


# --- Module Notes -----------------------------------------------------------
# Writes go through the event bus (or the theme manager for "system"), so the
# managers persist and announce changes exactly as they do for in-page input.
