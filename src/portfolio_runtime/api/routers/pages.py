"""
portfolio_runtime.api.routers.pages

Page endpoint: navigates the runtime and returns the rendered document.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import HTMLResponse
from starlette.status import HTTP_404_NOT_FOUND, HTTP_503_SERVICE_UNAVAILABLE

from portfolio_runtime.api.deps import runtime_dep
from portfolio_runtime.orchestrator.plan import PortfolioRuntime
from portfolio_runtime.orchestrator.status import AppState
from portfolio_runtime.views.fallback import not_found_page

router = APIRouter(tags=["pages"])


@router.get("/{path:path}", response_class=HTMLResponse)
async def page(path: str, runtime: PortfolioRuntime = Depends(runtime_dep)) -> HTMLResponse:
    if runtime.state is AppState.ERROR:
        # Full-page fallback written by the orchestrator.
        return HTMLResponse(runtime.render_document(), status_code=HTTP_503_SERVICE_UNAVAILABLE)
    if runtime.state is not AppState.RUNNING:
        return HTMLResponse("<p>Starting...</p>", status_code=HTTP_503_SERVICE_UNAVAILABLE)

    target = "/" + path
    found, html = await runtime.render_page(target)
    if not found:
        return HTMLResponse(not_found_page(target), status_code=HTTP_404_NOT_FOUND)
    return HTMLResponse(html)


# --- Module Notes -----------------------------------------------------------
# Every request navigates the one shared runtime; `render_page` holds the
# runtime page lock so a response never carries another request's section.
