"""
portfolio_runtime.api.app

FastAPI app factory for the portfolio runtime.

Responsibilities:
- Build the FastAPI application and register routers/middleware.
- Build the portfolio runtime and stash it on `app.state`.
- Map process lifecycle onto the orchestrator: startup is "document ready"
  (`init()`), shutdown is `destroy()`.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from portfolio_runtime import __version__
from portfolio_runtime.api.routers.health import router as health_router
from portfolio_runtime.api.routers.pages import router as pages_router
from portfolio_runtime.api.routers.preferences import router as preferences_router
from portfolio_runtime.observability.logging import configure_logging, get_logger
from portfolio_runtime.observability.middleware import RequestContextMiddleware
from portfolio_runtime.orchestrator.plan import PortfolioRuntime, build_runtime
from portfolio_runtime.settings import Settings

log = get_logger(__name__)


def create_app(*, settings: Settings, runtime: PortfolioRuntime | None = None) -> FastAPI:
    configure_logging(service_name=settings.service_name, level=settings.log_level, json_output=settings.log_json)

    if runtime is None:
        runtime = build_runtime(settings)

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        log.info("startup", env=settings.env)
        state = await runtime.start()
        log.info("document_ready", state=state.value, degraded=runtime.orchestrator.is_degraded)
        try:
            yield
        finally:
            await runtime.stop()
            log.info("shutdown")

    app = FastAPI(
        title="Portfolio Runtime",
        version=__version__,
        docs_url="/docs",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    app.add_middleware(RequestContextMiddleware)
    app.include_router(health_router, tags=["health"])
    app.include_router(preferences_router)
    # Catch-all page route; must be registered last.
    app.include_router(pages_router)

    app.state.settings = settings
    app.state.runtime = runtime
    app.state.orchestrator = runtime.orchestrator

    return app


# --- Module Notes -----------------------------------------------------------
# A bootstrap that ends in ERROR does not stop the server: pages serve the
# full-page fallback and /readyz reports 503.
