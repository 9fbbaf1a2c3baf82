"""
portfolio_runtime.observability.middleware

HTTP middleware for request-scoped logging context.

Responsibilities:
- Generate/propagate request IDs.
- Bind request metadata into structlog contextvars so navigation and render
  logs emitted while serving a page carry the request id.
- Expose the orchestrator lifecycle state on every response.
- Log one `request_completed` line per request with status and duration.
"""

from __future__ import annotations

import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from portfolio_runtime.observability.logging import get_logger

log = get_logger(__name__)

REQUEST_ID_HEADER = "x-request-id"
APP_STATE_HEADER = "x-app-state"

# Health check paths get no completion line.
_QUIET_PATHS = frozenset({"/healthz", "/readyz"})


class RequestContextMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        path = request.url.path
        started = time.perf_counter()
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id, path=path, method=request.method)
        try:
            response: Response = await call_next(request)
            state = _app_state(request)
            if path not in _QUIET_PATHS:
                log.info(
                    "request_completed",
                    status=response.status_code,
                    duration_ms=round((time.perf_counter() - started) * 1000, 2),
                    app_state=state,
                )
        finally:
            structlog.contextvars.clear_contextvars()

        response.headers[REQUEST_ID_HEADER] = request_id
        if state is not None:
            response.headers[APP_STATE_HEADER] = state
        return response


def _app_state(request: Request) -> str | None:
    orchestrator = getattr(request.app.state, "orchestrator", None)
    return orchestrator.state.value if orchestrator is not None else None


# --- Module Notes -----------------------------------------------------------
# The orchestrator is stashed on `app.state` by `api.app.create_app`; the
# state header reads PENDING/BOOTSTRAPPING/RUNNING/ERROR at response time.
