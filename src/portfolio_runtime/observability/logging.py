"""
portfolio_runtime.observability.logging

Structured logging configuration for the runtime.

Responsibilities:
- Configure `structlog` for JSON logs (or a console renderer in dev).
- Provide a small wrapper for obtaining bound loggers.
- Bind lifecycle context (phase/module) so orchestrator logs are grouped.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import structlog


def configure_logging(*, service_name: str, level: str, json_output: bool = True) -> None:
    """
    Structured logs, one event per line. `json_output=False` is meant for a
    developer terminal.
    """

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.upper(), logging.INFO),
    )

    renderer: Any = (
        structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            _add_service_name(service_name),
            structlog.processors.dict_tracebacks,
            renderer,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def _add_service_name(service_name: str):
    def processor(_: Any, __: str, event_dict: dict[str, Any]) -> dict[str, Any]:
        event_dict.setdefault("service", service_name)
        return event_dict

    return processor


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


@contextmanager
def lifecycle_context(**fields: Any) -> Iterator[None]:
    """
    Bind `phase=...`/`module=...` for the duration of a lifecycle step.

    Contextvars are task-local under asyncio, so modules initialized in parallel
    keep their own bindings.
    """

    with structlog.contextvars.bound_contextvars(**fields):
        yield


# --- Module Notes -----------------------------------------------------------
# Lifecycle modules never call `configure_logging`; only the API composition root
# (or a developer script) does, so library use keeps structlog's defaults.
