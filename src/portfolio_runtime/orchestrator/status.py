"""
portfolio_runtime.orchestrator.status

Serializable snapshot of the orchestrator for diagnostics and the HTTP surface.
"""

from __future__ import annotations

import enum
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class AppState(enum.StrEnum):
    PENDING = "pending"
    BOOTSTRAPPING = "bootstrapping"
    RUNNING = "running"
    ERROR = "error"


class ModuleReport(BaseModel):
    name: str
    phase: str
    criticality: str
    status: str
    duration: float | None = None
    error: str | None = None


class StatusReport(BaseModel):
    state: AppState
    degraded: bool = False
    online: bool = True
    started_at: datetime | None = None
    finished_at: datetime | None = None
    duration: float | None = None
    error: str | None = None
    modules: list[ModuleReport] = Field(default_factory=list)
    failed_modules: list[str] = Field(default_factory=list)
    counters: dict[str, int] = Field(default_factory=dict)
    metrics: dict[str, Any] = Field(default_factory=dict)
