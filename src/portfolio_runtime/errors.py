"""
portfolio_runtime.errors

Error taxonomy shared by every layer of the runtime.

Responsibilities:
- Name each failure class the orchestrator distinguishes (registration, timeout,
  initialization, render, connectivity).
- Carry structured context that the ErrorReporter can serialize as-is.
"""

from __future__ import annotations

from typing import Any


class PortfolioError(Exception):
    """
    Base class. `context` holds structured metadata (phase, module, view, ...).
    """

    kind = "portfolio_error"

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context: dict[str, Any] = context

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "message": self.message, **self.context}


class RegistrationError(PortfolioError):
    """
    Malformed module, view, route or event registration (the validation error).
    Raised synchronously at configuration time, never swallowed.
    """

    kind = "validation_error"


class EventPayloadError(RegistrationError):
    """Payload published for an event kind is not the registered payload model."""

    kind = "event_payload_error"


class OperationTimeout(PortfolioError):
    """Raised by the timeout guard when `label` does not settle within `duration` seconds."""

    kind = "timeout_error"

    def __init__(self, label: str, duration: float) -> None:
        super().__init__(
            f"{label} did not complete within {duration:.3f}s",
            label=label,
            duration=duration,
        )
        self.label = label
        self.duration = duration


class OperationCancelled(PortfolioError):
    """The work guarded as `label` ended cancelled although neither the guard nor its caller cancelled it."""

    kind = "cancelled_error"

    def __init__(self, label: str) -> None:
        super().__init__(f"{label} was cancelled", label=label)
        self.label = label


class InitializationError(PortfolioError):
    """A module initializer rejected, or a module could not start because of its dependencies."""

    kind = "initialization_error"

    def __init__(self, module: str, message: str, **context: Any) -> None:
        super().__init__(message, module=module, **context)
        self.module = module


class RenderError(PortfolioError):
    """A view's `render` or `init` raised, or returned something other than HTML text."""

    kind = "render_error"

    def __init__(self, view: str, message: str, **context: Any) -> None:
        super().__init__(message, view=view, **context)
        self.view = view


class NetworkStatusError(PortfolioError):
    """Connectivity loss. Non-fatal: reported, never raised out of the orchestrator."""

    kind = "network_status_error"


# --- Module Notes -----------------------------------------------------------
# Every error here is caught somewhere in the runtime; only `RegistrationError`
# escapes to the caller because it signals a configuration bug.
