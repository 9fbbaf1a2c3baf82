"""
portfolio_runtime.observability

Observability package.

Responsibilities:
- Structured logging configuration.
- Request context propagation for consistent log enrichment.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Runtime metrics live in `services.performance`; this package only shapes log output.
