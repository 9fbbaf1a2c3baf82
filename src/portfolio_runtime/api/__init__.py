"""
portfolio_runtime.api

HTTP host surface for the portfolio runtime.

Responsibilities:
- FastAPI app factory and router modules.
- API-layer dependency wiring and request/response models.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# The API layer stays thin: it drives the runtime and serializes its state.
