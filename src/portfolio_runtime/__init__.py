"""
portfolio_runtime

Top-level package for the portfolio front-end runtime.

Responsibilities:
- Expose package version metadata.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"


# --- Module Notes -----------------------------------------------------------
# Keep this file minimal; the orchestrator and its modules are wired explicitly
# by `portfolio_runtime.orchestrator.plan`, never at import time.
