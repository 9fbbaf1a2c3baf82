"""
portfolio_runtime.orchestrator

Application lifecycle orchestration.

Responsibilities:
- Registration types and dependency ordering.
- The phase-ordered bootstrap state machine and its status report.
- The portfolio bootstrap plan (composition root).
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Call sites use `plan.build_runtime`; `ModuleOrchestrator` knows nothing about
# portfolios and can drive any plan of descriptors.
