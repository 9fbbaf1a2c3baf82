"""
portfolio_runtime.services

Infrastructure services started in the second bootstrap phase.

Responsibilities:
- Error reporting, theme, accessibility, performance metrics.
- Preference persistence shared by theme and accessibility.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Every service here is DEGRADABLE: the page still renders without it.
