"""
portfolio_runtime.models

Data models loaded in the first bootstrap phase.

Responsibilities:
- Portfolio content sections and the owner profile.
- Fallback values substituted when loading fails.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Models are DEGRADABLE; the page renders fallback content instead.
