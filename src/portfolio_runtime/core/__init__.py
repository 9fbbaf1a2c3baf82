"""
portfolio_runtime.core

Leaf components every other layer depends on.

Responsibilities:
- Event bus (`core.events`) and its closed event vocabulary.
- Deadline guard and cancellation tokens (`core.timeout`).
- Lifecycle module contract (`core.lifecycle`).
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Nothing in `core` imports from the layers above it.
