"""
portfolio_runtime.views

View layer.

Responsibilities:
- Document model and render surfaces.
- Render contract, concrete portfolio views and fallback markup.
- ViewRenderCache (registry + memoized, per-container serialized rendering).
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Views never touch the document directly; all writes go through the cache.
