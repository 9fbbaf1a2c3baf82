"""
portfolio_runtime.views.base

Render contract consumed by the ViewRenderCache.

Responsibilities:
- `render(data) -> str` (required).
- `init(data)` after the output is in place, and `destroy()`; both default to no-ops.
"""

from __future__ import annotations

import abc
from typing import Any


class BaseView(abc.ABC):
    name = "view"

    @abc.abstractmethod
    def render(self, data: Any) -> str:
        """Return the HTML for `data`. Must be a pure function of `data` for caching to be correct."""

    async def init(self, data: Any) -> None:
        return None

    def destroy(self) -> None:
        return None


# --- Module Notes -----------------------------------------------------------
# `init` runs after every swap, cached or fresh, so it must be safe to repeat;
# views that attach state in `init` release it in `destroy`.
