"""
portfolio_runtime.views.document

In-memory stand-in for the browser document.

Responsibilities:
- Hold the named render surfaces (containers) views are written into.
- Hold root-level attributes/styles set by theme and accessibility services.
- Hold the full-page fallback that replaces the body after a critical failure.
- Serialize the whole document to HTML for the HTTP surface.
"""

from __future__ import annotations

import html
from collections.abc import Iterable
from dataclasses import dataclass, field

from portfolio_runtime.errors import RegistrationError

DEFAULT_CONTAINERS: tuple[str, ...] = ("main-nav", "hero-section", "main-content", "main-footer")

_CONTAINER_TAGS = {
    "main-nav": "header",
    "hero-section": "section",
    "main-content": "main",
    "main-footer": "footer",
}


@dataclass(slots=True)
class RenderSurface:
    key: str
    html: str = ""
    classes: set[str] = field(default_factory=set)
    writes: int = 0

    def swap(self, content: str) -> None:
        self.html = content
        self.writes += 1

    def reset(self) -> None:
        self.html = ""
        self.classes.clear()
        self.writes = 0


class Document:
    def __init__(self, containers: Iterable[str] = DEFAULT_CONTAINERS, *, title: str = "Portfolio") -> None:
        self.title = title
        self._surfaces: dict[str, RenderSurface] = {key: RenderSurface(key) for key in containers}
        self.root_attributes: dict[str, str] = {"lang": "en"}
        self.root_style: dict[str, str] = {}
        self.meta: dict[str, str] = {}
        self.fallback_page: str | None = None

    @property
    def containers(self) -> tuple[str, ...]:
        return tuple(self._surfaces)

    def surface(self, key: str) -> RenderSurface:
        try:
            return self._surfaces[key]
        except KeyError:
            raise RegistrationError(f"render container not found: {key!r}", container=key) from None

    def show_fallback_page(self, content: str) -> None:
        self.fallback_page = content

    def reset(self) -> None:
        for surface in self._surfaces.values():
            surface.reset()
        self.fallback_page = None

    def to_html(self) -> str:
        attrs = " ".join(f'{k}="{html.escape(v)}"' for k, v in sorted(self.root_attributes.items()))
        style = "; ".join(f"{k}: {v}" for k, v in sorted(self.root_style.items()))
        style_attr = f' style="{html.escape(style)}"' if style else ""
        metas = "".join(
            f'<meta name="{html.escape(k)}" content="{html.escape(v)}">' for k, v in sorted(self.meta.items())
        )
        if self.fallback_page is not None:
            body = self.fallback_page
        else:
            body = "".join(self._render_surface(s) for s in self._surfaces.values())
        return (
            f"<!DOCTYPE html><html {attrs}{style_attr}><head><meta charset=\"utf-8\">"
            f"<title>{html.escape(self.title)}</title>{metas}</head><body>{body}</body></html>"
        )

    @staticmethod
    def _render_surface(surface: RenderSurface) -> str:
        tag = _CONTAINER_TAGS.get(surface.key, "div")
        classes = f' class="{" ".join(sorted(surface.classes))}"' if surface.classes else ""
        return f'<{tag} id="{surface.key}"{classes}>{surface.html}</{tag}>'


# --- Module Notes -----------------------------------------------------------
# Surfaces are only written through `ViewRenderCache.render_view`, which
# serializes writes per container key.
