"""
portfolio_runtime.views.cache

ViewRenderCache: named views, bounded render cache, serialized container writes.

Responsibilities:
- Register views by name and render them into document containers.
- Memoize render output under a deterministic (view, data) key.
- Serialize writes to the same container so overlapping renders cannot interleave.
- Route every render/init failure into an inline fallback, an event and a report.
"""

from __future__ import annotations

import asyncio
import dataclasses
import json
import time
from collections import Counter, OrderedDict
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel

from portfolio_runtime.core.events import EventBus, EventKind, ErrorSink, ViewRendered, ViewRenderFailed
from portfolio_runtime.core.lifecycle import InitContext, LifecycleModule
from portfolio_runtime.errors import RegistrationError, RenderError
from portfolio_runtime.observability.logging import get_logger
from portfolio_runtime.views.base import BaseView
from portfolio_runtime.views.document import Document, RenderSurface
from portfolio_runtime.views.fallback import inline_error_panel

log = get_logger(__name__)

TRANSITION_CLASS = "view-transition"


def stable_serialize(data: Any) -> str:
    """
    Canonical JSON text for `data`: mapping keys sorted, compact separators.
    Equal data always yields the same text regardless of key insertion order.
    Raises TypeError for values with no canonical form.
    """

    return json.dumps(_normalize(data), sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def _normalize(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return _normalize(value.model_dump(mode="json"))
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return _normalize(dataclasses.asdict(value))
    if isinstance(value, Mapping):
        return {str(k): _normalize(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_normalize(v) for v in value]
    if isinstance(value, (set, frozenset)):
        return sorted((_normalize(v) for v in value), key=lambda v: json.dumps(v, sort_keys=True))
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    raise TypeError(f"no canonical form for {type(value).__name__}")


@dataclass(frozen=True, slots=True)
class CacheEntry:
    key: str
    view: str
    html: str
    created_at: float
    expires_at: float | None = None

    def expired(self, now: float) -> bool:
        return self.expires_at is not None and now >= self.expires_at


@dataclass(frozen=True, slots=True)
class RenderOutcome:
    view: str
    container: str
    html: str
    from_cache: bool
    duration: float
    error: RenderError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class ViewRenderCache(LifecycleModule):
    name = "view_cache"

    def __init__(
        self,
        *,
        bus: EventBus,
        document: Document,
        reporter: ErrorSink | None = None,
        enabled: bool = True,
        max_entries: int = 20,
        ttl: float | None = None,
        transition: float = 0.3,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        super().__init__()
        if max_entries < 0:
            raise RegistrationError("max_entries must be >= 0", max_entries=max_entries)
        self._bus = bus
        self._document = document
        self._reporter = reporter
        self._enabled = enabled
        self._max_entries = max_entries
        self._ttl = ttl
        self._transition = transition
        self._clock = clock

        self._views: dict[str, BaseView] = {}
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._locks: dict[str, asyncio.Lock] = {}
        self._render_counts: Counter[str] = Counter()
        self.hits = 0
        self.misses = 0
        self.evictions = 0

    # --- registry ------------------------------------------------------------

    def register_view(self, name: str, view: BaseView) -> None:
        if not name:
            raise RegistrationError("view name must be non-empty")
        if not isinstance(view, BaseView):
            raise RegistrationError(f"view {name!r} must implement BaseView", view=name)
        if name in self._views:
            log.info("view_replaced", view=name)
            self.invalidate(name)
        self._views[name] = view

    @property
    def views(self) -> tuple[str, ...]:
        return tuple(self._views)

    # --- rendering -----------------------------------------------------------

    async def render_view(self, name: str, data: Any = None, container: str = "main-content") -> RenderOutcome:
        view = self._views.get(name)
        if view is None:
            raise RegistrationError(f"view not registered: {name!r}", view=name)
        surface = self._document.surface(container)
        lock = self._locks.setdefault(container, asyncio.Lock())
        async with lock:
            return await self._render_locked(name, view, data, surface)

    async def _render_locked(self, name: str, view: BaseView, data: Any, surface: RenderSurface) -> RenderOutcome:
        started = time.perf_counter()
        key = self._cache_key(name, data)
        html = self._lookup(key)
        from_cache = html is not None
        try:
            if html is None:
                self.misses += 1
                self._render_counts[name] += 1
                html = view.render(data)
                if not isinstance(html, str):
                    raise RenderError(name, "render() must return str", got=type(html).__name__)
                self._store(key, name, html)
            else:
                self.hits += 1

            surface.swap(html)
            surface.classes.add(TRANSITION_CLASS)
            try:
                if self._transition > 0:
                    await asyncio.sleep(self._transition)
            finally:
                surface.classes.discard(TRANSITION_CLASS)
            await view.init(data)
        except Exception as exc:
            if key is not None:
                self._entries.pop(key, None)
            error = self._as_render_error(name, surface.key, exc)
            self._fail(name, surface, error)
            return RenderOutcome(
                view=name,
                container=surface.key,
                html=surface.html,
                from_cache=False,
                duration=time.perf_counter() - started,
                error=error,
            )

        duration = time.perf_counter() - started
        self._bus.publish(
            EventKind.VIEW_RENDERED,
            ViewRendered(view=name, container=surface.key, from_cache=from_cache, duration=duration),
        )
        return RenderOutcome(view=name, container=surface.key, html=html, from_cache=from_cache, duration=duration)

    def _fail(self, name: str, surface: RenderSurface, error: RenderError) -> None:
        log.error("view_render_failed", view=name, container=surface.key, error=str(error))
        surface.swap(inline_error_panel(name, error))
        self._bus.publish(EventKind.VIEW_RENDER_ERROR, ViewRenderFailed(view=name, container=surface.key, error=error))
        if self._reporter is not None:
            self._reporter(error, phase="render", module=self.name, view=name, container=surface.key)

    @staticmethod
    def _as_render_error(name: str, container: str, exc: Exception) -> RenderError:
        if isinstance(exc, RenderError):
            return exc
        error = RenderError(name, str(exc) or type(exc).__name__, container=container, cause=type(exc).__name__)
        error.__cause__ = exc
        return error

    # --- cache ---------------------------------------------------------------

    def _cache_key(self, name: str, data: Any) -> str | None:
        if not self._enabled or self._max_entries == 0:
            return None
        try:
            return f"{name}:{stable_serialize(data)}"
        except TypeError as exc:
            log.debug("render_uncacheable", view=name, reason=str(exc))
            return None

    def _lookup(self, key: str | None) -> str | None:
        if key is None:
            return None
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.expired(self._clock()):
            del self._entries[key]
            return None
        return entry.html

    def _store(self, key: str | None, name: str, html: str) -> None:
        if key is None:
            return
        now = self._clock()
        expires_at = now + self._ttl if self._ttl is not None else None
        self._entries.pop(key, None)
        self._entries[key] = CacheEntry(key=key, view=name, html=html, created_at=now, expires_at=expires_at)
        while len(self._entries) > self._max_entries:
            self._entries.popitem(last=False)
            self.evictions += 1

    def invalidate(self, name: str | None = None) -> int:
        stale = [key for key, entry in self._entries.items() if name is None or entry.view == name]
        for key in stale:
            del self._entries[key]
        return len(stale)

    def clear_cache(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def stats(self) -> dict[str, Any]:
        return {
            "entries": len(self._entries),
            "max_entries": self._max_entries,
            "hits": self.hits,
            "misses": self.misses,
            "evictions": self.evictions,
            "renders": dict(self._render_counts),
        }

    # --- lifecycle -----------------------------------------------------------

    async def on_initialize(self, ctx: InitContext | None) -> dict[str, Any]:
        log.info("view_cache_ready", enabled=self._enabled, max_entries=self._max_entries, ttl=self._ttl)
        return self.stats()

    async def on_destroy(self) -> None:
        for name, view in list(self._views.items()):
            try:
                view.destroy()
            except Exception as exc:
                log.error("view_destroy_failed", view=name, error=str(exc))
                if self._reporter is not None:
                    self._reporter(exc, phase="destroy", module=self.name, view=name)
        self._views.clear()
        self._entries.clear()
        self._locks.clear()
        self._render_counts.clear()
        self.hits = self.misses = self.evictions = 0


# --- Module Notes -----------------------------------------------------------
# Eviction is by insertion order (oldest entry first), not LRU; a hit does not
# refresh an entry's position. Data with no canonical serialization bypasses
# the cache entirely rather than risking a non-deterministic key.
