"""
portfolio_runtime.orchestrator.plan

Composition root for the portfolio application.

Responsibilities:
- Construct the bus, error reporter, document and every module from `Settings`.
- Declare the bootstrap plan (phases, dependencies, criticality, fallbacks).
- Expose a `PortfolioRuntime` facade used by the HTTP layer and tests.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from portfolio_runtime.controllers.navigation import NavigationController
from portfolio_runtime.controllers.section import SectionController
from portfolio_runtime.core.events import EventBus
from portfolio_runtime.core.lifecycle import InitContext
from portfolio_runtime.models.content import FALLBACK_CONTENT, ContentModel
from portfolio_runtime.models.user import FALLBACK_USER, UserModel, UserProfile
from portfolio_runtime.orchestrator.app import ModuleOrchestrator
from portfolio_runtime.orchestrator.descriptors import Criticality, ModuleDescriptor, Phase
from portfolio_runtime.orchestrator.status import AppState
from portfolio_runtime.routing.router import Route, Router
from portfolio_runtime.services.accessibility import AccessibilityManager
from portfolio_runtime.services.error_reporter import ErrorReporter
from portfolio_runtime.services.performance import PerformanceMonitor
from portfolio_runtime.services.preferences import JsonFileBackend, PreferenceBackend, PreferenceStore
from portfolio_runtime.services.theme import ThemeManager
from portfolio_runtime.settings import Settings
from portfolio_runtime.views.base import BaseView
from portfolio_runtime.views.cache import RenderOutcome, ViewRenderCache
from portfolio_runtime.views.document import Document
from portfolio_runtime.views.pages import NAVIGATION_ITEMS, default_views


@dataclass(slots=True)
class PortfolioRuntime:
    settings: Settings
    bus: EventBus
    reporter: ErrorReporter
    document: Document
    preferences: PreferenceStore
    content: ContentModel
    user: UserModel
    theme: ThemeManager
    accessibility: AccessibilityManager
    performance: PerformanceMonitor
    views: ViewRenderCache
    router: Router
    navigation: NavigationController
    sections: SectionController
    orchestrator: ModuleOrchestrator
    page_lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)

    @property
    def state(self) -> AppState:
        return self.orchestrator.state

    async def start(self) -> AppState:
        return await self.orchestrator.init()

    async def stop(self) -> None:
        await self.orchestrator.destroy()

    async def navigate(self, path: str, *, replace: bool = False) -> bool:
        """Navigate and wait until the controllers have finished re-rendering."""
        found = await self.router.navigate(path, replace=replace)
        await self.settle()
        return found

    async def settle(self) -> None:
        await self.navigation.settle()
        await self.sections.settle()

    def render_document(self) -> str:
        return self.document.to_html()

    async def render_page(self, path: str) -> tuple[bool, str]:
        """
        Navigate and snapshot the document as one step. The document is shared,
        so concurrent callers are serialized on `page_lock`; returns
        `(False, "")` when no route matches.
        """

        async with self.page_lock:
            if not await self.navigate(path):
                return False, ""
            return True, self.render_document()


def build_runtime(
    settings: Settings,
    *,
    content_source: Iterable[Mapping[str, Any]] | None = None,
    user_source: Mapping[str, Any] | None = None,
    preferences_backend: PreferenceBackend | None = None,
) -> PortfolioRuntime:
    bus = EventBus()
    reporter = ErrorReporter(
        bus=bus,
        max_queue_size=settings.error_queue_size,
        application={"service": settings.service_name, "version": settings.version, "env": settings.env},
    )
    bus.set_error_sink(reporter.capture)

    if preferences_backend is None and settings.preferences_path:
        preferences_backend = JsonFileBackend(settings.preferences_path)
    preferences = PreferenceStore(preferences_backend)
    document = Document()

    content = ContentModel(bus=bus, source=content_source)
    user = UserModel(bus=bus, source=user_source)
    theme = ThemeManager(
        bus=bus, preferences=preferences, document=document, system_preference=settings.system_theme
    )
    accessibility = AccessibilityManager(bus=bus, preferences=preferences, document=document)
    performance = PerformanceMonitor(bus=bus)
    views = ViewRenderCache(
        bus=bus,
        document=document,
        reporter=reporter.capture,
        enabled=settings.enable_view_cache,
        max_entries=settings.view_cache_size,
        ttl=settings.view_cache_ttl_seconds,
        transition=settings.view_transition_seconds,
    )
    router = Router(bus=bus, initial_path=settings.initial_path)
    navigation = NavigationController(bus=bus, router=router, views=views, reporter=reporter.capture)
    sections = SectionController(bus=bus, content=content, views=views, reporter=reporter.capture)

    orchestrator = ModuleOrchestrator(bus=bus, reporter=reporter, document=document, performance=performance)
    runtime = PortfolioRuntime(
        settings=settings,
        bus=bus,
        reporter=reporter,
        document=document,
        preferences=preferences,
        content=content,
        user=user,
        theme=theme,
        accessibility=accessibility,
        performance=performance,
        views=views,
        router=router,
        navigation=navigation,
        sections=sections,
        orchestrator=orchestrator,
    )
    orchestrator.register_all(build_descriptors(runtime))
    return runtime


def build_descriptors(rt: PortfolioRuntime) -> list[ModuleDescriptor]:
    timeout = rt.settings.module_timeout_seconds

    async def load_preferences(ctx: InitContext) -> dict[str, Any]:
        return rt.preferences.load()

    def register_view(view: BaseView) -> ModuleDescriptor:
        async def init(ctx: InitContext) -> str:
            rt.views.register_view(view.name, view)
            return view.name

        return ModuleDescriptor(
            name=f"{view.name}_view",
            initializer=init,
            phase=Phase.VIEWS,
            dependencies={rt.views.name},
            timeout=timeout,
        )

    async def init_router(ctx: InitContext) -> dict[str, Any]:
        try:
            for item in NAVIGATION_ITEMS:
                handler = _section_handler(rt, item.section_id)
                rt.router.add_route(item.path, "section", handler=handler, title=item.label)
            return await rt.router.initialize(ctx)
        except BaseException:
            # A failed or cancelled attempt leaves no routes behind for the next start.
            rt.router.clear()
            raise

    async def initial_render(ctx: InitContext) -> dict[str, Any]:
        profile = ctx.result(rt.user.name)
        if not isinstance(profile, UserProfile):
            profile = FALLBACK_USER
        person = profile.model_dump(mode="json")
        outcomes: list[RenderOutcome] = [
            await rt.navigation.render(rt.router.current_path),
            await rt.views.render_view("hero", person, "hero-section"),
            await rt.sections.show(_section_for(rt.router.current_route)),
            await rt.views.render_view("footer", {**person, "year": datetime.now(UTC).year}, "main-footer"),
        ]
        return {"rendered": [o.view for o in outcomes], "errors": [o.view for o in outcomes if not o.ok]}

    return [
        # Phase 1: data models (parallel, degradable).
        ModuleDescriptor(
            name="preferences", initializer=load_preferences, phase=Phase.MODELS, timeout=timeout, fallback={}
        ),
        ModuleDescriptor.for_module(rt.content, phase=Phase.MODELS, timeout=timeout, fallback=FALLBACK_CONTENT),
        ModuleDescriptor.for_module(rt.user, phase=Phase.MODELS, timeout=timeout, fallback=FALLBACK_USER),
        # Phase 2: infrastructure (parallel, degradable).
        ModuleDescriptor.for_module(rt.reporter, phase=Phase.INFRASTRUCTURE, timeout=timeout),
        ModuleDescriptor.for_module(rt.theme, phase=Phase.INFRASTRUCTURE, inputs={"preferences"}, timeout=timeout),
        ModuleDescriptor.for_module(
            rt.accessibility, phase=Phase.INFRASTRUCTURE, inputs={"preferences"}, timeout=timeout
        ),
        ModuleDescriptor.for_module(rt.performance, phase=Phase.INFRASTRUCTURE, timeout=timeout),
        # Phase 3: view layer (sequential, critical).
        ModuleDescriptor.for_module(rt.views, phase=Phase.VIEWS, timeout=timeout),
        *(register_view(view) for view in default_views()),
        # Phase 4: router (critical).
        ModuleDescriptor(
            name=rt.router.name,
            initializer=init_router,
            phase=Phase.ROUTER,
            timeout=timeout,
            finalizer=rt.router.destroy,
        ),
        # Phase 5: controllers (sequential).
        ModuleDescriptor.for_module(
            rt.navigation,
            phase=Phase.CONTROLLERS,
            dependencies={rt.router.name, "navigation_view"},
            criticality=Criticality.DEGRADABLE,
            timeout=timeout,
        ),
        ModuleDescriptor.for_module(
            rt.sections,
            phase=Phase.CONTROLLERS,
            dependencies={"section_view"},
            inputs={rt.content.name},
            timeout=timeout,
        ),
        # Phase 6: initial render (critical).
        ModuleDescriptor(
            name="initial_render",
            initializer=initial_render,
            phase=Phase.INITIAL_RENDER,
            dependencies={"hero_view", "footer_view", rt.sections.name},
            inputs={rt.user.name},
            timeout=timeout,
        ),
    ]


def _section_handler(rt: PortfolioRuntime, section_id: str | None):
    async def handler(route: Route) -> None:
        await rt.sections.show(section_id)

    return handler


def _section_for(route: Route | None) -> str | None:
    if route is None:
        return None
    return next((item.section_id for item in NAVIGATION_ITEMS if item.path == route.path), None)


# --- Module Notes -----------------------------------------------------------
# Routes and views are registered inside their phase initializers so that a
# destroy()/init() cycle rebuilds them exactly as the first start did.
