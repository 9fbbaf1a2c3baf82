"""
portfolio_runtime.orchestrator.graph

Dependency ordering for registered modules.

Responsibilities:
- Validate that every dependency exists and is not scheduled later.
- Detect cycles.
- Produce a stable start order (sequential phases) or dependency waves
  (parallel phases).
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from portfolio_runtime.errors import RegistrationError
from portfolio_runtime.orchestrator.descriptors import ModuleDescriptor


class DependencyGraph:
    def __init__(self, descriptors: Iterable[ModuleDescriptor]) -> None:
        self._descriptors: dict[str, ModuleDescriptor] = {}
        for descriptor in descriptors:
            if descriptor.name in self._descriptors:
                raise RegistrationError(f"duplicate module name: {descriptor.name!r}", module=descriptor.name)
            self._descriptors[descriptor.name] = descriptor

    @property
    def descriptors(self) -> Mapping[str, ModuleDescriptor]:
        return self._descriptors

    def validate(self) -> None:
        for descriptor in self._descriptors.values():
            for dep in sorted(descriptor.dependencies):
                target = self._descriptors.get(dep)
                if target is None:
                    raise RegistrationError(
                        f"module {descriptor.name!r} depends on unknown module {dep!r}",
                        module=descriptor.name,
                        dependency=dep,
                    )
                if target.phase.order > descriptor.phase.order:
                    raise RegistrationError(
                        f"module {descriptor.name!r} depends on {dep!r}, which starts in a later phase",
                        module=descriptor.name,
                        dependency=dep,
                    )
        self.start_order(self._descriptors)

    def start_order(self, names: Iterable[str]) -> list[str]:
        """
        Dependencies first; ties keep registration order. Only dependencies
        inside `names` constrain the order.
        """

        scope = [n for n in self._descriptors if n in set(names)]
        in_scope = set(scope)
        visited: set[str] = set()
        visiting: list[str] = []
        order: list[str] = []

        def visit(name: str) -> None:
            if name in visited:
                return
            if name in visiting:
                cycle = " -> ".join([*visiting[visiting.index(name) :], name])
                raise RegistrationError(f"circular dependency: {cycle}", cycle=cycle)
            visiting.append(name)
            deps = self._descriptors[name].dependencies
            for dep in (n for n in scope if n in deps and n in in_scope):
                visit(dep)
            visiting.pop()
            visited.add(name)
            order.append(name)

        for name in scope:
            visit(name)
        return order

    def waves(self, names: Iterable[str]) -> list[list[str]]:
        """Groups that can start concurrently: each wave depends only on earlier waves."""

        order = self.start_order(names)
        in_scope = set(order)
        level: dict[str, int] = {}
        for name in order:
            deps = [d for d in self._descriptors[name].dependencies if d in in_scope]
            level[name] = 1 + max((level[d] for d in deps), default=-1)
        waves: list[list[str]] = [[] for _ in range(max(level.values(), default=-1) + 1)]
        for name in order:
            waves[level[name]].append(name)
        return waves
