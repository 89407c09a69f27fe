"""Ordered step registry.

Steps declare the steps they depend on; the registry validates the
dependency graph and yields a stable topological order. The graph repairer
uses it to make the order of its passes an explicit, checked contract.

Usage::

    from storyloom.pipeline.registry import StepMeta, StepRegistry

    registry = StepRegistry()

    def step(name, *, depends_on=()):
        def decorator(fn):
            registry.register(fn, StepMeta(name, tuple(depends_on), len(registry)))
            return fn
        return decorator
"""

from __future__ import annotations

import heapq
from collections import defaultdict
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Callable


@dataclass(frozen=True)
class StepMeta:
    """Metadata attached to a registered step function."""

    name: str
    depends_on: tuple[str, ...]
    priority: int
    description: str = ""


STEP_META_ATTR = "_step_meta"


class StepRegistry:
    """Collects step functions and validates their dependency DAG.

    Call ``validate()`` to check for missing dependencies or cycles and
    ``execution_order()`` for a stable topological ordering. Steps with no
    dependency relationship run in priority (registration) order.
    """

    def __init__(self) -> None:
        self._steps: dict[str, StepMeta] = {}
        self._functions: dict[str, Callable[..., Any]] = {}

    def register(self, fn: Callable[..., Any], meta: StepMeta) -> None:
        """Register a step function with its metadata.

        Raises:
            ValueError: If a step with the same name is already registered.
        """
        if meta.name in self._steps:
            msg = (
                f"Duplicate step name {meta.name!r}: "
                f"already registered by {self._functions[meta.name].__qualname__}"
            )
            raise ValueError(msg)
        self._steps[meta.name] = meta
        self._functions[meta.name] = fn
        setattr(fn, STEP_META_ATTR, meta)

    def _graph(self) -> tuple[dict[str, int], dict[str, list[str]]]:
        in_degree: dict[str, int] = dict.fromkeys(self._steps, 0)
        adj: dict[str, list[str]] = defaultdict(list)
        for meta in self._steps.values():
            for dep in meta.depends_on:
                adj[dep].append(meta.name)
                in_degree[meta.name] += 1
        return in_degree, adj

    def validate(self) -> list[str]:
        """Validate the dependency DAG.

        Returns:
            List of error strings. Empty means valid.
        """
        errors: list[str] = []
        for meta in self._steps.values():
            for dep in meta.depends_on:
                if dep not in self._steps:
                    errors.append(f"Step {meta.name!r} depends on {dep!r}, which is not registered")
        if errors:
            return errors

        in_degree, adj = self._graph()
        pending = [name for name, deg in in_degree.items() if deg == 0]
        visited = 0
        while pending:
            node = pending.pop()
            visited += 1
            for neighbor in adj[node]:
                in_degree[neighbor] -= 1
                if in_degree[neighbor] == 0:
                    pending.append(neighbor)

        if visited != len(self._steps):
            cycle_members = [name for name, deg in in_degree.items() if deg > 0]
            errors.append(f"Dependency cycle detected among: {', '.join(sorted(cycle_members))}")
        return errors

    def execution_order(self) -> list[str]:
        """Return step names in stable topological order.

        Kahn's algorithm with a min-heap on ``priority``.

        Raises:
            ValueError: If the DAG has a cycle or a missing dependency.
        """
        errors = self.validate()
        if errors:
            raise ValueError("; ".join(errors))

        in_degree, adj = self._graph()
        heap: list[tuple[int, str]] = []
        for name, deg in in_degree.items():
            if deg == 0:
                heapq.heappush(heap, (self._steps[name].priority, name))

        result: list[str] = []
        while heap:
            _priority, name = heapq.heappop(heap)
            result.append(name)
            for neighbor in adj[name]:
                in_degree[neighbor] -= 1
                if in_degree[neighbor] == 0:
                    heapq.heappush(heap, (self._steps[neighbor].priority, neighbor))
        return result

    def steps(self) -> list[tuple[StepMeta, Callable[..., Any]]]:
        """Metadata and function for every step, in execution order."""
        return [(self._steps[name], self._functions[name]) for name in self.execution_order()]

    def get_meta(self, name: str) -> StepMeta | None:
        return self._steps.get(name)

    def get_function(self, name: str) -> Callable[..., Any] | None:
        return self._functions.get(name)

    @property
    def step_names(self) -> list[str]:
        """All registered step names (insertion order)."""
        return list(self._steps.keys())

    def __len__(self) -> int:
        return len(self._steps)

    def __contains__(self, name: str) -> bool:
        return name in self._steps

    def step_table(self) -> str:
        """Markdown table of registered steps in execution order."""
        lines = ["| Priority | Name | Depends On | Description |"]
        lines.append("|----------|------|------------|-------------|")
        for meta, _fn in self.steps():
            deps = ", ".join(meta.depends_on) if meta.depends_on else "-"
            lines.append(f"| {meta.priority} | {meta.name} | {deps} | {meta.description} |")
        return "\n".join(lines)
