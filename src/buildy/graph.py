"""Dependency graph over subprojects."""

from __future__ import annotations

from graphlib import CycleError, TopologicalSorter
from typing import TYPE_CHECKING

from buildy.exceptions import ConfigValidationError

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from buildy.config.models import SubProjectConfig

Graph = dict[str, list[str]]


def build_dependency_graph(sub_projects: Sequence[SubProjectConfig]) -> Graph:
    """Map each subproject name to the names it depends on."""
    return {sp.name: list(sp.depends_on) for sp in sub_projects}


def subprojects_to_build(graph: Graph, changed: Iterable[str]) -> list[str]:
    """Return the changed subprojects and everything they depend on.

    Names appear in discovery order, each once.
    """
    result: list[str] = []
    visited: set[str] = set()

    def visit(name: str) -> None:
        if name in visited:
            return
        visited.add(name)
        result.append(name)
        for dependency in graph.get(name, []):
            visit(dependency)

    for name in changed:
        visit(name)
    return result


def build_order(graph: Graph, names: Iterable[str] | None = None) -> list[str]:
    """Order subprojects so that dependencies come first.

    Args:
        graph: Dependency graph
        names: Subset to order, defaults to every node

    Returns:
        Names in dependency order; ties keep configuration order

    Raises:
        ConfigValidationError: If the dependencies contain a cycle
    """
    selected = set(graph if names is None else names)
    sorter: TopologicalSorter[str] = TopologicalSorter()
    for name in graph:
        if name in selected:
            sorter.add(name, *(dep for dep in graph[name] if dep in selected))

    position = {name: i for i, name in enumerate(graph)}
    order: list[str] = []
    try:
        sorter.prepare()
    except CycleError as e:
        raise ConfigValidationError(f"Dependency cycle between subprojects: {e.args[1]}") from e

    while sorter.is_active():
        ready = sorted(sorter.get_ready(), key=lambda n: position.get(n, len(position)))
        order.extend(ready)
        sorter.done(*ready)
    return order
