"""
Dependency graph — validation and topological ordering.

A graph maps each node name to the names it depends on (edges point at
dependencies).  Both functions are pure and deterministic: nodes are
visited in lexicographic order, dependencies in declared order.
"""

from __future__ import annotations

from typing import Iterable, Mapping, Sequence

from polyrun.core.errors import (
    CircularDependencyError,
    SelfDependencyError,
    UnknownDependencyError,
    UnknownTargetError,
)

Graph = Mapping[str, Sequence[str]]

_UNVISITED, _ON_STACK, _DONE = 0, 1, 2


def topological_sort(graph: Graph, nodes: Iterable[str] | None = None) -> list[str]:
    """Order nodes so that dependencies come before dependents.

    Args:
        graph: Node → dependency names.
        nodes: Nodes to include (plus their transitive dependencies).
            Defaults to every node, sorted by name.

    Returns:
        Node names in post-order, each exactly once.

    Raises:
        CircularDependencyError: A cycle is reachable from ``nodes``.
        UnknownDependencyError: A dependency is not in the graph.
        UnknownTargetError: A requested start node is not in the graph.
    """
    start = sorted(graph) if nodes is None else list(nodes)

    color: dict[str, int] = {}
    result: list[str] = []

    for root in start:
        if root not in graph:
            raise UnknownTargetError(root)
        if color.get(root, _UNVISITED) == _DONE:
            continue

        # Explicit DFS stack of (node, next dependency index)
        path: list[str] = [root]
        stack: list[tuple[str, int]] = [(root, 0)]
        color[root] = _ON_STACK

        while stack:
            node, i = stack[-1]
            deps = graph[node]
            if i < len(deps):
                stack[-1] = (node, i + 1)
                dep = deps[i]
                if dep not in graph:
                    raise UnknownDependencyError(node, dep)
                state = color.get(dep, _UNVISITED)
                if state == _ON_STACK:
                    cycle = path[path.index(dep):] + [dep]
                    raise CircularDependencyError(dep, cycle)
                if state == _UNVISITED:
                    color[dep] = _ON_STACK
                    path.append(dep)
                    stack.append((dep, 0))
                continue

            stack.pop()
            path.pop()
            color[node] = _DONE
            result.append(node)

    return result


def validate(graph: Graph) -> None:
    """Check a dependency graph for self-loops, dangling edges, and cycles.

    Raises:
        SelfDependencyError, UnknownDependencyError, CircularDependencyError
    """
    for name in sorted(graph):
        for dep in graph[name]:
            if dep == name:
                raise SelfDependencyError(name)
            if dep not in graph:
                raise UnknownDependencyError(name, dep)

    topological_sort(graph)
