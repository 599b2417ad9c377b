"""Dependency analysis: execution order, cycles and orphans from edge topology.

Dependencies are taken from edges only. A node may be wired to a predecessor
without consuming any of its variables (branch routing), and the variable
resolver reports references separately.
"""

from __future__ import annotations

import heapq
from collections import deque
from collections.abc import Sequence

from dslforge.analysis.references import extract_references
from dslforge.analysis.result import DependencyGraph, NodeDependency
from dslforge.model.contracts import DEFAULT_REGISTRY, ContractRegistry
from dslforge.model.graph import Edge, Node


class DependencyAnalyzer:
    """Builds a :class:`DependencyGraph` from nodes and edges.

    Edges pointing at unknown nodes are skipped here; the validator reports
    them as dangling. When a node id is declared twice the first declaration
    wins.

    Example:
        >>> graph = DependencyAnalyzer().analyze(nodes, edges)
        >>> graph.topological_order
        ('start', 'llm', 'end')
    """

    def __init__(self, registry: ContractRegistry | None = None) -> None:
        self.registry = registry or DEFAULT_REGISTRY

    def analyze(self, nodes: Sequence[Node], edges: Sequence[Edge]) -> DependencyGraph:
        ordered: list[Node] = []
        index: dict[str, int] = {}
        for node in nodes:
            if node.id not in index:
                index[node.id] = len(ordered)
                ordered.append(node)

        depends_on: dict[str, list[str]] = {nid: [] for nid in index}
        depended_by: dict[str, list[str]] = {nid: [] for nid in index}
        for edge in edges:
            if edge.source not in index or edge.target not in index:
                continue
            if edge.source not in depends_on[edge.target]:
                depends_on[edge.target].append(edge.source)
            if edge.target not in depended_by[edge.source]:
                depended_by[edge.source].append(edge.target)

        order, residual = _topological_sort(index, depends_on, depended_by)
        cycles = _find_cycles(residual, index, depended_by)

        orphans = tuple(
            node.id
            for node in ordered
            if not node.is_entry and not depends_on[node.id] and not depended_by[node.id]
        )

        dependencies = {
            node.id: NodeDependency(
                node_id=node.id,
                depends_on=tuple(depends_on[node.id]),
                depended_by=tuple(depended_by[node.id]),
                variable_references=tuple(extract_references(node)),
                provides=tuple(self.registry.outputs_of(node.type, node.config)),
            )
            for node in ordered
        }
        return DependencyGraph(
            nodes=dependencies,
            topological_order=tuple(order),
            circular_dependencies=tuple(cycles),
            orphan_nodes=orphans,
        )


def _topological_sort(
    index: dict[str, int],
    depends_on: dict[str, list[str]],
    depended_by: dict[str, list[str]],
) -> tuple[list[str], list[str]]:
    """Kahn's algorithm; ties go to the earliest-declared node.

    Returns the order and the residual nodes that could not be placed
    because they sit on or behind a cycle. Residual nodes are appended to the
    order in declaration order.
    """
    in_degree = {nid: len(preds) for nid, preds in depends_on.items()}
    ready = [(index[nid], nid) for nid, degree in in_degree.items() if degree == 0]
    heapq.heapify(ready)

    order: list[str] = []
    while ready:
        _, nid = heapq.heappop(ready)
        order.append(nid)
        for successor in depended_by[nid]:
            in_degree[successor] -= 1
            if in_degree[successor] == 0:
                heapq.heappush(ready, (index[successor], successor))

    placed = set(order)
    residual = sorted((nid for nid in index if nid not in placed), key=index.__getitem__)
    return order + residual, residual


def _find_cycles(
    residual: list[str],
    index: dict[str, int],
    depended_by: dict[str, list[str]],
) -> list[tuple[str, ...]]:
    """Recover cycles among *residual* nodes via DFS back-edge detection.

    Each back edge ``u -> v`` yields the shortest cycle through it, rotated
    to start at its earliest-declared member. Duplicates are dropped.
    """
    members = set(residual)

    def successors(nid: str) -> list[str]:
        return sorted((s for s in depended_by[nid] if s in members), key=index.__getitem__)

    cycles: list[tuple[str, ...]] = []
    seen: set[tuple[str, ...]] = set()
    visited: set[str] = set()
    on_stack: set[str] = set()

    for root in residual:
        if root in visited:
            continue
        visited.add(root)
        on_stack.add(root)
        stack = [(root, iter(successors(root)))]
        while stack:
            nid, pending = stack[-1]
            descended = False
            for successor in pending:
                if successor in on_stack:
                    cycle = _canonical(_shortest_path(successor, nid, successors), index)
                    if cycle not in seen:
                        seen.add(cycle)
                        cycles.append(cycle)
                elif successor not in visited:
                    visited.add(successor)
                    on_stack.add(successor)
                    stack.append((successor, iter(successors(successor))))
                    descended = True
                    break
            if not descended:
                stack.pop()
                on_stack.discard(nid)
    return cycles


def _shortest_path(start: str, goal: str, successors) -> list[str]:
    """BFS path from *start* to *goal*; ``[start]`` when they coincide."""
    if start == goal:
        return [start]
    previous: dict[str, str | None] = {start: None}
    queue: deque[str] = deque([start])
    while queue:
        current = queue.popleft()
        for successor in successors(current):
            if successor in previous:
                continue
            previous[successor] = current
            if successor == goal:
                path = [goal]
                step = previous[goal]
                while step is not None:
                    path.append(step)
                    step = previous[step]
                path.reverse()
                return path
            queue.append(successor)
    return [start, goal]


def _canonical(cycle: list[str], index: dict[str, int]) -> tuple[str, ...]:
    first = min(range(len(cycle)), key=lambda i: index[cycle[i]])
    return tuple(cycle[first:] + cycle[:first])
