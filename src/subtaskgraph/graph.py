"""Dependency graph over one parent's batch of subtasks.

The graph is closed-world: its nodes are exactly the subtasks of the batch.
A dependency on an issue outside the batch is an *external* target; it is
settled by that issue's state alone and never traversed.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass

from .errors import CyclicDependencyError
from .models import Subtask

_UNVISITED = 0
_ON_STACK = 1
_DONE = 2


@dataclass(frozen=True)
class DependencyGraph:
    edges: Mapping[int, tuple[int, ...]]

    def __contains__(self, number: object) -> bool:
        return number in self.edges

    def __iter__(self) -> Iterator[int]:
        return iter(self.edges)

    def __len__(self) -> int:
        return len(self.edges)

    @property
    def nodes(self) -> tuple[int, ...]:
        return tuple(self.edges)

    def dependencies(self, number: int) -> tuple[int, ...]:
        return self.edges.get(number, ())

    def internal_dependencies(self, number: int) -> tuple[int, ...]:
        return tuple(d for d in self.dependencies(number) if d in self.edges)

    def external_dependencies(self, number: int) -> tuple[int, ...]:
        return tuple(d for d in self.dependencies(number) if d not in self.edges)

    def external_targets(self) -> tuple[int, ...]:
        seen: dict[int, None] = {}
        for node in self.edges:
            for dep in self.external_dependencies(node):
                seen.setdefault(dep, None)
        return tuple(seen)


def build_graph(subtasks: Iterable[Subtask]) -> DependencyGraph:
    return DependencyGraph(edges={s.number: tuple(s.dependencies) for s in subtasks})


def detect_cycle(graph: DependencyGraph) -> tuple[int, ...] | None:
    """Return the first cycle found by depth-first search, or ``None``.

    The witness starts and ends on the same node, e.g. ``(101, 102, 101)``.
    Iterative: ``path`` is the recursion stack and ``cursor`` holds the next
    edge position for each frame.
    """
    nodes = graph.nodes
    index = {node: i for i, node in enumerate(nodes)}
    adjacency = [[index[d] for d in graph.dependencies(node) if d in index] for node in nodes]
    state = bytearray(len(nodes))

    for root in range(len(nodes)):
        if state[root] != _UNVISITED:
            continue
        state[root] = _ON_STACK
        path = [root]
        cursor = [0]
        while path:
            node = path[-1]
            pos = cursor[-1]
            if pos >= len(adjacency[node]):
                state[node] = _DONE
                path.pop()
                cursor.pop()
                continue
            cursor[-1] = pos + 1
            nxt = adjacency[node][pos]
            if state[nxt] == _ON_STACK:
                start = path.index(nxt)
                return tuple(nodes[i] for i in path[start:]) + (nodes[nxt],)
            if state[nxt] == _UNVISITED:
                state[nxt] = _ON_STACK
                path.append(nxt)
                cursor.append(0)
    return None


def format_cycle(cycle: Sequence[int]) -> str:
    return " → ".join(f"#{n}" for n in cycle)


def ensure_acyclic(graph: DependencyGraph) -> None:
    cycle = detect_cycle(graph)
    if cycle is not None:
        raise CyclicDependencyError(cycle)


__all__ = [
    "DependencyGraph",
    "build_graph",
    "detect_cycle",
    "ensure_acyclic",
    "format_cycle",
]
