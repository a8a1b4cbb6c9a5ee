"""A* shortest-path search over a weighted adjacency mapping."""

from __future__ import annotations

import heapq
from collections.abc import Callable, Hashable, Mapping
from itertools import count
from typing import Any, TypeVar

V = TypeVar("V", bound=Hashable)

Graph = Mapping[V, Mapping[V, Any]]


def astar(
    graph: Graph,
    start: V,
    target: V,
    heuristic: Callable[[V], Any],
) -> tuple[Any, list[V]] | None:
    """Find the cheapest path from ``start`` to ``target``.

    ``graph`` maps each vertex to a mapping of neighbour -> edge weight.
    Returns ``(total_weight, path)`` or ``None`` when ``target`` is unreachable.
    A heuristic that always returns zero makes this Dijkstra's algorithm.
    """
    tie = count()
    queue: list[tuple[Any, int, Any, V]] = []
    previous: dict[V, V] = {}
    weights: dict[V, Any] = {start: 0}

    heapq.heappush(queue, (heuristic(start), next(tie), 0, start))

    while queue:
        _, _, real_weight, current = heapq.heappop(queue)
        if current == target:
            break

        for neighbour, edge_weight in graph.get(current, {}).items():
            candidate = real_weight + edge_weight
            known = weights.get(neighbour)
            if known is None or candidate < known:
                weights[neighbour] = candidate
                previous[neighbour] = current
                heapq.heappush(
                    queue,
                    (candidate + heuristic(neighbour), next(tie), candidate, neighbour),
                )

    if target not in weights:
        return None

    path = [target]
    current = target
    while current != start:
        current = previous[current]
        path.append(current)
    path.reverse()
    return weights[target], path