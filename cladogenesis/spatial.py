"""Spatial collaborators: locations and the adjacency graph between them.

Species only ever ask a graph two things: whether it knows a location and
which locations neighbour it. ``networkx.Graph`` answers both, so any
networkx graph whose nodes are locations can be handed to
:meth:`Species.recompute_groups` directly.
"""

from __future__ import annotations

from typing import Hashable, Iterable, Iterator, NamedTuple, Protocol

import networkx as nx


class Point(NamedTuple):
    x: int
    y: int


class AdjacencyGraph(Protocol):
    def __contains__(self, location: object) -> bool: ...

    def neighbors(self, location: Hashable) -> Iterator[Hashable]: ...


def grid_network(
    width: int, height: int, *, diagonal: bool = False, periodic: bool = False
) -> nx.Graph:
    """
    Build a ``width`` x ``height`` lattice whose nodes are :class:`Point`.

    Args:
        width: Number of columns.
        height: Number of rows.
        diagonal: Also connect the four diagonal neighbours (Moore
            neighbourhood instead of von Neumann).
        periodic: Wrap edges around, turning the grid into a torus.

    Returns:
        nx.Graph: The lattice.
    """
    if width < 1 or height < 1:
        raise ValueError(f"Grid dimensions must be positive, got {width}x{height}")

    graph = nx.grid_2d_graph(width, height, periodic=periodic)
    if diagonal:
        for x in range(width):
            for y in range(height):
                for dx in (-1, 1):
                    tx, ty = x + dx, y + 1
                    if periodic:
                        tx, ty = tx % width, ty % height
                    if 0 <= tx < width and 0 <= ty < height and (tx, ty) != (x, y):
                        graph.add_edge((x, y), (tx, ty))
    return nx.relabel_nodes(graph, {node: Point(*node) for node in graph.nodes})


def remove_locations(graph: nx.Graph, locations: Iterable[Hashable]) -> nx.Graph:
    """Copy of ``graph`` without ``locations`` (e.g. a new barrier)."""
    trimmed = graph.copy()
    trimmed.remove_nodes_from(list(locations))
    return trimmed
