"""Memoized structural analyses over the undirected graph."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING

import networkx as nx

if TYPE_CHECKING:
    from linknode.graph.model import GraphModel

logger = logging.getLogger(__name__)


class GraphAnalysis:
    """Derived graph measures, cached until the graph changes.

    Every structural mutation of the owning graph must call
    ``invalidate``; nothing here notices changes on its own.
    """

    def __init__(self, graph: "GraphModel") -> None:
        self.graph = graph
        self._snapshot: nx.Graph | None = None
        self._biconnected: list[set[str]] | None = None
        self._cut_points: set[str] | None = None
        self._clustering: dict[str, float] | None = None
        self._conductance: dict[frozenset[str], float] = {}

    def invalidate(self) -> None:
        """Drop every cached result."""
        self._snapshot = None
        self._biconnected = None
        self._cut_points = None
        self._clustering = None
        self._conductance.clear()

    @property
    def is_cached(self) -> bool:
        """True if any analysis result is currently memoized."""
        return any(
            v is not None
            for v in (self._snapshot, self._biconnected, self._cut_points, self._clustering)
        ) or bool(self._conductance)

    def _nx(self) -> nx.Graph:
        if self._snapshot is None:
            snapshot = self.graph.to_networkx()
            if snapshot.is_directed():
                snapshot = snapshot.to_undirected()
            snapshot.remove_edges_from(list(nx.selfloop_edges(snapshot)))
            self._snapshot = snapshot
        return self._snapshot

    def biconnected_components(self) -> list[set[str]]:
        """Biconnected components, largest first."""
        if self._biconnected is None:
            components = [set(c) for c in nx.biconnected_components(self._nx())]
            components.sort(key=lambda c: (-len(c), sorted(c)))
            self._biconnected = components
            logger.debug(f"Computed {len(components)} biconnected components")
        return [set(c) for c in self._biconnected]

    def cut_vertices(self) -> set[str]:
        """Articulation points: entities whose removal disconnects the graph."""
        if self._cut_points is None:
            self._cut_points = set(nx.articulation_points(self._nx()))
        return set(self._cut_points)

    def cluster_coefficients(self) -> dict[str, float]:
        """Local clustering coefficient per entity."""
        if self._clustering is None:
            self._clustering = dict(nx.clustering(self._nx()))
        return dict(self._clustering)

    def conductance(self, entities: Iterable[str]) -> float:
        """Conductance of the cut between an entity set and the rest.

        Returns 0.0 for an empty set or a set covering the whole graph.
        """
        graph = self._nx()
        key = frozenset(e for e in entities if e in graph)
        if key not in self._conductance:
            rest = graph.number_of_nodes() - len(key)
            if not key or rest == 0 or graph.number_of_edges() == 0:
                value = 0.0
            else:
                try:
                    value = float(nx.conductance(graph, key))
                except ZeroDivisionError:
                    value = 0.0
            self._conductance[key] = value
        return self._conductance[key]
