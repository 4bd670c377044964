"""Multigraph keyed by entity strings, with per-edge record references."""

from __future__ import annotations

import math
from collections.abc import Hashable, Iterator
from typing import Generic, TypeVar

import networkx as nx

from linknode.models.relationship import EdgeStyle

RefT = TypeVar("RefT", bound=Hashable)

LinkRef = tuple[int, int]


class GraphModel(Generic[RefT]):
    """
    A weighted graph over entity strings.

    Nodes are integer indices bijective with entity strings. Each
    ordered pair (i, j) that has been linked carries a weight, a set
    of record references ("bundles") and zero or more style tags. The
    reverse pair (j, i) is independent: callers that want an undirected
    view link both directions.
    """

    def __init__(self, directed: bool = True) -> None:
        self.directed = directed
        self._entities: list[str] = []
        self._index: dict[str, int] = {}
        self._neighbors: dict[int, list[int]] = {}
        self._weights: dict[int, dict[int, float]] = {}
        self._link_refs: dict[int, dict[int, set[RefT]]] = {}
        self._link_unrefs: dict[RefT, set[LinkRef]] = {}
        self._link_styles: dict[LinkRef, set[EdgeStyle]] = {}

    # ------------------------------------------------------------------
    # Nodes
    # ------------------------------------------------------------------

    def add_node(self, entity: str) -> int:
        """Get or create the node index for an entity."""
        index = self._index.get(entity)
        if index is not None:
            return index
        index = len(self._entities)
        self._entities.append(entity)
        self._index[entity] = index
        self._neighbors[index] = []
        self._weights[index] = {}
        self._link_refs[index] = {}
        return index

    def __len__(self) -> int:
        return len(self._entities)

    def __contains__(self, entity: object) -> bool:
        return entity in self._index

    def entity(self, index: int) -> str:
        """Entity string for a node index."""
        return self._entities[index]

    def index_of(self, entity: str) -> int | None:
        """Node index for an entity, or None if absent."""
        return self._index.get(entity)

    def entities(self) -> list[str]:
        """All entity strings in index order."""
        return list(self._entities)

    def neighbors(self, index: int) -> list[int]:
        """Outgoing neighbors of a node, in insertion order."""
        return list(self._neighbors[index])

    def degree(self, index: int) -> int:
        """Number of outgoing neighbors."""
        return len(self._neighbors[index])

    # ------------------------------------------------------------------
    # Edges
    # ------------------------------------------------------------------

    def _ensure_link(self, i: int, j: int) -> None:
        if j not in self._weights[i]:
            self._neighbors[i].append(j)
            self._weights[i][j] = 0.0
            self._link_refs[i][j] = set()

    def add_neighbor(self, from_entity: str, to_entity: str, weight: float = 1.0) -> LinkRef:
        """Link two entities, setting (not accumulating) the weight."""
        i, j = self.add_node(from_entity), self.add_node(to_entity)
        self._ensure_link(i, j)
        self._weights[i][j] = weight
        return i, j

    def increment(self, i: int, j: int, amount: float = 1.0) -> float:
        """Add to the weight of (i, j), creating the link if needed."""
        self._ensure_link(i, j)
        self._weights[i][j] += amount
        return self._weights[i][j]

    def has_edge(self, i: int, j: int) -> bool:
        """Check whether (i, j) has been linked."""
        return j in self._weights.get(i, {})

    def weight(self, i: int, j: int) -> float:
        """Weight of (i, j); infinite when unlinked (distance semantics)."""
        return self._weights.get(i, {}).get(j, math.inf)

    def edges(self) -> Iterator[LinkRef]:
        """All linked ordered pairs."""
        for i, targets in self._neighbors.items():
            for j in targets:
                yield i, j

    def edge_count(self) -> int:
        """Number of linked ordered pairs."""
        return sum(len(targets) for targets in self._neighbors.values())

    # ------------------------------------------------------------------
    # Record references and styles
    # ------------------------------------------------------------------

    def add_link_reference(self, i: int, j: int, ref: RefT) -> bool:
        """Attach a record to (i, j).

        Returns:
            True if the record was not attached to this pair before
        """
        self._ensure_link(i, j)
        refs = self._link_refs[i][j]
        if ref in refs:
            return False
        refs.add(ref)
        self._link_unrefs.setdefault(ref, set()).add((i, j))
        return True

    def link_references(self, i: int, j: int) -> set[RefT]:
        """Records attached to (i, j) (empty when unlinked)."""
        return set(self._link_refs.get(i, {}).get(j, ()))

    def links_for(self, ref: RefT) -> set[LinkRef]:
        """Reverse index: every pair a record is attached to."""
        return set(self._link_unrefs.get(ref, ()))

    def referenced(self) -> Iterator[RefT]:
        """Every record attached to at least one link."""
        return iter(self._link_unrefs)

    def add_link_style(self, i: int, j: int, style: EdgeStyle) -> None:
        """Tag (i, j) with a stroke style."""
        self._link_styles.setdefault((i, j), set()).add(style)

    def link_styles(self, i: int, j: int) -> set[EdgeStyle]:
        """Style tags on (i, j)."""
        return set(self._link_styles.get((i, j), ()))

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    def to_networkx(self) -> nx.Graph:
        """Copy into a networkx graph keyed by entity string.

        The copy shares nothing with this model, so it can be handed to
        worker threads while the model keeps changing.
        """
        graph: nx.Graph = nx.DiGraph() if self.directed else nx.Graph()
        graph.add_nodes_from(self._entities)
        for i, j in self.edges():
            graph.add_edge(self._entities[i], self._entities[j], weight=self._weights[i][j])
        return graph

    def __repr__(self) -> str:
        kind = "directed" if self.directed else "undirected"
        return f"GraphModel({kind}, nodes={len(self)}, links={self.edge_count()})"
