"""Relationship engine - derives the entity graph from tabular records.

Each active relationship names a from-field and a to-field. Every record
of every tablet that can resolve both fields contributes the cross
product of its from-keys and to-keys as edges:

- the undirected graph gets both directions
- the directed graph gets the declared direction only, plus the style tag
- each touched pair remembers the record that produced it
"""

from __future__ import annotations

import logging
import random
from collections.abc import Iterable

from linknode.config import Settings
from linknode.graph.analysis import GraphAnalysis
from linknode.graph.model import GraphModel
from linknode.graph.world import WorldPositions
from linknode.models.records import Bundle, Bundles, Tablet
from linknode.models.relationship import RelationshipHistory, RelationshipSpec

logger = logging.getLogger(__name__)


class RelationshipEngine:
    """Owns the directed/undirected graphs and the world positions."""

    def __init__(self, settings: Settings, world: WorldPositions | None = None) -> None:
        self.settings = settings
        self.world = world or WorldPositions(
            rng=random.Random(settings.random_seed),
            init_min=settings.world_init_min,
            init_max=settings.world_init_max,
        )
        self.root = Bundles()
        self.relationships: list[RelationshipSpec] = []
        self.retained: set[str] = set()
        self.history = RelationshipHistory(settings.recent_relationships)
        self._reset_graphs()

    def _reset_graphs(self) -> None:
        self.directed: GraphModel[Bundle] = GraphModel(directed=True)
        self.undirected: GraphModel[Bundle] = GraphModel(directed=False)
        self.analysis = GraphAnalysis(self.undirected)

    # ------------------------------------------------------------------
    # Root records and rebuilds
    # ------------------------------------------------------------------

    def set_root(self, bundles: Bundles) -> None:
        """Replace the root record set and rebuild the graph wholesale.

        World positions of entities that reappear are kept; new entities
        get a fresh random position and entities that are gone lose theirs.
        """
        self.root = bundles
        self.rebuild()
        dropped = self.world.prune(self.entities())
        if dropped:
            logger.debug(f"Dropped {dropped} positions of departed entities")

    def rebuild(self) -> None:
        """Re-derive both graphs from the root using every active relationship."""
        self._reset_graphs()
        for spec in self.relationships:
            self._materialize(spec, self.root)
        logger.info(
            f"Rebuilt graph: {len(self.undirected)} nodes, "
            f"{self.directed.edge_count()} directed links, "
            f"{len(self.relationships)} relationships"
        )

    # ------------------------------------------------------------------
    # Relationship management
    # ------------------------------------------------------------------

    def add_relationship(self, spec: RelationshipSpec) -> bool:
        """Activate a relationship and apply it to the root records.

        Returns:
            False if the spec was already active
        """
        self.history.touch(spec)
        if spec in self.relationships:
            return False
        self.relationships.append(spec)
        touched = self._materialize(spec, self.root)
        logger.info(f"Added relationship {spec}: {touched} record pairs")
        return True

    def remove_relationship(self, spec: RelationshipSpec) -> bool:
        """Deactivate a relationship; the graph is rebuilt from the root."""
        if spec not in self.relationships:
            return False
        self.relationships.remove(spec)
        logger.info(f"Removed relationship {spec}")
        self.rebuild()
        return True

    def clear_relationships(self) -> None:
        """Deactivate every relationship."""
        self.relationships.clear()
        self.rebuild()

    def replace_relationships(self, specs: Iterable[RelationshipSpec]) -> None:
        """Swap in a whole relationship list (duplicates dropped) and rebuild."""
        self.relationships = []
        for spec in specs:
            if spec not in self.relationships:
                self.relationships.append(spec)
                self.history.touch(spec)
        self.rebuild()

    def retain(self, entities: Iterable[str]) -> None:
        """Narrow the graph to edges whose endpoints are both in a set."""
        self.retained = set(entities)
        logger.info(f"Retaining {len(self.retained)} nodes")
        self.rebuild()

    def clear_retained(self) -> None:
        """Leave narrowing mode."""
        self.retained = set()
        self.rebuild()

    # ------------------------------------------------------------------
    # Derivation
    # ------------------------------------------------------------------

    def entity_id(self, field_name: str, key: str, typed: bool) -> str:
        """Compose an entity string, prefixed by the field name when typed."""
        if typed:
            return f"{field_name}{self.settings.typed_delimiter}{key}"
        return key

    def fills_any(self, tablet: Tablet) -> bool:
        """Check whether a tablet resolves at least one active relationship."""
        return any(tablet.fills(spec) for spec in self.relationships)

    def fills_all(self, tablet: Tablet) -> bool:
        """Check whether a tablet resolves every active relationship."""
        return bool(self.relationships) and all(tablet.fills(spec) for spec in self.relationships)

    def _materialize(self, spec: RelationshipSpec, bundles: Bundles) -> int:
        """Apply one relationship to a record set.

        Returns:
            Number of (record, from, to) triples that produced an edge
        """
        touched = 0
        for tablet in bundles.tablets:
            if not tablet.fills(spec):
                logger.debug(f"Tablet {tablet.name!r} cannot resolve {spec}; skipped")
                continue
            for bundle in bundles.tablet_bundles(tablet):
                from_keys = tablet.resolve(spec.from_field, bundle)
                to_keys = tablet.resolve(spec.to_field, bundle)
                for from_key in from_keys:
                    for to_key in to_keys:
                        if self._link(spec, bundle, from_key, to_key):
                            touched += 1
        if touched:
            self.analysis.invalidate()
        return touched

    def _link(self, spec: RelationshipSpec, bundle: Bundle, from_key: str, to_key: str) -> bool:
        not_set = self.settings.not_set
        if spec.ignore_not_set and (from_key == not_set or to_key == not_set):
            return False

        from_entity = self.entity_id(spec.from_field, from_key, spec.from_typed)
        to_entity = self.entity_id(spec.to_field, to_key, spec.to_typed)
        if self.retained and (from_entity not in self.retained or to_entity not in self.retained):
            return False

        self.world.ensure(from_entity)
        self.world.ensure(to_entity)

        # Weights count distinct contributing records per ordered pair, so a
        # record reached through two relationships still adds 1
        u_from, u_to = self.undirected.add_node(from_entity), self.undirected.add_node(to_entity)
        if self.undirected.add_link_reference(u_from, u_to, bundle):
            self.undirected.increment(u_from, u_to)
        if u_from != u_to and self.undirected.add_link_reference(u_to, u_from, bundle):
            self.undirected.increment(u_to, u_from)

        d_from, d_to = self.directed.add_node(from_entity), self.directed.add_node(to_entity)
        if self.directed.add_link_reference(d_from, d_to, bundle):
            self.directed.increment(d_from, d_to)
        self.directed.add_link_style(d_from, d_to, spec.style)
        return True

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def entities(self) -> list[str]:
        """Every entity in the graph."""
        return self.undirected.entities()

    def undirected_weight(self, a: str, b: str) -> float:
        """Undirected weight between two entities (0.0 if unlinked)."""
        i, j = self.undirected.index_of(a), self.undirected.index_of(b)
        if i is None or j is None or not self.undirected.has_edge(i, j):
            return 0.0
        return self.undirected.weight(i, j)

    def records_for(self, entities: Iterable[str]) -> set[Bundle]:
        """Every record attached to a link touching any of the entities."""
        records: set[Bundle] = set()
        for entity in entities:
            i = self.undirected.index_of(entity)
            if i is None:
                continue
            for j in self.undirected.neighbors(i):
                records |= self.undirected.link_references(i, j)
        return records
