"""Render context - one frame's aggregation of records into screen geometry.

A context is built from scratch for every render request and never
changed afterwards. Entities whose world positions land on the same
rounded screen pixel share one node-coordinate key and are drawn as a
single node; links are keyed by their two node keys.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from linknode.config import Settings
from linknode.graph.relationships import RelationshipEngine
from linknode.graph.transform import CoordinateTransform
from linknode.models.records import Bundle, Bundles
from linknode.models.relationship import EdgeStyle
from linknode.render.colors import ColorManager
from linknode.render.counters import CountingContext, FieldResolver
from linknode.render.options import RenderOptions

logger = logging.getLogger(__name__)


def link_key(from_key: str, to_key: str) -> str:
    """Key of a rendered link between two node-coordinate keys."""
    return f"{from_key}->{to_key}"


class CancellationToken:
    """Tells a render pass whether a newer render has been requested."""

    def __init__(self, render_id: int, latest: Callable[[], int]) -> None:
        self.render_id = render_id
        self._latest = latest

    @property
    def cancelled(self) -> bool:
        return self._latest() != self.render_id

    @classmethod
    def never(cls, render_id: int = 0) -> "CancellationToken":
        """A token that is never cancelled."""
        return cls(render_id, lambda: render_id)


def bundle_resolver(bundles: Bundles) -> FieldResolver:
    """Field resolver over the tablets of a record source."""
    tablets = {t.name: t for t in bundles.tablets}

    def resolve(bundle: Bundle, field_name: str) -> list[str] | None:
        tablet = tablets.get(bundle.tablet)
        if tablet is None or not tablet.can_resolve(field_name):
            return None
        return tablet.resolve(field_name, bundle)

    return resolve


@dataclass
class RenderContext:
    """Snapshot correlating graph, viewport and options for one frame."""

    render_id: int
    transform_id: int
    resolver: FieldResolver
    link_counter: CountingContext
    node_counter: CountingContext
    entity_counter: CountingContext
    no_mapping: frozenset[Bundle] = frozenset()
    node_entities: dict[str, set[str]] = field(default_factory=dict)
    node_positions: dict[str, tuple[int, int]] = field(default_factory=dict)
    node_neighbors: dict[str, set[str]] = field(default_factory=dict)
    entity_to_node: dict[str, str] = field(default_factory=dict)
    link_endpoints: dict[str, tuple[str, str]] = field(default_factory=dict)
    link_entities: dict[str, set[tuple[str, str]]] = field(default_factory=dict)
    link_styles: dict[str, set[EdgeStyle]] = field(default_factory=dict)
    link_times: dict[str, list[float]] = field(default_factory=dict)
    aborted: bool = False

    def node_keys(self) -> list[str]:
        """Node keys, smallest total first (larger nodes draw on top)."""
        return self.node_counter.bins_sorted_by_count()

    def link_keys(self) -> list[str]:
        return self.link_counter.bins_sorted_by_count()

    def entities_for(self, node_key: str) -> set[str]:
        """Entities aggregated under a node key."""
        return set(self.node_entities.get(node_key, ()))

    def node_for(self, entity: str) -> str | None:
        """Node key an entity was drawn under."""
        return self.entity_to_node.get(entity)

    def link_style(self, key: str) -> EdgeStyle:
        """Stroke style of a rendered link.

        Several distinct styles collapsing into one line give SOLID.
        """
        styles = self.link_styles.get(key, set())
        if len(styles) == 1:
            return next(iter(styles))
        return EdgeStyle.SOLID

    def degree(self, node_key: str) -> int:
        """Number of distinct other nodes a node is linked to."""
        return len(self.node_neighbors.get(node_key, ()))

    def max_degree(self) -> int:
        return max((len(n) for n in self.node_neighbors.values()), default=0)

    def mapped_bundles(self) -> set[Bundle]:
        """Records that contributed to at least one node or link."""
        return self.link_counter.all_bundles() | self.node_counter.all_bundles()


def build_render_context(
    engine: RelationshipEngine,
    transform: CoordinateTransform,
    bundles: Bundles,
    options: RenderOptions,
    colors: ColorManager,
    settings: Settings,
    token: CancellationToken | None = None,
) -> RenderContext:
    """Aggregate the records in scope into a render context.

    Args:
        engine: graph source (the directed graph's link references are used)
        transform: provides cached per-entity screen positions
        bundles: records in the render scope
        options: count/color fields and matching strictness
        colors: color manager for the counting contexts
        settings: session settings
        token: checked before every record; the pass stops early once
            it reports cancellation

    Returns:
        The context; ``aborted`` is set when the pass was cancelled
    """
    token = token or CancellationToken.never()
    resolver = bundle_resolver(bundles)

    def counter() -> CountingContext:
        return CountingContext(
            resolver, colors, options.count_by, options.color_by, settings.no_color_bin
        )

    ctx = RenderContext(
        render_id=token.render_id,
        transform_id=transform.transform_id,
        resolver=resolver,
        link_counter=counter(),
        node_counter=counter(),
        entity_counter=counter(),
    )
    no_mapping = set(bundles)
    graph = engine.directed

    time_range = bundles.time_range() if options.timing_marks else None
    if time_range is not None:
        start, end = time_range
        span = (end - start).total_seconds()

    for tablet in bundles.tablets:
        if engine.relationships:
            fillable = engine.fills_all(tablet) if options.strict_matches else engine.fills_any(tablet)
        else:
            fillable = len(graph) > 0
        if not fillable:
            continue

        for bundle in bundles.tablet_bundles(tablet):
            if token.cancelled:
                logger.debug(f"Render {token.render_id} aborted after {len(ctx.link_counter)} links")
                ctx.no_mapping = frozenset(no_mapping)
                ctx.aborted = True
                return ctx

            mapped = False
            for i, j in sorted(graph.links_for(bundle)):
                from_entity, to_entity = graph.entity(i), graph.entity(j)
                from_point, to_point = transform.screen(from_entity), transform.screen(to_entity)
                if from_point is None or to_point is None:
                    continue
                fk, tk = transform.node_key(from_entity), transform.node_key(to_entity)
                lk = link_key(fk, tk)
                mapped = True

                ctx.link_counter.count(bundle, lk)
                ctx.node_counter.count(bundle, fk)
                ctx.entity_counter.count(bundle, from_entity)
                if tk != fk:
                    ctx.node_counter.count(bundle, tk)
                    ctx.node_neighbors.setdefault(fk, set()).add(tk)
                    ctx.node_neighbors.setdefault(tk, set()).add(fk)
                if to_entity != from_entity:
                    ctx.entity_counter.count(bundle, to_entity)

                for key, entity, point in ((fk, from_entity, from_point), (tk, to_entity, to_point)):
                    ctx.node_entities.setdefault(key, set()).add(entity)
                    ctx.node_positions[key] = point
                    ctx.entity_to_node[entity] = key

                ctx.link_endpoints[lk] = (fk, tk)
                ctx.link_entities.setdefault(lk, set()).add((from_entity, to_entity))
                ctx.link_styles.setdefault(lk, set()).update(graph.link_styles(i, j))

                if time_range is not None and bundle.timestamp is not None:
                    t = (bundle.timestamp - start).total_seconds() / span if span else 0.5
                    ctx.link_times.setdefault(lk, []).append(t)

            if mapped:
                no_mapping.discard(bundle)

    ctx.no_mapping = frozenset(no_mapping)
    logger.debug(
        f"Render {token.render_id}: {len(ctx.node_counter)} nodes, "
        f"{len(ctx.link_counter)} links, {len(ctx.no_mapping)} unmapped records"
    )
    return ctx
