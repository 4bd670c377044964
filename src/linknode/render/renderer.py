"""Renderer - turns a render context into drawable shapes.

The default ``SceneRenderer`` does not rasterize anything; it produces
a ``Scene`` of node and link primitives plus the index that ties every
primitive to the records behind it. A front end draws the primitives.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Set
from dataclasses import asdict, dataclass, field
from typing import Any, Protocol

from linknode.config import Settings
from linknode.models.records import Bundle
from linknode.models.relationship import EdgeStyle
from linknode.render.colors import ColorManager, with_alpha
from linknode.render.context import RenderContext
from linknode.render.labels import LabelTarget, compose_label
from linknode.render.options import RenderOptions

logger = logging.getLogger(__name__)

LINK_HIT_TOLERANCE = 3.0


@dataclass
class NodeShape:
    """A circle standing for every entity under one node key."""

    shape_id: str
    node_key: str
    x: float
    y: float
    radius: float
    color: str
    entities: list[str]
    selected: bool = False
    label: str | None = None
    label_color: str | None = None

    def contains(self, sx: float, sy: float) -> bool:
        # One-pixel nodes must still be clickable
        return math.hypot(sx - self.x, sy - self.y) <= max(self.radius, 1.0)

    def intersects(self, x0: float, y0: float, x1: float, y1: float) -> bool:
        """Check whether the circle touches a rectangle (any corner order)."""
        lo_x, hi_x = min(x0, x1), max(x0, x1)
        lo_y, hi_y = min(y0, y1), max(y0, y1)
        nearest_x = min(max(self.x, lo_x), hi_x)
        nearest_y = min(max(self.y, lo_y), hi_y)
        return math.hypot(self.x - nearest_x, self.y - nearest_y) <= self.radius

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class LinkShape:
    """A line (or curve) between two node shapes."""

    shape_id: str
    link_key: str
    from_key: str
    to_key: str
    x0: float
    y0: float
    x1: float
    y1: float
    width: float
    color: str
    style: EdgeStyle = EdgeStyle.SOLID
    curved: bool = False
    arrow: bool = False
    timing: list[float] = field(default_factory=list)
    label: str | None = None
    label_color: str | None = None

    def contains(self, sx: float, sy: float, tolerance: float = LINK_HIT_TOLERANCE) -> bool:
        """Check whether a point is within ``tolerance`` of the segment."""
        dx, dy = self.x1 - self.x0, self.y1 - self.y0
        length_sq = dx * dx + dy * dy
        if length_sq == 0:
            return math.hypot(sx - self.x0, sy - self.y0) <= tolerance + self.width / 2
        t = max(0.0, min(1.0, ((sx - self.x0) * dx + (sy - self.y0) * dy) / length_sq))
        px, py = self.x0 + t * dx, self.y0 + t * dy
        return math.hypot(sx - px, sy - py) <= tolerance + self.width / 2

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


Shape = NodeShape | LinkShape


class Scene:
    """Drawn primitives plus shape <-> record lookups.

    Shapes are keyed by string ids derived from node and link keys, so
    no lookup depends on the identity of a geometry object.
    """

    def __init__(self, render_id: int = 0) -> None:
        self.render_id = render_id
        self._shapes: dict[str, Shape] = {}
        self._bundles: dict[str, set[Bundle]] = {}
        self._shapes_for: dict[Bundle, set[str]] = {}
        self._node_shapes: dict[str, str] = {}

    def register(self, shape: Shape, bundles: Iterable[Bundle]) -> None:
        """Add a shape and correlate it with its records."""
        self._shapes[shape.shape_id] = shape
        members = set(bundles)
        self._bundles[shape.shape_id] = members
        for bundle in members:
            self._shapes_for.setdefault(bundle, set()).add(shape.shape_id)
        if isinstance(shape, NodeShape):
            self._node_shapes[shape.node_key] = shape.shape_id

    def shape(self, shape_id: str) -> Shape | None:
        return self._shapes.get(shape_id)

    def node(self, node_key: str) -> NodeShape | None:
        """Node shape drawn for a node key."""
        shape_id = self._node_shapes.get(node_key)
        return self._shapes.get(shape_id) if shape_id else None  # type: ignore[return-value]

    def nodes(self) -> list[NodeShape]:
        return [s for s in self._shapes.values() if isinstance(s, NodeShape)]

    def links(self) -> list[LinkShape]:
        return [s for s in self._shapes.values() if isinstance(s, LinkShape)]

    def bundles_for(self, shape_id: str) -> set[Bundle]:
        """Records behind a shape (empty for unknown ids)."""
        return set(self._bundles.get(shape_id, ()))

    def shapes_for(self, bundle: Bundle) -> set[str]:
        """Ids of every shape a record contributes to."""
        return set(self._shapes_for.get(bundle, ()))

    def nodes_at(self, sx: float, sy: float) -> list[NodeShape]:
        return [n for n in self.nodes() if n.contains(sx, sy)]

    def nodes_in_rect(self, x0: float, y0: float, x1: float, y1: float) -> list[NodeShape]:
        return [n for n in self.nodes() if n.intersects(x0, y0, x1, y1)]

    def __len__(self) -> int:
        return len(self._shapes)

    def summary(self) -> dict[str, Any]:
        """JSON-friendly dump of every primitive."""
        return {
            "render_id": self.render_id,
            "nodes": [n.to_dict() for n in self.nodes()],
            "links": [link.to_dict() for link in self.links()],
        }


class Renderer(Protocol):
    """Anything that can turn a render context into a scene."""

    def draw(
        self,
        context: RenderContext,
        options: RenderOptions,
        selection: Set[str],
        sticky: Set[str],
    ) -> Scene: ...


class SceneRenderer:
    """Default renderer: applies the size/color modes and label calculators."""

    def __init__(self, settings: Settings, colors: ColorManager) -> None:
        self.settings = settings
        self.colors = colors

    def draw(
        self,
        context: RenderContext,
        options: RenderOptions,
        selection: Set[str],
        sticky: Set[str],
    ) -> Scene:
        scene = Scene(context.render_id)
        for key in context.link_keys():
            self._draw_link(scene, context, options, key)
        max_degree = context.max_degree()
        for key in context.node_keys():
            self._draw_node(scene, context, options, key, selection, sticky, max_degree)
        logger.debug(f"Drew {len(scene.nodes())} nodes, {len(scene.links())} links")
        return scene

    def _draw_link(self, scene: Scene, context: RenderContext, options: RenderOptions, key: str) -> None:
        counter = context.link_counter
        from_key, to_key = context.link_endpoints[key]
        x0, y0 = context.node_positions[from_key]
        x1, y1 = context.node_positions[to_key]

        color = options.link_color.compute_color(counter, key, self.colors)
        if options.transparency:
            color = with_alpha(color, 0.2 + 0.8 * counter.total_normalized(key))

        shape = LinkShape(
            shape_id=f"link:{key}",
            link_key=key,
            from_key=from_key,
            to_key=to_key,
            x0=x0,
            y0=y0,
            x1=x1,
            y1=y1,
            width=options.link_size.compute_shape(counter, key, self.settings),
            color=color,
            style=context.link_style(key),
            curved=options.curves,
            arrow=options.arrows and from_key != to_key,
            timing=sorted(context.link_times.get(key, [])) if options.timing_marks else [],
        )
        if options.link_labels:
            target = self._target(context, counter, key, _link_entity_names(context, key))
            shape.label = compose_label(
                options.link_label_selection, target, self.settings.label_max_chars
            )
            if options.link_label_selection:
                shape.label_color = options.link_label_selection[0].compute_color(target, self.colors)
        scene.register(shape, counter.bundles(key))

    def _draw_node(
        self,
        scene: Scene,
        context: RenderContext,
        options: RenderOptions,
        key: str,
        selection: Set[str],
        sticky: Set[str],
        max_degree: int,
    ) -> None:
        counter = context.node_counter
        entities = sorted(context.entities_for(key))
        x, y = context.node_positions[key]

        color = options.node_color.compute_color(counter, key, entities, self.colors)
        if options.transparency:
            color = with_alpha(color, 0.2 + 0.8 * counter.total_normalized(key))

        selected = any(e in selection for e in entities)
        shape = NodeShape(
            shape_id=f"node:{key}",
            node_key=key,
            x=x,
            y=y,
            radius=options.node_size.compute_shape(
                counter, key, self.settings, context.degree(key), max_degree
            ),
            color=color,
            entities=entities,
            selected=selected,
        )

        is_sticky = any(e in sticky for e in entities)
        if options.dynamic_labels:
            labeled = selected or is_sticky
        else:
            labeled = options.node_labels or is_sticky
        if labeled and options.node_label_selection:
            target = self._target(context, counter, key, entities)
            shape.label = compose_label(
                options.node_label_selection, target, self.settings.label_max_chars
            )
            shape.label_color = options.node_label_selection[0].compute_color(target, self.colors)
        scene.register(shape, counter.bundles(key))

    def _target(self, context: RenderContext, counter, key: str, entities: list[str]) -> LabelTarget:
        return LabelTarget(
            entities=entities,
            bundles=counter.bundles(key),
            resolver=context.resolver,
            total=counter.total(key),
            maximum=counter.total_maximum(),
        )


def _link_entity_names(context: RenderContext, key: str) -> list[str]:
    return sorted(f"{a} -> {b}" for a, b in context.link_entities.get(key, ()))
