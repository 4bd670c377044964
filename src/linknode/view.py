"""Link-node view - one interactive graph session.

Ties together the relationship engine, the coordinate transform, the
render pipeline and the interaction controller. Everything here runs on
the caller's thread; only batch layout preview uses worker threads.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from pathlib import Path

from linknode.config import Settings
from linknode.graph.layouts import LayoutAlgorithm, LayoutCandidate, LayoutPreviewer
from linknode.graph.persistence import load_layout, save_layout
from linknode.graph.relationships import RelationshipEngine
from linknode.graph.transform import CoordinateTransform, Extents
from linknode.interaction.controller import (
    Drag,
    InteractionController,
    InteractionState,
    ModeKey,
    PointerEvent,
)
from linknode.interaction.selection import Selection
from linknode.models.records import Bundle, Bundles
from linknode.models.relationship import RelationshipSpec
from linknode.render.colors import ColorManager
from linknode.render.context import CancellationToken, RenderContext, build_render_context
from linknode.render.modes import BackgroundMode
from linknode.render.options import RenderOptions, ViewConfig
from linknode.render.renderer import Renderer, Scene, SceneRenderer

logger = logging.getLogger(__name__)


class LinkNodeView:
    """
    Facade over one link-node graph.

    Render results are published as a (context, scene) pair, and only
    when a render pass completes without being superseded. Lookups made
    before the first publish return empty results.
    """

    def __init__(self, settings: Settings, renderer: Renderer | None = None) -> None:
        self.settings = settings
        self.colors = ColorManager(settings)
        self.engine = RelationshipEngine(settings)
        self.transform = CoordinateTransform(self.engine.world, settings)
        self.selection = Selection()
        self.sticky: set[str] = set()
        self.options = RenderOptions()
        self.renderer: Renderer = renderer or SceneRenderer(settings, self.colors)
        self.previewer = LayoutPreviewer(
            workers=settings.layout_workers,
            iterations=settings.layout_iterations,
            seed=settings.random_seed,
        )
        self.controller = InteractionController(self)

        self._scope: Callable[[Bundle], bool] | None = None
        self._render_id = 0
        self._context: RenderContext | None = None
        self._scene: Scene | None = None

    # ------------------------------------------------------------------
    # Records and relationships
    # ------------------------------------------------------------------

    @property
    def records(self) -> Bundles:
        return self.engine.root

    def set_records(self, bundles: Bundles) -> None:
        """Replace the root record set; the graph is rebuilt wholesale."""
        self.engine.set_root(bundles)
        present = set(self.engine.entities())
        self.selection.intersect(present)
        self.transform.transform()
        self.render()

    def set_scope(self, predicate: Callable[[Bundle], bool] | None) -> None:
        """Restrict rendering to matching records (None shows everything)."""
        self._scope = predicate
        self.render()

    def scope(self) -> Bundles:
        """Records in the current render scope."""
        if self._scope is None:
            return self.engine.root
        return self.engine.root.subset(self._scope)

    def add_relationship(self, spec: RelationshipSpec) -> bool:
        added = self.engine.add_relationship(spec)
        if added:
            self.render()
        return added

    def remove_relationship(self, spec: RelationshipSpec) -> bool:
        removed = self.engine.remove_relationship(spec)
        if removed:
            self.render()
        return removed

    def clear_relationships(self) -> None:
        self.engine.clear_relationships()
        self.render()

    def retain(self, entities: Iterable[str]) -> None:
        """Narrow the graph to the given entities."""
        self.engine.retain(entities)
        self.render()

    def clear_retained(self) -> None:
        self.engine.clear_retained()
        self.render()

    def set_options(self, options: RenderOptions) -> None:
        self.options = options
        self.render()

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def request_render(self) -> int:
        """Claim a new render id; any pass holding an older id aborts."""
        self._render_id += 1
        return self._render_id

    def render(self) -> Scene | None:
        """Build, draw and publish a frame.

        Returns:
            The published scene, or None if the pass was superseded
        """
        render_id = self.request_render()
        token = CancellationToken(render_id, lambda: self._render_id)
        context = build_render_context(
            self.engine,
            self.transform,
            self.scope(),
            self.options,
            self.colors,
            self.settings,
            token,
        )
        if context.aborted:
            logger.debug(f"Render {render_id} superseded; nothing published")
            return None

        scene = self.renderer.draw(context, self.options, self.selection.entities(), self.sticky)
        if token.cancelled:
            logger.debug(f"Render {render_id} superseded after drawing; nothing published")
            return None

        self._context, self._scene = context, scene
        return scene

    @property
    def context(self) -> RenderContext | None:
        return self._context

    @property
    def scene(self) -> Scene | None:
        return self._scene

    # ------------------------------------------------------------------
    # Lookups (empty before the first publish)
    # ------------------------------------------------------------------

    def bundles_for_shape(self, shape_id: str) -> set[Bundle]:
        if self._scene is None:
            return set()
        return self._scene.bundles_for(shape_id)

    def shapes_for_bundle(self, bundle: Bundle) -> set[str]:
        if self._scene is None:
            return set()
        return self._scene.shapes_for(bundle)

    def no_mapping(self) -> set[Bundle]:
        """Records in scope that no rendered shape accounts for."""
        if self._context is None:
            return set()
        return set(self._context.no_mapping)

    def entities_at(self, sx: float, sy: float) -> set[str]:
        """Entities aggregated under the node(s) at a screen point."""
        if self._scene is None:
            return set()
        entities: set[str] = set()
        for node in self._scene.nodes_at(sx, sy):
            entities.update(node.entities)
        return entities

    def entities_in_rect(self, x0: float, y0: float, x1: float, y1: float) -> set[str]:
        """Entities of every node touching a screen rectangle."""
        if self._scene is None:
            return set()
        entities: set[str] = set()
        for node in self._scene.nodes_in_rect(x0, y0, x1, y1):
            entities.update(node.entities)
        return entities

    def entity_total(self, entity: str) -> float:
        """Record count for one entity in the last published frame."""
        if self._context is None:
            return 0.0
        return self._context.entity_counter.total(entity)

    def visible_entities(self) -> set[str]:
        """Entities drawn in the last frame (every entity before one exists)."""
        if self._context is None:
            return set(self.engine.entities())
        return set(self._context.entity_to_node)

    # ------------------------------------------------------------------
    # Structure
    # ------------------------------------------------------------------

    def graph_analysis(self, entities: Iterable[str] | None = None) -> dict:
        """Structural measures of the undirected graph.

        Args:
            entities: set whose cut conductance is reported (defaults to
                the selection)

        Returns:
            Biconnected components, cut vertices, clustering coefficients
            and conductance
        """
        analysis = self.engine.analysis
        subset = self.selection.entities() if entities is None else set(entities)
        return {
            "biconnected_components": [sorted(c) for c in analysis.biconnected_components()],
            "cut_vertices": sorted(analysis.cut_vertices()),
            "clustering": analysis.cluster_coefficients(),
            "conductance": analysis.conductance(subset),
        }

    # ------------------------------------------------------------------
    # Viewport
    # ------------------------------------------------------------------

    def zoom_to_fit(self) -> Extents:
        """Fit the viewport around the visible entities and re-render."""
        extents = self.transform.zoom_to_fit(
            self.visible_entities(), geo=self.options.background == BackgroundMode.GEO
        )
        self.render()
        return extents

    def zoom(self, steps: float, anchor_sx: float | None = None, anchor_sy: float | None = None) -> Extents:
        """Zoom in (positive steps) or out (negative) around a screen point."""
        anchor_wx = self.transform.sx_to_wx(anchor_sx) if anchor_sx is not None else None
        anchor_wy = self.transform.sy_to_wy(anchor_sy) if anchor_sy is not None else None
        if steps >= 0:
            self.transform.zoom_in(steps, anchor_wx, anchor_wy)
        else:
            self.transform.zoom_out(-steps, anchor_wx, anchor_wy)
        self.render()
        return self.transform.extents.copy()

    def pan(self, dx: float, dy: float) -> Extents:
        """Translate the viewport by a world-space delta."""
        self.transform.pan(dx, dy)
        self.render()
        return self.transform.extents.copy()

    # ------------------------------------------------------------------
    # Interaction
    # ------------------------------------------------------------------

    def press(self, event: PointerEvent) -> InteractionState:
        return self.controller.press(event)

    def drag(self, event: PointerEvent) -> Drag | None:
        return self.controller.drag_to(event)

    def release(self, event: PointerEvent) -> InteractionState:
        return self.controller.release(event)

    def key_down(self, key: ModeKey) -> None:
        self.controller.key_down(key)

    def key_up(self, key: ModeKey) -> None:
        self.controller.key_up(key)

    # ------------------------------------------------------------------
    # Layout files and batch layouts
    # ------------------------------------------------------------------

    def save_layout(self, path: str | Path) -> int:
        """Write world positions of every graph entity to a file."""
        return save_layout(path, self.engine.world, self.engine.entities())

    def load_layout(self, path: str | Path) -> list[str]:
        """Load world positions for entities already in the graph.

        Raises:
            LayoutFileError: positions are left unchanged
        """
        updated = load_layout(path, self.engine.world, self.engine.entities())
        self.transform.transform()
        self.render()
        return updated

    def preview_layouts(self, algorithms: Iterable[LayoutAlgorithm]) -> list[LayoutCandidate]:
        """Compute candidate layouts on the worker pool, centered on the viewport."""
        extents = self.transform.extents
        return self.previewer.preview(
            self.engine.undirected.to_networkx(),
            self.engine.world.snapshot(),
            list(algorithms),
            center=extents.center,
            scale=min(extents.width, extents.height) * 0.45,
        )

    def adopt_layout(self, candidate: LayoutCandidate) -> list[str]:
        """Apply one candidate to existing entities and re-render."""
        updated = self.engine.world.update(candidate.positions, only_existing=True)
        self.transform.transform()
        logger.info(f"Adopted {candidate.algorithm.value} layout for {len(updated)} entities")
        self.render()
        return updated

    # ------------------------------------------------------------------
    # View configuration
    # ------------------------------------------------------------------

    def view_config(self) -> str:
        return ViewConfig.serialize(self.options, self.engine.relationships)

    def apply_view_config(self, text: str) -> None:
        """Apply a bookmarked configuration.

        Raises:
            ViewConfigError: the view is left exactly as it was
        """
        options, relationships = ViewConfig.parse(text)
        self.options = options
        if relationships != self.engine.relationships:
            self.engine.replace_relationships(relationships)
        self.render()
