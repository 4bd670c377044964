"""Per-frame aggregation, encoding modes, labels and drawing.

Provides:
- build_render_context: records + graph + viewport -> RenderContext
- CountingContext / ColorManager: size and color encodings
- Size/color modes and label calculators
- RenderOptions / ViewConfig: options and their bookmark string
- SceneRenderer: RenderContext -> Scene of node/link shapes
"""

from linknode.render.colors import ColorManager
from linknode.render.context import (
    CancellationToken,
    RenderContext,
    build_render_context,
    link_key,
)
from linknode.render.counters import CountingContext
from linknode.render.labels import LabelKind, LabelSpec, LabelTarget
from linknode.render.modes import (
    BackgroundMode,
    LinkColorMode,
    LinkSizeMode,
    NodeColorMode,
    NodeSizeMode,
)
from linknode.render.options import RenderOptions, ViewConfig
from linknode.render.renderer import LinkShape, NodeShape, Renderer, Scene, SceneRenderer

__all__ = [
    # Context
    "CancellationToken",
    "RenderContext",
    "build_render_context",
    "link_key",
    "CountingContext",
    "ColorManager",
    # Modes and labels
    "NodeSizeMode",
    "NodeColorMode",
    "LinkSizeMode",
    "LinkColorMode",
    "BackgroundMode",
    "LabelKind",
    "LabelSpec",
    "LabelTarget",
    # Options
    "RenderOptions",
    "ViewConfig",
    # Drawing
    "Renderer",
    "SceneRenderer",
    "Scene",
    "NodeShape",
    "LinkShape",
]
