"""Size and color modes for nodes and links.

Each mode is a closed enum whose members know how to compute their own
geometry or color from a counting context.
"""

from __future__ import annotations

import math
from enum import Enum

from linknode.config import Settings
from linknode.render.colors import ColorManager
from linknode.render.counters import CountingContext


def _log_ratio(total: float, maximum: float) -> float:
    if total <= 0 or maximum <= 0:
        return 0.0
    if maximum <= 1.0:
        return 1.0
    return min(1.0, math.log(total) / math.log(maximum))


def _ramp(low: float, high: float, t: float) -> float:
    return low + (high - low) * max(0.0, min(1.0, t))


class NodeSizeMode(str, Enum):
    """How a node's radius is derived."""

    FIXED = "fixed"
    COUNT = "count"
    LOG_COUNT = "logcount"
    DEGREE = "degree"

    def compute_shape(
        self,
        counter: CountingContext,
        node_key: str,
        settings: Settings,
        degree: int = 0,
        max_degree: int = 0,
    ) -> float:
        """Radius in pixels of the node at a node-coordinate key."""
        if self == NodeSizeMode.FIXED:
            return settings.node_fixed_px
        if self == NodeSizeMode.COUNT:
            t = counter.total_normalized(node_key)
        elif self == NodeSizeMode.LOG_COUNT:
            t = _log_ratio(counter.total(node_key), counter.total_maximum())
        else:
            t = degree / max_degree if max_degree else 0.0
        return _ramp(settings.node_min_px, settings.node_max_px, t)


class NodeColorMode(str, Enum):
    """How a node's fill color is derived."""

    DEFAULT = "default"
    COUNT = "count"  # Dominant color bin, or a log ramp without color_by
    ENTITY = "entity"  # Hashed color of the entity (multi when aggregated)

    def compute_color(
        self,
        counter: CountingContext,
        node_key: str,
        entities: list[str],
        colors: ColorManager,
    ) -> str:
        if self == NodeColorMode.DEFAULT:
            return colors.default_node
        if self == NodeColorMode.COUNT:
            return counter.bin_color(node_key)
        if len(entities) == 1:
            return colors.color_for(entities[0])
        return colors.multi


class LinkSizeMode(str, Enum):
    """How a link's stroke width is derived."""

    FIXED = "fixed"
    COUNT = "count"
    LOG_COUNT = "logcount"

    def compute_shape(self, counter: CountingContext, link_key: str, settings: Settings) -> float:
        """Stroke width in pixels of the link with a link key."""
        if self == LinkSizeMode.FIXED:
            return settings.link_min_px
        if self == LinkSizeMode.COUNT:
            t = counter.total_normalized(link_key)
        else:
            t = _log_ratio(counter.total(link_key), counter.total_maximum())
        return _ramp(settings.link_min_px, settings.link_max_px, t)


class LinkColorMode(str, Enum):
    """How a link's stroke color is derived."""

    DEFAULT = "default"
    COUNT = "count"

    def compute_color(self, counter: CountingContext, link_key: str, colors: ColorManager) -> str:
        if self == LinkColorMode.DEFAULT:
            return colors.default_link
        return counter.bin_color(link_key)


class BackgroundMode(str, Enum):
    """What is drawn behind the graph; GEO also changes zoom-to-fit."""

    NONE = "none"
    GEO = "geo"
