"""World <-> screen coordinate transform."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from linknode.config import Settings
from linknode.graph.world import WorldPositions

logger = logging.getLogger(__name__)


@dataclass
class Extents:
    """A rectangle in world space (the viewport)."""

    x: float
    y: float
    width: float
    height: float

    @property
    def max_x(self) -> float:
        return self.x + self.width

    @property
    def max_y(self) -> float:
        return self.y + self.height

    @property
    def center(self) -> tuple[float, float]:
        return self.x + self.width / 2.0, self.y + self.height / 2.0

    def contains(self, wx: float, wy: float) -> bool:
        """Check whether a world point lies inside (edges included)."""
        return self.x <= wx <= self.max_x and self.y <= wy <= self.max_y

    def copy(self) -> "Extents":
        return Extents(self.x, self.y, self.width, self.height)


def screen_key(sx: int, sy: int) -> str:
    """Node-coordinate key for a rounded screen position."""
    return f"{sx},{sy}"


class CoordinateTransform:
    """
    Linear map between the world-space extents and a pixel surface.

    Screen coordinates of entities are cached; any change to the
    extents re-transforms every entity and bumps ``transform_id`` so
    in-flight renders built against the old mapping can tell.
    """

    def __init__(
        self,
        world: WorldPositions,
        settings: Settings,
        width: int | None = None,
        height: int | None = None,
    ) -> None:
        self.world = world
        self.settings = settings
        self.width = width or settings.surface_width
        self.height = height or settings.surface_height
        self.extents = Extents(0.0, 0.0, 1.0, 1.0)
        self.transform_id = 0
        self._screen: dict[str, tuple[int, int]] = {}

    # ------------------------------------------------------------------
    # Point transforms
    # ------------------------------------------------------------------

    def wx_to_sx(self, wx: float) -> int:
        return int(self.width * (wx - self.extents.x) / self.extents.width)

    def wy_to_sy(self, wy: float) -> int:
        return int(self.height * (wy - self.extents.y) / self.extents.height)

    def sx_to_wx(self, sx: float) -> float:
        return self.extents.x + sx * self.extents.width / self.width

    def sy_to_wy(self, sy: float) -> float:
        return self.extents.y + sy * self.extents.height / self.height

    # ------------------------------------------------------------------
    # Entity transforms
    # ------------------------------------------------------------------

    def transform(self, entity: str | None = None) -> None:
        """Recompute cached screen positions.

        Args:
            entity: a single entity (after it moved), or None for all
        """
        if entity is not None:
            point = self.world.get(entity)
            if point is None:
                self._screen.pop(entity, None)
            else:
                self._screen[entity] = (self.wx_to_sx(point[0]), self.wy_to_sy(point[1]))
            return

        self._screen = {
            e: (self.wx_to_sx(x), self.wy_to_sy(y))
            for e, (x, y) in self.world.snapshot().items()
        }
        self.transform_id += 1

    def screen(self, entity: str) -> tuple[int, int] | None:
        """Cached screen position of an entity (computed on first use)."""
        cached = self._screen.get(entity)
        if cached is None and entity in self.world:
            self.transform(entity)
            cached = self._screen.get(entity)
        return cached

    def node_key(self, entity: str) -> str | None:
        """Node-coordinate key of an entity."""
        point = self.screen(entity)
        if point is None:
            return None
        return screen_key(*point)

    # ------------------------------------------------------------------
    # Viewport changes
    # ------------------------------------------------------------------

    def set_extents(self, extents: Extents) -> None:
        self.extents = extents.copy()
        self.transform()

    def pan(self, dx: float, dy: float) -> None:
        """Translate the extents origin by a world-space delta."""
        self.extents.x += dx
        self.extents.y += dy
        self.transform()

    def zoom_in(self, steps: float = 1, anchor_wx: float | None = None, anchor_wy: float | None = None) -> None:
        """Shrink the extents by ``zoom_base ** steps`` around an anchor.

        The anchor keeps its proportional position in the viewport; an
        anchor outside the extents falls back to the center.
        """
        self._zoom(self.settings.zoom_base ** (-steps), anchor_wx, anchor_wy)

    def zoom_out(self, steps: float = 1, anchor_wx: float | None = None, anchor_wy: float | None = None) -> None:
        """Grow the extents by ``zoom_base ** steps`` around an anchor."""
        self._zoom(self.settings.zoom_base ** steps, anchor_wx, anchor_wy)

    def _zoom(self, scale: float, anchor_wx: float | None, anchor_wy: float | None) -> None:
        ext = self.extents
        if anchor_wx is None or anchor_wy is None or not ext.contains(anchor_wx, anchor_wy):
            anchor_wx, anchor_wy = ext.center
        fx = (anchor_wx - ext.x) / ext.width
        fy = (anchor_wy - ext.y) / ext.height
        width, height = ext.width * scale, ext.height * scale
        self.extents = Extents(anchor_wx - fx * width, anchor_wy - fy * height, width, height)
        self.transform()

    def zoom_to_fit(self, visible: Iterable[str] | None = None, geo: bool = False) -> Extents:
        """Fit the extents around the visible entities.

        Args:
            visible: entities to fit; None means every positioned entity
            geo: clamp to at least the full longitude/latitude extent

        Returns:
            The new extents
        """
        entities = list(self.world) if visible is None else list(visible)
        points = [p for p in (self.world.get(e) for e in entities) if p is not None]
        s = self.settings

        if points:
            min_x = min(p[0] for p in points)
            max_x = max(p[0] for p in points)
            min_y = min(p[1] for p in points)
            max_y = max(p[1] for p in points)
        elif geo:
            min_x, max_x, min_y, max_y = s.geo_min_x, s.geo_max_x, s.geo_min_y, s.geo_max_y
        else:
            logger.debug("zoom_to_fit: nothing visible, extents unchanged")
            return self.extents.copy()

        if max_x - min_x == 0:
            min_x, max_x = min_x - s.fit_epsilon, max_x + s.fit_epsilon
        if max_y - min_y == 0:
            min_y, max_y = min_y - s.fit_epsilon, max_y + s.fit_epsilon

        pad_x = (max_x - min_x) * s.fit_padding
        pad_y = (max_y - min_y) * s.fit_padding

        if geo:
            min_x = min_x if min_x <= s.geo_min_x else min(min_x - pad_x, s.geo_min_x)
            max_x = max_x if max_x >= s.geo_max_x else max(max_x + pad_x, s.geo_max_x)
            min_y = min_y if min_y <= s.geo_min_y else min(min_y - pad_y, s.geo_min_y)
            max_y = max_y if max_y >= s.geo_max_y else max(max_y + pad_y, s.geo_max_y)
        else:
            min_x, max_x = min_x - pad_x, max_x + pad_x
            min_y, max_y = min_y - pad_y, max_y + pad_y

        self.set_extents(Extents(min_x, min_y, max_x - min_x, max_y - min_y))
        return self.extents.copy()
