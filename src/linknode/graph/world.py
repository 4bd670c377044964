"""World positions - entity to (x, y) in unbounded world space."""

from __future__ import annotations

import random
from collections.abc import Iterable, Iterator, Mapping

Point = tuple[float, float]


class WorldPositions:
    """Mutable entity -> world coordinate store.

    Positions are created lazily with a random seed position the first
    time an entity appears and are never dropped while it exists. A new
    root record set prunes the entities that did not come back.
    """

    def __init__(
        self,
        rng: random.Random | None = None,
        init_min: float = 0.0,
        init_max: float = 1.0,
    ) -> None:
        self.rng = rng or random.Random()
        self.init_min = init_min
        self.init_max = init_max
        self._positions: dict[str, Point] = {}

    def ensure(self, entity: str) -> Point:
        """Return the position of an entity, allocating a random one if new."""
        point = self._positions.get(entity)
        if point is None:
            point = (
                self.rng.uniform(self.init_min, self.init_max),
                self.rng.uniform(self.init_min, self.init_max),
            )
            self._positions[entity] = point
        return point

    def get(self, entity: str) -> Point | None:
        return self._positions.get(entity)

    def set(self, entity: str, x: float, y: float) -> None:
        self._positions[entity] = (float(x), float(y))

    def translate(self, entities: Iterable[str], dx: float, dy: float) -> list[str]:
        """Shift existing entities by a world-space delta.

        Returns:
            The entities that were actually moved
        """
        moved = []
        for entity in entities:
            point = self._positions.get(entity)
            if point is None:
                continue
            self._positions[entity] = (point[0] + dx, point[1] + dy)
            moved.append(entity)
        return moved

    def update(self, positions: Mapping[str, Point], only_existing: bool = True) -> list[str]:
        """Bulk-apply positions.

        Args:
            positions: entity -> (x, y)
            only_existing: skip entities this store does not know yet

        Returns:
            The entities that were updated
        """
        updated = []
        for entity, (x, y) in positions.items():
            if only_existing and entity not in self._positions:
                continue
            self._positions[entity] = (float(x), float(y))
            updated.append(entity)
        return updated

    def prune(self, keep: Iterable[str]) -> int:
        """Drop every position whose entity is not in ``keep``.

        Returns:
            Number of positions dropped
        """
        wanted = set(keep)
        stale = [e for e in self._positions if e not in wanted]
        for entity in stale:
            del self._positions[entity]
        return len(stale)

    def snapshot(self) -> dict[str, Point]:
        """Independent copy of all positions."""
        return dict(self._positions)

    def __contains__(self, entity: object) -> bool:
        return entity in self._positions

    def __iter__(self) -> Iterator[str]:
        return iter(self._positions)

    def __len__(self) -> int:
        return len(self._positions)
