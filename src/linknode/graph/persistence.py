"""Layout files - plain-text persistence of world positions.

One line per entity::

    urlencode(entity),urlencode(x),urlencode(y)
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable
from pathlib import Path

from linknode.errors import LayoutFileError
from linknode.graph.world import Point, WorldPositions
from linknode.models.relationship import decode_token, encode_token

logger = logging.getLogger(__name__)


def format_layout_line(entity: str, x: float, y: float) -> str:
    """Format one layout line (floats keep full precision)."""
    return ",".join(encode_token(t) for t in (entity, repr(float(x)), repr(float(y))))


def parse_layout_line(line: str) -> tuple[str, Point]:
    """Parse one layout line.

    Raises:
        ValueError: if the line is not three tokens or a coordinate is bad
    """
    tokens = line.split(",")
    if len(tokens) != 3:
        raise ValueError(f"expected 3 tokens, got {len(tokens)}")
    entity = decode_token(tokens[0])
    x, y = float(decode_token(tokens[1])), float(decode_token(tokens[2]))
    if not (math.isfinite(x) and math.isfinite(y)):
        raise ValueError(f"non-finite coordinate for {entity!r}")
    return entity, (x, y)


def save_layout(path: str | Path, world: WorldPositions, entities: Iterable[str]) -> int:
    """Write world positions for a set of entities.

    Returns:
        Number of lines written

    Raises:
        LayoutFileError: if the file cannot be written
    """
    lines = []
    for entity in entities:
        point = world.get(entity)
        if point is not None:
            lines.append(format_layout_line(entity, *point))

    try:
        Path(path).write_text("\n".join(lines) + ("\n" if lines else ""), encoding="utf-8")
    except OSError as e:
        raise LayoutFileError(f"Cannot write layout {path}: {e}") from e

    logger.info(f"Saved {len(lines)} positions to {path}")
    return len(lines)


def read_layout(path: str | Path) -> dict[str, Point]:
    """Read a layout file into a dictionary without applying it.

    Blank lines are skipped; any malformed line fails the whole read.

    Raises:
        LayoutFileError: if the file cannot be read or parsed
    """
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise LayoutFileError(f"Cannot read layout {path}: {e}") from e

    positions: dict[str, Point] = {}
    for lineno, line in enumerate(text.splitlines(), 1):
        line = line.strip()
        if not line:
            continue
        try:
            entity, point = parse_layout_line(line)
        except ValueError as e:
            raise LayoutFileError(f"{path}:{lineno}: {e}") from e
        positions[entity] = point
    return positions


def load_layout(path: str | Path, world: WorldPositions, known: Iterable[str]) -> list[str]:
    """Apply a layout file to entities already in the live graph.

    Entities in the file that the graph does not contain are ignored,
    never created. On any error nothing is applied.

    Returns:
        The entities whose positions changed
    """
    positions = read_layout(path)
    live = set(known)
    applicable = {e: p for e, p in positions.items() if e in live}
    ignored = len(positions) - len(applicable)
    updated = world.update(applicable, only_existing=False)
    logger.info(f"Loaded {len(updated)} positions from {path} ({ignored} unknown ignored)")
    return updated
