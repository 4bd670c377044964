"""Direct-manipulation layouts: grid, line and circle.

All functions work in world coordinates and return one point per
requested slot, in slot order.
"""

from __future__ import annotations

import math

from linknode.graph.world import Point


def grid_shape(count: int, width: float, height: float) -> tuple[int, int]:
    """Columns and rows for ``count`` cells that best match an aspect ratio.

    A zero-height rectangle gives a single row, a zero-width one a
    single column.
    """
    if count <= 0:
        return 0, 0
    width, height = abs(width), abs(height)
    if height == 0 and width == 0:
        cols = math.ceil(math.sqrt(count))
        return cols, math.ceil(count / cols)
    if height == 0:
        return count, 1
    if width == 0:
        return 1, count

    aspect = width / height

    def score(rows: int) -> tuple[float, int]:
        cols = math.ceil(count / rows)
        # Ties go to the shape with fewer empty cells
        return abs(math.log((cols / rows) / aspect)), cols * rows - count

    rows = min(range(1, count + 1), key=score)
    return math.ceil(count / rows), rows


def grid_positions(count: int, start: Point, end: Point) -> list[Point]:
    """Row-major grid spanning a rectangle, corners included.

    A single column (or row) is centered on the rectangle.
    """
    cols, rows = grid_shape(count, end[0] - start[0], end[1] - start[1])
    lo_x, hi_x = min(start[0], end[0]), max(start[0], end[0])
    lo_y, hi_y = min(start[1], end[1]), max(start[1], end[1])

    def axis(lo: float, hi: float, n: int, k: int) -> float:
        if n <= 1:
            return (lo + hi) / 2.0
        return lo + k * (hi - lo) / (n - 1)

    return [(axis(lo_x, hi_x, cols, k % cols), axis(lo_y, hi_y, rows, k // cols)) for k in range(count)]


def line_positions(count: int, start: Point, end: Point) -> list[Point]:
    """Evenly spaced points from ``start`` to ``end`` inclusive."""
    if count <= 0:
        return []
    if count == 1:
        return [start]
    return [
        (
            start[0] + (end[0] - start[0]) * k / (count - 1),
            start[1] + (end[1] - start[1]) * k / (count - 1),
        )
        for k in range(count)
    ]


def circle_positions(count: int, center: Point, radius: float) -> list[Point]:
    """Evenly spaced points on a circle, starting at angle zero."""
    return [
        (
            center[0] + radius * math.cos(2 * math.pi * k / count),
            center[1] + radius * math.sin(2 * math.pi * k / count),
        )
        for k in range(count)
    ]
