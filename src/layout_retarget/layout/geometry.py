"""Rectangle arithmetic shared by the layout passes."""

from __future__ import annotations

import math
from typing import Iterable

from layout_retarget.parser.model import Bounds

__all__ = [
    "clamp",
    "edge_distance",
    "is_valid_scale",
    "overlap_area",
    "overlap_percent",
    "scale_center_to_range",
    "union_bounds",
]


def clamp(value: float, low: float, high: float) -> float:
    """Clamp ``value`` into ``[low, high]``; ``low`` wins when the range is empty."""
    return max(low, min(value, high))


def is_valid_scale(value: float) -> bool:
    return math.isfinite(value) and value > 0


def overlap_area(a: Bounds, b: Bounds) -> float:
    """Intersection area of two rectangles. Touching edges overlap by zero."""
    width = min(a.right, b.right) - max(a.x, b.x)
    height = min(a.bottom, b.bottom) - max(a.y, b.y)
    if width <= 0 or height <= 0:
        return 0.0
    return width * height


def overlap_percent(rect: Bounds, other: Bounds) -> float:
    """Share of ``rect`` covered by ``other``, in percent (0-100)."""
    area = rect.width * rect.height
    if area <= 0:
        return 0.0
    return overlap_area(rect, other) / area * 100


def union_bounds(bounds: Iterable[Bounds]) -> Bounds | None:
    result: Bounds | None = None
    for b in bounds:
        result = b if result is None else result.union(b)
    return result


def edge_distance(a: Bounds, b: Bounds) -> float:
    """Shortest distance between the edges of two rectangles.

    Zero when they overlap, the single-axis gap when they share a row or
    column, otherwise the diagonal gap between nearest corners.
    """
    dx = max(b.x - a.right, a.x - b.right, 0.0)
    dy = max(b.y - a.bottom, a.y - b.bottom, 0.0)
    if dx == 0 and dy == 0:
        return 0.0
    if dx == 0:
        return dy
    if dy == 0:
        return dx
    return math.hypot(dx, dy)


def scale_center_to_range(
    value: float,
    from_start: float,
    from_size: float,
    to_start: float,
    to_size: float,
) -> float:
    """Map ``value`` from one axis range to another, center to center."""
    from_size = max(from_size, 0.0)
    to_size = max(to_size, 0.0)
    if to_size == 0:
        return to_start
    if from_size == 0:
        return to_start + to_size / 2
    from_center = from_start + from_size / 2
    to_center = to_start + to_size / 2
    return to_center + (value - from_center) * (to_size / from_size)
