"""Numeric resolution of text/face overlaps.

After placement, any text box still covering a detected face is pushed
away from the nearest overlapping face along the center-to-center
direction. The push distance is the smallest one (found by bisection)
that clears every face, with the box kept inside the safe bounds.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field

from layout_retarget.layout.constants import NUDGE_SEARCH_ITERATIONS
from layout_retarget.layout.geometry import clamp, overlap_area, overlap_percent
from layout_retarget.layout.placement import face_to_pixel_bounds
from layout_retarget.parser.model import Bounds, ContainerNode, TextNode
from layout_retarget.signals import FaceRegion

logger = logging.getLogger(__name__)

__all__ = [
    "CollisionValidationResult",
    "CorrectionResult",
    "NudgeResult",
    "clamp_to_safe_area",
    "find_minimum_nudge_distance",
    "fits_safe_area",
    "nudge_direction",
    "nudge_text_away_from_faces",
    "validate_text_face_collisions",
]


@dataclass(frozen=True)
class NudgeResult:
    dx: float
    dy: float
    magnitude: float
    resolved: bool = True  # False when overlap remains after clamping


@dataclass(frozen=True)
class CorrectionResult:
    node_id: str
    node_name: str
    original_position: tuple[float, float]
    corrected_position: tuple[float, float]
    nudge: tuple[float, float]
    overlap_percent_before: float


@dataclass
class CollisionValidationResult:
    success: bool = True
    corrected: bool = False
    corrections: list[CorrectionResult] = field(default_factory=list)
    face_count: int = 0
    text_node_count: int = 0
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


def nudge_direction(text: Bounds, face: Bounds) -> tuple[float, float]:
    """Unit vector from the face center toward the text center.

    Coincident centers push along the down-right diagonal.
    """
    dx = text.center_x - face.center_x
    dy = text.center_y - face.center_y
    if dx == 0 and dy == 0:
        dx, dy = 1.0, 1.0
    length = math.hypot(dx, dy)
    return dx / length, dy / length


def _clamp_axis(value: float, start: float, span: float, size: float) -> float:
    if size > span:
        return start + (span - size) / 2
    return clamp(value, start, start + span - size)


def clamp_to_safe_area(text: Bounds, x: float, y: float, safe: Bounds) -> tuple[float, float]:
    """Position of ``text`` moved inside ``safe``.

    A box larger than the safe area on an axis is centered on that axis.
    """
    return (
        _clamp_axis(x, safe.x, safe.width, text.width),
        _clamp_axis(y, safe.y, safe.height, text.height),
    )


def fits_safe_area(text: Bounds, safe: Bounds) -> bool:
    return text.width <= safe.width and text.height <= safe.height


def _overlaps_any(rect: Bounds, faces: list[Bounds]) -> bool:
    return any(overlap_area(rect, f) > 0 for f in faces)


def _moved(text: Bounds, direction: tuple[float, float], distance: float, safe: Bounds) -> Bounds:
    x, y = clamp_to_safe_area(
        text,
        text.x + direction[0] * distance,
        text.y + direction[1] * distance,
        safe,
    )
    return Bounds(x, y, text.width, text.height)


def find_minimum_nudge_distance(
    text: Bounds,
    faces: list[Bounds],
    direction: tuple[float, float],
    safe: Bounds,
    iterations: int = NUDGE_SEARCH_ITERATIONS,
) -> float:
    """Smallest distance along ``direction`` that clears every face.

    The candidate box is clamped into ``safe`` at each step. Returns the
    search ceiling when even the farthest move cannot clear the faces.
    """
    low = 0.0
    high = max(safe.width, safe.height)
    if _overlaps_any(_moved(text, direction, high, safe), faces):
        return high
    for _ in range(iterations):
        mid = (low + high) / 2
        if _overlaps_any(_moved(text, direction, mid, safe), faces):
            low = mid
        else:
            high = mid
    return high


def nudge_text_away_from_faces(
    text: Bounds,
    faces: list[Bounds],
    safe: Bounds,
) -> NudgeResult | None:
    """Offset that moves ``text`` off every face, or ``None`` if no overlap."""
    overlapping = [f for f in faces if overlap_area(text, f) > 0]
    if not overlapping:
        return None

    nearest = min(
        overlapping,
        key=lambda f: math.hypot(text.center_x - f.center_x, text.center_y - f.center_y),
    )
    direction = nudge_direction(text, nearest)
    distance = find_minimum_nudge_distance(text, faces, direction, safe)
    final = _moved(text, direction, distance, safe)

    dx = final.x - text.x
    dy = final.y - text.y
    resolved = not _overlaps_any(final, faces)
    if not resolved:
        logger.warning(
            "text at (%.0f, %.0f) still overlaps a face after nudging",
            final.x, final.y,
        )
    return NudgeResult(dx=dx, dy=dy, magnitude=math.hypot(dx, dy), resolved=resolved)


def validate_text_face_collisions(
    frame: ContainerNode,
    faces: list[FaceRegion],
    safe: Bounds,
) -> CollisionValidationResult:
    """Nudge every visible text node in ``frame`` off the detected faces."""
    if not faces:
        return CollisionValidationResult()

    face_bounds = [face_to_pixel_bounds(f, frame.width, frame.height) for f in faces]
    text_nodes = [
        n for n, _ in frame.walk()
        if isinstance(n, TextNode) and n.visible
    ]
    result = CollisionValidationResult(face_count=len(faces), text_node_count=len(text_nodes))

    for node in text_nodes:
        x, y = node.offset_in(frame)
        text = Bounds(x, y, node.width, node.height)
        worst = max(overlap_percent(text, f) for f in face_bounds)
        if worst == 0:
            continue

        if not fits_safe_area(text, safe):
            result.warnings.append(f"Text '{node.name or node.id}' is larger than the safe area")
        nudge = nudge_text_away_from_faces(text, face_bounds, safe)
        if nudge is None or (nudge.dx == 0 and nudge.dy == 0):
            result.warnings.append(f"Text '{node.name or node.id}' overlaps a face and could not move")
            continue
        if not nudge.resolved:
            result.warnings.append(f"Text '{node.name or node.id}' still overlaps a face")

        original = (node.x, node.y)
        node.x += nudge.dx
        node.y += nudge.dy
        result.corrections.append(CorrectionResult(
            node_id=node.id,
            node_name=node.name,
            original_position=original,
            corrected_position=(node.x, node.y),
            nudge=(nudge.dx, nudge.dy),
            overlap_percent_before=worst,
        ))
        logger.debug(
            "nudged text %s by (%.1f, %.1f), overlap before %.1f%%",
            node.id, nudge.dx, nudge.dy, worst,
        )

    result.corrected = bool(result.corrections)
    return result
