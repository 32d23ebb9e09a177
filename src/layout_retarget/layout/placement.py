"""Face-aware placement scoring over a 3x3 grid.

The safe area is divided into thirds. Each cell starts from a
profile-dependent base score (bottom cells for tall targets, the right
column for wide ones), then loses points for overlapping detected faces
and for sitting close to the focal point.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field

from layout_retarget.layout.constants import (
    FACE_PENALTY_WEIGHT,
    FOCAL_MIN_CONFIDENCE,
    FOCAL_PROXIMITY_THRESHOLD,
    MAX_FACE_PENALTY,
    MAX_FOCAL_PENALTY,
)
from layout_retarget.layout.geometry import overlap_area
from layout_retarget.layout.profile import LayoutProfile
from layout_retarget.parser.model import Bounds
from layout_retarget.signals import FaceRegion, FocalPoint

logger = logging.getLogger(__name__)

__all__ = [
    "REGION_IDS",
    "PlacementScoring",
    "RegionScore",
    "calculate_placement_scores",
    "face_to_pixel_bounds",
    "region_bounds",
]

REGION_IDS: tuple[str, ...] = (
    "top-left", "top-center", "top-right",
    "middle-left", "center", "middle-right",
    "bottom-left", "bottom-center", "bottom-right",
)

BASE_SCORES: dict[LayoutProfile, tuple[float, ...]] = {
    LayoutProfile.VERTICAL: (
        0.35, 0.35, 0.35,
        0.50, 0.50, 0.50,
        0.75, 0.80, 0.75,
    ),
    LayoutProfile.SQUARE: (
        0.35, 0.35, 0.35,
        0.50, 0.45, 0.50,
        0.70, 0.75, 0.70,
    ),
    LayoutProfile.HORIZONTAL: (
        0.35, 0.50, 0.70,
        0.35, 0.50, 0.75,
        0.35, 0.50, 0.70,
    ),
}


@dataclass(frozen=True)
class RegionScore:
    region_id: str
    base_score: float
    face_avoidance: float
    focal_avoidance: float
    final_score: float


@dataclass(frozen=True)
class PlacementScoring:
    regions: list[RegionScore]
    recommended_region: str
    grid_dimensions: tuple[int, int] = field(default=(3, 3))  # rows, cols

    def score_for(self, region_id: str) -> RegionScore:
        for region in self.regions:
            if region.region_id == region_id:
                return region
        raise KeyError(region_id)


def region_bounds(region_id: str, safe: Bounds) -> Bounds:
    """Pixel rectangle of one grid cell inside ``safe``."""
    index = REGION_IDS.index(region_id)
    row, col = divmod(index, 3)
    cell_w = safe.width / 3
    cell_h = safe.height / 3
    return Bounds(safe.x + col * cell_w, safe.y + row * cell_h, cell_w, cell_h)


def face_to_pixel_bounds(face: FaceRegion, frame_width: float, frame_height: float) -> Bounds:
    return Bounds(
        (face.x - face.width / 2) * frame_width,
        (face.y - face.height / 2) * frame_height,
        face.width * frame_width,
        face.height * frame_height,
    )


def _face_penalty(cell: Bounds, face: FaceRegion, frame_width: float, frame_height: float) -> float:
    area = cell.width * cell.height
    if area <= 0:
        return 0.0
    overlap = overlap_area(cell, face_to_pixel_bounds(face, frame_width, frame_height))
    return overlap / area * face.confidence * FACE_PENALTY_WEIGHT


def _focal_penalty(cell: Bounds, focal: FocalPoint, frame_width: float, frame_height: float) -> float:
    cx = cell.center_x / frame_width if frame_width > 0 else 0.5
    cy = cell.center_y / frame_height if frame_height > 0 else 0.5
    distance = math.hypot(cx - focal.x, cy - focal.y)
    if distance >= FOCAL_PROXIMITY_THRESHOLD:
        return 0.0
    return (1 - distance / FOCAL_PROXIMITY_THRESHOLD) * focal.confidence * MAX_FOCAL_PENALTY


def calculate_placement_scores(
    profile: LayoutProfile,
    safe: Bounds,
    frame_width: float,
    frame_height: float,
    faces: list[FaceRegion] | None = None,
    focal_point: FocalPoint | None = None,
) -> PlacementScoring:
    """Score every grid cell; the best final score is recommended.

    Ties resolve to the earliest cell in reading order.
    """
    faces = faces or []
    use_focal = focal_point is not None and focal_point.confidence > FOCAL_MIN_CONFIDENCE
    regions: list[RegionScore] = []

    for region_id, base in zip(REGION_IDS, BASE_SCORES[profile]):
        cell = region_bounds(region_id, safe)
        face_avoidance = min(
            sum(_face_penalty(cell, f, frame_width, frame_height) for f in faces),
            MAX_FACE_PENALTY,
        )
        focal_avoidance = (
            _focal_penalty(cell, focal_point, frame_width, frame_height)
            if use_focal else 0.0
        )
        regions.append(RegionScore(
            region_id=region_id,
            base_score=base,
            face_avoidance=face_avoidance,
            focal_avoidance=focal_avoidance,
            final_score=max(0.0, base - face_avoidance - focal_avoidance),
        ))

    best = max(regions, key=lambda r: r.final_score)
    logger.debug(
        "placement scoring: profile=%s faces=%d focal=%s -> %s (%.3f)",
        profile.value, len(faces), use_focal, best.region_id, best.final_score,
    )
    return PlacementScoring(regions=regions, recommended_region=best.region_id)
