"""Axis expansion planning.

When scaled content is smaller than the target, the leftover pixels on
each axis are split three ways: start padding, end padding, and interior
slack that the adapter later hands to item spacing. The safe-area insets
are hard minimums on both edges.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from layout_retarget.layout.constants import (
    ASYMMETRY_DAMPING,
    DEFAULT_BASE_SPACING,
    INTERIOR_WEIGHT_BASE,
    INTERIOR_WEIGHT_CLAMP,
    INTERIOR_WEIGHT_MAX,
    INTERIOR_WEIGHT_PER_GAP,
    MARGIN_ASPECT_CHANGE,
    MARGIN_ASYMMETRY_THRESHOLD,
    MARGIN_BLEND_ORIGINAL,
    MARGIN_SQUARE_FACTOR,
    TIGHT_SPACING_DAMPING,
)
from layout_retarget.layout.geometry import clamp
from layout_retarget.layout.profile import LayoutProfile
from layout_retarget.parser.model import Bounds, ContainerNode

logger = logging.getLogger(__name__)

__all__ = [
    "AxisExpansionPlan",
    "ContentMargins",
    "distribute_padding",
    "measure_content_margins",
    "normalize_content_margins",
    "plan_axis_expansion",
]


@dataclass(frozen=True)
class AxisExpansionPlan:
    """Padding/gap decomposition along one axis."""

    start: float
    end: float
    interior: float


@dataclass(frozen=True)
class ContentMargins:
    """Empty space between the content box and each frame edge."""

    left: float
    right: float
    top: float
    bottom: float


def _round2(value: float) -> float:
    return round(value * 100) / 100


def measure_content_margins(frame: ContainerNode, content: Bounds | None) -> ContentMargins | None:
    if content is None:
        return None
    return ContentMargins(
        left=max(content.x, 0.0),
        right=max(frame.width - content.right, 0.0),
        top=max(content.y, 0.0),
        bottom=max(frame.height - content.bottom, 0.0),
    )


def distribute_padding(
    total: float,
    inset: float,
    start_gap: float | None = None,
    end_gap: float | None = None,
) -> tuple[float, float]:
    """Split ``total`` between two edges, each getting at least ``inset``.

    Space beyond the insets follows the source ratio of ``start_gap`` to
    ``end_gap``; without gaps it is split evenly.
    """
    total = max(total, 0.0)
    if total == 0:
        return 0.0, 0.0

    per_side = min(max(inset, 0.0), total / 2)
    remaining = max(total - per_side * 2, 0.0)

    start_share = 0.5
    if start_gap is not None and end_gap is not None:
        gap_total = max(start_gap, 0.0) + max(end_gap, 0.0)
        if gap_total > 0:
            start_share = max(start_gap, 0.0) / gap_total

    return per_side + remaining * start_share, per_side + remaining * (1 - start_share)


def _asymmetry(start: float, end: float) -> float:
    total = start + end
    if total == 0:
        return 0.0
    return min(1.0, abs(start - end) / total)


def plan_axis_expansion(
    total_extra: float,
    inset_start: float,
    inset_end: float,
    flow_child_count: int,
    gaps: tuple[float, float] | None = None,
    base_spacing: float = 0.0,
    allow_interior: bool = True,
) -> AxisExpansionPlan:
    """Decompose ``total_extra`` pixels along one axis.

    Interior slack is only produced when there are at least two flow
    children and space is left after the insets. Its share grows with the
    gap count and shrinks when the source margins were lopsided.
    """
    total = max(total_extra, 0.0)
    inset_start = max(inset_start, 0.0)
    inset_end = max(inset_end, 0.0)
    if total <= 0:
        return AxisExpansionPlan(inset_start, inset_end, 0.0)

    if gaps is not None:
        gaps = (max(gaps[0], 0.0), max(gaps[1], 0.0))
        if gaps == (0.0, 0.0):
            gaps = None

    leftover = max(total - inset_start - inset_end, 0.0)
    can_reflow = allow_interior and flow_child_count >= 2 and leftover > 0

    weight = 0.0
    if can_reflow:
        gap_count = max(flow_child_count - 1, 1)
        weight = min(INTERIOR_WEIGHT_BASE + gap_count * INTERIOR_WEIGHT_PER_GAP, INTERIOR_WEIGHT_MAX)
        if max(base_spacing, 0.0) < DEFAULT_BASE_SPACING:
            weight *= TIGHT_SPACING_DAMPING

    asymmetry = _asymmetry(*gaps) if gaps else 0.0
    weight = clamp(weight * (1 - asymmetry * ASYMMETRY_DAMPING), 0.0, INTERIOR_WEIGHT_CLAMP)
    interior = _round2(leftover * weight)

    edge_budget = _round2(total - interior)
    start, end = distribute_padding(
        edge_budget,
        min(inset_start, inset_end),
        *(gaps if gaps else (None, None)),
    )
    return AxisExpansionPlan(
        start=max(_round2(start), inset_start),
        end=max(_round2(end), inset_end),
        interior=interior,
    )


def normalize_content_margins(
    margins: ContentMargins | None,
    source_profile: LayoutProfile,
    target_profile: LayoutProfile,
    source_aspect: float,
    target_aspect: float,
) -> ContentMargins | None:
    """Pull lopsided margins toward balance after a large aspect change.

    Vertical targets bias the vertical balance one third top, two thirds
    bottom. Results blend a quarter of the original margin.
    """
    if margins is None:
        return None
    if abs(source_aspect - target_aspect) <= MARGIN_ASPECT_CHANGE and source_profile is target_profile:
        return margins

    threshold = MARGIN_ASYMMETRY_THRESHOLD
    if target_profile is LayoutProfile.SQUARE:
        threshold *= MARGIN_SQUARE_FACTOR
    keep = MARGIN_BLEND_ORIGINAL
    left, right, top, bottom = margins.left, margins.right, margins.top, margins.bottom

    horizontal_total = left + right
    if (
        target_profile is not LayoutProfile.VERTICAL
        and _asymmetry(left, right) > threshold
    ):
        average = horizontal_total / 2
        left = margins.left * keep + average * (1 - keep)
        right = margins.right * keep + average * (1 - keep)

    vertical_total = top + bottom
    if (
        target_profile is not LayoutProfile.HORIZONTAL
        and _asymmetry(top, bottom) > threshold
    ):
        if target_profile is LayoutProfile.VERTICAL:
            top = margins.top * keep + vertical_total / 3 * (1 - keep)
            bottom = margins.bottom * keep + vertical_total * 2 / 3 * (1 - keep)
        else:
            average = vertical_total / 2
            top = margins.top * keep + average * (1 - keep)
            bottom = margins.bottom * keep + average * (1 - keep)

    normalized = ContentMargins(max(left, 0.0), max(right, 0.0), max(top, 0.0), max(bottom, 0.0))
    if normalized != margins:
        logger.debug("normalized content margins %s -> %s", margins, normalized)
    return normalized
