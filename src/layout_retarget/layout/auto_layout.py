"""Auto-layout conversion: infer a flow direction for layout-less frames.

Runs before scaling. A frame whose children already line up in a row or a
column is given a HORIZONTAL or VERTICAL auto-layout so the adapter has
structure to work with. Backgrounds, small corner elements and children
far off the stack axis stay absolutely positioned.

The arrangement, spacing and child-position helpers are shared with the
proximity clustering pass.
"""

from __future__ import annotations

__all__ = [
    "ChildArrangement",
    "ChildPosition",
    "ConversionCandidate",
    "ConversionResult",
    "alignment_score",
    "analyze_frame_for_conversion",
    "apply_conversion",
    "calculate_child_arrangement",
    "classify_child_position",
    "convert_frame_if_beneficial",
    "infer_spacing",
    "should_convert",
]

import logging
import re
import statistics
from dataclasses import dataclass, field
from enum import Enum

from layout_retarget.layout.constants import (
    ALIGNMENT_THRESHOLD,
    BACKGROUND_NAME_PATTERN,
    CONVERSION_CONFIDENCE_THRESHOLD,
    CONVERTER_BACKGROUND_COVERAGE,
    DEFAULT_BASE_SPACING,
    EDGE_ELEMENT_MAX_RATIO,
    EDGE_THRESHOLD_RATIO,
    MAX_REASONABLE_GAP,
    MIXED_ALIGNMENT_THRESHOLD,
    OUTLIER_MIN_STD,
    OUTLIER_STD_MULTIPLIER,
    WEAK_ALIGNMENT_THRESHOLD,
)
from layout_retarget.parser.model import (
    AxisAlign,
    Bounds,
    ContainerNode,
    LayoutMode,
    LayoutPositioning,
    Node,
)

logger = logging.getLogger(__name__)

MIN_CHILDREN_FOR_CONVERSION = 2

_BACKGROUND_NAME = re.compile(BACKGROUND_NAME_PATTERN, re.IGNORECASE)


class ChildArrangement(Enum):
    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"
    MIXED = "mixed"
    CHAOTIC = "chaotic"

    @property
    def layout_mode(self) -> LayoutMode:
        if self is ChildArrangement.HORIZONTAL:
            return LayoutMode.HORIZONTAL
        if self is ChildArrangement.VERTICAL:
            return LayoutMode.VERTICAL
        return LayoutMode.NONE


class ChildPosition(Enum):
    FLOW = "flow"
    ABSOLUTE = "absolute"


@dataclass(frozen=True)
class ChildAnalysis:
    node: Node
    position: ChildPosition
    reason: str | None = None


@dataclass(frozen=True)
class ConversionCandidate:
    layout_mode: LayoutMode
    spacing: float
    children: tuple[ChildAnalysis, ...]
    confidence: float

    @property
    def flow_count(self) -> int:
        return sum(1 for c in self.children if c.position is ChildPosition.FLOW)


@dataclass
class ConversionResult:
    applied: bool
    layout_mode: LayoutMode
    spacing: float = 0.0
    absolute_ids: list[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Arrangement analysis
# ---------------------------------------------------------------------------


def _cross_centers(bounds: list[Bounds], direction: ChildArrangement) -> list[float]:
    if direction is ChildArrangement.HORIZONTAL:
        return [b.center_y for b in bounds]
    return [b.center_x for b in bounds]


def alignment_score(bounds: list[Bounds], direction: ChildArrangement) -> float:
    """How tightly ``bounds`` line up along ``direction``, from 0 to 1.

    The spread of centers across the stack axis is normalized by the
    average cross-axis size; a perfect row or column scores 1.
    """
    if len(bounds) < 2:
        return 0.0
    deviation = statistics.pstdev(_cross_centers(bounds, direction))
    if direction is ChildArrangement.HORIZONTAL:
        avg_cross = statistics.fmean(b.height for b in bounds)
    else:
        avg_cross = statistics.fmean(b.width for b in bounds)
    return max(0.0, 1 - deviation / max(avg_cross, 1.0))


def calculate_child_arrangement(bounds: list[Bounds]) -> ChildArrangement:
    """Dominant arrangement of sibling rectangles.

    A single child, or two axes scoring too close to call, is chaotic or
    mixed; neither yields a conversion.
    """
    if len(bounds) < 2:
        return ChildArrangement.CHAOTIC

    h_score = alignment_score(bounds, ChildArrangement.HORIZONTAL)
    v_score = alignment_score(bounds, ChildArrangement.VERTICAL)
    logger.debug("arrangement scores: horizontal=%.2f vertical=%.2f", h_score, v_score)

    difference = abs(h_score - v_score)
    best = max(h_score, v_score)
    winner = ChildArrangement.HORIZONTAL if h_score > v_score else ChildArrangement.VERTICAL

    if best >= ALIGNMENT_THRESHOLD and difference >= 0.15:
        return winner
    if best >= WEAK_ALIGNMENT_THRESHOLD and difference >= 0.12:
        return winner
    if min(h_score, v_score) >= MIXED_ALIGNMENT_THRESHOLD and difference < 0.1:
        return ChildArrangement.MIXED
    return ChildArrangement.CHAOTIC


def infer_spacing(
    bounds: list[Bounds],
    direction: ChildArrangement,
    default: float = DEFAULT_BASE_SPACING,
) -> float:
    """Median gap between consecutive rectangles along ``direction``.

    Overlaps and gaps of ``MAX_REASONABLE_GAP`` or more are ignored; with
    nothing left ``default`` is returned. The median keeps a
    single wide gap from skewing the result.
    """
    if len(bounds) < 2:
        return default

    horizontal = direction is ChildArrangement.HORIZONTAL
    ordered = sorted(bounds, key=lambda b: b.x if horizontal else b.y)
    gaps = []
    for prev, curr in zip(ordered, ordered[1:]):
        gap = curr.x - prev.right if horizontal else curr.y - prev.bottom
        if 0 < gap < MAX_REASONABLE_GAP:
            gaps.append(gap)

    if not gaps:
        return default
    gaps.sort()
    return float(round(gaps[len(gaps) // 2]))


# ---------------------------------------------------------------------------
# Child classification
# ---------------------------------------------------------------------------


def _is_background(node: Node, bounds: Bounds, parent_width: float, parent_height: float) -> bool:
    coverage = bounds.area / max(parent_width * parent_height, 1.0)
    if coverage >= CONVERTER_BACKGROUND_COVERAGE:
        return True
    return bool(_BACKGROUND_NAME.search(node.name))


def _is_edge_element(bounds: Bounds, parent_width: float, parent_height: float) -> bool:
    """Small element tucked into a corner (logo, badge)."""
    band_x = parent_width * EDGE_THRESHOLD_RATIO
    band_y = parent_height * EDGE_THRESHOLD_RATIO
    near_x = bounds.x < band_x or bounds.right > parent_width - band_x
    near_y = bounds.y < band_y or bounds.bottom > parent_height - band_y
    small = (
        bounds.width < parent_width * EDGE_ELEMENT_MAX_RATIO
        and bounds.height < parent_height * EDGE_ELEMENT_MAX_RATIO
    )
    return near_x and near_y and small


def _is_outlier(bounds: Bounds, siblings: list[Bounds], direction: ChildArrangement) -> bool:
    if len(siblings) < 2:
        return False
    centers = _cross_centers(siblings, direction)
    mean = statistics.fmean(centers)
    spread = max(statistics.pstdev(centers), OUTLIER_MIN_STD)
    own = _cross_centers([bounds], direction)[0]
    return abs(own - mean) > OUTLIER_STD_MULTIPLIER * spread


def classify_child_position(
    node: Node,
    bounds: Bounds,
    siblings: list[Bounds],
    parent_width: float,
    parent_height: float,
    direction: ChildArrangement,
) -> tuple[ChildPosition, str | None]:
    """Whether a child should join the flow or stay absolute, with a reason."""
    if _is_background(node, bounds, parent_width, parent_height):
        return ChildPosition.ABSOLUTE, "background"
    if _is_edge_element(bounds, parent_width, parent_height):
        return ChildPosition.ABSOLUTE, "edge-floating"
    if _is_outlier(bounds, siblings, direction):
        return ChildPosition.ABSOLUTE, "position-outlier"
    return ChildPosition.FLOW, None


# ---------------------------------------------------------------------------
# Conversion
# ---------------------------------------------------------------------------


def analyze_frame_for_conversion(frame: ContainerNode) -> ConversionCandidate | None:
    """Propose an auto-layout for a layout-less frame, or ``None``."""
    if frame.has_auto_layout:
        return None

    children = [c for c in frame.children if c.visible]
    if len(children) < MIN_CHILDREN_FOR_CONVERSION:
        return None

    bounds = [c.bounds for c in children]
    arrangement = calculate_child_arrangement(bounds)
    if arrangement in (ChildArrangement.CHAOTIC, ChildArrangement.MIXED):
        logger.debug(
            "conversion of %s skipped: %s arrangement of %d children",
            frame.id, arrangement.value, len(children),
        )
        return None

    analyses = []
    for child, child_bounds in zip(children, bounds):
        position, reason = classify_child_position(
            child, child_bounds, bounds, frame.width, frame.height, arrangement,
        )
        analyses.append(ChildAnalysis(child, position, reason))

    flow_ratio = sum(1 for a in analyses if a.position is ChildPosition.FLOW) / len(analyses)
    confidence = 0.5 * flow_ratio + 0.5 * alignment_score(bounds, arrangement)

    candidate = ConversionCandidate(
        layout_mode=arrangement.layout_mode,
        spacing=infer_spacing(bounds, arrangement),
        children=tuple(analyses),
        confidence=confidence,
    )
    logger.debug(
        "conversion candidate for %s: %s spacing=%.0f flow=%d/%d confidence=%.2f",
        frame.id, candidate.layout_mode.value, candidate.spacing,
        candidate.flow_count, len(analyses), confidence,
    )
    return candidate


def should_convert(frame: ContainerNode, candidate: ConversionCandidate) -> bool:
    if frame.has_auto_layout:
        return False
    if len(candidate.children) < MIN_CHILDREN_FOR_CONVERSION:
        return False
    if candidate.confidence < CONVERSION_CONFIDENCE_THRESHOLD:
        return False
    return candidate.flow_count >= len(candidate.children) * 0.5


def apply_conversion(frame: ContainerNode, candidate: ConversionCandidate) -> ConversionResult:
    """Give ``frame`` the candidate's layout and pin its absolute children."""
    frame.layout_mode = candidate.layout_mode
    frame.primary_sizing = "FIXED"
    frame.counter_sizing = "FIXED"
    frame.item_spacing = candidate.spacing
    if candidate.layout_mode is LayoutMode.VERTICAL:
        frame.primary_axis_align = AxisAlign.MIN
    else:
        frame.primary_axis_align = AxisAlign.CENTER
    frame.counter_axis_align = AxisAlign.CENTER

    absolute_ids = []
    for analysis in candidate.children:
        if analysis.position is ChildPosition.ABSOLUTE:
            analysis.node.layout_positioning = LayoutPositioning.ABSOLUTE
            absolute_ids.append(analysis.node.id)

    logger.debug(
        "converted %s to %s auto-layout (%d absolute children)",
        frame.id, candidate.layout_mode.value, len(absolute_ids),
    )
    return ConversionResult(
        applied=True,
        layout_mode=candidate.layout_mode,
        spacing=candidate.spacing,
        absolute_ids=absolute_ids,
    )


def convert_frame_if_beneficial(frame: ContainerNode) -> ConversionResult:
    """Analyze ``frame`` and convert it when the evidence is strong enough."""
    candidate = analyze_frame_for_conversion(frame)
    if candidate is None or not should_convert(frame, candidate):
        return ConversionResult(applied=False, layout_mode=frame.layout_mode)
    return apply_conversion(frame, candidate)
