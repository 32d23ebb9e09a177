"""Layout profile resolution and vertical-flow heuristics.

The profile is a coarse bucket of the target aspect ratio. Vertical
targets may rotate a source horizontal stack into a vertical one; the
helpers here decide whether that happens and how spacing, alignment and
wrapping change when it does.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from layout_retarget.layout.constants import (
    DISTRIBUTION_DENSE,
    DISTRIBUTION_MODERATE,
    DISTRIBUTION_SPARSE,
    EXTREME_HORIZONTAL,
    EXTREME_VERTICAL,
    MODERATE_HORIZONTAL,
    MODERATE_VERTICAL,
    SQUARE_MAX,
    SQUARE_MIN,
    VERTICAL_GAP_HARD_CAP,
    VERTICAL_GAP_SOFT_CAP,
)
from layout_retarget.parser.model import (
    AxisAlign,
    ContainerNode,
    LayoutMode,
    LayoutWrap,
)

__all__ = [
    "AspectTier",
    "LayoutProfile",
    "LayoutSnapshot",
    "aspect_ratio",
    "classify_aspect",
    "compute_vertical_spacing",
    "distribution_ratio",
    "resolve_layout_profile",
    "resolve_vertical_align_items",
    "resolve_vertical_layout_wrap",
    "should_adopt_vertical_flow",
    "should_expand_absolute_children",
    "take_snapshot",
]


class LayoutProfile(Enum):
    HORIZONTAL = "horizontal"
    SQUARE = "square"
    VERTICAL = "vertical"


class AspectTier(Enum):
    """Finer aspect classification used by the layout mode resolver."""

    EXTREME_VERTICAL = "extreme-vertical"
    MODERATE_VERTICAL = "moderate-vertical"
    SLIGHT_VERTICAL = "slight-vertical"
    SQUARE = "square"
    SLIGHT_HORIZONTAL = "slight-horizontal"
    MODERATE_HORIZONTAL = "moderate-horizontal"
    EXTREME_HORIZONTAL = "extreme-horizontal"


@dataclass(frozen=True)
class LayoutSnapshot:
    """Auto-layout state of a source frame, captured before mutation."""

    layout_mode: LayoutMode
    flow_child_count: int
    item_spacing: float
    primary_axis_align: AxisAlign
    counter_axis_align: AxisAlign
    layout_wrap: LayoutWrap
    width: float
    height: float
    padding: tuple[float, float, float, float] = (0.0, 0.0, 0.0, 0.0)  # top, right, bottom, left


def take_snapshot(frame: ContainerNode) -> LayoutSnapshot:
    return LayoutSnapshot(
        layout_mode=frame.layout_mode,
        flow_child_count=len(frame.flow_children()),
        item_spacing=frame.item_spacing,
        primary_axis_align=frame.primary_axis_align,
        counter_axis_align=frame.counter_axis_align,
        layout_wrap=frame.layout_wrap,
        width=frame.width,
        height=frame.height,
        padding=(frame.padding_top, frame.padding_right,
                 frame.padding_bottom, frame.padding_left),
    )


def aspect_ratio(width: float, height: float) -> float:
    return max(width, 1.0) / max(height, 1.0)


def resolve_layout_profile(width: float, height: float) -> LayoutProfile:
    """Bucket a target size into vertical, square or horizontal."""
    ratio = aspect_ratio(width, height)
    if ratio < SQUARE_MIN:
        return LayoutProfile.VERTICAL
    if ratio > SQUARE_MAX:
        return LayoutProfile.HORIZONTAL
    return LayoutProfile.SQUARE


def classify_aspect(ratio: float) -> AspectTier:
    if ratio < EXTREME_VERTICAL:
        return AspectTier.EXTREME_VERTICAL
    if ratio < MODERATE_VERTICAL:
        return AspectTier.MODERATE_VERTICAL
    if ratio < SQUARE_MIN:
        return AspectTier.SLIGHT_VERTICAL
    if ratio <= SQUARE_MAX:
        return AspectTier.SQUARE
    if ratio <= MODERATE_HORIZONTAL:
        return AspectTier.SLIGHT_HORIZONTAL
    if ratio <= EXTREME_HORIZONTAL:
        return AspectTier.MODERATE_HORIZONTAL
    return AspectTier.EXTREME_HORIZONTAL


def should_adopt_vertical_flow(
    profile: LayoutProfile,
    snapshot: LayoutSnapshot | None,
) -> bool:
    """Whether the source auto-layout should become a vertical stack.

    Any directional source layout rotates on a vertical target, however
    many flow children it has.
    """
    if profile is not LayoutProfile.VERTICAL or snapshot is None:
        return False
    return snapshot.layout_mode in (LayoutMode.HORIZONTAL, LayoutMode.VERTICAL)


def distribution_ratio(flow_child_count: int) -> float:
    """Share of extra space handed to gaps; sparse stacks get more."""
    if flow_child_count <= 2:
        return DISTRIBUTION_SPARSE
    if flow_child_count <= 5:
        return DISTRIBUTION_MODERATE
    return DISTRIBUTION_DENSE


def compute_vertical_spacing(
    base_spacing: float,
    interior: float,
    flow_child_count: int,
) -> float:
    """Item spacing for a vertical stack given ``interior`` slack pixels.

    The slack is split evenly across gaps and weighted by the density
    ratio. Additions beyond the soft cap grow at half rate and the total
    never exceeds the hard cap.
    """
    if flow_child_count < 2:
        return round(base_spacing, 2)

    gaps = flow_child_count - 1
    per_gap = max(interior, 0.0) / gaps
    addition = per_gap * distribution_ratio(flow_child_count)

    soft_cap = base_spacing * VERTICAL_GAP_SOFT_CAP
    if addition > soft_cap:
        addition = soft_cap + (addition - soft_cap) * 0.5

    spacing = min(base_spacing + addition, base_spacing * VERTICAL_GAP_HARD_CAP)
    return round(spacing, 2)


def resolve_vertical_align_items(current: AxisAlign, interior: float) -> AxisAlign:
    """Primary-axis alignment for a stack rotated to vertical.

    Slack collapses centered or distributed stacks to the top; without
    slack a space-between stack keeps its distribution.
    """
    if current is AxisAlign.MIN:
        return current
    if max(0.0, interior) > 0:
        return AxisAlign.MIN
    if current is AxisAlign.SPACE_BETWEEN:
        return current
    return AxisAlign.MIN


def resolve_vertical_layout_wrap(current: LayoutWrap) -> LayoutWrap:
    return LayoutWrap.NO_WRAP


def should_expand_absolute_children(
    root_layout_mode: LayoutMode | None,
    adopt_vertical: bool,
) -> bool:
    if adopt_vertical:
        return True
    return root_layout_mode is None or root_layout_mode is LayoutMode.NONE
