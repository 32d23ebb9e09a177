"""Auto-layout adaptation for a new target.

Builds an ``AdaptationPlan`` for a container: the layout direction to use
on the target, its alignment, wrapping, item spacing and padding. The
plan is computed from a snapshot of the source layout taken before any
mutation, applied once, and discarded.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from layout_retarget.advice import Advice, Advised, LayoutPattern, NoAdvice
from layout_retarget.layout.classify import is_background_like
from layout_retarget.layout.constants import (
    ASPECT_CHANGE_THRESHOLD,
    DEFAULT_BASE_SPACING,
    EXTREME_HORIZONTAL,
    EXTREME_VERTICAL,
    SPACE_BETWEEN_MAX_CHILDREN,
    WRAP_MIN_CHILDREN,
    WRAP_MIN_WIDTH,
)
from layout_retarget.layout.expansion import AxisExpansionPlan
from layout_retarget.layout.profile import (
    AspectTier,
    LayoutProfile,
    LayoutSnapshot,
    aspect_ratio,
    classify_aspect,
    compute_vertical_spacing,
    distribution_ratio,
    resolve_vertical_align_items,
    resolve_vertical_layout_wrap,
    take_snapshot,
)
from layout_retarget.layout.safe_area import SafeAreaInsets
from layout_retarget.parser.model import (
    AxisAlign,
    ContainerNode,
    ImageNode,
    LayoutMode,
    LayoutWrap,
    TextNode,
    VectorNode,
)

logger = logging.getLogger(__name__)

__all__ = [
    "AdaptationPlan",
    "LayoutContext",
    "adapt_nested_frames",
    "apply_adaptation_plan",
    "calculate_padding",
    "calculate_spacing",
    "create_adaptation_plan",
    "determine_alignments",
    "determine_layout_mode",
    "determine_wrap",
    "is_component_like",
    "should_force_layout_change",
]

EDGE_VERTICAL_RATIO: float = 0.5
"""Targets narrower than this get a larger share of space in gaps."""

SPACING_RATIO_BOOST: float = 1.3
SPACING_RATIO_MAX: float = 0.5
MAX_SPACING_MULTIPLE: float = 8.0
NESTED_WIDTH_SHARE: float = 0.5
"""Nested stacks at least this share of the target width are restructured."""

COMPONENT_MAX_DIMENSION: float = 200.0
_COMPONENT_NAME = re.compile(r"logo|icon|button|badge|chip|avatar|cta|tag|pill|indicator", re.IGNORECASE)
_SIMPLE_SHAPES = {"VECTOR", "RECTANGLE", "ELLIPSE"}


@dataclass(frozen=True)
class LayoutContext:
    """Everything the adaptation rules look at, captured before mutation."""

    source: LayoutSnapshot | None
    source_width: float
    source_height: float
    child_count: int
    has_text: bool
    has_images: bool
    profile: LayoutProfile
    target_width: float
    target_height: float
    safe_width: float
    safe_height: float
    scale: float
    adopt_vertical: bool = False
    vertical_plan: AxisExpansionPlan | None = None
    suggested_mode: LayoutMode | None = None
    pattern: LayoutPattern | None = None

    @property
    def source_mode(self) -> LayoutMode:
        return self.source.layout_mode if self.source is not None else LayoutMode.NONE

    @property
    def target_aspect(self) -> float:
        return aspect_ratio(self.target_width, self.target_height)


@dataclass(frozen=True)
class AdaptationPlan:
    layout_mode: LayoutMode
    primary_align: AxisAlign
    counter_align: AxisAlign
    layout_wrap: LayoutWrap
    item_spacing: float
    padding: tuple[float, float, float, float]  # top, right, bottom, left
    counter_axis_spacing: float | None = None
    primary_sizing: str = "FIXED"
    counter_sizing: str = "FIXED"


def _advice_hints(advice: Advice) -> tuple[LayoutMode | None, LayoutPattern | None]:
    if isinstance(advice, Advised):
        return advice.suggested_layout_mode, advice.pattern
    if isinstance(advice, NoAdvice):
        return None, None
    raise TypeError(f"unexpected advice value {advice!r}")


def _count_flow_children(frame: ContainerNode) -> int:
    return sum(
        1 for c in frame.children
        if c.visible and not c.is_absolute
        and not is_background_like(c, frame.width, frame.height)
    )


def should_force_layout_change(ctx: LayoutContext) -> bool:
    """Extreme targets always rotate a stack running the wrong way."""
    if ctx.target_aspect < EXTREME_VERTICAL and ctx.source_mode is LayoutMode.HORIZONTAL:
        return True
    return ctx.target_aspect > EXTREME_HORIZONTAL and ctx.source_mode is LayoutMode.VERTICAL


def determine_layout_mode(ctx: LayoutContext) -> LayoutMode:
    source = ctx.source_mode

    if ctx.suggested_mode is not None:
        return ctx.suggested_mode

    if ctx.pattern is not None:
        # A layered pattern would collapse an existing flow layout.
        if ctx.pattern.layout_mode is LayoutMode.NONE and source is not LayoutMode.NONE:
            return source
        return ctx.pattern.layout_mode

    if should_force_layout_change(ctx):
        return LayoutMode.VERTICAL if ctx.profile is LayoutProfile.VERTICAL else LayoutMode.HORIZONTAL

    if ctx.adopt_vertical and ctx.profile is LayoutProfile.VERTICAL:
        return LayoutMode.VERTICAL

    ratio = ctx.target_aspect
    if source is LayoutMode.NONE:
        delta = abs(aspect_ratio(ctx.source_width, ctx.source_height) - ratio)
        if delta > ASPECT_CHANGE_THRESHOLD:
            return LayoutMode.VERTICAL if ctx.profile is LayoutProfile.VERTICAL else LayoutMode.HORIZONTAL
        return LayoutMode.NONE

    tier = classify_aspect(ratio)
    if tier is AspectTier.EXTREME_VERTICAL:
        if ctx.has_images and not ctx.has_text and ctx.child_count < 3:
            return source
        return LayoutMode.VERTICAL

    if tier is AspectTier.MODERATE_VERTICAL:
        if source is LayoutMode.HORIZONTAL and ctx.child_count >= 3:
            return LayoutMode.VERTICAL
        return source

    if tier is AspectTier.EXTREME_HORIZONTAL:
        return LayoutMode.HORIZONTAL

    if tier is AspectTier.MODERATE_HORIZONTAL:
        if source is LayoutMode.VERTICAL and ctx.child_count == 2:
            return LayoutMode.HORIZONTAL
        return source

    return source


def determine_wrap(mode: LayoutMode, ctx: LayoutContext) -> LayoutWrap:
    if mode is LayoutMode.NONE:
        return LayoutWrap.NO_WRAP
    if mode is LayoutMode.VERTICAL and ctx.profile is LayoutProfile.VERTICAL:
        return resolve_vertical_layout_wrap(ctx.source.layout_wrap if ctx.source else LayoutWrap.NO_WRAP)
    if (
        mode is LayoutMode.HORIZONTAL
        and ctx.child_count > WRAP_MIN_CHILDREN
        and ctx.target_width > WRAP_MIN_WIDTH
    ):
        return LayoutWrap.WRAP
    return LayoutWrap.NO_WRAP


def determine_alignments(mode: LayoutMode, ctx: LayoutContext) -> tuple[AxisAlign, AxisAlign]:
    """Primary and counter alignment for the adapted layout.

    An unchanged direction keeps the source alignment. A matching pattern
    supplies its own. Stacks rotated onto tall targets collapse to the
    top while slack remains.
    """
    if mode is LayoutMode.NONE:
        return AxisAlign.MIN, AxisAlign.MIN

    source = ctx.source if ctx.source is not None and ctx.source_mode is not LayoutMode.NONE else None
    if source is not None and source.layout_mode is mode:
        return source.primary_axis_align, source.counter_axis_align

    if ctx.pattern is not None and ctx.pattern.layout_mode is mode:
        return ctx.pattern.primary_alignment, ctx.pattern.counter_alignment

    counter = source.counter_axis_align if source is not None else AxisAlign.CENTER

    if mode is LayoutMode.VERTICAL and ctx.profile is LayoutProfile.VERTICAL:
        if ctx.vertical_plan is not None:
            interior = ctx.vertical_plan.interior
        else:
            interior = max(ctx.target_height - ctx.source_height * ctx.scale, 0.0)
        current = source.primary_axis_align if source is not None else AxisAlign.CENTER
        return resolve_vertical_align_items(current, interior), counter

    if mode is LayoutMode.HORIZONTAL and ctx.profile is LayoutProfile.HORIZONTAL:
        primary = AxisAlign.SPACE_BETWEEN if ctx.child_count <= SPACE_BETWEEN_MAX_CHILDREN else AxisAlign.MIN
        return primary, counter

    primary = source.primary_axis_align if source is not None else AxisAlign.CENTER
    return primary, counter


def calculate_spacing(mode: LayoutMode, ctx: LayoutContext) -> tuple[float, float | None]:
    """Item spacing and, when wrapping, counter-axis spacing.

    The source spacing scales with the content; on a target whose profile
    matches the new direction, a density-weighted share of the free space
    is added per gap.
    """
    if mode is LayoutMode.NONE:
        return 0.0, None

    has_layout = ctx.source is not None and ctx.source_mode is not LayoutMode.NONE
    base = ctx.source.item_spacing if has_layout else DEFAULT_BASE_SPACING
    scaled = 0.0 if base == 0 else max(base * ctx.scale, 1.0)
    counter = float(round(scaled)) if determine_wrap(mode, ctx) is LayoutWrap.WRAP else None

    if ctx.adopt_vertical and mode is LayoutMode.VERTICAL and ctx.vertical_plan is not None:
        spacing = compute_vertical_spacing(scaled, ctx.vertical_plan.interior, ctx.child_count)
        logger.debug("vertical spacing %.2f from base %.2f, interior %.2f",
                     spacing, scaled, ctx.vertical_plan.interior)
        return spacing, counter

    ratio = distribution_ratio(ctx.child_count)
    if ctx.target_aspect < EDGE_VERTICAL_RATIO or ctx.target_aspect > EXTREME_HORIZONTAL:
        ratio = min(ratio * SPACING_RATIO_BOOST, SPACING_RATIO_MAX)
    max_spacing = scaled * MAX_SPACING_MULTIPLE
    gaps = max(ctx.child_count - 1, 1)

    if ctx.profile is LayoutProfile.VERTICAL and mode is LayoutMode.VERTICAL:
        extra = ctx.safe_height - ctx.source_height * ctx.scale
    elif ctx.profile is LayoutProfile.HORIZONTAL and mode is LayoutMode.HORIZONTAL:
        extra = ctx.safe_width - ctx.source_width * ctx.scale
    else:
        return float(round(scaled)), counter

    additional = max(0.0, extra / gaps * ratio)
    return float(round(min(scaled + additional, max_spacing))), counter


def calculate_padding(ctx: LayoutContext) -> tuple[float, float, float, float]:
    """Source padding scaled by the content scale; never negative."""
    padding = ctx.source.padding if ctx.source is not None else (0.0, 0.0, 0.0, 0.0)
    return tuple(float(round(max(p * ctx.scale, 0.0))) for p in padding)


def _build_context(
    frame: ContainerNode,
    target_width: float,
    target_height: float,
    profile: LayoutProfile,
    scale: float,
    snapshot: LayoutSnapshot | None,
    insets: SafeAreaInsets | None,
    adopt_vertical: bool,
    vertical_plan: AxisExpansionPlan | None,
    advice: Advice,
) -> LayoutContext:
    suggested, pattern = _advice_hints(advice)
    if snapshot is None:
        snapshot = take_snapshot(frame)
    insets = insets or SafeAreaInsets(0, 0, 0, 0)
    has_text = any(isinstance(n, TextNode) for n, d in frame.walk() if d > 0)
    has_images = any(
        isinstance(n, ImageNode) or n.has_image_fill() for n, d in frame.walk() if d > 0
    )
    return LayoutContext(
        source=snapshot,
        source_width=snapshot.width,
        source_height=snapshot.height,
        child_count=(
            snapshot.flow_child_count if snapshot.layout_mode is not LayoutMode.NONE
            else _count_flow_children(frame)
        ),
        has_text=has_text,
        has_images=has_images,
        profile=profile,
        target_width=target_width,
        target_height=target_height,
        safe_width=max(target_width - insets.left - insets.right, 0.0),
        safe_height=max(target_height - insets.top - insets.bottom, 0.0),
        scale=scale,
        adopt_vertical=adopt_vertical,
        vertical_plan=vertical_plan,
        suggested_mode=suggested,
        pattern=pattern,
    )


def create_adaptation_plan(
    frame: ContainerNode,
    target_width: float,
    target_height: float,
    profile: LayoutProfile,
    scale: float,
    snapshot: LayoutSnapshot | None = None,
    insets: SafeAreaInsets | None = None,
    adopt_vertical: bool = False,
    vertical_plan: AxisExpansionPlan | None = None,
    advice: Advice = NoAdvice(),
) -> AdaptationPlan:
    ctx = _build_context(
        frame, target_width, target_height, profile, scale,
        snapshot, insets, adopt_vertical, vertical_plan, advice,
    )
    mode = determine_layout_mode(ctx)
    primary, counter = determine_alignments(mode, ctx)
    spacing, counter_spacing = calculate_spacing(mode, ctx)
    plan = AdaptationPlan(
        layout_mode=mode,
        primary_align=primary,
        counter_align=counter,
        layout_wrap=determine_wrap(mode, ctx),
        item_spacing=spacing,
        padding=calculate_padding(ctx),
        counter_axis_spacing=counter_spacing,
    )
    logger.debug(
        "adaptation plan %s: %s -> %s align=%s/%s wrap=%s spacing=%.2f padding=%s",
        frame.id, ctx.source_mode.value, mode.value, primary.value, counter.value,
        plan.layout_wrap.value, spacing, plan.padding,
    )
    return plan


def apply_adaptation_plan(frame: ContainerNode, plan: AdaptationPlan) -> None:
    frame.layout_mode = plan.layout_mode
    if plan.layout_mode is LayoutMode.NONE:
        return
    frame.primary_sizing = plan.primary_sizing
    frame.counter_sizing = plan.counter_sizing
    frame.primary_axis_align = plan.primary_align
    frame.counter_axis_align = plan.counter_align
    frame.layout_wrap = plan.layout_wrap
    frame.item_spacing = plan.item_spacing
    frame.padding_top, frame.padding_right, frame.padding_bottom, frame.padding_left = plan.padding


def is_component_like(node: ContainerNode) -> bool:
    """Small or simple containers (logos, buttons, chips) keep their layout."""
    if node.width < COMPONENT_MAX_DIMENSION and node.height < COMPONENT_MAX_DIMENSION:
        return True
    if _COMPONENT_NAME.search(node.name):
        return True
    if node.has_auto_layout and len(node.children) <= 3:
        return all(
            isinstance(c, TextNode) or (isinstance(c, VectorNode) and c.shape in _SIMPLE_SHAPES)
            for c in node.children
        )
    return False


def adapt_nested_frames(
    root: ContainerNode,
    target_width: float,
    target_height: float,
    profile: LayoutProfile,
) -> int:
    """Re-plan wide nested stacks under an already-scaled ``root``.

    Returns how many containers changed direction.
    """
    changed = 0
    queue = [c for c in root.children if isinstance(c, ContainerNode)]
    while queue:
        node = queue.pop(0)
        if is_component_like(node):
            continue
        if (
            node.visible
            and node.has_auto_layout
            and node.width >= target_width * NESTED_WIDTH_SHARE
        ):
            plan = create_adaptation_plan(node, target_width, target_height, profile, 1.0)
            if plan.layout_mode is not node.layout_mode:
                logger.debug("nested frame %s: %s -> %s",
                             node.id, node.layout_mode.value, plan.layout_mode.value)
                apply_adaptation_plan(node, plan)
                changed += 1
        queue.extend(c for c in node.children if isinstance(c, ContainerNode))
    return changed
