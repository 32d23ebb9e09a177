"""Scaling orchestrator: adapt a source frame to a new target size.

Sequence:
1. Optional pre-passes: proximity grouping, auto-layout conversion.
2. Analyze the source: content box, density, layout snapshot, margins.
3. Resolve safe-area insets and compute one uniform scale.
4. Scale the whole tree (positions, sizes, typography, strokes, effects).
5. Plan the leftover space per axis and resize the frame to the target.
6. Offset and clamp free children, then validate bounds.
7. Adapt the root auto-layout (direction, spacing, alignment, wrap).
8. Expand absolute children into the safe area; re-anchor hero bleeds.
9. Nudge text off detected faces.

The frame is mutated in place. Problems never raise out of
``scale_node_tree``; they are reported on the returned ``ScaleResult``.
"""

from __future__ import annotations

__all__ = ["ScaleMetrics", "ScaleResult", "scale_node_tree"]

import logging
import math
from collections import deque
from dataclasses import dataclass, field

from layout_retarget.advice import Advice, Advised, NoAdvice
from layout_retarget.layout.adapter import (
    AdaptationPlan,
    adapt_nested_frames,
    apply_adaptation_plan,
    create_adaptation_plan,
)
from layout_retarget.layout.auto_layout import ConversionResult, convert_frame_if_beneficial
from layout_retarget.layout.classify import (
    get_element_role,
    is_atomic_group,
    is_background_like,
    is_decorative_pointer,
    is_hero_bleed,
    is_overlay,
)
from layout_retarget.layout.collision import (
    CollisionValidationResult,
    validate_text_face_collisions,
)
from layout_retarget.layout.constants import DEFAULT_SAFE_AREA_RATIO
from layout_retarget.layout.content import analyze_content, calculate_optimal_scale
from layout_retarget.layout.expansion import (
    AxisExpansionPlan,
    measure_content_margins,
    normalize_content_margins,
    plan_axis_expansion,
)
from layout_retarget.layout.geometry import is_valid_scale
from layout_retarget.layout.placement import PlacementScoring, calculate_placement_scores
from layout_retarget.layout.profile import (
    LayoutProfile,
    LayoutSnapshot,
    aspect_ratio,
    resolve_layout_profile,
    should_adopt_vertical_flow,
    should_expand_absolute_children,
    take_snapshot,
)
from layout_retarget.layout.proximity import ProximityOptions, ProximityResult, group_by_proximity
from layout_retarget.layout.repositioner import (
    adjust_node_position,
    count_absolute_children,
    expandable_children,
    plan_absolute_layout,
    position_hero_bleed_child,
    reposition_children,
    validate_children_bounds,
)
from layout_retarget.layout.safe_area import SafeAreaInsets, resolve_safe_area_insets
from layout_retarget.layout.scaling import (
    FontCache,
    enforce_min_size,
    ensure_fill_mode,
    min_legible_size,
    scale_corner_radius,
    scale_effect,
    scale_paint,
    scale_preserving_aspect,
    scale_stroke_weight,
    scale_text_node,
)
from layout_retarget.parser.model import (
    Bounds,
    ContainerNode,
    LayoutMode,
    LayoutPositioning,
    LayoutWrap,
    Node,
    TextNode,
)
from layout_retarget.signals import AiSignals

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScaleMetrics:
    """What the orchestrator decided for one frame."""

    scale: float
    scaled_width: float
    scaled_height: float
    safe_inset_x: float
    safe_inset_y: float
    target_width: float
    target_height: float
    horizontal_plan: AxisExpansionPlan
    vertical_plan: AxisExpansionPlan
    profile: LayoutProfile
    adopted_vertical_variant: bool
    insets: SafeAreaInsets | None = None
    layout_plan: AdaptationPlan | None = None
    nested_frames_adapted: int = 0
    placement: PlacementScoring | None = None
    collisions: CollisionValidationResult | None = None


@dataclass
class ScaleResult:
    success: bool = True
    metrics: ScaleMetrics | None = None
    proximity: ProximityResult | None = None
    conversion: ConversionResult | None = None
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


def _scale_metric(value: float, scale: float, minimum: float = 0.0) -> float:
    if value == 0:
        return 0.0
    return float(max(round(value * scale), minimum))


def _scale_node(
    node: Node,
    scale: float,
    font_cache: FontCache,
    min_font_size: float,
    background: bool,
    inside_atomic: bool,
    target_width: float,
    target_height: float,
) -> None:
    if isinstance(node, TextNode):
        scale_text_node(node, scale, font_cache, min_font_size)
        return

    if background:
        node.resize(target_width, target_height)
        node.fills = ensure_fill_mode(node.fills)
    elif is_decorative_pointer(node):
        node.resize(*scale_preserving_aspect(node.width, node.height, scale))
    else:
        role = None if inside_atomic else get_element_role(node)
        width, height = enforce_min_size(role, node.width, node.height, scale)
        node.resize(max(1, width), max(1, height))

    if node.stroke_weight > 0:
        node.stroke_weight = scale_stroke_weight(node.stroke_weight, scale)
    node.corner_radius = scale_corner_radius(node.corner_radius, scale, node.width, node.height)
    node.effects = [scale_effect(e, scale) for e in node.effects]
    node.fills = [scale_paint(p, scale) for p in node.fills]

    if isinstance(node, ContainerNode) and node.has_auto_layout:
        node.padding_top = _scale_metric(node.padding_top, scale)
        node.padding_right = _scale_metric(node.padding_right, scale)
        node.padding_bottom = _scale_metric(node.padding_bottom, scale)
        node.padding_left = _scale_metric(node.padding_left, scale)
        node.item_spacing = _scale_metric(node.item_spacing, scale, 1.0)


def _scale_tree(
    frame: ContainerNode,
    scale: float,
    font_cache: FontCache,
    target_width: float,
    target_height: float,
    source: LayoutSnapshot,
) -> None:
    """Scale every node under ``frame``, breadth first.

    Free children (absolute, or in a layout-less container) have their
    positions scaled; flow children are left to their container's layout.
    Parts of an atomic group keep their proportions: no role minimums.
    Background-like nodes fill the target instead of scaling.
    """
    min_font = min_legible_size(target_width, target_height)
    queue: deque[tuple[Node, int, bool]] = deque([(frame, 0, False)])
    while queue:
        node, depth, inside_atomic = queue.popleft()
        if isinstance(node, ContainerNode):
            atomic = inside_atomic or is_atomic_group(node)
            for child in node.children:
                if child.is_absolute or not node.has_auto_layout:
                    adjust_node_position(child, scale)
                queue.append((child, depth + 1, atomic))

        background = depth > 0 and is_background_like(node, source.width, source.height)
        _scale_node(
            node, scale, font_cache, min_font, background, inside_atomic,
            target_width, target_height,
        )


def _expand_absolute_children(
    frame: ContainerNode,
    profile: LayoutProfile,
    safe: Bounds,
    exempt_ids: set[str],
) -> int:
    children = [
        c for c in expandable_children(frame)
        if c.visible
        and c.id not in exempt_ids
        and not is_overlay(c)
        and not is_background_like(c, frame.width, frame.height)
    ]
    plans = plan_absolute_layout(profile, safe, children)
    by_id = {c.id: c for c in children}
    for plan in plans:
        child = by_id[plan.node_id]
        if math.isfinite(plan.x):
            child.x = plan.x
        if math.isfinite(plan.y):
            child.y = plan.y
    return len(plans)


def _mark_advised_background(frame: ContainerNode, advice: Advice, warnings: list[str]) -> None:
    """Pin the background the advice names, whatever its size or name."""
    node_id = advice.background_node_id if isinstance(advice, Advised) else None
    if node_id is None:
        return
    node = next((c for c in frame.children if c.id == node_id), None)
    if node is None:
        warnings.append(f"advised background '{node_id}' is not a child of the frame")
        return
    logger.debug("advised background %s", node_id)
    node.role = "background"
    if frame.has_auto_layout:
        node.layout_positioning = LayoutPositioning.ABSOLUTE


def _sanitize_dimension(value: float, label: str, warnings: list[str]) -> float:
    if not math.isfinite(value) or value < 1:
        warnings.append(f"{label} {value!r} is invalid; using 1px")
        logger.warning("invalid %s %r clamped to 1px", label, value)
        return 1.0
    return float(value)


def scale_node_tree(
    frame: ContainerNode,
    target_width: float,
    target_height: float,
    safe_area_ratio: float = DEFAULT_SAFE_AREA_RATIO,
    font_cache: FontCache | None = None,
    signals: AiSignals | None = None,
    advice: Advice = NoAdvice(),
    zone: str | None = None,
    fallback_scale: float = 1.0,
    adapt_nested: bool = True,
    convert_auto_layout: bool = False,
    proximity: ProximityOptions | None = None,
) -> ScaleResult:
    """Adapt ``frame`` in place to ``target_width`` x ``target_height``.

    ``zone`` names a platform safe zone (e.g. ``tiktok-vertical``) that
    overrides ``safe_area_ratio``. ``signals`` supplies faces, a focal
    point and hero-bleed roles; ``advice`` an already-resolved layout
    suggestion. When ``proximity`` options are given, loose elements are
    grouped first; ``convert_auto_layout`` lets a layout-less root gain an
    inferred auto-layout before scaling.
    """
    result = ScaleResult()
    try:
        _run(
            frame, target_width, target_height, safe_area_ratio,
            font_cache or FontCache(), signals or AiSignals(), advice, zone,
            fallback_scale, adapt_nested, convert_auto_layout, proximity, result,
        )
    except Exception as e:
        logger.exception("scaling %s failed", frame.id)
        result.errors.append(f"scaling failed: {e}")
    result.success = not result.errors
    return result


def _run(
    frame: ContainerNode,
    target_width: float,
    target_height: float,
    safe_area_ratio: float,
    font_cache: FontCache,
    signals: AiSignals,
    advice: Advice,
    zone: str | None,
    fallback_scale: float,
    adapt_nested: bool,
    convert_auto_layout: bool,
    proximity: ProximityOptions | None,
    result: ScaleResult,
) -> None:
    warnings = result.warnings
    target_width = _sanitize_dimension(target_width, "target width", warnings)
    target_height = _sanitize_dimension(target_height, "target height", warnings)
    frame.resize(
        _sanitize_dimension(frame.width, "source width", warnings),
        _sanitize_dimension(frame.height, "source height", warnings),
    )
    warnings.extend(signals.warnings())
    _mark_advised_background(frame, advice, warnings)

    if proximity is not None:
        result.proximity = group_by_proximity(frame, proximity)
        warnings.extend(result.proximity.warnings)
        warnings.extend(f"proximity: {e}" for e in result.proximity.errors)
    if convert_auto_layout:
        result.conversion = convert_frame_if_beneficial(frame)

    # -- analysis ----------------------------------------------------------
    profile = resolve_layout_profile(target_width, target_height)
    snapshot = take_snapshot(frame)
    analysis = analyze_content(frame)
    source_width = max(analysis.effective_width, 1.0)
    source_height = max(analysis.effective_height, 1.0)
    content = analysis.actual_content_bounds

    margins = normalize_content_margins(
        measure_content_margins(frame, content),
        resolve_layout_profile(source_width, source_height),
        profile,
        aspect_ratio(source_width, source_height),
        aspect_ratio(target_width, target_height),
    )
    insets = resolve_safe_area_insets(target_width, target_height, safe_area_ratio, zone)
    logger.debug("profile %s, insets %s, strategy %s",
                 profile.value, insets, analysis.recommended_strategy.value)

    # -- scale -------------------------------------------------------------
    raw_scale = calculate_optimal_scale(analysis, target_width, target_height, insets, profile)
    frame_max = min(target_width / source_width, target_height / source_height)
    scale = min(raw_scale, frame_max) if is_valid_scale(frame_max) else raw_scale
    if not is_valid_scale(scale):
        warnings.append(f"computed scale {scale!r} is invalid; using {fallback_scale}")
        logger.warning("invalid scale %r, falling back to %s", scale, fallback_scale)
        scale = fallback_scale
    logger.debug("scale %.4f (raw %.4f, frame max %.4f)", scale, raw_scale, frame_max)

    signalled_bleeds = signals.hero_bleed_ids()
    hero_ids = {
        c.id for c in frame.children
        if is_hero_bleed(c, signalled_bleeds)
        and (c.is_absolute or not frame.has_auto_layout)
    }
    hero_sources = {c.id: c.bounds for c in frame.children if c.id in hero_ids}

    _scale_tree(frame, scale, font_cache, target_width, target_height, snapshot)

    # -- axis plans --------------------------------------------------------
    scaled_width = source_width * scale
    scaled_height = source_height * scale
    absolute_count = count_absolute_children(frame)
    adopt_vertical = should_adopt_vertical_flow(profile, snapshot)
    mode = snapshot.layout_mode

    horizontal_plan = plan_axis_expansion(
        max(target_width - scaled_width, 0.0),
        insets.left,
        insets.right,
        snapshot.flow_child_count if mode is LayoutMode.HORIZONTAL else absolute_count,
        gaps=(margins.left, margins.right) if margins else None,
        base_spacing=_scale_metric(snapshot.item_spacing, scale) if mode is LayoutMode.HORIZONTAL else 0.0,
        allow_interior=(
            (mode is LayoutMode.HORIZONTAL and snapshot.flow_child_count >= 2)
            or (mode is LayoutMode.NONE and absolute_count >= 2)
        ),
    )
    if mode is LayoutMode.VERTICAL or adopt_vertical:
        vertical_flow = snapshot.flow_child_count
    else:
        vertical_flow = absolute_count
    vertical_plan = plan_axis_expansion(
        max(target_height - scaled_height, 0.0),
        insets.top,
        insets.bottom,
        vertical_flow,
        gaps=(margins.top, margins.bottom) if margins else None,
        base_spacing=_scale_metric(snapshot.item_spacing, scale) if mode is LayoutMode.VERTICAL else 0.0,
        allow_interior=(
            adopt_vertical
            or (mode is LayoutMode.VERTICAL and snapshot.flow_child_count >= 2)
            or (snapshot.layout_wrap is LayoutWrap.WRAP and snapshot.flow_child_count >= 2)
            or (mode is LayoutMode.NONE and absolute_count >= 2)
        ),
    )
    logger.debug("axis plans: horizontal %s, vertical %s", horizontal_plan, vertical_plan)

    # -- resize and reposition --------------------------------------------
    frame.resize(target_width, target_height)
    content_x = content.x * scale if content is not None else 0.0
    content_y = content.y * scale if content is not None else 0.0
    reposition_children(
        frame,
        horizontal_plan.start - content_x,
        vertical_plan.start - content_y,
        insets=insets,
        exempt_ids=hero_ids,
    )
    validate_children_bounds(frame, exempt_ids=hero_ids)

    # -- layout adaptation -------------------------------------------------
    layout_plan = None
    if mode is not LayoutMode.NONE:
        layout_plan = create_adaptation_plan(
            frame, target_width, target_height, profile, scale,
            snapshot=snapshot,
            insets=insets,
            adopt_vertical=adopt_vertical,
            vertical_plan=vertical_plan,
            advice=advice,
        )
        apply_adaptation_plan(frame, layout_plan)
    nested = adapt_nested_frames(frame, target_width, target_height, profile) if adapt_nested else 0

    # -- absolute children -------------------------------------------------
    safe = Bounds(
        horizontal_plan.start,
        vertical_plan.start,
        target_width - horizontal_plan.start - horizontal_plan.end,
        target_height - vertical_plan.start - vertical_plan.end,
    )
    faces = signals.faces
    focal = signals.primary_focal_point()
    placement = None
    if should_expand_absolute_children(mode, adopt_vertical) and safe.width > 0 and safe.height > 0:
        if faces or focal is not None:
            placement = calculate_placement_scores(
                profile, safe, target_width, target_height, faces, focal,
            )
        moved = _expand_absolute_children(frame, profile, safe, hero_ids)
        logger.debug("expanded %d absolute children into %s", moved, safe)

    for child in frame.children:
        if child.id in hero_ids:
            child.x, child.y = position_hero_bleed_child(
                hero_sources[child.id], snapshot.width, snapshot.height,
                target_width, target_height, child.width, child.height,
            )

    # -- collisions --------------------------------------------------------
    collisions = None
    if faces:
        collisions = validate_text_face_collisions(frame, faces, safe)
        warnings.extend(collisions.warnings)
        result.errors.extend(collisions.errors)

    result.metrics = ScaleMetrics(
        scale=scale,
        scaled_width=scaled_width,
        scaled_height=scaled_height,
        safe_inset_x=insets.left,
        safe_inset_y=insets.top,
        target_width=target_width,
        target_height=target_height,
        horizontal_plan=horizontal_plan,
        vertical_plan=vertical_plan,
        profile=profile,
        adopted_vertical_variant=adopt_vertical,
        insets=insets,
        layout_plan=layout_plan,
        nested_frames_adapted=nested,
        placement=placement,
        collisions=collisions,
    )
