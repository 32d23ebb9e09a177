"""Content analysis and optimal scale computation.

Measures where the visible content of a frame actually sits, classifies
how dense it is, and picks a scaling strategy. The analysis is a pure
function of the tree and is computed once, before any mutation.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from layout_retarget.layout.classify import is_background_like, is_overlay
from layout_retarget.layout.constants import (
    CONTENT_MAX_DEPTH,
    DENSE_CHILD_COUNT,
    FILL_SCALE_FACTOR,
    FIT_SCALE_FACTOR,
    MAX_SCALE,
    MAX_SCALE_WITH_IMAGES,
    MIN_SCALE,
    SAFE_SCALE_TOLERANCE,
    SPARSE_CHILD_COUNT,
)
from layout_retarget.layout.profile import LayoutProfile
from layout_retarget.layout.safe_area import SafeAreaInsets
from layout_retarget.parser.model import (
    Bounds,
    ContainerNode,
    ImageNode,
    LayoutMode,
    Node,
    TextNode,
    VectorNode,
)

logger = logging.getLogger(__name__)

__all__ = [
    "ContentAnalysis",
    "ContentDensity",
    "ScalingStrategy",
    "analyze_content",
    "calculate_optimal_scale",
    "find_content_bounds",
]

SPARSE_COVERAGE: float = 0.15
"""Content covering less than this share of the frame reads as sparse."""


class ContentDensity(Enum):
    SPARSE = "sparse"
    NORMAL = "normal"
    DENSE = "dense"


class ScalingStrategy(Enum):
    PROPORTIONAL = "proportional"
    ADAPTIVE = "adaptive"
    FILL = "fill"


@dataclass(frozen=True)
class ContentAnalysis:
    """Read-only summary of a source frame."""

    actual_content_bounds: Bounds | None
    has_auto_layout: bool
    layout_direction: LayoutMode
    child_count: int
    has_text: bool
    has_images: bool
    content_density: ContentDensity
    recommended_strategy: ScalingStrategy
    effective_width: float
    effective_height: float


def analyze_content(frame: ContainerNode) -> ContentAnalysis:
    bounds = find_content_bounds(frame)
    effective_width = bounds.width if bounds else frame.width
    effective_height = bounds.height if bounds else frame.height

    has_text = any(
        isinstance(n, TextNode) and n.characters for n, _ in frame.walk()
    )
    has_images = any(
        isinstance(n, ImageNode) or n.has_image_fill() for n, _ in frame.walk()
    )
    child_count = sum(
        1 for c in frame.children if c.visible and not is_overlay(c)
    )

    coverage = 0.0
    if bounds is not None and frame.width > 0 and frame.height > 0:
        coverage = bounds.area / (frame.width * frame.height)

    if child_count == 0:
        density = ContentDensity.SPARSE
    elif child_count > DENSE_CHILD_COUNT:
        density = ContentDensity.DENSE
    elif child_count <= SPARSE_CHILD_COUNT or coverage < SPARSE_COVERAGE:
        density = ContentDensity.SPARSE
    else:
        density = ContentDensity.NORMAL

    strategy = _determine_strategy(frame.has_auto_layout, density)
    logger.debug(
        "content analysis %s: %d children, density=%s, strategy=%s, "
        "effective=%.0fx%.0f",
        frame.id, child_count, density.value, strategy.value,
        effective_width, effective_height,
    )

    return ContentAnalysis(
        actual_content_bounds=bounds,
        has_auto_layout=frame.has_auto_layout,
        layout_direction=frame.layout_mode,
        child_count=child_count,
        has_text=has_text,
        has_images=has_images,
        content_density=density,
        recommended_strategy=strategy,
        effective_width=max(effective_width, 1.0),
        effective_height=max(effective_height, 1.0),
    )


def find_content_bounds(frame: ContainerNode) -> Bounds | None:
    """Frame-relative union of visible, non-background content.

    Traversal is breadth-first and stops at ``CONTENT_MAX_DEPTH``. Hidden
    nodes and overlays prune their whole subtree. The result is clamped to
    the frame; ``None`` when nothing qualifies.
    """
    result: Bounds | None = None
    pruned: set[int] = set()

    for node, depth in frame.walk(max_depth=CONTENT_MAX_DEPTH):
        if depth == 0:
            continue
        if node.parent is not None and id(node.parent) in pruned:
            pruned.add(id(node))
            continue
        if not node.visible or is_overlay(node):
            pruned.add(id(node))
            continue
        if is_background_like(node, frame.width, frame.height):
            continue
        if not _has_content(node):
            continue
        x, y = node.offset_in(frame)
        box = Bounds(x, y, node.width, node.height)
        result = box if result is None else result.union(box)

    if result is None:
        return None

    x = max(result.x, 0.0)
    y = max(result.y, 0.0)
    right = min(result.right, frame.width)
    bottom = min(result.bottom, frame.height)
    if right <= x or bottom <= y:
        return None
    return Bounds(x, y, right - x, bottom - y)


def _has_content(node: Node) -> bool:
    if isinstance(node, TextNode):
        return bool(node.characters)
    if isinstance(node, ImageNode):
        return True
    if isinstance(node, VectorNode) and node.shape in ("RECTANGLE", "ELLIPSE"):
        return True
    return bool(node.fills) or bool(node.strokes)


def _determine_strategy(has_auto_layout: bool, density: ContentDensity) -> ScalingStrategy:
    if density is ContentDensity.SPARSE:
        return ScalingStrategy.FILL
    if has_auto_layout:
        return ScalingStrategy.ADAPTIVE
    return ScalingStrategy.PROPORTIONAL


def calculate_optimal_scale(
    analysis: ContentAnalysis,
    target_width: float,
    target_height: float,
    insets: SafeAreaInsets,
    profile: LayoutProfile,
) -> float:
    """Uniform scale mapping the effective content into the safe area."""
    available_w = target_width - insets.left - insets.right
    available_h = target_height - insets.top - insets.bottom
    width_scale = available_w / max(analysis.effective_width, 1.0)
    height_scale = available_h / max(analysis.effective_height, 1.0)

    strategy = analysis.recommended_strategy
    if strategy is ScalingStrategy.FILL:
        scale = max(width_scale, height_scale) * FILL_SCALE_FACTOR
    elif strategy is ScalingStrategy.PROPORTIONAL:
        scale = min(width_scale, height_scale) * FIT_SCALE_FACTOR
    elif profile is LayoutProfile.VERTICAL:
        if height_scale <= width_scale:
            scale = height_scale * 0.95
        else:
            scale = min(height_scale * 0.9, width_scale * 1.05)
    elif profile is LayoutProfile.HORIZONTAL:
        if width_scale <= height_scale:
            scale = width_scale * 0.95
        else:
            blend = width_scale * 0.8 + height_scale * 0.2
            scale = min(height_scale * 1.05, blend)
    else:
        average = (width_scale + height_scale) / 2
        scale = min(width_scale, height_scale) * 0.6 + average * 0.4

    max_safe = min(width_scale, height_scale)
    scale = min(scale, max_safe * SAFE_SCALE_TOLERANCE)
    upper = MAX_SCALE_WITH_IMAGES if analysis.has_images else MAX_SCALE
    return max(MIN_SCALE, min(upper, scale))
