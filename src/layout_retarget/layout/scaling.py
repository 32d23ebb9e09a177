"""Per-node scaling of typography, strokes, radii, effects and paints.

Up-scaling of decorative properties (strokes, radii, shadows) is damped by
a power curve so that large scale factors do not produce heavy outlines
or huge blurs.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Callable

from layout_retarget.layout.constants import (
    BLUR_RADIUS_EXPONENT,
    LARGE_DISPLAY_DIMENSION,
    MAX_BLUR_RADIUS,
    MAX_SHADOW_RADIUS,
    MIN_CORNER_RADIUS,
    MIN_ELEMENT_SIZES,
    MIN_LEGIBLE_LARGE,
    MIN_LEGIBLE_STANDARD,
    MIN_LEGIBLE_THUMBNAIL,
    MIN_STROKE_WEIGHT,
    SHADOW_RADIUS_EXPONENT,
    SHADOW_SPREAD_EXPONENT,
    THUMBNAIL_DIMENSION,
    UPSCALE_DAMPING_EXPONENT,
)
from layout_retarget.parser.model import (
    Effect,
    Paint,
    TextAutoResize,
    TextNode,
)

logger = logging.getLogger(__name__)

FontLoader = Callable[[str, str], None]


class FontCache:
    """Loads each (family, style) pair at most once.

    ``loader`` is the host's font-load call; without one, fonts are only
    recorded.
    """

    def __init__(self, loader: FontLoader | None = None) -> None:
        self._loader = loader
        self._loaded: set[tuple[str, str]] = set()

    def __contains__(self, key: tuple[str, str]) -> bool:
        return key in self._loaded

    def __len__(self) -> int:
        return len(self._loaded)

    def ensure(self, family: str, style: str) -> bool:
        """Load a font if needed. Returns True when a load happened."""
        key = (family, style)
        if key in self._loaded:
            return False
        if self._loader is not None:
            self._loader(family, style)
        self._loaded.add(key)
        logger.debug("loaded font %s %s", family, style)
        return True


def min_legible_size(target_width: float, target_height: float) -> float:
    """Smallest font size allowed on a target of the given size."""
    if min(target_width, target_height) < THUMBNAIL_DIMENSION:
        return MIN_LEGIBLE_THUMBNAIL
    if target_width >= LARGE_DISPLAY_DIMENSION or target_height >= LARGE_DISPLAY_DIMENSION:
        return MIN_LEGIBLE_LARGE
    return MIN_LEGIBLE_STANDARD


def _half_pixel(value: float) -> float:
    return round(value * 2) / 2


def scale_text_node(
    node: TextNode,
    scale: float,
    font_cache: FontCache,
    min_font_size: float,
) -> None:
    """Scale a text box and every run's typography in place.

    Font sizes never drop below ``min_font_size``. A box that auto-sized in
    both directions keeps its scaled width and only grows in height.
    """
    original_auto_resize = node.auto_resize
    node.resize(max(1, round(node.width * scale)), max(1, round(node.height * scale)))

    for run in node.runs:
        font_cache.ensure(run.font_family, run.font_style)

    node.runs = [
        replace(
            run,
            font_size=max(_half_pixel(run.font_size * scale), min_font_size),
            line_height=(
                _half_pixel(run.line_height * scale)
                if run.line_height is not None else None
            ),
            letter_spacing=(
                round(run.letter_spacing * scale, 2)
                if run.letter_spacing is not None else None
            ),
        )
        for run in node.runs
    ]

    if original_auto_resize is TextAutoResize.WIDTH_AND_HEIGHT:
        node.auto_resize = TextAutoResize.HEIGHT


def scale_stroke_weight(weight: float, scale: float) -> float:
    if weight <= 0:
        return weight
    if scale > 1:
        damped = weight * scale ** UPSCALE_DAMPING_EXPONENT
        return round(min(damped, max(weight * 4, 8.0)), 2)
    return max(weight * scale, MIN_STROKE_WEIGHT)


def scale_corner_radius(radius: float, scale: float, width: float, height: float) -> float:
    """Scaled corner radius, never more than half the shorter side."""
    if radius <= 0:
        return radius
    if scale > 1:
        value = radius * scale ** UPSCALE_DAMPING_EXPONENT
    else:
        value = max(radius * scale, MIN_CORNER_RADIUS)
    return min(value, min(width, height) / 2)


def scale_effect(effect: Effect, scale: float) -> Effect:
    """Shadows and blurs scale linearly up to 2x, then along a damped curve."""
    if effect.type in ("DROP_SHADOW", "INNER_SHADOW"):
        if scale > 2:
            radius = effect.radius * scale ** SHADOW_RADIUS_EXPONENT
            offset_scale = scale ** UPSCALE_DAMPING_EXPONENT
        else:
            radius = effect.radius * scale
            offset_scale = scale
        spread = effect.spread
        if spread is not None:
            spread = spread * scale ** SHADOW_SPREAD_EXPONENT
        return replace(
            effect,
            radius=min(radius, MAX_SHADOW_RADIUS),
            offset_x=effect.offset_x * offset_scale,
            offset_y=effect.offset_y * offset_scale,
            spread=spread,
        )
    if effect.type in ("LAYER_BLUR", "BACKGROUND_BLUR"):
        if scale > 2:
            radius = effect.radius * scale ** BLUR_RADIUS_EXPONENT
        else:
            radius = effect.radius * scale
        return replace(effect, radius=min(radius, MAX_BLUR_RADIUS))
    return effect


def scale_paint(paint: Paint, scale: float) -> Paint:
    if paint.is_image and paint.scale_mode == "TILE":
        return replace(paint, scaling_factor=(paint.scaling_factor or 1.0) * scale)
    return paint


def ensure_fill_mode(paints: list[Paint]) -> list[Paint]:
    """Background bitmaps cover the frame: non-tiled image paints become FILL."""
    return [
        replace(p, scale_mode="FILL")
        if p.is_image and p.scale_mode not in ("FILL", "TILE") else p
        for p in paints
    ]


def enforce_min_size(
    role: str | None,
    source_width: float,
    source_height: float,
    scale: float,
) -> tuple[float, float]:
    """Scaled size of an element, grown uniformly to its role's minimum."""
    width = round(source_width * scale)
    height = round(source_height * scale)
    if role is None or role not in MIN_ELEMENT_SIZES:
        return width, height
    min_w, min_h = MIN_ELEMENT_SIZES[role]
    if width >= min_w and height >= min_h:
        return width, height
    preserve = max(
        min_w / max(source_width, 1.0),
        min_h / max(source_height, 1.0),
        scale,
    )
    return round(source_width * preserve), round(source_height * preserve)


def scale_preserving_aspect(
    source_width: float,
    source_height: float,
    scale: float,
) -> tuple[float, float]:
    """Scaled size that keeps the exact source aspect ratio.

    Only the longer side is rounded; the shorter one follows it. Neither
    side drops below 1px.
    """
    ratio = max(source_width, 1e-6) / max(source_height, 1e-6)
    if ratio >= 1:
        width = max(1.0, round(source_width * scale))
        height = width / ratio
        if height < 1:
            height, width = 1.0, ratio
    else:
        height = max(1.0, round(source_height * scale))
        width = height * ratio
        if width < 1:
            width, height = 1.0, 1 / ratio
    return float(width), float(height)
