"""Tests for per-node property scaling."""

import pytest

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
    Effect,
    Paint,
    TextAutoResize,
    TextNode,
    TextRun,
)


def _make_text(**kwargs) -> TextNode:
    return TextNode(
        id="t", width=100, height=20, characters="Hello world",
        runs=[
            TextRun(0, 5, font_size=15, line_height=18, letter_spacing=0.5),
            TextRun(5, 11, font_size=15),
        ],
        **kwargs,
    )


def test_min_legible_size_by_target():
    """Thumbnails allow smaller type than large displays."""
    assert min_legible_size(480, 320) == 9
    assert min_legible_size(1080, 1920) == 11
    assert min_legible_size(2560, 1440) == 14


def test_scale_text_node_rounds_to_half_pixels():
    """Font size and line height snap to half pixels."""
    node = _make_text()
    scale_text_node(node, 1.5, FontCache(), 9)
    first, second = node.runs
    assert first.font_size == 22.5
    assert first.line_height == 27
    assert first.letter_spacing == pytest.approx(0.75)
    assert second.line_height is None
    assert (node.width, node.height) == (150, 30)


def test_scale_text_node_respects_min_font_size():
    """Down-scaled type never drops below the legible minimum."""
    node = _make_text()
    scale_text_node(node, 0.1, FontCache(), 9)
    assert all(run.font_size == 9 for run in node.runs)
    assert node.width == 10
    assert node.height == 2


def test_scale_text_node_switches_auto_resize():
    """Width-and-height auto-resize becomes height-only."""
    node = _make_text(auto_resize=TextAutoResize.WIDTH_AND_HEIGHT)
    scale_text_node(node, 2, FontCache(), 9)
    assert node.auto_resize is TextAutoResize.HEIGHT


def test_font_cache_loads_each_font_once():
    """Repeated runs of one font trigger a single load."""
    calls = []
    cache = FontCache(lambda family, style: calls.append((family, style)))
    scale_text_node(_make_text(), 2, cache, 9)
    scale_text_node(_make_text(), 2, cache, 9)
    assert calls == [("Inter", "Regular")]
    assert ("Inter", "Regular") in cache
    assert len(cache) == 1


def test_stroke_weight_upscale_is_damped_and_capped():
    """Up-scaling follows s**0.7, capped at max(4w, 8)."""
    assert scale_stroke_weight(2, 4) == pytest.approx(5.28)
    assert scale_stroke_weight(10, 10) == 40
    assert scale_stroke_weight(1, 0.1) == 0.5
    assert scale_stroke_weight(0, 3) == 0


def test_corner_radius():
    """Radii are damped upward, floored at 1 and capped at half the side."""
    assert scale_corner_radius(10, 0.05, 100, 100) == 1
    assert scale_corner_radius(40, 4, 50, 50) == 25
    assert scale_corner_radius(0, 4, 50, 50) == 0


def test_shadow_linear_then_damped():
    """Shadows scale linearly to 2x and along a damped curve beyond."""
    shadow = Effect("DROP_SHADOW", radius=10, offset_x=4, offset_y=4, spread=2)
    linear = scale_effect(shadow, 1.5)
    assert (linear.radius, linear.offset_x) == (15, 6)
    damped = scale_effect(shadow, 4)
    assert damped.radius == pytest.approx(10 * 4 ** 0.65)
    assert damped.offset_y == pytest.approx(4 * 4 ** 0.7)
    assert damped.spread == pytest.approx(2 * 4 ** 0.6)
    assert scale_effect(Effect("DROP_SHADOW", radius=80), 4).radius == 100


def test_blur_capped():
    """Blur radii cap at 50."""
    assert scale_effect(Effect("LAYER_BLUR", radius=30), 4).radius == 50
    assert scale_effect(Effect("BACKGROUND_BLUR", radius=4), 2).radius == 8


def test_tiled_paint_scales_factor():
    """Only tiled image paints change."""
    tiled = Paint(type="IMAGE", scale_mode="TILE", scaling_factor=2)
    assert scale_paint(tiled, 1.5).scaling_factor == 3
    solid = Paint(color="#fff")
    assert scale_paint(solid, 1.5) is solid


def test_ensure_fill_mode():
    """Non-tiled image paints switch to FILL."""
    paints = ensure_fill_mode([
        Paint(type="IMAGE", scale_mode="FIT"),
        Paint(type="IMAGE", scale_mode="TILE"),
        Paint(color="#000"),
    ])
    assert [p.scale_mode for p in paints] == ["FILL", "TILE", None]


def test_enforce_min_size():
    """Role minimums grow the element uniformly."""
    assert enforce_min_size(None, 40, 40, 0.25) == (10, 10)
    assert enforce_min_size("logo", 40, 40, 0.25) == (24, 24)
    assert enforce_min_size("button", 100, 20, 0.5) == (120, 24)
    assert enforce_min_size("icon", 40, 40, 1) == (40, 40)


def test_scale_preserving_aspect():
    """The longer side rounds; the shorter follows it exactly."""
    assert scale_preserving_aspect(70, 9, 0.5) == (35, 4.5)
    assert scale_preserving_aspect(9, 70, 0.5) == (4.5, 35)
    assert scale_preserving_aspect(10, 1, 0.05) == (10, 1)
