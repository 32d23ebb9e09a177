"""Tests for rectangle arithmetic, layout profiles and safe areas."""

import math

import pytest

from layout_retarget.layout.geometry import (
    clamp,
    edge_distance,
    is_valid_scale,
    overlap_area,
    overlap_percent,
    scale_center_to_range,
    union_bounds,
)
from layout_retarget.layout.profile import (
    AspectTier,
    LayoutProfile,
    LayoutSnapshot,
    classify_aspect,
    compute_vertical_spacing,
    distribution_ratio,
    resolve_layout_profile,
    resolve_vertical_align_items,
    should_adopt_vertical_flow,
    should_expand_absolute_children,
)
from layout_retarget.layout.safe_area import (
    TARGETS,
    compute_safe_insets,
    get_target,
    resolve_safe_area_insets,
    safe_bounds,
)
from layout_retarget.parser.model import AxisAlign, Bounds, LayoutMode, LayoutWrap


def _make_snapshot(mode: LayoutMode, flow: int = 3) -> LayoutSnapshot:
    return LayoutSnapshot(
        layout_mode=mode,
        flow_child_count=flow,
        item_spacing=16,
        primary_axis_align=AxisAlign.MIN,
        counter_axis_align=AxisAlign.CENTER,
        layout_wrap=LayoutWrap.NO_WRAP,
        width=1000,
        height=500,
    )


# --- geometry ---


def test_clamp_prefers_low_on_empty_range():
    """An inverted range resolves to the lower bound."""
    assert clamp(5, 0, 10) == 5
    assert clamp(-1, 0, 10) == 0
    assert clamp(5, 10, 0) == 10


def test_is_valid_scale():
    """Only finite positive numbers are usable scales."""
    assert is_valid_scale(1.5)
    assert not is_valid_scale(0)
    assert not is_valid_scale(-2)
    assert not is_valid_scale(math.nan)
    assert not is_valid_scale(math.inf)


def test_overlap_area_and_percent():
    """Touching rectangles do not overlap; partial overlap is measured."""
    a = Bounds(0, 0, 100, 100)
    assert overlap_area(a, Bounds(100, 0, 50, 50)) == 0
    assert overlap_area(a, Bounds(50, 50, 100, 100)) == 2500
    assert overlap_percent(a, Bounds(50, 50, 100, 100)) == pytest.approx(25.0)
    assert overlap_percent(Bounds(0, 0, 0, 10), a) == 0


def test_edge_distance_cases():
    """Overlap is zero, same row is the axis gap, diagonal is Euclidean."""
    a = Bounds(0, 0, 10, 10)
    assert edge_distance(a, Bounds(5, 5, 10, 10)) == 0
    assert edge_distance(a, Bounds(30, 0, 10, 10)) == 20
    assert edge_distance(a, Bounds(0, 25, 10, 10)) == 15
    assert edge_distance(a, Bounds(13, 14, 10, 10)) == pytest.approx(5.0)


def test_union_bounds():
    """Union covers every rectangle; empty input yields None."""
    assert union_bounds([]) is None
    u = union_bounds([Bounds(0, 0, 10, 10), Bounds(20, 30, 5, 5)])
    assert (u.x, u.y, u.right, u.bottom) == (0, 0, 25, 35)


def test_scale_center_to_range():
    """Centers map to centers and offsets scale with the range."""
    assert scale_center_to_range(50, 0, 100, 0, 200) == 100
    assert scale_center_to_range(75, 0, 100, 100, 200) == 250
    assert scale_center_to_range(10, 0, 0, 40, 20) == 50
    assert scale_center_to_range(10, 0, 100, 40, 0) == 40


# --- profile ---


@pytest.mark.parametrize("width,height,profile", [
    (1080, 1920, LayoutProfile.VERTICAL),
    (1080, 1080, LayoutProfile.SQUARE),
    (1000, 1200, LayoutProfile.SQUARE),
    (1920, 960, LayoutProfile.HORIZONTAL),
    (0, 0, LayoutProfile.SQUARE),
])
def test_resolve_layout_profile(width, height, profile):
    """Aspect ratios bucket into vertical, square and horizontal."""
    assert resolve_layout_profile(width, height) is profile


def test_classify_aspect_tiers():
    """Boundaries between aspect tiers."""
    assert classify_aspect(0.5) is AspectTier.EXTREME_VERTICAL
    assert classify_aspect(0.7) is AspectTier.MODERATE_VERTICAL
    assert classify_aspect(0.78) is AspectTier.SLIGHT_VERTICAL
    assert classify_aspect(1.0) is AspectTier.SQUARE
    assert classify_aspect(1.5) is AspectTier.SLIGHT_HORIZONTAL
    assert classify_aspect(2.0) is AspectTier.MODERATE_HORIZONTAL
    assert classify_aspect(3.0) is AspectTier.EXTREME_HORIZONTAL


def test_vertical_flow_adoption():
    """Only directional sources on vertical targets rotate."""
    assert should_adopt_vertical_flow(LayoutProfile.VERTICAL, _make_snapshot(LayoutMode.HORIZONTAL))
    assert should_adopt_vertical_flow(LayoutProfile.VERTICAL, _make_snapshot(LayoutMode.VERTICAL, 1))
    assert not should_adopt_vertical_flow(LayoutProfile.VERTICAL, _make_snapshot(LayoutMode.NONE))
    assert not should_adopt_vertical_flow(LayoutProfile.SQUARE, _make_snapshot(LayoutMode.HORIZONTAL))
    assert not should_adopt_vertical_flow(LayoutProfile.VERTICAL, None)


def test_distribution_ratio_by_density():
    """Sparse stacks receive more of the slack."""
    assert distribution_ratio(2) == 0.55
    assert distribution_ratio(5) == 0.45
    assert distribution_ratio(6) == 0.35


def test_compute_vertical_spacing_soft_cap():
    """Additions past the soft cap grow at half rate."""
    # per gap 200, * 0.45 = 90; soft cap 80 -> 85
    assert compute_vertical_spacing(16, 400, 3) == pytest.approx(101.0)


def test_compute_vertical_spacing_hard_cap():
    """Spacing never exceeds fifteen times the base."""
    assert compute_vertical_spacing(2, 100000, 2) == pytest.approx(30.0)


def test_compute_vertical_spacing_single_child():
    """A single child keeps its base spacing."""
    assert compute_vertical_spacing(12.5, 500, 1) == 12.5


def test_compute_vertical_spacing_negative_interior():
    """Negative slack adds nothing."""
    assert compute_vertical_spacing(16, -50, 4) == 16


def test_resolve_vertical_align_items():
    """Slack pulls a rotated stack to the top."""
    assert resolve_vertical_align_items(AxisAlign.CENTER, 100) is AxisAlign.MIN
    assert resolve_vertical_align_items(AxisAlign.SPACE_BETWEEN, 0) is AxisAlign.SPACE_BETWEEN
    assert resolve_vertical_align_items(AxisAlign.SPACE_BETWEEN, 10) is AxisAlign.MIN
    assert resolve_vertical_align_items(AxisAlign.MAX, 0) is AxisAlign.MIN


def test_should_expand_absolute_children():
    """Layout-less roots and vertical adoptions expand absolute children."""
    assert should_expand_absolute_children(None, False)
    assert should_expand_absolute_children(LayoutMode.NONE, False)
    assert should_expand_absolute_children(LayoutMode.HORIZONTAL, True)
    assert not should_expand_absolute_children(LayoutMode.HORIZONTAL, False)


# --- safe area ---


def test_compute_safe_insets_symmetric():
    """Ratio insets are split evenly per axis."""
    insets = compute_safe_insets(1000, 500, 0.9)
    assert insets.left == insets.right == pytest.approx(50)
    assert insets.top == insets.bottom == pytest.approx(25)


def test_compute_safe_insets_clamps_ratio():
    """Ratios outside [0, 1] are clamped."""
    assert compute_safe_insets(100, 100, 1.5).left == 0
    assert compute_safe_insets(100, 100, -1).left == pytest.approx(50)


def test_platform_zone_overrides_ratio():
    """Named platform zones use fixed chrome insets."""
    insets = resolve_safe_area_insets(1080, 1920, 0.9, zone="tiktok-vertical")
    assert (insets.left, insets.right, insets.top, insets.bottom) == (90, 120, 150, 400)


def test_platform_zone_clamped_to_small_frames():
    """Fixed insets never exceed half the frame."""
    insets = resolve_safe_area_insets(100, 100, zone="tiktok-vertical")
    assert insets.bottom == 50
    assert insets.left == 50


def test_youtube_cover_zone_scales_with_frame():
    """Channel art keeps a centered 1546x423 region at 2560x1440."""
    insets = resolve_safe_area_insets(2560, 1440, zone="youtube-cover")
    assert insets.left == pytest.approx(507)
    assert insets.top == pytest.approx(508.5)
    half = resolve_safe_area_insets(1280, 720, zone="youtube-cover")
    assert half.left == pytest.approx(253.5)


def test_unknown_zone_falls_back_to_ratio():
    """An unregistered zone behaves like no zone."""
    assert resolve_safe_area_insets(1000, 1000, 0.8, zone="nowhere").left == pytest.approx(100)


def test_safe_bounds():
    """Safe bounds subtract the insets from the frame."""
    b = safe_bounds(1080, 1920, resolve_safe_area_insets(1080, 1920, zone="tiktok-vertical"))
    assert (b.x, b.y, b.width, b.height) == (90, 150, 870, 1370)


def test_get_target():
    """Targets resolve by id; unknown ids list the choices."""
    assert get_target("web-hero").width == 1440
    assert "figma-cover" in TARGETS
    with pytest.raises(ValueError, match="Available"):
        get_target("billboard")
