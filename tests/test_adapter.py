"""Tests for auto-layout adaptation planning."""

from dataclasses import replace

import pytest

from layout_retarget.advice import LAYOUT_PATTERNS
from layout_retarget.layout.adapter import (
    LayoutContext,
    adapt_nested_frames,
    apply_adaptation_plan,
    calculate_padding,
    calculate_spacing,
    create_adaptation_plan,
    determine_alignments,
    determine_layout_mode,
    determine_wrap,
    is_component_like,
    should_force_layout_change,
)
from layout_retarget.layout.expansion import AxisExpansionPlan
from layout_retarget.layout.profile import LayoutProfile, LayoutSnapshot, resolve_layout_profile
from layout_retarget.parser.model import (
    AxisAlign,
    ContainerNode,
    ImageNode,
    LayoutMode,
    LayoutWrap,
    TextNode,
)


def _make_snapshot(mode=LayoutMode.HORIZONTAL, flow=3, spacing=20.0, width=1000, height=500,
                   padding=(0.0, 0.0, 0.0, 0.0)) -> LayoutSnapshot:
    return LayoutSnapshot(
        layout_mode=mode,
        flow_child_count=flow,
        item_spacing=spacing,
        primary_axis_align=AxisAlign.MAX,
        counter_axis_align=AxisAlign.CENTER,
        layout_wrap=LayoutWrap.NO_WRAP,
        width=width,
        height=height,
        padding=padding,
    )


def _make_ctx(target=(1080, 1080), snapshot=None, **overrides) -> LayoutContext:
    snapshot = snapshot or _make_snapshot()
    width, height = target
    ctx = LayoutContext(
        source=snapshot,
        source_width=snapshot.width,
        source_height=snapshot.height,
        child_count=snapshot.flow_child_count,
        has_text=True,
        has_images=False,
        profile=resolve_layout_profile(width, height),
        target_width=width,
        target_height=height,
        safe_width=width,
        safe_height=height,
        scale=1.0,
    )
    return replace(ctx, **overrides)


def _make_frame(mode=LayoutMode.HORIZONTAL, count=3, width=1000, height=500, **kwargs) -> ContainerNode:
    children = [
        TextNode(id=f"t{i}", x=i * 200, width=150, height=60, characters="x")
        for i in range(count)
    ]
    return ContainerNode(id="root", width=width, height=height, layout_mode=mode,
                         children=children, **kwargs)


# --- layout mode ---


def test_suggested_mode_wins():
    """An advised layout mode overrides every rule."""
    ctx = _make_ctx(target=(1080, 1920), suggested_mode=LayoutMode.HORIZONTAL)
    assert determine_layout_mode(ctx) is LayoutMode.HORIZONTAL


def test_pattern_mode_and_layered_patterns():
    """Patterns supply a mode; layered ones keep an existing flow."""
    assert determine_layout_mode(
        _make_ctx(pattern=LAYOUT_PATTERNS["vertical-stack"])
    ) is LayoutMode.VERTICAL
    assert determine_layout_mode(
        _make_ctx(pattern=LAYOUT_PATTERNS["layered-hero"])
    ) is LayoutMode.HORIZONTAL
    none_source = _make_ctx(snapshot=_make_snapshot(LayoutMode.NONE),
                            pattern=LAYOUT_PATTERNS["layered-hero"])
    assert determine_layout_mode(none_source) is LayoutMode.NONE


def test_forced_change_at_extreme_ratios():
    """Very tall targets rotate rows; very wide targets rotate columns."""
    tall = _make_ctx(target=(1080, 1920))
    assert should_force_layout_change(tall)
    assert determine_layout_mode(tall) is LayoutMode.VERTICAL
    wide = _make_ctx(target=(3000, 1000), snapshot=_make_snapshot(LayoutMode.VERTICAL))
    assert should_force_layout_change(wide)
    assert determine_layout_mode(wide) is LayoutMode.HORIZONTAL


def test_vertical_adoption():
    """Adopted vertical flow on a vertical profile is vertical."""
    ctx = _make_ctx(target=(700, 1000), snapshot=_make_snapshot(flow=2), adopt_vertical=True)
    assert determine_layout_mode(ctx) is LayoutMode.VERTICAL


def test_layout_less_source_follows_aspect_change():
    """Sources without auto-layout gain one only on a large aspect change."""
    square_source = _make_snapshot(LayoutMode.NONE, width=1000, height=1000)
    assert determine_layout_mode(
        _make_ctx(target=(1920, 960), snapshot=square_source)
    ) is LayoutMode.HORIZONTAL
    assert determine_layout_mode(
        _make_ctx(target=(1080, 1080), snapshot=square_source)
    ) is LayoutMode.NONE


def test_moderate_vertical_tier():
    """Rows of three or more turn vertical on moderately tall targets."""
    assert determine_layout_mode(_make_ctx(target=(700, 1000))) is LayoutMode.VERTICAL
    assert determine_layout_mode(
        _make_ctx(target=(700, 1000), child_count=2)
    ) is LayoutMode.HORIZONTAL


def test_moderate_horizontal_tier():
    """A two-item column turns horizontal on moderately wide targets."""
    column = _make_snapshot(LayoutMode.VERTICAL, flow=2)
    assert determine_layout_mode(
        _make_ctx(target=(2000, 1000), snapshot=column)
    ) is LayoutMode.HORIZONTAL
    assert determine_layout_mode(
        _make_ctx(target=(2000, 1000), snapshot=column, child_count=3)
    ) is LayoutMode.VERTICAL


# --- wrap, alignment, spacing, padding ---


def test_wrap_only_for_wide_busy_rows():
    """Wrap needs a horizontal row of more than four on a wide target."""
    assert determine_wrap(LayoutMode.HORIZONTAL, _make_ctx(target=(1440, 600), child_count=5)) is LayoutWrap.WRAP
    assert determine_wrap(LayoutMode.HORIZONTAL, _make_ctx(target=(1440, 600), child_count=4)) is LayoutWrap.NO_WRAP
    assert determine_wrap(LayoutMode.HORIZONTAL, _make_ctx(target=(1000, 600), child_count=8)) is LayoutWrap.NO_WRAP
    assert determine_wrap(LayoutMode.VERTICAL, _make_ctx(target=(1080, 1920))) is LayoutWrap.NO_WRAP


def test_alignment_kept_for_same_direction():
    """An unchanged direction keeps the source alignment."""
    assert determine_alignments(LayoutMode.HORIZONTAL, _make_ctx()) == (AxisAlign.MAX, AxisAlign.CENTER)
    assert determine_alignments(LayoutMode.NONE, _make_ctx()) == (AxisAlign.MIN, AxisAlign.MIN)


def test_alignment_rotated_to_vertical_collapses_to_top():
    """Slack on a vertical target aligns a rotated stack to the top."""
    ctx = _make_ctx(target=(1080, 1920), vertical_plan=AxisExpansionPlan(100, 100, 400))
    assert determine_alignments(LayoutMode.VERTICAL, ctx) == (AxisAlign.MIN, AxisAlign.CENTER)


def test_alignment_from_pattern():
    """A pattern matching the new direction supplies its alignment."""
    ctx = _make_ctx(target=(1080, 1920), pattern=LAYOUT_PATTERNS["centered-stack"])
    assert determine_alignments(LayoutMode.VERTICAL, ctx) == (AxisAlign.CENTER, AxisAlign.CENTER)


def test_alignment_wide_rows_spread():
    """Short rows on wide targets spread out."""
    ctx = _make_ctx(target=(1920, 960), snapshot=_make_snapshot(LayoutMode.VERTICAL))
    assert determine_alignments(LayoutMode.HORIZONTAL, ctx)[0] is AxisAlign.SPACE_BETWEEN


def test_vertical_spacing_for_adopted_stack():
    """Adopted vertical stacks use the vertical spacing curve."""
    ctx = _make_ctx(target=(1080, 1920), scale=1.5, adopt_vertical=True,
                    vertical_plan=AxisExpansionPlan(100, 100, 400))
    assert calculate_spacing(LayoutMode.VERTICAL, ctx) == (120.0, None)


def test_horizontal_spacing_capped():
    """Extra width per gap is capped at eight times the scaled spacing."""
    ctx = _make_ctx(target=(1920, 960))
    assert calculate_spacing(LayoutMode.HORIZONTAL, ctx) == (160.0, None)


def test_spacing_edge_cases():
    """No layout has no spacing; zero source spacing stays zero; wraps get counter spacing."""
    assert calculate_spacing(LayoutMode.NONE, _make_ctx()) == (0.0, None)
    zero = _make_ctx(snapshot=_make_snapshot(spacing=0.0))
    assert calculate_spacing(LayoutMode.HORIZONTAL, zero) == (0.0, None)
    wrap = _make_ctx(target=(1440, 1300), child_count=6, scale=0.5)
    assert calculate_spacing(LayoutMode.HORIZONTAL, wrap) == (10.0, 10.0)


def test_padding_scaled():
    """Padding scales and rounds."""
    ctx = _make_ctx(snapshot=_make_snapshot(padding=(10, 20, 30, 40)), scale=1.5)
    assert calculate_padding(ctx) == (15, 30, 45, 60)


# --- plans ---


def test_create_and_apply_plan():
    """A row adapted to a tall target becomes a fixed-size column."""
    frame = _make_frame(padding_left=8, item_spacing=20)
    plan = create_adaptation_plan(frame, 1080, 1920, LayoutProfile.VERTICAL, 1.0)
    assert plan.layout_mode is LayoutMode.VERTICAL
    assert plan.layout_wrap is LayoutWrap.NO_WRAP
    apply_adaptation_plan(frame, plan)
    assert frame.layout_mode is LayoutMode.VERTICAL
    assert frame.padding_left == 8
    assert frame.primary_sizing == "FIXED"
    assert frame.counter_sizing == "FIXED"


def test_apply_none_plan_only_clears_mode():
    """A NONE plan leaves spacing and alignment alone."""
    frame = _make_frame(item_spacing=20)
    plan = replace(create_adaptation_plan(frame, 1080, 1080, LayoutProfile.SQUARE, 1.0),
                   layout_mode=LayoutMode.NONE, item_spacing=0)
    apply_adaptation_plan(frame, plan)
    assert frame.layout_mode is LayoutMode.NONE
    assert frame.item_spacing == 20


def test_plan_rejects_unknown_advice():
    """Advice must be NoAdvice or Advised."""
    with pytest.raises(TypeError):
        create_adaptation_plan(_make_frame(), 1080, 1080, LayoutProfile.SQUARE, 1.0, advice="stack")


def test_is_component_like():
    """Small, component-named or simple containers keep their layout."""
    assert is_component_like(ContainerNode(id="a", width=100, height=100))
    assert is_component_like(ContainerNode(id="b", name="Avatar list", width=800, height=300))
    assert is_component_like(_make_frame(count=2))
    assert not is_component_like(_make_frame(count=4))
    gallery = ContainerNode(id="g", width=800, height=300, children=[
        ImageNode(id="i", width=100, height=100),
    ])
    assert not is_component_like(gallery)


def test_adapt_nested_frames():
    """Wide nested rows are re-planned; component-like ones are skipped."""
    row = _make_frame(count=4, width=900, height=300)
    row.id = "row"
    button = ContainerNode(id="cta", name="CTA", width=160, height=48,
                           layout_mode=LayoutMode.HORIZONTAL)
    root = ContainerNode(id="root", width=1080, height=1920,
                         layout_mode=LayoutMode.VERTICAL, children=[row, button])
    changed = adapt_nested_frames(root, 1080, 1920, LayoutProfile.VERTICAL)
    assert changed == 1
    assert row.layout_mode is LayoutMode.VERTICAL
    assert button.layout_mode is LayoutMode.HORIZONTAL
