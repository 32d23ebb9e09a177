"""Tests for expansion planning and child repositioning."""

import pytest

from layout_retarget.layout.expansion import (
    ContentMargins,
    distribute_padding,
    measure_content_margins,
    normalize_content_margins,
    plan_axis_expansion,
)
from layout_retarget.layout.profile import LayoutProfile
from layout_retarget.layout.repositioner import (
    adjust_node_position,
    count_absolute_children,
    expandable_children,
    plan_absolute_layout,
    position_hero_bleed_child,
    reposition_children,
    validate_children_bounds,
)
from layout_retarget.layout.safe_area import SafeAreaInsets
from layout_retarget.parser.model import (
    Bounds,
    ContainerNode,
    LayoutMode,
    LayoutPositioning,
    VectorNode,
)


def _box(node_id, x, y, w, h, **kwargs) -> VectorNode:
    return VectorNode(id=node_id, x=x, y=y, width=w, height=h, shape="RECTANGLE", **kwargs)


def _make_parent(*children, layout_mode=LayoutMode.NONE) -> ContainerNode:
    return ContainerNode(id="root", width=1000, height=1000,
                         children=list(children), layout_mode=layout_mode)


# --- expansion ---


def test_distribute_padding_even_split():
    """Without gaps the budget splits evenly."""
    assert distribute_padding(100, 20) == (50, 50)
    assert distribute_padding(0, 20) == (0, 0)


def test_distribute_padding_follows_gap_ratio():
    """Space beyond the insets follows the source gap ratio."""
    assert distribute_padding(100, 20, 10, 30) == (35, 65)


def test_distribute_padding_inset_limited_to_half():
    """Insets larger than half the budget are cut to half."""
    assert distribute_padding(30, 20) == (15, 15)


def test_expansion_single_child_has_no_interior():
    """One flow child cannot absorb interior slack."""
    plan = plan_axis_expansion(1000, 50, 50, 1)
    assert plan.interior == 0
    assert (plan.start, plan.end) == (500, 500)


def test_expansion_interior_weight_grows_with_gaps():
    """Three children give an interior weight of 0.85 of the leftover."""
    plan = plan_axis_expansion(1000, 50, 50, 3, base_spacing=16)
    assert plan.interior == pytest.approx(765)
    assert plan.start == pytest.approx(117.5)
    assert plan.end == pytest.approx(117.5)


def test_expansion_tight_spacing_damped():
    """Base spacing under 16 damps the interior share."""
    plan = plan_axis_expansion(1000, 50, 50, 3, base_spacing=8)
    assert plan.interior == pytest.approx(726.75)
    assert plan.start == pytest.approx(plan.end, abs=0.01)


def test_expansion_asymmetric_gaps():
    """Lopsided source margins reduce the interior and bias the edges."""
    plan = plan_axis_expansion(1000, 50, 50, 3, gaps=(0, 100), base_spacing=16)
    assert plan.interior == pytest.approx(306)
    assert plan.start == pytest.approx(50)
    assert plan.end == pytest.approx(644)


def test_expansion_no_space():
    """Zero or negative space keeps the insets."""
    plan = plan_axis_expansion(-10, 30, 40, 3)
    assert (plan.start, plan.end, plan.interior) == (30, 40, 0)


def test_expansion_interior_disallowed():
    """allow_interior=False sends everything to the edges."""
    plan = plan_axis_expansion(1000, 50, 50, 3, base_spacing=16, allow_interior=False)
    assert plan.interior == 0
    assert plan.start + plan.end == pytest.approx(1000)


def test_measure_content_margins():
    """Margins are the distances from content to each frame edge."""
    frame = _make_parent()
    margins = measure_content_margins(frame, Bounds(100, 100, 600, 250))
    assert margins == ContentMargins(left=100, right=300, top=100, bottom=650)
    assert measure_content_margins(frame, None) is None


def test_normalize_margins_balances_horizontal():
    """Lopsided side margins move three quarters of the way to even."""
    margins = ContentMargins(left=10, right=90, top=50, bottom=50)
    result = normalize_content_margins(margins, LayoutProfile.HORIZONTAL,
                                       LayoutProfile.SQUARE, 2.0, 1.0)
    assert result.left == pytest.approx(40)
    assert result.right == pytest.approx(60)
    assert result.top == 50


def test_normalize_margins_vertical_thirds():
    """Vertical targets bias one third top, two thirds bottom."""
    margins = ContentMargins(left=10, right=90, top=0, bottom=300)
    result = normalize_content_margins(margins, LayoutProfile.HORIZONTAL,
                                       LayoutProfile.VERTICAL, 2.0, 0.5625)
    assert result.top == pytest.approx(75)
    assert result.bottom == pytest.approx(225)
    assert result.left == 10


def test_normalize_margins_unchanged_for_small_change():
    """Same profile and a small aspect change keep the margins."""
    margins = ContentMargins(left=10, right=90, top=0, bottom=300)
    result = normalize_content_margins(margins, LayoutProfile.HORIZONTAL,
                                       LayoutProfile.HORIZONTAL, 1.5, 1.8)
    assert result is margins


# --- repositioning ---


def test_adjust_node_position_rounds():
    """Positions scale and round to whole pixels."""
    node = _box("a", 10.4, 20.6, 5, 5)
    adjust_node_position(node, 2)
    assert (node.x, node.y) == (21, 41)


def test_reposition_offsets_and_clamps():
    """Free children shift by the offset and stay inside the insets."""
    near = _box("near", 100, 100, 50, 50)
    far = _box("far", 900, 900, 50, 50)
    parent = _make_parent(near, far)
    reposition_children(parent, 20, 30, insets=SafeAreaInsets(0, 100, 0, 100))
    assert (near.x, near.y) == (120, 130)
    assert (far.x, far.y) == (850, 850)


def test_reposition_respects_insets_minimum():
    """Insets push children away from the leading edges."""
    child = _box("a", 10, 10, 50, 50)
    parent = _make_parent(child)
    reposition_children(parent, 0, 0, insets=SafeAreaInsets(200, 200, 200, 200))
    assert (child.x, child.y) == (200, 200)


def test_reposition_backgrounds_snap_to_origin():
    """Background-like children move to the origin."""
    bg = _box("bg", 10, 10, 950, 950)
    parent = _make_parent(bg)
    reposition_children(parent, 100, 100)
    assert (bg.x, bg.y) == (0, 0)


def test_reposition_skips_flow_and_exempt_children():
    """Flow children of auto-layout parents and exempt ids do not move."""
    flow = _box("flow", 10, 10, 50, 50)
    pinned = _box("pinned", 10, 10, 50, 50, layout_positioning=LayoutPositioning.ABSOLUTE)
    hero = _box("hero", -40, 10, 50, 50, layout_positioning=LayoutPositioning.ABSOLUTE)
    parent = _make_parent(flow, pinned, hero, layout_mode=LayoutMode.VERTICAL)
    reposition_children(parent, 100, 0, exempt_ids={"hero"})
    assert flow.x == 10
    assert pinned.x == 110
    assert hero.x == -40


def test_validate_children_bounds_pulls_in_and_shrinks():
    """Out-of-bounds children move back; oversized ones shrink to fit."""
    left = _box("left", -10, 500, 50, 50)
    wide = _box("wide", 0, 0, 1200, 100)
    hero = _box("hero", -100, 0, 50, 50)
    parent = _make_parent(left, wide, hero)
    validate_children_bounds(parent, exempt_ids={"hero"})
    assert left.x == 0
    assert wide.x == 0
    assert wide.width == pytest.approx(1000)
    assert wide.height == pytest.approx(100 * 1000 / 1200)
    assert hero.x == -100


def test_hero_bleed_identity():
    """Same frame size and element size returns the input position."""
    source = Bounds(-50, 100, 300, 200)
    assert position_hero_bleed_child(source, 1000, 1000, 1000, 1000) == (-50, 100)


def test_hero_bleed_keeps_right_edge_overflow():
    """A right-edge bleed keeps its overflow ratio against the right edge."""
    source = Bounds(800, 0, 300, 100)
    assert position_hero_bleed_child(source, 1000, 500, 2000, 500, 600, 100) == (1600, 0)


def test_plan_vertical_stack_for_horizontal_row():
    """A row on a tall target becomes a centered column filling the safe area."""
    children = [_box(f"c{i}", i * 300, 0, 200, 100) for i in range(3)]
    plans = plan_absolute_layout(LayoutProfile.VERTICAL, Bounds(0, 0, 1000, 2000), children)
    assert [(p.x, p.y) for p in plans] == [(400, 0), (400, 950), (400, 1900)]


def test_plan_keeps_contained_children():
    """Children already inside the safe area keep their positions."""
    children = [_box("a", 300, 300, 100, 100), _box("b", 300, 500, 100, 100)]
    plans = plan_absolute_layout(LayoutProfile.SQUARE, Bounds(100, 100, 800, 800), children)
    assert [(p.x, p.y) for p in plans] == [(300, 300), (300, 500)]


def test_plan_reprojects_outside_children():
    """Content outside the safe area is re-centered into it."""
    plans = plan_absolute_layout(LayoutProfile.SQUARE, Bounds(200, 200, 600, 600),
                                 [_box("a", 0, 0, 100, 100)])
    assert (plans[0].x, plans[0].y) == (450, 450)


def test_plan_empty():
    """No children, no plan."""
    assert plan_absolute_layout(LayoutProfile.SQUARE, Bounds(0, 0, 1, 1), []) == []


def test_expandable_and_absolute_counts():
    """Layout-less frames expose every child; auto-layout only absolute ones."""
    a = _box("a", 0, 0, 10, 10)
    b = _box("b", 0, 0, 10, 10, layout_positioning=LayoutPositioning.ABSOLUTE)
    overlay = _box("o", 0, 0, 10, 10, role="overlay")
    free = _make_parent(a, b, overlay)
    assert len(expandable_children(free)) == 3
    assert count_absolute_children(free) == 2
    free.layout_mode = LayoutMode.HORIZONTAL
    assert [c.id for c in expandable_children(free)] == ["b"]
    assert count_absolute_children(free) == 1
