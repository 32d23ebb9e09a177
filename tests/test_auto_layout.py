"""Tests for auto-layout inference on layout-less frames."""

import pytest

from layout_retarget.layout.auto_layout import (
    ChildArrangement,
    ChildPosition,
    alignment_score,
    analyze_frame_for_conversion,
    calculate_child_arrangement,
    classify_child_position,
    convert_frame_if_beneficial,
    infer_spacing,
)
from layout_retarget.parser.model import (
    AxisAlign,
    Bounds,
    ContainerNode,
    LayoutMode,
    LayoutPositioning,
    TextNode,
    VectorNode,
)


def _row(count: int = 3, gap: float = 16, y: float = 480) -> list[Bounds]:
    return [Bounds(300 + i * (100 + gap), y, 100, 40) for i in range(count)]


def _make_frame(bounds: list[Bounds], **kwargs) -> ContainerNode:
    children = [
        TextNode(id=f"t{i}", name=f"Label {i}", x=b.x, y=b.y,
                 width=b.width, height=b.height, characters="x")
        for i, b in enumerate(bounds)
    ]
    return ContainerNode(id="root", width=1000, height=1000, children=children, **kwargs)


def test_alignment_score():
    """A perfect row scores one along its axis; one rectangle scores zero."""
    row = _row()
    assert alignment_score(row, ChildArrangement.HORIZONTAL) == pytest.approx(1.0)
    assert alignment_score(row, ChildArrangement.VERTICAL) < 0.1
    assert alignment_score(row[:1], ChildArrangement.HORIZONTAL) == 0


def test_arrangement_row_and_column():
    """Rows and columns are recognized."""
    assert calculate_child_arrangement(_row()) is ChildArrangement.HORIZONTAL
    column = [Bounds(300, 300 + i * 60, 100, 40) for i in range(3)]
    assert calculate_child_arrangement(column) is ChildArrangement.VERTICAL


def test_arrangement_mixed_and_chaotic():
    """Equal evidence both ways is mixed; a grid or single child is chaotic."""
    assert calculate_child_arrangement(
        [Bounds(0, 0, 100, 100), Bounds(30, 30, 100, 100)]
    ) is ChildArrangement.MIXED
    grid = [Bounds(x, y, 100, 100) for x in (0, 200) for y in (0, 200)]
    assert calculate_child_arrangement(grid) is ChildArrangement.CHAOTIC
    assert calculate_child_arrangement([Bounds(0, 0, 10, 10)]) is ChildArrangement.CHAOTIC


def test_infer_spacing_uses_median():
    """A single wide gap does not skew the spacing."""
    xs = [0, 66, 132, 198, 348]
    bounds = [Bounds(x, 0, 50, 50) for x in xs]
    assert infer_spacing(bounds, ChildArrangement.HORIZONTAL) == 16


def test_infer_spacing_ignores_overlaps_and_huge_gaps():
    """Without a reasonable gap the default is returned."""
    overlapping = [Bounds(0, 0, 100, 100), Bounds(50, 0, 100, 100)]
    assert infer_spacing(overlapping, ChildArrangement.HORIZONTAL) == 16
    far = [Bounds(0, 0, 10, 10), Bounds(0, 500, 10, 10)]
    assert infer_spacing(far, ChildArrangement.VERTICAL, default=8) == 8


def test_classify_child_position_reasons():
    """Backgrounds, corner badges and off-axis children stay absolute."""
    row = _row()
    bg = VectorNode(id="bg", name="Hero Background", width=400, height=300)
    assert classify_child_position(bg, bg.bounds, row, 1000, 1000, ChildArrangement.HORIZONTAL) == (
        ChildPosition.ABSOLUTE, "background",
    )
    badge = VectorNode(id="badge", x=10, y=10, width=50, height=50)
    assert classify_child_position(badge, badge.bounds, row, 1000, 1000,
                                   ChildArrangement.HORIZONTAL)[1] == "edge-floating"
    stray = Bounds(400, 800, 100, 40)
    node = VectorNode(id="stray", name="Discover")
    assert classify_child_position(node, stray, _row(5) + [stray], 1000, 1000,
                                   ChildArrangement.HORIZONTAL)[1] == "position-outlier"
    assert classify_child_position(node, row[0], row, 1000, 1000,
                                   ChildArrangement.HORIZONTAL) == (ChildPosition.FLOW, None)


def test_convert_row_with_background():
    """A row over a background becomes a horizontal auto-layout."""
    frame = _make_frame(_row())
    frame.insert_child(0, VectorNode(id="bg", width=1000, height=1000, shape="RECTANGLE"))
    result = convert_frame_if_beneficial(frame)
    assert result.applied
    assert result.layout_mode is LayoutMode.HORIZONTAL
    assert result.spacing == 16
    assert result.absolute_ids == ["bg"]
    assert frame.layout_mode is LayoutMode.HORIZONTAL
    assert frame.item_spacing == 16
    assert frame.primary_axis_align is AxisAlign.CENTER
    assert frame.counter_axis_align is AxisAlign.CENTER
    assert frame.find("bg").layout_positioning is LayoutPositioning.ABSOLUTE


def test_convert_column_aligns_to_top():
    """Vertical conversions align to the start of the stack."""
    frame = _make_frame([Bounds(450, 300 + i * 60, 100, 40) for i in range(3)])
    result = convert_frame_if_beneficial(frame)
    assert result.layout_mode is LayoutMode.VERTICAL
    assert result.spacing == 20
    assert frame.primary_axis_align is AxisAlign.MIN


def test_no_conversion_for_scattered_or_existing_layout():
    """Chaotic children and existing auto-layout are left alone."""
    grid = [Bounds(x, y, 100, 100) for x in (300, 500) for y in (300, 500)]
    frame = _make_frame(grid)
    assert analyze_frame_for_conversion(frame) is None
    assert not convert_frame_if_beneficial(frame).applied
    assert frame.layout_mode is LayoutMode.NONE

    laid_out = _make_frame(_row(), layout_mode=LayoutMode.VERTICAL)
    result = convert_frame_if_beneficial(laid_out)
    assert not result.applied
    assert result.layout_mode is LayoutMode.VERTICAL


def test_no_conversion_with_too_few_children():
    """A single visible child gives nothing to infer from."""
    frame = _make_frame(_row(2))
    frame.children[1].visible = False
    assert analyze_frame_for_conversion(frame) is None
