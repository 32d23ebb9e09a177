"""Repositioning of absolute children after a frame is resized.

Flow children are left to the container's auto-layout. Everything else
is offset by the expansion plan, clamped into the safe area (or the
frame), and finally checked against the frame bounds. Hero-bleed
elements skip clamping and keep their ratio to the nearer edge.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from layout_retarget.layout.classify import is_background_like, is_overlay
from layout_retarget.layout.constants import HORIZONTAL_DOMINANCE
from layout_retarget.layout.geometry import clamp, scale_center_to_range, union_bounds
from layout_retarget.layout.profile import LayoutProfile
from layout_retarget.layout.safe_area import SafeAreaInsets
from layout_retarget.parser.model import Bounds, ContainerNode, LayoutMode, Node

logger = logging.getLogger(__name__)

__all__ = [
    "AbsolutePlan",
    "adjust_node_position",
    "count_absolute_children",
    "expandable_children",
    "plan_absolute_layout",
    "position_hero_bleed_child",
    "reposition_children",
    "validate_children_bounds",
]

CONTAIN_TOLERANCE = 0.01


@dataclass(frozen=True)
class AbsolutePlan:
    node_id: str
    x: float
    y: float


def _round2(value: float) -> float:
    return round(value * 100) / 100


def _is_free(child: Node, parent: ContainerNode) -> bool:
    """Children of layout-less containers are always freely positioned."""
    return child.is_absolute or not parent.has_auto_layout


def adjust_node_position(node: Node, scale: float) -> None:
    node.x = round(node.x * scale)
    node.y = round(node.y * scale)


def count_absolute_children(frame: ContainerNode) -> int:
    return sum(
        1 for c in frame.children
        if not is_overlay(c) and _is_free(c, frame)
    )


def reposition_children(
    parent: ContainerNode,
    offset_x: float,
    offset_y: float,
    source_size: tuple[float, float] | None = None,
    insets: SafeAreaInsets | None = None,
    exempt_ids: frozenset[str] | set[str] = frozenset(),
) -> None:
    """Offset and clamp every freely positioned child of ``parent``.

    Background-like children (measured against ``source_size`` when
    given) snap to the origin. Children in ``exempt_ids`` are left alone.
    """
    ref_w, ref_h = source_size or (parent.width, parent.height)
    for child in parent.children:
        if not _is_free(child, parent) or child.id in exempt_ids:
            continue
        if is_background_like(child, ref_w, ref_h):
            child.x = 0
            child.y = 0
            continue

        new_x = round(child.x + offset_x)
        new_y = round(child.y + offset_y)
        if insets is not None:
            child.x = clamp(new_x, insets.left, parent.width - insets.right - child.width)
            child.y = clamp(new_y, insets.top, parent.height - insets.bottom - child.height)
        else:
            child.x = clamp(new_x, 0, parent.width - child.width)
            child.y = clamp(new_y, 0, parent.height - child.height)


def validate_children_bounds(
    parent: ContainerNode,
    exempt_ids: frozenset[str] | set[str] = frozenset(),
) -> None:
    """Pull every child back inside ``parent``; shrink ones that cannot fit."""
    for child in parent.children:
        if child.id in exempt_ids:
            continue
        if child.x < 0:
            child.x = 0
        if child.y < 0:
            child.y = 0
        if child.x + child.width > parent.width:
            child.x = max(0.0, parent.width - child.width)
        if child.y + child.height > parent.height:
            child.y = max(0.0, parent.height - child.height)

        if child.width > parent.width or child.height > parent.height:
            fit = min(
                parent.width / max(child.width, 1.0),
                parent.height / max(child.height, 1.0),
            )
            logger.debug("shrinking oversized child %s by %.3f", child.id, fit)
            child.resize(child.width * fit, child.height * fit)


def _edge_relative(
    start: float,
    size: float,
    new_size: float,
    source_dim: float,
    target_dim: float,
) -> float:
    center = start + size / 2
    if center <= source_dim - center:
        return target_dim * (start / max(source_dim, 1.0))
    end_ratio = (source_dim - (start + size)) / max(source_dim, 1.0)
    return target_dim - target_dim * end_ratio - new_size


def position_hero_bleed_child(
    source: Bounds,
    source_width: float,
    source_height: float,
    target_width: float,
    target_height: float,
    new_width: float | None = None,
    new_height: float | None = None,
) -> tuple[float, float]:
    """Position for a hero-bleed element keeping its ratio to the nearer edge.

    ``source`` is the element's bounds in the source frame and
    ``new_width``/``new_height`` its size after scaling (defaulting to the
    source size). With identical frame sizes and an unchanged element size
    the input position comes back.
    """
    width = source.width if new_width is None else new_width
    height = source.height if new_height is None else new_height
    x = _edge_relative(source.x, source.width, width, source_width, target_width)
    y = _edge_relative(source.y, source.height, height, source_height, target_height)
    return round(x), round(y)


def plan_absolute_layout(
    profile: LayoutProfile,
    safe: Bounds,
    children: list[Node],
) -> list[AbsolutePlan]:
    """Target positions for free children inside ``safe``.

    On vertical targets a predominantly horizontal row becomes a centered
    vertical stack. Content already inside ``safe`` stays put; anything
    else has its centers re-projected from the content box to ``safe``.
    """
    if not children:
        return []

    content = union_bounds(c.bounds for c in children)
    if content is None:
        return []

    if (
        profile is LayoutProfile.VERTICAL
        and len(children) >= 2
        and content.width > content.height * HORIZONTAL_DOMINANCE
    ):
        return _plan_vertical_stack(children, safe)

    if (
        content.x >= safe.x
        and content.y >= safe.y
        and content.right <= safe.right + CONTAIN_TOLERANCE
        and content.bottom <= safe.bottom + CONTAIN_TOLERANCE
    ):
        return [AbsolutePlan(c.id, _round2(c.x), _round2(c.y)) for c in children]

    plans = []
    for child in children:
        cx = scale_center_to_range(child.bounds.center_x, content.x, content.width, safe.x, safe.width)
        cy = scale_center_to_range(child.bounds.center_y, content.y, content.height, safe.y, safe.height)
        plans.append(AbsolutePlan(
            child.id,
            _round2(clamp(cx - child.width / 2, safe.x, safe.right - child.width)),
            _round2(clamp(cy - child.height / 2, safe.y, safe.bottom - child.height)),
        ))
    return plans


def _plan_vertical_stack(children: list[Node], safe: Bounds) -> list[AbsolutePlan]:
    ordered = sorted(children, key=lambda c: (c.x, c.y))
    total_height = sum(c.height for c in ordered)
    gap_count = len(ordered) - 1
    gap = max(safe.height - total_height, 0.0) / gap_count if gap_count else 0.0

    planned: dict[str, AbsolutePlan] = {}
    cursor = safe.y
    for child in ordered:
        y = clamp(cursor, safe.y, safe.bottom - child.height)
        x = clamp(safe.x + (safe.width - child.width) / 2, safe.x, safe.right - child.width)
        planned[child.id] = AbsolutePlan(child.id, _round2(x), _round2(y))
        cursor = y + child.height + gap

    logger.debug("stacked %d horizontal children vertically, gap %.1f", len(ordered), gap)
    return [planned[c.id] for c in children]


def expandable_children(frame: ContainerNode) -> list[Node]:
    """Children eligible for absolute expansion in ``frame``."""
    if frame.layout_mode is LayoutMode.NONE:
        return list(frame.children)
    return [c for c in frame.children if c.is_absolute]
