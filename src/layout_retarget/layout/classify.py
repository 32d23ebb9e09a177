"""Semantic classification of nodes.

Roles drive scaling behavior: backgrounds fill the target, logos and
buttons keep a minimum size, atomic groups move as one unit and hero-bleed
elements keep their edge-relative overflow.
"""

from __future__ import annotations

import re

from layout_retarget.layout.constants import (
    ATOMIC_NAME_PATTERN,
    ATOMIC_VECTOR_RATIO,
    BACKGROUND_AREA_COVERAGE,
    ELEMENT_ROLE_PATTERNS,
    POINTER_NAME_PATTERN,
    POINTER_PARENT_PATTERN,
    SMALL_ROLE_DIMENSION,
)
from layout_retarget.parser.model import (
    ContainerNode,
    ImageNode,
    Node,
    TextNode,
    VectorNode,
)

__all__ = [
    "collect_atomic_group_children",
    "get_element_role",
    "is_atomic_group",
    "is_background_like",
    "is_decorative_pointer",
    "is_hero_bleed",
    "is_overlay",
]

_ROLE_REGEXES = {
    role: re.compile(pattern, re.IGNORECASE)
    for role, pattern in ELEMENT_ROLE_PATTERNS.items()
}
_ATOMIC_NAME = re.compile(ATOMIC_NAME_PATTERN, re.IGNORECASE)
_POINTER_NAME = re.compile(POINTER_NAME_PATTERN, re.IGNORECASE)
_POINTER_PARENT = re.compile(POINTER_PARENT_PATTERN, re.IGNORECASE)

_VECTOR_SHAPES = {"VECTOR", "BOOLEAN_OPERATION", "STAR", "POLYGON", "LINE"}


def get_element_role(node: Node) -> str | None:
    """Detect logo/icon/badge/button by name, then by structure."""
    for role, regex in _ROLE_REGEXES.items():
        if regex.search(node.name):
            return role

    if (
        isinstance(node, ContainerNode)
        and node.width < SMALL_ROLE_DIMENSION
        and node.height < SMALL_ROLE_DIMENSION
    ):
        if node.has_image_fill():
            return "logo"
        if any(_is_vector(c) for c in node.children):
            return "icon"
    return None


def is_background_like(
    node: Node,
    parent_width: float,
    parent_height: float,
    threshold: float = BACKGROUND_AREA_COVERAGE,
) -> bool:
    """Whether ``node`` covers at least ``threshold`` of the parent area."""
    if node.role == "background":
        return True
    parent_area = parent_width * parent_height
    if parent_area <= 0:
        return False
    return node.width * node.height >= parent_area * threshold


def is_overlay(node: Node) -> bool:
    return node.role == "overlay"


def is_hero_bleed(node: Node, hero_bleed_ids: frozenset[str] | set[str] = frozenset()) -> bool:
    return node.role == "hero_bleed" or node.id in hero_bleed_ids


def is_atomic_group(node: Node) -> bool:
    """Whether a group or instance is a single visual unit (mockup, artwork).

    Groups holding text directly are never atomic. Otherwise a matching
    name, a mostly-vector composition or any bitmap child qualifies.
    """
    if not isinstance(node, ContainerNode):
        return False
    if not (node.is_group or node.is_instance):
        return False
    if not node.children:
        return False
    if any(isinstance(c, TextNode) for c in node.children):
        return False

    if _ATOMIC_NAME.search(node.name):
        return True

    vector_count = sum(1 for c in node.children if _is_vector(c))
    if vector_count / len(node.children) > ATOMIC_VECTOR_RATIO:
        return True

    return any(
        isinstance(c, ImageNode) or c.has_image_fill() for c in node.children
    )


def collect_atomic_group_children(root: ContainerNode) -> set[str]:
    """Ids of every descendant of an atomic group below ``root``."""
    ids: set[str] = set()
    for node, depth in root.walk():
        if depth == 0 or not is_atomic_group(node):
            continue
        if node.id in ids:
            continue
        for inner, inner_depth in node.walk():
            if inner_depth > 0:
                ids.add(inner.id)
    return ids


def is_decorative_pointer(node: Node) -> bool:
    """Speech-bubble tails, arrows and carets keep their aspect ratio."""
    if not isinstance(node, (ContainerNode, VectorNode)):
        return False
    if isinstance(node, ContainerNode) and (node.is_group or node.is_instance):
        return False
    if isinstance(node, VectorNode) and node.shape not in ("VECTOR", "POLYGON"):
        return False
    if node.width <= 0 or node.height <= 0:
        return False

    ratio = node.width / node.height
    if 0.33 <= ratio <= 3:
        return False
    if node.parent is not None and _POINTER_PARENT.search(node.parent.name):
        return True
    return bool(_POINTER_NAME.search(node.name))


def _is_vector(node: Node) -> bool:
    return isinstance(node, VectorNode) and node.shape in _VECTOR_SHAPES
