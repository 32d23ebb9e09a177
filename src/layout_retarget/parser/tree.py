"""Load and dump design node trees as JSON.

A tree document is a JSON object describing the root frame::

    {"type": "frame", "id": "root", "width": 1000, "height": 1000,
     "layout_mode": "HORIZONTAL", "children": [...]}

Node ``type`` is one of ``frame``/``group``/``instance``/``container``,
``text``, ``image``, or a shape name (``rectangle``, ``ellipse``,
``vector``, ``polygon``, ``star``, ``line``, ``boolean_operation``).
"""

from __future__ import annotations

import json
import logging
import math
from typing import Any

from layout_retarget.parser.model import (
    AxisAlign,
    ContainerNode,
    Effect,
    ImageNode,
    LayoutMode,
    LayoutPositioning,
    LayoutWrap,
    Node,
    Paint,
    TextAutoResize,
    TextNode,
    TextRun,
    VectorNode,
)

logger = logging.getLogger(__name__)

_CONTAINER_TYPES = {"frame", "group", "instance", "component", "container"}
_SHAPE_TYPES = {
    "vector", "rectangle", "ellipse", "polygon", "star", "line",
    "boolean_operation",
}


def load_tree(text: str) -> ContainerNode:
    """Parse a JSON document into a root container."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON: {e}") from e
    return parse_tree(data)


def parse_tree(data: Any) -> ContainerNode:
    """Build a node tree from a decoded JSON mapping.

    The root must be a container. Raises ``ValueError`` for structural
    problems; bad geometry is clamped and logged instead.
    """
    if not isinstance(data, dict):
        raise ValueError("Tree document must be a JSON object")
    root = _parse_node(data, path="root")
    if not isinstance(root, ContainerNode):
        raise ValueError(
            f"Root node must be a frame or group, got '{data.get('type')}'"
        )
    return root


def _parse_node(data: Any, path: str) -> Node:
    if not isinstance(data, dict):
        raise ValueError(f"{path}: node must be an object")

    node_type = str(data.get("type", "")).lower()
    node_id = str(data.get("id") or path)
    common = dict(
        id=node_id,
        name=str(data.get("name", "")),
        x=_number(data, "x", 0.0, path),
        y=_number(data, "y", 0.0, path),
        width=_dimension(data, "width", path),
        height=_dimension(data, "height", path),
        visible=bool(data.get("visible", True)),
        fills=[_parse_paint(p, f"{path}.fills") for p in _objects(data, "fills", path)],
        strokes=[_parse_paint(p, f"{path}.strokes") for p in _objects(data, "strokes", path)],
        stroke_weight=_number(data, "stroke_weight", 0.0, path),
        corner_radius=_number(data, "corner_radius", 0.0, path),
        effects=[_parse_effect(e, f"{path}.effects") for e in _objects(data, "effects", path)],
        layout_positioning=LayoutPositioning(
            data.get("layout_positioning", "AUTO")
        ),
        role=data.get("role"),
    )

    if node_type in _CONTAINER_TYPES:
        children = [
            _parse_node(child, f"{path}/{i}")
            for i, child in enumerate(_list(data, "children", path))
        ]
        return ContainerNode(
            **common,
            children=children,
            layout_mode=LayoutMode(data.get("layout_mode", "NONE")),
            layout_wrap=LayoutWrap(data.get("layout_wrap", "NO_WRAP")),
            item_spacing=_number(data, "item_spacing", 0.0, path),
            padding_left=_number(data, "padding_left", 0.0, path),
            padding_right=_number(data, "padding_right", 0.0, path),
            padding_top=_number(data, "padding_top", 0.0, path),
            padding_bottom=_number(data, "padding_bottom", 0.0, path),
            primary_axis_align=AxisAlign(data.get("primary_axis_align", "MIN")),
            counter_axis_align=AxisAlign(data.get("counter_axis_align", "MIN")),
            primary_sizing=str(data.get("primary_sizing", "FIXED")),
            counter_sizing=str(data.get("counter_sizing", "FIXED")),
            is_group=node_type == "group",
            is_instance=node_type in ("instance", "component"),
            clips_content=bool(data.get("clips_content", True)),
        )
    if node_type == "text":
        characters = str(data.get("characters", ""))
        runs = [_parse_run(r, f"{path}.runs") for r in _objects(data, "runs", path)]
        if not runs and "font_size" in data:
            runs = [TextRun(
                start=0,
                end=len(characters),
                font_family=str(data.get("font_family", "Inter")),
                font_style=str(data.get("font_style", "Regular")),
                font_size=_number(data, "font_size", 16.0, path),
                line_height=_optional_number(data, "line_height", path),
                letter_spacing=_optional_number(data, "letter_spacing", path),
            )]
        return TextNode(
            **common,
            characters=characters,
            runs=runs,
            auto_resize=TextAutoResize(data.get("auto_resize", "NONE")),
        )
    if node_type == "image":
        return ImageNode(**common, image_ref=data.get("image_ref"))
    if node_type in _SHAPE_TYPES:
        return VectorNode(**common, shape=node_type.upper())

    raise ValueError(f"{path}: unknown node type '{data.get('type')}'")


def _number(data: dict, key: str, default: float, path: str) -> float:
    value = data.get(key, default)
    try:
        number = float(value)
    except (TypeError, ValueError):
        logger.warning("%s: non-numeric %s %r, using %s", path, key, value, default)
        return default
    if not math.isfinite(number):
        logger.warning("%s: non-finite %s, using %s", path, key, default)
        return default
    return number


def _dimension(data: dict, key: str, path: str) -> float:
    value = _number(data, key, 1.0, path)
    if value < 1.0:
        logger.warning("%s: %s %.2f clamped to 1px", path, key, value)
        return 1.0
    return value


def _optional_number(data: dict, key: str, path: str) -> float | None:
    """A finite number, or ``None`` when missing or unusable."""
    value = data.get(key)
    if value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        logger.warning("%s: non-numeric %s %r ignored", path, key, value)
        return None
    if not math.isfinite(number):
        logger.warning("%s: non-finite %s ignored", path, key)
        return None
    return number


def _list(data: dict, key: str, path: str) -> list:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError(f"{path}: {key} must be a list")
    return value


def _objects(data: dict, key: str, path: str) -> list[dict]:
    items = _list(data, key, path)
    for i, item in enumerate(items):
        if not isinstance(item, dict):
            raise ValueError(f"{path}.{key}[{i}]: expected an object")
    return items


def _parse_paint(data: dict, path: str) -> Paint:
    return Paint(
        type=str(data.get("type", "SOLID")),
        visible=bool(data.get("visible", True)),
        opacity=_number(data, "opacity", 1.0, path),
        color=data.get("color"),
        scale_mode=data.get("scale_mode"),
        scaling_factor=_optional_number(data, "scaling_factor", path),
    )


def _parse_effect(data: dict, path: str) -> Effect:
    return Effect(
        type=str(data.get("type", "DROP_SHADOW")),
        radius=_number(data, "radius", 0.0, path),
        offset_x=_number(data, "offset_x", 0.0, path),
        offset_y=_number(data, "offset_y", 0.0, path),
        spread=_optional_number(data, "spread", path),
        visible=bool(data.get("visible", True)),
    )


def _parse_run(data: dict, path: str) -> TextRun:
    return TextRun(
        start=int(_number(data, "start", 0.0, path)),
        end=int(_number(data, "end", 0.0, path)),
        font_family=str(data.get("font_family", "Inter")),
        font_style=str(data.get("font_style", "Regular")),
        font_size=_number(data, "font_size", 16.0, path),
        line_height=_optional_number(data, "line_height", path),
        letter_spacing=_optional_number(data, "letter_spacing", path),
    )


def tree_to_dict(node: Node) -> dict[str, Any]:
    """Serialize a node (and its subtree) to a JSON-ready mapping."""
    out: dict[str, Any] = {
        "id": node.id,
        "name": node.name,
        "x": node.x,
        "y": node.y,
        "width": node.width,
        "height": node.height,
    }
    if not node.visible:
        out["visible"] = False
    if node.fills:
        out["fills"] = [_paint_to_dict(p) for p in node.fills]
    if node.strokes:
        out["strokes"] = [_paint_to_dict(p) for p in node.strokes]
    if node.stroke_weight:
        out["stroke_weight"] = node.stroke_weight
    if node.corner_radius:
        out["corner_radius"] = node.corner_radius
    if node.effects:
        out["effects"] = [_effect_to_dict(e) for e in node.effects]
    if node.is_absolute:
        out["layout_positioning"] = node.layout_positioning.value
    if node.role:
        out["role"] = node.role

    if isinstance(node, ContainerNode):
        if node.is_group:
            out["type"] = "group"
        elif node.is_instance:
            out["type"] = "instance"
        else:
            out["type"] = "frame"
        out.update(
            layout_mode=node.layout_mode.value,
            layout_wrap=node.layout_wrap.value,
            item_spacing=node.item_spacing,
            padding_left=node.padding_left,
            padding_right=node.padding_right,
            padding_top=node.padding_top,
            padding_bottom=node.padding_bottom,
            primary_axis_align=node.primary_axis_align.value,
            counter_axis_align=node.counter_axis_align.value,
            primary_sizing=node.primary_sizing,
            counter_sizing=node.counter_sizing,
            clips_content=node.clips_content,
            children=[tree_to_dict(c) for c in node.children],
        )
    elif isinstance(node, TextNode):
        out["type"] = "text"
        out["characters"] = node.characters
        out["auto_resize"] = node.auto_resize.value
        out["runs"] = [
            {
                "start": r.start,
                "end": r.end,
                "font_family": r.font_family,
                "font_style": r.font_style,
                "font_size": r.font_size,
                "line_height": r.line_height,
                "letter_spacing": r.letter_spacing,
            }
            for r in node.runs
        ]
    elif isinstance(node, ImageNode):
        out["type"] = "image"
        if node.image_ref:
            out["image_ref"] = node.image_ref
    elif isinstance(node, VectorNode):
        out["type"] = node.shape.lower()
    return out


def dump_tree(root: Node, indent: int | None = 2) -> str:
    return json.dumps(tree_to_dict(root), indent=indent)


def _paint_to_dict(paint: Paint) -> dict[str, Any]:
    out: dict[str, Any] = {"type": paint.type}
    if not paint.visible:
        out["visible"] = False
    if paint.opacity != 1.0:
        out["opacity"] = paint.opacity
    for key in ("color", "scale_mode", "scaling_factor"):
        value = getattr(paint, key)
        if value is not None:
            out[key] = value
    return out


def _effect_to_dict(effect: Effect) -> dict[str, Any]:
    out: dict[str, Any] = {
        "type": effect.type,
        "radius": effect.radius,
        "offset_x": effect.offset_x,
        "offset_y": effect.offset_y,
    }
    if effect.spread is not None:
        out["spread"] = effect.spread
    if not effect.visible:
        out["visible"] = False
    return out
