"""Node tree model and JSON loading."""

from layout_retarget.parser.model import (
    AxisAlign,
    Bounds,
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
from layout_retarget.parser.tree import dump_tree, load_tree, parse_tree, tree_to_dict

__all__ = [
    "AxisAlign",
    "Bounds",
    "ContainerNode",
    "Effect",
    "ImageNode",
    "LayoutMode",
    "LayoutPositioning",
    "LayoutWrap",
    "Node",
    "Paint",
    "TextAutoResize",
    "TextNode",
    "TextRun",
    "VectorNode",
    "dump_tree",
    "load_tree",
    "parse_tree",
    "tree_to_dict",
]
