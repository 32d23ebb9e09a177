"""Data model for design node trees.

A frame is a tree of nodes. Every node carries frame-relative geometry
(``x``/``y`` relative to its parent container) plus a small set of paint,
effect and layout attributes. The tree is a closed set of variants:
``ContainerNode``, ``TextNode``, ``VectorNode`` and ``ImageNode``.
Behavior that depends on the variant dispatches on the class, never on
the presence of attributes.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar, Iterator


class LayoutMode(Enum):
    """Auto-layout direction of a container."""

    NONE = "NONE"
    HORIZONTAL = "HORIZONTAL"
    VERTICAL = "VERTICAL"


class LayoutWrap(Enum):
    NO_WRAP = "NO_WRAP"
    WRAP = "WRAP"


class AxisAlign(Enum):
    """Alignment of children along a layout axis."""

    MIN = "MIN"
    CENTER = "CENTER"
    MAX = "MAX"
    SPACE_BETWEEN = "SPACE_BETWEEN"


class LayoutPositioning(Enum):
    """Whether a child participates in its parent's layout flow."""

    AUTO = "AUTO"
    ABSOLUTE = "ABSOLUTE"


class TextAutoResize(Enum):
    NONE = "NONE"
    HEIGHT = "HEIGHT"
    WIDTH_AND_HEIGHT = "WIDTH_AND_HEIGHT"


IMAGE_PAINT_TYPES = ("IMAGE", "VIDEO")


@dataclass
class Bounds:
    """Axis-aligned pixel rectangle."""

    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def center_x(self) -> float:
        return self.x + self.width / 2

    @property
    def center_y(self) -> float:
        return self.y + self.height / 2

    @property
    def area(self) -> float:
        return max(self.width, 0.0) * max(self.height, 0.0)

    def union(self, other: Bounds) -> Bounds:
        """Smallest rectangle containing both rectangles."""
        x = min(self.x, other.x)
        y = min(self.y, other.y)
        return Bounds(x, y, max(self.right, other.right) - x,
                      max(self.bottom, other.bottom) - y)

    def contains(self, other: Bounds) -> bool:
        return (
            other.x >= self.x
            and other.y >= self.y
            and other.right <= self.right
            and other.bottom <= self.bottom
        )


@dataclass
class Paint:
    """A fill or stroke paint."""

    type: str = "SOLID"
    visible: bool = True
    opacity: float = 1.0
    color: str | None = None
    scale_mode: str | None = None  # IMAGE/VIDEO only: FILL, FIT, CROP, TILE
    scaling_factor: float | None = None  # TILE only

    @property
    def is_image(self) -> bool:
        return self.type in IMAGE_PAINT_TYPES


@dataclass
class Effect:
    """A shadow or blur effect."""

    type: str  # DROP_SHADOW, INNER_SHADOW, LAYER_BLUR, BACKGROUND_BLUR
    radius: float = 0.0
    offset_x: float = 0.0
    offset_y: float = 0.0
    spread: float | None = None
    visible: bool = True


@dataclass
class TextRun:
    """A character range sharing one set of typography properties.

    ``line_height`` and ``letter_spacing`` are pixel values; ``None`` means
    the value is relative (auto or percent) and does not scale.
    """

    start: int
    end: int
    font_family: str = "Inter"
    font_style: str = "Regular"
    font_size: float = 16.0
    line_height: float | None = None
    letter_spacing: float | None = None


@dataclass(eq=False)
class Node:
    """Common geometry and paint state of every node variant.

    Nodes are identity handles: two nodes are equal only when they are the
    same object.
    """

    id: str
    name: str = ""
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0
    visible: bool = True
    fills: list[Paint] = field(default_factory=list)
    strokes: list[Paint] = field(default_factory=list)
    stroke_weight: float = 0.0
    corner_radius: float = 0.0
    effects: list[Effect] = field(default_factory=list)
    layout_positioning: LayoutPositioning = LayoutPositioning.AUTO
    role: str | None = None  # Optional semantic tag, e.g. "overlay", "hero_bleed"
    parent: ContainerNode | None = field(default=None, repr=False)

    kind: ClassVar[str] = "node"

    @property
    def bounds(self) -> Bounds:
        return Bounds(self.x, self.y, self.width, self.height)

    @property
    def is_absolute(self) -> bool:
        return self.layout_positioning is LayoutPositioning.ABSOLUTE

    def resize(self, width: float, height: float) -> None:
        self.width = max(float(width), 0.0)
        self.height = max(float(height), 0.0)

    def has_visible_fill(self) -> bool:
        return any(p.visible and p.opacity > 0 for p in self.fills)

    def has_visible_stroke(self) -> bool:
        return self.stroke_weight > 0 and any(p.visible for p in self.strokes)

    def has_image_fill(self) -> bool:
        return any(p.visible and p.is_image for p in self.fills)

    def offset_in(self, ancestor: Node) -> tuple[float, float]:
        """Position of this node in ``ancestor``'s coordinate space."""
        x, y = self.x, self.y
        node = self.parent
        while node is not None and node is not ancestor:
            x += node.x
            y += node.y
            node = node.parent
        return x, y

    def walk(self, max_depth: int | None = None) -> Iterator[tuple[Node, int]]:
        """Breadth-first traversal yielding ``(node, depth)``, self at depth 0."""
        queue: deque[tuple[Node, int]] = deque([(self, 0)])
        while queue:
            node, depth = queue.popleft()
            yield node, depth
            if isinstance(node, ContainerNode):
                if max_depth is not None and depth >= max_depth:
                    continue
                for child in node.children:
                    queue.append((child, depth + 1))


@dataclass(eq=False)
class ContainerNode(Node):
    """A frame, group or component instance holding child nodes."""

    children: list[Node] = field(default_factory=list)
    layout_mode: LayoutMode = LayoutMode.NONE
    layout_wrap: LayoutWrap = LayoutWrap.NO_WRAP
    item_spacing: float = 0.0
    padding_left: float = 0.0
    padding_right: float = 0.0
    padding_top: float = 0.0
    padding_bottom: float = 0.0
    primary_axis_align: AxisAlign = AxisAlign.MIN
    counter_axis_align: AxisAlign = AxisAlign.MIN
    primary_sizing: str = "FIXED"
    counter_sizing: str = "FIXED"
    is_group: bool = False
    is_instance: bool = False
    clips_content: bool = True

    kind: ClassVar[str] = "container"

    def __post_init__(self) -> None:
        for child in self.children:
            child.parent = self

    @property
    def has_auto_layout(self) -> bool:
        return self.layout_mode is not LayoutMode.NONE

    def flow_children(self) -> list[Node]:
        """Visible children that participate in layout flow."""
        return [c for c in self.children if c.visible and not c.is_absolute]

    def append_child(self, node: Node) -> None:
        self.insert_child(len(self.children), node)

    def insert_child(self, index: int, node: Node) -> None:
        if node.parent is not None:
            node.parent.remove_child(node)
        node.parent = self
        self.children.insert(index, node)

    def remove_child(self, node: Node) -> None:
        self.children.remove(node)
        node.parent = None

    def find(self, node_id: str) -> Node | None:
        for node, _ in self.walk():
            if node.id == node_id:
                return node
        return None


@dataclass(eq=False)
class TextNode(Node):
    """A text layer with per-range typography."""

    characters: str = ""
    runs: list[TextRun] = field(default_factory=list)
    auto_resize: TextAutoResize = TextAutoResize.NONE

    kind: ClassVar[str] = "text"

    @property
    def font_size(self) -> float | None:
        """Uniform font size, or ``None`` when mixed or unset."""
        sizes = {run.font_size for run in self.runs}
        if len(sizes) == 1:
            return sizes.pop()
        return None


@dataclass(eq=False)
class VectorNode(Node):
    """A shape: rectangle, ellipse, line, polygon, vector path."""

    shape: str = "VECTOR"

    kind: ClassVar[str] = "vector"


@dataclass(eq=False)
class ImageNode(Node):
    """A leaf whose primary content is a bitmap fill."""

    image_ref: str | None = None

    kind: ClassVar[str] = "image"

    def has_image_fill(self) -> bool:
        return True


NODE_KINDS: dict[str, type[Node]] = {
    cls.kind: cls for cls in (ContainerNode, TextNode, VectorNode, ImageNode)
}
