"""Scene tree — array-backed nodes with integer child indices.

Nodes never hold references to other nodes; parents and children are indices
into ``Composition.nodes``. Replacing a node (new id, same slot) therefore
never invalidates a traversal in progress.
"""

from __future__ import annotations

import copy
import enum
from dataclasses import dataclass, field

from reframe.utils.geometry import Bounds


class NodeKind(str, enum.Enum):
    TEXT = "text"
    LEAF = "leaf"
    CONTAINER = "container"


class LayoutMode(str, enum.Enum):
    NONE = "NONE"
    HORIZONTAL = "HORIZONTAL"
    VERTICAL = "VERTICAL"


class Positioning(str, enum.Enum):
    AUTO = "AUTO"
    ABSOLUTE = "ABSOLUTE"


class AutoResize(str, enum.Enum):
    NONE = "NONE"
    WIDTH_AND_HEIGHT = "WIDTH_AND_HEIGHT"
    HEIGHT = "HEIGHT"
    TRUNCATE = "TRUNCATE"


class Align(str, enum.Enum):
    MIN = "MIN"
    CENTER = "CENTER"
    MAX = "MAX"
    SPACE_BETWEEN = "SPACE_BETWEEN"
    BASELINE = "BASELINE"


@dataclass
class Box:
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def center(self) -> tuple[float, float]:
        return (self.x + self.width / 2, self.y + self.height / 2)

    @property
    def area(self) -> float:
        return max(self.width, 0.0) * max(self.height, 0.0)

    def translated(self, dx: float, dy: float) -> Box:
        return Box(self.x + dx, self.y + dy, self.width, self.height)

    def as_bounds(self) -> Bounds:
        return (self.x, self.y, self.x + self.width, self.y + self.height)

    @classmethod
    def from_bounds(cls, b: Bounds) -> Box:
        return cls(b[0], b[1], b[2] - b[0], b[3] - b[1])


@dataclass
class Paint:
    # solid | gradient | image
    kind: str = "solid"
    # fill | fit | crop | tile (image paints only)
    scale_mode: str = "fill"
    scaling_factor: float = 1.0
    # Gradient handle positions
    gradient_handles: list[tuple[float, float]] = field(default_factory=list)
    # 2x3 affine ((a, b, tx), (c, d, ty))
    gradient_transform: tuple[tuple[float, float, float], tuple[float, float, float]] | None = None
    # Crop placement of an image within its box, same 2x3 shape
    image_transform: tuple[tuple[float, float, float], tuple[float, float, float]] | None = None
    opacity: float = 1.0
    visible: bool = True


@dataclass
class Effect:
    # drop_shadow | inner_shadow | layer_blur | background_blur
    kind: str = "drop_shadow"
    radius: float = 0.0
    offset_x: float = 0.0
    offset_y: float = 0.0
    spread: float = 0.0
    visible: bool = True

    @property
    def is_shadow(self) -> bool:
        return self.kind in ("drop_shadow", "inner_shadow")


@dataclass
class TextRun:
    """A contiguous character range sharing font metrics."""

    start: int = 0
    end: int = 0
    font_family: str = "Inter"
    font_style: str = "Regular"
    font_size: float = 16.0
    line_height: float | None = None
    # px | percent | auto
    line_height_unit: str = "auto"
    letter_spacing: float = 0.0
    # px | percent
    letter_spacing_unit: str = "px"


@dataclass
class FlowLayout:
    mode: LayoutMode = LayoutMode.NONE
    padding_left: float = 0.0
    padding_right: float = 0.0
    padding_top: float = 0.0
    padding_bottom: float = 0.0
    item_spacing: float = 0.0
    counter_axis_spacing: float = 0.0
    wrap: bool = False
    primary_align: Align = Align.MIN
    counter_align: Align = Align.MIN


@dataclass
class SizeConstraints:
    min_width: float | None = None
    max_width: float | None = None
    min_height: float | None = None
    max_height: float | None = None

    @property
    def is_empty(self) -> bool:
        return all(
            v is None for v in (self.min_width, self.max_width, self.min_height, self.max_height)
        )


@dataclass
class Node:
    """A single element of the composition."""

    id: str
    kind: NodeKind = NodeKind.LEAF
    name: str = ""
    box: Box = field(default_factory=Box)
    visible: bool = True
    # Z-order index within the parent
    z: int = 0
    # Author-tagged semantic role (advisor evidence lives in SemanticSignals)
    role: str | None = None
    role_confidence: float = 1.0
    # Intentionally extends past the frame edge
    bleed: bool = False
    positioning: Positioning = Positioning.AUTO
    paints: list[Paint] = field(default_factory=list)
    strokes: list[Paint] = field(default_factory=list)
    stroke_weight: float = 0.0
    corner_radius: float = 0.0
    # Per-corner radii (top-left, top-right, bottom-right, bottom-left)
    corner_radii: tuple[float, float, float, float] | None = None
    effects: list[Effect] = field(default_factory=list)
    constraints: SizeConstraints = field(default_factory=SizeConstraints)
    flow: FlowLayout | None = None
    clips_content: bool = False
    # Text-only fields
    characters: str = ""
    font_size: float = 16.0
    text_runs: list[TextRun] = field(default_factory=list)
    auto_resize: AutoResize = AutoResize.NONE
    # Tree links (indices into Composition.nodes)
    parent: int | None = None
    children: list[int] = field(default_factory=list)

    # --- capability checks ---

    @property
    def has_paints(self) -> bool:
        return bool(self.paints) or bool(self.strokes)

    @property
    def has_text(self) -> bool:
        return self.kind == NodeKind.TEXT

    @property
    def is_container(self) -> bool:
        return self.kind == NodeKind.CONTAINER

    @property
    def is_flow_container(self) -> bool:
        return (
            self.kind == NodeKind.CONTAINER
            and self.flow is not None
            and self.flow.mode != LayoutMode.NONE
        )

    @property
    def layout_mode(self) -> LayoutMode:
        if self.flow is None:
            return LayoutMode.NONE
        return self.flow.mode

    @property
    def has_image_paint(self) -> bool:
        return any(p.kind == "image" and p.visible for p in self.paints)


@dataclass
class Composition:
    """The root container plus every descendant, stored flat."""

    nodes: list[Node] = field(default_factory=list)
    root: int = 0
    _index: dict[str, int] = field(default_factory=dict, repr=False)

    def __post_init__(self) -> None:
        self.reindex()

    def reindex(self) -> None:
        self._index = {n.id: i for i, n in enumerate(self.nodes)}

    def clone(self) -> Composition:
        return copy.deepcopy(self)

    @property
    def root_node(self) -> Node:
        return self.nodes[self.root]

    def node(self, index: int) -> Node:
        return self.nodes[index]

    def index_of(self, node_id: str) -> int | None:
        return self._index.get(node_id)

    def find(self, node_id: str) -> Node | None:
        idx = self._index.get(node_id)
        return None if idx is None else self.nodes[idx]

    def add(self, node: Node, parent: int | None = None) -> int:
        """Append a node, linking it under ``parent``. Returns its index."""
        idx = len(self.nodes)
        node.parent = parent
        self.nodes.append(node)
        self._index[node.id] = idx
        if parent is not None:
            self.nodes[parent].children.append(idx)
        return idx

    def replace(self, index: int, node: Node) -> str:
        """Install ``node`` in slot ``index`` keeping the tree links.

        Returns the id that previously occupied the slot.
        """
        old = self.nodes[index]
        node.parent = old.parent
        node.children = list(old.children)
        self.nodes[index] = node
        self._index.pop(old.id, None)
        self._index[node.id] = index
        return old.id

    def children_of(self, index: int) -> list[int]:
        return list(self.nodes[index].children)

    def parent_of(self, index: int) -> int | None:
        return self.nodes[index].parent

    def walk(self, start: int | None = None) -> list[int]:
        """Depth-first pre-order over indices, via an explicit work list."""
        first = self.root if start is None else start
        order: list[int] = []
        stack = [first]
        while stack:
            idx = stack.pop()
            order.append(idx)
            # Reverse so the first child is visited first
            stack.extend(reversed(self.nodes[idx].children))
        return order

    def depth(self, index: int) -> int:
        d = 0
        cur = self.nodes[index].parent
        while cur is not None:
            d += 1
            cur = self.nodes[cur].parent
        return d

    def absolute_box(self, index: int) -> Box:
        """Box in root coordinates. The root's own offset is excluded."""
        node = self.nodes[index]
        if index == self.root:
            return Box(0.0, 0.0, node.box.width, node.box.height)
        x, y = node.box.x, node.box.y
        cur = node.parent
        while cur is not None and cur != self.root:
            x += self.nodes[cur].box.x
            y += self.nodes[cur].box.y
            cur = self.nodes[cur].parent
        return Box(x, y, node.box.width, node.box.height)

    def is_free_floating(self, index: int) -> bool:
        """True when a node's offsets are its own, not owned by flow layout."""
        node = self.nodes[index]
        if node.parent is None:
            return True
        parent = self.nodes[node.parent]
        return not parent.is_flow_container or node.positioning == Positioning.ABSOLUTE

    def flow_children(self, index: int) -> list[int]:
        """Children laid out by a flow container (visible, not absolute)."""
        return [
            c
            for c in self.nodes[index].children
            if self.nodes[c].visible and self.nodes[c].positioning != Positioning.ABSOLUTE
        ]

    def __len__(self) -> int:
        return len(self.nodes)
