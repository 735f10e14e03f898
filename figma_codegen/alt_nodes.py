"""
AltNode IR — framework-agnostic node tree built from the raw design tree.

Ownership runs strictly parent → children; the upward link is an id into
the run's ``NodeStore``.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, Optional

from .diagnostics import ConversionError


class NodeKind(str, Enum):
    CONTAINER = "Container"
    RECTANGLE = "Rectangle"
    ELLIPSE = "Ellipse"
    TEXT = "Text"
    VECTOR = "Vector"
    BOOLEAN_OP = "BooleanOp"


PRIMITIVE_SHAPES = (NodeKind.RECTANGLE, NodeKind.ELLIPSE)
VECTOR_KINDS = (NodeKind.VECTOR, NodeKind.BOOLEAN_OP)


class SizingMode(str, Enum):
    FIXED = "FIXED"
    HUG = "HUG"
    FILL = "FILL"


class Direction(str, Enum):
    ROW = "ROW"
    COLUMN = "COLUMN"


class Align(str, Enum):
    MIN = "MIN"
    CENTER = "CENTER"
    MAX = "MAX"
    SPACE_BETWEEN = "SPACE_BETWEEN"
    BASELINE = "BASELINE"


@dataclass(frozen=True)
class Padding:
    top: float = 0
    right: float = 0
    bottom: float = 0
    left: float = 0

    def is_zero(self) -> bool:
        return not (self.top or self.right or self.bottom or self.left)

    def is_uniform(self) -> bool:
        return self.top == self.right == self.bottom == self.left


@dataclass(frozen=True)
class LayoutDescriptor:
    direction: Direction
    primary_align: Align = Align.MIN
    counter_align: Align = Align.MIN
    wrap: bool = False
    gap: float = 0
    counter_gap: float = 0
    padding: Padding = field(default_factory=Padding)
    primary_sizing: SizingMode = SizingMode.FIXED
    counter_sizing: SizingMode = SizingMode.FIXED
    has_absolute_children: bool = False


@dataclass(frozen=True)
class Geometry:
    x: float = 0
    y: float = 0
    width: float = 0
    height: float = 0
    rotation_degrees: float = 0
    cumulative_rotation_degrees: float = 0


@dataclass(frozen=True)
class Sizing:
    horizontal: SizingMode = SizingMode.FIXED
    vertical: SizingMode = SizingMode.FIXED


@dataclass(frozen=True)
class Effect:
    type: str  # DROP_SHADOW | INNER_SHADOW | LAYER_BLUR | BACKGROUND_BLUR
    radius: float = 0
    color: Optional[object] = None
    offset_x: float = 0
    offset_y: float = 0
    spread: float = 0

    @property
    def is_shadow(self) -> bool:
        return self.type in ("DROP_SHADOW", "INNER_SHADOW")


@dataclass(frozen=True)
class TextRun:
    characters: str
    font_size: float = 14
    font_weight: int = 400
    font_family: str = "Inter"
    decoration: str = "NONE"  # NONE | UNDERLINE | STRIKETHROUGH
    case_transform: str = "ORIGINAL"  # ORIGINAL | UPPER | LOWER | TITLE
    fill: Optional[object] = None
    italic: bool = False

    def same_style(self, other: "TextRun") -> bool:
        return (
            self.font_size == other.font_size
            and self.font_weight == other.font_weight
            and self.font_family == other.font_family
            and self.decoration == other.decoration
            and self.case_transform == other.case_transform
            and self.fill == other.fill
            and self.italic == other.italic
        )


@dataclass
class AltNode:
    id: str
    name: str
    kind: NodeKind
    source_type: str = ""
    unique_name: str = ""
    order: int = 0
    parent_id: Optional[str] = None
    children: list = field(default_factory=list)

    geometry: Geometry = field(default_factory=Geometry)
    sizing: Sizing = field(default_factory=Sizing)
    is_absolute: bool = False
    layout_grow: float = 0

    fills: tuple = ()
    strokes: tuple = ()
    stroke_weight: float = 0
    corner_radii: tuple = (0, 0, 0, 0)
    opacity: float = 1.0
    clips_content: bool = False
    effects: tuple = ()

    layout: Optional[LayoutDescriptor] = None

    text_runs: tuple = ()
    text_align: str = "LEFT"
    line_height: Optional[float] = None
    letter_spacing: float = 0
    text_auto_resize: str = "NONE"

    export_as_svg: bool = False
    can_flatten_to_vector: bool = False
    embedded_vector_markup: Optional[str] = None
    vector_export_failed: bool = False

    @property
    def characters(self) -> str:
        return "".join(run.characters for run in self.text_runs)

    @property
    def has_uniform_radius(self) -> bool:
        return len(set(self.corner_radii)) == 1

    @property
    def radius(self) -> float:
        return self.corner_radii[0] if self.corner_radii else 0

    def walk(self) -> Iterator["AltNode"]:
        """Pre-order traversal of this subtree."""
        yield self
        for child in self.children:
            yield from child.walk()

    def __repr__(self) -> str:
        return f"AltNode({self.kind.value} {self.unique_name or self.name!r} id={self.id})"


class NodeStore:
    """id → AltNode index for one conversion run."""

    def __init__(self):
        self._nodes: dict[str, AltNode] = {}

    def add(self, node: AltNode) -> None:
        if node.id in self._nodes:
            raise ConversionError(f"duplicate node id in store: {node.id}")
        self._nodes[node.id] = node

    def get(self, node_id: Optional[str]) -> Optional[AltNode]:
        if node_id is None:
            return None
        return self._nodes.get(node_id)

    def parent_of(self, node: AltNode) -> Optional[AltNode]:
        return self.get(node.parent_id)

    def ancestors(self, node: AltNode) -> list[AltNode]:
        """Nearest parent first. Raises ``ConversionError`` on a cycle."""
        seen = {node.id}
        result = []
        current = self.parent_of(node)
        while current is not None:
            if current.id in seen:
                raise ConversionError(f"cyclic parent link at node {current.id}")
            seen.add(current.id)
            result.append(current)
            current = self.parent_of(current)
        return result

    def __contains__(self, node_id: str) -> bool:
        return node_id in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[AltNode]:
        return iter(self._nodes.values())


@dataclass
class AltForest:
    roots: list
    store: NodeStore
    sealed: bool = False

    def walk(self) -> Iterator[AltNode]:
        for root in self.roots:
            yield from root.walk()

    def seal(self) -> None:
        self.sealed = True

    def check_acyclic(self) -> None:
        """Verify every node's parent chain terminates and matches ownership."""
        for root in self.roots:
            if root.parent_id is not None:
                raise ConversionError(f"root {root.id} has a parent link")
            self._check_subtree(root, set())

    def _check_subtree(self, node: AltNode, path: set) -> None:
        if node.id in path:
            raise ConversionError(f"cycle through node {node.id}")
        path.add(node.id)
        for child in node.children:
            if child.parent_id != node.id:
                raise ConversionError(
                    f"node {child.id} is owned by {node.id} but links to {child.parent_id}"
                )
            self._check_subtree(child, path)
        path.discard(node.id)
