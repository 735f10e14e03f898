"""
ir_builder.py — Node Normalizer: raw Figma node tree → AltNode forest

  ✅ GROUP inlining (nested groups collapse in one pass)
  ✅ Rotation-aware geometry, node-local coordinates
  ✅ Paint / effect parsing with defaults
  ✅ Auto layout → LayoutDescriptor, FILL/HUG sizing
  ✅ Styled text runs from characterStyleOverrides
  ✅ Run-scoped unique names in document order
  ✅ Icon/vector classification after the tree is complete
"""

import json
import logging
import math
import os
from dataclasses import asdict, dataclass, fields, is_dataclass, replace
from enum import Enum
from typing import Callable, Optional

from .alt_nodes import AltForest, AltNode, Effect, Geometry, NodeKind, NodeStore, TextRun
from .colors import parse_color, parse_paints
from .diagnostics import ConversionCancelled, Diagnostics
from .geometry import BoundingBox, resolve_rotated_box, to_parent_local
from .layout import classify_layout, is_absolute, resolve_sizing, with_absolute_children
from .naming_engine import NamingEngine
from .vector_classifier import VectorClassifier

logger = logging.getLogger(__name__)

KIND_BY_TYPE = {
    "FRAME": NodeKind.CONTAINER,
    "COMPONENT": NodeKind.CONTAINER,
    "COMPONENT_SET": NodeKind.CONTAINER,
    "INSTANCE": NodeKind.CONTAINER,
    "SECTION": NodeKind.CONTAINER,
    "RECTANGLE": NodeKind.RECTANGLE,
    "LINE": NodeKind.RECTANGLE,
    "ELLIPSE": NodeKind.ELLIPSE,
    "TEXT": NodeKind.TEXT,
    "VECTOR": NodeKind.VECTOR,
    "STAR": NodeKind.VECTOR,
    "REGULAR_POLYGON": NodeKind.VECTOR,
    "POLYGON": NodeKind.VECTOR,
    "BOOLEAN_OPERATION": NodeKind.BOOLEAN_OP,
}

GROUP_TYPE = "GROUP"

_EFFECT_TYPES = ("DROP_SHADOW", "INNER_SHADOW", "LAYER_BLUR", "BACKGROUND_BLUR")
_TEXT_CASES = {"UPPER": "UPPER", "LOWER": "LOWER", "TITLE": "TITLE"}


@dataclass(frozen=True)
class _ParentFrame:
    """What a child needs to know about its (non-group) parent."""
    node: Optional[AltNode]
    center: Optional[tuple]
    size: Optional[tuple]
    cumulative_rotation: float = 0.0


_ROOT_FRAME = _ParentFrame(node=None, center=None, size=None)


class NodeNormalizer:

    def __init__(
        self,
        diagnostics: Diagnostics,
        naming_engine: Optional[NamingEngine] = None,
        abort_check: Optional[Callable[[], bool]] = None,
    ):
        self.diagnostics = diagnostics
        self.namer = naming_engine or NamingEngine()
        self.abort_check = abort_check
        self._store = NodeStore()
        self._order = 0

    def normalize(self, raw_roots: list) -> AltForest:
        self._store = NodeStore()
        self._order = 0
        roots = []
        for raw in raw_roots:
            roots.extend(self._visit(raw, _ROOT_FRAME, inherited_opacity=1.0))
        logger.debug("normalized %d roots, %d nodes", len(roots), len(self._store))
        return AltForest(roots=roots, store=self._store)

    # ════════════════════════════════════════════════════════════
    # Node Conversion
    # ════════════════════════════════════════════════════════════

    def _visit(self, raw: dict, parent: _ParentFrame, inherited_opacity: float) -> list:
        if self.abort_check is not None and self.abort_check():
            raise ConversionCancelled("conversion aborted")
        if not isinstance(raw, dict):
            self.diagnostics.warn(f"malformed node skipped: {type(raw).__name__}", parent.node)
            return []
        if raw.get("visible", True) is False:
            logger.debug("skipping hidden node %s", raw.get("id"))
            return []

        if raw.get("type") == GROUP_TYPE:
            return self._inline_group(raw, parent, inherited_opacity)

        node, center = self._convert_node(raw, parent, inherited_opacity)
        frame = _ParentFrame(
            node=node,
            center=center,
            size=(node.geometry.width, node.geometry.height),
            cumulative_rotation=node.geometry.cumulative_rotation_degrees,
        )
        if node.kind != NodeKind.TEXT:
            for child_raw in raw.get("children") or []:
                node.children.extend(self._visit(child_raw, frame, inherited_opacity=1.0))
        node.layout = with_absolute_children(node.layout, node.children)
        return [node]

    def _inline_group(self, raw: dict, parent: _ParentFrame, inherited_opacity: float) -> list:
        if any(e.get("visible", True) for e in raw.get("effects") or []):
            self.diagnostics.warn(
                f"effects on group '{raw.get('name', '')}' cannot be kept after inlining", parent.node
            )
        opacity = inherited_opacity * _opacity(raw)
        promoted = []
        for child_raw in raw.get("children") or []:
            promoted.extend(self._visit(child_raw, parent, opacity))
        return promoted

    def _convert_node(self, raw: dict, parent: _ParentFrame, inherited_opacity: float) -> tuple:
        warnings: list[str] = []
        source_type = str(raw.get("type") or "UNKNOWN")
        kind = KIND_BY_TYPE.get(source_type)
        if kind is None:
            warnings.append(f"unsupported node type: {source_type}")
            kind = NodeKind.CONTAINER

        node = AltNode(
            id=self._unique_id(raw, warnings),
            name=str(raw.get("name") or ""),
            kind=kind,
            source_type=source_type,
            order=self._order,
            parent_id=parent.node.id if parent.node else None,
        )
        self._order += 1
        node.unique_name = self.namer.resolve_name(node.name, source_type, node.id)

        center = self._apply_geometry(node, raw, parent, warnings)
        self._apply_layout(node, raw, parent, warnings)
        self._apply_styles(node, raw, inherited_opacity, warnings)
        if kind == NodeKind.TEXT:
            self._apply_text(node, raw, warnings)
        node.export_as_svg = any(
            isinstance(s, dict) and str(s.get("format", "")).upper() == "SVG"
            for s in raw.get("exportSettings") or []
        )

        self._store.add(node)
        for message in warnings:
            self.diagnostics.warn(message, node)
        return node, center

    def _unique_id(self, raw: dict, warnings: list) -> str:
        node_id = str(raw.get("id") or f"node-{self._order}")
        if node_id not in self._store:
            return node_id
        n = 1
        while f"{node_id}~{n}" in self._store:
            n += 1
        warnings.append(f"duplicate node id {node_id}, renamed to {node_id}~{n}")
        return f"{node_id}~{n}"

    # ════════════════════════════════════════════════════════════
    # Geometry
    # ════════════════════════════════════════════════════════════

    def _apply_geometry(self, node: AltNode, raw: dict, parent: _ParentFrame, warnings: list) -> tuple:
        """Fill ``node.geometry``; returns the absolute center for the children."""
        bbox = _parse_bbox(raw.get("absoluteBoundingBox"), warnings)
        rotation = _number(raw.get("rotation"), 0.0)
        own_css = -rotation if rotation else 0.0
        cumulative_css = parent.cumulative_rotation + own_css

        resolved = resolve_rotated_box(bbox, -cumulative_css)
        if resolved.singular:
            warnings.append(
                f"rotation {_fmt(-cumulative_css)}° is near-singular, using bounding box size"
            )
        size = (resolved.width, resolved.height)
        if parent.center is None:
            x, y = resolved.left, resolved.top
        else:
            x, y = to_parent_local(bbox.center, size, parent.center, parent.size, parent.cumulative_rotation)
        node.geometry = Geometry(
            x=x,
            y=y,
            width=resolved.width,
            height=resolved.height,
            rotation_degrees=own_css,
            cumulative_rotation_degrees=cumulative_css,
        )
        return bbox.center

    # ════════════════════════════════════════════════════════════
    # Layout
    # ════════════════════════════════════════════════════════════

    def _apply_layout(self, node: AltNode, raw: dict, parent: _ParentFrame, warnings: list) -> None:
        parent_layout = parent.node.layout if parent.node else None
        node.is_absolute = is_absolute(raw, parent_layout, parent.node is not None)
        in_flow = parent_layout is not None and not node.is_absolute

        if node.kind == NodeKind.CONTAINER:
            node.layout = classify_layout(raw, warnings)
            node.clips_content = bool(raw.get("clipsContent", False))
        node.sizing = resolve_sizing(raw, parent_layout.direction if in_flow else None, node.layout)
        node.layout_grow = _number(raw.get("layoutGrow"), 0) if in_flow else 0

    # ════════════════════════════════════════════════════════════
    # Paint / Effects
    # ════════════════════════════════════════════════════════════

    def _apply_styles(self, node: AltNode, raw: dict, inherited_opacity: float, warnings: list) -> None:
        fills = parse_paints(raw.get("fills"))
        strokes = parse_paints(raw.get("strokes"))
        warnings.extend(fills.warnings)
        warnings.extend(strokes.warnings)
        node.fills = fills.paints
        node.strokes = strokes.paints
        node.stroke_weight = _number(raw.get("strokeWeight"), 0) if node.strokes else 0
        node.opacity = _opacity(raw) * inherited_opacity

        if node.kind != NodeKind.ELLIPSE:
            radii = raw.get("rectangleCornerRadii")
            if isinstance(radii, list) and len(radii) == 4:
                node.corner_radii = tuple(_number(r, 0) for r in radii)
            else:
                radius = _number(raw.get("cornerRadius"), 0)
                node.corner_radii = (radius, radius, radius, radius)

        effects = []
        for raw_effect in raw.get("effects") or []:
            if not isinstance(raw_effect, dict) or not raw_effect.get("visible", True):
                continue
            effect_type = raw_effect.get("type")
            if effect_type not in _EFFECT_TYPES:
                warnings.append(f"unsupported effect type: {effect_type}")
                continue
            offset = raw_effect.get("offset") or {}
            effects.append(Effect(
                type=effect_type,
                radius=_number(raw_effect.get("radius"), 0),
                color=parse_color(raw_effect.get("color")) if raw_effect.get("color") else None,
                offset_x=_number(offset.get("x"), 0),
                offset_y=_number(offset.get("y"), 0),
                spread=_number(raw_effect.get("spread"), 0),
            ))
        node.effects = tuple(effects)

    # ════════════════════════════════════════════════════════════
    # Text
    # ════════════════════════════════════════════════════════════

    def _apply_text(self, node: AltNode, raw: dict, warnings: list) -> None:
        style = raw.get("style") or {}
        node.text_runs = _build_text_runs(raw, node.fills[0] if node.fills else None, warnings)
        node.text_align = style.get("textAlignHorizontal", "LEFT")
        line_height = style.get("lineHeightPx")
        node.line_height = line_height if isinstance(line_height, (int, float)) else None
        node.letter_spacing = _number(style.get("letterSpacing"), 0)
        node.text_auto_resize = raw.get("textAutoResize", "NONE")


def _build_text_runs(raw: dict, base_fill, warnings: list) -> tuple:
    characters = raw.get("characters") or ""
    base_style = raw.get("style") or {}
    overrides = raw.get("characterStyleOverrides") or []
    table = raw.get("styleOverrideTable") or {}

    # Consecutive characters sharing an override key form one segment.
    segments: list[list] = []
    for index, char in enumerate(characters):
        key = overrides[index] if index < len(overrides) else 0
        if segments and segments[-1][0] == key:
            segments[-1][1] += char
        else:
            segments.append([key, char])
    if not segments:
        segments = [[0, ""]]

    runs: list[TextRun] = []
    for key, text in segments:
        override = table.get(str(key)) if key else None
        if key and override is None:
            warnings.append(f"missing text style override {key}")
        run = _text_run(text, base_style, override or {}, base_fill, warnings)
        if runs and runs[-1].same_style(run):
            runs[-1] = replace(runs[-1], characters=runs[-1].characters + run.characters)
        else:
            runs.append(run)
    return tuple(runs)


def _text_run(text: str, base: dict, override: dict, base_fill, warnings: list) -> TextRun:
    style = {**base, **override}
    fill = base_fill
    if "fills" in override:
        parsed = parse_paints(override["fills"])
        warnings.extend(parsed.warnings)
        fill = parsed.paints[0] if parsed.paints else None
    return TextRun(
        characters=text,
        font_size=_number(style.get("fontSize"), 14),
        font_weight=int(_number(style.get("fontWeight"), 400)),
        font_family=style.get("fontFamily") or "Inter",
        decoration=style.get("textDecoration") or "NONE",
        case_transform=_TEXT_CASES.get(style.get("textCase"), "ORIGINAL"),
        fill=fill,
        italic=bool(style.get("italic", False)),
    )


# ════════════════════════════════════════════════════════════
# Utilities
# ════════════════════════════════════════════════════════════

def _number(value, default: float) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    if math.isnan(value) or math.isinf(value):
        return default
    return value


def _opacity(raw: dict) -> float:
    value = _number(raw.get("opacity"), 1.0)
    return min(max(value, 0.0), 1.0)


def _parse_bbox(box, warnings: list) -> BoundingBox:
    try:
        x, y, width, height = (float(box[k]) for k in ("x", "y", "width", "height"))
    except (TypeError, KeyError, ValueError):
        warnings.append("malformed bounding box, using zero box")
        return BoundingBox(0, 0, 0, 0)
    values = (x, y, width, height)
    if any(math.isnan(v) or math.isinf(v) for v in values) or width < 0 or height < 0:
        warnings.append("malformed bounding box, using zero box")
        return BoundingBox(0, 0, 0, 0)
    return BoundingBox(x, y, width, height)


def _fmt(value: float) -> str:
    rounded = round(value, 2)
    return str(int(rounded)) if float(rounded).is_integer() else str(rounded)


# ════════════════════════════════════════════════════════════
# High-level API
# ════════════════════════════════════════════════════════════

def build_forest(
    raw_roots: list,
    config,
    diagnostics: Diagnostics,
    abort_check: Optional[Callable[[], bool]] = None,
    naming_engine: Optional[NamingEngine] = None,
) -> AltForest:
    """Normalize, classify vectors and verify the forest (not yet sealed)."""
    normalizer = NodeNormalizer(diagnostics, naming_engine=naming_engine, abort_check=abort_check)
    forest = normalizer.normalize(raw_roots)
    VectorClassifier(config.icon_size_threshold).classify_forest(forest)
    forest.check_acyclic()
    return forest


def forest_to_dict(forest: AltForest) -> list:
    """JSON-friendly dump of the IR (debugging / ``preview --json``)."""
    return [_node_to_dict(root) for root in forest.roots]


def _node_to_dict(node: AltNode) -> dict:
    data = {}
    for f in fields(node):
        if f.name == "children":
            continue
        value = getattr(node, f.name)
        data[f.name] = _jsonable(value)
    data["children"] = [_node_to_dict(child) for child in node.children]
    return data


def _jsonable(value):
    if is_dataclass(value) and not isinstance(value, type):
        return _jsonable(asdict(value))
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


def save_ir(forest: AltForest, output_dir: str = ".figma-codegen") -> str:
    os.makedirs(output_dir, exist_ok=True)
    ir_path = os.path.join(output_dir, "ir.json")
    with open(ir_path, 'w', encoding='utf-8') as f:
        json.dump(forest_to_dict(forest), f, indent=2, ensure_ascii=False)
    return ir_path
