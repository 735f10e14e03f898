"""
Emission Engine — immutable fragments, backend contract, IR traversal.

Backends build one ``Fragment`` per node through pure ``with_*`` steps and
turn the fragment tree into text in ``render``. They read IR fields only
and never write to the IR.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Iterable, Optional

from .alt_nodes import VECTOR_KINDS, AltForest, AltNode, NodeKind
from .colors import ImagePaint, PaletteMatcher
from .diagnostics import ConversionError, Diagnostics
from .scale_matcher import match_named_scale, match_scale

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Fragment:
    element: str = ""
    node_id: Optional[str] = None
    args: tuple = ()        # positional / named constructor arguments
    props: tuple = ()       # (name, value) pairs, e.g. CSS properties
    modifiers: tuple = ()   # chained modifiers, outermost last
    classes: tuple = ()
    attrs: tuple = ()       # (name, value) markup attributes
    children: tuple = ()
    text: Optional[str] = None
    markup: Optional[str] = None
    comment: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not self.element and self.markup is None and self.text is None

    def prop(self, name: str, default=None):
        for key, value in self.props:
            if key == name:
                return value
        return default

    def with_prop(self, name: str, value) -> "Fragment":
        if value is None:
            return self
        kept = tuple((k, v) for k, v in self.props if k != name)
        return replace(self, props=kept + ((name, value),))

    def with_props(self, pairs: Iterable) -> "Fragment":
        fragment = self
        for name, value in pairs:
            fragment = fragment.with_prop(name, value)
        return fragment

    def without_prop(self, name: str) -> "Fragment":
        return replace(self, props=tuple((k, v) for k, v in self.props if k != name))

    def with_arg(self, name: Optional[str], value) -> "Fragment":
        if value is None:
            return self
        if name is not None:
            kept = tuple((k, v) for k, v in self.args if k != name)
            return replace(self, args=kept + ((name, value),))
        return replace(self, args=self.args + ((None, value),))

    def arg(self, name: str, default=None):
        for key, value in self.args:
            if key == name:
                return value
        return default

    def with_modifier(self, modifier: Optional[str]) -> "Fragment":
        if not modifier:
            return self
        return replace(self, modifiers=self.modifiers + (modifier,))

    def with_classes(self, *classes: str) -> "Fragment":
        added = tuple(c for c in classes if c and c not in self.classes)
        return replace(self, classes=self.classes + added)

    def with_attr(self, name: str, value) -> "Fragment":
        if value is None:
            return self
        kept = tuple((k, v) for k, v in self.attrs if k != name)
        return replace(self, attrs=kept + ((name, value),))

    def with_children(self, children: Iterable["Fragment"]) -> "Fragment":
        return replace(self, children=tuple(c for c in children if not c.is_empty))

    def with_element(self, element: str) -> "Fragment":
        return replace(self, element=element)

    def with_text(self, text: Optional[str]) -> "Fragment":
        return replace(self, text=text)

    def with_comment(self, comment: Optional[str]) -> "Fragment":
        return replace(self, comment=comment)

    def wrapped(self, element: str, **kwargs) -> "Fragment":
        """New fragment with this one as its only child."""
        return Fragment(element=element, node_id=self.node_id, children=(self,), **kwargs)


EMPTY = Fragment()


# ════════════════════════════════════════════════════════════
# Number / string formatting shared by all backends
# ════════════════════════════════════════════════════════════

def fmt(value: float, unit: str = "") -> str:
    """Round to 2 decimals; integral values print without a fraction."""
    rounded = round(float(value), 2)
    if rounded == 0:
        rounded = 0.0
    text = str(int(rounded)) if rounded.is_integer() else str(rounded)
    return f"{text}{unit}"


def fmt_float(value: float) -> str:
    """Like ``fmt`` but always a floating literal (``8.0``), for Dart/Swift."""
    rounded = round(float(value), 2)
    if rounded == 0:
        rounded = 0.0
    return f"{rounded:.1f}" if rounded.is_integer() else str(rounded)


def pad(depth: int, width: int = 2) -> str:
    return " " * (depth * width)


def quote_string(text: str, quote: str = '"') -> str:
    """String literal for C-like languages (Dart, Swift, Kotlin)."""
    escaped = (
        text.replace("\\", "\\\\")
        .replace(quote, f"\\{quote}")
        .replace("\n", "\\n")
        .replace("\t", "\\t")
        .replace("\r", "")
    )
    return f"{quote}{escaped}{quote}"


# ════════════════════════════════════════════════════════════
# Context & contract
# ════════════════════════════════════════════════════════════

@dataclass
class EmitContext:
    config: object
    diagnostics: Diagnostics
    forest: Optional[AltForest] = None
    _palettes: dict = field(default_factory=dict)

    def warn(self, message: str, node: Optional[AltNode] = None) -> None:
        self.diagnostics.warn(message, node)

    def info(self, message: str, node: Optional[AltNode] = None) -> None:
        self.diagnostics.info(message, node)

    def palette(self, key: str, palette: dict) -> PaletteMatcher:
        matcher = self._palettes.get(key)
        if matcher is None:
            matcher = PaletteMatcher(palette, self.config.palette_threshold)
            self._palettes[key] = matcher
        return matcher

    def round_value(self, value: float, kind: str, default_scale=None) -> float:
        """Snap to the configured scale for ``kind`` when rounding is on."""
        if not self.config.round_to_scale:
            return value
        scale = self.config.scale_for(kind, default_scale)
        if not scale:
            return value
        if isinstance(scale, dict):
            found = match_named_scale(value, scale, self.config.scale_threshold)
            return found[1] if found else value
        matched = match_scale(value, scale, self.config.scale_threshold)
        return value if matched is None else matched

    def parent_of(self, node: AltNode) -> Optional[AltNode]:
        if self.forest is None:
            return None
        return self.forest.store.parent_of(node)


class Backend:
    """Capability contract every backend implements."""

    name = ""

    def __init__(self, ctx: EmitContext):
        self.ctx = ctx
        self.config = ctx.config

    def emit_text(self, node: AltNode) -> Fragment:
        raise NotImplementedError

    def emit_vector(self, node: AltNode) -> Fragment:
        raise NotImplementedError

    def emit_container(self, node: AltNode, children: list) -> Fragment:
        raise NotImplementedError

    def render(self, fragment: Fragment, depth: int = 0) -> str:
        raise NotImplementedError

    def render_document(self, fragments: list) -> str:
        return "\n".join(self.render(f) for f in fragments if not f.is_empty)

    def layer_comment(self, node: AltNode) -> Optional[str]:
        return node.unique_name if self.config.show_layer_names else None


class EmissionEngine:
    """Depth-first, post-order traversal dispatching to one backend."""

    def __init__(self, backend: Backend):
        self.backend = backend
        self.ctx = backend.ctx

    def emit_forest(self, forest: AltForest) -> list:
        if not forest.sealed:
            raise ConversionError("emission requested on an IR that has not finished annotation")
        self.ctx.forest = forest
        return [self.emit(root) for root in forest.roots]

    def emit(self, node: AltNode) -> Fragment:
        config = self.ctx.config
        if node.can_flatten_to_vector and config.embed_vectors:
            if node.embedded_vector_markup is not None:
                return self.backend.emit_vector(node)
            if node.vector_export_failed:
                return EMPTY
        if node.kind == NodeKind.TEXT:
            return self.backend.emit_text(node)
        if node.kind in VECTOR_KINDS:
            self.ctx.info(f"vector '{node.unique_name}' rendered as a placeholder", node)
            return self.backend.emit_vector(node)
        children = [self.emit(child) for child in node.children]
        return self.backend.emit_container(node, [c for c in children if not c.is_empty])


# ════════════════════════════════════════════════════════════
# Helpers shared by the native backends
# ════════════════════════════════════════════════════════════

def top_fill(node: AltNode, ctx):
    """Topmost renderable fill; native backends draw a single background."""
    usable = []
    for paint in node.fills:
        if isinstance(paint, ImagePaint):
            ctx.warn(f"image fill on '{node.unique_name}' is not exported", node)
        else:
            usable.append(paint)
    if len(usable) > 1:
        ctx.warn(f"only the top fill of '{node.unique_name}' is kept", node)
    return usable[-1] if usable else None


def apply_case(text: str, case_transform: str) -> str:
    if case_transform == "UPPER":
        return text.upper()
    if case_transform == "LOWER":
        return text.lower()
    if case_transform == "TITLE":
        return " ".join(word[:1].upper() + word[1:] for word in text.split(" "))
    return text
