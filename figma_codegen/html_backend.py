"""
HTML / JSX backend — markup with inline CSS.

``html_mode == "jsx"`` switches attribute and style syntax to React's
(``className``, ``style={{...}}``) and rewrites embedded SVG attributes.
"""

import html
import json
import re
from typing import Optional

from .alt_nodes import Align, AltNode, Direction, NodeKind, SizingMode
from .colors import GradientPaint, ImagePaint, SolidPaint, css_color, css_gradient, css_rgba, primary_color
from .emission import Backend, Fragment, fmt, pad

JUSTIFY_CONTENT = {
    Align.MIN: "flex-start",
    Align.CENTER: "center",
    Align.MAX: "flex-end",
    Align.SPACE_BETWEEN: "space-between",
}
ALIGN_ITEMS = {
    Align.MIN: "flex-start",
    Align.CENTER: "center",
    Align.MAX: "flex-end",
    Align.BASELINE: "baseline",
}
TEXT_ALIGN = {"LEFT": "left", "CENTER": "center", "RIGHT": "right", "JUSTIFIED": "justify"}
TEXT_TRANSFORM = {"UPPER": "uppercase", "LOWER": "lowercase", "TITLE": "capitalize"}
TEXT_DECORATION = {"UNDERLINE": "underline", "STRIKETHROUGH": "line-through"}


# ════════════════════════════════════════════════════════════
# Shared IR readers (also used by the tailwind backend)
# ════════════════════════════════════════════════════════════

def flow_parent_layout(node: AltNode, ctx):
    """Parent's LayoutDescriptor when ``node`` takes part in its flow."""
    parent = ctx.parent_of(node)
    if parent is None or parent.layout is None or node.is_absolute:
        return None
    return parent.layout


def is_primary_axis(axis: str, layout) -> bool:
    return (axis == "width") == (layout.direction == Direction.ROW)


def needs_relative(node: AltNode) -> bool:
    if node.is_absolute:
        return False
    if node.layout is None:
        return bool(node.children)
    return node.layout.has_absolute_children


def first_stroke(node: AltNode, ctx) -> Optional[object]:
    if not node.strokes or node.stroke_weight <= 0:
        return None
    if len(node.strokes) > 1:
        ctx.warn(f"only the first of {len(node.strokes)} strokes on '{node.unique_name}' is kept", node)
    stroke = node.strokes[0]
    if isinstance(stroke, GradientPaint):
        ctx.warn(f"gradient stroke on '{node.unique_name}' approximated by its first stop", node)
    elif isinstance(stroke, ImagePaint):
        ctx.warn(f"image stroke on '{node.unique_name}' is not supported", node)
        return None
    return stroke


def text_fill(node: AltNode, run) -> Optional[object]:
    return run.fill if run.fill is not None else (node.fills[0] if node.fills else None)


# ════════════════════════════════════════════════════════════
# Composition functions
# ════════════════════════════════════════════════════════════

def with_size_styles(fragment: Fragment, node: AltNode, ctx) -> Fragment:
    layout = flow_parent_layout(node, ctx)
    for axis, mode, value in (
        ("width", node.sizing.horizontal, node.geometry.width),
        ("height", node.sizing.vertical, node.geometry.height),
    ):
        if mode == SizingMode.FIXED:
            fragment = fragment.with_prop(axis, fmt(ctx.round_value(value, "size"), "px"))
        elif mode == SizingMode.FILL and layout is not None:
            if is_primary_axis(axis, layout):
                fragment = fragment.with_prop("flex", "1 1 0")
            else:
                fragment = fragment.with_prop("align-self", "stretch")
    return fragment


def with_position_styles(fragment: Fragment, node: AltNode, ctx) -> Fragment:
    if node.is_absolute:
        fragment = fragment.with_props((
            ("position", "absolute"),
            ("left", fmt(node.geometry.x, "px")),
            ("top", fmt(node.geometry.y, "px")),
        ))
    elif needs_relative(node):
        fragment = fragment.with_prop("position", "relative")
    if node.geometry.rotation_degrees:
        fragment = fragment.with_prop("transform", f"rotate({fmt(node.geometry.rotation_degrees)}deg)")
    return fragment


def with_layout_styles(fragment: Fragment, node: AltNode, ctx) -> Fragment:
    layout = node.layout
    if layout is None:
        return fragment
    fragment = fragment.with_props((
        ("display", "flex"),
        ("flex-direction", "row" if layout.direction == Direction.ROW else "column"),
    ))
    if layout.primary_align != Align.MIN:
        fragment = fragment.with_prop("justify-content", JUSTIFY_CONTENT[layout.primary_align])
    fragment = fragment.with_prop("align-items", ALIGN_ITEMS[layout.counter_align])
    if layout.wrap:
        fragment = fragment.with_prop("flex-wrap", "wrap")

    gap = _gap(layout.gap, node, ctx)
    counter_gap = _gap(layout.counter_gap, node, ctx) if layout.wrap else None
    if layout.primary_align == Align.SPACE_BETWEEN:
        gap = None
    if counter_gap is not None and counter_gap != gap:
        row_gap, column_gap = (counter_gap, gap) if layout.direction == Direction.ROW else (gap, counter_gap)
        fragment = fragment.with_props((("row-gap", row_gap), ("column-gap", column_gap)))
    elif gap is not None:
        fragment = fragment.with_prop("gap", gap)

    padding = layout.padding
    if not padding.is_zero():
        values = [fmt(ctx.round_value(v, "spacing"), "px")
                  for v in (padding.top, padding.right, padding.bottom, padding.left)]
        if len(set(values)) == 1:
            values = values[:1]
        elif values[0] == values[2] and values[1] == values[3]:
            values = values[:2]
        fragment = fragment.with_prop("padding", " ".join(values))
    return fragment


def _gap(value: float, node: AltNode, ctx) -> Optional[str]:
    if value < 0:
        ctx.warn(f"negative spacing {fmt(value)} on '{node.unique_name}' is not supported in CSS gap", node)
        return None
    if value == 0:
        return None
    return fmt(ctx.round_value(value, "spacing"), "px")


def background_props(node: AltNode, ctx) -> list:
    use_vars = ctx.config.use_color_variables
    layers = []
    # IR fills are bottom-first; CSS background layers are top-first.
    for paint in reversed(node.fills):
        if isinstance(paint, SolidPaint):
            layers.append(("solid", css_color(paint, use_vars)))
        elif isinstance(paint, GradientPaint):
            layers.append(("gradient", css_gradient(paint)))
        else:
            ctx.warn(f"image fill on '{node.unique_name}' is not exported", node)
    if not layers:
        return []
    if len(layers) == 1:
        kind, value = layers[0]
        return [("background-color" if kind == "solid" else "background", value)]
    rendered = [value if kind == "gradient" else f"linear-gradient({value}, {value})" for kind, value in layers]
    return [("background", ", ".join(rendered))]


def radius_value(node: AltNode, ctx) -> Optional[str]:
    if node.kind == NodeKind.ELLIPSE:
        return "50%"
    if not any(node.corner_radii):
        return None
    values = [fmt(ctx.round_value(r, "radius"), "px") for r in node.corner_radii]
    return values[0] if len(set(values)) == 1 else " ".join(values)


def shadow_value(effect, text: bool = False) -> str:
    color = css_rgba(effect.color) if effect.color is not None else "rgba(0, 0, 0, 0.25)"
    parts = [fmt(effect.offset_x, "px"), fmt(effect.offset_y, "px"), fmt(effect.radius, "px")]
    if not text:
        parts.append(fmt(effect.spread, "px"))
    prefix = "inset " if effect.type == "INNER_SHADOW" else ""
    return f"{prefix}{' '.join(parts)} {color}"


def with_effect_styles(fragment: Fragment, node: AltNode, ctx) -> Fragment:
    is_text = node.kind == NodeKind.TEXT
    shadows = []
    for effect in node.effects:
        if effect.type == "INNER_SHADOW" and is_text:
            ctx.warn(f"inner shadow on text '{node.unique_name}' is not supported", node)
        elif effect.is_shadow:
            shadows.append(shadow_value(effect, text=is_text))
        elif effect.type == "LAYER_BLUR":
            fragment = fragment.with_prop("filter", f"blur({fmt(effect.radius / 2, 'px')})")
        elif effect.type == "BACKGROUND_BLUR":
            fragment = fragment.with_prop("backdrop-filter", f"blur({fmt(effect.radius / 2, 'px')})")
    if shadows:
        fragment = fragment.with_prop("text-shadow" if is_text else "box-shadow", ", ".join(shadows))
    return fragment


def with_shape_styles(fragment: Fragment, node: AltNode, ctx) -> Fragment:
    if node.kind != NodeKind.TEXT:
        fragment = fragment.with_props(background_props(node, ctx))
        stroke = first_stroke(node, ctx)
        if stroke is not None:
            color = css_color(stroke, ctx.config.use_color_variables)
            fragment = fragment.with_props((
                ("border", f"{fmt(node.stroke_weight, 'px')} solid {color}"),
                ("box-sizing", "border-box"),
            ))
        fragment = fragment.with_prop("border-radius", radius_value(node, ctx))
        if node.clips_content:
            fragment = fragment.with_prop("overflow", "hidden")
    if node.opacity < 1:
        fragment = fragment.with_prop("opacity", fmt(node.opacity))
    return with_effect_styles(fragment, node, ctx)


def with_text_styles(fragment: Fragment, node: AltNode, run, ctx, include_block: bool = True) -> Fragment:
    fragment = fragment.with_props((
        ("font-size", fmt(ctx.round_value(run.font_size, "fontSize"), "px")),
        ("font-family", f"'{run.font_family}'"),
        ("font-weight", str(run.font_weight)),
    ))
    if run.italic:
        fragment = fragment.with_prop("font-style", "italic")
    fill = text_fill(node, run)
    if fill is not None and primary_color(fill) is not None:
        fragment = fragment.with_prop("color", css_color(fill, ctx.config.use_color_variables))
    fragment = fragment.with_prop("text-decoration", TEXT_DECORATION.get(run.decoration))
    fragment = fragment.with_prop("text-transform", TEXT_TRANSFORM.get(run.case_transform))
    if include_block:
        fragment = with_text_block_styles(fragment, node, ctx)
    return fragment


def with_text_block_styles(fragment: Fragment, node: AltNode, ctx) -> Fragment:
    fragment = fragment.with_prop("margin", "0")
    if node.text_align != "LEFT":
        fragment = fragment.with_prop("text-align", TEXT_ALIGN.get(node.text_align, "left"))
    if node.line_height:
        fragment = fragment.with_prop("line-height", fmt(node.line_height, "px"))
    if node.letter_spacing:
        fragment = fragment.with_prop("letter-spacing", fmt(node.letter_spacing, "px"))
    if "\n" in node.characters:
        fragment = fragment.with_prop("white-space", "pre-wrap")
    return fragment


# ════════════════════════════════════════════════════════════
# JSX helpers
# ════════════════════════════════════════════════════════════

_SVG_DASHED_ATTR = re.compile(r"(\s)([a-z]+(?:[-:][a-z]+)+)=")


def camel_case(name: str) -> str:
    head, *rest = re.split(r"[-:]", name)
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


def svg_to_jsx(markup: str) -> str:
    def repl(match):
        name = match.group(2)
        if name.startswith(("data-", "aria-")):
            return match.group(0)
        return f"{match.group(1)}{camel_case(name)}="

    markup = re.sub(r"(\s)class=", r"\1className=", markup)
    return _SVG_DASHED_ATTR.sub(repl, markup)


# ════════════════════════════════════════════════════════════
# Backend
# ════════════════════════════════════════════════════════════

class HtmlBackend(Backend):
    name = "html"

    @property
    def jsx(self) -> bool:
        return self.config.html_mode == "jsx"

    def _base(self, node: AltNode, element: str = "div") -> Fragment:
        fragment = Fragment(element=element, node_id=node.id)
        if self.config.show_layer_names:
            fragment = fragment.with_attr("data-layer", node.unique_name)
        return fragment

    def emit_container(self, node: AltNode, children: list) -> Fragment:
        fragment = self._base(node)
        fragment = with_size_styles(fragment, node, self.ctx)
        fragment = with_position_styles(fragment, node, self.ctx)
        fragment = with_layout_styles(fragment, node, self.ctx)
        fragment = with_shape_styles(fragment, node, self.ctx)
        return fragment.with_children(children)

    def emit_text(self, node: AltNode) -> Fragment:
        fragment = self._base(node, "p")
        fragment = with_size_styles(fragment, node, self.ctx)
        fragment = with_position_styles(fragment, node, self.ctx)
        fragment = with_shape_styles(fragment, node, self.ctx)
        runs = node.text_runs
        if len(runs) <= 1:
            run = runs[0] if runs else None
            if run is not None:
                fragment = with_text_styles(fragment, node, run, self.ctx)
            return fragment.with_text(node.characters)
        fragment = with_text_block_styles(fragment, node, self.ctx)
        spans = [
            with_text_styles(Fragment(element="span", node_id=node.id), node, run, self.ctx, include_block=False)
            .with_text(run.characters)
            for run in runs
        ]
        return fragment.with_children(spans)

    def emit_vector(self, node: AltNode) -> Fragment:
        fragment = self._base(node)
        fragment = fragment.with_props((
            ("width", fmt(node.geometry.width, "px")),
            ("height", fmt(node.geometry.height, "px")),
        ))
        fragment = with_position_styles(fragment, node, self.ctx)
        if node.opacity < 1:
            fragment = fragment.with_prop("opacity", fmt(node.opacity))
        if node.embedded_vector_markup is not None:
            markup = node.embedded_vector_markup
            return Fragment(
                element=fragment.element, node_id=node.id, props=fragment.props, attrs=fragment.attrs,
                markup=svg_to_jsx(markup) if self.jsx else markup,
            )
        return fragment.with_comment(f"vector: {node.unique_name}")

    # ─── Rendering ───

    def render(self, fragment: Fragment, depth: int = 0) -> str:
        if fragment.is_empty:
            return ""
        indent = pad(depth)
        open_tag = self._open_tag(fragment)
        lines = []
        if fragment.comment:
            lines.append(indent + self._comment(fragment.comment))
        if fragment.markup is not None:
            lines.append(f"{indent}<{open_tag}>")
            lines.extend(pad(depth + 1) + line for line in fragment.markup.splitlines())
            lines.append(f"{indent}</{fragment.element}>")
        elif fragment.children and all(c.text is not None and not c.children for c in fragment.children):
            # Inline runs: whitespace between spans would render as spaces.
            inner = "".join(
                f"<{self._open_tag(c)}>{self._text(c.text)}</{c.element}>" for c in fragment.children
            )
            lines.append(f"{indent}<{open_tag}>{inner}</{fragment.element}>")
        elif fragment.children:
            lines.append(f"{indent}<{open_tag}>")
            lines.extend(self.render(child, depth + 1) for child in fragment.children)
            lines.append(f"{indent}</{fragment.element}>")
        elif fragment.text is not None:
            lines.append(f"{indent}<{open_tag}>{self._text(fragment.text)}</{fragment.element}>")
        elif self.jsx:
            lines.append(f"{indent}<{open_tag} />")
        else:
            lines.append(f"{indent}<{open_tag}></{fragment.element}>")
        return "\n".join(lines)

    def render_document(self, fragments: list) -> str:
        rendered = [self.render(f) for f in fragments if not f.is_empty]
        if self.jsx and len(rendered) > 1:
            body = "\n".join(pad(1) + line for block in rendered for line in block.splitlines())
            return f"<>\n{body}\n</>"
        return "\n".join(rendered)

    def _open_tag(self, fragment: Fragment) -> str:
        parts = [fragment.element]
        if fragment.classes:
            attr = "className" if self.jsx else "class"
            parts.append(f'{attr}="{" ".join(fragment.classes)}"')
        if fragment.props:
            parts.append(self._style_attr(fragment.props))
        for name, value in fragment.attrs:
            parts.append(f'{name}="{html.escape(str(value), quote=True)}"')
        return " ".join(parts)

    def _style_attr(self, props: tuple) -> str:
        if self.jsx:
            body = ", ".join(f"{camel_case(k)}: {json.dumps(str(v), ensure_ascii=False)}" for k, v in props)
            return f"style={{{{{body}}}}}"
        body = "; ".join(f"{k}: {v}" for k, v in props)
        escaped = html.escape(body, quote=False).replace('"', "&quot;")
        return f'style="{escaped}"'

    def _text(self, text: str) -> str:
        if self.jsx:
            if re.search(r"[{}<>\"'\n]", text):
                return "{" + json.dumps(text, ensure_ascii=False) + "}"
            return text
        return html.escape(text, quote=False)

    def _comment(self, comment: str) -> str:
        if self.jsx:
            return f"{{/* {comment.replace('*/', '* /')} */}}"
        return f"<!-- {comment.replace('--', '- -')} -->"
