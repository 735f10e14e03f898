"""
Flutter backend — Dart widget tree.

Fragments are constructor calls: ``element`` is the widget, ``args`` its
(named) arguments and ``children`` its ``child`` / ``children``. Wrappers
(``Opacity``, ``Transform.rotate``, ``Expanded``, ``Positioned``) are added
outermost-last around the node's own widget.
"""

import math
from typing import Optional

from .alt_nodes import Align, AltNode, Direction, NodeKind, SizingMode
from .colors import GradientPaint, SolidPaint, argb_hex, primary_color
from .emission import Backend, Fragment, apply_case, fmt_float, pad, quote_string, top_fill
from .html_backend import first_stroke, flow_parent_layout, is_primary_axis, text_fill

MULTI_CHILD = {"Row", "Column", "Stack", "Wrap", "TextSpan"}

MAIN_AXIS = {
    Align.MIN: "MainAxisAlignment.start",
    Align.CENTER: "MainAxisAlignment.center",
    Align.MAX: "MainAxisAlignment.end",
    Align.SPACE_BETWEEN: "MainAxisAlignment.spaceBetween",
}
CROSS_AXIS = {
    Align.MIN: "CrossAxisAlignment.start",
    Align.CENTER: "CrossAxisAlignment.center",
    Align.MAX: "CrossAxisAlignment.end",
    Align.BASELINE: "CrossAxisAlignment.baseline",
}
WRAP_ALIGNMENT = {
    Align.MIN: "WrapAlignment.start",
    Align.CENTER: "WrapAlignment.center",
    Align.MAX: "WrapAlignment.end",
    Align.SPACE_BETWEEN: "WrapAlignment.spaceBetween",
}
WRAP_CROSS = {
    Align.MIN: "WrapCrossAlignment.start",
    Align.CENTER: "WrapCrossAlignment.center",
    Align.MAX: "WrapCrossAlignment.end",
}
TEXT_ALIGN = {"CENTER": "TextAlign.center", "RIGHT": "TextAlign.right", "JUSTIFIED": "TextAlign.justify"}
TEXT_DECORATION = {"UNDERLINE": "TextDecoration.underline", "STRIKETHROUGH": "TextDecoration.lineThrough"}


def dart_string(text: str) -> str:
    return quote_string(text, "'").replace("$", "\\$")


def dart_color(paint, ctx) -> Optional[str]:
    color = paint if hasattr(paint, "r") else primary_color(paint)
    if color is None:
        return None
    literal = f"Color(0x{argb_hex(color)})"
    binding = getattr(paint, "variable_binding", None)
    if ctx.config.use_color_variables and binding is not None:
        return f"{literal} /* {binding.name} */"
    return literal


def alignment(x: float, y: float) -> str:
    """Unit-square point ([0, 1]) → Flutter ``Alignment`` ([-1, 1])."""
    return f"Alignment({fmt_float(x * 2 - 1)}, {fmt_float(y * 2 - 1)})"


def _stops(paint: GradientPaint, ctx) -> tuple:
    colors = "[" + ", ".join(dart_color(s.color.with_alpha(s.opacity), ctx) for s in paint.stops) + "]"
    stops = "[" + ", ".join(fmt_float(s.offset) for s in paint.stops) + "]"
    return ("colors", colors), ("stops", stops)


def gradient_fragment(paint: GradientPaint, ctx) -> Fragment:
    if paint.kind == "linear":
        rad = math.radians(paint.angle)
        dx, dy = math.sin(rad), -math.cos(rad)
        fragment = Fragment(element="LinearGradient").with_arg(
            "begin", f"Alignment({fmt_float(-dx)}, {fmt_float(-dy)})"
        ).with_arg("end", f"Alignment({fmt_float(dx)}, {fmt_float(dy)})")
    elif paint.kind == "angular":
        fragment = Fragment(element="SweepGradient").with_arg("center", alignment(*paint.center)).with_arg(
            "startAngle", fmt_float(math.radians(paint.start_angle))
        )
    else:
        fragment = Fragment(element="RadialGradient").with_arg("center", alignment(*paint.center)).with_arg(
            "radius", fmt_float(max(paint.radius))
        )
    for name, value in _stops(paint, ctx):
        fragment = fragment.with_arg(name, value)
    return fragment


# ════════════════════════════════════════════════════════════
# Composition functions
# ════════════════════════════════════════════════════════════

def edge_insets(padding, ctx) -> Optional[str]:
    if padding.is_zero():
        return None
    top, right, bottom, left = (
        fmt_float(ctx.round_value(v, "spacing"))
        for v in (padding.top, padding.right, padding.bottom, padding.left)
    )
    if top == right == bottom == left:
        return f"EdgeInsets.all({top})"
    if top == bottom and left == right:
        return f"EdgeInsets.symmetric(horizontal: {left}, vertical: {top})"
    return f"EdgeInsets.fromLTRB({left}, {top}, {right}, {bottom})"


def border_radius(node: AltNode, ctx) -> Optional[str]:
    if node.kind == NodeKind.ELLIPSE or not any(node.corner_radii):
        return None
    values = [fmt_float(ctx.round_value(r, "radius")) for r in node.corner_radii]
    if len(set(values)) == 1:
        return f"BorderRadius.circular({values[0]})"
    corners = ", ".join(
        f"{name}: Radius.circular({value})"
        for name, value in zip(("topLeft", "topRight", "bottomRight", "bottomLeft"), values)
        if value != "0.0"
    )
    return f"BorderRadius.only({corners})"


def box_shadows(node: AltNode, ctx) -> Optional[tuple]:
    shadows = []
    for effect in node.effects:
        if effect.type == "DROP_SHADOW":
            shadow = Fragment(element="BoxShadow")
            if effect.color is not None:
                shadow = shadow.with_arg("color", dart_color(effect.color, ctx))
            shadow = (
                shadow.with_arg("offset", f"Offset({fmt_float(effect.offset_x)}, {fmt_float(effect.offset_y)})")
                .with_arg("blurRadius", fmt_float(effect.radius))
            )
            if effect.spread:
                shadow = shadow.with_arg("spreadRadius", fmt_float(effect.spread))
            shadows.append(shadow)
        elif effect.type == "INNER_SHADOW":
            ctx.warn(f"inner shadow on '{node.unique_name}' is not supported in Flutter", node)
        else:
            ctx.warn(f"blur on '{node.unique_name}' is not supported in Flutter", node)
    return tuple(shadows) or None


def box_decoration(node: AltNode, ctx) -> Optional[Fragment]:
    fragment = Fragment(element="BoxDecoration")
    fill = top_fill(node, ctx)
    if isinstance(fill, SolidPaint):
        fragment = fragment.with_arg("color", dart_color(fill, ctx))
    elif isinstance(fill, GradientPaint):
        fragment = fragment.with_arg("gradient", gradient_fragment(fill, ctx))
    stroke = first_stroke(node, ctx)
    if stroke is not None:
        fragment = fragment.with_arg(
            "border", f"Border.all(color: {dart_color(stroke, ctx)}, width: {fmt_float(node.stroke_weight)})"
        )
    if node.kind == NodeKind.ELLIPSE:
        fragment = fragment.with_arg("shape", "BoxShape.circle")
    fragment = fragment.with_arg("borderRadius", border_radius(node, ctx))
    fragment = fragment.with_arg("boxShadow", box_shadows(node, ctx))
    return fragment if fragment.args else None


def size_args(node: AltNode, ctx) -> list:
    layout = flow_parent_layout(node, ctx)
    args = []
    for axis, mode, value in (
        ("width", node.sizing.horizontal, node.geometry.width),
        ("height", node.sizing.vertical, node.geometry.height),
    ):
        if mode == SizingMode.FIXED:
            args.append((axis, fmt_float(ctx.round_value(value, "size"))))
        elif mode == SizingMode.FILL and layout is not None and not is_primary_axis(axis, layout):
            args.append((axis, "double.infinity"))
    return args


def with_wrappers(fragment: Fragment, node: AltNode, ctx) -> Fragment:
    """Opacity, rotation and parent-flow wrappers around the node's widget."""
    if node.opacity < 1:
        fragment = fragment.wrapped("Opacity", args=(("opacity", fmt_float(node.opacity)),))
    if node.geometry.rotation_degrees:
        angle = fmt_float(math.radians(node.geometry.rotation_degrees))
        fragment = fragment.wrapped("Transform.rotate", args=(("angle", angle),))
    parent = ctx.parent_of(node)
    if parent is None:
        return fragment
    if node.is_absolute:
        return fragment.wrapped("Positioned", args=(
            ("left", fmt_float(node.geometry.x)),
            ("top", fmt_float(node.geometry.y)),
        ))
    layout = flow_parent_layout(node, ctx)
    if layout is not None and not layout.wrap:
        fills_primary = (
            node.sizing.horizontal if layout.direction == Direction.ROW else node.sizing.vertical
        ) == SizingMode.FILL
        if fills_primary:
            return fragment.wrapped("Expanded")
    return fragment


# ════════════════════════════════════════════════════════════
# Backend
# ════════════════════════════════════════════════════════════

class FlutterBackend(Backend):
    name = "flutter"

    def _finish(self, fragment: Fragment, node: AltNode) -> Fragment:
        return with_wrappers(fragment, node, self.ctx).with_comment(self.layer_comment(node))

    def _node_for(self, fragment: Fragment) -> Optional[AltNode]:
        return self.ctx.forest.store.get(fragment.node_id) if self.ctx.forest else None

    # ─── Containers ───

    def emit_container(self, node: AltNode, children: list) -> Fragment:
        body = self._layout_widget(node, children)
        decoration = box_decoration(node, self.ctx)
        padding = edge_insets(node.layout.padding, self.ctx) if node.layout else None
        args = size_args(node, self.ctx)

        if decoration is None and padding is None:
            fragment = Fragment(element="SizedBox", node_id=node.id, args=tuple(args))
        else:
            fragment = Fragment(element="Container", node_id=node.id, args=tuple(args))
            fragment = fragment.with_arg("padding", padding).with_arg("decoration", decoration)
        if body is not None:
            fragment = fragment.with_children([body])

        if node.clips_content:
            clip = Fragment(element="ClipRRect", node_id=node.id)
            radius = border_radius(node, self.ctx)
            if radius is not None:
                clip = clip.with_arg("borderRadius", radius)
            elif node.kind == NodeKind.ELLIPSE:
                clip = clip.with_element("ClipOval")
            fragment = clip.with_children([fragment])
        return self._finish(fragment, node)

    def _layout_widget(self, node: AltNode, children: list) -> Optional[Fragment]:
        if not children:
            return None
        layout = node.layout
        if layout is None:
            return Fragment(element="Stack", node_id=node.id).with_children(children)

        flow, absolute = [], []
        for child in children:
            child_node = self._node_for(child)
            (absolute if child_node is not None and child_node.is_absolute else flow).append(child)

        widget = self._flow_widget(node, flow) if flow else None
        if not absolute:
            return widget
        stack = [widget] if widget is not None else []
        return Fragment(element="Stack", node_id=node.id).with_children(stack + absolute)

    def _flow_widget(self, node: AltNode, children: list) -> Fragment:
        layout = node.layout
        gap = layout.gap
        if gap < 0:
            self.ctx.warn(f"negative spacing {fmt_float(gap)} on '{node.unique_name}' is not supported in Flutter", node)
            gap = 0
        gap = self.ctx.round_value(gap, "spacing")

        if layout.wrap:
            fragment = Fragment(element="Wrap", node_id=node.id)
            if layout.direction == Direction.COLUMN:
                fragment = fragment.with_arg("direction", "Axis.vertical")
            if layout.primary_align != Align.MIN:
                fragment = fragment.with_arg("alignment", WRAP_ALIGNMENT[layout.primary_align])
            if layout.counter_align == Align.BASELINE:
                self.ctx.warn(f"baseline alignment on wrapping '{node.unique_name}' uses start", node)
            elif layout.counter_align != Align.MIN:
                fragment = fragment.with_arg("crossAxisAlignment", WRAP_CROSS[layout.counter_align])
            if gap:
                fragment = fragment.with_arg("spacing", fmt_float(gap))
            if layout.counter_gap > 0:
                counter = self.ctx.round_value(layout.counter_gap, "spacing")
                fragment = fragment.with_arg("runSpacing", fmt_float(counter))
            return fragment.with_children(children)

        element = "Row" if layout.direction == Direction.ROW else "Column"
        fragment = Fragment(element=element, node_id=node.id)
        if layout.primary_sizing == SizingMode.HUG:
            fragment = fragment.with_arg("mainAxisSize", "MainAxisSize.min")
        if layout.primary_align != Align.MIN:
            fragment = fragment.with_arg("mainAxisAlignment", MAIN_AXIS[layout.primary_align])
        fragment = fragment.with_arg("crossAxisAlignment", CROSS_AXIS[layout.counter_align])
        if layout.counter_align == Align.BASELINE:
            fragment = fragment.with_arg("textBaseline", "TextBaseline.alphabetic")

        if gap and layout.primary_align != Align.SPACE_BETWEEN:
            axis = "width" if layout.direction == Direction.ROW else "height"
            spacer = Fragment(element="SizedBox", args=((axis, fmt_float(gap)),))
            spaced = []
            for index, child in enumerate(children):
                if index:
                    spaced.append(spacer)
                spaced.append(child)
            children = spaced
        return fragment.with_children(children)

    # ─── Text ───

    def _text_style(self, node: AltNode, run) -> Fragment:
        style = Fragment(element="TextStyle").with_arg(
            "fontSize", fmt_float(self.ctx.round_value(run.font_size, "fontSize"))
        )
        if run.font_weight != 400:
            style = style.with_arg("fontWeight", f"FontWeight.w{int(run.font_weight)}")
        style = style.with_arg("fontFamily", dart_string(run.font_family))
        if run.italic:
            style = style.with_arg("fontStyle", "FontStyle.italic")
        fill = text_fill(node, run)
        if fill is not None:
            style = style.with_arg("color", dart_color(fill, self.ctx))
        style = style.with_arg("decoration", TEXT_DECORATION.get(run.decoration))
        if node.line_height and run.font_size:
            style = style.with_arg("height", fmt_float(node.line_height / run.font_size))
        if node.letter_spacing:
            style = style.with_arg("letterSpacing", fmt_float(node.letter_spacing))
        shadows = [e for e in node.effects if e.type == "DROP_SHADOW"]
        if shadows:
            style = style.with_arg("shadows", tuple(
                Fragment(element="Shadow", args=(
                    ("color", dart_color(e.color, self.ctx) if e.color is not None else "Colors.black26"),
                    ("offset", f"Offset({fmt_float(e.offset_x)}, {fmt_float(e.offset_y)})"),
                    ("blurRadius", fmt_float(e.radius)),
                ))
                for e in shadows
            ))
        return style

    def emit_text(self, node: AltNode) -> Fragment:
        for effect in node.effects:
            if effect.type != "DROP_SHADOW":
                self.ctx.warn(f"{effect.type.lower()} on text '{node.unique_name}' is not supported in Flutter", node)
        runs = node.text_runs
        if len(runs) <= 1:
            case = runs[0].case_transform if runs else "ORIGINAL"
            fragment = Fragment(element="Text", node_id=node.id).with_arg(
                None, dart_string(apply_case(node.characters, case))
            )
            if runs:
                fragment = fragment.with_arg("style", self._text_style(node, runs[0]))
        else:
            spans = [
                Fragment(element="TextSpan")
                .with_arg("text", dart_string(apply_case(run.characters, run.case_transform)))
                .with_arg("style", self._text_style(node, run))
                for run in runs
            ]
            fragment = Fragment(element="Text.rich", node_id=node.id).with_arg(
                None, Fragment(element="TextSpan").with_children(spans)
            )
        fragment = fragment.with_arg("textAlign", TEXT_ALIGN.get(node.text_align))

        args = size_args(node, self.ctx)
        if args:
            fragment = Fragment(element="SizedBox", node_id=node.id, args=tuple(args), children=(fragment,))
        return self._finish(fragment, node)

    # ─── Vectors ───

    def emit_vector(self, node: AltNode) -> Fragment:
        width = fmt_float(node.geometry.width)
        height = fmt_float(node.geometry.height)
        if node.embedded_vector_markup is not None:
            markup = node.embedded_vector_markup
            literal = f"r'''{markup}'''" if "'''" not in markup else dart_string(markup)
            fragment = Fragment(element="SvgPicture.string", node_id=node.id, args=(
                (None, literal), ("width", width), ("height", height),
            ))
            return self._finish(fragment, node)
        fragment = Fragment(element="SizedBox", node_id=node.id, args=(("width", width), ("height", height)))
        fragment = with_wrappers(fragment, node, self.ctx)
        return fragment.with_comment(f"vector: {node.unique_name}")

    # ─── Rendering ───

    def render(self, fragment: Fragment, depth: int = 0) -> str:
        if fragment.is_empty:
            return ""
        return pad(depth) + self._call(fragment, depth)

    def _call(self, fragment: Fragment, depth: int) -> str:
        prefix = f"/* {fragment.comment} */ " if fragment.comment else ""
        items = []
        for name, value in fragment.args:
            text = self._value(value, depth + 1)
            items.append(f"{name}: {text}" if name else text)
        if fragment.children:
            if fragment.element in MULTI_CHILD:
                inner = "".join(f"{self.render(child, depth + 2)},\n" for child in fragment.children)
                items.append(f"children: [\n{inner}{pad(depth + 1)}]")
            else:
                items.append(f"child: {self._call(fragment.children[0], depth + 1)}")
        inline = ", ".join(items)
        if not fragment.children and "\n" not in inline and len(inline) <= 60:
            return f"{prefix}{fragment.element}({inline})"
        body = "".join(f"{pad(depth + 1)}{item},\n" for item in items)
        return f"{prefix}{fragment.element}(\n{body}{pad(depth)})"

    def _value(self, value, depth: int) -> str:
        if isinstance(value, Fragment):
            return self._call(value, depth)
        if isinstance(value, tuple):
            inner = "".join(f"{pad(depth + 1)}{self._value(v, depth + 1)},\n" for v in value)
            return f"[\n{inner}{pad(depth)}]"
        return str(value)

    def render_document(self, fragments: list) -> str:
        roots = [f for f in fragments if not f.is_empty]
        if len(roots) > 1:
            return self._call(Fragment(element="Column", children=tuple(roots)), 0)
        return "\n".join(self.render(f) for f in roots)
