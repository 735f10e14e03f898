"""
Jetpack Compose backend — Kotlin composable tree.

Modifiers are kept innermost-last in Compose order (placement, drawing,
then padding) and rendered as one ``modifier = Modifier...`` chain.
"""

import math
import re
from typing import Optional

from .alt_nodes import Align, AltNode, Direction, NodeKind, SizingMode
from .colors import RGBA, GradientPaint, SolidPaint, argb_hex, primary_color
from .emission import Backend, Fragment, apply_case, fmt, pad, quote_string, top_fill
from .html_backend import first_stroke, flow_parent_layout, is_primary_axis, text_fill

INDENT = 4

FONT_WEIGHTS = {
    100: "FontWeight.Thin", 200: "FontWeight.ExtraLight", 300: "FontWeight.Light",
    400: "FontWeight.Normal", 500: "FontWeight.Medium", 600: "FontWeight.SemiBold",
    700: "FontWeight.Bold", 800: "FontWeight.ExtraBold", 900: "FontWeight.Black",
}
TEXT_ALIGN = {"CENTER": "TextAlign.Center", "RIGHT": "TextAlign.End", "JUSTIFIED": "TextAlign.Justify"}
TEXT_DECORATION = {"UNDERLINE": "TextDecoration.Underline", "STRIKETHROUGH": "TextDecoration.LineThrough"}

ROW_ARRANGEMENT = {Align.MIN: "Arrangement.Start", Align.CENTER: "Arrangement.Center", Align.MAX: "Arrangement.End"}
COLUMN_ARRANGEMENT = {Align.MIN: "Arrangement.Top", Align.CENTER: "Arrangement.Center", Align.MAX: "Arrangement.Bottom"}
ROW_SPACED_ALIGN = {Align.CENTER: "Alignment.CenterHorizontally", Align.MAX: "Alignment.End"}
COLUMN_SPACED_ALIGN = {Align.CENTER: "Alignment.CenterVertically", Align.MAX: "Alignment.Bottom"}
ROW_CROSS = {Align.MIN: "Alignment.Top", Align.CENTER: "Alignment.CenterVertically", Align.MAX: "Alignment.Bottom"}
COLUMN_CROSS = {Align.MIN: "Alignment.Start", Align.CENTER: "Alignment.CenterHorizontally", Align.MAX: "Alignment.End"}


def kotlin_string(text: str) -> str:
    return quote_string(text, '"').replace("$", "\\$")


def dp(value: float) -> str:
    return f"{fmt(value)}.dp"


def sp(value: float) -> str:
    return f"{fmt(value)}.sp"


def kfloat(value: float) -> str:
    return f"{fmt(value)}f"


def resource_name(name: str) -> str:
    snake = re.sub(r"(?<=[a-z0-9])([A-Z])", r"_\1", name)
    return re.sub(r"[^a-z0-9]+", "_", snake.lower()).strip("_") or "vector"


def compose_color(paint, ctx) -> Optional[str]:
    color = paint if isinstance(paint, RGBA) else primary_color(paint)
    if color is None:
        return None
    literal = f"Color(0x{argb_hex(color)})"
    binding = getattr(paint, "variable_binding", None)
    if ctx.config.use_color_variables and binding is not None:
        return f"{literal} /* {binding.name} */"
    return literal


def shape_expr(node: AltNode, ctx) -> Optional[str]:
    if node.kind == NodeKind.ELLIPSE:
        return "CircleShape"
    if not any(node.corner_radii):
        return None
    tl, tr, br, bl = (ctx.round_value(r, "radius") for r in node.corner_radii)
    if tl == tr == br == bl:
        return f"RoundedCornerShape({dp(tl)})"
    return (
        f"RoundedCornerShape(topStart = {dp(tl)}, topEnd = {dp(tr)}, "
        f"bottomEnd = {dp(br)}, bottomStart = {dp(bl)})"
    )


def brush_expr(paint: GradientPaint, node: AltNode, ctx) -> str:
    stops = ", ".join(
        f"{kfloat(s.offset)} to {compose_color(s.color.with_alpha(s.opacity), ctx)}" for s in paint.stops
    )
    width, height = node.geometry.width, node.geometry.height
    if paint.kind == "linear":
        rad = math.radians(paint.angle)
        dx, dy = math.sin(rad), -math.cos(rad)
        half = (abs(dx) * width + abs(dy) * height) / 2
        cx, cy = width / 2, height / 2
        start = f"Offset({kfloat(cx - dx * half)}, {kfloat(cy - dy * half)})"
        end = f"Offset({kfloat(cx + dx * half)}, {kfloat(cy + dy * half)})"
        return f"Brush.linearGradient({stops}, start = {start}, end = {end})"
    center = f"Offset({kfloat(paint.center[0] * width)}, {kfloat(paint.center[1] * height)})"
    if paint.kind == "angular":
        if paint.start_angle:
            ctx.info(f"sweep gradient start angle on '{node.unique_name}' is not supported in Compose", node)
        return f"Brush.sweepGradient({stops}, center = {center})"
    radius = max(paint.radius[0] * width, paint.radius[1] * height)
    return f"Brush.radialGradient({stops}, center = {center}, radius = {kfloat(radius)})"


# ════════════════════════════════════════════════════════════
# Composition functions
# ════════════════════════════════════════════════════════════

def with_placement(fragment: Fragment, node: AltNode, ctx) -> Fragment:
    if node.is_absolute and ctx.parent_of(node) is not None:
        fragment = fragment.with_modifier(f".offset(x = {dp(node.geometry.x)}, y = {dp(node.geometry.y)})")
    if node.geometry.rotation_degrees:
        fragment = fragment.with_modifier(f".rotate({kfloat(node.geometry.rotation_degrees)})")
    if node.opacity < 1:
        fragment = fragment.with_modifier(f".alpha({kfloat(node.opacity)})")
    return fragment


def with_effects(fragment: Fragment, node: AltNode, ctx, shape: Optional[str]) -> Fragment:
    for effect in node.effects:
        if effect.type == "DROP_SHADOW":
            ctx.info(f"shadow on '{node.unique_name}' approximated as elevation", node)
            args = f"elevation = {dp(effect.radius)}" + (f", shape = {shape}" if shape else "")
            fragment = fragment.with_modifier(f".shadow({args})")
        elif effect.type == "LAYER_BLUR":
            fragment = fragment.with_modifier(f".blur({dp(effect.radius / 2)})")
        elif effect.type == "INNER_SHADOW":
            ctx.warn(f"inner shadow on '{node.unique_name}' is not supported in Compose", node)
        else:
            ctx.warn(f"background blur on '{node.unique_name}' is not supported in Compose", node)
    return fragment


def with_size(fragment: Fragment, node: AltNode, ctx) -> Fragment:
    layout = flow_parent_layout(node, ctx)
    for axis, mode, value in (
        ("width", node.sizing.horizontal, node.geometry.width),
        ("height", node.sizing.vertical, node.geometry.height),
    ):
        if mode == SizingMode.FIXED:
            fragment = fragment.with_modifier(f".{axis}({dp(ctx.round_value(value, 'size'))})")
        elif mode == SizingMode.FILL and layout is not None:
            if is_primary_axis(axis, layout) and not layout.wrap:
                fragment = fragment.with_modifier(".weight(1f)")
            else:
                fragment = fragment.with_modifier(f".fillMax{axis.capitalize()}()")
    return fragment


def with_surface(fragment: Fragment, node: AltNode, ctx, shape: Optional[str]) -> Fragment:
    if shape is not None and (node.clips_content or node.kind != NodeKind.CONTAINER):
        fragment = fragment.with_modifier(f".clip({shape})")
    elif node.clips_content:
        fragment = fragment.with_modifier(".clipToBounds()")

    shape_arg = f", {shape}" if shape else ""
    fill = top_fill(node, ctx)
    if isinstance(fill, SolidPaint):
        fragment = fragment.with_modifier(f".background({compose_color(fill, ctx)}{shape_arg})")
    elif isinstance(fill, GradientPaint):
        fragment = fragment.with_modifier(f".background({brush_expr(fill, node, ctx)}{shape_arg})")

    stroke = first_stroke(node, ctx)
    if stroke is not None:
        fragment = fragment.with_modifier(
            f".border({dp(node.stroke_weight)}, {compose_color(stroke, ctx)}{shape_arg})"
        )
    return fragment


def with_padding(fragment: Fragment, node: AltNode, ctx) -> Fragment:
    if node.layout is None or node.layout.padding.is_zero():
        return fragment
    p = node.layout.padding
    top, end, bottom, start = (ctx.round_value(v, "spacing") for v in (p.top, p.right, p.bottom, p.left))
    if top == end == bottom == start:
        return fragment.with_modifier(f".padding({dp(top)})")
    if top == bottom and start == end:
        return fragment.with_modifier(f".padding(horizontal = {dp(start)}, vertical = {dp(top)})")
    return fragment.with_modifier(
        f".padding(start = {dp(start)}, top = {dp(top)}, end = {dp(end)}, bottom = {dp(bottom)})"
    )


# ════════════════════════════════════════════════════════════
# Backend
# ════════════════════════════════════════════════════════════

class ComposeBackend(Backend):
    name = "compose"

    def __init__(self, ctx):
        super().__init__(ctx)
        self._reported_fonts: set = set()

    def _node_for(self, fragment: Fragment) -> Optional[AltNode]:
        return self.ctx.forest.store.get(fragment.node_id) if self.ctx.forest else None

    # ─── Containers ───

    def emit_container(self, node: AltNode, children: list) -> Fragment:
        shape = shape_expr(node, self.ctx)
        fragment = self._body(node, children)
        fragment = with_placement(fragment, node, self.ctx)
        fragment = with_effects(fragment, node, self.ctx, shape)
        fragment = with_size(fragment, node, self.ctx)
        fragment = with_surface(fragment, node, self.ctx, shape)
        fragment = with_padding(fragment, node, self.ctx)
        return fragment.with_comment(self.layer_comment(node))

    def _body(self, node: AltNode, children: list) -> Fragment:
        layout = node.layout
        if not children or layout is None:
            return Fragment(element="Box", node_id=node.id).with_children(children)

        flow, absolute = [], []
        for child in children:
            child_node = self._node_for(child)
            (absolute if child_node is not None and child_node.is_absolute else flow).append(child)
        if not flow:
            return Fragment(element="Box", node_id=node.id).with_children(absolute)
        container = self._flow(node, flow)
        if not absolute:
            return container
        inner = Fragment(element=container.element, args=container.args, children=container.children)
        return Fragment(element="Box", node_id=node.id).with_children([inner] + absolute)

    def _flow(self, node: AltNode, children: list) -> Fragment:
        layout = node.layout
        row = layout.direction == Direction.ROW
        gap = self.ctx.round_value(layout.gap, "spacing")

        if layout.wrap:
            fragment = Fragment(element="FlowRow" if row else "FlowColumn", node_id=node.id)
            if gap:
                fragment = fragment.with_arg(
                    "horizontalArrangement" if row else "verticalArrangement", f"Arrangement.spacedBy({dp(gap)})"
                )
            counter = self.ctx.round_value(layout.counter_gap, "spacing")
            if counter:
                fragment = fragment.with_arg(
                    "verticalArrangement" if row else "horizontalArrangement", f"Arrangement.spacedBy({dp(counter)})"
                )
            return fragment.with_children(children)

        fragment = Fragment(element="Row" if row else "Column", node_id=node.id)
        arrangement_name = "horizontalArrangement" if row else "verticalArrangement"
        if layout.primary_align == Align.SPACE_BETWEEN:
            arrangement = "Arrangement.SpaceBetween"
        elif gap:
            spaced_align = (ROW_SPACED_ALIGN if row else COLUMN_SPACED_ALIGN).get(layout.primary_align)
            arrangement = f"Arrangement.spacedBy({dp(gap)}" + (f", {spaced_align})" if spaced_align else ")")
        else:
            arrangement = (ROW_ARRANGEMENT if row else COLUMN_ARRANGEMENT)[layout.primary_align]
        if arrangement not in ("Arrangement.Start", "Arrangement.Top"):
            fragment = fragment.with_arg(arrangement_name, arrangement)

        counter_align = layout.counter_align
        if counter_align == Align.BASELINE:
            self.ctx.info(f"baseline alignment on '{node.unique_name}' approximated as start", node)
            counter_align = Align.MIN
        if counter_align != Align.MIN:
            fragment = fragment.with_arg(
                "verticalAlignment" if row else "horizontalAlignment",
                (ROW_CROSS if row else COLUMN_CROSS)[counter_align],
            )
        return fragment.with_children(children)

    # ─── Text ───

    def _font_family(self, node: AltNode, family: str) -> None:
        if family not in self._reported_fonts:
            self._reported_fonts.add(family)
            self.ctx.info(f"font family '{family}' must be provided as a FontFamily resource", node)

    def _weight(self, weight: int) -> str:
        return FONT_WEIGHTS.get(weight, f"FontWeight({int(weight)})")

    def _span_style(self, node: AltNode, run) -> str:
        parts = [f"fontSize = {sp(self.ctx.round_value(run.font_size, 'fontSize'))}"]
        if run.font_weight != 400:
            parts.append(f"fontWeight = {self._weight(run.font_weight)}")
        if run.italic:
            parts.append("fontStyle = FontStyle.Italic")
        fill = text_fill(node, run)
        if fill is not None and primary_color(fill) is not None:
            parts.append(f"color = {compose_color(fill, self.ctx)}")
        if run.decoration in TEXT_DECORATION:
            parts.append(f"textDecoration = {TEXT_DECORATION[run.decoration]}")
        return f"SpanStyle({', '.join(parts)})"

    def emit_text(self, node: AltNode) -> Fragment:
        runs = node.text_runs
        fragment = Fragment(element="Text", node_id=node.id)
        if len(runs) > 1:
            lines = ["buildAnnotatedString {"]
            for run in runs:
                self._font_family(node, run.font_family)
                text = kotlin_string(apply_case(run.characters, run.case_transform))
                lines.append(f"{pad(1, INDENT)}withStyle({self._span_style(node, run)}) {{ append({text}) }}")
            lines.append("}")
            fragment = fragment.with_arg("text", "\n".join(lines))
        else:
            run = runs[0] if runs else None
            case = run.case_transform if run else "ORIGINAL"
            fragment = fragment.with_arg("text", kotlin_string(apply_case(node.characters, case)))
            if run is not None:
                self._font_family(node, run.font_family)
                fill = text_fill(node, run)
                if fill is not None and primary_color(fill) is not None:
                    fragment = fragment.with_arg("color", compose_color(fill, self.ctx))
                fragment = fragment.with_arg("fontSize", sp(self.ctx.round_value(run.font_size, "fontSize")))
                if run.font_weight != 400:
                    fragment = fragment.with_arg("fontWeight", self._weight(run.font_weight))
                if run.italic:
                    fragment = fragment.with_arg("fontStyle", "FontStyle.Italic")
                fragment = fragment.with_arg("textDecoration", TEXT_DECORATION.get(run.decoration))
        fragment = fragment.with_arg("textAlign", TEXT_ALIGN.get(node.text_align))
        if node.line_height:
            fragment = fragment.with_arg("lineHeight", sp(node.line_height))
        if node.letter_spacing:
            fragment = fragment.with_arg("letterSpacing", sp(node.letter_spacing))

        shadows = [e for e in node.effects if e.type == "DROP_SHADOW"]
        if shadows:
            if len(shadows) > 1:
                self.ctx.warn(f"only the first text shadow on '{node.unique_name}' is kept", node)
            e = shadows[0]
            color = compose_color(e.color, self.ctx) if e.color is not None else "Color(0x40000000)"
            fragment = fragment.with_arg(
                "style",
                f"TextStyle(shadow = Shadow(color = {color}, "
                f"offset = Offset({kfloat(e.offset_x)}, {kfloat(e.offset_y)}), blurRadius = {kfloat(e.radius)}))",
            )
        for effect in node.effects:
            if effect.type != "DROP_SHADOW":
                self.ctx.warn(f"{effect.type.lower()} on text '{node.unique_name}' is not supported in Compose", node)

        fragment = with_placement(fragment, node, self.ctx)
        fragment = with_size(fragment, node, self.ctx)
        return fragment.with_comment(self.layer_comment(node))

    # ─── Vectors ───

    def emit_vector(self, node: AltNode) -> Fragment:
        size = f".size({dp(node.geometry.width)}, {dp(node.geometry.height)})"
        if node.embedded_vector_markup is not None:
            self.ctx.warn(
                f"inline vector markup is not supported in Compose, '{node.unique_name}' "
                f"references a drawable resource instead",
                node,
            )
            fragment = Fragment(element="Image", node_id=node.id, args=(
                ("painter", f"painterResource(id = R.drawable.{resource_name(node.unique_name)})"),
                ("contentDescription", kotlin_string(node.unique_name)),
            ))
            fragment = with_placement(fragment, node, self.ctx).with_modifier(size)
            return fragment.with_comment(self.layer_comment(node))
        fragment = Fragment(element="Box", node_id=node.id)
        fragment = with_placement(fragment, node, self.ctx).with_modifier(size)
        return fragment.with_comment(f"vector: {node.unique_name}")

    # ─── Rendering ───

    def render(self, fragment: Fragment, depth: int = 0) -> str:
        if fragment.is_empty:
            return ""
        indent = pad(depth, INDENT)
        lines = []
        if fragment.comment:
            lines.append(f"{indent}// {fragment.comment}")
        if fragment.markup is not None:
            lines.extend(indent + line for line in fragment.markup.splitlines())
            return "\n".join(lines)
        lines.append(indent + self._call(fragment, depth))
        return "\n".join(lines)

    def _call(self, fragment: Fragment, depth: int) -> str:
        items = []
        for name, value in fragment.args:
            text = str(value).replace("\n", "\n" + pad(depth + 1, INDENT))
            items.append(f"{name} = {text}" if name else text)
        if fragment.modifiers:
            chain = "".join(f"\n{pad(depth + 2, INDENT)}{m}" for m in fragment.modifiers)
            if len(fragment.modifiers) == 1:
                chain = fragment.modifiers[0]
            items.append(f"modifier = Modifier{chain}")

        inline = ", ".join(items)
        if not items:
            head = fragment.element if fragment.children else f"{fragment.element}()"
        elif "\n" not in inline and len(inline) <= 60:
            head = f"{fragment.element}({inline})"
        else:
            body = "".join(f"{pad(depth + 1, INDENT)}{item},\n" for item in items)
            head = f"{fragment.element}(\n{body}{pad(depth, INDENT)})"
        if not fragment.children:
            return head
        inner = "\n".join(self.render(child, depth + 1) for child in fragment.children)
        return f"{head} {{\n{inner}\n{pad(depth, INDENT)}}}"

    def render_document(self, fragments: list) -> str:
        roots = [f for f in fragments if not f.is_empty]
        if len(roots) > 1:
            body = "\n".join(self.render(f, 1) for f in roots)
            return f"Column {{\n{body}\n}}"
        return "\n".join(self.render(f) for f in roots)
