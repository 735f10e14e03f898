"""
SwiftUI backend — view tree with modifier chains.

``element``/``args`` form the view initializer, ``children`` the view
builder body and ``modifiers`` the chain, innermost first. Raw view
expressions (``Color.clear``, concatenated ``Text``) travel in ``markup``.
"""

import math
from typing import Optional

from .alt_nodes import Align, AltNode, Direction, NodeKind, SizingMode
from .colors import GradientPaint, RGBA, SolidPaint, primary_color
from .emission import Backend, Fragment, apply_case, fmt, pad, quote_string, top_fill
from .html_backend import first_stroke, flow_parent_layout, text_fill

INDENT = 4

VSTACK_ALIGN = {Align.MIN: ".leading", Align.CENTER: ".center", Align.MAX: ".trailing", Align.BASELINE: ".leading"}
HSTACK_ALIGN = {Align.MIN: ".top", Align.CENTER: ".center", Align.MAX: ".bottom", Align.BASELINE: ".firstTextBaseline"}
TEXT_ALIGN = {"CENTER": ".center", "RIGHT": ".trailing"}
FONT_WEIGHTS = {
    100: ".ultraLight", 200: ".thin", 300: ".light", 400: ".regular", 500: ".medium",
    600: ".semibold", 700: ".bold", 800: ".heavy", 900: ".black",
}
SYSTEM_FONTS = {"SF Pro", "SF Pro Text", "SF Pro Display", ".SF NS", "System"}


def swift_string(text: str) -> str:
    return quote_string(text, '"')


def swift_color(paint, ctx) -> Optional[str]:
    color = paint if isinstance(paint, RGBA) else primary_color(paint)
    if color is None:
        return None
    binding = getattr(paint, "variable_binding", None)
    if ctx.config.use_color_variables and binding is not None:
        return f"Color({swift_string(binding.name)})"
    literal = f"Color(red: {fmt(color.r)}, green: {fmt(color.g)}, blue: {fmt(color.b)})"
    if color.a < 1:
        literal += f".opacity({fmt(color.a)})"
    return literal


def unit_point(x: float, y: float) -> str:
    return f"UnitPoint(x: {fmt(x)}, y: {fmt(y)})"


def gradient_view(paint: GradientPaint, node: AltNode, ctx) -> str:
    stops = ", ".join(
        f".init(color: {swift_color(s.color.with_alpha(s.opacity), ctx)}, location: {fmt(s.offset)})"
        for s in paint.stops
    )
    gradient = f"Gradient(stops: [{stops}])"
    if paint.kind == "linear":
        rad = math.radians(paint.angle)
        dx, dy = math.sin(rad) / 2, -math.cos(rad) / 2
        start = unit_point(0.5 - dx, 0.5 - dy)
        end = unit_point(0.5 + dx, 0.5 + dy)
        return f"LinearGradient(gradient: {gradient}, startPoint: {start}, endPoint: {end})"
    if paint.kind == "angular":
        return (
            f"AngularGradient(gradient: {gradient}, center: {unit_point(*paint.center)}, "
            f"angle: .degrees({fmt(paint.start_angle)}))"
        )
    radius = max(paint.radius[0] * node.geometry.width, paint.radius[1] * node.geometry.height)
    return (
        f"RadialGradient(gradient: {gradient}, center: {unit_point(*paint.center)}, "
        f"startRadius: 0, endRadius: {fmt(radius)})"
    )


def shape_view(node: AltNode, ctx) -> Optional[str]:
    if node.kind == NodeKind.ELLIPSE:
        return "Ellipse()"
    if not any(node.corner_radii):
        return None
    tl, tr, br, bl = (fmt(ctx.round_value(r, "radius")) for r in node.corner_radii)
    if tl == tr == br == bl:
        return f"RoundedRectangle(cornerRadius: {tl})"
    return (
        f"UnevenRoundedRectangle(topLeadingRadius: {tl}, bottomLeadingRadius: {bl}, "
        f"bottomTrailingRadius: {br}, topTrailingRadius: {tr})"
    )


# ════════════════════════════════════════════════════════════
# Composition functions
# ════════════════════════════════════════════════════════════

def with_padding(fragment: Fragment, node: AltNode, ctx) -> Fragment:
    if node.layout is None or node.layout.padding.is_zero():
        return fragment
    p = node.layout.padding
    top, right, bottom, left = (fmt(ctx.round_value(v, "spacing")) for v in (p.top, p.right, p.bottom, p.left))
    if top == right == bottom == left:
        return fragment.with_modifier(f".padding({top})")
    if top == bottom and left == right:
        return fragment.with_modifier(f".padding(.horizontal, {left})").with_modifier(f".padding(.vertical, {top})")
    return fragment.with_modifier(
        f".padding(EdgeInsets(top: {top}, leading: {left}, bottom: {bottom}, trailing: {right}))"
    )


def with_frame(fragment: Fragment, node: AltNode, ctx) -> Fragment:
    layout = flow_parent_layout(node, ctx)
    fixed, fill = [], []
    for axis, mode, value in (
        ("width", node.sizing.horizontal, node.geometry.width),
        ("height", node.sizing.vertical, node.geometry.height),
    ):
        if mode == SizingMode.FIXED:
            fixed.append(f"{axis}: {fmt(ctx.round_value(value, 'size'))}")
        elif mode == SizingMode.FILL and layout is not None:
            fill.append(f"max{axis.capitalize()}: .infinity")
    if fixed:
        fragment = fragment.with_modifier(f".frame({', '.join(fixed)})")
    if fill:
        fragment = fragment.with_modifier(f".frame({', '.join(fill)})")
    return fragment


def with_shape_modifiers(fragment: Fragment, node: AltNode, ctx) -> Fragment:
    fill = top_fill(node, ctx)
    if isinstance(fill, SolidPaint):
        fragment = fragment.with_modifier(f".background({swift_color(fill, ctx)})")
    elif isinstance(fill, GradientPaint):
        fragment = fragment.with_modifier(f".background({gradient_view(fill, node, ctx)})")

    shape = shape_view(node, ctx)
    if shape is not None:
        fragment = fragment.with_modifier(f".clipShape({shape})")
    elif node.clips_content:
        fragment = fragment.with_modifier(".clipped()")

    stroke = first_stroke(node, ctx)
    if stroke is not None:
        outline = shape or "Rectangle()"
        fragment = fragment.with_modifier(
            f".overlay({outline}.stroke({swift_color(stroke, ctx)}, lineWidth: {fmt(node.stroke_weight)}))"
        )
    return fragment


def with_effects(fragment: Fragment, node: AltNode, ctx) -> Fragment:
    for effect in node.effects:
        if effect.type == "DROP_SHADOW":
            color = swift_color(effect.color, ctx) if effect.color is not None else "Color.black.opacity(0.25)"
            fragment = fragment.with_modifier(
                f".shadow(color: {color}, radius: {fmt(effect.radius / 2)}, "
                f"x: {fmt(effect.offset_x)}, y: {fmt(effect.offset_y)})"
            )
        elif effect.type == "LAYER_BLUR":
            fragment = fragment.with_modifier(f".blur(radius: {fmt(effect.radius / 2)})")
        elif effect.type == "INNER_SHADOW":
            ctx.warn(f"inner shadow on '{node.unique_name}' is not supported in SwiftUI", node)
        else:
            ctx.warn(f"background blur on '{node.unique_name}' is not supported in SwiftUI", node)
    return fragment


def with_placement(fragment: Fragment, node: AltNode, ctx) -> Fragment:
    if node.opacity < 1:
        fragment = fragment.with_modifier(f".opacity({fmt(node.opacity)})")
    if node.geometry.rotation_degrees:
        fragment = fragment.with_modifier(f".rotationEffect(.degrees({fmt(node.geometry.rotation_degrees)}))")
    if node.is_absolute and ctx.parent_of(node) is not None:
        fragment = fragment.with_modifier(f".offset(x: {fmt(node.geometry.x)}, y: {fmt(node.geometry.y)})")
    return fragment


# ════════════════════════════════════════════════════════════
# Backend
# ════════════════════════════════════════════════════════════

class SwiftUIBackend(Backend):
    name = "swiftui"

    def _node_for(self, fragment: Fragment) -> Optional[AltNode]:
        return self.ctx.forest.store.get(fragment.node_id) if self.ctx.forest else None

    def emit_container(self, node: AltNode, children: list) -> Fragment:
        fragment = self._body(node, children)
        fragment = with_padding(fragment, node, self.ctx)
        fragment = with_frame(fragment, node, self.ctx)
        fragment = with_shape_modifiers(fragment, node, self.ctx)
        fragment = with_effects(fragment, node, self.ctx)
        fragment = with_placement(fragment, node, self.ctx)
        return fragment.with_comment(self.layer_comment(node))

    def _body(self, node: AltNode, children: list) -> Fragment:
        if not children:
            return Fragment(node_id=node.id, markup="Color.clear")
        layout = node.layout
        if layout is None:
            return self._zstack(node, children)

        flow, absolute = [], []
        for child in children:
            child_node = self._node_for(child)
            (absolute if child_node is not None and child_node.is_absolute else flow).append(child)
        stack = self._stack(node, flow) if flow else None
        if not absolute:
            return stack
        return self._zstack(node, ([stack] if stack is not None else []) + absolute)

    def _zstack(self, node: AltNode, children: list) -> Fragment:
        return Fragment(element="ZStack", node_id=node.id, args=(("alignment", ".topLeading"),)).with_children(children)

    def _stack(self, node: AltNode, children: list) -> Fragment:
        layout = node.layout
        if layout.wrap:
            self.ctx.warn(f"wrap on '{node.unique_name}' is not supported in SwiftUI, laid out as a single line", node)
        row = layout.direction == Direction.ROW
        fragment = Fragment(element="HStack" if row else "VStack", node_id=node.id)
        align = (HSTACK_ALIGN if row else VSTACK_ALIGN)[layout.counter_align]
        if align != ".center":
            fragment = fragment.with_arg("alignment", align)

        if layout.primary_align == Align.SPACE_BETWEEN:
            spaced = []
            for index, child in enumerate(children):
                if index:
                    spaced.append(Fragment(markup="Spacer()"))
                spaced.append(child)
            return fragment.with_arg("spacing", "0").with_children(spaced)

        fragment = fragment.with_arg("spacing", fmt(self.ctx.round_value(layout.gap, "spacing")))
        if layout.primary_align in (Align.CENTER, Align.MAX):
            # Stacks hug their content; push it with flexible spacers.
            lead = [Fragment(markup="Spacer()")]
            trail = [Fragment(markup="Spacer()")] if layout.primary_align == Align.CENTER else []
            children = lead + list(children) + trail
        return fragment.with_children(children)

    # ─── Text ───

    def _run_expr(self, node: AltNode, run) -> str:
        expr = f"Text({swift_string(apply_case(run.characters, run.case_transform))})"
        size = fmt(self.ctx.round_value(run.font_size, "fontSize"))
        if run.font_family in SYSTEM_FONTS:
            expr += f".font(.system(size: {size}))"
        else:
            expr += f".font(.custom({swift_string(run.font_family)}, size: {size}))"
        if run.font_weight != 400:
            expr += f".fontWeight({FONT_WEIGHTS.get(run.font_weight, '.regular')})"
        if run.italic:
            expr += ".italic()"
        fill = text_fill(node, run)
        if fill is not None and primary_color(fill) is not None:
            expr += f".foregroundColor({swift_color(fill, self.ctx)})"
        if run.decoration == "UNDERLINE":
            expr += ".underline()"
        elif run.decoration == "STRIKETHROUGH":
            expr += ".strikethrough()"
        return expr

    def emit_text(self, node: AltNode) -> Fragment:
        runs = node.text_runs or ()
        if len(runs) > 1:
            # modifiers bind tighter than `+`, so the concatenation is parenthesized
            markup = "(" + "\n+ ".join(self._run_expr(node, run) for run in runs) + ")"
        elif runs:
            markup = self._run_expr(node, runs[0])
        else:
            markup = 'Text("")'
        fragment = Fragment(node_id=node.id, markup=markup)
        if node.text_align in TEXT_ALIGN:
            fragment = fragment.with_modifier(f".multilineTextAlignment({TEXT_ALIGN[node.text_align]})")
        if node.line_height and runs:
            extra = node.line_height - runs[0].font_size
            if extra > 0:
                fragment = fragment.with_modifier(f".lineSpacing({fmt(extra)})")
        if node.letter_spacing:
            fragment = fragment.with_modifier(f".kerning({fmt(node.letter_spacing)})")
        fragment = with_frame(fragment, node, self.ctx)
        fragment = with_effects(fragment, node, self.ctx)
        fragment = with_placement(fragment, node, self.ctx)
        return fragment.with_comment(self.layer_comment(node))

    # ─── Vectors ───

    def emit_vector(self, node: AltNode) -> Fragment:
        size = f".frame(width: {fmt(node.geometry.width)}, height: {fmt(node.geometry.height)})"
        if node.embedded_vector_markup is not None:
            self.ctx.warn(
                f"inline vector markup is not supported in SwiftUI, '{node.unique_name}' "
                f"references an asset image instead",
                node,
            )
            fragment = Fragment(element="Image", node_id=node.id, args=((None, swift_string(node.unique_name)),))
            fragment = fragment.with_modifier(".resizable()").with_modifier(size)
            fragment = with_placement(fragment, node, self.ctx)
            return fragment.with_comment(self.layer_comment(node))
        fragment = Fragment(node_id=node.id, markup="Color.clear").with_modifier(size)
        fragment = with_placement(fragment, node, self.ctx)
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
        else:
            head = fragment.element
            if fragment.args:
                head += "(" + ", ".join(f"{k}: {v}" if k else str(v) for k, v in fragment.args) + ")"
            elif not fragment.children:
                head += "()"
            if fragment.children:
                lines.append(f"{indent}{head} {{")
                lines.extend(self.render(child, depth + 1) for child in fragment.children)
                lines.append(f"{indent}}}")
            else:
                lines.append(indent + head)
        lines.extend(f"{indent}{modifier}" for modifier in fragment.modifiers)
        return "\n".join(lines)

    def render_document(self, fragments: list) -> str:
        roots = [f for f in fragments if not f.is_empty]
        if len(roots) > 1:
            body = "\n".join(self.render(f, 1) for f in roots)
            return f"VStack {{\n{body}\n}}"
        return "\n".join(self.render(f) for f in roots)
