"""
Tailwind backend — the HTML/JSX markup of ``HtmlBackend`` with utility
classes instead of inline styles.

Values snap to the Tailwind v3 scales below when ``round_to_scale`` is on;
anything off-scale becomes an arbitrary value (``w-[13px]``).
"""

from typing import Optional

from .alt_nodes import Align, AltNode, Direction, NodeKind, SizingMode
from .colors import GradientPaint, SolidPaint, css_gradient, css_variable_name, primary_color, to_hex_alpha
from .emission import Fragment, fmt
from .html_backend import (
    HtmlBackend,
    background_props,
    first_stroke,
    flow_parent_layout,
    is_primary_axis,
    needs_relative,
    shadow_value,
    svg_to_jsx,
    text_fill,
)
from .scale_matcher import match_named_scale

# Tailwind v3 default theme (label → px)
SPACING = {
    "0": 0, "px": 1, "0.5": 2, "1": 4, "1.5": 6, "2": 8, "2.5": 10, "3": 12, "3.5": 14,
    "4": 16, "5": 20, "6": 24, "7": 28, "8": 32, "9": 36, "10": 40, "11": 44, "12": 48,
    "14": 56, "16": 64, "20": 80, "24": 96, "28": 112, "32": 128, "36": 144, "40": 160,
    "44": 176, "48": 192, "52": 208, "56": 224, "60": 240, "64": 256, "72": 288,
    "80": 320, "96": 384,
}

FONT_SIZES = {
    "xs": 12, "sm": 14, "base": 16, "lg": 18, "xl": 20, "2xl": 24, "3xl": 30,
    "4xl": 36, "5xl": 48, "6xl": 60, "7xl": 72, "8xl": 96, "9xl": 128,
}

RADII = {"none": 0, "sm": 2, "": 4, "md": 6, "lg": 8, "xl": 12, "2xl": 16, "3xl": 24, "full": 9999}

BORDER_WIDTHS = {"0": 0, "": 1, "2": 2, "4": 4, "8": 8}

OPACITY = {str(step): step for step in range(0, 101, 5)}

FONT_WEIGHTS = {
    100: "thin", 200: "extralight", 300: "light", 400: "normal", 500: "medium",
    600: "semibold", 700: "bold", 800: "extrabold", 900: "black",
}

ROTATIONS = (0, 1, 2, 3, 6, 12, 45, 90, 180)

# Tailwind CSS v3 colors (subset)
COLORS = {
    "black": "#000000",
    "white": "#ffffff",
    "slate": {
        50: "#f8fafc", 100: "#f1f5f9", 200: "#e2e8f0", 300: "#cbd5e1",
        400: "#94a3b8", 500: "#64748b", 600: "#475569", 700: "#334155",
        800: "#1e293b", 900: "#0f172a",
    },
    "gray": {
        50: "#f9fafb", 100: "#f3f4f6", 200: "#e5e7eb", 300: "#d1d5db",
        400: "#9ca3af", 500: "#6b7280", 600: "#4b5563", 700: "#374151",
        800: "#1f2937", 900: "#111827",
    },
    "red": {
        50: "#fef2f2", 100: "#fee2e2", 200: "#fecaca", 300: "#fca5a5",
        400: "#f87171", 500: "#ef4444", 600: "#dc2626", 700: "#b91c1c",
        800: "#991b1b", 900: "#7f1d1d",
    },
    "orange": {
        50: "#fff7ed", 100: "#ffedd5", 200: "#fed7aa", 300: "#fdba74",
        400: "#fb923c", 500: "#f97316", 600: "#ea580c", 700: "#c2410c",
        800: "#9a3412", 900: "#7c2d12",
    },
    "yellow": {
        50: "#fefce8", 100: "#fef9c3", 200: "#fef08a", 300: "#fde047",
        400: "#facc15", 500: "#eab308", 600: "#ca8a04", 700: "#a16207",
        800: "#854d0e", 900: "#713f12",
    },
    "green": {
        50: "#f0fdf4", 100: "#dcfce7", 200: "#bbf7d0", 300: "#86efac",
        400: "#4ade80", 500: "#22c55e", 600: "#16a34a", 700: "#15803d",
        800: "#166534", 900: "#14532d",
    },
    "blue": {
        50: "#eff6ff", 100: "#dbeafe", 200: "#bfdbfe", 300: "#93c5fd",
        400: "#60a5fa", 500: "#3b82f6", 600: "#2563eb", 700: "#1d4ed8",
        800: "#1e40af", 900: "#1e3a8a",
    },
    "indigo": {
        50: "#eef2ff", 100: "#e0e7ff", 200: "#c7d2fe", 300: "#a5b4fc",
        400: "#818cf8", 500: "#6366f1", 600: "#4f46e5", 700: "#4338ca",
        800: "#3730a3", 900: "#312e81",
    },
    "purple": {
        50: "#faf5ff", 100: "#f3e8ff", 200: "#e9d5ff", 300: "#d8b4fe",
        400: "#c084fc", 500: "#a855f7", 600: "#9333ea", 700: "#7e22ce",
        800: "#6b21a8", 900: "#581c87",
    },
    "pink": {
        50: "#fdf2f8", 100: "#fce7f3", 200: "#fbcfe8", 300: "#f9a8d4",
        400: "#f472b6", 500: "#ec4899", 600: "#db2777", 700: "#be185d",
        800: "#9d174d", 900: "#831843",
    },
}


def flatten_palette(colors: dict) -> dict:
    """``{"gray": {100: …}}`` → ``{"gray-100": …}`` in declaration order."""
    flat = {}
    for name, value in colors.items():
        if isinstance(value, dict):
            for shade, hex_value in value.items():
                flat[f"{name}-{shade}"] = hex_value
        else:
            flat[name] = value
    return flat


PALETTE = flatten_palette(COLORS)

_JUSTIFY = {Align.CENTER: "justify-center", Align.MAX: "justify-end", Align.SPACE_BETWEEN: "justify-between"}
_ITEMS = {Align.MIN: "items-start", Align.CENTER: "items-center", Align.MAX: "items-end", Align.BASELINE: "items-baseline"}
_TEXT_ALIGN = {"CENTER": "text-center", "RIGHT": "text-right", "JUSTIFIED": "text-justify"}
_CASE = {"UPPER": "uppercase", "LOWER": "lowercase", "TITLE": "capitalize"}
_DECORATION = {"UNDERLINE": "underline", "STRIKETHROUGH": "line-through"}


# ════════════════════════════════════════════════════════════
# Class builders
# ════════════════════════════════════════════════════════════

def arbitrary(prefix: str, value: str) -> str:
    """``prefix-[value]`` with spaces escaped as underscores."""
    return f"{prefix}-[{value.replace(' ', '_')}]"


def scaled_class(prefix: str, value: float, kind: str, table: dict, ctx) -> str:
    config = ctx.config
    if config.round_to_scale:
        scale = config.scale_for(kind, table)
        found = match_named_scale(value, scale, config.scale_threshold) if scale else None
        if found is not None:
            label = found[0]
            return f"{prefix}-{label}" if label else prefix
    return arbitrary(prefix, fmt(value, "px"))


def opacity_class(opacity: float, ctx) -> str:
    percent = opacity * 100
    if ctx.config.round_to_scale:
        found = match_named_scale(percent, OPACITY, ctx.config.scale_threshold)
        if found is not None:
            return f"opacity-{found[0]}"
    return arbitrary("opacity", fmt(opacity))


def color_class(prefix: str, paint, ctx) -> Optional[str]:
    color = primary_color(paint)
    if color is None:
        return None
    binding = getattr(paint, "variable_binding", None)
    if ctx.config.use_color_variables and binding is not None:
        hint = "color:" if prefix == "text" else ""
        return f"{prefix}-[{hint}var({css_variable_name(binding.name)})]"
    if ctx.config.round_colors:
        name = ctx.palette("tailwind", PALETTE).match(color)
        if name is not None:
            return f"{prefix}-{name}{_alpha_suffix(color.a)}"
    return arbitrary(prefix, to_hex_alpha(color))


def _alpha_suffix(alpha: float) -> str:
    if alpha >= 1:
        return ""
    percent = round(alpha * 100)
    if percent % 5 == 0:
        return f"/{percent}"
    return f"/[{fmt(alpha)}]"


def size_classes(node: AltNode, ctx) -> list:
    layout = flow_parent_layout(node, ctx)
    classes = []
    for axis, prefix, mode, value in (
        ("width", "w", node.sizing.horizontal, node.geometry.width),
        ("height", "h", node.sizing.vertical, node.geometry.height),
    ):
        if mode == SizingMode.FIXED:
            classes.append(scaled_class(prefix, value, "size", SPACING, ctx))
        elif mode == SizingMode.FILL and layout is not None:
            classes.append("flex-1" if is_primary_axis(axis, layout) else "self-stretch")
    return classes


def position_classes(node: AltNode, ctx) -> list:
    classes = []
    if node.is_absolute:
        classes += [
            "absolute",
            arbitrary("left", fmt(node.geometry.x, "px")),
            arbitrary("top", fmt(node.geometry.y, "px")),
        ]
    elif needs_relative(node):
        classes.append("relative")
    rotation = node.geometry.rotation_degrees
    if rotation:
        sign = "-" if rotation < 0 else ""
        if abs(rotation) in ROTATIONS:
            classes.append(f"{sign}rotate-{fmt(abs(rotation))}")
        else:
            classes.append(arbitrary("rotate", fmt(rotation, "deg")))
    return classes


def layout_classes(node: AltNode, ctx) -> list:
    layout = node.layout
    if layout is None:
        return []
    classes = ["flex", "flex-row" if layout.direction == Direction.ROW else "flex-col"]
    classes.append(_JUSTIFY.get(layout.primary_align, ""))
    classes.append(_ITEMS[layout.counter_align])
    if layout.wrap:
        classes.append("flex-wrap")

    gap = _gap(layout.gap, node, ctx)
    if layout.primary_align == Align.SPACE_BETWEEN:
        gap = None
    counter_gap = _gap(layout.counter_gap, node, ctx) if layout.wrap else None
    if counter_gap is not None and counter_gap != gap:
        x_gap, y_gap = (gap, counter_gap) if layout.direction == Direction.ROW else (counter_gap, gap)
        if x_gap is not None:
            classes.append(scaled_class("gap-x", x_gap, "spacing", SPACING, ctx))
        classes.append(scaled_class("gap-y", y_gap, "spacing", SPACING, ctx) if y_gap is not None else "")
    elif gap is not None:
        classes.append(scaled_class("gap", gap, "spacing", SPACING, ctx))
    return classes + padding_classes(layout.padding, ctx)


def _gap(value: float, node: AltNode, ctx) -> Optional[float]:
    if value < 0:
        ctx.warn(f"negative spacing {fmt(value)} on '{node.unique_name}' is not supported in Tailwind gap", node)
        return None
    return value or None


def padding_classes(padding, ctx) -> list:
    if padding.is_zero():
        return []
    if padding.is_uniform():
        return [scaled_class("p", padding.top, "spacing", SPACING, ctx)]
    if padding.top == padding.bottom and padding.left == padding.right:
        return [
            scaled_class(prefix, value, "spacing", SPACING, ctx)
            for prefix, value in (("px", padding.left), ("py", padding.top))
            if value
        ]
    return [
        scaled_class(prefix, value, "spacing", SPACING, ctx)
        for prefix, value in (
            ("pt", padding.top), ("pr", padding.right), ("pb", padding.bottom), ("pl", padding.left),
        )
        if value
    ]


def background_classes(node: AltNode, ctx) -> list:
    visible = [p for p in node.fills if isinstance(p, (SolidPaint, GradientPaint))]
    if len(visible) == 1 and len(node.fills) == 1:
        paint = visible[0]
        if isinstance(paint, SolidPaint):
            return [color_class("bg", paint, ctx)]
        return [arbitrary("bg", css_gradient(paint))]
    # Stacked layers (and image-fill warnings) go through the CSS path.
    props = background_props(node, ctx)
    return [f"[{name}:{value.replace(' ', '_')}]" for name, value in props]


def radius_classes(node: AltNode, ctx) -> list:
    if node.kind == NodeKind.ELLIPSE:
        return ["rounded-full"]
    if not any(node.corner_radii):
        return []
    if node.has_uniform_radius:
        return [scaled_class("rounded", node.radius, "radius", RADII, ctx)]
    return [
        scaled_class(prefix, value, "radius", RADII, ctx)
        for prefix, value in zip(("rounded-tl", "rounded-tr", "rounded-br", "rounded-bl"), node.corner_radii)
        if value
    ]


def effect_classes(node: AltNode, ctx) -> list:
    is_text = node.kind == NodeKind.TEXT
    classes, shadows = [], []
    for effect in node.effects:
        if effect.type == "INNER_SHADOW" and is_text:
            ctx.warn(f"inner shadow on text '{node.unique_name}' is not supported", node)
        elif effect.is_shadow:
            shadows.append(shadow_value(effect, text=is_text))
        elif effect.type == "LAYER_BLUR":
            classes.append(arbitrary("blur", fmt(effect.radius / 2, "px")))
        elif effect.type == "BACKGROUND_BLUR":
            classes.append(arbitrary("backdrop-blur", fmt(effect.radius / 2, "px")))
    if shadows:
        value = ",".join(shadows)
        classes.append(f"[text-shadow:{value.replace(' ', '_')}]" if is_text else arbitrary("shadow", value))
    return classes


def shape_classes(node: AltNode, ctx) -> list:
    classes = []
    if node.kind != NodeKind.TEXT:
        classes += background_classes(node, ctx)
        stroke = first_stroke(node, ctx)
        if stroke is not None:
            classes.append(scaled_class("border", node.stroke_weight, "borderWidth", BORDER_WIDTHS, ctx))
            classes.append(color_class("border", stroke, ctx))
        classes += radius_classes(node, ctx)
        if node.clips_content:
            classes.append("overflow-hidden")
    if node.opacity < 1:
        classes.append(opacity_class(node.opacity, ctx))
    return classes + effect_classes(node, ctx)


def text_classes(node: AltNode, run, ctx) -> list:
    classes = [
        scaled_class("text", run.font_size, "fontSize", FONT_SIZES, ctx),
        f"font-{FONT_WEIGHTS[run.font_weight]}" if run.font_weight in FONT_WEIGHTS
        else arbitrary("font", str(run.font_weight)),
        arbitrary("font", f"'{run.font_family}'"),
    ]
    if run.italic:
        classes.append("italic")
    fill = text_fill(node, run)
    if fill is not None:
        classes.append(color_class("text", fill, ctx))
    classes.append(_DECORATION.get(run.decoration, ""))
    classes.append(_CASE.get(run.case_transform, ""))
    return classes


def text_block_classes(node: AltNode) -> list:
    classes = [_TEXT_ALIGN.get(node.text_align, "")]
    if node.line_height:
        classes.append(arbitrary("leading", fmt(node.line_height, "px")))
    if node.letter_spacing:
        classes.append(arbitrary("tracking", fmt(node.letter_spacing, "px")))
    if "\n" in node.characters:
        classes.append("whitespace-pre-wrap")
    return classes


# ════════════════════════════════════════════════════════════
# Backend
# ════════════════════════════════════════════════════════════

class TailwindBackend(HtmlBackend):
    name = "tailwind"

    def emit_container(self, node: AltNode, children: list) -> Fragment:
        fragment = self._base(node).with_classes(
            *size_classes(node, self.ctx),
            *position_classes(node, self.ctx),
            *layout_classes(node, self.ctx),
            *shape_classes(node, self.ctx),
        )
        return fragment.with_children(children)

    def emit_text(self, node: AltNode) -> Fragment:
        fragment = self._base(node, "p").with_classes(
            *size_classes(node, self.ctx),
            *position_classes(node, self.ctx),
            *shape_classes(node, self.ctx),
            *text_block_classes(node),
        )
        runs = node.text_runs
        if len(runs) <= 1:
            if runs:
                fragment = fragment.with_classes(*text_classes(node, runs[0], self.ctx))
            return fragment.with_text(node.characters)
        spans = [
            Fragment(element="span", node_id=node.id)
            .with_classes(*text_classes(node, run, self.ctx))
            .with_text(run.characters)
            for run in runs
        ]
        return fragment.with_children(spans)

    def emit_vector(self, node: AltNode) -> Fragment:
        fragment = self._base(node).with_classes(
            arbitrary("w", fmt(node.geometry.width, "px")),
            arbitrary("h", fmt(node.geometry.height, "px")),
            *position_classes(node, self.ctx),
        )
        if node.opacity < 1:
            fragment = fragment.with_classes(opacity_class(node.opacity, self.ctx))
        if node.embedded_vector_markup is not None:
            markup = node.embedded_vector_markup
            return Fragment(
                element=fragment.element, node_id=node.id, classes=fragment.classes, attrs=fragment.attrs,
                markup=svg_to_jsx(markup) if self.jsx else markup,
            )
        return fragment.with_comment(f"vector: {node.unique_name}")
