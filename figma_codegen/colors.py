"""
Color Resolver — paint parsing, gradient normalization, palette matching.

Raw paints follow the Figma REST shape (``{"type": "SOLID", "color":
{"r", "g", "b", "a"}, "opacity", "boundVariables"}``). Channels stay in
[0, 1] inside the IR; formatting to hex / rgba / ARGB happens here so every
backend shares the same rounding.
"""

import math
from dataclasses import dataclass, field, replace
from typing import Optional, Sequence, Union

from .scale_matcher import nearest_match


@dataclass(frozen=True)
class RGBA:
    r: float
    g: float
    b: float
    a: float = 1.0

    def with_alpha(self, a: float) -> "RGBA":
        return replace(self, a=a)


@dataclass(frozen=True)
class VariableBinding:
    name: str
    fallback_hex: str


@dataclass(frozen=True)
class GradientStop:
    offset: float
    color: RGBA
    opacity: float = 1.0


@dataclass(frozen=True)
class SolidPaint:
    color: RGBA
    variable_id: Optional[str] = None
    variable_binding: Optional[VariableBinding] = None


@dataclass(frozen=True)
class GradientPaint:
    kind: str  # "linear" | "radial" | "angular"
    stops: tuple = ()
    angle: float = 180.0
    center: tuple = (0.5, 0.5)
    radius: tuple = (0.5, 0.5)
    start_angle: float = 0.0
    opacity: float = 1.0
    variable_id: Optional[str] = None
    variable_binding: Optional[VariableBinding] = None


@dataclass(frozen=True)
class ImagePaint:
    image_ref: Optional[str] = None
    scale_mode: str = "FILL"
    opacity: float = 1.0
    variable_id: Optional[str] = None
    variable_binding: Optional[VariableBinding] = None


Paint = Union[SolidPaint, GradientPaint, ImagePaint]


@dataclass
class PaintParseResult:
    paints: tuple = ()
    warnings: list = field(default_factory=list)


# ════════════════════════════════════════════════════════════
# Parsing
# ════════════════════════════════════════════════════════════

def parse_color(raw: Optional[dict], opacity: float = 1.0) -> RGBA:
    raw = raw or {}
    return RGBA(
        r=_clamp01(raw.get("r", 0)),
        g=_clamp01(raw.get("g", 0)),
        b=_clamp01(raw.get("b", 0)),
        a=_clamp01(raw.get("a", 1) * opacity),
    )


def parse_paints(raw_paints: Optional[list]) -> PaintParseResult:
    """Convert raw fills/strokes to IR paint entries (invisible ones dropped)."""
    result = PaintParseResult()
    paints = []
    for raw in raw_paints or []:
        if not isinstance(raw, dict) or not raw.get("visible", True):
            continue
        paint = _parse_paint(raw, result.warnings)
        if paint is not None:
            paints.append(paint)
    result.paints = tuple(paints)
    return result


def _parse_paint(raw: dict, warnings: list) -> Optional[Paint]:
    paint_type = raw.get("type", "SOLID")
    opacity = raw.get("opacity", 1)
    variable_id = _variable_id(raw)

    if paint_type == "SOLID":
        return SolidPaint(color=parse_color(raw.get("color"), opacity), variable_id=variable_id)

    if paint_type.startswith("GRADIENT_"):
        return _parse_gradient(raw, paint_type, opacity, warnings)

    if paint_type in ("IMAGE", "VIDEO"):
        return ImagePaint(
            image_ref=raw.get("imageRef"),
            scale_mode=raw.get("scaleMode", "FILL"),
            opacity=opacity,
        )

    warnings.append(f"unsupported paint type: {paint_type}")
    return None


def _variable_id(raw: dict) -> Optional[str]:
    bound = (raw.get("boundVariables") or {}).get("color")
    if isinstance(bound, dict) and bound.get("id"):
        return bound["id"]
    return None


def _parse_gradient(raw: dict, paint_type: str, opacity: float, warnings: list) -> GradientPaint:
    stops = tuple(
        GradientStop(
            offset=_clamp01(stop.get("position", 0)),
            color=parse_color(stop.get("color")),
            opacity=_clamp01((stop.get("color") or {}).get("a", 1) * opacity),
        )
        for stop in raw.get("gradientStops", [])
    )
    handles = raw.get("gradientHandlePositions") or []

    if paint_type == "GRADIENT_LINEAR":
        return GradientPaint(kind="linear", stops=stops, angle=gradient_angle(handles), opacity=opacity)

    if paint_type == "GRADIENT_ANGULAR":
        return GradientPaint(
            kind="angular",
            stops=stops,
            center=_handle(handles, 0, (0.5, 0.5)),
            start_angle=gradient_angle(handles),
            opacity=opacity,
        )

    if paint_type == "GRADIENT_DIAMOND":
        warnings.append("diamond gradient approximated as radial")
    elif paint_type != "GRADIENT_RADIAL":
        warnings.append(f"unsupported gradient type {paint_type}, approximated as radial")

    center = _handle(handles, 0, (0.5, 0.5))
    edge_x = _handle(handles, 1, (1.0, 0.5))
    edge_y = _handle(handles, 2, (0.5, 1.0))
    radius = (
        math.hypot(edge_x[0] - center[0], edge_x[1] - center[1]),
        math.hypot(edge_y[0] - center[0], edge_y[1] - center[1]),
    )
    return GradientPaint(kind="radial", stops=stops, center=center, radius=radius, opacity=opacity)


def _handle(handles: list, index: int, default: tuple) -> tuple:
    if len(handles) > index and isinstance(handles[index], dict):
        return float(handles[index].get("x", default[0])), float(handles[index].get("y", default[1]))
    return default


def gradient_angle(handles: list) -> float:
    """CSS angle (0deg = up, clockwise) from the first two gradient handles."""
    if not handles or len(handles) < 2:
        return 180.0
    start = _handle(handles, 0, (0.5, 0.0))
    end = _handle(handles, 1, (0.5, 1.0))
    angle = math.degrees(math.atan2(end[1] - start[1], end[0] - start[0]))
    return round((angle + 90) % 360, 2)


def with_binding(paint: Paint, binding: Optional[VariableBinding]) -> Paint:
    return replace(paint, variable_binding=binding)


def primary_color(paint: Optional[Paint]) -> Optional[RGBA]:
    """Best single-color approximation of a paint (first stop for gradients)."""
    if isinstance(paint, SolidPaint):
        return paint.color
    if isinstance(paint, GradientPaint) and paint.stops:
        stop = paint.stops[0]
        return stop.color.with_alpha(stop.opacity)
    return None


# ════════════════════════════════════════════════════════════
# Formatting
# ════════════════════════════════════════════════════════════

def _clamp01(value) -> float:
    try:
        v = float(value)
    except (TypeError, ValueError):
        return 0.0
    return 0.0 if v < 0 else 1.0 if v > 1 else v


def _channel(value: float) -> int:
    return int(round(_clamp01(value) * 255))


def to_rgb255(color: RGBA) -> tuple[int, int, int]:
    return _channel(color.r), _channel(color.g), _channel(color.b)


def to_hex(color: RGBA) -> str:
    r, g, b = to_rgb255(color)
    return f"#{r:02x}{g:02x}{b:02x}"


def to_hex_alpha(color: RGBA) -> str:
    """``#rrggbb`` when opaque, ``#rrggbbaa`` otherwise."""
    if color.a >= 1:
        return to_hex(color)
    return f"{to_hex(color)}{_channel(color.a):02x}"


def argb_hex(color: RGBA) -> str:
    """``AARRGGBB`` as used by Flutter ``Color(0x…)`` and Compose ``Color(0x…)``."""
    r, g, b = to_rgb255(color)
    return f"{_channel(color.a):02X}{r:02X}{g:02X}{b:02X}"


def css_rgba(color: RGBA) -> str:
    if color.a >= 1:
        return to_hex(color)
    r, g, b = to_rgb255(color)
    return f"rgba({r}, {g}, {b}, {round(color.a, 2):g})"


def css_variable_name(name: str) -> str:
    slug = "".join(ch.lower() if ch.isalnum() else "-" for ch in name).strip("-")
    while "--" in slug:
        slug = slug.replace("--", "-")
    return f"--{slug or 'color'}"


def css_color(paint: Paint, use_variables: bool = True) -> Optional[str]:
    """CSS value for a solid paint, wrapping bound variables in ``var()``."""
    color = primary_color(paint)
    if color is None:
        return None
    literal = css_rgba(color)
    binding = getattr(paint, "variable_binding", None)
    if use_variables and binding is not None:
        return f"var({css_variable_name(binding.name)}, {binding.fallback_hex or literal})"
    return literal


def css_gradient(paint: GradientPaint) -> str:
    stops = ", ".join(
        f"{css_rgba(stop.color.with_alpha(stop.opacity))} {_percent(stop.offset)}"
        for stop in paint.stops
    )
    if paint.kind == "linear":
        return f"linear-gradient({_num(paint.angle)}deg, {stops})"
    cx, cy = (_percent(v) for v in paint.center)
    if paint.kind == "angular":
        return f"conic-gradient(from {_num(paint.start_angle)}deg at {cx} {cy}, {stops})"
    rx, ry = (_percent(v) for v in paint.radius)
    return f"radial-gradient({rx} {ry} at {cx} {cy}, {stops})"


def _percent(value: float) -> str:
    return f"{_num(value * 100)}%"


def _num(value: float) -> str:
    rounded = round(value, 2)
    return str(int(rounded)) if float(rounded).is_integer() else str(rounded)


def hex_to_rgba(value: str) -> RGBA:
    """Parse ``#rgb``, ``#rrggbb`` or ``#rrggbbaa``."""
    text = value.strip().lstrip("#")
    if len(text) == 3:
        text = "".join(ch * 2 for ch in text)
    if len(text) not in (6, 8):
        raise ValueError(f"invalid hex color: {value!r}")
    r, g, b = (int(text[i:i + 2], 16) / 255 for i in (0, 2, 4))
    a = int(text[6:8], 16) / 255 if len(text) == 8 else 1.0
    return RGBA(r, g, b, a)


# ════════════════════════════════════════════════════════════
# Palette matching
# ════════════════════════════════════════════════════════════

_MAX_RGB_DISTANCE = math.sqrt(3)


def rgb_distance(a: tuple, b: tuple) -> float:
    return math.sqrt((a[0] - b[0]) ** 2 + (a[1] - b[1]) ** 2 + (a[2] - b[2]) ** 2)


def nearest_palette_color(
    rgb: tuple, palette: Sequence[tuple[str, tuple]], threshold_percent: float
) -> Optional[tuple[str, tuple]]:
    """Closest ``(name, (r, g, b))`` palette entry, channels in [0, 1].

    Accepted when ``distance / sqrt(3) <= threshold_percent / 100``.
    """
    return nearest_match(
        rgb,
        palette,
        distance=lambda goal, entry: rgb_distance(goal, entry[1]),
        accept=lambda d: d / _MAX_RGB_DISTANCE <= threshold_percent / 100,
    )


class PaletteMatcher:
    """Memoized palette lookup keyed by hex value."""

    def __init__(self, palette: dict[str, str], threshold_percent: float):
        self.threshold_percent = threshold_percent
        self._palette = [
            (name, _rgb_tuple(hex_to_rgba(value))) for name, value in palette.items()
        ]
        self._cache: dict[str, Optional[str]] = {}

    def match(self, color: RGBA) -> Optional[str]:
        key = to_hex(color)
        if key not in self._cache:
            found = nearest_palette_color(_rgb_tuple(color), self._palette, self.threshold_percent)
            self._cache[key] = found[0] if found else None
        return self._cache[key]


def _rgb_tuple(color: RGBA) -> tuple[float, float, float]:
    return color.r, color.g, color.b
