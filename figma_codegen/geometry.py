"""
Geometry Engine — rotation-aware bounding-box reconstruction.

The raw export only carries the axis-aligned box enclosing a rotated shape
plus its rotation angle. The un-rotated width/height follow from

    bw = W·|cos θ| + H·|sin θ|
    bh = W·|sin θ| + H·|cos θ|

which is a 2×2 linear system in (W, H). It is singular at θ = 45° + k·90°.
"""

import math
from dataclasses import dataclass

SINGULAR_EPSILON = 1e-6


@dataclass(frozen=True)
class BoundingBox:
    x: float
    y: float
    width: float
    height: float

    @property
    def center(self) -> tuple[float, float]:
        return self.x + self.width / 2, self.y + self.height / 2


@dataclass(frozen=True)
class GeometryResult:
    width: float
    height: float
    left: float
    top: float
    rotation_degrees: float
    singular: bool = False


def _trig(degrees: float) -> tuple[float, float]:
    # Exact values on the quarter turns, where floating-point cos/sin leak 1e-16.
    turns = degrees / 90.0
    if abs(turns - round(turns)) < 1e-12:
        quarter = int(round(turns)) % 4
        return ((1.0, 0.0), (0.0, 1.0), (-1.0, 0.0), (0.0, -1.0))[quarter]
    radians = math.radians(degrees)
    return math.cos(radians), math.sin(radians)


def rotated_bounding_box(width: float, height: float, rotation_degrees: float) -> tuple[float, float]:
    """Forward transform: size of the box enclosing a W×H shape rotated by θ."""
    cos, sin = _trig(rotation_degrees)
    c, s = abs(cos), abs(sin)
    return width * c + height * s, width * s + height * c


def resolve_rotated_box(bbox: BoundingBox, rotation_degrees: float) -> GeometryResult:
    """Recover the un-rotated rectangle from its rotated bounding box.

    ``rotation_degrees`` uses the design-tool convention (counter-clockwise
    positive); the result's ``rotation_degrees`` is CSS convention
    (clockwise positive). ``left``/``top`` are absolute: the un-rotated
    rectangle shares the bounding box's center.
    """
    css_rotation = -rotation_degrees if rotation_degrees else 0.0
    cos, sin = _trig(css_rotation)
    c, s = abs(cos), abs(sin)
    bw, bh = bbox.width, bbox.height

    det = c * c - s * s
    if abs(det) < SINGULAR_EPSILON:
        return GeometryResult(
            width=bw,
            height=bh,
            left=bbox.x,
            top=bbox.y,
            rotation_degrees=css_rotation,
            singular=True,
        )

    width = (bw * c - bh * s) / det
    height = (bh * c - bw * s) / det

    # Rotate the corners about the center, then shift the origin by the minimum.
    cx, cy = width / 2, height / 2
    xs, ys = [], []
    for px, py in ((0.0, 0.0), (width, 0.0), (width, height), (0.0, height)):
        dx, dy = px - cx, py - cy
        xs.append(dx * cos - dy * sin + cx)
        ys.append(dx * sin + dy * cos + cy)

    return GeometryResult(
        width=width,
        height=height,
        left=bbox.x - min(xs),
        top=bbox.y - min(ys),
        rotation_degrees=css_rotation,
    )


def to_parent_local(
    center: tuple[float, float],
    size: tuple[float, float],
    parent_center: tuple[float, float],
    parent_size: tuple[float, float],
    parent_rotation_degrees: float = 0.0,
) -> tuple[float, float]:
    """Top-left of a child inside its parent's un-rotated frame.

    The parent frame is rotated clockwise by ``parent_rotation_degrees``
    (CSS convention, absolute); the child offset is rotated back by the
    same angle before being re-anchored at the parent's top-left. Roots
    have no parent frame and use ``GeometryResult.left``/``top`` directly.
    """
    width, height = size
    dx = center[0] - parent_center[0]
    dy = center[1] - parent_center[1]
    if parent_rotation_degrees:
        cos, sin = _trig(-parent_rotation_degrees)
        dx, dy = dx * cos - dy * sin, dx * sin + dy * cos
    local_cx = parent_size[0] / 2 + dx
    local_cy = parent_size[1] / 2 + dy
    return local_cx - width / 2, local_cy - height / 2
