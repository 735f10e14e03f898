"""
Layout Classifier — auto-layout attributes → LayoutDescriptor / Sizing.
"""

from dataclasses import replace
from typing import Optional

from .alt_nodes import Align, Direction, LayoutDescriptor, Padding, Sizing, SizingMode

_DIRECTIONS = {"HORIZONTAL": Direction.ROW, "VERTICAL": Direction.COLUMN}

_PRIMARY_ALIGN = {
    "MIN": Align.MIN,
    "CENTER": Align.CENTER,
    "MAX": Align.MAX,
    "SPACE_BETWEEN": Align.SPACE_BETWEEN,
}

_COUNTER_ALIGN = {
    "MIN": Align.MIN,
    "CENTER": Align.CENTER,
    "MAX": Align.MAX,
    "BASELINE": Align.BASELINE,
}

_SIZING = {"FIXED": SizingMode.FIXED, "HUG": SizingMode.HUG, "FILL": SizingMode.FILL}


def _number(raw: dict, key: str, default: float = 0) -> float:
    value = raw.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    return value


def classify_layout(raw: dict, warnings: Optional[list] = None) -> Optional[LayoutDescriptor]:
    """Map a container's auto-layout fields; ``None`` means manual placement."""
    warnings = warnings if warnings is not None else []
    mode = raw.get("layoutMode")
    if mode in (None, "NONE"):
        return None
    direction = _DIRECTIONS.get(mode)
    if direction is None:
        warnings.append(f"unsupported layout mode: {mode}")
        return None

    primary_raw = raw.get("primaryAxisAlignItems", "MIN")
    primary = _PRIMARY_ALIGN.get(primary_raw)
    if primary is None:
        warnings.append(f"unsupported primary alignment: {primary_raw}")
        primary = Align.MIN

    counter_raw = raw.get("counterAxisAlignItems", "MIN")
    counter = _COUNTER_ALIGN.get(counter_raw)
    if counter is None:
        if counter_raw == "SPACE_BETWEEN":
            warnings.append("SPACE_BETWEEN is only valid on the primary axis, using MIN")
        else:
            warnings.append(f"unsupported counter alignment: {counter_raw}")
        counter = Align.MIN

    return LayoutDescriptor(
        direction=direction,
        primary_align=primary,
        counter_align=counter,
        wrap=raw.get("layoutWrap") == "WRAP",
        gap=_number(raw, "itemSpacing"),
        counter_gap=_number(raw, "counterAxisSpacing"),
        padding=Padding(
            top=_number(raw, "paddingTop"),
            right=_number(raw, "paddingRight"),
            bottom=_number(raw, "paddingBottom"),
            left=_number(raw, "paddingLeft"),
        ),
        primary_sizing=SizingMode.HUG if raw.get("primaryAxisSizingMode") == "AUTO" else SizingMode.FIXED,
        counter_sizing=SizingMode.HUG if raw.get("counterAxisSizingMode") == "AUTO" else SizingMode.FIXED,
    )


def with_absolute_children(layout: Optional[LayoutDescriptor], children: list) -> Optional[LayoutDescriptor]:
    """Flag a flow container that also hosts absolutely positioned children."""
    if layout is None:
        return None
    flagged = any(child.is_absolute for child in children)
    if flagged == layout.has_absolute_children:
        return layout
    return replace(layout, has_absolute_children=flagged)


def resolve_sizing(
    raw: dict,
    parent_direction: Optional[Direction],
    own_layout: Optional[LayoutDescriptor] = None,
) -> Sizing:
    """Horizontal/vertical sizing; FILL only survives under a parent layout."""
    horizontal = _SIZING.get(raw.get("layoutSizingHorizontal"))
    vertical = _SIZING.get(raw.get("layoutSizingVertical"))

    if parent_direction is not None:
        grows = _number(raw, "layoutGrow") > 0
        stretches = raw.get("layoutAlign") == "STRETCH"
        if parent_direction == Direction.ROW:
            horizontal = horizontal or (SizingMode.FILL if grows else None)
            vertical = vertical or (SizingMode.FILL if stretches else None)
        else:
            vertical = vertical or (SizingMode.FILL if grows else None)
            horizontal = horizontal or (SizingMode.FILL if stretches else None)

    if own_layout is not None:
        primary_hug = own_layout.primary_sizing == SizingMode.HUG
        counter_hug = own_layout.counter_sizing == SizingMode.HUG
        if own_layout.direction == Direction.ROW:
            horizontal = horizontal or (SizingMode.HUG if primary_hug else None)
            vertical = vertical or (SizingMode.HUG if counter_hug else None)
        else:
            vertical = vertical or (SizingMode.HUG if primary_hug else None)
            horizontal = horizontal or (SizingMode.HUG if counter_hug else None)

    auto_resize = raw.get("textAutoResize")
    if auto_resize == "WIDTH_AND_HEIGHT":
        horizontal = horizontal or SizingMode.HUG
        vertical = vertical or SizingMode.HUG
    elif auto_resize == "HEIGHT":
        vertical = vertical or SizingMode.HUG

    horizontal = horizontal or SizingMode.FIXED
    vertical = vertical or SizingMode.FIXED
    if parent_direction is None:
        horizontal = SizingMode.FIXED if horizontal == SizingMode.FILL else horizontal
        vertical = SizingMode.FIXED if vertical == SizingMode.FILL else vertical
    return Sizing(horizontal=horizontal, vertical=vertical)


def is_absolute(raw: dict, parent_layout: Optional[LayoutDescriptor], has_parent: bool) -> bool:
    if not has_parent:
        return False
    if parent_layout is None:
        return True
    return raw.get("layoutPositioning") == "ABSOLUTE"
