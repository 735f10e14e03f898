"""
Scale Matcher — nearest-value-within-threshold rounding.

One algorithm shared by spacing, sizing, font-size, radius, opacity and
palette color matching. Candidates are scanned in declaration order and a
candidate only replaces the current best when strictly closer, so the
first-declared entry wins ties.
"""

from typing import Callable, Iterable, Optional, Sequence, TypeVar, Union

T = TypeVar("T")
G = TypeVar("G")

NamedScale = Union[dict, Sequence]


def nearest_match(
    goal: G,
    candidates: Iterable[T],
    distance: Callable[[G, T], float],
    accept: Callable[[float], bool],
) -> Optional[T]:
    """Return the closest candidate to ``goal`` if ``accept(distance)`` holds."""
    best = None
    best_distance = float("inf")
    for candidate in candidates:
        d = distance(goal, candidate)
        if d < best_distance:
            best, best_distance = candidate, d
    if best is None or not accept(best_distance):
        return None
    return best


def _within_percent(goal: float, threshold_percent: float) -> Callable[[float], bool]:
    return lambda d: d / abs(goal) * 100 <= threshold_percent


def match_scale(goal: float, scale: Sequence[float], threshold_percent: float) -> Optional[float]:
    """Find the scale value closest to ``goal``.

    Accepted when ``|entry - goal| / goal * 100 <= threshold_percent``.
    ``goal == 0`` is an exact match at 0. Returns ``None`` for no match.
    """
    if goal == 0:
        return 0
    return nearest_match(
        goal,
        scale,
        distance=lambda g, entry: abs(entry - g),
        accept=_within_percent(goal, threshold_percent),
    )


def match_named_scale(
    goal: float, named_scale: NamedScale, threshold_percent: float
) -> Optional[tuple[str, float]]:
    """Like ``match_scale`` for labelled tables, returning ``(label, value)``.

    ``named_scale`` is ``{label: value}`` or a plain list of numbers (the
    label is then the formatted number).
    """
    entries = _entries(named_scale)
    if goal == 0:
        for label, value in entries:
            if value == 0:
                return label, 0
        return None
    return nearest_match(
        goal,
        entries,
        distance=lambda g, entry: abs(entry[1] - g),
        accept=_within_percent(goal, threshold_percent),
    )


def _entries(named_scale: NamedScale) -> list[tuple[str, float]]:
    if isinstance(named_scale, dict):
        return [(str(label), float(value)) for label, value in named_scale.items()]
    return [(_label(v), float(v)) for v in named_scale]


def _label(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)
