"""
Geometry engine 單元測試：旋轉框還原、奇異角度、父座標轉換。
"""
import pytest

from figma_codegen.geometry import (
    BoundingBox,
    resolve_rotated_box,
    rotated_bounding_box,
    to_parent_local,
)


@pytest.mark.parametrize("angle", [0, 10, 30, 60, 90, 120, 180, -30, 200])
def test_rotation_round_trip(angle):
    bw, bh = rotated_bounding_box(120, 40, angle)
    result = resolve_rotated_box(BoundingBox(0, 0, bw, bh), angle)
    assert not result.singular
    assert result.width == pytest.approx(120, abs=1e-6)
    assert result.height == pytest.approx(40, abs=1e-6)


def test_css_rotation_is_negated():
    result = resolve_rotated_box(BoundingBox(0, 0, 100, 50), 30)
    assert result.rotation_degrees == -30


def test_zero_rotation_keeps_box():
    result = resolve_rotated_box(BoundingBox(10, 20, 100, 50), 0)
    assert (result.width, result.height, result.left, result.top) == (100, 50, 10, 20)
    assert result.rotation_degrees == 0


def test_quarter_turn_swaps_sides():
    result = resolve_rotated_box(BoundingBox(0, 0, 50, 100), 90)
    assert result.width == 100
    assert result.height == 50
    # the un-rotated box shares the bbox center
    assert result.left + result.width / 2 == pytest.approx(25)
    assert result.top + result.height / 2 == pytest.approx(50)


def test_singular_at_45_degrees_falls_back():
    result = resolve_rotated_box(BoundingBox(5, 5, 80, 80), 45)
    assert result.singular
    assert (result.width, result.height) == (80, 80)


def test_rotated_root_top_left():
    # 200×100 rotated 90° encloses a 100×200 box; centers coincide
    result = resolve_rotated_box(BoundingBox(0, 0, 100, 200), 90)
    assert result.left == pytest.approx(-50)
    assert result.top == pytest.approx(50)


def test_singular_keeps_bbox_origin():
    result = resolve_rotated_box(BoundingBox(5, 7, 80, 80), 45)
    assert (result.left, result.top) == (5, 7)


def test_to_parent_local_offsets_from_parent_top_left():
    left, top = to_parent_local((110, 120), (20, 20), (150, 150), (100, 100))
    assert (left, top) == (50, 60)


def test_to_parent_local_undoes_parent_rotation():
    # child sits 10px to the right of a parent rotated by 90°
    left, top = to_parent_local((160, 150), (10, 10), (150, 150), (100, 100), 90)
    assert left == pytest.approx(45)
    assert top == pytest.approx(35)
