from __future__ import annotations

from app.schemas.layout_map import OffsetRect
from app.schemas.region import Point, Rectangle, Region
from app.services.rules.geometry import (
    area,
    bounds_of,
    intersection,
    intersects,
    offset_rect,
    overlaps,
    reading_order_key,
    scale_zone,
)


def _points(*coords: tuple[float, float]) -> list[Point]:
    return [Point(x=x, y=y) for x, y in coords]


def test_bounds_of_square() -> None:
    rect = bounds_of(_points((0, 0), (10, 0), (10, 10), (0, 10)))

    assert rect == Rectangle(top=0, left=0, right=10, bottom=10)


def test_bounds_of_empty_is_zero_rect() -> None:
    assert bounds_of([]) == Rectangle(top=0, left=0, right=0, bottom=0)


def test_bounds_of_skewed_polygon_uses_extremes() -> None:
    rect = bounds_of(_points((5, 2), (12, 3), (11, 9), (4, 8)))

    assert rect.as_ltrb() == [4, 2, 12, 9]


def test_area_never_negative() -> None:
    assert area(Rectangle(top=0, left=0, right=4, bottom=5)) == 20
    assert area(Rectangle(top=5, left=4, right=0, bottom=0)) == 0


def test_intersects_is_strict_on_touching_edges() -> None:
    a = Rectangle(top=0, left=0, right=10, bottom=10)
    touching = Rectangle(top=10, left=0, right=10, bottom=20)
    overlapping = Rectangle(top=9, left=5, right=15, bottom=20)

    assert not intersects(a, touching)
    assert intersects(a, overlapping)
    assert intersection(a, overlapping) == Rectangle(top=9, left=5, right=10, bottom=10)
    assert intersection(a, touching) == Rectangle()


def test_overlaps_admits_point_regions_inside_zone() -> None:
    zone = Rectangle(top=0, left=0, right=10, bottom=10)

    assert overlaps(Rectangle(top=5, left=5, right=5, bottom=5), zone)
    assert not overlaps(Rectangle(top=15, left=5, right=15, bottom=5), zone)


def test_offset_rect_from_bottom_left_corner() -> None:
    anchor = Rectangle(top=10, left=20, right=80, bottom=30)

    target = offset_rect(anchor, "bottomLeft", OffsetRect(top=0, left=0, width=100, height=20))

    assert target == Rectangle(top=30, left=20, right=120, bottom=50)


def test_offset_rect_from_top_right_corner() -> None:
    anchor = Rectangle(top=10, left=20, right=80, bottom=30)

    target = offset_rect(anchor, "topRight", OffsetRect(top=-2, left=5, width=50, height=24))

    assert target == Rectangle(top=8, left=85, right=135, bottom=32)


def test_offset_rect_negative_size_extends_backwards() -> None:
    anchor = Rectangle(top=100, left=100, right=150, bottom=120)

    target = offset_rect(anchor, "topLeft", OffsetRect(top=0, left=0, width=-60, height=-30))

    assert target == Rectangle(top=70, left=40, right=100, bottom=100)
    assert target.width == 60
    assert target.height == 30


def test_scale_zone_treats_unit_zone_as_fractions() -> None:
    zone = Rectangle(top=0, left=0.5, right=1, bottom=0.25)

    assert scale_zone(zone, 800, 1000) == Rectangle(top=0, left=400, right=800, bottom=250)
    absolute = Rectangle(top=0, left=10, right=300, bottom=40)
    assert scale_zone(absolute, 800, 1000) is absolute


def test_reading_order_key_sorts_page_then_top_then_left() -> None:
    regions = [
        Region(id="c", text="c", page=1, points=_points((0, 0))),
        Region(id="b", text="b", page=0, points=_points((50, 10), (60, 20))),
        Region(id="a", text="a", page=0, points=_points((5, 10), (15, 20))),
        Region(id="top", text="top", page=0, points=_points((90, 0), (99, 5))),
    ]

    ordered = sorted(regions, key=reading_order_key)

    assert [region.id for region in ordered] == ["top", "a", "b", "c"]
