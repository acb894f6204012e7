"""Usage: rectangle helpers shared by the resolver and the mapping store."""

from __future__ import annotations

from typing import Iterable, Sequence

from app.schemas.layout_map import OffsetRect, StartingPosition
from app.schemas.region import Point, Rectangle, Region

ZERO_RECT = Rectangle()


def bounds_of(points: Iterable[Point]) -> Rectangle:
    xs: list[float] = []
    ys: list[float] = []
    for point in points:
        xs.append(point.x)
        ys.append(point.y)
    if not xs:
        return ZERO_RECT
    return Rectangle(top=min(ys), left=min(xs), right=max(xs), bottom=max(ys))


def area(rect: Rectangle) -> float:
    return max(0.0, rect.right - rect.left) * max(0.0, rect.bottom - rect.top)


def intersects(a: Rectangle, b: Rectangle) -> bool:
    """True when the rectangles share a region of positive area."""

    return a.left < b.right and b.left < a.right and a.top < b.bottom and b.top < a.bottom


def overlaps(rect: Rectangle, zone: Rectangle) -> bool:
    """Zone membership test that still admits zero-area rectangles lying inside ``zone``."""

    if area(rect) > 0:
        return intersects(rect, zone)
    return zone.left <= rect.left <= zone.right and zone.top <= rect.top <= zone.bottom


def intersection(a: Rectangle, b: Rectangle) -> Rectangle:
    if not intersects(a, b):
        return ZERO_RECT
    return Rectangle(
        top=max(a.top, b.top),
        left=max(a.left, b.left),
        right=min(a.right, b.right),
        bottom=min(a.bottom, b.bottom),
    )


def corner_of(rect: Rectangle, corner: StartingPosition) -> tuple[float, float]:
    x = rect.right if corner.endswith("Right") else rect.left
    y = rect.bottom if corner.startswith("bottom") else rect.top
    return x, y


def offset_rect(origin: Rectangle, corner: StartingPosition, point: OffsetRect) -> Rectangle:
    """Target rectangle measured from a corner of ``origin``.

    Negative width/height are folded so the result extends from the offset
    position towards the left/top instead.
    """

    x, y = corner_of(origin, corner)
    left = x + point.left
    top = y + point.top
    width = point.width
    height = point.height
    if width < 0:
        left += width
        width = -width
    if height < 0:
        top += height
        height = -height
    return Rectangle(top=top, left=left, right=left + width, bottom=top + height)


def page_extent(regions: Sequence[Region]) -> tuple[float, float]:
    max_x = 1.0
    max_y = 1.0
    for region in regions:
        rect = bounds_of(region.points)
        max_x = max(max_x, rect.right)
        max_y = max(max_y, rect.bottom)
    return max_x, max_y


def scale_zone(zone: Rectangle, page_width: float, page_height: float) -> Rectangle:
    """Resolve a search zone to page coordinates.

    Zones whose right and bottom edges are both <= 1 are page fractions.
    """

    if zone.right > 1 or zone.bottom > 1:
        return zone
    return Rectangle(
        top=zone.top * page_height,
        left=zone.left * page_width,
        right=zone.right * page_width,
        bottom=zone.bottom * page_height,
    )


def reading_order_key(region: Region) -> tuple[int, float, float]:
    rect = bounds_of(region.points)
    return region.page, rect.top, rect.left
