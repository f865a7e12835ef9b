"""Distance and polyline helpers for (lat, lng) sequences."""
from __future__ import annotations

import math
from typing import List, Sequence, Tuple

from .models import Coordinate

EARTH_RADIUS_M = 6371000.0

# Planar tolerance in degrees; 0.00005 deg is roughly 5 m at Rio's latitude.
DEFAULT_TOLERANCE = 0.00005
SIMPLIFY_MIN_POINTS = 50

Point = Tuple[float, float]


def haversine_m(a_lat: float, a_lng: float, b_lat: float, b_lng: float) -> float:
    phi1 = math.radians(a_lat)
    phi2 = math.radians(b_lat)
    dphi = math.radians(b_lat - a_lat)
    dlmb = math.radians(b_lng - a_lng)

    s = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlmb / 2) ** 2
    return 2 * EARTH_RADIUS_M * math.atan2(math.sqrt(s), math.sqrt(1 - s))


def distance_m(a: Point, b: Point) -> float:
    return haversine_m(a[0], a[1], b[0], b[1])


def polyline_length_m(points: Sequence[Point]) -> float:
    total = 0.0
    for i in range(1, len(points)):
        total += distance_m(points[i - 1], points[i])
    return total


def point_segment_distance(point: Point, start: Point, end: Point) -> float:
    """Planar distance from ``point`` to the segment ``start``-``end``.

    Coordinates are treated as flat x/y; the result is in degrees.
    """

    px, py = point
    x1, y1 = start
    x2, y2 = end
    dx = x2 - x1
    dy = y2 - y1
    length_sq = dx * dx + dy * dy

    if length_sq == 0:
        t = -1.0
    else:
        t = ((px - x1) * dx + (py - y1) * dy) / length_sq

    if t < 0:
        nearest = (x1, y1)
    elif t > 1:
        nearest = (x2, y2)
    else:
        nearest = (x1 + t * dx, y1 + t * dy)
    return math.hypot(px - nearest[0], py - nearest[1])


def simplify(points: Sequence[Point], tolerance: float = DEFAULT_TOLERANCE) -> List[Coordinate]:
    """Douglas-Peucker reduction keeping both endpoints.

    Sequences of two points or fewer come back unchanged. The split ranges
    are walked with an explicit stack so long routes do not hit the
    interpreter's recursion limit; the kept points are the same as with the
    recursive formulation.
    """

    if len(points) <= 2:
        return [Coordinate(*point) for point in points]

    keep = [False] * len(points)
    keep[0] = keep[-1] = True
    stack = [(0, len(points) - 1)]
    while stack:
        first, last = stack.pop()
        max_distance = 0.0
        max_index = first
        for index in range(first + 1, last):
            distance = point_segment_distance(points[index], points[first], points[last])
            if distance > max_distance:
                max_distance = distance
                max_index = index
        if max_distance > tolerance:
            keep[max_index] = True
            stack.append((first, max_index))
            stack.append((max_index, last))

    return [Coordinate(*point) for point, kept in zip(points, keep) if kept]


def simplify_route(
    points: Sequence[Point],
    tolerance: float = DEFAULT_TOLERANCE,
    min_points: int = SIMPLIFY_MIN_POINTS,
) -> List[Coordinate]:
    """Simplify only routes longer than ``min_points``; short ones are kept as is."""

    if len(points) <= min_points:
        return [Coordinate(*point) for point in points]
    return simplify(points, tolerance)
