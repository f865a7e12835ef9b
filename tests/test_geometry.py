import math

import pytest

from blocos import geometry
from blocos.models import Coordinate


def test_haversine_known_distance():
    # one degree of latitude
    assert geometry.haversine_m(0, 0, 1, 0) == pytest.approx(111195, rel=1e-3)
    assert geometry.haversine_m(-22.9, -43.1, -22.9, -43.1) == 0


def test_polyline_length_sums_segments():
    points = [(0, 0), (0, 1), (0, 2)]
    assert geometry.polyline_length_m(points) == pytest.approx(2 * geometry.haversine_m(0, 0, 0, 1))
    assert geometry.polyline_length_m([(0, 0)]) == 0


def test_point_segment_distance_clamps_to_endpoints():
    assert geometry.point_segment_distance((0, 1), (0, 0), (0, 2)) == 0
    assert geometry.point_segment_distance((1, 1), (0, 0), (0, 2)) == pytest.approx(1)
    assert geometry.point_segment_distance((0, 5), (0, 0), (0, 2)) == pytest.approx(3)
    assert geometry.point_segment_distance((3, 4), (0, 0), (0, 0)) == pytest.approx(5)


def test_simplify_collapses_collinear_points():
    points = [(-22.9, -43.2 + i * 0.0001) for i in range(100)]
    simplified = geometry.simplify(points, geometry.DEFAULT_TOLERANCE)
    assert simplified == [Coordinate(*points[0]), Coordinate(*points[-1])]


def test_simplify_keeps_endpoints_and_significant_corners():
    points = [(0.0, 0.0), (0.0, 0.5), (0.0, 1.0), (0.5, 1.0), (1.0, 1.0)]
    simplified = geometry.simplify(points, 0.01)
    assert simplified[0] == Coordinate(0.0, 0.0)
    assert simplified[-1] == Coordinate(1.0, 1.0)
    assert Coordinate(0.0, 1.0) in simplified
    assert len(simplified) == 3


def test_simplify_result_is_ordered_subsequence():
    points = [(math.sin(i / 5.0) * 0.001, i * 0.0001) for i in range(200)]
    simplified = geometry.simplify(points, geometry.DEFAULT_TOLERANCE)
    assert 2 <= len(simplified) <= len(points)
    positions = [points.index(tuple(point)) for point in simplified]
    assert positions == sorted(positions)


def test_simplify_short_sequences_unchanged():
    assert geometry.simplify([(1.0, 2.0)]) == [Coordinate(1.0, 2.0)]
    assert geometry.simplify([]) == []


def test_simplify_route_only_above_threshold():
    short = [(0.0, i * 0.0001) for i in range(geometry.SIMPLIFY_MIN_POINTS)]
    assert len(geometry.simplify_route(short)) == len(short)

    long = [(0.0, i * 0.0001) for i in range(geometry.SIMPLIFY_MIN_POINTS + 1)]
    assert len(geometry.simplify_route(long)) == 2


def test_simplify_is_idempotent():
    points = [(math.sin(i / 5.0) * 0.001, i * 0.0001) for i in range(200)]
    once = geometry.simplify(points, geometry.DEFAULT_TOLERANCE)
    assert geometry.simplify(once, geometry.DEFAULT_TOLERANCE) == once
