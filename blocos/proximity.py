"""Proximity search of points of interest against block anchors and routes.

Every query is a brute-force scan over candidates x reference points. At the
scale of one city's camera list (low thousands) against a single block's
route (low hundreds of points) that stays well under a second; a spatial
index would be needed past that ceiling.
"""
from __future__ import annotations

import logging
from typing import Iterable, List, Sequence

from .geometry import haversine_m
from .models import Coordinate, EnrichedBlock, PointOfInterest, TrafficAlert

LOGGER = logging.getLogger(__name__)

CAMERA_RADIUS_M = 300.0
ALERT_RADIUS_M = 200.0


def point_near_route(point: Coordinate, polyline: Sequence[Coordinate], radius_m: float) -> bool:
    """True when any polyline vertex lies within ``radius_m`` (inclusive)."""

    return any(
        haversine_m(point.lat, point.lng, vertex.lat, vertex.lng) <= radius_m
        for vertex in polyline
    )


def find_near(
    reference_points: Sequence[Coordinate],
    candidates: Iterable[PointOfInterest],
    radius_m: float,
) -> List[PointOfInterest]:
    """Candidates within ``radius_m`` of any reference point, each at most once."""

    seen: set[str] = set()
    nearby: List[PointOfInterest] = []
    for candidate in candidates:
        if candidate.id in seen:
            continue
        if point_near_route(candidate.coordinate, reference_points, radius_m):
            nearby.append(candidate)
            seen.add(candidate.id)
    return nearby


def reference_points_for(block: EnrichedBlock) -> List[Coordinate]:
    return [block.anchor, *block.route]


def cameras_near_block(
    block: EnrichedBlock,
    cameras: Iterable[PointOfInterest],
    radius_m: float = CAMERA_RADIUS_M,
) -> List[PointOfInterest]:
    references = reference_points_for(block)
    nearby = find_near(references, cameras, radius_m)
    LOGGER.debug(
        "Cameras near %r: %d (radius %.0f m, %d reference points)",
        block.name,
        len(nearby),
        radius_m,
        len(references),
    )
    return nearby


def alerts_on_route(
    alerts: Iterable[TrafficAlert],
    polyline: Sequence[Coordinate],
    radius_m: float = ALERT_RADIUS_M,
) -> List[TrafficAlert]:
    return [alert for alert in alerts if point_near_route(alert.location, polyline, radius_m)]
