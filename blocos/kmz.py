"""Read the combined parade-routes KMZ into per-block route geometries."""
from __future__ import annotations

import io
import logging
import re
import zipfile
import xml.etree.ElementTree as ET
import zlib
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Tuple, Union

from .geometry import polyline_length_m
from .models import Coordinate, RouteGeometry
from .normalization import normalize_name

LOGGER = logging.getLogger(__name__)

POINT = "point"
LINE = "line"
MULTI_LINE = "multi-line"

_SCHEDULE = re.compile(r"(\d{1,2}:\d{2})\s+(\d{1,2}:\d{2})")


class GeometryError(RuntimeError):
    """Raised when the geometry container or document cannot be decoded."""


@dataclass(slots=True)
class Feature:
    name: str
    kind: str
    coordinates: List[Coordinate]
    description: str = ""


@dataclass(slots=True)
class IngestResult:
    routes: Dict[str, RouteGeometry] = field(default_factory=dict)
    total_groups: int = 0
    usable_groups: int = 0


def extract_kml(data: bytes) -> bytes:
    """Return the first KML document stored inside a KMZ archive."""

    try:
        with zipfile.ZipFile(io.BytesIO(data)) as archive:
            kml_name = next(
                (
                    name
                    for name in archive.namelist()
                    if name.lower().endswith(".kml") and not name.startswith("__MACOSX")
                ),
                None,
            )
            if kml_name is None:
                raise GeometryError("No KML document found inside the KMZ archive")
            return archive.read(kml_name)
    except GeometryError:
        raise
    # an archive that opens can still fail once an entry is decompressed
    except (zipfile.BadZipFile, zlib.error, RuntimeError, NotImplementedError, EOFError) as exc:
        raise GeometryError(f"Invalid KMZ archive: {exc}") from exc


def _local(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _child_text(element: ET.Element, name: str) -> str:
    for child in element:
        if _local(child.tag) == name:
            return (child.text or "").strip()
    return ""


def _descendants(element: ET.Element, name: str) -> Iterator[ET.Element]:
    return (node for node in element.iter() if _local(node.tag) == name)


def parse_coordinates(text: str) -> List[Coordinate]:
    """Parse a KML ``lng,lat[,alt]`` tuple list into (lat, lng) coordinates."""

    coords: List[Coordinate] = []
    for chunk in text.split():
        parts = chunk.split(",")
        if len(parts) < 2:
            continue
        try:
            lng, lat = float(parts[0]), float(parts[1])
        except ValueError:
            continue
        coords.append(Coordinate(lat, lng))
    return coords


def _geometry_coordinates(element: ET.Element) -> List[Coordinate]:
    return parse_coordinates(_child_text(element, "coordinates"))


def parse_features(kml: Union[str, bytes]) -> List[Feature]:
    """Flatten every placemark into point / line / multi-line features."""

    try:
        root = ET.fromstring(kml)
    except ET.ParseError as exc:
        raise GeometryError(f"Malformed KML document: {exc}") from exc

    features: List[Feature] = []
    for placemark in _descendants(root, "Placemark"):
        name = _child_text(placemark, "name")
        description = _child_text(placemark, "description")

        lines = [_geometry_coordinates(line) for line in _descendants(placemark, "LineString")]
        lines = [line for line in lines if line]
        if len(lines) == 1:
            features.append(Feature(name, LINE, lines[0], description))
        elif lines:
            flattened = [point for line in lines for point in line]
            features.append(Feature(name, MULTI_LINE, flattened, description))

        for point in _descendants(placemark, "Point"):
            coords = _geometry_coordinates(point)
            if coords:
                features.append(Feature(name, POINT, coords[:1], description))
    return features


def _schedule(description: str) -> Tuple[Optional[str], Optional[str]]:
    match = _SCHEDULE.search(description)
    if not match:
        return None, None
    return match.group(1), match.group(2)


def build_route(name: str, features: List[Feature]) -> Optional[RouteGeometry]:
    """Combine one name group into a route, or ``None`` when it has no usable line."""

    lines = [
        feature
        for feature in features
        if feature.kind in (LINE, MULTI_LINE) and len(feature.coordinates) >= 2
    ]
    points = [feature for feature in features if feature.kind == POINT]
    if not lines:
        return None

    # max() keeps the first of equally long lines.
    longest = max(lines, key=lambda feature: polyline_length_m(feature.coordinates))

    start, end = _schedule(longest.description)
    return RouteGeometry(
        name=name,
        points=tuple(longest.coordinates),
        length_m=round(polyline_length_m(longest.coordinates)),
        concentration_point=points[0].coordinates[0] if points else None,
        start_time=start,
        end_time=end,
    )


def group_routes(features: List[Feature]) -> IngestResult:
    groups: Dict[str, List[Feature]] = {}
    for feature in features:
        groups.setdefault(feature.name, []).append(feature)

    result = IngestResult(total_groups=len(groups))
    for name, members in groups.items():
        key = normalize_name(name)
        route = build_route(name, members)
        if not key or route is None:
            LOGGER.debug("Skipping geometry group %r without a usable route", name)
            continue
        result.usable_groups += 1

        existing = result.routes.get(key)
        if existing is not None:
            LOGGER.warning(
                "Geometry groups %r and %r share the key %r; keeping the longer route",
                existing.name,
                name,
                key,
            )
            if existing.length_m >= route.length_m:
                continue
        result.routes[key] = route
    return result


def ingest(data: bytes) -> IngestResult:
    """Decode a KMZ into routes keyed by normalized block name.

    Any decoding failure yields an empty result: callers fall back to
    anchor-only blocks instead of aborting.
    """

    try:
        features = parse_features(extract_kml(data))
    except GeometryError as exc:
        LOGGER.warning("Geometry source unavailable: %s", exc)
        return IngestResult()

    result = group_routes(features)
    LOGGER.info(
        "Geometry groups: %d seen, %d with a usable route",
        result.total_groups,
        result.usable_groups,
    )
    return result
