"""Async loaders for the block, geometry, camera and traffic-alert sources."""
from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, Iterable, List, Optional, Tuple

import httpx

from .kmz import IngestResult, ingest
from .models import Coordinate, PointOfInterest, TrafficAlert
from .normalization import load_spreadsheet, parse_api_payload

LOGGER = logging.getLogger(__name__)

Bbox = Tuple[float, float, float, float]


def is_url(location: str) -> bool:
    return location.startswith(("http://", "https://"))


async def read_bytes(client: httpx.AsyncClient, location: str) -> bytes:
    """Fetch ``location`` over HTTP, or read it from disk for a local path."""

    if is_url(location):
        r = await client.get(location)
        r.raise_for_status()
        return r.content
    return await asyncio.to_thread(Path(location).read_bytes)


async def fetch_blocks_api(client: httpx.AsyncClient, url: str):
    r = await client.get(url, headers={"Accept": "application/json"})
    r.raise_for_status()
    return parse_api_payload(r.json())


async def fetch_spreadsheet_blocks(client: httpx.AsyncClient, location: str):
    return load_spreadsheet(await read_bytes(client, location))


async def fetch_geometry(client: httpx.AsyncClient, location: Optional[str]) -> IngestResult:
    """Load and ingest the KMZ; a missing or unreadable file means no geometry."""

    if not location:
        return IngestResult()
    try:
        data = await read_bytes(client, location)
    except (httpx.HTTPError, OSError) as exc:
        LOGGER.warning("Could not load geometry from %s: %s", location, exc)
        return IngestResult()
    return ingest(data)


def parse_cameras_csv(text: str, bbox: Optional[Bbox] = None) -> List[PointOfInterest]:
    """Parse ``lat;lng;name;code`` lines, dropping rows with unusable coordinates."""

    cameras: List[PointOfInterest] = []
    for line in text.strip().splitlines():
        parts = line.split(";")
        if len(parts) < 4:
            continue
        try:
            lat = float(parts[0])
            lng = float(parts[1])
        except ValueError:
            continue
        if lat == 0 or lng == 0 or not (-90 <= lat <= 90 and -180 <= lng <= 180):
            continue
        if bbox is not None:
            lat_min, lat_max, lng_min, lng_max = bbox
            if not (lat_min <= lat <= lat_max and lng_min <= lng <= lng_max):
                continue
        code = parts[3].strip()
        cameras.append(
            PointOfInterest(
                id=code,
                coordinate=Coordinate(lat, lng),
                label=parts[2].strip(),
                code=code,
            )
        )
    return cameras


async def fetch_cameras(
    client: httpx.AsyncClient, url: Optional[str], bbox: Optional[Bbox] = None
) -> List[PointOfInterest]:
    if not url:
        return []
    try:
        r = await client.get(url)
        r.raise_for_status()
    except httpx.HTTPError as exc:
        LOGGER.warning("Camera list unavailable: %s", exc)
        return []
    cameras = parse_cameras_csv(r.text, bbox)
    LOGGER.info("Cameras loaded: %d", len(cameras))
    return cameras


def _int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def parse_traffic_alerts(payload: Any) -> List[TrafficAlert]:
    if not isinstance(payload, dict):
        return []
    entries: Iterable[Any] = payload.get("alerts") or []
    alerts: List[TrafficAlert] = []
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        location = entry.get("location") or {}
        try:
            coordinate = Coordinate(float(location["y"]), float(location["x"]))
        except (KeyError, TypeError, ValueError):
            continue
        alerts.append(
            TrafficAlert(
                uuid=str(entry.get("uuid", "")),
                type=str(entry.get("type", "")),
                subtype=str(entry.get("subtype") or ""),
                location=coordinate,
                street=str(entry.get("street") or ""),
                city=str(entry.get("city") or ""),
                reliability=_int(entry.get("reliability")),
                confidence=_int(entry.get("confidence")),
                pub_millis=_int(entry.get("pubMillis")),
                description=str(entry.get("reportDescription") or ""),
            )
        )
    return alerts


async def fetch_traffic_alerts(client: httpx.AsyncClient, url: Optional[str]) -> List[TrafficAlert]:
    """Traffic alerts from the partner feed; no URL or any failure means none."""

    if not url:
        return []
    try:
        r = await client.get(url)
        r.raise_for_status()
        payload = r.json()
    except (httpx.HTTPError, ValueError) as exc:
        LOGGER.warning("Traffic alert feed unavailable: %s", exc)
        return []
    return parse_traffic_alerts(payload)
