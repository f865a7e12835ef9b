"""Turn-by-turn routes from a user origin to a block's concentration point."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterable, List, Optional, Tuple

import httpx
from geopy.exc import GeocoderServiceError, GeocoderTimedOut, GeocoderUnavailable
from geopy.extra.rate_limiter import RateLimiter
from geopy.geocoders import Nominatim

from .cache import RouteCache
from .config import DEFAULT_OSRM_URL
from .models import Coordinate, EnrichedBlock, RouteInstruction, RoutePlan, TrafficAlert
from .proximity import ALERT_RADIUS_M, alerts_on_route

LOGGER = logging.getLogger(__name__)

CITY_SUFFIX = ", Rio de Janeiro, Brazil"

NOT_FOUND = "not_found"
NETWORK = "network"
SERVER = "server"


class GeocodingError(RuntimeError):
    """Raised when an address cannot be resolved to a coordinate."""

    def __init__(self, reason: str, message: str = "") -> None:
        super().__init__(message or reason)
        self.reason = reason


class RoutingError(RuntimeError):
    """Raised when the routing service cannot produce a route."""


@dataclass(frozen=True, slots=True)
class GeocodedAddress:
    coordinate: Coordinate
    display_name: str


class Geocoder:
    """Nominatim lookups restricted to the city, at most one request per second."""

    def __init__(
        self,
        user_agent: str,
        *,
        geocode: Optional[Callable[..., Any]] = None,
        min_delay_seconds: float = 1.0,
    ) -> None:
        if geocode is None:
            geolocator = Nominatim(user_agent=user_agent)
            geocode = RateLimiter(
                geolocator.geocode,
                min_delay_seconds=min_delay_seconds,
                max_retries=0,
                swallow_exceptions=False,
            )
        self._geocode = geocode

    def lookup(self, address: str) -> GeocodedAddress:
        query = f"{address.strip()}{CITY_SUFFIX}"
        try:
            location = self._geocode(query, exactly_one=True)
        except (GeocoderTimedOut, GeocoderUnavailable) as exc:
            raise GeocodingError(NETWORK, f"Geocoder unreachable: {exc}") from exc
        except GeocoderServiceError as exc:
            raise GeocodingError(SERVER, f"Geocoder failed: {exc}") from exc
        if location is None:
            raise GeocodingError(NOT_FOUND, f"No match for {address!r}")
        return GeocodedAddress(
            coordinate=Coordinate(float(location.latitude), float(location.longitude)),
            display_name=str(location.address),
        )


def _route_url(base_url: str, origin: Coordinate, destination: Coordinate) -> str:
    # the routing service takes lng,lat pairs
    return (
        f"{base_url.rstrip('/')}/{origin.lng},{origin.lat};{destination.lng},{destination.lat}"
    )


def parse_route(payload: Any, origin: Coordinate, destination: Coordinate) -> RoutePlan:
    if not isinstance(payload, dict) or payload.get("code") != "Ok" or not payload.get("routes"):
        raise RoutingError("Could not compute a route")
    route = payload["routes"][0]
    try:
        polyline = tuple(
            Coordinate(float(lat), float(lng))
            for lng, lat in route["geometry"]["coordinates"]
        )
        distance_km = float(route["distance"]) / 1000
        duration_min = float(route["duration"]) / 60
    except (KeyError, TypeError, ValueError) as exc:
        raise RoutingError(f"Malformed route payload: {exc}") from exc

    legs = route.get("legs") or [{}]
    instructions = tuple(
        RouteInstruction(
            text=step.get("maneuver", {}).get("instruction") or f"Siga por {step.get('name', '')}",
            distance_m=float(step.get("distance", 0)),
            kind=step.get("maneuver", {}).get("type", ""),
        )
        for step in legs[0].get("steps") or []
    )
    return RoutePlan(
        origin=origin,
        destination=destination,
        distance_km=distance_km,
        duration_min=duration_min,
        polyline=polyline,
        instructions=instructions,
    )


async def fetch_route(
    client: httpx.AsyncClient,
    origin: Coordinate,
    destination: Coordinate,
    base_url: str = DEFAULT_OSRM_URL,
) -> RoutePlan:
    params = {"overview": "full", "geometries": "geojson", "steps": "true"}
    try:
        r = await client.get(_route_url(base_url, origin, destination), params=params)
        r.raise_for_status()
        payload = r.json()
    except httpx.HTTPError as exc:
        raise RoutingError(f"Routing request failed: {exc}") from exc
    except ValueError as exc:
        raise RoutingError(f"Routing response is not JSON: {exc}") from exc
    return parse_route(payload, origin, destination)


class RoutePlanner:
    """Routes from one origin to blocks, cached per (block, origin)."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        geocoder: Optional[Geocoder] = None,
        base_url: str = DEFAULT_OSRM_URL,
        cache: Optional[RouteCache[RoutePlan]] = None,
        traffic_alerts: Iterable[TrafficAlert] = (),
        alert_radius_m: float = ALERT_RADIUS_M,
    ) -> None:
        self.client = client
        self.geocoder = geocoder
        self.base_url = base_url
        self.cache: RouteCache[RoutePlan] = cache if cache is not None else RouteCache()
        self.traffic_alerts: List[TrafficAlert] = list(traffic_alerts)
        self.alert_radius_m = alert_radius_m
        self.origin: Optional[Coordinate] = None
        self.origin_label: Optional[str] = None
        self.current: Optional[RoutePlan] = None

    def set_origin_gps(self, coordinate: Coordinate) -> None:
        self.origin = coordinate
        self.origin_label = "GPS"

    async def set_origin_address(self, address: str) -> GeocodedAddress:
        if self.geocoder is None:
            raise GeocodingError(SERVER, "No geocoder configured")
        found = await asyncio.to_thread(self.geocoder.lookup, address)
        self.origin = found.coordinate
        self.origin_label = found.display_name
        return found

    async def route_to_block(self, block: EnrichedBlock) -> RoutePlan:
        if self.origin is None:
            raise RoutingError("Set an origin before requesting a route")
        key: Tuple[object, ...] = (str(block.id), self.origin.lat, self.origin.lng)
        plan = self.cache.get(key)
        if plan is None:
            plan = await fetch_route(self.client, self.origin, block.anchor, self.base_url)
            self.cache.put(key, plan)
        else:
            LOGGER.debug("Route to %r served from cache", block.name)

        nearby = alerts_on_route(self.traffic_alerts, plan.polyline, self.alert_radius_m)
        self.current = RoutePlan(
            origin=plan.origin,
            destination=plan.destination,
            distance_km=plan.distance_km,
            duration_min=plan.duration_min,
            polyline=plan.polyline,
            instructions=plan.instructions,
            alerts=tuple(nearby),
            block_id=block.id,
        )
        LOGGER.info(
            "Route to %r: %.1f km, %.0f min, %d traffic alerts",
            block.name,
            plan.distance_km,
            plan.duration_min,
            len(nearby),
        )
        return self.current

    def clear_route(self) -> None:
        self.current = None

    def clear_origin(self) -> None:
        self.origin = None
        self.origin_label = None
        self.current = None
