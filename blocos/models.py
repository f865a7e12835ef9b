"""Data models shared by the reconciliation workflow."""
from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import date, time
from enum import Enum
from typing import Dict, NamedTuple, Optional, Tuple, Union

BlockId = Union[int, str]


class Coordinate(NamedTuple):
    lat: float
    lng: float


class PresentationMode(str, Enum):
    MOVING = "COM DESLOCAMENTO"
    STATIONARY = "PARADO"


@dataclass(frozen=True, slots=True)
class BlockRecord:
    id: BlockId
    name: str
    date: Optional[date]
    anchor: Coordinate
    relative_date: str = ""
    neighborhood: str = ""
    subprefecture: str = ""
    region: str = ""
    attendance: int = 0
    concentration_place: str = ""
    concentration_time: Optional[time] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    route_description: str = ""
    dispersal_place: str = ""
    presentation: PresentationMode = PresentationMode.STATIONARY
    structure: str = ""
    status: str = ""


@dataclass(frozen=True, slots=True)
class RouteGeometry:
    """A parade route as authored in the geometry source."""

    name: str
    points: Tuple[Coordinate, ...]
    length_m: int
    concentration_point: Optional[Coordinate] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None


@dataclass(frozen=True, slots=True)
class PointOfInterest:
    id: str
    coordinate: Coordinate
    label: str
    code: str = ""


@dataclass(frozen=True, slots=True)
class EnrichedBlock:
    block: BlockRecord
    anchor: Coordinate
    route: Tuple[Coordinate, ...] = ()
    matched_name: Optional[str] = None
    match_strategy: Optional[str] = None

    @property
    def id(self) -> BlockId:
        return self.block.id

    @property
    def name(self) -> str:
        return self.block.name

    @property
    def has_route(self) -> bool:
        return len(self.route) >= 2

    def as_json(self) -> dict[str, object]:
        block = self.block
        return {
            "id": block.id,
            "name": block.name,
            "date": block.date.isoformat() if block.date else None,
            "relative_date": block.relative_date,
            "neighborhood": block.neighborhood,
            "subprefecture": block.subprefecture,
            "region": block.region,
            "attendance": block.attendance,
            "concentration_place": block.concentration_place,
            "concentration_time": _format_time(block.concentration_time),
            "start_time": _format_time(block.start_time),
            "end_time": _format_time(block.end_time),
            "route_description": block.route_description,
            "dispersal_place": block.dispersal_place,
            "presentation": block.presentation.value,
            "structure": block.structure,
            "status": block.status,
            "lat": self.anchor.lat,
            "lng": self.anchor.lng,
            "has_route": self.has_route,
            "route": [[point.lat, point.lng] for point in self.route],
            "matched_name": self.matched_name,
            "match_strategy": self.match_strategy,
        }


@dataclass(slots=True)
class MatchStats:
    total_blocks: int = 0
    total_geometry_groups: int = 0
    matched: int = 0
    ambiguous: int = 0
    by_strategy: Counter = field(default_factory=Counter)

    @property
    def unmatched(self) -> int:
        return self.total_blocks - self.matched

    def as_dict(self) -> dict[str, object]:
        return {
            "total_blocks": self.total_blocks,
            "total_geometry_groups": self.total_geometry_groups,
            "matched": self.matched,
            "unmatched": self.unmatched,
            "ambiguous": self.ambiguous,
            "by_strategy": dict(sorted(self.by_strategy.items())),
        }


@dataclass(frozen=True, slots=True)
class TrafficAlert:
    uuid: str
    type: str
    subtype: str
    location: Coordinate
    street: str = ""
    city: str = ""
    reliability: int = 0
    confidence: int = 0
    pub_millis: int = 0
    description: str = ""


@dataclass(frozen=True, slots=True)
class RouteInstruction:
    text: str
    distance_m: float
    kind: str


@dataclass(frozen=True, slots=True)
class RoutePlan:
    origin: Coordinate
    destination: Coordinate
    distance_km: float
    duration_min: float
    polyline: Tuple[Coordinate, ...]
    instructions: Tuple[RouteInstruction, ...] = ()
    alerts: Tuple[TrafficAlert, ...] = ()
    block_id: Optional[BlockId] = None


@dataclass(frozen=True, slots=True)
class BlockAlert:
    id: str
    block: BlockRecord
    kind: str
    minutes_left: int
    priority: str

    def as_dict(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "block_id": self.block.id,
            "name": self.block.name,
            "kind": self.kind,
            "minutes_left": self.minutes_left,
            "priority": self.priority,
        }


def _format_time(value: Optional[time]) -> Optional[str]:
    if value is None:
        return None
    return value.strftime("%H:%M")
