"""Runtime configuration read from ``BLOCOS_*`` environment variables."""
from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Optional, Tuple

from .geometry import DEFAULT_TOLERANCE, SIMPLIFY_MIN_POINTS
from .proximity import CAMERA_RADIUS_M

DEFAULT_API_URL = "https://jeap.rio.rj.gov.br/BLO/wsBlocoDeRuaTodos.rule?sys=BLO&id=CORRIO"
DEFAULT_CAMERAS_URL = "https://aplicativo.cocr.com.br/cameras_api"
DEFAULT_OSRM_URL = "https://router.project-osrm.org/route/v1/driving"

# lat_min, lat_max, lng_min, lng_max for the city of Rio de Janeiro
DEFAULT_CAMERA_BBOX = (-23.1, -22.7, -43.8, -43.1)


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    return float(raw) if raw else default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    return int(raw) if raw else default


@dataclass(frozen=True)
class Settings:
    """Source locations and tuning knobs for one reconciliation run."""

    api_url: Optional[str]
    spreadsheet: Optional[str]
    kmz: Optional[str]
    fallback: Optional[str]
    cameras_url: Optional[str]
    traffic_url: Optional[str]
    osrm_url: str
    geocoder_user_agent: str
    camera_radius_m: float = CAMERA_RADIUS_M
    simplify: bool = True
    tolerance: float = DEFAULT_TOLERANCE
    simplify_min_points: int = SIMPLIFY_MIN_POINTS
    http_timeout: float = 20.0
    camera_bbox: Tuple[float, float, float, float] = DEFAULT_CAMERA_BBOX

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            api_url=os.getenv("BLOCOS_API_URL", DEFAULT_API_URL) or None,
            spreadsheet=os.getenv("BLOCOS_SPREADSHEET") or None,
            kmz=os.getenv("BLOCOS_KMZ") or None,
            fallback=os.getenv("BLOCOS_FALLBACK") or None,
            cameras_url=os.getenv("BLOCOS_CAMERAS_URL", DEFAULT_CAMERAS_URL) or None,
            traffic_url=os.getenv("BLOCOS_TRAFFIC_URL") or None,
            osrm_url=os.getenv("BLOCOS_OSRM_URL", DEFAULT_OSRM_URL),
            geocoder_user_agent=os.getenv("BLOCOS_GEOCODER_USER_AGENT", "blocos-recon"),
            camera_radius_m=_env_float("BLOCOS_CAMERA_RADIUS_M", CAMERA_RADIUS_M),
            simplify=os.getenv("BLOCOS_SIMPLIFY", "1").lower() not in {"0", "false", "no"},
            tolerance=_env_float("BLOCOS_SIMPLIFY_TOLERANCE", DEFAULT_TOLERANCE),
            simplify_min_points=_env_int("BLOCOS_SIMPLIFY_MIN_POINTS", SIMPLIFY_MIN_POINTS),
            http_timeout=_env_float("BLOCOS_HTTP_TIMEOUT", 20.0),
        )

    def with_overrides(self, **changes) -> "Settings":
        """Copy with the non-``None`` values in ``changes`` applied."""

        return replace(self, **{key: value for key, value in changes.items() if value is not None})
