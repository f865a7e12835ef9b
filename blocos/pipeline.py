"""High-level orchestration: load the sources, match, enrich and report."""
from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Mapping, Optional, Sequence, Tuple

import httpx

from .cache import RouteCache
from .config import Settings
from .geometry import DEFAULT_TOLERANCE, SIMPLIFY_MIN_POINTS, simplify_route
from .matching import match_route
from .models import (
    BlockRecord,
    Coordinate,
    EnrichedBlock,
    MatchStats,
    PointOfInterest,
    RouteGeometry,
    TrafficAlert,
)
from .normalization import NormalizationError, rows_to_blocks
from .report import generate_markdown_summary, write_csv, write_json, write_markdown
from .sources import (
    fetch_blocks_api,
    fetch_cameras,
    fetch_geometry,
    fetch_spreadsheet_blocks,
    fetch_traffic_alerts,
)

LOGGER = logging.getLogger(__name__)

SOURCE_API = "api"
SOURCE_SPREADSHEET = "spreadsheet"
SOURCE_FALLBACK = "fallback"
SOURCE_NONE = "none"


@dataclass(slots=True)
class Snapshot:
    """Everything one load produces; replaced wholesale on reload."""

    blocks: List[EnrichedBlock]
    stats: MatchStats
    source: str
    notice: Optional[str] = None
    cameras: List[PointOfInterest] = field(default_factory=list)
    traffic_alerts: List[TrafficAlert] = field(default_factory=list)
    geometry_groups_seen: int = 0
    geometry_groups_usable: int = 0

    def block(self, block_id) -> Optional[EnrichedBlock]:
        wanted = str(block_id)
        return next((block for block in self.blocks if str(block.id) == wanted), None)


def _route_points(
    key: str,
    route: RouteGeometry,
    *,
    simplify: bool,
    tolerance: float,
    min_points: int,
    cache: Optional[RouteCache],
) -> Tuple[Coordinate, ...]:
    if not simplify:
        return route.points
    # the points are part of the key so a cache kept across reloads never
    # serves a route that changed under the same name
    cache_key = (key, route.points, tolerance, min_points)
    if cache is not None and cache_key in cache:
        return cache.get(cache_key)
    points = tuple(simplify_route(route.points, tolerance, min_points))
    if cache is not None:
        cache.put(cache_key, points)
    return points


def reconcile(
    blocks: Sequence[BlockRecord],
    geometry: Mapping[str, RouteGeometry],
    *,
    simplify: bool = True,
    tolerance: float = DEFAULT_TOLERANCE,
    min_points: int = SIMPLIFY_MIN_POINTS,
    cache: Optional[RouteCache] = None,
) -> Tuple[List[EnrichedBlock], MatchStats]:
    """Attach a route to every block whose name matches a geometry group.

    Unmatched blocks keep their own anchor and an empty route; they are
    reported through the stats, never raised.
    """

    stats = MatchStats(total_blocks=len(blocks), total_geometry_groups=len(geometry))
    enriched: List[EnrichedBlock] = []

    for block in blocks:
        outcome = match_route(block.name, geometry)
        if outcome is None or len(outcome.value.points) < 2:
            enriched.append(EnrichedBlock(block=block, anchor=block.anchor))
            continue

        route = outcome.value
        points = _route_points(
            outcome.key,
            route,
            simplify=simplify,
            tolerance=tolerance,
            min_points=min_points,
            cache=cache,
        )
        stats.matched += 1
        stats.by_strategy[outcome.strategy] += 1
        if outcome.ambiguous:
            stats.ambiguous += 1
        enriched.append(
            EnrichedBlock(
                block=block,
                anchor=route.concentration_point or block.anchor,
                route=points,
                matched_name=route.name,
                match_strategy=outcome.strategy,
            )
        )

    LOGGER.info("Blocks matched to routes: %d/%d", stats.matched, stats.total_blocks)
    return enriched, stats


def load_fallback_rows(path: Path) -> List[BlockRecord]:
    with path.open(encoding="utf-8") as handle:
        rows = json.load(handle)
    if not isinstance(rows, list):
        raise NormalizationError(f"Fallback file {path} must hold a list of rows")
    return rows_to_blocks(row for row in rows if isinstance(row, dict))


async def load_blocks(
    client: httpx.AsyncClient, settings: Settings
) -> Tuple[List[BlockRecord], str, Optional[str]]:
    """Walk API, spreadsheet and fallback file in order; first non-empty wins."""

    if settings.api_url:
        try:
            blocks = await fetch_blocks_api(client, settings.api_url)
        except (httpx.HTTPError, NormalizationError, ValueError) as exc:
            LOGGER.warning("Block API unavailable: %s", exc)
        else:
            if blocks:
                LOGGER.info("Loaded %d blocks from the API", len(blocks))
                return blocks, SOURCE_API, None

    if settings.spreadsheet:
        try:
            blocks = await fetch_spreadsheet_blocks(client, settings.spreadsheet)
        except (httpx.HTTPError, OSError, NormalizationError) as exc:
            LOGGER.warning("Spreadsheet unavailable: %s", exc)
        else:
            if blocks:
                LOGGER.info("Loaded %d blocks from the spreadsheet", len(blocks))
                return blocks, SOURCE_SPREADSHEET, "Block API unavailable; using spreadsheet data."

    if settings.fallback:
        try:
            blocks = await asyncio.to_thread(load_fallback_rows, Path(settings.fallback))
        except (OSError, ValueError, NormalizationError) as exc:
            LOGGER.warning("Fallback dataset unavailable: %s", exc)
        else:
            if blocks:
                LOGGER.info("Loaded %d blocks from the fallback dataset", len(blocks))
                return (
                    blocks,
                    SOURCE_FALLBACK,
                    "Block API and spreadsheet unavailable; using the fallback dataset.",
                )

    return [], SOURCE_NONE, "No block source available."


async def _load(client: httpx.AsyncClient, settings: Settings, cache: Optional[RouteCache]) -> Snapshot:
    (blocks, source, notice), geometry, cameras, traffic = await asyncio.gather(
        load_blocks(client, settings),
        fetch_geometry(client, settings.kmz),
        fetch_cameras(client, settings.cameras_url, settings.camera_bbox),
        fetch_traffic_alerts(client, settings.traffic_url),
    )

    enriched, stats = reconcile(
        blocks,
        geometry.routes,
        simplify=settings.simplify,
        tolerance=settings.tolerance,
        min_points=settings.simplify_min_points,
        cache=cache,
    )
    return Snapshot(
        blocks=enriched,
        stats=stats,
        source=source,
        notice=notice,
        cameras=cameras,
        traffic_alerts=traffic,
        geometry_groups_seen=geometry.total_groups,
        geometry_groups_usable=geometry.usable_groups,
    )


async def load_snapshot(
    settings: Settings,
    *,
    client: Optional[httpx.AsyncClient] = None,
    cache: Optional[RouteCache] = None,
) -> Snapshot:
    """Fetch every source concurrently and reconcile blocks with routes."""

    if client is not None:
        return await _load(client, settings, cache)
    timeout = httpx.Timeout(settings.http_timeout, connect=5.0)
    async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as owned:
        return await _load(owned, settings, cache)


def run_reconciliation(*, settings: Settings, out_dir: Path) -> Snapshot:
    snapshot = asyncio.run(load_snapshot(settings))

    out_dir.mkdir(parents=True, exist_ok=True)
    write_json(out_dir / "blocos.json", snapshot.blocks, snapshot.stats)
    write_csv(out_dir / "blocos.csv", snapshot.blocks)
    markdown = generate_markdown_summary(
        snapshot.blocks,
        snapshot.stats,
        source=snapshot.source,
        notice=snapshot.notice,
    )
    write_markdown(out_dir / "recon_report.md", markdown)
    return snapshot
