"""Rendering utilities for machine-readable and human-readable outputs."""
from __future__ import annotations

import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, List, Optional

from .models import EnrichedBlock, MatchStats

CSV_FIELDS = [
    "id",
    "name",
    "date",
    "neighborhood",
    "subprefecture",
    "attendance",
    "presentation",
    "lat",
    "lng",
    "has_route",
    "route_points",
    "matched_name",
    "match_strategy",
]

_ROUTE_SEPARATORS = re.compile(r"[|/]")


def write_csv(path: Path, blocks: Iterable[EnrichedBlock]) -> None:
    import csv

    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", newline="", encoding="utf-8") as handle:
        writer = csv.DictWriter(handle, fieldnames=CSV_FIELDS)
        writer.writeheader()
        for enriched in blocks:
            block = enriched.block
            writer.writerow(
                {
                    "id": block.id,
                    "name": block.name,
                    "date": block.date.isoformat() if block.date else "",
                    "neighborhood": block.neighborhood,
                    "subprefecture": block.subprefecture,
                    "attendance": block.attendance,
                    "presentation": block.presentation.value,
                    "lat": enriched.anchor.lat,
                    "lng": enriched.anchor.lng,
                    "has_route": enriched.has_route,
                    "route_points": len(enriched.route),
                    "matched_name": enriched.matched_name or "",
                    "match_strategy": enriched.match_strategy or "",
                }
            )


def write_json(path: Path, blocks: Iterable[EnrichedBlock], stats: MatchStats) -> None:
    import json

    path.parent.mkdir(parents=True, exist_ok=True)
    payload = {
        "stats": stats.as_dict(),
        "blocks": [enriched.as_json() for enriched in blocks],
    }
    with path.open("w", encoding="utf-8") as handle:
        json.dump(payload, handle, indent=2, ensure_ascii=False)


def generate_markdown_summary(
    blocks: List[EnrichedBlock],
    stats: MatchStats,
    *,
    source: str = "",
    notice: Optional[str] = None,
) -> str:
    lines = ["# Bloco Route Reconciliation Report", ""]
    lines.append(f"Generated: {datetime.now(timezone.utc).isoformat()}")
    lines.append("")
    if notice:
        lines.append(f"> {notice}")
        lines.append("")

    lines.append("## Overview")
    lines.append("")
    if source:
        lines.append(f"- Block source: **{source}**")
    lines.append(f"- Geometry groups available: **{stats.total_geometry_groups}**")
    lines.append(
        f"- **{stats.matched} of {stats.total_blocks} blocks have traced routes**"
    )
    lines.append(f"- Ambiguous matches: **{stats.ambiguous}**")
    lines.append("")

    if stats.by_strategy:
        lines.append("## Matches by strategy")
        lines.append("")
        for strategy, count in sorted(stats.by_strategy.items()):
            lines.append(f"- {strategy}: {count}")
        lines.append("")

    unmatched = [enriched for enriched in blocks if not enriched.has_route]
    if unmatched:
        lines.append("## Blocks without a traced route")
        lines.append("")
        lines.append("| ID | Name | Neighborhood | Date |")
        lines.append("| --- | --- | --- | --- |")
        for enriched in unmatched:
            block = enriched.block
            lines.append(
                "| {id} | {name} | {neighborhood} | {date} |".format(
                    id=block.id,
                    name=block.name.replace("|", "\\|"),
                    neighborhood=block.neighborhood.replace("|", "\\|"),
                    date=block.date.isoformat() if block.date else "",
                )
            )
        lines.append("")
    elif blocks:
        lines.append("Every block has a traced route.")

    return "\n".join(lines)


def write_markdown(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as handle:
        handle.write(content)


def format_duration(minutes: float) -> str:
    if minutes < 60:
        return f"{round(minutes)} min"
    hours = int(minutes // 60)
    rest = round(minutes % 60)
    return f"{hours}h {rest}min" if rest > 0 else f"{hours}h"


def format_distance_km(km: float) -> str:
    if km < 1:
        return f"{round(km * 1000)} m"
    return f"{km:.1f} km"


def split_route_description(description: str) -> List[str]:
    """Street-by-street stops of a written route, split on ``|`` or ``/``."""

    if not description:
        return []
    return [part.strip() for part in _ROUTE_SEPARATORS.split(description) if part.strip()]


def abbreviate(name: str, max_length: int = 30) -> str:
    if len(name) <= max_length:
        return name
    return name[: max_length - 3] + "..."
