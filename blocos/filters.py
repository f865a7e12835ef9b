"""Filtering and headline statistics over enriched blocks."""
from __future__ import annotations

import unicodedata
from dataclasses import dataclass
from datetime import date
from typing import Iterable, List, Optional

from .models import EnrichedBlock, PresentationMode

ALL = "todos"
KIND_MOVING = "deslocamento"
KIND_STATIONARY = "parado"

_KIND_MODES = {
    KIND_MOVING: PresentationMode.MOVING,
    KIND_STATIONARY: PresentationMode.STATIONARY,
}


@dataclass(frozen=True, slots=True)
class BlockFilters:
    date: Optional[date] = None
    subprefecture: str = ALL
    kind: str = ALL
    search: str = ""


@dataclass(frozen=True, slots=True)
class BlockStatistics:
    total: int
    attendance: int
    moving: int
    stationary: int


def _searchable(text: str) -> str:
    decomposed = unicodedata.normalize("NFD", text.lower())
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def _keep(enriched: EnrichedBlock, filters: BlockFilters, term: str) -> bool:
    block = enriched.block
    if filters.date is not None and block.date != filters.date:
        return False
    if filters.subprefecture != ALL and block.subprefecture != filters.subprefecture:
        return False
    mode = _KIND_MODES.get(filters.kind)
    if mode is not None and block.presentation is not mode:
        return False
    if term:
        return term in _searchable(block.name) or term in _searchable(block.neighborhood)
    return True


def apply_filters(blocks: Iterable[EnrichedBlock], filters: BlockFilters) -> List[EnrichedBlock]:
    term = _searchable(filters.search.strip())
    return [enriched for enriched in blocks if _keep(enriched, filters, term)]


def summarize(blocks: Iterable[EnrichedBlock]) -> BlockStatistics:
    total = attendance = moving = stationary = 0
    for enriched in blocks:
        block = enriched.block
        total += 1
        attendance += block.attendance
        if block.presentation is PresentationMode.MOVING:
            moving += 1
        elif block.presentation is PresentationMode.STATIONARY:
            stationary += 1
    return BlockStatistics(total=total, attendance=attendance, moving=moving, stationary=stationary)


def available_dates(blocks: Iterable[EnrichedBlock]) -> List[date]:
    return sorted({enriched.block.date for enriched in blocks if enriched.block.date is not None})
