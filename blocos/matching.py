"""Name matching between tabular blocks and geometry groups."""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Generic, List, Mapping, Optional, Tuple, TypeVar

from .normalization import normalize_name

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

BLOCK_PREFIX = "BLOCO"
LONG_NAME_PREFIX = 20

EXACT = "exact"
PREFIX_INSERTION = "prefix_insertion"
PREFIX_STRIPPED = "prefix_stripped"
LONG_PREFIX = "long_prefix"

STRATEGIES = (EXACT, PREFIX_INSERTION, PREFIX_STRIPPED, LONG_PREFIX)

_QUALIFIERS = (
    # whole words only, so "DAS" is not read as "DA" + "S"
    re.compile(r"^BLOCO\s+(?:(?:DOS|DAS|DO|DA|DE)\s+)?"),
    re.compile(r"^BC\s+"),
    re.compile(r"^GRBC\s+"),
    re.compile(r"^GRB\s+"),
)


@dataclass(frozen=True, slots=True)
class MatchOutcome(Generic[T]):
    key: str
    value: T
    strategy: str
    ambiguous: bool = False


def strip_qualifiers(name: str) -> str:
    """Drop leading qualifiers such as ``BLOCO DA`` or ``GRBC``."""

    for pattern in _QUALIFIERS:
        name = pattern.sub("", name)
    return name.strip()


def _first_of(
    hits: List[Tuple[str, T]], target: str, strategy: str
) -> MatchOutcome[T]:
    key, value = hits[0]
    ambiguous = len(hits) > 1
    if ambiguous:
        LOGGER.warning(
            "%s matched %d geometry groups via %s; using %r (others: %s)",
            target,
            len(hits),
            strategy,
            key,
            ", ".join(repr(other) for other, _ in hits[1:]),
        )
    return MatchOutcome(key, value, strategy, ambiguous)


def match_route(target_name: str, candidates: Mapping[str, T]) -> Optional[MatchOutcome[T]]:
    """Find the candidate for ``target_name``; first successful strategy wins.

    ``candidates`` must be keyed by normalized name. Exact lookups come
    first and the 20-character prefix heuristic last, because it is the
    most likely to pair two different blocks. Strategies 3 and 4 walk the
    mapping in its insertion order and take the first hit.
    """

    target = normalize_name(target_name)
    if not target:
        return None

    if target in candidates:
        return MatchOutcome(target, candidates[target], EXACT)

    prefixed = f"{BLOCK_PREFIX} {target}"
    if prefixed in candidates:
        return MatchOutcome(prefixed, candidates[prefixed], PREFIX_INSERTION)

    stripped = strip_qualifiers(target)
    if stripped:
        hits = [(key, value) for key, value in candidates.items() if strip_qualifiers(key) == stripped]
        if hits:
            return _first_of(hits, target, PREFIX_STRIPPED)

    if len(target) > LONG_NAME_PREFIX:
        head = target[:LONG_NAME_PREFIX]
        hits = [(key, value) for key, value in candidates.items() if key.startswith(head)]
        if hits:
            return _first_of(hits, target, LONG_PREFIX)

    return None


def find_route(target_name: str, candidates: Mapping[str, T]) -> Optional[T]:
    outcome = match_route(target_name, candidates)
    return outcome.value if outcome else None
