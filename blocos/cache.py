"""Session-scoped cache handed explicitly to the components that need one."""
from __future__ import annotations

from typing import Dict, Generic, Hashable, Optional, TypeVar

T = TypeVar("T")


class RouteCache(Generic[T]):
    """Unbounded key/value store that lives as long as one session.

    There is no eviction: a session holds at most a few thousand routes.
    """

    def __init__(self) -> None:
        self._entries: Dict[Hashable, T] = {}

    def get(self, key: Hashable) -> Optional[T]:
        return self._entries.get(key)

    def put(self, key: Hashable, value: T) -> None:
        self._entries[key] = value

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)
