from __future__ import annotations

import json
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Dict, FrozenSet, Hashable, Iterable, Optional, Tuple

# Structured invalidation tags: ("companies", None), ("company", id), ("reports", company_id) ...
Tag = Tuple[str, Optional[str]]

DEFAULT_TTL_SECONDS = 300.0


class _Miss:
    def __repr__(self) -> str:
        return "MISS"

    def __bool__(self) -> bool:
        return False


MISS: Any = _Miss()


@dataclass
class _Entry:
    expires_at: float
    value: Any
    tags: FrozenSet[Tag]


class FetchCache:
    """
    In-memory LRU with TTL (seconds) for read results.

    Expired entries are dropped lazily on lookup. Entries carry tags so a
    write can invalidate exactly the resource family it touched. ``MISS``
    is returned instead of None so that None/empty results can be cached.
    """

    def __init__(
        self,
        ttl: float = DEFAULT_TTL_SECONDS,
        maxsize: int = 1024,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl = ttl
        self.maxsize = maxsize
        self._clock = clock
        self._data: "OrderedDict[Hashable, _Entry]" = OrderedDict()
        self._generation = 0

    @property
    def generation(self) -> int:
        """Bumped by every invalidation; lets a slow read detect it went stale."""
        return self._generation

    def __len__(self) -> int:
        return len(self._data)

    def __contains__(self, key: Hashable) -> bool:
        return self.get(key) is not MISS

    def get(self, key: Hashable) -> Any:
        entry = self._data.get(key)
        if entry is None:
            return MISS
        if entry.expires_at <= self._clock():
            self._data.pop(key, None)
            return MISS
        # move to end (LRU)
        self._data.move_to_end(key)
        return entry.value

    def set(
        self,
        key: Hashable,
        value: Any,
        tags: Iterable[Tag] = (),
        generation: Optional[int] = None,
    ) -> bool:
        """
        Store ``value``. When ``generation`` is given and an invalidation
        happened since it was read, the value is dropped and False returned.
        """
        if generation is not None and generation != self._generation:
            return False
        self._data[key] = _Entry(self._clock() + self.ttl, value, frozenset(tags))
        self._data.move_to_end(key)
        # evict
        while len(self._data) > self.maxsize:
            self._data.popitem(last=False)
        return True

    def invalidate(self, *tags: Tag) -> int:
        """Remove every entry carrying any of ``tags``."""
        wanted = set(tags)
        stale = [key for key, entry in self._data.items() if entry.tags & wanted]
        for key in stale:
            del self._data[key]
        self._generation += 1
        return len(stale)

    def invalidate_matching(self, pattern: str) -> int:
        """Coarse invalidation: drop every entry whose key contains ``pattern``."""
        stale = [key for key in self._data if pattern in str(key)]
        for key in stale:
            del self._data[key]
        self._generation += 1
        return len(stale)

    def clear(self) -> None:
        self._data.clear()
        self._generation += 1


def make_cache_key(operation: str, params: Optional[Dict[str, Any]] = None) -> str:
    """
    Operation name plus a stable serialization of its parameters, so two
    logically identical reads always land on the same key.
    """
    if not params:
        return operation
    encoded = json.dumps(params, sort_keys=True, separators=(",", ":"), ensure_ascii=False, default=str)
    return f"{operation}:{encoded}"


__all__ = ["DEFAULT_TTL_SECONDS", "MISS", "FetchCache", "Tag", "make_cache_key"]
