# localscope/core/cache.py
# -----------------------------------------------------------------------------
# Time-bounded response cache shared by the census and Overpass lookups
# - one instance per process, created at startup and injected
# - TTL measured from insertion; no size eviction, no single-flight
# -----------------------------------------------------------------------------
from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, TypeVar

from loguru import logger

T = TypeVar("T")


@dataclass(frozen=True)
class CacheEntry:
    value: Any
    created_at: float


class ResponseCache:
    def __init__(
        self, ttl_seconds: float = 3600.0, clock: Callable[[], float] = time.monotonic
    ):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def _is_fresh(self, entry: CacheEntry, now: float) -> bool:
        return now - entry.created_at < self.ttl_seconds

    async def get_or_fetch(self, key: str, fetcher: Callable[[], Awaitable[T]]) -> T:
        """
        Return the cached value for `key`, or await `fetcher()` and store it.
        Exceptions from the fetcher propagate and nothing is stored.
        """
        entry = self._entries.get(key)
        if entry is not None and self._is_fresh(entry, self._clock()):
            logger.debug(f"[cache] hit {key}")
            return entry.value

        logger.debug(f"[cache] miss {key}")
        value = await fetcher()
        self._entries[key] = CacheEntry(value=value, created_at=self._clock())
        return value

    def purge_expired(self) -> int:
        now = self._clock()
        stale = [k for k, e in self._entries.items() if not self._is_fresh(e, now)]
        for k in stale:
            del self._entries[k]
        return len(stale)

    def clear(self) -> None:
        self._entries.clear()


# ── key builders ─────────────────────────────────────────────────────────────
def coordinate_id(lat: float, lon: float) -> str:
    """~11 m grid; nearby geocodes of the same place share entries."""
    return f"{lat:.4f},{lon:.4f}"


def census_key(zip_code: str) -> str:
    return f"census:{zip_code}"


def competitor_key(
    location_id: str, radius_m: int | None, term: str, include_locations: bool
) -> str:
    scope = f"r{radius_m}" if radius_m is not None else "boundary"
    detail = "geom" if include_locations else "count"
    return f"competitor:{location_id}:{scope}:{term.strip().lower()}:{detail}"
