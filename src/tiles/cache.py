"""In-memory bounded cache of decoded DEM tiles.

This module provides the TileCache class holding decoded pixel buffers (or
negative "no source has data here" entries) keyed by tile address. The cache
lives for the lifetime of the process and is never persisted.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from collections import OrderedDict
from dataclasses import dataclass
from typing import TYPE_CHECKING

from shared.constants import TILE_CACHE_CAPACITY, TILE_CACHE_POLICY, EvictionPolicy

if TYPE_CHECKING:
    import numpy as np

    from domain.models import TileAddress

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CachedTile:
    """A cache entry; pixels is None for a negative entry."""

    pixels: np.ndarray | None
    source: str | None = None

    @property
    def is_negative(self) -> bool:
        return self.pixels is None


@dataclass
class CacheStats:
    """Statistics about the tile cache."""

    entries: int
    negative_entries: int
    capacity: int
    hits: int
    misses: int
    evictions: int


class TileCache:
    """Bounded tile cache with an explicit eviction policy.

    Features:
    - Capacity-limited; the victim is chosen by ``policy``:
      INSERTION drops the oldest inserted entry, RECENCY the least recently
      read one
    - Negative entries remember addresses no source could serve
    - All bookkeeping behind a lock, so concurrent analyses may share one cache
    - ``inflight`` maps addresses to running downloads so providers built on
      the same cache join one download instead of starting another

    Usage:
        cache = TileCache(capacity=100)
        cache.put(address, pixels, source='dem5a')
        entry = cache.get(address)
        if entry is not None and not entry.is_negative:
            ...
    """

    def __init__(
        self,
        capacity: int = TILE_CACHE_CAPACITY,
        policy: EvictionPolicy = TILE_CACHE_POLICY,
    ) -> None:
        """Initialize tile cache.

        Args:
            capacity: Maximum number of entries (negative entries included).
            policy: Eviction policy once capacity is exceeded.
        """
        if capacity < 1:
            msg = f'capacity must be at least 1, got {capacity}'
            raise ValueError(msg)
        self.capacity = int(capacity)
        self.policy = EvictionPolicy(policy)
        self._entries: OrderedDict[TileAddress, CachedTile] = OrderedDict()
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._evictions = 0
        # Pending downloads, shared by every provider serving from this cache
        self.inflight: dict[TileAddress, asyncio.Future[np.ndarray | None]] = {}

    def get(self, address: TileAddress) -> CachedTile | None:
        """Return the entry for `address`, or None on a miss.

        Under the RECENCY policy a hit moves the entry to the young end.
        """
        with self._lock:
            entry = self._entries.get(address)
            if entry is None:
                self._misses += 1
                return None
            self._hits += 1
            if self.policy is EvictionPolicy.RECENCY:
                self._entries.move_to_end(address)
            return entry

    def contains(self, address: TileAddress) -> bool:
        """Check presence without touching statistics or recency."""
        with self._lock:
            return address in self._entries

    def put(self, address: TileAddress, pixels: np.ndarray, source: str | None = None) -> None:
        """Store a decoded tile."""
        self._store(address, CachedTile(pixels=pixels, source=source))

    def put_negative(self, address: TileAddress) -> None:
        """Remember that no source has data for `address`."""
        self._store(address, CachedTile(pixels=None))

    def _store(self, address: TileAddress, entry: CachedTile) -> None:
        with self._lock:
            # Re-inserting keeps the original insertion slot
            self._entries[address] = entry
            if self.policy is EvictionPolicy.RECENCY:
                self._entries.move_to_end(address)
            while len(self._entries) > self.capacity:
                victim, _ = self._entries.popitem(last=False)
                self._evictions += 1
                logger.debug('Tile cache evicted z/x/y=%d/%d/%d', victim.z, victim.x, victim.y)

    def delete(self, address: TileAddress) -> bool:
        """Delete an entry. Returns True if it existed."""
        with self._lock:
            return self._entries.pop(address, None) is not None

    def clear(self) -> None:
        """Drop every entry and reset statistics."""
        with self._lock:
            self._entries.clear()
            self._hits = self._misses = self._evictions = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get_stats(self) -> CacheStats:
        """Snapshot of cache statistics."""
        with self._lock:
            return CacheStats(
                entries=len(self._entries),
                negative_entries=sum(1 for e in self._entries.values() if e.is_negative),
                capacity=self.capacity,
                hits=self._hits,
                misses=self._misses,
                evictions=self._evictions,
            )
