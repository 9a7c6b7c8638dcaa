"""Tile caching and download.

This module provides:
- TileCache: bounded in-memory store of decoded tiles, negative entries included
- TileFetcher: HTTP fetcher with retries for one source at a time
"""

from tiles.cache import CachedTile, CacheStats, TileCache
from tiles.fetcher import ElevationSource, TileFetcher

__all__ = [
    'CacheStats',
    'CachedTile',
    'ElevationSource',
    'TileCache',
    'TileFetcher',
]
