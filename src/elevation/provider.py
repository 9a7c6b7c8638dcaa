"""DEM tile provider with a priority-ordered source fallback chain.

Uses TileFetcher for downloads and TileCache for decoded tiles.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from geo.topography import tile_has_data
from shared.constants import DEM_SOURCES, DEM_TILE_SIZE, DEM_TILE_ZOOM
from tiles.cache import TileCache
from tiles.fetcher import ElevationSource, TileFetcher

if TYPE_CHECKING:
    from collections.abc import Sequence

    import aiohttp
    import numpy as np

    from domain.models import TileAddress
    from domain.settings import EngineSettings

logger = logging.getLogger(__name__)


class ElevationTileProvider:
    """Provider of decoded DEM tiles.

    For every address the sources are tried in priority order; the first
    tile holding at least one valid sampled pixel wins. Tiles with nothing
    but no-data pixels count as a failed source. When no source has data the
    address is cached as a negative entry and never fetched again while that
    entry lives.

    Concurrent requests for one address share a single in-flight download,
    also across providers built on the same TileCache.

    Usage:
        provider = ElevationTileProvider(client=session)
        pixels = await provider.get_tile(TileAddress(z=15, x=29100, y=12903))
    """

    def __init__(
        self,
        client: aiohttp.ClientSession,
        *,
        sources: Sequence[ElevationSource] | None = None,
        fetcher: TileFetcher | None = None,
        cache: TileCache | None = None,
        zoom: int = DEM_TILE_ZOOM,
        tile_size: int = DEM_TILE_SIZE,
    ) -> None:
        """Initialize elevation tile provider.

        Args:
            client: aiohttp session for HTTP requests.
            sources: Elevation sources in priority order.
            fetcher: TileFetcher instance; a default one is created if omitted.
            cache: Shared TileCache; a private one is created if omitted.
            zoom: Zoom level of the DEM tiles.
            tile_size: Tile side in pixels.
        """
        self.client = client
        self.sources = list(sources) if sources is not None else [
            ElevationSource(name, url) for name, url in DEM_SOURCES
        ]
        if not self.sources:
            msg = 'at least one elevation source is required'
            raise ValueError(msg)
        self.fetcher = fetcher or TileFetcher()
        self.cache = cache if cache is not None else TileCache()
        self.zoom = int(zoom)
        self.tile_size = int(tile_size)
        self._inflight = self.cache.inflight

    @classmethod
    def from_settings(
        cls,
        client: aiohttp.ClientSession,
        settings: EngineSettings,
        *,
        cache: TileCache | None = None,
    ) -> ElevationTileProvider:
        return cls(
            client,
            sources=[ElevationSource(s.name, s.url_template) for s in settings.sources],
            fetcher=TileFetcher(
                timeout_s=settings.http_timeout_s,
                retries=settings.http_retries,
                backoff=settings.http_backoff,
            ),
            cache=cache
            if cache is not None
            else TileCache(capacity=settings.cache_capacity, policy=settings.cache_policy),
            zoom=settings.zoom,
            tile_size=settings.tile_size,
        )

    async def get_tile(self, address: TileAddress) -> np.ndarray | None:
        """Get decoded tile pixels (H x W x 3 uint8), or None if no source has data."""
        entry = self.cache.get(address)
        if entry is not None:
            return entry.pixels
        # A caller that times out must not cancel a download others may await
        pixels = await asyncio.shield(self._download_task(address))
        if pixels is None and not self.cache.contains(address) and not self.client.closed:
            # Joined a download whose session closed before it finished
            pixels = await asyncio.shield(self._download_task(address))
        return pixels

    def _download_task(self, address: TileAddress) -> asyncio.Future[np.ndarray | None]:
        task = self._inflight.get(address)
        if task is None or task.get_loop() is not asyncio.get_running_loop():
            task = asyncio.ensure_future(self._load(address))
            self._inflight[address] = task
            task.add_done_callback(lambda t: self._forget(address, t))
        return task

    def _forget(self, address: TileAddress, task: asyncio.Future) -> None:
        if self._inflight.get(address) is task:
            del self._inflight[address]

    async def _load(self, address: TileAddress) -> np.ndarray | None:
        for source in self.sources:
            pixels = await self.fetcher.fetch(self.client, source, address)
            if pixels is None:
                continue
            if not tile_has_data(pixels):
                logger.debug(
                    'Source %s has only no-data pixels at z/x/y=%d/%d/%d, trying next',
                    source.name,
                    address.z,
                    address.x,
                    address.y,
                )
                continue
            self.cache.put(address, pixels, source=source.name)
            return pixels

        if self.client.closed:
            logger.debug(
                'Session closed while loading z/x/y=%d/%d/%d, nothing cached',
                address.z,
                address.x,
                address.y,
            )
            return None

        logger.warning(
            'No elevation source has data at z/x/y=%d/%d/%d',
            address.z,
            address.x,
            address.y,
        )
        self.cache.put_negative(address)
        return None
