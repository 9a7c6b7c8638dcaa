from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from http import HTTPStatus
from typing import TYPE_CHECKING

import aiohttp
from PIL import UnidentifiedImageError

from geo.topography import read_tile_image
from shared.constants import (
    HTTP_5XX_MAX,
    HTTP_5XX_MIN,
    HTTP_BACKOFF_FACTOR,
    HTTP_RETRIES_DEFAULT,
    HTTP_TIMEOUT_DEFAULT,
)

if TYPE_CHECKING:
    import numpy as np

    from domain.models import TileAddress

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ElevationSource:
    """Named tile endpoint; url_template uses {z}/{x}/{y}."""

    name: str
    url_template: str

    def url_for(self, address: TileAddress) -> str:
        return address.format_url(self.url_template)


class TileFetcher:
    """HTTP fetcher for DEM PNG tiles.

    Never raises for per-tile problems: a missing tile, an HTTP error, a
    network failure, a closed session or an undecodable body all yield None
    so the caller can move on to the next source.
    """

    def __init__(
        self,
        *,
        timeout_s: float = HTTP_TIMEOUT_DEFAULT,
        retries: int = HTTP_RETRIES_DEFAULT,
        backoff: float = HTTP_BACKOFF_FACTOR,
    ) -> None:
        self.timeout_s = float(timeout_s)
        self.retries = max(1, int(retries))
        self.backoff = float(backoff)
        self._stats_downloads = 0
        self._stats_not_found = 0
        self._stats_errors = 0

    @property
    def stats(self) -> dict[str, int]:
        return {
            'downloads': self._stats_downloads,
            'not_found': self._stats_not_found,
            'errors': self._stats_errors,
        }

    async def fetch(
        self,
        client: aiohttp.ClientSession,
        source: ElevationSource,
        address: TileAddress,
    ) -> np.ndarray | None:
        """
        Download one tile from `source` and return it as an H x W x 3 array.

        404 and other 4xx answers give None at once; 429/5xx and network
        errors are retried with exponential backoff.
        """
        data = await self._download(client, source, address)
        if data is None:
            return None
        try:
            pixels = read_tile_image(data)
        except (UnidentifiedImageError, ValueError, OSError) as e:
            self._stats_errors += 1
            logger.debug(
                'Undecodable tile from %s z/x/y=%d/%d/%d: %s',
                source.name,
                address.z,
                address.x,
                address.y,
                e,
            )
            return None
        self._stats_downloads += 1
        return pixels

    async def _download(
        self,
        client: aiohttp.ClientSession,
        source: ElevationSource,
        address: TileAddress,
    ) -> bytes | None:
        url = source.url_for(address)
        last_exc: Exception | None = None
        for attempt in range(self.retries):
            if client.closed:
                self._stats_errors += 1
                logger.debug('Session closed, not requesting %s', url)
                return None
            try:
                timeout = aiohttp.ClientTimeout(total=self.timeout_s)
                async with client.get(url, timeout=timeout) as resp:
                    sc = resp.status
                    if sc == HTTPStatus.OK:
                        return await resp.read()
                    if sc == HTTPStatus.NOT_FOUND:
                        self._stats_not_found += 1
                        logger.debug('No tile (404) at %s', url)
                        return None
                    is_rate_or_5xx = (sc == HTTPStatus.TOO_MANY_REQUESTS) or (
                        HTTP_5XX_MIN <= sc < HTTP_5XX_MAX
                    )
                    if not is_rate_or_5xx:
                        self._stats_errors += 1
                        logger.debug('Unexpected HTTP %d for %s', sc, url)
                        return None
                    last_exc = RuntimeError(f'HTTP {sc} for {url}')
            except (aiohttp.ClientError, TimeoutError) as e:
                last_exc = e
            if attempt + 1 < self.retries:
                await asyncio.sleep(self.backoff**attempt)
        self._stats_errors += 1
        logger.debug(
            'Giving up on %s after %d attempts: %s', url, self.retries, last_exc
        )
        return None
