"""
Batched elevation resolution for lattice points.

Points are grouped by the tile they fall in, so a few hundred points usually
cost only a handful of downloads.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from domain.models import GridElevation
from geo.topography import geo_to_tile, pixel_elevation
from shared.constants import FETCH_CHUNK_SIZE
from shared.diagnostics import log_memory_usage

if TYPE_CHECKING:
    from collections.abc import Sequence

    import numpy as np

    from domain.models import GridPoint, TileAddress
    from elevation.provider import ElevationTileProvider

logger = logging.getLogger(__name__)


async def resolve_elevations(
    points: Sequence[GridPoint],
    provider: ElevationTileProvider,
    *,
    chunk_size: int = FETCH_CHUNK_SIZE,
) -> list[GridElevation]:
    """
    Resolve the elevation of every point, in input order.

    Tiles are requested in chunks of `chunk_size`: the tiles of one chunk are
    fetched concurrently and the whole chunk is awaited before the next one
    starts. Points whose tile or pixel holds no data get ``elevation=None``.

    Args:
        points: Lattice points to resolve.
        provider: Source of decoded tiles (cache + fallback chain).
        chunk_size: Maximum tiles fetched at once.

    Returns:
        One GridElevation per input point.

    """
    if not points:
        return []
    chunk_size = max(1, int(chunk_size))

    located = [geo_to_tile(p.lat, p.lon, provider.zoom, provider.tile_size) for p in points]
    addresses: list[TileAddress] = list(dict.fromkeys(loc.address for loc in located))
    logger.info('Elevation: %d points -> %d tiles', len(points), len(addresses))

    tile_pixels: dict[TileAddress, np.ndarray | None] = {}
    for start in range(0, len(addresses), chunk_size):
        chunk = addresses[start : start + chunk_size]
        results = await asyncio.gather(*(provider.get_tile(a) for a in chunk))
        tile_pixels.update(zip(chunk, results, strict=True))
        logger.debug(
            'Elevation tiles: %d/%d resolved', len(tile_pixels), len(addresses)
        )

    elevations: list[GridElevation] = []
    missing = 0
    for point, loc in zip(points, located, strict=True):
        pixels = tile_pixels[loc.address]
        value = pixel_elevation(pixels, loc.px, loc.py) if pixels is not None else None
        if value is None:
            missing += 1
        elevations.append(GridElevation.from_point(point, value))

    if missing:
        logger.info('Elevation: %d of %d points without data', missing, len(points))
    log_memory_usage('after elevation resolution')
    return elevations
