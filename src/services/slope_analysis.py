"""Slope analysis service - orchestrates the polygon analysis pipeline.

grid -> elevations -> matrix -> slopes -> stats -> cross section
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from domain.errors import (
    EmptyGridError,
    GridTooLargeError,
    InvalidInputError,
    ResolutionTimeoutError,
)
from domain.models import (
    AnalysisRequest,
    AnalysisResult,
    GridInfo,
    GridPoint,
    PointSlope,
)
from domain.settings import EngineSettings
from elevation.matrix import build_matrix, build_slope_matrix
from elevation.profile import auto_cross_section_line, extract_cross_section
from elevation.provider import ElevationTileProvider
from elevation.resolver import resolve_elevations
from elevation.slope import calculate_slopes, slope_from_neighbours, surrounding_points
from elevation.stats import compute_stats
from geo.grid import generate_grid
from infrastructure.http.client import make_http_session
from shared.constants import POINT_SLOPE_OFFSET_M, RESOLUTION_TIMEOUT_S
from tiles.cache import TileCache

if TYPE_CHECKING:
    from collections.abc import Mapping

logger = logging.getLogger(__name__)


def parse_request(data: AnalysisRequest | Mapping[str, Any]) -> AnalysisRequest:
    """Validate raw request data; pydantic errors become InvalidInputError."""
    if isinstance(data, AnalysisRequest):
        return data
    try:
        return AnalysisRequest.model_validate(data)
    except ValidationError as e:
        problems = '; '.join(
            f'{".".join(str(p) for p in err["loc"]) or "request"}: {err["msg"]}'
            for err in e.errors()
        )
        raise InvalidInputError(problems) from e


async def analyze_polygon(
    request: AnalysisRequest | Mapping[str, Any],
    provider: ElevationTileProvider,
    settings: EngineSettings | None = None,
) -> AnalysisResult:
    """
    Run the full slope analysis for one polygon.

    Args:
        request: Validated request or raw mapping with the same fields.
        provider: Tile provider (owns the shared tile cache).
        settings: Engine settings; only chunk_size is read here.

    Returns:
        AnalysisResult. Partial data shows up as None cells and omitted slopes.

    Raises:
        InvalidInputError: bad polygon or interval, grid over max_points, or
            an empty grid when require_points is set.
        ResolutionTimeoutError: elevations not resolved within timeout_s.

    """
    req = parse_request(request)
    settings = settings or EngineSettings()
    start = time.monotonic()

    grid = generate_grid(req.polygon_points, req.interval)
    total = len(grid.points)
    if total > req.max_points:
        raise GridTooLargeError(total, req.max_points)
    if total == 0 and req.require_points:
        raise EmptyGridError

    try:
        async with asyncio.timeout(req.timeout_s):
            elevations = await resolve_elevations(
                grid.points, provider, chunk_size=settings.chunk_size
            )
    except TimeoutError:
        logger.warning(
            'Elevation resolution for %d points timed out after %.1fs',
            total,
            req.timeout_s,
        )
        raise ResolutionTimeoutError(req.timeout_s) from None

    z = build_matrix(elevations, grid.rows, grid.cols)
    slopes = calculate_slopes(z, req.interval)
    stats = compute_stats(slopes, z)
    slope_matrix = build_slope_matrix(slopes, grid.rows, grid.cols)

    line = req.line_points
    auto_line = None
    if line is None:
        line = auto_line = auto_cross_section_line(
            z, grid.origin_lat, grid.origin_lon, req.interval
        )
    cross_section = None
    if line is not None:
        cross_section = list(
            extract_cross_section(
                z,
                grid.origin_lat,
                grid.origin_lon,
                req.interval,
                line,
                req.num_samples,
            )
        )

    logger.info(
        'Slope analysis done: %dx%d grid, %d points, %d slopes (%.2fs)',
        grid.rows,
        grid.cols,
        total,
        len(slopes),
        time.monotonic() - start,
    )
    return AnalysisResult(
        grid_info=GridInfo(
            rows=grid.rows,
            cols=grid.cols,
            interval=req.interval,
            total_points=total,
            origin_lat=grid.origin_lat,
            origin_lon=grid.origin_lon,
        ),
        elevation_matrix=z,
        slope_matrix=slope_matrix,
        slopes=slopes,
        stats=stats,
        cross_section=cross_section,
        auto_cross_section_line=(
            [(p.lon, p.lat) for p in auto_line] if auto_line is not None else None
        ),
    )


async def analyze_point(
    lat: float,
    lon: float,
    provider: ElevationTileProvider,
    offset_m: float = POINT_SLOPE_OFFSET_M,
    *,
    timeout_s: float = RESOLUTION_TIMEOUT_S,
) -> PointSlope:
    """Slope at one location from the centre and four samples `offset_m` away."""
    if not (-90.0 <= lat <= 90.0 and -180.0 <= lon <= 180.0):
        msg = f'coordinate out of range: lat={lat}, lon={lon}'
        raise InvalidInputError(msg)
    if offset_m <= 0:
        msg = f'offset must be positive, got {offset_m}'
        raise InvalidInputError(msg)

    named = surrounding_points(lat, lon, offset_m)
    points = [GridPoint(p.lat, p.lon, row=0, col=i) for i, p in enumerate(named.values())]
    try:
        async with asyncio.timeout(timeout_s):
            samples = await resolve_elevations(points, provider)
    except TimeoutError:
        raise ResolutionTimeoutError(timeout_s) from None

    by_name = {name: s.elevation for name, s in zip(named, samples, strict=True)}
    slope = None
    if all(v is not None for v in by_name.values()):
        slope = slope_from_neighbours(
            by_name['north'],
            by_name['south'],
            by_name['east'],
            by_name['west'],
            offset_m,
        )
    else:
        logger.info('Point slope at %.6f,%.6f: missing samples, no slope', lat, lon)
    return PointSlope(
        lat=lat,
        lon=lon,
        offset_m=offset_m,
        center_elevation=by_name['center'],
        samples=samples,
        slope=slope,
    )


class SlopeAnalysisService:
    """Runs analyses with one HTTP session per call and a tile cache shared between calls."""

    def __init__(
        self,
        settings: EngineSettings | None = None,
        cache: TileCache | None = None,
    ) -> None:
        self.settings = settings or EngineSettings()
        self.cache = cache if cache is not None else TileCache(
            capacity=self.settings.cache_capacity,
            policy=self.settings.cache_policy,
        )

    async def analyze(self, request: AnalysisRequest | Mapping[str, Any]) -> AnalysisResult:
        req = parse_request(request)
        async with make_http_session() as client:
            provider = ElevationTileProvider.from_settings(
                client, self.settings, cache=self.cache
            )
            result = await analyze_polygon(req, provider, self.settings)
        stats = self.cache.get_stats()
        logger.info(
            'Tile cache: %d entries (%d negative), %d hits, %d misses',
            stats.entries,
            stats.negative_entries,
            stats.hits,
            stats.misses,
        )
        return result

    async def analyze_point(
        self,
        lat: float,
        lon: float,
        offset_m: float = POINT_SLOPE_OFFSET_M,
    ) -> PointSlope:
        async with make_http_session() as client:
            provider = ElevationTileProvider.from_settings(
                client, self.settings, cache=self.cache
            )
            return await analyze_point(lat, lon, provider, offset_m)


def run_analysis(
    request: AnalysisRequest | Mapping[str, Any],
    settings: EngineSettings | None = None,
) -> AnalysisResult:
    """Blocking convenience wrapper around SlopeAnalysisService.analyze."""
    service = SlopeAnalysisService(settings)
    return asyncio.run(service.analyze(request))


def run_point_analysis(
    lat: float,
    lon: float,
    offset_m: float = POINT_SLOPE_OFFSET_M,
    settings: EngineSettings | None = None,
) -> PointSlope:
    """Blocking convenience wrapper around SlopeAnalysisService.analyze_point."""
    service = SlopeAnalysisService(settings)
    return asyncio.run(service.analyze_point(lat, lon, offset_m))
