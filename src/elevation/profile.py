"""Elevation profiles sampled from the matrix along a polyline."""

from __future__ import annotations

import bisect
import logging
from itertools import accumulate, pairwise
from typing import TYPE_CHECKING

from domain.models import CrossSectionPoint, GeoPoint
from geo.topography import haversine_distance, meters_to_degrees
from shared.constants import CROSS_SECTION_SAMPLES, MIN_POINTS_FOR_LINE

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence

    from domain.models import ElevationMatrix

logger = logging.getLogger(__name__)


def _cell_value(z: ElevationMatrix, row: int, col: int) -> float | None:
    if 0 <= row < len(z) and 0 <= col < len(z[row]):
        return z[row][col]
    return None


def _interpolate(
    line: Sequence[GeoPoint],
    cumulative: Sequence[float],
    distance: float,
) -> GeoPoint:
    # First vertex whose cumulative distance reaches `distance`
    i = bisect.bisect_left(cumulative, distance, lo=1)
    if i >= len(line):
        return line[-1]
    seg = cumulative[i] - cumulative[i - 1]
    t = (distance - cumulative[i - 1]) / seg if seg > 0 else 0.0
    a, b = line[i - 1], line[i]
    return GeoPoint(lat=a.lat + t * (b.lat - a.lat), lon=a.lon + t * (b.lon - a.lon))


def extract_cross_section(
    z: ElevationMatrix,
    origin_lat: float,
    origin_lon: float,
    cell_size_m: float,
    line: Sequence[GeoPoint],
    num_samples: int = CROSS_SECTION_SAMPLES,
) -> Iterator[CrossSectionPoint]:
    """
    Yield the elevation profile along `line`.

    `num_samples` distances are spaced evenly from 0 to the haversine length
    of the line; each is mapped to the nearest matrix cell (row 0 at
    `origin_lat`, col 0 at `origin_lon`). Samples landing outside the matrix
    or on a cell without data are dropped, so fewer than `num_samples`
    points may come out.

    Degree steps are taken at `origin_lat`.

    The generator is lazy and can be consumed once.
    """
    if len(line) < MIN_POINTS_FOR_LINE or num_samples < 1:
        return

    cumulative = list(
        accumulate(
            (haversine_distance(a.lat, a.lon, b.lat, b.lon) for a, b in pairwise(line)),
            initial=0.0,
        )
    )
    total = cumulative[-1]
    step = total / (num_samples - 1) if num_samples > 1 else 0.0
    d_lat, d_lon = meters_to_degrees(cell_size_m, origin_lat)

    for i in range(num_samples):
        distance = i * step
        point = _interpolate(line, cumulative, distance)
        row = round((origin_lat - point.lat) / d_lat)
        col = round((point.lon - origin_lon) / d_lon)
        elevation = _cell_value(z, row, col)
        if elevation is None:
            continue
        yield CrossSectionPoint(
            distance=distance,
            elevation=elevation,
            lat=point.lat,
            lon=point.lon,
        )


def auto_cross_section_line(
    z: ElevationMatrix,
    origin_lat: float,
    origin_lon: float,
    cell_size_m: float,
) -> list[GeoPoint] | None:
    """
    Line from the highest to the lowest resolved cell.

    Ties keep the first cell in row-major order. Returns None when fewer
    than two distinct cells hold data.
    """
    resolved = [
        (v, r, c)
        for r, row in enumerate(z)
        for c, v in enumerate(row)
        if v is not None
    ]
    if len(resolved) < MIN_POINTS_FOR_LINE:
        return None
    _, hr, hc = max(resolved, key=lambda t: t[0])
    _, lr, lc = min(resolved, key=lambda t: t[0])
    if (hr, hc) == (lr, lc):
        return None

    d_lat, d_lon = meters_to_degrees(cell_size_m, origin_lat)
    logger.debug('Auto cross section from cell (%d, %d) to (%d, %d)', hr, hc, lr, lc)
    return [
        GeoPoint(lat=origin_lat - hr * d_lat, lon=origin_lon + hc * d_lon),
        GeoPoint(lat=origin_lat - lr * d_lat, lon=origin_lon + lc * d_lon),
    ]
