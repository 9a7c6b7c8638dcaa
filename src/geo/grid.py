"""Lattice of sample points inside a user-drawn polygon."""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING

import numpy as np
import shapely
from shapely.geometry import Polygon

from domain.errors import InvalidInputError
from domain.models import GeoPoint, GridPoint, GridSpec
from geo.topography import meters_to_degrees
from shared.constants import MIN_POINTS_FOR_RING

if TYPE_CHECKING:
    from collections.abc import Sequence

logger = logging.getLogger(__name__)


def _to_polygon(ring: Sequence[GeoPoint]) -> Polygon:
    return Polygon([(p.lon, p.lat) for p in ring])


def validate_ring(ring: Sequence[GeoPoint]) -> None:
    """Raise InvalidInputError unless `ring` is a closed ring of >= 4 points."""
    if len(ring) < MIN_POINTS_FOR_RING:
        msg = f'Polygon needs at least {MIN_POINTS_FOR_RING} points, got {len(ring)}'
        raise InvalidInputError(msg)
    if ring[0] != ring[-1]:
        msg = 'Polygon ring must be closed (first point equals last)'
        raise InvalidInputError(msg)


def point_in_polygon(ring: Sequence[GeoPoint], point: GeoPoint) -> bool:
    """True when `point` lies strictly inside `ring` (boundary excluded)."""
    return bool(shapely.contains_xy(_to_polygon(ring), point.lon, point.lat))


def generate_grid(ring: Sequence[GeoPoint], spacing_m: float) -> GridSpec:
    """
    Build the sample lattice of `ring` at `spacing_m` metres.

    The lattice starts at the bounding box's north-west corner; row grows
    southwards, col eastwards. Only points strictly inside the polygon are
    kept. A spacing coarse enough to leave no interior point yields an empty
    point list, which is a valid outcome.
    """
    validate_ring(ring)
    if not math.isfinite(spacing_m) or spacing_m <= 0:
        msg = f'Grid spacing must be a positive number of metres, got {spacing_m}'
        raise InvalidInputError(msg)

    poly = _to_polygon(ring)
    min_lon, min_lat, max_lon, max_lat = poly.bounds
    center_lat = (min_lat + max_lat) / 2
    d_lat, d_lon = meters_to_degrees(spacing_m, center_lat)

    rows = math.ceil((max_lat - min_lat) / d_lat) + 1
    cols = math.ceil((max_lon - min_lon) / d_lon) + 1

    lats = max_lat - np.arange(rows) * d_lat
    lons = min_lon + np.arange(cols) * d_lon
    lon_grid, lat_grid = np.meshgrid(lons, lats)
    inside = shapely.contains_xy(poly, lon_grid, lat_grid)

    points = [
        GridPoint(lat=float(lats[r]), lon=float(lons[c]), row=int(r), col=int(c))
        for r, c in np.argwhere(inside)
    ]
    logger.info(
        'Grid %dx%d at %.1f m: %d of %d lattice points inside polygon',
        rows,
        cols,
        spacing_m,
        len(points),
        rows * cols,
    )
    return GridSpec(
        points=points,
        rows=rows,
        cols=cols,
        origin_lat=max_lat,
        origin_lon=min_lon,
        d_lat=d_lat,
        d_lon=d_lon,
    )
