"""
Slope and aspect from an elevation matrix.

Gradients use centred finite differences over the four axis neighbours:

    dz/dy = (north - south) / (2 * cell)
    dz/dx = (east - west) / (2 * cell)

Row 0 is the northern edge, so the northern neighbour of row r is r - 1.
Aspect is the downslope bearing, clockwise from north.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

from domain.errors import InvalidInputError
from domain.models import CellSlope, Direction8, GeoPoint, SlopeClass
from geo.topography import meters_to_degrees
from shared.constants import (
    ASPECT_DEGREES_DECIMALS,
    POINT_SLOPE_OFFSET_M,
    SLOPE_DEGREES_DECIMALS,
)

if TYPE_CHECKING:
    from domain.models import ElevationMatrix

_DIRECTIONS: tuple[Direction8, ...] = tuple(Direction8)
_OCTANT_DEG = 360.0 / len(_DIRECTIONS)


def classify_slope(degrees: float) -> SlopeClass:
    """Bucket a slope angle; lower bounds inclusive, upper bounds exclusive."""
    return SlopeClass.for_degrees(degrees)


def aspect_to_direction(degrees: float) -> Direction8:
    """Map a bearing in [0, 360) to the nearest of eight compass octants."""
    return _DIRECTIONS[round(degrees / _OCTANT_DEG) % len(_DIRECTIONS)]


def slope_from_neighbours(
    north: float,
    south: float,
    east: float,
    west: float,
    distance_m: float,
    *,
    row: int = 0,
    col: int = 0,
) -> CellSlope:
    """Slope at a centre from samples `distance_m` away on each axis."""
    dzdy = (north - south) / (2 * distance_m)
    dzdx = (east - west) / (2 * distance_m)
    gradient = math.hypot(dzdx, dzdy)

    degrees = math.degrees(math.atan(gradient))
    percent = gradient * 100
    aspect = math.degrees(math.atan2(-dzdx, -dzdy))
    if aspect < 0:
        aspect += 360.0

    return CellSlope(
        row=row,
        col=col,
        degrees=round(degrees, SLOPE_DEGREES_DECIMALS),
        percent=round(percent, SLOPE_DEGREES_DECIMALS),
        # 359.96 would otherwise round up to 360.0
        aspect_degrees=round(aspect, ASPECT_DEGREES_DECIMALS) % 360.0,
        aspect_direction=aspect_to_direction(aspect),
        classification=classify_slope(degrees),
    )


def calculate_slopes(z: ElevationMatrix, cell_size_m: float) -> list[CellSlope]:
    """
    Slope of every interior cell with all five stencil values present.

    Border cells and cells next to a hole are skipped, so the result is
    usually shorter than the number of resolved cells.

    Args:
        z: Elevation matrix (rows x cols), None where there is no data.
        cell_size_m: Lattice spacing in metres.

    Returns:
        Slopes in row-major order.

    """
    if cell_size_m <= 0:
        msg = f'cell size must be positive, got {cell_size_m}'
        raise InvalidInputError(msg)
    rows = len(z)
    cols = len(z[0]) if rows else 0
    slopes: list[CellSlope] = []
    for r in range(1, rows - 1):
        for c in range(1, cols - 1):
            center = z[r][c]
            north = z[r - 1][c]
            south = z[r + 1][c]
            east = z[r][c + 1]
            west = z[r][c - 1]
            if center is None or north is None or south is None or east is None or west is None:
                continue
            slopes.append(
                slope_from_neighbours(north, south, east, west, cell_size_m, row=r, col=c)
            )
    return slopes


def surrounding_points(
    lat: float,
    lon: float,
    offset_m: float = POINT_SLOPE_OFFSET_M,
) -> dict[str, GeoPoint]:
    """Centre plus the points `offset_m` metres north, south, east and west."""
    d_lat, d_lon = meters_to_degrees(offset_m, lat)
    return {
        'center': GeoPoint(lat, lon),
        'north': GeoPoint(lat + d_lat, lon),
        'south': GeoPoint(lat - d_lat, lon),
        'east': GeoPoint(lat, lon + d_lon),
        'west': GeoPoint(lat, lon - d_lon),
    }
