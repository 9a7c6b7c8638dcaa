"""Geo module - geodesy helpers, sample lattice, tile mapping and DEM decoding."""

from .grid import generate_grid, point_in_polygon, validate_ring
from .topography import (
    decode_pixel,
    decode_tile,
    encode_elevation,
    geo_to_tile,
    haversine_distance,
    meters_to_degrees,
    pixel_elevation,
    read_tile_image,
    tile_has_data,
)

__all__ = [
    'decode_pixel',
    'decode_tile',
    'encode_elevation',
    'generate_grid',
    'geo_to_tile',
    'haversine_distance',
    'meters_to_degrees',
    'pixel_elevation',
    'point_in_polygon',
    'read_tile_image',
    'tile_has_data',
    'validate_ring',
]
