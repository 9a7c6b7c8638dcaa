"""Elevation module - DEM tile resolution and terrain analysis."""

from .matrix import build_matrix, build_slope_matrix
from .profile import auto_cross_section_line, extract_cross_section
from .provider import ElevationTileProvider
from .resolver import resolve_elevations
from .slope import (
    aspect_to_direction,
    calculate_slopes,
    classify_slope,
    slope_from_neighbours,
    surrounding_points,
)
from .stats import compute_stats

__all__ = [
    'ElevationTileProvider',
    'aspect_to_direction',
    'auto_cross_section_line',
    'build_matrix',
    'build_slope_matrix',
    'calculate_slopes',
    'classify_slope',
    'compute_stats',
    'extract_cross_section',
    'resolve_elevations',
    'slope_from_neighbours',
    'surrounding_points',
]
