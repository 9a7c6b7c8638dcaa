from __future__ import annotations

import math
from collections import Counter
from typing import TYPE_CHECKING

import numpy as np

from domain.models import DistributionEntry, SlopeClass, SlopeStats
from shared.constants import (
    DISTRIBUTION_DECIMALS,
    ELEVATION_DECIMALS,
    ELEVATION_MAX_VALID_M,
    ELEVATION_MIN_VALID_M,
    SLOPE_DEGREES_DECIMALS,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from domain.models import CellSlope, ElevationMatrix

_STEEP_CLASSES = (SlopeClass.STEEP, SlopeClass.VERY_STEEP)


def _plausible_elevations(z: ElevationMatrix) -> np.ndarray:
    """Flatten the matrix, keeping only values inside the physical range."""
    values = np.array(
        [v for row in z for v in row if v is not None and math.isfinite(v)],
        dtype=np.float64,
    )
    mask = (values >= ELEVATION_MIN_VALID_M) & (values <= ELEVATION_MAX_VALID_M)
    return values[mask]


def compute_stats(slopes: Sequence[CellSlope], z: ElevationMatrix) -> SlopeStats:
    """
    Summarise classified cells and the elevation matrix.

    Degree statistics cover the classified cells only (population standard
    deviation). Elevation statistics cover every matrix cell whose value is
    within the plausible range, classified or not. Distribution percentages
    are relative to the number of classified cells and listed in class order.

    No slopes is a valid outcome and yields an all-zero result.
    """
    if not slopes:
        return SlopeStats()

    degs = np.array([s.degrees for s in slopes], dtype=np.float64)

    elevations = _plausible_elevations(z)
    if elevations.size:
        min_elev = float(elevations.min())
        max_elev = float(elevations.max())
        avg_elev = float(elevations.mean())
    else:
        min_elev = max_elev = avg_elev = 0.0

    counts = Counter(s.classification for s in slopes)
    total = len(slopes)
    distribution = [
        DistributionEntry(
            slope_class=cls.value,
            label=cls.label,
            color=cls.color,
            percent=round(counts[cls] / total * 100, DISTRIBUTION_DECIMALS),
        )
        for cls in SlopeClass
        if counts[cls]
    ]
    by_class = {d.slope_class: d.percent for d in distribution}

    return SlopeStats(
        mean_degrees=round(float(degs.mean()), SLOPE_DEGREES_DECIMALS),
        max_degrees=round(float(degs.max()), SLOPE_DEGREES_DECIMALS),
        min_degrees=round(float(degs.min()), SLOPE_DEGREES_DECIMALS),
        std_degrees=round(float(degs.std()), SLOPE_DEGREES_DECIMALS),
        min_elevation=round(min_elev, ELEVATION_DECIMALS),
        max_elevation=round(max_elev, ELEVATION_DECIMALS),
        avg_elevation=round(avg_elev, ELEVATION_DECIMALS),
        elevation_range=round(max_elev - min_elev, ELEVATION_DECIMALS),
        distribution=distribution,
        flat_percent=by_class.get(SlopeClass.FLAT.value, 0.0),
        steep_percent=round(
            sum(by_class.get(c.value, 0.0) for c in _STEEP_CLASSES),
            DISTRIBUTION_DECIMALS,
        ),
    )
