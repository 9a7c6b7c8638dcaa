"""Value objects and result models of the slope analysis engine.

Immutable per-sample values are frozen dataclasses; request and result
envelopes that cross the engine boundary are pydantic models so they can be
validated on the way in and serialised on the way out.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, Field, field_validator, model_validator

from shared.constants import (
    CROSS_SECTION_SAMPLES,
    GRID_INTERVAL_DEFAULT_M,
    GRID_INTERVAL_MAX_M,
    GRID_INTERVAL_MIN_M,
    MAX_GRID_POINTS,
    MIN_POINTS_FOR_LINE,
    MIN_POINTS_FOR_RING,
    RESOLUTION_TIMEOUT_S,
    SLOPE_FLAT_MAX_DEG,
    SLOPE_GENTLE_MAX_DEG,
    SLOPE_MODERATE_MAX_DEG,
    SLOPE_STEEP_MAX_DEG,
)

ElevationMatrix = list[list[float | None]]


@dataclass(frozen=True)
class GeoPoint:
    """WGS84 coordinate in degrees."""

    lat: float
    lon: float


@dataclass(frozen=True)
class GridPoint:
    """Lattice sample; row 0 is the northern edge, col 0 the western edge."""

    lat: float
    lon: float
    row: int
    col: int


@dataclass(frozen=True)
class GridElevation:
    """Lattice sample with its resolved elevation (None = no data)."""

    lat: float
    lon: float
    row: int
    col: int
    elevation: float | None

    @classmethod
    def from_point(cls, point: GridPoint, elevation: float | None) -> GridElevation:
        return cls(point.lat, point.lon, point.row, point.col, elevation)


@dataclass(frozen=True)
class TileAddress:
    """XYZ tile address."""

    z: int
    x: int
    y: int

    def format_url(self, template: str) -> str:
        return template.format(z=self.z, x=self.x, y=self.y)


@dataclass(frozen=True)
class TilePixel:
    """Tile address plus the pixel offset inside that tile."""

    address: TileAddress
    px: int
    py: int


@dataclass(frozen=True)
class GridSpec:
    """Output of the grid generator."""

    points: list[GridPoint]
    rows: int
    cols: int
    origin_lat: float
    origin_lon: float
    d_lat: float
    d_lon: float


class SlopeClass(str, Enum):
    """Severity buckets ordered from flat to very steep."""

    FLAT = 'flat'
    GENTLE = 'gentle'
    MODERATE = 'moderate'
    STEEP = 'steep'
    VERY_STEEP = 'very_steep'

    @property
    def level(self) -> int:
        return _SLOPE_CLASS_INFO[self][0]

    @property
    def upper_deg(self) -> float:
        return _SLOPE_CLASS_INFO[self][1]

    @property
    def label(self) -> str:
        return _SLOPE_CLASS_INFO[self][2]

    @property
    def color(self) -> str:
        return _SLOPE_CLASS_INFO[self][3]

    @classmethod
    def for_degrees(cls, degrees: float) -> SlopeClass:
        for member in cls:
            if degrees < member.upper_deg:
                return member
        return cls.VERY_STEEP


# level, exclusive upper bound (degrees), label, colour
_SLOPE_CLASS_INFO: dict[SlopeClass, tuple[int, float, str, str]] = {
    SlopeClass.FLAT: (1, SLOPE_FLAT_MAX_DEG, 'Flat', 'green'),
    SlopeClass.GENTLE: (2, SLOPE_GENTLE_MAX_DEG, 'Gentle', 'yellow'),
    SlopeClass.MODERATE: (3, SLOPE_MODERATE_MAX_DEG, 'Moderate', 'orange'),
    SlopeClass.STEEP: (4, SLOPE_STEEP_MAX_DEG, 'Steep', 'red'),
    SlopeClass.VERY_STEEP: (5, float('inf'), 'Very steep', 'darkred'),
}


class Direction8(str, Enum):
    """Compass octants, clockwise from north."""

    N = 'N'
    NE = 'NE'
    E = 'E'
    SE = 'SE'
    S = 'S'
    SW = 'SW'
    W = 'W'
    NW = 'NW'


@dataclass(frozen=True)
class CellSlope:
    row: int
    col: int
    degrees: float
    percent: float
    aspect_degrees: float
    aspect_direction: Direction8
    classification: SlopeClass


@dataclass(frozen=True)
class CrossSectionPoint:
    distance: float  # metres from the line start
    elevation: float
    lat: float
    lon: float


class DistributionEntry(BaseModel):
    slope_class: str
    label: str
    color: str
    percent: float


class SlopeStats(BaseModel):
    """Scalar summary of one analysis."""

    mean_degrees: float = 0.0
    max_degrees: float = 0.0
    min_degrees: float = 0.0
    std_degrees: float = 0.0
    min_elevation: float = 0.0
    max_elevation: float = 0.0
    avg_elevation: float = 0.0
    elevation_range: float = 0.0
    distribution: list[DistributionEntry] = Field(default_factory=list)
    # Shorthands kept alongside the distribution for list views
    flat_percent: float = 0.0
    steep_percent: float = 0.0


class GridInfo(BaseModel):
    rows: int
    cols: int
    interval: float
    total_points: int
    origin_lat: float
    origin_lon: float


class AnalysisRequest(BaseModel):
    """
    Input of a polygon analysis.

    Coordinates are accepted as GeoJSON-ordered ``[lon, lat]`` pairs, which is
    what drawing tools emit, and exposed as ``GeoPoint`` lists.
    """

    polygon: list[tuple[float, float]]
    interval: float = GRID_INTERVAL_DEFAULT_M
    cross_section_line: list[tuple[float, float]] | None = None
    num_samples: int = Field(default=CROSS_SECTION_SAMPLES, ge=MIN_POINTS_FOR_LINE)
    max_points: int = Field(default=MAX_GRID_POINTS, gt=0)
    timeout_s: float = Field(default=RESOLUTION_TIMEOUT_S, gt=0)
    # Treat "no lattice point inside the polygon" as a validation failure
    require_points: bool = False

    @field_validator('polygon')
    @classmethod
    def validate_polygon(cls, v: list[tuple[float, float]]) -> list[tuple[float, float]]:
        if len(v) < MIN_POINTS_FOR_RING:
            msg = f'polygon needs at least {MIN_POINTS_FOR_RING} [lon, lat] points'
            raise ValueError(msg)
        if tuple(v[0]) != tuple(v[-1]):
            msg = 'polygon ring must be closed (first point equals last)'
            raise ValueError(msg)
        return v

    @field_validator('interval')
    @classmethod
    def validate_interval(cls, v: float) -> float:
        v = float(v)
        if not (GRID_INTERVAL_MIN_M <= v <= GRID_INTERVAL_MAX_M):
            msg = (
                f'interval must be within {GRID_INTERVAL_MIN_M:g}'
                f'-{GRID_INTERVAL_MAX_M:g} metres'
            )
            raise ValueError(msg)
        return v

    @field_validator('cross_section_line')
    @classmethod
    def validate_line(
        cls, v: list[tuple[float, float]] | None
    ) -> list[tuple[float, float]] | None:
        if v is not None and len(v) < MIN_POINTS_FOR_LINE:
            msg = f'cross_section_line needs at least {MIN_POINTS_FOR_LINE} points'
            raise ValueError(msg)
        return v

    @model_validator(mode='after')
    def validate_coordinates(self) -> AnalysisRequest:
        for lon, lat in [*self.polygon, *(self.cross_section_line or [])]:
            if not (-90.0 <= lat <= 90.0 and -180.0 <= lon <= 180.0):
                msg = f'coordinate out of range: [{lon}, {lat}]'
                raise ValueError(msg)
        return self

    @property
    def polygon_points(self) -> list[GeoPoint]:
        return [GeoPoint(lat=lat, lon=lon) for lon, lat in self.polygon]

    @property
    def line_points(self) -> list[GeoPoint] | None:
        if self.cross_section_line is None:
            return None
        return [GeoPoint(lat=lat, lon=lon) for lon, lat in self.cross_section_line]


class AnalysisResult(BaseModel):
    """Everything one polygon analysis produces."""

    grid_info: GridInfo
    elevation_matrix: ElevationMatrix
    slope_matrix: ElevationMatrix
    slopes: list[CellSlope] = Field(default_factory=list)
    stats: SlopeStats
    cross_section: list[CrossSectionPoint] | None = None
    # [lon, lat] pairs from the highest to the lowest resolved cell
    auto_cross_section_line: list[tuple[float, float]] | None = None


class PointSlope(BaseModel):
    """Slope at a single location from centre + N/S/E/W samples."""

    lat: float
    lon: float
    offset_m: float
    center_elevation: float | None
    samples: list[GridElevation]
    slope: CellSlope | None = None
