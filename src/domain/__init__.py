"""Domain layer - value objects, result models, errors and settings."""
from domain.errors import (
    EmptyGridError,
    GridTooLargeError,
    InvalidInputError,
    MatrixContractError,
    ResolutionTimeoutError,
    TerrainAnalysisError,
)
from domain.models import (
    AnalysisRequest,
    AnalysisResult,
    CellSlope,
    CrossSectionPoint,
    Direction8,
    DistributionEntry,
    ElevationMatrix,
    GeoPoint,
    GridElevation,
    GridInfo,
    GridPoint,
    GridSpec,
    PointSlope,
    SlopeClass,
    SlopeStats,
    TileAddress,
)
from domain.settings import EngineSettings, load_settings, save_settings

__all__ = [
    'AnalysisRequest',
    'AnalysisResult',
    'CellSlope',
    'CrossSectionPoint',
    'Direction8',
    'DistributionEntry',
    'ElevationMatrix',
    'EmptyGridError',
    'EngineSettings',
    'GeoPoint',
    'GridElevation',
    'GridInfo',
    'GridPoint',
    'GridSpec',
    'GridTooLargeError',
    'InvalidInputError',
    'MatrixContractError',
    'PointSlope',
    'ResolutionTimeoutError',
    'SlopeClass',
    'SlopeStats',
    'TerrainAnalysisError',
    'TileAddress',
    'load_settings',
    'save_settings',
]
