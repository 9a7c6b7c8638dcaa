"""Error hierarchy of the slope analysis engine.

Partial data (tiles without coverage, no-data pixels, cells lacking
neighbours) is never an error; it flows through the pipeline as ``None``.
"""

from __future__ import annotations


class TerrainAnalysisError(Exception):
    """Base error for terrain analysis operations."""


class InvalidInputError(TerrainAnalysisError):
    """Request rejected before any computation (bad polygon, spacing or line)."""


class GridTooLargeError(InvalidInputError):
    """Grid point count exceeds the caller's ceiling."""

    def __init__(self, point_count: int, max_points: int) -> None:
        self.point_count = point_count
        self.max_points = max_points
        super().__init__(
            f'Grid has {point_count} points (limit {max_points}); '
            'increase the interval or draw a smaller polygon'
        )


class EmptyGridError(InvalidInputError):
    """No lattice point falls inside the polygon."""

    def __init__(self) -> None:
        super().__init__(
            'No grid points inside the polygon; enlarge the polygon '
            'or decrease the interval'
        )


class ResolutionTimeoutError(TerrainAnalysisError):
    """Elevation resolution exceeded its time budget."""

    def __init__(self, timeout_s: float) -> None:
        self.timeout_s = timeout_s
        super().__init__(f'Elevation resolution exceeded time budget of {timeout_s:g} s')


class MatrixContractError(TerrainAnalysisError):
    """Samples handed to the matrix assembler break the grid contract."""
