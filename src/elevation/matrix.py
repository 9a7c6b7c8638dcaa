"""Assembly of sparse elevation and slope matrices from per-cell values."""

from __future__ import annotations

from typing import TYPE_CHECKING

from domain.errors import MatrixContractError

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from domain.models import CellSlope, ElevationMatrix, GridElevation


def _empty_matrix(rows: int, cols: int) -> ElevationMatrix:
    if rows < 0 or cols < 0:
        msg = f'matrix shape must be non-negative, got {rows}x{cols}'
        raise MatrixContractError(msg)
    return [[None] * cols for _ in range(rows)]


def _claim(matrix: ElevationMatrix, seen: set[tuple[int, int]], row: int, col: int) -> None:
    rows = len(matrix)
    cols = len(matrix[0]) if rows else 0
    if not (0 <= row < rows and 0 <= col < cols):
        msg = f'cell ({row}, {col}) outside {rows}x{cols} matrix'
        raise MatrixContractError(msg)
    if (row, col) in seen:
        msg = f'cell ({row}, {col}) targeted more than once'
        raise MatrixContractError(msg)
    seen.add((row, col))


def _place(
    matrix: ElevationMatrix,
    seen: set[tuple[int, int]],
    row: int,
    col: int,
    value: float,
) -> None:
    _claim(matrix, seen, row, col)
    matrix[row][col] = value


def build_matrix(
    elevations: Sequence[GridElevation],
    rows: int,
    cols: int,
) -> ElevationMatrix:
    """
    Lay resolved elevations out as a rows x cols matrix.

    Cells without a resolved value stay None. Every (row, col) may be
    targeted at most once; a duplicate or an index outside the matrix
    means the lattice and the elevations disagree and raises
    MatrixContractError.
    """
    matrix = _empty_matrix(rows, cols)
    seen: set[tuple[int, int]] = set()
    for e in elevations:
        if e.elevation is None:
            _claim(matrix, seen, e.row, e.col)
            continue
        _place(matrix, seen, e.row, e.col, e.elevation)
    return matrix


def build_slope_matrix(
    slopes: Iterable[CellSlope],
    rows: int,
    cols: int,
) -> ElevationMatrix:
    """Slope degrees laid out per cell (heat-map layout); None where no slope."""
    matrix = _empty_matrix(rows, cols)
    seen: set[tuple[int, int]] = set()
    for s in slopes:
        _place(matrix, seen, s.row, s.col, s.degrees)
    return matrix
