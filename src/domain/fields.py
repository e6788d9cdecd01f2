"""Grid descriptor and scalar field produced by aggregation."""

from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True)
class GridDescriptor:
    """
    Regular grid placed in world coordinates.

    Cell ``(col, row)`` covers ``[origin_x + col * w, origin_x + (col + 1) * w)``
    horizontally (same for rows); its field sample sits at the lower corner.
    """

    origin: tuple[float, float]
    cell_size: tuple[float, float]
    dimensions: tuple[int, int]

    @property
    def cols(self) -> int:
        return self.dimensions[0]

    @property
    def rows(self) -> int:
        return self.dimensions[1]

    @property
    def cell_count(self) -> int:
        return self.cols * self.rows

    def cell_index(self, x: float, y: float) -> tuple[int, int] | None:
        """Return ``(col, row)`` of the cell holding ``(x, y)`` or None if outside."""
        fx = (x - self.origin[0]) / self.cell_size[0]
        fy = (y - self.origin[1]) / self.cell_size[1]
        if not (math.isfinite(fx) and math.isfinite(fy)):
            return None
        col = math.floor(fx)
        row = math.floor(fy)
        if 0 <= col < self.cols and 0 <= row < self.rows:
            return col, row
        return None

    def sample_position(self, col: float, row: float) -> tuple[float, float]:
        """World position of the field sample for (possibly fractional) col/row."""
        return (
            self.origin[0] + col * self.cell_size[0],
            self.origin[1] + row * self.cell_size[1],
        )

    @classmethod
    def from_extent(
        cls,
        origin: tuple[float, float],
        cell_size: tuple[float, float],
        max_x: float,
        max_y: float,
    ) -> GridDescriptor:
        """
        Build a grid wide enough to hold every point up to ``(max_x, max_y)``.

        The point at the maximum coordinate maps to the last column/row, so the
        dimension is ``floor(extent / size) + 1``. An extent behind the origin
        produces an empty grid.
        """
        cols = math.floor((max_x - origin[0]) / cell_size[0]) + 1
        rows = math.floor((max_y - origin[1]) / cell_size[1]) + 1
        return cls(
            origin=origin,
            cell_size=cell_size,
            dimensions=(max(cols, 0), max(rows, 0)),
        )


@dataclass(frozen=True)
class ScalarField:
    """
    Dense per-cell aggregate values, shape ``(rows, cols)``.

    Cells without contributing values hold NaN. ``counts`` keeps the number of
    points (finite position) that landed in each cell. Both arrays are
    read-only: a new field is built on every recompute.
    """

    values: np.ndarray
    counts: np.ndarray

    def __post_init__(self) -> None:
        if self.values.shape != self.counts.shape:
            msg = (
                f'values/counts shape mismatch: {self.values.shape} != '
                f'{self.counts.shape}'
            )
            raise ValueError(msg)
        self.values.setflags(write=False)
        self.counts.setflags(write=False)

    @classmethod
    def empty(cls, cols: int = 0, rows: int = 0) -> ScalarField:
        return cls(
            values=np.full((rows, cols), np.nan, dtype=np.float64),
            counts=np.zeros((rows, cols), dtype=np.int64),
        )

    @property
    def rows(self) -> int:
        return int(self.values.shape[0])

    @property
    def cols(self) -> int:
        return int(self.values.shape[1])

    @property
    def flat(self) -> np.ndarray:
        """Values indexed ``row * cols + col``."""
        return self.values.reshape(-1)

    @property
    def valid_cell_count(self) -> int:
        return int(np.count_nonzero(~np.isnan(self.values)))

    @property
    def has_data(self) -> bool:
        return self.valid_cell_count > 0

    def value_at(self, col: int, row: int) -> float | None:
        """Cell value or None for no data."""
        v = float(self.values[row, col])
        return None if math.isnan(v) else v

    def to_nested(self) -> list[list[float | None]]:
        """Row-major nested lists with None for no data (JSON friendly)."""
        return [
            [None if math.isnan(v) else float(v) for v in row]
            for row in self.values.tolist()
        ]
