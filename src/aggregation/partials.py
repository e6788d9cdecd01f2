"""
Column extraction, grid sizing and mergeable partial fields.

A ``PartialField`` keeps, per cell, everything needed to recombine results
binned independently: point counts, value counts, sums, minima and maxima.
Means are only ever derived from merged sums and value counts.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import numpy as np

from aggregation.reductions import coerce_value
from domain.fields import GridDescriptor, ScalarField
from shared.constants import AggregationKind

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence


def position_of(point: Any, accessor: Callable[[Any], Any]) -> tuple[float, float]:
    """``(x, y)`` of a point; NaNs when the accessor result is unusable."""
    pos = accessor(point)
    try:
        return coerce_value(pos[0]), coerce_value(pos[1])
    except (TypeError, IndexError, KeyError):
        return math.nan, math.nan


def extract_positions(
    points: Sequence[Any], accessor: Callable[[Any], Any]
) -> tuple[np.ndarray, np.ndarray]:
    xs = np.empty(len(points), dtype=np.float64)
    ys = np.empty(len(points), dtype=np.float64)
    for i, p in enumerate(points):
        xs[i], ys[i] = position_of(p, accessor)
    return xs, ys


def extract_weights(
    points: Sequence[Any], accessor: Callable[[Any], Any] | None
) -> np.ndarray:
    if accessor is None:
        return np.ones(len(points), dtype=np.float64)
    return np.fromiter(
        (coerce_value(accessor(p)) for p in points),
        dtype=np.float64,
        count=len(points),
    )


def resolve_grid(
    xs: np.ndarray,
    ys: np.ndarray,
    origin: tuple[float, float],
    cell_size: tuple[float, float],
    extent: tuple[int, int] | None = None,
) -> GridDescriptor:
    """Grid with a configured extent, or one sized to the finite positions."""
    if extent is not None:
        return GridDescriptor(origin=origin, cell_size=cell_size, dimensions=extent)
    finite = np.isfinite(xs) & np.isfinite(ys)
    if not finite.any():
        return GridDescriptor(origin=origin, cell_size=cell_size, dimensions=(0, 0))
    return GridDescriptor.from_extent(
        origin,
        cell_size,
        float(xs[finite].max()),
        float(ys[finite].max()),
    )


def cell_indices(
    xs: np.ndarray, ys: np.ndarray, grid: GridDescriptor
) -> tuple[np.ndarray, np.ndarray]:
    """
    Flat cell index per point and the mask of points that land in the grid.

    Uses floor semantics: a point on a shared edge goes to the higher cell.
    """
    with np.errstate(invalid='ignore', over='ignore'):
        fx = np.floor((xs - grid.origin[0]) / grid.cell_size[0])
        fy = np.floor((ys - grid.origin[1]) / grid.cell_size[1])
        ok = (
            np.isfinite(fx)
            & np.isfinite(fy)
            & (fx >= 0)
            & (fx < grid.cols)
            & (fy >= 0)
            & (fy < grid.rows)
        )
    flat = np.zeros(len(xs), dtype=np.int64)
    flat[ok] = fy[ok].astype(np.int64) * grid.cols + fx[ok].astype(np.int64)
    return flat, ok


@dataclass(frozen=True)
class PartialField:
    counts: np.ndarray
    value_counts: np.ndarray
    sums: np.ndarray
    mins: np.ndarray
    maxs: np.ndarray

    @classmethod
    def empty(cls, size: int) -> PartialField:
        return cls(
            counts=np.zeros(size, dtype=np.int64),
            value_counts=np.zeros(size, dtype=np.int64),
            sums=np.zeros(size, dtype=np.float64),
            mins=np.full(size, np.nan, dtype=np.float64),
            maxs=np.full(size, np.nan, dtype=np.float64),
        )

    @classmethod
    def from_columns(
        cls,
        xs: np.ndarray,
        ys: np.ndarray,
        ws: np.ndarray,
        grid: GridDescriptor,
    ) -> PartialField:
        """Bin one chunk of points."""
        size = grid.cell_count
        flat, ok = cell_indices(xs, ys, grid)
        cells = flat[ok]
        weights = ws[ok]
        finite = np.isfinite(weights)
        vcells = cells[finite]
        vweights = weights[finite]

        part = cls.empty(size)
        part.counts[:] = np.bincount(cells, minlength=size)[:size]
        part.value_counts[:] = np.bincount(vcells, minlength=size)[:size]
        np.add.at(part.sums, vcells, vweights)
        np.fmin.at(part.mins, vcells, vweights)
        np.fmax.at(part.maxs, vcells, vweights)
        return part


def merge_partials(a: PartialField, b: PartialField) -> PartialField:
    """Cell-wise merge: counts and sums add, min/max combine, NaN-aware."""
    return PartialField(
        counts=a.counts + b.counts,
        value_counts=a.value_counts + b.value_counts,
        sums=a.sums + b.sums,
        mins=np.fmin(a.mins, b.mins),
        maxs=np.fmax(a.maxs, b.maxs),
    )


def finalize_field(
    partial: PartialField,
    grid: GridDescriptor,
    aggregation: AggregationKind,
) -> ScalarField:
    """Turn merged partial statistics into the published scalar field."""
    shape = (grid.rows, grid.cols)
    has_values = partial.value_counts > 0
    if aggregation is AggregationKind.COUNT:
        values = np.where(partial.counts > 0, partial.counts.astype(np.float64), np.nan)
    elif aggregation is AggregationKind.SUM:
        values = np.where(has_values, partial.sums, np.nan)
    elif aggregation is AggregationKind.MEAN:
        safe = np.maximum(partial.value_counts, 1)
        values = np.where(has_values, partial.sums / safe, np.nan)
    elif aggregation is AggregationKind.MIN:
        values = np.where(has_values, partial.mins, np.nan)
    elif aggregation is AggregationKind.MAX:
        values = np.where(has_values, partial.maxs, np.nan)
    else:
        msg = f'Unsupported aggregation: {aggregation!r}'
        raise ValueError(msg)
    return ScalarField(
        values=np.array(values, dtype=np.float64).reshape(shape),
        counts=partial.counts.copy().reshape(shape),
    )
