"""Grid binning: map points to cells and reduce per-cell values."""

from __future__ import annotations

import logging
import math
from collections import defaultdict
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import numpy as np

from aggregation.batch import bin_columns_batch
from aggregation.partials import (
    extract_positions,
    extract_weights,
    finalize_field,
    position_of,
    resolve_grid,
)
from aggregation.reductions import custom_value_func, get_value_func, unit_weight
from domain.fields import GridDescriptor, ScalarField
from shared.constants import (
    BATCH_CHUNK_SIZE,
    AggregationKind,
    ExecutionStrategy,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BinnedGrid:
    grid: GridDescriptor
    field: ScalarField
    strategy: ExecutionStrategy
    dropped: int = 0

    @property
    def has_data(self) -> bool:
        return self.field.has_data


def bin_points_scalar(
    points: Sequence[Any],
    position_accessor: Callable[[Any], Any],
    origin: tuple[float, float],
    cell_size: tuple[float, float],
    *,
    aggregation: AggregationKind = AggregationKind.COUNT,
    weight_accessor: Callable[[Any], Any] | None = None,
    extent: tuple[int, int] | None = None,
    value_func: Callable[[Sequence[Any]], Any] | None = None,
) -> BinnedGrid:
    """
    Per-point path: bucket points by cell, then apply the reduction per bucket.

    Retains every contributing point per cell, so any reduction from
    ``aggregation.reductions`` can be evaluated post hoc. A caller-supplied
    ``value_func`` receives those points and replaces the reduction.
    """
    positions = [position_of(p, position_accessor) for p in points]
    if extent is not None:
        grid = GridDescriptor(origin=origin, cell_size=cell_size, dimensions=extent)
    else:
        finite = [(x, y) for x, y in positions if math.isfinite(x) and math.isfinite(y)]
        if finite:
            grid = GridDescriptor.from_extent(
                origin,
                cell_size,
                max(x for x, _ in finite),
                max(y for _, y in finite),
            )
        else:
            grid = GridDescriptor(origin=origin, cell_size=cell_size, dimensions=(0, 0))

    buckets: dict[tuple[int, int], list[Any]] = defaultdict(list)
    dropped = 0
    for point, (x, y) in zip(points, positions, strict=True):
        if not (math.isfinite(x) and math.isfinite(y)):
            dropped += 1
            continue
        cell = grid.cell_index(x, y)
        if cell is None:
            dropped += 1
            continue
        buckets[cell].append(point)

    if value_func is not None:
        value_of = custom_value_func(value_func)
    else:
        value_of = get_value_func(aggregation, weight_accessor or unit_weight)
    values = np.full((grid.rows, grid.cols), np.nan, dtype=np.float64)
    counts = np.zeros((grid.rows, grid.cols), dtype=np.int64)
    for (col, row), pts in buckets.items():
        counts[row, col] = len(pts)
        v = value_of(pts)
        if v is not None:
            values[row, col] = v

    return BinnedGrid(
        grid=grid,
        field=ScalarField(values=values, counts=counts),
        strategy=ExecutionStrategy.SCALAR,
        dropped=dropped,
    )


def bin_points_batch(
    points: Sequence[Any],
    position_accessor: Callable[[Any], Any],
    origin: tuple[float, float],
    cell_size: tuple[float, float],
    *,
    aggregation: AggregationKind = AggregationKind.COUNT,
    weight_accessor: Callable[[Any], Any] | None = None,
    extent: tuple[int, int] | None = None,
    chunk_size: int = BATCH_CHUNK_SIZE,
    max_workers: int | None = None,
) -> BinnedGrid:
    xs, ys = extract_positions(points, position_accessor)
    needs_weights = aggregation is not AggregationKind.COUNT
    ws = extract_weights(points, weight_accessor if needs_weights else None)
    grid = resolve_grid(xs, ys, origin, cell_size, extent)
    partial = bin_columns_batch(
        xs, ys, ws, grid, chunk_size=chunk_size, max_workers=max_workers
    )
    field = finalize_field(partial, grid, aggregation)
    return BinnedGrid(
        grid=grid,
        field=field,
        strategy=ExecutionStrategy.BATCH,
        dropped=len(points) - int(partial.counts.sum()),
    )


def bin_points(
    points: Sequence[Any],
    position_accessor: Callable[[Any], Any],
    origin: tuple[float, float],
    cell_size: tuple[float, float],
    *,
    aggregation: AggregationKind | str = AggregationKind.COUNT,
    weight_accessor: Callable[[Any], Any] | None = None,
    extent: tuple[int, int] | None = None,
    strategy: ExecutionStrategy = ExecutionStrategy.SCALAR,
    chunk_size: int = BATCH_CHUNK_SIZE,
    max_workers: int | None = None,
    value_func: Callable[[Sequence[Any]], Any] | None = None,
) -> BinnedGrid:
    """
    Bin points into a regular grid and reduce each cell.

    Both strategies honour the same contract: floor-based cell assignment,
    out-of-grid and non-finite positions dropped, non-finite weights excluded
    from the reduction, NaN for cells without values.

    ``value_func`` replaces the reduction with a function of the cell's
    points; it needs the points themselves, so it always runs per point.
    """
    kind = AggregationKind(aggregation)
    if value_func is not None and strategy is ExecutionStrategy.BATCH:
        logger.debug('Custom cell value function set: batch path replaced by scalar')
        strategy = ExecutionStrategy.SCALAR
    if strategy is ExecutionStrategy.BATCH:
        result = bin_points_batch(
            points,
            position_accessor,
            origin,
            cell_size,
            aggregation=kind,
            weight_accessor=weight_accessor,
            extent=extent,
            chunk_size=chunk_size,
            max_workers=max_workers,
        )
    else:
        result = bin_points_scalar(
            points,
            position_accessor,
            origin,
            cell_size,
            aggregation=kind,
            weight_accessor=weight_accessor,
            extent=extent,
            value_func=value_func,
        )
    logger.debug(
        'Binned %d points (%s, %s) into %dx%d grid: %d valid cells, %d dropped',
        len(points),
        kind.value,
        result.strategy.value,
        result.grid.cols,
        result.grid.rows,
        result.field.valid_cell_count,
        result.dropped,
    )
    return result
