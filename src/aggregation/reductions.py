"""
Reductions over the values of the points that landed in one cell.

Every reduction extracts a value per point through ``accessor``, drops
non-finite values and returns None ("no data") when nothing is left.
"""

from __future__ import annotations

import math
import numbers
from typing import TYPE_CHECKING, Any

from shared.constants import AggregationKind

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Sequence


def coerce_value(v: Any) -> float:
    """Numeric value as float, NaN for anything that is not a real number."""
    # bool is an int, but a weight of True is not meaningful
    if isinstance(v, bool) or not isinstance(v, numbers.Real):
        return math.nan
    return float(v)


def _finite_values(points: Iterable[Any], accessor: Callable[[Any], Any]) -> list[float]:
    values: list[float] = []
    for item in points:
        v = coerce_value(accessor(item))
        if math.isfinite(v):
            values.append(v)
    return values


def get_sum(points: Iterable[Any], accessor: Callable[[Any], Any]) -> float | None:
    filtered = _finite_values(points, accessor)
    if not filtered:
        return None
    total = 0.0
    for v in filtered:
        total += v
    return total


def get_mean(points: Iterable[Any], accessor: Callable[[Any], Any]) -> float | None:
    filtered = _finite_values(points, accessor)
    if not filtered:
        return None
    total = 0.0
    for v in filtered:
        total += v
    return total / len(filtered)


def get_min(points: Iterable[Any], accessor: Callable[[Any], Any]) -> float | None:
    filtered = _finite_values(points, accessor)
    return min(filtered) if filtered else None


def get_max(points: Iterable[Any], accessor: Callable[[Any], Any]) -> float | None:
    filtered = _finite_values(points, accessor)
    return max(filtered) if filtered else None


def get_count(points: Sequence[Any], accessor: Callable[[Any], Any]) -> float | None:
    """Number of points in the cell; the accessor is not consulted."""
    _ = accessor
    return float(len(points)) if points else None


_REDUCTIONS: dict[AggregationKind, Callable[..., float | None]] = {
    AggregationKind.COUNT: get_count,
    AggregationKind.SUM: get_sum,
    AggregationKind.MEAN: get_mean,
    AggregationKind.MIN: get_min,
    AggregationKind.MAX: get_max,
}


def get_value_func(
    aggregation: AggregationKind | str,
    accessor: Callable[[Any], Any],
) -> Callable[[Sequence[Any]], float | None]:
    """Bind a reduction to a weight accessor: ``pts -> value | None``."""
    kind = AggregationKind(aggregation)
    reduce = _REDUCTIONS[kind]

    def value_of(pts: Sequence[Any]) -> float | None:
        return reduce(pts, accessor)

    return value_of


def custom_value_func(
    func: Callable[[Sequence[Any]], Any],
) -> Callable[[Sequence[Any]], float | None]:
    """
    Wrap a caller-supplied cell value function.

    The function receives every point of the cell and replaces the built-in
    reduction. Whatever it returns is coerced like a weight: None or a
    non-finite / non-numeric result means the cell has no data.
    """

    def value_of(pts: Sequence[Any]) -> float | None:
        v = func(pts)
        if v is None:
            return None
        v = coerce_value(v)
        return v if math.isfinite(v) else None

    return value_of


def unit_weight(_: Any) -> float:
    """Weight accessor used when the caller supplies none."""
    return 1.0
