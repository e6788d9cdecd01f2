"""
Пакетная агрегация точек по сетке.

Точки переводятся в столбцы numpy, делятся на порции, каждая порция
агрегируется независимо в частичное поле (параллельно через
ThreadPoolExecutor), затем частичные поля сливаются по ячейкам.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from functools import reduce
from typing import TYPE_CHECKING

import numpy as np

from aggregation.partials import PartialField, merge_partials
from shared.constants import (
    BATCH_CHUNK_SIZE,
    BATCH_MAX_WORKERS,
    BATCH_MIN_POINTS_FOR_POOL,
    BATCH_THREAD_PREFIX,
)
from shared.diagnostics import get_cpu_count, log_thread_status

if TYPE_CHECKING:
    from domain.fields import GridDescriptor

logger = logging.getLogger(__name__)


def split_chunks(
    xs: np.ndarray, ys: np.ndarray, ws: np.ndarray, chunk_size: int
) -> list[tuple[np.ndarray, np.ndarray, np.ndarray]]:
    """Consecutive, order-preserving slices of at most ``chunk_size`` points."""
    return [
        (xs[i : i + chunk_size], ys[i : i + chunk_size], ws[i : i + chunk_size])
        for i in range(0, len(xs), chunk_size)
    ]


def resolve_worker_count(max_workers: int | None, n_chunks: int) -> int:
    """Число воркеров: не больше заданного, числа CPU и числа порций."""
    requested = max_workers if max_workers is not None else BATCH_MAX_WORKERS
    return max(1, min(requested, get_cpu_count(), n_chunks))


def bin_columns_batch(
    xs: np.ndarray,
    ys: np.ndarray,
    ws: np.ndarray,
    grid: GridDescriptor,
    *,
    chunk_size: int = BATCH_CHUNK_SIZE,
    max_workers: int | None = None,
) -> PartialField:
    """
    Bin position/weight columns chunk by chunk and merge the partial fields.

    Workers share nothing: each one returns its own ``PartialField`` and the
    merge runs on the calling thread in chunk order.
    """
    chunks = split_chunks(xs, ys, ws, chunk_size)
    if not chunks:
        return PartialField.empty(grid.cell_count)

    num_workers = resolve_worker_count(max_workers, len(chunks))

    def process_chunk(chunk: tuple[np.ndarray, np.ndarray, np.ndarray]) -> PartialField:
        cx, cy, cw = chunk
        return PartialField.from_columns(cx, cy, cw, grid)

    if num_workers > 1 and len(xs) >= BATCH_MIN_POINTS_FOR_POOL:
        logger.debug(
            'Batch binning %d points in %d chunks with %d workers',
            len(xs),
            len(chunks),
            num_workers,
        )
        with ThreadPoolExecutor(
            max_workers=num_workers, thread_name_prefix=BATCH_THREAD_PREFIX
        ) as executor:
            partials = list(executor.map(process_chunk, chunks))
            log_thread_status('batch binning pool', BATCH_THREAD_PREFIX)
    else:
        # Последовательная обработка для малого числа точек
        partials = [process_chunk(c) for c in chunks]

    return reduce(merge_partials, partials[1:], partials[0])
