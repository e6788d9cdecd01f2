"""Tests for batch binning and partial-field merging."""

import logging
import re

import numpy as np
import pytest

from aggregation.batch import bin_columns_batch, resolve_worker_count, split_chunks
from aggregation.partials import (
    PartialField,
    cell_indices,
    finalize_field,
    merge_partials,
    resolve_grid,
)
from domain.fields import GridDescriptor
from shared.constants import AggregationKind


@pytest.fixture
def single_cell_grid():
    return GridDescriptor(origin=(0.0, 0.0), cell_size=(1.0, 1.0), dimensions=(1, 1))


def columns(weights):
    n = len(weights)
    return (
        np.full(n, 0.5),
        np.full(n, 0.5),
        np.asarray(weights, dtype=np.float64),
    )


class TestMeanMergeLaw:
    """Mean is recombined from merged sums and counts."""

    def test_merged_mean_equals_true_mean(self, single_cell_grid):
        """Merging (sum, count) pairs gives the mean of the combined point set."""
        a = PartialField.from_columns(*columns([1.0, 2.0, 3.0]), single_cell_grid)
        b = PartialField.from_columns(*columns([10.0]), single_cell_grid)
        merged = finalize_field(
            merge_partials(a, b), single_cell_grid, AggregationKind.MEAN
        )
        assert merged.value_at(0, 0) == pytest.approx(4.0)

    def test_averaging_partial_means_is_wrong(self, single_cell_grid):
        """Averaging per-chunk means differs from the true mean for unequal chunks."""
        a = PartialField.from_columns(*columns([1.0, 2.0, 3.0]), single_cell_grid)
        b = PartialField.from_columns(*columns([10.0]), single_cell_grid)
        mean_a = finalize_field(a, single_cell_grid, AggregationKind.MEAN).value_at(0, 0)
        mean_b = finalize_field(b, single_cell_grid, AggregationKind.MEAN).value_at(0, 0)
        naive = (mean_a + mean_b) / 2
        merged = finalize_field(
            merge_partials(a, b), single_cell_grid, AggregationKind.MEAN
        ).value_at(0, 0)
        assert naive == pytest.approx(6.0)
        assert merged != pytest.approx(naive)

    def test_min_max_combine(self, single_cell_grid):
        """Min/max merge with their own operators; empty partials are neutral."""
        a = PartialField.from_columns(*columns([5.0, 7.0]), single_cell_grid)
        b = PartialField.from_columns(*columns([np.nan, -1.0]), single_cell_grid)
        empty = PartialField.empty(1)
        merged = merge_partials(merge_partials(a, empty), b)
        assert merged.mins[0] == -1.0
        assert merged.maxs[0] == 7.0
        assert merged.counts[0] == 4
        assert merged.value_counts[0] == 3


class TestCellIndices:
    """Tests for cell_indices function."""

    def test_floor_assignment(self):
        """Edge points map to the higher cell, outside points are masked."""
        grid = GridDescriptor(origin=(0.0, 0.0), cell_size=(1.0, 1.0), dimensions=(2, 2))
        xs = np.array([0.0, 1.0, 1.999, 2.0, -0.001, np.nan])
        ys = np.array([0.0, 1.0, 0.0, 0.0, 0.0, 0.0])
        flat, ok = cell_indices(xs, ys, grid)
        assert ok.tolist() == [True, True, True, False, False, False]
        assert flat[ok].tolist() == [0, 3, 1]

    def test_resolve_grid_ignores_non_finite(self):
        """Derived extent should only consider finite positions."""
        xs = np.array([1.0, np.inf, 3.5])
        ys = np.array([0.0, 100.0, np.nan])
        grid = resolve_grid(xs, ys, (0.0, 0.0), (1.0, 1.0))
        assert grid.dimensions == (2, 1)


class TestBatchExecution:
    """Chunking and worker-pool behaviour."""

    def test_split_chunks_preserves_order(self):
        """Chunks should be consecutive slices covering all points."""
        xs = np.arange(10.0)
        chunks = split_chunks(xs, xs, xs, 4)
        assert [len(c[0]) for c in chunks] == [4, 4, 2]
        assert np.concatenate([c[0] for c in chunks]).tolist() == xs.tolist()

    def test_worker_count_bounds(self):
        """Worker count is at least one and never exceeds the chunk count."""
        assert resolve_worker_count(8, 1) == 1
        assert resolve_worker_count(1, 10) == 1
        assert 1 <= resolve_worker_count(None, 3) <= 3

    def test_pool_and_sequential_agree(self, monkeypatch):
        """Results should not depend on whether the pool was used."""
        grid = GridDescriptor(origin=(0.0, 0.0), cell_size=(1.0, 1.0), dimensions=(3, 3))
        rng = np.random.default_rng(7)
        xs = rng.uniform(0.0, 3.0, 500)
        ys = rng.uniform(0.0, 3.0, 500)
        ws = rng.uniform(-1.0, 1.0, 500)

        sequential = bin_columns_batch(xs, ys, ws, grid, chunk_size=50, max_workers=1)
        monkeypatch.setattr('aggregation.batch.BATCH_MIN_POINTS_FOR_POOL', 0)
        monkeypatch.setattr('aggregation.batch.get_cpu_count', lambda: 4)
        pooled = bin_columns_batch(xs, ys, ws, grid, chunk_size=50, max_workers=4)

        np.testing.assert_array_equal(pooled.counts, sequential.counts)
        np.testing.assert_array_equal(pooled.mins, sequential.mins)
        np.testing.assert_array_equal(pooled.maxs, sequential.maxs)
        np.testing.assert_allclose(pooled.sums, sequential.sums)
        assert int(pooled.counts.sum()) == 500

    def test_pool_threads_logged(self, monkeypatch, caplog):
        """Pooled runs log the named worker threads."""
        grid = GridDescriptor(origin=(0.0, 0.0), cell_size=(1.0, 1.0), dimensions=(2, 2))
        xs = np.linspace(0.0, 1.9, 200)
        monkeypatch.setattr('aggregation.batch.BATCH_MIN_POINTS_FOR_POOL', 0)
        monkeypatch.setattr('aggregation.batch.get_cpu_count', lambda: 4)
        with caplog.at_level(logging.DEBUG):
            bin_columns_batch(xs, xs, xs, grid, chunk_size=20, max_workers=4)
        match = re.search(
            r'Thread status \(batch binning pool\): active=\d+, pool=(\d+)',
            caplog.text,
        )
        assert match is not None
        assert 1 <= int(match.group(1)) <= 4

    def test_sequential_run_skips_pool_logging(self, caplog):
        """Small inputs never start the pool."""
        grid = GridDescriptor(origin=(0.0, 0.0), cell_size=(1.0, 1.0), dimensions=(1, 1))
        xs = np.full(3, 0.5)
        with caplog.at_level(logging.DEBUG):
            bin_columns_batch(xs, xs, xs, grid)
        assert 'batch binning pool' not in caplog.text

    def test_empty_columns(self):
        """No points should give an empty partial of the grid size."""
        grid = GridDescriptor(origin=(0.0, 0.0), cell_size=(1.0, 1.0), dimensions=(2, 1))
        empty = np.array([], dtype=np.float64)
        partial = bin_columns_batch(empty, empty, empty, grid)
        assert partial.counts.tolist() == [0, 0]
        field = finalize_field(partial, grid, AggregationKind.COUNT)
        assert not field.has_data
