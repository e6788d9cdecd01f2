"""Tests for contours.isobands module."""

import math

import numpy as np
import pytest

from contours.helpers import pad_field, ring_area
from contours.isobands import (
    assemble_bands,
    cell_fragments,
    extract_isobands,
    trace_rings,
)
from domain.fields import GridDescriptor


def unit_grid(values):
    rows, cols = values.shape
    return GridDescriptor(origin=(0.0, 0.0), cell_size=(1.0, 1.0), dimensions=(cols, rows))


def bands_for(values, threshold):
    values = np.asarray(values, dtype=np.float64)
    return extract_isobands(pad_field(values), unit_grid(values), threshold)


class TestCellFragments:
    """Tests for per-cell band fragments."""

    grid = GridDescriptor(origin=(0.0, 0.0), cell_size=(1.0, 1.0), dimensions=(2, 2))

    def test_full_cell_is_ccw_square(self):
        """A cell fully at or above threshold is its own CCW square."""
        (ring,) = cell_fragments(self.grid, 1, 1, (1.0, 1.0, 1.0, 1.0), 1.0)
        assert ring == [(0.0, 0.0), (1.0, 0.0), (1.0, 1.0), (0.0, 1.0)]
        assert ring_area(ring) > 0

    def test_single_corner_triangle(self):
        """One inside corner gives a triangle."""
        (ring,) = cell_fragments(self.grid, 1, 1, (10.0, 0.0, 0.0, 0.0), 5.0)
        assert len(ring) == 3
        assert ring_area(ring) == pytest.approx(0.125)

    def test_saddle_high_center_single_polygon(self):
        """Centre above threshold joins both inside corners."""
        rings = cell_fragments(self.grid, 1, 1, (10.0, 0.0, 10.0, 0.0), 4.0)
        assert len(rings) == 1
        assert len(rings[0]) == 6

    def test_saddle_equal_center_single_polygon(self):
        """Centre equal to threshold keeps inside corners joined."""
        rings = cell_fragments(self.grid, 1, 1, (10.0, 0.0, 10.0, 0.0), 5.0)
        assert len(rings) == 1
        assert len(rings[0]) == 6

    def test_saddle_low_center_two_triangles(self):
        """Centre below threshold splits into one triangle per inside corner."""
        rings = cell_fragments(self.grid, 1, 1, (10.0, 0.0, 10.0, 0.0), 6.0)
        assert len(rings) == 2
        assert all(len(r) == 3 and ring_area(r) > 0 for r in rings)


class TestTraceRings:
    """Tests for fragment merging."""

    def test_shared_edge_cancels(self):
        """Two adjacent squares merge into one rectangle."""
        a = [(0.0, 0.0), (1.0, 0.0), (1.0, 1.0), (0.0, 1.0)]
        b = [(1.0, 0.0), (2.0, 0.0), (2.0, 1.0), (1.0, 1.0)]
        (band,) = assemble_bands(trace_rings([a, b]), 1.0)
        assert set(band.vertices) == {(0.0, 0.0), (2.0, 0.0), (2.0, 1.0), (0.0, 1.0)}
        assert ring_area(band.vertices) == pytest.approx(2.0)

    def test_isolated_fragments_stay_separate(self):
        """Fragments that share no edge remain single polygons."""
        a = [(0.0, 0.0), (1.0, 0.0), (1.0, 1.0), (0.0, 1.0)]
        b = [(5.0, 5.0), (6.0, 5.0), (6.0, 6.0), (5.0, 6.0)]
        assert len(assemble_bands(trace_rings([a, b]), 1.0)) == 2


class TestExtractIsobands:
    """Tests for extract_isobands function."""

    def test_two_by_two_single_band(self):
        """A 2x2 field of ones at threshold 0.5 is one band over the data."""
        (band,) = bands_for([[1.0, 1.0], [1.0, 1.0]], 0.5)
        assert band.vertices == ((0.0, 0.0), (1.0, 0.0), (1.0, 1.0), (0.0, 1.0))
        assert band.threshold == 0.5
        assert band.holes == ()

    def test_nothing_above_threshold(self):
        """No sample reaches the threshold: no bands."""
        assert bands_for([[1.0, 1.0], [1.0, 1.0]], 1.5) == []

    def test_hole_attached_to_enclosing_ring(self):
        """A low centre surrounded by high values becomes a hole."""
        values = [[10.0, 10.0, 10.0], [10.0, 0.0, 10.0], [10.0, 10.0, 10.0]]
        (band,) = bands_for(values, 5.0)
        assert set(band.vertices) == {(0.0, 0.0), (2.0, 0.0), (2.0, 2.0), (0.0, 2.0)}
        assert len(band.holes) == 1
        hole = band.holes[0]
        assert ring_area(hole) == pytest.approx(-0.5)
        assert set(hole) == {(1.5, 1.0), (1.0, 1.5), (0.5, 1.0), (1.0, 0.5)}

    def test_no_data_cells_excluded(self):
        """Cells touching no-data never contribute band area."""
        assert bands_for([[10.0, math.nan], [10.0, 10.0]], 5.0) == []

    def test_band_stops_at_gap(self):
        """A NaN column splits the band into two pieces."""
        values = [[1.0, 1.0, math.nan, 1.0, 1.0], [1.0, 1.0, math.nan, 1.0, 1.0]]
        bands = bands_for(values, 0.5)
        assert len(bands) == 2
        xs = sorted(min(x for x, _ in b.vertices) for b in bands)
        assert xs == [0.0, 3.0]

    def test_two_separate_peaks(self):
        """Disjoint regions above threshold yield disjoint bands."""
        values = [[10.0, 10.0, 0.0, 0.0, 10.0, 10.0], [10.0, 10.0, 0.0, 0.0, 10.0, 10.0]]
        bands = bands_for(values, 5.0)
        assert len(bands) == 2
        assert all(ring_area(b.vertices) > 0 for b in bands)
