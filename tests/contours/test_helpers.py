"""Tests for contours.helpers module."""

import math

import numpy as np
import pytest

from contours.helpers import (
    dedupe_ring,
    interp,
    pad_field,
    padded_to_world,
    point_in_ring,
    remove_collinear,
    ring_area,
    ring_centroid,
)
from domain.fields import GridDescriptor

SQUARE = [(0.0, 0.0), (2.0, 0.0), (2.0, 2.0), (0.0, 2.0)]


class TestPadField:
    """Tests for pad_field function."""

    def test_adds_nan_ring(self):
        """Field should be surrounded by one ring of NaN."""
        padded = pad_field(np.array([[1.0, 2.0]]))
        assert padded.shape == (3, 4)
        assert padded[1, 1] == 1.0
        assert padded[1, 2] == 2.0
        assert np.isnan(padded[0]).all()
        assert np.isnan(padded[:, 0]).all()

    def test_padded_to_world(self):
        """Padded (1, 1) is the first grid sample at the origin."""
        grid = GridDescriptor(origin=(10.0, 20.0), cell_size=(2.0, 5.0), dimensions=(3, 3))
        assert padded_to_world(grid, 1, 1) == (10.0, 20.0)
        assert padded_to_world(grid, 2.5, 3) == (13.0, 30.0)


class TestInterp:
    """Tests for interp function."""

    def test_midpoint(self):
        """Level halfway between samples should land mid-edge."""
        assert interp(0.0, 1.0, 0.0, 10.0, 5.0) == 5.0 / 10.0

    def test_flat_edge(self):
        """Equal samples have no crossing."""
        assert interp(0.0, 1.0, 5.0, 5.0, 5.0) is None

    def test_clamped(self):
        """Out-of-range level should clamp to an endpoint."""
        assert interp(0.0, 1.0, 0.0, 1.0, 2.0) == 1.0
        assert interp(0.0, 1.0, 0.0, 1.0, -1.0) == 0.0

    def test_direction_independent(self):
        """Interpolating from either end should give the same point."""
        a = interp(3.0, 4.0, 2.0, 8.0, 5.0)
        b = interp(4.0, 3.0, 8.0, 2.0, 5.0)
        assert a == pytest.approx(b)


class TestRingGeometry:
    """Tests for ring area, centroid and point-in-ring."""

    def test_area_sign(self):
        """Counter-clockwise rings have positive area."""
        assert ring_area(SQUARE) == 4.0
        assert ring_area(list(reversed(SQUARE))) == -4.0

    def test_centroid(self):
        """Centroid of a square is its centre."""
        assert ring_centroid(SQUARE) == pytest.approx((1.0, 1.0))

    def test_degenerate_centroid(self):
        """Zero-area ring falls back to the vertex mean."""
        assert ring_centroid([(0.0, 0.0), (2.0, 0.0), (4.0, 0.0)]) == (2.0, 0.0)

    def test_point_in_ring(self):
        """Even-odd test inside and outside."""
        assert point_in_ring((1.0, 1.0), SQUARE)
        assert not point_in_ring((3.0, 1.0), SQUARE)


class TestRingCleanup:
    """Tests for dedupe_ring and remove_collinear."""

    def test_dedupe(self):
        """Consecutive duplicates and the closing vertex are removed."""
        ring = [(0.0, 0.0), (0.0, 0.0), (1.0, 0.0), (1.0, 1.0), (0.0, 0.0)]
        assert dedupe_ring(ring) == [(0.0, 0.0), (1.0, 0.0), (1.0, 1.0)]

    def test_remove_collinear(self):
        """Mid-edge vertices are removed, corners kept."""
        ring = [
            (0.0, 0.0),
            (1.0, 0.0),
            (2.0, 0.0),
            (2.0, 1.0),
            (2.0, 2.0),
            (0.0, 2.0),
            (0.0, 1.0),
        ]
        assert remove_collinear(ring) == SQUARE

    def test_remove_collinear_at_start(self):
        """A collinear start vertex is removed as well."""
        ring = [(1.0, 0.0), (2.0, 0.0), (2.0, 2.0), (0.0, 2.0), (0.0, 0.0)]
        cleaned = remove_collinear(ring)
        assert len(cleaned) == 4
        assert (1.0, 0.0) not in cleaned
        assert math.isclose(abs(ring_area(cleaned)), 4.0)
