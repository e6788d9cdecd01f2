from __future__ import annotations

import math
from typing import TYPE_CHECKING

import numpy as np

from shared.constants import COLLINEAR_EPSILON

if TYPE_CHECKING:
    from collections.abc import Sequence

    from domain.fields import GridDescriptor

Point2D = tuple[float, float]


def pad_field(values: np.ndarray) -> np.ndarray:
    """
    Surround the field with a one-sample ring of no-data (NaN).

    Padded sample ``(pi, pj)`` corresponds to grid ``(pi - 1, pj - 1)``, so
    boundary cells see their missing exterior neighbours as no-data.
    """
    rows, cols = values.shape
    padded = np.full((rows + 2, cols + 2), np.nan, dtype=np.float64)
    padded[1:-1, 1:-1] = values
    return padded


def padded_to_world(grid: GridDescriptor, pi: float, pj: float) -> Point2D:
    """World position of a (possibly fractional) padded sample coordinate."""
    x, y = grid.sample_position(pi - 1, pj - 1)
    return float(x), float(y)


def interp(p0: float, p1: float, v0: float, v1: float, level: float) -> float | None:
    """
    Position of ``level`` on the edge ``p0 -> p1`` with sample values v0, v1.

    Returns None for a flat edge (``v0 == v1``): there is no crossing.
    """
    if v1 == v0:
        return None
    t = (level - v0) / (v1 - v0)
    if t < 0.0:
        t = 0.0
    elif t > 1.0:
        t = 1.0
    return p0 + (p1 - p0) * t


def ring_area(ring: Sequence[Point2D]) -> float:
    """Signed shoelace area: positive for counter-clockwise rings."""
    n = len(ring)
    acc = 0.0
    for k in range(n):
        x0, y0 = ring[k]
        x1, y1 = ring[(k + 1) % n]
        acc += x0 * y1 - x1 * y0
    return 0.5 * acc


def ring_centroid(ring: Sequence[Point2D]) -> Point2D:
    area = ring_area(ring)
    if area == 0.0:
        n = len(ring)
        return sum(p[0] for p in ring) / n, sum(p[1] for p in ring) / n
    cx = cy = 0.0
    n = len(ring)
    for k in range(n):
        x0, y0 = ring[k]
        x1, y1 = ring[(k + 1) % n]
        cross = x0 * y1 - x1 * y0
        cx += (x0 + x1) * cross
        cy += (y0 + y1) * cross
    return cx / (6.0 * area), cy / (6.0 * area)


def point_in_ring(pt: Point2D, ring: Sequence[Point2D]) -> bool:
    """Even-odd ray casting test."""
    x, y = pt
    inside = False
    n = len(ring)
    for k in range(n):
        x0, y0 = ring[k]
        x1, y1 = ring[(k + 1) % n]
        if (y0 > y) != (y1 > y):
            x_cross = x0 + (y - y0) * (x1 - x0) / (y1 - y0)
            if x < x_cross:
                inside = not inside
    return inside


def dedupe_ring(ring: Sequence[Point2D]) -> list[Point2D]:
    """Drop consecutive duplicate vertices (including last == first)."""
    out: list[Point2D] = []
    for p in ring:
        if not out or out[-1] != p:
            out.append(p)
    while len(out) > 1 and out[-1] == out[0]:
        out.pop()
    return out


def _is_straight(a: Point2D, b: Point2D, c: Point2D) -> bool:
    ux, uy = b[0] - a[0], b[1] - a[1]
    vx, vy = c[0] - b[0], c[1] - b[1]
    cross = ux * vy - uy * vx
    dot = ux * vx + uy * vy
    return dot > 0 and abs(cross) <= COLLINEAR_EPSILON * math.hypot(ux, uy) * math.hypot(
        vx, vy
    )


def remove_collinear(ring: Sequence[Point2D]) -> list[Point2D]:
    """Remove vertices lying on the straight line between their neighbours."""
    out: list[Point2D] = []
    for p in ring:
        out.append(p)
        while len(out) >= 3 and _is_straight(out[-3], out[-2], out[-1]):  # noqa: PLR2004
            del out[-2]
    # стык конца и начала кольца
    while len(out) > 3 and _is_straight(out[-2], out[-1], out[0]):  # noqa: PLR2004
        out.pop()
    while len(out) > 3 and _is_straight(out[-1], out[0], out[1]):  # noqa: PLR2004
        out.pop(0)
    return out
