"""
Iso-bands: filled polygons of the region where the field is >= threshold.

Every marching cell whose four corners carry data contributes a clipped
polygon fragment. Fragments are merged by cancelling the edges shared by
neighbouring cells and tracing what is left into closed rings.
"""

from __future__ import annotations

import logging
import math
from collections import Counter
from typing import TYPE_CHECKING

import numpy as np

from contours.helpers import (
    dedupe_ring,
    interp,
    padded_to_world,
    point_in_ring,
    remove_collinear,
    ring_area,
    ring_centroid,
)
from contours.isolines import cell_center_value, corner_masks
from domain.geometry import ContourBand
from shared.constants import MIN_POLYGON_VERTICES, MS_AMBIGUOUS_CASES, MS_MASK_EMPTY

if TYPE_CHECKING:
    from domain.fields import GridDescriptor

logger = logging.getLogger(__name__)

Point2D = tuple[float, float]
Ring = list[Point2D]


def _band_crossing(
    grid: GridDescriptor,
    edge: int,
    i: int,
    j: int,
    corners: tuple[float, float, float, float],
    threshold: float,
) -> Point2D | None:
    # edge: 0 top (TL-TR), 1 right (TR-BR), 2 bottom (BL-BR), 3 left (TL-BL);
    # интерполяция всегда от меньшего индекса к большему
    v_tl, v_tr, v_br, v_bl = corners
    if edge == 0:
        x = interp(i, i + 1, v_tl, v_tr, threshold)
        return None if x is None else padded_to_world(grid, x, j)
    if edge == 1:
        y = interp(j, j + 1, v_tr, v_br, threshold)
        return None if y is None else padded_to_world(grid, i + 1, y)
    if edge == 2:  # noqa: PLR2004
        x = interp(i, i + 1, v_bl, v_br, threshold)
        return None if x is None else padded_to_world(grid, x, j + 1)
    y = interp(j, j + 1, v_tl, v_bl, threshold)
    return None if y is None else padded_to_world(grid, i, y)


def cell_fragments(
    grid: GridDescriptor,
    i: int,
    j: int,
    corners: tuple[float, float, float, float],
    threshold: float,
) -> list[Ring]:
    """
    Polygon(s) covering the part of padded cell ``(i, j)`` at or above threshold.

    Corners are walked TL, TR, BR, BL, which is counter-clockwise in world
    space (rows grow with y). A saddle whose centre falls below the threshold
    splits into one triangle per inside corner; a centre equal to the
    threshold keeps the inside corners joined, the same rule iso-lines use.
    """
    corner_pts = (
        padded_to_world(grid, i, j),
        padded_to_world(grid, i + 1, j),
        padded_to_world(grid, i + 1, j + 1),
        padded_to_world(grid, i, j + 1),
    )
    inside = [v >= threshold for v in corners]

    crossings: dict[int, Point2D | None] = {}
    ring: Ring = []
    for k in range(4):
        nxt = (k + 1) % 4
        if inside[k]:
            ring.append(corner_pts[k])
        if inside[k] != inside[nxt]:
            crossings[k] = _band_crossing(grid, k, i, j, corners, threshold)
            if crossings[k] is not None:
                ring.append(crossings[k])

    mask = sum(1 << k for k in range(4) if inside[k])
    if mask in MS_AMBIGUOUS_CASES and cell_center_value(corners) < threshold:
        rings = []
        for k in range(4):
            if inside[k]:
                before = crossings.get((k - 1) % 4)
                after = crossings.get(k)
                if before is not None and after is not None:
                    rings.append([before, corner_pts[k], after])
    else:
        rings = [ring]

    out: list[Ring] = []
    for r in rings:
        clean = dedupe_ring(r)
        if len(clean) >= MIN_POLYGON_VERTICES and ring_area(clean) > 0.0:
            out.append(clean)
    return out


def _leftmost(prev: Point2D, cur: Point2D, candidates: list[Point2D]) -> Point2D:
    """Outgoing vertex with the sharpest left turn relative to prev -> cur."""
    if len(candidates) == 1:
        return candidates[0]
    dx, dy = cur[0] - prev[0], cur[1] - prev[1]

    def turn(c: Point2D) -> float:
        ex, ey = c[0] - cur[0], c[1] - cur[1]
        return math.atan2(dx * ey - dy * ex, dx * ex + dy * ey)

    return max(candidates, key=turn)


def trace_rings(fragments: list[Ring]) -> list[Ring]:
    """
    Merge fragments into boundary rings.

    Edges walked in both directions are interior and cancel; the remaining
    directed edges are chained, taking the leftmost turn at shared vertices.
    """
    edges: Counter[tuple[Point2D, Point2D]] = Counter()
    for frag in fragments:
        n = len(frag)
        for k in range(n):
            edges[(frag[k], frag[(k + 1) % n])] += 1

    outgoing: dict[Point2D, list[Point2D]] = {}
    for (u, v), count in edges.items():
        net = count - edges.get((v, u), 0)
        for _ in range(net):
            outgoing.setdefault(u, []).append(v)

    rings: list[Ring] = []
    while outgoing:
        start = next(iter(outgoing))
        ring = [start]
        prev, cur = start, outgoing[start].pop(0)
        if not outgoing[start]:
            del outgoing[start]
        while cur != start:
            ring.append(cur)
            candidates = outgoing.get(cur)
            if not candidates:
                logger.warning('Open band boundary at %s, dropping chain', cur)
                ring = []
                break
            nxt = _leftmost(prev, cur, candidates)
            candidates.remove(nxt)
            if not candidates:
                del outgoing[cur]
            prev, cur = cur, nxt
        if ring:
            rings.append(ring)
    return rings


def assemble_bands(rings: list[Ring], threshold: float) -> list[ContourBand]:
    """Split rings into outer boundaries and holes, attaching each hole."""
    outers: list[tuple[Ring, float]] = []
    holes: list[Ring] = []
    for raw in rings:
        ring = remove_collinear(dedupe_ring(raw))
        if len(ring) < MIN_POLYGON_VERTICES:
            continue
        area = ring_area(ring)
        if area > 0.0:
            outers.append((ring, area))
        elif area < 0.0:
            holes.append(ring)

    # дырку отдаём наименьшему внешнему контуру, который её содержит
    by_area = sorted(range(len(outers)), key=lambda k: outers[k][1])
    attached: dict[int, list[Ring]] = {k: [] for k in range(len(outers))}
    for hole in holes:
        inner = ring_centroid(hole)
        owner = next(
            (k for k in by_area if point_in_ring(inner, outers[k][0])), None
        )
        if owner is None:
            owner = next(
                (k for k in by_area if point_in_ring(hole[0], outers[k][0])), None
            )
        if owner is None:
            logger.warning('Band hole without enclosing ring at threshold %s', threshold)
            continue
        attached[owner].append(hole)

    return [
        ContourBand(
            vertices=tuple(ring),
            threshold=threshold,
            holes=tuple(tuple(h) for h in attached[k]),
        )
        for k, (ring, _) in enumerate(outers)
    ]


def extract_isobands(
    padded: np.ndarray,
    grid: GridDescriptor,
    threshold: float,
) -> list[ContourBand]:
    """Bands of one threshold over a NaN-padded field; no-data cells are skipped."""
    if math.isnan(threshold):
        return []
    valid = ~np.isnan(padded)
    full_data = valid[:-1, :-1] & valid[:-1, 1:] & valid[1:, 1:] & valid[1:, :-1]
    with np.errstate(invalid='ignore'):
        inside = padded >= threshold
    masks = corner_masks(inside)
    active = np.argwhere(full_data & (masks != MS_MASK_EMPTY))

    fragments: list[Ring] = []
    for j, i in active.tolist():
        corners = (
            float(padded[j, i]),
            float(padded[j, i + 1]),
            float(padded[j + 1, i + 1]),
            float(padded[j + 1, i]),
        )
        fragments.extend(cell_fragments(grid, i, j, corners, threshold))

    if not fragments:
        return []
    return assemble_bands(trace_rings(fragments), threshold)
