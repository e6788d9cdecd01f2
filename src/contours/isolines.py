"""
Изолинии методом marching squares по скалярному полю.

Угол считается «выше» уровня, если его значение строго больше порога;
угол без данных (NaN) всегда «ниже». На ребре между данными и NaN точка
пересечения ставится на отсчёт с данными, поэтому линия не уходит в область
без данных. Седловые клетки разрешаются по среднему значению углов:
при центре не ниже порога верхние углы связаны.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

import numpy as np

from contours.helpers import interp, padded_to_world
from domain.geometry import ContourSegment
from shared.constants import (
    MARCHING_SQUARES_CENTER_WEIGHT,
    MS_CONNECT_LEFT_BOTTOM,
    MS_CONNECT_LEFT_RIGHT,
    MS_CONNECT_RIGHT_BOTTOM,
    MS_CONNECT_TOP_BOTTOM,
    MS_CONNECT_TOP_LEFT,
    MS_CONNECT_TOP_RIGHT,
    MS_MASK_EMPTY,
    MS_MASK_FULL,
    MS_MASK_TL_BR,
    MS_MASK_TR_BL,
)

if TYPE_CHECKING:
    from domain.fields import GridDescriptor

Point2D = tuple[float, float]

# Рёбра клетки
TOP, RIGHT, BOTTOM, LEFT = 'top', 'right', 'bottom', 'left'

_EDGE_PAIRS: dict[int, tuple[tuple[str, str], ...]] = {}
for _masks, _pair in (
    (MS_CONNECT_TOP_LEFT, (TOP, LEFT)),
    (MS_CONNECT_TOP_RIGHT, (TOP, RIGHT)),
    (MS_CONNECT_LEFT_RIGHT, (LEFT, RIGHT)),
    (MS_CONNECT_RIGHT_BOTTOM, (RIGHT, BOTTOM)),
    (MS_CONNECT_TOP_BOTTOM, (TOP, BOTTOM)),
    (MS_CONNECT_LEFT_BOTTOM, (LEFT, BOTTOM)),
):
    for _mask in _masks:
        _EDGE_PAIRS[_mask] = (_pair,)

# Седловые клетки: (центр выше уровня, центр ниже уровня)
_SADDLE_PAIRS: dict[int, tuple[tuple[tuple[str, str], ...], tuple[tuple[str, str], ...]]] = {
    # TL и BR выше: при «высоком» центре отсекаем TR и BL, иначе TL и BR
    MS_MASK_TL_BR: (((TOP, RIGHT), (LEFT, BOTTOM)), ((TOP, LEFT), (RIGHT, BOTTOM))),
    # TR и BL выше: при «высоком» центре отсекаем TL и BR, иначе TR и BL
    MS_MASK_TR_BL: (((TOP, LEFT), (RIGHT, BOTTOM)), ((TOP, RIGHT), (LEFT, BOTTOM))),
}


def corner_masks(above: np.ndarray) -> np.ndarray:
    """
    Marching-squares case index for every cell of the padded field.

    Bit layout follows the MS_MASK_* constants: b0 TL, b1 TR, b2 BR, b3 BL,
    where "top" is the lower row index.
    """
    a = above.astype(np.uint8)
    return a[:-1, :-1] | (a[:-1, 1:] << 1) | (a[1:, 1:] << 2) | (a[1:, :-1] << 3)


def cell_center_value(corners: tuple[float, float, float, float]) -> float:
    """Average of the four corner samples."""
    return sum(corners) * MARCHING_SQUARES_CENTER_WEIGHT


def _edge_crossing(
    p0: float, p1: float, v0: float, v1: float, level: float
) -> float | None:
    if math.isnan(v0):
        return p1
    if math.isnan(v1):
        return p0
    return interp(p0, p1, v0, v1, level)


def _cell_crossing(
    grid: GridDescriptor,
    edge: str,
    i: int,
    j: int,
    corners: tuple[float, float, float, float],
    threshold: float,
) -> Point2D | None:
    """
    World point where ``threshold`` crosses one edge of padded cell ``(i, j)``.

    Interpolation always runs from the lower-index sample to the higher one,
    so both cells sharing an edge produce the identical point.
    """
    v_tl, v_tr, v_br, v_bl = corners
    if edge == TOP:
        x = _edge_crossing(i, i + 1, v_tl, v_tr, threshold)
        return None if x is None else padded_to_world(grid, x, j)
    if edge == BOTTOM:
        x = _edge_crossing(i, i + 1, v_bl, v_br, threshold)
        return None if x is None else padded_to_world(grid, x, j + 1)
    if edge == LEFT:
        y = _edge_crossing(j, j + 1, v_tl, v_bl, threshold)
        return None if y is None else padded_to_world(grid, i, y)
    y = _edge_crossing(j, j + 1, v_tr, v_br, threshold)
    return None if y is None else padded_to_world(grid, i + 1, y)


def extract_isolines(
    padded: np.ndarray,
    grid: GridDescriptor,
    threshold: float,
) -> list[ContourSegment]:
    """Iso-line segments of one threshold over a NaN-padded field."""
    if math.isnan(threshold):
        return []
    with np.errstate(invalid='ignore'):
        above = padded > threshold
    masks = corner_masks(above)
    active = np.argwhere((masks != MS_MASK_EMPTY) & (masks != MS_MASK_FULL))

    segments: list[ContourSegment] = []
    # Полоса данных шириной в один отсчёт прижимается с обеих сторон
    # к одному и тому же ребру: такой отрезок выдаём один раз
    seen: set[tuple[Point2D, Point2D]] = set()
    for j, i in active.tolist():
        mask = int(masks[j, i])
        v_tl = float(padded[j, i])
        v_tr = float(padded[j, i + 1])
        v_br = float(padded[j + 1, i + 1])
        v_bl = float(padded[j + 1, i])
        corners = (v_tl, v_tr, v_br, v_bl)
        if mask in _SADDLE_PAIRS:
            connected, separated = _SADDLE_PAIRS[mask]
            # клетка с пропусками не связывает области через пропуск
            has_gap = any(math.isnan(v) for v in corners)
            center = cell_center_value(corners)
            # центр, равный порогу, связывает верхние углы, как и в изополосах
            pairs = connected if not has_gap and center >= threshold else separated
        else:
            pairs = _EDGE_PAIRS[mask]

        for edge_a, edge_b in pairs:
            start = _cell_crossing(grid, edge_a, i, j, corners, threshold)
            end = _cell_crossing(grid, edge_b, i, j, corners, threshold)
            if start is None or end is None or start == end:
                continue
            key = (min(start, end), max(start, end))
            if key in seen:
                continue
            seen.add(key)
            segments.append(ContourSegment(start=start, end=end, threshold=threshold))
    return segments
