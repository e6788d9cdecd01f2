"""Contour synthesis: iso-lines and iso-bands for a list of thresholds."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from contours.helpers import pad_field
from contours.isobands import extract_isobands
from contours.isolines import extract_isolines
from domain.geometry import ContourBand, ContourData, ContourSegment

if TYPE_CHECKING:
    from collections.abc import Iterable

    from domain.fields import GridDescriptor, ScalarField

logger = logging.getLogger(__name__)


def synthesize(
    field: ScalarField,
    grid: GridDescriptor,
    thresholds: Iterable[float],
    *,
    iso_lines: bool = True,
    iso_bands: bool = True,
) -> ContourData:
    """
    Run marching squares for every threshold independently.

    Segments and bands of all thresholds are concatenated in threshold order,
    each tagged with the threshold that produced it. Duplicate thresholds
    produce duplicate geometry.
    """
    thresholds = [float(t) for t in thresholds]
    if (grid.rows, grid.cols) != (field.rows, field.cols):
        msg = (
            f'Field shape {(field.rows, field.cols)} does not match grid '
            f'{(grid.rows, grid.cols)}'
        )
        raise ValueError(msg)
    if not thresholds or not field.has_data or not (iso_lines or iso_bands):
        return ContourData()

    padded = pad_field(field.values)
    segments: list[ContourSegment] = []
    bands: list[ContourBand] = []
    for threshold in thresholds:
        if iso_lines:
            segments.extend(extract_isolines(padded, grid, threshold))
        if iso_bands:
            bands.extend(extract_isobands(padded, grid, threshold))

    logger.debug(
        'Synthesized %d segment(s) and %d band(s) for %d threshold(s) on %dx%d grid',
        len(segments),
        len(bands),
        len(thresholds),
        grid.cols,
        grid.rows,
    )
    return ContourData(segments=tuple(segments), bands=tuple(bands))
