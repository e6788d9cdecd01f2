"""Threshold -> visual attributes lookup for contour geometry."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from domain.geometry import (
    ContourData,
    ContourResult,
    Style,
    StyledBand,
    StyledSegment,
)
from shared.constants import DEFAULT_COLOR, DEFAULT_STROKE_WIDTH

if TYPE_CHECKING:
    from collections.abc import Sequence

    from domain.models import ThresholdSpec


@dataclass(frozen=True)
class StyleDefaults:
    """Fallback style; one instance per engine, never shared module state."""

    color: tuple[int, ...] = DEFAULT_COLOR
    stroke_width: float = DEFAULT_STROKE_WIDTH


def resolve_style(
    specs: Sequence[ThresholdSpec],
    threshold: float,
    defaults: StyleDefaults,
) -> Style:
    """
    Linear scan for the first spec whose threshold equals ``threshold``.

    Later specs with the same threshold are ignored. A missing spec, or a spec
    without color / stroke width, falls back to ``defaults``.
    """
    # Линейный поиск: список контуров обычно короткий, порядок важен
    for spec in specs:
        if spec.threshold == threshold:
            return Style(
                color=spec.color if spec.color is not None else defaults.color,
                stroke_width=(
                    spec.stroke_width
                    if spec.stroke_width is not None
                    else defaults.stroke_width
                ),
            )
    return Style(color=defaults.color, stroke_width=defaults.stroke_width)


class StyleResolver:
    """Resolves styles against one threshold spec list."""

    def __init__(
        self,
        specs: Sequence[ThresholdSpec],
        defaults: StyleDefaults | None = None,
    ) -> None:
        self.specs = tuple(specs)
        self.defaults = defaults if defaults is not None else StyleDefaults()

    def resolve(self, threshold: float) -> Style:
        return resolve_style(self.specs, threshold, self.defaults)

    def apply(self, data: ContourData) -> ContourResult:
        """Attach styles to every fragment and tag the payload by content."""
        segments = tuple(
            StyledSegment(segment=s, style=self.resolve(s.threshold))
            for s in data.segments
        )
        bands = tuple(
            StyledBand(band=b, style=self.resolve(b.threshold)) for b in data.bands
        )
        return ContourResult(
            kind=ContourResult.kind_for(bool(segments), bool(bands)),
            segments=segments,
            bands=bands,
        )
