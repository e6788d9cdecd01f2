"""Contour geometry types handed to the rendering layer."""

from __future__ import annotations

from dataclasses import dataclass, field

from shared.constants import ContourKind

Point2D = tuple[float, float]
Ring = tuple[Point2D, ...]
Color = tuple[int, ...]


@dataclass(frozen=True)
class ContourSegment:
    """One iso-line edge in world coordinates."""

    start: Point2D
    end: Point2D
    threshold: float


@dataclass(frozen=True)
class ContourBand:
    """
    Filled polygon of the region where the field is at or above ``threshold``.

    ``vertices`` is a counter-clockwise ring without a repeated closing vertex;
    ``holes`` are clockwise rings cut out of it.
    """

    vertices: Ring
    threshold: float
    holes: tuple[Ring, ...] = ()


@dataclass(frozen=True)
class ContourData:
    segments: tuple[ContourSegment, ...] = ()
    bands: tuple[ContourBand, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.segments and not self.bands


@dataclass(frozen=True)
class Style:
    color: Color
    stroke_width: float


@dataclass(frozen=True)
class StyledSegment:
    segment: ContourSegment
    style: Style


@dataclass(frozen=True)
class StyledBand:
    band: ContourBand
    style: Style


@dataclass(frozen=True)
class ContourResult:
    """
    Tagged render payload.

    Renderers dispatch on ``kind`` instead of probing for empty sequences.
    """

    kind: ContourKind
    segments: tuple[StyledSegment, ...] = field(default_factory=tuple)
    bands: tuple[StyledBand, ...] = field(default_factory=tuple)

    @staticmethod
    def kind_for(has_lines: bool, has_polygons: bool) -> ContourKind:
        if has_lines and has_polygons:
            return ContourKind.BOTH
        if has_lines:
            return ContourKind.LINES
        if has_polygons:
            return ContourKind.POLYGONS
        return ContourKind.NONE
