"""
Contour engine facade.

Ingest surface for the rendering layer: configure the grid and thresholds,
submit point data, read back contours and the aggregated scalar field.
Recomputation is lazy and happens on the first read after a change.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from aggregation.strategy import detect_batch_support
from domain.models import ContourSettings, InvalidConfigurationError, validate_settings
from services.recompute_controller import (
    EngineInputs,
    RecomputeController,
    RecomputeStats,
)
from services.style_resolver import StyleDefaults, StyleResolver
from shared.constants import BATCH_CHUNK_SIZE

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Sequence

    from domain.fields import GridDescriptor, ScalarField
    from domain.geometry import ContourData, ContourResult
    from shared.constants import EngineState

logger = logging.getLogger(__name__)


def make_position_accessor() -> Callable[[Any], Any]:
    """
    Fresh default accessor reading ``point['position']`` or ``point.position``.

    Every engine gets its own function object so identity comparisons never
    match across instances.
    """

    def position(point: Any) -> Any:
        if isinstance(point, Mapping):
            return point['position']
        return point.position

    return position


@dataclass(frozen=True)
class EngineDefaults:
    """Per-instance defaults; engines never share mutable module state."""

    position_accessor: Callable[[Any], Any] = field(default_factory=make_position_accessor)
    style: StyleDefaults = field(default_factory=StyleDefaults)


class ContourEngine:
    """Grid aggregation plus contour synthesis for one rendering session."""

    def __init__(
        self,
        defaults: EngineDefaults | None = None,
        *,
        batch_supported: bool | None = None,
    ) -> None:
        self.defaults = defaults if defaults is not None else EngineDefaults()
        if batch_supported is None:
            batch_supported = detect_batch_support()
        self._controller = RecomputeController(batch_supported=batch_supported)
        self._settings = ContourSettings()
        self._weight_accessor: Callable[[Any], Any] | None = None
        self._value_func: Callable[[Sequence[Any]], Any] | None = None
        self._points: Sequence[Any] | None = None
        self._position_accessor = self.defaults.position_accessor
        self._payload: tuple[ContourData, tuple, ContourResult] | None = None

    # Configuration

    def configure(
        self,
        grid_origin: Sequence[float],
        cell_size: float | Sequence[float],
        thresholds: Iterable[Any],
        aggregation_kind: str = 'count',
        weight_accessor: Callable[[Any], Any] | None = None,
        *,
        extent: Sequence[int] | None = None,
        batch_aggregation: bool = True,
        max_workers: int | None = None,
        chunk_size: int = BATCH_CHUNK_SIZE,
        iso_lines: bool = True,
        iso_bands: bool = True,
        value_func: Callable[[Sequence[Any]], Any] | None = None,
    ) -> ContourSettings:
        """
        Validate and store a new configuration.

        ``thresholds`` items may be bare numbers, mappings or ThresholdSpec
        instances. ``value_func(points) -> float | None`` replaces the
        aggregation with a function of each cell's points and forces the
        per-point path. Invalid input raises InvalidConfigurationError and
        leaves the previous configuration in place.
        """
        if thresholds is None or isinstance(thresholds, (str, bytes)):
            msg = f'thresholds must be a sequence, got {thresholds!r}'
            raise InvalidConfigurationError(msg)
        try:
            contours = list(thresholds)
        except TypeError as e:
            msg = f'thresholds must be iterable: {e}'
            raise InvalidConfigurationError(msg) from e
        settings = validate_settings(
            {
                'grid_origin': grid_origin,
                'cell_size': cell_size,
                'extent': extent,
                'contours': contours,
                'aggregation': aggregation_kind,
                'batch_aggregation': batch_aggregation,
                'max_workers': max_workers,
                'chunk_size': chunk_size,
                'iso_lines': iso_lines,
                'iso_bands': iso_bands,
            }
        )
        return self.configure_settings(settings, weight_accessor, value_func)

    def configure_settings(
        self,
        settings: ContourSettings | Mapping[str, Any],
        weight_accessor: Callable[[Any], Any] | None = None,
        value_func: Callable[[Sequence[Any]], Any] | None = None,
    ) -> ContourSettings:
        """Apply an already built (e.g. profile-loaded) configuration."""
        if weight_accessor is not None and not callable(weight_accessor):
            msg = 'weight accessor must be callable'
            raise InvalidConfigurationError(msg)
        if value_func is not None and not callable(value_func):
            msg = 'cell value function must be callable'
            raise InvalidConfigurationError(msg)
        if not isinstance(settings, ContourSettings):
            settings = validate_settings(settings)
        self._settings = settings
        self._weight_accessor = weight_accessor
        self._value_func = value_func
        logger.debug(
            'Configured: origin=%s cell=%s thresholds=%s aggregation=%s',
            settings.grid_origin,
            settings.cell_size,
            settings.thresholds,
            settings.aggregation.value,
        )
        return settings

    @property
    def settings(self) -> ContourSettings:
        return self._settings

    # Data

    def submit_points(
        self,
        points: Sequence[Any] | None,
        position_accessor: Callable[[Any], Any] | None = None,
    ) -> None:
        """
        Replace the point collection.

        Data identity drives change detection: submitting the same sequence
        object again does not trigger re-binning, a new object always does.
        """
        if points is not None and not hasattr(points, '__len__'):
            points = list(points)
        self._points = points
        self._position_accessor = (
            position_accessor
            if position_accessor is not None
            else self.defaults.position_accessor
        )

    def clear(self) -> None:
        """Forget submitted data and published state."""
        self._points = None
        self._payload = None
        self._controller.reset()

    # Results

    def _refresh(self) -> ContourData:
        return self._controller.update(
            EngineInputs(
                points=self._points,
                position_accessor=self._position_accessor,
                settings=self._settings,
                weight_accessor=self._weight_accessor,
                value_func=self._value_func,
            )
        )

    def get_contours(self) -> ContourData:
        """Segments and bands for the current inputs (recomputed if stale)."""
        return self._refresh()

    def get_scalar_field(self) -> ScalarField | None:
        """Aggregated field, or None before any data was binned."""
        self._refresh()
        return self._controller.field

    def get_grid(self) -> GridDescriptor | None:
        self._refresh()
        return self._controller.grid

    def render_payload(self) -> ContourResult:
        """Styled, tagged contours ready for the rendering layer."""
        contours = self._refresh()
        specs = tuple(self._settings.contours)
        if (
            self._payload is not None
            and self._payload[0] is contours
            and self._payload[1] == specs
        ):
            return self._payload[2]
        result = StyleResolver(specs, self.defaults.style).apply(contours)
        self._payload = (contours, specs, result)
        return result

    @property
    def state(self) -> EngineState:
        return self._controller.state

    @property
    def stats(self) -> RecomputeStats:
        return self._controller.stats
