"""
Recompute controller.

Owns the published engine state (grid, scalar field, contours) and decides on
every update which stages have to run again:

* data identity, cell size or another grid input changed -> bin + contour;
* only the threshold list (or extraction policy) changed -> contour;
* nothing changed -> reuse the previous objects.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from aggregation.binner import BinnedGrid, bin_points
from aggregation.strategy import StrategyFlags, select_strategy
from contours.synthesizer import synthesize
from domain.geometry import ContourData
from shared.constants import EngineState
from shared.diagnostics import ResourceMonitor

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from domain.fields import GridDescriptor, ScalarField
    from domain.models import ContourSettings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EngineInputs:
    """Everything one recompute depends on."""

    points: Sequence[Any] | None
    position_accessor: Callable[[Any], Any]
    settings: ContourSettings
    weight_accessor: Callable[[Any], Any] | None = None
    value_func: Callable[[Sequence[Any]], Any] | None = None


@dataclass
class RecomputeStats:
    bin_runs: int = 0
    contour_runs: int = 0
    reused: int = 0


@dataclass(frozen=True)
class EngineSnapshot:
    inputs: EngineInputs
    state: EngineState
    binned: BinnedGrid | None = None
    contours: ContourData = field(default_factory=ContourData)


def thresholds_changed(old: Sequence[float], new: Sequence[float]) -> bool:
    """
    Positional comparison of threshold lists.

    A length change or a differing value at any index counts as a change;
    two lists holding the same values at the same positions are unchanged.
    """
    if len(old) != len(new):
        return True
    return any(new[i] != old[i] for i in range(len(new)))


def grid_inputs_changed(old: EngineInputs, new: EngineInputs) -> bool:
    """Inputs that invalidate the binned field (data compared by identity)."""
    a, b = old.settings, new.settings
    return (
        new.points is not old.points
        or new.position_accessor is not old.position_accessor
        or new.weight_accessor is not old.weight_accessor
        or new.value_func is not old.value_func
        or a.cell_size != b.cell_size
        or a.grid_origin != b.grid_origin
        or a.extent != b.extent
        or a.aggregation != b.aggregation
        or a.batch_aggregation != b.batch_aggregation
    )


def contour_inputs_changed(old: EngineInputs, new: EngineInputs) -> bool:
    a, b = old.settings, new.settings
    return (
        thresholds_changed(a.thresholds, b.thresholds)
        or a.iso_lines != b.iso_lines
        or a.iso_bands != b.iso_bands
    )


class RecomputeController:
    """
    Re-entrant state machine EMPTY -> BINNED -> CONTOURED.

    Each update publishes a new snapshot with a single assignment; snapshots
    and the arrays inside them are never modified afterwards.
    """

    def __init__(
        self,
        *,
        batch_supported: bool,
        binner: Callable[..., BinnedGrid] = bin_points,
        synthesizer: Callable[..., ContourData] = synthesize,
    ) -> None:
        self.batch_supported = batch_supported
        self._bin = binner
        self._synthesize = synthesizer
        self._snapshot: EngineSnapshot | None = None
        self.stats = RecomputeStats()

    @property
    def state(self) -> EngineState:
        return self._snapshot.state if self._snapshot else EngineState.EMPTY

    @property
    def contours(self) -> ContourData:
        return self._snapshot.contours if self._snapshot else ContourData()

    @property
    def field(self) -> ScalarField | None:
        if self._snapshot is None or self._snapshot.binned is None:
            return None
        return self._snapshot.binned.field

    @property
    def grid(self) -> GridDescriptor | None:
        if self._snapshot is None or self._snapshot.binned is None:
            return None
        return self._snapshot.binned.grid

    @property
    def binned(self) -> BinnedGrid | None:
        return self._snapshot.binned if self._snapshot else None

    def reset(self) -> None:
        """Drop published state (session end)."""
        self._snapshot = None

    def update(self, inputs: EngineInputs) -> ContourData:
        """Bring published state in line with ``inputs``; return the contours."""
        prev = self._snapshot

        if inputs.points is None:
            if prev is not None:
                logger.debug('No points submitted; engine state cleared')
            self._snapshot = EngineSnapshot(inputs=inputs, state=EngineState.EMPTY)
            return self._snapshot.contours

        if prev is None or prev.binned is None or grid_inputs_changed(prev.inputs, inputs):
            logger.debug('Grid inputs changed: re-binning and re-contouring')
            binned = self._run_binner(inputs)
            self._publish(inputs, binned)
        elif contour_inputs_changed(prev.inputs, inputs):
            logger.debug('Thresholds changed: re-contouring only')
            self._publish(inputs, prev.binned)
        else:
            self.stats.reused += 1
            if prev.inputs is not inputs:
                # те же данные и пороги: сохраняем опубликованные объекты
                self._snapshot = EngineSnapshot(
                    inputs=inputs,
                    state=prev.state,
                    binned=prev.binned,
                    contours=prev.contours,
                )
        return self.contours

    def _run_binner(self, inputs: EngineInputs) -> BinnedGrid:
        settings = inputs.settings
        strategy = select_strategy(
            StrategyFlags(
                batch_supported=self.batch_supported,
                batch_requested=settings.batch_aggregation,
                custom_value=inputs.value_func is not None,
            )
        )
        self.stats.bin_runs += 1
        with ResourceMonitor(f'bin {len(inputs.points or ())} points ({strategy.value})'):
            return self._bin(
                inputs.points,
                inputs.position_accessor,
                settings.grid_origin,
                settings.cell_size,
                aggregation=settings.aggregation,
                weight_accessor=inputs.weight_accessor,
                extent=settings.extent,
                strategy=strategy,
                chunk_size=settings.chunk_size,
                max_workers=settings.max_workers,
                value_func=inputs.value_func,
            )

    def _publish(self, inputs: EngineInputs, binned: BinnedGrid) -> None:
        settings = inputs.settings
        if not binned.has_data:
            logger.info('Aggregation produced no valid cells; contours are empty')
            self._snapshot = EngineSnapshot(
                inputs=inputs, state=EngineState.BINNED, binned=binned
            )
            return

        self.stats.contour_runs += 1
        with ResourceMonitor(f'contour {len(settings.thresholds)} threshold(s)'):
            contours = self._synthesize(
                binned.field,
                binned.grid,
                settings.thresholds,
                iso_lines=settings.iso_lines,
                iso_bands=settings.iso_bands,
            )
        self._snapshot = EngineSnapshot(
            inputs=inputs,
            state=EngineState.CONTOURED,
            binned=binned,
            contours=contours,
        )
