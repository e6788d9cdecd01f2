from __future__ import annotations

import math
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator

from shared.constants import (
    BATCH_CHUNK_SIZE,
    DEFAULT_CELL_SIZE,
    DEFAULT_GRID_ORIGIN,
    DEFAULT_THRESHOLD,
    AggregationKind,
    default_aggregation_kind,
)


class InvalidConfigurationError(ValueError):
    """Engine configuration rejected before any recomputation."""


class ThresholdSpec(BaseModel):
    """Порог изолинии и его визуальные атрибуты (необязательные)."""

    model_config = {'extra': 'ignore', 'frozen': True}

    threshold: float
    color: tuple[int, ...] | None = None
    stroke_width: float | None = None


def _default_contours() -> list[ThresholdSpec]:
    return [ThresholdSpec(threshold=DEFAULT_THRESHOLD)]


class ContourSettings(BaseModel):
    """
    Validated engine configuration.

    One immutable instance per ``configure`` call; the controller compares
    successive instances to decide what has to be recomputed.
    """

    model_config = {
        'extra': 'ignore',  # профили могут содержать посторонние поля
        'frozen': True,
    }

    # Начало координат сетки (мировые координаты)
    grid_origin: tuple[float, float] = DEFAULT_GRID_ORIGIN
    # Размер ячейки (w, h); скаляр трактуется как квадратная ячейка
    cell_size: tuple[float, float] = (DEFAULT_CELL_SIZE, DEFAULT_CELL_SIZE)
    # Фиксированный размер сетки (cols, rows); None: по охвату точек
    extent: tuple[int, int] | None = None

    contours: list[ThresholdSpec] = Field(default_factory=_default_contours)
    aggregation: AggregationKind = Field(default_factory=default_aggregation_kind)

    # Пакетная (векторная, параллельная) агрегация, если окружение позволяет
    batch_aggregation: bool = True
    max_workers: int | None = None
    chunk_size: int = BATCH_CHUNK_SIZE

    # Политика извлечения: изолинии и/или полосы
    iso_lines: bool = True
    iso_bands: bool = True

    @field_validator('grid_origin')
    @classmethod
    def validate_origin(cls, v: tuple[float, float]) -> tuple[float, float]:
        if not all(math.isfinite(c) for c in v):
            msg = f'grid origin must be finite, got {v!r}'
            raise ValueError(msg)
        return v

    @field_validator('cell_size', mode='before')
    @classmethod
    def expand_cell_size(cls, v: Any) -> Any:
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return (v, v)
        return v

    @field_validator('cell_size')
    @classmethod
    def validate_cell_size(cls, v: tuple[float, float]) -> tuple[float, float]:
        if not all(math.isfinite(c) and c > 0 for c in v):
            msg = f'cell size must be positive and finite, got {v!r}'
            raise ValueError(msg)
        return v

    @field_validator('extent')
    @classmethod
    def validate_extent(cls, v: tuple[int, int] | None) -> tuple[int, int] | None:
        if v is not None and (v[0] < 0 or v[1] < 0):
            msg = f'extent must not be negative, got {v!r}'
            raise ValueError(msg)
        return v

    @field_validator('contours', mode='before')
    @classmethod
    def coerce_contours(cls, v: Any) -> Any:
        # Допускаем голые числа вместо {threshold: ...}
        if v is None:
            return []
        if isinstance(v, (list, tuple)):
            return [
                {'threshold': item}
                if isinstance(item, (int, float)) and not isinstance(item, bool)
                else item
                for item in v
            ]
        return v

    @field_validator('max_workers', 'chunk_size')
    @classmethod
    def validate_positive_int(cls, v: int | None) -> int | None:
        if v is not None and v < 1:
            msg = f'value must be >= 1, got {v}'
            raise ValueError(msg)
        return v

    @property
    def thresholds(self) -> list[float]:
        return [c.threshold for c in self.contours]


def validate_settings(data: Mapping[str, Any]) -> ContourSettings:
    """Validate raw configuration, reporting problems as InvalidConfigurationError."""
    try:
        return ContourSettings.model_validate(dict(data))
    except ValidationError as e:
        msg = f'Invalid contour engine configuration: {e}'
        raise InvalidConfigurationError(msg) from e
