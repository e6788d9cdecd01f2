"""Services package - recompute orchestration, styling and the engine facade."""

from services.contour_engine import ContourEngine, EngineDefaults, make_position_accessor
from services.recompute_controller import (
    EngineInputs,
    RecomputeController,
    RecomputeStats,
)
from services.style_resolver import StyleDefaults, StyleResolver, resolve_style

__all__ = [
    'ContourEngine',
    'EngineDefaults',
    'EngineInputs',
    'RecomputeController',
    'RecomputeStats',
    'StyleDefaults',
    'StyleResolver',
    'make_position_accessor',
    'resolve_style',
]
