"""Domain layer - configuration models, grid/field types and contour geometry."""
from domain.fields import GridDescriptor, ScalarField
from domain.geometry import (
    ContourBand,
    ContourData,
    ContourResult,
    ContourSegment,
    Style,
    StyledBand,
    StyledSegment,
)
from domain.models import (
    ContourSettings,
    InvalidConfigurationError,
    ThresholdSpec,
    validate_settings,
)
from domain.profiles import (
    delete_profile,
    ensure_profiles_dir,
    list_profiles,
    load_profile,
    save_profile,
)

__all__ = [
    'ContourBand',
    'ContourData',
    'ContourResult',
    'ContourSegment',
    'ContourSettings',
    'GridDescriptor',
    'InvalidConfigurationError',
    'ScalarField',
    'Style',
    'StyledBand',
    'StyledSegment',
    'ThresholdSpec',
    'delete_profile',
    'ensure_profiles_dir',
    'list_profiles',
    'load_profile',
    'save_profile',
    'validate_settings',
]
