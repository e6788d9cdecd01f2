"""Grid aggregation: reductions, binning and execution strategies."""
from aggregation.binner import BinnedGrid, bin_points
from aggregation.partials import PartialField, finalize_field, merge_partials
from aggregation.strategy import StrategyFlags, detect_batch_support, select_strategy

__all__ = [
    'BinnedGrid',
    'PartialField',
    'StrategyFlags',
    'bin_points',
    'detect_batch_support',
    'finalize_field',
    'merge_partials',
    'select_strategy',
]
