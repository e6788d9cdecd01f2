from __future__ import annotations

import logging
from dataclasses import dataclass

from shared.constants import ExecutionStrategy
from shared.diagnostics import get_cpu_count

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StrategyFlags:
    # Окружение умеет пакетный путь (определяется один раз при создании движка)
    batch_supported: bool
    # Пожелание вызывающей стороны; None: по умолчанию (пакетный, если можно)
    batch_requested: bool | None = None
    # Задана своя функция значения ячейки: нужен полный список точек ячейки
    custom_value: bool = False


def select_strategy(flags: StrategyFlags) -> ExecutionStrategy:
    """
    Pick the aggregation path.

    Pure function of the flags: batch only when the environment supports it,
    the caller did not opt out and no custom cell value function is set.
    """
    if flags.custom_value:
        return ExecutionStrategy.SCALAR
    if flags.batch_supported and flags.batch_requested is not False:
        return ExecutionStrategy.BATCH
    return ExecutionStrategy.SCALAR


def detect_batch_support() -> bool:
    """
    Capability check run once per engine instance.

    The batch path pays off only when its worker pool can run on more than
    one CPU; on a single CPU the per-point path is used.
    """
    cpu_count = get_cpu_count()
    supported = cpu_count > 1
    logger.debug('Batch aggregation supported=%s (cpu_count=%d)', supported, cpu_count)
    return supported
