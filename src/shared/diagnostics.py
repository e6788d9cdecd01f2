"""
Diagnostic utilities.

This module reports process resources around the expensive engine stages
(binning and contour synthesis) so slow or memory-hungry recomputes can be
traced from the logs.
"""

from __future__ import annotations

import logging
import threading
import time
import types
from typing import Any

import psutil

from shared.constants import PSUTIL_AVAILABLE as _PSUTIL_AVAILABLE

logger = logging.getLogger(__name__)


def get_memory_info() -> dict[str, Any]:
    """Get comprehensive memory usage information."""
    if not _PSUTIL_AVAILABLE:
        return {'error': 'psutil not available'}

    try:
        process = psutil.Process()
        memory_info = process.memory_info()
        system_memory = psutil.virtual_memory()

        return {
            'process_rss_mb': round(memory_info.rss / 1024 / 1024, 2),
            'process_vms_mb': round(memory_info.vms / 1024 / 1024, 2),
            'system_total_mb': round(system_memory.total / 1024 / 1024, 2),
            'system_available_mb': round(
                system_memory.available / 1024 / 1024,
                2,
            ),
            'system_used_percent': system_memory.percent,
            'process_memory_percent': round(process.memory_percent(), 2),
        }
    except Exception as e:
        return {'error': f'Failed to get memory info: {e}'}


def get_thread_info(name_prefix: str = '') -> dict[str, Any]:
    """
    Active threads of this process.

    ``name_prefix`` narrows ``pool_threads`` to one worker pool, e.g. the
    batch binning pool whose threads are named with ``BATCH_THREAD_PREFIX``.
    """
    threads = threading.enumerate()
    info: dict[str, Any] = {
        'active_count': len(threads),
        'pool_threads': sum(
            1 for t in threads if name_prefix and t.name.startswith(name_prefix)
        ),
        'main_thread_alive': threading.main_thread().is_alive(),
    }
    if _PSUTIL_AVAILABLE:
        try:
            info['system_threads'] = psutil.Process().num_threads()
        except psutil.Error as e:
            logger.debug('Failed to get system thread count: %s', e)
    return info


def get_cpu_count() -> int:
    """Logical CPU count, at least 1."""
    if _PSUTIL_AVAILABLE:
        count = psutil.cpu_count(logical=True)
        if count:
            return int(count)
    return 1


def log_memory_usage(context: str = '', level: int = logging.INFO) -> None:
    """Quick memory usage logging."""
    memory_info = get_memory_info()
    context_label = f' ({context})' if context else ''
    logger.log(
        level,
        'Memory usage%s: RSS=%sMB, Available=%sMB',
        context_label,
        memory_info.get('process_rss_mb', 'N/A'),
        memory_info.get('system_available_mb', 'N/A'),
    )


def log_thread_status(
    context: str = '',
    name_prefix: str = '',
    level: int = logging.DEBUG,
) -> None:
    """Log thread counts, including workers of the pool named ``name_prefix``."""
    thread_info = get_thread_info(name_prefix)
    context_label = f' ({context})' if context else ''
    logger.log(
        level,
        'Thread status%s: active=%d, pool=%d, system=%s',
        context_label,
        thread_info['active_count'],
        thread_info['pool_threads'],
        thread_info.get('system_threads', 'N/A'),
    )


class ResourceMonitor:
    """Context manager timing an operation and logging its RSS change."""

    def __init__(self, operation_name: str, level: int = logging.DEBUG) -> None:
        self.operation_name = operation_name
        self.level = level
        self.start_time: float | None = None
        self.start_rss_mb: float | None = None
        self.duration_s: float | None = None

    def __enter__(self) -> ResourceMonitor:
        self.start_time = time.perf_counter()
        self.start_rss_mb = get_memory_info().get('process_rss_mb')
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: types.TracebackType | None,
    ) -> None:
        _ = exc_tb
        if self.start_time is None:
            msg = 'Unexpected missing start_time in ResourceMonitor'
            raise RuntimeError(msg)
        self.duration_s = time.perf_counter() - self.start_time
        end_rss_mb = get_memory_info().get('process_rss_mb')
        rss_delta = (
            f'{end_rss_mb - self.start_rss_mb:+.2f}MB'
            if isinstance(end_rss_mb, float) and isinstance(self.start_rss_mb, float)
            else 'N/A'
        )
        logger.log(
            self.level,
            "Operation '%s' completed in %.4f seconds (RSS %s)",
            self.operation_name,
            self.duration_s,
            rss_delta,
        )

        if exc_type:
            logger.error(
                "Operation '%s' failed with %s: %s",
                self.operation_name,
                exc_type.__name__,
                exc_val,
            )


# Check if psutil is available and log warning if not
if not _PSUTIL_AVAILABLE:
    logger.warning(
        'psutil library not available - memory and system monitoring will be limited',
    )
