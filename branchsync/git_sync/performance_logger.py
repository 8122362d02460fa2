"""Timing logs for branch synchronization commands."""

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Dict, Generator, Optional


@dataclass
class PerformanceMetrics:
    """Timing of the last run of one command."""
    operation: str
    duration: float
    success: bool = True
    context: Optional[Dict[str, Any]] = None


class PerformanceLogger:
    """
    Times whole commands.

    Nearly all of a command's cost is git process latency, so there is no
    finer-grained profiling; slow commands are logged as warnings.
    """

    SLOW_OPERATION_SECONDS = 10.0

    def __init__(self, logger_name: str = 'branchsync.git_sync.performance'):
        self.logger = logging.getLogger(logger_name)
        self._metrics: Dict[str, PerformanceMetrics] = {}

    @contextmanager
    def time_operation(
        self,
        operation: str,
        context: Optional[Dict[str, Any]] = None,
        log_level: int = logging.DEBUG
    ) -> Generator[None, None, None]:
        """
        Time the wrapped block and record it under ``operation``.

        Args:
            operation: Command name, e.g. ``sync``
            context: Arguments worth showing next to the timing
            log_level: Level for the start / finish messages
        """
        details = ", ".join(f"{k}={v}" for k, v in (context or {}).items())
        self.logger.log(log_level, f"Starting {operation}" + (f" ({details})" if details else ""))

        started = time.perf_counter()
        metrics = PerformanceMetrics(operation=operation, duration=0.0, context=context)
        try:
            yield
        except Exception as e:
            metrics.success = False
            self.logger.log(log_level, f"{operation} raised {type(e).__name__}: {e}")
            raise
        finally:
            metrics.duration = time.perf_counter() - started
            self._metrics[operation] = metrics

            outcome = "completed" if metrics.success else "failed"
            self.logger.log(log_level, f"{operation} {outcome} in {metrics.duration:.3f}s")
            if metrics.duration > self.SLOW_OPERATION_SECONDS:
                self.logger.warning(f"Slow operation detected: '{operation}' took {metrics.duration:.3f}s")

    def get_metrics(self, operation: str) -> Optional[PerformanceMetrics]:
        """Return the metrics recorded for the last run of an operation."""
        return self._metrics.get(operation)


_performance_logger: Optional[PerformanceLogger] = None


def get_performance_logger() -> PerformanceLogger:
    """Get or create the global performance logger instance."""
    global _performance_logger
    if _performance_logger is None:
        _performance_logger = PerformanceLogger()
    return _performance_logger
