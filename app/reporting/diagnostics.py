# app/reporting/diagnostics.py
"""Execution timing and operational logging for report runs.

Log records carry only structural information about a report (entity type,
organization, counts and mode). Filter values are never logged.
"""

import logging
import time
from dataclasses import dataclass
from typing import Optional

from app.core.config import REPORT_SLOW_QUERY_THRESHOLD_MS
from app.reporting.schemas import ExecutionMode, ReportQuerySpec

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExecutionSummary:
    entity_type: str
    organization_id: Optional[str]
    mode: ExecutionMode
    column_count: int
    filter_count: int
    group_by_count: int
    aggregation_count: int
    sorted: bool

    @classmethod
    def from_spec(cls, spec: ReportQuerySpec, organization_id: Optional[str]) -> "ExecutionSummary":
        aggregated = bool(spec.group_by or spec.aggregations)
        return cls(
            entity_type=spec.entity_type,
            organization_id=organization_id,
            mode=ExecutionMode.AGGREGATION if aggregated else ExecutionMode.LIST,
            column_count=len(spec.columns),
            filter_count=spec.filter_condition_count(),
            group_by_count=len(spec.group_by),
            aggregation_count=len(spec.aggregations),
            sorted=spec.sort is not None,
        )

    def describe(self) -> str:
        return (
            f"entity_type={self.entity_type} organization_id={self.organization_id} mode={self.mode.value} "
            f"columns={self.column_count} filters={self.filter_count} "
            f"group_by={self.group_by_count} aggregations={self.aggregation_count}"
        )


class ExecutionTimer:
    """Context manager measuring wall-clock time in milliseconds."""

    def __init__(self):
        self._start: Optional[float] = None
        self._end: Optional[float] = None

    def __enter__(self) -> "ExecutionTimer":
        self._start = time.perf_counter()
        self._end = None
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self._end = time.perf_counter()
        return False

    @property
    def elapsed_ms(self) -> float:
        if self._start is None:
            return 0.0
        end = self._end if self._end is not None else time.perf_counter()
        return round((end - self._start) * 1000, 3)


def log_execution(
    summary: ExecutionSummary,
    duration_ms: float,
    result_size: Optional[int] = None,
    truncated: bool = False,
    threshold_ms: float = REPORT_SLOW_QUERY_THRESHOLD_MS,
) -> None:
    """Debug record per execution, warning when it ran past the slow threshold."""
    if duration_ms > threshold_ms:
        logger.warning(
            "Slow report execution (%.1f ms > %s ms): %s", duration_ms, threshold_ms, summary.describe()
        )
    else:
        logger.debug("Report executed in %.1f ms: %s results=%s", duration_ms, summary.describe(), result_size)

    if truncated:
        logger.info("Report result truncated to %s rows: %s", result_size, summary.describe())


def log_execution_failure(summary: ExecutionSummary, duration_ms: float, error: Exception) -> None:
    logger.error(
        "Report execution failed after %.1f ms (%s): %s", duration_ms, type(error).__name__, summary.describe()
    )
