"""Unit tests for execution diagnostics."""

import logging
import pytest

from app.reporting.diagnostics import ExecutionSummary, ExecutionTimer, log_execution, log_execution_failure
from app.reporting.errors import ExecutionError
from app.reporting.schemas import ExecutionMode, ReportQuerySpec


@pytest.fixture
def summary():
    spec = ReportQuerySpec.model_validate(
        {
            "entityType": "cases",
            "columns": ["id", "status"],
            "filter": [
                {"field": "severity", "operator": "eq", "value": "HIGH"},
                {"anyOf": [
                    {"field": "referenceNumber", "operator": "contains", "value": "confidential-ref"},
                    {"field": "status", "operator": "eq", "value": "OPEN"},
                ]},
            ],
        }
    )
    return ExecutionSummary.from_spec(spec, "org-a")


class TestExecutionSummary:
    def test_structural_counts(self, summary):
        assert summary.entity_type == "cases"
        assert summary.mode == ExecutionMode.LIST
        assert summary.column_count == 2
        assert summary.filter_count == 3
        assert summary.group_by_count == 0

    def test_aggregation_mode(self):
        spec = ReportQuerySpec(entity_type="cases", group_by=["status"])
        assert ExecutionSummary.from_spec(spec, "org-a").mode == ExecutionMode.AGGREGATION


class TestLogging:
    def test_slow_execution_logs_warning_without_values(self, summary, caplog):
        with caplog.at_level(logging.DEBUG, logger="app.reporting.diagnostics"):
            log_execution(summary, duration_ms=6200.0, result_size=3, threshold_ms=5000)

        warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
        assert len(warnings) == 1
        message = warnings[0].getMessage()
        assert "entity_type=cases" in message
        assert "organization_id=org-a" in message
        assert "filters=3" in message
        assert "confidential-ref" not in caplog.text
        assert "HIGH" not in caplog.text

    def test_fast_execution_logs_debug_only(self, summary, caplog):
        with caplog.at_level(logging.DEBUG, logger="app.reporting.diagnostics"):
            log_execution(summary, duration_ms=12.0, result_size=3, threshold_ms=5000)

        assert [r.levelno for r in caplog.records] == [logging.DEBUG]

    def test_truncation_is_annotated(self, summary, caplog):
        with caplog.at_level(logging.INFO, logger="app.reporting.diagnostics"):
            log_execution(summary, duration_ms=12.0, result_size=10000, truncated=True, threshold_ms=5000)

        assert "truncated" in caplog.text

    def test_failure_logs_error(self, summary, caplog):
        with caplog.at_level(logging.ERROR, logger="app.reporting.diagnostics"):
            log_execution_failure(summary, 10.0, ExecutionError("timeout"))

        assert caplog.records[0].levelno == logging.ERROR
        assert "ExecutionError" in caplog.text


class TestExecutionTimer:
    def test_measures_elapsed_milliseconds(self):
        with ExecutionTimer() as timer:
            sum(range(1000))
        assert timer.elapsed_ms >= 0.0

    def test_unstarted_timer_is_zero(self):
        assert ExecutionTimer().elapsed_ms == 0.0
