# app/reporting/executor.py
"""Runs execution plans against the storage capabilities.

The tenant predicate is added here for every storage call and is built only
from the ``organization_id`` argument.
"""

import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Callable, Dict, List, Mapping, Optional

from sqlalchemy import and_

from app.reporting.diagnostics import ExecutionTimer
from app.reporting.errors import AuthorizationError
from app.reporting.field_catalog import FieldDescriptor
from app.reporting.planner import ExecutionPlan, PlannedAggregate
from app.reporting.schemas import (
    AggregationFunction,
    AggregationGroup,
    AggregationReportResult,
    DataType,
    ExecutionMode,
    ListReportResult,
    ReportResult,
    ResultColumn,
    SortDirection,
)
from app.reporting.storage import EntityQueryCapability, JoinContext, PredicateCompiler, aggregate_expression

logger = logging.getLogger(__name__)

HIDDEN_INPUT_PREFIX = "_input_"
ROW_COUNT_KEY = "_row_count"


def days_open(created_at: Optional[datetime], now: datetime) -> Optional[int]:
    """Whole days elapsed since ``created_at``."""
    if created_at is None:
        return None
    if isinstance(created_at, str):
        created_at = datetime.fromisoformat(created_at)
    if not isinstance(created_at, datetime):
        created_at = datetime.combine(created_at, datetime.min.time())
    return (now - created_at.replace(tzinfo=None)).days


# Computed field id -> function of its input column values and the current time.
COMPUTED_FIELD_FUNCTIONS: Dict[str, Callable[..., Any]] = {
    "daysOpen": days_open,
}


def serialize_value(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    return value


def _aggregate_column(aggregate: PlannedAggregate) -> ResultColumn:
    if aggregate.field is None:
        return ResultColumn(key=aggregate.key, label="Count", type=DataType.NUMBER.value)
    if aggregate.function == AggregationFunction.COUNT:
        data_type = DataType.NUMBER
    else:
        data_type = aggregate.field.data_type
    label = f"{aggregate.field.label} ({aggregate.function.value})"
    return ResultColumn(key=aggregate.key, label=label, type=data_type.value)


def _field_column(field: FieldDescriptor) -> ResultColumn:
    return ResultColumn(key=field.field_id, label=field.label, type=field.data_type.value)


class ReportExecutor:
    """Executes plans in list or aggregation mode."""

    def __init__(
        self,
        capabilities: Mapping[Any, EntityQueryCapability],
        now: Callable[[], datetime] = datetime.now,
    ):
        self.capabilities = capabilities
        self.now = now

    def execute(self, plan: ExecutionPlan, organization_id: str) -> ReportResult:
        if not organization_id or not str(organization_id).strip():
            raise AuthorizationError("An authenticated organization is required to execute reports")

        capability = self.capabilities[plan.entity_type]
        context = capability.context(plan.joins)
        predicate = and_(
            capability.tenant_clause(organization_id),
            PredicateCompiler(context).compile(plan.predicate),
        )

        with ExecutionTimer() as timer:
            if plan.mode == ExecutionMode.AGGREGATION:
                result = self._execute_aggregation(plan, capability, context, predicate)
            else:
                result = self._execute_list(plan, capability, context, predicate)
        result.execution_duration_ms = timer.elapsed_ms
        return result

    # ===== LIST MODE =====

    def _execute_list(self, plan: ExecutionPlan, capability, context: JoinContext, predicate) -> ListReportResult:
        projection = [(field.field_id, context.column(field)) for field in plan.stored_projection]
        projection.extend(
            (f"{HIDDEN_INPUT_PREFIX}{name}", getattr(capability.model, name)) for name in plan.hidden_inputs
        )
        order_by = []
        if plan.sort:
            column = context.column(plan.sort.field)
            order_by.append(column.desc() if plan.sort.direction == SortDirection.DESC else column.asc())

        # One extra row tells whether more matches exist past this page.
        fetched = capability.find_many(
            predicate, context, projection, order_by, limit=plan.limit + 1, offset=plan.offset
        )
        has_more = len(fetched) > plan.limit
        rows = fetched[: plan.limit]

        needs_count = has_more or plan.limit_clamped or (plan.offset and not rows)
        if needs_count:
            total_count = capability.count(predicate, context)
        else:
            total_count = plan.offset + len(rows)

        return ListReportResult(
            columns=[_field_column(field) for field in plan.projection],
            rows=[self._build_row(plan, row) for row in rows],
            total_count=total_count,
            truncated=total_count > plan.offset + len(rows),
            execution_duration_ms=0.0,
        )

    def _build_row(self, plan: ExecutionPlan, raw: Dict[str, Any]) -> Dict[str, Any]:
        row: Dict[str, Any] = {}
        now = self.now() if plan.computed else None
        for field in plan.projection:
            if field.computed:
                inputs = [self._input_value(plan, raw, name) for name in field.inputs]
                row[field.field_id] = COMPUTED_FIELD_FUNCTIONS[field.field_id](*inputs, now)
            else:
                row[field.field_id] = serialize_value(raw.get(field.field_id))
        return row

    @staticmethod
    def _input_value(plan: ExecutionPlan, raw: Dict[str, Any], column_name: str) -> Any:
        hidden_key = f"{HIDDEN_INPUT_PREFIX}{column_name}"
        if hidden_key in raw:
            return raw[hidden_key]
        for field in plan.stored_projection:
            if not field.join_path and not field.is_custom and field.column == column_name:
                return raw.get(field.field_id)
        return None

    # ===== AGGREGATION MODE =====

    def _execute_aggregation(
        self, plan: ExecutionPlan, capability, context: JoinContext, predicate
    ) -> AggregationReportResult:
        group_fields = [(field.field_id, context.column(field)) for field in plan.group_by]
        aggregates = [
            (agg.key, aggregate_expression(agg.function, context.column(agg.field) if agg.field else None))
            for agg in plan.aggregations
        ]
        aggregates.append((ROW_COUNT_KEY, aggregate_expression(AggregationFunction.COUNT, None)))

        order_by = []
        if plan.sort:
            column = context.column(plan.sort.field)
            order_by.append(column.desc() if plan.sort.direction == SortDirection.DESC else column.asc())
        order_by.extend(
            column.asc() for key, column in group_fields if not plan.sort or key != plan.sort.field.field_id
        )

        # Groups are never paged; the row counts of all groups sum to the match count.
        raw_groups = capability.group_by(predicate, context, group_fields, aggregates, order_by)

        groups: List[AggregationGroup] = []
        total_count = 0
        for raw in raw_groups:
            total_count += int(raw.get(ROW_COUNT_KEY) or 0)
            groups.append(
                AggregationGroup(
                    key={field.field_id: serialize_value(raw.get(field.field_id)) for field in plan.group_by},
                    aggregates={agg.key: self._aggregate_value(agg, raw.get(agg.key)) for agg in plan.aggregations},
                )
            )

        return AggregationReportResult(
            group_by=[field.field_id for field in plan.group_by],
            columns=[_field_column(field) for field in plan.group_by] + [_aggregate_column(a) for a in plan.aggregations],
            groups=groups,
            total_count=total_count,
            execution_duration_ms=0.0,
        )

    @staticmethod
    def _aggregate_value(aggregate: PlannedAggregate, value: Any) -> Any:
        if value is None:
            return 0 if aggregate.function == AggregationFunction.COUNT else None
        if aggregate.function == AggregationFunction.COUNT:
            return int(value)
        if aggregate.function == AggregationFunction.AVG:
            return float(value)
        return serialize_value(value)
