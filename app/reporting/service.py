# app/reporting/service.py
"""Report engine service: the public contract of the report query engine."""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from app.reporting.dao import CustomPropertyDefinitionDAO
from app.reporting.diagnostics import (
    ExecutionSummary,
    ExecutionTimer,
    log_execution,
    log_execution_failure,
)
from app.reporting.errors import AuthorizationError, ExecutionError, ValidationError
from app.reporting.executor import ReportExecutor
from app.reporting.field_catalog import FieldDescriptor
from app.reporting.field_registry import FieldRegistry, resolve_entity_type
from app.reporting.filters import FilterEvaluator
from app.reporting.planner import ExecutionPlan, QueryPlanner
from app.reporting.schemas import (
    ENTITY_LABELS,
    EntityType,
    ListReportResult,
    ReportQuerySpec,
    ReportResult,
)
from app.reporting.storage import build_query_capabilities

logger = logging.getLogger(__name__)


class ReportEngineService:
    """Validates, plans and executes report query specs for one organization at a time.

    Pipeline: check organization, resolve entity type, resolve every referenced
    field, build the filter predicate, plan, execute. Anything that fails before
    execution raises without touching entity storage.
    """

    def __init__(
        self,
        registry: FieldRegistry,
        executor: ReportExecutor,
        evaluator: Optional[FilterEvaluator] = None,
        planner: Optional[QueryPlanner] = None,
    ):
        self.registry = registry
        self.executor = executor
        self.evaluator = evaluator or FilterEvaluator()
        self.planner = planner or QueryPlanner()

    @classmethod
    def from_session(cls, db: Session) -> "ReportEngineService":
        return cls(
            registry=FieldRegistry(CustomPropertyDefinitionDAO(db)),
            executor=ReportExecutor(build_query_capabilities(db)),
        )

    # ===== FIELD CATALOG =====

    def get_supported_entity_types(self) -> List[Dict[str, Any]]:
        return [{"key": entity, "label": ENTITY_LABELS[entity]} for entity in self.registry.get_supported_entity_types()]

    def get_field_catalog(self, entity_type: Any, organization_id: Optional[str]) -> List[FieldDescriptor]:
        """Static and custom fields available to ``organization_id`` for ``entity_type``."""
        organization_id = self._require_organization(organization_id)
        return self.registry.get_catalog(entity_type, organization_id)

    def get_field_groups(self, entity_type: Any, organization_id: Optional[str]) -> Dict[str, List[FieldDescriptor]]:
        organization_id = self._require_organization(organization_id)
        return self.registry.get_field_groups(entity_type, organization_id)

    # ===== EXECUTION =====

    def build_plan(self, spec: ReportQuerySpec, organization_id: Optional[str]) -> ExecutionPlan:
        """Validate ``spec`` and produce its execution plan without running it."""
        organization_id = self._require_organization(organization_id)
        entity_type = resolve_entity_type(spec.entity_type)
        fields = self.registry.resolve_fields(entity_type, organization_id, spec.referenced_field_ids())

        predicate = self.evaluator.evaluate(spec.filter, fields)
        aggregations = [(fields[agg.field_id] if agg.field_id else None, agg.function) for agg in spec.aggregations]
        sort = (fields[spec.sort.field_id], spec.sort.direction) if spec.sort else None

        return self.planner.plan(
            entity_type,
            [fields[field_id] for field_id in spec.columns],
            predicate,
            group_by=[fields[field_id] for field_id in spec.group_by],
            aggregations=aggregations,
            sort=sort,
            pagination=spec.pagination,
        )

    def execute(self, spec: ReportQuerySpec, organization_id: Optional[str]) -> ReportResult:
        """Execute ``spec`` scoped to ``organization_id``."""
        summary = ExecutionSummary.from_spec(spec, organization_id)
        try:
            plan = self.build_plan(spec, organization_id)
        except ValidationError as exc:
            logger.info("Report rejected (field=%s): %s", exc.field, summary.describe())
            raise

        with ExecutionTimer() as timer:
            try:
                result = self.executor.execute(plan, organization_id)
            except ExecutionError as exc:
                log_execution_failure(summary, timer.elapsed_ms, exc)
                raise

        if isinstance(result, ListReportResult):
            log_execution(summary, timer.elapsed_ms, len(result.rows), result.truncated)
        else:
            log_execution(summary, timer.elapsed_ms, len(result.groups))
        return result

    @staticmethod
    def _require_organization(organization_id: Optional[str]) -> str:
        if organization_id is None or not str(organization_id).strip():
            raise AuthorizationError("An authenticated organization is required")
        return str(organization_id)
