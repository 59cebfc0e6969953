# app/reporting/storage.py
"""SQLAlchemy query capability for each reportable entity type.

Every entity type goes through the same three operations (``find_many``,
``count`` and ``group_by``) so the executor never reaches for a model by
name. Columns are only ever reached through a resolved ``FieldDescriptor``.
"""

import logging
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence, Tuple, Type

from sqlalchemy import and_, false, func, not_, or_, select, true
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, aliased
from sqlalchemy.sql import ColumnElement, Select

from app.core.database import Base
from app.entities.models import (
    Campaign,
    Case,
    Category,
    DisclosureSubmission,
    Investigation,
    Person,
    Policy,
    RiskIntelligenceUnit,
    User,
)
from app.reporting.errors import ExecutionError
from app.reporting.field_catalog import FieldDescriptor
from app.reporting.filters import AllOf, AnyOf, Comparison, is_date_only
from app.reporting.planner import JoinSpec
from app.reporting.schemas import AggregationFunction, DataType, EntityType, FilterOperator

logger = logging.getLogger(__name__)

ENTITY_MODEL_MAP: Dict[EntityType, Type[Base]] = {
    EntityType.CASES: Case,
    EntityType.RIUS: RiskIntelligenceUnit,
    EntityType.PERSONS: Person,
    EntityType.CAMPAIGNS: Campaign,
    EntityType.POLICIES: Policy,
    EntityType.DISCLOSURES: DisclosureSubmission,
    EntityType.INVESTIGATIONS: Investigation,
}

# Targets of relation hops, keyed by the name used in the field catalog.
RELATION_MODEL_MAP: Dict[str, Type[Base]] = {
    "Case": Case,
    "Campaign": Campaign,
    "Category": Category,
    "Person": Person,
    "User": User,
}

ONE_DAY = timedelta(days=1)


def custom_field_column(model: Type[Base], field: FieldDescriptor) -> ColumnElement:
    """Typed accessor for a custom field stored in the ``custom_fields`` JSON column."""
    element = model.custom_fields[field.custom_key]
    if field.data_type in (DataType.NUMBER, DataType.CURRENCY):
        return element.as_float()
    if field.data_type == DataType.BOOLEAN:
        return element.as_boolean()
    return element.as_string()


def aggregate_expression(function: AggregationFunction, column: Optional[ColumnElement]) -> ColumnElement:
    if function == AggregationFunction.COUNT:
        return func.count() if column is None else func.count(column)
    if function == AggregationFunction.SUM:
        return func.sum(column)
    if function == AggregationFunction.AVG:
        return func.avg(column)
    if function == AggregationFunction.MIN:
        return func.min(column)
    return func.max(column)


class JoinContext:
    """Aliases for the joins of one plan, and column lookup against them.

    Every joined lookup is constrained to the organization of its parent
    row, so a relation can never surface another tenant's record.
    """

    def __init__(self, model: Type[Base], joins: Sequence[JoinSpec] = ()):
        self.model = model
        self.joins = tuple(joins)
        self._aliases: Dict[Tuple[str, ...], Any] = {}
        for join in self.joins:
            target = RELATION_MODEL_MAP[join.hop.target]
            self._aliases[join.path] = aliased(target, name=join.alias_name)

    def entity_for(self, path: Tuple[str, ...]) -> Any:
        if not path:
            return self.model
        return self._aliases[path]

    def column(self, field: FieldDescriptor) -> ColumnElement:
        if field.computed:
            raise ValueError(f"Computed field '{field.field_id}' has no storage column")
        if field.is_custom:
            return custom_field_column(self.model, field)
        return getattr(self.entity_for(field.path_key), field.column)

    def apply(self, stmt: Select) -> Select:
        for join in self.joins:
            parent = self.entity_for(join.parent_path)
            alias = self._aliases[join.path]
            stmt = stmt.outerjoin(
                alias,
                and_(
                    getattr(parent, join.hop.local_key) == alias.id,
                    alias.organization_id == parent.organization_id,
                ),
            )
        return stmt


class PredicateCompiler:
    """Compiles the evaluator's AND-of-ORs tree into a SQLAlchemy clause."""

    def __init__(self, context: JoinContext):
        self.context = context

    def compile(self, predicate: AllOf) -> ColumnElement:
        if not predicate:
            return true()
        return and_(*[self._compile_item(item) for item in predicate.items])

    def _compile_item(self, item) -> ColumnElement:
        if isinstance(item, AnyOf):
            return or_(*[self.compile_comparison(c) for c in item.conditions])
        return self.compile_comparison(item)

    def compile_comparison(self, comparison: Comparison) -> ColumnElement:
        field = comparison.field
        operator = comparison.operator
        value = comparison.value
        column = self.context.column(field)

        if operator == FilterOperator.IS_NULL:
            return column.is_(None)
        if operator == FilterOperator.IS_NOT_NULL:
            return column.is_not(None)
        if operator == FilterOperator.CONTAINS:
            return column.icontains(value, autoescape=True)
        if operator == FilterOperator.BETWEEN:
            return self._between(field, column, value)
        if operator in (FilterOperator.IN, FilterOperator.NOT_IN):
            return self._membership(field, column, operator, value)
        if self._whole_day(field, value):
            return self._day_comparison(field, column, operator, value)

        bound = self._bind(field, value)
        if operator == FilterOperator.EQ:
            return column == bound
        if operator == FilterOperator.NEQ:
            return column != bound
        if operator == FilterOperator.GT:
            return column > bound
        if operator == FilterOperator.GTE:
            return column >= bound
        if operator == FilterOperator.LT:
            return column < bound
        return column <= bound

    def _between(self, field: FieldDescriptor, column: ColumnElement, bounds: Tuple[Any, Any]) -> ColumnElement:
        low, high = bounds
        if self._whole_day(field, low):
            lower = column >= self._day_bounds(field, low)[0]
        else:
            lower = column >= self._bind(field, low)
        if self._whole_day(field, high):
            upper = column < self._day_bounds(field, high)[1]
        else:
            upper = column <= self._bind(field, high)
        return and_(lower, upper)

    def _membership(self, field, column, operator: FilterOperator, values: Tuple[Any, ...]) -> ColumnElement:
        if any(self._whole_day(field, v) for v in values):
            matches = or_(*[self._day_comparison(field, column, FilterOperator.EQ, v) for v in values])
            return matches if operator == FilterOperator.IN else not_(matches)
        bound = [self._bind(field, v) for v in values]
        if operator == FilterOperator.IN:
            return column.in_(bound)
        return column.not_in(bound)

    def _day_comparison(self, field, column, operator: FilterOperator, day: date) -> ColumnElement:
        start, end = self._day_bounds(field, day)
        if operator == FilterOperator.EQ:
            return and_(column >= start, column < end)
        if operator == FilterOperator.NEQ:
            return or_(column < start, column >= end)
        if operator == FilterOperator.GT:
            return column >= end
        if operator == FilterOperator.GTE:
            return column >= start
        if operator == FilterOperator.LT:
            return column < start
        if operator == FilterOperator.LTE:
            return column < end
        return false()

    @staticmethod
    def _whole_day(field: FieldDescriptor, value: Any) -> bool:
        return field.data_type == DataType.DATE and field.temporal and is_date_only(value)

    @staticmethod
    def _day_bounds(field: FieldDescriptor, day: date) -> Tuple[Any, Any]:
        """Half-open ``[start, end)`` covering one calendar day."""
        if field.is_custom:
            return day.isoformat(), (day + ONE_DAY).isoformat()
        start = datetime.combine(day, time.min)
        return start, start + ONE_DAY

    @staticmethod
    def _bind(field: FieldDescriptor, value: Any) -> Any:
        if field.is_custom:
            # JSON values are compared as their stored text or float form.
            if isinstance(value, (date, datetime)):
                return value.isoformat()
            if isinstance(value, Decimal):
                return float(value)
        return value


class EntityQueryCapability:
    """Uniform read operations over one entity model."""

    def __init__(self, session: Session, model: Type[Base], entity_type: EntityType):
        self.session = session
        self.model = model
        self.entity_type = entity_type

    def context(self, joins: Sequence[JoinSpec] = ()) -> JoinContext:
        return JoinContext(self.model, joins)

    def tenant_clause(self, organization_id: str) -> ColumnElement:
        return self.model.organization_id == organization_id

    def find_many(
        self,
        predicate: ColumnElement,
        context: JoinContext,
        projection: Sequence[Tuple[str, ColumnElement]],
        order_by: Sequence[ColumnElement] = (),
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[Dict[str, Any]]:
        """Rows as dicts keyed by projection label, ordered with the primary key as tie-breaker."""
        stmt = select(*[column.label(key) for key, column in projection]).select_from(self.model)
        stmt = context.apply(stmt).where(predicate).order_by(*order_by, self.model.id)
        if limit is not None:
            stmt = stmt.limit(limit)
        if offset:
            stmt = stmt.offset(offset)
        return [dict(row) for row in self._execute(stmt, "find_many").mappings().all()]

    def count(self, predicate: ColumnElement, context: JoinContext) -> int:
        stmt = select(func.count(self.model.id)).select_from(self.model)
        stmt = context.apply(stmt).where(predicate)
        return int(self._execute(stmt, "count").scalar_one())

    def group_by(
        self,
        predicate: ColumnElement,
        context: JoinContext,
        group_fields: Sequence[Tuple[str, ColumnElement]],
        aggregates: Sequence[Tuple[str, ColumnElement]],
        order_by: Sequence[ColumnElement] = (),
    ) -> List[Dict[str, Any]]:
        """Every distinct group-field combination with its aggregate values."""
        labelled = [column.label(key) for key, column in group_fields]
        stmt = select(*labelled, *[expr.label(key) for key, expr in aggregates]).select_from(self.model)
        stmt = context.apply(stmt).where(predicate)
        if group_fields:
            stmt = stmt.group_by(*[column for _, column in group_fields])
        if order_by:
            stmt = stmt.order_by(*order_by)
        return [dict(row) for row in self._execute(stmt, "group_by").mappings().all()]

    def _execute(self, stmt: Select, operation: str):
        try:
            return self.session.execute(stmt)
        except SQLAlchemyError as exc:
            logger.debug("Storage %s failed for %s: %s", operation, self.entity_type.value, type(exc).__name__)
            raise ExecutionError(
                f"Report query failed while reading {self.entity_type.value}",
                entity_type=self.entity_type.value,
            ) from exc


def build_query_capabilities(session: Session) -> Dict[EntityType, EntityQueryCapability]:
    """One query capability per entity type, all bound to ``session``."""
    return {
        entity_type: EntityQueryCapability(session, model, entity_type)
        for entity_type, model in ENTITY_MODEL_MAP.items()
    }
