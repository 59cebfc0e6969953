# app/reporting/planner.py
"""Query planning: join resolution, execution mode and projection."""

from dataclasses import dataclass, field as dc_field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from app.core.config import REPORT_DEFAULT_LIMIT, REPORT_MAX_LIMIT
from app.reporting.errors import ValidationError
from app.reporting.field_catalog import FieldDescriptor, RelationHop, get_static_fields
from app.reporting.filters import AllOf
from app.reporting.schemas import (
    AggregationFunction,
    Capability,
    DataType,
    EntityType,
    ExecutionMode,
    Pagination,
    SortDirection,
)

SUMMABLE_TYPES = (DataType.NUMBER, DataType.CURRENCY)
EXTREMUM_TYPES = (DataType.NUMBER, DataType.CURRENCY, DataType.DATE)


@dataclass(frozen=True)
class JoinSpec:
    """One join along a relation path, shared by every field using that path."""

    path: Tuple[str, ...]
    hop: RelationHop

    @property
    def parent_path(self) -> Tuple[str, ...]:
        return self.path[:-1]

    @property
    def alias_name(self) -> str:
        return "__".join(self.path)


@dataclass(frozen=True)
class PlannedAggregate:
    function: AggregationFunction
    field: Optional[FieldDescriptor] = None

    @property
    def key(self) -> str:
        if self.field is None:
            return self.function.value
        return f"{self.field.field_id}_{self.function.value}"


@dataclass(frozen=True)
class PlannedSort:
    field: FieldDescriptor
    direction: SortDirection = SortDirection.ASC


@dataclass(frozen=True)
class ExecutionPlan:
    entity_type: EntityType
    mode: ExecutionMode
    projection: Tuple[FieldDescriptor, ...] = ()
    joins: Tuple[JoinSpec, ...] = ()
    predicate: AllOf = dc_field(default_factory=AllOf)
    group_by: Tuple[FieldDescriptor, ...] = ()
    aggregations: Tuple[PlannedAggregate, ...] = ()
    sort: Optional[PlannedSort] = None
    limit: int = REPORT_DEFAULT_LIMIT
    offset: int = 0
    requested_limit: int = REPORT_DEFAULT_LIMIT
    computed: Tuple[FieldDescriptor, ...] = ()
    hidden_inputs: Tuple[str, ...] = ()  # root columns fetched only to derive computed fields

    @property
    def stored_projection(self) -> Tuple[FieldDescriptor, ...]:
        return tuple(f for f in self.projection if not f.computed)

    @property
    def limit_clamped(self) -> bool:
        return self.requested_limit > self.limit


def clamp_limit(requested: Optional[int]) -> int:
    """Clamp a requested page size to the server-side hard cap."""
    if requested is None:
        return min(REPORT_DEFAULT_LIMIT, REPORT_MAX_LIMIT)
    return max(1, min(requested, REPORT_MAX_LIMIT))


class QueryPlanner:
    """Turns resolved fields into an ``ExecutionPlan``.

    All inputs are already resolved descriptors; the planner checks
    capabilities and never looks anything up by name.
    """

    def plan(
        self,
        entity_type: EntityType,
        columns: Sequence[FieldDescriptor],
        predicate: AllOf,
        group_by: Sequence[FieldDescriptor] = (),
        aggregations: Sequence[Tuple[Optional[FieldDescriptor], Any]] = (),
        sort: Optional[Tuple[FieldDescriptor, Any]] = None,
        pagination: Optional[Pagination] = None,
    ) -> ExecutionPlan:
        pagination = pagination or Pagination()
        planned_group_by = self._plan_group_by(group_by)
        planned_aggregates = self._plan_aggregations(aggregations)

        if planned_group_by or planned_aggregates:
            mode = ExecutionMode.AGGREGATION
            if not planned_aggregates:
                planned_aggregates = (PlannedAggregate(AggregationFunction.COUNT),)
            projection: Tuple[FieldDescriptor, ...] = ()
        else:
            mode = ExecutionMode.LIST
            projection = self._plan_projection(entity_type, columns)

        planned_sort = self._plan_sort(sort, mode, planned_group_by)
        computed = tuple(f for f in projection if f.computed)
        hidden_inputs = self._hidden_inputs(projection, computed)

        referenced: List[FieldDescriptor] = [f for f in projection if not f.computed]
        referenced.extend(comparison.field for comparison in predicate.comparisons())
        referenced.extend(planned_group_by)
        referenced.extend(agg.field for agg in planned_aggregates if agg.field is not None)
        if planned_sort:
            referenced.append(planned_sort.field)

        return ExecutionPlan(
            entity_type=entity_type,
            mode=mode,
            projection=projection,
            joins=self.resolve_joins(referenced),
            predicate=predicate,
            group_by=planned_group_by,
            aggregations=planned_aggregates,
            sort=planned_sort,
            limit=clamp_limit(pagination.limit),
            offset=pagination.offset,
            requested_limit=pagination.limit,
            computed=computed,
            hidden_inputs=hidden_inputs,
        )

    def resolve_joins(self, fields: Iterable[FieldDescriptor]) -> Tuple[JoinSpec, ...]:
        """Distinct joins for ``fields``, one per relation path, parents first."""
        joins: Dict[Tuple[str, ...], JoinSpec] = {}
        for descriptor in fields:
            path: Tuple[str, ...] = ()
            for hop in descriptor.join_path:
                if not hop.to_one:
                    raise ValidationError(
                        f"Field '{descriptor.field_id}' is reached through a to-many relation '{hop.relation}'",
                        field=descriptor.field_id,
                    )
                path = path + (hop.relation,)
                if path not in joins:
                    joins[path] = JoinSpec(path=path, hop=hop)
        return tuple(sorted(joins.values(), key=lambda join: len(join.path)))

    def _plan_projection(self, entity_type: EntityType, columns: Sequence[FieldDescriptor]) -> Tuple[FieldDescriptor, ...]:
        if not columns:
            return tuple(f for f in get_static_fields(entity_type) if not f.join_path and not f.computed)
        unique: Dict[str, FieldDescriptor] = {}
        for descriptor in columns:
            unique.setdefault(descriptor.field_id, descriptor)
        return tuple(unique.values())

    def _hidden_inputs(self, projection: Tuple[FieldDescriptor, ...], computed: Tuple[FieldDescriptor, ...]) -> Tuple[str, ...]:
        selected = {f.column for f in projection if not f.computed and not f.join_path and f.column}
        inputs: List[str] = []
        for descriptor in computed:
            inputs.extend(name for name in descriptor.inputs if name not in selected and name not in inputs)
        return tuple(inputs)

    def _plan_group_by(self, group_by: Sequence[FieldDescriptor]) -> Tuple[FieldDescriptor, ...]:
        unique: Dict[str, FieldDescriptor] = {}
        for descriptor in group_by:
            if descriptor.computed:
                raise ValidationError(
                    f"Field '{descriptor.field_id}' is computed after fetch and cannot be grouped",
                    field=descriptor.field_id,
                )
            if not descriptor.has(Capability.GROUPABLE):
                raise ValidationError(f"Field '{descriptor.field_id}' is not groupable", field=descriptor.field_id)
            unique.setdefault(descriptor.field_id, descriptor)
        return tuple(unique.values())

    def _plan_aggregations(
        self, aggregations: Sequence[Tuple[Optional[FieldDescriptor], Any]]
    ) -> Tuple[PlannedAggregate, ...]:
        planned: Dict[str, PlannedAggregate] = {}
        for descriptor, function in aggregations:
            aggregate = PlannedAggregate(self._parse_function(function, descriptor), descriptor)
            self._check_aggregate(aggregate)
            planned.setdefault(aggregate.key, aggregate)
        return tuple(planned.values())

    def _parse_function(self, function: Any, descriptor: Optional[FieldDescriptor]) -> AggregationFunction:
        if isinstance(function, AggregationFunction):
            return function
        try:
            return AggregationFunction(str(function).lower())
        except ValueError:
            raise ValidationError(
                f"Unsupported aggregation function '{function}'",
                field=descriptor.field_id if descriptor else "aggregations",
                value=function,
            )

    def _check_aggregate(self, aggregate: PlannedAggregate) -> None:
        descriptor = aggregate.field
        function = aggregate.function
        if descriptor is None:
            if function != AggregationFunction.COUNT:
                raise ValidationError(
                    f"Aggregation '{function.value}' requires a field", field="aggregations", value=function.value
                )
            return

        if descriptor.computed:
            raise ValidationError(
                f"Field '{descriptor.field_id}' is computed after fetch and cannot be aggregated",
                field=descriptor.field_id,
            )
        if function == AggregationFunction.COUNT:
            return

        allowed_types = SUMMABLE_TYPES if function in (AggregationFunction.SUM, AggregationFunction.AVG) else EXTREMUM_TYPES
        if not descriptor.has(Capability.AGGREGATABLE) or descriptor.data_type not in allowed_types:
            raise ValidationError(
                f"Aggregation '{function.value}' is not supported for field '{descriptor.field_id}'",
                field=descriptor.field_id,
                value=function.value,
            )

    def _plan_sort(
        self,
        sort: Optional[Tuple[FieldDescriptor, Any]],
        mode: ExecutionMode,
        group_by: Tuple[FieldDescriptor, ...],
    ) -> Optional[PlannedSort]:
        if sort is None:
            return None
        descriptor, direction = sort

        try:
            parsed = direction if isinstance(direction, SortDirection) else SortDirection(str(direction).lower())
        except ValueError:
            raise ValidationError(
                f"Unsupported sort direction '{direction}' for field '{descriptor.field_id}'",
                field=descriptor.field_id,
                value=direction,
            )

        if descriptor.computed:
            raise ValidationError(
                f"Field '{descriptor.field_id}' is computed after fetch and cannot be sorted",
                field=descriptor.field_id,
            )
        if not descriptor.has(Capability.SORTABLE):
            raise ValidationError(f"Field '{descriptor.field_id}' is not sortable", field=descriptor.field_id)
        if mode == ExecutionMode.AGGREGATION and descriptor.field_id not in {f.field_id for f in group_by}:
            raise ValidationError(
                f"Sort field '{descriptor.field_id}' must be one of the group-by fields",
                field=descriptor.field_id,
            )
        return PlannedSort(descriptor, parsed)
