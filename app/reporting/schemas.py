"""Pydantic schemas and enums for the report query engine."""

from typing import Any, Dict, List, Literal, Optional, Union
from enum import Enum
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from app.core.config import REPORT_DEFAULT_LIMIT


class EntityType(str, Enum):
    """Reportable entity types."""

    CASES = "cases"
    RIUS = "rius"
    PERSONS = "persons"
    CAMPAIGNS = "campaigns"
    POLICIES = "policies"
    DISCLOSURES = "disclosures"
    INVESTIGATIONS = "investigations"


ENTITY_LABELS: Dict[EntityType, str] = {
    EntityType.CASES: "Cases",
    EntityType.RIUS: "Risk Intelligence Units",
    EntityType.PERSONS: "Persons",
    EntityType.CAMPAIGNS: "Campaigns",
    EntityType.POLICIES: "Policies",
    EntityType.DISCLOSURES: "Disclosures",
    EntityType.INVESTIGATIONS: "Investigations",
}


class DataType(str, Enum):
    """Engine-level data types of reportable fields."""

    STRING = "string"
    NUMBER = "number"
    DATE = "date"
    BOOLEAN = "boolean"
    ENUM = "enum"
    CURRENCY = "currency"


class Capability(str, Enum):
    FILTERABLE = "filterable"
    SORTABLE = "sortable"
    GROUPABLE = "groupable"
    AGGREGATABLE = "aggregatable"


class SourceKind(str, Enum):
    STATIC = "static"
    CUSTOM = "custom"


class FilterOperator(str, Enum):
    """Filter operators accepted in a report filter condition."""

    EQ = "eq"
    NEQ = "neq"
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"
    CONTAINS = "contains"
    IN = "in"
    NOT_IN = "notIn"
    IS_NULL = "isNull"
    IS_NOT_NULL = "isNotNull"
    BETWEEN = "between"


class AggregationFunction(str, Enum):
    """Aggregation functions available in aggregation mode."""

    COUNT = "count"
    SUM = "sum"
    AVG = "avg"
    MIN = "min"
    MAX = "max"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


class ExecutionMode(str, Enum):
    LIST = "list"
    AGGREGATION = "aggregation"


# ===== QUERY SPEC =====


class _SpecModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")


class FilterCondition(_SpecModel):
    """A single ``field operator value`` condition.

    ``operator`` is kept as a plain string so an unsupported operator is
    reported against the field it was applied to.
    """

    field_id: str = Field(validation_alias=AliasChoices("fieldId", "field", "field_id"))
    operator: str
    value: Any = None
    value_to: Any = None


class FilterGroup(_SpecModel):
    """Conditions combined with OR."""

    any_of: List[FilterCondition] = Field(validation_alias=AliasChoices("anyOf", "any_of"))

    @field_validator("any_of")
    @classmethod
    def validate_any_of(cls, v: List[FilterCondition]) -> List[FilterCondition]:
        if not v:
            raise ValueError("anyOf must contain at least one condition")
        return v


FilterItem = Union[FilterCondition, FilterGroup]


class AggregationSpec(_SpecModel):
    """Aggregate ``function`` over ``field_id``; field may be omitted for a row count."""

    field_id: Optional[str] = Field(default=None, validation_alias=AliasChoices("fieldId", "field", "field_id"))
    function: str


class SortSpec(_SpecModel):
    field_id: str = Field(validation_alias=AliasChoices("fieldId", "field", "field_id"))
    direction: str = "asc"


class Pagination(_SpecModel):
    """Requested page. ``limit`` above the hard cap is clamped, not rejected."""

    limit: int = Field(default=REPORT_DEFAULT_LIMIT, ge=1)
    offset: int = Field(default=0, ge=0)


class ReportQuerySpec(_SpecModel):
    """Declarative report definition for one execution.

    ``filter`` items are ANDed together; a ``FilterGroup`` item ORs its
    conditions. A flat list of conditions is therefore a plain conjunction.
    """

    entity_type: str
    columns: List[str] = []
    filter: List[FilterItem] = Field(default_factory=list, validation_alias=AliasChoices("filter", "filters"))
    group_by: List[str] = []
    aggregations: List[AggregationSpec] = []
    sort: Optional[SortSpec] = None
    pagination: Pagination = Field(default_factory=Pagination)

    def referenced_field_ids(self) -> List[str]:
        """Every field id referenced anywhere in this query, in first-seen order."""
        ids: List[str] = list(self.columns)
        for item in self.filter:
            if isinstance(item, FilterGroup):
                ids.extend(cond.field_id for cond in item.any_of)
            else:
                ids.append(item.field_id)
        ids.extend(self.group_by)
        ids.extend(agg.field_id for agg in self.aggregations if agg.field_id)
        if self.sort:
            ids.append(self.sort.field_id)
        return list(dict.fromkeys(ids))

    def filter_condition_count(self) -> int:
        return sum(len(item.any_of) if isinstance(item, FilterGroup) else 1 for item in self.filter)


# ===== RESULTS =====


class _ResultModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ResultColumn(_ResultModel):
    key: str
    label: str
    type: str


class ListReportResult(_ResultModel):
    mode: Literal["list"] = "list"
    columns: List[ResultColumn]
    rows: List[Dict[str, Any]]
    total_count: int
    truncated: bool
    execution_duration_ms: float


class AggregationGroup(_ResultModel):
    key: Dict[str, Any]
    aggregates: Dict[str, Any]


class AggregationReportResult(_ResultModel):
    mode: Literal["aggregation"] = "aggregation"
    group_by: List[str]
    columns: List[ResultColumn]
    groups: List[AggregationGroup]
    total_count: int
    execution_duration_ms: float


ReportResult = Union[ListReportResult, AggregationReportResult]


# ===== FIELD CATALOG RESPONSES =====


class FieldDescriptorRead(_ResultModel):
    """Field picker view of a resolved field descriptor."""

    field_id: str
    label: str
    data_type: DataType
    group: str
    capabilities: List[Capability]
    join_path: List[str]
    source_kind: SourceKind
    enum_values: Optional[List[str]] = None
    computed: bool = False

    @classmethod
    def from_descriptor(cls, descriptor) -> "FieldDescriptorRead":
        return cls(
            field_id=descriptor.field_id,
            label=descriptor.label,
            data_type=descriptor.data_type,
            group=descriptor.group,
            capabilities=[cap for cap in Capability if cap in descriptor.capabilities],
            join_path=[hop.relation for hop in descriptor.join_path],
            source_kind=descriptor.source_kind,
            enum_values=list(descriptor.enum_values) if descriptor.enum_values else None,
            computed=descriptor.computed,
        )


class FieldGroupRead(_ResultModel):
    group_name: str
    fields: List[FieldDescriptorRead]


class EntityTypeRead(_ResultModel):
    key: EntityType
    label: str
