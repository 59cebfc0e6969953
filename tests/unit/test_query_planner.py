"""Unit tests for the query planner."""

import pytest
from dataclasses import replace

from app.reporting.errors import ValidationError
from app.reporting.field_catalog import RelationHop, get_static_fields
from app.reporting.filters import AllOf, Comparison
from app.reporting.planner import QueryPlanner, clamp_limit
from app.reporting.schemas import (
    AggregationFunction,
    EntityType,
    ExecutionMode,
    FilterOperator,
    Pagination,
    SortDirection,
)


def fields_of(entity_type: EntityType):
    return {f.field_id: f for f in get_static_fields(entity_type)}


CASES = fields_of(EntityType.CASES)
INVESTIGATIONS = fields_of(EntityType.INVESTIGATIONS)
DISCLOSURES = fields_of(EntityType.DISCLOSURES)


@pytest.fixture
def planner():
    return QueryPlanner()


class TestModeSelection:
    def test_list_mode_without_grouping(self, planner):
        plan = planner.plan(EntityType.CASES, [CASES["id"], CASES["status"]], AllOf())
        assert plan.mode == ExecutionMode.LIST
        assert [f.field_id for f in plan.projection] == ["id", "status"]

    def test_group_by_selects_aggregation_with_default_count(self, planner):
        plan = planner.plan(EntityType.CASES, [], AllOf(), group_by=[CASES["status"]])
        assert plan.mode == ExecutionMode.AGGREGATION
        assert [a.key for a in plan.aggregations] == ["count"]

    def test_aggregations_without_group_by(self, planner):
        plan = planner.plan(EntityType.DISCLOSURES, [], AllOf(), aggregations=[(DISCLOSURES["disclosureValue"], "sum")])
        assert plan.mode == ExecutionMode.AGGREGATION
        assert plan.group_by == ()
        assert [a.key for a in plan.aggregations] == ["disclosureValue_sum"]

    def test_empty_columns_project_direct_fields(self, planner):
        plan = planner.plan(EntityType.CASES, [], AllOf())
        ids = {f.field_id for f in plan.projection}
        assert "referenceNumber" in ids
        assert "primaryCategoryName" not in ids
        assert "daysOpen" not in ids
        assert plan.joins == ()


class TestJoinResolution:
    def test_shared_path_is_joined_once(self, planner):
        plan = planner.plan(
            EntityType.CASES,
            [CASES["primaryCategoryName"], CASES["primaryCategoryCode"], CASES["secondaryCategoryName"]],
            AllOf(),
        )
        assert [join.path for join in plan.joins] == [("primaryCategory",), ("secondaryCategory",)]

    def test_multi_hop_joins_parent_first(self, planner):
        plan = planner.plan(
            EntityType.INVESTIGATIONS,
            [INVESTIGATIONS["caseCategoryName"], INVESTIGATIONS["caseReferenceNumber"]],
            AllOf(),
        )
        assert [join.path for join in plan.joins] == [("case",), ("case", "primaryCategory")]
        assert plan.joins[1].parent_path == ("case",)

    def test_filter_sort_and_group_fields_contribute_joins(self, planner):
        predicate = AllOf((Comparison(CASES["createdByName"], FilterOperator.EQ, "Alice"),))
        plan = planner.plan(
            EntityType.CASES,
            [],
            predicate,
            group_by=[CASES["primaryCategoryName"]],
            sort=(CASES["primaryCategoryName"], "desc"),
        )
        assert {join.path for join in plan.joins} == {("createdBy",), ("primaryCategory",)}

    def test_to_many_hop_is_rejected(self, planner):
        to_many = replace(
            CASES["primaryCategoryName"],
            field_id="investigationStatus",
            join_path=(RelationHop("investigations", "Investigation", "case_id", to_one=False),),
        )
        with pytest.raises(ValidationError) as exc_info:
            planner.plan(EntityType.CASES, [to_many], AllOf())
        assert exc_info.value.field == "investigationStatus"


class TestSortRules:
    def test_sort_direction_parsed(self, planner):
        plan = planner.plan(EntityType.CASES, [CASES["id"]], AllOf(), sort=(CASES["createdAt"], "DESC"))
        assert plan.sort.direction == SortDirection.DESC

    def test_sort_on_computed_field_rejected(self, planner):
        with pytest.raises(ValidationError) as exc_info:
            planner.plan(EntityType.CASES, [CASES["daysOpen"]], AllOf(), sort=(CASES["daysOpen"], "asc"))
        assert exc_info.value.field == "daysOpen"

    def test_sort_on_non_sortable_field_rejected(self, planner):
        with pytest.raises(ValidationError) as exc_info:
            planner.plan(EntityType.CASES, [], AllOf(), sort=(CASES["tags"], "asc"))
        assert exc_info.value.field == "tags"

    def test_unknown_direction_rejected(self, planner):
        with pytest.raises(ValidationError):
            planner.plan(EntityType.CASES, [], AllOf(), sort=(CASES["createdAt"], "sideways"))

    def test_aggregation_sort_must_be_group_field(self, planner):
        with pytest.raises(ValidationError) as exc_info:
            planner.plan(EntityType.CASES, [], AllOf(), group_by=[CASES["status"]], sort=(CASES["createdAt"], "asc"))
        assert exc_info.value.field == "createdAt"


class TestAggregationRules:
    def test_group_by_requires_groupable(self, planner):
        with pytest.raises(ValidationError) as exc_info:
            planner.plan(EntityType.CASES, [], AllOf(), group_by=[CASES["referenceNumber"]])
        assert exc_info.value.field == "referenceNumber"

    def test_group_by_computed_rejected(self, planner):
        with pytest.raises(ValidationError):
            planner.plan(EntityType.CASES, [], AllOf(), group_by=[CASES["daysOpen"]])

    def test_sum_requires_numeric_aggregatable(self, planner):
        with pytest.raises(ValidationError) as exc_info:
            planner.plan(EntityType.CASES, [], AllOf(), aggregations=[(CASES["status"], "sum")])
        assert exc_info.value.field == "status"

    def test_sum_without_field_rejected(self, planner):
        with pytest.raises(ValidationError):
            planner.plan(EntityType.CASES, [], AllOf(), aggregations=[(None, "sum")])

    def test_count_accepts_any_stored_field(self, planner):
        plan = planner.plan(EntityType.CASES, [], AllOf(), aggregations=[(CASES["status"], "count"), (None, "COUNT")])
        assert [a.key for a in plan.aggregations] == ["status_count", "count"]
        assert plan.aggregations[1].function == AggregationFunction.COUNT

    def test_aggregate_on_computed_rejected(self, planner):
        with pytest.raises(ValidationError):
            planner.plan(EntityType.CASES, [], AllOf(), aggregations=[(CASES["daysOpen"], "avg")])

    def test_unknown_function_rejected(self, planner):
        with pytest.raises(ValidationError) as exc_info:
            planner.plan(EntityType.CASES, [], AllOf(), aggregations=[(CASES["aiConfidenceScore"], "median")])
        assert exc_info.value.field == "aiConfidenceScore"
        assert "median" in exc_info.value.message

    def test_duplicate_aggregates_collapsed(self, planner):
        plan = planner.plan(
            EntityType.DISCLOSURES,
            [],
            AllOf(),
            aggregations=[(DISCLOSURES["disclosureValue"], "max"), (DISCLOSURES["disclosureValue"], "max")],
        )
        assert len(plan.aggregations) == 1


class TestPagination:
    @pytest.mark.parametrize("requested, expected", [(None, 1000), (1, 1), (10000, 10000), (50000, 10000)])
    def test_clamp_limit(self, requested, expected):
        assert clamp_limit(requested) == expected

    def test_plan_keeps_requested_limit(self, planner):
        plan = planner.plan(EntityType.CASES, [], AllOf(), pagination=Pagination(limit=25000, offset=5))
        assert plan.limit == 10000
        assert plan.requested_limit == 25000
        assert plan.limit_clamped
        assert plan.offset == 5


class TestComputedFields:
    def test_computed_inputs_are_hidden_when_not_selected(self, planner):
        plan = planner.plan(EntityType.CASES, [CASES["id"], CASES["daysOpen"]], AllOf())
        assert plan.hidden_inputs == ("created_at",)
        assert [f.field_id for f in plan.computed] == ["daysOpen"]
        assert [f.field_id for f in plan.stored_projection] == ["id"]

    def test_selected_input_column_is_reused(self, planner):
        plan = planner.plan(EntityType.CASES, [CASES["createdAt"], CASES["daysOpen"]], AllOf())
        assert plan.hidden_inputs == ()
