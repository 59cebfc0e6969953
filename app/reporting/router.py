"""API router for the report query engine."""

from typing import List, Union

from fastapi import APIRouter, Depends

from app.core.dependencies import SessionContextDep, get_report_engine_service
from app.reporting.schemas import (
    AggregationReportResult,
    EntityTypeRead,
    FieldDescriptorRead,
    FieldGroupRead,
    ListReportResult,
    ReportQuerySpec,
)
from app.reporting.service import ReportEngineService

router = APIRouter(prefix="/reports", tags=["reporting"])


# ===== FIELD CATALOG ENDPOINTS =====


@router.get("/entity-types", response_model=List[EntityTypeRead])
def get_entity_types(
    context: SessionContextDep,
    service: ReportEngineService = Depends(get_report_engine_service),
) -> List[EntityTypeRead]:
    """List the reportable entity types."""
    return [EntityTypeRead(**entry) for entry in service.get_supported_entity_types()]


@router.get("/fields/{entity_type}", response_model=List[FieldDescriptorRead])
def get_field_catalog(
    entity_type: str,
    context: SessionContextDep,
    service: ReportEngineService = Depends(get_report_engine_service),
) -> List[FieldDescriptorRead]:
    """Flat field catalog for an entity type, including the caller's custom fields."""
    fields = service.get_field_catalog(entity_type, context.organization_id)
    return [FieldDescriptorRead.from_descriptor(field) for field in fields]


@router.get("/fields/{entity_type}/groups", response_model=List[FieldGroupRead])
def get_field_groups(
    entity_type: str,
    context: SessionContextDep,
    service: ReportEngineService = Depends(get_report_engine_service),
) -> List[FieldGroupRead]:
    """Field catalog grouped for the report designer's field picker."""
    groups = service.get_field_groups(entity_type, context.organization_id)
    return [
        FieldGroupRead(group_name=name, fields=[FieldDescriptorRead.from_descriptor(f) for f in fields])
        for name, fields in groups.items()
    ]


# ===== EXECUTION ENDPOINT =====


@router.post("/execute", response_model=Union[ListReportResult, AggregationReportResult])
def execute_report(
    spec: ReportQuerySpec,
    context: SessionContextDep,
    service: ReportEngineService = Depends(get_report_engine_service),
) -> Union[ListReportResult, AggregationReportResult]:
    """Execute a report query spec scoped to the caller's organization."""
    return service.execute(spec, context.organization_id)
