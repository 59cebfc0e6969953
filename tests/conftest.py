"""
Test configuration and shared fixtures for the report query engine test suite.
Provides database setup, seeded tenant data, and the API test client.
"""

import pytest
from datetime import date, datetime, timedelta
from decimal import Decimal
from types import SimpleNamespace
from typing import Dict, List
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

from app.app import create_app
from app.core.database import create_all_tables, drop_all_tables, get_db
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
from app.reporting.field_registry import field_catalog_cache
from app.reporting.models import CustomPropertyDefinition
from app.reporting.service import ReportEngineService

ORG_A = "org-a"
ORG_B = "org-b"


# ===== DATABASE SETUP =====


@pytest.fixture(scope="session")
def engine():
    """Create in-memory SQLite engine shared by the whole test session"""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    create_all_tables(bind=engine)
    return engine


@pytest.fixture(scope="function")
def db_session(engine) -> Session:
    """Create a database session; every test starts from empty tables"""
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()
        field_catalog_cache.clear()
        drop_all_tables(bind=engine)
        create_all_tables(bind=engine)


@pytest.fixture
def client(db_session):
    """Create FastAPI test client with the database dependency overridden"""
    app = create_app(initialize_database=False)

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def service(db_session) -> ReportEngineService:
    return ReportEngineService.from_session(db_session)


def org_headers(organization_id: str = ORG_A) -> Dict[str, str]:
    return {"X-Organization-Id": organization_id}


# ===== SAMPLE DATA =====

# Ten HIGH severity cases in org-a, spaced five days apart from 2026-01-01 10:00.
# Indexes 0-6 fall in January 2026 (index 6 is 2026-01-31 10:00).
HIGH_CASE_COUNT = 10
HIGH_CASE_OPEN = 6
HIGH_CASE_CLOSED = 4
JANUARY_HIGH_CASES = 7


def _high_case_created_at(index: int) -> datetime:
    return datetime(2026, 1, 1, 10, 0) + timedelta(days=index * 5)


def _categories() -> List[Category]:
    return [
        Category(id="a-cat-fraud", organization_id=ORG_A, name="Fraud", code="FRD"),
        Category(id="a-cat-harassment", organization_id=ORG_A, name="Harassment", code="HAR"),
        Category(id="b-cat-bribery", organization_id=ORG_B, name="Bribery", code="BRB"),
    ]


def _users() -> List[User]:
    return [
        User(id="a-user-1", organization_id=ORG_A, first_name="Alice", last_name="Adams", email="alice@a.example"),
        User(id="a-user-2", organization_id=ORG_A, first_name="Aaron", last_name="Abbott", email="aaron@a.example"),
        User(id="b-user-1", organization_id=ORG_B, first_name="Bob", last_name="Brown", email="bob@b.example"),
    ]


def _cases() -> List[Case]:
    cases = []
    for index in range(HIGH_CASE_COUNT):
        cases.append(
            Case(
                id=f"a-case-{index + 1:02d}",
                organization_id=ORG_A,
                reference_number=f"CASE-{index + 1:04d}",
                status="OPEN" if index < HIGH_CASE_OPEN else "CLOSED",
                severity="HIGH",
                case_type="REPORT",
                source_channel="PHONE" if index % 2 == 0 else "WEB_FORM",
                primary_category_id="a-cat-fraud" if index % 2 == 0 else "a-cat-harassment",
                created_by_id="a-user-1",
                reporter_type="ANONYMOUS",
                reporter_anonymous=index % 3 == 0,
                location_country="US" if index < 5 else "DE",
                created_at=_high_case_created_at(index),
                custom_fields={"riskScore": index * 10, "region": "EMEA" if index % 2 == 0 else "APAC"},
            )
        )
    cases.append(
        Case(
            id="a-case-11",
            organization_id=ORG_A,
            reference_number="CASE-0011",
            status="OPEN",
            severity="LOW",
            created_at=datetime(2025, 12, 31, 23, 0),
            custom_fields=None,
        )
    )
    cases.append(
        Case(
            id="a-case-12",
            organization_id=ORG_A,
            reference_number="CASE-0012",
            status="OPEN",
            severity="LOW",
            created_at=datetime(2026, 2, 1, 0, 0),
            custom_fields={"region": "AMER"},
        )
    )
    for index in range(3):
        cases.append(
            Case(
                id=f"b-case-{index + 1:02d}",
                organization_id=ORG_B,
                reference_number=f"B-CASE-{index + 1:04d}",
                status="OPEN",
                severity="HIGH",
                # Points at another tenant's category; joins must not surface it.
                primary_category_id="a-cat-fraud",
                created_at=datetime(2026, 1, 15, 9, 0),
                custom_fields={"vendorTier": "GOLD"},
            )
        )
    return cases


def _rius() -> List[RiskIntelligenceUnit]:
    return [
        RiskIntelligenceUnit(
            id="a-riu-1", organization_id=ORG_A, reference_number="RIU-0001", type="HOTLINE_REPORT",
            status="RELEASED", severity="HIGH", source_channel="PHONE", category_id="a-cat-fraud",
            campaign_id="a-campaign-1", ai_risk_score=80, created_at=datetime(2026, 1, 3, 8, 0),
        ),
        RiskIntelligenceUnit(
            id="a-riu-2", organization_id=ORG_A, reference_number="RIU-0002", type="WEB_FORM_SUBMISSION",
            status="PENDING_QA", severity="LOW", source_channel="WEB_FORM", ai_risk_score=20,
            created_at=datetime(2026, 2, 3, 8, 0),
        ),
        RiskIntelligenceUnit(
            id="b-riu-1", organization_id=ORG_B, reference_number="B-RIU-0001", type="HOTLINE_REPORT",
            status="RELEASED", severity="HIGH", created_at=datetime(2026, 1, 4, 8, 0),
        ),
    ]


def _persons() -> List[Person]:
    return [
        Person(
            id="a-person-1", organization_id=ORG_A, type="EMPLOYEE", source="HRIS", status="ACTIVE",
            first_name="Ada", last_name="Ames", email="ada@a.example", employee_id="E-100",
            business_unit_name="Finance", created_at=datetime(2025, 6, 1, 9, 0), custom_fields={"badge": "A-7"},
        ),
        Person(
            id="a-person-2", organization_id=ORG_A, type="WITNESS", source="INTAKE", status="ACTIVE",
            first_name="Abe", last_name="Arnold", business_unit_name="Sales", created_at=datetime(2025, 7, 1, 9, 0),
        ),
        Person(
            id="b-person-1", organization_id=ORG_B, type="EMPLOYEE", source="HRIS", status="ACTIVE",
            first_name="Bea", last_name="Bell", business_unit_name="Finance", created_at=datetime(2025, 6, 1, 9, 0),
        ),
    ]


def _campaigns() -> List[Campaign]:
    return [
        Campaign(
            id="a-campaign-1", organization_id=ORG_A, name="Annual COI 2026", type="DISCLOSURE", status="ACTIVE",
            total_assignments=100, completed_assignments=60, overdue_assignments=5, completion_percentage=60.0,
            created_by_id="a-user-2", due_date=datetime(2026, 3, 31, 17, 0), created_at=datetime(2026, 1, 2, 9, 0),
        ),
        Campaign(
            id="b-campaign-1", organization_id=ORG_B, name="Gift Attestation", type="ATTESTATION", status="DRAFT",
            total_assignments=10, created_at=datetime(2026, 1, 2, 9, 0),
        ),
    ]


def _policies() -> List[Policy]:
    return [
        Policy(
            id="a-policy-1", organization_id=ORG_A, title="Code of Conduct", slug="code-of-conduct",
            policy_type="POLICY", status="PUBLISHED", owner_id="a-user-1", effective_date=date(2026, 1, 1),
            created_at=datetime(2025, 11, 1, 9, 0),
        ),
        Policy(
            id="a-policy-2", organization_id=ORG_A, title="Gifts Procedure", slug="gifts-procedure",
            policy_type="PROCEDURE", status="DRAFT", effective_date=date(2026, 2, 1),
            created_at=datetime(2025, 12, 1, 9, 0),
        ),
        Policy(
            id="b-policy-1", organization_id=ORG_B, title="Anti-Bribery", slug="anti-bribery",
            policy_type="POLICY", status="PUBLISHED", effective_date=date(2026, 1, 15),
            created_at=datetime(2025, 11, 1, 9, 0),
        ),
    ]


def _disclosures() -> List[DisclosureSubmission]:
    return [
        DisclosureSubmission(
            id="a-disclosure-1", organization_id=ORG_A, disclosure_type="GIFT", status="SUBMITTED",
            risk_level="LOW", submitted_by_employee_id="a-person-1", disclosure_value=Decimal("100.00"),
            disclosure_currency="USD", threshold_triggered=False, created_at=datetime(2026, 1, 5, 9, 0),
        ),
        DisclosureSubmission(
            id="a-disclosure-2", organization_id=ORG_A, disclosure_type="GIFT", status="APPROVED",
            risk_level="HIGH", submitted_by_employee_id="a-person-1", disclosure_value=Decimal("250.50"),
            disclosure_currency="USD", threshold_triggered=True, created_at=datetime(2026, 1, 6, 9, 0),
        ),
        DisclosureSubmission(
            id="a-disclosure-3", organization_id=ORG_A, disclosure_type="CONFLICT_OF_INTEREST",
            status="DRAFT", conflict_detected=True, created_at=datetime(2026, 1, 7, 9, 0),
        ),
        DisclosureSubmission(
            id="b-disclosure-1", organization_id=ORG_B, disclosure_type="GIFT", status="SUBMITTED",
            submitted_by_employee_id="b-person-1", disclosure_value=Decimal("999.00"),
            created_at=datetime(2026, 1, 5, 9, 0),
        ),
    ]


def _investigations() -> List[Investigation]:
    return [
        Investigation(
            id="a-investigation-1", organization_id=ORG_A, investigation_number=1, case_id="a-case-01",
            status="IN_PROGRESS", primary_investigator_id="a-user-2", department="COMPLIANCE",
            due_date=date(2026, 2, 1), created_at=datetime(2026, 1, 2, 9, 0),
        ),
        Investigation(
            id="a-investigation-2", organization_id=ORG_A, investigation_number=2, case_id="a-case-02",
            status="COMPLETED", department="HR", created_at=datetime(2026, 1, 8, 9, 0),
        ),
        Investigation(
            id="b-investigation-1", organization_id=ORG_B, investigation_number=1, case_id="b-case-01",
            status="NEW", created_at=datetime(2026, 1, 16, 9, 0),
        ),
    ]


def _custom_property_definitions() -> List[CustomPropertyDefinition]:
    return [
        CustomPropertyDefinition(
            id="a-prop-risk", organization_id=ORG_A, entity_type="CASE", name="Risk Score", key="riskScore",
            data_type="NUMBER", display_order=1, group_name="Risk",
        ),
        CustomPropertyDefinition(
            id="a-prop-region", organization_id=ORG_A, entity_type="CASE", name="Region", key="region",
            data_type="SELECT", display_order=2, group_name="Risk",
            options={"options": [{"value": "EMEA"}, {"value": "APAC"}, {"value": "AMER"}]},
        ),
        CustomPropertyDefinition(
            id="a-prop-legacy", organization_id=ORG_A, entity_type="CASE", name="Legacy Code", key="legacyCode",
            data_type="TEXT", display_order=3, is_active=False,
        ),
        CustomPropertyDefinition(
            id="a-prop-badge", organization_id=ORG_A, entity_type="PERSON", name="Badge", key="badge",
            data_type="TEXT", display_order=1,
        ),
        CustomPropertyDefinition(
            id="b-prop-tier", organization_id=ORG_B, entity_type="CASE", name="Vendor Tier", key="vendorTier",
            data_type="SELECT", display_order=1, options=["GOLD", "SILVER"],
        ),
    ]


@pytest.fixture
def seeded_data(db_session):
    """Seed both tenants with records across all seven entity types"""
    groups = [
        _categories(),
        _users(),
        _persons(),
        _campaigns(),
        _cases(),
        _rius(),
        _policies(),
        _disclosures(),
        _investigations(),
        _custom_property_definitions(),
    ]
    ids: Dict[str, Dict[str, set]] = {}
    for records in groups:
        db_session.add_all(records)
        db_session.flush()
    db_session.commit()

    entity_records = {
        "cases": Case,
        "rius": RiskIntelligenceUnit,
        "persons": Person,
        "campaigns": Campaign,
        "policies": Policy,
        "disclosures": DisclosureSubmission,
        "investigations": Investigation,
    }
    for entity_type, model in entity_records.items():
        ids[entity_type] = {ORG_A: set(), ORG_B: set()}
        for record in db_session.query(model).all():
            ids[entity_type][record.organization_id].add(record.id)

    return SimpleNamespace(ids=ids)
