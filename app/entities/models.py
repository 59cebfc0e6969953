"""Database models for the reportable business entities.

Every entity row belongs to exactly one organization. Lookup tables
(categories, users) are tenant-scoped as well.
"""

from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    Boolean,
    Float,
    Numeric,
    Date,
    DateTime,
    ForeignKey,
    JSON,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.core.database import Base


# ===== LOOKUP TABLES =====


class Category(Base):
    """Classification category shared by cases and RIUs."""

    __tablename__ = "categories"

    id = Column(String(36), primary_key=True)
    organization_id = Column(String(36), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    code = Column(String(50), nullable=True)


class User(Base):
    """Platform user (case creators, intake operators, investigators, owners)."""

    __tablename__ = "users"

    id = Column(String(36), primary_key=True)
    organization_id = Column(String(36), nullable=False, index=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=True)
    email = Column(String(255), nullable=True)


# ===== ENTITIES =====


class Case(Base):
    """Primary compliance work container."""

    __tablename__ = "cases"

    id = Column(String(36), primary_key=True)
    organization_id = Column(String(36), nullable=False, index=True)
    reference_number = Column(String(50), nullable=False)
    status = Column(String(30), nullable=False, default="NEW")
    outcome = Column(String(30), nullable=True)
    pipeline_stage = Column(String(100), nullable=True)
    severity = Column(String(20), nullable=False, default="MEDIUM")
    case_type = Column(String(30), nullable=False, default="REPORT")
    source_channel = Column(String(30), nullable=False, default="WEB_FORM")
    tags = Column(Text, nullable=True)

    primary_category_id = Column(String(36), ForeignKey("categories.id"), nullable=True)
    secondary_category_id = Column(String(36), ForeignKey("categories.id"), nullable=True)
    created_by_id = Column(String(36), ForeignKey("users.id"), nullable=True)
    intake_operator_id = Column(String(36), ForeignKey("users.id"), nullable=True)

    reporter_type = Column(String(20), nullable=False, default="ANONYMOUS")
    reporter_anonymous = Column(Boolean, nullable=False, default=True)
    reporter_relationship = Column(String(30), nullable=True)

    location_city = Column(String(100), nullable=True)
    location_state = Column(String(100), nullable=True)
    location_country = Column(String(100), nullable=True)

    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=True)
    intake_timestamp = Column(DateTime, nullable=True)
    outcome_at = Column(DateTime, nullable=True)
    released_at = Column(DateTime, nullable=True)

    ai_summary = Column(Text, nullable=True)
    ai_confidence_score = Column(Integer, nullable=True)
    custom_fields = Column(JSON, nullable=True)

    primary_category = relationship("Category", foreign_keys=[primary_category_id])
    secondary_category = relationship("Category", foreign_keys=[secondary_category_id])
    created_by = relationship("User", foreign_keys=[created_by_id])
    intake_operator = relationship("User", foreign_keys=[intake_operator_id])
    investigations = relationship("Investigation", back_populates="case")


class RiskIntelligenceUnit(Base):
    """Immutable intake record (hotline report, web form, disclosure response)."""

    __tablename__ = "risk_intelligence_units"

    id = Column(String(36), primary_key=True)
    organization_id = Column(String(36), nullable=False, index=True)
    reference_number = Column(String(50), nullable=False)
    type = Column(String(30), nullable=False)
    status = Column(String(20), nullable=False, default="PENDING_QA")
    severity = Column(String(20), nullable=True)
    source_channel = Column(String(30), nullable=True)
    campaign_id = Column(String(36), ForeignKey("campaigns.id"), nullable=True)
    category_id = Column(String(36), ForeignKey("categories.id"), nullable=True)
    reporter_type = Column(String(20), nullable=True)
    location_city = Column(String(100), nullable=True)
    location_state = Column(String(100), nullable=True)
    location_country = Column(String(100), nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    ai_summary = Column(Text, nullable=True)
    ai_risk_score = Column(Integer, nullable=True)
    ai_language_detected = Column(String(10), nullable=True)
    custom_fields = Column(JSON, nullable=True)

    category = relationship("Category")
    campaign = relationship("Campaign")


class Person(Base):
    """Person record (employee, subject, witness, external contact)."""

    __tablename__ = "persons"

    id = Column(String(36), primary_key=True)
    organization_id = Column(String(36), nullable=False, index=True)
    type = Column(String(30), nullable=False, default="UNKNOWN")
    source = Column(String(20), nullable=False, default="MANUAL")
    status = Column(String(20), nullable=False, default="ACTIVE")
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    email = Column(String(255), nullable=True)
    employee_id = Column(String(50), nullable=True)
    job_title = Column(String(255), nullable=True)
    employment_status = Column(String(50), nullable=True)
    business_unit_id = Column(String(36), nullable=True)
    business_unit_name = Column(String(255), nullable=True)
    location_id = Column(String(36), nullable=True)
    location_name = Column(String(255), nullable=True)
    manager_id = Column(String(36), nullable=True)
    manager_name = Column(String(255), nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=True)
    custom_fields = Column(JSON, nullable=True)


class Campaign(Base):
    """Disclosure, attestation or survey campaign."""

    __tablename__ = "campaigns"

    id = Column(String(36), primary_key=True)
    organization_id = Column(String(36), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    type = Column(String(20), nullable=False)
    status = Column(String(20), nullable=False, default="DRAFT")
    version = Column(Integer, nullable=False, default=1)
    launch_at = Column(DateTime, nullable=True)
    launched_at = Column(DateTime, nullable=True)
    due_date = Column(DateTime, nullable=True)
    expires_at = Column(DateTime, nullable=True)
    audience_mode = Column(String(20), nullable=True)
    total_assignments = Column(Integer, nullable=False, default=0)
    completed_assignments = Column(Integer, nullable=False, default=0)
    overdue_assignments = Column(Integer, nullable=False, default=0)
    completion_percentage = Column(Float, nullable=True)
    created_by_id = Column(String(36), ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=True)
    custom_fields = Column(JSON, nullable=True)

    created_by = relationship("User")


class Policy(Base):
    """Policy document with versioning and ownership."""

    __tablename__ = "policies"

    id = Column(String(36), primary_key=True)
    organization_id = Column(String(36), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    slug = Column(String(255), nullable=False)
    policy_type = Column(String(20), nullable=False, default="POLICY")
    category = Column(String(100), nullable=True)
    status = Column(String(20), nullable=False, default="DRAFT")
    current_version = Column(Integer, nullable=False, default=1)
    owner_id = Column(String(36), ForeignKey("users.id"), nullable=True)
    effective_date = Column(Date, nullable=True)
    review_date = Column(Date, nullable=True)
    retired_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=True)
    custom_fields = Column(JSON, nullable=True)

    owner = relationship("User")


class DisclosureSubmission(Base):
    """Submitted disclosure (conflict of interest, gift, outside activity...)."""

    __tablename__ = "disclosure_submissions"

    id = Column(String(36), primary_key=True)
    organization_id = Column(String(36), nullable=False, index=True)
    disclosure_type = Column(String(30), nullable=False)
    status = Column(String(20), nullable=False, default="DRAFT")
    risk_level = Column(String(10), nullable=True)
    reviewed_at = Column(DateTime, nullable=True)
    submitted_by_employee_id = Column(String(36), ForeignKey("persons.id"), nullable=True)
    disclosure_value = Column(Numeric(12, 2), nullable=True)
    disclosure_currency = Column(String(3), nullable=True)
    estimated_annual_value = Column(Numeric(12, 2), nullable=True)
    threshold_triggered = Column(Boolean, nullable=False, default=False)
    threshold_amount = Column(Numeric(12, 2), nullable=True)
    conflict_detected = Column(Boolean, nullable=False, default=False)
    related_company = Column(String(255), nullable=True)
    submitted_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=True)
    custom_fields = Column(JSON, nullable=True)

    submitted_by = relationship("Person")


class Investigation(Base):
    """Investigation opened against a case."""

    __tablename__ = "investigations"

    id = Column(String(36), primary_key=True)
    organization_id = Column(String(36), nullable=False, index=True)
    investigation_number = Column(Integer, nullable=False)
    case_id = Column(String(36), ForeignKey("cases.id"), nullable=False)
    investigation_type = Column(String(20), nullable=False, default="FULL")
    status = Column(String(20), nullable=False, default="NEW")
    outcome = Column(String(30), nullable=True)
    primary_investigator_id = Column(String(36), ForeignKey("users.id"), nullable=True)
    department = Column(String(20), nullable=True)
    due_date = Column(Date, nullable=True)
    sla_status = Column(String(20), nullable=True)
    closed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=True)
    custom_fields = Column(JSON, nullable=True)

    case = relationship("Case", back_populates="investigations")
    primary_investigator = relationship("User")
