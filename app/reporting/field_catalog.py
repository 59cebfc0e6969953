"""Static field catalog for every reportable entity type.

The catalog is declarative data built once at import time. Per-tenant
custom fields are appended to these tuples by the field registry; nothing
here depends on the organization making the request.

Capability codes used by the ``caps`` argument:
    F = filterable, S = sortable, G = groupable, A = aggregatable
"""

from dataclasses import dataclass
from typing import Dict, FrozenSet, List, Optional, Tuple

from app.reporting.schemas import Capability, DataType, EntityType, SourceKind


@dataclass(frozen=True)
class RelationHop:
    """One many-to-one hop from a model to a related lookup model."""

    relation: str  # relation name as exposed in join paths, e.g. "primaryCategory"
    target: str  # storage model name of the related record
    local_key: str  # foreign key column on the parent model
    to_one: bool = True


@dataclass(frozen=True)
class FieldDescriptor:
    """Defines one reportable attribute of an entity type."""

    field_id: str
    label: str
    data_type: DataType
    group: str
    capabilities: FrozenSet[Capability]
    column: Optional[str] = None
    join_path: Tuple[RelationHop, ...] = ()
    source_kind: SourceKind = SourceKind.STATIC
    enum_values: Optional[Tuple[str, ...]] = None
    temporal: bool = False  # storage column holds a timestamp rather than a calendar date
    computed: bool = False
    inputs: Tuple[str, ...] = ()  # root columns a computed field is derived from
    custom_key: Optional[str] = None

    def has(self, capability: Capability) -> bool:
        return capability in self.capabilities

    @property
    def path_key(self) -> Tuple[str, ...]:
        return tuple(hop.relation for hop in self.join_path)

    @property
    def is_custom(self) -> bool:
        return self.source_kind == SourceKind.CUSTOM

    @property
    def is_ordered(self) -> bool:
        """Whether values of this field have a total order usable for range operators."""
        return self.data_type in (DataType.NUMBER, DataType.CURRENCY, DataType.DATE)


_CAPABILITY_CODES = {
    "F": Capability.FILTERABLE,
    "S": Capability.SORTABLE,
    "G": Capability.GROUPABLE,
    "A": Capability.AGGREGATABLE,
}


def parse_capabilities(caps: str) -> FrozenSet[Capability]:
    return frozenset(_CAPABILITY_CODES[code] for code in caps)


def _field(
    field_id: str,
    label: str,
    data_type: DataType,
    group: str,
    column: str,
    caps: str = "FS",
    join: Tuple[RelationHop, ...] = (),
    enum: Optional[Tuple[str, ...]] = None,
    temporal: bool = False,
) -> FieldDescriptor:
    return FieldDescriptor(
        field_id=field_id,
        label=label,
        data_type=data_type,
        group=group,
        capabilities=parse_capabilities(caps),
        column=column,
        join_path=join,
        enum_values=enum,
        temporal=temporal,
    )


def _string(field_id, label, group, column, caps="FS", join=()):
    return _field(field_id, label, DataType.STRING, group, column, caps, join)


def _enum(field_id, label, group, column, values, caps="FSG", join=()):
    return _field(field_id, label, DataType.ENUM, group, column, caps, join, enum=values)


def _number(field_id, label, group, column, caps="FSA"):
    return _field(field_id, label, DataType.NUMBER, group, column, caps)


def _currency(field_id, label, group, column, caps="FSA"):
    return _field(field_id, label, DataType.CURRENCY, group, column, caps)


def _boolean(field_id, label, group, column, caps="FSG"):
    return _field(field_id, label, DataType.BOOLEAN, group, column, caps)


def _date(field_id, label, group, column, caps="FSG"):
    return _field(field_id, label, DataType.DATE, group, column, caps)


def _timestamp(field_id, label, group, column, caps="FSG"):
    return _field(field_id, label, DataType.DATE, group, column, caps, temporal=True)


def _days_open(group: str = "Metrics") -> FieldDescriptor:
    return FieldDescriptor(
        field_id="daysOpen",
        label="Days Open",
        data_type=DataType.NUMBER,
        group=group,
        capabilities=parse_capabilities(""),
        computed=True,
        inputs=("created_at",),
    )


# ===== RELATION HOPS =====

PRIMARY_CATEGORY = RelationHop("primaryCategory", "Category", "primary_category_id")
SECONDARY_CATEGORY = RelationHop("secondaryCategory", "Category", "secondary_category_id")
CREATED_BY = RelationHop("createdBy", "User", "created_by_id")
INTAKE_OPERATOR = RelationHop("intakeOperator", "User", "intake_operator_id")
RIU_CATEGORY = RelationHop("category", "Category", "category_id")
RIU_CAMPAIGN = RelationHop("campaign", "Campaign", "campaign_id")
POLICY_OWNER = RelationHop("owner", "User", "owner_id")
DISCLOSURE_SUBMITTER = RelationHop("submittedBy", "Person", "submitted_by_employee_id")
INVESTIGATION_CASE = RelationHop("case", "Case", "case_id")
PRIMARY_INVESTIGATOR = RelationHop("primaryInvestigator", "User", "primary_investigator_id")


# ===== SHARED ENUM DOMAINS =====

SEVERITY = ("LOW", "MEDIUM", "HIGH", "CRITICAL")
REPORTER_TYPE = ("ANONYMOUS", "CONFIDENTIAL", "IDENTIFIED")
CASE_STATUS = ("NEW", "OPEN", "IN_PROGRESS", "PENDING", "CLOSED", "MERGED")
CASE_OUTCOME = ("SUBSTANTIATED", "UNSUBSTANTIATED", "INCONCLUSIVE", "NO_ACTION_REQUIRED", "REFERRED")
CASE_TYPE = ("REPORT", "REQUEST_INFO", "QUESTION", "COMPLIMENT", "FOLLOW_UP")
CASE_SOURCE_CHANNEL = ("PHONE", "WEB_FORM", "EMAIL", "CHATBOT", "PROXY", "IMPORTED")
REPORTER_RELATIONSHIP = ("EMPLOYEE", "FORMER_EMPLOYEE", "CONTRACTOR", "VENDOR", "CUSTOMER", "OTHER")
RIU_TYPE = ("HOTLINE_REPORT", "WEB_FORM_SUBMISSION", "DISCLOSURE_RESPONSE", "EMAIL_INTAKE", "CHATBOT_TRANSCRIPT")
RIU_STATUS = ("PENDING_QA", "IN_QA", "RELEASED", "REJECTED")
RIU_SOURCE_CHANNEL = ("PHONE", "WEB_FORM", "EMAIL", "CHATBOT", "PROXY")
PERSON_TYPE = ("EMPLOYEE", "SUBJECT", "WITNESS", "EXTERNAL_CONTACT", "UNKNOWN")
PERSON_SOURCE = ("HRIS", "MANUAL", "INTAKE", "DISCLOSURE")
PERSON_STATUS = ("ACTIVE", "INACTIVE", "TERMINATED", "MERGED")
CAMPAIGN_TYPE = ("DISCLOSURE", "ATTESTATION", "SURVEY")
CAMPAIGN_STATUS = ("DRAFT", "SCHEDULED", "ACTIVE", "PAUSED", "COMPLETED", "CANCELLED")
AUDIENCE_MODE = ("ALL", "SEGMENT", "MANUAL")
POLICY_TYPE = ("POLICY", "PROCEDURE", "GUIDELINE", "STANDARD")
POLICY_STATUS = ("DRAFT", "PENDING_REVIEW", "APPROVED", "PUBLISHED", "RETIRED")
DISCLOSURE_TYPE = ("CONFLICT_OF_INTEREST", "GIFT", "ENTERTAINMENT", "OUTSIDE_ACTIVITY", "FINANCIAL_INTEREST")
DISCLOSURE_STATUS = ("DRAFT", "SUBMITTED", "UNDER_REVIEW", "APPROVED", "REJECTED", "REQUIRES_ACTION")
RISK_LEVEL = ("LOW", "MEDIUM", "HIGH")
INVESTIGATION_TYPE = ("FULL", "PRELIMINARY", "EXPEDITED", "FOLLOW_UP")
INVESTIGATION_STATUS = ("NEW", "IN_PROGRESS", "PENDING_REVIEW", "ON_HOLD", "COMPLETED", "CANCELLED")
INVESTIGATION_OUTCOME = ("SUBSTANTIATED", "UNSUBSTANTIATED", "INCONCLUSIVE", "PARTIALLY_SUBSTANTIATED", "REFERRED")
DEPARTMENT = ("COMPLIANCE", "HR", "LEGAL", "INTERNAL_AUDIT", "SECURITY", "OTHER")
SLA_STATUS = ("ON_TRACK", "AT_RISK", "OVERDUE")


# ===== CATALOGS =====

CASE_FIELDS = (
    # Case Details
    _string("id", "Case ID", "Case Details", "id"),
    _string("referenceNumber", "Reference Number", "Case Details", "reference_number"),
    _enum("status", "Status", "Case Details", "status", CASE_STATUS),
    _enum("outcome", "Outcome", "Case Details", "outcome", CASE_OUTCOME),
    _string("pipelineStage", "Pipeline Stage", "Case Details", "pipeline_stage", "FSG"),
    _enum("severity", "Severity", "Case Details", "severity", SEVERITY),
    _enum("caseType", "Case Type", "Case Details", "case_type", CASE_TYPE),
    _enum("sourceChannel", "Source Channel", "Case Details", "source_channel", CASE_SOURCE_CHANNEL),
    _string("tags", "Tags", "Case Details", "tags", "F"),
    # Classification
    _string("primaryCategoryId", "Primary Category ID", "Classification", "primary_category_id", "FG"),
    _string("primaryCategoryName", "Primary Category", "Classification", "name", "FSG", (PRIMARY_CATEGORY,)),
    _string("primaryCategoryCode", "Primary Category Code", "Classification", "code", "FSG", (PRIMARY_CATEGORY,)),
    _string("secondaryCategoryId", "Secondary Category ID", "Classification", "secondary_category_id", "FG"),
    _string("secondaryCategoryName", "Secondary Category", "Classification", "name", "FSG", (SECONDARY_CATEGORY,)),
    # Assignment
    _string("createdById", "Created By ID", "Assignment", "created_by_id", "FG"),
    _string("createdByName", "Created By", "Assignment", "first_name", "FSG", (CREATED_BY,)),
    _string("createdByEmail", "Created By Email", "Assignment", "email", "FS", (CREATED_BY,)),
    _string("intakeOperatorId", "Intake Operator ID", "Assignment", "intake_operator_id", "FG"),
    _string("intakeOperatorName", "Intake Operator", "Assignment", "first_name", "FSG", (INTAKE_OPERATOR,)),
    # Reporter
    _enum("reporterType", "Reporter Type", "Reporter", "reporter_type", REPORTER_TYPE),
    _boolean("reporterAnonymous", "Is Anonymous", "Reporter", "reporter_anonymous"),
    _enum("reporterRelationship", "Reporter Relationship", "Reporter", "reporter_relationship", REPORTER_RELATIONSHIP),
    # Location
    _string("locationCity", "City", "Location", "location_city", "FSG"),
    _string("locationState", "State/Province", "Location", "location_state", "FSG"),
    _string("locationCountry", "Country", "Location", "location_country", "FSG"),
    # Timestamps
    _timestamp("createdAt", "Created At", "Timestamps", "created_at"),
    _timestamp("updatedAt", "Updated At", "Timestamps", "updated_at", "FS"),
    _timestamp("intakeTimestamp", "Intake Time", "Timestamps", "intake_timestamp"),
    _timestamp("outcomeAt", "Outcome At", "Timestamps", "outcome_at"),
    _timestamp("releasedAt", "Released At", "Timestamps", "released_at"),
    # Metrics
    _days_open(),
    # AI
    _string("aiSummary", "AI Summary", "AI", "ai_summary", "F"),
    _number("aiConfidenceScore", "AI Confidence Score", "AI", "ai_confidence_score"),
)

RIU_FIELDS = (
    _string("id", "RIU ID", "RIU Details", "id"),
    _string("referenceNumber", "Reference Number", "RIU Details", "reference_number"),
    _enum("type", "RIU Type", "RIU Details", "type", RIU_TYPE),
    _enum("status", "Status", "RIU Details", "status", RIU_STATUS),
    _enum("severity", "Severity", "RIU Details", "severity", SEVERITY),
    _enum("sourceChannel", "Source Channel", "Source", "source_channel", RIU_SOURCE_CHANNEL),
    _string("campaignId", "Campaign ID", "Source", "campaign_id", "FG"),
    _string("campaignName", "Campaign", "Source", "name", "FSG", (RIU_CAMPAIGN,)),
    _string("categoryId", "Category ID", "Classification", "category_id", "FG"),
    _string("categoryName", "Category", "Classification", "name", "FSG", (RIU_CATEGORY,)),
    _string("categoryCode", "Category Code", "Classification", "code", "FSG", (RIU_CATEGORY,)),
    _enum("reporterType", "Reporter Type", "Reporter", "reporter_type", REPORTER_TYPE),
    _string("locationCity", "City", "Location", "location_city", "FSG"),
    _string("locationState", "State/Province", "Location", "location_state", "FSG"),
    _string("locationCountry", "Country", "Location", "location_country", "FSG"),
    _timestamp("createdAt", "Created At", "Timestamps", "created_at"),
    _string("aiSummary", "AI Summary", "AI", "ai_summary", "F"),
    _number("aiRiskScore", "AI Risk Score", "AI", "ai_risk_score"),
    _string("aiLanguageDetected", "Detected Language", "AI", "ai_language_detected", "FSG"),
)

PERSON_FIELDS = (
    _string("id", "Person ID", "Person Details", "id"),
    _enum("type", "Person Type", "Person Details", "type", PERSON_TYPE),
    _enum("source", "Source", "Person Details", "source", PERSON_SOURCE),
    _enum("status", "Status", "Person Details", "status", PERSON_STATUS),
    _string("firstName", "First Name", "Person Details", "first_name"),
    _string("lastName", "Last Name", "Person Details", "last_name"),
    _string("email", "Email", "Person Details", "email"),
    _string("employeeId", "Employee ID", "Employment", "employee_id"),
    _string("jobTitle", "Job Title", "Employment", "job_title", "FSG"),
    _string("employmentStatus", "Employment Status", "Employment", "employment_status", "FSG"),
    _string("businessUnitId", "Business Unit ID", "Organization", "business_unit_id", "FG"),
    _string("businessUnitName", "Business Unit", "Organization", "business_unit_name", "FSG"),
    _string("locationId", "Location ID", "Organization", "location_id", "FG"),
    _string("locationName", "Location", "Organization", "location_name", "FSG"),
    _string("managerId", "Manager ID", "Organization", "manager_id", "FG"),
    _string("managerName", "Manager", "Organization", "manager_name", "FSG"),
    _timestamp("createdAt", "Created At", "Timestamps", "created_at"),
    _timestamp("updatedAt", "Updated At", "Timestamps", "updated_at", "FS"),
)

CAMPAIGN_FIELDS = (
    _string("id", "Campaign ID", "Campaign Details", "id"),
    _string("name", "Name", "Campaign Details", "name"),
    _enum("type", "Campaign Type", "Campaign Details", "type", CAMPAIGN_TYPE),
    _enum("status", "Status", "Campaign Details", "status", CAMPAIGN_STATUS),
    _number("version", "Version", "Campaign Details", "version", "FS"),
    _timestamp("launchAt", "Scheduled Launch", "Schedule", "launch_at"),
    _timestamp("launchedAt", "Launched At", "Schedule", "launched_at"),
    _timestamp("dueDate", "Due Date", "Schedule", "due_date"),
    _timestamp("expiresAt", "Expires At", "Schedule", "expires_at", "FS"),
    _enum("audienceMode", "Audience Mode", "Audience", "audience_mode", AUDIENCE_MODE),
    _number("totalAssignments", "Total Assignments", "Audience", "total_assignments"),
    _number("completedAssignments", "Completed", "Progress", "completed_assignments"),
    _number("overdueAssignments", "Overdue", "Progress", "overdue_assignments"),
    _number("completionPercentage", "Completion %", "Progress", "completion_percentage"),
    _string("createdByName", "Created By", "Ownership", "first_name", "FSG", (CREATED_BY,)),
    _timestamp("createdAt", "Created At", "Timestamps", "created_at"),
    _timestamp("updatedAt", "Updated At", "Timestamps", "updated_at", "FS"),
)

POLICY_FIELDS = (
    _string("id", "Policy ID", "Policy Details", "id"),
    _string("title", "Title", "Policy Details", "title"),
    _string("slug", "Slug", "Policy Details", "slug"),
    _enum("policyType", "Policy Type", "Policy Details", "policy_type", POLICY_TYPE),
    _string("category", "Category", "Policy Details", "category", "FSG"),
    _enum("status", "Status", "Policy Details", "status", POLICY_STATUS),
    _number("currentVersion", "Current Version", "Version", "current_version", "FS"),
    _string("ownerId", "Owner ID", "Ownership", "owner_id", "FG"),
    _string("ownerName", "Owner", "Ownership", "first_name", "FSG", (POLICY_OWNER,)),
    _date("effectiveDate", "Effective Date", "Dates", "effective_date"),
    _date("reviewDate", "Review Date", "Dates", "review_date"),
    _timestamp("retiredAt", "Retired At", "Dates", "retired_at", "FS"),
    _timestamp("createdAt", "Created At", "Timestamps", "created_at"),
    _timestamp("updatedAt", "Updated At", "Timestamps", "updated_at", "FS"),
)

DISCLOSURE_FIELDS = (
    _string("id", "Disclosure ID", "Disclosure Details", "id"),
    _enum("disclosureType", "Disclosure Type", "Disclosure Details", "disclosure_type", DISCLOSURE_TYPE),
    _enum("status", "Status", "Disclosure Details", "status", DISCLOSURE_STATUS),
    _currency("disclosureValue", "Disclosed Value", "Disclosure Details", "disclosure_value"),
    _string("disclosureCurrency", "Currency", "Disclosure Details", "disclosure_currency", "FSG"),
    _currency("estimatedAnnualValue", "Estimated Annual Value", "Disclosure Details", "estimated_annual_value"),
    _string("relatedCompany", "Related Company", "Disclosure Details", "related_company", "FSG"),
    _enum("riskLevel", "Risk Level", "Review", "risk_level", RISK_LEVEL),
    _boolean("thresholdTriggered", "Threshold Triggered", "Review", "threshold_triggered"),
    _currency("thresholdAmount", "Threshold Amount", "Review", "threshold_amount"),
    _boolean("conflictDetected", "Conflict Detected", "Review", "conflict_detected"),
    _timestamp("reviewedAt", "Reviewed At", "Review", "reviewed_at"),
    _string("submittedByEmployeeId", "Submitted By ID", "Submitter", "submitted_by_employee_id", "FG"),
    _string("submittedByName", "Submitted By", "Submitter", "first_name", "FSG", (DISCLOSURE_SUBMITTER,)),
    _string("submittedByBusinessUnit", "Submitter Business Unit", "Submitter", "business_unit_name", "FSG", (DISCLOSURE_SUBMITTER,)),
    _timestamp("submittedAt", "Submitted At", "Timestamps", "submitted_at"),
    _timestamp("createdAt", "Created At", "Timestamps", "created_at"),
    _timestamp("updatedAt", "Updated At", "Timestamps", "updated_at", "FS"),
)

INVESTIGATION_FIELDS = (
    _string("id", "Investigation ID", "Investigation Details", "id"),
    _number("investigationNumber", "Investigation #", "Investigation Details", "investigation_number", "FS"),
    _string("caseId", "Case ID", "Investigation Details", "case_id", "FG"),
    _enum("investigationType", "Investigation Type", "Investigation Details", "investigation_type", INVESTIGATION_TYPE),
    _enum("status", "Status", "Investigation Details", "status", INVESTIGATION_STATUS),
    _enum("outcome", "Outcome", "Investigation Details", "outcome", INVESTIGATION_OUTCOME),
    _string("caseReferenceNumber", "Case Reference", "Case", "reference_number", "FSG", (INVESTIGATION_CASE,)),
    _enum("caseSeverity", "Case Severity", "Case", "severity", SEVERITY, join=(INVESTIGATION_CASE,)),
    _string("caseCategoryName", "Case Category", "Case", "name", "FSG", (INVESTIGATION_CASE, PRIMARY_CATEGORY)),
    _string("primaryInvestigatorId", "Primary Investigator ID", "Assignment", "primary_investigator_id", "FG"),
    _string("primaryInvestigatorName", "Primary Investigator", "Assignment", "first_name", "FSG", (PRIMARY_INVESTIGATOR,)),
    _enum("department", "Department", "Assignment", "department", DEPARTMENT),
    _date("dueDate", "Due Date", "Timeline", "due_date"),
    _enum("slaStatus", "SLA Status", "Timeline", "sla_status", SLA_STATUS),
    _timestamp("closedAt", "Closed At", "Timeline", "closed_at"),
    _timestamp("createdAt", "Created At", "Timestamps", "created_at"),
    _timestamp("updatedAt", "Updated At", "Timestamps", "updated_at", "FS"),
    _days_open(),
)


ENTITY_FIELD_CATALOG: Dict[EntityType, Tuple[FieldDescriptor, ...]] = {
    EntityType.CASES: CASE_FIELDS,
    EntityType.RIUS: RIU_FIELDS,
    EntityType.PERSONS: PERSON_FIELDS,
    EntityType.CAMPAIGNS: CAMPAIGN_FIELDS,
    EntityType.POLICIES: POLICY_FIELDS,
    EntityType.DISCLOSURES: DISCLOSURE_FIELDS,
    EntityType.INVESTIGATIONS: INVESTIGATION_FIELDS,
}

# Custom property definitions are stored against these entity kinds.
CUSTOM_PROPERTY_ENTITY_KINDS: Dict[EntityType, str] = {
    EntityType.CASES: "CASE",
    EntityType.INVESTIGATIONS: "INVESTIGATION",
    EntityType.PERSONS: "PERSON",
    EntityType.RIUS: "RIU",
}

CUSTOM_PROPERTIES_GROUP = "Custom Properties"

# Display order of field groups in the report designer's field picker.
CATALOG_GROUP_ORDER: List[str] = [
    "Case Details",
    "RIU Details",
    "Person Details",
    "Campaign Details",
    "Policy Details",
    "Disclosure Details",
    "Investigation Details",
    "Case",
    "Classification",
    "Source",
    "Assignment",
    "Reporter",
    "Employment",
    "Organization",
    "Location",
    "Ownership",
    "Schedule",
    "Audience",
    "Progress",
    "Review",
    "Submitter",
    "Version",
    "Timeline",
    "Dates",
    "Timestamps",
    "Metrics",
    "AI",
    CUSTOM_PROPERTIES_GROUP,
]


def get_static_fields(entity_type: EntityType) -> Tuple[FieldDescriptor, ...]:
    """Static catalog for an entity type."""
    return ENTITY_FIELD_CATALOG[entity_type]
