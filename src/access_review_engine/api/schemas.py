"""Pydantic request and response schemas for the access review API.

All API inputs and outputs use Pydantic models, never raw dicts. JSON field
names are camelCase (`profileCompleteness`, `decisionJustification`);
Python attribute names stay snake_case. Schemas are grouped by resource.

Resources:
- Application — profile CRUD with completeness score
- ApplicationRole / SodConflict — role catalog and SoD rules
- Framework / CheckCategory — review templates
- ReviewCycle — lifecycle, import, access records
- Finding — creation, listing, decisions, status changes
- Dashboard — summary counts
- Report — generated report metadata
"""

import uuid
from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from access_review_engine.core.enums import (
    AttestationType,
    BusinessCriticality,
    CheckType,
    DataClassification,
    FindingDecision,
    FindingStatus,
    FindingType,
    ReportFormat,
    ReportType,
    ReviewCycleStatus,
    ReviewFrequency,
    Severity,
)


class CamelModel(BaseModel):
    """Base schema serialising field names as camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# ---------------------------------------------------------------------------
# Application schemas
# ---------------------------------------------------------------------------


class ApplicationCreateRequest(CamelModel):
    """Request body for registering an application."""

    name: str = Field(min_length=1, max_length=255, description="Application name")
    description: str | None = None
    vendor: str | None = Field(default=None, max_length=255)
    system_owner: str | None = Field(default=None, max_length=255)
    business_unit: str | None = Field(default=None, max_length=255)
    data_classification: DataClassification = DataClassification.INTERNAL
    business_criticality: BusinessCriticality = BusinessCriticality.MEDIUM
    regulatory_scope: list[str] = Field(default_factory=list, description="Regulation tags, e.g. [SOX, GLBA]")
    purpose: str | None = Field(default=None, description="What the application is used for")
    typical_users: str | None = None
    sensitive_functions: str | None = None
    access_request_process: str | None = None
    framework_id: uuid.UUID | None = Field(
        default=None,
        description="Framework used for reviews. Defaults to the system default framework.",
    )


class ApplicationUpdateRequest(CamelModel):
    """Partial update of an application. Omitted fields are left unchanged."""

    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    vendor: str | None = Field(default=None, max_length=255)
    system_owner: str | None = Field(default=None, max_length=255)
    business_unit: str | None = Field(default=None, max_length=255)
    data_classification: DataClassification | None = None
    business_criticality: BusinessCriticality | None = None
    regulatory_scope: list[str] | None = None
    purpose: str | None = None
    typical_users: str | None = None
    sensitive_functions: str | None = None
    access_request_process: str | None = None
    framework_id: uuid.UUID | None = None
    next_review_date: datetime | None = None


class ApplicationResponse(CamelModel):
    """Response schema for an application."""

    id: uuid.UUID
    name: str
    description: str | None
    vendor: str | None
    system_owner: str | None
    business_unit: str | None
    data_classification: str
    business_criticality: str
    regulatory_scope: list[str]
    purpose: str | None
    typical_users: str | None
    sensitive_functions: str | None
    access_request_process: str | None
    profile_completeness: int = Field(description="Weighted profile completeness, 0-100")
    framework_id: uuid.UUID | None
    last_review_date: datetime | None
    next_review_date: datetime | None
    is_active: bool
    created_at: datetime
    updated_at: datetime


class ApplicationDeleteResponse(CamelModel):
    """Outcome of deleting an application."""

    id: uuid.UUID
    deleted: bool = Field(description="True if the row was removed")
    deactivated: bool = Field(description="True if the application was kept but marked inactive")


# ---------------------------------------------------------------------------
# Role and SoD conflict schemas
# ---------------------------------------------------------------------------


class RoleCreateRequest(CamelModel):
    """Request body for adding a role to an application."""

    name: str = Field(min_length=1, max_length=255)
    description: str | None = None
    is_privileged: bool = False
    risk_level: Severity = Severity.LOW


class RoleUpdateRequest(CamelModel):
    """Partial update of a role."""

    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    is_privileged: bool | None = None
    risk_level: Severity | None = None


class RoleResponse(CamelModel):
    """Response schema for an application role."""

    id: uuid.UUID
    application_id: uuid.UUID
    name: str
    description: str | None
    is_privileged: bool
    risk_level: str
    created_at: datetime


class SodConflictCreateRequest(CamelModel):
    """Request body for declaring two roles as conflicting."""

    role1_id: uuid.UUID
    role2_id: uuid.UUID
    conflict_reason: str | None = None
    severity: Severity = Severity.HIGH


class SodConflictResponse(CamelModel):
    """Response schema for an SoD conflict rule."""

    id: uuid.UUID
    application_id: uuid.UUID
    role1_id: uuid.UUID
    role1_name: str | None = None
    role2_id: uuid.UUID
    role2_name: str | None = None
    conflict_reason: str | None
    severity: str
    created_at: datetime


# ---------------------------------------------------------------------------
# Framework schemas
# ---------------------------------------------------------------------------


class FrameworkThresholds(CamelModel):
    """Numeric thresholds of a framework, stored as {dormantDays, warningDays, criticalDays}."""

    dormant_days: int = Field(default=90, ge=1, description="Days without login before an account is dormant")
    warning_days: int | None = Field(default=None, ge=1)
    critical_days: int | None = Field(default=None, ge=1)


class CheckCategoryCreateRequest(CamelModel):
    """A check category within a framework."""

    name: str = Field(min_length=1, max_length=255)
    check_type: CheckType
    description: str | None = None
    is_enabled: bool = True
    default_severity: Severity = Severity.MEDIUM
    severity_rules: dict[str, Any] | None = None
    regulatory_references: list[str] = Field(default_factory=list)
    sort_order: int | None = Field(default=None, ge=0, description="Defaults to the category's position")


class CheckCategoryUpdateRequest(CamelModel):
    """Partial update of a check category."""

    name: str | None = Field(default=None, min_length=1, max_length=255)
    check_type: CheckType | None = None
    description: str | None = None
    is_enabled: bool | None = None
    default_severity: Severity | None = None
    severity_rules: dict[str, Any] | None = None
    regulatory_references: list[str] | None = None
    sort_order: int | None = Field(default=None, ge=0)


class CheckCategoryResponse(CamelModel):
    """Response schema for a check category."""

    id: uuid.UUID
    framework_id: uuid.UUID
    name: str
    check_type: str
    description: str | None
    is_enabled: bool
    default_severity: str
    severity_rules: dict[str, Any] | None
    regulatory_references: list[str]
    sort_order: int


class FrameworkCreateRequest(CamelModel):
    """Request body for creating a review framework."""

    name: str = Field(min_length=1, max_length=255)
    description: str | None = None
    version: str = Field(default="1.0", max_length=50)
    is_default: bool = False
    review_frequency: ReviewFrequency = ReviewFrequency.QUARTERLY
    attestation_type: AttestationType = AttestationType.SINGLE
    regulatory_scope: list[str] = Field(default_factory=list)
    thresholds: FrameworkThresholds = Field(default_factory=FrameworkThresholds)
    check_categories: list[CheckCategoryCreateRequest] = Field(default_factory=list)


class FrameworkUpdateRequest(CamelModel):
    """Partial update of a framework. Check categories are added separately."""

    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    version: str | None = Field(default=None, max_length=50)
    is_default: bool | None = None
    is_active: bool | None = None
    review_frequency: ReviewFrequency | None = None
    attestation_type: AttestationType | None = None
    regulatory_scope: list[str] | None = None
    thresholds: FrameworkThresholds | None = None


class FrameworkResponse(CamelModel):
    """Response schema for a framework with its ordered check categories."""

    id: uuid.UUID
    name: str
    description: str | None
    version: str
    is_default: bool
    is_active: bool
    review_frequency: str
    attestation_type: str
    regulatory_scope: list[str]
    thresholds: dict[str, Any]
    check_categories: list[CheckCategoryResponse]
    created_at: datetime
    updated_at: datetime


# ---------------------------------------------------------------------------
# ReviewCycle schemas
# ---------------------------------------------------------------------------


class ReviewCycleCreateRequest(CamelModel):
    """Request body for opening a review cycle. New cycles start in DRAFT."""

    name: str = Field(min_length=1, max_length=255)
    application_id: uuid.UUID
    framework_id: uuid.UUID | None = Field(
        default=None,
        description="Defaults to the application's framework, then the system default",
    )
    year: int = Field(ge=2020, le=2100)
    quarter: int | None = Field(default=None, ge=1, le=4)
    due_date: datetime | None = None


class ReviewCycleUpdateRequest(CamelModel):
    """Partial update of a review cycle. Status changes follow the transition table."""

    name: str | None = Field(default=None, min_length=1, max_length=255)
    status: ReviewCycleStatus | None = None
    due_date: datetime | None = None
    snapshot_date: datetime | None = None
    attestation_notes: str | None = None


class ReviewCycleResponse(CamelModel):
    """Response schema for a review cycle."""

    id: uuid.UUID
    name: str
    application_id: uuid.UUID
    framework_id: uuid.UUID
    status: str
    year: int
    quarter: int | None
    snapshot_date: datetime | None
    due_date: datetime | None
    started_at: datetime | None
    completed_at: datetime | None
    total_findings: int
    critical_findings: int
    high_findings: int
    medium_findings: int
    low_findings: int
    attested_by_id: uuid.UUID | None
    attested_at: datetime | None
    attestation_notes: str | None
    progress: int = Field(description="Progress percentage derived from status")
    created_at: datetime
    updated_at: datetime


class ReviewCycleDetailResponse(ReviewCycleResponse):
    """A review cycle with its record and finding counts."""

    access_record_count: int
    finding_count: int


class ReviewCycleDeleteResponse(CamelModel):
    """Outcome of deleting a review cycle."""

    id: uuid.UUID
    deleted: bool = Field(description="True if the DRAFT cycle was removed")
    archived: bool = Field(description="True if the cycle was archived in place")


# ---------------------------------------------------------------------------
# Access record import schemas
# ---------------------------------------------------------------------------


class AccessRecordImportRow(CamelModel):
    """One parsed row of an access export.

    Dates are accepted as ISO-8601 strings and parsed per record, so one bad
    date fails only its own row. Unknown columns are kept in the stored raw row.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    username: str = Field(min_length=1, max_length=255)
    email: str | None = None
    display_name: str | None = None
    roles: list[str] = Field(default_factory=list)
    last_login_at: str | None = None
    grant_date: str | None = None


class ImportRequest(CamelModel):
    """Request body for importing access records into a review cycle."""

    records: list[AccessRecordImportRow] = Field(min_length=1)


class ImportErrorDetail(CamelModel):
    """A single failed import row."""

    record: str = Field(description="Username of the failing row")
    error: str


class ImportResult(CamelModel):
    """Summary of an access record import."""

    imported: int = 0
    matched: int = 0
    unmatched: int = 0
    errors: int = 0
    error_details: list[ImportErrorDetail] = Field(default_factory=list)


class AccessRecordResponse(CamelModel):
    """Response schema for an imported access record."""

    id: uuid.UUID
    review_cycle_id: uuid.UUID
    username: str
    email: str | None
    display_name: str | None
    employee_id: uuid.UUID | None
    roles: list[str]
    last_login_at: datetime | None
    grant_date: datetime | None
    has_sod_conflict: bool
    has_privileged_access: bool
    is_dormant: bool
    sod_conflict_ids: list[uuid.UUID]
    ai_analysis_summary: str | None
    risk_score: float | None
    review_status: str
    review_notes: str | None
    reviewed_at: datetime | None
    created_at: datetime


class AccessRecordStats(CamelModel):
    """Summary counts over a review's access records."""

    total: int = 0
    pending: int = 0
    needs_review: int = 0
    approved: int = 0
    remediation: int = 0
    sod_conflicts: int = 0
    privileged_access: int = 0
    dormant: int = 0


class AccessRecordListResponse(CamelModel):
    """A page of access records plus summary stats for the whole review."""

    records: list[AccessRecordResponse]
    total: int = Field(description="Records matching the filters, before pagination")
    limit: int
    offset: int
    stats: AccessRecordStats


class ClearAccessRecordsResponse(CamelModel):
    """Outcome of clearing a review's access records."""

    deleted: int
    status: str


# ---------------------------------------------------------------------------
# Finding schemas
# ---------------------------------------------------------------------------


class FindingCreateRequest(CamelModel):
    """Request body for raising a finding against a review cycle."""

    review_cycle_id: uuid.UUID
    user_access_record_id: uuid.UUID | None = None
    finding_type: FindingType
    severity: Severity
    title: str = Field(min_length=1, max_length=500)
    description: str | None = None
    suggested_remediation: str | None = None


class FindingDecisionRequest(CamelModel):
    """A reviewer's decision on a finding."""

    decision: FindingDecision
    decision_justification: str = Field(min_length=1)
    compensating_controls: str | None = Field(
        default=None,
        description="Required for EXCEPTION decisions",
    )
    remediation_due_date: date | None = None
    remediation_ticket_id: str | None = Field(default=None, max_length=100)
    exception_expiry_date: date | None = None


class FindingStatusUpdateRequest(CamelModel):
    """A status change on a finding outside the decision workflow."""

    status: FindingStatus


class FindingResponse(CamelModel):
    """Response schema for a finding."""

    id: uuid.UUID
    review_cycle_id: uuid.UUID
    user_access_record_id: uuid.UUID | None
    finding_type: str
    severity: str
    status: str
    title: str
    description: str | None
    ai_rationale: str | None
    ai_confidence_score: float | None
    suggested_remediation: str | None
    decision: str | None
    decision_justification: str | None
    compensating_controls: str | None
    remediation_due_date: datetime | None
    remediation_ticket_id: str | None
    exception_expiry_date: datetime | None
    exception_approved_by_id: uuid.UUID | None
    exception_approved_at: datetime | None
    decided_by_id: uuid.UUID | None
    decided_at: datetime | None
    created_at: datetime
    updated_at: datetime


class FindingStats(CamelModel):
    """Finding counts by status and by severity."""

    total: int = 0
    by_status: dict[str, int] = Field(default_factory=dict)
    by_severity: dict[str, int] = Field(default_factory=dict)


class FindingListResponse(CamelModel):
    """Findings matching the filters plus stats over the same filters."""

    findings: list[FindingResponse]
    stats: FindingStats


# ---------------------------------------------------------------------------
# Report schemas
# ---------------------------------------------------------------------------


class ReportCreateRequest(CamelModel):
    """Request body for recording a report. Only metadata is stored."""

    report_type: ReportType
    name: str = Field(min_length=1, max_length=255)
    format: ReportFormat = ReportFormat.PDF
    review_cycle_id: uuid.UUID | None = None
    metadata: dict[str, Any] | None = None


class ReportResponse(CamelModel):
    """Response schema for a report record."""

    id: uuid.UUID
    review_cycle_id: uuid.UUID | None
    report_type: str
    name: str
    format: str
    file_url: str | None
    file_name: str | None
    file_size: int | None
    generated_by_id: uuid.UUID | None
    generated_at: datetime
    metadata: dict[str, Any] | None


# ---------------------------------------------------------------------------
# Dashboard schemas
# ---------------------------------------------------------------------------


class OpenFindingsSummary(CamelModel):
    """Open findings (OPEN, IN_REVIEW, PENDING_REMEDIATION) by severity."""

    total: int = 0
    critical: int = 0
    high: int = 0
    medium: int = 0
    low: int = 0


class DashboardResponse(CamelModel):
    """Compliance dashboard summary."""

    active_reviews: int
    open_findings: OpenFindingsSummary
    active_applications: int
    completed_this_year: int
    upcoming_reviews: list[ReviewCycleResponse]
    recent_reports: list[ReportResponse]
