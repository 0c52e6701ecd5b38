"""Test fixtures for access-review-engine.

Provides:
- actor_id / application_id / framework_id: deterministic UUIDs
- now: a fixed reference time (2025-06-01 UTC)
- mock_audit_repo: A mock AuditLogRepository that captures append() calls
- mock_audit_service: A mock AuditService for services under test
- make_fake_*: factories building fake ORM objects with every column set
- apply_update: side effect for mocked repository update() calls
"""

import uuid
from datetime import UTC, datetime
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=UTC)


@pytest.fixture()
def actor_id() -> uuid.UUID:
    """Return a fixed actor UUID for consistent test assertions.

    Returns:
        A deterministic UUID for the acting user.
    """
    return uuid.UUID("00000000-0000-0000-0000-000000000002")


@pytest.fixture()
def application_id() -> uuid.UUID:
    return uuid.UUID("00000000-0000-0000-0000-0000000000a1")


@pytest.fixture()
def framework_id() -> uuid.UUID:
    return uuid.UUID("00000000-0000-0000-0000-0000000000f1")


@pytest.fixture()
def now() -> datetime:
    """Return the fixed reference time used by clocks in service tests."""
    return NOW


@pytest.fixture()
def mock_audit_repo() -> AsyncMock:
    """Create a mock AuditLogRepository.

    Returns:
        AsyncMock with append() returning a fake AuditLog entry.
    """
    repo = AsyncMock()
    fake_entry = MagicMock()
    fake_entry.id = uuid.uuid4()
    fake_entry.action = "created"
    fake_entry.created_at = NOW
    repo.append.return_value = fake_entry
    return repo


@pytest.fixture()
def mock_audit_service() -> AsyncMock:
    """Create a mock AuditService whose record() does nothing."""
    service = AsyncMock()
    service.record.return_value = None
    return service


async def apply_update(entity: Any, values: dict[str, Any]) -> Any:
    """Side effect for mocked repository update(): set attributes and return the entity."""
    for key, value in values.items():
        setattr(entity, key, value)
    return entity


def make_fake_framework(
    name: str = "SOX Quarterly",
    is_default: bool = False,
    thresholds: dict[str, Any] | None = None,
    framework_id: uuid.UUID | None = None,
    check_categories: list[MagicMock] | None = None,
) -> MagicMock:
    """Create a fake Framework ORM object for tests.

    Args:
        name: Framework name.
        is_default: Whether this is the system default framework.
        thresholds: Framework thresholds mapping.
        framework_id: Explicit id; random when omitted.
        check_categories: Fake CheckCategory objects.

    Returns:
        MagicMock with Framework attributes set.
    """
    framework = MagicMock()
    framework.id = framework_id or uuid.uuid4()
    framework.name = name
    framework.description = None
    framework.version = "1.0"
    framework.is_default = is_default
    framework.is_active = True
    framework.review_frequency = "QUARTERLY"
    framework.attestation_type = "SINGLE"
    framework.regulatory_scope = ["SOX"]
    framework.thresholds = {"dormantDays": 90} if thresholds is None else thresholds
    framework.created_by_id = None
    framework.check_categories = check_categories or []
    framework.created_at = NOW
    framework.updated_at = NOW
    return framework


def make_fake_check_category(framework_id: uuid.UUID, name: str = "Terminated users", sort_order: int = 0) -> MagicMock:
    category = MagicMock()
    category.id = uuid.uuid4()
    category.framework_id = framework_id
    category.name = name
    category.check_type = "EMPLOYMENT_STATUS"
    category.description = None
    category.is_enabled = True
    category.default_severity = "HIGH"
    category.severity_rules = None
    category.regulatory_references = []
    category.sort_order = sort_order
    category.created_at = NOW
    category.updated_at = NOW
    return category


def make_fake_application(
    name: str = "Core Banking",
    application_id: uuid.UUID | None = None,
    framework_id: uuid.UUID | None = None,
    **profile: Any,
) -> MagicMock:
    """Create a fake Application ORM object for tests.

    Args:
        name: Application name.
        application_id: Explicit id; random when omitted.
        framework_id: Assigned framework.
        profile: Overrides for any other profile field.

    Returns:
        MagicMock with Application attributes set.
    """
    application = MagicMock()
    application.id = application_id or uuid.uuid4()
    application.name = name
    application.description = None
    application.vendor = None
    application.system_owner = None
    application.business_unit = None
    application.data_classification = "INTERNAL"
    application.business_criticality = "MEDIUM"
    application.regulatory_scope = []
    application.purpose = None
    application.typical_users = None
    application.sensitive_functions = None
    application.access_request_process = None
    application.profile_completeness = 10
    application.framework_id = framework_id
    application.last_review_date = None
    application.next_review_date = None
    application.is_active = True
    application.created_at = NOW
    application.updated_at = NOW
    for key, value in profile.items():
        setattr(application, key, value)
    return application


def make_fake_role(
    application_id: uuid.UUID,
    name: str,
    is_privileged: bool = False,
    risk_level: str = "LOW",
) -> MagicMock:
    """Create a fake ApplicationRole ORM object for tests."""
    role = MagicMock()
    role.id = uuid.uuid4()
    role.application_id = application_id
    role.name = name
    role.description = None
    role.is_privileged = is_privileged
    role.risk_level = risk_level
    role.created_at = NOW
    role.updated_at = NOW
    return role


def make_fake_conflict(
    application_id: uuid.UUID,
    role1_id: uuid.UUID,
    role2_id: uuid.UUID,
    severity: str = "HIGH",
) -> MagicMock:
    """Create a fake SodConflict ORM object for tests."""
    conflict = MagicMock()
    conflict.id = uuid.uuid4()
    conflict.application_id = application_id
    conflict.role1_id = role1_id
    conflict.role2_id = role2_id
    conflict.conflict_reason = "Maker and checker"
    conflict.severity = severity
    conflict.created_at = NOW
    conflict.updated_at = NOW
    return conflict


def make_fake_employee(employee_id: str, email: str | None = None, status: str = "ACTIVE") -> MagicMock:
    """Create a fake Employee ORM object for tests."""
    employee = MagicMock()
    employee.id = uuid.uuid4()
    employee.employee_id = employee_id
    employee.email = email
    employee.full_name = None
    employee.employment_status = status
    return employee


def make_fake_review_cycle(
    application_id: uuid.UUID,
    framework_id: uuid.UUID,
    status: str = "DRAFT",
    review_cycle_id: uuid.UUID | None = None,
) -> MagicMock:
    """Create a fake ReviewCycle ORM object for tests.

    Args:
        application_id: Owning application.
        framework_id: Framework the cycle runs under.
        status: Current ReviewCycleStatus value.
        review_cycle_id: Explicit id; random when omitted.

    Returns:
        MagicMock with ReviewCycle attributes set.
    """
    cycle = MagicMock()
    cycle.id = review_cycle_id or uuid.uuid4()
    cycle.name = "Q2 2025 Core Banking review"
    cycle.application_id = application_id
    cycle.framework_id = framework_id
    cycle.status = status
    cycle.year = 2025
    cycle.quarter = 2
    cycle.snapshot_date = None
    cycle.due_date = None
    cycle.started_at = None
    cycle.completed_at = None
    cycle.total_findings = 0
    cycle.critical_findings = 0
    cycle.high_findings = 0
    cycle.medium_findings = 0
    cycle.low_findings = 0
    cycle.attested_by_id = None
    cycle.attested_at = None
    cycle.attestation_notes = None
    cycle.created_by_id = None
    cycle.created_at = NOW
    cycle.updated_at = NOW
    return cycle


def make_fake_access_record(review_cycle_id: uuid.UUID, username: str = "jdoe", **overrides: Any) -> MagicMock:
    """Create a fake UserAccessRecord ORM object for tests."""
    record = MagicMock()
    record.id = uuid.uuid4()
    record.review_cycle_id = review_cycle_id
    record.username = username
    record.email = None
    record.display_name = None
    record.employee_id = None
    record.roles = []
    record.last_login_at = None
    record.grant_date = None
    record.has_sod_conflict = False
    record.has_privileged_access = False
    record.is_dormant = False
    record.sod_conflict_ids = []
    record.ai_analysis_summary = None
    record.risk_score = None
    record.review_status = "PENDING"
    record.review_notes = None
    record.reviewed_at = None
    record.raw_data = None
    record.created_at = NOW
    record.updated_at = NOW
    for key, value in overrides.items():
        setattr(record, key, value)
    return record


def make_fake_finding(
    review_cycle_id: uuid.UUID,
    severity: str = "HIGH",
    status: str = "OPEN",
    finding_type: str = "SOD_CONFLICT",
) -> MagicMock:
    """Create a fake Finding ORM object for tests.

    Args:
        review_cycle_id: Owning review cycle.
        severity: Severity value.
        status: FindingStatus value.
        finding_type: FindingType value.

    Returns:
        MagicMock with Finding attributes set.
    """
    finding = MagicMock()
    finding.id = uuid.uuid4()
    finding.review_cycle_id = review_cycle_id
    finding.user_access_record_id = None
    finding.finding_type = finding_type
    finding.severity = severity
    finding.status = status
    finding.title = "User holds conflicting roles"
    finding.description = None
    finding.ai_rationale = None
    finding.ai_confidence_score = None
    finding.suggested_remediation = None
    finding.decision = None
    finding.decision_justification = None
    finding.compensating_controls = None
    finding.remediation_due_date = None
    finding.remediation_ticket_id = None
    finding.exception_expiry_date = None
    finding.exception_approved_by_id = None
    finding.exception_approved_at = None
    finding.decided_by_id = None
    finding.decided_at = None
    finding.created_at = NOW
    finding.updated_at = NOW
    return finding


def make_fake_report(review_cycle_id: uuid.UUID | None = None) -> MagicMock:
    report = MagicMock()
    report.id = uuid.uuid4()
    report.review_cycle_id = review_cycle_id
    report.report_type = "executive_summary"
    report.name = "Q2 executive summary"
    report.format = "PDF"
    report.file_url = None
    report.file_name = None
    report.file_size = None
    report.generated_by_id = None
    report.generated_at = NOW
    report.report_metadata = None
    report.created_at = NOW
    report.updated_at = NOW
    return report
