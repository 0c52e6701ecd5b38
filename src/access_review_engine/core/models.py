"""SQLAlchemy ORM models for the access review engine.

All models use the `uar_` table prefix and extend UARModel for automatic
id (UUID), created_at, and updated_at fields. Enumerated columns store the
upper-case values from core/enums.py as plain strings.

Models:
- Framework          — Review template: frequency, attestation, thresholds
- CheckCategory      — Ordered, typed check belonging to one Framework
- Application        — A reviewed system and its AI-context profile
- ApplicationRole    — Named permission grouping within an Application
- SodConflict        — Unordered pair of roles that must not be held together
- Employee           — HR roster record used for identity matching
- ReviewCycle        — One review of one Application under one Framework
- UserAccessRecord   — One imported row of a user's access snapshot
- Finding            — An issue raised against a ReviewCycle
- Report             — Metadata for a generated report artifact
- AuditLog           — Append-only record of state-changing operations

User ids (created_by_id, decided_by_id, ...) reference identities owned by
the upstream authentication provider and carry no foreign key.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from access_review_engine.core.enums import (
    AccessReviewStatus,
    AttestationType,
    BusinessCriticality,
    DataClassification,
    EmploymentStatus,
    FindingStatus,
    ReviewCycleStatus,
    ReviewFrequency,
    Severity,
)
from access_review_engine.database import UARModel


class Framework(UARModel):
    """Review template applied to review cycles.

    At most one framework is the system default. The partial unique index
    on `is_default` makes a second default row impossible; services switch
    the default inside a single transaction (clear others, then set).

    Attributes:
        name: Human-readable framework name.
        review_frequency: MONTHLY | QUARTERLY | SEMI_ANNUAL | ANNUAL.
        attestation_type: SINGLE | DUAL.
        regulatory_scope: Regulation tags this framework addresses.
        thresholds: Numeric thresholds: dormantDays, warningDays, criticalDays.
        is_default: Whether new applications fall back to this framework.
    """

    __tablename__ = "uar_frameworks"
    __table_args__ = (
        Index(
            "uq_uar_frameworks_single_default",
            "is_default",
            unique=True,
            postgresql_where=text("is_default"),
        ),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    version: Mapped[str] = mapped_column(String(50), nullable=False, default="1.0")
    is_default: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    review_frequency: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=ReviewFrequency.QUARTERLY.value,
    )
    attestation_type: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        default=AttestationType.SINGLE.value,
    )
    regulatory_scope: Mapped[list] = mapped_column(  # type: ignore[type-arg]
        JSONB,
        nullable=False,
        default=list,
    )
    thresholds: Mapped[dict] = mapped_column(  # type: ignore[type-arg]
        JSONB,
        nullable=False,
        default=dict,
        comment="Numeric thresholds: {dormantDays, warningDays, criticalDays}",
    )
    created_by_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)

    check_categories: Mapped[list["CheckCategory"]] = relationship(
        back_populates="framework",
        cascade="all, delete-orphan",
        order_by="CheckCategory.sort_order",
        lazy="selectin",
    )


class CheckCategory(UARModel):
    """A typed check belonging to one framework, ordered by sort_order."""

    __tablename__ = "uar_check_categories"

    framework_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("uar_frameworks.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    check_type: Mapped[str] = mapped_column(
        String(40),
        nullable=False,
        comment="EMPLOYMENT_STATUS | SEGREGATION_OF_DUTIES | PRIVILEGED_ACCESS | DORMANT_ACCOUNT | "
        "ACCESS_APPROPRIATENESS | ACCESS_AUTHORIZATION | CUSTOM",
    )
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    default_severity: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        default=Severity.MEDIUM.value,
    )
    severity_rules: Mapped[dict | None] = mapped_column(JSONB, nullable=True)  # type: ignore[type-arg]
    regulatory_references: Mapped[list] = mapped_column(  # type: ignore[type-arg]
        JSONB,
        nullable=False,
        default=list,
    )
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    framework: Mapped[Framework] = relationship(back_populates="check_categories")


class Application(UARModel):
    """A reviewed system.

    `profile_completeness` is derived (core/scoring.py) and recomputed on
    every create and update. Applications with review history are marked
    inactive instead of being deleted.
    """

    __tablename__ = "uar_applications"

    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    vendor: Mapped[str | None] = mapped_column(String(255), nullable=True)
    system_owner: Mapped[str | None] = mapped_column(String(255), nullable=True)
    business_unit: Mapped[str | None] = mapped_column(String(255), nullable=True)
    data_classification: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=DataClassification.INTERNAL.value,
    )
    business_criticality: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        default=BusinessCriticality.MEDIUM.value,
    )
    regulatory_scope: Mapped[list] = mapped_column(  # type: ignore[type-arg]
        JSONB,
        nullable=False,
        default=list,
    )
    purpose: Mapped[str | None] = mapped_column(Text, nullable=True)
    typical_users: Mapped[str | None] = mapped_column(Text, nullable=True)
    sensitive_functions: Mapped[str | None] = mapped_column(Text, nullable=True)
    access_request_process: Mapped[str | None] = mapped_column(Text, nullable=True)
    profile_completeness: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        comment="Weighted profile completeness score, 0-100",
    )
    framework_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("uar_frameworks.id"),
        nullable=True,
        index=True,
    )
    last_review_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    next_review_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)


class ApplicationRole(UARModel):
    """A named permission grouping within an application.

    Names are unique per application, compared case-insensitively.
    """

    __tablename__ = "uar_application_roles"
    __table_args__ = (
        Index(
            "uq_uar_application_roles_name",
            "application_id",
            text("lower(name)"),
            unique=True,
        ),
    )

    application_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("uar_applications.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_privileged: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    risk_level: Mapped[str] = mapped_column(String(10), nullable=False, default=Severity.LOW.value)


class SodConflict(UARModel):
    """Two distinct roles of one application that must not be held together.

    The pair is unordered: (A, B) and (B, A) are the same rule, enforced by
    a unique index over (application_id, least(role ids), greatest(role ids)).
    """

    __tablename__ = "uar_sod_conflicts"
    __table_args__ = (
        CheckConstraint("role1_id <> role2_id", name="ck_uar_sod_conflicts_distinct_roles"),
        Index(
            "uq_uar_sod_conflicts_role_pair",
            "application_id",
            text("least(role1_id, role2_id)"),
            text("greatest(role1_id, role2_id)"),
            unique=True,
        ),
    )

    application_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("uar_applications.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    role1_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("uar_application_roles.id", ondelete="CASCADE"),
        nullable=False,
    )
    role2_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("uar_application_roles.id", ondelete="CASCADE"),
        nullable=False,
    )
    conflict_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    severity: Mapped[str] = mapped_column(String(10), nullable=False, default=Severity.HIGH.value)


class Employee(UARModel):
    """HR roster record. Populated out of band by the HR sync."""

    __tablename__ = "uar_employees"

    employee_id: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        unique=True,
        comment="HR system employee identifier; matched against imported usernames",
    )
    email: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    first_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    full_name: Mapped[str | None] = mapped_column(String(500), nullable=True)
    job_title: Mapped[str | None] = mapped_column(String(255), nullable=True)
    department: Mapped[str | None] = mapped_column(String(255), nullable=True)
    manager_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    manager_name: Mapped[str | None] = mapped_column(String(500), nullable=True)
    employment_status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=EmploymentStatus.ACTIVE.value,
    )
    hire_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    termination_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    raw_data: Mapped[dict | None] = mapped_column(JSONB, nullable=True)  # type: ignore[type-arg]
    last_sync_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class ReviewCycle(UARModel):
    """One access review of one application under one framework.

    The finding counters are a denormalized rollup maintained by the
    finding aggregator; they are overwritten, never incremented.

    Attributes:
        status: Lifecycle state, see core/lifecycle.py for legal transitions.
        snapshot_date: When the imported access snapshot was taken.
        started_at: Stamped once on entering DATA_COLLECTION.
        completed_at: Stamped once on entering COMPLETED.
        total_findings: All findings of the cycle, whatever their status.
        critical_findings: Unresolved CRITICAL findings (likewise high/medium/low).
    """

    __tablename__ = "uar_review_cycles"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    application_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("uar_applications.id"),
        nullable=False,
        index=True,
    )
    framework_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("uar_frameworks.id"),
        nullable=False,
        index=True,
    )
    status: Mapped[str] = mapped_column(
        String(30),
        nullable=False,
        default=ReviewCycleStatus.DRAFT.value,
        index=True,
    )
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    quarter: Mapped[int | None] = mapped_column(Integer, nullable=True)
    snapshot_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    due_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    total_findings: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    critical_findings: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    high_findings: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    medium_findings: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    low_findings: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    attested_by_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)
    attested_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    attestation_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)


class UserAccessRecord(UARModel):
    """One imported row of a user's access to the reviewed application.

    Keyed by (review_cycle_id, username): re-importing a username into the
    same review replaces the earlier row.
    """

    __tablename__ = "uar_user_access_records"
    __table_args__ = (
        UniqueConstraint("review_cycle_id", "username", name="uq_uar_user_access_records_username"),
    )

    review_cycle_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("uar_review_cycles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    username: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    display_name: Mapped[str | None] = mapped_column(String(500), nullable=True)
    employee_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("uar_employees.id", ondelete="SET NULL"),
        nullable=True,
        comment="Matched roster employee; NULL when the identity could not be matched",
    )
    roles: Mapped[list] = mapped_column(  # type: ignore[type-arg]
        JSONB,
        nullable=False,
        default=list,
        comment="Role names exactly as they appeared in the source file",
    )
    last_login_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    grant_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    has_sod_conflict: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, index=True)
    has_privileged_access: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, index=True)
    is_dormant: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    sod_conflict_ids: Mapped[list] = mapped_column(  # type: ignore[type-arg]
        JSONB,
        nullable=False,
        default=list,
        comment="Ids of every SoD conflict rule this record violates",
    )
    ai_analysis_summary: Mapped[str | None] = mapped_column(Text, nullable=True)
    risk_score: Mapped[Decimal | None] = mapped_column(Numeric(5, 2), nullable=True)
    review_status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=AccessReviewStatus.PENDING.value,
    )
    review_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    raw_data: Mapped[dict | None] = mapped_column(  # type: ignore[type-arg]
        JSONB,
        nullable=True,
        comment="The raw imported row, kept as an opaque payload",
    )


class Finding(UARModel):
    """An issue raised against a review cycle.

    A decision (REMEDIATE | EXCEPTION | DISMISS) is applied at most once and
    determines the status; see core/lifecycle.py.
    """

    __tablename__ = "uar_findings"

    review_cycle_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("uar_review_cycles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_access_record_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("uar_user_access_records.id", ondelete="SET NULL"),
        nullable=True,
    )
    finding_type: Mapped[str] = mapped_column(String(30), nullable=False)
    severity: Mapped[str] = mapped_column(String(10), nullable=False, index=True)
    status: Mapped[str] = mapped_column(
        String(30),
        nullable=False,
        default=FindingStatus.OPEN.value,
        index=True,
    )
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    ai_rationale: Mapped[str | None] = mapped_column(Text, nullable=True)
    ai_confidence_score: Mapped[Decimal | None] = mapped_column(Numeric(5, 2), nullable=True)
    suggested_remediation: Mapped[str | None] = mapped_column(Text, nullable=True)
    decision: Mapped[str | None] = mapped_column(String(20), nullable=True)
    decision_justification: Mapped[str | None] = mapped_column(Text, nullable=True)
    compensating_controls: Mapped[str | None] = mapped_column(Text, nullable=True)
    remediation_due_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    remediation_ticket_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    exception_expiry_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    exception_approved_by_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)
    exception_approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    decided_by_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)
    decided_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class Report(UARModel):
    """Metadata for a generated report. No file is produced by this service."""

    __tablename__ = "uar_reports"

    review_cycle_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("uar_review_cycles.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    report_type: Mapped[str] = mapped_column(String(50), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    format: Mapped[str] = mapped_column(String(20), nullable=False)
    file_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    file_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    file_size: Mapped[int | None] = mapped_column(Integer, nullable=True)
    generated_by_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)
    generated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    report_metadata: Mapped[dict | None] = mapped_column(  # type: ignore[type-arg]
        "metadata",
        JSONB,
        nullable=True,
    )


class AuditLog(UARModel):
    """Append-only log of state-changing operations.

    Written only through AuditLogRepository.append(). There is no update or
    delete path; corrections are recorded as new entries.
    """

    __tablename__ = "uar_audit_logs"

    user_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True, index=True)
    action: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        comment="Short verb: created | updated | deleted | archived | imported | cleared | decided | "
        "status_changed",
    )
    entity_type: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    entity_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True, index=True)
    previous_values: Mapped[dict[str, Any] | None] = mapped_column(JSONB, nullable=True)
    new_values: Mapped[dict[str, Any] | None] = mapped_column(JSONB, nullable=True)
