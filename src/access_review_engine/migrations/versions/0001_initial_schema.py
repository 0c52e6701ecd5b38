"""Initial access review schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2025-06-01 00:00:00.000000
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "0001_initial_schema"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _base_columns() -> list[sa.Column]:  # type: ignore[type-arg]
    return [
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "uar_frameworks",
        *_base_columns(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("version", sa.String(50), nullable=False),
        sa.Column("is_default", sa.Boolean(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("review_frequency", sa.String(20), nullable=False),
        sa.Column("attestation_type", sa.String(10), nullable=False),
        sa.Column("regulatory_scope", postgresql.JSONB(), nullable=False),
        sa.Column(
            "thresholds",
            postgresql.JSONB(),
            nullable=False,
            comment="Numeric thresholds: {dormantDays, warningDays, criticalDays}",
        ),
        sa.Column("created_by_id", postgresql.UUID(as_uuid=True), nullable=True),
    )
    op.create_index(
        "uq_uar_frameworks_single_default",
        "uar_frameworks",
        ["is_default"],
        unique=True,
        postgresql_where=sa.text("is_default"),
    )

    op.create_table(
        "uar_check_categories",
        *_base_columns(),
        sa.Column(
            "framework_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("uar_frameworks.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column(
            "check_type",
            sa.String(40),
            nullable=False,
            comment="EMPLOYMENT_STATUS | SEGREGATION_OF_DUTIES | PRIVILEGED_ACCESS | DORMANT_ACCOUNT | "
            "ACCESS_APPROPRIATENESS | ACCESS_AUTHORIZATION | CUSTOM",
        ),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_enabled", sa.Boolean(), nullable=False),
        sa.Column("default_severity", sa.String(10), nullable=False),
        sa.Column("severity_rules", postgresql.JSONB(), nullable=True),
        sa.Column("regulatory_references", postgresql.JSONB(), nullable=False),
        sa.Column("sort_order", sa.Integer(), nullable=False),
    )
    op.create_index("ix_uar_check_categories_framework_id", "uar_check_categories", ["framework_id"])

    op.create_table(
        "uar_applications",
        *_base_columns(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("vendor", sa.String(255), nullable=True),
        sa.Column("system_owner", sa.String(255), nullable=True),
        sa.Column("business_unit", sa.String(255), nullable=True),
        sa.Column("data_classification", sa.String(20), nullable=False),
        sa.Column("business_criticality", sa.String(10), nullable=False),
        sa.Column("regulatory_scope", postgresql.JSONB(), nullable=False),
        sa.Column("purpose", sa.Text(), nullable=True),
        sa.Column("typical_users", sa.Text(), nullable=True),
        sa.Column("sensitive_functions", sa.Text(), nullable=True),
        sa.Column("access_request_process", sa.Text(), nullable=True),
        sa.Column(
            "profile_completeness",
            sa.Integer(),
            nullable=False,
            comment="Weighted profile completeness score, 0-100",
        ),
        sa.Column(
            "framework_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("uar_frameworks.id"),
            nullable=True,
        ),
        sa.Column("last_review_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("next_review_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
    )
    op.create_index("ix_uar_applications_name", "uar_applications", ["name"])
    op.create_index("ix_uar_applications_framework_id", "uar_applications", ["framework_id"])
    op.create_index("ix_uar_applications_is_active", "uar_applications", ["is_active"])

    op.create_table(
        "uar_application_roles",
        *_base_columns(),
        sa.Column(
            "application_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("uar_applications.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_privileged", sa.Boolean(), nullable=False),
        sa.Column("risk_level", sa.String(10), nullable=False),
    )
    op.create_index("ix_uar_application_roles_application_id", "uar_application_roles", ["application_id"])
    op.create_index(
        "uq_uar_application_roles_name",
        "uar_application_roles",
        ["application_id", sa.text("lower(name)")],
        unique=True,
    )

    op.create_table(
        "uar_sod_conflicts",
        *_base_columns(),
        sa.Column(
            "application_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("uar_applications.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "role1_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("uar_application_roles.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "role2_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("uar_application_roles.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("conflict_reason", sa.Text(), nullable=True),
        sa.Column("severity", sa.String(10), nullable=False),
        sa.CheckConstraint("role1_id <> role2_id", name="ck_uar_sod_conflicts_distinct_roles"),
    )
    op.create_index("ix_uar_sod_conflicts_application_id", "uar_sod_conflicts", ["application_id"])
    op.create_index(
        "uq_uar_sod_conflicts_role_pair",
        "uar_sod_conflicts",
        ["application_id", sa.text("least(role1_id, role2_id)"), sa.text("greatest(role1_id, role2_id)")],
        unique=True,
    )

    op.create_table(
        "uar_employees",
        *_base_columns(),
        sa.Column(
            "employee_id",
            sa.String(100),
            nullable=False,
            unique=True,
            comment="HR system employee identifier; matched against imported usernames",
        ),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("first_name", sa.String(255), nullable=True),
        sa.Column("last_name", sa.String(255), nullable=True),
        sa.Column("full_name", sa.String(500), nullable=True),
        sa.Column("job_title", sa.String(255), nullable=True),
        sa.Column("department", sa.String(255), nullable=True),
        sa.Column("manager_id", sa.String(100), nullable=True),
        sa.Column("manager_name", sa.String(500), nullable=True),
        sa.Column("employment_status", sa.String(20), nullable=False),
        sa.Column("hire_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("termination_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("raw_data", postgresql.JSONB(), nullable=True),
        sa.Column("last_sync_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_uar_employees_email", "uar_employees", ["email"])

    op.create_table(
        "uar_review_cycles",
        *_base_columns(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column(
            "application_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("uar_applications.id"),
            nullable=False,
        ),
        sa.Column(
            "framework_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("uar_frameworks.id"),
            nullable=False,
        ),
        sa.Column("status", sa.String(30), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("quarter", sa.Integer(), nullable=True),
        sa.Column("snapshot_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("due_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("total_findings", sa.Integer(), nullable=False),
        sa.Column("critical_findings", sa.Integer(), nullable=False),
        sa.Column("high_findings", sa.Integer(), nullable=False),
        sa.Column("medium_findings", sa.Integer(), nullable=False),
        sa.Column("low_findings", sa.Integer(), nullable=False),
        sa.Column("attested_by_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("attested_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("attestation_notes", sa.Text(), nullable=True),
        sa.Column("created_by_id", postgresql.UUID(as_uuid=True), nullable=True),
    )
    op.create_index("ix_uar_review_cycles_application_id", "uar_review_cycles", ["application_id"])
    op.create_index("ix_uar_review_cycles_framework_id", "uar_review_cycles", ["framework_id"])
    op.create_index("ix_uar_review_cycles_status", "uar_review_cycles", ["status"])

    op.create_table(
        "uar_user_access_records",
        *_base_columns(),
        sa.Column(
            "review_cycle_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("uar_review_cycles.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("username", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("display_name", sa.String(500), nullable=True),
        sa.Column(
            "employee_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("uar_employees.id", ondelete="SET NULL"),
            nullable=True,
            comment="Matched roster employee; NULL when the identity could not be matched",
        ),
        sa.Column(
            "roles",
            postgresql.JSONB(),
            nullable=False,
            comment="Role names exactly as they appeared in the source file",
        ),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("grant_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("has_sod_conflict", sa.Boolean(), nullable=False),
        sa.Column("has_privileged_access", sa.Boolean(), nullable=False),
        sa.Column("is_dormant", sa.Boolean(), nullable=False),
        sa.Column(
            "sod_conflict_ids",
            postgresql.JSONB(),
            nullable=False,
            comment="Ids of every SoD conflict rule this record violates",
        ),
        sa.Column("ai_analysis_summary", sa.Text(), nullable=True),
        sa.Column("risk_score", sa.Numeric(5, 2), nullable=True),
        sa.Column("review_status", sa.String(20), nullable=False),
        sa.Column("review_notes", sa.Text(), nullable=True),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "raw_data",
            postgresql.JSONB(),
            nullable=True,
            comment="The raw imported row, kept as an opaque payload",
        ),
        sa.UniqueConstraint("review_cycle_id", "username", name="uq_uar_user_access_records_username"),
    )
    op.create_index("ix_uar_user_access_records_review_cycle_id", "uar_user_access_records", ["review_cycle_id"])
    op.create_index(
        "ix_uar_user_access_records_has_sod_conflict",
        "uar_user_access_records",
        ["has_sod_conflict"],
    )
    op.create_index(
        "ix_uar_user_access_records_has_privileged_access",
        "uar_user_access_records",
        ["has_privileged_access"],
    )

    op.create_table(
        "uar_findings",
        *_base_columns(),
        sa.Column(
            "review_cycle_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("uar_review_cycles.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "user_access_record_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("uar_user_access_records.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("finding_type", sa.String(30), nullable=False),
        sa.Column("severity", sa.String(10), nullable=False),
        sa.Column("status", sa.String(30), nullable=False),
        sa.Column("title", sa.String(500), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("ai_rationale", sa.Text(), nullable=True),
        sa.Column("ai_confidence_score", sa.Numeric(5, 2), nullable=True),
        sa.Column("suggested_remediation", sa.Text(), nullable=True),
        sa.Column("decision", sa.String(20), nullable=True),
        sa.Column("decision_justification", sa.Text(), nullable=True),
        sa.Column("compensating_controls", sa.Text(), nullable=True),
        sa.Column("remediation_due_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("remediation_ticket_id", sa.String(100), nullable=True),
        sa.Column("exception_expiry_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("exception_approved_by_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("exception_approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("decided_by_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("decided_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_uar_findings_review_cycle_id", "uar_findings", ["review_cycle_id"])
    op.create_index("ix_uar_findings_severity", "uar_findings", ["severity"])
    op.create_index("ix_uar_findings_status", "uar_findings", ["status"])

    op.create_table(
        "uar_reports",
        *_base_columns(),
        sa.Column(
            "review_cycle_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("uar_review_cycles.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("report_type", sa.String(50), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("format", sa.String(20), nullable=False),
        sa.Column("file_url", sa.Text(), nullable=True),
        sa.Column("file_name", sa.String(255), nullable=True),
        sa.Column("file_size", sa.Integer(), nullable=True),
        sa.Column("generated_by_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("generated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("metadata", postgresql.JSONB(), nullable=True),
    )
    op.create_index("ix_uar_reports_review_cycle_id", "uar_reports", ["review_cycle_id"])

    op.create_table(
        "uar_audit_logs",
        *_base_columns(),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column(
            "action",
            sa.String(50),
            nullable=False,
            comment="Short verb: created | updated | deleted | archived | imported | cleared | decided | "
            "status_changed",
        ),
        sa.Column("entity_type", sa.String(100), nullable=False),
        sa.Column("entity_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("previous_values", postgresql.JSONB(), nullable=True),
        sa.Column("new_values", postgresql.JSONB(), nullable=True),
    )
    op.create_index("ix_uar_audit_logs_user_id", "uar_audit_logs", ["user_id"])
    op.create_index("ix_uar_audit_logs_entity_type", "uar_audit_logs", ["entity_type"])
    op.create_index("ix_uar_audit_logs_entity_id", "uar_audit_logs", ["entity_id"])


def downgrade() -> None:
    op.drop_table("uar_audit_logs")
    op.drop_table("uar_reports")
    op.drop_table("uar_findings")
    op.drop_table("uar_user_access_records")
    op.drop_table("uar_review_cycles")
    op.drop_table("uar_employees")
    op.drop_table("uar_sod_conflicts")
    op.drop_table("uar_application_roles")
    op.drop_table("uar_applications")
    op.drop_table("uar_check_categories")
    op.drop_table("uar_frameworks")
