"""Tests for core business logic services.

Tests the import pipeline, finding decisions and aggregation, the review
cycle lifecycle, and the catalog services (applications, roles, SoD
conflicts, frameworks). Uses mock repositories throughout.
"""

import uuid
from datetime import UTC, date, datetime, timedelta
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from access_review_engine.api.schemas import (
    AccessRecordImportRow,
    ApplicationCreateRequest,
    ApplicationUpdateRequest,
    CheckCategoryCreateRequest,
    CheckCategoryUpdateRequest,
    FindingCreateRequest,
    FindingDecisionRequest,
    FindingStatusUpdateRequest,
    FrameworkCreateRequest,
    FrameworkUpdateRequest,
    ReportCreateRequest,
    ReviewCycleCreateRequest,
    ReviewCycleUpdateRequest,
    RoleCreateRequest,
    RoleUpdateRequest,
    SodConflictCreateRequest,
)
from access_review_engine.core.aggregation import FindingCounts
from access_review_engine.core.services import (
    AccessImportService,
    ApplicationService,
    AuditService,
    DashboardService,
    FindingService,
    FrameworkService,
    ReportService,
    ReviewCycleService,
    RoleService,
    SodConflictService,
)
from access_review_engine.errors import InvalidStateError, NotFoundError, PartialImportError, ValidationError
from tests.conftest import (
    NOW,
    apply_update,
    make_fake_access_record,
    make_fake_application,
    make_fake_check_category,
    make_fake_conflict,
    make_fake_employee,
    make_fake_finding,
    make_fake_framework,
    make_fake_report,
    make_fake_review_cycle,
    make_fake_role,
)


def _clock() -> datetime:
    return NOW


# ---------------------------------------------------------------------------
# AuditService tests
# ---------------------------------------------------------------------------


class TestAuditService:
    """Tests for AuditService — append-only audit log writes."""

    @pytest.mark.asyncio()
    async def test_record_serialises_values(self, mock_audit_repo: AsyncMock, actor_id: uuid.UUID) -> None:
        """UUIDs and datetimes are stored as JSON-compatible strings."""
        entity_id = uuid.uuid4()
        service = AuditService(mock_audit_repo)

        await service.record(
            user_id=actor_id,
            action="updated",
            entity_type="review_cycle",
            entity_id=entity_id,
            previous_values={"status": "DRAFT"},
            new_values={"framework_id": entity_id, "started_at": NOW},
        )

        kwargs = mock_audit_repo.append.call_args.kwargs
        assert kwargs["user_id"] == actor_id
        assert kwargs["entity_id"] == entity_id
        assert kwargs["previous_values"] == {"status": "DRAFT"}
        assert kwargs["new_values"]["framework_id"] == str(entity_id)
        assert isinstance(kwargs["new_values"]["started_at"], str)

    @pytest.mark.asyncio()
    async def test_record_without_values(self, mock_audit_repo: AsyncMock, actor_id: uuid.UUID) -> None:
        service = AuditService(mock_audit_repo)

        await service.record(user_id=actor_id, action="deleted", entity_type="role", entity_id=None)

        kwargs = mock_audit_repo.append.call_args.kwargs
        assert kwargs["previous_values"] is None
        assert kwargs["new_values"] is None


# ---------------------------------------------------------------------------
# AccessImportService tests
# ---------------------------------------------------------------------------


class TestAccessImportService:
    """Tests for the access record import pipeline."""

    def _make_service(
        self,
        cycle: MagicMock,
        framework: MagicMock,
        roles: list[MagicMock] | None = None,
        conflicts: list[MagicMock] | None = None,
        employees: list[MagicMock] | None = None,
        access_record_repo: AsyncMock | None = None,
        audit_service: AsyncMock | None = None,
        **kwargs: Any,
    ) -> tuple[AccessImportService, AsyncMock, AsyncMock]:
        """Construct an AccessImportService over mock repositories.

        Returns:
            The service, the review cycle repo mock and the access record repo mock.
        """
        review_cycle_repo = AsyncMock()
        review_cycle_repo.get_by_id.return_value = cycle
        review_cycle_repo.update.side_effect = apply_update

        framework_repo = AsyncMock()
        framework_repo.get_by_id.return_value = framework
        employee_repo = AsyncMock()
        employee_repo.list_all.return_value = employees or []
        role_repo = AsyncMock()
        role_repo.list_for_application.return_value = roles or []
        conflict_repo = AsyncMock()
        conflict_repo.list_for_application.return_value = conflicts or []

        access_record_repo = access_record_repo or AsyncMock()
        service = AccessImportService(
            review_cycle_repo=review_cycle_repo,
            framework_repo=framework_repo,
            employee_repo=employee_repo,
            role_repo=role_repo,
            conflict_repo=conflict_repo,
            access_record_repo=access_record_repo,
            audit_service=audit_service or AsyncMock(),
            clock=_clock,
            **kwargs,
        )
        return service, review_cycle_repo, access_record_repo

    @pytest.mark.asyncio()
    async def test_wire_roles_with_stale_login_are_tagged(
        self,
        application_id: uuid.UUID,
        framework_id: uuid.UUID,
        actor_id: uuid.UUID,
    ) -> None:
        """jdoe holding both wire roles with a 2024-01-01 login gets SoD, privileged and dormant flags."""
        framework = make_fake_framework(framework_id=framework_id)
        cycle = make_fake_review_cycle(application_id, framework_id, status="DRAFT")
        initiator = make_fake_role(application_id, "Wire Initiator")
        approver = make_fake_role(application_id, "Wire Approver", is_privileged=True)
        conflict = make_fake_conflict(application_id, initiator.id, approver.id)
        jdoe = make_fake_employee("E100", email="jdoe@co.com")

        service, review_cycle_repo, access_record_repo = self._make_service(
            cycle,
            framework,
            roles=[initiator, approver],
            conflicts=[conflict],
            employees=[jdoe],
        )

        result = await service.import_access_records(
            cycle.id,
            [
                AccessRecordImportRow(
                    username="jdoe",
                    email="jdoe@co.com",
                    roles=["Wire Initiator", "Wire Approver"],
                    last_login_at="2024-01-01",
                )
            ],
            actor_id=actor_id,
        )

        assert (result.imported, result.matched, result.unmatched, result.errors) == (1, 1, 0, 0)

        upsert_review_id, values = access_record_repo.upsert.call_args.args
        assert upsert_review_id == cycle.id
        assert values["employee_id"] == jdoe.id
        assert values["has_sod_conflict"] is True
        assert values["has_privileged_access"] is True
        assert values["is_dormant"] is True
        assert values["sod_conflict_ids"] == [str(conflict.id)]
        assert values["last_login_at"] == datetime(2024, 1, 1, tzinfo=UTC)
        assert values["review_status"] == "PENDING"

    @pytest.mark.asyncio()
    async def test_first_import_moves_draft_to_data_collection(
        self,
        application_id: uuid.UUID,
        framework_id: uuid.UUID,
        actor_id: uuid.UUID,
    ) -> None:
        cycle = make_fake_review_cycle(application_id, framework_id, status="DRAFT")
        service, review_cycle_repo, _ = self._make_service(cycle, make_fake_framework(framework_id=framework_id))

        await service.import_access_records(cycle.id, [AccessRecordImportRow(username="bsmith")], actor_id=actor_id)

        assert cycle.status == "DATA_COLLECTION"
        assert cycle.started_at == NOW
        assert cycle.snapshot_date == NOW
        review_cycle_repo.update.assert_awaited_once()

    @pytest.mark.asyncio()
    async def test_unmatched_identity_is_imported_unmatched(
        self,
        application_id: uuid.UUID,
        framework_id: uuid.UUID,
        actor_id: uuid.UUID,
    ) -> None:
        cycle = make_fake_review_cycle(application_id, framework_id, status="DATA_COLLECTION")
        service, review_cycle_repo, access_record_repo = self._make_service(
            cycle,
            make_fake_framework(framework_id=framework_id),
            employees=[make_fake_employee("E1", email="someone@co.com")],
        )

        result = await service.import_access_records(
            cycle.id,
            [AccessRecordImportRow(username="ghost", email="ghost@co.com")],
            actor_id=actor_id,
        )

        assert (result.imported, result.matched, result.unmatched) == (1, 0, 1)
        assert access_record_repo.upsert.call_args.args[1]["employee_id"] is None
        review_cycle_repo.update.assert_not_awaited()

    @pytest.mark.asyncio()
    async def test_failing_record_does_not_stop_the_import(
        self,
        application_id: uuid.UUID,
        framework_id: uuid.UUID,
        actor_id: uuid.UUID,
    ) -> None:
        """A database rejection and a bad date each fail only their own row."""
        cycle = make_fake_review_cycle(application_id, framework_id, status="DATA_COLLECTION")
        access_record_repo = AsyncMock()

        async def _upsert(review_cycle_id: uuid.UUID, values: dict[str, Any]) -> MagicMock:
            if values["username"] == "broken":
                raise PartialImportError(record="broken", error="value too long")
            return make_fake_access_record(review_cycle_id, values["username"])

        access_record_repo.upsert.side_effect = _upsert
        service, _, _ = self._make_service(
            cycle,
            make_fake_framework(framework_id=framework_id),
            access_record_repo=access_record_repo,
        )

        result = await service.import_access_records(
            cycle.id,
            [
                AccessRecordImportRow(username="alice"),
                AccessRecordImportRow(username="broken"),
                AccessRecordImportRow(username="baddate", last_login_at="last tuesday"),
                AccessRecordImportRow(username="carol"),
            ],
            actor_id=actor_id,
        )

        assert result.imported == 2
        assert result.errors == 2
        assert [d.record for d in result.error_details] == ["broken", "baddate"]
        assert "lastLoginAt" in result.error_details[1].error

    @pytest.mark.asyncio()
    async def test_error_details_are_capped(
        self,
        application_id: uuid.UUID,
        framework_id: uuid.UUID,
        actor_id: uuid.UUID,
    ) -> None:
        cycle = make_fake_review_cycle(application_id, framework_id, status="DATA_COLLECTION")
        service, _, _ = self._make_service(
            cycle,
            make_fake_framework(framework_id=framework_id),
            error_detail_limit=2,
        )
        rows = [AccessRecordImportRow(username=f"user{i}", grant_date="not-a-date") for i in range(5)]

        result = await service.import_access_records(cycle.id, rows, actor_id=actor_id)

        assert result.errors == 5
        assert len(result.error_details) == 2

    @pytest.mark.asyncio()
    async def test_nothing_imported_keeps_draft(
        self,
        application_id: uuid.UUID,
        framework_id: uuid.UUID,
        actor_id: uuid.UUID,
    ) -> None:
        cycle = make_fake_review_cycle(application_id, framework_id, status="DRAFT")
        service, review_cycle_repo, _ = self._make_service(cycle, make_fake_framework(framework_id=framework_id))

        result = await service.import_access_records(
            cycle.id,
            [AccessRecordImportRow(username="x", last_login_at="13/45/2024")],
            actor_id=actor_id,
        )

        assert result.imported == 0
        assert cycle.status == "DRAFT"
        review_cycle_repo.update.assert_not_awaited()

    @pytest.mark.asyncio()
    async def test_framework_dormancy_threshold_is_used(
        self,
        application_id: uuid.UUID,
        framework_id: uuid.UUID,
        actor_id: uuid.UUID,
    ) -> None:
        cycle = make_fake_review_cycle(application_id, framework_id, status="DATA_COLLECTION")
        framework = make_fake_framework(framework_id=framework_id, thresholds={"dormantDays": 30})
        service, _, access_record_repo = self._make_service(cycle, framework)
        last_login = (NOW - timedelta(days=45)).isoformat()

        await service.import_access_records(
            cycle.id,
            [AccessRecordImportRow(username="jdoe", last_login_at=last_login)],
            actor_id=actor_id,
        )

        assert access_record_repo.upsert.call_args.args[1]["is_dormant"] is True

    @pytest.mark.asyncio()
    async def test_default_threshold_when_framework_sets_none(
        self,
        application_id: uuid.UUID,
        framework_id: uuid.UUID,
        actor_id: uuid.UUID,
    ) -> None:
        cycle = make_fake_review_cycle(application_id, framework_id, status="DATA_COLLECTION")
        framework = make_fake_framework(framework_id=framework_id, thresholds={})
        service, _, access_record_repo = self._make_service(cycle, framework, default_dormant_days=60)
        last_login = (NOW - timedelta(days=70)).isoformat()

        await service.import_access_records(
            cycle.id,
            [AccessRecordImportRow(username="jdoe", last_login_at=last_login)],
            actor_id=actor_id,
        )

        assert access_record_repo.upsert.call_args.args[1]["is_dormant"] is True

    @pytest.mark.asyncio()
    async def test_import_rejected_after_data_collection(
        self,
        application_id: uuid.UUID,
        framework_id: uuid.UUID,
        actor_id: uuid.UUID,
    ) -> None:
        cycle = make_fake_review_cycle(application_id, framework_id, status="IN_REVIEW")
        service, _, access_record_repo = self._make_service(cycle, make_fake_framework(framework_id=framework_id))

        with pytest.raises(InvalidStateError):
            await service.import_access_records(cycle.id, [AccessRecordImportRow(username="a")], actor_id=actor_id)

        access_record_repo.upsert.assert_not_awaited()

    @pytest.mark.asyncio()
    async def test_too_many_records_rejected(
        self,
        application_id: uuid.UUID,
        framework_id: uuid.UUID,
        actor_id: uuid.UUID,
    ) -> None:
        cycle = make_fake_review_cycle(application_id, framework_id, status="DRAFT")
        service, _, _ = self._make_service(cycle, make_fake_framework(framework_id=framework_id), max_records=1)

        with pytest.raises(ValidationError):
            await service.import_access_records(
                cycle.id,
                [AccessRecordImportRow(username="a"), AccessRecordImportRow(username="b")],
                actor_id=actor_id,
            )

    @pytest.mark.asyncio()
    async def test_import_is_audited(
        self,
        application_id: uuid.UUID,
        framework_id: uuid.UUID,
        actor_id: uuid.UUID,
        mock_audit_service: AsyncMock,
    ) -> None:
        cycle = make_fake_review_cycle(application_id, framework_id, status="DRAFT")
        service, _, _ = self._make_service(
            cycle,
            make_fake_framework(framework_id=framework_id),
            audit_service=mock_audit_service,
        )

        await service.import_access_records(cycle.id, [AccessRecordImportRow(username="a")], actor_id=actor_id)

        kwargs = mock_audit_service.record.call_args.kwargs
        assert kwargs["action"] == "imported"
        assert kwargs["previous_values"] == {"status": "DRAFT"}
        assert kwargs["new_values"]["imported"] == 1

    @pytest.mark.asyncio()
    async def test_repeated_username_is_imported_once_with_last_row(
        self,
        application_id: uuid.UUID,
        framework_id: uuid.UUID,
        actor_id: uuid.UUID,
    ) -> None:
        cycle = make_fake_review_cycle(application_id, framework_id, status="DATA_COLLECTION")
        jdoe = make_fake_employee("E100", email="jdoe@co.com")
        service, _, access_record_repo = self._make_service(
            cycle,
            make_fake_framework(framework_id=framework_id),
            employees=[jdoe],
        )

        result = await service.import_access_records(
            cycle.id,
            [
                AccessRecordImportRow(username="jdoe", roles=["Teller"]),
                AccessRecordImportRow(username="bsmith"),
                AccessRecordImportRow(username=" jdoe ", email="jdoe@co.com", roles=["Wire Initiator"]),
            ],
            actor_id=actor_id,
        )

        assert (result.imported, result.matched, result.unmatched, result.errors) == (2, 1, 1, 0)
        assert access_record_repo.upsert.await_count == 2
        upserted = [call.args[1] for call in access_record_repo.upsert.call_args_list]
        assert [values["username"] for values in upserted] == ["jdoe", "bsmith"]
        assert upserted[0]["roles"] == ["Wire Initiator"]
        assert upserted[0]["employee_id"] == jdoe.id

    @pytest.mark.asyncio()
    async def test_each_blank_username_reports_its_own_error(
        self,
        application_id: uuid.UUID,
        framework_id: uuid.UUID,
        actor_id: uuid.UUID,
    ) -> None:
        cycle = make_fake_review_cycle(application_id, framework_id, status="DATA_COLLECTION")
        service, _, access_record_repo = self._make_service(cycle, make_fake_framework(framework_id=framework_id))

        result = await service.import_access_records(
            cycle.id,
            [AccessRecordImportRow(username="  "), AccessRecordImportRow(username=" ")],
            actor_id=actor_id,
        )

        assert (result.imported, result.errors) == (0, 2)
        access_record_repo.upsert.assert_not_awaited()


# ---------------------------------------------------------------------------
# FindingService tests
# ---------------------------------------------------------------------------


class TestFindingService:
    """Tests for FindingService — decisions and count aggregation."""

    def _make_service(
        self,
        finding: MagicMock | None = None,
        counts_rows: list[tuple[str, str, int]] | None = None,
        cycle: MagicMock | None = None,
        record_in_review: bool = True,
    ) -> tuple[FindingService, AsyncMock, AsyncMock]:
        finding_repo = AsyncMock()
        finding_repo.get_by_id.return_value = finding
        finding_repo.update.side_effect = apply_update
        finding_repo.severity_status_counts.return_value = counts_rows or []

        review_cycle_repo = AsyncMock()
        review_cycle_repo.get_by_id.return_value = cycle
        access_record_repo = AsyncMock()
        access_record_repo.exists_in_review.return_value = record_in_review

        service = FindingService(
            finding_repo=finding_repo,
            review_cycle_repo=review_cycle_repo,
            access_record_repo=access_record_repo,
            audit_service=AsyncMock(),
            clock=_clock,
        )
        return service, finding_repo, review_cycle_repo

    @pytest.mark.asyncio()
    async def test_exception_decision_approves_exception(self, actor_id: uuid.UUID) -> None:
        """EXCEPTION with compensating controls sets EXCEPTION_APPROVED and stamps the approver."""
        review_cycle_id = uuid.uuid4()
        finding = make_fake_finding(review_cycle_id, severity="HIGH", status="OPEN")
        service, _, review_cycle_repo = self._make_service(
            finding=finding,
            counts_rows=[("HIGH", "EXCEPTION_APPROVED", 1)],
        )

        response = await service.decide_finding(
            finding.id,
            FindingDecisionRequest(
                decision="EXCEPTION",
                decision_justification="Business need confirmed by CFO",
                compensating_controls="Daily wire reconciliation by Treasury",
                exception_expiry_date=date(2025, 12, 31),
            ),
            actor_id=actor_id,
        )

        assert response.status == "EXCEPTION_APPROVED"
        assert response.decision == "EXCEPTION"
        assert response.exception_approved_at == NOW
        assert response.exception_approved_by_id == actor_id
        assert response.decided_by_id == actor_id
        assert response.exception_expiry_date == datetime(2025, 12, 31, tzinfo=UTC)
        review_cycle_repo.set_finding_counts.assert_awaited_once_with(
            review_cycle_id,
            FindingCounts(total=1, high=1),
        )

    @pytest.mark.asyncio()
    async def test_exception_requires_compensating_controls(self, actor_id: uuid.UUID) -> None:
        finding = make_fake_finding(uuid.uuid4())
        service, finding_repo, _ = self._make_service(finding=finding)

        with pytest.raises(ValidationError) as exc_info:
            await service.decide_finding(
                finding.id,
                FindingDecisionRequest(decision="EXCEPTION", decision_justification="ok", compensating_controls="  "),
                actor_id=actor_id,
            )

        assert exc_info.value.field == "compensatingControls"
        finding_repo.update.assert_not_awaited()

    @pytest.mark.asyncio()
    async def test_remediate_decision(self, actor_id: uuid.UUID) -> None:
        finding = make_fake_finding(uuid.uuid4(), status="IN_REVIEW")
        service, _, _ = self._make_service(finding=finding)

        response = await service.decide_finding(
            finding.id,
            FindingDecisionRequest(
                decision="REMEDIATE",
                decision_justification="Access no longer required",
                remediation_due_date=date(2025, 7, 1),
                remediation_ticket_id="CHG-1042",
            ),
            actor_id=actor_id,
        )

        assert response.status == "PENDING_REMEDIATION"
        assert response.remediation_due_date == datetime(2025, 7, 1, tzinfo=UTC)
        assert response.remediation_ticket_id == "CHG-1042"
        assert response.exception_approved_at is None

    @pytest.mark.asyncio()
    async def test_dismiss_decision(self, actor_id: uuid.UUID) -> None:
        finding = make_fake_finding(uuid.uuid4())
        service, _, _ = self._make_service(finding=finding)

        response = await service.decide_finding(
            finding.id,
            FindingDecisionRequest(decision="DISMISS", decision_justification="False positive"),
            actor_id=actor_id,
        )

        assert response.status == "DISMISSED"
        assert response.decided_at == NOW

    @pytest.mark.asyncio()
    async def test_second_decision_is_rejected(self, actor_id: uuid.UUID) -> None:
        finding = make_fake_finding(uuid.uuid4(), status="DISMISSED")
        service, finding_repo, _ = self._make_service(finding=finding)

        with pytest.raises(InvalidStateError):
            await service.decide_finding(
                finding.id,
                FindingDecisionRequest(decision="REMEDIATE", decision_justification="Changed my mind"),
                actor_id=actor_id,
            )

        finding_repo.update.assert_not_awaited()

    @pytest.mark.asyncio()
    async def test_recalculate_counts_writes_review_counters(self) -> None:
        review_cycle_id = uuid.uuid4()
        service, _, review_cycle_repo = self._make_service(
            counts_rows=[("CRITICAL", "OPEN", 2), ("LOW", "REMEDIATED", 3), ("MEDIUM", "PENDING_REMEDIATION", 1)],
        )

        counts = await service.recalculate_counts(review_cycle_id)

        assert counts == FindingCounts(total=6, critical=2, medium=1)
        review_cycle_repo.set_finding_counts.assert_awaited_once_with(review_cycle_id, counts)

    @pytest.mark.asyncio()
    async def test_create_finding_opens_and_recounts(self, actor_id: uuid.UUID) -> None:
        cycle = make_fake_review_cycle(uuid.uuid4(), uuid.uuid4(), status="IN_REVIEW")
        created = make_fake_finding(cycle.id, severity="CRITICAL")
        service, finding_repo, review_cycle_repo = self._make_service(
            cycle=cycle,
            counts_rows=[("CRITICAL", "OPEN", 1)],
        )
        finding_repo.create.return_value = created

        response = await service.create_finding(
            FindingCreateRequest(
                review_cycle_id=cycle.id,
                user_access_record_id=uuid.uuid4(),
                finding_type="SOD_CONFLICT",
                severity="CRITICAL",
                title="jdoe can initiate and approve wires",
            ),
            actor_id=actor_id,
        )

        assert response.id == created.id
        assert finding_repo.create.call_args.args[0]["status"] == "OPEN"
        review_cycle_repo.set_finding_counts.assert_awaited_once_with(cycle.id, FindingCounts(total=1, critical=1))

    @pytest.mark.asyncio()
    async def test_create_finding_rejects_record_from_another_review(self, actor_id: uuid.UUID) -> None:
        cycle = make_fake_review_cycle(uuid.uuid4(), uuid.uuid4())
        service, finding_repo, _ = self._make_service(cycle=cycle, record_in_review=False)

        with pytest.raises(ValidationError):
            await service.create_finding(
                FindingCreateRequest(
                    review_cycle_id=cycle.id,
                    user_access_record_id=uuid.uuid4(),
                    finding_type="OTHER",
                    severity="LOW",
                    title="x",
                ),
                actor_id=actor_id,
            )

        finding_repo.create.assert_not_awaited()

    @pytest.mark.asyncio()
    async def test_list_findings_includes_stats(self) -> None:
        review_cycle_id = uuid.uuid4()
        service, finding_repo, _ = self._make_service()
        finding_repo.list_all.return_value = [
            make_fake_finding(review_cycle_id, severity="HIGH", status="OPEN"),
            make_fake_finding(review_cycle_id, severity="HIGH", status="DISMISSED"),
            make_fake_finding(review_cycle_id, severity="LOW", status="OPEN"),
        ]

        response = await service.list_findings(review_cycle_id=review_cycle_id)

        assert response.stats.total == 3
        assert response.stats.by_status == {"OPEN": 2, "DISMISSED": 1}
        assert response.stats.by_severity == {"HIGH": 2, "LOW": 1}

    @pytest.mark.asyncio()
    async def test_remediated_finding_drops_out_of_severity_counts(self, actor_id: uuid.UUID) -> None:
        review_cycle_id = uuid.uuid4()
        finding = make_fake_finding(review_cycle_id, severity="CRITICAL", status="PENDING_REMEDIATION")
        service, finding_repo, review_cycle_repo = self._make_service(
            finding=finding,
            counts_rows=[("CRITICAL", "REMEDIATED", 1), ("HIGH", "OPEN", 1)],
        )

        response = await service.update_finding_status(
            finding.id,
            FindingStatusUpdateRequest(status="REMEDIATED"),
            actor_id=actor_id,
        )

        assert response.status == "REMEDIATED"
        finding_repo.update.assert_awaited_once_with(finding, {"status": "REMEDIATED"})
        review_cycle_repo.set_finding_counts.assert_awaited_once_with(
            review_cycle_id,
            FindingCounts(total=2, high=1),
        )

    @pytest.mark.asyncio()
    async def test_in_review_finding_can_still_be_decided(self, actor_id: uuid.UUID) -> None:
        finding = make_fake_finding(uuid.uuid4(), status="OPEN")
        service, _, _ = self._make_service(finding=finding)

        await service.update_finding_status(finding.id, FindingStatusUpdateRequest(status="IN_REVIEW"), actor_id=actor_id)
        response = await service.decide_finding(
            finding.id,
            FindingDecisionRequest(decision="DISMISS", decision_justification="Access already revoked"),
            actor_id=actor_id,
        )

        assert response.status == "DISMISSED"

    @pytest.mark.asyncio()
    async def test_decided_finding_can_be_closed(self, actor_id: uuid.UUID) -> None:
        finding = make_fake_finding(uuid.uuid4(), status="EXCEPTION_APPROVED")
        service, _, _ = self._make_service(finding=finding)

        response = await service.update_finding_status(
            finding.id,
            FindingStatusUpdateRequest(status="CLOSED"),
            actor_id=actor_id,
        )

        assert response.status == "CLOSED"

    @pytest.mark.parametrize(
        ("current", "target"),
        [
            ("OPEN", "REMEDIATED"),
            ("OPEN", "DISMISSED"),
            ("IN_REVIEW", "PENDING_REMEDIATION"),
            ("CLOSED", "OPEN"),
        ],
    )
    @pytest.mark.asyncio()
    async def test_disallowed_status_change_is_rejected(self, current: str, target: str, actor_id: uuid.UUID) -> None:
        finding = make_fake_finding(uuid.uuid4(), status=current)
        service, finding_repo, review_cycle_repo = self._make_service(finding=finding)

        with pytest.raises(InvalidStateError):
            await service.update_finding_status(finding.id, FindingStatusUpdateRequest(status=target), actor_id=actor_id)

        finding_repo.update.assert_not_awaited()
        review_cycle_repo.set_finding_counts.assert_not_awaited()


# ---------------------------------------------------------------------------
# ReviewCycleService tests
# ---------------------------------------------------------------------------


class TestReviewCycleService:
    """Tests for ReviewCycleService — lifecycle and access record management."""

    def _make_service(
        self,
        cycle: MagicMock | None = None,
        application: MagicMock | None = None,
        default_framework: MagicMock | None = None,
    ) -> tuple[ReviewCycleService, dict[str, AsyncMock]]:
        repos = {
            "review_cycle_repo": AsyncMock(),
            "application_repo": AsyncMock(),
            "framework_repo": AsyncMock(),
            "access_record_repo": AsyncMock(),
            "finding_repo": AsyncMock(),
        }
        repos["review_cycle_repo"].get_by_id.return_value = cycle
        repos["review_cycle_repo"].update.side_effect = apply_update
        repos["application_repo"].get_by_id.return_value = application
        repos["framework_repo"].get_default.return_value = default_framework
        service = ReviewCycleService(audit_service=AsyncMock(), clock=_clock, **repos)
        return service, repos

    @pytest.mark.asyncio()
    async def test_create_uses_application_framework(
        self,
        application_id: uuid.UUID,
        framework_id: uuid.UUID,
        actor_id: uuid.UUID,
    ) -> None:
        application = make_fake_application(application_id=application_id, framework_id=framework_id)
        service, repos = self._make_service(application=application)
        repos["review_cycle_repo"].create.return_value = make_fake_review_cycle(application_id, framework_id)

        response = await service.create_review_cycle(
            ReviewCycleCreateRequest(name="Q2", application_id=application_id, year=2025, quarter=2),
            actor_id=actor_id,
        )

        values = repos["review_cycle_repo"].create.call_args.args[0]
        assert values["framework_id"] == framework_id
        assert values["status"] == "DRAFT"
        assert response.progress == 5

    @pytest.mark.asyncio()
    async def test_create_falls_back_to_default_framework(
        self,
        application_id: uuid.UUID,
        actor_id: uuid.UUID,
    ) -> None:
        default = make_fake_framework(is_default=True)
        application = make_fake_application(application_id=application_id, framework_id=None)
        service, repos = self._make_service(application=application, default_framework=default)
        repos["review_cycle_repo"].create.return_value = make_fake_review_cycle(application_id, default.id)

        await service.create_review_cycle(
            ReviewCycleCreateRequest(name="Q2", application_id=application_id, year=2025),
            actor_id=actor_id,
        )

        assert repos["review_cycle_repo"].create.call_args.args[0]["framework_id"] == default.id

    @pytest.mark.asyncio()
    async def test_create_without_any_framework_fails(self, application_id: uuid.UUID, actor_id: uuid.UUID) -> None:
        application = make_fake_application(application_id=application_id, framework_id=None)
        service, repos = self._make_service(application=application, default_framework=None)

        with pytest.raises(ValidationError) as exc_info:
            await service.create_review_cycle(
                ReviewCycleCreateRequest(name="Q2", application_id=application_id, year=2025),
                actor_id=actor_id,
            )

        assert exc_info.value.field == "frameworkId"
        repos["review_cycle_repo"].create.assert_not_awaited()

    @pytest.mark.asyncio()
    async def test_illegal_status_change_is_rejected(
        self,
        application_id: uuid.UUID,
        framework_id: uuid.UUID,
        actor_id: uuid.UUID,
    ) -> None:
        cycle = make_fake_review_cycle(application_id, framework_id, status="DRAFT")
        service, repos = self._make_service(cycle=cycle)

        with pytest.raises(InvalidStateError):
            await service.update_review_cycle(
                cycle.id,
                ReviewCycleUpdateRequest(status="COMPLETED"),
                actor_id=actor_id,
            )

        assert cycle.status == "DRAFT"
        repos["review_cycle_repo"].update.assert_not_awaited()

    @pytest.mark.asyncio()
    async def test_completing_stamps_completed_at(
        self,
        application_id: uuid.UUID,
        framework_id: uuid.UUID,
        actor_id: uuid.UUID,
    ) -> None:
        cycle = make_fake_review_cycle(application_id, framework_id, status="PENDING_ATTESTATION")
        service, _ = self._make_service(cycle=cycle)

        response = await service.update_review_cycle(
            cycle.id,
            ReviewCycleUpdateRequest(status="COMPLETED", attestation_notes="Attested by ISO"),
            actor_id=actor_id,
        )

        assert response.status == "COMPLETED"
        assert response.completed_at == NOW
        assert response.attestation_notes == "Attested by ISO"
        assert response.progress == 100

    @pytest.mark.asyncio()
    async def test_update_without_status_keeps_status(
        self,
        application_id: uuid.UUID,
        framework_id: uuid.UUID,
        actor_id: uuid.UUID,
    ) -> None:
        cycle = make_fake_review_cycle(application_id, framework_id, status="IN_REVIEW")
        service, _ = self._make_service(cycle=cycle)

        response = await service.update_review_cycle(
            cycle.id,
            ReviewCycleUpdateRequest(name="Renamed"),
            actor_id=actor_id,
        )

        assert response.name == "Renamed"
        assert response.status == "IN_REVIEW"

    @pytest.mark.asyncio()
    async def test_delete_draft_removes_it(
        self,
        application_id: uuid.UUID,
        framework_id: uuid.UUID,
        actor_id: uuid.UUID,
    ) -> None:
        cycle = make_fake_review_cycle(application_id, framework_id, status="DRAFT")
        service, repos = self._make_service(cycle=cycle)

        response = await service.delete_review_cycle(cycle.id, actor_id=actor_id)

        assert response.deleted is True
        repos["review_cycle_repo"].remove.assert_awaited_once_with(cycle)

    @pytest.mark.asyncio()
    async def test_delete_started_review_archives_it(
        self,
        application_id: uuid.UUID,
        framework_id: uuid.UUID,
        actor_id: uuid.UUID,
    ) -> None:
        cycle = make_fake_review_cycle(application_id, framework_id, status="IN_REVIEW")
        service, repos = self._make_service(cycle=cycle)

        response = await service.delete_review_cycle(cycle.id, actor_id=actor_id)

        assert response.archived is True
        assert cycle.status == "ARCHIVED"
        repos["review_cycle_repo"].remove.assert_not_awaited()

    @pytest.mark.asyncio()
    async def test_clear_resets_to_draft(
        self,
        application_id: uuid.UUID,
        framework_id: uuid.UUID,
        actor_id: uuid.UUID,
    ) -> None:
        cycle = make_fake_review_cycle(application_id, framework_id, status="DATA_COLLECTION")
        cycle.started_at = NOW
        cycle.snapshot_date = NOW
        service, repos = self._make_service(cycle=cycle)
        repos["access_record_repo"].delete_for_review.return_value = 42

        response = await service.clear_access_records(cycle.id, actor_id=actor_id)

        assert response.deleted == 42
        assert response.status == "DRAFT"
        assert cycle.started_at is None
        assert cycle.snapshot_date is None

    @pytest.mark.asyncio()
    async def test_clear_rejected_once_analysis_started(
        self,
        application_id: uuid.UUID,
        framework_id: uuid.UUID,
        actor_id: uuid.UUID,
    ) -> None:
        cycle = make_fake_review_cycle(application_id, framework_id, status="ANALYSIS_PENDING")
        service, repos = self._make_service(cycle=cycle)

        with pytest.raises(InvalidStateError):
            await service.clear_access_records(cycle.id, actor_id=actor_id)

        repos["access_record_repo"].delete_for_review.assert_not_awaited()

    @pytest.mark.asyncio()
    async def test_get_includes_counts(self, application_id: uuid.UUID, framework_id: uuid.UUID) -> None:
        cycle = make_fake_review_cycle(application_id, framework_id, status="DATA_COLLECTION")
        service, repos = self._make_service(cycle=cycle)
        repos["access_record_repo"].count_for_review.return_value = 120
        repos["finding_repo"].count_for_review.return_value = 7

        response = await service.get_review_cycle(cycle.id)

        assert response.access_record_count == 120
        assert response.finding_count == 7
        assert response.progress == 20

    @pytest.mark.asyncio()
    async def test_list_access_records_returns_page_and_stats(
        self,
        application_id: uuid.UUID,
        framework_id: uuid.UUID,
    ) -> None:
        cycle = make_fake_review_cycle(application_id, framework_id, status="DATA_COLLECTION")
        service, repos = self._make_service(cycle=cycle)
        record = make_fake_access_record(cycle.id, has_sod_conflict=True, sod_conflict_ids=[str(uuid.uuid4())])
        repos["access_record_repo"].list_for_review.return_value = ([record], 31)
        repos["access_record_repo"].stats_for_review.return_value = {"total": 31, "pending": 31, "sod_conflicts": 1}

        response = await service.list_access_records(cycle.id, has_sod_conflict=True, limit=1)

        assert response.total == 31
        assert response.limit == 1
        assert response.records[0].has_sod_conflict is True
        assert response.stats.sod_conflicts == 1


# ---------------------------------------------------------------------------
# Catalog service tests
# ---------------------------------------------------------------------------


class TestApplicationService:
    """Tests for ApplicationService — profile and completeness."""

    def _make_service(self, application: MagicMock | None = None) -> tuple[ApplicationService, AsyncMock, AsyncMock]:
        application_repo = AsyncMock()
        application_repo.get_by_id.return_value = application
        application_repo.update.side_effect = apply_update
        framework_repo = AsyncMock()
        service = ApplicationService(
            application_repo=application_repo,
            framework_repo=framework_repo,
            audit_service=AsyncMock(),
        )
        return service, application_repo, framework_repo

    @pytest.mark.asyncio()
    async def test_create_defaults_framework_and_scores(self, actor_id: uuid.UUID) -> None:
        default = make_fake_framework(is_default=True)
        service, application_repo, framework_repo = self._make_service()
        framework_repo.get_default.return_value = default
        application_repo.create.return_value = make_fake_application(framework_id=default.id, profile_completeness=20)

        await service.create_application(ApplicationCreateRequest(name="Core Banking"), actor_id=actor_id)

        values = application_repo.create.call_args.args[0]
        assert values["framework_id"] == default.id
        assert values["profile_completeness"] == 20

    @pytest.mark.asyncio()
    async def test_update_recomputes_on_merged_profile(self, actor_id: uuid.UUID) -> None:
        application = make_fake_application(vendor="FIS", profile_completeness=20)
        service, _, _ = self._make_service(application=application)

        response = await service.update_application(
            application.id,
            ApplicationUpdateRequest(purpose="Core ledger"),
            actor_id=actor_id,
        )

        # name 10 + vendor 10 + purpose 15
        assert response.profile_completeness == 35
        assert response.vendor == "FIS"

    @pytest.mark.asyncio()
    async def test_delete_with_history_deactivates(self, actor_id: uuid.UUID) -> None:
        application = make_fake_application()
        service, application_repo, _ = self._make_service(application=application)
        application_repo.has_review_history.return_value = True

        response = await service.delete_application(application.id, actor_id=actor_id)

        assert response.deactivated is True
        assert application.is_active is False
        application_repo.remove.assert_not_awaited()

    @pytest.mark.asyncio()
    async def test_delete_without_history_removes(self, actor_id: uuid.UUID) -> None:
        application = make_fake_application()
        service, application_repo, _ = self._make_service(application=application)
        application_repo.has_review_history.return_value = False

        response = await service.delete_application(application.id, actor_id=actor_id)

        assert response.deleted is True
        application_repo.remove.assert_awaited_once_with(application)


class TestRoleService:
    """Tests for RoleService — the role catalog."""

    def _make_service(self) -> tuple[RoleService, AsyncMock]:
        role_repo = AsyncMock()
        role_repo.update.side_effect = apply_update
        service = RoleService(application_repo=AsyncMock(), role_repo=role_repo, audit_service=AsyncMock())
        return service, role_repo

    @pytest.mark.asyncio()
    async def test_duplicate_name_is_rejected(self, application_id: uuid.UUID, actor_id: uuid.UUID) -> None:
        service, role_repo = self._make_service()
        role_repo.find_by_name.return_value = make_fake_role(application_id, "Wire Approver")

        with pytest.raises(ValidationError) as exc_info:
            await service.create_role(application_id, RoleCreateRequest(name="wire approver"), actor_id=actor_id)

        assert exc_info.value.field == "name"
        role_repo.create.assert_not_awaited()

    @pytest.mark.asyncio()
    async def test_create_trims_name(self, application_id: uuid.UUID, actor_id: uuid.UUID) -> None:
        service, role_repo = self._make_service()
        role_repo.find_by_name.return_value = None
        role_repo.create.return_value = make_fake_role(application_id, "Teller", is_privileged=False)

        await service.create_role(application_id, RoleCreateRequest(name="  Teller "), actor_id=actor_id)

        assert role_repo.create.call_args.args[1]["name"] == "Teller"

    @pytest.mark.asyncio()
    async def test_rename_to_own_name_is_allowed(self, application_id: uuid.UUID, actor_id: uuid.UUID) -> None:
        role = make_fake_role(application_id, "Teller")
        service, role_repo = self._make_service()
        role_repo.get_by_id.return_value = role
        role_repo.find_by_name.return_value = role

        response = await service.update_role(
            application_id,
            role.id,
            RoleUpdateRequest(name="TELLER", is_privileged=True),
            actor_id=actor_id,
        )

        assert response.name == "TELLER"
        assert response.is_privileged is True

    @pytest.mark.asyncio()
    async def test_delete_referenced_role_is_rejected(self, application_id: uuid.UUID, actor_id: uuid.UUID) -> None:
        role = make_fake_role(application_id, "Wire Approver")
        service, role_repo = self._make_service()
        role_repo.get_by_id.return_value = role
        role_repo.is_referenced_by_conflict.return_value = True

        with pytest.raises(InvalidStateError):
            await service.delete_role(application_id, role.id, actor_id=actor_id)

        role_repo.remove.assert_not_awaited()


class TestSodConflictService:
    """Tests for SodConflictService — SoD rule validation."""

    def _make_service(self, roles: list[MagicMock]) -> tuple[SodConflictService, AsyncMock]:
        role_repo = AsyncMock()
        role_repo.list_for_application.return_value = roles
        conflict_repo = AsyncMock()
        conflict_repo.find_for_pair.return_value = None
        service = SodConflictService(
            application_repo=AsyncMock(),
            role_repo=role_repo,
            conflict_repo=conflict_repo,
            audit_service=AsyncMock(),
        )
        return service, conflict_repo

    @pytest.mark.asyncio()
    async def test_create_returns_role_names(self, application_id: uuid.UUID, actor_id: uuid.UUID) -> None:
        initiator = make_fake_role(application_id, "Wire Initiator")
        approver = make_fake_role(application_id, "Wire Approver")
        service, conflict_repo = self._make_service([initiator, approver])
        conflict_repo.create.return_value = make_fake_conflict(application_id, initiator.id, approver.id)

        response = await service.create_conflict(
            application_id,
            SodConflictCreateRequest(role1_id=initiator.id, role2_id=approver.id, severity="CRITICAL"),
            actor_id=actor_id,
        )

        assert (response.role1_name, response.role2_name) == ("Wire Initiator", "Wire Approver")
        assert conflict_repo.create.call_args.kwargs["severity"] == "CRITICAL"

    @pytest.mark.asyncio()
    async def test_role_cannot_conflict_with_itself(self, application_id: uuid.UUID, actor_id: uuid.UUID) -> None:
        role = make_fake_role(application_id, "Teller")
        service, conflict_repo = self._make_service([role])

        with pytest.raises(ValidationError):
            await service.create_conflict(
                application_id,
                SodConflictCreateRequest(role1_id=role.id, role2_id=role.id),
                actor_id=actor_id,
            )

        conflict_repo.create.assert_not_awaited()

    @pytest.mark.asyncio()
    async def test_roles_must_belong_to_application(self, application_id: uuid.UUID, actor_id: uuid.UUID) -> None:
        role = make_fake_role(application_id, "Teller")
        service, _ = self._make_service([role])

        with pytest.raises(ValidationError) as exc_info:
            await service.create_conflict(
                application_id,
                SodConflictCreateRequest(role1_id=role.id, role2_id=uuid.uuid4()),
                actor_id=actor_id,
            )

        assert exc_info.value.details() == [{"field": "role2Id", "issue": "Role does not belong to this application"}]

    @pytest.mark.asyncio()
    async def test_existing_pair_is_rejected(self, application_id: uuid.UUID, actor_id: uuid.UUID) -> None:
        a = make_fake_role(application_id, "A")
        b = make_fake_role(application_id, "B")
        service, conflict_repo = self._make_service([a, b])
        conflict_repo.find_for_pair.return_value = make_fake_conflict(application_id, b.id, a.id)

        with pytest.raises(ValidationError):
            await service.create_conflict(
                application_id,
                SodConflictCreateRequest(role1_id=a.id, role2_id=b.id),
                actor_id=actor_id,
            )


class TestFrameworkService:
    """Tests for FrameworkService — default flag and check categories."""

    def _make_service(self) -> tuple[FrameworkService, AsyncMock, AsyncMock]:
        framework_repo = AsyncMock()
        framework_repo.update.side_effect = apply_update
        application_repo = AsyncMock()
        service = FrameworkService(
            framework_repo=framework_repo,
            application_repo=application_repo,
            audit_service=AsyncMock(),
        )
        return service, framework_repo, application_repo

    @pytest.mark.asyncio()
    async def test_create_default_clears_previous_default_first(self, actor_id: uuid.UUID) -> None:
        service, framework_repo, _ = self._make_service()
        order: list[str] = []

        async def _clear_default(*args: Any, **kwargs: Any) -> None:
            order.append("clear_default")

        async def _create(*args: Any, **kwargs: Any) -> MagicMock:
            order.append("create")
            return make_fake_framework(is_default=True)

        framework_repo.clear_default.side_effect = _clear_default
        framework_repo.create.side_effect = _create

        await service.create_framework(
            FrameworkCreateRequest(
                name="SOX",
                is_default=True,
                thresholds={"dormantDays": 60},
                check_categories=[
                    CheckCategoryCreateRequest(name="Terminated", check_type="EMPLOYMENT_STATUS"),
                    CheckCategoryCreateRequest(name="SoD", check_type="SEGREGATION_OF_DUTIES", sort_order=7),
                ],
            ),
            actor_id=actor_id,
        )

        assert order == ["clear_default", "create"]
        values, categories = framework_repo.create.call_args.args
        assert values["thresholds"] == {"dormantDays": 60}
        assert [c["sort_order"] for c in categories] == [0, 7]

    @pytest.mark.asyncio()
    async def test_create_non_default_leaves_defaults_alone(self, actor_id: uuid.UUID) -> None:
        service, framework_repo, _ = self._make_service()
        framework_repo.create.return_value = make_fake_framework()

        await service.create_framework(FrameworkCreateRequest(name="GLBA"), actor_id=actor_id)

        framework_repo.clear_default.assert_not_awaited()

    @pytest.mark.asyncio()
    async def test_update_to_default_excludes_itself(self, actor_id: uuid.UUID) -> None:
        framework = make_fake_framework(is_default=False)
        service, framework_repo, _ = self._make_service()
        framework_repo.get_by_id.return_value = framework

        response = await service.update_framework(
            framework.id,
            FrameworkUpdateRequest(is_default=True),
            actor_id=actor_id,
        )

        framework_repo.clear_default.assert_awaited_once_with(exclude_id=framework.id)
        assert response.is_default is True

    @pytest.mark.asyncio()
    async def test_delete_assigned_framework_is_rejected(self, actor_id: uuid.UUID) -> None:
        framework = make_fake_framework()
        service, framework_repo, application_repo = self._make_service()
        framework_repo.get_by_id.return_value = framework
        application_repo.count_by_framework.return_value = 3

        with pytest.raises(InvalidStateError):
            await service.delete_framework(framework.id, actor_id=actor_id)

        framework_repo.remove.assert_not_awaited()

    @pytest.mark.asyncio()
    async def test_delete_framework_with_review_cycles_is_rejected(self, actor_id: uuid.UUID) -> None:
        framework = make_fake_framework()
        service, framework_repo, application_repo = self._make_service()
        framework_repo.get_by_id.return_value = framework
        application_repo.count_by_framework.return_value = 0
        framework_repo.count_review_cycles.return_value = 1

        with pytest.raises(InvalidStateError):
            await service.delete_framework(framework.id, actor_id=actor_id)

    @pytest.mark.asyncio()
    async def test_add_check_category_appends(self, actor_id: uuid.UUID) -> None:
        framework = make_fake_framework()
        framework.check_categories = [make_fake_check_category(framework.id, sort_order=i) for i in range(3)]
        service, framework_repo, _ = self._make_service()
        framework_repo.get_by_id.return_value = framework
        framework_repo.add_check_category.return_value = make_fake_check_category(framework.id, "Dormant", 3)

        await service.add_check_category(
            framework.id,
            CheckCategoryCreateRequest(name="Dormant", check_type="DORMANT_ACCOUNT"),
            actor_id=actor_id,
        )

        assert framework_repo.add_check_category.call_args.args[1]["sort_order"] == 3

    @pytest.mark.asyncio()
    async def test_update_check_category_applies_partial_changes(self, actor_id: uuid.UUID) -> None:
        framework_id = uuid.uuid4()
        category = make_fake_check_category(framework_id)
        service, framework_repo, _ = self._make_service()
        framework_repo.get_check_category.return_value = category
        framework_repo.update_check_category.side_effect = apply_update

        response = await service.update_check_category(
            framework_id,
            category.id,
            CheckCategoryUpdateRequest(is_enabled=False, default_severity="CRITICAL", name=None),
            actor_id=actor_id,
        )

        assert response.is_enabled is False
        assert response.default_severity == "CRITICAL"
        assert response.name == "Terminated users"
        changes = framework_repo.update_check_category.call_args.args[1]
        assert set(changes) == {"is_enabled", "default_severity"}

    @pytest.mark.asyncio()
    async def test_check_category_of_another_framework_is_not_found(self, actor_id: uuid.UUID) -> None:
        category = make_fake_check_category(uuid.uuid4())
        service, framework_repo, _ = self._make_service()
        framework_repo.get_check_category.return_value = category
        other_framework_id = uuid.uuid4()

        with pytest.raises(NotFoundError):
            await service.get_check_category(other_framework_id, category.id)
        with pytest.raises(NotFoundError):
            await service.update_check_category(
                other_framework_id,
                category.id,
                CheckCategoryUpdateRequest(is_enabled=False),
                actor_id=actor_id,
            )
        with pytest.raises(NotFoundError):
            await service.delete_check_category(other_framework_id, category.id, actor_id=actor_id)

        framework_repo.update_check_category.assert_not_awaited()
        framework_repo.remove_check_category.assert_not_awaited()

    @pytest.mark.asyncio()
    async def test_delete_check_category_is_audited(self, actor_id: uuid.UUID, mock_audit_service: AsyncMock) -> None:
        framework_id = uuid.uuid4()
        category = make_fake_check_category(framework_id, name="Dormant accounts")
        framework_repo = AsyncMock()
        framework_repo.get_check_category.return_value = category
        service = FrameworkService(
            framework_repo=framework_repo,
            application_repo=AsyncMock(),
            audit_service=mock_audit_service,
        )

        await service.delete_check_category(framework_id, category.id, actor_id=actor_id)

        framework_repo.remove_check_category.assert_awaited_once_with(category)
        kwargs = mock_audit_service.record.call_args.kwargs
        assert kwargs["action"] == "deleted"
        assert kwargs["entity_type"] == "check_category"
        assert kwargs["previous_values"]["name"] == "Dormant accounts"


# ---------------------------------------------------------------------------
# Dashboard and report tests
# ---------------------------------------------------------------------------


class TestDashboardService:
    @pytest.mark.asyncio()
    async def test_open_findings_by_severity(self) -> None:
        review_cycle_repo = AsyncMock()
        review_cycle_repo.count_active.return_value = 4
        review_cycle_repo.count_completed_since.return_value = 2
        review_cycle_repo.list_upcoming.return_value = []
        application_repo = AsyncMock()
        application_repo.count_active.return_value = 11
        finding_repo = AsyncMock()
        finding_repo.severity_status_counts.return_value = [
            ("CRITICAL", "OPEN", 1),
            ("HIGH", "PENDING_REMEDIATION", 2),
            ("HIGH", "DISMISSED", 5),
            ("LOW", "IN_REVIEW", 3),
        ]
        report_repo = AsyncMock()
        report_repo.list_all.return_value = [make_fake_report()]

        service = DashboardService(
            review_cycle_repo=review_cycle_repo,
            application_repo=application_repo,
            finding_repo=finding_repo,
            report_repo=report_repo,
            upcoming_window_days=30,
            clock=_clock,
        )
        dashboard = await service.get_dashboard()

        assert dashboard.active_reviews == 4
        assert dashboard.active_applications == 11
        assert dashboard.completed_this_year == 2
        assert dashboard.open_findings.total == 6
        assert (dashboard.open_findings.critical, dashboard.open_findings.high, dashboard.open_findings.low) == (1, 2, 3)
        review_cycle_repo.count_completed_since.assert_awaited_once_with(datetime(2025, 1, 1, tzinfo=UTC))
        review_cycle_repo.list_upcoming.assert_awaited_once_with(NOW, NOW + timedelta(days=30))
        assert len(dashboard.recent_reports) == 1


class TestReportService:
    @pytest.mark.asyncio()
    async def test_create_report_records_metadata(self, actor_id: uuid.UUID) -> None:
        report_repo = AsyncMock()
        report_repo.create.return_value = make_fake_report()
        service = ReportService(
            report_repo=report_repo,
            review_cycle_repo=AsyncMock(),
            audit_service=AsyncMock(),
            clock=_clock,
        )

        await service.create_report(
            ReportCreateRequest(report_type="executive_summary", name="Q2 summary", metadata={"pages": 4}),
            actor_id=actor_id,
        )

        values = report_repo.create.call_args.args[0]
        assert values["generated_at"] == NOW
        assert values["generated_by_id"] == actor_id
        assert values["report_metadata"] == {"pages": 4}
        assert values["format"] == "PDF"
