"""Core business logic services for the access review engine.

Service classes:
- AuditService: Append-only audit log writes
- ApplicationService: Application profiles and completeness scoring
- RoleService: Application role catalog
- SodConflictService: Segregation-of-duties conflict rules
- FrameworkService: Review frameworks, default flag, check categories
- ReviewCycleService: Review cycle lifecycle, access record listing and clearing
- AccessImportService: Access record import pipeline (match, tag, upsert)
- FindingService: Findings, decisions, and finding count aggregation
- DashboardService: Summary counts across reviews and findings
- ReportService: Report metadata

All services are async-first. They accept injected repositories through
their constructors and contain no framework code. Every state-changing
operation writes an AuditLog entry through AuditService. Services that
stamp timestamps take an injectable `clock`.
"""

import uuid
from collections import Counter
from collections.abc import Callable, Sequence
from datetime import UTC, date, datetime, time, timedelta
from typing import Any

from pydantic_core import to_jsonable_python

from access_review_engine.api.schemas import (
    AccessRecordImportRow,
    AccessRecordListResponse,
    AccessRecordResponse,
    AccessRecordStats,
    ApplicationCreateRequest,
    ApplicationDeleteResponse,
    ApplicationResponse,
    ApplicationUpdateRequest,
    CheckCategoryCreateRequest,
    CheckCategoryResponse,
    CheckCategoryUpdateRequest,
    ClearAccessRecordsResponse,
    DashboardResponse,
    FindingCreateRequest,
    FindingDecisionRequest,
    FindingListResponse,
    FindingResponse,
    FindingStats,
    FindingStatusUpdateRequest,
    FrameworkCreateRequest,
    FrameworkResponse,
    FrameworkUpdateRequest,
    ImportErrorDetail,
    ImportResult,
    OpenFindingsSummary,
    ReportCreateRequest,
    ReportResponse,
    ReviewCycleCreateRequest,
    ReviewCycleDeleteResponse,
    ReviewCycleDetailResponse,
    ReviewCycleResponse,
    ReviewCycleUpdateRequest,
    RoleCreateRequest,
    RoleResponse,
    RoleUpdateRequest,
    SodConflictCreateRequest,
    SodConflictResponse,
)
from access_review_engine.core.aggregation import FindingCounts, tally_finding_counts
from access_review_engine.core.enums import (
    AccessReviewStatus,
    FindingDecision,
    FindingStatus,
    ReviewCycleStatus,
    Severity,
)
from access_review_engine.core.interfaces import (
    IAccessRecordRepository,
    IApplicationRepository,
    IAuditLogRepository,
    IEmployeeRepository,
    IFindingRepository,
    IFrameworkRepository,
    IReportRepository,
    IReviewCycleRepository,
    IRoleRepository,
    ISodConflictRepository,
)
from access_review_engine.core.lifecycle import (
    OPEN_FINDING_STATUSES,
    apply_status,
    ensure_clearable,
    ensure_decidable,
    ensure_finding_transition_allowed,
    ensure_importable,
    ensure_transition_allowed,
    progress_for,
    status_for_decision,
)
from access_review_engine.core.matching import EmployeeIndex, match_employee
from access_review_engine.core.models import (
    Application,
    ApplicationRole,
    AuditLog,
    CheckCategory,
    Finding,
    Framework,
    Report,
    ReviewCycle,
    SodConflict,
    UserAccessRecord,
)
from access_review_engine.core.scoring import PROFILE_FIELD_WEIGHTS, calculate_profile_completeness
from access_review_engine.core.tagging import (
    DEFAULT_DORMANT_DAYS,
    AccessTags,
    build_role_catalog,
    resolve_dormant_days,
    tag_access,
)
from access_review_engine.errors import (
    InvalidStateError,
    NotFoundError,
    PartialImportError,
    ValidationError,
)
from access_review_engine.observability import get_logger

logger = get_logger(__name__)

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _drop_nulls(values: dict[str, Any], fields: Sequence[str]) -> dict[str, Any]:
    """Remove explicit nulls for columns that cannot be null."""
    return {key: value for key, value in values.items() if not (key in fields and value is None)}


def _snapshot(entity: Any, fields: Sequence[str]) -> dict[str, Any]:
    """Capture the current values of `fields` for an audit entry."""
    return {field: getattr(entity, field) for field in fields}


# ---------------------------------------------------------------------------
# Audit
# ---------------------------------------------------------------------------


class AuditService:
    """Append-only audit log write orchestration.

    The single point of entry for audit log writes. Contains no update or
    delete operations: a correction is recorded as a new entry.

    Args:
        audit_repo: Repository for AuditLog persistence.
    """

    def __init__(self, audit_repo: IAuditLogRepository) -> None:
        self._audit_repo = audit_repo

    async def record(
        self,
        user_id: uuid.UUID | None,
        action: str,
        entity_type: str,
        entity_id: uuid.UUID | None,
        previous_values: dict[str, Any] | None = None,
        new_values: dict[str, Any] | None = None,
    ) -> AuditLog:
        """Append an audit log entry.

        Values are converted to JSON-compatible types before storage.

        Args:
            user_id: UUID of the acting user.
            action: Short action verb.
            entity_type: Type of the affected entity.
            entity_id: UUID of the affected entity.
            previous_values: Relevant values before the change.
            new_values: Relevant values after the change.

        Returns:
            The persisted AuditLog entry.
        """
        logger.info(
            "Writing audit log entry",
            action=action,
            entity_type=entity_type,
            entity_id=str(entity_id) if entity_id else None,
            user_id=str(user_id) if user_id else None,
        )
        return await self._audit_repo.append(
            user_id=user_id,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            previous_values=to_jsonable_python(previous_values) if previous_values is not None else None,
            new_values=to_jsonable_python(new_values) if new_values is not None else None,
        )


# ---------------------------------------------------------------------------
# Applications
# ---------------------------------------------------------------------------

_APPLICATION_REQUIRED_FIELDS = ("name", "data_classification", "business_criticality", "regulatory_scope")


class ApplicationService:
    """Application profile management.

    Keeps `profile_completeness` in step with the profile on every create and
    update. Applications with review history are deactivated, not deleted.

    Args:
        application_repo: Repository for Application persistence.
        framework_repo: Repository used to resolve the default framework.
        audit_service: Service for writing audit log entries.
    """

    def __init__(
        self,
        application_repo: IApplicationRepository,
        framework_repo: IFrameworkRepository,
        audit_service: AuditService,
    ) -> None:
        self._application_repo = application_repo
        self._framework_repo = framework_repo
        self._audit_service = audit_service

    async def create_application(
        self,
        request: ApplicationCreateRequest,
        actor_id: uuid.UUID,
    ) -> ApplicationResponse:
        """Register an application.

        Falls back to the system default framework when none is given.

        Args:
            request: The application profile.
            actor_id: UUID of the creating user.

        Returns:
            The created ApplicationResponse.

        Raises:
            NotFoundError: If the given framework does not exist.
        """
        values = request.model_dump()
        if values["framework_id"] is None:
            default_framework = await self._framework_repo.get_default()
            if default_framework is not None:
                values["framework_id"] = default_framework.id
        else:
            await self._framework_repo.get_by_id(values["framework_id"])

        values["profile_completeness"] = calculate_profile_completeness(values)

        logger.info("Creating application", application_name=values["name"])
        application = await self._application_repo.create(values)

        await self._audit_service.record(
            user_id=actor_id,
            action="created",
            entity_type="application",
            entity_id=application.id,
            new_values={"name": application.name, "profile_completeness": application.profile_completeness},
        )
        return _application_to_response(application)

    async def get_application(self, application_id: uuid.UUID) -> ApplicationResponse:
        application = await self._application_repo.get_by_id(application_id)
        return _application_to_response(application)

    async def list_applications(
        self,
        search: str | None = None,
        data_classification: str | None = None,
        framework_id: uuid.UUID | None = None,
        active_only: bool = False,
    ) -> list[ApplicationResponse]:
        applications = await self._application_repo.list_all(
            search=search,
            data_classification=data_classification,
            framework_id=framework_id,
            active_only=active_only,
        )
        return [_application_to_response(a) for a in applications]

    async def update_application(
        self,
        application_id: uuid.UUID,
        request: ApplicationUpdateRequest,
        actor_id: uuid.UUID,
    ) -> ApplicationResponse:
        """Apply a partial update and recompute completeness on the merged profile.

        Args:
            application_id: The application UUID.
            request: Fields to change; omitted fields are left as they are.
            actor_id: UUID of the updating user.

        Returns:
            The updated ApplicationResponse.

        Raises:
            NotFoundError: If the application or the given framework does not exist.
        """
        application = await self._application_repo.get_by_id(application_id)
        changes = _drop_nulls(request.model_dump(exclude_unset=True), _APPLICATION_REQUIRED_FIELDS)
        if changes.get("framework_id") is not None:
            await self._framework_repo.get_by_id(changes["framework_id"])

        merged = {**_snapshot(application, list(PROFILE_FIELD_WEIGHTS)), **changes}
        changes["profile_completeness"] = calculate_profile_completeness(merged)

        previous = _snapshot(application, list(changes))
        application = await self._application_repo.update(application, changes)

        await self._audit_service.record(
            user_id=actor_id,
            action="updated",
            entity_type="application",
            entity_id=application.id,
            previous_values=previous,
            new_values=changes,
        )
        logger.info(
            "Application updated",
            application_id=str(application_id),
            profile_completeness=application.profile_completeness,
        )
        return _application_to_response(application)

    async def delete_application(self, application_id: uuid.UUID, actor_id: uuid.UUID) -> ApplicationDeleteResponse:
        """Delete an application, or deactivate it if it has review history.

        Args:
            application_id: The application UUID.
            actor_id: UUID of the deleting user.

        Returns:
            Whether the application was deleted or deactivated.
        """
        application = await self._application_repo.get_by_id(application_id)

        if await self._application_repo.has_review_history(application_id):
            await self._application_repo.update(application, {"is_active": False})
            action = "deactivated"
        else:
            await self._application_repo.remove(application)
            action = "deleted"

        await self._audit_service.record(
            user_id=actor_id,
            action=action,
            entity_type="application",
            entity_id=application_id,
            previous_values={"name": application.name},
        )
        logger.info("Application removed", application_id=str(application_id), action=action)
        return ApplicationDeleteResponse(
            id=application_id,
            deleted=action == "deleted",
            deactivated=action == "deactivated",
        )


# ---------------------------------------------------------------------------
# Roles and SoD conflicts
# ---------------------------------------------------------------------------


class RoleService:
    """Application role catalog management.

    Role names are unique per application, compared case-insensitively.

    Args:
        application_repo: Repository for Application lookups.
        role_repo: Repository for ApplicationRole persistence.
        audit_service: Service for writing audit log entries.
    """

    def __init__(
        self,
        application_repo: IApplicationRepository,
        role_repo: IRoleRepository,
        audit_service: AuditService,
    ) -> None:
        self._application_repo = application_repo
        self._role_repo = role_repo
        self._audit_service = audit_service

    async def _get_owned_role(self, application_id: uuid.UUID, role_id: uuid.UUID) -> ApplicationRole:
        role = await self._role_repo.get_by_id(role_id)
        if role.application_id != application_id:
            raise NotFoundError(resource="ApplicationRole", resource_id=str(role_id))
        return role

    async def _ensure_name_available(
        self,
        application_id: uuid.UUID,
        name: str,
        exclude_role_id: uuid.UUID | None = None,
    ) -> None:
        existing = await self._role_repo.find_by_name(application_id, name)
        if existing is not None and existing.id != exclude_role_id:
            raise ValidationError(
                message=f"A role named '{name}' already exists for this application",
                field="name",
            )

    async def create_role(
        self,
        application_id: uuid.UUID,
        request: RoleCreateRequest,
        actor_id: uuid.UUID,
    ) -> RoleResponse:
        """Add a role to an application.

        Raises:
            NotFoundError: If the application does not exist.
            ValidationError: If the application already has a role with that name.
        """
        await self._application_repo.get_by_id(application_id)
        values = request.model_dump()
        values["name"] = values["name"].strip()
        await self._ensure_name_available(application_id, values["name"])

        role = await self._role_repo.create(application_id, values)
        await self._audit_service.record(
            user_id=actor_id,
            action="created",
            entity_type="application_role",
            entity_id=role.id,
            new_values={"application_id": application_id, "name": role.name, "is_privileged": role.is_privileged},
        )
        logger.info("Role created", application_id=str(application_id), role_id=str(role.id))
        return _role_to_response(role)

    async def list_roles(self, application_id: uuid.UUID) -> list[RoleResponse]:
        await self._application_repo.get_by_id(application_id)
        roles = await self._role_repo.list_for_application(application_id)
        return [_role_to_response(r) for r in roles]

    async def update_role(
        self,
        application_id: uuid.UUID,
        role_id: uuid.UUID,
        request: RoleUpdateRequest,
        actor_id: uuid.UUID,
    ) -> RoleResponse:
        role = await self._get_owned_role(application_id, role_id)
        changes = _drop_nulls(request.model_dump(exclude_unset=True), ("name", "is_privileged", "risk_level"))
        if "name" in changes:
            changes["name"] = changes["name"].strip()
            await self._ensure_name_available(application_id, changes["name"], exclude_role_id=role.id)

        previous = _snapshot(role, list(changes))
        role = await self._role_repo.update(role, changes)
        await self._audit_service.record(
            user_id=actor_id,
            action="updated",
            entity_type="application_role",
            entity_id=role.id,
            previous_values=previous,
            new_values=changes,
        )
        return _role_to_response(role)

    async def delete_role(self, application_id: uuid.UUID, role_id: uuid.UUID, actor_id: uuid.UUID) -> None:
        """Delete a role.

        Raises:
            NotFoundError: If the role does not exist in the application.
            InvalidStateError: If an SoD conflict rule still references the role.
        """
        role = await self._get_owned_role(application_id, role_id)
        if await self._role_repo.is_referenced_by_conflict(role_id):
            raise InvalidStateError(message="Role is referenced by an SoD conflict and cannot be deleted")

        await self._role_repo.remove(role)
        await self._audit_service.record(
            user_id=actor_id,
            action="deleted",
            entity_type="application_role",
            entity_id=role_id,
            previous_values={"application_id": application_id, "name": role.name},
        )
        logger.info("Role deleted", application_id=str(application_id), role_id=str(role_id))


class SodConflictService:
    """Segregation-of-duties conflict rule management.

    A rule pairs two distinct roles of the same application. The pair is
    unordered and may be declared only once per application.

    Args:
        application_repo: Repository for Application lookups.
        role_repo: Repository for ApplicationRole lookups.
        conflict_repo: Repository for SodConflict persistence.
        audit_service: Service for writing audit log entries.
    """

    def __init__(
        self,
        application_repo: IApplicationRepository,
        role_repo: IRoleRepository,
        conflict_repo: ISodConflictRepository,
        audit_service: AuditService,
    ) -> None:
        self._application_repo = application_repo
        self._role_repo = role_repo
        self._conflict_repo = conflict_repo
        self._audit_service = audit_service

    async def _role_names(self, application_id: uuid.UUID) -> dict[uuid.UUID, str]:
        roles = await self._role_repo.list_for_application(application_id)
        return {role.id: role.name for role in roles}

    async def create_conflict(
        self,
        application_id: uuid.UUID,
        request: SodConflictCreateRequest,
        actor_id: uuid.UUID,
    ) -> SodConflictResponse:
        """Declare two roles of an application as conflicting.

        Args:
            application_id: The application UUID.
            request: The role pair, reason and severity.
            actor_id: UUID of the creating user.

        Returns:
            The created SodConflictResponse.

        Raises:
            NotFoundError: If the application does not exist.
            ValidationError: If the roles are identical, do not both belong to
                the application, or the pair already has a rule.
        """
        await self._application_repo.get_by_id(application_id)

        if request.role1_id == request.role2_id:
            raise ValidationError(message="A role cannot conflict with itself", field="role2Id")

        role_names = await self._role_names(application_id)
        missing = [
            {"field": field, "issue": "Role does not belong to this application"}
            for field, role_id in (("role1Id", request.role1_id), ("role2Id", request.role2_id))
            if role_id not in role_names
        ]
        if missing:
            raise ValidationError(message="Both roles must belong to the application", issues=missing)

        existing = await self._conflict_repo.find_for_pair(application_id, request.role1_id, request.role2_id)
        if existing is not None:
            raise ValidationError(message="An SoD conflict already exists for this role pair")

        conflict = await self._conflict_repo.create(
            application_id=application_id,
            role1_id=request.role1_id,
            role2_id=request.role2_id,
            conflict_reason=request.conflict_reason,
            severity=request.severity.value,
        )
        await self._audit_service.record(
            user_id=actor_id,
            action="created",
            entity_type="sod_conflict",
            entity_id=conflict.id,
            new_values={
                "application_id": application_id,
                "role1_id": conflict.role1_id,
                "role2_id": conflict.role2_id,
                "severity": conflict.severity,
            },
        )
        logger.info("SoD conflict created", application_id=str(application_id), conflict_id=str(conflict.id))
        return _conflict_to_response(conflict, role_names)

    async def list_conflicts(self, application_id: uuid.UUID) -> list[SodConflictResponse]:
        await self._application_repo.get_by_id(application_id)
        role_names = await self._role_names(application_id)
        conflicts = await self._conflict_repo.list_for_application(application_id)
        return [_conflict_to_response(c, role_names) for c in conflicts]

    async def delete_conflict(self, application_id: uuid.UUID, conflict_id: uuid.UUID, actor_id: uuid.UUID) -> None:
        conflict = await self._conflict_repo.get_by_id(conflict_id)
        if conflict.application_id != application_id:
            raise NotFoundError(resource="SodConflict", resource_id=str(conflict_id))

        await self._conflict_repo.remove(conflict)
        await self._audit_service.record(
            user_id=actor_id,
            action="deleted",
            entity_type="sod_conflict",
            entity_id=conflict_id,
            previous_values={"role1_id": conflict.role1_id, "role2_id": conflict.role2_id},
        )
        logger.info("SoD conflict deleted", application_id=str(application_id), conflict_id=str(conflict_id))


# ---------------------------------------------------------------------------
# Frameworks
# ---------------------------------------------------------------------------

_FRAMEWORK_REQUIRED_FIELDS = (
    "name",
    "version",
    "is_default",
    "is_active",
    "review_frequency",
    "attestation_type",
    "regulatory_scope",
    "thresholds",
)


class FrameworkService:
    """Review framework management.

    At most one framework is the default. Making a framework the default
    unsets every other default on the same session, so both statements
    commit or roll back together with the request.

    Args:
        framework_repo: Repository for Framework persistence.
        application_repo: Repository used to check framework assignments.
        audit_service: Service for writing audit log entries.
    """

    def __init__(
        self,
        framework_repo: IFrameworkRepository,
        application_repo: IApplicationRepository,
        audit_service: AuditService,
    ) -> None:
        self._framework_repo = framework_repo
        self._application_repo = application_repo
        self._audit_service = audit_service

    async def create_framework(self, request: FrameworkCreateRequest, actor_id: uuid.UUID) -> FrameworkResponse:
        """Create a framework with its ordered check categories.

        Args:
            request: Framework definition.
            actor_id: UUID of the creating user.

        Returns:
            The created FrameworkResponse.
        """
        values = request.model_dump(exclude={"check_categories", "thresholds"})
        values["thresholds"] = request.thresholds.model_dump(by_alias=True, exclude_none=True)
        values["created_by_id"] = actor_id
        categories = [
            _category_values(category, position) for position, category in enumerate(request.check_categories)
        ]

        if request.is_default:
            await self._framework_repo.clear_default()

        framework = await self._framework_repo.create(values, categories)
        await self._audit_service.record(
            user_id=actor_id,
            action="created",
            entity_type="framework",
            entity_id=framework.id,
            new_values={"name": framework.name, "is_default": framework.is_default},
        )
        logger.info("Framework created", framework_id=str(framework.id), is_default=framework.is_default)
        return _framework_to_response(framework)

    async def get_framework(self, framework_id: uuid.UUID) -> FrameworkResponse:
        framework = await self._framework_repo.get_by_id(framework_id)
        return _framework_to_response(framework)

    async def list_frameworks(self) -> list[FrameworkResponse]:
        frameworks = await self._framework_repo.list_all()
        return [_framework_to_response(f) for f in frameworks]

    async def update_framework(
        self,
        framework_id: uuid.UUID,
        request: FrameworkUpdateRequest,
        actor_id: uuid.UUID,
    ) -> FrameworkResponse:
        """Apply a partial update to a framework.

        Raises:
            NotFoundError: If the framework does not exist.
        """
        framework = await self._framework_repo.get_by_id(framework_id)
        changes = _drop_nulls(request.model_dump(exclude_unset=True, exclude={"thresholds"}), _FRAMEWORK_REQUIRED_FIELDS)
        if request.thresholds is not None:
            changes["thresholds"] = request.thresholds.model_dump(by_alias=True, exclude_none=True)

        if changes.get("is_default") and not framework.is_default:
            await self._framework_repo.clear_default(exclude_id=framework.id)

        previous = _snapshot(framework, list(changes))
        framework = await self._framework_repo.update(framework, changes)
        await self._audit_service.record(
            user_id=actor_id,
            action="updated",
            entity_type="framework",
            entity_id=framework.id,
            previous_values=previous,
            new_values=changes,
        )
        logger.info("Framework updated", framework_id=str(framework_id))
        return _framework_to_response(framework)

    async def delete_framework(self, framework_id: uuid.UUID, actor_id: uuid.UUID) -> None:
        """Delete a framework that nothing uses.

        Raises:
            NotFoundError: If the framework does not exist.
            InvalidStateError: If applications or review cycles still use the framework.
        """
        framework = await self._framework_repo.get_by_id(framework_id)

        assigned = await self._application_repo.count_by_framework(framework_id)
        if assigned:
            raise InvalidStateError(message=f"Framework is assigned to {assigned} application(s) and cannot be deleted")
        cycles = await self._framework_repo.count_review_cycles(framework_id)
        if cycles:
            raise InvalidStateError(message=f"Framework is used by {cycles} review cycle(s) and cannot be deleted")

        await self._framework_repo.remove(framework)
        await self._audit_service.record(
            user_id=actor_id,
            action="deleted",
            entity_type="framework",
            entity_id=framework_id,
            previous_values={"name": framework.name},
        )
        logger.info("Framework deleted", framework_id=str(framework_id))

    async def add_check_category(
        self,
        framework_id: uuid.UUID,
        request: CheckCategoryCreateRequest,
        actor_id: uuid.UUID,
    ) -> CheckCategoryResponse:
        """Append a check category; sort order defaults to the end of the list."""
        framework = await self._framework_repo.get_by_id(framework_id)
        values = _category_values(request, len(framework.check_categories))

        category = await self._framework_repo.add_check_category(framework, values)
        await self._audit_service.record(
            user_id=actor_id,
            action="created",
            entity_type="check_category",
            entity_id=category.id,
            new_values={"framework_id": framework_id, "name": category.name, "check_type": category.check_type},
        )
        return _category_to_response(category)

    async def _get_owned_category(self, framework_id: uuid.UUID, category_id: uuid.UUID) -> CheckCategory:
        category = await self._framework_repo.get_check_category(category_id)
        if category.framework_id != framework_id:
            raise NotFoundError(resource="CheckCategory", resource_id=str(category_id))
        return category

    async def get_check_category(self, framework_id: uuid.UUID, category_id: uuid.UUID) -> CheckCategoryResponse:
        category = await self._get_owned_category(framework_id, category_id)
        return _category_to_response(category)

    async def update_check_category(
        self,
        framework_id: uuid.UUID,
        category_id: uuid.UUID,
        request: CheckCategoryUpdateRequest,
        actor_id: uuid.UUID,
    ) -> CheckCategoryResponse:
        """Apply a partial update to one of a framework's check categories.

        Raises:
            NotFoundError: If the category does not exist in the framework.
        """
        category = await self._get_owned_category(framework_id, category_id)
        changes = _drop_nulls(request.model_dump(exclude_unset=True), _CATEGORY_REQUIRED_FIELDS)

        previous = _snapshot(category, list(changes))
        category = await self._framework_repo.update_check_category(category, changes)
        await self._audit_service.record(
            user_id=actor_id,
            action="updated",
            entity_type="check_category",
            entity_id=category.id,
            previous_values=previous,
            new_values=changes,
        )
        return _category_to_response(category)

    async def delete_check_category(self, framework_id: uuid.UUID, category_id: uuid.UUID, actor_id: uuid.UUID) -> None:
        category = await self._get_owned_category(framework_id, category_id)

        await self._framework_repo.remove_check_category(category)
        await self._audit_service.record(
            user_id=actor_id,
            action="deleted",
            entity_type="check_category",
            entity_id=category_id,
            previous_values={"framework_id": framework_id, "name": category.name, "check_type": category.check_type},
        )
        logger.info("Check category deleted", framework_id=str(framework_id), category_id=str(category_id))


_CATEGORY_REQUIRED_FIELDS = (
    "name",
    "check_type",
    "is_enabled",
    "default_severity",
    "regulatory_references",
    "sort_order",
)


def _category_values(request: CheckCategoryCreateRequest, position: int) -> dict[str, Any]:
    values = request.model_dump()
    if values["sort_order"] is None:
        values["sort_order"] = position
    return values


# ---------------------------------------------------------------------------
# Review cycles
# ---------------------------------------------------------------------------


class ReviewCycleService:
    """Review cycle lifecycle management.

    Every status change is validated against the transition table in
    core/lifecycle.py. A DRAFT cycle can be deleted outright; any other
    cycle is archived in place.

    Args:
        review_cycle_repo: Repository for ReviewCycle persistence.
        application_repo: Repository for Application lookups.
        framework_repo: Repository for Framework lookups.
        access_record_repo: Repository for UserAccessRecord persistence.
        finding_repo: Repository for Finding counts.
        audit_service: Service for writing audit log entries.
        clock: Returns the current UTC time.
    """

    def __init__(
        self,
        review_cycle_repo: IReviewCycleRepository,
        application_repo: IApplicationRepository,
        framework_repo: IFrameworkRepository,
        access_record_repo: IAccessRecordRepository,
        finding_repo: IFindingRepository,
        audit_service: AuditService,
        clock: Clock = _utcnow,
    ) -> None:
        self._review_cycle_repo = review_cycle_repo
        self._application_repo = application_repo
        self._framework_repo = framework_repo
        self._access_record_repo = access_record_repo
        self._finding_repo = finding_repo
        self._audit_service = audit_service
        self._clock = clock

    async def create_review_cycle(
        self,
        request: ReviewCycleCreateRequest,
        actor_id: uuid.UUID,
    ) -> ReviewCycleResponse:
        """Open a review cycle in DRAFT.

        The framework defaults to the application's framework, then to the
        system default framework.

        Raises:
            NotFoundError: If the application or framework does not exist.
            ValidationError: If no framework is given and none can be defaulted.
        """
        application = await self._application_repo.get_by_id(request.application_id)

        framework_id = request.framework_id or application.framework_id
        if framework_id is None:
            default_framework = await self._framework_repo.get_default()
            if default_framework is None:
                raise ValidationError(
                    message="No framework given and no default framework is configured",
                    field="frameworkId",
                )
            framework_id = default_framework.id
        else:
            await self._framework_repo.get_by_id(framework_id)

        review_cycle = await self._review_cycle_repo.create(
            {
                "name": request.name,
                "application_id": application.id,
                "framework_id": framework_id,
                "status": ReviewCycleStatus.DRAFT.value,
                "year": request.year,
                "quarter": request.quarter,
                "due_date": request.due_date,
                "created_by_id": actor_id,
            }
        )
        await self._audit_service.record(
            user_id=actor_id,
            action="created",
            entity_type="review_cycle",
            entity_id=review_cycle.id,
            new_values={"name": review_cycle.name, "application_id": application.id, "framework_id": framework_id},
        )
        logger.info(
            "Review cycle created",
            review_cycle_id=str(review_cycle.id),
            application_id=str(application.id),
        )
        return _review_cycle_to_response(review_cycle)

    async def get_review_cycle(self, review_cycle_id: uuid.UUID) -> ReviewCycleDetailResponse:
        """Get a review cycle with its access record and finding counts."""
        review_cycle = await self._review_cycle_repo.get_by_id(review_cycle_id)
        access_record_count = await self._access_record_repo.count_for_review(review_cycle_id)
        finding_count = await self._finding_repo.count_for_review(review_cycle_id)
        return ReviewCycleDetailResponse(
            **_review_cycle_to_response(review_cycle).model_dump(),
            access_record_count=access_record_count,
            finding_count=finding_count,
        )

    async def list_review_cycles(
        self,
        application_id: uuid.UUID | None = None,
        status: str | None = None,
    ) -> list[ReviewCycleResponse]:
        review_cycles = await self._review_cycle_repo.list_all(application_id=application_id, status=status)
        return [_review_cycle_to_response(c) for c in review_cycles]

    async def update_review_cycle(
        self,
        review_cycle_id: uuid.UUID,
        request: ReviewCycleUpdateRequest,
        actor_id: uuid.UUID,
    ) -> ReviewCycleResponse:
        """Update a review cycle, validating any status change.

        Args:
            review_cycle_id: The review cycle UUID.
            request: Fields to change.
            actor_id: UUID of the updating user.

        Returns:
            The updated ReviewCycleResponse.

        Raises:
            NotFoundError: If the review cycle does not exist.
            InvalidStateError: If the status change is not a legal transition.
        """
        review_cycle = await self._review_cycle_repo.get_by_id(review_cycle_id)
        changes = _drop_nulls(request.model_dump(exclude_unset=True), ("name", "status"))
        target = changes.pop("status", None)
        previous = _snapshot(review_cycle, [*changes, "status"])

        if target is not None and target != review_cycle.status:
            ensure_transition_allowed(review_cycle.status, target)
            apply_status(review_cycle, ReviewCycleStatus(target), self._clock())

        review_cycle = await self._review_cycle_repo.update(review_cycle, changes)
        await self._audit_service.record(
            user_id=actor_id,
            action="updated",
            entity_type="review_cycle",
            entity_id=review_cycle.id,
            previous_values=previous,
            new_values={**changes, "status": review_cycle.status},
        )
        logger.info("Review cycle updated", review_cycle_id=str(review_cycle_id), status=review_cycle.status)
        return _review_cycle_to_response(review_cycle)

    async def delete_review_cycle(self, review_cycle_id: uuid.UUID, actor_id: uuid.UUID) -> ReviewCycleDeleteResponse:
        """Delete a DRAFT review cycle, or archive any other one in place.

        Deleting a DRAFT cycle cascades to its access records and findings.
        Archiving an already archived cycle is a no-op.
        """
        review_cycle = await self._review_cycle_repo.get_by_id(review_cycle_id)
        previous_status = review_cycle.status

        if previous_status == ReviewCycleStatus.DRAFT:
            await self._review_cycle_repo.remove(review_cycle)
            action = "deleted"
        else:
            if previous_status != ReviewCycleStatus.ARCHIVED:
                ensure_transition_allowed(previous_status, ReviewCycleStatus.ARCHIVED)
                apply_status(review_cycle, ReviewCycleStatus.ARCHIVED, self._clock())
                await self._review_cycle_repo.update(review_cycle, {})
            action = "archived"

        await self._audit_service.record(
            user_id=actor_id,
            action=action,
            entity_type="review_cycle",
            entity_id=review_cycle_id,
            previous_values={"status": previous_status},
        )
        logger.info("Review cycle removed", review_cycle_id=str(review_cycle_id), action=action)
        return ReviewCycleDeleteResponse(
            id=review_cycle_id,
            deleted=action == "deleted",
            archived=action == "archived",
        )

    async def clear_access_records(
        self,
        review_cycle_id: uuid.UUID,
        actor_id: uuid.UUID,
    ) -> ClearAccessRecordsResponse:
        """Delete all imported access records and reset the cycle to DRAFT.

        Clears startedAt and snapshotDate so the next import stamps them again.

        Raises:
            NotFoundError: If the review cycle does not exist.
            InvalidStateError: If the cycle is past DATA_COLLECTION.
        """
        review_cycle = await self._review_cycle_repo.get_by_id(review_cycle_id)
        ensure_clearable(review_cycle)
        previous_status = review_cycle.status

        deleted = await self._access_record_repo.delete_for_review(review_cycle_id)
        review_cycle = await self._review_cycle_repo.update(
            review_cycle,
            {"status": ReviewCycleStatus.DRAFT.value, "started_at": None, "snapshot_date": None},
        )

        await self._audit_service.record(
            user_id=actor_id,
            action="cleared",
            entity_type="review_cycle",
            entity_id=review_cycle_id,
            previous_values={"status": previous_status},
            new_values={"status": review_cycle.status, "deleted_records": deleted},
        )
        logger.info("Access records cleared", review_cycle_id=str(review_cycle_id), deleted=deleted)
        return ClearAccessRecordsResponse(deleted=deleted, status=review_cycle.status)

    async def list_access_records(
        self,
        review_cycle_id: uuid.UUID,
        search: str | None = None,
        review_status: str | None = None,
        has_sod_conflict: bool | None = None,
        has_privileged_access: bool | None = None,
        is_dormant: bool | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> AccessRecordListResponse:
        """List a page of a review's access records with stats for the whole review."""
        await self._review_cycle_repo.get_by_id(review_cycle_id)
        records, total = await self._access_record_repo.list_for_review(
            review_cycle_id,
            search=search,
            review_status=review_status,
            has_sod_conflict=has_sod_conflict,
            has_privileged_access=has_privileged_access,
            is_dormant=is_dormant,
            limit=limit,
            offset=offset,
        )
        stats = await self._access_record_repo.stats_for_review(review_cycle_id)
        return AccessRecordListResponse(
            records=[_access_record_to_response(r) for r in records],
            total=total,
            limit=limit,
            offset=offset,
            stats=AccessRecordStats(**stats),
        )


# ---------------------------------------------------------------------------
# Access record import
# ---------------------------------------------------------------------------


def _last_row_per_username(records: Sequence[AccessRecordImportRow]) -> list[AccessRecordImportRow]:
    """Collapse rows sharing a trimmed username into the last one.

    The surviving row keeps the position of the username's first row. Rows
    with a blank username are all kept so that each reports its own error.
    """
    rows: dict[str | int, AccessRecordImportRow] = {}
    for position, row in enumerate(records):
        rows[row.username.strip() or position] = row
    return list(rows.values())


def _parse_timestamp(value: str | None, field: str, username: str) -> datetime | None:
    """Parse an ISO-8601 date or datetime from an import row.

    Blank values are treated as absent and naive values as UTC.

    Raises:
        PartialImportError: If the value is not a valid ISO-8601 date.
    """
    if value is None or not value.strip():
        return None
    try:
        parsed = datetime.fromisoformat(value.strip())
    except ValueError as exc:
        raise PartialImportError(record=username, error=f"Invalid {field}: {value!r}") from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


class AccessImportService:
    """Access record import pipeline.

    For each row: match the identity against the HR roster, tag it against
    the application's role catalog and SoD rules, and upsert it keyed by
    (review cycle, username). Rows are processed one after another; a failing
    row is recorded and skipped without affecting the others. Rows repeating
    a username are collapsed into the last one and counted once. The roster,
    catalog and rules are loaded once per import.

    Args:
        review_cycle_repo: Repository for ReviewCycle persistence.
        framework_repo: Repository used to read the dormancy threshold.
        employee_repo: Read-only HR roster.
        role_repo: Repository for the application's role catalog.
        conflict_repo: Repository for the application's SoD rules.
        access_record_repo: Repository for UserAccessRecord persistence.
        audit_service: Service for writing audit log entries.
        default_dormant_days: Dormancy threshold when the framework sets none.
        error_detail_limit: Maximum number of error details returned.
        max_records: Maximum number of rows accepted per import.
        clock: Returns the current UTC time.
    """

    def __init__(
        self,
        review_cycle_repo: IReviewCycleRepository,
        framework_repo: IFrameworkRepository,
        employee_repo: IEmployeeRepository,
        role_repo: IRoleRepository,
        conflict_repo: ISodConflictRepository,
        access_record_repo: IAccessRecordRepository,
        audit_service: AuditService,
        default_dormant_days: int = DEFAULT_DORMANT_DAYS,
        error_detail_limit: int = 10,
        max_records: int = 10000,
        clock: Clock = _utcnow,
    ) -> None:
        self._review_cycle_repo = review_cycle_repo
        self._framework_repo = framework_repo
        self._employee_repo = employee_repo
        self._role_repo = role_repo
        self._conflict_repo = conflict_repo
        self._access_record_repo = access_record_repo
        self._audit_service = audit_service
        self._default_dormant_days = default_dormant_days
        self._error_detail_limit = error_detail_limit
        self._max_records = max_records
        self._clock = clock

    async def import_access_records(
        self,
        review_cycle_id: uuid.UUID,
        records: Sequence[AccessRecordImportRow],
        actor_id: uuid.UUID,
    ) -> ImportResult:
        """Import parsed access rows into a review cycle.

        A DRAFT cycle moves to DATA_COLLECTION after the first successful
        import, with startedAt and snapshotDate stamped.

        Args:
            review_cycle_id: The target review cycle.
            records: Parsed rows in source order.
            actor_id: UUID of the importing user.

        Returns:
            ImportResult with imported/matched/unmatched/error counts and the
            first error details.

        Raises:
            NotFoundError: If the review cycle does not exist.
            InvalidStateError: If the cycle is not DRAFT or DATA_COLLECTION.
            ValidationError: If more rows are submitted than allowed.
        """
        review_cycle = await self._review_cycle_repo.get_by_id(review_cycle_id)
        ensure_importable(review_cycle)
        if len(records) > self._max_records:
            raise ValidationError(
                message=f"At most {self._max_records} records can be imported at once",
                field="records",
            )

        framework = await self._framework_repo.get_by_id(review_cycle.framework_id)
        dormant_days = resolve_dormant_days(framework.thresholds, self._default_dormant_days)
        roster = EmployeeIndex.build(await self._employee_repo.list_all())
        catalog = build_role_catalog(await self._role_repo.list_for_application(review_cycle.application_id))
        conflicts = await self._conflict_repo.list_for_application(review_cycle.application_id)
        now = self._clock()
        rows = _last_row_per_username(records)

        logger.info(
            "Importing access records",
            review_cycle_id=str(review_cycle_id),
            record_count=len(records),
            duplicate_count=len(records) - len(rows),
            roster_size=len(roster),
            role_count=len(catalog),
            conflict_count=len(conflicts),
            dormant_days=dormant_days,
        )

        imported = matched = 0
        failures: list[PartialImportError] = []
        for row in rows:
            try:
                values = self._build_record(row, roster, catalog, conflicts, now, dormant_days)
                await self._access_record_repo.upsert(review_cycle.id, values)
            except PartialImportError as exc:
                logger.warning(
                    "Access record import failed",
                    review_cycle_id=str(review_cycle_id),
                    username=exc.record,
                    error=exc.error,
                )
                failures.append(exc)
                continue
            imported += 1
            if values["employee_id"] is not None:
                matched += 1

        previous_status = review_cycle.status
        if imported and review_cycle.status == ReviewCycleStatus.DRAFT:
            ensure_transition_allowed(review_cycle.status, ReviewCycleStatus.DATA_COLLECTION)
            apply_status(review_cycle, ReviewCycleStatus.DATA_COLLECTION, now)
            await self._review_cycle_repo.update(review_cycle, {"snapshot_date": now})

        result = ImportResult(
            imported=imported,
            matched=matched,
            unmatched=imported - matched,
            errors=len(failures),
            error_details=[ImportErrorDetail(**f.to_detail()) for f in failures[: self._error_detail_limit]],
        )

        await self._audit_service.record(
            user_id=actor_id,
            action="imported",
            entity_type="review_cycle",
            entity_id=review_cycle_id,
            previous_values={"status": previous_status},
            new_values={
                "status": review_cycle.status,
                "imported": result.imported,
                "matched": result.matched,
                "unmatched": result.unmatched,
                "errors": result.errors,
            },
        )
        logger.info(
            "Access record import complete",
            review_cycle_id=str(review_cycle_id),
            imported=result.imported,
            matched=result.matched,
            unmatched=result.unmatched,
            errors=result.errors,
        )
        return result

    def _build_record(
        self,
        row: AccessRecordImportRow,
        roster: EmployeeIndex,
        catalog: dict[str, ApplicationRole],
        conflicts: Sequence[SodConflict],
        now: datetime,
        dormant_days: int,
    ) -> dict[str, Any]:
        """Match, tag and shape one import row into record column values.

        Raises:
            PartialImportError: If the row holds an unparseable date.
        """
        username = row.username.strip()
        if not username:
            raise PartialImportError(record=row.username, error="username is required")

        last_login_at = _parse_timestamp(row.last_login_at, "lastLoginAt", username)
        grant_date = _parse_timestamp(row.grant_date, "grantDate", username)

        employee = match_employee(row.email, username, roster)
        tags: AccessTags = tag_access(row.roles, catalog, conflicts, last_login_at, now, dormant_days)

        return {
            "username": username,
            "email": row.email,
            "display_name": row.display_name,
            "employee_id": employee.id if employee is not None else None,
            "roles": list(row.roles),
            "last_login_at": last_login_at,
            "grant_date": grant_date,
            "has_sod_conflict": tags.has_sod_conflict,
            "has_privileged_access": tags.has_privileged_access,
            "is_dormant": tags.is_dormant,
            "sod_conflict_ids": [str(conflict_id) for conflict_id in tags.sod_conflict_ids],
            "review_status": AccessReviewStatus.PENDING.value,
            "raw_data": row.model_dump(mode="json", by_alias=True),
        }


# ---------------------------------------------------------------------------
# Findings
# ---------------------------------------------------------------------------


def _at_midnight_utc(value: date | None) -> datetime | None:
    if value is None:
        return None
    return datetime.combine(value, time.min, tzinfo=UTC)


class FindingService:
    """Findings, reviewer decisions, and finding count aggregation.

    The review cycle's finding counters are recomputed from the live
    findings after every create, decision and status change.

    Args:
        finding_repo: Repository for Finding persistence.
        review_cycle_repo: Repository for ReviewCycle lookups and counters.
        access_record_repo: Repository used to validate record references.
        audit_service: Service for writing audit log entries.
        clock: Returns the current UTC time.
    """

    def __init__(
        self,
        finding_repo: IFindingRepository,
        review_cycle_repo: IReviewCycleRepository,
        access_record_repo: IAccessRecordRepository,
        audit_service: AuditService,
        clock: Clock = _utcnow,
    ) -> None:
        self._finding_repo = finding_repo
        self._review_cycle_repo = review_cycle_repo
        self._access_record_repo = access_record_repo
        self._audit_service = audit_service
        self._clock = clock

    async def recalculate_counts(self, review_cycle_id: uuid.UUID) -> FindingCounts:
        """Recompute and overwrite a review cycle's finding counters.

        Args:
            review_cycle_id: The review cycle UUID.

        Returns:
            The counts written to the review cycle.
        """
        rows = await self._finding_repo.severity_status_counts(review_cycle_id)
        counts = tally_finding_counts(rows)
        await self._review_cycle_repo.set_finding_counts(review_cycle_id, counts)
        return counts

    async def create_finding(self, request: FindingCreateRequest, actor_id: uuid.UUID) -> FindingResponse:
        """Raise a finding against a review cycle in OPEN status.

        Raises:
            NotFoundError: If the review cycle does not exist.
            ValidationError: If the access record is not part of the review cycle.
        """
        review_cycle = await self._review_cycle_repo.get_by_id(request.review_cycle_id)
        if request.user_access_record_id is not None and not await self._access_record_repo.exists_in_review(
            request.user_access_record_id, review_cycle.id
        ):
            raise ValidationError(
                message="Access record does not belong to this review cycle",
                field="userAccessRecordId",
            )

        values = request.model_dump()
        values["status"] = FindingStatus.OPEN.value
        finding = await self._finding_repo.create(values)
        await self.recalculate_counts(review_cycle.id)

        await self._audit_service.record(
            user_id=actor_id,
            action="created",
            entity_type="finding",
            entity_id=finding.id,
            new_values={
                "review_cycle_id": review_cycle.id,
                "finding_type": finding.finding_type,
                "severity": finding.severity,
            },
        )
        logger.info("Finding created", finding_id=str(finding.id), review_cycle_id=str(review_cycle.id))
        return _finding_to_response(finding)

    async def get_finding(self, finding_id: uuid.UUID) -> FindingResponse:
        finding = await self._finding_repo.get_by_id(finding_id)
        return _finding_to_response(finding)

    async def list_findings(
        self,
        review_cycle_id: uuid.UUID | None = None,
        severity: str | None = None,
        status: str | None = None,
        finding_type: str | None = None,
        search: str | None = None,
    ) -> FindingListResponse:
        findings = await self._finding_repo.list_all(
            review_cycle_id=review_cycle_id,
            severity=severity,
            status=status,
            finding_type=finding_type,
            search=search,
        )
        stats = FindingStats(
            total=len(findings),
            by_status=dict(Counter(f.status for f in findings)),
            by_severity=dict(Counter(f.severity for f in findings)),
        )
        return FindingListResponse(findings=[_finding_to_response(f) for f in findings], stats=stats)

    async def decide_finding(
        self,
        finding_id: uuid.UUID,
        request: FindingDecisionRequest,
        actor_id: uuid.UUID,
    ) -> FindingResponse:
        """Apply a reviewer's decision to a finding, exactly once.

        REMEDIATE moves the finding to PENDING_REMEDIATION, EXCEPTION to
        EXCEPTION_APPROVED (stamping the approver), and DISMISS to DISMISSED.
        The decider and decision time are always stamped and the review
        cycle's counters are recomputed.

        Args:
            finding_id: The finding UUID.
            request: The decision and its supporting fields.
            actor_id: UUID of the deciding user.

        Returns:
            The updated FindingResponse.

        Raises:
            NotFoundError: If the finding does not exist.
            InvalidStateError: If the finding is not OPEN or IN_REVIEW.
            ValidationError: If an EXCEPTION has no compensating controls.
        """
        finding = await self._finding_repo.get_by_id(finding_id)
        ensure_decidable(finding.status)

        decision = request.decision
        if decision == FindingDecision.EXCEPTION and not (request.compensating_controls or "").strip():
            raise ValidationError(
                message="Compensating controls are required to approve an exception",
                field="compensatingControls",
            )

        now = self._clock()
        previous_status = finding.status
        values: dict[str, Any] = {
            "decision": decision.value,
            "decision_justification": request.decision_justification,
            "status": status_for_decision(decision).value,
            "decided_by_id": actor_id,
            "decided_at": now,
        }
        if decision == FindingDecision.REMEDIATE:
            values["remediation_due_date"] = _at_midnight_utc(request.remediation_due_date)
            values["remediation_ticket_id"] = request.remediation_ticket_id
        elif decision == FindingDecision.EXCEPTION:
            values["compensating_controls"] = request.compensating_controls
            values["exception_expiry_date"] = _at_midnight_utc(request.exception_expiry_date)
            values["exception_approved_by_id"] = actor_id
            values["exception_approved_at"] = now

        finding = await self._finding_repo.update(finding, values)
        counts = await self.recalculate_counts(finding.review_cycle_id)

        await self._audit_service.record(
            user_id=actor_id,
            action="decided",
            entity_type="finding",
            entity_id=finding.id,
            previous_values={"status": previous_status},
            new_values={"decision": decision.value, "status": finding.status},
        )
        logger.info(
            "Finding decided",
            finding_id=str(finding_id),
            decision=decision.value,
            status=finding.status,
            open_critical=counts.critical,
        )
        return _finding_to_response(finding)

    async def update_finding_status(
        self,
        finding_id: uuid.UUID,
        request: FindingStatusUpdateRequest,
        actor_id: uuid.UUID,
    ) -> FindingResponse:
        """Move a finding to another status outside the decision workflow.

        Used to pick a finding up for review, mark remediation done, or close
        it. The review cycle's counters are recomputed afterwards.

        Args:
            finding_id: The finding UUID.
            request: The target status.
            actor_id: UUID of the acting user.

        Returns:
            The updated FindingResponse.

        Raises:
            NotFoundError: If the finding does not exist.
            InvalidStateError: If the status change is not allowed.
        """
        finding = await self._finding_repo.get_by_id(finding_id)
        ensure_finding_transition_allowed(finding.status, request.status)

        previous_status = finding.status
        finding = await self._finding_repo.update(finding, {"status": request.status.value})
        counts = await self.recalculate_counts(finding.review_cycle_id)

        await self._audit_service.record(
            user_id=actor_id,
            action="status_changed",
            entity_type="finding",
            entity_id=finding.id,
            previous_values={"status": previous_status},
            new_values={"status": finding.status},
        )
        logger.info(
            "Finding status changed",
            finding_id=str(finding_id),
            previous_status=previous_status,
            status=finding.status,
            total_findings=counts.total,
        )
        return _finding_to_response(finding)


# ---------------------------------------------------------------------------
# Dashboard and reports
# ---------------------------------------------------------------------------


class DashboardService:
    """Summary counts for the compliance dashboard.

    Args:
        review_cycle_repo: Repository for ReviewCycle counts.
        application_repo: Repository for Application counts.
        finding_repo: Repository for grouped finding counts.
        report_repo: Repository for recent reports.
        upcoming_window_days: How far ahead upcoming reviews are listed.
        clock: Returns the current UTC time.
    """

    def __init__(
        self,
        review_cycle_repo: IReviewCycleRepository,
        application_repo: IApplicationRepository,
        finding_repo: IFindingRepository,
        report_repo: IReportRepository,
        upcoming_window_days: int = 60,
        clock: Clock = _utcnow,
    ) -> None:
        self._review_cycle_repo = review_cycle_repo
        self._application_repo = application_repo
        self._finding_repo = finding_repo
        self._report_repo = report_repo
        self._upcoming_window_days = upcoming_window_days
        self._clock = clock

    async def get_dashboard(self) -> DashboardResponse:
        now = self._clock()
        start_of_year = datetime(now.year, 1, 1, tzinfo=UTC)

        open_statuses = {status.value for status in OPEN_FINDING_STATUSES}
        by_severity: Counter[str] = Counter()
        for severity, status, count in await self._finding_repo.severity_status_counts():
            if status in open_statuses:
                by_severity[severity] += count
        open_findings = OpenFindingsSummary(
            total=sum(by_severity.values()),
            critical=by_severity[Severity.CRITICAL.value],
            high=by_severity[Severity.HIGH.value],
            medium=by_severity[Severity.MEDIUM.value],
            low=by_severity[Severity.LOW.value],
        )

        upcoming = await self._review_cycle_repo.list_upcoming(
            now,
            now + timedelta(days=self._upcoming_window_days),
        )
        recent_reports = await self._report_repo.list_all(limit=5)

        return DashboardResponse(
            active_reviews=await self._review_cycle_repo.count_active(),
            open_findings=open_findings,
            active_applications=await self._application_repo.count_active(),
            completed_this_year=await self._review_cycle_repo.count_completed_since(start_of_year),
            upcoming_reviews=[_review_cycle_to_response(c) for c in upcoming],
            recent_reports=[_report_to_response(r) for r in recent_reports],
        )


class ReportService:
    """Report metadata. No report file is generated.

    Args:
        report_repo: Repository for Report persistence.
        review_cycle_repo: Repository for ReviewCycle lookups.
        audit_service: Service for writing audit log entries.
        clock: Returns the current UTC time.
    """

    def __init__(
        self,
        report_repo: IReportRepository,
        review_cycle_repo: IReviewCycleRepository,
        audit_service: AuditService,
        clock: Clock = _utcnow,
    ) -> None:
        self._report_repo = report_repo
        self._review_cycle_repo = review_cycle_repo
        self._audit_service = audit_service
        self._clock = clock

    async def create_report(self, request: ReportCreateRequest, actor_id: uuid.UUID) -> ReportResponse:
        if request.review_cycle_id is not None:
            await self._review_cycle_repo.get_by_id(request.review_cycle_id)

        report = await self._report_repo.create(
            {
                "review_cycle_id": request.review_cycle_id,
                "report_type": request.report_type.value,
                "name": request.name,
                "format": request.format.value,
                "generated_by_id": actor_id,
                "generated_at": self._clock(),
                "report_metadata": request.metadata,
            }
        )
        await self._audit_service.record(
            user_id=actor_id,
            action="created",
            entity_type="report",
            entity_id=report.id,
            new_values={"report_type": report.report_type, "review_cycle_id": report.review_cycle_id},
        )
        logger.info("Report recorded", report_id=str(report.id), report_type=report.report_type)
        return _report_to_response(report)

    async def list_reports(self, review_cycle_id: uuid.UUID | None = None, limit: int = 50) -> list[ReportResponse]:
        reports = await self._report_repo.list_all(review_cycle_id=review_cycle_id, limit=limit)
        return [_report_to_response(r) for r in reports]


# ---------------------------------------------------------------------------
# ORM to response conversion
# ---------------------------------------------------------------------------


def _application_to_response(application: Application) -> ApplicationResponse:
    """Convert an Application ORM model to a response schema."""
    return ApplicationResponse(
        id=application.id,
        name=application.name,
        description=application.description,
        vendor=application.vendor,
        system_owner=application.system_owner,
        business_unit=application.business_unit,
        data_classification=application.data_classification,
        business_criticality=application.business_criticality,
        regulatory_scope=application.regulatory_scope,
        purpose=application.purpose,
        typical_users=application.typical_users,
        sensitive_functions=application.sensitive_functions,
        access_request_process=application.access_request_process,
        profile_completeness=application.profile_completeness,
        framework_id=application.framework_id,
        last_review_date=application.last_review_date,
        next_review_date=application.next_review_date,
        is_active=application.is_active,
        created_at=application.created_at,
        updated_at=application.updated_at,
    )


def _role_to_response(role: ApplicationRole) -> RoleResponse:
    return RoleResponse(
        id=role.id,
        application_id=role.application_id,
        name=role.name,
        description=role.description,
        is_privileged=role.is_privileged,
        risk_level=role.risk_level,
        created_at=role.created_at,
    )


def _conflict_to_response(conflict: SodConflict, role_names: dict[uuid.UUID, str]) -> SodConflictResponse:
    return SodConflictResponse(
        id=conflict.id,
        application_id=conflict.application_id,
        role1_id=conflict.role1_id,
        role1_name=role_names.get(conflict.role1_id),
        role2_id=conflict.role2_id,
        role2_name=role_names.get(conflict.role2_id),
        conflict_reason=conflict.conflict_reason,
        severity=conflict.severity,
        created_at=conflict.created_at,
    )


def _category_to_response(category: CheckCategory) -> CheckCategoryResponse:
    return CheckCategoryResponse(
        id=category.id,
        framework_id=category.framework_id,
        name=category.name,
        check_type=category.check_type,
        description=category.description,
        is_enabled=category.is_enabled,
        default_severity=category.default_severity,
        severity_rules=category.severity_rules,
        regulatory_references=category.regulatory_references,
        sort_order=category.sort_order,
    )


def _framework_to_response(framework: Framework) -> FrameworkResponse:
    """Convert a Framework ORM model, with its check categories, to a response schema."""
    return FrameworkResponse(
        id=framework.id,
        name=framework.name,
        description=framework.description,
        version=framework.version,
        is_default=framework.is_default,
        is_active=framework.is_active,
        review_frequency=framework.review_frequency,
        attestation_type=framework.attestation_type,
        regulatory_scope=framework.regulatory_scope,
        thresholds=framework.thresholds,
        check_categories=[_category_to_response(c) for c in framework.check_categories],
        created_at=framework.created_at,
        updated_at=framework.updated_at,
    )


def _review_cycle_to_response(review_cycle: ReviewCycle) -> ReviewCycleResponse:
    """Convert a ReviewCycle ORM model to a response schema.

    Args:
        review_cycle: The ReviewCycle ORM instance.

    Returns:
        ReviewCycleResponse with progress derived from status.
    """
    return ReviewCycleResponse(
        id=review_cycle.id,
        name=review_cycle.name,
        application_id=review_cycle.application_id,
        framework_id=review_cycle.framework_id,
        status=review_cycle.status,
        year=review_cycle.year,
        quarter=review_cycle.quarter,
        snapshot_date=review_cycle.snapshot_date,
        due_date=review_cycle.due_date,
        started_at=review_cycle.started_at,
        completed_at=review_cycle.completed_at,
        total_findings=review_cycle.total_findings,
        critical_findings=review_cycle.critical_findings,
        high_findings=review_cycle.high_findings,
        medium_findings=review_cycle.medium_findings,
        low_findings=review_cycle.low_findings,
        attested_by_id=review_cycle.attested_by_id,
        attested_at=review_cycle.attested_at,
        attestation_notes=review_cycle.attestation_notes,
        progress=progress_for(review_cycle.status),
        created_at=review_cycle.created_at,
        updated_at=review_cycle.updated_at,
    )


def _access_record_to_response(record: UserAccessRecord) -> AccessRecordResponse:
    return AccessRecordResponse(
        id=record.id,
        review_cycle_id=record.review_cycle_id,
        username=record.username,
        email=record.email,
        display_name=record.display_name,
        employee_id=record.employee_id,
        roles=record.roles,
        last_login_at=record.last_login_at,
        grant_date=record.grant_date,
        has_sod_conflict=record.has_sod_conflict,
        has_privileged_access=record.has_privileged_access,
        is_dormant=record.is_dormant,
        sod_conflict_ids=record.sod_conflict_ids,
        ai_analysis_summary=record.ai_analysis_summary,
        risk_score=float(record.risk_score) if record.risk_score is not None else None,
        review_status=record.review_status,
        review_notes=record.review_notes,
        reviewed_at=record.reviewed_at,
        created_at=record.created_at,
    )


def _finding_to_response(finding: Finding) -> FindingResponse:
    """Convert a Finding ORM model to a response schema."""
    return FindingResponse(
        id=finding.id,
        review_cycle_id=finding.review_cycle_id,
        user_access_record_id=finding.user_access_record_id,
        finding_type=finding.finding_type,
        severity=finding.severity,
        status=finding.status,
        title=finding.title,
        description=finding.description,
        ai_rationale=finding.ai_rationale,
        ai_confidence_score=float(finding.ai_confidence_score) if finding.ai_confidence_score is not None else None,
        suggested_remediation=finding.suggested_remediation,
        decision=finding.decision,
        decision_justification=finding.decision_justification,
        compensating_controls=finding.compensating_controls,
        remediation_due_date=finding.remediation_due_date,
        remediation_ticket_id=finding.remediation_ticket_id,
        exception_expiry_date=finding.exception_expiry_date,
        exception_approved_by_id=finding.exception_approved_by_id,
        exception_approved_at=finding.exception_approved_at,
        decided_by_id=finding.decided_by_id,
        decided_at=finding.decided_at,
        created_at=finding.created_at,
        updated_at=finding.updated_at,
    )


def _report_to_response(report: Report) -> ReportResponse:
    return ReportResponse(
        id=report.id,
        review_cycle_id=report.review_cycle_id,
        report_type=report.report_type,
        name=report.name,
        format=report.format,
        file_url=report.file_url,
        file_name=report.file_name,
        file_size=report.file_size,
        generated_by_id=report.generated_by_id,
        generated_at=report.generated_at,
        metadata=report.report_metadata,
    )
