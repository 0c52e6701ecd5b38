"""API router for access-review-engine.

All endpoints are registered here and included in main.py under the
/api/v1 prefix. Routes stay thin and leave business logic to the service
layer. Reads need any signed-in user; writes need the role sets in auth.py.

Endpoints:
- POST/GET           /applications                               — Register / list applications
- GET/PATCH/DELETE   /applications/{id}                          — Get / update / delete an application
- POST/GET           /applications/{id}/roles                    — Role catalog
- PATCH/DELETE       /applications/{id}/roles/{role_id}          — Update / delete a role
- POST/GET           /applications/{id}/sod-conflicts            — SoD conflict rules
- DELETE             /applications/{id}/sod-conflicts/{cid}      — Delete a conflict rule
- POST/GET           /frameworks                                 — Review frameworks
- GET/PATCH/DELETE   /frameworks/{id}                            — Get / update / delete a framework
- POST               /frameworks/{id}/check-categories           — Add a check category
- GET/PATCH/DELETE   /frameworks/{id}/check-categories/{cid}     — Get / update / delete a check category
- POST/GET           /review-cycles                              — Open / list review cycles
- GET/PATCH/DELETE   /review-cycles/{id}                         — Get / update / delete-or-archive
- POST               /review-cycles/{id}/import                  — Import access records
- GET/DELETE         /review-cycles/{id}/access-records          — List / clear access records
- POST/GET           /findings                                   — Raise / list findings
- GET/PATCH          /findings/{id}                              — Get a finding / change its status
- POST               /findings/{id}/decision                     — Decide a finding
- GET                /dashboard                                  — Dashboard summary
- POST/GET           /reports                                    — Report metadata
"""

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from access_review_engine.adapters.repositories import (
    AccessRecordRepository,
    ApplicationRepository,
    AuditLogRepository,
    EmployeeRepository,
    FindingRepository,
    FrameworkRepository,
    ReportRepository,
    ReviewCycleRepository,
    RoleRepository,
    SodConflictRepository,
)
from access_review_engine.api.schemas import (
    AccessRecordListResponse,
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
    FindingStatusUpdateRequest,
    FrameworkCreateRequest,
    FrameworkResponse,
    FrameworkUpdateRequest,
    ImportRequest,
    ImportResult,
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
from access_review_engine.auth import (
    ADMIN_ROLES,
    MUTATING_ROLES,
    OFFICER_ROLES,
    SessionUser,
    get_current_user,
    require_roles,
)
from access_review_engine.core.enums import (
    AccessReviewStatus,
    DataClassification,
    FindingStatus,
    FindingType,
    ReviewCycleStatus,
    Severity,
)
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
from access_review_engine.database import get_db_session
from access_review_engine.observability import get_logger
from access_review_engine.settings import Settings, get_settings

logger = get_logger(__name__)

router = APIRouter(tags=["access-review"])

Session = Annotated[AsyncSession, Depends(get_db_session)]
CurrentUser = Annotated[SessionUser, Depends(get_current_user)]
Editor = Annotated[SessionUser, Depends(require_roles(*MUTATING_ROLES))]
Officer = Annotated[SessionUser, Depends(require_roles(*OFFICER_ROLES))]
Admin = Annotated[SessionUser, Depends(require_roles(*ADMIN_ROLES))]


# ---------------------------------------------------------------------------
# Dependency factories: wire repositories and services together
# ---------------------------------------------------------------------------


def _audit_service(session: AsyncSession) -> AuditService:
    return AuditService(AuditLogRepository(session))


def get_application_service(session: Session) -> ApplicationService:
    """Construct ApplicationService with injected repositories.

    Args:
        session: Request-scoped DB session.

    Returns:
        Fully wired ApplicationService instance.
    """
    return ApplicationService(
        application_repo=ApplicationRepository(session),
        framework_repo=FrameworkRepository(session),
        audit_service=_audit_service(session),
    )


def get_role_service(session: Session) -> RoleService:
    return RoleService(
        application_repo=ApplicationRepository(session),
        role_repo=RoleRepository(session),
        audit_service=_audit_service(session),
    )


def get_sod_conflict_service(session: Session) -> SodConflictService:
    return SodConflictService(
        application_repo=ApplicationRepository(session),
        role_repo=RoleRepository(session),
        conflict_repo=SodConflictRepository(session),
        audit_service=_audit_service(session),
    )


def get_framework_service(session: Session) -> FrameworkService:
    return FrameworkService(
        framework_repo=FrameworkRepository(session),
        application_repo=ApplicationRepository(session),
        audit_service=_audit_service(session),
    )


def get_review_cycle_service(session: Session) -> ReviewCycleService:
    """Construct ReviewCycleService with injected repositories.

    Args:
        session: Request-scoped DB session.

    Returns:
        Fully wired ReviewCycleService instance.
    """
    return ReviewCycleService(
        review_cycle_repo=ReviewCycleRepository(session),
        application_repo=ApplicationRepository(session),
        framework_repo=FrameworkRepository(session),
        access_record_repo=AccessRecordRepository(session),
        finding_repo=FindingRepository(session),
        audit_service=_audit_service(session),
    )


def get_import_service(
    session: Session,
    settings: Annotated[Settings, Depends(get_settings)],
) -> AccessImportService:
    """Construct AccessImportService with injected repositories and limits.

    Args:
        session: Request-scoped DB session.
        settings: Service settings.

    Returns:
        Fully wired AccessImportService instance.
    """
    return AccessImportService(
        review_cycle_repo=ReviewCycleRepository(session),
        framework_repo=FrameworkRepository(session),
        employee_repo=EmployeeRepository(session),
        role_repo=RoleRepository(session),
        conflict_repo=SodConflictRepository(session),
        access_record_repo=AccessRecordRepository(session),
        audit_service=_audit_service(session),
        default_dormant_days=settings.default_dormant_days,
        error_detail_limit=settings.import_error_detail_limit,
        max_records=settings.max_import_records,
    )


def get_finding_service(session: Session) -> FindingService:
    return FindingService(
        finding_repo=FindingRepository(session),
        review_cycle_repo=ReviewCycleRepository(session),
        access_record_repo=AccessRecordRepository(session),
        audit_service=_audit_service(session),
    )


def get_dashboard_service(
    session: Session,
    settings: Annotated[Settings, Depends(get_settings)],
) -> DashboardService:
    return DashboardService(
        review_cycle_repo=ReviewCycleRepository(session),
        application_repo=ApplicationRepository(session),
        finding_repo=FindingRepository(session),
        report_repo=ReportRepository(session),
        upcoming_window_days=settings.upcoming_review_window_days,
    )


def get_report_service(session: Session) -> ReportService:
    return ReportService(
        report_repo=ReportRepository(session),
        review_cycle_repo=ReviewCycleRepository(session),
        audit_service=_audit_service(session),
    )


# ---------------------------------------------------------------------------
# Application endpoints
# ---------------------------------------------------------------------------


@router.post("/applications", response_model=ApplicationResponse, status_code=201)
async def create_application(
    request: ApplicationCreateRequest,
    user: Editor,
    service: Annotated[ApplicationService, Depends(get_application_service)],
) -> ApplicationResponse:
    """Register an application.

    Args:
        request: Application profile.
        user: The signed-in user.
        service: Injected ApplicationService.

    Returns:
        The created application with its completeness score.
    """
    logger.info("POST /applications", user_id=str(user.user_id), application_name=request.name)
    return await service.create_application(request, actor_id=user.user_id)


@router.get("/applications", response_model=list[ApplicationResponse])
async def list_applications(
    user: CurrentUser,
    service: Annotated[ApplicationService, Depends(get_application_service)],
    search: str | None = Query(default=None, description="Case-insensitive name substring"),
    data_classification: DataClassification | None = Query(default=None, alias="dataClassification"),
    framework_id: uuid.UUID | None = Query(default=None, alias="frameworkId"),
    active_only: bool = Query(default=False, alias="activeOnly"),
) -> list[ApplicationResponse]:
    """List applications ordered by name."""
    return await service.list_applications(
        search=search,
        data_classification=data_classification,
        framework_id=framework_id,
        active_only=active_only,
    )


@router.get("/applications/{application_id}", response_model=ApplicationResponse)
async def get_application(
    application_id: uuid.UUID,
    user: CurrentUser,
    service: Annotated[ApplicationService, Depends(get_application_service)],
) -> ApplicationResponse:
    return await service.get_application(application_id)


@router.patch("/applications/{application_id}", response_model=ApplicationResponse)
async def update_application(
    application_id: uuid.UUID,
    request: ApplicationUpdateRequest,
    user: Editor,
    service: Annotated[ApplicationService, Depends(get_application_service)],
) -> ApplicationResponse:
    """Update an application profile. Completeness is recomputed.

    Args:
        application_id: The application UUID.
        request: Fields to change.
        user: The signed-in user.
        service: Injected ApplicationService.

    Returns:
        The updated application.
    """
    return await service.update_application(application_id, request, actor_id=user.user_id)


@router.delete("/applications/{application_id}", response_model=ApplicationDeleteResponse)
async def delete_application(
    application_id: uuid.UUID,
    user: Admin,
    service: Annotated[ApplicationService, Depends(get_application_service)],
) -> ApplicationDeleteResponse:
    """Delete an application, or deactivate it when it has review history."""
    return await service.delete_application(application_id, actor_id=user.user_id)


# ---------------------------------------------------------------------------
# Role and SoD conflict endpoints
# ---------------------------------------------------------------------------


@router.post("/applications/{application_id}/roles", response_model=RoleResponse, status_code=201)
async def create_role(
    application_id: uuid.UUID,
    request: RoleCreateRequest,
    user: Editor,
    service: Annotated[RoleService, Depends(get_role_service)],
) -> RoleResponse:
    return await service.create_role(application_id, request, actor_id=user.user_id)


@router.get("/applications/{application_id}/roles", response_model=list[RoleResponse])
async def list_roles(
    application_id: uuid.UUID,
    user: CurrentUser,
    service: Annotated[RoleService, Depends(get_role_service)],
) -> list[RoleResponse]:
    return await service.list_roles(application_id)


@router.patch("/applications/{application_id}/roles/{role_id}", response_model=RoleResponse)
async def update_role(
    application_id: uuid.UUID,
    role_id: uuid.UUID,
    request: RoleUpdateRequest,
    user: Editor,
    service: Annotated[RoleService, Depends(get_role_service)],
) -> RoleResponse:
    return await service.update_role(application_id, role_id, request, actor_id=user.user_id)


@router.delete("/applications/{application_id}/roles/{role_id}", status_code=204)
async def delete_role(
    application_id: uuid.UUID,
    role_id: uuid.UUID,
    user: Admin,
    service: Annotated[RoleService, Depends(get_role_service)],
) -> Response:
    """Delete a role. Refused while an SoD conflict rule references it."""
    await service.delete_role(application_id, role_id, actor_id=user.user_id)
    return Response(status_code=204)


@router.post(
    "/applications/{application_id}/sod-conflicts",
    response_model=SodConflictResponse,
    status_code=201,
)
async def create_sod_conflict(
    application_id: uuid.UUID,
    request: SodConflictCreateRequest,
    user: Editor,
    service: Annotated[SodConflictService, Depends(get_sod_conflict_service)],
) -> SodConflictResponse:
    """Declare two of an application's roles as conflicting.

    Args:
        application_id: The application UUID.
        request: The role pair, reason and severity.
        user: The signed-in user.
        service: Injected SodConflictService.

    Returns:
        The created conflict rule with both role names.
    """
    return await service.create_conflict(application_id, request, actor_id=user.user_id)


@router.get("/applications/{application_id}/sod-conflicts", response_model=list[SodConflictResponse])
async def list_sod_conflicts(
    application_id: uuid.UUID,
    user: CurrentUser,
    service: Annotated[SodConflictService, Depends(get_sod_conflict_service)],
) -> list[SodConflictResponse]:
    return await service.list_conflicts(application_id)


@router.delete("/applications/{application_id}/sod-conflicts/{conflict_id}", status_code=204)
async def delete_sod_conflict(
    application_id: uuid.UUID,
    conflict_id: uuid.UUID,
    user: Admin,
    service: Annotated[SodConflictService, Depends(get_sod_conflict_service)],
) -> Response:
    await service.delete_conflict(application_id, conflict_id, actor_id=user.user_id)
    return Response(status_code=204)


# ---------------------------------------------------------------------------
# Framework endpoints
# ---------------------------------------------------------------------------


@router.post("/frameworks", response_model=FrameworkResponse, status_code=201)
async def create_framework(
    request: FrameworkCreateRequest,
    user: Officer,
    service: Annotated[FrameworkService, Depends(get_framework_service)],
) -> FrameworkResponse:
    """Create a review framework with its check categories.

    Setting isDefault unsets the flag on the previous default framework.
    """
    logger.info("POST /frameworks", user_id=str(user.user_id), framework_name=request.name)
    return await service.create_framework(request, actor_id=user.user_id)


@router.get("/frameworks", response_model=list[FrameworkResponse])
async def list_frameworks(
    user: CurrentUser,
    service: Annotated[FrameworkService, Depends(get_framework_service)],
) -> list[FrameworkResponse]:
    return await service.list_frameworks()


@router.get("/frameworks/{framework_id}", response_model=FrameworkResponse)
async def get_framework(
    framework_id: uuid.UUID,
    user: CurrentUser,
    service: Annotated[FrameworkService, Depends(get_framework_service)],
) -> FrameworkResponse:
    return await service.get_framework(framework_id)


@router.patch("/frameworks/{framework_id}", response_model=FrameworkResponse)
async def update_framework(
    framework_id: uuid.UUID,
    request: FrameworkUpdateRequest,
    user: Officer,
    service: Annotated[FrameworkService, Depends(get_framework_service)],
) -> FrameworkResponse:
    return await service.update_framework(framework_id, request, actor_id=user.user_id)


@router.delete("/frameworks/{framework_id}", status_code=204)
async def delete_framework(
    framework_id: uuid.UUID,
    user: Admin,
    service: Annotated[FrameworkService, Depends(get_framework_service)],
) -> Response:
    """Delete a framework. Refused while applications or review cycles use it."""
    await service.delete_framework(framework_id, actor_id=user.user_id)
    return Response(status_code=204)


@router.post(
    "/frameworks/{framework_id}/check-categories",
    response_model=CheckCategoryResponse,
    status_code=201,
)
async def add_check_category(
    framework_id: uuid.UUID,
    request: CheckCategoryCreateRequest,
    user: Officer,
    service: Annotated[FrameworkService, Depends(get_framework_service)],
) -> CheckCategoryResponse:
    return await service.add_check_category(framework_id, request, actor_id=user.user_id)


@router.get("/frameworks/{framework_id}/check-categories/{category_id}", response_model=CheckCategoryResponse)
async def get_check_category(
    framework_id: uuid.UUID,
    category_id: uuid.UUID,
    user: CurrentUser,
    service: Annotated[FrameworkService, Depends(get_framework_service)],
) -> CheckCategoryResponse:
    return await service.get_check_category(framework_id, category_id)


@router.patch("/frameworks/{framework_id}/check-categories/{category_id}", response_model=CheckCategoryResponse)
async def update_check_category(
    framework_id: uuid.UUID,
    category_id: uuid.UUID,
    request: CheckCategoryUpdateRequest,
    user: Officer,
    service: Annotated[FrameworkService, Depends(get_framework_service)],
) -> CheckCategoryResponse:
    """Update a check category. 404 if it belongs to another framework."""
    return await service.update_check_category(framework_id, category_id, request, actor_id=user.user_id)


@router.delete("/frameworks/{framework_id}/check-categories/{category_id}", status_code=204)
async def delete_check_category(
    framework_id: uuid.UUID,
    category_id: uuid.UUID,
    user: Admin,
    service: Annotated[FrameworkService, Depends(get_framework_service)],
) -> Response:
    await service.delete_check_category(framework_id, category_id, actor_id=user.user_id)
    return Response(status_code=204)


# ---------------------------------------------------------------------------
# Review cycle endpoints
# ---------------------------------------------------------------------------


@router.post("/review-cycles", response_model=ReviewCycleResponse, status_code=201)
async def create_review_cycle(
    request: ReviewCycleCreateRequest,
    user: Editor,
    service: Annotated[ReviewCycleService, Depends(get_review_cycle_service)],
) -> ReviewCycleResponse:
    """Open a review cycle in DRAFT.

    Args:
        request: Review cycle definition.
        user: The signed-in user.
        service: Injected ReviewCycleService.

    Returns:
        The created review cycle.
    """
    logger.info(
        "POST /review-cycles",
        user_id=str(user.user_id),
        application_id=str(request.application_id),
    )
    return await service.create_review_cycle(request, actor_id=user.user_id)


@router.get("/review-cycles", response_model=list[ReviewCycleResponse])
async def list_review_cycles(
    user: CurrentUser,
    service: Annotated[ReviewCycleService, Depends(get_review_cycle_service)],
    application_id: uuid.UUID | None = Query(default=None, alias="applicationId"),
    status: ReviewCycleStatus | None = Query(default=None),
) -> list[ReviewCycleResponse]:
    return await service.list_review_cycles(application_id=application_id, status=status)


@router.get("/review-cycles/{review_cycle_id}", response_model=ReviewCycleDetailResponse)
async def get_review_cycle(
    review_cycle_id: uuid.UUID,
    user: CurrentUser,
    service: Annotated[ReviewCycleService, Depends(get_review_cycle_service)],
) -> ReviewCycleDetailResponse:
    """Get a review cycle with its access record and finding counts."""
    return await service.get_review_cycle(review_cycle_id)


@router.patch("/review-cycles/{review_cycle_id}", response_model=ReviewCycleResponse)
async def update_review_cycle(
    review_cycle_id: uuid.UUID,
    request: ReviewCycleUpdateRequest,
    user: Editor,
    service: Annotated[ReviewCycleService, Depends(get_review_cycle_service)],
) -> ReviewCycleResponse:
    """Update a review cycle. A status change must be a legal transition (409 otherwise)."""
    return await service.update_review_cycle(review_cycle_id, request, actor_id=user.user_id)


@router.delete("/review-cycles/{review_cycle_id}", response_model=ReviewCycleDeleteResponse)
async def delete_review_cycle(
    review_cycle_id: uuid.UUID,
    user: Admin,
    service: Annotated[ReviewCycleService, Depends(get_review_cycle_service)],
) -> ReviewCycleDeleteResponse:
    """Delete a DRAFT review cycle; archive any other in place."""
    return await service.delete_review_cycle(review_cycle_id, actor_id=user.user_id)


@router.post("/review-cycles/{review_cycle_id}/import", response_model=ImportResult)
async def import_access_records(
    review_cycle_id: uuid.UUID,
    request: ImportRequest,
    user: Editor,
    service: Annotated[AccessImportService, Depends(get_import_service)],
) -> ImportResult:
    """Import parsed access records into a review cycle.

    Each record is matched against the HR roster, tagged against the
    application's roles and SoD rules, and upserted by username. A failing
    record is reported in the result and does not stop the import.

    Args:
        review_cycle_id: The review cycle UUID.
        request: The parsed records.
        user: The signed-in user.
        service: Injected AccessImportService.

    Returns:
        Imported, matched, unmatched and error counts.
    """
    logger.info(
        "POST /review-cycles/{id}/import",
        user_id=str(user.user_id),
        review_cycle_id=str(review_cycle_id),
        record_count=len(request.records),
    )
    return await service.import_access_records(review_cycle_id, request.records, actor_id=user.user_id)


@router.get("/review-cycles/{review_cycle_id}/access-records", response_model=AccessRecordListResponse)
async def list_access_records(
    review_cycle_id: uuid.UUID,
    user: CurrentUser,
    service: Annotated[ReviewCycleService, Depends(get_review_cycle_service)],
    search: str | None = Query(default=None, description="Username, email or display name substring"),
    review_status: AccessReviewStatus | None = Query(default=None, alias="reviewStatus"),
    has_sod_conflict: bool | None = Query(default=None, alias="hasSodConflict"),
    has_privileged_access: bool | None = Query(default=None, alias="hasPrivilegedAccess"),
    is_dormant: bool | None = Query(default=None, alias="isDormant"),
    limit: int = Query(default=50, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
) -> AccessRecordListResponse:
    """List a page of a review's access records, SoD conflicts first."""
    return await service.list_access_records(
        review_cycle_id,
        search=search,
        review_status=review_status,
        has_sod_conflict=has_sod_conflict,
        has_privileged_access=has_privileged_access,
        is_dormant=is_dormant,
        limit=limit,
        offset=offset,
    )


@router.delete("/review-cycles/{review_cycle_id}/access-records", response_model=ClearAccessRecordsResponse)
async def clear_access_records(
    review_cycle_id: uuid.UUID,
    user: Officer,
    service: Annotated[ReviewCycleService, Depends(get_review_cycle_service)],
) -> ClearAccessRecordsResponse:
    """Delete all of a review's access records and reset it to DRAFT."""
    return await service.clear_access_records(review_cycle_id, actor_id=user.user_id)


# ---------------------------------------------------------------------------
# Finding endpoints
# ---------------------------------------------------------------------------


@router.post("/findings", response_model=FindingResponse, status_code=201)
async def create_finding(
    request: FindingCreateRequest,
    user: Editor,
    service: Annotated[FindingService, Depends(get_finding_service)],
) -> FindingResponse:
    return await service.create_finding(request, actor_id=user.user_id)


@router.get("/findings", response_model=FindingListResponse)
async def list_findings(
    user: CurrentUser,
    service: Annotated[FindingService, Depends(get_finding_service)],
    review_cycle_id: uuid.UUID | None = Query(default=None, alias="reviewCycleId"),
    severity: Severity | None = Query(default=None),
    status: FindingStatus | None = Query(default=None),
    finding_type: FindingType | None = Query(default=None, alias="findingType"),
    search: str | None = Query(default=None, description="Title or description substring"),
) -> FindingListResponse:
    """List findings with counts by status and severity."""
    return await service.list_findings(
        review_cycle_id=review_cycle_id,
        severity=severity,
        status=status,
        finding_type=finding_type,
        search=search,
    )


@router.get("/findings/{finding_id}", response_model=FindingResponse)
async def get_finding(
    finding_id: uuid.UUID,
    user: CurrentUser,
    service: Annotated[FindingService, Depends(get_finding_service)],
) -> FindingResponse:
    return await service.get_finding(finding_id)


@router.patch("/findings/{finding_id}", response_model=FindingResponse)
async def update_finding_status(
    finding_id: uuid.UUID,
    request: FindingStatusUpdateRequest,
    user: Editor,
    service: Annotated[FindingService, Depends(get_finding_service)],
) -> FindingResponse:
    """Change a finding's status outside the decision workflow.

    Picks a finding up for review, marks remediation done, or closes it.
    Disallowed moves are rejected with 409.
    """
    logger.info(
        "PATCH /findings/{id}",
        user_id=str(user.user_id),
        finding_id=str(finding_id),
        status=request.status.value,
    )
    return await service.update_finding_status(finding_id, request, actor_id=user.user_id)


@router.post("/findings/{finding_id}/decision", response_model=FindingResponse)
async def decide_finding(
    finding_id: uuid.UUID,
    request: FindingDecisionRequest,
    user: Editor,
    service: Annotated[FindingService, Depends(get_finding_service)],
) -> FindingResponse:
    """Record a reviewer's decision on a finding.

    Only OPEN or IN_REVIEW findings can be decided (409 otherwise). An
    EXCEPTION needs compensating controls.

    Args:
        finding_id: The finding UUID.
        request: The decision and its supporting fields.
        user: The signed-in user.
        service: Injected FindingService.

    Returns:
        The decided finding.
    """
    logger.info(
        "POST /findings/{id}/decision",
        user_id=str(user.user_id),
        finding_id=str(finding_id),
        decision=request.decision.value,
    )
    return await service.decide_finding(finding_id, request, actor_id=user.user_id)


# ---------------------------------------------------------------------------
# Dashboard and report endpoints
# ---------------------------------------------------------------------------


@router.get("/dashboard", response_model=DashboardResponse)
async def get_dashboard(
    user: CurrentUser,
    service: Annotated[DashboardService, Depends(get_dashboard_service)],
) -> DashboardResponse:
    """Summary counts across reviews, findings and applications."""
    return await service.get_dashboard()


@router.post("/reports", response_model=ReportResponse, status_code=201)
async def create_report(
    request: ReportCreateRequest,
    user: Editor,
    service: Annotated[ReportService, Depends(get_report_service)],
) -> ReportResponse:
    return await service.create_report(request, actor_id=user.user_id)


@router.get("/reports", response_model=list[ReportResponse])
async def list_reports(
    user: CurrentUser,
    service: Annotated[ReportService, Depends(get_report_service)],
    review_cycle_id: uuid.UUID | None = Query(default=None, alias="reviewCycleId"),
    limit: int = Query(default=50, ge=1, le=100),
) -> list[ReportResponse]:
    return await service.list_reports(review_cycle_id=review_cycle_id, limit=limit)
