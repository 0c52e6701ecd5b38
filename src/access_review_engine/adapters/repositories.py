"""SQLAlchemy repositories for the access review engine.

Each repository implements the corresponding interface from core/interfaces.py
and extends BaseRepository for the shared get/add/update/remove operations.

Repositories:
- ApplicationRepository    — Application CRUD and dashboard counts
- RoleRepository           — ApplicationRole CRUD
- SodConflictRepository    — SodConflict create/list/delete
- FrameworkRepository      — Framework and CheckCategory CRUD, default flag
- EmployeeRepository       — read-only HR roster
- ReviewCycleRepository    — ReviewCycle CRUD and finding counters
- AccessRecordRepository   — UserAccessRecord upsert, listing and stats
- FindingRepository        — Finding CRUD and grouped counts
- ReportRepository         — Report metadata
- AuditLogRepository       — append-only audit log
"""

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import and_, delete, exists, func, or_, select, update
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from access_review_engine.core.aggregation import FindingCounts
from access_review_engine.core.enums import AccessReviewStatus, ReviewCycleStatus
from access_review_engine.core.lifecycle import ACTIVE_STATUSES
from access_review_engine.core.models import (
    Application,
    ApplicationRole,
    AuditLog,
    CheckCategory,
    Employee,
    Finding,
    Framework,
    Report,
    ReviewCycle,
    SodConflict,
    UserAccessRecord,
)
from access_review_engine.database import BaseRepository
from access_review_engine.errors import NotFoundError, PartialImportError
from access_review_engine.observability import get_logger

logger = get_logger(__name__)

_ACTIVE_STATUS_VALUES = [status.value for status in ACTIVE_STATUSES]


def _like(term: str) -> str:
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


class ApplicationRepository(BaseRepository[Application]):
    """Repository for Application persistence.

    Args:
        session: The request-scoped async session.
    """

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Application)

    async def create(self, values: dict[str, Any]) -> Application:
        """Insert a new application.

        Args:
            values: Application attribute values.

        Returns:
            The persisted Application.
        """
        application = await self.add(Application(**values))
        logger.info("Application created in DB", application_id=str(application.id))
        return application

    async def get_by_id(self, application_id: uuid.UUID) -> Application:
        return await self.get(application_id)

    async def list_all(
        self,
        search: str | None = None,
        data_classification: str | None = None,
        framework_id: uuid.UUID | None = None,
        active_only: bool = False,
    ) -> list[Application]:
        stmt = select(Application)
        if search:
            stmt = stmt.where(Application.name.ilike(_like(search), escape="\\"))
        if data_classification:
            stmt = stmt.where(Application.data_classification == data_classification)
        if framework_id is not None:
            stmt = stmt.where(Application.framework_id == framework_id)
        if active_only:
            stmt = stmt.where(Application.is_active.is_(True))
        stmt = stmt.order_by(Application.name)
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def has_review_history(self, application_id: uuid.UUID) -> bool:
        stmt = select(exists().where(ReviewCycle.application_id == application_id))
        result = await self._session.execute(stmt)
        return bool(result.scalar())

    async def count_active(self) -> int:
        stmt = select(func.count()).select_from(Application).where(Application.is_active.is_(True))
        result = await self._session.execute(stmt)
        return result.scalar() or 0

    async def count_by_framework(self, framework_id: uuid.UUID) -> int:
        stmt = select(func.count()).select_from(Application).where(Application.framework_id == framework_id)
        result = await self._session.execute(stmt)
        return result.scalar() or 0


class RoleRepository(BaseRepository[ApplicationRole]):
    """Repository for ApplicationRole persistence.

    Args:
        session: The request-scoped async session.
    """

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, ApplicationRole)

    async def create(self, application_id: uuid.UUID, values: dict[str, Any]) -> ApplicationRole:
        return await self.add(ApplicationRole(application_id=application_id, **values))

    async def get_by_id(self, role_id: uuid.UUID) -> ApplicationRole:
        return await self.get(role_id)

    async def list_for_application(self, application_id: uuid.UUID) -> list[ApplicationRole]:
        stmt = (
            select(ApplicationRole)
            .where(ApplicationRole.application_id == application_id)
            .order_by(ApplicationRole.name)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def find_by_name(self, application_id: uuid.UUID, name: str) -> ApplicationRole | None:
        stmt = select(ApplicationRole).where(
            ApplicationRole.application_id == application_id,
            func.lower(ApplicationRole.name) == name.strip().lower(),
        )
        result = await self._session.execute(stmt)
        return result.scalars().first()

    async def is_referenced_by_conflict(self, role_id: uuid.UUID) -> bool:
        stmt = select(
            exists().where(or_(SodConflict.role1_id == role_id, SodConflict.role2_id == role_id))
        )
        result = await self._session.execute(stmt)
        return bool(result.scalar())


class SodConflictRepository(BaseRepository[SodConflict]):
    """Repository for SodConflict persistence.

    Args:
        session: The request-scoped async session.
    """

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, SodConflict)

    async def create(
        self,
        application_id: uuid.UUID,
        role1_id: uuid.UUID,
        role2_id: uuid.UUID,
        conflict_reason: str | None,
        severity: str,
    ) -> SodConflict:
        conflict = SodConflict(
            application_id=application_id,
            role1_id=role1_id,
            role2_id=role2_id,
            conflict_reason=conflict_reason,
            severity=severity,
        )
        return await self.add(conflict)

    async def get_by_id(self, conflict_id: uuid.UUID) -> SodConflict:
        return await self.get(conflict_id)

    async def list_for_application(self, application_id: uuid.UUID) -> list[SodConflict]:
        stmt = (
            select(SodConflict)
            .where(SodConflict.application_id == application_id)
            .order_by(SodConflict.created_at)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def find_for_pair(
        self,
        application_id: uuid.UUID,
        role_a_id: uuid.UUID,
        role_b_id: uuid.UUID,
    ) -> SodConflict | None:
        stmt = select(SodConflict).where(
            SodConflict.application_id == application_id,
            or_(
                and_(SodConflict.role1_id == role_a_id, SodConflict.role2_id == role_b_id),
                and_(SodConflict.role1_id == role_b_id, SodConflict.role2_id == role_a_id),
            ),
        )
        result = await self._session.execute(stmt)
        return result.scalars().first()


class FrameworkRepository(BaseRepository[Framework]):
    """Repository for Framework and CheckCategory persistence.

    Args:
        session: The request-scoped async session.
    """

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Framework)

    async def create(self, values: dict[str, Any], categories: list[dict[str, Any]]) -> Framework:
        framework = Framework(**values)
        framework.check_categories = [CheckCategory(**category) for category in categories]
        framework = await self.add(framework)
        logger.info(
            "Framework created in DB",
            framework_id=str(framework.id),
            category_count=len(categories),
        )
        return framework

    async def get_by_id(self, framework_id: uuid.UUID) -> Framework:
        return await self.get(framework_id)

    async def get_default(self) -> Framework | None:
        stmt = select(Framework).where(Framework.is_default.is_(True))
        result = await self._session.execute(stmt)
        return result.scalars().first()

    async def list_all(self) -> list[Framework]:
        stmt = select(Framework).order_by(Framework.is_default.desc(), Framework.name)
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def clear_default(self, exclude_id: uuid.UUID | None = None) -> None:
        stmt = update(Framework).where(Framework.is_default.is_(True))
        if exclude_id is not None:
            stmt = stmt.where(Framework.id != exclude_id)
        await self._session.execute(stmt.values(is_default=False).execution_options(synchronize_session="fetch"))

    async def count_review_cycles(self, framework_id: uuid.UUID) -> int:
        stmt = select(func.count()).select_from(ReviewCycle).where(ReviewCycle.framework_id == framework_id)
        result = await self._session.execute(stmt)
        return result.scalar() or 0

    async def add_check_category(self, framework: Framework, values: dict[str, Any]) -> CheckCategory:
        category = CheckCategory(framework_id=framework.id, **values)
        self._session.add(category)
        await self._session.flush()
        await self._session.refresh(category)
        await self._session.refresh(framework, attribute_names=["check_categories"])
        return category

    async def get_check_category(self, category_id: uuid.UUID) -> CheckCategory:
        category = await self._session.get(CheckCategory, category_id)
        if category is None:
            raise NotFoundError(resource="CheckCategory", resource_id=str(category_id))
        return category

    async def update_check_category(self, category: CheckCategory, values: dict[str, Any]) -> CheckCategory:
        for attribute, value in values.items():
            setattr(category, attribute, value)
        await self._session.flush()
        await self._session.refresh(category)
        return category

    async def remove_check_category(self, category: CheckCategory) -> None:
        await self._session.delete(category)
        await self._session.flush()


class EmployeeRepository(BaseRepository[Employee]):
    """Read-only repository for the HR roster.

    Args:
        session: The request-scoped async session.
    """

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Employee)

    async def list_all(self) -> list[Employee]:
        stmt = select(Employee).order_by(Employee.employee_id)
        result = await self._session.execute(stmt)
        return list(result.scalars().all())


class ReviewCycleRepository(BaseRepository[ReviewCycle]):
    """Repository for ReviewCycle persistence.

    Args:
        session: The request-scoped async session.
    """

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, ReviewCycle)

    async def create(self, values: dict[str, Any]) -> ReviewCycle:
        review_cycle = await self.add(ReviewCycle(**values))
        logger.info("Review cycle created in DB", review_cycle_id=str(review_cycle.id))
        return review_cycle

    async def get_by_id(self, review_cycle_id: uuid.UUID) -> ReviewCycle:
        return await self.get(review_cycle_id)

    async def list_all(
        self,
        application_id: uuid.UUID | None = None,
        status: str | None = None,
    ) -> list[ReviewCycle]:
        stmt = select(ReviewCycle)
        if application_id is not None:
            stmt = stmt.where(ReviewCycle.application_id == application_id)
        if status:
            stmt = stmt.where(ReviewCycle.status == status)
        stmt = stmt.order_by(
            ReviewCycle.year.desc(),
            ReviewCycle.quarter.desc().nulls_last(),
            ReviewCycle.created_at.desc(),
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def set_finding_counts(self, review_cycle_id: uuid.UUID, counts: FindingCounts) -> None:
        """Overwrite the five finding counters of a review cycle.

        Args:
            review_cycle_id: The review cycle UUID.
            counts: The freshly tallied counts.
        """
        stmt = (
            update(ReviewCycle)
            .where(ReviewCycle.id == review_cycle_id)
            .values(**counts.as_column_values())
            .execution_options(synchronize_session="fetch")
        )
        await self._session.execute(stmt)
        logger.info(
            "Finding counts updated",
            review_cycle_id=str(review_cycle_id),
            total=counts.total,
            critical=counts.critical,
        )

    async def count_active(self) -> int:
        stmt = select(func.count()).select_from(ReviewCycle).where(ReviewCycle.status.in_(_ACTIVE_STATUS_VALUES))
        result = await self._session.execute(stmt)
        return result.scalar() or 0

    async def count_completed_since(self, since: datetime) -> int:
        stmt = (
            select(func.count())
            .select_from(ReviewCycle)
            .where(
                ReviewCycle.status == ReviewCycleStatus.COMPLETED.value,
                ReviewCycle.completed_at >= since,
            )
        )
        result = await self._session.execute(stmt)
        return result.scalar() or 0

    async def list_upcoming(self, start: datetime, end: datetime, limit: int = 5) -> list[ReviewCycle]:
        stmt = (
            select(ReviewCycle)
            .where(
                ReviewCycle.status.in_(_ACTIVE_STATUS_VALUES),
                ReviewCycle.due_date >= start,
                ReviewCycle.due_date <= end,
            )
            .order_by(ReviewCycle.due_date)
            .limit(limit)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())


class AccessRecordRepository(BaseRepository[UserAccessRecord]):
    """Repository for UserAccessRecord persistence.

    Args:
        session: The request-scoped async session.
    """

    # Columns replaced when a username is re-imported into the same review
    _UPSERT_COLUMNS: tuple[str, ...] = (
        "email",
        "display_name",
        "employee_id",
        "roles",
        "last_login_at",
        "grant_date",
        "has_sod_conflict",
        "has_privileged_access",
        "is_dormant",
        "sod_conflict_ids",
        "review_status",
        "raw_data",
    )

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, UserAccessRecord)

    async def upsert(self, review_cycle_id: uuid.UUID, values: dict[str, Any]) -> UserAccessRecord:
        stmt = insert(UserAccessRecord).values(review_cycle_id=review_cycle_id, **values)
        stmt = stmt.on_conflict_do_update(
            constraint="uq_uar_user_access_records_username",
            set_={
                **{column: stmt.excluded[column] for column in self._UPSERT_COLUMNS if column in values},
                "updated_at": func.now(),
            },
        ).returning(UserAccessRecord)

        try:
            async with self._session.begin_nested():
                result = await self._session.execute(stmt, execution_options={"populate_existing": True})
                return result.scalar_one()
        except SQLAlchemyError as exc:
            raise PartialImportError(record=values["username"], error=str(getattr(exc, "orig", None) or exc)) from exc

    def _filtered(
        self,
        review_cycle_id: uuid.UUID,
        search: str | None,
        review_status: str | None,
        has_sod_conflict: bool | None,
        has_privileged_access: bool | None,
        is_dormant: bool | None,
    ) -> list[Any]:
        conditions: list[Any] = [UserAccessRecord.review_cycle_id == review_cycle_id]
        if search:
            pattern = _like(search)
            conditions.append(
                or_(
                    UserAccessRecord.username.ilike(pattern, escape="\\"),
                    UserAccessRecord.email.ilike(pattern, escape="\\"),
                    UserAccessRecord.display_name.ilike(pattern, escape="\\"),
                )
            )
        if review_status:
            conditions.append(UserAccessRecord.review_status == review_status)
        if has_sod_conflict is not None:
            conditions.append(UserAccessRecord.has_sod_conflict.is_(has_sod_conflict))
        if has_privileged_access is not None:
            conditions.append(UserAccessRecord.has_privileged_access.is_(has_privileged_access))
        if is_dormant is not None:
            conditions.append(UserAccessRecord.is_dormant.is_(is_dormant))
        return conditions

    async def list_for_review(
        self,
        review_cycle_id: uuid.UUID,
        search: str | None = None,
        review_status: str | None = None,
        has_sod_conflict: bool | None = None,
        has_privileged_access: bool | None = None,
        is_dormant: bool | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[UserAccessRecord], int]:
        conditions = self._filtered(
            review_cycle_id, search, review_status, has_sod_conflict, has_privileged_access, is_dormant
        )

        count_stmt = select(func.count()).select_from(UserAccessRecord).where(*conditions)
        total = (await self._session.execute(count_stmt)).scalar() or 0

        stmt = (
            select(UserAccessRecord)
            .where(*conditions)
            .order_by(
                UserAccessRecord.has_sod_conflict.desc(),
                UserAccessRecord.has_privileged_access.desc(),
                UserAccessRecord.username,
            )
            .offset(offset)
            .limit(limit)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all()), total

    async def stats_for_review(self, review_cycle_id: uuid.UUID) -> dict[str, int]:
        def _count_where(condition: Any) -> Any:
            return func.count().filter(condition)

        stmt = select(
            func.count().label("total"),
            _count_where(UserAccessRecord.review_status == AccessReviewStatus.PENDING.value).label("pending"),
            _count_where(UserAccessRecord.review_status == AccessReviewStatus.NEEDS_REVIEW.value).label(
                "needs_review"
            ),
            _count_where(UserAccessRecord.review_status == AccessReviewStatus.APPROVED.value).label("approved"),
            _count_where(UserAccessRecord.review_status == AccessReviewStatus.REMEDIATION.value).label(
                "remediation"
            ),
            _count_where(UserAccessRecord.has_sod_conflict.is_(True)).label("sod_conflicts"),
            _count_where(UserAccessRecord.has_privileged_access.is_(True)).label("privileged_access"),
            _count_where(UserAccessRecord.is_dormant.is_(True)).label("dormant"),
        ).where(UserAccessRecord.review_cycle_id == review_cycle_id)
        row = (await self._session.execute(stmt)).one()
        return {key: value or 0 for key, value in row._mapping.items()}

    async def count_for_review(self, review_cycle_id: uuid.UUID) -> int:
        stmt = (
            select(func.count())
            .select_from(UserAccessRecord)
            .where(UserAccessRecord.review_cycle_id == review_cycle_id)
        )
        result = await self._session.execute(stmt)
        return result.scalar() or 0

    async def delete_for_review(self, review_cycle_id: uuid.UUID) -> int:
        stmt = delete(UserAccessRecord).where(UserAccessRecord.review_cycle_id == review_cycle_id)
        result = await self._session.execute(stmt.execution_options(synchronize_session=False))
        deleted: int = result.rowcount or 0
        logger.info("Access records deleted", review_cycle_id=str(review_cycle_id), deleted=deleted)
        return deleted

    async def exists_in_review(self, record_id: uuid.UUID, review_cycle_id: uuid.UUID) -> bool:
        stmt = select(
            exists().where(
                UserAccessRecord.id == record_id,
                UserAccessRecord.review_cycle_id == review_cycle_id,
            )
        )
        result = await self._session.execute(stmt)
        return bool(result.scalar())


class FindingRepository(BaseRepository[Finding]):
    """Repository for Finding persistence.

    Args:
        session: The request-scoped async session.
    """

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Finding)

    async def create(self, values: dict[str, Any]) -> Finding:
        finding = await self.add(Finding(**values))
        logger.info(
            "Finding created in DB",
            finding_id=str(finding.id),
            review_cycle_id=str(finding.review_cycle_id),
        )
        return finding

    async def get_by_id(self, finding_id: uuid.UUID) -> Finding:
        return await self.get(finding_id)

    async def list_all(
        self,
        review_cycle_id: uuid.UUID | None = None,
        severity: str | None = None,
        status: str | None = None,
        finding_type: str | None = None,
        search: str | None = None,
    ) -> list[Finding]:
        stmt = select(Finding)
        if review_cycle_id is not None:
            stmt = stmt.where(Finding.review_cycle_id == review_cycle_id)
        if severity:
            stmt = stmt.where(Finding.severity == severity)
        if status:
            stmt = stmt.where(Finding.status == status)
        if finding_type:
            stmt = stmt.where(Finding.finding_type == finding_type)
        if search:
            pattern = _like(search)
            stmt = stmt.where(
                or_(
                    Finding.title.ilike(pattern, escape="\\"),
                    Finding.description.ilike(pattern, escape="\\"),
                )
            )
        stmt = stmt.order_by(Finding.created_at.desc())
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def severity_status_counts(self, review_cycle_id: uuid.UUID | None = None) -> list[tuple[str, str, int]]:
        stmt = select(Finding.severity, Finding.status, func.count()).group_by(Finding.severity, Finding.status)
        if review_cycle_id is not None:
            stmt = stmt.where(Finding.review_cycle_id == review_cycle_id)
        result = await self._session.execute(stmt)
        return [(severity, status, count) for severity, status, count in result.all()]

    async def count_for_review(self, review_cycle_id: uuid.UUID) -> int:
        stmt = select(func.count()).select_from(Finding).where(Finding.review_cycle_id == review_cycle_id)
        result = await self._session.execute(stmt)
        return result.scalar() or 0


class ReportRepository(BaseRepository[Report]):
    """Repository for Report metadata.

    Args:
        session: The request-scoped async session.
    """

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Report)

    async def create(self, values: dict[str, Any]) -> Report:
        return await self.add(Report(**values))

    async def list_all(self, review_cycle_id: uuid.UUID | None = None, limit: int = 50) -> list[Report]:
        stmt = select(Report)
        if review_cycle_id is not None:
            stmt = stmt.where(Report.review_cycle_id == review_cycle_id)
        stmt = stmt.order_by(Report.generated_at.desc()).limit(limit)
        result = await self._session.execute(stmt)
        return list(result.scalars().all())


class AuditLogRepository:
    """Append-only repository for the audit log.

    Exposes no update or remove operations.

    Args:
        session: The request-scoped async session.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def append(
        self,
        user_id: uuid.UUID | None,
        action: str,
        entity_type: str,
        entity_id: uuid.UUID | None,
        previous_values: dict[str, Any] | None,
        new_values: dict[str, Any] | None,
    ) -> AuditLog:
        entry = AuditLog(
            user_id=user_id,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            previous_values=previous_values,
            new_values=new_values,
        )
        self._session.add(entry)
        await self._session.flush()
        return entry
