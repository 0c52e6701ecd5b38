"""Abstract interfaces (Protocol classes) for the access review engine.

Defines the contracts between the service layer and the adapter layer using
typing.Protocol. Services depend on these protocols, never on the concrete
SQLAlchemy repositories, so they can be tested with mock repositories.

Protocols defined:
- IApplicationRepository
- IRoleRepository
- ISodConflictRepository
- IFrameworkRepository
- IEmployeeRepository
- IReviewCycleRepository
- IAccessRecordRepository
- IFindingRepository
- IReportRepository
- IAuditLogRepository
"""

import uuid
from datetime import datetime
from typing import Any, Protocol

from access_review_engine.core.aggregation import FindingCounts
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


class IApplicationRepository(Protocol):
    """Repository contract for Application persistence."""

    async def create(self, values: dict[str, Any]) -> Application:
        """Insert a new application from attribute values."""
        ...

    async def get_by_id(self, application_id: uuid.UUID) -> Application:
        """Retrieve an application by ID.

        Raises:
            NotFoundError: If no application exists with the given ID.
        """
        ...

    async def list_all(
        self,
        search: str | None = None,
        data_classification: str | None = None,
        framework_id: uuid.UUID | None = None,
        active_only: bool = False,
    ) -> list[Application]:
        """List applications ordered by name.

        Args:
            search: Case-insensitive substring of the application name.
            data_classification: Only applications with this classification.
            framework_id: Only applications assigned to this framework.
            active_only: Exclude soft-deleted applications.

        Returns:
            Matching Application records.
        """
        ...

    async def update(self, application: Application, values: dict[str, Any]) -> Application:
        ...

    async def has_review_history(self, application_id: uuid.UUID) -> bool:
        """Return True if any review cycle references the application."""
        ...

    async def remove(self, application: Application) -> None:
        ...

    async def count_active(self) -> int:
        ...

    async def count_by_framework(self, framework_id: uuid.UUID) -> int:
        """Count applications (active or not) assigned to a framework."""
        ...


class IRoleRepository(Protocol):
    """Repository contract for ApplicationRole persistence."""

    async def create(self, application_id: uuid.UUID, values: dict[str, Any]) -> ApplicationRole:
        ...

    async def get_by_id(self, role_id: uuid.UUID) -> ApplicationRole:
        """Retrieve a role by ID.

        Raises:
            NotFoundError: If no role exists with the given ID.
        """
        ...

    async def list_for_application(self, application_id: uuid.UUID) -> list[ApplicationRole]:
        """List an application's roles ordered by name."""
        ...

    async def find_by_name(self, application_id: uuid.UUID, name: str) -> ApplicationRole | None:
        """Find a role by name within an application, ignoring case and surrounding whitespace."""
        ...

    async def update(self, role: ApplicationRole, values: dict[str, Any]) -> ApplicationRole:
        ...

    async def remove(self, role: ApplicationRole) -> None:
        ...

    async def is_referenced_by_conflict(self, role_id: uuid.UUID) -> bool:
        """Return True if any SoD conflict rule names the role on either side."""
        ...


class ISodConflictRepository(Protocol):
    """Repository contract for SodConflict persistence."""

    async def create(
        self,
        application_id: uuid.UUID,
        role1_id: uuid.UUID,
        role2_id: uuid.UUID,
        conflict_reason: str | None,
        severity: str,
    ) -> SodConflict:
        ...

    async def get_by_id(self, conflict_id: uuid.UUID) -> SodConflict:
        ...

    async def list_for_application(self, application_id: uuid.UUID) -> list[SodConflict]:
        ...

    async def find_for_pair(
        self,
        application_id: uuid.UUID,
        role_a_id: uuid.UUID,
        role_b_id: uuid.UUID,
    ) -> SodConflict | None:
        """Find the conflict for an unordered role pair, in either column order."""
        ...

    async def remove(self, conflict: SodConflict) -> None:
        ...


class IFrameworkRepository(Protocol):
    """Repository contract for Framework and CheckCategory persistence."""

    async def create(self, values: dict[str, Any], categories: list[dict[str, Any]]) -> Framework:
        """Insert a framework together with its check categories.

        Args:
            values: Framework attribute values.
            categories: Attribute values of each check category, in order.

        Returns:
            The persisted Framework with check_categories loaded.
        """
        ...

    async def get_by_id(self, framework_id: uuid.UUID) -> Framework:
        """Retrieve a framework by ID with its check categories.

        Raises:
            NotFoundError: If no framework exists with the given ID.
        """
        ...

    async def get_default(self) -> Framework | None:
        ...

    async def list_all(self) -> list[Framework]:
        """List frameworks, default first, then by name."""
        ...

    async def update(self, framework: Framework, values: dict[str, Any]) -> Framework:
        ...

    async def clear_default(self, exclude_id: uuid.UUID | None = None) -> None:
        """Unset the default flag on every framework other than `exclude_id`.

        Runs on the caller's session so that the caller's subsequent set of
        the new default commits in the same transaction.
        """
        ...

    async def count_review_cycles(self, framework_id: uuid.UUID) -> int:
        """Count review cycles run under a framework."""
        ...

    async def add_check_category(self, framework: Framework, values: dict[str, Any]) -> CheckCategory:
        ...

    async def get_check_category(self, category_id: uuid.UUID) -> CheckCategory:
        """Retrieve a check category by ID.

        Raises:
            NotFoundError: If no check category exists with the given ID.
        """
        ...

    async def update_check_category(self, category: CheckCategory, values: dict[str, Any]) -> CheckCategory:
        ...

    async def remove_check_category(self, category: CheckCategory) -> None:
        ...

    async def remove(self, framework: Framework) -> None:
        ...


class IEmployeeRepository(Protocol):
    """Read-only repository contract for the HR roster."""

    async def list_all(self) -> list[Employee]:
        """Load the full employee roster."""
        ...


class IReviewCycleRepository(Protocol):
    """Repository contract for ReviewCycle persistence."""

    async def create(self, values: dict[str, Any]) -> ReviewCycle:
        ...

    async def get_by_id(self, review_cycle_id: uuid.UUID) -> ReviewCycle:
        """Retrieve a review cycle by ID.

        Raises:
            NotFoundError: If no review cycle exists with the given ID.
        """
        ...

    async def list_all(
        self,
        application_id: uuid.UUID | None = None,
        status: str | None = None,
    ) -> list[ReviewCycle]:
        """List review cycles, newest first."""
        ...

    async def update(self, review_cycle: ReviewCycle, values: dict[str, Any]) -> ReviewCycle:
        ...

    async def remove(self, review_cycle: ReviewCycle) -> None:
        """Hard-delete a review cycle. Access records and findings cascade."""
        ...

    async def set_finding_counts(self, review_cycle_id: uuid.UUID, counts: FindingCounts) -> None:
        """Overwrite the five finding counters of a review cycle."""
        ...

    async def count_active(self) -> int:
        """Count review cycles not COMPLETED or ARCHIVED."""
        ...

    async def count_completed_since(self, since: datetime) -> int:
        ...

    async def list_upcoming(self, start: datetime, end: datetime, limit: int = 5) -> list[ReviewCycle]:
        """List active review cycles due between `start` and `end`, soonest first."""
        ...


class IAccessRecordRepository(Protocol):
    """Repository contract for UserAccessRecord persistence."""

    async def upsert(self, review_cycle_id: uuid.UUID, values: dict[str, Any]) -> UserAccessRecord:
        """Insert or replace the record keyed by (review_cycle_id, username).

        Runs inside a SAVEPOINT: a failure rolls back this record only and
        leaves the surrounding transaction usable.

        Args:
            review_cycle_id: The owning review cycle.
            values: Record attribute values, including `username`.

        Returns:
            The inserted or updated UserAccessRecord.

        Raises:
            PartialImportError: If the database rejects the record.
        """
        ...

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
        """List a page of a review's access records.

        Ordered SoD conflicts first, then privileged access, then username.

        Returns:
            The page of records and the total count matching the filters.
        """
        ...

    async def stats_for_review(self, review_cycle_id: uuid.UUID) -> dict[str, int]:
        """Summary counts over all of a review's access records."""
        ...

    async def count_for_review(self, review_cycle_id: uuid.UUID) -> int:
        ...

    async def delete_for_review(self, review_cycle_id: uuid.UUID) -> int:
        """Delete all access records of a review. Returns the number deleted."""
        ...

    async def exists_in_review(self, record_id: uuid.UUID, review_cycle_id: uuid.UUID) -> bool:
        ...


class IFindingRepository(Protocol):
    """Repository contract for Finding persistence."""

    async def create(self, values: dict[str, Any]) -> Finding:
        ...

    async def get_by_id(self, finding_id: uuid.UUID) -> Finding:
        """Retrieve a finding by ID.

        Raises:
            NotFoundError: If no finding exists with the given ID.
        """
        ...

    async def list_all(
        self,
        review_cycle_id: uuid.UUID | None = None,
        severity: str | None = None,
        status: str | None = None,
        finding_type: str | None = None,
        search: str | None = None,
    ) -> list[Finding]:
        ...

    async def update(self, finding: Finding, values: dict[str, Any]) -> Finding:
        ...

    async def severity_status_counts(self, review_cycle_id: uuid.UUID | None = None) -> list[tuple[str, str, int]]:
        """Group findings by (severity, status) and count each group.

        Args:
            review_cycle_id: Restrict to one review cycle; all findings when None.

        Returns:
            One (severity, status, count) row per non-empty group.
        """
        ...

    async def count_for_review(self, review_cycle_id: uuid.UUID) -> int:
        ...


class IReportRepository(Protocol):
    """Repository contract for Report metadata persistence."""

    async def create(self, values: dict[str, Any]) -> Report:
        ...

    async def list_all(self, review_cycle_id: uuid.UUID | None = None, limit: int = 50) -> list[Report]:
        """List reports, most recently generated first."""
        ...


class IAuditLogRepository(Protocol):
    """Append-only repository contract for the audit log.

    There are no update or delete operations.
    """

    async def append(
        self,
        user_id: uuid.UUID | None,
        action: str,
        entity_type: str,
        entity_id: uuid.UUID | None,
        previous_values: dict[str, Any] | None,
        new_values: dict[str, Any] | None,
    ) -> AuditLog:
        """Append an audit log entry.

        Args:
            user_id: The acting user.
            action: Short action verb (created, updated, decided, ...).
            entity_type: Affected entity type, e.g. "finding".
            entity_id: Affected entity ID.
            previous_values: Relevant values before the change.
            new_values: Relevant values after the change.

        Returns:
            The persisted AuditLog entry.
        """
        ...
