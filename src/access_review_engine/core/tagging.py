"""Access risk tagging for imported access records.

Computes the privileged, segregation-of-duties and dormancy flags for one
record from the application's role catalog and SoD conflict rules. Tagging
never raises: unknown role names and missing or unusable login data simply
leave the corresponding flag false.
"""

import uuid
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

from access_review_engine.core.models import ApplicationRole, SodConflict

DEFAULT_DORMANT_DAYS = 90


@dataclass(frozen=True)
class AccessTags:
    """Risk flags computed for one access record.

    Attributes:
        has_privileged_access: At least one matched role is privileged.
        has_sod_conflict: The matched roles contain both sides of a conflict rule.
        is_dormant: Last login is at least the dormancy threshold before now.
        matched_role_ids: Ids of catalog roles the record's role names resolved to.
        sod_conflict_ids: Ids of every conflict rule that fired, in rule order.
    """

    has_privileged_access: bool = False
    has_sod_conflict: bool = False
    is_dormant: bool = False
    matched_role_ids: list[uuid.UUID] = field(default_factory=list)
    sod_conflict_ids: list[uuid.UUID] = field(default_factory=list)


def build_role_catalog(roles: Iterable[ApplicationRole]) -> dict[str, ApplicationRole]:
    """Index an application's roles by lower-cased, trimmed name."""
    return {role.name.strip().lower(): role for role in roles}


def resolve_dormant_days(thresholds: dict | None, fallback: int = DEFAULT_DORMANT_DAYS) -> int:  # type: ignore[type-arg]
    """Read the dormancy threshold from framework thresholds.

    Args:
        thresholds: The framework's thresholds mapping, e.g. {"dormantDays": 60}.
        fallback: Days used when the framework sets no usable value.

    Returns:
        A positive number of days.
    """
    if not thresholds:
        return fallback
    value = thresholds.get("dormantDays")
    if isinstance(value, bool) or not isinstance(value, int | float) or value <= 0:
        return fallback
    return int(value)


def is_dormant(last_login_at: datetime | None, now: datetime, dormant_days: int = DEFAULT_DORMANT_DAYS) -> bool:
    """Return True when the last login is at least `dormant_days` before `now`.

    Naive datetimes are taken to be UTC. A missing login is never dormant.
    """
    if not isinstance(last_login_at, datetime):
        return False
    if last_login_at.tzinfo is None:
        last_login_at = last_login_at.replace(tzinfo=UTC)
    if now.tzinfo is None:
        now = now.replace(tzinfo=UTC)
    return now - last_login_at >= timedelta(days=dormant_days)


def tag_access(
    role_names: Sequence[str] | None,
    catalog: dict[str, ApplicationRole],
    conflicts: Sequence[SodConflict],
    last_login_at: datetime | None,
    now: datetime,
    dormant_days: int = DEFAULT_DORMANT_DAYS,
) -> AccessTags:
    """Compute the risk flags for one access record.

    Args:
        role_names: Role names held by the user, verbatim from the source file.
        catalog: The application's roles keyed by lower-cased name.
        conflicts: The application's SoD conflict rules.
        last_login_at: The user's last login, if known.
        now: Reference time for the dormancy check.
        dormant_days: Dormancy threshold in days.

    Returns:
        The AccessTags for the record.
    """
    matched: dict[uuid.UUID, ApplicationRole] = {}
    for name in role_names or []:
        if not isinstance(name, str):
            continue
        role = catalog.get(name.strip().lower())
        if role is not None:
            matched.setdefault(role.id, role)

    fired = [
        conflict.id
        for conflict in conflicts
        if conflict.role1_id in matched and conflict.role2_id in matched
    ]

    return AccessTags(
        has_privileged_access=any(role.is_privileged for role in matched.values()),
        has_sod_conflict=bool(fired),
        is_dormant=is_dormant(last_login_at, now, dormant_days),
        matched_role_ids=list(matched),
        sod_conflict_ids=fired,
    )
