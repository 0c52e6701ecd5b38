"""Review cycle and finding lifecycle rules.

All review cycle status changes go through `ensure_transition_allowed`,
which checks the explicit transition table below. Import and clear have
their own gates (IMPORTABLE_STATUSES, CLEARABLE_STATUSES); clearing is the
only way back to DRAFT.

Forward path:

    DRAFT -> DATA_COLLECTION -> ANALYSIS_PENDING -> ANALYSIS_COMPLETE
          -> IN_REVIEW -> PENDING_ATTESTATION -> COMPLETED

PENDING_ATTESTATION may be sent back to IN_REVIEW. ARCHIVED is terminal
and reachable from every state except DRAFT (a DRAFT cycle is deleted
instead).
"""

from datetime import datetime

from access_review_engine.core.enums import FindingDecision, FindingStatus, ReviewCycleStatus
from access_review_engine.core.models import ReviewCycle
from access_review_engine.errors import InvalidStateError

_S = ReviewCycleStatus

REVIEW_CYCLE_TRANSITIONS: dict[ReviewCycleStatus, frozenset[ReviewCycleStatus]] = {
    _S.DRAFT: frozenset({_S.DATA_COLLECTION}),
    _S.DATA_COLLECTION: frozenset({_S.ANALYSIS_PENDING, _S.ARCHIVED}),
    _S.ANALYSIS_PENDING: frozenset({_S.ANALYSIS_COMPLETE, _S.ARCHIVED}),
    _S.ANALYSIS_COMPLETE: frozenset({_S.IN_REVIEW, _S.ARCHIVED}),
    _S.IN_REVIEW: frozenset({_S.PENDING_ATTESTATION, _S.ARCHIVED}),
    _S.PENDING_ATTESTATION: frozenset({_S.COMPLETED, _S.IN_REVIEW, _S.ARCHIVED}),
    _S.COMPLETED: frozenset({_S.ARCHIVED}),
    _S.ARCHIVED: frozenset(),
}

IMPORTABLE_STATUSES: frozenset[ReviewCycleStatus] = frozenset({_S.DRAFT, _S.DATA_COLLECTION})
CLEARABLE_STATUSES: frozenset[ReviewCycleStatus] = IMPORTABLE_STATUSES
ACTIVE_STATUSES: frozenset[ReviewCycleStatus] = frozenset(set(_S) - {_S.COMPLETED, _S.ARCHIVED})

# Progress shown for a review cycle, by status
STATUS_PROGRESS: dict[ReviewCycleStatus, int] = {
    _S.DRAFT: 5,
    _S.DATA_COLLECTION: 20,
    _S.ANALYSIS_PENDING: 40,
    _S.ANALYSIS_COMPLETE: 60,
    _S.IN_REVIEW: 75,
    _S.PENDING_ATTESTATION: 90,
    _S.COMPLETED: 100,
    _S.ARCHIVED: 100,
}

DECISION_STATUS: dict[FindingDecision, FindingStatus] = {
    FindingDecision.REMEDIATE: FindingStatus.PENDING_REMEDIATION,
    FindingDecision.EXCEPTION: FindingStatus.EXCEPTION_APPROVED,
    FindingDecision.DISMISS: FindingStatus.DISMISSED,
}

DECIDABLE_FINDING_STATUSES: frozenset[FindingStatus] = frozenset({FindingStatus.OPEN, FindingStatus.IN_REVIEW})
RESOLVED_FINDING_STATUSES: frozenset[FindingStatus] = frozenset(
    {FindingStatus.REMEDIATED, FindingStatus.DISMISSED, FindingStatus.CLOSED}
)
OPEN_FINDING_STATUSES: frozenset[FindingStatus] = frozenset(
    {FindingStatus.OPEN, FindingStatus.IN_REVIEW, FindingStatus.PENDING_REMEDIATION}
)

_F = FindingStatus

# Status changes made outside a decision. PENDING_REMEDIATION,
# EXCEPTION_APPROVED and DISMISSED are reached only through a decision.
FINDING_STATUS_TRANSITIONS: dict[FindingStatus, frozenset[FindingStatus]] = {
    _F.OPEN: frozenset({_F.IN_REVIEW, _F.CLOSED}),
    _F.IN_REVIEW: frozenset({_F.OPEN, _F.CLOSED}),
    _F.PENDING_REMEDIATION: frozenset({_F.REMEDIATED, _F.CLOSED}),
    _F.REMEDIATED: frozenset({_F.CLOSED}),
    _F.EXCEPTION_APPROVED: frozenset({_F.CLOSED}),
    _F.DISMISSED: frozenset({_F.CLOSED}),
    _F.CLOSED: frozenset(),
}


def can_transition(current: ReviewCycleStatus | str, target: ReviewCycleStatus | str) -> bool:
    """Return True if a review cycle may move from `current` to `target`."""
    return ReviewCycleStatus(target) in REVIEW_CYCLE_TRANSITIONS[ReviewCycleStatus(current)]


def ensure_transition_allowed(current: ReviewCycleStatus | str, target: ReviewCycleStatus | str) -> None:
    """Validate a review cycle status change.

    Args:
        current: The cycle's current status.
        target: The requested status.

    Raises:
        InvalidStateError: If the transition table does not allow the change.
    """
    if not can_transition(current, target):
        raise InvalidStateError(
            message=f"Cannot move review cycle from {current} to {target}",
            current_state=str(current),
        )


def ensure_importable(cycle: ReviewCycle) -> None:
    """Raise InvalidStateError unless access records may be imported into `cycle`."""
    if ReviewCycleStatus(cycle.status) not in IMPORTABLE_STATUSES:
        raise InvalidStateError(
            message="Access records can only be imported while the review is in DRAFT or DATA_COLLECTION",
            current_state=cycle.status,
        )


def ensure_clearable(cycle: ReviewCycle) -> None:
    """Raise InvalidStateError unless access records of `cycle` may be cleared."""
    if ReviewCycleStatus(cycle.status) not in CLEARABLE_STATUSES:
        raise InvalidStateError(
            message="Access records can only be cleared while the review is in DRAFT or DATA_COLLECTION",
            current_state=cycle.status,
        )


def apply_status(cycle: ReviewCycle, target: ReviewCycleStatus, now: datetime) -> None:
    """Set the cycle status and stamp entry timestamps.

    startedAt is stamped on entering DATA_COLLECTION and completedAt on
    entering COMPLETED. Existing stamps are never overwritten.

    Callers validate the transition first.
    """
    cycle.status = target.value
    if target == ReviewCycleStatus.DATA_COLLECTION and cycle.started_at is None:
        cycle.started_at = now
    if target == ReviewCycleStatus.COMPLETED and cycle.completed_at is None:
        cycle.completed_at = now


def progress_for(status: ReviewCycleStatus | str) -> int:
    """Return the progress percentage shown for a review cycle status."""
    return STATUS_PROGRESS[ReviewCycleStatus(status)]


def ensure_decidable(current: FindingStatus | str) -> None:
    """Raise InvalidStateError unless a finding in `current` status may be decided."""
    if FindingStatus(current) not in DECIDABLE_FINDING_STATUSES:
        raise InvalidStateError(
            message=f"Finding in status {current} has already been decided or closed",
            current_state=str(current),
        )


def ensure_finding_transition_allowed(current: FindingStatus | str, target: FindingStatus | str) -> None:
    """Validate a finding status change made outside a decision.

    Raises:
        InvalidStateError: If FINDING_STATUS_TRANSITIONS does not allow the change.
    """
    if FindingStatus(target) not in FINDING_STATUS_TRANSITIONS[FindingStatus(current)]:
        raise InvalidStateError(
            message=f"Cannot move finding from {current} to {target}",
            current_state=str(current),
        )


def status_for_decision(decision: FindingDecision | str) -> FindingStatus:
    """Map a finding decision to the status it produces."""
    return DECISION_STATUS[FindingDecision(decision)]
