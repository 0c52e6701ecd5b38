"""Finding count rollups for review cycles.

The repository returns one (severity, status, count) row per group; this
module folds those rows into the five counters stored on ReviewCycle.
"""

from collections.abc import Iterable
from dataclasses import dataclass

from access_review_engine.core.enums import Severity
from access_review_engine.core.lifecycle import RESOLVED_FINDING_STATUSES


@dataclass(frozen=True)
class FindingCounts:
    """Finding counters for one review cycle.

    `total` counts every finding. The per-severity counts include only
    findings whose status is not REMEDIATED, DISMISSED or CLOSED, so their
    sum never exceeds `total`. INFO findings count toward `total` only.
    """

    total: int = 0
    critical: int = 0
    high: int = 0
    medium: int = 0
    low: int = 0

    def as_column_values(self) -> dict[str, int]:
        """Return the ReviewCycle column values for these counts."""
        return {
            "total_findings": self.total,
            "critical_findings": self.critical,
            "high_findings": self.high,
            "medium_findings": self.medium,
            "low_findings": self.low,
        }


_SEVERITY_FIELDS: dict[str, str] = {
    Severity.CRITICAL.value: "critical",
    Severity.HIGH.value: "high",
    Severity.MEDIUM.value: "medium",
    Severity.LOW.value: "low",
}

_RESOLVED: frozenset[str] = frozenset(status.value for status in RESOLVED_FINDING_STATUSES)


def tally_finding_counts(rows: Iterable[tuple[str, str, int]]) -> FindingCounts:
    """Fold grouped (severity, status, count) rows into FindingCounts.

    Args:
        rows: One row per (severity, status) group of a review's findings.

    Returns:
        The review cycle's FindingCounts.
    """
    totals = {"total": 0, "critical": 0, "high": 0, "medium": 0, "low": 0}
    for severity, status, count in rows:
        totals["total"] += count
        if status in _RESOLVED:
            continue
        severity_field = _SEVERITY_FIELDS.get(severity)
        if severity_field is not None:
            totals[severity_field] += count
    return FindingCounts(**totals)

