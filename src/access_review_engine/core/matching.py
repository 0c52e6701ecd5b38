"""Identity matching of imported access records against the HR roster.

The roster is indexed once per import call. Lookups are exact and
case-insensitive: email first, then username against the employee id.
No fuzzy or partial matching is attempted.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field

from access_review_engine.core.models import Employee


def _normalize(value: str | None) -> str | None:
    if value is None:
        return None
    normalized = value.strip().lower()
    return normalized or None


@dataclass
class EmployeeIndex:
    """Case-insensitive roster index keyed by email and by employee id.

    Attributes:
        by_email: Lower-cased email to Employee.
        by_employee_id: Lower-cased HR employee id to Employee.
    """

    by_email: dict[str, Employee] = field(default_factory=dict)
    by_employee_id: dict[str, Employee] = field(default_factory=dict)

    @classmethod
    def build(cls, employees: Iterable[Employee]) -> "EmployeeIndex":
        """Index a roster.

        When duplicate data maps one key to several employees, the first
        employee in roster order keeps the key.

        Args:
            employees: The full employee roster.

        Returns:
            The populated EmployeeIndex.
        """
        index = cls()
        for employee in employees:
            email_key = _normalize(employee.email)
            if email_key is not None:
                index.by_email.setdefault(email_key, employee)
            id_key = _normalize(employee.employee_id)
            if id_key is not None:
                index.by_employee_id.setdefault(id_key, employee)
        return index

    def __len__(self) -> int:
        """Number of distinct employees reachable through either key."""
        indexed = {id(employee) for employee in self.by_email.values()}
        indexed.update(id(employee) for employee in self.by_employee_id.values())
        return len(indexed)


def match_employee(email: str | None, username: str | None, index: EmployeeIndex) -> Employee | None:
    """Resolve an imported identity to a roster employee.

    Email is tried first. Only when the email is absent or unknown is the
    username looked up against employee ids, so an email hit always wins
    over a conflicting employee-id hit.

    Args:
        email: Email from the imported record, if any.
        username: Username from the imported record.
        index: The roster index built for this import.

    Returns:
        The matched Employee, or None when the identity is unmatched.
    """
    email_key = _normalize(email)
    if email_key is not None:
        employee = index.by_email.get(email_key)
        if employee is not None:
            return employee

    username_key = _normalize(username)
    if username_key is not None:
        return index.by_employee_id.get(username_key)
    return None
