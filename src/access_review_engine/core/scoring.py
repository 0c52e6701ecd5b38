"""Application profile completeness scoring."""

from collections.abc import Mapping
from typing import Any

# Weights sum to 100. Keys are Application attribute names.
PROFILE_FIELD_WEIGHTS: dict[str, int] = {
    "name": 10,
    "description": 10,
    "vendor": 10,
    "system_owner": 10,
    "business_unit": 10,
    "purpose": 15,
    "typical_users": 10,
    "sensitive_functions": 10,
    "access_request_process": 5,
    "framework_id": 10,
}


def _is_filled(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    return True


def calculate_profile_completeness(profile: Mapping[str, Any]) -> int:
    """Sum the weights of every filled profile field.

    A field counts when it is present and not None; strings must also be
    non-blank after trimming. There is no partial credit.

    Args:
        profile: Application field values keyed by attribute name.

    Returns:
        The completeness score, 0-100.
    """
    return sum(weight for name, weight in PROFILE_FIELD_WEIGHTS.items() if _is_filled(profile.get(name)))
