"""Session identity for access-review-engine.

Authentication itself is performed upstream: the service sits behind an
authenticating gateway which forwards the signed-in user's identity as
request headers. This module only reads that identity and gates
operations by role.

Headers:
- X-User-Id    — UUID of the signed-in user
- X-User-Role  — one of ADMINISTRATOR | ISO | ANALYST | AUDITOR
"""

import uuid
from collections.abc import Callable
from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, Header, HTTPException

from access_review_engine.core.enums import UserRole
from access_review_engine.errors import ForbiddenError

# Role groups used by the router
MUTATING_ROLES: tuple[UserRole, ...] = (UserRole.ADMINISTRATOR, UserRole.ISO, UserRole.ANALYST)
OFFICER_ROLES: tuple[UserRole, ...] = (UserRole.ADMINISTRATOR, UserRole.ISO)
ADMIN_ROLES: tuple[UserRole, ...] = (UserRole.ADMINISTRATOR,)


@dataclass(frozen=True)
class SessionUser:
    """The authenticated caller.

    Attributes:
        user_id: UUID of the signed-in user.
        role: The user's application role.
    """

    user_id: uuid.UUID
    role: UserRole

    def has_role(self, *roles: UserRole) -> bool:
        """Return True if the user holds any of the given roles."""
        return self.role in roles


async def get_current_user(
    x_user_id: Annotated[str | None, Header()] = None,
    x_user_role: Annotated[str | None, Header()] = None,
) -> SessionUser:
    """FastAPI dependency resolving the caller from gateway headers.

    Args:
        x_user_id: Value of the X-User-Id header.
        x_user_role: Value of the X-User-Role header.

    Returns:
        The SessionUser for this request.

    Raises:
        HTTPException: 401 if the identity headers are missing or malformed.
    """
    if not x_user_id or not x_user_role:
        raise HTTPException(status_code=401, detail="Unauthorized")
    try:
        user_id = uuid.UUID(x_user_id)
        role = UserRole(x_user_role.strip().upper())
    except ValueError as exc:
        raise HTTPException(status_code=401, detail="Unauthorized") from exc
    return SessionUser(user_id=user_id, role=role)


def require_roles(*roles: UserRole) -> Callable[..., SessionUser]:
    """Build a dependency that admits only users holding one of `roles`.

    Args:
        roles: The roles allowed to perform the operation.

    Returns:
        A FastAPI dependency returning the SessionUser.
    """

    async def _dependency(user: Annotated[SessionUser, Depends(get_current_user)]) -> SessionUser:
        if not user.has_role(*roles):
            raise ForbiddenError(required_roles=[r.value for r in roles])
        return user

    return _dependency
