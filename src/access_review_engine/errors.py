"""Error taxonomy for access-review-engine.

Every error raised by the service layer derives from AccessReviewError and
carries the HTTP status it maps to. Routes never catch these; the handlers
registered by `register_exception_handlers` turn them into JSON responses:

    {"error": "<message>", "code": "<error_code>", "details": [...]}

PartialImportError is the exception: it describes a single record that
failed during a bulk import and is collected into the import result rather
than raised out of the pipeline.
"""

from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from access_review_engine.observability import get_logger

logger = get_logger(__name__)


class AccessReviewError(Exception):
    """Base class for all service errors.

    Attributes:
        status_code: HTTP status code returned to the caller.
        error_code: Stable machine-readable error code.
        message: Human-readable message.
    """

    status_code: int = 500
    error_code: str = "internal_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def details(self) -> list[dict[str, Any]]:
        """Return structured detail entries for the error body."""
        return []


class ValidationError(AccessReviewError):
    """Malformed or semantically invalid input.

    Args:
        message: Human-readable message.
        field: Name of the offending field, if a single field is at fault.
        issues: Optional list of field-level issues ({"field", "issue"}).
    """

    status_code = 400
    error_code = "validation_error"

    def __init__(
        self,
        message: str,
        field: str | None = None,
        issues: list[dict[str, str]] | None = None,
    ) -> None:
        super().__init__(message)
        self.field = field
        self.issues = list(issues or [])
        if field is not None and not self.issues:
            self.issues.append({"field": field, "issue": message})

    def details(self) -> list[dict[str, Any]]:
        return list(self.issues)


class NotFoundError(AccessReviewError):
    """A referenced entity does not exist."""

    status_code = 404
    error_code = "not_found"

    def __init__(self, resource: str, resource_id: str) -> None:
        super().__init__(f"{resource} not found")
        self.resource = resource
        self.resource_id = resource_id

    def details(self) -> list[dict[str, Any]]:
        return [{"resource": self.resource, "id": self.resource_id}]


class ForbiddenError(AccessReviewError):
    """The caller is authenticated but lacks the required role."""

    status_code = 403
    error_code = "forbidden"

    def __init__(self, message: str = "Forbidden", required_roles: list[str] | None = None) -> None:
        super().__init__(message)
        self.required_roles = required_roles or []

    def details(self) -> list[dict[str, Any]]:
        if not self.required_roles:
            return []
        return [{"required_roles": self.required_roles}]


class InvalidStateError(AccessReviewError):
    """The operation is not legal in the entity's current lifecycle state."""

    status_code = 409
    error_code = "invalid_state"

    def __init__(self, message: str, current_state: str | None = None) -> None:
        super().__init__(message)
        self.current_state = current_state

    def details(self) -> list[dict[str, Any]]:
        if self.current_state is None:
            return []
        return [{"current_state": self.current_state}]


class PartialImportError(AccessReviewError):
    """A single record failed during a bulk import.

    Collected into the import result; never propagated to the caller.

    Args:
        record: The username of the failing record.
        error: Description of the failure.
    """

    status_code = 422
    error_code = "partial_import"

    def __init__(self, record: str, error: str) -> None:
        super().__init__(f"Record '{record}' failed to import: {error}")
        self.record = record
        self.error = error

    def to_detail(self) -> dict[str, str]:
        """Return the `{record, error}` entry surfaced in import results."""
        return {"record": self.record, "error": self.error}


async def _handle_access_review_error(request: Request, exc: AccessReviewError) -> JSONResponse:
    """Translate an AccessReviewError into its JSON error body."""
    log = logger.warning if exc.status_code < 500 else logger.error
    log(
        "Request failed",
        path=request.url.path,
        method=request.method,
        error_code=exc.error_code,
        status_code=exc.status_code,
        message=exc.message,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message, "code": exc.error_code, "details": exc.details()},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register the service error handlers on a FastAPI application.

    Args:
        app: The FastAPI application instance.
    """
    app.add_exception_handler(AccessReviewError, _handle_access_review_error)  # type: ignore[arg-type]
