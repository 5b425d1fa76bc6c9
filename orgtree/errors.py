"""
Domain error taxonomy for the access core.

Each error carries the HTTP status and machine-readable code that route
handlers translate it to. Anything outside this hierarchy is treated as an
internal error by the application's global exception handler.
"""

from typing import Optional


class OrgTreeError(Exception):
    """Base class for recoverable, user-safe domain errors."""

    status_code: int = 400
    code: str = "ORGTREE_ERROR"
    headers: Optional[dict] = None

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"message": self.message, "code": self.code}


class ValidationError(OrgTreeError):
    """A required field is missing or malformed."""

    status_code = 400
    code = "VALIDATION_ERROR"


class AuthenticationError(OrgTreeError):
    """The request carries no valid bearer token for a known user."""

    status_code = 401
    code = "UNAUTHENTICATED"
    headers = {"WWW-Authenticate": "Bearer"}


class PermissionDeniedError(OrgTreeError):
    """The actor lacks the role or relationship the operation requires."""

    status_code = 403
    code = "PERMISSION_DENIED"


class NotFoundError(OrgTreeError):
    """A referenced organization, transfer or user does not exist."""

    status_code = 404
    code = "NOT_FOUND"


class ConflictError(OrgTreeError):
    """The operation collides with existing state (e.g. a pending transfer)."""

    status_code = 409
    code = "CONFLICT"


class InvalidStateError(OrgTreeError):
    """A transfer is not in the lifecycle state the operation requires."""

    status_code = 409
    code = "INVALID_STATE"


class CsrfValidationError(OrgTreeError):
    """A state-changing request failed the double-submit CSRF check."""

    status_code = 403
    code = "CSRF_TOKEN_INVALID"

    def __init__(self, message: str = "CSRF token validation failed", code: Optional[str] = None):
        super().__init__(message)
        if code:
            self.code = code
