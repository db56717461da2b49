"""Exception hierarchy for tenantgate.

Every error carries the HTTP status it maps to so the app can render one
uniform error body.
"""


class TenantGateError(Exception):
    """Base exception for all tenantgate errors."""

    status_code = 500
    name = "ApplicationError"

    def __init__(self, message: str = "") -> None:
        self.message = message or self.name
        super().__init__(self.message)


class NotFoundError(TenantGateError):
    """Raised when a record does not exist."""

    status_code = 404
    name = "NotFoundError"


class UnknownContentTypeError(NotFoundError):
    """Raised when a content-type uid is not in the registry."""


class ValidationError(TenantGateError):
    """Raised when a payload or query is malformed."""

    status_code = 400
    name = "ValidationError"


class InvalidFilterError(ValidationError):
    """Raised when a filter expression cannot be compiled."""


class AuthenticationError(TenantGateError):
    """Raised when the caller cannot be authenticated."""

    status_code = 401
    name = "UnauthorizedError"


class ForbiddenError(TenantGateError):
    """Raised when the caller may not perform an operation."""

    status_code = 403
    name = "ForbiddenError"


class PermissionDeniedError(ForbiddenError):
    """Raised when no permission grants an action on a subject."""


class TenantAccessDenied(ForbiddenError):
    """Raised when a record belongs to another tenant than the caller's."""


class DuplicateAssignmentError(TenantGateError):
    """Raised when an editor email already has a tenant assignment."""

    status_code = 409
    name = "ConflictError"


class StorageError(TenantGateError):
    """Raised when storage operations fail."""


class ConfigError(TenantGateError):
    """Raised when configuration is invalid."""
