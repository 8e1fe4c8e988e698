"""
Domain error taxonomy.

Every error raised by the authentication gate, the authorization engine and
the application lifecycle carries the HTTP status and machine-readable code
it is reported with. The handlers in ``core.middleware.error_handling`` turn
them into the standard JSON error envelope.
"""

from fastapi import status


class ConfigError(RuntimeError):
    """Fatal misconfiguration detected while building the application."""


class DomainError(Exception):
    """Base class for errors that map onto a client-facing response."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "DOMAIN_ERROR"
    default_message: str = "Request could not be processed"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


# ==================== Authentication (401) ==================== #

class UnauthenticatedError(DomainError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "UNAUTHENTICATED"
    default_message = "Authentication required"


class InvalidTokenError(UnauthenticatedError):
    code = "TOKEN_INVALID"
    default_message = "Invalid authentication token"


class ExpiredTokenError(UnauthenticatedError):
    code = "TOKEN_EXPIRED"
    default_message = "Authentication token has expired"


# ==================== Authorization (403) ==================== #

class TenantSuspendedError(DomainError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "TENANT_SUSPENDED"
    default_message = "Access suspended: your institution has been deactivated"


class NoActiveTenantError(DomainError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "NO_ACTIVE_INSTITUTION"
    default_message = "Access denied: no active institution"


class InsufficientPermissionError(DomainError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "INSUFFICIENT_PERMISSIONS"
    default_message = "Access denied: insufficient permissions"


class ForbiddenError(DomainError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "FORBIDDEN"
    default_message = "You don't have permission to perform this action"


# ==================== Lookup / conflicts ==================== #

class NotFoundError(DomainError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"
    default_message = "Resource not found"


class ConflictError(DomainError):
    status_code = status.HTTP_409_CONFLICT
    code = "CONFLICT"
    default_message = "Resource already exists"


class DuplicateApplicationError(ConflictError):
    code = "DUPLICATE_APPLICATION"
    default_message = "You have already applied to this job"


# ==================== Business rules (400) ==================== #

class JobNotAcceptingApplicationsError(DomainError):
    code = "JOB_NOT_ACCEPTING_APPLICATIONS"
    default_message = "This job is not accepting applications"


class InvalidStateError(DomainError):
    code = "INVALID_STATE"
    default_message = "Operation not allowed in the current state"


class InvalidStatusError(DomainError):
    code = "INVALID_STATUS"
    default_message = "Invalid status"
