"""
Request pipeline pieces shared by ``api.main``.

Outermost to innermost: error envelope, request logging, token
authentication. Per-route role checks live in ``authorization``.
"""

from core.middleware.error_handling import (
    ErrorHandlingMiddleware,
    setup_error_handlers,
    sanitize_error_message,
)

from core.middleware.logging import (
    StructuredLoggingMiddleware,
    setup_logging,
)

from core.middleware.authentication import AuthenticationMiddleware

from core.middleware.authorization import (
    ManagerAccess,
    RolePolicy,
    check_role,
    get_manager_access,
    get_role_policy,
    get_session_claims,
    require_roles,
)

__all__ = [
    # Error handling
    "ErrorHandlingMiddleware",
    "setup_error_handlers",
    "sanitize_error_message",
    # Logging
    "StructuredLoggingMiddleware",
    "setup_logging",
    # Authentication
    "AuthenticationMiddleware",
    # Authorization
    "ManagerAccess",
    "RolePolicy",
    "check_role",
    "get_manager_access",
    "get_role_policy",
    "get_session_claims",
    "require_roles",
]
