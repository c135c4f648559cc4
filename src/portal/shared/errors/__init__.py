"""Shared error types for portal authorization."""

from src.portal.shared.errors.auth_errors import (
    FORBIDDEN_BODY,
    FORBIDDEN_MESSAGE,
    INTERNAL_ERROR_BODY,
    INTERNAL_ERROR_MESSAGE,
    UNAUTHORIZED_BODY,
    UNAUTHORIZED_MESSAGE,
    AuthenticationRequiredError,
    AuthorizationOutcome,
    InsufficientPermissionsError,
    InvalidRequirementError,
    InvalidRoleError,
    SessionConfigError,
    denial_body,
)

__all__ = [
    "FORBIDDEN_BODY",
    "FORBIDDEN_MESSAGE",
    "INTERNAL_ERROR_BODY",
    "INTERNAL_ERROR_MESSAGE",
    "UNAUTHORIZED_BODY",
    "UNAUTHORIZED_MESSAGE",
    "AuthenticationRequiredError",
    "AuthorizationOutcome",
    "InsufficientPermissionsError",
    "InvalidRequirementError",
    "InvalidRoleError",
    "SessionConfigError",
    "denial_body",
]
