"""Role-based access control error types and fixed denial bodies.

The guard-generated failure bodies are part of the public contract and
must not change: clients and audit tooling match them byte-for-byte.
Detailed denial reasons are logged server-side, never returned.
"""

from __future__ import annotations

from collections.abc import Iterable
from enum import StrEnum
from types import MappingProxyType
from typing import Any

UNAUTHORIZED_MESSAGE = "Unauthorized - authentication required"
FORBIDDEN_MESSAGE = "Forbidden - insufficient permissions"
INTERNAL_ERROR_MESSAGE = "Internal server error"

UNAUTHORIZED_BODY: MappingProxyType[str, str] = MappingProxyType(
    {"error": UNAUTHORIZED_MESSAGE}
)
FORBIDDEN_BODY: MappingProxyType[str, str] = MappingProxyType(
    {"error": FORBIDDEN_MESSAGE}
)
INTERNAL_ERROR_BODY: MappingProxyType[str, str] = MappingProxyType(
    {"error": INTERNAL_ERROR_MESSAGE}
)


class AuthorizationOutcome(StrEnum):
    """Terminal outcome of a single guarded request."""

    AUTHORIZED = "authorized"
    UNAUTHENTICATED = "unauthenticated"
    FORBIDDEN = "forbidden"
    HANDLER_ERROR = "handler_error"


OUTCOME_STATUS: MappingProxyType[AuthorizationOutcome, int] = MappingProxyType(
    {
        AuthorizationOutcome.UNAUTHENTICATED: 401,
        AuthorizationOutcome.FORBIDDEN: 403,
        AuthorizationOutcome.HANDLER_ERROR: 500,
    }
)

OUTCOME_BODY: MappingProxyType[AuthorizationOutcome, MappingProxyType[str, str]] = (
    MappingProxyType(
        {
            AuthorizationOutcome.UNAUTHENTICATED: UNAUTHORIZED_BODY,
            AuthorizationOutcome.FORBIDDEN: FORBIDDEN_BODY,
            AuthorizationOutcome.HANDLER_ERROR: INTERNAL_ERROR_BODY,
        }
    )
)


def denial_body(outcome: AuthorizationOutcome) -> dict[str, Any]:
    """Return a fresh copy of the fixed body for a denial outcome.

    Args:
        outcome: Any outcome other than AUTHORIZED.

    Returns:
        Dict suitable for JSONResponse content.

    Raises:
        KeyError: If called with AUTHORIZED (there is no denial body).
    """
    return dict(OUTCOME_BODY[outcome])


class InvalidRoleError(ValueError):
    """Raised at decoration time for invalid role parameters.

    This error indicates a programming mistake (typo in role name)
    and should cause the application to fail to start.
    """

    def __init__(self, role: Any, valid_roles: Iterable[str]) -> None:
        self.role = role
        self.valid_roles = frozenset(valid_roles)
        super().__init__(
            f"Invalid role '{role}'. Valid roles: {sorted(self.valid_roles)}"
        )


class InvalidRequirementError(ValueError):
    """Raised when a guard is configured with zero or several requirements.

    Exactly one of role, minimum_role or roles must be supplied.
    """

    def __init__(self, supplied: Iterable[str]) -> None:
        self.supplied = tuple(supplied)
        names = ", ".join(self.supplied) or "none"
        super().__init__(
            "Exactly one of role, minimum_role or roles is required "
            f"(supplied: {names})"
        )


class AuthenticationRequiredError(Exception):
    """Raised by server-side helpers when no principal is resolved."""

    def __init__(self) -> None:
        super().__init__(UNAUTHORIZED_MESSAGE)


class InsufficientPermissionsError(Exception):
    """Raised by server-side helpers when the principal fails a role check.

    The message is always the generic forbidden text to prevent role
    enumeration. The reason is logged by the caller.
    """

    def __init__(self) -> None:
        super().__init__(FORBIDDEN_MESSAGE)


class SessionConfigError(RuntimeError):
    """Raised at startup when session validation is misconfigured in production."""

    pass
