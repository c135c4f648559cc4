"""Role-based access control wrapper for request handlers.

with_role_protection() wraps an async request handler with a role
requirement and a session provider. The wrapped handler is a straight-line
state machine with four terminal outcomes and no retries:

    no principal                -> 401 {"error": "Unauthorized - authentication required"}
    principal fails requirement -> 403 {"error": "Forbidden - insufficient permissions"}
    requirement met             -> handler's own response, unchanged
    anything raises             -> 500 {"error": "Internal server error"}

The handler is never invoked before the principal is resolved and the
requirement is met.

Usage:
    from src.portal.shared.middleware.require_role import (
        RequireMinimumRole,
        with_role_protection,
    )

    guarded = with_role_protection(
        handler,
        RequireMinimumRole(Role.POWER_USER),
        session_provider=get_session_provider(),
    )

    # or as a decorator
    @role_protection(roles=[Role.ADMIN, Role.POWER_USER], session_provider=provider)
    async def update_instrument(request: Request) -> Response:
        ...

Security:
    - Generic error messages prevent role enumeration attacks
    - Role validation at decoration time catches typos early
    - Handler exceptions never leak their message or trace to the caller
"""

from __future__ import annotations

import functools
import inspect
import logging
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from typing import Any

from fastapi import Request, Response
from fastapi.responses import JSONResponse

from src.portal.shared.auth.authorizer import has_any_role, has_minimum_role, has_role
from src.portal.shared.auth.enums import VALID_ROLES, Role
from src.portal.shared.auth.roles import parse_role
from src.portal.shared.auth.session import SessionProvider, resolve_principal
from src.portal.shared.errors.auth_errors import (
    OUTCOME_STATUS,
    AuthorizationOutcome,
    InvalidRequirementError,
    InvalidRoleError,
    denial_body,
)
from src.portal.shared.logging_utils import get_safe_error_info, mask_user_id
from src.portal.shared.models.principal import Principal

logger = logging.getLogger(__name__)

Handler = Callable[[Request], Awaitable[Response]]

# Annotations and __wrapped__ are dropped: routers must see the guard's own signature
_WRAPPER_ASSIGNMENTS = ("__module__", "__name__", "__qualname__", "__doc__")


def _require_valid_role(raw: Any) -> Role:
    role = parse_role(raw)
    if role is None:
        raise InvalidRoleError(raw, VALID_ROLES)
    return role


# =============================================================================
# Requirement variants - exactly one per guarded handler
# =============================================================================


@dataclass(frozen=True)
class RequireRole:
    """Exact role match. A higher role does not satisfy it."""

    role: Role

    def __post_init__(self) -> None:
        object.__setattr__(self, "role", _require_valid_role(self.role))

    def is_met_by(self, principal: Principal) -> bool:
        return has_role(principal, self.role)

    def describe(self) -> str:
        return f"requires {self.role} role"


@dataclass(frozen=True)
class RequireMinimumRole:
    """Hierarchical check: role or anything ranked above it."""

    role: Role

    def __post_init__(self) -> None:
        object.__setattr__(self, "role", _require_valid_role(self.role))

    def is_met_by(self, principal: Principal) -> bool:
        return has_minimum_role(principal, self.role)

    def describe(self) -> str:
        return f"requires minimum {self.role} role"


@dataclass(frozen=True)
class RequireAnyRole:
    """Allow-list: exact membership, not rank-based."""

    roles: tuple[Role, ...]

    def __post_init__(self) -> None:
        if isinstance(self.roles, str):
            raise InvalidRoleError(self.roles, VALID_ROLES)
        object.__setattr__(
            self, "roles", tuple(_require_valid_role(role) for role in self.roles)
        )

    def is_met_by(self, principal: Principal) -> bool:
        return has_any_role(principal, self.roles)

    def describe(self) -> str:
        return f"requires one of {', '.join(self.roles)}"


RoleRequirement = RequireRole | RequireMinimumRole | RequireAnyRole


def requirement_from(
    *,
    role: Role | str | None = None,
    minimum_role: Role | str | None = None,
    roles: Iterable[Role | str] | None = None,
) -> RoleRequirement:
    """Build a requirement from keyword options; exactly one must be given.

    Raises:
        InvalidRequirementError: If zero or more than one option is supplied.
        InvalidRoleError: If any role is not a valid role.
    """
    supplied = [
        name
        for name, value in (
            ("role", role),
            ("minimum_role", minimum_role),
            ("roles", roles),
        )
        if value is not None
    ]
    if len(supplied) != 1:
        raise InvalidRequirementError(supplied)

    if role is not None:
        return RequireRole(role)
    if minimum_role is not None:
        return RequireMinimumRole(minimum_role)
    return RequireAnyRole(tuple(roles))


def _denial(outcome: AuthorizationOutcome) -> JSONResponse:
    return JSONResponse(
        status_code=OUTCOME_STATUS[outcome], content=denial_body(outcome)
    )


# =============================================================================
# Guard
# =============================================================================


def with_role_protection(
    handler: Handler,
    requirement: RoleRequirement,
    *,
    session_provider: SessionProvider,
) -> Handler:
    """Wrap a request handler with authentication and role checks.

    Args:
        handler: Async function (request) -> Response to protect
        requirement: RequireRole, RequireMinimumRole or RequireAnyRole
        session_provider: Resolves the caller's principal

    Returns:
        A handler of the same shape enforcing the requirement

    Raises:
        TypeError: At wrap time, if requirement is not a supported variant.
    """
    if not isinstance(requirement, RequireRole | RequireMinimumRole | RequireAnyRole):
        raise TypeError(f"Unsupported role requirement: {requirement!r}")

    handler_name = getattr(handler, "__name__", type(handler).__name__)

    @functools.wraps(handler, assigned=_WRAPPER_ASSIGNMENTS)
    async def guarded(request: Request) -> Response:
        try:
            principal = await resolve_principal(session_provider, request)

            if principal is None:
                logger.debug(
                    f"{handler_name}: no principal, returning 401",
                    extra={"outcome": AuthorizationOutcome.UNAUTHENTICATED},
                )
                return _denial(AuthorizationOutcome.UNAUTHENTICATED)

            if not requirement.is_met_by(principal):
                # SECURITY: detail stays in logs, response is generic
                logger.warning(
                    f"API authorization failed: {requirement.describe()}, "
                    f"user {mask_user_id(principal.user_id)} has {principal.role}",
                    extra={"outcome": AuthorizationOutcome.FORBIDDEN},
                )
                return _denial(AuthorizationOutcome.FORBIDDEN)

            logger.debug(
                f"{handler_name}: authorized {mask_user_id(principal.user_id)}",
                extra={"outcome": AuthorizationOutcome.AUTHORIZED},
            )
            result = handler(request)
            if inspect.isawaitable(result):
                result = await result
            return result
        except Exception as e:
            logger.error(
                f"{handler_name}: protected handler failed",
                extra={
                    "outcome": AuthorizationOutcome.HANDLER_ERROR,
                    **get_safe_error_info(e),
                },
            )
            return _denial(AuthorizationOutcome.HANDLER_ERROR)

    del guarded.__wrapped__
    return guarded


def role_protection(
    *,
    session_provider: SessionProvider,
    role: Role | str | None = None,
    minimum_role: Role | str | None = None,
    roles: Iterable[Role | str] | None = None,
) -> Callable[[Handler], Handler]:
    """Decorator factory form of with_role_protection.

    Validates the requirement at decoration time so that typos fail at
    application startup.

    Example:
        @role_protection(role=Role.ADMIN, session_provider=provider)
        async def delete_batch(request: Request) -> Response:
            ...
    """
    requirement = requirement_from(role=role, minimum_role=minimum_role, roles=roles)

    def decorator(handler: Handler) -> Handler:
        return with_role_protection(
            handler, requirement, session_provider=session_provider
        )

    return decorator
