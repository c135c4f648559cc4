"""Server-side authorization helpers.

For code paths that are not wrapped by with_role_protection (server
actions, background steps triggered by a request, page handlers) and
want to assert access inline.

require_* helpers return the principal or raise:
- AuthenticationRequiredError   ("Unauthorized - authentication required")
- InsufficientPermissionsError  ("Forbidden - insufficient permissions")

check_* helpers return a bool and are False when unauthenticated.

The reason for a denial is logged here, server-side; the raised errors
carry only the generic message.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from fastapi import Request

from src.portal.shared.auth.authorizer import has_any_role, has_minimum_role, has_role
from src.portal.shared.auth.enums import Role
from src.portal.shared.auth.roles import rank_of
from src.portal.shared.auth.session import SessionProvider, resolve_principal
from src.portal.shared.errors.auth_errors import (
    AuthenticationRequiredError,
    InsufficientPermissionsError,
)
from src.portal.shared.logging_utils import mask_user_id
from src.portal.shared.models.principal import Principal

logger = logging.getLogger(__name__)


async def get_principal(
    provider: SessionProvider, request: Request | None
) -> Principal | None:
    """Current principal without requiring authentication."""
    return await resolve_principal(provider, request)


async def require_auth(provider: SessionProvider, request: Request | None) -> Principal:
    """Return the current principal or raise AuthenticationRequiredError."""
    principal = await resolve_principal(provider, request)
    if principal is None:
        raise AuthenticationRequiredError()
    return principal


async def require_role(
    provider: SessionProvider, request: Request | None, role: Role
) -> Principal:
    """Require an exact role match.

    Raises:
        AuthenticationRequiredError: No principal.
        InsufficientPermissionsError: Principal has a different role.
    """
    principal = await require_auth(provider, request)
    if not has_role(principal, role):
        logger.warning(
            f"Authorization failed: requires {role} role, "
            f"user {mask_user_id(principal.user_id)} has {principal.role}"
        )
        raise InsufficientPermissionsError()
    return principal


async def require_minimum_role(
    provider: SessionProvider, request: Request | None, minimum_role: Role
) -> Principal:
    """Require minimum_role or higher.

    Raises:
        AuthenticationRequiredError: No principal.
        InsufficientPermissionsError: Principal ranks below minimum_role.
    """
    principal = await require_auth(provider, request)
    if not has_minimum_role(principal, minimum_role):
        logger.warning(
            f"Authorization failed: requires minimum {minimum_role} role "
            f"(level {rank_of(minimum_role)}), user {mask_user_id(principal.user_id)} "
            f"has {principal.role} (level {rank_of(principal.role)})"
        )
        raise InsufficientPermissionsError()
    return principal


async def require_any_role(
    provider: SessionProvider, request: Request | None, roles: Iterable[Role]
) -> Principal:
    """Require membership in roles.

    Raises:
        AuthenticationRequiredError: No principal.
        InsufficientPermissionsError: Principal's role is not in roles.
    """
    roles = tuple(roles)
    principal = await require_auth(provider, request)
    if not has_any_role(principal, roles):
        logger.warning(
            f"Authorization failed: requires one of {', '.join(roles)}, "
            f"user {mask_user_id(principal.user_id)} has {principal.role}"
        )
        raise InsufficientPermissionsError()
    return principal


async def check_minimum_role(
    provider: SessionProvider, request: Request | None, minimum_role: Role
) -> bool:
    """Whether the current caller meets minimum_role (False if unauthenticated)."""
    principal = await resolve_principal(provider, request)
    return has_minimum_role(principal, minimum_role)


async def check_exact_role(
    provider: SessionProvider, request: Request | None, role: Role
) -> bool:
    """Whether the current caller has exactly role (False if unauthenticated)."""
    principal = await resolve_principal(provider, request)
    return has_role(principal, role)
