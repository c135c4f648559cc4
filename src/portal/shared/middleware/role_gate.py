"""Render-time role gate for server-rendered views.

RoleGate is the view-side counterpart of with_role_protection: given the
same kind of requirement it decides whether a page renders a protected
fragment, an alternate fragment, or nothing. The role check happens on
the server, so hidden fragments never reach the client.

Resolution order:
    1. Resolve the principal (one session provider call)
    2. No principal and any constraint (require_auth or a role option)
       -> fallback, or None
    3. allowed_roles set (even empty) -> children iff has_any_role
    4. minimum_role set               -> children iff has_minimum_role
    5. require_auth only              -> children
    6. no constraints                 -> children

A principal with a missing or malformed role counts as no principal.

Children and fallback may be plain values or zero-argument functions,
methods or partials (sync or async). Other callables, such as a Starlette
Response, are treated as values. Functions are only invoked for the branch
that is selected, so a protected fragment is never rendered speculatively.

Usage:
    gate = RoleGate(session_provider)

    html = await gate.render(
        request,
        lambda: render_admin_panel(),
        allowed_roles=[Role.ADMIN],
        fallback="<p>You don't have permission to view this content.</p>",
    )
"""

from __future__ import annotations

import functools
import inspect
import logging
from collections.abc import Iterable
from typing import Any

from fastapi import Request

from src.portal.shared.auth.authorizer import has_any_role, has_minimum_role
from src.portal.shared.auth.enums import VALID_ROLES, Role
from src.portal.shared.auth.roles import parse_role
from src.portal.shared.auth.session import SessionProvider, resolve_principal
from src.portal.shared.errors.auth_errors import InvalidRoleError

logger = logging.getLogger(__name__)


async def _materialize(subtree: Any) -> Any:
    # Only deferred renderers are invoked; callable values such as ASGI
    # responses are returned as-is
    if inspect.isfunction(subtree) or inspect.ismethod(subtree) or isinstance(
        subtree, functools.partial
    ):
        subtree = subtree()
    if inspect.isawaitable(subtree):
        subtree = await subtree
    return subtree


class RoleGate:
    """Conditionally renders a fragment based on the caller's role."""

    def __init__(self, session_provider: SessionProvider) -> None:
        self._session_provider = session_provider

    async def allows(
        self,
        request: Request | None,
        *,
        allowed_roles: Iterable[Role | str] | None = None,
        minimum_role: Role | str | None = None,
        require_auth: bool = False,
    ) -> bool:
        """Decide whether the protected fragment should render.

        Raises:
            InvalidRoleError: If a configured role is not a valid role.
        """
        if allowed_roles is not None:
            allowed_roles = tuple(allowed_roles)
            for role in allowed_roles:
                if parse_role(role) is None:
                    raise InvalidRoleError(role, VALID_ROLES)
        if minimum_role is not None and parse_role(minimum_role) is None:
            raise InvalidRoleError(minimum_role, VALID_ROLES)

        principal = await resolve_principal(self._session_provider, request)
        constrained = (
            require_auth or allowed_roles is not None or minimum_role is not None
        )

        if principal is None:
            return not constrained

        # An empty allow-list denies everyone rather than meaning "unset"
        if allowed_roles is not None:
            return has_any_role(principal, allowed_roles)

        if minimum_role is not None:
            return has_minimum_role(principal, minimum_role)

        return True

    async def render(
        self,
        request: Request | None,
        children: Any,
        *,
        allowed_roles: Iterable[Role | str] | None = None,
        minimum_role: Role | str | None = None,
        require_auth: bool = False,
        fallback: Any = None,
    ) -> Any:
        """Return children when authorized, otherwise fallback (default None).

        Args:
            request: Current request, handed to the session provider
            children: Fragment (or callable producing it) to show when authorized
            allowed_roles: Roles allowed to see children (exact membership)
            minimum_role: Minimum role level (hierarchy-based)
            require_auth: Require any authenticated principal
            fallback: Fragment (or callable) to show otherwise

        Returns:
            The rendered children, the rendered fallback, or None
        """
        if await self.allows(
            request,
            allowed_roles=allowed_roles,
            minimum_role=minimum_role,
            require_auth=require_auth,
        ):
            return await _materialize(children)

        logger.debug("RoleGate: rendering fallback")
        return await _materialize(fallback)
