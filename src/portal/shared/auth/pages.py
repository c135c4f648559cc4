"""Page-level access helpers for server-rendered routes.

Pages do not answer denials with JSON bodies. They redirect:
- anonymous callers to the sign-in page, with a callback to come back
- authenticated callers lacking privilege to the forbidden page, which
  shows the required and current role

The redirect is raised as an HTTPException carrying a 303 status and a
Location header, so FastAPI turns it into a redirect response.

Usage:
    @router.get("/admin/settings")
    async def settings_page(request: Request) -> HTMLResponse:
        principal = await require_page_exact_role(provider, request, Role.ADMIN)
        ...
"""

from __future__ import annotations

from urllib.parse import urlencode

from fastapi import HTTPException, Request, status

from src.portal.shared.auth.authorizer import has_minimum_role, has_role
from src.portal.shared.auth.enums import Role
from src.portal.shared.auth.session import SessionProvider, resolve_principal
from src.portal.shared.models.principal import Principal

SIGNIN_PATH = "/auth/signin"
FORBIDDEN_PATH = "/auth/forbidden"


def signin_url(callback_url: str | None = None) -> str:
    """Sign-in URL, with callbackUrl when a return path is known."""
    if not callback_url:
        return SIGNIN_PATH
    return f"{SIGNIN_PATH}?{urlencode({'callbackUrl': callback_url})}"


def forbidden_url(required: Role | str, current: Role | str) -> str:
    """Forbidden page URL describing the required and current roles."""
    return f"{FORBIDDEN_PATH}?{urlencode({'required': required, 'current': current})}"


def _redirect(location: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_303_SEE_OTHER,
        headers={"Location": location},
    )


async def require_page_auth(
    provider: SessionProvider,
    request: Request,
    callback_url: str | None = None,
) -> Principal:
    """Return the principal or redirect to sign-in.

    The callback defaults to the current request path.
    """
    principal = await resolve_principal(provider, request)
    if principal is None:
        raise _redirect(signin_url(callback_url or request.url.path))
    return principal


async def require_page_minimum_role(
    provider: SessionProvider,
    request: Request,
    minimum_role: Role,
    callback_url: str | None = None,
) -> Principal:
    """Require minimum_role or higher; redirects to sign-in or forbidden."""
    principal = await require_page_auth(provider, request, callback_url)
    if not has_minimum_role(principal, minimum_role):
        raise _redirect(forbidden_url(minimum_role, principal.role))
    return principal


async def require_page_exact_role(
    provider: SessionProvider,
    request: Request,
    role: Role,
    callback_url: str | None = None,
) -> Principal:
    """Require exactly role (non-hierarchical); redirects to sign-in or forbidden."""
    principal = await require_page_auth(provider, request, callback_url)
    if not has_role(principal, role):
        raise _redirect(forbidden_url(role, principal.role))
    return principal
