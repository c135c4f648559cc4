"""Example protected endpoints and pages.

Demonstrates every enforcement point against one resource:

    GET    /api/example/protected-action  minimum standard_user
    POST   /api/example/protected-action  minimum power_user, validated body
    PATCH  /api/example/protected-action  admin or power_user (allow-list)
    DELETE /api/example/protected-action  exactly admin
    GET    /example                        any authenticated user (redirects
                                           to sign-in), sections role-gated
    GET    /auth/forbidden                 403 page with role descriptions

Handlers below only run once with_role_protection has authorized the
caller, so they contain no auth logic of their own.
"""

from __future__ import annotations

import html
import logging
from datetime import UTC, datetime
from typing import Literal

from fastapi import APIRouter, Request, Response
from fastapi.responses import HTMLResponse, JSONResponse
from pydantic import BaseModel, Field, ValidationError

from src.portal.shared.auth.authorizer import is_authorized
from src.portal.shared.auth.enums import Action, Role
from src.portal.shared.auth.pages import require_page_auth
from src.portal.shared.auth.roles import describe_role
from src.portal.shared.auth.session import SessionProvider
from src.portal.shared.logging_utils import mask_user_id
from src.portal.shared.middleware.require_role import (
    RequireAnyRole,
    RequireMinimumRole,
    RequireRole,
    with_role_protection,
)
from src.portal.shared.middleware.role_gate import RoleGate

logger = logging.getLogger(__name__)

PROTECTED_ACTION_PATH = "/api/example/protected-action"
DELETE_DOCUMENT_BUTTON = '<button id="delete-document">Delete document</button>'


class ActionData(BaseModel):
    """Payload carried by a protected action."""

    name: str = Field(..., min_length=1, max_length=100)
    description: str | None = Field(None, max_length=500)


class ProtectedActionRequest(BaseModel):
    """POST body for the protected action endpoint."""

    action: Literal["create", "update", "delete"]
    data: ActionData


def _now() -> str:
    return datetime.now(UTC).isoformat()


def _validation_messages(error: ValidationError) -> list[str]:
    messages = []
    for issue in error.errors(include_url=False):
        path = ".".join(str(part) for part in issue["loc"])
        messages.append(f"{path}: {issue['msg']}" if path else issue["msg"])
    return messages


# =============================================================================
# Protected action handlers
# =============================================================================


async def read_protected_action(request: Request) -> Response:
    return JSONResponse(
        {
            "message": "You have access to this protected endpoint",
            "allowedActions": ["read", "create", "update"],
            "timestamp": _now(),
        }
    )


async def create_protected_action(request: Request) -> Response:
    try:
        body = await request.json()
    except ValueError:
        return JSONResponse(
            status_code=400, content={"error": "Invalid JSON in request body"}
        )

    try:
        payload = ProtectedActionRequest.model_validate(body)
    except ValidationError as e:
        return JSONResponse(
            status_code=400,
            content={"error": "Validation failed", "details": _validation_messages(e)},
        )

    return JSONResponse(
        {
            "success": True,
            "action": payload.action,
            "data": payload.data.model_dump(exclude_none=True),
            "processedAt": _now(),
        }
    )


async def update_protected_action(request: Request) -> Response:
    try:
        body = await request.json()
    except ValueError:
        return JSONResponse(
            status_code=400, content={"error": "Invalid JSON in request body"}
        )

    return JSONResponse(
        {
            "success": True,
            "message": "Resource updated successfully",
            "data": body,
            "updatedAt": _now(),
        }
    )


async def delete_protected_action(request: Request) -> Response:
    resource_id = request.query_params.get("id")
    if not resource_id:
        return JSONResponse(
            status_code=400, content={"error": "Missing required parameter: id"}
        )

    return JSONResponse(
        {
            "success": True,
            "message": f"Resource {resource_id} deleted successfully",
            "deletedAt": _now(),
        }
    )


# =============================================================================
# Pages
# =============================================================================


def _admin_panel() -> str:
    return '<section id="admin-tools"><h2>Admin tools</h2></section>'


def _bulk_operations() -> str:
    return '<section id="bulk-operations"><h2>Bulk operations</h2></section>'


def render_forbidden_page(required: str | None, current: str | None) -> str:
    """Forbidden page body; role details only when both roles are known."""
    details = ""
    if required and current:
        details = (
            "<dl>"
            f"<dt>Required Role:</dt><dd>{html.escape(describe_role(required))}</dd>"
            f"<dt>Your Role:</dt><dd>{html.escape(describe_role(current))}</dd>"
            "</dl>"
        )
    return (
        "<h1>403</h1><h2>Access Forbidden</h2>"
        "<p>You do not have permission to access this page.</p>"
        f"{details}"
        '<a href="/">Return to Home</a>'
    )


def build_router(session_provider: SessionProvider) -> APIRouter:
    """Build the example router bound to a session provider."""
    router = APIRouter()
    gate = RoleGate(session_provider)

    routes = (
        ("GET", read_protected_action, RequireMinimumRole(Role.STANDARD_USER)),
        ("POST", create_protected_action, RequireMinimumRole(Role.POWER_USER)),
        ("PATCH", update_protected_action, RequireAnyRole((Role.ADMIN, Role.POWER_USER))),
        ("DELETE", delete_protected_action, RequireRole(Role.ADMIN)),
    )
    for method, handler, requirement in routes:
        router.add_api_route(
            PROTECTED_ACTION_PATH,
            with_role_protection(
                handler, requirement, session_provider=session_provider
            ),
            methods=[method],
        )

    @router.get("/example", response_class=HTMLResponse)
    async def example_page(request: Request) -> HTMLResponse:
        principal = await require_page_auth(session_provider, request)

        admin_section = await gate.render(
            request,
            _admin_panel,
            allowed_roles=[Role.ADMIN],
            fallback="<p>You don't have permission to view admin tools.</p>",
        )
        bulk_section = await gate.render(
            request, _bulk_operations, minimum_role=Role.POWER_USER
        )
        can_delete = is_authorized(principal, "document", Action.DELETE)
        delete_button = DELETE_DOCUMENT_BUTTON if can_delete else ""
        logger.debug(
            f"Rendering example page for {mask_user_id(principal.user_id)}",
            extra={"role": principal.role, "can_delete": can_delete},
        )

        body = (
            "<h1>Protected Page</h1>"
            f"<p>Your role: {html.escape(describe_role(principal.role))}</p>"
            f"{admin_section or ''}"
            f"{bulk_section or ''}"
            f"{delete_button}"
            '<a href="/auth/signout">Sign out</a>'
        )
        return HTMLResponse(body)

    @router.get("/auth/forbidden", response_class=HTMLResponse)
    async def forbidden_page(
        required: str | None = None, current: str | None = None
    ) -> HTMLResponse:
        return HTMLResponse(
            render_forbidden_page(required, current), status_code=403
        )

    return router
