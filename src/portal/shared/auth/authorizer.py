"""Authorization predicates for RBAC.

Pure, side-effect-free checks over a principal and a role, role list or
resource/action pair. Used by both enforcement points (request guard and
view gate) so the two can never disagree.

Every predicate is total and null-safe:
- an absent principal is never authorized
- a principal whose role is not one of the closed set is never authorized
- no predicate raises for bad input; it returns False

Usage:
    from src.portal.shared.auth.authorizer import has_minimum_role

    if has_minimum_role(principal, Role.POWER_USER):
        ...
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from src.portal.shared.auth.enums import ROLE_HIERARCHY, Role
from src.portal.shared.auth.permissions import (
    ExactRoles,
    MinimumRole,
    PermissionRequirement,
    requirement_for,
)
from src.portal.shared.auth.roles import parse_role


def _role_of(principal: Any) -> Role | None:
    """Extract a valid role from a principal, or None if absent or malformed."""
    if principal is None:
        return None
    if isinstance(principal, Mapping):
        raw = principal.get("role")
    else:
        raw = getattr(principal, "role", None)
    return parse_role(raw)


def has_role(principal: Any, role: Role | str) -> bool:
    """Check for an exact role match.

    A higher-ranked principal does NOT satisfy a lower exact-role check;
    use has_minimum_role for hierarchical checks.

    Args:
        principal: Principal (or None)
        role: The exact role required

    Returns:
        True iff the principal's role equals role

    Examples:
        >>> has_role(Principal(user_id="1", role=Role.ADMIN), Role.ADMIN)
        True
        >>> has_role(Principal(user_id="1", role=Role.ADMIN), Role.POWER_USER)
        False
    """
    actual = _role_of(principal)
    return actual is not None and actual == parse_role(role)


def has_any_role(principal: Any, roles: Iterable[Role | str]) -> bool:
    """Check whether the principal's role is a member of roles (exact membership)."""
    actual = _role_of(principal)
    if actual is None or roles is None:
        return False
    return any(actual == parse_role(role) for role in roles)


def has_minimum_role(principal: Any, minimum_role: Role | str) -> bool:
    """Check that the principal's rank is at or above minimum_role's rank.

    This is the hierarchical check: admin satisfies a power_user minimum.

    Examples:
        >>> has_minimum_role(Principal(user_id="1", role=Role.ADMIN), Role.POWER_USER)
        True
        >>> has_minimum_role(Principal(user_id="1", role=Role.READ_ONLY), Role.POWER_USER)
        False
    """
    actual = _role_of(principal)
    required = parse_role(minimum_role)
    if actual is None or required is None:
        return False
    return ROLE_HIERARCHY[actual] >= ROLE_HIERARCHY[required]


def satisfies(principal: Any, requirement: PermissionRequirement) -> bool:
    """Evaluate a permission requirement against a principal."""
    if isinstance(requirement, ExactRoles):
        return has_any_role(principal, requirement.roles)
    if isinstance(requirement, MinimumRole):
        return has_minimum_role(principal, requirement.role)
    # Unknown requirement shape
    return False


def is_authorized(principal: Any, resource: str, action: str) -> bool:
    """Check whether the principal may perform action on resource.

    Unknown resources and unknown actions resolve to the fail-closed
    requirement (admin only), so nothing unrecognised is ever permitted
    to lower roles.

    Args:
        principal: Principal (or None)
        resource: Resource identifier (e.g. 'document', 'system-settings')
        action: Action identifier (e.g. 'read', 'write', 'delete', 'admin')

    Returns:
        True if authorized

    Examples:
        >>> is_authorized(Principal(user_id="1", role=Role.STANDARD_USER), "document", "write")
        True
        >>> is_authorized(Principal(user_id="1", role=Role.POWER_USER), "system-settings", "read")
        False
    """
    if _role_of(principal) is None:
        return False
    return satisfies(principal, requirement_for(resource, action))
