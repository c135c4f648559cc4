"""Role registry for RBAC.

Single source of truth for "is role A at least as privileged as role B".
The tables behind it live in enums.py and are never mutated after import.

Role matching is exact and case-sensitive: "ADMIN" and "Admin" are not
the admin role, and are never normalised into it.
"""

from __future__ import annotations

from typing import Any

from src.portal.shared.auth.enums import (
    DEFAULT_ROLE,
    ROLE_DESCRIPTIONS,
    ROLE_HIERARCHY,
    VALID_ROLES,
    Role,
)
from src.portal.shared.errors.auth_errors import InvalidRoleError


def is_valid_role(raw: Any) -> bool:
    """Check whether a raw value is exactly one of the role identifiers.

    Args:
        raw: Value to check (usually a string from a token or session)

    Returns:
        True iff raw is a str equal to a Role value

    Examples:
        >>> is_valid_role("admin")
        True
        >>> is_valid_role("Admin")
        False
    """
    return isinstance(raw, str) and raw in VALID_ROLES


def parse_role(raw: Any) -> Role | None:
    """Convert a raw value to a Role, or None if it is not an exact match."""
    if not is_valid_role(raw):
        return None
    return Role(raw)


def rank_of(role: Role | str) -> int:
    """Get the privilege rank of a role.

    Args:
        role: Role member or its exact string value

    Returns:
        Integer rank, higher is more privileged

    Raises:
        InvalidRoleError: If role is outside the closed set.
    """
    parsed = parse_role(role)
    if parsed is None:
        raise InvalidRoleError(role, VALID_ROLES)
    return ROLE_HIERARCHY[parsed]


def default_role() -> Role:
    """Role assigned to new principals absent other context."""
    return DEFAULT_ROLE


def all_roles() -> list[Role]:
    """All roles in ascending rank order."""
    return sorted(Role, key=ROLE_HIERARCHY.__getitem__)


def describe_role(role: Any) -> str:
    """Human-readable role description.

    Falls back to the raw value for unknown input so that display code
    (e.g. the forbidden page) never fails on a bad query parameter.
    """
    parsed = parse_role(role)
    if parsed is None:
        return str(role)
    return ROLE_DESCRIPTIONS[parsed]
