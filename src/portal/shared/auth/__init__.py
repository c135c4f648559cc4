"""Role-based authorization for the reporting portal."""

from src.portal.shared.auth.authorizer import (
    has_any_role,
    has_minimum_role,
    has_role,
    is_authorized,
    satisfies,
)
from src.portal.shared.auth.enums import DEFAULT_ROLE, VALID_ROLES, Action, Role
from src.portal.shared.auth.permissions import (
    FAIL_CLOSED_REQUIREMENT,
    ExactRoles,
    MinimumRole,
    requirement_for,
)
from src.portal.shared.auth.roles import (
    all_roles,
    default_role,
    describe_role,
    is_valid_role,
    rank_of,
)

__all__ = [
    "DEFAULT_ROLE",
    "FAIL_CLOSED_REQUIREMENT",
    "VALID_ROLES",
    "Action",
    "ExactRoles",
    "MinimumRole",
    "Role",
    "all_roles",
    "default_role",
    "describe_role",
    "has_any_role",
    "has_minimum_role",
    "has_role",
    "is_authorized",
    "is_valid_role",
    "rank_of",
    "requirement_for",
    "satisfies",
]
