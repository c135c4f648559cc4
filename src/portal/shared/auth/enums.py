"""Canonical enum definitions for portal RBAC.

This module defines the closed set of roles used throughout the portal,
their privilege ranks and their display descriptions.

All auth-related enums should be defined here to ensure a single source of truth.
"""

from __future__ import annotations

from enum import StrEnum
from types import MappingProxyType


class Role(StrEnum):
    """Canonical user roles for role-based access control.

    Roles are hierarchical (lowest to highest privilege):
    - read_only: can only read data, cannot make changes
    - standard_user: can create, edit and delete own resources
    - power_user: advanced features and bulk operations
    - admin: full system access
    """

    READ_ONLY = "read_only"
    STANDARD_USER = "standard_user"
    POWER_USER = "power_user"
    ADMIN = "admin"


class Action(StrEnum):
    """Common actions on protected resources. Lookups accept any string."""

    READ = "read"
    WRITE = "write"
    DELETE = "delete"
    ADMIN = "admin"


# Higher numbers indicate greater privilege. Used for "at least" checks.
ROLE_HIERARCHY: MappingProxyType[Role, int] = MappingProxyType(
    {
        Role.READ_ONLY: 10,
        Role.STANDARD_USER: 25,
        Role.POWER_USER: 50,
        Role.ADMIN: 100,
    }
)

ROLE_DESCRIPTIONS: MappingProxyType[Role, str] = MappingProxyType(
    {
        Role.ADMIN: "Full system access",
        Role.POWER_USER: "Advanced features and bulk operations",
        Role.STANDARD_USER: "Standard user access",
        Role.READ_ONLY: "View-only access",
    }
)

# Lowest write-capable role, not the most restrictive one
DEFAULT_ROLE: Role = Role.STANDARD_USER

# Immutable set for O(1) validation at decoration time
VALID_ROLES: frozenset[str] = frozenset(role.value for role in Role)
