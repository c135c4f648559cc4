"""Authorization enforcement points: request guard and view gate."""

from src.portal.shared.middleware.require_role import (
    RequireAnyRole,
    RequireMinimumRole,
    RequireRole,
    RoleRequirement,
    requirement_from,
    role_protection,
    with_role_protection,
)
from src.portal.shared.middleware.role_gate import RoleGate

__all__ = [
    "RequireAnyRole",
    "RequireMinimumRole",
    "RequireRole",
    "RoleGate",
    "RoleRequirement",
    "requirement_from",
    "role_protection",
    "with_role_protection",
]
