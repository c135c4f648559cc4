"""Static resource/action permission matrix.

Each resource maps actions to a requirement, expressed either as an
explicit allow-list of roles (ExactRoles) or as a minimum rank
(MinimumRole).

Policy rules:
- Sensitive, rarely-touched resources (system settings) use
  ExactRoles({ADMIN}) for every action. A role ranked above admin added
  later would still have to be listed explicitly.
- Business resources use MinimumRole with thresholds that rise with the
  action: read < write < delete.
- Any lookup miss (unknown resource, or unknown action on a known
  resource) yields FAIL_CLOSED_REQUIREMENT. A lookup never returns None.

Only policies observed in the portal are defined here. New resources
stay admin-only until they are added to PERMISSION_MATRIX.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from src.portal.shared.auth.enums import VALID_ROLES, Action, Role
from src.portal.shared.auth.roles import parse_role
from src.portal.shared.errors.auth_errors import InvalidRoleError


def _validated(roles: Iterable[Role | str]) -> list[Role]:
    result = []
    for raw in roles:
        role = parse_role(raw)
        if role is None:
            raise InvalidRoleError(raw, VALID_ROLES)
        result.append(role)
    return result


@dataclass(frozen=True)
class ExactRoles:
    """Requirement satisfied only by membership in an explicit role set."""

    roles: frozenset[Role]

    def __post_init__(self) -> None:
        object.__setattr__(self, "roles", frozenset(_validated(self.roles)))

    @classmethod
    def of(cls, *roles: Role | str) -> ExactRoles:
        """Build from role values, validating each one."""
        return cls(frozenset(roles))


@dataclass(frozen=True)
class MinimumRole:
    """Requirement satisfied by any role ranked at or above ``role``."""

    role: Role

    def __post_init__(self) -> None:
        role = parse_role(self.role)
        if role is None:
            raise InvalidRoleError(self.role, VALID_ROLES)
        object.__setattr__(self, "role", role)


PermissionRequirement = ExactRoles | MinimumRole

FAIL_CLOSED_REQUIREMENT: ExactRoles = ExactRoles(frozenset({Role.ADMIN}))


@dataclass(frozen=True)
class ResourcePolicy:
    """Per-action requirements for one resource.

    Attributes:
        actions: action identifier -> requirement
        fallback: requirement for actions not listed in ``actions``
    """

    actions: Mapping[str, PermissionRequirement] = field(
        default_factory=lambda: MappingProxyType({})
    )
    fallback: PermissionRequirement = FAIL_CLOSED_REQUIREMENT

    def requirement_for(self, action: str) -> PermissionRequirement:
        return self.actions.get(action, self.fallback)


def _policy(
    actions: Mapping[str, PermissionRequirement] | None = None,
    fallback: PermissionRequirement = FAIL_CLOSED_REQUIREMENT,
) -> ResourcePolicy:
    return ResourcePolicy(
        actions=MappingProxyType(dict(actions or {})), fallback=fallback
    )


PERMISSION_MATRIX: MappingProxyType[str, ResourcePolicy] = MappingProxyType(
    {
        # Admin only, whatever the action
        "system-settings": _policy(fallback=ExactRoles.of(Role.ADMIN)),
        "document": _policy(
            {
                Action.READ: MinimumRole(Role.READ_ONLY),
                Action.WRITE: MinimumRole(Role.STANDARD_USER),
                Action.DELETE: MinimumRole(Role.POWER_USER),
                Action.ADMIN: ExactRoles.of(Role.ADMIN),
            }
        ),
        "user-profile": _policy(
            {
                # Every valid role ranks at least READ_ONLY: any authenticated user
                Action.READ: MinimumRole(Role.READ_ONLY),
                Action.WRITE: MinimumRole(Role.STANDARD_USER),
                Action.DELETE: ExactRoles.of(Role.ADMIN),
                Action.ADMIN: ExactRoles.of(Role.ADMIN),
            }
        ),
    }
)


def requirement_for(resource: str, action: str) -> PermissionRequirement:
    """Look up the requirement for an action on a resource.

    Args:
        resource: Resource identifier (e.g. 'document')
        action: Action identifier (e.g. 'read'); open-ended

    Returns:
        The configured requirement, or FAIL_CLOSED_REQUIREMENT on any miss

    Examples:
        >>> requirement_for("document", "delete")
        MinimumRole(role=<Role.POWER_USER: 'power_user'>)
        >>> requirement_for("unknown-resource", "read") == FAIL_CLOSED_REQUIREMENT
        True
    """
    if not isinstance(resource, str) or not isinstance(action, str):
        return FAIL_CLOSED_REQUIREMENT
    policy = PERMISSION_MATRIX.get(resource)
    if policy is None:
        return FAIL_CLOSED_REQUIREMENT
    return policy.requirement_for(action)


def known_resources() -> list[str]:
    """Resource identifiers with an explicit policy."""
    return sorted(PERMISSION_MATRIX)
