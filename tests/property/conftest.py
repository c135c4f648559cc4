"""Hypothesis strategies for property testing.

Provides reusable composite strategies for generating principals,
role requirements and resource/action pairs that match the portal's
authorization contracts.
"""

from hypothesis import strategies as st

from src.portal.shared.auth.enums import VALID_ROLES, Action, Role
from src.portal.shared.auth.permissions import PERMISSION_MATRIX
from src.portal.shared.models.principal import Principal

roles = st.sampled_from(list(Role))


@st.composite
def principals(draw, role_strategy=None):
    """Generate valid principals.

    Args:
        draw: Hypothesis draw function
        role_strategy: Optional strategy for the role (default: any role)

    Returns:
        Principal with a non-empty user id
    """
    if role_strategy is None:
        role_strategy = roles
    return Principal(
        user_id=draw(st.text(min_size=1, max_size=40)),
        role=draw(role_strategy),
    )


@st.composite
def invalid_role_values(draw):
    """Generate values that are NOT valid roles, including near-misses.

    Returns:
        A string (or other value) outside the closed role set
    """
    role = draw(roles)
    near_miss = st.sampled_from(
        [role.upper(), role.title(), f" {role}", f"{role} ", role.replace("_", "-")]
    )
    value = draw(
        st.one_of(
            near_miss,
            st.text(max_size=20),
            st.none(),
            st.integers(),
        )
    )
    if isinstance(value, str) and value in VALID_ROLES:
        return f"{value}!"
    return value


@st.composite
def malformed_principals(draw):
    """Generate session payloads whose role is invalid."""
    return {"id": draw(st.text(min_size=1, max_size=40)), "role": draw(invalid_role_values())}


@st.composite
def unknown_resources(draw):
    """Generate resource identifiers with no configured policy."""
    resource = draw(st.text(min_size=0, max_size=30))
    if resource in PERMISSION_MATRIX:
        return f"{resource}-unknown"
    return resource


actions = st.one_of(st.sampled_from(list(Action)), st.text(max_size=20))
