"""Principal model: the identity and role attached to a request or render."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from src.portal.shared.auth.enums import Role
from src.portal.shared.auth.roles import default_role

logger = logging.getLogger(__name__)

# Session payloads name the identifier differently depending on their source
_ID_KEYS = ("id", "user_id", "sub")


class Principal(BaseModel):
    """Authenticated caller - user id plus exactly one role."""

    model_config = ConfigDict(frozen=True)

    user_id: str = Field(..., min_length=1, description="Session subject")
    role: Role

    @classmethod
    def create(cls, user_id: str, role: Role | None = None) -> Principal:
        """Build a principal for a new user, applying the default role."""
        return cls(user_id=user_id, role=role if role is not None else default_role())

    @classmethod
    def from_claims(cls, claims: Mapping[str, Any]) -> Principal | None:
        """Build a principal from raw session or token claims.

        Unknown or malformed roles are rejected rather than coerced to a
        default: a principal without a valid role is no principal at all.

        Args:
            claims: Mapping with an identifier ('id', 'user_id' or 'sub')
                and a 'role' value

        Returns:
            Principal if the claims are well-formed, None otherwise
        """
        user_id = next((claims[key] for key in _ID_KEYS if key in claims), None)
        try:
            return cls(user_id=user_id, role=claims.get("role"))
        except ValidationError as e:
            logger.debug(
                "Rejected malformed session claims",
                extra={"error_count": e.error_count()},
            )
            return None
