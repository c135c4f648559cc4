"""Session resolution for the authorization guards.

The guards never read cookies or tokens themselves. They depend on a
SessionProvider, an injected collaborator with one operation: resolve
the current principal. Tests pass a fake provider; the application uses
JWTSessionProvider.

resolve_principal() is the single normalisation point shared by the
request guard and the view gate:
- provider failures become "no principal" (logged, never surfaced)
- raw mappings are validated into a Principal
- principals with a missing or unknown role become "no principal"

JWTSessionProvider only reads sessions. Issuing them belongs to the
sign-in flow, not to this package.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

import jwt
from aws_xray_sdk.core import xray_recorder
from fastapi import Request

from src.portal.shared.auth.roles import parse_role
from src.portal.shared.errors.auth_errors import SessionConfigError
from src.portal.shared.logging_utils import get_safe_error_info, mask_user_id
from src.portal.shared.models.principal import Principal

logger = logging.getLogger(__name__)

DEFAULT_ISSUER = "reporting-portal"
DEFAULT_COOKIE_NAME = "portal.session-token"
SECURE_COOKIE_PREFIX = "__Secure-"
MIN_PRODUCTION_SECRET_LENGTH = 32

_PRODUCTION_ENVIRONMENTS = frozenset({"prod", "production"})


@runtime_checkable
class SessionProvider(Protocol):
    """Resolves the principal attached to the current request or render."""

    async def get_principal(
        self, request: Request | None
    ) -> Principal | Mapping[str, Any] | None:
        """Return the caller's principal, raw session claims, or None."""
        ...


async def resolve_principal(
    provider: SessionProvider, request: Request | None
) -> Principal | None:
    """Resolve and validate the caller's principal with a single provider call.

    Args:
        provider: Session provider to consult (called exactly once)
        request: Current request, passed through to the provider

    Returns:
        A Principal with a valid role, or None if unauthenticated or malformed
    """
    try:
        raw = await provider.get_principal(request)
    except Exception as e:
        logger.warning(
            "Session provider failed, treating caller as unauthenticated",
            extra=get_safe_error_info(e),
        )
        return None

    if raw is None:
        return None

    if isinstance(raw, Principal):
        # model_construct() can bypass validation; re-check the role
        user_id = getattr(raw, "user_id", None)
        if parse_role(getattr(raw, "role", None)) is None or not user_id:
            logger.warning(
                "Rejected principal with invalid role",
                extra={"user_id": mask_user_id(user_id)},
            )
            return None
        return raw

    if isinstance(raw, Mapping):
        return Principal.from_claims(raw)

    logger.warning(
        "Session provider returned unsupported type",
        extra={"type": type(raw).__name__},
    )
    return None


# =============================================================================
# JWT session provider
# =============================================================================


@dataclass(frozen=True)
class JWTConfig:
    """Configuration for session token validation.

    Attributes:
        secret: Secret key for HMAC validation
        algorithm: JWT algorithm (default: HS256)
        issuer: Expected issuer (optional, for validation)
        leeway_seconds: Clock skew tolerance (default: 60s)
        cookie_name: Session cookie read when no Bearer header is present
    """

    secret: str
    algorithm: str = "HS256"
    issuer: str | None = DEFAULT_ISSUER
    leeway_seconds: int = 60
    cookie_name: str = DEFAULT_COOKIE_NAME


def is_production(environment: str | None = None) -> bool:
    """Whether the given (or current) ENVIRONMENT is production."""
    if environment is None:
        environment = os.environ.get("ENVIRONMENT", "dev")
    return environment.lower() in _PRODUCTION_ENVIRONMENTS


def session_cookie_name(environment: str | None = None) -> str:
    """Session cookie name; production cookies carry the __Secure- prefix."""
    base = os.environ.get("SESSION_COOKIE_NAME", DEFAULT_COOKIE_NAME)
    if is_production(environment) and not base.startswith(SECURE_COOKIE_PREFIX):
        return f"{SECURE_COOKIE_PREFIX}{base}"
    return base


def load_jwt_config() -> JWTConfig | None:
    """Load session token configuration from environment.

    Returns:
        JWTConfig if JWT_SECRET is set, None otherwise (non-production only)

    Raises:
        SessionConfigError: In production, if JWT_SECRET is missing or
            shorter than MIN_PRODUCTION_SECRET_LENGTH characters.

    Environment:
        JWT_SECRET: Secret key for validation
        JWT_ALGORITHM, JWT_ISSUER, JWT_LEEWAY_SECONDS: optional overrides
    """
    secret = os.environ.get("JWT_SECRET")
    production = is_production()

    if not secret:
        if production:
            raise SessionConfigError("JWT_SECRET must be set in production")
        logger.warning("JWT_SECRET not configured, sessions cannot be validated")
        return None

    if production and len(secret) < MIN_PRODUCTION_SECRET_LENGTH:
        raise SessionConfigError(
            f"JWT_SECRET must be at least {MIN_PRODUCTION_SECRET_LENGTH} "
            "characters in production"
        )

    return JWTConfig(
        secret=secret,
        algorithm=os.environ.get("JWT_ALGORITHM", "HS256"),
        issuer=os.environ.get("JWT_ISSUER", DEFAULT_ISSUER),
        leeway_seconds=int(os.environ.get("JWT_LEEWAY_SECONDS", "60")),
        cookie_name=session_cookie_name(),
    )


def extract_session_token(request: Request, cookie_name: str) -> str | None:
    """Read the session token from the Authorization header or the session cookie.

    Bearer header (scheme matched case-insensitively) wins over the cookie
    when both are present.
    """
    auth_header = request.headers.get("authorization", "")
    scheme, _, credentials = auth_header.partition(" ")
    # Auth scheme names are case-insensitive
    if scheme.lower() == "bearer":
        token = credentials.strip()
        if token:
            return token

    token = request.cookies.get(cookie_name)
    return token or None


@xray_recorder.capture("decode_session_token")
def decode_session_token(token: str, config: JWTConfig) -> dict[str, Any] | None:
    """Validate a session token and return its claims.

    Validates the signature, expiration, issuer and required claims.

    Args:
        token: JWT token string (without "Bearer " prefix)
        config: Validation settings

    Returns:
        Claims dict if valid, None if invalid
    """
    try:
        return jwt.decode(
            token,
            config.secret,
            algorithms=[config.algorithm],
            issuer=config.issuer,
            leeway=config.leeway_seconds,
            options={
                "require": ["sub", "exp", "iat"],
            },
        )
    except jwt.ExpiredSignatureError:
        logger.debug("Session token has expired")
        return None
    except jwt.InvalidIssuerError:
        logger.debug("Session token has invalid issuer")
        return None
    except jwt.InvalidSignatureError:
        logger.warning("Session token has invalid signature")
        return None
    except jwt.DecodeError:
        logger.debug("Session token is malformed")
        return None
    except jwt.MissingRequiredClaimError as e:
        logger.debug(f"Session token missing required claim: {e.claim}")
        return None
    except jwt.InvalidTokenError as e:
        logger.debug("Session token rejected", extra=get_safe_error_info(e))
        return None


class JWTSessionProvider:
    """Session provider backed by signed JWT session tokens.

    The token's 'sub' claim is the user id and its 'role' claim must be
    exactly one of the portal roles. Tokens with a missing or unknown role
    resolve to no principal.
    """

    def __init__(self, config: JWTConfig | None = None) -> None:
        self._config = config

    def _current_config(self) -> JWTConfig | None:
        # Environment is read per call when no config was injected
        if self._config is not None:
            return self._config
        return load_jwt_config()

    async def get_principal(self, request: Request | None) -> Principal | None:
        if request is None:
            return None

        config = self._current_config()
        if config is None:
            return None

        token = extract_session_token(request, config.cookie_name)
        if token is None:
            logger.debug("No session token in request")
            return None

        claims = decode_session_token(token, config)
        if claims is None:
            return None

        principal = Principal.from_claims(claims)
        if principal is None:
            logger.warning(
                "Session token carries no valid role",
                extra={"user_id": mask_user_id(claims.get("sub"))},
            )
            return None

        logger.debug(
            f"Resolved principal {mask_user_id(principal.user_id)} with role {principal.role}"
        )
        return principal
