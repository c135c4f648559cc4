"""Tests for session resolution and the JWT session provider.

Tests cover:
- resolve_principal normalisation (mappings, failures, malformed principals)
- Session configuration from environment, including production checks
- Token extraction from Bearer header and session cookie
- Token validation (expired, wrong issuer, bad signature, bad role)
"""

import os
from datetime import UTC, datetime, timedelta

import jwt
import pytest

from src.portal.shared.auth.enums import Role
from src.portal.shared.auth.session import (
    DEFAULT_COOKIE_NAME,
    JWTConfig,
    JWTSessionProvider,
    SessionProvider,
    decode_session_token,
    extract_session_token,
    is_production,
    load_jwt_config,
    resolve_principal,
    session_cookie_name,
)
from src.portal.shared.errors.auth_errors import SessionConfigError
from src.portal.shared.models.principal import Principal
from tests.conftest import assert_warning_logged, make_request
from tests.fixtures.mocks.mock_session import FakeSessionProvider

# Test configuration
TEST_SECRET = "test-secret-key-do-not-use-in-production"
TEST_USER_ID = "550e8400-e29b-41d4-a716-446655440000"
TEST_CONFIG = JWTConfig(secret=TEST_SECRET)


def create_test_token(
    user_id: str = TEST_USER_ID,
    role: str | None = "power_user",
    secret: str = TEST_SECRET,
    expires_in: timedelta = timedelta(minutes=15),
    issuer: str | None = "reporting-portal",
    include_iat: bool = True,
    include_sub: bool = True,
) -> str:
    """Create a test session token."""
    payload = {"exp": datetime.now(UTC) + expires_in}

    if include_sub:
        payload["sub"] = user_id
    if include_iat:
        payload["iat"] = datetime.now(UTC)
    if issuer:
        payload["iss"] = issuer
    if role is not None:
        payload["role"] = role

    return jwt.encode(payload, secret, algorithm="HS256")


def bearer(token: str) -> dict[str, str]:
    return {"authorization": f"Bearer {token}"}


class TestResolvePrincipal:
    """Test the normalisation shared by guard and gate."""

    @pytest.mark.asyncio
    async def test_principal_passed_through(self):
        expected = Principal(user_id="user-1", role=Role.ADMIN)
        provider = FakeSessionProvider(principal=expected)

        assert await resolve_principal(provider, None) is expected
        assert provider.call_count == 1

    @pytest.mark.asyncio
    async def test_mapping_validated(self):
        provider = FakeSessionProvider(principal={"id": "1", "role": "read_only"})

        result = await resolve_principal(provider, None)

        assert result == Principal(user_id="1", role=Role.READ_ONLY)

    @pytest.mark.asyncio
    async def test_mapping_with_bad_role_is_no_principal(self):
        provider = FakeSessionProvider(principal={"id": "1", "role": "root"})
        assert await resolve_principal(provider, None) is None

    @pytest.mark.asyncio
    async def test_unvalidated_principal_with_bad_role_rejected(self):
        bogus = Principal.model_construct(user_id="user-1", role="root")
        provider = FakeSessionProvider(principal=bogus)

        assert await resolve_principal(provider, None) is None

    @pytest.mark.asyncio
    async def test_provider_failure_is_no_principal(self, caplog):
        provider = FakeSessionProvider(error=ConnectionError("session store down"))

        assert await resolve_principal(provider, None) is None
        assert_warning_logged(caplog, "Session provider failed")

    @pytest.mark.asyncio
    async def test_unsupported_type_is_no_principal(self):
        provider = FakeSessionProvider(principal="admin")
        assert await resolve_principal(provider, None) is None

    def test_fake_and_jwt_providers_satisfy_protocol(self):
        assert isinstance(FakeSessionProvider(), SessionProvider)
        assert isinstance(JWTSessionProvider(TEST_CONFIG), SessionProvider)


class TestLoadJWTConfig:
    """Test session configuration from environment."""

    def test_returns_none_without_secret(self):
        os.environ.pop("JWT_SECRET", None)
        os.environ["ENVIRONMENT"] = "dev"

        assert load_jwt_config() is None

    def test_reads_environment(self):
        os.environ["JWT_SECRET"] = "s3cret"
        os.environ["JWT_ALGORITHM"] = "HS512"
        os.environ["JWT_ISSUER"] = "custom-issuer"
        os.environ["JWT_LEEWAY_SECONDS"] = "5"
        os.environ["ENVIRONMENT"] = "dev"

        config = load_jwt_config()

        assert config == JWTConfig(
            secret="s3cret",
            algorithm="HS512",
            issuer="custom-issuer",
            leeway_seconds=5,
            cookie_name=DEFAULT_COOKIE_NAME,
        )

    def test_production_requires_secret(self):
        os.environ.pop("JWT_SECRET", None)
        os.environ["ENVIRONMENT"] = "prod"

        with pytest.raises(SessionConfigError):
            load_jwt_config()

    def test_production_rejects_short_secret(self):
        os.environ["JWT_SECRET"] = "too-short"
        os.environ["ENVIRONMENT"] = "production"

        with pytest.raises(SessionConfigError, match="at least 32"):
            load_jwt_config()

    def test_production_uses_secure_cookie(self):
        os.environ["JWT_SECRET"] = "x" * 32
        os.environ["ENVIRONMENT"] = "prod"

        config = load_jwt_config()

        assert config.cookie_name == f"__Secure-{DEFAULT_COOKIE_NAME}"


class TestEnvironmentHelpers:
    @pytest.mark.parametrize(
        "env,expected",
        [("prod", True), ("PRODUCTION", True), ("preprod", False), ("dev", False)],
    )
    def test_is_production(self, env, expected):
        assert is_production(env) is expected

    def test_cookie_name_override(self):
        os.environ["SESSION_COOKIE_NAME"] = "custom.session"
        assert session_cookie_name("dev") == "custom.session"
        assert session_cookie_name("prod") == "__Secure-custom.session"

    def test_secure_prefix_not_doubled(self):
        os.environ["SESSION_COOKIE_NAME"] = "__Secure-custom.session"
        assert session_cookie_name("prod") == "__Secure-custom.session"


class TestExtractSessionToken:
    def test_bearer_header(self):
        request = make_request(headers=bearer("abc"))
        assert extract_session_token(request, DEFAULT_COOKIE_NAME) == "abc"

    def test_cookie(self):
        request = make_request(headers={"cookie": f"{DEFAULT_COOKIE_NAME}=from-cookie"})
        assert extract_session_token(request, DEFAULT_COOKIE_NAME) == "from-cookie"

    def test_header_wins_over_cookie(self):
        request = make_request(
            headers={
                "authorization": "Bearer from-header",
                "cookie": f"{DEFAULT_COOKIE_NAME}=from-cookie",
            }
        )
        assert extract_session_token(request, DEFAULT_COOKIE_NAME) == "from-header"

    @pytest.mark.parametrize("scheme", ["bearer", "BEARER", "BeArEr"])
    def test_bearer_scheme_case_insensitive(self, scheme):
        request = make_request(headers={"authorization": f"{scheme} abc"})
        assert extract_session_token(request, DEFAULT_COOKIE_NAME) == "abc"

    def test_lowercase_header_wins_over_cookie(self):
        request = make_request(
            headers={
                "authorization": "bearer from-header",
                "cookie": f"{DEFAULT_COOKIE_NAME}=from-cookie",
            }
        )
        assert extract_session_token(request, DEFAULT_COOKIE_NAME) == "from-header"

    def test_empty_bearer_falls_back_to_cookie(self):
        request = make_request(
            headers={
                "authorization": "Bearer ",
                "cookie": f"{DEFAULT_COOKIE_NAME}=from-cookie",
            }
        )
        assert extract_session_token(request, DEFAULT_COOKIE_NAME) == "from-cookie"

    def test_non_bearer_scheme_ignored(self):
        request = make_request(headers={"authorization": "Basic dXNlcjpwYXNz"})
        assert extract_session_token(request, DEFAULT_COOKIE_NAME) is None

    def test_missing(self):
        assert extract_session_token(make_request(), DEFAULT_COOKIE_NAME) is None


class TestDecodeSessionToken:
    def test_valid_token(self):
        claims = decode_session_token(create_test_token(), TEST_CONFIG)

        assert claims["sub"] == TEST_USER_ID
        assert claims["role"] == "power_user"

    def test_expired_token(self):
        token = create_test_token(expires_in=timedelta(minutes=-5))
        assert decode_session_token(token, TEST_CONFIG) is None

    def test_expired_within_leeway_accepted(self):
        token = create_test_token(expires_in=timedelta(seconds=-10))
        assert decode_session_token(token, TEST_CONFIG) is not None

    def test_wrong_issuer(self):
        token = create_test_token(issuer="someone-else")
        assert decode_session_token(token, TEST_CONFIG) is None

    def test_bad_signature(self, caplog):
        token = create_test_token(secret="another-secret-of-sufficient-length")

        assert decode_session_token(token, TEST_CONFIG) is None
        assert_warning_logged(caplog, "invalid signature")

    def test_missing_sub(self):
        token = create_test_token(include_sub=False)
        assert decode_session_token(token, TEST_CONFIG) is None

    def test_missing_iat(self):
        token = create_test_token(include_iat=False)
        assert decode_session_token(token, TEST_CONFIG) is None

    def test_malformed(self):
        assert decode_session_token("not.a.jwt", TEST_CONFIG) is None

    def test_algorithm_none_rejected(self):
        token = jwt.encode(
            {
                "sub": TEST_USER_ID,
                "role": "admin",
                "iss": "reporting-portal",
                "iat": datetime.now(UTC),
                "exp": datetime.now(UTC) + timedelta(minutes=5),
            },
            None,
            algorithm="none",
        )
        assert decode_session_token(token, TEST_CONFIG) is None


class TestJWTSessionProvider:
    @pytest.mark.asyncio
    async def test_valid_bearer_token(self):
        provider = JWTSessionProvider(TEST_CONFIG)
        request = make_request(headers=bearer(create_test_token(role="admin")))

        principal = await provider.get_principal(request)

        assert principal == Principal(user_id=TEST_USER_ID, role=Role.ADMIN)

    @pytest.mark.asyncio
    async def test_valid_cookie(self):
        provider = JWTSessionProvider(TEST_CONFIG)
        token = create_test_token(role="read_only")
        request = make_request(headers={"cookie": f"{DEFAULT_COOKIE_NAME}={token}"})

        principal = await provider.get_principal(request)

        assert principal.role is Role.READ_ONLY

    @pytest.mark.asyncio
    async def test_no_token(self):
        provider = JWTSessionProvider(TEST_CONFIG)
        assert await provider.get_principal(make_request()) is None

    @pytest.mark.asyncio
    async def test_no_request(self):
        provider = JWTSessionProvider(TEST_CONFIG)
        assert await provider.get_principal(None) is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("role", [None, "ADMIN", "superuser", ""])
    async def test_bad_role_claim_is_no_principal(self, role):
        provider = JWTSessionProvider(TEST_CONFIG)
        request = make_request(headers=bearer(create_test_token(role=role)))

        assert await provider.get_principal(request) is None

    @pytest.mark.asyncio
    async def test_reads_environment_when_not_configured(self):
        os.environ["JWT_SECRET"] = TEST_SECRET
        os.environ["ENVIRONMENT"] = "test"
        provider = JWTSessionProvider()
        request = make_request(headers=bearer(create_test_token(role="standard_user")))

        principal = await provider.get_principal(request)

        assert principal.role is Role.STANDARD_USER

    @pytest.mark.asyncio
    async def test_unconfigured_environment_is_no_principal(self):
        os.environ.pop("JWT_SECRET", None)
        os.environ["ENVIRONMENT"] = "dev"
        provider = JWTSessionProvider()
        request = make_request(headers=bearer(create_test_token()))

        assert await provider.get_principal(request) is None
