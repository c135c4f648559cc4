"""
Pytest Configuration and Shared Fixtures
=========================================

Common fixtures used across all test modules.

For On-Call Engineers:
    If guard tests fail with unexpected 401s:
    1. Check JWT_SECRET below matches the secret the test signs tokens with
    2. Check ENVIRONMENT is "test" (production enforces a 32+ char secret)

    If tests fail with "Unexpected ERROR/WARNING logs":
    1. The test is catching a real issue - investigate the logs
    2. If the log is expected, assert on it with assert_error_logged()

For Developers:
    - Import fixtures by name in test files (pytest auto-discovers conftest.py)
    - Guards and gates take a session provider; use FakeSessionProvider from
      tests/fixtures/mocks/mock_session.py instead of real tokens
    - Use make_request() to build a Starlette request without a server
"""

import json
import logging
import os
from typing import Any

import pytest
from starlette.requests import Request

# =============================================================================
# Pytest Marker Registration
# =============================================================================


def pytest_configure(config):
    """Register custom markers to avoid warnings."""
    config.addinivalue_line(
        "markers",
        "integration: marks tests that run the full FastAPI application",
    )


# Set default test environment variables at module load time
# This allows test files to import modules that read env vars at import time
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("JWT_SECRET", "test-secret-key-do-not-use-in-production")
os.environ.setdefault("JWT_ISSUER", "reporting-portal")

# Disable X-Ray SDK in tests to suppress "cannot find the current segment" errors.
# X-Ray requires a Lambda runtime context with an active segment. In tests, there's no
# X-Ray daemon running, so the SDK logs ERROR for every instrumented call.
os.environ.setdefault("AWS_XRAY_SDK_ENABLED", "false")


@pytest.fixture(autouse=True)
def reset_env_vars():
    """
    Reset environment variables before each test.

    Ensures tests don't pollute each other's environment.
    """
    original_env = os.environ.copy()

    yield

    os.environ.clear()
    os.environ.update(original_env)


@pytest.fixture(autouse=True)
def reset_dependency_singletons():
    """Drop the cached session provider between tests."""
    from src.portal.shared.dependencies import reset_singletons

    reset_singletons()
    yield
    reset_singletons()


# =============================================================================
# Request Helpers
# =============================================================================


def make_request(
    method: str = "GET",
    path: str = "/api/example/protected-action",
    headers: dict[str, str] | None = None,
    query_string: str = "",
    body: Any = None,
) -> Request:
    """
    Build a Starlette Request for calling guarded handlers directly.

    Args:
        method: HTTP method
        path: Request path
        headers: Header mapping (lower-cased on the wire)
        query_string: Raw query string without the leading '?'
        body: dict/list (JSON-encoded), str/bytes (sent as-is) or None

    Example:
        request = make_request(headers={"authorization": f"Bearer {token}"})
        response = await guarded(request)
    """
    if body is None:
        raw_body = b""
    elif isinstance(body, bytes):
        raw_body = body
    elif isinstance(body, str):
        raw_body = body.encode()
    else:
        raw_body = json.dumps(body).encode()

    scope = {
        "type": "http",
        "method": method,
        "path": path,
        "raw_path": path.encode(),
        "query_string": query_string.encode(),
        "headers": [
            (name.lower().encode(), value.encode())
            for name, value in (headers or {}).items()
        ],
        "scheme": "http",
        "server": ("testserver", 80),
        "client": ("testclient", 50000),
        "root_path": "",
    }

    async def receive() -> dict[str, Any]:
        return {"type": "http.request", "body": raw_body, "more_body": False}

    return Request(scope, receive)


# =============================================================================
# Log Validation Helpers
# =============================================================================
#
# Production code logs normally (never test-aware). Tests explicitly assert
# on expected logs using caplog.


def assert_error_logged(caplog, pattern: str):
    """
    Helper to assert an ERROR log was captured.

    Args:
        caplog: pytest caplog fixture
        pattern: String pattern to search for in log messages

    Raises:
        AssertionError: If no ERROR log matches the pattern
    """
    assert any(
        pattern in record.message
        for record in caplog.records
        if record.levelno >= logging.ERROR
    ), f"Expected ERROR log matching '{pattern}' not found"


def assert_warning_logged(caplog, pattern: str):
    """
    Helper to assert a WARNING log was captured.

    Args:
        caplog: pytest caplog fixture
        pattern: String pattern to search for in log messages

    Raises:
        AssertionError: If no WARNING log matches the pattern
    """
    assert any(
        pattern in record.message
        for record in caplog.records
        if record.levelno == logging.WARNING
    ), f"Expected WARNING log matching '{pattern}' not found"


# =============================================================================
# Session Fixtures
# =============================================================================


@pytest.fixture
def session_provider():
    """Fake session provider with no principal (anonymous caller)."""
    from tests.fixtures.mocks.mock_session import FakeSessionProvider

    return FakeSessionProvider()


@pytest.fixture
def jwt_secret() -> str:
    return os.environ["JWT_SECRET"]
