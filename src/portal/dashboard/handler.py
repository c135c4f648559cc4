"""
Portal Lambda Handler
=====================

FastAPI application serving the role-protected portal API and pages.

For On-Call Engineers:
    If every request returns 401:
    1. Check JWT_SECRET is set and matches the sign-in service
    2. Check JWT_ISSUER matches the issuer claim of issued tokens
    3. In production, check clients send the __Secure- prefixed cookie

    If every request returns 500 with {"error": "Internal server error"}:
    1. Check CloudWatch logs for "protected handler failed" and error_type
    2. Handler exception messages are never returned to callers

    If the Lambda fails at cold start with SessionConfigError:
    1. JWT_SECRET is missing or shorter than 32 characters in production

For Developers:
    - Uses Mangum adapter for Lambda Function URL compatibility
    - Auth is enforced per route with with_role_protection, not globally
    - create_app() accepts a session provider so tests can inject a fake

X-Ray Tracing:
    X-Ray is enabled for distributed tracing across all Lambda invocations.
"""

# X-Ray must be imported and patched before other imports
from aws_xray_sdk.core import patch_all  # noqa: E402

patch_all()

import logging
import os
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from mangum import Mangum

from src.portal.dashboard.example import build_router
from src.portal.shared.auth.permissions import known_resources
from src.portal.shared.auth.roles import all_roles, default_role
from src.portal.shared.auth.session import SessionProvider, load_jwt_config
from src.portal.shared.dependencies import get_session_provider

# Structured logging
logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)


def get_environment() -> str:
    return os.environ.get("ENVIRONMENT", "dev")


def get_cors_origins() -> list[str]:
    """
    Get CORS allowed origins from environment.

    Returns localhost for dev/test, specific domains for production.
    Production REQUIRES explicit CORS_ORIGINS configuration.
    """
    cors_origins = os.environ.get("CORS_ORIGINS", "")
    if cors_origins:
        return [origin.strip() for origin in cors_origins.split(",")]

    environment = get_environment()
    if environment in ("dev", "test", "preprod"):
        return ["http://localhost:3000", "http://127.0.0.1:3000"]

    logger.error(
        "CORS_ORIGINS not configured for production - portal will reject cross-origin requests",
        extra={"environment": environment},
    )
    return []


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Logs startup and shutdown events for monitoring.
    """
    logger.info(
        "Portal Lambda starting",
        extra={"environment": get_environment()},
    )
    yield
    logger.info("Portal Lambda shutting down")


def create_app(session_provider: SessionProvider | None = None) -> FastAPI:
    """
    Build the portal application.

    Args:
        session_provider: Provider used by every guard and gate. Defaults
            to the process-wide JWT session provider.

    Raises:
        SessionConfigError: In production, when session validation is
            misconfigured (only checked for the default provider).
    """
    if session_provider is None:
        # Fail fast at cold start instead of 401-ing every request
        load_jwt_config()
        session_provider = get_session_provider()

    app = FastAPI(
        title="Reporting Portal",
        description="Role-protected reporting portal API",
        version="1.0.0",
        lifespan=lifespan,
    )

    cors_origins = get_cors_origins()
    if cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=cors_origins,
            allow_credentials=True,  # Session cookie
            allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
            allow_headers=["Authorization", "Content-Type"],
        )
        logger.info(
            "CORS configured",
            extra={"allowed_origins": cors_origins, "environment": get_environment()},
        )

    app.include_router(build_router(session_provider))

    @app.get("/health")
    async def health_check() -> dict[str, Any]:
        """
        Health check endpoint. Unauthenticated.

        Returns:
            Service status, the role set and the resources with explicit policies
        """
        return {
            "status": "healthy",
            "environment": get_environment(),
            "roles": [str(role) for role in all_roles()],
            "default_role": str(default_role()),
            "resources": known_resources(),
        }

    return app


app = create_app()

# Mangum adapter for AWS Lambda
handler = Mangum(app, lifespan="off")


# Lambda handler function
def lambda_handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    """
    AWS Lambda entry point.

    Wraps the FastAPI app with Mangum for Lambda Function URL compatibility.

    Args:
        event: Lambda event (API Gateway or Function URL format)
        context: Lambda context

    Returns:
        HTTP response dict
    """
    logger.info(
        "Portal Lambda invoked",
        extra={
            "path": event.get("rawPath", event.get("path", "unknown")),
            "method": event.get("requestContext", {})
            .get("http", {})
            .get("method", "unknown"),
        },
    )

    return handler(event, context)
