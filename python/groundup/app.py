"""FastAPI application creation and configuration.

Registers exception handlers, auth middleware, request-id middleware, and routes.

Middleware ordering:
- Middleware runs in reverse order of registration
- RequestIDMiddleware is added LAST (by add_request_id_middleware) so it runs
  FIRST, and auth failures still carry X-Request-ID

Upstream client lifecycle:
- One httpx.AsyncClient is created at startup and stored in app.state
- LLMRouter wraps it for connection pooling across enhancement jobs
- The client is closed at shutdown
"""

from contextlib import asynccontextmanager
from uuid import UUID

import httpx
from fastapi import FastAPI

from groundup.api.routes import create_api_router
from groundup.auth.middleware import AuthMiddleware
from groundup.auth.verifier import SupabaseJwksVerifier, TokenVerifier
from groundup.config import get_settings
from groundup.db.session import get_session_factory
from groundup.logging import configure_logging, get_logger
from groundup.middleware.request_id import RequestIDMiddleware
from groundup.responses import register_exception_handlers
from groundup.services.bootstrap import ensure_user
from groundup.services.llm import LLMRouter

# Configure structured logging at import time
configure_logging()

logger = get_logger(__name__)


def create_bootstrap_callback():
    """Bootstrap callback for the auth middleware, with its own session per call."""
    session_factory = get_session_factory()

    def bootstrap(user_id: UUID) -> UUID:
        db = session_factory()
        try:
            return ensure_user(db, user_id)
        finally:
            db.close()

    return bootstrap


def create_token_verifier() -> SupabaseJwksVerifier:
    """Supabase JWKS verifier from settings. Only configuration differs between environments."""
    settings = get_settings()

    return SupabaseJwksVerifier(
        jwks_url=settings.supabase_jwks_url,  # type: ignore[arg-type]
        issuer=settings.normalized_issuer,  # type: ignore[arg-type]
        audiences=settings.audience_list,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the shared upstream HTTP client and router; close the client on shutdown."""
    settings = get_settings()

    app.state.httpx_client = httpx.AsyncClient(
        timeout=httpx.Timeout(settings.upstream_read_timeout_s, connect=10.0),
        limits=httpx.Limits(max_connections=100, max_keepalive_connections=20),
    )

    app.state.llm_router = LLMRouter(
        app.state.httpx_client,
        fallback_url=settings.fallback_base_url,
        enable_openai=settings.enable_openai,
        enable_anthropic=settings.enable_anthropic,
        enable_google=settings.enable_google,
    )

    logger.info(
        "llm_router_initialized",
        enable_openai=settings.enable_openai,
        enable_anthropic=settings.enable_anthropic,
        enable_google=settings.enable_google,
        fallback_configured=settings.fallback_api_key is not None,
    )

    yield

    await app.state.httpx_client.aclose()
    logger.info("httpx_client_closed")


def create_app(
    skip_auth_middleware: bool = False,
    token_verifier: TokenVerifier | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        skip_auth_middleware: If True, skip adding auth middleware (for testing).
        token_verifier: Optional custom token verifier (for testing).

    Returns:
        Configured FastAPI application instance.
    """
    settings = get_settings()

    app = FastAPI(
        title="Ground Up API",
        description="Resume enhancement API for Ground Up Careers",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    register_exception_handlers(app)

    app.include_router(create_api_router())

    if not skip_auth_middleware:
        app.add_middleware(
            AuthMiddleware,
            verifier=token_verifier or create_token_verifier(),
            requires_internal_header=settings.requires_internal_header,
            internal_secret=settings.groundup_internal_secret,
            bootstrap_callback=create_bootstrap_callback(),
        )

        logger.info(
            "auth_middleware_enabled",
            env=settings.groundup_env.value,
            internal_header_required=settings.requires_internal_header,
        )

    return app


def add_request_id_middleware(app: FastAPI, log_requests: bool = True) -> None:
    """Add request-id middleware. Call AFTER all other middleware so it runs first."""
    app.add_middleware(RequestIDMiddleware, log_requests=log_requests)
    logger.info("request_id_middleware_enabled")
