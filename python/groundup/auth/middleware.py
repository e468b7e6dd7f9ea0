"""Authentication middleware for FastAPI.

Provides:
- AuthMiddleware: Bearer token + internal header verification for every non-public path
- get_viewer: Dependency for the authenticated viewer identity
"""

import hmac
from collections.abc import Callable
from dataclasses import dataclass
from uuid import UUID

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from groundup.auth.verifier import TokenVerifier
from groundup.errors import ApiError, ApiErrorCode
from groundup.logging import get_logger, set_request_context
from groundup.responses import error_response

logger = get_logger(__name__)

AUTHORIZATION_HEADER = "authorization"
INTERNAL_HEADER = "x-groundup-internal"

# Paths that don't require authentication
PUBLIC_PATHS = {"/health", "/docs", "/redoc", "/openapi.json"}


@dataclass(frozen=True)
class Viewer:
    """Authenticated viewer identity.

    Attributes:
        user_id: The viewer's user ID (from JWT sub claim).
    """

    user_id: UUID


class AuthMiddleware(BaseHTTPMiddleware):
    """Authenticates requests before they reach a route.

    Order of checks:
    1. Skip if public path
    2. Verify internal header (staging/prod)
    3. Extract bearer token
    4. Verify token via TokenVerifier
    5. Ensure the users row exists (bootstrap callback)
    6. Attach Viewer to request state
    """

    def __init__(
        self,
        app: ASGIApp,
        verifier: TokenVerifier,
        requires_internal_header: bool = False,
        internal_secret: str | None = None,
        bootstrap_callback: Callable[[UUID], UUID] | None = None,
    ):
        """Initialize the auth middleware.

        Args:
            app: The ASGI application.
            verifier: TokenVerifier implementation for JWT verification.
            requires_internal_header: Whether to enforce the X-GroundUp-Internal header.
            internal_secret: The expected internal secret value.
            bootstrap_callback: Function(user_id) -> user_id, ensures the user row exists.
        """
        super().__init__(app)
        self.verifier = verifier
        self.requires_internal_header = requires_internal_header
        self.internal_secret = internal_secret
        self.bootstrap_callback = bootstrap_callback

    async def dispatch(self, request: Request, call_next):
        if request.url.path in PUBLIC_PATHS:
            return await call_next(request)

        if self.requires_internal_header:
            failure = self._check_internal_header(request)
            if failure is not None:
                return failure

        token = self._bearer_token(request)
        if token is None:
            return _error(ApiErrorCode.E_UNAUTHENTICATED, "Authentication required")

        try:
            payload = self.verifier.verify(token)
        except ApiError as e:
            return _error(e.code, e.message)

        user_id = UUID(payload["sub"])

        if self.bootstrap_callback is not None:
            try:
                self.bootstrap_callback(user_id)
            except Exception:
                logger.exception("user_bootstrap_failed", user_id=str(user_id))
                return _error(ApiErrorCode.E_INTERNAL, "Internal server error")

        request.state.viewer = Viewer(user_id=user_id)
        set_request_context(getattr(request.state, "request_id", None), user_id=str(user_id))

        return await call_next(request)

    def _check_internal_header(self, request: Request) -> JSONResponse | None:
        """Constant-time check of the internal header. Returns an error response on failure."""
        header_value = request.headers.get(INTERNAL_HEADER)

        if header_value is None:
            logger.warning("auth_failure", reason="internal_header_missing")
            return _error(ApiErrorCode.E_INTERNAL_ONLY, "Internal API access required")

        if not self.internal_secret:
            logger.error("internal_secret_not_configured")
            return _error(ApiErrorCode.E_INTERNAL, "Internal server error")

        if not hmac.compare_digest(header_value.encode(), self.internal_secret.encode()):
            logger.warning("auth_failure", reason="internal_header_mismatch")
            return _error(ApiErrorCode.E_INTERNAL_ONLY, "Internal API access required")

        return None

    def _bearer_token(self, request: Request) -> str | None:
        auth_header = request.headers.get(AUTHORIZATION_HEADER)
        if not auth_header:
            logger.warning("auth_failure", reason="missing_header")
            return None

        scheme, _, token = auth_header.partition(" ")
        token = token.strip()
        if scheme.lower() != "bearer" or not token:
            logger.warning("auth_failure", reason="invalid_header_format")
            return None

        return token


def _error(code: ApiErrorCode, message: str) -> JSONResponse:
    status_code = ApiError(code, message).status_code
    return JSONResponse(status_code=status_code, content=error_response(code, message))


def get_viewer(request: Request) -> Viewer:
    """FastAPI dependency to get the authenticated viewer.

    Raises:
        ApiError: If viewer is not set (middleware didn't run or path is public).
    """
    viewer = getattr(request.state, "viewer", None)
    if viewer is None:
        raise ApiError(ApiErrorCode.E_UNAUTHENTICATED, "Authentication required")
    return viewer
