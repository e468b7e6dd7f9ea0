"""Bearer token verification.

Provides:
- TokenVerifier: Protocol the auth middleware depends on
- SupabaseJwksVerifier: Verifies Supabase-issued JWTs against the project's JWKS

Note: Test-only verifiers are in tests/support/test_verifier.py
"""

import threading
from typing import Any, Protocol
from uuid import UUID

import jwt
from jwt import PyJWKClient
from jwt.exceptions import (
    DecodeError,
    ExpiredSignatureError,
    InvalidAudienceError,
    InvalidIssuerError,
    InvalidSignatureError,
    InvalidTokenError,
    PyJWKClientError,
)

from groundup.errors import ApiError, ApiErrorCode
from groundup.logging import get_logger

logger = get_logger(__name__)

# Clock skew allowance in seconds
CLOCK_SKEW_SECONDS = 60

# Supabase cloud signs with RS256, newer local stacks with ES256
ALLOWED_ALGORITHMS = ["RS256", "ES256"]

# Most specific first: ExpiredSignatureError etc. subclass InvalidTokenError
_DECODE_FAILURES: list[tuple[type[InvalidTokenError], str, str]] = [
    (ExpiredSignatureError, "expired_token", "Token expired"),
    (InvalidSignatureError, "invalid_signature", "Invalid token signature"),
    (InvalidIssuerError, "invalid_issuer", "Invalid token issuer"),
    (InvalidAudienceError, "invalid_audience", "Invalid token audience"),
    (DecodeError, "decode_error", "Invalid token format"),
    (InvalidTokenError, "invalid_token", "Invalid token"),
]


class TokenVerifier(Protocol):
    """Verifies a bearer token and returns its claims."""

    def verify(self, token: str) -> dict[str, Any]:
        """Verify token and return decoded claims.

        Raises:
            ApiError(E_UNAUTHENTICATED): Token is invalid, expired, or malformed.
            ApiError(E_AUTH_UNAVAILABLE): Key material could not be fetched.
        """
        ...


def validate_subject(payload: dict[str, Any]) -> UUID:
    """Return the `sub` claim as a UUID.

    Raises:
        ApiError(E_UNAUTHENTICATED): sub is missing or not a UUID.
    """
    sub = payload.get("sub")
    if not sub:
        logger.warning("auth_failure", reason="missing_sub")
        raise ApiError(ApiErrorCode.E_UNAUTHENTICATED, "Invalid token: missing sub")
    try:
        return UUID(str(sub))
    except ValueError as e:
        logger.warning("auth_failure", reason="invalid_sub")
        raise ApiError(
            ApiErrorCode.E_UNAUTHENTICATED, "Invalid token: sub is not a valid UUID"
        ) from e


def decode_token(token: str, key: Any, issuer: str, audiences: list[str]) -> dict[str, Any]:
    """Decode and validate a JWT, mapping PyJWT errors to ApiError."""
    try:
        payload = jwt.decode(
            token,
            key,
            algorithms=ALLOWED_ALGORITHMS,
            audience=audiences,
            issuer=issuer,
            leeway=CLOCK_SKEW_SECONDS,
            options={"require": ["exp", "iss", "sub"], "verify_aud": True},
        )
    except InvalidTokenError as e:
        for exc_type, reason, message in _DECODE_FAILURES:
            if isinstance(e, exc_type):
                logger.warning("auth_failure", reason=reason)
                raise ApiError(ApiErrorCode.E_UNAUTHENTICATED, message) from e
        raise

    validate_subject(payload)
    return payload


class SupabaseJwksVerifier:
    """Token verifier backed by the Supabase JWKS endpoint.

    Keys are cached by PyJWKClient. An unknown `kid` triggers one refresh,
    which covers key rotation without a restart.
    """

    def __init__(
        self,
        jwks_url: str,
        issuer: str,
        audiences: list[str],
        cache_ttl: int = 3600,
    ):
        self.jwks_url = jwks_url
        self.issuer = issuer.rstrip("/")
        self.audiences = audiences
        self.cache_ttl = cache_ttl
        self._lock = threading.Lock()
        self._client: PyJWKClient | None = None

    def _jwks_client(self, refresh: bool = False) -> PyJWKClient:
        with self._lock:
            if self._client is None or refresh:
                self._client = PyJWKClient(
                    self.jwks_url, cache_keys=True, lifespan=self.cache_ttl
                )
            return self._client

    def _signing_key(self, token: str) -> Any:
        try:
            return self._jwks_client().get_signing_key_from_jwt(token)
        except PyJWKClientError as e:
            if "Unable to find" not in str(e) and "kid" not in str(e).lower():
                raise
            logger.info("jwks_refresh_on_kid_miss")
            try:
                return self._jwks_client(refresh=True).get_signing_key_from_jwt(token)
            except PyJWKClientError as retry_e:
                logger.warning("auth_failure", reason="kid_not_found")
                raise ApiError(
                    ApiErrorCode.E_UNAUTHENTICATED, "Invalid token: signing key not found"
                ) from retry_e

    def verify(self, token: str) -> dict[str, Any]:
        """Verify a Supabase JWT.

        Raises:
            ApiError(E_UNAUTHENTICATED): Token is invalid.
            ApiError(E_AUTH_UNAVAILABLE): JWKS fetch failed.
        """
        try:
            signing_key = self._signing_key(token)
        except PyJWKClientError as e:
            logger.warning("auth_failure", reason="jwks_unavailable", error=str(e))
            raise ApiError(
                ApiErrorCode.E_AUTH_UNAVAILABLE, "Authentication service unavailable"
            ) from e

        return decode_token(token, signing_key.key, self.issuer, self.audiences)
