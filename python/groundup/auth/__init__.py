"""Authentication module.

This module provides:
- Token verification (Supabase JWKS verifier)
- Auth middleware for FastAPI
- Request state with viewer identity

Note: Test-only verifiers are in tests/support/test_verifier.py
"""

from groundup.auth.middleware import AuthMiddleware, Viewer, get_viewer
from groundup.auth.verifier import SupabaseJwksVerifier, TokenVerifier

__all__ = [
    "AuthMiddleware",
    "Viewer",
    "get_viewer",
    "SupabaseJwksVerifier",
    "TokenVerifier",
]
