"""Log guard for enhancement and credential events.

Never-log policy:
- Provider credentials (plaintext, ciphertext or decrypted)
- Bearer tokens
- Rendered prompts and resume text
- Generated output text
- Raw upstream response bodies

Allowed (with suffix): `_chars`, `_length`, `_sha256`, `_hash`.
"""

import hashlib
import os

FORBIDDEN_KEYS = frozenset(
    {
        "prompt",
        "content",
        "resume_text",
        "output",
        "result",
        "api_key",
        "credential",
        "bearer",
        "token",
        "secret",
        "password",
        "raw_body",
        "url",
    }
)

REDACTED_SUFFIXES = ("_sha256", "_hash", "_length", "_chars")


def hash_text(value: str) -> str:
    """Stable SHA-256 hex digest, for correlating text in logs without exposing it."""
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


def safe_kv(*, _env: str | None = None, **kwargs) -> dict:
    """Return kwargs after rejecting forbidden log keys.

    In local/test a forbidden key raises ValueError so the mistake is caught
    by tests. In staging/prod it logs a warning instead of crashing the request.

    Usage:
        logger.info("enhancement.completed", **safe_kv(
            provider="openai",
            output_chars=1234,
        ))

    Args:
        _env: Override for GROUNDUP_ENV (test-only). If None, reads from env.
        **kwargs: Keyword arguments to validate and return.

    Raises:
        ValueError: In local/test, if a forbidden key is used without a redacted suffix.
    """
    violations = [
        key
        for key in kwargs
        if key in FORBIDDEN_KEYS and not key.endswith(REDACTED_SUFFIXES)
    ]

    if violations:
        msg = f"Forbidden log keys without redacted suffix: {violations}"
        env = _env or os.environ.get("GROUNDUP_ENV", "local")
        if env in ("local", "test"):
            raise ValueError(msg)

        import structlog

        structlog.get_logger("groundup.services.redact").warning(
            "safe_kv_violation", forbidden_keys=violations
        )
        for key in violations:
            kwargs.pop(key)

    return kwargs
