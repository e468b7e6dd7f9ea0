"""Test helpers for authentication, seeding and stream bodies.

Provides:
- Token minting and auth headers for test requests
- Row factories for users, resumes and stored credentials
- Builders for upstream provider stream bodies
- A parser for the enhancement stream's outbound frames
"""

import json
import time
from datetime import datetime
from uuid import UUID, uuid4

import jwt
from sqlalchemy.orm import Session, sessionmaker

from groundup.db.models import Resume, ResumeEnhancement, User, UserApiKey
from groundup.services.crypto import encrypt_api_key
from tests.support.test_verifier import MockJwtVerifier

DEFAULT_ISSUER = "test-issuer"
DEFAULT_AUDIENCE = "test-audience"
DEFAULT_EXPIRES_IN = 3600

FALLBACK_URL = "https://fallback.test/v1/chat/completions"
FALLBACK_KEY = "fallback-operator-key-0000"

SAMPLE_RESUME = (
    "Jordan Reyes\n"
    "Licensed journeyman electrician with eight years of residential service work.\n"
    "Installed and upgraded panels for more than 300 homes. OSHA 30 certified.\n"
)


# =============================================================================
# Auth
# =============================================================================


def mint_test_token(
    user_id: UUID | str,
    expires_in: int = DEFAULT_EXPIRES_IN,
    issuer: str = DEFAULT_ISSUER,
    audience: str = DEFAULT_AUDIENCE,
    **extra_claims,
) -> str:
    """Mint a JWT signed with the MockJwtVerifier private key."""
    now = int(time.time())
    payload = {
        "sub": str(user_id),
        "iss": issuer,
        "aud": audience,
        "iat": now,
        "exp": now + expires_in,
        **extra_claims,
    }
    return jwt.encode(payload, MockJwtVerifier.get_private_key(), algorithm="RS256")


def auth_headers(user_id: UUID | str, **token_kwargs) -> dict[str, str]:
    """Headers with a valid bearer token for the given user."""
    return {"Authorization": f"Bearer {mint_test_token(user_id, **token_kwargs)}"}


def create_test_user_id() -> UUID:
    return uuid4()


# =============================================================================
# Rows
# =============================================================================


def create_user(db: Session, user_id: UUID | None = None) -> UUID:
    user = User(id=user_id or uuid4())
    db.add(user)
    db.commit()
    return user.id


def create_resume(
    db: Session,
    user_id: UUID,
    content: str = SAMPLE_RESUME,
    original_name: str = "resume.pdf",
) -> Resume:
    """Create a resume (and its user if missing)."""
    if db.get(User, user_id) is None:
        create_user(db, user_id)
    resume = Resume(
        user_id=user_id,
        original_name=original_name,
        file_type="application/pdf",
        original_content=content,
        status="processed",
    )
    db.add(resume)
    db.commit()
    return resume


def create_api_key(
    db: Session,
    user_id: UUID,
    provider: str,
    api_key: str,
    *,
    default_model: str | None = None,
    is_active: bool = True,
    created_at: datetime | None = None,
) -> UserApiKey:
    """Store an encrypted credential the way the keys service does."""
    if db.get(User, user_id) is None:
        create_user(db, user_id)
    ciphertext, nonce, version, fingerprint = encrypt_api_key(api_key)
    key = UserApiKey(
        user_id=user_id,
        provider=provider,
        key_name=f"{provider} key",
        encrypted_key=ciphertext,
        key_nonce=nonce,
        master_key_version=version,
        key_fingerprint=fingerprint,
        default_model=default_model,
        is_active=is_active,
    )
    if created_at is not None:
        key.created_at = created_at
    db.add(key)
    db.commit()
    return key


def load_enhancement(factory: sessionmaker[Session], enhancement_id: UUID) -> ResumeEnhancement:
    """Read an enhancement row through a fresh session (no stale identity map)."""
    db = factory()
    try:
        row = db.get(ResumeEnhancement, enhancement_id)
        assert row is not None
        return row
    finally:
        db.close()


# =============================================================================
# Upstream stream bodies
# =============================================================================


def openai_stream(*chunks: str, done: bool = True) -> str:
    """OpenAI-shaped SSE body (also used by the fallback provider)."""
    lines = [
        "data: " + json.dumps({"choices": [{"index": 0, "delta": {"content": chunk}}]})
        for chunk in chunks
    ]
    if done:
        lines.append("data: [DONE]")
    return "\n\n".join(lines) + "\n\n"


def anthropic_stream(*chunks: str) -> str:
    """Anthropic messages SSE body, including the event lines the parser skips."""
    lines = ["event: message_start", 'data: {"type": "message_start", "message": {}}']
    for chunk in chunks:
        lines.append("event: content_block_delta")
        lines.append(
            "data: "
            + json.dumps(
                {"type": "content_block_delta", "delta": {"type": "text_delta", "text": chunk}}
            )
        )
    lines.append("event: message_stop")
    lines.append('data: {"type": "message_stop"}')
    return "\n".join(lines) + "\n\n"


def gemini_stream(*chunks: str) -> str:
    """Gemini alt=sse body. There is no terminator; the body just ends."""
    lines = [
        "data: "
        + json.dumps({"candidates": [{"content": {"parts": [{"text": chunk}], "role": "model"}}]})
        for chunk in chunks
    ]
    return "\r\n\r\n".join(lines) + "\r\n\r\n"


SSE_HEADERS = {"content-type": "text/event-stream"}


# =============================================================================
# Outbound frames
# =============================================================================


def parse_frames(body: str) -> list[dict | str]:
    """Split an enhancement stream body into payloads; the sentinel stays as "[DONE]"."""
    frames: list[dict | str] = []
    for block in body.split("\n\n"):
        if not block:
            continue
        assert block.startswith("data: "), block
        payload = block[len("data: ") :]
        frames.append(payload if payload == "[DONE]" else json.loads(payload))
    return frames
