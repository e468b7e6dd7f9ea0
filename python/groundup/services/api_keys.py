"""Provider credential service layer.

Handles stored provider credentials:
- List a user's credentials (safe fields only)
- Create a credential (encrypted at rest, one per provider)
- Delete a credential
- Select and decrypt the credential an enhancement job will use

Security invariants:
- Plaintext keys never persist beyond request scope
- Never log plaintext keys; the fingerprint is the only key-derived log field
- encrypted_key, key_nonce, master_key_version never returned to clients
"""

from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from groundup.db.models import UserApiKey
from groundup.errors import ApiErrorCode, ConflictError, NotFoundError
from groundup.logging import get_logger
from groundup.schemas.keys import UserApiKeyCreate, UserApiKeyOut
from groundup.services.crypto import CryptoError, decrypt_api_key, encrypt_api_key

logger = get_logger(__name__)


@dataclass(frozen=True)
class SelectedCredential:
    """A decrypted credential chosen for one job.

    Attributes:
        key_id: Row id, for logs
        provider: "openai", "anthropic" or "google"
        api_key: Decrypted secret (never log)
        default_model: Model stored with the credential, if any
    """

    key_id: UUID
    provider: str
    api_key: str
    default_model: str | None

    def __repr__(self) -> str:
        return f"SelectedCredential(key_id={self.key_id!r}, provider={self.provider!r})"


def list_user_keys(db: Session, user_id: UUID) -> list[UserApiKeyOut]:
    """List all credentials for a user, newest first."""
    stmt = (
        select(UserApiKey)
        .where(UserApiKey.user_id == user_id)
        .order_by(UserApiKey.created_at.desc(), UserApiKey.id.desc())
    )
    return [UserApiKeyOut.model_validate(key) for key in db.scalars(stmt)]


def create_user_key(db: Session, user_id: UUID, body: UserApiKeyCreate) -> UserApiKeyOut:
    """Encrypt and store a credential.

    Raises:
        ConflictError: E_KEY_ALREADY_EXISTS if the user already has one for the provider.
        CryptoError: If the master key is not configured.
    """
    existing = db.scalars(
        select(UserApiKey.id).where(
            UserApiKey.user_id == user_id,
            UserApiKey.provider == body.provider,
        )
    ).first()
    if existing is not None:
        raise ConflictError(
            ApiErrorCode.E_KEY_ALREADY_EXISTS,
            f"An API key for {body.provider} already exists",
        )

    ciphertext, nonce, version, fingerprint = encrypt_api_key(body.api_key)

    key = UserApiKey(
        user_id=user_id,
        provider=body.provider,
        key_name=body.key_name,
        encrypted_key=ciphertext,
        key_nonce=nonce,
        master_key_version=version,
        key_fingerprint=fingerprint,
        default_model=body.default_model,
        is_active=True,
    )
    db.add(key)
    try:
        db.commit()
    except IntegrityError as e:
        # Concurrent create for the same provider lost the unique race
        db.rollback()
        raise ConflictError(
            ApiErrorCode.E_KEY_ALREADY_EXISTS,
            f"An API key for {body.provider} already exists",
        ) from e

    logger.info(
        "user_key_created",
        user_id=str(user_id),
        provider=key.provider,
        fingerprint=fingerprint,
    )
    return UserApiKeyOut.model_validate(key)


def delete_user_key(db: Session, user_id: UUID, key_id: UUID) -> None:
    """Delete a credential owned by the user.

    Raises:
        NotFoundError: E_KEY_NOT_FOUND if missing or owned by someone else.
    """
    key = db.scalars(
        select(UserApiKey).where(UserApiKey.id == key_id, UserApiKey.user_id == user_id)
    ).first()
    if key is None:
        raise NotFoundError(ApiErrorCode.E_KEY_NOT_FOUND, "API key not found")

    fingerprint = key.key_fingerprint
    db.delete(key)
    db.commit()

    logger.info(
        "user_key_deleted",
        user_id=str(user_id),
        key_id=str(key_id),
        fingerprint=fingerprint,
    )


def select_active_credential(db: Session, user_id: UUID) -> SelectedCredential | None:
    """Pick the credential for a new enhancement job.

    Rule: the most recently created active credential, ties broken by id.
    A credential that cannot be decrypted is logged and skipped, so a broken
    row degrades to the next credential (or to the fallback provider).
    """
    stmt = (
        select(UserApiKey)
        .where(UserApiKey.user_id == user_id, UserApiKey.is_active.is_(True))
        .order_by(UserApiKey.created_at.desc(), UserApiKey.id.desc())
    )
    for key in db.scalars(stmt):
        try:
            api_key = decrypt_api_key(key.encrypted_key, key.key_nonce, key.master_key_version)
        except CryptoError as e:
            logger.warning(
                "user_key_unusable",
                key_id=str(key.id),
                provider=key.provider,
                fingerprint=key.key_fingerprint,
                error=str(e),
            )
            continue
        return SelectedCredential(
            key_id=key.id,
            provider=key.provider,
            api_key=api_key,
            default_model=key.default_model,
        )
    return None
