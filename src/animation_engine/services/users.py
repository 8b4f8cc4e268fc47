"""User accounts and per-user generation settings.

Handles registration, password hashing, and the encrypted API keys a user
can store to run generations against their own provider accounts.
"""

import hashlib
import hmac
import secrets
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy.orm import Session

from animation_engine.config import settings
from animation_engine.db import repository
from animation_engine.db.models import UserModel, UserSettingsModel
from animation_engine.domain.enums import AIModel
from animation_engine.domain.models import BackendCredentials, GenerationConfig
from animation_engine.exceptions import ValidationError
from animation_engine.logging import get_logger
from animation_engine.services.encryption import decrypt_token, encrypt_token

logger = get_logger(__name__)

MASKED_KEY = "********"

# scrypt parameters (RFC 7914 interactive-login recommendation)
_SCRYPT_N = 2**14
_SCRYPT_R = 8
_SCRYPT_P = 1

_KEY_COLUMNS = {
    AIModel.OPENAI: "openai_api_key_encrypted",
    AIModel.GEMINI: "google_api_key_encrypted",
    AIModel.GROQ: "groq_api_key_encrypted",
}


@dataclass
class MaskedUserSettings:
    """User settings as returned to clients; stored keys are masked."""

    user_id: UUID
    default_ai_model: AIModel
    openai_api_key: str | None = None
    google_api_key: str | None = None
    groq_api_key: str | None = None


# =============================================================================
# Passwords
# =============================================================================


def hash_password(password: str) -> str:
    """Hash a password as ``scrypt$<salt hex>$<hash hex>``."""
    salt = secrets.token_bytes(16)
    digest = hashlib.scrypt(password.encode(), salt=salt, n=_SCRYPT_N, r=_SCRYPT_R, p=_SCRYPT_P)
    return f"scrypt${salt.hex()}${digest.hex()}"


def verify_password(password: str, stored: str) -> bool:
    try:
        scheme, salt_hex, hash_hex = stored.split("$")
    except ValueError:
        return False
    if scheme != "scrypt":
        return False
    digest = hashlib.scrypt(
        password.encode(), salt=bytes.fromhex(salt_hex), n=_SCRYPT_N, r=_SCRYPT_R, p=_SCRYPT_P
    )
    return hmac.compare_digest(digest.hex(), hash_hex)


# =============================================================================
# Users
# =============================================================================


def create_user(session: Session, username: str, email: str, password: str) -> UserModel:
    """Register a new user with the default generation quota.

    Raises:
        ValidationError: If the username or email is already taken, or the
            password is too short.
    """
    if len(password) < 8:
        raise ValidationError("Password must be at least 8 characters")
    if repository.get_user_by_username(session, username):
        raise ValidationError(f"Username '{username}' is already taken")
    if repository.get_user_by_email(session, email):
        raise ValidationError(f"Email '{email}' is already registered")

    user = UserModel(
        username=username,
        email=email,
        password_hash=hash_password(password),
        generations_remaining=settings.default_generations_quota,
    )
    session.add(user)
    session.flush()

    logger.info("user_created", user_id=str(user.id), username=username)
    return user


def authenticate_user(session: Session, username: str, password: str) -> UserModel | None:
    """Check a username and password for the session provider.

    Returns the user, or None if either is wrong.
    """
    user = repository.get_user_by_username(session, username)
    if user is None or not verify_password(password, user.password_hash):
        logger.info("login_failed", username=username)
        return None
    return user


# =============================================================================
# Settings
# =============================================================================


def _get_or_create_settings(session: Session, user_id: UUID) -> UserSettingsModel:
    user = repository.get_user(session, user_id)
    if user.settings is None:
        user.settings = UserSettingsModel(user_id=user.id, default_ai_model=str(AIModel.OPENAI))
        session.flush()
    return user.settings


def _mask(row: UserSettingsModel | None, user_id: UUID) -> MaskedUserSettings:
    if row is None:
        return MaskedUserSettings(user_id=user_id, default_ai_model=AIModel.OPENAI)
    return MaskedUserSettings(
        user_id=user_id,
        default_ai_model=AIModel(row.default_ai_model),
        openai_api_key=MASKED_KEY if row.openai_api_key_encrypted else None,
        google_api_key=MASKED_KEY if row.google_api_key_encrypted else None,
        groq_api_key=MASKED_KEY if row.groq_api_key_encrypted else None,
    )


def get_user_settings(session: Session, user_id: UUID) -> MaskedUserSettings:
    user = repository.get_user(session, user_id)
    return _mask(user.settings, user_id)


def update_user_settings(
    session: Session,
    user_id: UUID,
    default_ai_model: AIModel | None = None,
    api_keys: dict[AIModel, str | None] | None = None,
) -> MaskedUserSettings:
    """Update a user's default model and stored keys.

    For each key: ``None`` or the mask leaves it unchanged, an empty string
    removes it, anything else is encrypted and stored.
    """
    row = _get_or_create_settings(session, user_id)

    if default_ai_model is not None:
        row.default_ai_model = str(default_ai_model)

    for model, value in (api_keys or {}).items():
        if value is None or value == MASKED_KEY:
            continue
        column = _KEY_COLUMNS[model]
        setattr(row, column, encrypt_token(value) if value else None)

    session.flush()
    logger.info(
        "user_settings_updated",
        user_id=str(user_id),
        default_ai_model=row.default_ai_model,
        keys_changed=[str(m) for m, v in (api_keys or {}).items() if v not in (None, MASKED_KEY)],
    )
    return _mask(row, user_id)


def default_credentials() -> BackendCredentials:
    """Service-wide keys from settings."""
    return BackendCredentials(
        openai_api_key=settings.openai_api_key,
        google_api_key=settings.google_api_key,
        groq_api_key=settings.groq_api_key,
    )


def resolve_generation_config(session: Session, user_id: UUID, ai_model: AIModel) -> GenerationConfig:
    """Build the config for one run: the user's stored keys over the service defaults.

    Raises:
        EncryptionError: If a stored key cannot be decrypted.
    """
    user = repository.get_user(session, user_id)
    row = user.settings
    stored = BackendCredentials()
    if row is not None:
        stored = BackendCredentials(
            openai_api_key=decrypt_token(row.openai_api_key_encrypted)
            if row.openai_api_key_encrypted
            else None,
            google_api_key=decrypt_token(row.google_api_key_encrypted)
            if row.google_api_key_encrypted
            else None,
            groq_api_key=decrypt_token(row.groq_api_key_encrypted)
            if row.groq_api_key_encrypted
            else None,
        )

    return GenerationConfig(
        ai_model=ai_model,
        credentials=stored.merged_over(default_credentials()),
    )
