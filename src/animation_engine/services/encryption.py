"""Encryption utilities for per-user API key storage.

Uses Fernet symmetric encryption with the master key from settings.
"""

from functools import lru_cache

from cryptography.fernet import Fernet, InvalidToken

from animation_engine.config import settings
from animation_engine.exceptions import EncryptionError
from animation_engine.logging import get_logger

logger = get_logger(__name__)

# Generated dev key, kept for the process lifetime
_generated_dev_key: str | None = None


def _get_master_key() -> bytes:
    """Get the master encryption key.

    The key must be a valid 32-byte base64-encoded Fernet key. Production
    refuses to start without one; development generates a random key once
    per process.
    """
    global _generated_dev_key

    key = settings.encryption_master_key

    if not key:
        if settings.environment == "production":
            raise EncryptionError(
                "ENCRYPTION_MASTER_KEY is required in production. "
                "Generate one with: animation-engine keygen"
            )

        if _generated_dev_key is None:
            _generated_dev_key = Fernet.generate_key().decode()
            logger.warning(
                "encryption_using_generated_key",
                hint="Set ENCRYPTION_MASTER_KEY in .env to keep stored keys readable across restarts",
            )
        key = _generated_dev_key

    return key.encode()


@lru_cache(maxsize=1)
def get_fernet() -> Fernet:
    """Get a cached Fernet instance with the master key."""
    try:
        return Fernet(_get_master_key())
    except ValueError as e:
        raise EncryptionError(f"Failed to initialize encryption: {e}") from e


def encrypt_token(token: str) -> str:
    """Encrypt an API key for storage.

    Raises:
        EncryptionError: If the token is empty or encryption fails.
    """
    if not token:
        raise EncryptionError("Cannot encrypt empty token")

    return get_fernet().encrypt(token.encode()).decode()


def decrypt_token(encrypted_token: str) -> str:
    """Decrypt a stored API key.

    Raises:
        EncryptionError: If decryption fails (invalid key or corrupted data).
    """
    if not encrypted_token:
        raise EncryptionError("Cannot decrypt empty token")

    try:
        return get_fernet().decrypt(encrypted_token.encode()).decode()
    except InvalidToken as e:
        raise EncryptionError(
            "Failed to decrypt stored API key: invalid key or corrupted data. "
            "This may happen if ENCRYPTION_MASTER_KEY changed."
        ) from e


def generate_master_key() -> str:
    """Generate a new Fernet-compatible master key."""
    return Fernet.generate_key().decode()
