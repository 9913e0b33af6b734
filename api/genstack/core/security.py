"""
Security Utilities

JWT token handling and encryption of stored GitHub access tokens.
Based on FastAPI's official security tutorial patterns.
"""

import base64
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt
from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from genstack.config import get_settings
from genstack.core.exceptions import DecryptionError


def create_access_token(
    data: dict[str, Any],
    expires_delta: timedelta | None = None
) -> str:
    """
    Create a JWT access token.

    Args:
        data: Dictionary of claims to encode in the token
        expires_delta: Optional custom expiration time

    Returns:
        Encoded JWT token string
    """
    settings = get_settings()

    to_encode = data.copy()

    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(
            minutes=settings.access_token_expire_minutes
        )

    to_encode.update({
        "exp": expire,
        "type": "access",
        "iss": settings.jwt_issuer,
        "aud": settings.jwt_audience,
    })

    return jwt.encode(
        to_encode,
        settings.secret_key,
        algorithm=settings.algorithm
    )


def decode_token(token: str, expected_type: str | None = None) -> dict[str, Any] | None:
    """
    Decode and validate a JWT token.

    Args:
        token: JWT token string to decode
        expected_type: If provided, validates that token type matches (e.g., "access")

    Returns:
        Decoded token payload or None if invalid/expired/wrong type
    """
    settings = get_settings()

    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.algorithm],
            issuer=settings.jwt_issuer,
            audience=settings.jwt_audience,
        )

        if expected_type is not None and payload.get("type") != expected_type:
            return None

        return payload
    except jwt.ExpiredSignatureError:
        return None
    except jwt.InvalidTokenError:
        return None


# =============================================================================
# Secret Encryption (for storing GitHub tokens in the database)
# =============================================================================


def _get_fernet_key() -> bytes:
    """
    Derive a Fernet-compatible key from the application secret using HKDF.

    The salt is configurable via GENSTACK_FERNET_SALT. Changing either the
    secret key or the salt makes previously stored tokens undecryptable.

    Returns:
        32-byte key suitable for Fernet encryption
    """
    settings = get_settings()

    kdf = HKDF(
        algorithm=hashes.SHA256(),
        length=32,
        salt=settings.fernet_salt.encode(),
        info=b"genstack-token-encryption",
    )

    return base64.urlsafe_b64encode(kdf.derive(settings.secret_key.encode()))


def encrypt_secret(plaintext: str) -> str:
    """
    Encrypt a secret value for storage in the database.

    Args:
        plaintext: The secret value to encrypt

    Returns:
        Base64-encoded encrypted value
    """
    f = Fernet(_get_fernet_key())
    encrypted = f.encrypt(plaintext.encode())
    return base64.urlsafe_b64encode(encrypted).decode()


def decrypt_secret(encrypted: str) -> str:
    """
    Decrypt a secret value from the database.

    Args:
        encrypted: Base64-encoded encrypted value

    Returns:
        Decrypted plaintext value

    Raises:
        DecryptionError: If the value was not produced by encrypt_secret with
            the current key material
    """
    f = Fernet(_get_fernet_key())
    try:
        encrypted_bytes = base64.urlsafe_b64decode(encrypted.encode())
        return f.decrypt(encrypted_bytes).decode()
    except (InvalidToken, ValueError) as e:
        raise DecryptionError("Failed to decrypt stored token") from e
