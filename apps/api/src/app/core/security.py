"""
Security Utilities

Password hashing (bcrypt with SHA-256 pre-hash), JWT access tokens
(python-jose) and helpers for single-use secrets such as password
reset tokens.
"""

import base64
import hashlib
import hmac
import logging
import secrets
from datetime import UTC, datetime, timedelta
from typing import Any

import bcrypt
from jose import JWTError, jwt

from app.core.config import settings

logger = logging.getLogger(__name__)

SECRET_TOKEN_BYTES = 32  # 256 bits of entropy


# ============================================
# Passwords
# ============================================


def _prehash(password: str) -> bytes:
    """SHA-256 pre-hash so bcrypt's 72-byte input limit never truncates."""
    return base64.b64encode(hashlib.sha256(password.encode("utf-8")).digest())


def hash_password(password: str) -> str:
    """Return a salted bcrypt hash of the password."""
    hashed = bcrypt.hashpw(_prehash(password), bcrypt.gensalt())
    return hashed.decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Return True if plain_password matches hashed_password."""
    try:
        return bool(bcrypt.checkpw(_prehash(plain_password), hashed_password.encode("utf-8")))
    except (ValueError, TypeError):
        return False


# ============================================
# JWT access tokens
# ============================================


def create_access_token(
    subject: str,
    additional_claims: dict[str, Any] | None = None,
    expires_delta: timedelta | None = None,
) -> str:
    """
    Create a signed access token.

    Args:
        subject: Value of the "sub" claim (the administrator id)
        additional_claims: Extra claims to embed (username, email, ...)
        expires_delta: Optional lifetime; defaults to ACCESS_TOKEN_EXPIRE_MINUTES

    Returns:
        Encoded JWT string
    """
    now = datetime.now(UTC)
    expire = now + (expires_delta or timedelta(minutes=settings.access_token_expire_minutes))

    to_encode: dict[str, Any] = dict(additional_claims or {})
    to_encode.update(
        {
            "sub": subject,
            "type": "access",
            "iat": now,
            "exp": expire,
        }
    )
    return jwt.encode(
        to_encode,
        settings.secret_key.get_secret_value(),
        algorithm=settings.algorithm,
    )


def decode_token(token: str) -> dict[str, Any] | None:
    """
    Verify and decode a JWT.

    Returns:
        The claims, or None if the signature, expiry or format is invalid
    """
    try:
        return jwt.decode(
            token,
            settings.secret_key.get_secret_value(),
            algorithms=[settings.algorithm],
            options={"require_exp": True, "require_sub": True},
        )
    except JWTError as e:
        logger.debug(f"Token rejected: {e}")
        return None


# ============================================
# Single-use secrets
# ============================================


def generate_secure_token() -> str:
    """Return a URL-safe random token with 256 bits of entropy."""
    return secrets.token_urlsafe(SECRET_TOKEN_BYTES)


def hash_token(token: str) -> str:
    """Hex-encoded SHA-256 of a token; only this digest is ever stored."""
    return hashlib.sha256(token.encode()).hexdigest()


def token_matches(token: str, token_hash: str) -> bool:
    """Constant-time comparison of a plaintext token against a stored digest."""
    return hmac.compare_digest(hash_token(token), token_hash)
