"""Security utilities for JWT session tokens, password hashing and webhook signatures."""

import hashlib
import hmac
from datetime import datetime, timedelta, timezone
from uuid import UUID

import bcrypt
import jwt

from taskflow.core.config import settings


# =============================================================================
# Session Token (JWT in cookie or bearer header)
# =============================================================================

def create_session_token(
    user_id: UUID,
    role: str,
    token_version: int
) -> str:
    """
    Create signed session JWT.

    Always signs with current secret (JWT_SECRET).
    Token contains user identity, role and revocation version.
    """
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "role": role,
        "token_version": token_version,
        "iat": now,
        "exp": now + timedelta(hours=settings.JWT_EXPIRES_HOURS),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm="HS256")


def decode_session_token(token: str) -> dict:
    """
    Decode and verify session JWT.

    Tries current secret first, then previous (for rotation support).

    Raises:
        jwt.InvalidTokenError: If token invalid with all secrets
    """
    last_error = None
    for secret in settings.jwt_secrets:
        try:
            return jwt.decode(token, secret, algorithms=["HS256"])
        except jwt.InvalidTokenError as e:
            last_error = e
            continue
    raise last_error  # type: ignore


# =============================================================================
# Passwords (bcrypt)
# =============================================================================

# bcrypt reads at most 72 bytes of a password.
BCRYPT_MAX_BYTES = 72


def _password_bytes(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


def hash_password(password: str) -> str:
    """Hash a password for storage (salted bcrypt, ``$2b$`` format)."""
    salt = bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)
    return bcrypt.hashpw(_password_bytes(password), salt).decode("ascii")


def verify_password(password: str, stored: str) -> bool:
    """Check a password against a stored hash; malformed hashes never match."""
    try:
        return bcrypt.checkpw(_password_bytes(password), stored.encode("ascii"))
    except ValueError:
        return False


# =============================================================================
# Webhook signatures
# =============================================================================

def sign_payload(payload: bytes, secret: str) -> str:
    """Return the ``sha256=<hex>`` signature of a webhook body."""
    digest = hmac.new(secret.encode(), payload, hashlib.sha256).hexdigest()
    return f"sha256={digest}"


def verify_signature(payload: bytes, signature: str, secret: str) -> bool:
    """
    Verify a ``sha256=<hex>`` HMAC signature header.

    Returns False when the secret is not configured.
    """
    if not signature or not signature.startswith("sha256="):
        return False
    if not secret:
        return False
    return hmac.compare_digest(sign_payload(payload, secret), signature)
