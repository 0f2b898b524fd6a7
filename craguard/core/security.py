"""Password hashing, JWT creation/verification and shared-secret checks."""

import hmac
from datetime import UTC, datetime, timedelta
from typing import Any

import bcrypt
import jwt

from craguard.core.config import settings

# Bcrypt cost (rounds).
BCRYPT_ROUNDS = 12

USERNAME_MIN_LEN = 1
USERNAME_MAX_LEN = 255
PASSWORD_MIN_LEN = 8
PASSWORD_MAX_LEN = 128

BEARER_PREFIX = "Bearer "


def hash_password(plain_password: str) -> str:
    """Hash a plain-text password for storage."""
    # bcrypt only looks at the first 72 bytes.
    pw_bytes = plain_password.encode("utf-8")[:72]
    return bcrypt.hashpw(pw_bytes, bcrypt.gensalt(rounds=BCRYPT_ROUNDS)).decode("utf-8")


def verify_password(plain_password: str, hashed: str) -> bool:
    """Verify a plain password against a stored hash."""
    pw_bytes = plain_password.encode("utf-8")[:72]
    try:
        return bcrypt.checkpw(pw_bytes, hashed.encode("utf-8"))
    except (ValueError, TypeError):
        return False


def create_access_token(sub: str | int, role: str) -> str:
    """Create a JWT access token with sub (user id), role, and exp."""
    now = datetime.now(UTC)
    expire = now + timedelta(minutes=settings.JWT_EXPIRE_MINUTES)
    payload: dict[str, Any] = {
        "sub": str(sub),
        "role": role,
        "exp": expire,
        "iat": now,
    }
    return jwt.encode(
        payload,
        settings.JWT_SECRET.get_secret_value(),
        algorithm=settings.JWT_ALGORITHM,
    )


def decode_access_token(token: str) -> dict[str, Any]:
    """
    Decode and validate JWT; return payload (sub, role, exp, iat).
    Raises jwt.PyJWTError on invalid or expired token.
    """
    return jwt.decode(
        token,
        settings.JWT_SECRET.get_secret_value(),
        algorithms=[settings.JWT_ALGORITHM],
    )


def bearer_secret_matches(authorization: str | None, expected: str) -> bool:
    """True if the Authorization header is exactly ``Bearer <expected>`` (constant-time compare)."""
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        return False
    supplied = authorization[len(BEARER_PREFIX):]
    return hmac.compare_digest(supplied.encode("utf-8"), expected.encode("utf-8"))
