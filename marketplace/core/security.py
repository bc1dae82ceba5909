"""
Security: password hashing and JWT (best practices for APIs).
Challenge: Secure auth, no plain-text passwords, token validation.
Design: PBKDF2-SHA512 with a per-user random salt stored beside the hash;
tokens are signed HS256 JWTs carrying the user id as ``sub``.
"""

import secrets
from dataclasses import dataclass
from datetime import datetime, timezone, timedelta
from typing import Any

from jose import JWTError, jwt
from passlib.crypto.digest import pbkdf2_hmac
from passlib.utils import consteq

from marketplace.config import get_settings

settings = get_settings()

SALT_BYTES = 16


@dataclass(frozen=True)
class Identity:
    """An authenticated caller. Resolved from a token or a successful login."""

    user_id: int
    username: str


def generate_salt() -> str:
    return secrets.token_hex(SALT_BYTES)


def derive_password_hash(password: str, salt: str) -> str:
    """Keyed hash of the password; hex encoded for storage."""
    raw = pbkdf2_hmac(
        "sha512",
        password.encode("utf-8"),
        salt.encode("utf-8"),
        settings.password_iterations,
        settings.password_key_length,
    )
    return raw.hex()


def hash_password(password: str) -> tuple[str, str]:
    """One-way hash for storage. Returns (hash, salt). Never store plain passwords."""
    salt = generate_salt()
    return derive_password_hash(password, salt), salt


def verify_password(plain: str, hashed: str, salt: str) -> bool:
    """Constant-time comparison for login."""
    if not hashed or not salt:
        return False
    return consteq(derive_password_hash(plain, salt), hashed)


def create_access_token(subject: str | int, extra: dict[str, Any] | None = None) -> str:
    """Create JWT for authenticated user. Subject is the user id."""
    expire = datetime.now(timezone.utc) + timedelta(days=settings.jwt_expire_days)
    to_encode = {"sub": str(subject), "exp": expire}
    if extra:
        to_encode.update(extra)
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> dict[str, Any] | None:
    """Decode and validate JWT. Returns payload or None if invalid."""
    try:
        return jwt.decode(
            token, settings.secret_key, algorithms=[settings.jwt_algorithm]
        )
    except JWTError:
        return None


def identity_from_token(token: str) -> Identity | None:
    """Soft verification: expired, forged or malformed tokens give None."""
    payload = decode_access_token(token)
    if not payload or "sub" not in payload:
        return None
    try:
        user_id = int(payload["sub"])
    except (TypeError, ValueError):
        return None
    return Identity(user_id=user_id, username=str(payload.get("username", "")))
