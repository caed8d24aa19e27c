import base64
import hashlib
import hmac
import os
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

import jwt

from housepoints.core.config import get_settings


HASH_SCHEME = "pbkdf2_sha256"
PBKDF2_ITERATIONS = 120_000
MIN_PASSWORD_LENGTH = 6


@dataclass(frozen=True)
class TokenClaims:
    subject: str
    role: str | None
    expires_at: datetime


def _b64(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode("ascii")


def _derive(password: str, salt: bytes, iterations: int) -> bytes:
    return hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iterations)


def _split_hash(password_hash: str) -> tuple[int, bytes, bytes] | None:
    try:
        scheme, iterations, salt_b64, digest_b64 = password_hash.split("$", 3)
        if scheme != HASH_SCHEME:
            return None
        return (
            int(iterations),
            base64.urlsafe_b64decode(salt_b64.encode("ascii")),
            base64.urlsafe_b64decode(digest_b64.encode("ascii")),
        )
    except ValueError:
        return None


def hash_password(password: str) -> str:
    salt = os.urandom(16)
    digest = _derive(password, salt, PBKDF2_ITERATIONS)
    return f"{HASH_SCHEME}${PBKDF2_ITERATIONS}${_b64(salt)}${_b64(digest)}"


def verify_password(password: str, password_hash: str) -> bool:
    parts = _split_hash(password_hash)
    if parts is None:
        return False
    iterations, salt, expected = parts
    return hmac.compare_digest(_derive(password, salt, iterations), expected)


def password_needs_rehash(password_hash: str) -> bool:
    """True for hashes made with fewer iterations than the current setting."""
    parts = _split_hash(password_hash)
    return parts is None or parts[0] < PBKDF2_ITERATIONS


def create_access_token(subject: str, role: str, expires_minutes: int | None = None) -> str:
    settings = get_settings()
    now = datetime.now(UTC)
    expires_at = now + timedelta(minutes=expires_minutes or settings.jwt_expire_minutes)
    payload = {
        "sub": subject,
        "role": role,
        "iat": int(now.timestamp()),
        "exp": int(expires_at.timestamp()),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> TokenClaims:
    """Decode and verify a bearer token.

    Raises ``jwt.InvalidTokenError`` for bad signatures, expired tokens and
    tokens without ``sub``/``exp`` claims.
    """
    settings = get_settings()
    payload = jwt.decode(
        token,
        settings.jwt_secret,
        algorithms=[settings.jwt_algorithm],
        options={"require": ["sub", "exp"]},
    )
    return TokenClaims(
        subject=str(payload["sub"]),
        role=payload.get("role"),
        expires_at=datetime.fromtimestamp(payload["exp"], UTC),
    )
