"""Admin bearer tokens and password hashing."""

from __future__ import annotations

import hashlib
import hmac
import secrets
import time
from typing import Any

import jwt
import structlog

from tenantgate.exceptions import AuthenticationError

logger = structlog.get_logger(__name__)

_ALGORITHM = "HS256"
_PBKDF2_ITERATIONS = 260_000


def hash_password(
    password: str, *, salt: str | None = None, iterations: int = _PBKDF2_ITERATIONS
) -> str:
    """Return ``pbkdf2_sha256$iterations$salt$hex`` for ``password``."""
    salt = salt or secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode(), salt.encode(), iterations)
    return f"pbkdf2_sha256${iterations}${salt}${digest.hex()}"


def verify_password(password: str, encoded: str) -> bool:
    try:
        algorithm, iterations, salt, expected = encoded.split("$", 3)
    except ValueError:
        return False
    if algorithm != "pbkdf2_sha256":
        return False
    digest = hashlib.pbkdf2_hmac("sha256", password.encode(), salt.encode(), int(iterations))
    return hmac.compare_digest(digest.hex(), expected)


class AdminTokenService:
    """Issues and validates signed admin tokens carrying the admin id."""

    def __init__(self, secret_key: str, ttl_seconds: int = 86400) -> None:
        self._secret = secret_key
        self._ttl = ttl_seconds

    def issue(self, user_id: int) -> str:
        now = int(time.time())
        payload = {"sub": str(user_id), "iat": now, "exp": now + self._ttl, "typ": "admin"}
        return jwt.encode(payload, self._secret, algorithm=_ALGORITHM)

    def verify(self, token: str) -> int:
        """Return the admin id in ``token``; raises ``AuthenticationError``."""
        try:
            claims: dict[str, Any] = jwt.decode(token, self._secret, algorithms=[_ALGORITHM])
        except jwt.PyJWTError as exc:
            logger.debug("admin_token_invalid", error=str(exc))
            raise AuthenticationError("Invalid credentials") from exc
        subject = claims.get("sub", "")
        if claims.get("typ") != "admin" or not str(subject).isdigit():
            raise AuthenticationError("Invalid credentials")
        return int(subject)

    def user_id_or_none(self, token: str | None) -> int | None:
        if not token:
            return None
        try:
            return self.verify(token)
        except AuthenticationError:
            return None
