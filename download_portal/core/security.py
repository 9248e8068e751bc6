"""Security utilities: password hashing, session cookies, opaque tokens."""

import hashlib
import logging
import secrets
from functools import lru_cache
from typing import Any

from jose import JWTError, jwt
from passlib.context import CryptContext

from download_portal.core.errors import InternalFormatError

logger = logging.getLogger(__name__)

# argon2id: memory-hard, per-hash random salt, versioned PHC string
# ($argon2id$v=19$m=...,t=...,p=...$salt$digest)
pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")

SESSION_TOKEN_TYPE = "session"


def get_password_hash(password: str) -> str:
    """Hash a password with a freshly generated salt."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plain password against a stored hash.

    Returns False only for a genuine mismatch. A stored hash that cannot be
    identified or parsed is corrupt data, not a wrong password, and raises
    InternalFormatError.
    """
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except (ValueError, TypeError) as exc:
        logger.error("Stored password hash is malformed: %s", exc)
        raise InternalFormatError() from exc


@lru_cache
def _dummy_password_hash() -> str:
    return pwd_context.hash(secrets.token_urlsafe(16))


def burn_password_check(plain_password: str) -> None:
    """Spend one hash verification so unknown usernames cost as much as known ones."""
    pwd_context.verify(plain_password, _dummy_password_hash())


def generate_session_id() -> str:
    """Generate an opaque, unguessable session identifier."""
    return secrets.token_urlsafe(32)


def generate_download_token() -> str:
    """Generate an opaque, unguessable download token."""
    return secrets.token_urlsafe(32)


def hash_session_id(session_id: str) -> str:
    """Digest stored server-side so a leaked table cannot be replayed as cookies."""
    return hashlib.sha256(session_id.encode()).hexdigest()


def create_session_token(
    user_id: str,
    username: str,
    session_id: str,
    secret_key: str,
    algorithm: str = "HS256",
) -> str:
    """Create the signed value carried in the session cookie.

    No ``exp`` claim: the session lives until logout or until the browser
    drops the cookie.
    """
    to_encode = {
        "sub": str(user_id),
        "username": username,
        "sid": session_id,
        "type": SESSION_TOKEN_TYPE,
    }
    return jwt.encode(to_encode, secret_key, algorithm=algorithm)


def decode_session_token(
    token: str,
    secret_key: str,
    algorithm: str = "HS256",
) -> dict[str, Any] | None:
    """Decode and validate a session cookie value.

    Returns None when the signature is wrong, the token is not a session
    token, or a required claim is missing.
    """
    try:
        payload = jwt.decode(token, secret_key, algorithms=[algorithm])
    except JWTError:
        return None

    if payload.get("type") != SESSION_TOKEN_TYPE:
        return None

    if not payload.get("sub") or not payload.get("sid") or not payload.get("username"):
        return None

    return payload
