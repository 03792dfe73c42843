"""Password hashing and JWT bearer token helpers."""
from datetime import datetime, timedelta
from typing import Optional

import bcrypt
from jose import JWTError, jwt

from app.config import settings
from app.errors import UnauthorizedError


def hash_password(password: str) -> str:
    """
    Hash a password with a fresh bcrypt salt.

    Args:
        password: Plain text password

    Returns:
        Hashed password string

    Example:
        >>> hashed = hash_password("correct horse")
        >>> hashed.startswith("$2b$")
        True
    """
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Check a plain text password against a stored bcrypt hash.

    Args:
        plain_password: Plain text password to verify
        hashed_password: Hash stored on the user document

    Returns:
        True if the password matches the hash, False otherwise

    Example:
        >>> hashed = hash_password("correct horse")
        >>> verify_password("correct horse", hashed)
        True
        >>> verify_password("battery staple", hashed)
        False
    """
    return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))


def create_access_token(user_id: str, expires_delta: Optional[timedelta] = None) -> str:
    """
    Issue a signed access token whose subject is the user id.

    Args:
        user_id: Owner of every goal the token grants access to
        expires_delta: Token lifetime; defaults to ``jwt_expiration_minutes``

    Returns:
        Encoded JWT

    Example:
        >>> token = create_access_token(user_id="user123")
        >>> isinstance(token, str)
        True
    """
    issued_at = datetime.utcnow()
    lifetime = expires_delta or timedelta(minutes=settings.jwt_expiration_minutes)
    claims = {
        "sub": user_id,
        "iat": issued_at,
        "exp": issued_at + lifetime,
    }
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def verify_access_token(token: str) -> str:
    """
    Decode an access token and return its user id.

    Args:
        token: JWT taken from the ``Authorization: Bearer`` header

    Returns:
        User id stored in the ``sub`` claim

    Raises:
        UnauthorizedError: If the token is malformed, expired or has no subject

    Example:
        >>> token = create_access_token(user_id="user123")
        >>> verify_access_token(token)
        'user123'
    """
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except JWTError:
        raise UnauthorizedError("Invalid authentication credentials")

    user_id = payload.get("sub")
    if not user_id:
        raise UnauthorizedError("Token payload missing 'sub' claim")
    return user_id
