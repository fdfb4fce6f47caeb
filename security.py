"""Password hashing and session token signing."""
import hashlib
from datetime import datetime, timedelta
from typing import Any, Dict, Optional
from uuid import uuid4

from jose import jwt
from passlib.context import CryptContext

from config import get_settings

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# bcrypt only looks at the first 72 bytes
BCRYPT_MAX_PASSWORD_LENGTH = 72


def _prepare(password: str) -> str:
    password_bytes = password.encode("utf-8")
    if len(password_bytes) > BCRYPT_MAX_PASSWORD_LENGTH:
        return hashlib.sha256(password_bytes).hexdigest()
    return password


def hash_password(password: str) -> str:
    return pwd_context.hash(_prepare(password))


def verify_password(password: str, hashed: str) -> bool:
    return pwd_context.verify(_prepare(password), hashed)


def create_access_token(user_id: str, expires_delta: Optional[timedelta] = None) -> str:
    """
    Sign a session token for ``user_id``.

    Each token gets a random ``jti`` so two logins in the same second still
    produce distinct sessions.
    """
    settings = get_settings()
    now = datetime.utcnow()
    if expires_delta is None:
        expires_delta = timedelta(days=settings.jwt_expire_days)
    payload = {
        "userId": user_id,
        "iat": now,
        "exp": now + expires_delta,
        "jti": uuid4().hex,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> Dict[str, Any]:
    """Verify signature and expiry. Raises jose.JWTError on failure."""
    settings = get_settings()
    return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
