"""Password hashing (bcrypt) and access tokens (PyJWT, HS256).

Every token carries a ``jti`` that doubles as the session token id in the
session registry.
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import NamedTuple

import bcrypt
import jwt
from jwt.exceptions import InvalidTokenError

from app.core.config import DEFAULT_JWT_SECRET, Settings, get_settings

logger = logging.getLogger(__name__)


class TokenPayload(NamedTuple):
    user_id: str
    email: str
    role: str
    token_id: str


class IssuedToken(NamedTuple):
    token: str
    token_id: str


def warn_on_default_secret(settings: Settings | None = None):
    settings = settings or get_settings()
    if settings.jwt_secret == DEFAULT_JWT_SECRET:
        logger.warning("JWT_SECRET not set in environment, using the default secret")


def hash_password(password: str, settings: Settings | None = None) -> str:
    rounds = (settings or get_settings()).bcrypt_rounds
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode(
        "utf-8"
    )


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def create_access_token(
    user_id: str, email: str, role: str, settings: Settings | None = None
) -> IssuedToken:
    settings = settings or get_settings()
    now = datetime.now(timezone.utc)
    token_id = str(uuid.uuid4())
    payload = {
        "sub": user_id,
        "email": email,
        "role": role,
        "jti": token_id,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(days=settings.token_expire_days)).timestamp()),
    }
    token = jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)
    return IssuedToken(token=token, token_id=token_id)


def decode_access_token(
    token: str, settings: Settings | None = None
) -> TokenPayload | None:
    """Return the token's claims, or None if it is invalid or expired."""
    settings = settings or get_settings()
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["sub", "jti", "exp"]},
        )
    except InvalidTokenError:
        return None
    return TokenPayload(
        user_id=payload["sub"],
        email=payload.get("email", ""),
        role=payload.get("role", ""),
        token_id=payload["jti"],
    )
