"""
Admin session helpers.

Admins sign in with email and password (argon2 via passlib) and receive an
HS256 JWT scoped to the newsletter admin API. The token travels either as a
bearer header or in the HttpOnly ``access_token`` cookie.
"""

import logging
import os
from datetime import UTC, datetime, timedelta
from typing import Any, Protocol, cast

from jose import jwt
from passlib.context import CryptContext

from src.domain.entities import User

logger = logging.getLogger(__name__)

SECRET_KEY = os.environ.get("PORTFOLIO_SECRET_KEY", "dev-secret-unsafe")
ALGORITHM = "HS256"
ADMIN_SCOPE = "newsletter:admin"
SESSION_COOKIE = "access_token"
SESSION_TTL = timedelta(hours=24)

pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")


class UserLookup(Protocol):
    """Just the lookup used by ``authenticate_admin``."""

    def get_by_email(self, email: str) -> User | None: ...


def verify_password(plain_password: str, hashed_password: str) -> bool:
    result: bool = pwd_context.verify(plain_password, hashed_password)
    return result


def get_password_hash(password: str) -> str:
    result: str = pwd_context.hash(password)
    return result


def authenticate_admin(user_repo: UserLookup, email: str, password: str) -> User | None:
    """Return the user when the credentials match, else None. Status is not checked."""
    user = user_repo.get_by_email(email.strip().lower())
    if user is None or not verify_password(password, user.password_hash):
        logger.info("Admin login failed for %s", email)
        return None
    return user


def create_admin_token(user: User, now_utc: datetime | None = None) -> str:
    """Issue a session token for ``user`` that expires after SESSION_TTL."""
    issued = now_utc if now_utc is not None else datetime.now(UTC)
    claims = {
        "sub": str(user.id),
        "email": user.email,
        "scope": ADMIN_SCOPE,
        "iat": issued,
        "exp": issued + SESSION_TTL,
    }
    encoded: str = jwt.encode(claims, SECRET_KEY, algorithm=ALGORITHM)
    return encoded


def decode_access_token(token: str) -> dict[str, Any] | None:
    """Claims of a valid admin token; None when expired, forged or wrongly scoped."""
    try:
        payload = cast(dict[str, Any], jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM]))
    except jwt.JWTError:
        return None
    if payload.get("scope") != ADMIN_SCOPE:
        return None
    return payload
