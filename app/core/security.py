# app/core/security.py
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import jwt, ExpiredSignatureError, JWTError
from pydantic import ConfigDict
from sqlmodel import SQLModel

from app.core.config import get_settings
from app.core.errors import SessionExpired, SessionInvalid
from app.models.user import User


class TokenPayload(SQLModel):
    """
    Verified session claims.

    `role` is whatever the user had when the token was minted; admin routes
    re-check it against the database and the allow-list.
    """

    model_config = ConfigDict(frozen=True)

    user_id: uuid.UUID
    email: str
    role: str


def create_access_token(user: User, now: datetime | None = None) -> str:
    """
    Mint a signed session token for `user`.

    Claims: sub (user id), email, role, iat, exp (iat + JWT_EXPIRES_DAYS).
    """
    settings = get_settings()
    issued_at = now or datetime.now(timezone.utc)
    claims: dict[str, Any] = {
        "sub": str(user.id),
        "email": user.email,
        "role": user.role,
        "iat": int(issued_at.timestamp()),
        "exp": int((issued_at + timedelta(days=settings.JWT_EXPIRES_DAYS)).timestamp()),
    }
    return jwt.encode(claims, settings.JWT_SECRET, algorithm=settings.JWT_ALG)


def decode_access_token(token: str) -> TokenPayload:
    """
    Verify signature and expiry of a session token.

    Pure computation: no database access.

    Raises:
        SessionExpired: token is past its `exp`.
        SessionInvalid: bad signature, malformed token, or missing claims.
    """
    settings = get_settings()
    try:
        claims = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALG],
        )
    except ExpiredSignatureError:
        raise SessionExpired()
    except JWTError:
        raise SessionInvalid()

    sub = claims.get("sub")
    email = claims.get("email")
    role = claims.get("role")
    if not sub or not email or not role:
        raise SessionInvalid("Token missing sub/email/role")

    try:
        user_id = uuid.UUID(sub)
    except (TypeError, ValueError):
        raise SessionInvalid("Invalid sub in token")

    return TokenPayload(user_id=user_id, email=email, role=role)
