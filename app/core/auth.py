# app/core/auth.py
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlmodel import Session

from app.core.config import get_settings
from app.core.errors import Unauthorized
from app.core.security import TokenPayload
from app.database import get_session
from app.models.user import User
from app.repositories.user_repo import UserRepository
from app.services.auth_service import AuthService

# HTTP Bearer scheme:
# - auto_error=False => missing Authorization header will NOT raise immediately
#   so we can support guest checkout and the cookie transport.
bearer_scheme = HTTPBearer(auto_error=False)

auth_service = AuthService(UserRepository())


def get_auth_service() -> AuthService:
    return auth_service


def get_admin_allow_list() -> frozenset[str]:
    """
    Current admin allow-list (lower-cased emails).

    Resolved per request so `reload_settings()` takes effect without a
    restart; tests override this dependency.
    """
    return get_settings().admin_emails


def get_token_from_request(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> str | None:
    """
    Extract the session token.

    The HTTP-only cookie wins over a legacy `Authorization: Bearer` header
    when both are present.
    """
    cookie_token = request.cookies.get(get_settings().AUTH_COOKIE_NAME)
    if cookie_token:
        return cookie_token
    if credentials is not None:
        return credentials.credentials
    return None


def get_current_user_optional(
    token: str | None = Depends(get_token_from_request),
    service: AuthService = Depends(get_auth_service),
) -> TokenPayload | None:
    """
    Session claims if a valid token is present, else None (guest).

    An invalid or expired token is treated like no token at all.
    """
    if not token:
        return None
    try:
        return service.verify_session(token)
    except Unauthorized:
        return None


def require_auth(
    token: str | None = Depends(get_token_from_request),
    service: AuthService = Depends(get_auth_service),
) -> TokenPayload:
    """
    Enforce authentication (signature + expiry only, no DB access).

    Raises:
        Unauthorized(401): missing, invalid or expired token.
    """
    return service.verify_session(token)


def require_admin(
    token: str | None = Depends(get_token_from_request),
    session: Session = Depends(get_session),
    allow_list: frozenset[str] = Depends(get_admin_allow_list),
    service: AuthService = Depends(get_auth_service),
) -> User:
    """
    Admin gate: verify the token, then re-check live role and allow-list.

    Raises:
        Unauthorized(401): missing/invalid token.
        Forbidden(403): not an admin right now, whatever the token says.
    """
    return service.authorize_admin(session, token, allow_list)
