# app/routers/auth.py
from fastapi import APIRouter, Depends, Response
from sqlmodel import Session

from app.core.auth import (
    get_admin_allow_list,
    get_auth_service,
    require_admin,
    require_auth,
)
from app.core.config import get_settings
from app.core.google_oauth import GoogleAssertion, GoogleOAuthClient, get_google_client
from app.core.security import TokenPayload
from app.database import get_session
from app.models.user import User
from app.schemas.user import (
    AdminValidationRead,
    AuthResponse,
    AuthUrlRead,
    GoogleCodeLogin,
    GoogleIdTokenLogin,
    ThemeUpdate,
    UserProfileRead,
    UserRead,
)
from app.services.auth_service import AuthService

router = APIRouter(prefix="/auth", tags=["Auth"])


def _set_auth_cookie(response: Response, token: str) -> None:
    """
    HTTP-only session cookie, same lifetime as the token.

    SameSite=strict + Secure in production, lax otherwise.
    """
    settings = get_settings()
    response.set_cookie(
        key=settings.AUTH_COOKIE_NAME,
        value=token,
        max_age=settings.JWT_EXPIRES_DAYS * 24 * 60 * 60,
        httponly=True,
        secure=settings.is_production,
        samesite="strict" if settings.is_production else "lax",
        path="/",
    )


def _login(
    response: Response,
    session: Session,
    service: AuthService,
    assertion: GoogleAssertion,
    allow_list: frozenset[str],
) -> AuthResponse:
    user = service.find_or_create_user(session, assertion, allow_list)
    token = service.issue_token(user)
    _set_auth_cookie(response, token)
    return AuthResponse(token=token, user=UserRead.model_validate(user, from_attributes=True))


# -------- Google sign-in --------


@router.get("/google/url", response_model=AuthUrlRead)
def google_auth_url(google: GoogleOAuthClient = Depends(get_google_client)):
    """
    Google consent URL for the redirect flow.
    """
    return AuthUrlRead(url=google.authorization_url())


@router.post("/google/callback", response_model=AuthResponse)
def google_callback(
    payload: GoogleCodeLogin,
    response: Response,
    session: Session = Depends(get_session),
    google: GoogleOAuthClient = Depends(get_google_client),
    service: AuthService = Depends(get_auth_service),
    allow_list: frozenset[str] = Depends(get_admin_allow_list),
):
    """
    Exchange an authorization code (server-side, with the client secret),
    provision the user and start a session.

    Errors:
      - 401 if Google's ID token fails verification
      - 502 if Google is unreachable or rejects the code
    """
    assertion = google.exchange_code(payload.code)
    return _login(response, session, service, assertion, allow_list)


@router.post("/google", response_model=AuthResponse)
def google_id_token_login(
    payload: GoogleIdTokenLogin,
    response: Response,
    session: Session = Depends(get_session),
    google: GoogleOAuthClient = Depends(get_google_client),
    service: AuthService = Depends(get_auth_service),
    allow_list: frozenset[str] = Depends(get_admin_allow_list),
):
    """
    Legacy flow: verify an ID token obtained by the frontend.
    """
    assertion = google.verify_id_token(payload.id_token)
    return _login(response, session, service, assertion, allow_list)


@router.post("/logout")
def logout(response: Response):
    """
    Clear the session cookie.

    Tokens are stateless; one that was copied elsewhere stays valid until
    it expires.
    """
    response.delete_cookie(get_settings().AUTH_COOKIE_NAME, path="/")
    return {"success": True}


# -------- Session --------


@router.get("/validate-admin", response_model=AdminValidationRead)
def validate_admin(user: User = Depends(require_admin)):
    """
    Run the admin gate and report the result (403 when denied).
    """
    return AdminValidationRead(
        is_admin=True,
        user=UserRead.model_validate(user, from_attributes=True),
    )


@router.get("/me", response_model=UserProfileRead)
def read_me(
    current: TokenPayload = Depends(require_auth),
    session: Session = Depends(get_session),
    service: AuthService = Depends(get_auth_service),
):
    """
    Return the authenticated user's profile, read fresh from the database.
    """
    return service.get_user(session, current.user_id)


@router.patch("/me/theme", response_model=UserProfileRead)
def update_my_theme(
    payload: ThemeUpdate,
    current: TokenPayload = Depends(require_auth),
    session: Session = Depends(get_session),
    service: AuthService = Depends(get_auth_service),
):
    """
    Save the user's light/dark preference.
    """
    user = service.get_user(session, current.user_id)
    return service.update_theme(session, user, payload.theme)
