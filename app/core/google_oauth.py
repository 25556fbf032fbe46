# app/core/google_oauth.py
"""
Google OAuth2 credential exchange.

Two ways in:
  - authorization-code flow: the code is exchanged server-side (with the
    client secret) for tokens, and the returned ID token is verified.
  - ID-token flow (legacy): the frontend already holds an ID token, which
    is verified directly.

Both end in a GoogleAssertion or raise:
  - CredentialInvalid         token expired, malformed, bad signature, wrong audience
  - CredentialExchangeFailed  Google unreachable / timed out / rejected the code

No retries here; the caller restarts the login flow.
"""
import logging
from urllib.parse import urlencode

import requests
from google.auth import exceptions as google_exceptions
from google.auth.transport import requests as google_requests
from google.oauth2 import id_token as google_id_token
from pydantic import ConfigDict
from sqlmodel import SQLModel

from app.core.config import get_settings
from app.core.errors import CredentialExchangeFailed, CredentialInvalid

logger = logging.getLogger(__name__)

GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_SCOPES = (
    "https://www.googleapis.com/auth/userinfo.email",
    "https://www.googleapis.com/auth/userinfo.profile",
)


class GoogleAssertion(SQLModel):
    """Verified identity claims from a Google ID token."""

    model_config = ConfigDict(frozen=True)

    email: str
    name: str
    sub: str
    picture: str | None = None


class _TimeoutRequest(google_requests.Request):
    """google-auth transport that applies our timeout to cert fetches."""

    def __init__(self, timeout: float):
        super().__init__()
        self._timeout = timeout

    def __call__(self, url, method="GET", body=None, headers=None, timeout=None, **kwargs):
        return super().__call__(
            url,
            method=method,
            body=body,
            headers=headers,
            timeout=timeout or self._timeout,
            **kwargs,
        )


class GoogleOAuthClient:
    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        timeout: float = 10.0,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.timeout = timeout

    def authorization_url(self) -> str:
        """Google consent screen URL for the redirect flow."""
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": " ".join(GOOGLE_SCOPES),
            "access_type": "offline",
            "prompt": "consent",
        }
        return f"{GOOGLE_AUTH_URL}?{urlencode(params)}"

    def exchange_code(self, code: str) -> GoogleAssertion:
        """
        Exchange an authorization code for tokens and verify the ID token.

        Raises:
            CredentialExchangeFailed: network error, timeout, rejected code,
                or no ID token in the response.
            CredentialInvalid: the returned ID token fails verification.
        """
        try:
            response = requests.post(
                GOOGLE_TOKEN_URL,
                data={
                    "code": code,
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "redirect_uri": self.redirect_uri,
                    "grant_type": "authorization_code",
                },
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.warning("Google token endpoint unreachable: %s", exc)
            raise CredentialExchangeFailed() from exc

        if not response.ok:
            logger.warning(
                "Google rejected authorization code: HTTP %s", response.status_code
            )
            raise CredentialExchangeFailed()

        try:
            tokens = response.json()
        except ValueError as exc:
            raise CredentialExchangeFailed("Malformed token response") from exc

        raw_id_token = tokens.get("id_token")
        if not raw_id_token:
            raise CredentialExchangeFailed("No ID token received")

        return self.verify_id_token(raw_id_token)

    def verify_id_token(self, raw_id_token: str) -> GoogleAssertion:
        """
        Verify a Google ID token against our client id.

        Audience mismatch is a verification failure, never a downgrade.
        """
        try:
            claims = google_id_token.verify_oauth2_token(
                raw_id_token,
                _TimeoutRequest(self.timeout),
                audience=self.client_id,
            )
        except google_exceptions.TransportError as exc:
            logger.warning("Could not fetch Google certificates: %s", exc)
            raise CredentialExchangeFailed("Identity provider unreachable") from exc
        except (ValueError, google_exceptions.GoogleAuthError) as exc:
            # wrong issuer surfaces as GoogleAuthError, the rest as ValueError
            raise CredentialInvalid() from exc

        email = claims.get("email")
        sub = claims.get("sub")
        if not email or not sub:
            raise CredentialInvalid("Invalid token payload")

        return GoogleAssertion(
            email=email,
            name=claims.get("name") or email.split("@", 1)[0],
            picture=claims.get("picture"),
            sub=sub,
        )


def get_google_client() -> GoogleOAuthClient:
    """
    FastAPI dependency, built from the current settings on every call so
    `reload_settings()` takes effect. Tests override it with a fake client.
    """
    settings = get_settings()
    return GoogleOAuthClient(
        client_id=settings.GOOGLE_CLIENT_ID,
        client_secret=settings.GOOGLE_CLIENT_SECRET,
        redirect_uri=settings.oauth_redirect_uri,
        timeout=settings.GOOGLE_HTTP_TIMEOUT_SECONDS,
    )
