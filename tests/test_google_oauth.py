from urllib.parse import parse_qs, urlparse

import pytest
import requests
from google.auth import exceptions as google_exceptions
from pydantic import ValidationError

from app.core import google_oauth
from app.core.config import reload_settings
from app.core.errors import CredentialExchangeFailed, CredentialInvalid
from app.core.google_oauth import GoogleOAuthClient, get_google_client

CLIENT_ID = "client-123.apps.googleusercontent.com"


class FakeResponse:
    def __init__(self, status_code: int, body: dict | None = None):
        self.status_code = status_code
        self.ok = status_code < 400
        self._body = body

    def json(self):
        if self._body is None:
            raise ValueError("no json")
        return self._body


@pytest.fixture(name="client")
def client_fixture() -> GoogleOAuthClient:
    return GoogleOAuthClient(
        client_id=CLIENT_ID,
        client_secret="secret",
        redirect_uri="http://localhost:3000/auth/callback",
        timeout=3.0,
    )


@pytest.fixture(name="verified")
def verified_fixture(monkeypatch):
    """Record verify_oauth2_token calls and answer with fixed claims."""
    calls: list[dict] = []
    claims = {"email": "buyer@mail.com", "sub": "1234", "picture": "https://img/p.png"}

    def fake_verify(raw, request, audience=None):
        calls.append({"raw": raw, "audience": audience})
        return dict(claims)

    monkeypatch.setattr(google_oauth.google_id_token, "verify_oauth2_token", fake_verify)
    return calls


def test_authorization_url(client):
    url = urlparse(client.authorization_url())
    params = parse_qs(url.query)

    assert url.netloc == "accounts.google.com"
    assert params["client_id"] == [CLIENT_ID]
    assert params["access_type"] == ["offline"]
    assert params["prompt"] == ["consent"]
    assert "https://www.googleapis.com/auth/userinfo.email" in params["scope"][0]


def test_exchange_code_verifies_id_token_audience(client, verified, monkeypatch):
    posted: dict = {}

    def fake_post(url, data=None, timeout=None):
        posted.update(url=url, data=data, timeout=timeout)
        return FakeResponse(200, {"id_token": "raw-id-token", "access_token": "x"})

    monkeypatch.setattr(google_oauth.requests, "post", fake_post)

    result = client.exchange_code("auth-code")

    assert posted["data"]["code"] == "auth-code"
    assert posted["data"]["grant_type"] == "authorization_code"
    assert posted["timeout"] == 3.0
    assert verified == [{"raw": "raw-id-token", "audience": CLIENT_ID}]
    assert result.email == "buyer@mail.com"
    # name falls back to the email's local part
    assert result.name == "buyer"


def test_exchange_code_timeout(client, monkeypatch):
    def fake_post(url, data=None, timeout=None):
        raise requests.Timeout("slow")

    monkeypatch.setattr(google_oauth.requests, "post", fake_post)

    with pytest.raises(CredentialExchangeFailed) as exc_info:
        client.exchange_code("auth-code")
    assert exc_info.value.status_code == 502


def test_exchange_code_rejected(client, monkeypatch):
    monkeypatch.setattr(
        google_oauth.requests,
        "post",
        lambda url, data=None, timeout=None: FakeResponse(400, {"error": "invalid_grant"}),
    )

    with pytest.raises(CredentialExchangeFailed):
        client.exchange_code("used-code")


def test_exchange_code_without_id_token(client, monkeypatch):
    monkeypatch.setattr(
        google_oauth.requests,
        "post",
        lambda url, data=None, timeout=None: FakeResponse(200, {"access_token": "x"}),
    )

    with pytest.raises(CredentialExchangeFailed):
        client.exchange_code("auth-code")


def test_invalid_id_token(client, monkeypatch):
    def fake_verify(raw, request, audience=None):
        raise ValueError("Token has wrong audience")

    monkeypatch.setattr(google_oauth.google_id_token, "verify_oauth2_token", fake_verify)

    with pytest.raises(CredentialInvalid) as exc_info:
        client.verify_id_token("forged")
    assert exc_info.value.status_code == 401


def test_wrong_issuer(client, monkeypatch):
    def fake_verify(raw, request, audience=None):
        raise google_exceptions.GoogleAuthError("Wrong issuer")

    monkeypatch.setattr(google_oauth.google_id_token, "verify_oauth2_token", fake_verify)

    with pytest.raises(CredentialInvalid):
        client.verify_id_token("forged")


def test_cert_fetch_failure_is_upstream(client, monkeypatch):
    def fake_verify(raw, request, audience=None):
        raise google_exceptions.TransportError("cannot reach googleapis")

    monkeypatch.setattr(google_oauth.google_id_token, "verify_oauth2_token", fake_verify)

    with pytest.raises(CredentialExchangeFailed):
        client.verify_id_token("token")


def test_token_without_email(client, monkeypatch):
    monkeypatch.setattr(
        google_oauth.google_id_token,
        "verify_oauth2_token",
        lambda raw, request, audience=None: {"sub": "1"},
    )

    with pytest.raises(CredentialInvalid):
        client.verify_id_token("token")


@pytest.fixture(name="restore_settings")
def restore_settings_fixture(monkeypatch):
    yield
    monkeypatch.undo()
    reload_settings()


def test_client_follows_reloaded_settings(monkeypatch, restore_settings):
    monkeypatch.setenv("GOOGLE_CLIENT_ID", "first.apps.googleusercontent.com")
    reload_settings()
    assert get_google_client().client_id == "first.apps.googleusercontent.com"

    monkeypatch.setenv("GOOGLE_CLIENT_ID", "rotated.apps.googleusercontent.com")
    reload_settings()
    assert get_google_client().client_id == "rotated.apps.googleusercontent.com"


def test_assertion_is_immutable(client, verified):
    assertion = client.verify_id_token("token")

    with pytest.raises(ValidationError):
        assertion.email = "someone@else.com"
