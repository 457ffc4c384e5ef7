import json
import time
import uuid
from urllib.parse import parse_qs, urlparse

import httpx
import jwt
import pytest
from fastapi.testclient import TestClient

from aiclub.config import settings
from aiclub.main import app, get_google_client
from aiclub.utils.google_oauth import (
    STATE_PURPOSE,
    GoogleOAuthClient,
    InvalidOAuthState,
    create_oauth_state,
    verify_oauth_state,
)
from conftest import signup

client = TestClient(app, follow_redirects=False)


def _google_transport(profile, token_status=200):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/token":
            if token_status != 200:
                return httpx.Response(token_status, json={"error": "invalid_grant"})
            return httpx.Response(200, json={"access_token": "g-access", "token_type": "Bearer"})
        if request.url.path == "/oauth2/v3/userinfo":
            assert request.headers["Authorization"] == "Bearer g-access"
            return httpx.Response(200, json=profile)
        return httpx.Response(404)
    return httpx.MockTransport(handler)


@pytest.fixture
def use_google():
    def install(profile, token_status=200):
        transport = _google_transport(profile, token_status)
        app.dependency_overrides[get_google_client] = lambda: GoogleOAuthClient(
            "client-id", "client-secret", "http://api.test/auth/google/callback", transport=transport
        )
    yield install
    app.dependency_overrides.pop(get_google_client, None)


def _callback(code="abc", state=None):
    return client.get("/auth/google/callback", params={"code": code, "state": state or create_oauth_state()})


def _redirect_params(response):
    location = urlparse(response.headers["location"])
    assert f"{location.scheme}://{location.netloc}" == settings.FRONTEND_URL
    assert location.path == "/auth/callback"
    return {k: v[0] for k, v in parse_qs(location.query).items()}


def test_google_disabled_returns_503():
    assert client.get("/auth/google").status_code == 503
    assert client.get("/auth/google/callback", params={"code": "x", "state": "y"}).status_code == 503


def test_google_redirects_to_consent_screen(use_google):
    use_google({})
    r = client.get("/auth/google")
    assert r.status_code == 307
    target = urlparse(r.headers["location"])
    assert target.netloc == "accounts.google.com"
    params = parse_qs(target.query)
    assert params["scope"] == ["openid email profile"]
    assert params["response_type"] == ["code"]
    assert verify_oauth_state(params["state"][0])["purpose"] == STATE_PURPOSE


def test_google_callback_creates_user(use_google):
    sub = uuid.uuid4().hex
    email = f"g-{sub[:8]}@gmail.com"
    use_google({"sub": sub, "email": email, "name": "Grace Hopper", "picture": "https://img.test/g.png"})
    r = _callback()
    assert r.status_code == 307
    params = _redirect_params(r)
    assert params["needs_profile_completion"] == "true"
    user = json.loads(params["user"])
    assert user["email"] == email
    assert user["fullName"] == "Grace Hopper"
    assert user["image"] == "https://img.test/g.png"

    headers = {"Authorization": f"Bearer {params['token']}"}
    assert client.get("/users/profile", headers=headers).status_code == 200
    login = client.post("/auth/login", json={"email": email, "password": "anything"})
    assert login.status_code == 400
    assert "Google" in login.json()["detail"]


def test_google_callback_links_existing_account(use_google):
    email = f"link-{uuid.uuid4().hex[:8]}@example.com"
    headers, body = signup(client, email=email, password="pass1234")
    client.post("/auth/complete-profile", headers=headers, json={"university": "UJ", "major": "Maths"})
    use_google({"sub": uuid.uuid4().hex, "email": email, "name": "Linked"})
    params = _redirect_params(_callback())
    assert json.loads(params["user"])["id"] == body["user"]["id"]
    assert "needs_profile_completion" not in params
    # password login keeps working after linking
    assert client.post("/auth/login", json={"email": email, "password": "pass1234"}).status_code == 200


def test_google_callback_refreshes_returning_user(use_google):
    sub = uuid.uuid4().hex
    use_google({"sub": sub, "email": f"old-{sub[:6]}@gmail.com", "name": "Old"})
    first = json.loads(_redirect_params(_callback())["user"])
    new_email = f"new-{sub[:6]}@gmail.com"
    use_google({"sub": sub, "email": new_email, "name": "New"})
    second = json.loads(_redirect_params(_callback())["user"])
    assert second["id"] == first["id"]
    assert second["email"] == new_email
    assert second["fullName"] == "New"


def test_google_callback_rejects_bad_state(use_google):
    use_google({})
    assert _callback(state="forged").status_code == 400
    expired = jwt.encode({"purpose": STATE_PURPOSE, "exp": int(time.time()) - 5}, settings.JWT_SECRET, algorithm="HS256")
    assert _callback(state=expired).status_code == 400


def test_google_token_failure_is_bad_gateway(use_google):
    use_google({}, token_status=400)
    assert _callback().status_code == 502


def test_state_with_other_purpose_is_rejected():
    other = jwt.encode({"purpose": "login", "exp": int(time.time()) + 60}, settings.JWT_SECRET, algorithm="HS256")
    with pytest.raises(InvalidOAuthState):
        verify_oauth_state(other)
    with pytest.raises(InvalidOAuthState):
        verify_oauth_state(None)


def test_google_email_taken_by_another_account_conflicts(use_google):
    sub = uuid.uuid4().hex
    use_google({"sub": sub, "email": f"mine-{sub[:6]}@gmail.com", "name": "Mine"})
    _redirect_params(_callback())
    taken = f"taken-{sub[:6]}@example.com"
    signup(client, email=taken)

    use_google({"sub": sub, "email": taken, "name": "Mine"})
    r = _callback()
    assert r.status_code == 409
    assert r.json()["detail"] == "User already exists"
