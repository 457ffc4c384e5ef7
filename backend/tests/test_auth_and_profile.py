import io
import uuid

import jwt
from fastapi.testclient import TestClient
from PIL import Image

from aiclub.config import settings
from aiclub.main import app
from conftest import signup

client = TestClient(app)


def _make_png() -> bytes:
    img = Image.new("RGB", (48, 48), "navy")
    bio = io.BytesIO()
    img.save(bio, format="PNG")
    return bio.getvalue()


def _email():
    return f"auth-{uuid.uuid4().hex[:10]}@example.com"


def test_signup_login_and_token_claims():
    email = _email()
    headers, body = signup(client, email=email.upper(), password="pass1234")
    assert body["user"]["email"] == email
    assert body["user"]["role"] == "user"
    claims = jwt.decode(body["token"], settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    assert claims["sub"] == body["user"]["id"]

    r = client.post("/auth/login", json={"email": email, "password": "pass1234"})
    assert r.status_code == 200
    assert r.json()["user"]["id"] == body["user"]["id"]


def test_signup_duplicate_email_conflicts():
    email = _email()
    signup(client, email=email)
    r = client.post("/auth/signup", json={"fullName": "Again", "email": email, "password": "pass1234"})
    assert r.status_code == 409
    assert r.json()["detail"] == "User already exists"


def test_signup_validation():
    r = client.post("/auth/signup", json={"fullName": "x", "email": "not-an-email", "password": "pass1234"})
    assert r.status_code == 400
    r = client.post("/auth/signup", json={"fullName": "x", "email": _email(), "password": "123"})
    assert r.status_code == 400


def test_login_rejects_bad_credentials():
    email = _email()
    signup(client, email=email, password="right-pass")
    assert client.post("/auth/login", json={"email": email, "password": "wrong-pass"}).status_code == 401
    assert client.post("/auth/login", json={"email": _email(), "password": "whatever"}).status_code == 401


def test_protected_routes_need_a_valid_token():
    assert client.get("/users/profile").status_code in (401, 403)
    r = client.get("/users/profile", headers={"Authorization": "Bearer not-a-jwt"})
    assert r.status_code == 401


def test_profile_has_stats_and_rank():
    headers, body = signup(client, full_name="Ada Lovelace")
    r = client.get("/users/profile", headers=headers)
    assert r.status_code == 200
    data = r.json()
    assert data["name"] == "Ada Lovelace"
    assert data["points"] == 0
    assert data["challengePoints"] == 0
    assert data["rank"] >= 1
    assert data["stats"] == {"bestSubject": None, "improveable": None, "quickestHunter": 0, "challengesTaken": 0}


def test_update_profile_and_email_conflict():
    taken = _email()
    signup(client, email=taken)
    headers, _ = signup(client)
    new_email = _email()
    r = client.put("/users/profile", headers=headers, json={"fullName": "New Name", "email": new_email})
    assert r.status_code == 200
    assert r.json()["fullName"] == "New Name"
    assert r.json()["email"] == new_email

    r = client.put("/users/profile", headers=headers, json={"email": taken})
    assert r.status_code == 409


def test_complete_profile_sets_flag():
    headers, _ = signup(client)
    r = client.post("/auth/complete-profile", headers=headers, json={"university": "UJ", "major": "CS"})
    assert r.status_code == 200
    assert r.json() == {"success": True}
    data = client.get("/users/profile", headers=headers).json()
    assert data["university"] == "UJ"
    assert data["major"] == "CS"


def test_change_password():
    email = _email()
    headers, _ = signup(client, email=email, password="first-pass")
    r = client.put("/users/password", headers=headers, json={"currentPassword": "nope-nope", "newPassword": "second-pass"})
    assert r.status_code == 401
    r = client.put("/users/password", headers=headers, json={"currentPassword": "first-pass", "newPassword": "second-pass"})
    assert r.status_code == 200
    assert client.post("/auth/login", json={"email": email, "password": "second-pass"}).status_code == 200


def test_avatar_upload_stores_image():
    headers, _ = signup(client)
    files = {"avatar": ("me.png", _make_png(), "image/png")}
    r = client.post("/users/avatar", headers=headers, files=files)
    assert r.status_code == 200
    url = r.json()["imageUrl"]
    assert url.startswith("/uploads/avatars/")
    assert url.endswith("_me.png")
    assert (settings.UPLOADS_DIR / url[len("/uploads/"):]).exists()
    assert client.get("/users/profile", headers=headers).json()["image"] == url
    assert client.get(url).status_code == 200


def test_avatar_upload_rejects_non_images():
    headers, _ = signup(client)
    r = client.post("/users/avatar", headers=headers, files={"avatar": ("notes.txt", b"hello there", "text/plain")})
    assert r.status_code == 415


def test_avatar_upload_size_limit(monkeypatch):
    headers, _ = signup(client)
    monkeypatch.setattr(settings, "MAX_UPLOAD_BYTES", 64)
    r = client.post("/users/avatar", headers=headers, files={"avatar": ("big.png", _make_png(), "image/png")})
    assert r.status_code == 413
