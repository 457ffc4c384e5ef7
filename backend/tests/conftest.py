import os
import tempfile
import uuid
from pathlib import Path

import pytest

# Point the app at throwaway storage before `aiclub` is imported anywhere.
_TMP = Path(tempfile.mkdtemp(prefix="aiclub-tests-"))
os.environ["ENV"] = "dev"
os.environ["DATABASE_URL"] = f"sqlite:///{_TMP / 'test.db'}"
os.environ["JWT_SECRET"] = "test-secret-not-for-prod"
os.environ["UPLOADS_DIR"] = str(_TMP / "uploads")
os.environ["FRONTEND_URL"] = "http://frontend.test"
for _var in ("GOOGLE_CLIENT_ID", "GOOGLE_CLIENT_SECRET", "GOOGLE_REDIRECT_URI", "POSTGRES_PASSWORD"):
    os.environ.pop(_var, None)

from fastapi.testclient import TestClient  # noqa: E402
from sqlmodel import Session  # noqa: E402

from aiclub import services  # noqa: E402
from aiclub.database import engine  # noqa: E402
from aiclub.main import _rate_limiter, app  # noqa: E402


@pytest.fixture(autouse=True)
def reset_rate_limits():
    _rate_limiter.reset()
    yield


@pytest.fixture
def client():
    return TestClient(app)


def signup(client, email=None, password="secret123", full_name="Test Member"):
    """Sign up a fresh account and return `(headers, body)`."""
    email = email or f"member-{uuid.uuid4().hex[:10]}@example.com"
    r = client.post("/auth/signup", json={"fullName": full_name, "phoneNum": "0123", "email": email, "password": password})
    assert r.status_code == 200, r.text
    body = r.json()
    return {"Authorization": f"Bearer {body['token']}"}, body


@pytest.fixture
def member(client):
    headers, body = signup(client)
    return {"headers": headers, "user": body["user"]}


@pytest.fixture
def admin(client):
    headers, body = signup(client, full_name="Club Admin")
    with Session(engine) as session:
        services.AdminUserService(session).update(uuid.UUID(body["user"]["id"]), role="admin")
    return {"headers": headers, "user": body["user"]}
