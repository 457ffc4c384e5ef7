"""Google OAuth 2.0 (authorization code flow) client.

The `state` parameter is a short-lived JWT signed with the application's
secret so the callback can be verified without server-side storage.
"""

import logging
import secrets
import time
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlencode

import httpx
import jwt

from ..config import settings

logger = logging.getLogger("aiclub.api")

AUTHORIZE_URL = "https://accounts.google.com/o/oauth2/v2/auth"
TOKEN_URL = "https://oauth2.googleapis.com/token"
USERINFO_URL = "https://www.googleapis.com/oauth2/v3/userinfo"
SCOPES = "openid email profile"
STATE_PURPOSE = "google_oauth_state"
STATE_TTL_SECONDS = 600


class GoogleOAuthError(Exception):
    """Google rejected a request or answered with something unusable."""


class InvalidOAuthState(ValueError):
    pass


@dataclass
class GoogleUserInfo:
    sub: str
    email: str
    name: Optional[str] = None
    picture: Optional[str] = None


def create_oauth_state() -> str:
    payload = {
        "purpose": STATE_PURPOSE,
        "nonce": secrets.token_urlsafe(16),
        "exp": int(time.time()) + STATE_TTL_SECONDS,
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def verify_oauth_state(state: Optional[str]) -> dict:
    if not state:
        raise InvalidOAuthState("missing OAuth state")
    try:
        payload = jwt.decode(state, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise InvalidOAuthState("OAuth state expired")
    except jwt.InvalidTokenError:
        raise InvalidOAuthState("invalid OAuth state")
    if payload.get("purpose") != STATE_PURPOSE:
        raise InvalidOAuthState("invalid OAuth state")
    return payload


class GoogleOAuthClient:
    """Thin httpx wrapper around Google's token and userinfo endpoints.

    `transport` lets tests plug in an `httpx.MockTransport`.
    """

    def __init__(self, client_id: str, client_secret: str, redirect_uri: str,
                 transport: Optional[httpx.BaseTransport] = None, timeout: float = 10.0):
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self._transport = transport
        self._timeout = timeout

    @classmethod
    def from_settings(cls, transport: Optional[httpx.BaseTransport] = None) -> "GoogleOAuthClient":
        return cls(settings.GOOGLE_CLIENT_ID, settings.GOOGLE_CLIENT_SECRET, settings.GOOGLE_REDIRECT_URI, transport=transport)

    def authorize_url(self, state: str) -> str:
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": SCOPES,
            "state": state,
        }
        return f"{AUTHORIZE_URL}?{urlencode(params)}"

    def _client(self) -> httpx.Client:
        return httpx.Client(transport=self._transport, timeout=self._timeout)

    def exchange_code(self, code: str) -> str:
        """Trade an authorization code for an access token."""
        data = {
            "code": code,
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "redirect_uri": self.redirect_uri,
            "grant_type": "authorization_code",
        }
        try:
            with self._client() as client:
                resp = client.post(TOKEN_URL, data=data)
                resp.raise_for_status()
                body = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("google_token_exchange_failed %s", exc)
            raise GoogleOAuthError("Google token exchange failed") from exc
        token = body.get("access_token")
        if not token:
            raise GoogleOAuthError("Google token response had no access_token")
        return token

    def fetch_user_info(self, access_token: str) -> GoogleUserInfo:
        try:
            with self._client() as client:
                resp = client.get(USERINFO_URL, headers={"Authorization": f"Bearer {access_token}"})
                resp.raise_for_status()
                body = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("google_userinfo_failed %s", exc)
            raise GoogleOAuthError("Google userinfo request failed") from exc
        if not body.get("sub") or not body.get("email"):
            raise GoogleOAuthError("Google profile is missing sub or email")
        return GoogleUserInfo(
            sub=str(body["sub"]),
            email=body["email"],
            name=body.get("name"),
            picture=body.get("picture"),
        )
