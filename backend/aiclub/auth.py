"""Authentication helpers and FastAPI security dependencies.

This module decodes the JWT tokens issued by `services.create_access_token`
and exposes two dependencies: `get_current_user`, which validates the
bearer token and loads the `User` through the request's session, and
`require_admin`, which additionally requires the `admin` role.

Token verification raises HTTPExceptions on failure so it can be used
directly inside route dependencies.
"""

import uuid

import jwt
from fastapi import Depends, HTTPException, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlmodel import Session

from . import models, repositories
from .config import settings
from .database import get_session

bearer_scheme = HTTPBearer()


def decode_token(token: str) -> dict:
    """Decode and verify a JWT token.

    Returns the decoded payload on success or raises an HTTPException
    with status 401 on failure.
    """
    try:
        return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="token expired")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="invalid token")


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Security(bearer_scheme),
    db: Session = Depends(get_session),
) -> models.User:
    """FastAPI dependency that returns the authenticated user.

    Raises HTTPException(401) when the token is bad or its subject no
    longer exists.
    """
    payload = decode_token(credentials.credentials)
    try:
        user_id = uuid.UUID(str(payload.get("sub")))
    except ValueError:
        raise HTTPException(status_code=401, detail="invalid token payload")
    user = repositories.UserRepository(db).get(user_id)
    if not user:
        raise HTTPException(status_code=401, detail="user not found")
    return user


def require_admin(user: models.User = Depends(get_current_user)) -> models.User:
    """Like `get_current_user` but only lets administrators through."""
    if not user.is_admin:
        raise HTTPException(status_code=403, detail="admin access required")
    return user
