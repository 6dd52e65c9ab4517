"""FastAPI dependency for JWT-based route protection."""

from __future__ import annotations

import uuid

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from ..database import get_db
from ..models.user import User
from .auth_utils import decode_access_token

_bearer_scheme = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user(
    creds: HTTPAuthorizationCredentials | None = Depends(_bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    """Extract and validate the JWT from the Authorization header.

    Returns the authenticated User ORM instance. A valid token for an
    identity not yet seen locally creates the user row on first use.
    Raises 401 if token is missing, invalid, or expired.
    """
    if creds is None:
        raise _unauthorized("Authentication required")

    payload = decode_access_token(creds.credentials)
    if payload is None:
        raise _unauthorized("Invalid or expired token")

    try:
        user_id = uuid.UUID(str(payload.get("sub", "")))
    except ValueError:
        raise _unauthorized("Invalid token payload")

    user = db.query(User).filter(User.id == user_id).first()
    if user is not None:
        return user

    email = (payload.get("email") or "").strip().lower()
    if not email:
        raise _unauthorized("User not found")

    user = db.query(User).filter(User.email == email).first()
    if user is None:
        user = User(id=user_id, email=email)
        db.add(user)
        db.commit()
        db.refresh(user)
        print(f"👤 [AUTH] Created local user {email}")
    return user
