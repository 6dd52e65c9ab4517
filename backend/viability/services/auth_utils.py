"""Authentication utilities — JWT issue and verification.

Rules
-----
- NO hardcoded secrets in production — JWT_SECRET comes from the environment
- Identity is issued upstream; this service only verifies bearer tokens
"""

from __future__ import annotations

import logging
import os
from datetime import datetime, timedelta
from typing import Optional

from jose import JWTError, jwt

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# JWT
# ---------------------------------------------------------------------------
_JWT_SECRET = os.getenv("JWT_SECRET", "viability-dev-secret-change-in-production")
_JWT_ALGORITHM = "HS256"
_JWT_EXPIRE_MINUTES = int(os.getenv("JWT_EXPIRE_MINUTES", "1440"))  # 24h default


def create_access_token(user_id: str, email: str, expires_minutes: Optional[int] = None) -> str:
    """Create a signed JWT containing user_id (sub) and email."""
    minutes = _JWT_EXPIRE_MINUTES if expires_minutes is None else expires_minutes
    expire = datetime.utcnow() + timedelta(minutes=minutes)
    payload = {
        "sub": str(user_id),
        "email": email,
        "exp": expire,
    }
    return jwt.encode(payload, _JWT_SECRET, algorithm=_JWT_ALGORITHM)


def decode_access_token(token: str) -> Optional[dict]:
    """Decode and validate a JWT. Returns payload dict or None."""
    try:
        payload = jwt.decode(token, _JWT_SECRET, algorithms=[_JWT_ALGORITHM])
        return payload
    except JWTError as exc:
        logger.info("Rejected bearer token: %s", exc)
        return None
