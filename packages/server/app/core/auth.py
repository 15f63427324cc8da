"""
Authentication boundary for the task tracker.

Tokens are issued elsewhere; this module only verifies bearer JWTs and turns
them into an ``Actor`` for the service layer:

- JWT signing/verification (HS256 by default)
- Actor resolution with an active-account check on every request
- Role-based authorization dependencies
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
import structlog
from fastapi import Depends
from fastapi.security import APIKeyHeader
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.database import get_session
from app.core.errors import AuthenticationError
from app.models.user import User
from app.services.policy import Actor, ensure_admin

log = structlog.get_logger()
settings = get_settings()

api_key_header = APIKeyHeader(name="Authorization", auto_error=False)


# ---------------------------------------------------------------------------
# JWT
# ---------------------------------------------------------------------------

def create_access_token(
    user_id: uuid.UUID,
    role: str,
    *,
    expires_delta: timedelta | None = None,
) -> str:
    """Create a signed JWT for ``user_id`` (dev tooling and tests)."""
    now = datetime.now(timezone.utc)
    exp = now + (expires_delta or timedelta(minutes=settings.jwt_expire_minutes))
    payload = {
        "sub": str(user_id),
        "role": role,
        "iat": now,
        "exp": exp,
        "jti": str(uuid.uuid4()),
    }
    return jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> dict:
    """Decode and verify a JWT. Raises jwt.PyJWTError on failure."""
    return jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])


def _bearer_token(authorization: Optional[str]) -> str:
    if not authorization or not authorization.startswith("Bearer "):
        raise AuthenticationError("Access denied. No token provided.")
    token = authorization[7:].strip()
    if not token:
        raise AuthenticationError("Access denied. No token provided.")
    return token


# ---------------------------------------------------------------------------
# Authentication dependencies
# ---------------------------------------------------------------------------

async def get_current_actor(
    authorization: Optional[str] = Depends(api_key_header),
    session: AsyncSession = Depends(get_session),
) -> Actor:
    """Main authentication dependency. Resolves the bearer token to an active user."""
    token = _bearer_token(authorization)

    try:
        payload = decode_access_token(token)
        user_id = uuid.UUID(payload["sub"])
    except (jwt.PyJWTError, KeyError, ValueError):
        log.info("auth.rejected", reason="invalid_token")
        raise AuthenticationError("Invalid token.")

    # Role and active flag come from storage, not from the token claims.
    user = await session.get(User, user_id)
    if not user or not user.is_active:
        log.info("auth.rejected", reason="inactive_or_missing", user_id=str(user_id))
        raise AuthenticationError("Invalid token or user not active.")

    return Actor(id=user.id, role=user.role, is_active=user.is_active)


# ---------------------------------------------------------------------------
# Authorization dependencies (role checks)
# ---------------------------------------------------------------------------

async def require_admin(actor: Actor = Depends(get_current_actor)) -> Actor:
    """Requires the admin role."""
    ensure_admin(actor)
    return actor
