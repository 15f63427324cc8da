"""
User Management API endpoints.

GET    /api/v1/users                   List users (active by default)
GET    /api/v1/users/{userId}          Get user profile (Admin)
PATCH  /api/v1/users/{userId}/status   Activate/deactivate (Admin, not self)
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import get_current_actor, require_admin
from app.core.database import get_session
from app.services import users as user_service
from app.services.policy import Actor
from tasktracker_shared.schemas.users import (
    UserEnvelope,
    UserListResponse,
    UserResponse,
    UserStatusRead,
    UserStatusResponse,
    UserStatusUpdate,
)

router = APIRouter()


@router.get("", response_model=UserListResponse, tags=["Users"])
async def list_users(
    active: Optional[bool] = None,
    actor: Actor = Depends(get_current_actor),
    session: AsyncSession = Depends(get_session),
):
    """List users, sorted by name. Inactive accounts are visible to admins only."""
    items = await user_service.list_users(session, actor, active)
    return UserListResponse(users=[UserResponse(**item) for item in items])


@router.get("/{userId}", response_model=UserEnvelope, tags=["Users"])
async def get_user(
    userId: str,
    actor: Actor = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    """Get a user's profile (Admin only)."""
    info = await user_service.get_user(session, actor, userId)
    return UserEnvelope(user=UserResponse(**info))


@router.patch("/{userId}/status", response_model=UserStatusResponse, tags=["Users"])
async def set_user_status(
    userId: str,
    body: UserStatusUpdate,
    actor: Actor = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    """Activate or deactivate a user (Admin only). Admins cannot deactivate themselves."""
    user = await user_service.set_user_active(session, actor, userId, body.is_active)
    await session.commit()
    await session.refresh(user)
    return UserStatusResponse(
        message=f"User {'activated' if user.is_active else 'deactivated'} successfully",
        user=UserStatusRead(
            id=user.id,
            first_name=user.first_name,
            last_name=user.last_name,
            email=user.email,
            is_active=user.is_active,
        ),
    )
