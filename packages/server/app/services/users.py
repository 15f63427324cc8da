"""
User management service: listing users and toggling account activation.
"""

from __future__ import annotations

from typing import Any, Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.errors import NotFoundError, PermissionDenied
from app.models.user import User
from app.services.policy import Actor, ensure_admin, ensure_not_self_deactivation
from app.services.task_rules import parse_id

log = structlog.get_logger()


def _user_info(user: User) -> dict:
    return {
        "id": user.id,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "email": user.email,
        "role": user.role,
        "is_active": user.is_active,
        "created_at": user.created_at,
        "updated_at": user.updated_at,
    }


async def list_users(
    session: AsyncSession, actor: Actor, active: Optional[bool] = None
) -> list[dict]:
    """List users for assignment pickers. Defaults to active accounts only.

    Any active user may list active accounts; looking at inactive ones is an
    administrative view.
    """
    if active is None:
        active = True
    if not active and not actor.is_admin:
        raise PermissionDenied("Access denied. Admin role required.")

    result = await session.execute(
        select(User)
        .where(User.is_active == active)
        .order_by(User.first_name, User.last_name)
    )
    return [_user_info(u) for u in result.scalars().all()]


async def get_user(session: AsyncSession, actor: Actor, user_id: Any) -> dict:
    ensure_admin(actor)
    user = await session.get(User, parse_id(user_id, "user ID"))
    if not user:
        raise NotFoundError("User not found")
    return _user_info(user)


async def set_user_active(
    session: AsyncSession, actor: Actor, user_id: Any, is_active: bool
) -> User:
    """Activate or deactivate an account (Admin only, never your own)."""
    ensure_admin(actor)
    user = await session.get(User, parse_id(user_id, "user ID"))
    if not user:
        raise NotFoundError("User not found")

    ensure_not_self_deactivation(actor, user.id, is_active)

    user.is_active = is_active
    session.add(user)
    await session.flush()

    log.info(
        "user.status_changed",
        user_id=str(user.id),
        actor_id=str(actor.id),
        is_active=is_active,
    )
    return user
