"""User management schemas."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

import uuid

from pydantic import StrictBool

from .common import CamelModel, Role


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------

class UserStatusUpdate(CamelModel):
    """Activate or deactivate an account (Admin only)."""
    is_active: StrictBool


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------

class UserResponse(CamelModel):
    id: uuid.UUID
    first_name: str
    last_name: str
    email: str
    role: Role
    is_active: bool
    created_at: datetime
    updated_at: Optional[datetime] = None


class UserEnvelope(CamelModel):
    user: UserResponse


class UserListResponse(CamelModel):
    users: List[UserResponse]


class UserStatusRead(CamelModel):
    id: uuid.UUID
    first_name: str
    last_name: str
    email: str
    is_active: bool


class UserStatusResponse(CamelModel):
    message: str
    user: UserStatusRead
