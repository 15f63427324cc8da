"""Task model."""

from datetime import datetime
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin


class Task(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "tasks"
    __table_args__ = (
        sa.Index("idx_tasks_creator_status", "created_by", "status"),
        sa.Index("idx_tasks_assignee_status", "assigned_user_id", "status"),
        sa.Index("idx_tasks_due_status", "due_date", "status"),
    )

    title: str = Field(nullable=False, max_length=200)
    description: Optional[str] = Field(default=None, max_length=1000)
    status: str = Field(nullable=False, default="pending")  # pending | in-progress | completed
    priority: str = Field(nullable=False, default="medium")  # low | medium | high
    due_date: Optional[datetime] = Field(default=None, sa_type=sa.DateTime(timezone=True))
    assigned_user_id: Optional[uuid.UUID] = Field(default=None, foreign_key="users.id", nullable=True)
    created_by: uuid.UUID = Field(foreign_key="users.id", nullable=False)
    # Written only by app.services.lifecycle.apply_status.
    completed_at: Optional[datetime] = Field(default=None, sa_type=sa.DateTime(timezone=True))
