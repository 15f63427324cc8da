"""Task-related Pydantic schemas for shared use across server and frontend codegen."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

import uuid

from pydantic import Field

from .common import CamelModel, Pagination, TaskPriority, TaskStatus


# ---------------------------------------------------------------------------
# Embedded summaries
# ---------------------------------------------------------------------------

class UserSummary(CamelModel):
    """Denormalized creator/assignee shape embedded in task responses."""
    id: uuid.UUID
    first_name: str
    last_name: str
    email: str


# ---------------------------------------------------------------------------
# Task CRUD
# ---------------------------------------------------------------------------

class TaskCreate(CamelModel):
    # Length rules live in app.services.task_rules so every violation is reported together.
    title: str
    description: Optional[str] = None
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: Optional[datetime] = None
    assigned_user_id: Optional[uuid.UUID] = None


class TaskUpdate(CamelModel):
    title: Optional[str] = None
    description: Optional[str] = None
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    due_date: Optional[datetime] = None
    assigned_user_id: Optional[uuid.UUID] = None


class TaskRead(CamelModel):
    id: uuid.UUID
    title: str
    description: Optional[str] = None
    status: TaskStatus
    priority: TaskPriority
    due_date: Optional[datetime] = None
    assigned_user_id: Optional[uuid.UUID] = None
    created_by: uuid.UUID
    completed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
    assigned_user: Optional[UserSummary] = None
    creator: Optional[UserSummary] = None
    is_overdue: bool = False
    priority_color: str


class TaskResponse(CamelModel):
    message: Optional[str] = None
    task: TaskRead


class TaskListResponse(CamelModel):
    tasks: List[TaskRead] = Field(default_factory=list)
    pagination: Pagination


# ---------------------------------------------------------------------------
# Filters
# ---------------------------------------------------------------------------

class TaskFilters(CamelModel):
    """Query parameters accepted by the task list."""
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    assigned_user_id: Optional[uuid.UUID] = None
    search: Optional[str] = Field(default=None, min_length=1, max_length=100)
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=10, ge=1, le=100)


# ---------------------------------------------------------------------------
# Status change
# ---------------------------------------------------------------------------

class TaskStatusUpdate(CamelModel):
    """Request body for PATCH /tasks/{taskId}/status."""
    status: TaskStatus


class TaskStatusRead(CamelModel):
    id: uuid.UUID
    status: TaskStatus
    completed_at: Optional[datetime] = None


class TaskStatusResponse(CamelModel):
    message: str
    task: TaskStatusRead


# ---------------------------------------------------------------------------
# Dashboard counters
# ---------------------------------------------------------------------------

class TaskStats(CamelModel):
    total: int = 0
    pending: int = 0
    in_progress: int = 0
    completed: int = 0
    overdue: int = 0
