"""
Task endpoints: CRUD, status changes, listing, dashboard stats.

Access rules (enforced server-side on every request):
- Admins: everything.
- Creator: read, update, change status, delete.
- Assignee: read, update, change status.
"""

from __future__ import annotations

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import get_current_actor
from app.core.config import get_settings
from app.core.database import get_session
from app.services.policy import Actor
from app.services.tasks import (
    change_status,
    create_task,
    delete_task,
    enrich_task,
    get_task_for,
    get_task_or_404,
    list_tasks,
    task_stats,
    update_task,
)
from tasktracker_shared.schemas.common import MessageResponse, TaskPriority, TaskStatus
from tasktracker_shared.schemas.tasks import (
    TaskCreate,
    TaskFilters,
    TaskListResponse,
    TaskResponse,
    TaskStats,
    TaskStatusRead,
    TaskStatusResponse,
    TaskStatusUpdate,
    TaskUpdate,
)

settings = get_settings()
router = APIRouter()


@router.get("", response_model=TaskListResponse)
async def list_tasks_endpoint(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    status: Optional[TaskStatus] = None,
    priority: Optional[TaskPriority] = None,
    assignedUserId: Optional[uuid.UUID] = None,
    search: Optional[str] = Query(None, min_length=1, max_length=100),
    actor: Actor = Depends(get_current_actor),
    session: AsyncSession = Depends(get_session),
):
    """List visible tasks, newest first, with optional filters."""
    filters = TaskFilters(
        status=status,
        priority=priority,
        assigned_user_id=assignedUserId,
        search=search,
        page=page,
        page_size=limit,
    )
    return await list_tasks(session, actor, filters)


@router.get("/stats", response_model=TaskStats)
async def task_stats_endpoint(
    actor: Actor = Depends(get_current_actor),
    session: AsyncSession = Depends(get_session),
):
    """Counts by status plus overdue, over the caller's visible tasks."""
    return await task_stats(session, actor)


@router.post("", response_model=TaskResponse, status_code=201)
async def create_task_endpoint(
    task_in: TaskCreate,
    actor: Actor = Depends(get_current_actor),
    session: AsyncSession = Depends(get_session),
):
    """Create a new task owned by the caller."""
    task = await create_task(session, actor, task_in)
    await session.commit()
    await session.refresh(task)
    return TaskResponse(message="Task created successfully", task=await enrich_task(session, task))


@router.get("/{task_id}", response_model=TaskResponse)
async def get_task_endpoint(
    task_id: str,
    actor: Actor = Depends(get_current_actor),
    session: AsyncSession = Depends(get_session),
):
    """Get a single task with creator and assignee summaries."""
    task = await get_task_for(session, actor, task_id)
    return TaskResponse(task=await enrich_task(session, task))


@router.put("/{task_id}", response_model=TaskResponse)
async def update_task_endpoint(
    task_id: str,
    task_in: TaskUpdate,
    actor: Actor = Depends(get_current_actor),
    session: AsyncSession = Depends(get_session),
):
    """Update any mutable task field (creator, assignee, or admin)."""
    task = await get_task_or_404(session, task_id)
    task = await update_task(session, actor, task, task_in)
    await session.commit()
    await session.refresh(task)
    return TaskResponse(message="Task updated successfully", task=await enrich_task(session, task))


@router.delete("/{task_id}", response_model=MessageResponse)
async def delete_task_endpoint(
    task_id: str,
    actor: Actor = Depends(get_current_actor),
    session: AsyncSession = Depends(get_session),
):
    """Permanently delete a task (creator or admin)."""
    task = await get_task_or_404(session, task_id)
    await delete_task(session, actor, task)
    await session.commit()
    return MessageResponse(message="Task deleted successfully")


@router.patch("/{task_id}/status", response_model=TaskStatusResponse)
async def change_status_endpoint(
    task_id: str,
    body: TaskStatusUpdate,
    actor: Actor = Depends(get_current_actor),
    session: AsyncSession = Depends(get_session),
):
    """Move a task to any status; completion timestamps follow automatically."""
    task = await get_task_or_404(session, task_id)
    task = await change_status(session, actor, task, body.status)
    await session.commit()
    await session.refresh(task)
    return TaskStatusResponse(
        message="Task status updated successfully",
        task=TaskStatusRead(id=task.id, status=task.status, completed_at=task.completed_at),
    )
