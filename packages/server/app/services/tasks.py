"""
Task service layer: business logic for tasks.

Handles:
- Task CRUD with assignee reference checks
- Status changes through the lifecycle state machine
- Visibility-scoped, filtered, paginated listing
- Enrichment of task data with creator/assignee summaries
"""

from __future__ import annotations

import math
import uuid
from datetime import datetime
from typing import Any, Iterable, Optional, Sequence

import structlog
from sqlalchemy import func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.errors import NotFoundError, ReferenceNotFoundError
from app.models.task import Task
from app.models.user import User
from app.services import lifecycle, task_rules
from app.services.policy import Actor, ensure_access
from tasktracker_shared.schemas.common import Pagination, TaskAction, TaskStatus
from tasktracker_shared.schemas.tasks import (
    TaskCreate,
    TaskFilters,
    TaskListResponse,
    TaskRead,
    TaskStats,
    TaskUpdate,
    UserSummary,
)

log = structlog.get_logger()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def get_task_or_404(session: AsyncSession, task_id: Any) -> Task:
    task_id = task_rules.parse_id(task_id, "task ID")
    task = await session.get(Task, task_id)
    if not task:
        raise NotFoundError("Task not found")
    return task


async def get_task_for(
    session: AsyncSession,
    actor: Actor,
    task_id: Any,
    action: TaskAction = TaskAction.READ,
) -> Task:
    """Load a task and gate it through the access policy."""
    task = await get_task_or_404(session, task_id)
    ensure_access(actor, task, action)
    return task


async def _ensure_user_exists(session: AsyncSession, user_id: uuid.UUID) -> None:
    if await session.get(User, user_id) is None:
        raise ReferenceNotFoundError("Assigned user not found")


def _summary(user: Optional[User]) -> Optional[UserSummary]:
    if user is None:
        return None
    return UserSummary(
        id=user.id,
        first_name=user.first_name,
        last_name=user.last_name,
        email=user.email,
    )


async def _load_users(session: AsyncSession, user_ids: Iterable[uuid.UUID]) -> dict[uuid.UUID, User]:
    ids = {uid for uid in user_ids if uid is not None}
    if not ids:
        return {}
    result = await session.execute(select(User).where(User.id.in_(ids)))
    return {u.id: u for u in result.scalars().all()}


def _to_read(task: Task, users: dict[uuid.UUID, User], now: datetime) -> TaskRead:
    return TaskRead(
        id=task.id,
        title=task.title,
        description=task.description,
        status=task.status,
        priority=task.priority,
        due_date=task.due_date,
        assigned_user_id=task.assigned_user_id,
        created_by=task.created_by,
        completed_at=task.completed_at,
        created_at=task.created_at,
        updated_at=task.updated_at,
        assigned_user=_summary(users.get(task.assigned_user_id)),
        creator=_summary(users.get(task.created_by)),
        is_overdue=task_rules.is_overdue(task, now),
        priority_color=task_rules.priority_color(task.priority),
    )


async def enrich_tasks(
    session: AsyncSession, tasks: Sequence[Task], now: Optional[datetime] = None
) -> list[TaskRead]:
    """Convert Task rows to TaskRead, resolving every referenced user in one query."""
    now = now or task_rules.utcnow()
    user_ids: list[uuid.UUID] = []
    for t in tasks:
        user_ids.append(t.created_by)
        if t.assigned_user_id:
            user_ids.append(t.assigned_user_id)
    users = await _load_users(session, user_ids)
    return [_to_read(t, users, now) for t in tasks]


async def enrich_task(session: AsyncSession, task: Task, now: Optional[datetime] = None) -> TaskRead:
    return (await enrich_tasks(session, [task], now))[0]


# ---------------------------------------------------------------------------
# CRUD
# ---------------------------------------------------------------------------


async def create_task(
    session: AsyncSession,
    actor: Actor,
    task_in: TaskCreate,
    now: Optional[datetime] = None,
) -> Task:
    now = now or task_rules.utcnow()
    fields = task_rules.validate_task_fields(
        {
            "title": task_in.title,
            "description": task_in.description,
            "due_date": task_in.due_date,
        },
        now,
    )

    if task_in.assigned_user_id:
        await _ensure_user_exists(session, task_in.assigned_user_id)

    task = Task(
        title=fields["title"],
        description=fields["description"],
        priority=task_in.priority.value,
        status=TaskStatus.PENDING.value,
        due_date=fields["due_date"],
        assigned_user_id=task_in.assigned_user_id,
        created_by=actor.id,
    )
    session.add(task)
    await session.flush()

    log.info(
        "task.created",
        task_id=str(task.id),
        actor_id=str(actor.id),
        assigned_user_id=str(task.assigned_user_id) if task.assigned_user_id else None,
    )
    return task


async def update_task(
    session: AsyncSession,
    actor: Actor,
    task: Task,
    task_in: TaskUpdate,
    now: Optional[datetime] = None,
) -> Task:
    now = now or task_rules.utcnow()
    data = task_in.model_dump(exclude_unset=True)

    ensure_access(actor, task, TaskAction.UPDATE)
    if "status" in data:
        ensure_access(actor, task, TaskAction.CHANGE_STATUS)

    # An unchanged due date is not re-checked against today.
    if data.get("due_date") is not None and task.due_date is not None:
        if task_rules.as_utc(data["due_date"]) == task_rules.as_utc(task.due_date):
            data.pop("due_date")

    data = task_rules.validate_task_fields(data, now, partial=True)

    if data.get("assigned_user_id"):
        await _ensure_user_exists(session, data["assigned_user_id"])

    # Status goes through the lifecycle so completed_at stays consistent.
    status = data.pop("status", None)
    if status is not None:
        lifecycle.apply_status(task, status, now)

    for key in ("title", "description", "due_date", "assigned_user_id"):
        if key in data:
            setattr(task, key, data[key])
    if data.get("priority") is not None:
        task.priority = data["priority"].value

    session.add(task)
    await session.flush()

    log.info("task.updated", task_id=str(task.id), actor_id=str(actor.id), fields=sorted(task_in.model_fields_set))
    return task


async def change_status(
    session: AsyncSession,
    actor: Actor,
    task: Task,
    new_status: TaskStatus,
    now: Optional[datetime] = None,
) -> Task:
    ensure_access(actor, task, TaskAction.CHANGE_STATUS)
    old_status = task.status
    lifecycle.apply_status(task, new_status, now or task_rules.utcnow())

    session.add(task)
    await session.flush()

    log.info(
        "task.status_changed",
        task_id=str(task.id),
        actor_id=str(actor.id),
        from_status=old_status,
        to_status=task.status,
    )
    return task


async def delete_task(session: AsyncSession, actor: Actor, task: Task) -> None:
    ensure_access(actor, task, TaskAction.DELETE)
    await session.delete(task)
    await session.flush()
    log.info("task.deleted", task_id=str(task.id), actor_id=str(actor.id))


# ---------------------------------------------------------------------------
# Query
# ---------------------------------------------------------------------------


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _visibility_clauses(actor: Actor) -> list:
    if actor.is_admin:
        return []
    return [or_(Task.created_by == actor.id, Task.assigned_user_id == actor.id)]


def _filter_clauses(actor: Actor, filters: TaskFilters) -> list:
    # Visibility scope first; user-supplied filters are ANDed onto it.
    clauses = _visibility_clauses(actor)

    if filters.status:
        clauses.append(Task.status == filters.status.value)
    if filters.priority:
        clauses.append(Task.priority == filters.priority.value)
    if filters.assigned_user_id:
        clauses.append(Task.assigned_user_id == filters.assigned_user_id)
    if filters.search:
        pattern = f"%{_escape_like(filters.search)}%"
        clauses.append(
            or_(
                Task.title.ilike(pattern, escape="\\"),
                Task.description.ilike(pattern, escape="\\"),
            )
        )
    return clauses


async def list_tasks(
    session: AsyncSession,
    actor: Actor,
    filters: TaskFilters,
    now: Optional[datetime] = None,
) -> TaskListResponse:
    clauses = _filter_clauses(actor, filters)

    count_stmt = select(func.count()).select_from(Task).where(*clauses)
    total_items = (await session.execute(count_stmt)).scalar_one()

    page, page_size = filters.page, filters.page_size
    stmt = (
        select(Task)
        .where(*clauses)
        .order_by(Task.created_at.desc(), Task.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    result = await session.execute(stmt)
    tasks = list(result.scalars().all())

    total_pages = math.ceil(total_items / page_size)
    return TaskListResponse(
        tasks=await enrich_tasks(session, tasks, now),
        pagination=Pagination(
            current_page=page,
            total_pages=total_pages,
            total_items=total_items,
            items_per_page=page_size,
            has_next_page=page < total_pages,
            has_prev_page=page > 1,
        ),
    )


async def task_stats(
    session: AsyncSession, actor: Actor, now: Optional[datetime] = None
) -> TaskStats:
    """Dashboard counters over the tasks visible to ``actor``."""
    now = now or task_rules.utcnow()
    scope = _visibility_clauses(actor)

    result = await session.execute(
        select(Task.status, func.count()).where(*scope).group_by(Task.status)
    )
    by_status = {status: count for status, count in result.all()}

    overdue = (
        await session.execute(
            select(func.count())
            .select_from(Task)
            .where(
                *scope,
                Task.due_date.is_not(None),
                Task.due_date < now,
                Task.status != TaskStatus.COMPLETED.value,
            )
        )
    ).scalar_one()

    return TaskStats(
        total=sum(by_status.values()),
        pending=by_status.get(TaskStatus.PENDING.value, 0),
        in_progress=by_status.get(TaskStatus.IN_PROGRESS.value, 0),
        completed=by_status.get(TaskStatus.COMPLETED.value, 0),
        overdue=overdue,
    )
