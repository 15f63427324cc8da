"""
Access control policy for tasks and user management.

``can_access`` is a plain predicate evaluated as an ordered rule list; the
first matching rule decides. The ``ensure_*`` helpers turn a negative answer
into the matching typed error for the service layer.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Any, Union

from app.core.errors import PermissionDenied, SelfDeactivationError
from tasktracker_shared.schemas.common import Role, TaskAction


@dataclass(frozen=True)
class Actor:
    """The authenticated caller, passed explicitly into every service call."""

    id: uuid.UUID
    role: str
    is_active: bool = True

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN.value


def _is_creator(actor: Actor, task: Any) -> bool:
    return task.created_by == actor.id


def _is_assignee(actor: Actor, task: Any) -> bool:
    return task.assigned_user_id is not None and task.assigned_user_id == actor.id


def can_access(actor: Actor, task: Any, action: Union[TaskAction, str]) -> bool:
    action = TaskAction(action)

    # 1. Admins may do anything.
    if actor.is_admin:
        return True
    # 2. Only the creator may delete.
    if action is TaskAction.DELETE:
        return _is_creator(actor, task)
    # 3. Creator or assignee may read, update, or change status.
    if action in (TaskAction.READ, TaskAction.UPDATE, TaskAction.CHANGE_STATUS):
        return _is_creator(actor, task) or _is_assignee(actor, task)
    # 4. Deny everything else.
    return False


def ensure_access(actor: Actor, task: Any, action: Union[TaskAction, str]) -> None:
    if not can_access(actor, task, action):
        if TaskAction(action) is TaskAction.DELETE:
            raise PermissionDenied("Access denied. Only task creator or admin can delete tasks.")
        raise PermissionDenied("Access denied")


def ensure_admin(actor: Actor) -> None:
    if not actor.is_admin:
        raise PermissionDenied("Access denied. Admin role required.")


def ensure_not_self_deactivation(actor: Actor, target_id: uuid.UUID, is_active: bool) -> None:
    if target_id == actor.id and not is_active:
        raise SelfDeactivationError()
