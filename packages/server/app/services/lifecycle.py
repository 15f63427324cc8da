"""
Task status state machine.

Every status may move to every other status. The only side effect is the
completion timestamp: entering ``completed`` stamps ``completed_at`` (once),
leaving it clears the stamp.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Union

from tasktracker_shared.schemas.common import TaskStatus


def apply_status(task: Any, new_status: Union[TaskStatus, str], now: datetime) -> bool:
    """Set ``task.status`` and keep ``completed_at`` consistent. Returns True if the status changed."""
    new_status = TaskStatus(new_status)
    changed = task.status != new_status.value
    task.status = new_status.value

    if new_status is TaskStatus.COMPLETED:
        if task.completed_at is None:
            task.completed_at = now
    else:
        task.completed_at = None
    return changed
