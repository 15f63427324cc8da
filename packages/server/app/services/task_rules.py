"""
Task entity rules: field validation and derived, read-time properties.

Everything here is pure; callers supply ``now`` so the rules can be
exercised without a clock or a database.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

from app.core.errors import FieldError, ValidationError
from tasktracker_shared.schemas.common import TaskPriority, TaskStatus

TITLE_MIN_LENGTH = 3
TITLE_MAX_LENGTH = 200
DESCRIPTION_MAX_LENGTH = 1000

PRIORITY_COLORS = {
    TaskPriority.LOW.value: "#10B981",     # green
    TaskPriority.MEDIUM.value: "#F59E0B",  # amber
    TaskPriority.HIGH.value: "#EF4444",    # red
}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC (SQLite hands them back without tzinfo)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def start_of_day(now: datetime) -> datetime:
    return as_utc(now).replace(hour=0, minute=0, second=0, microsecond=0)


def parse_id(value: Any, label: str = "ID") -> uuid.UUID:
    """Reject malformed identifiers before they reach storage."""
    if isinstance(value, uuid.UUID):
        return value
    text = str(value)
    try:
        parsed = uuid.UUID(text)
    except (TypeError, ValueError):
        parsed = None
    # Only the canonical hyphenated form; no braces, urn prefix or bare hex.
    if parsed is None or str(parsed) != text.lower():
        raise ValidationError(
            f"Invalid {label}",
            errors=[FieldError("id", f"Invalid {label}")],
        )
    return parsed


def validate_task_fields(
    fields: Mapping[str, Any],
    now: datetime,
    *,
    partial: bool = False,
) -> dict[str, Any]:
    """Validate title/description/due_date and return the cleaned values.

    With ``partial`` only the keys present in ``fields`` are checked, which is
    how updates behave; creates always require a title. All violations are
    collected before raising.
    """
    cleaned = dict(fields)
    errors: list[FieldError] = []

    if not partial or "title" in fields:
        title = (fields.get("title") or "").strip()
        if not TITLE_MIN_LENGTH <= len(title) <= TITLE_MAX_LENGTH:
            errors.append(
                FieldError("title", f"Title must be {TITLE_MIN_LENGTH}-{TITLE_MAX_LENGTH} characters")
            )
        cleaned["title"] = title

    if fields.get("description") is not None:
        description = fields["description"].strip()
        if len(description) > DESCRIPTION_MAX_LENGTH:
            errors.append(
                FieldError(
                    "description",
                    f"Description must be less than {DESCRIPTION_MAX_LENGTH} characters",
                )
            )
        cleaned["description"] = description

    due_date = fields.get("due_date")
    if due_date is not None:
        due_date = as_utc(due_date)
        if due_date < start_of_day(now):
            errors.append(FieldError("dueDate", "Due date must be today or in the future"))
        cleaned["due_date"] = due_date

    if errors:
        raise ValidationError("Validation failed", errors=errors)
    return cleaned


def is_overdue(task: Any, now: datetime) -> bool:
    if task.due_date is None:
        return False
    return as_utc(now) > as_utc(task.due_date) and task.status != TaskStatus.COMPLETED.value


def priority_color(priority: Optional[str]) -> str:
    if isinstance(priority, TaskPriority):
        priority = priority.value
    return PRIORITY_COLORS.get(priority, PRIORITY_COLORS[TaskPriority.MEDIUM.value])
