"""
Typed failures raised by the service layer.

Services never raise HTTPException directly; the handlers registered in
app.main turn these into the JSON error envelope:

    {"error": {"code": ..., "message": ..., "status": ..., "errors": [...]}}
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Optional, Sequence


@dataclass(frozen=True)
class FieldError:
    field: str
    message: str


class TaskTrackerError(Exception):
    status_code = 400
    code = "BAD_REQUEST"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "status": self.status_code,
            }
        }


class ValidationError(TaskTrackerError):
    """Malformed or out-of-range input. Carries every violated field."""

    status_code = 400
    code = "VALIDATION_FAILED"

    def __init__(self, message: str = "Validation failed", errors: Optional[Sequence[FieldError]] = None):
        super().__init__(message)
        self.errors = list(errors or [])

    @property
    def fields(self) -> list[str]:
        return [e.field for e in self.errors]

    def to_dict(self) -> dict[str, Any]:
        body = super().to_dict()
        body["error"]["errors"] = [asdict(e) for e in self.errors]
        return body


class AuthenticationError(TaskTrackerError):
    status_code = 401
    code = "AUTHENTICATION_REQUIRED"


class PermissionDenied(TaskTrackerError):
    status_code = 403
    code = "PERMISSION_DENIED"


class NotFoundError(TaskTrackerError):
    status_code = 404
    code = "NOT_FOUND"


class SelfDeactivationError(TaskTrackerError):
    status_code = 400
    code = "SELF_DEACTIVATION"

    def __init__(self, message: str = "You cannot deactivate your own account"):
        super().__init__(message)


class ReferenceNotFoundError(TaskTrackerError):
    """A referenced record (e.g. the assignee) does not exist."""

    status_code = 400
    code = "REFERENCE_NOT_FOUND"
