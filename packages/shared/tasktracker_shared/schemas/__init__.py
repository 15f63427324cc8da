from .common import (  # noqa: F401
    CamelModel,
    MessageResponse,
    Pagination,
    Role,
    TaskAction,
    TaskPriority,
    TaskStatus,
)
