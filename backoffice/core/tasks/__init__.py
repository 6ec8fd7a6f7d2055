"""Tasks with a per-assignee status."""

from .states import (
    TaskStatus,
    AssignmentStatus,
    USER_SETTABLE_STATUSES,
    can_user_set_status,
    is_active_for_user,
    is_archived_for_user,
    is_active_for_admin,
    is_archived_for_admin,
)
from .service import TaskService, TaskSummary

__all__ = [
    "TaskStatus",
    "AssignmentStatus",
    "USER_SETTABLE_STATUSES",
    "can_user_set_status",
    "is_active_for_user",
    "is_archived_for_user",
    "is_active_for_admin",
    "is_archived_for_admin",
    "TaskService",
    "TaskSummary",
]
