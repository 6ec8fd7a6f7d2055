"""Task and assignment statuses.

Two independent axes:

* ``TaskStatus`` is set on the task by its creator or an admin
  (open, in_progress, completed, closed).
* ``AssignmentStatus`` is tracked per assignee (assigned → in_progress →
  completed). An assignee may only move their own row to in_progress or
  completed, never back to assigned.

A task is archived for an assignee once *their* row is completed, and
archived for the admin views only when it has assignees and *all* of them are
completed. The same task can therefore be active for one side and archived
for the other.
"""

from enum import Enum
from typing import FrozenSet, Iterable


class TaskStatus(str, Enum):
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CLOSED = "closed"


class AssignmentStatus(str, Enum):
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


# Statuses an assignee may set on their own assignment row
USER_SETTABLE_STATUSES: FrozenSet[AssignmentStatus] = frozenset([
    AssignmentStatus.IN_PROGRESS,
    AssignmentStatus.COMPLETED,
])


def can_user_set_status(status: str) -> bool:
    try:
        return AssignmentStatus(status) in USER_SETTABLE_STATUSES
    except ValueError:
        return False


def is_active_for_user(assignment_status: str) -> bool:
    return assignment_status != AssignmentStatus.COMPLETED.value


def is_archived_for_user(assignment_status: str) -> bool:
    return assignment_status == AssignmentStatus.COMPLETED.value


def is_archived_for_admin(assignment_statuses: Iterable[str]) -> bool:
    statuses = list(assignment_statuses)
    return bool(statuses) and all(s == AssignmentStatus.COMPLETED.value for s in statuses)


def is_active_for_admin(assignment_statuses: Iterable[str]) -> bool:
    return not is_archived_for_admin(assignment_statuses)
