from datetime import datetime
from typing import List, Optional

from pydantic import Field

from backoffice.core.tasks import AssignmentStatus, TaskStatus, TaskSummary
from backoffice.db.models import Task, TaskAssignment, TaskFile

from .common import CamelModel


class TaskCreate(CamelModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    deadline: Optional[datetime] = None
    assigned_user_ids: List[int] = Field(default_factory=list)


class TaskUpdate(CamelModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    deadline: Optional[datetime] = None
    status: Optional[TaskStatus] = None


class AssignUserRequest(CamelModel):
    user_id: int


class AssignmentStatusUpdate(CamelModel):
    status: AssignmentStatus


class TaskOut(CamelModel):
    id: int
    title: str
    description: Optional[str] = None
    deadline: Optional[datetime] = None
    status: str
    created_by: Optional[int] = None
    creator_name: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_task(cls, task: Task, **extra) -> "TaskOut":
        out = cls.model_validate(task)
        out.creator_name = task.creator.name if task.creator else None
        for key, value in extra.items():
            setattr(out, key, value)
        return out


class AdminTaskOut(TaskOut):
    assigned_users_count: int = 0
    completed_users_count: int = 0
    files_count: int = 0

    @classmethod
    def from_summary(cls, summary: TaskSummary) -> "AdminTaskOut":
        return cls.from_task(
            summary.task,
            assigned_users_count=summary.assigned_users_count,
            completed_users_count=summary.completed_users_count,
            files_count=summary.files_count,
        )


class UserTaskOut(TaskOut):
    user_status: str
    assigned_at: Optional[datetime] = None

    @classmethod
    def from_assignment(cls, assignment: TaskAssignment) -> "UserTaskOut":
        task = assignment.task
        return cls(
            id=task.id,
            title=task.title,
            description=task.description,
            deadline=task.deadline,
            status=task.status,
            created_by=task.created_by,
            creator_name=task.creator.name if task.creator else None,
            created_at=task.created_at,
            updated_at=task.updated_at,
            user_status=assignment.status,
            assigned_at=assignment.assigned_at,
        )


class AssigneeOut(CamelModel):
    user_id: int
    name: Optional[str] = None
    telegram_id: Optional[str] = None
    status: str
    assigned_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_assignment(cls, assignment: TaskAssignment) -> "AssigneeOut":
        user = assignment.user
        return cls(
            user_id=assignment.user_id,
            name=user.name if user else None,
            telegram_id=user.telegram_id if user else None,
            status=assignment.status,
            assigned_at=assignment.assigned_at,
            updated_at=assignment.updated_at,
        )


class TaskFileOut(CamelModel):
    id: int
    task_id: int
    file_name: str
    file_path: str
    file_type: Optional[str] = None
    uploaded_by: Optional[int] = None
    uploader_name: Optional[str] = None
    uploaded_at: Optional[datetime] = None

    @classmethod
    def from_file(cls, task_file: TaskFile) -> "TaskFileOut":
        out = cls.model_validate(task_file)
        out.uploader_name = task_file.uploader.name if task_file.uploader else None
        return out


class TaskDetailOut(TaskOut):
    user_status: Optional[str] = None
    assignees: List[AssigneeOut] = Field(default_factory=list)
    files: List[TaskFileOut] = Field(default_factory=list)
