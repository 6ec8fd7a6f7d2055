"""Task service.

Admin-class identities create tasks, assign users and attach files. Every
assignee carries their own status row, so "active" and "archived" are
computed per viewer:

* an assignee sees a task as archived once their own row is completed;
* the admin views see it as archived once it has assignees and every one of
  them is completed.

Directors only see the tasks they created in the admin lists.
"""

import logging
from datetime import datetime
from typing import Iterable, List, NamedTuple, Optional, Tuple

from fastapi import UploadFile
from sqlalchemy import and_, exists, func, not_, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from backoffice.core.exceptions import BadRequestError, ForbiddenError, NotFoundError
from backoffice.db.models import ADMIN_CLASS_ROLES, Task, TaskAssignment, TaskFile, User
from backoffice.db.pagination import paginate
from .states import AssignmentStatus, TaskStatus, can_user_set_status

logger = logging.getLogger(__name__)

NOT_ASSIGNED_MESSAGE = "You are not assigned to this task"

# Scopes accepted by the list methods
SCOPE_ALL = "all"
SCOPE_ACTIVE = "active"
SCOPE_ARCHIVED = "archived"
SCOPES = (SCOPE_ALL, SCOPE_ACTIVE, SCOPE_ARCHIVED)


class TaskSummary(NamedTuple):
    """A task row as shown in the admin lists."""
    task: Task
    assigned_users_count: int
    completed_users_count: int
    files_count: int


def _has_assignees():
    return exists().where(TaskAssignment.task_id == Task.id)


def _has_unfinished_assignee():
    return exists().where(and_(
        TaskAssignment.task_id == Task.id,
        TaskAssignment.status != AssignmentStatus.COMPLETED.value,
    ))


def admin_archived_clause():
    """SQL form of "has assignees and all of them completed"."""
    return and_(_has_assignees(), not_(_has_unfinished_assignee()))


def admin_active_clause():
    return not_(admin_archived_clause())


class TaskService:
    """Task operations for both the admin and the assignee side."""

    def __init__(self, db: Session, storage=None):
        self.db = db
        self.storage = storage

    # ============== Lookups ==============

    def get(self, task_id: int) -> Task:
        task = self.db.get(Task, task_id)
        if not task:
            raise NotFoundError("Task not found")
        return task

    def get_assignment(self, task_id: int, user_id: int) -> Optional[TaskAssignment]:
        return self.db.query(TaskAssignment).filter(
            TaskAssignment.task_id == task_id,
            TaskAssignment.user_id == user_id,
        ).first()

    def require_assignment(self, task_id: int, user: User) -> TaskAssignment:
        """The caller's own assignment row; 404 for a missing task, 403 if not assigned."""
        self.get(task_id)
        assignment = self.get_assignment(task_id, user.id)
        if assignment is None:
            raise ForbiddenError(NOT_ASSIGNED_MESSAGE)
        return assignment

    def assignments_of(self, task_id: int) -> List[TaskAssignment]:
        return (
            self.db.query(TaskAssignment)
            .options(joinedload(TaskAssignment.user))
            .filter(TaskAssignment.task_id == task_id)
            .order_by(TaskAssignment.assigned_at, TaskAssignment.id)
            .all()
        )

    def task_users(self, task_id: int) -> List[TaskAssignment]:
        self.get(task_id)
        return self.assignments_of(task_id)

    # ============== Assignee side ==============

    def list_for_user(
        self,
        user: User,
        *,
        scope: str = SCOPE_ALL,
        page: int = 1,
        limit: int = 20,
    ) -> Tuple[List[TaskAssignment], int]:
        """The caller's assignment rows, newest task first."""
        if scope not in SCOPES:
            raise BadRequestError(f"Unknown task scope: {scope}")

        query = (
            self.db.query(TaskAssignment)
            .join(Task, Task.id == TaskAssignment.task_id)
            .options(joinedload(TaskAssignment.task).joinedload(Task.creator))
            .filter(TaskAssignment.user_id == user.id)
        )
        if scope == SCOPE_ACTIVE:
            query = query.filter(TaskAssignment.status != AssignmentStatus.COMPLETED.value)
        elif scope == SCOPE_ARCHIVED:
            query = query.filter(TaskAssignment.status == AssignmentStatus.COMPLETED.value)

        query = query.order_by(Task.created_at.desc(), Task.id.desc())
        return paginate(query, page, limit)

    def update_own_status(self, task_id: int, user: User, status: str) -> TaskAssignment:
        """Move the caller's own row to in_progress or completed."""
        if not can_user_set_status(status):
            raise BadRequestError("Users can only change status to 'in_progress' or 'completed'")

        assignment = self.require_assignment(task_id, user)
        assignment.status = AssignmentStatus(status).value
        assignment.updated_at = datetime.utcnow()
        self.db.commit()
        self.db.refresh(assignment)

        logger.info("User %s set task %s to %s", user.id, task_id, assignment.status)
        return assignment

    # ============== Files ==============

    def visible_files(self, task_id: int, viewer: User) -> List[TaskFile]:
        """Files of a task the viewer may see.

        Admin-class viewers see every file. Assignees see files uploaded by an
        admin-class identity plus their own uploads.
        """
        query = self.db.query(TaskFile).filter(TaskFile.task_id == task_id)
        if not viewer.is_admin_class:
            query = query.outerjoin(User, User.id == TaskFile.uploaded_by).filter(or_(
                User.role.in_(ADMIN_CLASS_ROLES),
                TaskFile.uploaded_by == viewer.id,
            ))
        return query.order_by(TaskFile.uploaded_at, TaskFile.id).all()

    def can_see_file(self, task_file: TaskFile, viewer: User) -> bool:
        if viewer.is_admin_class:
            return True
        if self.get_assignment(task_file.task_id, viewer.id) is None:
            return False
        if task_file.uploaded_by == viewer.id:
            return True
        uploader = task_file.uploader
        return uploader is not None and uploader.is_admin_class

    def get_file(self, file_id: int) -> TaskFile:
        task_file = self.db.get(TaskFile, file_id)
        if not task_file:
            raise NotFoundError("File not found")
        return task_file

    def add_file(self, task_id: int, upload: UploadFile, uploader: User) -> TaskFile:
        """Store an upload against a task. Assignees must be assigned to it."""
        if uploader.is_admin_class:
            self.get(task_id)
        else:
            self.require_assignment(task_id, uploader)

        stored = self.storage.save(upload)
        task_file = TaskFile(
            task_id=task_id,
            file_name=stored.original_name,
            file_path=stored.name,
            file_type=stored.content_type,
            uploaded_by=uploader.id,
        )
        self.db.add(task_file)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            self.storage.delete(stored.name)
            raise

        self.db.refresh(task_file)
        logger.info("File %s attached to task %s by %s", task_file.id, task_id, uploader.id)
        return task_file

    def delete_file(self, file_id: int, actor: User) -> None:
        """Admin-class callers may remove any file; assignees only their own."""
        task_file = self.get_file(file_id)

        if not actor.is_admin_class:
            if task_file.uploaded_by != actor.id:
                raise ForbiddenError("You can only delete your own files")
            if self.get_assignment(task_file.task_id, actor.id) is None:
                raise ForbiddenError(NOT_ASSIGNED_MESSAGE)

        name = task_file.file_path
        self.db.delete(task_file)
        self.db.commit()
        if self.storage is not None:
            self.storage.delete(name)
        logger.info("Task file %s deleted by %s", file_id, actor.id)

    def file_for_download(self, file_id: int, viewer: User) -> TaskFile:
        task_file = self.get_file(file_id)
        if not self.can_see_file(task_file, viewer):
            raise ForbiddenError()
        if self.storage is not None and not self.storage.exists(task_file.file_path):
            raise NotFoundError("File not found on server")
        return task_file

    def files_uploaded_by(
        self,
        user: User,
        *,
        task_id: Optional[int] = None,
        page: int = 1,
        limit: int = 20,
    ) -> Tuple[List[TaskFile], int]:
        query = (
            self.db.query(TaskFile)
            .options(joinedload(TaskFile.task))
            .filter(TaskFile.uploaded_by == user.id)
        )
        if task_id is not None:
            query = query.filter(TaskFile.task_id == task_id)
        query = query.order_by(TaskFile.uploaded_at.desc(), TaskFile.id.desc())
        return paginate(query, page, limit)

    # ============== Admin side ==============

    def list_for_admin(
        self,
        viewer: User,
        *,
        scope: str = SCOPE_ALL,
        page: int = 1,
        limit: int = 20,
    ) -> Tuple[List[TaskSummary], int]:
        """Tasks with assignee and file counts, newest first."""
        if scope not in SCOPES:
            raise BadRequestError(f"Unknown task scope: {scope}")

        assigned = (
            select(func.count(TaskAssignment.id))
            .where(TaskAssignment.task_id == Task.id)
            .correlate(Task)
            .scalar_subquery()
        )
        completed = (
            select(func.count(TaskAssignment.id))
            .where(and_(
                TaskAssignment.task_id == Task.id,
                TaskAssignment.status == AssignmentStatus.COMPLETED.value,
            ))
            .correlate(Task)
            .scalar_subquery()
        )
        files = (
            select(func.count(TaskFile.id))
            .where(TaskFile.task_id == Task.id)
            .correlate(Task)
            .scalar_subquery()
        )

        query = self.db.query(Task, assigned, completed, files).options(joinedload(Task.creator))
        if viewer.is_director:
            query = query.filter(Task.created_by == viewer.id)
        if scope == SCOPE_ACTIVE:
            query = query.filter(admin_active_clause())
        elif scope == SCOPE_ARCHIVED:
            query = query.filter(admin_archived_clause())

        query = query.order_by(Task.created_at.desc(), Task.id.desc())
        rows, total = paginate(query, page, limit)
        return [TaskSummary(task, a or 0, c or 0, f or 0) for task, a, c, f in rows], total

    def create(
        self,
        *,
        title: str,
        creator: User,
        description: Optional[str] = None,
        deadline: Optional[datetime] = None,
        assigned_user_ids: Iterable[int] = (),
    ) -> Task:
        user_ids = sorted(set(assigned_user_ids or ()))
        self._require_users(user_ids)

        task = Task(
            title=title,
            description=description,
            deadline=deadline,
            status=TaskStatus.OPEN.value,
            created_by=creator.id,
        )
        task.assignments = [
            TaskAssignment(user_id=user_id, status=AssignmentStatus.ASSIGNED.value)
            for user_id in user_ids
        ]
        self.db.add(task)
        self.db.commit()
        self.db.refresh(task)

        logger.info("Task %s created by %s with %d assignees", task.id, creator.id, len(user_ids))
        return task

    def update(
        self,
        task_id: int,
        *,
        title: Optional[str] = None,
        description: Optional[str] = None,
        deadline: Optional[datetime] = None,
        status: Optional[str] = None,
    ) -> Task:
        """Partial update; any task status including closed may be set."""
        task = self.get(task_id)

        if title is not None:
            task.title = title
        if description is not None:
            task.description = description
        if deadline is not None:
            task.deadline = deadline
        if status is not None:
            try:
                task.status = TaskStatus(status).value
            except ValueError:
                raise BadRequestError(f"Invalid task status: {status}")

        self.db.commit()
        self.db.refresh(task)
        return task

    def delete(self, task_id: int) -> None:
        """Delete the task, its assignment rows and its stored files."""
        task = self.get(task_id)
        names = [f.file_path for f in task.files]

        self.db.delete(task)
        self.db.commit()

        if self.storage is not None:
            for name in names:
                self.storage.delete(name)
        logger.info("Task %s deleted with %d files", task_id, len(names))

    def assign(self, task_id: int, user_id: int) -> TaskAssignment:
        """Assign a user. Assigning someone already assigned returns the existing row."""
        self.get(task_id)
        self._require_users([user_id])

        existing = self.get_assignment(task_id, user_id)
        if existing is not None:
            return existing

        assignment = TaskAssignment(
            task_id=task_id,
            user_id=user_id,
            status=AssignmentStatus.ASSIGNED.value,
        )
        self.db.add(assignment)
        try:
            self.db.commit()
        except IntegrityError:
            # Assigned concurrently
            self.db.rollback()
            return self.get_assignment(task_id, user_id)

        self.db.refresh(assignment)
        logger.info("User %s assigned to task %s", user_id, task_id)
        return assignment

    def remove_user(self, task_id: int, user_id: int) -> None:
        self.get(task_id)
        assignment = self.get_assignment(task_id, user_id)
        if assignment is None:
            raise NotFoundError("User not assigned to this task")

        self.db.delete(assignment)
        self.db.commit()
        logger.info("User %s removed from task %s", user_id, task_id)

    def _require_users(self, user_ids: List[int]) -> None:
        if not user_ids:
            return
        found = {
            uid for (uid,) in self.db.query(User.id).filter(User.id.in_(user_ids)).all()
        }
        missing = sorted(set(user_ids) - found)
        if missing:
            raise NotFoundError(f"User not found: {', '.join(str(m) for m in missing)}")
