"""Database models for the back-office service."""

from backoffice.db.models.user import User, ADMIN_CLASS_ROLES, USER_CLASS_ROLE
from backoffice.db.models.role import Role, Permission, RolePermission
from backoffice.db.models.group import Group, UserGroup
from backoffice.db.models.document import Document, DeleteRequest
from backoffice.db.models.task import Task, TaskAssignment, TaskFile
from backoffice.db.models.notification import Notification, UserNotification

__all__ = [
    "User",
    "ADMIN_CLASS_ROLES",
    "USER_CLASS_ROLE",
    "Role",
    "Permission",
    "RolePermission",
    "Group",
    "UserGroup",
    "Document",
    "DeleteRequest",
    "Task",
    "TaskAssignment",
    "TaskFile",
    "Notification",
    "UserNotification",
]
