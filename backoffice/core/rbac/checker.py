"""Permission checking utilities for the back office.

Permissions are resolved from the database on every check by joining the
identity's role to its granted permissions. Nothing is cached, so a change to
role_permissions is visible on the very next request.
"""

import logging
from functools import wraps
from typing import Callable, Iterable, List, Optional, Union

from sqlalchemy.orm import Session

from backoffice.core.exceptions import ForbiddenError
from backoffice.db.models import User, RolePermission
from backoffice.db.models import Permission as PermissionModel
from .permissions import Permission, Resource, Action

logger = logging.getLogger(__name__)

FORBIDDEN_MESSAGE = "You don't have permission to access this resource"


def resolve_permissions(db: Session, identity: Optional[User]) -> set[str]:
    """Return the permission names granted to the identity's current role."""
    if identity is None:
        return set()

    rows = (
        db.query(PermissionModel.name)
        .join(RolePermission, RolePermission.permission_id == PermissionModel.id)
        .join(User, User.role_id == RolePermission.role_id)
        .filter(User.id == identity.id)
        .all()
    )
    return {name for (name,) in rows}


class PermissionChecker:
    """Checks membership of permissions in a resolved permission set."""

    def __init__(self, user_permissions: Iterable[str]):
        self.permissions = set(user_permissions)

    @classmethod
    def for_identity(cls, db: Session, identity: Optional[User]) -> "PermissionChecker":
        return cls(resolve_permissions(db, identity))

    def has_permission(self, permission: Union[str, Permission]) -> bool:
        """Check if the set contains a specific permission."""
        return str(permission) in self.permissions

    def has_any_permission(self, permissions: List[Union[str, Permission]]) -> bool:
        """Check if the set contains any of the given permissions."""
        return any(self.has_permission(p) for p in permissions)

    def has_all_permissions(self, permissions: List[Union[str, Permission]]) -> bool:
        """Check if the set contains all of the given permissions."""
        return all(self.has_permission(p) for p in permissions)

    def can_access_resource(self, resource: Resource, action: Action) -> bool:
        return self.has_permission(Permission(resource, action))


def has_permission(db: Session, identity: Optional[User], permission: Union[str, Permission]) -> bool:
    """
    Check if an identity holds a specific permission right now.

    Args:
        db: Database session
        identity: User model instance (admin-class or user-class)
        permission: Permission string or Permission object

    Returns:
        True if the identity's role is granted the permission
    """
    return PermissionChecker.for_identity(db, identity).has_permission(permission)


def require_permission(*permissions: Union[str, Permission], require_all: bool = False):
    """
    Decorator factory for FastAPI endpoints requiring specific permissions.

    The endpoint must receive ``principal`` (from one of the authentication
    dependencies) and ``db`` as keyword arguments.

    Args:
        permissions: One or more permission strings or Permission objects
        require_all: If True, the identity must have ALL permissions. Default: any one.

    Usage:
        @router.get("/groups")
        @require_permission("group:read")
        async def list_groups(
            db: Session = Depends(get_db),
            principal: Principal = Depends(protect_admin),
        ):
            ...
    """
    perm_strs = [str(p) for p in permissions]

    def decorator(func: Callable):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            principal = kwargs.get("principal")
            db = kwargs.get("db")
            identity = getattr(principal, "identity", principal)

            if identity is None or db is None:
                raise ForbiddenError(FORBIDDEN_MESSAGE)

            checker = PermissionChecker.for_identity(db, identity)

            if require_all:
                has_access = checker.has_all_permissions(perm_strs)
            else:
                has_access = checker.has_any_permission(perm_strs)

            if not has_access:
                logger.info(
                    "Permission denied for identity %s: requires %s",
                    identity.id, ", ".join(perm_strs),
                )
                raise ForbiddenError(FORBIDDEN_MESSAGE)

            return await func(*args, **kwargs)

        return wrapper
    return decorator
