"""Default role definitions for the back office.

Defines the 3 standard roles with their permission sets:
1. Admin - Full access, including role and permission administration
2. Director - Manages users, documents, tasks and notifications
3. User - Works with own documents, delete requests and assigned tasks
"""

from typing import Dict, List
from .permissions import Resource, Action, Permission, get_all_permissions


def _build_permissions(*perms: tuple) -> List[str]:
    """Build permission strings from (Resource, Action) tuples."""
    return [str(Permission(r, a)) for r, a in perms]


# Admin: every catalogue permission
ADMIN_PERMISSIONS = get_all_permissions()

# Director: runs the day-to-day back office, no access-control administration
DIRECTOR_PERMISSIONS = _build_permissions(
    # Users
    (Resource.USER, Action.CREATE),
    (Resource.USER, Action.READ),
    (Resource.USER, Action.UPDATE),

    # Groups - read only
    (Resource.GROUP, Action.READ),

    # Documents
    (Resource.DOCUMENT, Action.READ),
    (Resource.DOCUMENT, Action.UPDATE),
    (Resource.DOCUMENT, Action.DELETE),
    (Resource.DOCUMENT, Action.DOWNLOAD),

    # Delete requests
    (Resource.DELETE_REQUEST, Action.APPROVE),

    # Tasks - full access
    (Resource.TASK, Action.CREATE),
    (Resource.TASK, Action.READ),
    (Resource.TASK, Action.UPDATE),
    (Resource.TASK, Action.DELETE),
    (Resource.TASK, Action.MANAGE),

    # Notifications
    (Resource.NOTIFICATION, Action.CREATE),
    (Resource.NOTIFICATION, Action.READ),
)

# User: own documents and assigned tasks
USER_PERMISSIONS = _build_permissions(
    (Resource.DOCUMENT, Action.CREATE),
    (Resource.DOCUMENT, Action.READ),
    (Resource.DOCUMENT, Action.UPDATE),
    (Resource.DOCUMENT, Action.DELETE),
    (Resource.DOCUMENT, Action.DOWNLOAD),

    (Resource.DELETE_REQUEST, Action.CREATE),

    (Resource.TASK, Action.READ),
    (Resource.TASK, Action.UPDATE),
)


DEFAULT_ROLES: Dict[str, dict] = {
    "admin": {
        "name": "admin",
        "description": "Full system access",
        "permissions": ADMIN_PERMISSIONS,
    },
    "director": {
        "name": "director",
        "description": "Manages users, documents and tasks for assigned groups",
        "permissions": DIRECTOR_PERMISSIONS,
    },
    "user": {
        "name": "user",
        "description": "Uploads documents and works on assigned tasks",
        "permissions": USER_PERMISSIONS,
    },
}


def get_default_role_permissions(role_key: str) -> List[str]:
    """Get permissions for a default role by key."""
    role = DEFAULT_ROLES.get(role_key)
    if not role:
        raise ValueError(f"Unknown role: {role_key}")
    return role["permissions"]
