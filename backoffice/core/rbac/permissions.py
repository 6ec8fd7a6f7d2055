"""Permission model for back-office RBAC.

Defines the resources, actions and the default permission catalogue.
Uses a matrix approach: permissions = actions x resources.

Permission string format: "resource:action"
Examples:
  - document:read
  - document:download
  - delete-request:approve
  - task:manage

The catalogue seeds the permissions table. Permission rows are the source of
truth at request time, so a new capability is declared by adding a row and
referencing its name from a route; nothing here has to change.
"""

import re
from enum import Enum
from typing import NamedTuple, FrozenSet


class Resource(str, Enum):
    """Resources that can be protected by permissions."""

    # Content
    DOCUMENT = "document"               # Uploaded documents
    DELETE_REQUEST = "delete-request"   # Owner requests to delete a document
    TASK = "task"                       # Tasks, assignments and task files
    NOTIFICATION = "notification"       # Broadcast notifications

    # Directory
    USER = "user"                       # Identity accounts
    GROUP = "group"                     # Organisational group tree

    # Access control
    ROLE = "role"                       # Role definitions
    PERMISSION = "permission"           # Permission catalogue and grants


class Action(str, Enum):
    """Actions that can be performed on resources."""

    # Standard CRUD actions
    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"

    # Specialized actions
    DOWNLOAD = "download"   # Fetch a stored file
    APPROVE = "approve"     # Review delete requests
    MANAGE = "manage"       # Assign users and attach files
    ASSIGN = "assign"       # Grant permissions to roles
    REVOKE = "revoke"       # Withdraw permissions from roles


class Permission(NamedTuple):
    """A permission is a combination of resource and action."""
    resource: Resource
    action: Action

    def __str__(self) -> str:
        return f"{self.resource.value}:{self.action.value}"

    @classmethod
    def from_string(cls, perm_str: str) -> "Permission":
        """Parse a permission string like 'document:read'."""
        parts = perm_str.split(":")
        if len(parts) != 2:
            raise ValueError(f"Invalid permission format: {perm_str}")
        return cls(Resource(parts[0]), Action(parts[1]))


# Maps each resource to its valid actions
PERMISSION_MATRIX: dict[Resource, FrozenSet[Action]] = {
    Resource.DOCUMENT: frozenset([
        Action.CREATE, Action.READ, Action.UPDATE, Action.DELETE, Action.DOWNLOAD,
    ]),
    Resource.DELETE_REQUEST: frozenset([
        Action.CREATE, Action.APPROVE,
    ]),
    Resource.TASK: frozenset([
        Action.CREATE, Action.READ, Action.UPDATE, Action.DELETE, Action.MANAGE,
    ]),
    Resource.NOTIFICATION: frozenset([
        Action.CREATE, Action.READ, Action.DELETE,
    ]),
    Resource.USER: frozenset([
        Action.CREATE, Action.READ, Action.UPDATE, Action.DELETE,
    ]),
    Resource.GROUP: frozenset([
        Action.CREATE, Action.READ, Action.UPDATE, Action.DELETE,
    ]),
    Resource.ROLE: frozenset([
        Action.CREATE, Action.READ, Action.UPDATE, Action.DELETE,
    ]),
    Resource.PERMISSION: frozenset([
        Action.ASSIGN, Action.REVOKE,
    ]),
}


def _generate_permission_definitions() -> dict[str, Permission]:
    """Generate all valid permission combinations from the matrix."""
    permissions = {}
    for resource, actions in PERMISSION_MATRIX.items():
        for action in actions:
            perm = Permission(resource, action)
            permissions[str(perm)] = perm
    return permissions


# All catalogue permissions as a dictionary: "resource:action" -> Permission
PERMISSION_DEFINITIONS = _generate_permission_definitions()

PERMISSION_NAME_PATTERN = re.compile(r"^[a-z][a-z0-9_-]*:[a-z][a-z0-9_-]*$")


def is_valid_permission_name(perm_str: str) -> bool:
    """Check that a string follows the resource:action convention."""
    return bool(PERMISSION_NAME_PATTERN.match(perm_str))


def is_catalogue_permission(perm_str: str) -> bool:
    """Check if a permission string is part of the default catalogue."""
    return perm_str in PERMISSION_DEFINITIONS


def get_permissions_for_resource(resource: Resource) -> list[str]:
    """Get all catalogue permission strings for a resource."""
    return sorted(
        str(Permission(resource, action))
        for action in PERMISSION_MATRIX.get(resource, set())
    )


def get_all_permissions() -> list[str]:
    """Get all catalogue permission strings."""
    return sorted(PERMISSION_DEFINITIONS.keys())
