"""Tests for the RBAC permission system."""

import pytest

from backoffice.core.rbac.checker import (
    PermissionChecker,
    has_permission,
    resolve_permissions,
)
from backoffice.core.rbac.permissions import (
    PERMISSION_DEFINITIONS,
    Action,
    Permission,
    Resource,
    get_all_permissions,
    get_permissions_for_resource,
    is_catalogue_permission,
    is_valid_permission_name,
)
from backoffice.core.rbac.roles import (
    ADMIN_PERMISSIONS,
    DEFAULT_ROLES,
    DIRECTOR_PERMISSIONS,
    USER_PERMISSIONS,
    get_default_role_permissions,
)
from backoffice.db.models import Permission as PermissionModel
from backoffice.db.models import RolePermission
from tests.factories import create_admin, create_role, create_user


class TestPermissionModel:
    """Test permission definitions."""

    def test_permission_string_format(self):
        perm = Permission(Resource.DELETE_REQUEST, Action.APPROVE)
        assert str(perm) == "delete-request:approve"

    def test_permission_from_string(self):
        perm = Permission.from_string("task:manage")
        assert perm.resource == Resource.TASK
        assert perm.action == Action.MANAGE

    def test_invalid_permission_format(self):
        with pytest.raises(ValueError):
            Permission.from_string("invalid")

        with pytest.raises(ValueError):
            Permission.from_string("too:many:parts")

    def test_permission_name_convention(self):
        """Names outside the catalogue are fine as long as they look like resource:action."""
        assert is_valid_permission_name("document:read")
        assert is_valid_permission_name("report:export")
        assert not is_valid_permission_name("Document:Read")
        assert not is_valid_permission_name("document")
        assert not is_valid_permission_name(":read")

    def test_catalogue_membership(self):
        assert is_catalogue_permission("document:download")
        assert not is_catalogue_permission("report:export")

    def test_all_permissions_generated(self):
        all_perms = get_all_permissions()
        assert len(all_perms) == len(PERMISSION_DEFINITIONS)
        assert "document:read" in all_perms
        assert "delete-request:approve" in all_perms
        assert "permission:assign" in all_perms
        assert all_perms == sorted(all_perms)

    def test_permissions_for_resource(self):
        perms = get_permissions_for_resource(Resource.DELETE_REQUEST)
        assert perms == ["delete-request:approve", "delete-request:create"]


class TestDefaultRoles:
    """Test the default role definitions."""

    def test_three_default_roles(self):
        assert set(DEFAULT_ROLES) == {"admin", "director", "user"}

    def test_admin_has_everything(self):
        assert set(ADMIN_PERMISSIONS) == set(PERMISSION_DEFINITIONS)

    def test_director_cannot_administer_access_control(self):
        assert "role:create" not in DIRECTOR_PERMISSIONS
        assert "permission:assign" not in DIRECTOR_PERMISSIONS
        assert "delete-request:approve" in DIRECTOR_PERMISSIONS

    def test_user_cannot_approve(self):
        assert "delete-request:create" in USER_PERMISSIONS
        assert "delete-request:approve" not in USER_PERMISSIONS
        assert "task:manage" not in USER_PERMISSIONS

    def test_default_role_lookup(self):
        assert get_default_role_permissions("user") == USER_PERMISSIONS
        with pytest.raises(ValueError):
            get_default_role_permissions("nobody")

    def test_every_default_grant_is_in_catalogue(self):
        for config in DEFAULT_ROLES.values():
            for perm in config["permissions"]:
                assert is_catalogue_permission(perm)


class TestPermissionChecker:
    """Test the in-memory permission checks."""

    def test_has_permission(self):
        checker = PermissionChecker(["document:read", "task:read"])
        assert checker.has_permission("document:read")
        assert checker.has_permission(Permission(Resource.TASK, Action.READ))
        assert not checker.has_permission("document:delete")

    def test_any_and_all(self):
        checker = PermissionChecker(["document:read"])
        assert checker.has_any_permission(["document:delete", "document:read"])
        assert not checker.has_all_permissions(["document:delete", "document:read"])

    def test_can_access_resource(self):
        checker = PermissionChecker(["group:read"])
        assert checker.can_access_resource(Resource.GROUP, Action.READ)
        assert not checker.can_access_resource(Resource.GROUP, Action.DELETE)


class TestResolvePermissions:
    """Permissions are resolved from the database on every call."""

    def test_seeded_user_permissions(self, db_session):
        user = create_user(db_session)
        assert resolve_permissions(db_session, user) == set(USER_PERMISSIONS)

    def test_no_identity_has_nothing(self, db_session):
        assert resolve_permissions(db_session, None) == set()

    def test_grant_is_visible_immediately(self, db_session, roles):
        user = create_user(db_session)
        assert not has_permission(db_session, user, "task:create")

        perm = db_session.query(PermissionModel).filter_by(name="task:create").one()
        db_session.add(RolePermission(role_id=roles["user"].id, permission_id=perm.id))
        db_session.commit()

        assert has_permission(db_session, user, "task:create")

    def test_revoke_is_visible_immediately(self, db_session, roles):
        admin = create_admin(db_session)
        assert has_permission(db_session, admin, "group:delete")

        perm = db_session.query(PermissionModel).filter_by(name="group:delete").one()
        db_session.query(RolePermission).filter_by(
            role_id=roles["admin"].id, permission_id=perm.id
        ).delete()
        db_session.commit()

        assert not has_permission(db_session, admin, "group:delete")

    def test_custom_role_starts_empty(self, db_session):
        role = create_role(db_session, name="auditor")
        user = create_user(db_session)
        user.set_role(role)
        db_session.commit()

        assert resolve_permissions(db_session, user) == set()
