"""Role to permission grant endpoints.

Grants take effect on the next request: permissions are resolved from these
rows every time they are checked.
"""

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from backoffice.api.deps import Principal, get_db, protect_admin
from backoffice.api.schemas.common import ok
from backoffice.api.schemas.roles import PermissionOut, RolePermissionIn, RolePermissionOut
from backoffice.core.exceptions import ConflictError, NotFoundError
from backoffice.core.rbac import require_permission
from backoffice.db.models import Permission, Role, RolePermission

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/role-permissions", tags=["role-permissions"])

DUPLICATE_GRANT = "Permission already assigned to this role"


@router.get("/{role_id}")
@require_permission("permission:assign")
async def list_role_permissions(
    role_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(protect_admin),
):
    if not db.get(Role, role_id):
        raise NotFoundError("Role not found")

    permissions = (
        db.query(Permission)
        .join(RolePermission, RolePermission.permission_id == Permission.id)
        .filter(RolePermission.role_id == role_id)
        .order_by(Permission.name)
        .all()
    )
    return ok([PermissionOut.model_validate(p) for p in permissions], "Role permissions fetched successfully")


@router.post("", status_code=status.HTTP_201_CREATED)
@require_permission("permission:assign")
async def grant_permission(
    body: RolePermissionIn,
    db: Session = Depends(get_db),
    principal: Principal = Depends(protect_admin),
):
    if not db.get(Role, body.role_id):
        raise NotFoundError("Role not found")
    if not db.get(Permission, body.permission_id):
        raise NotFoundError("Permission not found")

    existing = db.query(RolePermission.id).filter(
        RolePermission.role_id == body.role_id,
        RolePermission.permission_id == body.permission_id,
    ).first()
    if existing:
        raise ConflictError(DUPLICATE_GRANT)

    grant = RolePermission(role_id=body.role_id, permission_id=body.permission_id)
    db.add(grant)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError(DUPLICATE_GRANT)
    db.refresh(grant)

    logger.info(
        "Permission %s granted to role %s by %s",
        body.permission_id, body.role_id, principal.admin.id,
    )
    return ok(RolePermissionOut.model_validate(grant), "Permission assigned to role successfully")


@router.delete("")
@require_permission("permission:revoke")
async def revoke_permission(
    body: RolePermissionIn,
    db: Session = Depends(get_db),
    principal: Principal = Depends(protect_admin),
):
    grant = db.query(RolePermission).filter(
        RolePermission.role_id == body.role_id,
        RolePermission.permission_id == body.permission_id,
    ).first()
    if not grant:
        raise NotFoundError("Permission is not assigned to this role")

    db.delete(grant)
    db.commit()

    logger.info(
        "Permission %s revoked from role %s by %s",
        body.permission_id, body.role_id, principal.admin.id,
    )
    return ok(None, "Permission removed from role successfully")
