"""Permission catalogue endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from backoffice.api.deps import Principal, get_db, protect_admin
from backoffice.api.schemas.common import ok
from backoffice.api.schemas.roles import PermissionCreate, PermissionOut, PermissionUpdate
from backoffice.core.exceptions import ConflictError, NotFoundError
from backoffice.core.rbac import require_permission
from backoffice.db.models import Permission

router = APIRouter(prefix="/permissions", tags=["permissions"])


def _get_permission(db: Session, permission_id: int) -> Permission:
    permission = db.get(Permission, permission_id)
    if not permission:
        raise NotFoundError("Permission not found")
    return permission


def _ensure_name_free(db: Session, name: str, exclude_id: Optional[int] = None) -> None:
    query = db.query(Permission.id).filter(Permission.name == name)
    if exclude_id is not None:
        query = query.filter(Permission.id != exclude_id)
    if query.first():
        raise ConflictError("Permission with this name already exists")


@router.get("")
@require_permission("permission:assign")
async def list_permissions(
    db: Session = Depends(get_db),
    principal: Principal = Depends(protect_admin),
):
    permissions = db.query(Permission).order_by(Permission.name).all()
    return ok([PermissionOut.model_validate(p) for p in permissions], "Permissions fetched successfully")


@router.get("/{permission_id}")
@require_permission("permission:assign")
async def get_permission(
    permission_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(protect_admin),
):
    return ok(PermissionOut.model_validate(_get_permission(db, permission_id)), "Permission fetched successfully")


@router.post("", status_code=status.HTTP_201_CREATED)
@require_permission("permission:assign")
async def create_permission(
    body: PermissionCreate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(protect_admin),
):
    """Register a new capability. It has effect once granted to a role."""
    _ensure_name_free(db, body.name)
    permission = Permission(name=body.name, description=body.description)
    db.add(permission)
    db.commit()
    db.refresh(permission)
    return ok(PermissionOut.model_validate(permission), "Permission created successfully")


@router.put("/{permission_id}")
@require_permission("permission:assign")
async def update_permission(
    permission_id: int,
    body: PermissionUpdate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(protect_admin),
):
    permission = _get_permission(db, permission_id)
    if body.name is not None and body.name != permission.name:
        _ensure_name_free(db, body.name, exclude_id=permission.id)
        permission.name = body.name
    if body.description is not None:
        permission.description = body.description

    db.commit()
    db.refresh(permission)
    return ok(PermissionOut.model_validate(permission), "Permission updated successfully")


@router.delete("/{permission_id}")
@require_permission("permission:revoke")
async def delete_permission(
    permission_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(protect_admin),
):
    """Delete a permission and every grant of it."""
    permission = _get_permission(db, permission_id)
    db.delete(permission)
    db.commit()
    return ok(None, "Permission deleted successfully")
