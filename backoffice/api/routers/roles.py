"""Role management API endpoints."""

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from backoffice.api.deps import Principal, get_db, protect_admin
from backoffice.api.schemas.common import ok
from backoffice.api.schemas.roles import RoleCreate, RoleOut, RoleUpdate
from backoffice.core.exceptions import BadRequestError, ConflictError, NotFoundError
from backoffice.core.rbac import require_permission
from backoffice.db.models import ADMIN_CLASS_ROLES, USER_CLASS_ROLE, Role, User

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/roles", tags=["roles"])

# Guards and admin-class checks match on these names
BUILTIN_ROLES = ADMIN_CLASS_ROLES | {USER_CLASS_ROLE}


def _get_role(db: Session, role_id: int) -> Role:
    role = db.get(Role, role_id)
    if not role:
        raise NotFoundError("Role not found")
    return role


@router.get("")
@require_permission("role:read")
async def list_roles(
    db: Session = Depends(get_db),
    principal: Principal = Depends(protect_admin),
):
    roles = db.query(Role).order_by(Role.name).all()
    return ok([RoleOut.model_validate(r) for r in roles], "Roles fetched successfully")


@router.get("/{role_id}")
@require_permission("role:read")
async def get_role(
    role_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(protect_admin),
):
    return ok(RoleOut.model_validate(_get_role(db, role_id)), "Role fetched successfully")


@router.post("", status_code=status.HTTP_201_CREATED)
@require_permission("role:create")
async def create_role(
    body: RoleCreate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(protect_admin),
):
    if db.query(Role.id).filter(Role.name == body.name).first():
        raise ConflictError("Role with this name already exists")

    role = Role(name=body.name, description=body.description)
    db.add(role)
    db.commit()
    db.refresh(role)

    logger.info("Role %s created by %s", role.name, principal.admin.id)
    return ok(RoleOut.model_validate(role), "Role created successfully")


@router.put("/{role_id}")
@require_permission("role:update")
async def update_role(
    role_id: int,
    body: RoleUpdate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(protect_admin),
):
    """Rename or re-describe a role. Users holding it pick up the new name."""
    role = _get_role(db, role_id)

    if body.name is not None and body.name != role.name:
        if role.name in BUILTIN_ROLES:
            raise BadRequestError("Built-in roles cannot be renamed")
        existing = db.query(Role.id).filter(Role.name == body.name, Role.id != role_id).first()
        if existing:
            raise ConflictError("Role with this name already exists")

        # Keep the denormalised label on users in step with the role row
        db.query(User).filter(User.role_id == role.id).update(
            {User.role: body.name}, synchronize_session=False
        )
        role.name = body.name

    if body.description is not None:
        role.description = body.description

    db.commit()
    db.refresh(role)
    return ok(RoleOut.model_validate(role), "Role updated successfully")


@router.delete("/{role_id}")
@require_permission("role:delete")
async def delete_role(
    role_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(protect_admin),
):
    """Delete a role no identity holds; its grants go with it."""
    role = _get_role(db, role_id)

    if role.name in BUILTIN_ROLES:
        raise BadRequestError("Built-in roles cannot be deleted")

    if db.query(User.id).filter(User.role_id == role.id).first():
        raise ConflictError("Role is assigned to users and cannot be deleted")

    db.delete(role)
    db.commit()
    logger.info("Role %s deleted by %s", role_id, principal.admin.id)
    return ok(None, "Role deleted successfully")
