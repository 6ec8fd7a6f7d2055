"""Group tree endpoints."""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from backoffice.api.deps import Principal, get_db, protect_admin
from backoffice.api.schemas.common import ok
from backoffice.api.schemas.groups import GroupCreate, GroupOut, GroupUpdate
from backoffice.core.rbac import require_permission
from backoffice.services.groups import GroupService

router = APIRouter(prefix="/groups", tags=["groups"])


@router.get("")
@require_permission("group:read")
async def list_groups(
    db: Session = Depends(get_db),
    principal: Principal = Depends(protect_admin),
):
    groups = GroupService(db).list()
    return ok([GroupOut.model_validate(g) for g in groups], "Groups fetched successfully")


@router.get("/subgroups/{parent_id}")
@require_permission("group:read")
async def list_subgroups(
    parent_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(protect_admin),
):
    """Direct children of a group; ``0`` lists the root groups."""
    groups = GroupService(db).subgroups(parent_id)
    return ok([GroupOut.model_validate(g) for g in groups], "Subgroups fetched successfully")


@router.get("/{group_id}")
@require_permission("group:read")
async def get_group(
    group_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(protect_admin),
):
    group = GroupService(db).get(group_id)
    return ok(GroupOut.model_validate(group), "Group fetched successfully")


@router.get("/{group_id}/descendants")
@require_permission("group:read")
async def list_descendants(
    group_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(protect_admin),
):
    """The group and every group below it."""
    groups = GroupService(db).descendants(group_id)
    return ok([GroupOut.model_validate(g) for g in groups], "Descendant groups fetched successfully")


@router.post("", status_code=status.HTTP_201_CREATED)
@require_permission("group:create")
async def create_group(
    body: GroupCreate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(protect_admin),
):
    group = GroupService(db).create(name=body.name, parent_id=body.parent_id)
    return ok(GroupOut.model_validate(group), "Group created successfully")


@router.put("/{group_id}")
@require_permission("group:update")
async def update_group(
    group_id: int,
    body: GroupUpdate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(protect_admin),
):
    changes = {"name": body.name}
    if "parent_id" in body.model_fields_set:
        changes["parent_id"] = body.parent_id
    group = GroupService(db).update(group_id, **changes)
    return ok(GroupOut.model_validate(group), "Group updated successfully")


@router.delete("/{group_id}")
@require_permission("group:delete")
async def delete_group(
    group_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(protect_admin),
):
    GroupService(db).delete(group_id)
    return ok(None, "Group deleted successfully")
