"""Admin account and user administration endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from backoffice.api.deps import Principal, get_db, protect_admin
from backoffice.api.schemas.auth import LoginRequest, ProfileUpdate, RefreshRequest, RegisterAdminRequest, TokenPair
from backoffice.api.schemas.common import ok, paginated
from backoffice.api.schemas.documents import DocumentOut
from backoffice.api.schemas.users import UserCreate, UserOut, UserUpdate
from backoffice.core.rbac import require_permission
from backoffice.services.documents import DocumentService
from backoffice.services.identity import IdentityService

router = APIRouter(prefix="/admins", tags=["admins"])


# ============== Account ==============

@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(body: RegisterAdminRequest, db: Session = Depends(get_db)):
    """Create an admin account and sign it in."""
    admin = IdentityService(db).register_admin(
        name=body.name,
        telegram_id=body.telegram_id,
        password=body.password,
        status=body.status,
    )
    return ok(TokenPair.for_identity(admin), "Admin created successfully")


@router.post("/login")
async def login(body: LoginRequest, db: Session = Depends(get_db)):
    admin = IdentityService(db).authenticate(body.telegram_id, body.password, admin=True)
    return ok(TokenPair.for_identity(admin), "Admin logged in successfully")


@router.post("/refresh")
async def refresh(body: RefreshRequest, db: Session = Depends(get_db)):
    admin = IdentityService(db).refresh(body.refresh_token, admin=True)
    return ok(TokenPair.for_identity(admin), "Token refreshed successfully")


@router.get("")
async def get_profile(principal: Principal = Depends(protect_admin)):
    return ok(UserOut.model_validate(principal.admin), "Admin fetched successfully")


@router.put("")
async def update_profile(
    body: ProfileUpdate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(protect_admin),
):
    admin = IdentityService(db).update_profile(
        principal.admin,
        name=body.name,
        telegram_id=body.telegram_id,
        password=body.password,
    )
    return ok(UserOut.model_validate(admin), "Admin updated successfully")


# ============== Users ==============

@router.get("/users")
@require_permission("user:read")
async def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    name: Optional[str] = None,
    telegram_id: Optional[str] = Query(None, alias="telegramId"),
    group_id: Optional[int] = Query(None, alias="groupId"),
    user_status: Optional[bool] = Query(None, alias="status"),
    role: Optional[str] = None,
    db: Session = Depends(get_db),
    principal: Principal = Depends(protect_admin),
):
    """Search users by name or handle, group, status and role."""
    users, total = IdentityService(db).search_users(
        page=page,
        limit=limit,
        name=name,
        telegram_id=telegram_id,
        group_id=group_id,
        status=user_status,
        role=role,
    )
    items = [UserOut.model_validate(u) for u in users]
    return ok(paginated("users", items, page, limit, total), "Users fetched successfully")


@router.post("/users", status_code=status.HTTP_201_CREATED)
@require_permission("user:create")
async def create_user(
    body: UserCreate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(protect_admin),
):
    user = IdentityService(db).create_user(
        name=body.name,
        telegram_id=body.telegram_id,
        password=body.password,
        status=body.status,
        role_id=body.role_id,
        group_id=body.group_id,
        group_ids=body.group_ids,
    )
    return ok(UserOut.model_validate(user), "User created successfully")


@router.get("/users/{user_id}")
@require_permission("user:read")
async def get_user(
    user_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(protect_admin),
):
    user = IdentityService(db).get_user(user_id)
    return ok(UserOut.model_validate(user), "User fetched successfully")


@router.put("/users/{user_id}")
@require_permission("user:update")
async def update_user(
    user_id: int,
    body: UserUpdate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(protect_admin),
):
    user = IdentityService(db).update_user(
        user_id,
        name=body.name,
        telegram_id=body.telegram_id,
        password=body.password,
        status=body.status,
        role_id=body.role_id,
        group_id=body.group_id,
        group_ids=body.group_ids,
    )
    return ok(UserOut.model_validate(user), "User updated successfully")


@router.delete("/users/{user_id}")
@require_permission("user:delete")
async def delete_user(
    user_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(protect_admin),
):
    IdentityService(db).delete_user(user_id)
    return ok(None, "User deleted successfully")


# ============== Search ==============

@router.get("/search/users")
@require_permission("user:read")
async def search_users(
    q: str = Query(..., min_length=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    principal: Principal = Depends(protect_admin),
):
    users = IdentityService(db).quick_search(q, limit=limit)
    return ok([UserOut.model_validate(u) for u in users], "Users fetched successfully")


@router.get("/search/documents")
@require_permission("document:read")
async def search_documents(
    q: str = Query(..., min_length=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    principal: Principal = Depends(protect_admin),
):
    documents = DocumentService(db).search(principal.admin, q, limit=limit)
    return ok([DocumentOut.model_validate(d) for d in documents], "Documents fetched successfully")
