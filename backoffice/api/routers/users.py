"""User-class account endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from backoffice.api.deps import Principal, get_db, protect_user
from backoffice.api.schemas.auth import LoginRequest, ProfileUpdate, RefreshRequest, TokenPair
from backoffice.api.schemas.common import ok
from backoffice.api.schemas.users import UserOut
from backoffice.services.identity import IdentityService

router = APIRouter(prefix="/users", tags=["users"])


@router.post("/login")
async def login(body: LoginRequest, db: Session = Depends(get_db)):
    user = IdentityService(db).authenticate(body.telegram_id, body.password, admin=False)
    return ok(TokenPair.for_identity(user), "User logged in successfully")


@router.post("/refresh")
async def refresh(body: RefreshRequest, db: Session = Depends(get_db)):
    user = IdentityService(db).refresh(body.refresh_token, admin=False)
    return ok(TokenPair.for_identity(user), "Token refreshed successfully")


@router.get("/me")
async def get_me(principal: Principal = Depends(protect_user)):
    return ok(UserOut.model_validate(principal.user), "User fetched successfully")


@router.put("/me")
async def update_me(
    body: ProfileUpdate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(protect_user),
):
    user = IdentityService(db).update_profile(
        principal.user,
        name=body.name,
        telegram_id=body.telegram_id,
        password=body.password,
    )
    return ok(UserOut.model_validate(user), "User updated successfully")
