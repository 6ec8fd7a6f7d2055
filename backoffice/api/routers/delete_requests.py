"""Delete request endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from backoffice.api.deps import Principal, get_db, get_storage, protect_admin, protect_user, protect_user_or_admin
from backoffice.api.schemas.common import ok, paginated
from backoffice.api.schemas.delete_requests import DeleteRequestCreate, DeleteRequestOut, DeleteRequestReview
from backoffice.core.deletion import DeleteRequestService
from backoffice.core.deletion.states import DeleteRequestState
from backoffice.core.exceptions import ForbiddenError
from backoffice.core.rbac import require_permission
from backoffice.services.storage import FileStorage

router = APIRouter(prefix="/delete-requests", tags=["delete-requests"])


def _list(db: Session, principal: Principal, page: int, limit: int, state: Optional[DeleteRequestState]) -> dict:
    """Admins see every request; users only their own."""
    requester_id = None if principal.is_admin else principal.user.id
    requests, total = DeleteRequestService(db).list(
        page=page, limit=limit, status=state, requester_id=requester_id
    )
    items = [DeleteRequestOut.from_model(r) for r in requests]
    return paginated("deleteRequests", items, page, limit, total)


@router.get("")
async def list_requests(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    state: Optional[DeleteRequestState] = Query(None, alias="status"),
    db: Session = Depends(get_db),
    principal: Principal = Depends(protect_user_or_admin),
):
    return ok(_list(db, principal, page, limit, state), "Delete requests fetched successfully")


@router.post("", status_code=status.HTTP_201_CREATED)
@require_permission("delete-request:create")
async def create_request(
    body: DeleteRequestCreate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(protect_user),
):
    request = DeleteRequestService(db).create_for_document_id(body.document_id, principal.user)
    return ok(DeleteRequestOut.from_model(request), "Delete request created successfully")


@router.get("/status/{state}")
async def list_by_status(
    state: DeleteRequestState,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    principal: Principal = Depends(protect_user_or_admin),
):
    return ok(_list(db, principal, page, limit, state), "Delete requests fetched successfully")


@router.get("/user/requests")
async def list_own_requests(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    principal: Principal = Depends(protect_user),
):
    return ok(_list(db, principal, page, limit, None), "Delete requests fetched successfully")


@router.post("/user/{document_id}", status_code=status.HTTP_201_CREATED)
@require_permission("delete-request:create")
async def create_request_for_document(
    document_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(protect_user),
):
    request = DeleteRequestService(db).create_for_document_id(document_id, principal.user)
    return ok(DeleteRequestOut.from_model(request), "Delete request created successfully")


@router.get("/admin/pending-count")
async def pending_count(
    db: Session = Depends(get_db),
    principal: Principal = Depends(protect_admin),
):
    count = DeleteRequestService(db).pending_count()
    return ok({"count": count}, "Pending delete requests counted successfully")


@router.get("/{request_id}")
async def get_request(
    request_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(protect_user_or_admin),
):
    request = DeleteRequestService(db).get(request_id)
    if not principal.is_admin and request.requester_id != principal.user.id:
        raise ForbiddenError()
    return ok(DeleteRequestOut.from_model(request), "Delete request fetched successfully")


@router.put("/{request_id}")
@require_permission("delete-request:approve")
async def review_request(
    request_id: int,
    body: DeleteRequestReview,
    db: Session = Depends(get_db),
    storage: FileStorage = Depends(get_storage),
    principal: Principal = Depends(protect_admin),
):
    """Approve (deleting the document and its file) or reject a pending request."""
    request = DeleteRequestService(db, storage).review(
        request_id, DeleteRequestState(body.status), principal.admin
    )
    return ok(DeleteRequestOut.from_model(request), f"Delete request {request.status} successfully")
