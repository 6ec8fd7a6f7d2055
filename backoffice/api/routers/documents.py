"""Document endpoints.

Admin-class callers see every document; users see documents filed under
their groups and the groups below them.
"""

import os
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, Response, UploadFile, status
from fastapi.responses import FileResponse
from sqlalchemy.orm import Session

from backoffice.api.deps import Principal, get_db, get_storage, protect_admin, protect_user, protect_user_or_admin
from backoffice.api.schemas.common import ok, paginated
from backoffice.api.schemas.delete_requests import DeleteRequestOut
from backoffice.api.schemas.documents import DocumentInfo, DocumentOut
from backoffice.core.access import DeleteDecision
from backoffice.core.config import get_settings
from backoffice.core.rbac import require_permission
from backoffice.services.documents import DocumentFilters, DocumentService
from backoffice.services.storage import FileStorage

router = APIRouter(prefix="/documents", tags=["documents"])
settings = get_settings()


def _documents(items) -> list:
    return [DocumentOut.model_validate(d) for d in items]


# ============== Static paths ==============

@router.get("/uploaded/group")
@require_permission("document:read")
async def uploaded_in_group(
    db: Session = Depends(get_db),
    principal: Principal = Depends(protect_user),
):
    """The caller's own uploads in their own group."""
    documents = DocumentService(db).uploaded_in_own_group(principal.user)
    return ok(_documents(documents), "Documents fetched successfully")


@router.get("/uploaded/{uploader_id}")
@require_permission("document:read")
async def uploaded_by(
    uploader_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    principal: Principal = Depends(protect_admin),
):
    documents, total = DocumentService(db).uploaded_by(uploader_id, page=page, limit=limit)
    return ok(paginated("documents", _documents(documents), page, limit, total), "Documents fetched successfully")


@router.get("/admin/filter")
@require_permission("document:read")
async def admin_filter(
    year: Optional[int] = None,
    month: Optional[int] = None,
    date: Optional[str] = None,
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    group_id: Optional[int] = Query(None, alias="groupId"),
    uploader_id: Optional[int] = Query(None, alias="uploaderId"),
    uploader_name: Optional[str] = Query(None, alias="uploaderName"),
    title: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    principal: Principal = Depends(protect_admin),
):
    """Filter every document by date, group subtree, uploader and title."""
    filters = DocumentFilters(
        year=year,
        month=month,
        date=date,
        start_date=start_date,
        end_date=end_date,
        group_id=group_id,
        uploader_id=uploader_id,
        uploader_name=uploader_name,
        title=title,
    )
    documents, total = DocumentService(db).filter_all(filters, page=page, limit=limit)
    return ok(
        paginated("documents", _documents(documents), page, limit, total),
        "Filtered documents fetched successfully",
    )


@router.get("/admin/filter-options")
@require_permission("document:read")
async def admin_filter_options(
    db: Session = Depends(get_db),
    principal: Principal = Depends(protect_admin),
):
    return ok(DocumentService(db).filter_options(), "Filter options fetched successfully")


@router.get("/user/filter")
@require_permission("document:read")
async def user_filter(
    year: Optional[int] = None,
    month: Optional[int] = None,
    date: Optional[str] = None,
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    group_id: Optional[int] = Query(None, alias="groupId"),
    title: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=settings.max_user_page_size),
    db: Session = Depends(get_db),
    principal: Principal = Depends(protect_user),
):
    """The same filters over the caller's own uploads."""
    filters = DocumentFilters(
        year=year,
        month=month,
        date=date,
        start_date=start_date,
        end_date=end_date,
        group_id=group_id,
        title=title,
    )
    documents, total = DocumentService(db).filter_own(principal.user, filters, page=page, limit=limit)
    return ok(
        paginated("documents", _documents(documents), page, limit, total),
        "Your filtered documents fetched successfully",
    )


@router.get("/user/filter-options")
@require_permission("document:read")
async def user_filter_options(
    db: Session = Depends(get_db),
    principal: Principal = Depends(protect_user),
):
    return ok(DocumentService(db).user_filter_options(principal.user), "Your filter options fetched successfully")


@router.get("/user/visible")
@require_permission("document:read")
async def user_visible(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    principal: Principal = Depends(protect_user),
):
    """Documents in the caller's groups and every group below them."""
    documents, total = DocumentService(db).list_visible_page(principal.user, page=page, limit=limit)
    return ok(paginated("documents", _documents(documents), page, limit, total), "Documents fetched successfully")


# ============== Collection ==============

@router.get("")
@require_permission("document:read")
async def list_documents(
    db: Session = Depends(get_db),
    principal: Principal = Depends(protect_user_or_admin),
):
    documents = DocumentService(db).list_visible(principal.identity)
    return ok(_documents(documents), "Documents fetched successfully")


@router.post("", status_code=status.HTTP_201_CREATED)
@require_permission("document:create")
async def create_document(
    title: str = Form(..., min_length=1),
    file: UploadFile = File(...),
    group_id: Optional[int] = Form(None, alias="groupId"),
    db: Session = Depends(get_db),
    storage: FileStorage = Depends(get_storage),
    principal: Principal = Depends(protect_user_or_admin),
):
    document = DocumentService(db, storage).create(
        title=title,
        upload=file,
        uploader=principal.identity,
        group_id=group_id,
    )
    return ok(DocumentOut.model_validate(document), "Document created successfully")


# ============== Single document ==============

@router.get("/{document_id}")
@require_permission("document:read")
async def get_document(
    document_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(protect_user_or_admin),
):
    document = DocumentService(db).get_visible(document_id, principal.identity)
    return ok(DocumentOut.model_validate(document), "Document fetched successfully")


@router.get("/{document_id}/info")
@require_permission("document:read")
async def get_document_info(
    document_id: int,
    db: Session = Depends(get_db),
    storage: FileStorage = Depends(get_storage),
    principal: Principal = Depends(protect_user_or_admin),
):
    info = DocumentService(db, storage).info(document_id, principal.identity)
    info["download_url"] = f"{settings.api_prefix}/documents/{document_id}/download"
    return ok(DocumentInfo(**info), "Document info retrieved successfully")


@router.get("/{document_id}/download")
@require_permission("document:download")
async def download_document(
    document_id: int,
    db: Session = Depends(get_db),
    storage: FileStorage = Depends(get_storage),
    principal: Principal = Depends(protect_user_or_admin),
):
    document, path = DocumentService(db, storage).download_path(document_id, principal.identity)
    filename = document.title + os.path.splitext(document.file_path)[1]
    return FileResponse(path, filename=filename, media_type="application/octet-stream")


@router.put("/{document_id}")
@require_permission("document:update")
async def update_document(
    document_id: int,
    title: Optional[str] = Form(None),
    file: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db),
    storage: FileStorage = Depends(get_storage),
    principal: Principal = Depends(protect_user_or_admin),
):
    document = DocumentService(db, storage).update(
        document_id,
        principal.identity,
        title=title,
        upload=file,
    )
    return ok(DocumentOut.model_validate(document), "Document updated successfully")


@router.delete("/{document_id}")
@require_permission("document:delete")
async def delete_document(
    document_id: int,
    response: Response,
    db: Session = Depends(get_db),
    storage: FileStorage = Depends(get_storage),
    principal: Principal = Depends(protect_user_or_admin),
):
    """Admins delete outright; owners get a pending delete request instead."""
    decision, request = DocumentService(db, storage).delete(document_id, principal.identity)
    if decision == DeleteDecision.REQUEST:
        response.status_code = status.HTTP_201_CREATED
        return ok(DeleteRequestOut.from_model(request), "Delete request sent to admin successfully")
    return ok(None, "Document deleted successfully")
