"""Task endpoints.

The ``/user`` routes act on the caller's own assignment rows, the ``/admin``
routes on whole tasks. Directors only see the tasks they created in the
admin lists.
"""

from fastapi import APIRouter, Depends, File, Query, UploadFile, status
from fastapi.responses import FileResponse
from sqlalchemy.orm import Session

from backoffice.api.deps import (
    Principal,
    get_db,
    get_storage,
    protect_admin,
    protect_user,
    protect_user_or_admin,
)
from backoffice.api.schemas.common import ok, paginated
from backoffice.api.schemas.tasks import (
    AdminTaskOut,
    AssigneeOut,
    AssignmentStatusUpdate,
    AssignUserRequest,
    TaskCreate,
    TaskDetailOut,
    TaskFileOut,
    TaskOut,
    TaskUpdate,
    UserTaskOut,
)
from backoffice.core.rbac import require_permission
from backoffice.core.tasks.service import SCOPE_ACTIVE, SCOPE_ALL, SCOPE_ARCHIVED, TaskService
from backoffice.services.storage import FileStorage

router = APIRouter(prefix="/tasks", tags=["tasks"])


def _user_tasks(db: Session, principal: Principal, scope: str, page: int, limit: int) -> dict:
    assignments, total = TaskService(db).list_for_user(principal.user, scope=scope, page=page, limit=limit)
    items = [UserTaskOut.from_assignment(a) for a in assignments]
    return paginated("tasks", items, page, limit, total)


def _admin_tasks(db: Session, principal: Principal, scope: str, page: int, limit: int) -> dict:
    summaries, total = TaskService(db).list_for_admin(principal.admin, scope=scope, page=page, limit=limit)
    items = [AdminTaskOut.from_summary(s) for s in summaries]
    return paginated("tasks", items, page, limit, total)


# ============== User ==============

@router.get("/user/my-tasks")
@require_permission("task:read")
async def my_tasks(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    principal: Principal = Depends(protect_user),
):
    return ok(_user_tasks(db, principal, SCOPE_ALL, page, limit), "Tasks fetched successfully")


@router.get("/user/active-tasks")
@require_permission("task:read")
async def my_active_tasks(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    principal: Principal = Depends(protect_user),
):
    """Tasks whose assignment row for the caller is not completed."""
    return ok(_user_tasks(db, principal, SCOPE_ACTIVE, page, limit), "Active tasks fetched successfully")


@router.get("/user/archived-tasks")
@require_permission("task:read")
async def my_archived_tasks(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    principal: Principal = Depends(protect_user),
):
    return ok(_user_tasks(db, principal, SCOPE_ARCHIVED, page, limit), "Archived tasks fetched successfully")


@router.delete("/user/file/{file_id}")
@require_permission("task:update")
async def delete_own_file(
    file_id: int,
    db: Session = Depends(get_db),
    storage: FileStorage = Depends(get_storage),
    principal: Principal = Depends(protect_user),
):
    TaskService(db, storage).delete_file(file_id, principal.user)
    return ok(None, "File deleted successfully")


@router.get("/user/{task_id}")
@require_permission("task:read")
async def my_task_detail(
    task_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(protect_user),
):
    service = TaskService(db)
    assignment = service.require_assignment(task_id, principal.user)

    detail = TaskDetailOut.from_task(assignment.task)
    detail.user_status = assignment.status
    detail.assignees = [AssigneeOut.from_assignment(a) for a in service.assignments_of(task_id)]
    detail.files = [TaskFileOut.from_file(f) for f in service.visible_files(task_id, principal.user)]
    return ok(detail, "Task fetched successfully")


@router.put("/user/{task_id}/status")
@require_permission("task:update")
async def update_my_status(
    task_id: int,
    body: AssignmentStatusUpdate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(protect_user),
):
    """Set the caller's own status to in_progress or completed."""
    assignment = TaskService(db).update_own_status(task_id, principal.user, body.status.value)
    return ok(AssigneeOut.from_assignment(assignment), "Task status updated successfully")


@router.post("/user/{task_id}/upload-file", status_code=status.HTTP_201_CREATED)
@require_permission("task:update")
async def upload_own_file(
    task_id: int,
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    storage: FileStorage = Depends(get_storage),
    principal: Principal = Depends(protect_user),
):
    task_file = TaskService(db, storage).add_file(task_id, file, principal.user)
    return ok(TaskFileOut.from_file(task_file), "File uploaded successfully")


# ============== Admin ==============

@router.get("/admin/all")
@require_permission("task:read")
async def all_tasks(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    principal: Principal = Depends(protect_admin),
):
    return ok(_admin_tasks(db, principal, SCOPE_ALL, page, limit), "Tasks fetched successfully")


@router.get("/admin/active-tasks")
@require_permission("task:read")
async def active_tasks(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    principal: Principal = Depends(protect_admin),
):
    """Tasks without assignees or with at least one unfinished assignee."""
    return ok(_admin_tasks(db, principal, SCOPE_ACTIVE, page, limit), "Active tasks fetched successfully")


@router.get("/admin/archived-tasks")
@require_permission("task:read")
async def archived_tasks(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    principal: Principal = Depends(protect_admin),
):
    """Tasks whose assignees have all completed."""
    return ok(_admin_tasks(db, principal, SCOPE_ARCHIVED, page, limit), "Archived tasks fetched successfully")


@router.get("/admin/my-files")
@require_permission("task:read")
async def my_uploaded_files(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    principal: Principal = Depends(protect_admin),
):
    files, total = TaskService(db).files_uploaded_by(principal.admin, page=page, limit=limit)
    items = [TaskFileOut.from_file(f) for f in files]
    return ok(paginated("files", items, page, limit, total), "Files fetched successfully")


@router.post("/admin/create", status_code=status.HTTP_201_CREATED)
@require_permission("task:create")
async def create_task(
    body: TaskCreate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(protect_admin),
):
    task = TaskService(db).create(
        title=body.title,
        description=body.description,
        deadline=body.deadline,
        assigned_user_ids=body.assigned_user_ids,
        creator=principal.admin,
    )
    return ok(TaskOut.from_task(task), "Task created successfully")


@router.delete("/admin/file/{file_id}")
@require_permission("task:manage")
async def delete_task_file(
    file_id: int,
    db: Session = Depends(get_db),
    storage: FileStorage = Depends(get_storage),
    principal: Principal = Depends(protect_admin),
):
    TaskService(db, storage).delete_file(file_id, principal.admin)
    return ok(None, "File deleted successfully")


@router.get("/admin/{task_id}/detail")
@require_permission("task:read")
async def task_detail(
    task_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(protect_admin),
):
    service = TaskService(db)
    task = service.get(task_id)

    detail = TaskDetailOut.from_task(task)
    detail.assignees = [AssigneeOut.from_assignment(a) for a in service.assignments_of(task_id)]
    detail.files = [TaskFileOut.from_file(f) for f in service.visible_files(task_id, principal.admin)]
    return ok(detail, "Task fetched successfully")


@router.put("/admin/{task_id}")
@require_permission("task:update")
async def update_task(
    task_id: int,
    body: TaskUpdate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(protect_admin),
):
    task = TaskService(db).update(
        task_id,
        title=body.title,
        description=body.description,
        deadline=body.deadline,
        status=body.status.value if body.status else None,
    )
    return ok(TaskOut.from_task(task), "Task updated successfully")


@router.delete("/admin/{task_id}")
@require_permission("task:delete")
async def delete_task(
    task_id: int,
    db: Session = Depends(get_db),
    storage: FileStorage = Depends(get_storage),
    principal: Principal = Depends(protect_admin),
):
    TaskService(db, storage).delete(task_id)
    return ok(None, "Task deleted successfully")


@router.post("/admin/{task_id}/assign")
@require_permission("task:manage")
async def assign_user(
    task_id: int,
    body: AssignUserRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(protect_admin),
):
    assignment = TaskService(db).assign(task_id, body.user_id)
    return ok(AssigneeOut.from_assignment(assignment), "User assigned to task successfully")


@router.delete("/admin/{task_id}/user/{user_id}")
@require_permission("task:manage")
async def remove_user(
    task_id: int,
    user_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(protect_admin),
):
    TaskService(db).remove_user(task_id, user_id)
    return ok(None, "User removed from task successfully")


@router.get("/admin/{task_id}/users")
@require_permission("task:read")
async def task_users(
    task_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(protect_admin),
):
    assignments = TaskService(db).task_users(task_id)
    return ok([AssigneeOut.from_assignment(a) for a in assignments], "Task users fetched successfully")


@router.post("/admin/{task_id}/upload-file", status_code=status.HTTP_201_CREATED)
@require_permission("task:manage")
async def upload_task_file(
    task_id: int,
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    storage: FileStorage = Depends(get_storage),
    principal: Principal = Depends(protect_admin),
):
    task_file = TaskService(db, storage).add_file(task_id, file, principal.admin)
    return ok(TaskFileOut.from_file(task_file), "File uploaded successfully")


# ============== Shared ==============

@router.get("/file/{file_id}/download")
async def download_task_file(
    file_id: int,
    db: Session = Depends(get_db),
    storage: FileStorage = Depends(get_storage),
    principal: Principal = Depends(protect_user_or_admin),
):
    """Admin-class callers, or an assignee allowed to see the file."""
    task_file = TaskService(db, storage).file_for_download(file_id, principal.identity)
    return FileResponse(
        storage.path_for(task_file.file_path),
        filename=task_file.file_name,
        media_type=task_file.file_type or "application/octet-stream",
    )
