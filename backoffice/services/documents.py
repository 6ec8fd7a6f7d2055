"""Document service.

Uploads are filed under the uploader's group. Reads go through the group
visibility rule in ``backoffice.core.access``; deletes go through the
deletion decision (admins delete directly, owners file a request).
"""

import logging
from dataclasses import dataclass, replace
from datetime import datetime, time, timedelta
from typing import List, Optional, Tuple

from fastapi import UploadFile
from sqlalchemy import extract, or_
from sqlalchemy.orm import Session

from backoffice.core import dates
from backoffice.core.access import (
    DeleteDecision,
    can_edit_document,
    can_view_document,
    deletion_decision,
    visible_group_ids,
)
from backoffice.core.deletion import DeleteRequestService
from backoffice.core.exceptions import BadRequestError, ForbiddenError, NotFoundError
from backoffice.core.groups import GroupHierarchy
from backoffice.db.models import DeleteRequest, Document, Group, User, UserGroup
from backoffice.db.pagination import paginate

logger = logging.getLogger(__name__)


@dataclass
class DocumentFilters:
    """Query-string filters shared by the admin and user document searches."""

    year: Optional[int] = None
    month: Optional[int] = None
    date: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    group_id: Optional[int] = None
    uploader_id: Optional[int] = None
    uploader_name: Optional[str] = None
    title: Optional[str] = None

    def validate(self) -> None:
        """Raise BadRequestError on the first invalid value."""
        if self.year is not None and not dates.is_valid_year(self.year):
            raise BadRequestError("Invalid year format")
        if self.month is not None and not dates.is_valid_month(self.month):
            raise BadRequestError("Invalid month format (1-12)")
        if self.date and not dates.is_valid_date(self.date):
            raise BadRequestError("Invalid date format (YYYY-MM-DD)")
        if self.start_date and not dates.is_valid_date(self.start_date):
            raise BadRequestError("Invalid start date format (YYYY-MM-DD)")
        if self.end_date and not dates.is_valid_date(self.end_date):
            raise BadRequestError("Invalid end date format (YYYY-MM-DD)")
        if self.start_date and self.end_date and not dates.is_valid_date_range(self.start_date, self.end_date):
            raise BadRequestError("Invalid date range: start date must be before end date")


def _day_start(day) -> datetime:
    return datetime.combine(day, time.min)


class DocumentService:
    def __init__(self, db: Session, storage=None):
        self.db = db
        self.storage = storage

    # ============== Single documents ==============

    def get(self, document_id: int) -> Document:
        document = self.db.get(Document, document_id)
        if not document:
            raise NotFoundError("Document not found")
        return document

    def get_visible(self, document_id: int, viewer: User) -> Document:
        document = self.get(document_id)
        if not can_view_document(self.db, viewer, document):
            raise ForbiddenError("You don't have permission to access this document")
        return document

    def info(self, document_id: int, viewer: User) -> dict:
        document = self.get_visible(document_id, viewer)
        exists = self.storage.exists(document.file_path)
        return {
            "id": document.id,
            "title": document.title,
            "file_name": document.file_path,
            "file_size": self.storage.size(document.file_path) if exists else 0,
            "file_exists": exists,
            "uploader_name": document.uploader_name,
            "group_name": document.group_name,
            "created_at": document.created_at,
        }

    def download_path(self, document_id: int, viewer: User):
        """Resolve the stored file of a visible document for streaming."""
        document = self.get_visible(document_id, viewer)
        if not self.storage.exists(document.file_path):
            raise NotFoundError("File not found on server")
        logger.info("Document %s downloaded by %s", document.id, viewer.id)
        return document, self.storage.path_for(document.file_path)

    def _upload_group(self, uploader: User, group_id: Optional[int]) -> Group:
        if group_id is not None:
            if not uploader.is_admin_class and group_id not in uploader.group_ids:
                raise ForbiddenError("You can only upload into your own group")
            group = self.db.get(Group, group_id)
            if not group:
                raise NotFoundError("Group not found")
            return group

        group = (
            self.db.query(Group)
            .join(UserGroup, UserGroup.group_id == Group.id)
            .filter(UserGroup.user_id == uploader.id)
            .order_by(Group.id)
            .first()
        )
        if not group:
            raise BadRequestError("User group not found")
        return group

    def create(self, *, title: str, upload: UploadFile, uploader: User, group_id: Optional[int] = None) -> Document:
        """Store the upload and record it with snapshots of the uploader and group names."""
        if not title:
            raise BadRequestError("Title is required")
        group = self._upload_group(uploader, group_id)
        stored = self.storage.save(upload)

        document = Document(
            title=title,
            group_id=group.id,
            uploader_id=uploader.id,
            file_path=stored.name,
            uploader_name=uploader.name,
            uploader_tg_id=uploader.telegram_id,
            group_name=group.name,
        )
        self.db.add(document)
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            self.storage.delete(stored.name)
            raise

        self.db.refresh(document)
        logger.info("Document %s uploaded by %s into group %s", document.id, uploader.id, group.id)
        return document

    def update(
        self,
        document_id: int,
        editor: User,
        *,
        title: Optional[str] = None,
        upload: Optional[UploadFile] = None,
    ) -> Document:
        """Owner or admin may retitle a document or replace its file."""
        document = self.get(document_id)
        if not can_edit_document(editor, document):
            raise ForbiddenError("You can only edit your own documents")

        old_file = None
        if upload is not None and upload.filename:
            stored = self.storage.save(upload)
            old_file = document.file_path
            document.file_path = stored.name
        if title:
            document.title = title

        self.db.commit()
        if old_file:
            self.storage.delete(old_file)

        self.db.refresh(document)
        return document

    def delete(self, document_id: int, actor: User) -> Tuple[DeleteDecision, Optional[DeleteRequest]]:
        """Apply the deletion decision.

        Returns the decision and, for owners, the pending request created.
        """
        document = self.get(document_id)
        decision = deletion_decision(actor, document)

        if decision == DeleteDecision.DENIED:
            raise ForbiddenError("You don't have permission to delete this document")

        if decision == DeleteDecision.REQUEST:
            request = DeleteRequestService(self.db, self.storage).create(document, actor)
            return decision, request

        name = document.file_path
        DeleteRequestService(self.db).reject_pending_for_document(document, actor)
        self.db.delete(document)
        self.db.commit()
        self.storage.delete(name)
        logger.info("Document %s deleted by %s", document_id, actor.id)
        return decision, None

    # ============== Lists ==============

    def _visible_query(self, viewer: User):
        query = self.db.query(Document)
        groups = visible_group_ids(self.db, viewer)
        if groups is not None:
            query = query.filter(Document.group_id.in_(groups))
        return query

    def list_visible(self, viewer: User) -> List[Document]:
        return self._visible_query(viewer).order_by(Document.created_at.desc(), Document.id.desc()).all()

    def list_visible_page(self, viewer: User, *, page: int = 1, limit: int = 20) -> Tuple[List[Document], int]:
        query = self._visible_query(viewer).order_by(Document.created_at.desc(), Document.id.desc())
        return paginate(query, page, limit)

    def uploaded_in_own_group(self, uploader: User) -> List[Document]:
        """The caller's own uploads filed under one of the caller's groups."""
        groups = uploader.group_ids
        if not groups:
            return []
        return (
            self.db.query(Document)
            .filter(Document.uploader_id == uploader.id, Document.group_id.in_(groups))
            .order_by(Document.created_at.desc(), Document.id.desc())
            .all()
        )

    def uploaded_by(self, uploader_id: int, *, page: int = 1, limit: int = 20) -> Tuple[List[Document], int]:
        query = (
            self.db.query(Document)
            .filter(Document.uploader_id == uploader_id)
            .order_by(Document.created_at.desc(), Document.id.desc())
        )
        return paginate(query, page, limit)

    def search(self, viewer: User, term: str, limit: int = 20) -> List[Document]:
        pattern = f"%{term}%"
        return (
            self._visible_query(viewer)
            .filter(or_(
                Document.title.ilike(pattern),
                Document.uploader_name.ilike(pattern),
                Document.group_name.ilike(pattern),
            ))
            .order_by(Document.created_at.desc(), Document.id.desc())
            .limit(limit)
            .all()
        )

    # ============== Filters ==============

    def _apply_filters(self, query, filters: DocumentFilters):
        filters.validate()
        created = Document.created_at

        if filters.year is not None and filters.month is not None:
            start, end = dates.month_date_range(int(filters.year), int(filters.month))
            query = query.filter(created >= _day_start(start), created < _day_start(end) + timedelta(days=1))
        elif filters.year is not None:
            start, end = dates.year_date_range(int(filters.year))
            query = query.filter(created >= _day_start(start), created < _day_start(end) + timedelta(days=1))
        elif filters.month is not None:
            query = query.filter(extract("month", created) == int(filters.month))

        if filters.date:
            day = dates.parse_date(filters.date)
            query = query.filter(created >= _day_start(day), created < _day_start(day) + timedelta(days=1))

        if filters.start_date and filters.end_date:
            start = dates.parse_date(filters.start_date)
            end = dates.parse_date(filters.end_date)
            query = query.filter(created >= _day_start(start), created < _day_start(end) + timedelta(days=1))
        elif filters.start_date:
            query = query.filter(created >= _day_start(dates.parse_date(filters.start_date)))
        elif filters.end_date:
            query = query.filter(created < _day_start(dates.parse_date(filters.end_date)) + timedelta(days=1))

        if filters.group_id is not None:
            groups = GroupHierarchy(self.db).descendants_of(filters.group_id)
            query = query.filter(Document.group_id.in_(groups))

        if filters.uploader_id is not None:
            query = query.filter(Document.uploader_id == filters.uploader_id)

        if filters.title and filters.uploader_name:
            query = query.filter(or_(
                Document.title.ilike(f"%{filters.title}%"),
                Document.uploader_name.ilike(f"%{filters.uploader_name}%"),
            ))
        elif filters.title:
            query = query.filter(Document.title.ilike(f"%{filters.title}%"))
        elif filters.uploader_name:
            query = query.filter(Document.uploader_name.ilike(f"%{filters.uploader_name}%"))

        return query.order_by(Document.created_at.desc(), Document.id.desc())

    def filter_all(self, filters: DocumentFilters, *, page: int = 1, limit: int = 10) -> Tuple[List[Document], int]:
        """Admin search across every document."""
        query = self._apply_filters(self.db.query(Document), filters)
        return paginate(query, page, limit)

    def filter_own(
        self, owner: User, filters: DocumentFilters, *, page: int = 1, limit: int = 10
    ) -> Tuple[List[Document], int]:
        """The same search restricted to the caller's own uploads."""
        own = replace(filters, uploader_id=None, uploader_name=None)
        query = self.db.query(Document).filter(Document.uploader_id == owner.id)
        return paginate(self._apply_filters(query, own), page, limit)

    def _years_and_months(self, base_filter=None) -> Tuple[List[int], List[int]]:
        year_col = extract("year", Document.created_at)
        month_col = extract("month", Document.created_at)

        years_q = self.db.query(year_col).distinct()
        months_q = self.db.query(month_col).distinct()
        if base_filter is not None:
            years_q = years_q.filter(base_filter)
            months_q = months_q.filter(base_filter)

        years = sorted({int(y) for (y,) in years_q.all() if y is not None}, reverse=True)
        months = sorted({int(m) for (m,) in months_q.all() if m is not None})
        return years, months

    def filter_options(self) -> dict:
        """Values the admin filter form can offer."""
        years, months = self._years_and_months()
        uploaders = (
            self.db.query(User)
            .filter(User.status.is_(True), User.id.in_(self.db.query(Document.uploader_id)))
            .order_by(User.name, User.id)
            .all()
        )
        return {
            "years": years,
            "months": months,
            "groups": GroupHierarchy(self.db).tree(),
            "uploaders": [
                {"id": u.id, "name": u.name, "telegramId": u.telegram_id} for u in uploaders
            ],
        }

    def user_filter_options(self, owner: User) -> dict:
        years, months = self._years_and_months(Document.uploader_id == owner.id)
        groups = (
            self.db.query(Group)
            .filter(Group.id.in_(
                self.db.query(Document.group_id).filter(Document.uploader_id == owner.id)
            ))
            .order_by(Group.name)
            .all()
        )
        return {
            "years": years,
            "months": months,
            "groups": [{"id": g.id, "name": g.name, "parentId": g.parent_id} for g in groups],
        }
