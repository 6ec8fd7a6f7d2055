"""Delete request service.

Owners of a document cannot remove it themselves; they file a delete request
that an admin-class reviewer approves or rejects. Approval removes the
document row and its stored file.
"""

import logging
from datetime import datetime
from typing import Optional, List, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from backoffice.core.exceptions import BadRequestError, ConflictError, ForbiddenError, NotFoundError
from backoffice.core.rbac.checker import resolve_permissions
from backoffice.db.models import DeleteRequest, Document, User
from .states import DeleteRequestState, transition_for_status
from .machine import DeleteRequestStateMachine, TransitionError, PermissionDeniedError

logger = logging.getLogger(__name__)

DUPLICATE_REQUEST_MESSAGE = "Delete request already exists for this document"


class DeleteRequestService:
    """
    High-level service for delete requests.

    Handles:
    - Creating requests with the one-pending-per-(document, requester) rule
    - Reviewing requests through the state machine
    - Listing and counting
    """

    def __init__(self, db: Session, storage=None):
        """
        Args:
            db: Database session
            storage: FileStorage used to remove files of approved requests
        """
        self.db = db
        self.storage = storage

    def create(self, document: Document, requester: User) -> DeleteRequest:
        """File a pending request. A second pending request for the pair is a conflict."""
        existing = self.db.query(DeleteRequest).filter(
            DeleteRequest.document_id == document.id,
            DeleteRequest.requester_id == requester.id,
            DeleteRequest.status == DeleteRequestState.PENDING.value,
        ).first()
        if existing:
            raise ConflictError(DUPLICATE_REQUEST_MESSAGE)

        request = DeleteRequest(
            document_id=document.id,
            document_title=document.title,
            requester_id=requester.id,
            status=DeleteRequestState.PENDING.value,
        )
        self.db.add(request)
        try:
            self.db.commit()
        except IntegrityError:
            # A concurrent request won the race on the partial unique index
            self.db.rollback()
            raise ConflictError(DUPLICATE_REQUEST_MESSAGE)

        self.db.refresh(request)
        logger.info(
            "Delete request %s filed by user %s for document %s",
            request.id, requester.id, document.id,
        )
        return request

    def create_for_document_id(self, document_id: int, requester: User) -> DeleteRequest:
        document = self.db.get(Document, document_id)
        if not document:
            raise NotFoundError("Document not found")
        if document.uploader_id != requester.id:
            raise ForbiddenError("You can only request deletion of your own documents")
        return self.create(document, requester)

    def get(self, request_id: int) -> DeleteRequest:
        request = self.db.get(DeleteRequest, request_id)
        if not request:
            raise NotFoundError("Delete request not found")
        return request

    def review(self, request_id: int, status: DeleteRequestState, reviewer: User) -> DeleteRequest:
        """
        Approve or reject a pending request.

        Raises:
            NotFoundError: If the request does not exist
            BadRequestError: If the request is no longer pending or the status is not a decision
            ForbiddenError: If the reviewer lacks delete-request:approve
        """
        transition = transition_for_status(DeleteRequestState(status))
        if transition is None:
            raise BadRequestError("Status must be 'approved' or 'rejected'")

        request = self.db.query(DeleteRequest).filter(
            DeleteRequest.id == request_id
        ).with_for_update().first()
        if not request:
            raise NotFoundError("Delete request not found")

        machine = DeleteRequestStateMachine(
            request.id,
            DeleteRequestState(request.status),
            user_permissions=resolve_permissions(self.db, reviewer),
        )
        try:
            new_state = machine.transition(transition, user_id=reviewer.id)
        except TransitionError as e:
            raise BadRequestError(str(e))
        except PermissionDeniedError:
            raise ForbiddenError()

        removed_files: list[str] = []
        if new_state == DeleteRequestState.APPROVED:
            self._delete_document(request, reviewer, removed_files)

        request.status = new_state.value
        request.reviewed_by = reviewer.id
        request.reviewed_at = datetime.utcnow()
        self.db.commit()

        if self.storage is not None:
            for name in removed_files:
                self.storage.delete(name)

        record = machine.get_history()[-1]
        logger.info(
            "Delete request %s moved %s -> %s by user %s at %s",
            record["request_id"], record["from_state"], record["to_state"],
            record["user_id"], record["timestamp"].isoformat(),
        )
        self.db.refresh(request)
        return request

    def reject_pending_for_document(
        self,
        document: Document,
        reviewer: User,
        exclude_id: Optional[int] = None,
    ) -> int:
        """Close every pending request for a document that is about to be deleted.

        Must run before the document row goes, while the requests still
        reference it. Does not commit. Returns how many were rejected.
        """
        query = self.db.query(DeleteRequest).filter(
            DeleteRequest.document_id == document.id,
            DeleteRequest.status == DeleteRequestState.PENDING.value,
        )
        if exclude_id is not None:
            query = query.filter(DeleteRequest.id != exclude_id)

        now = datetime.utcnow()
        pending = query.all()
        for request in pending:
            request.status = DeleteRequestState.REJECTED.value
            request.reviewed_by = reviewer.id
            request.reviewed_at = now

        if pending:
            logger.info(
                "Rejected %d pending delete requests for document %s",
                len(pending), document.id,
            )
        return len(pending)

    def _delete_document(self, request: DeleteRequest, reviewer: User, removed_files: list[str]) -> None:
        document = request.document
        if document is None:
            return

        self.reject_pending_for_document(document, reviewer, exclude_id=request.id)
        removed_files.append(document.file_path)
        self.db.delete(document)
        self.db.flush()

    def list(
        self,
        *,
        page: int = 1,
        limit: int = 20,
        status: Optional[DeleteRequestState] = None,
        requester_id: Optional[int] = None,
    ) -> Tuple[List[DeleteRequest], int]:
        """Paginated requests, newest first."""
        query = self.db.query(DeleteRequest)
        if status is not None:
            query = query.filter(DeleteRequest.status == DeleteRequestState(status).value)
        if requester_id is not None:
            query = query.filter(DeleteRequest.requester_id == requester_id)

        total = query.count()
        items = (
            query.order_by(DeleteRequest.created_at.desc(), DeleteRequest.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return items, total

    def pending_count(self) -> int:
        return self.db.query(DeleteRequest).filter(
            DeleteRequest.status == DeleteRequestState.PENDING.value
        ).count()
