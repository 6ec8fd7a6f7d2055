from datetime import datetime
from typing import Literal, Optional

from backoffice.db.models import DeleteRequest

from .common import CamelModel


class DeleteRequestOut(CamelModel):
    id: int
    document_id: Optional[int] = None
    document_title: Optional[str] = None
    requester_id: int
    requester_name: Optional[str] = None
    status: str
    reviewed_by: Optional[int] = None
    reviewed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, request: DeleteRequest) -> "DeleteRequestOut":
        out = cls.model_validate(request)
        out.requester_name = request.requester.name if request.requester else None
        return out


class DeleteRequestCreate(CamelModel):
    document_id: int


class DeleteRequestReview(CamelModel):
    status: Literal["approved", "rejected"]
