from datetime import datetime
from typing import Optional

from pydantic import Field

from .common import CamelModel


class GroupOut(CamelModel):
    id: int
    name: str
    parent_id: Optional[int] = None
    created_at: Optional[datetime] = None


class GroupCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    parent_id: Optional[int] = None


class GroupUpdate(CamelModel):
    """Omitting ``parentId`` keeps the parent; sending null (or 0) makes the group a root."""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    parent_id: Optional[int] = None
